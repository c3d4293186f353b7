"""structlog setup for the server, the CLI tools and the tests.

Every event goes through one processor chain.  What differs between
environments is only the last step: ``development`` renders coloured
``key=value`` lines, ``production`` renders one JSON object per line.

Records from libraries that use standard-library ``logging`` (uvicorn,
httpx, redis) are routed through a :class:`structlog.stdlib.ProcessorFormatter`
with the same chain, so a request log line and a uvicorn access line come
out in the same format.
"""

import logging
import os
import sys

import structlog

# One INFO line per HTTP request; a 10x10 grid alone makes ~130 of them.
_NOISY_LOGGERS = ("httpx", "httpcore")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _renderer(use_json: bool) -> structlog.types.Processor:
    if use_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _route_stdlib_logging(level: str, processors: list[structlog.types.Processor]) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *processors],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Minimum level name (``DEBUG``, ``INFO``, ...).
        json_output: Render JSON regardless of ``APP_ENV``.  Otherwise JSON
                     is used only when ``APP_ENV`` is ``production``.

    Returns:
        An unnamed logger from the new configuration.
    """
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    processors = [*_shared_processors(), _renderer(use_json)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _route_stdlib_logging(level, processors)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
