"""Utility modules for the patchwork service.

- **errors** -- exception hierarchy rooted at PatchworkError; each pipeline
  stage raises its own subclass so callers can handle failures granularly.
- **logging** -- structlog setup: coloured console output in development,
  structured JSON in production.
- **concurrency** -- batched and failure-tolerant asyncio fan-out helpers.
- **eviction** -- the three-phase cache eviction planner shared by every
  cache store backend.
"""

# -- Concurrency helpers ---------------------------------------------------
from patchwork.utils.concurrency import gather_in_batches, gather_settled

# -- Error hierarchy -------------------------------------------------------
from patchwork.utils.errors import (
    CompositionError,
    ConfigurationError,
    CoverResolutionError,
    InsufficientCoverArtError,
    NoCoversFoundError,
    NoListeningDataError,
    PatchworkError,
    ProviderUnavailableError,
    UserNotFoundError,
)

# -- Eviction planning -----------------------------------------------------
from patchwork.utils.eviction import EvictionPlan, plan_eviction

# -- Structured logging ----------------------------------------------------
from patchwork.utils.logging import configure_logging, get_logger

__all__ = [
    "CompositionError",
    "ConfigurationError",
    "CoverResolutionError",
    "EvictionPlan",
    "InsufficientCoverArtError",
    "NoCoversFoundError",
    "NoListeningDataError",
    "PatchworkError",
    "ProviderUnavailableError",
    "UserNotFoundError",
    "configure_logging",
    "gather_in_batches",
    "gather_settled",
    "get_logger",
    "plan_eviction",
]
