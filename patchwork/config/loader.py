"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

The YAML file carries tuning knobs that rarely change per deployment
(downloader concurrency, retry and timeout policy).  The server and
logging sections come from :class:`Settings` and are deep-merged on top;
the cache backend is built straight from :class:`Settings` in ``main``.
"""

from pathlib import Path
from typing import Any

import yaml

from patchwork.config.settings import Settings

DEFAULT_FETCHER_CONFIG: dict[str, Any] = {
    "concurrency": 5,
    "retries": 3,
    "timeout_seconds": 10.0,
    "backoff_base_ms": 500,
    "batch_delay_ms": 100,
    "user_agent": "Patchwork-Generator/1.0",
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to merge; a fresh one is built when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    base: dict[str, Any] = {"fetcher": dict(DEFAULT_FETCHER_CONFIG)}
    _deep_merge(base, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(base, env_overrides)
    return base


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
