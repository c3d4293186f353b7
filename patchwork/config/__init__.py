"""Configuration module -- exports Settings and load_config."""

from patchwork.config.loader import load_config
from patchwork.config.settings import Settings

__all__ = ["Settings", "load_config"]
