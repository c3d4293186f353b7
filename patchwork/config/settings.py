"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. Environment variables, e.g. ``CACHE_PROVIDER=redis`` (always win)
  2. A ``.env`` file in the working directory (local development)

Field ``cache_ttl_7day`` maps to env var ``CACHE_TTL_7DAY`` and so on; the
defaults below apply when neither source sets a value.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from patchwork.models.request import Period

_HOUR_MS = 60 * 60 * 1000
_MB = 1024 * 1024


class Settings(BaseSettings):
    """Patchwork service settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Statistics providers ===
    # ListenBrainz statistics are public; only Last.fm needs a key.
    lastfm_api_key: str = ""

    # === Cache backend ===
    cache_provider: Literal["filesystem", "redis"] = "filesystem"
    cache_dir: str = "./cache/images"
    redis_url: str = "redis://localhost:6379/0"
    redis_scan_batch_size: int = Field(default=100, ge=1)

    # === Cache TTLs (hours, per statistics period) ===
    cache_ttl_7day: float = 6
    cache_ttl_1month: float = 12
    cache_ttl_3month: float = 24
    cache_ttl_6month: float = 48
    cache_ttl_12month: float = 72
    cache_ttl_overall: float = 168

    # === Cache bounds ===
    cache_max_size_mb: float = Field(default=1024, gt=0)
    cache_max_entries: int = Field(default=10000, ge=1)

    # === Analytics (Matomo page-view ping) ===
    matomo_enabled: bool = False
    matomo_host: str = ""
    matomo_site_id: str = ""
    matomo_token_auth: str = ""

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def ttl_map_ms(self) -> dict[str, int]:
        """Return the period -> TTL table in milliseconds."""
        hours = {
            Period.SEVEN_DAY: self.cache_ttl_7day,
            Period.ONE_MONTH: self.cache_ttl_1month,
            Period.THREE_MONTH: self.cache_ttl_3month,
            Period.SIX_MONTH: self.cache_ttl_6month,
            Period.TWELVE_MONTH: self.cache_ttl_12month,
            Period.OVERALL: self.cache_ttl_overall,
        }
        return {period.value: int(h * _HOUR_MS) for period, h in hours.items()}

    @property
    def cache_max_size_bytes(self) -> int:
        return int(self.cache_max_size_mb * _MB)
