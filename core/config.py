"""
core/config.py -- Centralized simulation configuration via pydantic-settings.

All environment variable reads for the simulation happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. patch_delay_seconds -> PATCH_DELAY_SECONDS). List fields are read
      as JSON (e.g. ALLOWED_HOSTS='["localhost", "testserver"]').

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Timing values and the event log cap must
      be positive; the opponent cooldown in particular is an invariant of the
      opponent state and a zero value would let it act on every read.

Layer rule: core/ is the kernel. This module may not import from api/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("cyberwar.config")


class Settings(BaseSettings):
    """Simulation settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Simulation timing
    # ------------------------------------------------------------------

    # Real-time delay before a PATCH settles back to online.
    patch_delay_seconds: float = 10.0
    # Minimum gap between two autonomous opponent moves.
    opponent_cooldown_ms: int = 5000
    # How often the background ticker asks the opponent whether to move.
    opponent_tick_seconds: float = 1.0
    # Pacing between commands when a stored script is replayed.
    script_step_delay_seconds: float = 0.8

    # ------------------------------------------------------------------
    # Event log and probe
    # ------------------------------------------------------------------

    event_log_limit: int = 100
    probe_timeout_seconds: float = 0.5

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = [
        "http://localhost",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    scan_rate_limit: str = "20/minute"
    action_rate_limit: str = "120/minute"

    @property
    def log_level(self) -> int:
        """Root log level for the API server: DEBUG when debug is on."""
        return logging.DEBUG if self.debug else logging.INFO

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_timings(self) -> "Settings":
        """Reject non-positive timing values and log caps.

        A zero cooldown would let the opponent act on every state read, and a
        zero log cap would make every appended event vanish immediately.
        """
        if self.opponent_cooldown_ms <= 0:
            raise ValueError("OPPONENT_COOLDOWN_MS must be greater than zero.")
        if self.event_log_limit <= 0:
            raise ValueError("EVENT_LOG_LIMIT must be greater than zero.")
        for name in ("patch_delay_seconds", "opponent_tick_seconds", "probe_timeout_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be greater than zero.")
        if self.script_step_delay_seconds < 0:
            raise ValueError("SCRIPT_STEP_DELAY_SECONDS must not be negative.")
        if self.debug:
            logger.warning("Running in DEBUG mode.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
