"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SellerHub happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_ttl_seconds -> SESSION_TTL_SECONDS).

  Explicit hand-off: only api/main.py (lifespan) and main.py (CLI) call
      get_settings(). They pass the individual values (TTL, iteration count,
      marketplace URL, ...) into the stores and services they construct, so no
      component reads process-wide config on its own.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or sellers/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sellerhub.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent.parent / 'sellerhub.db'}"

# PBKDF2 floor. Lowering it weakens every hash written afterwards.
MIN_HASH_ITERATIONS = 100_000


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

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
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    session_ttl_seconds: int = 7 * 24 * 60 * 60
    session_cookie_name: str = "session_id"
    # Set SECURE_COOKIES=true in production (HTTPS only).
    secure_cookies: bool = False
    session_sweep_interval_seconds: int = 6 * 60 * 60
    password_hash_iterations: int = MIN_HASH_ITERATIONS

    # ------------------------------------------------------------------
    # Mercado Libre
    # ------------------------------------------------------------------

    marketplace_api_url: str = "https://api.mercadolibre.com"
    marketplace_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Refuse to start with a weak hash cost or a nonsensical session window."""
        if self.password_hash_iterations < MIN_HASH_ITERATIONS:
            raise ValueError(f"PASSWORD_HASH_ITERATIONS must be at least {MIN_HASH_ITERATIONS}.")
        if self.session_ttl_seconds <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive.")
        if self.session_sweep_interval_seconds <= 0:
            raise ValueError("SESSION_SWEEP_INTERVAL_SECONDS must be positive.")
        if self.debug and self.secure_cookies:
            logger.warning("SECURE_COOKIES=true in debug mode -- cookies will not be sent over plain HTTP.")
        return self

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level.upper()


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
