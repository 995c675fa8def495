"""
core/config.py -- Centralized credstore configuration via pydantic-settings.

All environment variable reads happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Type coercion and validation are
      built in.

  @model_validator(mode="after"): Cross-field checks that run once all
      fields are resolved from the environment.

Security notes:
  The bootstrap admin password defaults to the well-known placeholder "abcd".
  It is only ever used when the store is completely empty, and the
  repository logs a warning every time it is applied. Override it with
  BOOTSTRAP_ADMIN_PASSWORD for any non-local deployment.

Layer rule: core/ is the kernel. This module may not import from auth/,
kv/, or main.py.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("credstore.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'credstore_users.db'}"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


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
    # Storage
    # ------------------------------------------------------------------

    # Any SQLAlchemy URL. SQLite by default; PostgreSQL is a URL change.
    database_url: str = _DEFAULT_DB_URL
    users_table: str = "users"

    # ------------------------------------------------------------------
    # First-run bootstrap
    # ------------------------------------------------------------------

    bootstrap_admin_password: str = "abcd"

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject values that would only fail later, at first use.

        An empty bootstrap password would create an admin anyone can log in
        as. An unknown log level would make logging.basicConfig raise deep
        inside CLI startup.
        """
        if not self.bootstrap_admin_password:
            raise ValueError("BOOTSTRAP_ADMIN_PASSWORD must not be empty.")
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}, got {self.log_level!r}.")
        if not self.users_table.isidentifier():
            raise ValueError(f"USERS_TABLE must be a plain identifier, got {self.users_table!r}.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
