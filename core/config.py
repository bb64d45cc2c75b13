"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the assignment tracker happen here. No
module should call os.getenv() or os.environ.get() directly -- import
get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. db_host -> DB_HOST). The session secret also answers to
      AUTH0_SECRET so existing Auth0 .env files keep working.

  @model_validator(mode="after"): Dev mode generates a secret with a warning,
      production mode refuses to start without one.

Security notes:
  A secret shorter than 32 chars is rejected outright. The session cookie
  signature relies on key entropy.

  In production mode (DEBUG not set or false), a missing secret is a hard
  startup failure. A random per-process key would log every user out on
  restart and break multi-worker deployments.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or tracker/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

logger = logging.getLogger("assignment_tracker.config")

DEFAULT_SQLITE_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'assignment_tracker.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = Field(default="", validation_alias=AliasChoices("SECRET_KEY", "AUTH0_SECRET"))

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "0.0.0.0"  # noqa: S104 -- container bind address
    port: int = 3000
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Session / OIDC (Auth0 or any discovery-capable provider)
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_max_age: int = 86400

    auth0_base_url: str = "http://localhost:3000"
    auth0_client_id: str = ""
    auth0_client_secret: str = ""
    auth0_issuer_base_url: str = ""
    # Also end the identity provider session on /logout.
    auth0_logout: bool = True

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = ""
    db_host: str = ""
    db_port: int = 3306
    db_user: str = ""
    db_password: str = ""
    db_database: str = ""
    db_connection_limit: int = 10
    db_pool_recycle: int = 3600

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the session secret policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if the
            secret is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY (or AUTH0_SECRET) is required in production mode. "
                    "Set it in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def oidc_enabled(self) -> bool:
        return bool(self.auth0_client_id and self.auth0_issuer_base_url)

    def resolved_database_url(self) -> str:
        """Return the SQLAlchemy URL the app should connect to.

        Precedence: DATABASE_URL, then a MySQL URL assembled from the DB_*
        parts (DB_HOST set), then a local SQLite file next to the project.
        URL.create() escapes credentials, so passwords with '@' or '/' are safe.
        """
        if self.database_url:
            return self.database_url
        if self.db_host:
            url = URL.create(
                "mysql+pymysql",
                username=self.db_user or None,
                password=self.db_password or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_database or None,
            )
            return url.render_as_string(hide_password=False)
        return DEFAULT_SQLITE_URL


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: construct Settings(_env_file=None) directly to check other
    environments. The app has already signed cookies with the cached secret.
    """
    return Settings()
