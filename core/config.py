"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Gatekeeper happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, code_secret -> CODE_SECRET).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Both secrets follow the same rule: dev mode generates a key
      with a warning, production mode refuses to start without one.

Secrets are read here and nowhere else. The hashers and the token issuer
receive them as constructor arguments (see auth/service.py), so no algorithm
reaches back into process-wide configuration.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, posts/, or mail/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("gatekeeper.config")

_MIN_SECRET_LENGTH = 32


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
    secret_key: str = ""  # session token signing
    code_secret: str = ""  # one-time code keying

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    auth_cookie_name: str = "Authorization"
    token_expire_seconds: int = 8 * 3600
    code_ttl_seconds: int = 5 * 60
    # bcrypt log-rounds. 4 is bcrypt's floor; tests run there for speed.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///gatekeeper.db"
    db_timeout_seconds: float = 5.0
    posts_per_page: int = 10

    # ------------------------------------------------------------------
    # Mail (SMTP)
    # ------------------------------------------------------------------

    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = True
    mail_from: str = "no-reply@gatekeeper.local"
    mail_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the secret policy for SECRET_KEY and CODE_SECRET.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens and outstanding codes will not survive restart.

        Production mode (DEBUG=false or not set): refuse to start if either
            secret is missing.

        Both modes: reject secrets shorter than 32 characters.
        """
        for field_name in ("secret_key", "code_secret"):
            env_name = field_name.upper()
            value = getattr(self, field_name)
            if not value:
                if self.debug:
                    value = secrets.token_hex(32)
                    setattr(self, field_name, value)
                    logger.warning(
                        "WARNING: Using auto-generated %s. Values signed with it will not persist across restarts.",
                        env_name,
                    )
                else:
                    raise ValueError(
                        f"{env_name} is required in production mode. "
                        f"Set {env_name} in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
            if len(value) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{env_name} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.secret_key == self.code_secret:
            raise ValueError("SECRET_KEY and CODE_SECRET must differ.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
