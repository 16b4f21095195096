"""
core/config.py -- Gatekeeper settings, read once from the environment.

Every tunable lives on Settings: the signing key, the store location, session
lifetime and cookie name, the elevated account name, the two seed accounts,
and the host/origin allow-lists. Other modules call get_settings() and never
read os.environ themselves.

get_settings() is lru_cache'd, so the environment is parsed on first use.
Env var names are the upper-cased field names (SECRET_KEY, DATABASE_URL,
TOKEN_EXPIRE_SECONDS, ADMIN_USERNAME, ...); a .env file is honoured too.

SECRET_KEY policy (enforced by validate_secret_key):
  DEBUG=true and no key   -> a random key is generated and a warning logged.
  DEBUG unset and no key  -> startup fails.
  key under 32 characters -> startup fails in either mode. Session tokens are
                             HS256 JWTs; a short key makes them forgeable.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("gatekeeper.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'gatekeeper.db'}"


class Settings(BaseSettings):
    """Gatekeeper configuration. Every field has a default except SECRET_KEY outside DEBUG."""

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
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # 30 days.
    token_expire_seconds: int = 2592000
    token_name: str = "access_token"
    secure_cookies: bool = False
    # How often the API deletes revoked and expired session rows. 6 hours.
    session_purge_interval_seconds: int = 21600

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    # The single elevated account. Its username maps to the admin role.
    admin_username: str = "admin"

    seed_default_accounts: bool = True
    admin_password: str = "123456"
    admin_email: str = "admin@example.com"
    admin_phone: str = "13800138000"
    demo_username: str = "test"
    demo_password: str = "123456"
    demo_email: str = "test@example.com"
    demo_phone: str = "13800138001"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # JSON-encoded in the environment, e.g. ALLOWED_HOSTS='["api.example.com"]'
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Fill in or reject SECRET_KEY. See the module docstring for the policy.

        A generated dev key lives only as long as the process, so every token
        issued before a restart stops verifying afterwards.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("No SECRET_KEY set; generated a throwaway key. Sessions end on restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is not set. Provide it via the environment or .env, "
                    "or set DEBUG=true to run with a generated development key."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY is too short: at least 32 characters are required.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings.

    Tests that change the environment must call get_settings.cache_clear().
    """
    return Settings()
