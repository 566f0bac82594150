"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for VeriKey happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode generates missing secrets with a
      warning, production mode refuses to start without them.

Secrets consumed by the auth layer:
  SECRET_KEY                -- JWT signing secret (>= 32 chars).
  BIOMETRIC_ENCRYPTION_KEY  -- AES key material. Any length; normalised to
                               exactly 32 bytes by auth.biometric.derive_key().
  BIOMETRIC_HMAC_SECRET     -- HMAC key for biometric fingerprints (>= 32 chars).

All three are fixed for the process lifetime. Changing BIOMETRIC_ENCRYPTION_KEY
or BIOMETRIC_HMAC_SECRET orphans every enrolled biometric key.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("verikey.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'verikey_auth.db'}"

# Secrets that must be at least 32 characters. The encryption key is exempt
# because it is padded/truncated to the AES key size deterministically.
_MIN_LENGTH_SECRETS = ("secret_key", "biometric_hmac_secret")
_REQUIRED_SECRETS = ("secret_key", "biometric_encryption_key", "biometric_hmac_secret")


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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Secrets -- empty string is the "not configured" sentinel
    # ------------------------------------------------------------------

    secret_key: str = ""
    biometric_encryption_key: str = ""
    biometric_hmac_secret: str = ""

    # ------------------------------------------------------------------
    # Auth tuning
    # ------------------------------------------------------------------

    token_expire_seconds: int = Field(default=3600, gt=0)
    # bcrypt accepts log2 cost factors 4..31. 12 is the library default.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the secret policy for every auth secret.

        Dev mode (DEBUG=true): auto-generate a random value with a warning.
            Sessions and enrolled biometric keys will not survive restart.

        Production mode (DEBUG=false or not set): refuse to start if any
            secret is missing.

        Both modes: reject signing/HMAC keys shorter than 32 characters.
        """
        for name in _REQUIRED_SECRETS:
            if getattr(self, name):
                continue
            if not self.debug:
                raise ValueError(
                    f"{name.upper()} is required in production mode. "
                    f"Set {name.upper()} in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            setattr(self, name, secrets.token_hex(32))
            logger.warning("Using auto-generated %s. Data bound to it will not persist across restarts.", name.upper())
        for name in _MIN_LENGTH_SECRETS:
            if len(getattr(self, name)) < 32:
                raise ValueError(f"{name.upper()} must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
