"""
Vault Configuration — Key loading and validated settings.

Reads the process configuration from environment variables:
    ENCRYPTION_KEY = <base64-encoded 32-byte key | raw 32-byte string>
    SUPABASE_URL = <auth service base url>
    SUPABASE_ANON_KEY = <auth service api key>
    DATABASE_URL = <postgres dsn>

Security Note:
    Never log key material. Only log whether a key was loaded.
"""
import os
import re
import logging
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import ConfigurationError
from .crypto import SymmetricKey

logger = logging.getLogger("navigator.vault")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

DEFAULT_TABLE = "user_secrets"


def load_encryption_key(env_var: str = "ENCRYPTION_KEY") -> SymmetricKey:
    """Load the process-wide symmetric key from the environment.

    Returns:
        SymmetricKey built from the configured value.

    Raises:
        ConfigurationError: If the variable is unset or holds invalid material.
    """
    value = os.environ.get(env_var)
    if not value:
        raise ConfigurationError(
            f"{env_var} environment variable is not set. "
            f"Set {env_var}=<base64-encoded-32-byte-key>"
        )
    key = SymmetricKey.from_config_value(value)
    logger.debug("Loaded encryption key from %s", env_var)
    return key


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    encryption_key: SymmetricKey
    auth_url: str
    auth_api_key: str = Field(default="")
    database_dsn: Optional[str] = Field(default=None)
    table_name: str = Field(default=DEFAULT_TABLE)
    auth_timeout: float = Field(default=10.0, gt=0)
    db_timeout: float = Field(default=10.0, gt=0)
    cors_origin: str = Field(default="*")

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @field_validator("auth_url")
    @classmethod
    def validate_auth_url(cls, v: str) -> str:
        """Auth service URL must be absolute http(s)."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"auth_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Table name is interpolated into SQL, so it must be a plain identifier."""
        if not _IDENTIFIER.match(v):
            raise ValueError(f"Invalid table name: {v!r}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Raises:
            ConfigurationError: On missing key material or invalid settings.
        """
        encryption_key = load_encryption_key()
        auth_url = os.environ.get("SUPABASE_URL")
        if not auth_url:
            raise ConfigurationError(
                "SUPABASE_URL environment variable is not set"
            )
        values = {
            "encryption_key": encryption_key,
            "auth_url": auth_url,
            "auth_api_key": os.environ.get("SUPABASE_ANON_KEY", ""),
            "database_dsn": os.environ.get("DATABASE_URL"),
            "table_name": os.environ.get("VAULT_TABLE", DEFAULT_TABLE),
            "cors_origin": os.environ.get("VAULT_CORS_ORIGIN", "*"),
        }
        for env, field in (
            ("VAULT_AUTH_TIMEOUT", "auth_timeout"),
            ("VAULT_DB_TIMEOUT", "db_timeout"),
        ):
            if env in os.environ:
                values[field] = os.environ[env]
        try:
            return cls(**values)
        except ValidationError as err:
            raise ConfigurationError(f"Invalid vault configuration: {err}") from err
