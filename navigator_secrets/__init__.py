"""Navigator Secrets.

Per-user encrypted secret vault served over aiohttp.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    Unauthenticated,
    ConfigurationError,
    DecryptionFailure,
    StoreUnavailable,
    BadRequest,
)
from .vault import (
    SymmetricKey,
    SecretEnvelope,
    EnvelopeCipher,
    VaultConfig,
    CallerIdentity,
    IdentityResolver,
    VaultStore,
    SecretVault,
)
from .app import create_app

__all__ = [
    "__version__",
    "VaultError",
    "Unauthenticated",
    "ConfigurationError",
    "DecryptionFailure",
    "StoreUnavailable",
    "BadRequest",
    "SymmetricKey",
    "SecretEnvelope",
    "EnvelopeCipher",
    "VaultConfig",
    "CallerIdentity",
    "IdentityResolver",
    "VaultStore",
    "SecretVault",
    "create_app",
]
