"""Secret Vault — Per-user encrypted secret storage.

Security Note (Threat Model):
    Secrets are decrypted in process memory only while a request is being
    served. The symmetric key lives in process memory for the service
    lifetime; a memory dump of the process could expose it. This is an
    accepted limitation; mitigation requires HSM/secure enclave
    integration which is out of scope.
"""

from .crypto import (
    SymmetricKey,
    SecretEnvelope,
    EnvelopeCipher,
    encrypt,
    decrypt,
    generate_encryption_key,
)
from .config import VaultConfig, load_encryption_key
from .identity import CallerIdentity, IdentityResolver
from .store import VaultStore
from .secret_vault import SecretVault

__all__ = [
    "SymmetricKey",
    "SecretEnvelope",
    "EnvelopeCipher",
    "encrypt",
    "decrypt",
    "generate_encryption_key",
    "VaultConfig",
    "load_encryption_key",
    "CallerIdentity",
    "IdentityResolver",
    "VaultStore",
    "SecretVault",
]
