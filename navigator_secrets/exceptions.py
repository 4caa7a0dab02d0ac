"""
Vault exception hierarchy.

Every error carries the HTTP status and a short machine-readable ``code``
used by the request handlers to render a JSON error body.

Security Note:
    Messages must never include plaintext secrets, tokens or key material.
"""


class VaultError(Exception):
    """Base exception for vault operations."""

    status_code: int = 500
    code: str = "vault_error"

    @property
    def message(self) -> str:
        return str(self)


class Unauthenticated(VaultError):
    """Credential missing, malformed or rejected by the auth service."""

    status_code = 401
    code = "unauthenticated"


class ConfigurationError(VaultError):
    """Required process configuration (e.g. key material) is missing or invalid."""

    status_code = 500
    code = "configuration_error"


class DecryptionFailure(VaultError):
    """Stored envelope is present but fails authenticated decryption."""

    status_code = 500
    code = "decryption_failure"


class StoreUnavailable(VaultError):
    """Durable record store I/O failure or timeout."""

    status_code = 503
    code = "store_unavailable"


class BadRequest(VaultError):
    """Malformed request payload."""

    status_code = 400
    code = "bad_request"
