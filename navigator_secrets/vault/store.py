"""
VaultStore — Durable per-identity envelope storage on PostgreSQL.

One row per caller identity:
    id text primary key, encrypted_secret text null, updated_at timestamptz

Writes are a single ``INSERT ... ON CONFLICT DO UPDATE`` statement so that
concurrent writers for the same identity never race through a
read-modify-write; the last writer wins.

Security Note:
    Never log envelope values. Only log identity ids and operations.
"""
import asyncio
import logging
from typing import Any, Optional

import asyncpg

from ..exceptions import StoreUnavailable
from .config import DEFAULT_TABLE
from .crypto import SecretEnvelope

logger = logging.getLogger("navigator.vault")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id text PRIMARY KEY,
    encrypted_secret text NULL,
    updated_at timestamptz NOT NULL DEFAULT NOW()
)
"""

_UPSERT_SECRET = """
INSERT INTO {table} (id, encrypted_secret, updated_at)
VALUES ($1, $2, NOW())
ON CONFLICT (id)
DO UPDATE SET encrypted_secret = EXCLUDED.encrypted_secret,
              updated_at = NOW()
"""

_SELECT_SECRET = """
SELECT encrypted_secret
FROM {table}
WHERE id = $1
"""

_STORE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


def _identity_id(identity: Any) -> str:
    """Accept a CallerIdentity or a bare id string."""
    return str(getattr(identity, "id", identity))


class VaultStore:
    """Maps a caller identity to at most one stored SecretEnvelope."""

    def __init__(
        self,
        db_pool: Any,
        table_name: str = DEFAULT_TABLE,
        timeout: Optional[float] = 10.0,
    ):
        self._db = db_pool
        self._table = table_name
        self._timeout = timeout
        self._upsert = _UPSERT_SECRET.format(table=table_name)
        self._select = _SELECT_SECRET.format(table=table_name)

    @property
    def table_name(self) -> str:
        return self._table

    async def ensure_schema(self) -> None:
        """Create the vault table if it does not exist."""
        try:
            async with self._db.acquire() as conn:
                await conn.execute(
                    _CREATE_TABLE.format(table=self._table), timeout=self._timeout,
                )
        except _STORE_ERRORS as err:
            logger.error("Vault schema setup failed on %s: %s", self._table, err)
            raise StoreUnavailable("Vault store is unavailable") from err
        logger.info("Vault table %s is ready", self._table)

    async def get(self, identity: Any) -> Optional[SecretEnvelope]:
        """Return the stored envelope, or None when no secret is stored.

        Raises:
            StoreUnavailable: On store I/O failure or timeout.
            DecryptionFailure: If the stored value is not a valid envelope.
        """
        user_id = _identity_id(identity)
        try:
            async with self._db.acquire() as conn:
                value = await conn.fetchval(
                    self._select, user_id, timeout=self._timeout,
                )
        except _STORE_ERRORS as err:
            logger.error("Vault get failed: user=%s: %s", user_id, err)
            raise StoreUnavailable("Vault store is unavailable") from err
        if value is None:
            return None
        return SecretEnvelope.deserialize(value)

    async def put(self, identity: Any, envelope: Optional[SecretEnvelope]) -> None:
        """Upsert the envelope for ``identity``; None clears the secret.

        Raises:
            StoreUnavailable: On store I/O failure or timeout.
        """
        user_id = _identity_id(identity)
        value = envelope.serialize() if envelope is not None else None
        try:
            async with self._db.acquire() as conn:
                await conn.execute(
                    self._upsert, user_id, value, timeout=self._timeout,
                )
        except _STORE_ERRORS as err:
            logger.error("Vault put failed: user=%s: %s", user_id, err)
            raise StoreUnavailable("Vault store is unavailable") from err
        logger.debug(
            "Vault %s: user=%s", "set" if envelope is not None else "clear", user_id,
        )
