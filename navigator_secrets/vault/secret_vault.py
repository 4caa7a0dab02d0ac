"""
SecretVault — Identity-gated store/retrieve of one secret per caller.

Provides the transport-independent core used by the request handlers:
- ``authenticate(credential)``: resolve the caller identity
- ``set_secret(identity, secret)``: encrypt and upsert, or clear
- ``get_secret(identity)``: look up and decrypt

Security Note:
    Never log plaintext or envelope values. Only log identity ids and
    operations.
"""
import logging
from typing import Optional

from ..exceptions import DecryptionFailure
from .crypto import EnvelopeCipher
from .identity import CallerIdentity, IdentityResolver
from .store import VaultStore

logger = logging.getLogger("navigator.vault")


class SecretVault:
    """Per-user encrypted secret vault.

    Write path: resolve identity → encrypt → upsert.
    Read path: resolve identity → lookup → decrypt.
    """

    def __init__(
        self,
        resolver: IdentityResolver,
        store: VaultStore,
        cipher: EnvelopeCipher,
    ):
        self._resolver = resolver
        self._store = store
        self._cipher = cipher

    @staticmethod
    def normalize(secret: Optional[str]) -> Optional[str]:
        """Trim whitespace; absent or blank means "clear the secret"."""
        if secret is None:
            return None
        secret = secret.strip()
        return secret or None

    async def authenticate(self, credential: Optional[str]) -> CallerIdentity:
        """Resolve the raw ``Authorization`` value; re-resolved on every call."""
        return await self._resolver.resolve(credential)

    async def set_secret(self, identity: CallerIdentity, secret: Optional[str]) -> bool:
        """Encrypt and persist the caller's secret.

        Args:
            identity: Resolved caller identity.
            secret: Plaintext secret; None or blank clears the stored secret.

        Returns:
            True if the secret was cleared, False if it was saved.

        Raises:
            StoreUnavailable: Store I/O failure.
        """
        plaintext = self.normalize(secret)
        if plaintext is None:
            await self._store.put(identity, None)
            logger.info("Vault secret cleared: user=%s", identity.id)
            return True
        envelope = self._cipher.encrypt(plaintext.encode("utf-8"))
        await self._store.put(identity, envelope)
        logger.info("Vault secret saved: user=%s", identity.id)
        return False

    async def get_secret(self, identity: CallerIdentity) -> Optional[str]:
        """Return the caller's decrypted secret, or None if none is stored.

        Raises:
            StoreUnavailable: Store I/O failure.
            DecryptionFailure: A secret is stored but cannot be decrypted.
        """
        try:
            envelope = await self._store.get(identity)
            if envelope is None:
                logger.debug("Vault get: no secret for user=%s", identity.id)
                return None
            data = self._cipher.decrypt(envelope)
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            logger.warning(
                "Vault secret is not valid UTF-8: user=%s", identity.id,
            )
            raise DecryptionFailure("Stored secret could not be decoded") from err
        except DecryptionFailure:
            logger.warning(
                "Vault secret failed decryption (corruption or key mismatch): user=%s",
                identity.id,
            )
            raise
