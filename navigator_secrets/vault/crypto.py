"""
Vault Crypto Core — Symmetric key, envelope encryption and serialization.

Single-key envelope scheme for per-user secrets:
    AES-256-GCM(key, nonce) → [nonce 12B][encrypted_payload + GCM_tag 16B]
    serialized as base64 for storage in a text column.

Security Note:
    Never log plaintext, envelopes or key material.
    Nonces are random 96-bit and generated on every encryption; a nonce is
    never reused under the same key.
"""
import os
import base64
import binascii
import logging
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel

from ..exceptions import ConfigurationError, DecryptionFailure

logger = logging.getLogger("navigator.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag
KEY_LENGTH = 32  # AES-256


# ---------------------------------------------------------------------------
# Symmetric key
# ---------------------------------------------------------------------------

class SymmetricKey:
    """Immutable 256-bit key held for the process lifetime.

    Key material is only reachable through ``material``; ``repr`` and
    ``str`` never expose it.
    """

    __slots__ = ("_material",)

    def __init__(self, material: bytes):
        if not isinstance(material, (bytes, bytearray)):
            raise ConfigurationError("Encryption key must be bytes")
        if len(material) != KEY_LENGTH:
            raise ConfigurationError(
                f"Encryption key must be exactly {KEY_LENGTH} bytes, "
                f"got {len(material)}"
            )
        object.__setattr__(self, "_material", bytes(material))

    def __setattr__(self, key, value):
        raise AttributeError("SymmetricKey is immutable")

    @property
    def material(self) -> bytes:
        return self._material

    def __repr__(self) -> str:
        return "<SymmetricKey AES-256 ****>"

    __str__ = __repr__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SymmetricKey):
            return NotImplemented
        return self._material == other._material

    def __hash__(self) -> int:
        return hash(self._material)

    @classmethod
    def from_config_value(cls, value: str) -> "SymmetricKey":
        """Import raw key material from a configured secret value.

        Accepts either the base64 encoding of exactly 32 bytes, or a
        32-byte UTF-8 string used verbatim as the key bytes.

        Raises:
            ConfigurationError: If the value is empty or is neither form.
        """
        if not value:
            raise ConfigurationError("Encryption key is not configured")
        try:
            decoded = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            decoded = b""
        if len(decoded) == KEY_LENGTH:
            return cls(decoded)
        raw = value.encode("utf-8")
        if len(raw) == KEY_LENGTH:
            return cls(raw)
        raise ConfigurationError(
            f"Encryption key must be base64 of {KEY_LENGTH} bytes "
            f"or a raw {KEY_LENGTH}-byte string"
        )


def generate_encryption_key() -> str:
    """Generate a random 32-byte key and return it as a base64 string.

    This is a utility for operators provisioning ``ENCRYPTION_KEY``.
    """
    return base64.b64encode(os.urandom(KEY_LENGTH)).decode("ascii")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

class SecretEnvelope(BaseModel):
    """Self-contained encrypted secret: random IV plus ciphertext and tag."""

    iv: bytes
    ciphertext_and_tag: bytes

    model_config = {"frozen": True}

    def __bytes__(self) -> bytes:
        return self.iv + self.ciphertext_and_tag

    def serialize(self) -> str:
        """Return ``base64(iv || ciphertext_and_tag)``."""
        return base64.b64encode(bytes(self)).decode("ascii")

    @classmethod
    def from_bytes(cls, data: bytes) -> "SecretEnvelope":
        """Split raw envelope bytes into IV and ciphertext+tag.

        Raises:
            DecryptionFailure: If data cannot hold a nonce and a tag.
        """
        _min = NONCE_SIZE + TAG_SIZE
        if len(data) < _min:
            raise DecryptionFailure(
                f"Envelope too short: {len(data)} bytes (minimum {_min})"
            )
        return cls(iv=data[:NONCE_SIZE], ciphertext_and_tag=data[NONCE_SIZE:])

    @classmethod
    def deserialize(cls, value: str) -> "SecretEnvelope":
        """Parse the base64 serialized form.

        Raises:
            DecryptionFailure: If the value is not valid base64 or too short.
        """
        try:
            data = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as err:
            raise DecryptionFailure("Envelope is not valid base64") from err
        return cls.from_bytes(data)

    def __repr__(self) -> str:
        return f"<SecretEnvelope iv_len={len(self.iv)} ct_len={len(self.ciphertext_and_tag)}>"


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def _seal(aead: AESGCM, plaintext: bytes) -> SecretEnvelope:
    """AEAD-encrypt under a fresh random nonce."""
    nonce = os.urandom(NONCE_SIZE)
    ct = aead.encrypt(nonce, plaintext, None)
    return SecretEnvelope(iv=nonce, ciphertext_and_tag=ct)


def _open(aead: AESGCM, envelope: SecretEnvelope) -> bytes:
    """Check the envelope layout, then authenticate and decrypt it."""
    if len(envelope.iv) != NONCE_SIZE or len(envelope.ciphertext_and_tag) < TAG_SIZE:
        raise DecryptionFailure("Envelope has an invalid layout")
    try:
        return aead.decrypt(envelope.iv, envelope.ciphertext_and_tag, None)
    except InvalidTag as err:
        raise DecryptionFailure(
            "Envelope failed authentication (tampered data or wrong key)"
        ) from err


def encrypt(plaintext: bytes, key: SymmetricKey) -> SecretEnvelope:
    """Encrypt plaintext under ``key`` with a freshly generated nonce.

    Args:
        plaintext: Data to encrypt.
        key: Process-wide symmetric key.

    Returns:
        SecretEnvelope with a new random IV.
    """
    return _seal(AESGCM(key.material), plaintext)


def decrypt(envelope: Union[SecretEnvelope, str], key: SymmetricKey) -> bytes:
    """Authenticate and decrypt an envelope.

    Args:
        envelope: SecretEnvelope or its serialized base64 form.
        key: Process-wide symmetric key.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        DecryptionFailure: Tag mismatch (tampered data, wrong key) or a
            malformed envelope.
    """
    if isinstance(envelope, str):
        envelope = SecretEnvelope.deserialize(envelope)
    return _open(AESGCM(key.material), envelope)


class EnvelopeCipher:
    """Envelope encryption bound to one injected symmetric key.

    The AESGCM context is built once; instances are safe to share across
    concurrent requests since nothing is mutated after construction.
    """

    def __init__(self, key: SymmetricKey):
        self._key = key
        self._aead = AESGCM(key.material)

    def __repr__(self) -> str:
        return f"<EnvelopeCipher key={self._key!r}>"

    def encrypt(self, plaintext: bytes) -> SecretEnvelope:
        return _seal(self._aead, plaintext)

    def decrypt(self, envelope: SecretEnvelope) -> bytes:
        return _open(self._aead, envelope)

    def encrypt_text(self, plaintext: str) -> str:
        """Encrypt a UTF-8 string and return the serialized envelope."""
        return self.encrypt(plaintext.encode("utf-8")).serialize()

    def decrypt_text(self, serialized: str) -> str:
        """Decrypt a serialized envelope back to a UTF-8 string."""
        data = self.decrypt(SecretEnvelope.deserialize(serialized))
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecryptionFailure("Decrypted secret is not valid UTF-8") from err
