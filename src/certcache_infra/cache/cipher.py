"""AES-CFB payload encryption with a passphrase-derived key."""

from __future__ import annotations

import hashlib
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

try:
    from cryptography.hazmat.decrepit.ciphers.modes import CFB
except ImportError:  # cryptography < 46 keeps CFB with the other modes
    from cryptography.hazmat.primitives.ciphers.modes import CFB

from certcache_core.constants import (
    CIPHER_BLOCK_SIZE,
    KDF_ITERATIONS,
    KDF_KEY_LENGTH,
    KDF_PASSWORD_SLICE,
    KDF_SALT_SLICE,
)
from certcache_core.exceptions import CryptoError


def derive_key(passphrase: str) -> bytes:
    """Derive the 32-byte cache key from a passphrase.

    The salt comes from the passphrase digest rather than from random bytes,
    so the same passphrase yields the same key across restarts and nothing
    besides the passphrase has to be stored.
    """
    digest = hashlib.sha256(passphrase.encode("utf-8")).digest()
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KDF_KEY_LENGTH,
        salt=digest[KDF_SALT_SLICE],
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(digest[KDF_PASSWORD_SLICE])


class PayloadCipher:
    """Encrypts payloads as ``iv || AES-CFB(plaintext)``.

    There is no authentication tag: a corrupted payload of valid length
    decrypts to garbage. Adding one would change the stored format.
    """

    def __init__(self, key: bytes) -> None:
        """Initialize with a raw AES key (16, 24 or 32 bytes)."""
        try:
            self._algorithm = algorithms.AES(key)
        except ValueError as exc:
            raise CryptoError(f"invalid encryption key: {exc}") from exc

    @classmethod
    def from_passphrase(cls, passphrase: str) -> PayloadCipher:
        """Build a cipher keyed by ``derive_key(passphrase)``."""
        return cls(derive_key(passphrase))

    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt plaintext under a fresh random IV."""
        iv = os.urandom(CIPHER_BLOCK_SIZE)
        encryptor = Cipher(self._algorithm, CFB(iv)).encryptor()
        return iv + encryptor.update(plaintext) + encryptor.finalize()

    def decrypt(self, payload: bytes) -> bytes:
        """Split off the IV and decrypt the remainder."""
        if len(payload) < CIPHER_BLOCK_SIZE:
            raise CryptoError("ciphertext is too short, probably corrupted data")
        iv, ciphertext = payload[:CIPHER_BLOCK_SIZE], payload[CIPHER_BLOCK_SIZE:]
        decryptor = Cipher(self._algorithm, CFB(iv)).decryptor()
        return decryptor.update(ciphertext) + decryptor.finalize()
