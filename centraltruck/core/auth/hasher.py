"""
PBKDF2 Password Hashing
=======================

Salted, deliberately slow password digests for identity records.

Parameters:
- PBKDF2-HMAC-SHA256
- 100,000 iterations
- 256-bit output, hex encoded
- 16-byte random salt, hex encoded

The defaults match the records already in the remote store; changing
them makes every existing hash unverifiable.
"""

from __future__ import annotations

import hmac
import secrets
from typing import Final

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from centraltruck.core.auth.errors import CryptoUnavailable


PBKDF2_ITERATIONS: Final[int] = 100_000
HASH_LENGTH: Final[int] = 32  # 256 bits
SALT_LENGTH: Final[int] = 16  # 128 bits


def _salt_to_bytes(salt: str) -> bytes:
    """
    Decode a hex salt two characters at a time.

    A trailing single character is its own byte (``"abc"`` gives
    ``ab 0c``), matching how existing records were hashed.
    """
    if len(salt) % 2:
        salt = salt[:-1] + "0" + salt[-1]
    return bytes.fromhex(salt)


class CredentialHasher:
    """
    PBKDF2-HMAC-SHA256 hasher with hex-encoded salts and digests.

    Usage:
        hasher = CredentialHasher()

        salt = hasher.generate_salt()
        stored_hash = hasher.hash("senha123", salt)

        hasher.verify("senha123", salt, stored_hash)  # True

    Raises CryptoUnavailable when the backend cannot provide PBKDF2 or
    SHA-256; callers must not read that as a wrong password.
    """

    __slots__ = ("_iterations", "_hash_length", "_salt_length")

    def __init__(
        self,
        iterations: int = PBKDF2_ITERATIONS,
        hash_length: int = HASH_LENGTH,
        salt_length: int = SALT_LENGTH,
    ) -> None:
        """
        Args:
            iterations: PBKDF2 iteration count (default: 100,000)
            hash_length: Digest length in bytes (default: 32)
            salt_length: Salt length in bytes (default: 16)
        """
        if iterations < 1_000:
            raise ValueError("iterations must be at least 1,000")
        if hash_length < 16:
            raise ValueError("hash_length must be at least 16 bytes")
        if salt_length < 8:
            raise ValueError("salt_length must be at least 8 bytes")

        self._iterations = iterations
        self._hash_length = hash_length
        self._salt_length = salt_length

    @property
    def parameters(self) -> dict[str, int]:
        return {
            "iterations": self._iterations,
            "hash_length": self._hash_length,
            "salt_length": self._salt_length,
        }

    def generate_salt(self) -> str:
        """Return a fresh random salt as a hex string."""
        return secrets.token_hex(self._salt_length)

    def hash(self, password: str, salt: str) -> str:
        """
        Derive the hex digest of ``password`` under ``salt``.

        Args:
            password: Plaintext password
            salt: Hex-encoded salt

        Returns:
            Hex-encoded digest

        Raises:
            ValueError: If the salt is not valid hex
            CryptoUnavailable: If PBKDF2/SHA-256 is not available
        """
        salt_bytes = _salt_to_bytes(salt)

        try:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=self._hash_length,
                salt=salt_bytes,
                iterations=self._iterations,
            )
            return kdf.derive(password.encode("utf-8")).hex()
        except UnsupportedAlgorithm as e:
            raise CryptoUnavailable(f"PBKDF2-HMAC-SHA256 unavailable: {e}") from e

    def verify(self, password: str, salt: str, expected_hash: str) -> bool:
        """
        Check ``password`` against a stored salt and digest.

        Returns False for empty inputs or a malformed salt.
        """
        if not password or not salt or not expected_hash:
            return False

        try:
            computed = self.hash(password, salt)
        except ValueError:
            return False

        return hmac.compare_digest(computed.encode("ascii"), expected_hash.encode("utf-8"))
