# Keystore - Encryption Service
#
# Password → encryption key (PBKDF2-HMAC-SHA256, NFC-normalized password)
# Secret encryption (AES-256-GCM, no associated data)
# Random salt/nonce source (injectable for tests)

import os
import unicodedata
from typing import Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import AuthenticationFailure, InvalidConfiguration

KEY_LENGTH = 32     # 256 bits for AES-256
SALT_LENGTH = 16    # 128-bit salt
NONCE_LENGTH = 12   # 96-bit nonce for GCM
TAG_LENGTH = 16     # GCM authentication tag

DEFAULT_DERIVATION_ROUNDS = 100_000
MAX_DERIVATION_ROUNDS = 2**32 - 1


class RandomSource(Protocol):
    """Anything that can hand out ``n`` random bytes."""

    def token_bytes(self, n: int) -> bytes:
        ...


class SystemRandomSource:
    """Cryptographically secure randomness from the operating system."""

    def token_bytes(self, n: int) -> bytes:
        return os.urandom(n)


def validate_rounds(rounds: int) -> int:
    """Reject round counts PBKDF2 cannot use.

    Raises:
        InvalidConfiguration: rounds is not an int in [1, 2**32 - 1]
    """
    if isinstance(rounds, bool) or not isinstance(rounds, int):
        raise InvalidConfiguration(
            f"Derivation rounds must be an integer, got {rounds!r}"
        )
    if rounds < 1 or rounds > MAX_DERIVATION_ROUNDS:
        raise InvalidConfiguration(
            f"Derivation rounds must be between 1 and {MAX_DERIVATION_ROUNDS}, got {rounds}"
        )
    return rounds


class EncryptionService:
    """
    Key derivation and authenticated encryption for keystore entries.

    Flow:
    1. Password is normalized to NFC so equivalent spellings match
    2. PBKDF2-SHA256 derives a 256-bit key from password + salt + rounds
    3. AES-256-GCM encrypts/decrypts the secret bytes
    4. Every write gets its own salt and nonce
    """

    @staticmethod
    def derive_key(password: str, salt: bytes, rounds: int) -> bytes:
        """
        Derive encryption key from password using PBKDF2.

        Args:
            password: User's password (any Unicode normalization form)
            salt: 16-byte random salt stored in the entry
            rounds: PBKDF2 iteration count, not stored anywhere

        Returns:
            256-bit encryption key

        Raises:
            InvalidConfiguration: rounds out of range
        """
        validate_rounds(rounds)

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=rounds,
        )

        # Best effort: Python str objects cannot be wiped, but the encoded
        # copy handed to PBKDF2 can.
        material = bytearray(unicodedata.normalize("NFC", password).encode("utf-8"))
        try:
            return kdf.derive(material)
        finally:
            for i in range(len(material)):
                material[i] = 0

    @staticmethod
    def encrypt(key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt plaintext using AES-256-GCM.

        Returns:
            ciphertext with the 16-byte tag appended
        """
        return AESGCM(key).encrypt(nonce, plaintext, None)

    @staticmethod
    def decrypt(key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
        """
        Decrypt ciphertext using AES-256-GCM.

        The tag check is done by the cryptography backend in constant time.

        Raises:
            AuthenticationFailure: for every kind of failure, with no detail
        """
        try:
            return AESGCM(key).decrypt(nonce, ciphertext, None)
        except (InvalidTag, ValueError):
            raise AuthenticationFailure() from None
