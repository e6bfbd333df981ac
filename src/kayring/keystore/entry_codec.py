"""On-disk layout of a keystore entry.

Format version 1: version(1) + salt(16) + nonce(12) + ciphertext+tag

No length prefixes: salt and nonce are fixed size, the remainder is
ciphertext with the GCM tag appended.
"""

from dataclasses import dataclass

from .encryption import NONCE_LENGTH, SALT_LENGTH
from .exceptions import MalformedPayload, UnsupportedFormatVersion

FORMAT_VERSION = 1

# Minimum entry size: version + salt + nonce
HEADER_SIZE = 1 + SALT_LENGTH + NONCE_LENGTH

_SALT_END = 1 + SALT_LENGTH


@dataclass(frozen=True)
class EncryptedPayload:
    """Decoded content of one entry file."""
    salt: bytes
    nonce: bytes
    ciphertext: bytes   # includes the 16-byte tag
    version: int = FORMAT_VERSION

    def __post_init__(self):
        if len(self.salt) != SALT_LENGTH:
            raise ValueError(f"salt must be {SALT_LENGTH} bytes, got {len(self.salt)}")
        if len(self.nonce) != NONCE_LENGTH:
            raise ValueError(f"nonce must be {NONCE_LENGTH} bytes, got {len(self.nonce)}")
        if not 0 <= self.version <= 0xFF:
            raise ValueError(f"version must fit in one byte, got {self.version}")


def encode(payload: EncryptedPayload) -> bytes:
    """Serialize a payload to its on-disk bytes."""
    return bytes([payload.version]) + payload.salt + payload.nonce + payload.ciphertext


def decode(data: bytes) -> EncryptedPayload:
    """Parse on-disk bytes into a payload.

    Raises:
        MalformedPayload: data shorter than the fixed header.
        UnsupportedFormatVersion: version byte is not 1.
    """
    if len(data) < HEADER_SIZE:
        raise MalformedPayload(
            f"Encrypted data too short to be a valid kaystore "
            f"({len(data)} bytes, need at least {HEADER_SIZE})"
        )

    version = data[0]
    if version != FORMAT_VERSION:
        raise UnsupportedFormatVersion(version)

    return EncryptedPayload(
        version=version,
        salt=bytes(data[1:_SALT_END]),
        nonce=bytes(data[_SALT_END:HEADER_SIZE]),
        ciphertext=bytes(data[HEADER_SIZE:]),
    )
