"""Conversion between user-facing 0x-hex strings and raw secret bytes."""

import binascii

from .exceptions import InvalidSecretEncoding

HEX_PREFIX = "0x"


def parse_secret(value: str) -> bytes:
    """Decode a ``0x``-prefixed hex string.

    Raises:
        InvalidSecretEncoding: missing prefix or invalid hex body.
    """
    if not value.startswith(HEX_PREFIX):
        raise InvalidSecretEncoding(
            f"Value must be a hex string starting with '{HEX_PREFIX}'"
        )
    try:
        return binascii.unhexlify(value[len(HEX_PREFIX):])
    except (binascii.Error, ValueError):
        raise InvalidSecretEncoding("Value must be a valid hex string") from None


def format_secret(data: bytes) -> str:
    """Encode secret bytes for display."""
    return HEX_PREFIX + data.hex()
