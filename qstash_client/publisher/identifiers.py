"""
Deduplication identifier generation.

Every message published without a caller supplied id or content based
deduplication gets a fresh random identifier, so that retried publish
requests are deduplicated by the broker instead of delivered twice.
"""

import os
from collections.abc import Callable
from typing import Protocol

from qstash_client.errors import IdentifierGenerationError

BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
IDENTIFIER_SIZE = 16


class IdentifierGenerator(Protocol):
    def new_id(self) -> str: ...


def encode_base62(data: bytes) -> str:
    """
    Encode bytes as a big-endian base 62 integer string.

    Args:
        data: The bytes to encode.

    Returns:
        The base 62 digits, without padding or separators.
    """
    value = int.from_bytes(data, "big")
    if value == 0:
        return BASE62_ALPHABET[0]
    digits = []
    while value:
        value, remainder = divmod(value, 62)
        digits.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(digits))


class RandomIdentifierGenerator:
    """
    Generates version 4 UUID bytes, base 62 encoded.

    128 random bits with the version and variant bits forced leaves 122 bits
    of entropy per identifier.
    """

    def __init__(self, entropy: Callable[[int], bytes] = os.urandom):
        """
        Args:
            entropy: Cryptographically secure source of random bytes.
        """
        self._entropy = entropy

    def new_id(self) -> str:
        try:
            raw = bytearray(self._entropy(IDENTIFIER_SIZE))
        except (OSError, NotImplementedError) as e:
            raise IdentifierGenerationError(f"could not generate uuid: {e}") from e
        if len(raw) != IDENTIFIER_SIZE:
            raise IdentifierGenerationError(
                f"could not generate uuid: entropy source returned {len(raw)} bytes"
            )
        raw[6] = (raw[6] & 0x0F) | 0x40  # Version 4
        raw[8] = (raw[8] & 0x3F) | 0x80  # Variant is 10
        return encode_base62(bytes(raw))


_default_generator = RandomIdentifierGenerator()


def new_id() -> str:
    """Generate a deduplication id with the default generator."""
    return _default_generator.new_id()
