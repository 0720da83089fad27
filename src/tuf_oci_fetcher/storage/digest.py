"""Digest validation utilities."""
from __future__ import annotations

import hashlib
import re

__all__ = ["validate_digest", "new_hasher"]

# Hex length per supported algorithm
_HEX_LENGTHS = {"sha256": 64, "sha512": 128}

DIGEST_PATTERN = re.compile(r"^([a-z0-9]+):([a-f0-9]+)$")


def validate_digest(digest: str) -> bool:
    """Validate digest format.

    Args:
        digest: Digest string to validate, e.g. "sha256:<64 hex>"

    Returns:
        True if the algorithm is supported and the hex part has the right length
    """
    if not isinstance(digest, str):
        return False

    match = DIGEST_PATTERN.match(digest)
    if not match:
        return False

    algorithm, hex_part = match.groups()
    return _HEX_LENGTHS.get(algorithm) == len(hex_part)


def new_hasher(digest: str) -> "hashlib._Hash":
    """Return an empty hash object for the digest's algorithm.

    Raises:
        ValueError: If digest format is invalid
    """
    if not validate_digest(digest):
        raise ValueError(f"Invalid digest format: {digest}")
    return hashlib.new(digest.split(":", 1)[0])

