"""
Bounded layer reads.

Declared layer sizes come from a manifest that may be stale or hostile, so the
byte count actually read is the binding check: at most ``max_length + 1`` bytes
are read and anything over the bound is discarded with an error.
"""
from __future__ import annotations

import logging
from typing import BinaryIO, Iterator

from .errors import LengthExceeded
from .storage.base import RegistryImage

__all__ = ["read_layer", "iter_layer", "CHUNK_SIZE"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def _read_at_most(stream: BinaryIO, limit: int) -> bytes:
    """Read until EOF or until ``limit`` bytes have been read."""
    buffer = bytearray()
    while len(buffer) < limit:
        chunk = stream.read(min(CHUNK_SIZE, limit - len(buffer)))
        if not chunk:
            break
        buffer += chunk
    return bytes(buffer)


def read_layer(image: RegistryImage, digest: str, max_length: int) -> bytes:
    """
    Return the uncompressed content of a layer.

    Args:
        image: Pulled image handle
        digest: Layer digest
        max_length: Maximum number of bytes accepted

    Returns:
        Layer content, never longer than ``max_length``

    Raises:
        LengthExceeded: If the declared or actual size is larger than ``max_length``
        IOFailure: If the layer cannot be read
    """
    layer = image.layer_by_digest(digest)

    length = layer.size()
    if length > max_length:
        raise LengthExceeded(length, max_length)

    with layer.uncompressed() as content:
        data = _read_at_most(content, max_length + 1)

    if len(data) > max_length:
        raise LengthExceeded(len(data), max_length)

    logger.debug(f"Read {len(data)} bytes from layer {digest}")
    return data


def iter_layer(image: RegistryImage, digest: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """
    Yield the uncompressed content of a layer in chunks, without a bound.

    Callers are responsible for enforcing a length limit.
    """
    layer = image.layer_by_digest(digest)
    with layer.uncompressed() as content:
        while True:
            chunk = content.read(chunk_size)
            if not chunk:
                break
            yield chunk
