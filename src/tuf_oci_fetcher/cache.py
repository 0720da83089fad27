"""
Image cache.

Holds pulled image handles keyed by image reference so a fetcher pulls each
reference at most once. Entries are never refreshed: a tag moved upstream is
not seen until the fetcher is closed or a new one is created.
"""
from __future__ import annotations

from typing import Dict, Generic, List, Optional, Tuple, TypeVar

__all__ = ["ImageCache"]

T = TypeVar("T")


class ImageCache(Generic[T]):
    """
    Reference -> image handle map.

    Not synchronized; the fetcher serializes pulls per reference.
    """

    def __init__(self) -> None:
        self._images: Dict[str, T] = {}

    def get(self, image_ref: str) -> Tuple[Optional[T], bool]:
        """Get image from cache."""
        if image_ref in self._images:
            return self._images[image_ref], True
        return None, False

    def put(self, image_ref: str, image: T) -> None:
        """Add image to cache."""
        self._images[image_ref] = image

    def images(self) -> List[T]:
        return list(self._images.values())

    def clear(self) -> None:
        self._images.clear()

    def __contains__(self, image_ref: object) -> bool:
        return image_ref in self._images

    def __len__(self) -> int:
        return len(self._images)
