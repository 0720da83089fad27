"""Tests for the image cache."""
from __future__ import annotations

from tuf_oci_fetcher.cache import ImageCache


class TestImageCache:
    """Test ImageCache map semantics."""

    def test_get_missing_reference(self):
        """Test that a miss returns (None, False)."""
        cache = ImageCache()

        assert cache.get("repo:tag") == (None, False)
        assert len(cache) == 0

    def test_put_then_get(self):
        """Test that a stored image is returned with found=True."""
        cache = ImageCache()
        image = object()

        cache.put("repo:tag", image)

        assert cache.get("repo:tag") == (image, True)
        assert "repo:tag" in cache

    def test_last_put_wins(self):
        """Test that a second put for a reference replaces the first."""
        cache = ImageCache()
        first, second = object(), object()

        cache.put("repo:tag", first)
        cache.put("repo:tag", second)

        assert cache.get("repo:tag")[0] is second
        assert len(cache) == 1

    def test_get_does_not_mutate(self):
        """Test that lookups never create entries."""
        cache = ImageCache()

        cache.get("repo:a")
        cache.get("repo:b")

        assert len(cache) == 0
        assert cache.images() == []

    def test_instances_do_not_share_state(self):
        """Test that caches are independent objects."""
        a, b = ImageCache(), ImageCache()

        a.put("repo:tag", object())

        assert b.get("repo:tag") == (None, False)

    def test_clear_drops_all_entries(self):
        """Test that clear empties the cache."""
        cache = ImageCache()
        cache.put("repo:a", object())
        cache.put("repo:b", object())

        cache.clear()

        assert len(cache) == 0
        assert cache.get("repo:a") == (None, False)
