"""
Public page cache tests
"""

import pytest

from fannu.web.page_cache import PageCache


class TestPageCache:
    """PageCache"""

    @pytest.fixture
    def cache(self):
        return PageCache(ttl_seconds=60)

    def test_get_set(self, cache):
        cache.set("/c/teddy", "<html>teddy</html>")

        assert cache.get("/c/teddy") == "<html>teddy</html>"
        assert cache.get("/c/other") is None

    def test_invalidate_exact_path(self, cache):
        cache.set("/c/teddy", "a")
        cache.set("/c/teddy-2", "b")

        assert cache.invalidate("/c/teddy") == 1
        assert cache.get("/c/teddy-2") == "b"

    def test_invalidate_prefix(self, cache):
        """A trailing slash evicts everything below it"""
        cache.set("/d/one", "a")
        cache.set("/d/two", "b")
        cache.set("/c/teddy", "c")

        assert cache.invalidate("/d/") == 2
        assert len(cache) == 1

    def test_expired_entry(self, cache, monkeypatch):
        cache.set("/c/teddy", "a")
        stored_at = cache._pages["/c/teddy"].stored_at

        monkeypatch.setattr("fannu.web.page_cache.time.monotonic", lambda: stored_at + 61)

        assert cache.get("/c/teddy") is None
        assert len(cache) == 0

    def test_disabled(self):
        cache = PageCache(ttl_seconds=0)
        cache.set("/c/teddy", "a")

        assert cache.get("/c/teddy") is None
