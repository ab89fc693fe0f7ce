"""
Rendered-page cache for public pages

Public creator and drop pages are cached by path. Actions call
revalidate_path() after writes that change what those pages show.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass
class CachedPage:
    body: str
    stored_at: float


class PageCache:
    """Thread-safe path -> HTML cache with a TTL"""

    def __init__(self, ttl_seconds: int = 60):
        self.ttl_seconds = ttl_seconds
        self._pages: dict[str, CachedPage] = {}
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[str]:
        with self._lock:
            page = self._pages.get(path)
            if page is None:
                return None
            if time.monotonic() - page.stored_at > self.ttl_seconds:
                del self._pages[path]
                return None
            return page.body

    def set(self, path: str, body: str) -> None:
        if self.ttl_seconds <= 0:
            return
        with self._lock:
            self._pages[path] = CachedPage(body=body, stored_at=time.monotonic())

    def invalidate(self, path: str) -> int:
        """Evict one path, or every path below it when it ends with '/'"""
        with self._lock:
            if path.endswith("/"):
                keys = [key for key in self._pages if key.startswith(path)]
            else:
                keys = [path] if path in self._pages else []
            for key in keys:
                del self._pages[key]
        if keys:
            logger.debug("Evicted %d cached page(s) for %s", len(keys), path)
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._pages.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)


page_cache = PageCache(ttl_seconds=settings.page_cache_ttl_seconds)


def revalidate_path(path: str) -> None:
    page_cache.invalidate(path)
