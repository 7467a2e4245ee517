"""
In-memory LRU cache of terminal job statuses.

Once a long-audio job reports completed or error, that answer is final.
The service remembers it here, keyed by operation name, so repeated
status queries return the same recorded result without asking the
provider again. Features:
    - LRU eviction when capacity is reached
    - TTL based expiration
    - Thread-safe operations
    - Statistics tracking (hits, misses, expirations)

Example:
    >>> from readaloud.tts.cache import StatusCache
    >>> from readaloud.tts.jobs import JobStatus
    >>>
    >>> cache = StatusCache(max_items=100, ttl_seconds=3600)
    >>> cache.set("operations/123", JobStatus.completed({"audioContent": ""}))
    >>> status = cache.get("operations/123")
"""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional

from readaloud.core.config import Defaults
from readaloud.core.logging import debug, get_logger, verbose
from readaloud.tts.jobs import JobStatus

_LOG = get_logger("readaloud.cache")


@dataclass
class CacheItem:
    """A remembered terminal status and when it was recorded."""
    status: JobStatus
    created_at: float = field(default_factory=time.time)


class StatusCache:
    """
    Thread-safe LRU cache with TTL support.

    Only terminal statuses are stored; ``set`` ignores anything still
    processing so a stale progress value is never served.

    Attributes:
        max_items: Maximum number of items to store.
        ttl_seconds: Item lifetime in seconds (0 = no TTL).
    """

    def __init__(
        self,
        max_items: int = Defaults.JOBS_STATUS_CACHE_MAX_ITEMS,
        ttl_seconds: int = Defaults.JOBS_STATUS_CACHE_TTL_SECONDS,
    ):
        self.max_items = int(max_items)
        self.ttl_seconds = int(ttl_seconds)

        self._d: "OrderedDict[str, CacheItem]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._expirations = 0

    def get(self, operation_name: str) -> Optional[JobStatus]:
        """Recorded terminal status, or None if absent or expired."""
        with self._lock:
            item = self._d.get(operation_name)

            if item is not None and self.ttl_seconds > 0:
                age = time.time() - item.created_at
                if age > self.ttl_seconds:
                    del self._d[operation_name]
                    self._expirations += 1
                    item = None
                    verbose(_LOG, "status_expired", operation=operation_name, age=round(age, 1))

            if item is None:
                self._misses += 1
                return None
            self._d.move_to_end(operation_name)
            self._hits += 1

        debug(_LOG, "status_hit", operation=operation_name, status=item.status.status)
        return item.status

    def set(self, operation_name: str, status: JobStatus) -> bool:
        """
        Record a terminal status.

        Returns:
            True if stored, False if the status was not terminal.
        """
        if not status.is_terminal:
            return False

        with self._lock:
            self._d[operation_name] = CacheItem(status=status)
            self._d.move_to_end(operation_name)

            while len(self._d) > self.max_items:
                self._d.popitem(last=False)

        verbose(_LOG, "status_recorded", operation=operation_name, status=status.status)
        return True

    def stats(self) -> Dict[str, int]:
        """Hits, misses, size, capacity, TTL and expirations."""
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._d),
                "max_items": self.max_items,
                "ttl_seconds": self.ttl_seconds,
                "expirations": self._expirations,
            }
