"""Response cache and usage counters for generation calls.

Both are plain service objects: construct once, pass by handle. The cache
guards its map with a lock so it can be shared with worker threads.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Optional

from design2code import settings

logger = logging.getLogger(__name__)


def prompt_hash(prompt: str) -> str:
    """sha256 hex digest of the exact prompt text."""
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    response_text: str
    created_at: float


class ResponseCache:
    """Bounded, TTL-boxed map of prompt hash → raw response text.

    Inserting beyond ``capacity`` evicts the oldest entry. Entries older
    than ``ttl_seconds`` are misses and are dropped on lookup.
    """

    def __init__(
        self,
        capacity: int = settings.RESPONSE_CACHE_CAPACITY,
        ttl_seconds: float = settings.RESPONSE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = max(1, capacity)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, prompt: str) -> Optional[str]:
        """Cached response for ``prompt``; None on miss or expiry. Never raises."""
        try:
            key = prompt_hash(prompt)
            now = self._clock()
            with self._lock:
                entry = self._entries.get(key)
                if entry is None:
                    return None
                if now - entry.created_at > self.ttl_seconds:
                    del self._entries[key]
                    logger.debug("cache: expired %s", key[:12])
                    return None
                return entry.response_text
        except Exception as e:
            logger.warning("cache: lookup failed, treating as miss: %s", e)
            return None

    def put(self, prompt: str, response_text: str) -> None:
        key = prompt_hash(prompt)
        entry = CacheEntry(response_text=response_text, created_at=self._clock())
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache: evicted %s (capacity %d)", evicted[:12], self.capacity)

    def evict(self, prompt: str) -> bool:
        with self._lock:
            return self._entries.pop(prompt_hash(prompt), None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now - e.created_at > self.ttl_seconds]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@dataclass
class UsageCounters:
    """Monotonic counters for observability."""
    calls: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    failures: int = 0
    prompt_tokens: int = 0
    output_tokens: int = 0

    def __post_init__(self):
        self._lock = threading.Lock()

    def record(self, **increments: int) -> None:
        with self._lock:
            for name, amount in increments.items():
                if amount < 0:
                    raise ValueError(f"Counter {name} can only increase")
                setattr(self, name, getattr(self, name) + amount)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return asdict(self)
