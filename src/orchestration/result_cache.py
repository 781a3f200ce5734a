"""Bounded in-memory cache of completed analysis results."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from ..text import normalize_whitespace
from .models import AnalysisResult

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached result with its expiry time."""

    result: AnalysisResult
    stored_at: float
    expires_at: float | None = None


class ResultCache:
    """
    LRU cache of AnalysisResults keyed by query text, with optional TTL.

    One instance is created per search engine and injected into the
    orchestrator. All access goes through a single asyncio lock, so
    concurrent queries never interleave a read-modify-write on the map.

    Usage:
        cache = ResultCache(max_entries=256, ttl_seconds=3600)
        await cache.put("find john", result)
        hit = await cache.get("Find  John")  # same key when normalizing
    """

    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: float | None = 3600,
        normalize_keys: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            max_entries: Entries kept before the least recently used is evicted
            ttl_seconds: Lifetime of an entry. None keeps entries until evicted.
            normalize_keys: Trim, collapse whitespace and casefold query text
            clock: Time source, injectable for tests
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.normalize_keys = normalize_keys
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def key_for(self, query_text: str) -> str:
        """Cache key for a query string."""
        if not self.normalize_keys:
            return query_text
        return normalize_whitespace(query_text).casefold()

    async def get(self, query_text: str) -> AnalysisResult | None:
        """
        Look up a cached result, refreshing its recency on a hit.

        Args:
            query_text: The query string as submitted

        Returns:
            The cached AnalysisResult, or None on a miss or expiry
        """
        key = self.key_for(query_text)
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.expires_at is not None and self._clock() >= entry.expires_at:
                del self._entries[key]
                self.misses += 1
                self.evictions += 1
                logger.debug(f"Cache entry expired: '{key}'")
                return None

            self._entries.move_to_end(key)
            self.hits += 1
            return entry.result

    async def put(self, query_text: str, result: AnalysisResult) -> None:
        """
        Store a result, evicting the least recently used entries when full.

        Args:
            query_text: The query string as submitted
            result: The completed result
        """
        key = self.key_for(query_text)
        now = self._clock()
        expires_at = now + self.ttl_seconds if self.ttl_seconds is not None else None

        async with self._lock:
            self._entries[key] = CacheEntry(result=result, stored_at=now, expires_at=expires_at)
            self._entries.move_to_end(key)

            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Evicted cache entry: '{evicted}'")

    async def invalidate(self, query_text: str) -> bool:
        """
        Drop one entry.

        Returns:
            True if an entry was removed
        """
        key = self.key_for(query_text)
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> int:
        """Drop every entry and return how many were removed."""
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} cached results")
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        """Get cache statistics."""
        lookups = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": round(self.hits / lookups, 4) if lookups else 0.0,
        }
