# Copyright 2021-present Kensho Technologies, LLC.
"""Bounded, thread-safe cache of prepared query documents.

Parsing and validating a query against the schema is the expensive part of serving it, and the
same handful of queries tend to be submitted over and over (e.g. by dashboards polling the grid).
The cache is keyed by the raw query text, so byte-identical queries share one prepared document.

Concurrent requests for a key that is not yet cached are collapsed into a single computation:
the first caller computes, and everyone else waits on a Future for its outcome. The cache lock
is only held while the maps are mutated, never while computing, so unrelated queries are
prepared in parallel.
"""
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
import logging
from threading import Lock
from typing import Callable, Dict, Generic, Hashable, TypeVar


logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 1024

KT = TypeVar("KT", bound=Hashable)
VT = TypeVar("VT")


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time counters of a DocumentCache."""

    hits: int
    misses: int
    size: int
    max_size: int

    @property
    def hit_rate(self) -> float:
        """Return the fraction of lookups that were served without computing."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class DocumentCache(Generic[KT, VT]):
    """LRU cache that computes each missing value at most once, even under concurrent access."""

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE) -> None:
        """Create an empty cache holding at most max_size entries."""
        if max_size <= 0:
            raise ValueError(f"Expected a positive max_size, got {max_size}.")

        self.max_size = max_size
        self._lock = Lock()
        self._entries: "OrderedDict[KT, VT]" = OrderedDict()
        # Keys whose value is being computed right now -> Future for the outcome.
        self._in_flight: Dict[KT, "Future[VT]"] = {}

        self._hits = 0
        self._misses = 0

    def get_or_compute(self, key: KT, compute: Callable[[KT], VT]) -> VT:
        """Return the cached value for the key, computing and caching it if absent.

        For any key, compute is called at most once at a time: callers arriving while a
        computation for the same key is in progress wait for it and receive the same value.
        If the computation raises, every waiting caller receives that same exception and
        nothing is cached, so the next call for the key computes again.

        Args:
            key: the cache key, i.e. the raw query text.
            compute: function producing the value for the key.

        Returns:
            the cached or newly computed value.
        """
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self._hits += 1
                return self._entries[key]

            self._misses += 1
            future = self._in_flight.get(key)
            is_owner = future is None
            if future is None:
                future = Future()
                self._in_flight[key] = future

        if not is_owner:
            # Re-raises the owner's exception if the computation failed.
            return future.result()

        try:
            value = compute(key)
        except BaseException as e:
            with self._lock:
                del self._in_flight[key]
            future.set_exception(e)
            raise

        with self._lock:
            del self._in_flight[key]
            self._entries[key] = value
            while len(self._entries) > self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug("Evicted prepared document for query %r", evicted_key)

        future.set_result(value)
        return value

    def __contains__(self, key: object) -> bool:
        """Return True if the key is cached. Does not count as a use of the entry."""
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        """Return the number of cached entries."""
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop all cached entries and reset the counters. In-flight computations are kept."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        """Return the current cache counters."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                max_size=self.max_size,
            )
