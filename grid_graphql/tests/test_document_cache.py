# Copyright 2021-present Kensho Technologies, LLC.
from concurrent.futures import ThreadPoolExecutor
from threading import Event, Lock
import time
from typing import Callable, List, Optional
import unittest

import pytest

from ..document_cache import DEFAULT_CACHE_SIZE, CacheStats, DocumentCache


WAIT_TIMEOUT_SECONDS = 10


class CountingCompute:
    """Compute function recording which keys it was called with."""

    def __init__(
        self, block_until: Optional[Event] = None, error: Optional[Exception] = None
    ) -> None:
        self.calls: List[str] = []
        self.started = Event()
        self._lock = Lock()
        self._block_until = block_until
        self._error = error

    def __call__(self, key: str) -> List[str]:
        with self._lock:
            self.calls.append(key)
        self.started.set()
        if self._block_until is not None:
            self._block_until.wait(WAIT_TIMEOUT_SECONDS)
        if self._error is not None:
            raise self._error
        # A fresh mutable object per computation, so identity shows which computation it was.
        return [key]


def _wait_for(condition: Callable[[], bool]) -> None:
    deadline = time.monotonic() + WAIT_TIMEOUT_SECONDS
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("Timed out waiting for condition.")
        time.sleep(0.001)


class DocumentCacheTests(unittest.TestCase):
    def test_default_size(self) -> None:
        self.assertEqual(1024, DEFAULT_CACHE_SIZE)
        self.assertEqual(DEFAULT_CACHE_SIZE, DocumentCache().max_size)

    def test_invalid_size(self) -> None:
        for invalid_size in (0, -1):
            with self.assertRaises(ValueError):
                DocumentCache(invalid_size)

    def test_computes_once_then_hits(self) -> None:
        cache: DocumentCache[str, List[str]] = DocumentCache(10)
        compute = CountingCompute()

        first = cache.get_or_compute("{ grid { nodeCount } }", compute)
        second = cache.get_or_compute("{ grid { nodeCount } }", compute)

        self.assertEqual(["{ grid { nodeCount } }"], compute.calls)
        self.assertIs(first, second)
        self.assertEqual(CacheStats(hits=1, misses=1, size=1, max_size=10), cache.stats())
        self.assertEqual(0.5, cache.stats().hit_rate)

    def test_keys_are_exact_text(self) -> None:
        cache: DocumentCache[str, List[str]] = DocumentCache(10)
        compute = CountingCompute()

        cache.get_or_compute("{ grid { nodeCount } }", compute)
        cache.get_or_compute("{grid{nodeCount}}", compute)

        self.assertEqual(["{ grid { nodeCount } }", "{grid{nodeCount}}"], compute.calls)
        self.assertEqual(2, len(cache))

    def test_empty_cache_hit_rate(self) -> None:
        self.assertEqual(0.0, DocumentCache().stats().hit_rate)

    @pytest.mark.slow
    def test_concurrent_callers_share_single_computation(self) -> None:
        caller_count = 50
        cache: DocumentCache[str, List[str]] = DocumentCache(10)
        release = Event()
        compute = CountingCompute(block_until=release)

        with ThreadPoolExecutor(max_workers=caller_count) as executor:
            futures = [
                executor.submit(cache.get_or_compute, "{ grid { nodeCount } }", compute)
                for _ in range(caller_count)
            ]
            # Only release the computation once every caller has missed and is waiting on it.
            _wait_for(lambda: cache.stats().misses == caller_count)
            release.set()
            results = [future.result(WAIT_TIMEOUT_SECONDS) for future in futures]

        self.assertEqual(["{ grid { nodeCount } }"], compute.calls)
        for result in results:
            self.assertIs(results[0], result)
        self.assertEqual(1, len(cache))

    def test_failure_reaches_all_waiters_and_is_not_cached(self) -> None:
        caller_count = 5
        cache: DocumentCache[str, List[str]] = DocumentCache(10)
        release = Event()
        error = ValueError("Syntax Error: Expected Name, found <EOF>.")
        compute = CountingCompute(block_until=release, error=error)

        with ThreadPoolExecutor(max_workers=caller_count) as executor:
            futures = [
                executor.submit(cache.get_or_compute, "{ grid {", compute)
                for _ in range(caller_count)
            ]
            _wait_for(lambda: cache.stats().misses == caller_count)
            release.set()
            raised = [future.exception(WAIT_TIMEOUT_SECONDS) for future in futures]

        self.assertEqual(["{ grid {"], compute.calls)
        for exception in raised:
            self.assertIs(error, exception)
        self.assertNotIn("{ grid {", cache)
        self.assertEqual(0, len(cache))

        # The next request for the same key computes again.
        with self.assertRaises(ValueError):
            cache.get_or_compute("{ grid {", compute)
        self.assertEqual(["{ grid {", "{ grid {"], compute.calls)

    def test_unrelated_keys_compute_in_parallel(self) -> None:
        cache: DocumentCache[str, List[str]] = DocumentCache(10)
        release = Event()
        blocked_compute = CountingCompute(block_until=release)
        other_compute = CountingCompute()

        with ThreadPoolExecutor(max_workers=1) as executor:
            blocked = executor.submit(
                cache.get_or_compute, "{ grid { nodes { id } } }", blocked_compute
            )
            self.assertTrue(blocked_compute.started.wait(WAIT_TIMEOUT_SECONDS))

            # Must not wait for the unrelated computation that is still in progress.
            self.assertEqual(
                ["{ grid { nodeCount } }"],
                cache.get_or_compute("{ grid { nodeCount } }", other_compute),
            )

            release.set()
            self.assertEqual(["{ grid { nodes { id } } }"], blocked.result(WAIT_TIMEOUT_SECONDS))

    def test_least_recently_used_entry_is_evicted(self) -> None:
        cache: DocumentCache[str, List[str]] = DocumentCache(2)
        compute = CountingCompute()

        cache.get_or_compute("a", compute)
        cache.get_or_compute("b", compute)
        cache.get_or_compute("a", compute)  # "b" is now the least recently used entry.
        cache.get_or_compute("c", compute)

        self.assertIn("a", cache)
        self.assertNotIn("b", cache)
        self.assertIn("c", cache)
        self.assertEqual(2, len(cache))
        self.assertEqual(["a", "b", "c"], compute.calls)

        # Resident keys are still served without computing.
        cache.get_or_compute("a", compute)
        cache.get_or_compute("c", compute)
        self.assertEqual(["a", "b", "c"], compute.calls)

        # The evicted key is computed again, with a correct result.
        self.assertEqual(["b"], cache.get_or_compute("b", compute))
        self.assertEqual(["a", "b", "c", "b"], compute.calls)
        self.assertNotIn("a", cache)

    def test_more_keys_than_capacity(self) -> None:
        cache: DocumentCache[str, List[str]] = DocumentCache(8)
        compute = CountingCompute()
        keys = [f'{{ session(id: "{index}") {{ id }} }}' for index in range(20)]

        for key in keys:
            self.assertEqual([key], cache.get_or_compute(key, compute))

        self.assertEqual(8, len(cache))
        self.assertEqual(keys, compute.calls)
        for key in keys[-8:]:
            self.assertIn(key, cache)

    def test_contains_does_not_refresh_recency(self) -> None:
        cache: DocumentCache[str, List[str]] = DocumentCache(2)
        compute = CountingCompute()

        cache.get_or_compute("a", compute)
        cache.get_or_compute("b", compute)
        self.assertIn("a", cache)
        cache.get_or_compute("c", compute)

        self.assertNotIn("a", cache)
        self.assertEqual(0, cache.stats().hits)

    def test_clear(self) -> None:
        cache: DocumentCache[str, List[str]] = DocumentCache(2)
        compute = CountingCompute()
        cache.get_or_compute("a", compute)
        cache.get_or_compute("a", compute)

        cache.clear()

        self.assertEqual(CacheStats(hits=0, misses=0, size=0, max_size=2), cache.stats())
        cache.get_or_compute("a", compute)
        self.assertEqual(["a", "a"], compute.calls)
