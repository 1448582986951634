# ysba_ticker/cache.py
"""
Simple in-memory TTL cache with stale fallback and single-flight refreshes.

This is a per-process cache. If you run multiple gunicorn workers, each worker
has its own cache (and its own browser), so run the scraper with one worker.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A single cached value and the timestamp when it was set."""
    ts: float
    value: T

    def age(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.ts

    def is_fresh(self, ttl_seconds: float, now: Optional[float] = None) -> bool:
        return self.age(now) < ttl_seconds


class Singleflight:
    """
    Collapse concurrent calls for the same key into one execution.

    The first caller for a key runs the function; callers arriving while it runs
    block on the same Future and receive its result (or its exception). The key
    is released before the Future resolves, so a call made after completion
    always starts a new execution.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, Future] = {}

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._calls

    def do(self, key: Hashable, fn: Callable[[], T]) -> Tuple[T, bool]:
        """
        Run fn once per concurrent burst of callers for key.

        Returns (value, shared) where shared is True for callers that attached to
        another caller's execution.
        """
        with self._lock:
            fut = self._calls.get(key)
            leader = fut is None
            if leader:
                fut = Future()
                self._calls[key] = fut

        if not leader:
            return fut.result(), True

        try:
            value = fn()
        except BaseException as exc:
            with self._lock:
                self._calls.pop(key, None)
            fut.set_exception(exc)
            raise

        with self._lock:
            self._calls.pop(key, None)
        fut.set_result(value)
        return value, False


class TTLCache(Generic[T]):
    """
    A small key/value TTL cache with lazy loading.

    Entries are never evicted: a stale entry stays readable as a fallback until
    a successful load replaces it.
    """

    def __init__(self, name: str = "cache") -> None:
        """Initialize an empty cache store."""
        self.name = name
        self._store: Dict[Hashable, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self._flight = Singleflight()

    def peek(self, key: Hashable) -> Optional[CacheEntry[T]]:
        """Return the entry for key regardless of age."""
        with self._lock:
            return self._store.get(key)

    def fresh(self, key: Hashable, ttl_seconds: float) -> Optional[CacheEntry[T]]:
        """Return the entry for key only if it is younger than ttl_seconds."""
        entry = self.peek(key)
        if entry is not None and entry.is_fresh(ttl_seconds):
            return entry
        return None

    def set(self, key: Hashable, value: T, ts: Optional[float] = None) -> CacheEntry[T]:
        """Replace the entry for key."""
        entry = CacheEntry(ts=time.time() if ts is None else ts, value=value)
        with self._lock:
            self._store[key] = entry
        return entry

    def items(self) -> List[Tuple[Hashable, CacheEntry[T]]]:
        with self._lock:
            return list(self._store.items())

    def in_flight(self, key: Hashable) -> bool:
        return self._flight.in_flight(key)

    def get_or_refresh(
        self,
        key: Hashable,
        ttl_seconds: float,
        loader: Callable[[], T],
        force: bool = False,
    ) -> CacheEntry[T]:
        """
        Return a fresh entry, loading through a single-flight refresh when needed.

        Args:
            key: Cache key.
            ttl_seconds: Time-to-live for the entry.
            loader: Function that returns the value if the cache is stale/missing.
            force: Skip the freshness check.

        Returns:
            The fresh, newly loaded, or (when the load fails) last good entry.

        Raises:
            Whatever the loader raised, when there is no previous entry to fall back to.
        """
        if not force:
            entry = self.fresh(key, ttl_seconds)
            if entry is not None:
                logger.info(f"{self.name} hit {key} (age: {int(entry.age())}s)")
                return entry

        logger.info(f"{self.name} miss {key} (force: {force}), refreshing...")
        try:
            entry, shared = self._flight.do(key, lambda: self.set(key, loader()))
        except Exception as exc:
            stale = self.peek(key)
            if stale is None:
                raise
            logger.warning(f"{self.name} refresh failed for {key}, returning stale entry (age: {int(stale.age())}s): {exc}")
            return stale

        if shared:
            logger.info(f"{self.name} joined in-flight refresh for {key}")
        return entry

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._store.clear()
