"""In-process single-flight cache for upstream requests.

Each key maps to one ``CacheEntry`` holding the task that computes its value.
Concurrent callers for the same key await that one task. Once the task
succeeds its result is reused until ``ttl_seconds`` have passed; a failed task
is dropped immediately so the next call starts over. Expired entries are
removed by a loop timer, and any stragglers are swept on the next miss.

This cache lives and dies with the process. It is unrelated to any persistent
cache an HTTP frontend may keep.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from .logger import TRACE, get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry:
    """A pending or completed computation for one key."""

    value: asyncio.Task[Any]
    expires_at: float | None = None  # unset until settled
    evict_handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return not self.value.done()


class DeduplicatingCache:
    """Keyed single-flight execution with TTL-based result reuse."""

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: How long a successful result is reused. 0 keeps only
                the in-flight sharing.
            clock: Monotonic time source, injectable for tests
        """
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be non-negative, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    async def deduplicate(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the value for ``key``, running ``producer`` only when needed.

        Args:
            key: Cache key
            producer: Zero-argument async callable computing the value

        Returns:
            The cached, shared in-flight, or freshly computed result.

        Raises:
            Whatever ``producer`` raised, to every caller sharing that run.
        """
        # No await between the lookup and _start: the pending marker is set
        # before any other task can observe the empty slot.
        entry = self._live_entry(key)
        if entry is None:
            logger.debug("Cache miss for %s", key)
            self._purge_expired()
            entry = self._start(key, producer)
        elif entry.pending:
            logger.debug("Joining in-flight request for %s", key)
        else:
            logger.log(TRACE, "Cache hit for %s", key)

        # Shield so a cancelled waiter does not cancel the run for the others
        return await asyncio.shield(entry.value)

    def invalidate(self, key: str) -> None:
        """Forget ``key``. Callers already waiting on it still get its result."""
        self._drop(key)

    def clear(self) -> None:
        for key in list(self._entries):
            self._drop(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._live_entry(key) is not None

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._live_entry(key))

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is None and entry.value.done():
            # Finished, but its done-callback has not run yet
            self._settle(key, entry)
            entry = self._entries.get(key)
            if entry is None:
                return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            logger.log(TRACE, "Cache entry for %s expired", key)
            self._drop(key)
            return None
        return entry

    def _start(self, key: str, producer: Callable[[], Awaitable[Any]]) -> CacheEntry:
        task = asyncio.ensure_future(producer())
        entry = CacheEntry(value=task)
        self._entries[key] = entry
        task.add_done_callback(lambda _task: self._settle(key, entry))
        return entry

    def _settle(self, key: str, entry: CacheEntry) -> None:
        """Record the outcome of a finished run. Safe to call more than once."""
        task = entry.value
        # Reading exception() also marks it retrieved when nobody awaited it
        failed = task.cancelled() or task.exception() is not None

        if self._entries.get(key) is not entry or entry.expires_at is not None:
            return  # already settled, invalidated or replaced

        if failed:
            logger.debug("Request for %s failed; dropping cache entry", key)
            del self._entries[key]
        elif self.ttl_seconds == 0:
            del self._entries[key]
        else:
            entry.expires_at = self._clock() + self.ttl_seconds
            loop = task.get_loop()
            if not loop.is_closed():
                entry.evict_handle = loop.call_later(
                    self.ttl_seconds, self._evict, key, entry
                )

    def _evict(self, key: str, entry: CacheEntry) -> None:
        if self._entries.get(key) is entry:
            logger.log(TRACE, "Evicting expired cache entry for %s", key)
            del self._entries[key]

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None and entry.evict_handle is not None:
            entry.evict_handle.cancel()

    def _purge_expired(self) -> None:
        now = self._clock()
        for key, entry in list(self._entries.items()):
            if entry.expires_at is not None and entry.expires_at <= now:
                self._drop(key)
