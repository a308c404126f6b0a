"""In-process LRU cache with optional per-entry TTL.

:class:`MemoryCache` combines a lookup table (``dict`` of key to entry) with a
:class:`~onecache.core.recency.RecencyIndex`. Each entry holds the index node
for its key, so promotion and removal are O(1). Every public operation runs
under one instance-wide lock.

Expiry is lazy: an entry whose TTL has elapsed is removed the next time it is
read. With ``proactive_expiry=True`` the cache also asks its scheduler to
clear each TTL entry when it falls due.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Hashable
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Generic,
    List,
    NamedTuple,
    Optional,
    TypeVar,
)

from .recency import Node, RecencyIndex
from .scheduler import CancelHandle, DefaultScheduler, Scheduler

if TYPE_CHECKING:  # pragma: no cover
    from ..config.models import CacheConfig

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


class CacheResult(NamedTuple, Generic[V]):
    """Outcome of :meth:`MemoryCache.get`. Unpacks as ``found, value``."""

    found: bool
    value: Optional[V]


MISS: CacheResult = CacheResult(False, None)


class _Entry(Generic[K, V]):
    """A cached value plus its metadata."""

    __slots__ = ("key", "value", "ttl_ms", "inserted_at", "node", "cancel_expiry")

    def __init__(
        self, key: K, value: V, ttl_ms: float, inserted_at: float, node: Node[K]
    ) -> None:
        self.key = key
        self.value = value
        self.ttl_ms = ttl_ms
        self.inserted_at = inserted_at
        self.node = node
        # set only when proactive expiry scheduled a callback for this entry
        self.cancel_expiry: Optional[CancelHandle] = None

    def is_expired(self, now: float) -> bool:
        # elapsed == ttl is still live
        return self.ttl_ms != 0 and now - self.inserted_at > self.ttl_ms


def _check_ttl(ttl_ms: float) -> None:
    # NaN would compare False against every elapsed time and never expire
    if not math.isfinite(ttl_ms) or ttl_ms < 0:
        raise ValueError(f"ttl_ms must be a finite number >= 0, got {ttl_ms}")


def _check_capacity(capacity: int) -> None:
    if capacity < 0:
        raise ValueError(f"capacity must be >= 0, got {capacity}")


class MemoryCache(Generic[K, V]):  # pylint: disable=too-many-instance-attributes
    """Thread-safe LRU cache with optional TTL per entry.

    Parameters
    ----------
    capacity : int
        Maximum number of entries. ``0`` means unbounded. When a ``set`` puts
        the cache over capacity, least recently touched entries are evicted.
    scheduler : Scheduler, optional
        Deferred-callback capability used for proactive expiry. An injected
        scheduler is shared: the cache never shuts it down. When omitted, a
        :class:`DefaultScheduler` is created on first use and owned by the
        cache.
    clock : callable, optional
        Zero-argument callable returning milliseconds from a monotonic source.
    proactive_expiry : bool
        Schedule removal of TTL entries when they fall due, in addition to the
        lazy check on ``get``.

    Raises
    ------
    ValueError
        If ``capacity`` is negative.
    """

    def __init__(
        self,
        capacity: int = 0,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        proactive_expiry: bool = False,
        scheduler_workers: int = 10,
    ) -> None:
        _check_capacity(capacity)
        self._capacity = capacity
        self._clock = clock or monotonic_ms
        self._proactive_expiry = proactive_expiry
        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._scheduler_workers = scheduler_workers
        self._entries: Dict[K, _Entry[K, V]] = {}
        self._recency: RecencyIndex[K] = RecencyIndex()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: "CacheConfig",
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "MemoryCache[K, V]":
        """Build a cache from a validated :class:`CacheConfig`."""
        return cls(
            capacity=config.capacity,
            scheduler=scheduler,
            clock=clock,
            proactive_expiry=config.proactive_expiry,
            scheduler_workers=config.scheduler_workers,
        )

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __enter__(self) -> "MemoryCache[K, V]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def keys(self) -> List[K]:
        """Snapshot of stored keys, most recently touched first."""
        with self._lock:
            return list(self._recency)

    def get(self, key: K) -> CacheResult[V]:
        """Look up ``key``.

        Returns ``CacheResult(True, value)`` on a hit and marks the key most
        recently used. A missing or expired key returns ``CacheResult(False,
        None)``; an expired entry is removed without being promoted.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS
            if entry.is_expired(self._clock()):
                self._remove(entry)
                logger.debug(
                    "cache.expired",
                    extra={"key": repr(key), "ttl_ms": entry.ttl_ms, "lazy": True},
                )
                return MISS
            self._recency.move_to_front(entry.node)
            return CacheResult(True, entry.value)

    def set(self, key: K, value: V, ttl_ms: float = 0) -> None:
        """Cache ``value`` (which may be None) under ``key``.

        ``ttl_ms`` of 0 means the entry never expires. Replacing an existing
        key resets its TTL clock and makes it most recently used.

        Raises
        ------
        ValueError
            If ``ttl_ms`` is negative or not finite.
        """
        _check_ttl(ttl_ms)
        with self._lock:
            entry = _Entry(key, value, ttl_ms, self._clock(), Node(key))
            # schedule first so a failing scheduler leaves the cache untouched
            if self._proactive_expiry and ttl_ms > 0:
                entry.cancel_expiry = self._get_scheduler().run_once_after(
                    lambda: self._expire(entry), ttl_ms
                )
            old = self._entries.get(key)
            if old is not None:
                self._remove(old)
            self._entries[key] = entry
            self._recency.push_front(entry.node)
            self._evict_over_capacity()

    def clear(self, key: K) -> bool:
        """Remove ``key``; return whether it was present."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            self._remove(entry)
            return True

    def resize(self, capacity: int) -> None:
        """Change the capacity, evicting least recently used entries as needed."""
        _check_capacity(capacity)
        with self._lock:
            self._capacity = capacity
            self._evict_over_capacity()

    def close(self) -> None:
        """Cancel pending expiry callbacks and stop an owned scheduler.

        Cached entries stay readable and expire lazily from then on. An
        injected scheduler is left running.
        """
        with self._lock:
            for entry in self._entries.values():
                if entry.cancel_expiry is not None:
                    entry.cancel_expiry()
                    entry.cancel_expiry = None
            scheduler = self._scheduler if self._owns_scheduler else None
            self._scheduler = None
            self._proactive_expiry = False
        if isinstance(scheduler, DefaultScheduler):
            scheduler.shutdown(wait=False)

    # Internal helpers below assume self._lock is held.

    def _remove(self, entry: _Entry[K, V]) -> None:
        del self._entries[entry.key]
        self._recency.remove(entry.node)
        if entry.cancel_expiry is not None:
            entry.cancel_expiry()
            entry.cancel_expiry = None

    def _evict_over_capacity(self) -> None:
        while self._capacity > 0 and len(self._entries) > self._capacity:
            node = self._recency.tail()
            if node is None:
                break
            self._remove(self._entries[node.key])
            logger.debug(
                "cache.evicted",
                extra={"key": repr(node.key), "capacity": self._capacity},
            )

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = DefaultScheduler(max_workers=self._scheduler_workers)
            self._owns_scheduler = True
        return self._scheduler

    def _expire(self, entry: _Entry[K, V]) -> None:
        with self._lock:
            # the key may have been replaced or cleared since scheduling
            if self._entries.get(entry.key) is not entry:
                return
            entry.cancel_expiry = None
            self._remove(entry)
        logger.debug(
            "cache.expired",
            extra={"key": repr(entry.key), "ttl_ms": entry.ttl_ms, "lazy": False},
        )
