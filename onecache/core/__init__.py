"""Cache engine, recency index, and schedulers."""

from .memory import CacheResult, MemoryCache
from .recency import Node, RecencyIndex
from .scheduler import CancelHandle, DefaultScheduler, NullScheduler, Scheduler

__all__ = [
    "CacheResult",
    "CancelHandle",
    "DefaultScheduler",
    "MemoryCache",
    "Node",
    "NullScheduler",
    "RecencyIndex",
    "Scheduler",
]
