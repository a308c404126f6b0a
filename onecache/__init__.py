"""
onecache: an in-process LRU cache with optional per-entry TTL.

See README.md for usage.
"""

from .__version__ import __version__
from .config.models import CacheConfig, EnvSettings
from .core.memory import CacheResult, MemoryCache
from .core.scheduler import DefaultScheduler, NullScheduler, Scheduler
from .utils.memoize import memoize

__all__ = [
    "__version__",
    "CacheConfig",
    "CacheResult",
    "DefaultScheduler",
    "EnvSettings",
    "MemoryCache",
    "NullScheduler",
    "Scheduler",
    "memoize",
]
