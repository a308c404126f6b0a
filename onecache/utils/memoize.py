"""Function memoization backed by :class:`~onecache.core.memory.MemoryCache`.

Cache keys are built with :func:`cachetools.keys.hashkey` by default, which
produces a hashable key from positional and keyword arguments. Any callable
with the same signature can be passed as ``key`` (e.g.
``cachetools.keys.methodkey`` to ignore ``self``).
"""

from __future__ import annotations

import functools
from collections.abc import Hashable
from typing import Any, Callable, TypeVar

from cachetools.keys import hashkey  # type: ignore[import-untyped]

from ..core.memory import MemoryCache, _check_ttl

R = TypeVar("R")


def memoize(
    cache: MemoryCache[Hashable, Any],
    ttl_ms: float = 0,
    key: Callable[..., Hashable] = hashkey,
) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Decorate a function so its results are cached in ``cache``.

    Parameters
    ----------
    cache : MemoryCache
        Cache receiving the results. It may be shared by several functions as
        long as their keys cannot collide.
    ttl_ms : float
        TTL applied to each stored result; 0 keeps results until evicted.
    key : callable
        Builds the cache key from the call arguments.

    Notes
    -----
    A ``None`` result is cached like any other value. Concurrent callers that
    miss on the same key may each compute the result; the last one stored
    wins.

    The wrapped function exposes ``cache`` and ``cache_clear(*args,
    **kwargs)`` for dropping a single memoized result.
    """
    _check_ttl(ttl_ms)

    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> R:
            k = key(*args, **kwargs)
            found, value = cache.get(k)
            if found:
                return value  # type: ignore[return-value]
            result = func(*args, **kwargs)
            cache.set(k, result, ttl_ms)
            return result

        def cache_clear(*args: Any, **kwargs: Any) -> bool:
            return cache.clear(key(*args, **kwargs))

        wrapper.cache = cache  # type: ignore[attr-defined]
        wrapper.cache_clear = cache_clear  # type: ignore[attr-defined]
        return wrapper

    return decorator
