"""Config models and loader.

This module defines Pydantic models for file- and environment-based cache
configuration. JSON parsing prefers `orjson` when available and otherwise
uses the Python standard library's `json` module, so `orjson` stays an
optional extra.
"""

from __future__ import annotations

import json as _json
from pathlib import Path
from typing import Any, Callable, Optional

try:
    import orjson as _orjson_mod  # type: ignore[assignment]
except ImportError:  # pragma: no cover - optional dependency
    _orjson_mod = None  # type: ignore[assignment]
    _loads_orjson: Optional[Callable[[bytes], Any]] = None
else:

    def _loads_orjson(buf: bytes) -> Any:
        loader = getattr(_orjson_mod, "loads")  # type: ignore[assignment]
        return loader(buf)


from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheConfig(BaseModel):
    """Construction parameters for a :class:`~onecache.MemoryCache`.

    Attributes
    ----------
    capacity: int
        Maximum entry count; 0 means unbounded.
    proactive_expiry: bool
        Remove TTL entries via the scheduler when they fall due.
    scheduler_workers: int
        Worker threads for a cache-owned default scheduler.
    """

    capacity: int = Field(0, ge=0, description="Maximum entries, 0 = unbounded")
    proactive_expiry: bool = Field(
        False, description="Schedule removal of entries when their TTL elapses"
    )
    scheduler_workers: int = Field(
        10, ge=1, description="Thread pool size for the default scheduler"
    )

    @staticmethod
    def load(path: Path) -> "CacheConfig":
        """Load cache config from a JSON file."""
        raw = path.read_bytes()
        if _loads_orjson is not None:
            data = _loads_orjson(raw)
        else:
            data = _json.loads(raw.decode("utf-8"))
        return CacheConfig.model_validate(data)


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    capacity: int
        Default cache capacity (ONECACHE_CAPACITY).
    proactive_expiry: bool
        Default proactive expiry flag (ONECACHE_PROACTIVE_EXPIRY).
    scheduler_workers: int
        Default scheduler pool size (ONECACHE_SCHEDULER_WORKERS).
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="ONECACHE_")

    log_level: str = Field("INFO")
    capacity: int = Field(0, ge=0)
    proactive_expiry: bool = Field(False)
    scheduler_workers: int = Field(10, ge=1)

    def to_cache_config(self) -> CacheConfig:
        return CacheConfig(
            capacity=self.capacity,
            proactive_expiry=self.proactive_expiry,
            scheduler_workers=self.scheduler_workers,
        )
