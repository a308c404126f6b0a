"""Observability utilities: logging setup.

This module configures standard logging and, if available, integrates
`structlog` for structured logs. The dependency on `structlog` is optional to
keep the base runtime lightweight.
"""

from __future__ import annotations

import importlib
import logging
from typing import Optional

from ..config.models import EnvSettings


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging.

    Parameters
    ----------
    level: str, optional
        Logging level name (e.g., "DEBUG", "INFO"). When omitted, the
        ``ONECACHE_LOG_LEVEL`` environment setting is used (default "INFO").

    Behavior
    --------
    - Initializes Python's logging with the requested level.
    - Applies the level to the ``onecache`` logger hierarchy, so cache events
      (evictions, expiry, scheduler failures) follow it even when the root
      logger was configured elsewhere.
    - If `structlog` is installed, configures it with a filtering bound logger.
    """
    if level is None:
        level = EnvSettings().log_level
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=("%(asctime)s %(levelname)s %(name)s - %(message)s"),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    logging.getLogger("onecache").setLevel(numeric_level)

    try:  # optional structlog
        structlog = importlib.import_module("structlog")
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        )
    except ModuleNotFoundError:  # pragma: no cover
        pass
