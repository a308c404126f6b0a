"""Helpers built on top of the cache engine."""

from .memoize import memoize

__all__ = ["memoize"]
