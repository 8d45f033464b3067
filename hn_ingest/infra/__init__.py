"""Infra layer utilities (caches)."""

from .cache import DEFAULT_TTL, Cache, MemoryCache, SQLiteCache

__all__ = ["Cache", "DEFAULT_TTL", "MemoryCache", "SQLiteCache"]
