"""Key/value caches with per-key TTL backing the cache-aside source client."""

from __future__ import annotations

import sqlite3
import time
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock
from typing import Callable, Dict

from ..errors import CacheError

DEFAULT_TTL = 3600.0


class Cache(ABC):
    """Uniform cache contract.

    ``get`` returns ``None`` for a missing or expired key and raises
    :class:`CacheError` for every other failure, so callers can tell the two
    apart. A ``ttl`` of ``0`` means "use the cache's default TTL".
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the stored value or ``None`` when absent."""

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: float = 0) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""

    def close(self) -> None:
        """Release underlying resources."""


class MemoryCache(Cache):
    """Process-local cache guarded by a lock."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, tuple[bytes, float]] = {}
        self._lock = Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: bytes, ttl: float = 0) -> None:
        effective = ttl or self.default_ttl
        with self._lock:
            self._entries[key] = (bytes(value), self._clock() + effective)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SQLiteCache(Cache):
    """Persist cache entries in a SQLite file shared by all worker threads."""

    def __init__(
        self,
        path: Path,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    expires_at REAL NOT NULL
                )
                """
            )
            self._conn.commit()

    def get(self, key: str) -> bytes | None:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value, expires_at FROM cache_entries WHERE key = ?", (key,)
                ).fetchone()
                if row is None:
                    return None
                value, expires_at = row
                if expires_at <= self._clock():
                    self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
                    self._conn.commit()
                    return None
                return bytes(value)
        except sqlite3.Error as exc:
            raise CacheError(f"get {key} failed") from exc

    def set(self, key: str, value: bytes, ttl: float = 0) -> None:
        expires_at = self._clock() + (ttl or self.default_ttl)
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO cache_entries(key, value, expires_at) VALUES (?, ?, ?)",
                    (key, sqlite3.Binary(value), expires_at),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheError(f"set {key} failed") from exc

    def delete(self, key: str) -> None:
        try:
            with self._lock:
                self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
                self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheError(f"delete {key} failed") from exc

    def clear(self) -> None:
        try:
            with self._lock:
                self._conn.execute("DELETE FROM cache_entries")
                self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheError("clear failed") from exc

    def purge_expired(self) -> int:
        """Delete expired rows and return how many were removed."""

        try:
            with self._lock:
                cur = self._conn.execute(
                    "DELETE FROM cache_entries WHERE expires_at <= ?", (self._clock(),)
                )
                self._conn.commit()
                return cur.rowcount
        except sqlite3.Error as exc:
            raise CacheError("purge failed") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["Cache", "DEFAULT_TTL", "MemoryCache", "SQLiteCache"]
