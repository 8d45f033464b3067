"""Persist published job postings to SQLite."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from threading import Lock

from ...errors import InternalError
from ...models import JobPosting
from .base import Publisher


class SQLitePublisher(Publisher):
    """Append postings as rows; duplicates across cycles are kept."""

    def __init__(self, path: Path, table: str = "job_postings") -> None:
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                row_id INTEGER PRIMARY KEY AUTOINCREMENT,
                posting_id TEXT NOT NULL,
                parent_id INTEGER,
                posted_at TEXT,
                payload TEXT NOT NULL
            )
            """
        )
        self.conn.commit()

    def publish(self, posting: JobPosting) -> None:
        event = posting.to_event()
        try:
            with self._lock:
                self.conn.execute(
                    f"INSERT INTO {self.table}(posting_id, parent_id, posted_at, payload) VALUES (?, ?, ?, ?)",
                    (
                        posting.id,
                        posting.parent_id,
                        event["posted_at"],
                        json.dumps(event, ensure_ascii=False),
                    ),
                )
        except sqlite3.Error as exc:
            raise InternalError("publishing job posting", exc, id=posting.id) from exc

    def flush(self) -> None:
        with self._lock:
            self.conn.commit()

    def close(self) -> None:
        with self._lock:
            self.conn.commit()
            self.conn.close()


__all__ = ["SQLitePublisher"]
