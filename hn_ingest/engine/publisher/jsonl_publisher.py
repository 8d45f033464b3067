"""Append job postings to a JSON-lines file."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from ...errors import InternalError
from ...models import JobPosting
from .base import Publisher


class JsonLinesPublisher(Publisher):
    """Write one JSON object per posting, one file per run."""

    def __init__(self, output_dir: Path, name: str = "job_postings", run_tag: str | None = None) -> None:
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        slug = re.sub(r"[^0-9A-Za-z_-]+", "_", name.strip()) or "job_postings"
        self.path = self.output_dir / f"{slug}-{self.run_tag}.jsonl"
        self._file = self.path.open("a", encoding="utf-8")
        self._lock = Lock()
        self.published = 0

    def publish(self, posting: JobPosting) -> None:
        line = json.dumps(posting.to_event(), ensure_ascii=False)
        try:
            with self._lock:
                self._file.write(line)
                self._file.write("\n")
                self.published += 1
        except (OSError, ValueError) as exc:
            raise InternalError("publishing job posting", exc, id=posting.id) from exc

    def flush(self) -> None:
        with self._lock:
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()


__all__ = ["JsonLinesPublisher"]
