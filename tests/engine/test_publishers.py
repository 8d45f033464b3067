from __future__ import annotations

import json
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from hn_ingest.engine import JsonLinesPublisher, SQLitePublisher
from hn_ingest.errors import InternalError
from hn_ingest.models import JobPosting


def make_posting(posting_id: int, text: str = "Acme | Remote") -> JobPosting:
    return JobPosting(
        id=str(posting_id),
        description=text,
        raw_text=text,
        posted_at=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        parent_id=1,
    )


def test_jsonl_publisher_writes_one_line_per_posting(tmp_path) -> None:
    publisher = JsonLinesPublisher(tmp_path / "out", name="March hiring", run_tag="test")
    publisher.publish(make_posting(10))
    publisher.publish(make_posting(11, text="Café Ltd | Paris"))
    publisher.flush()
    publisher.close()

    assert publisher.path.name == "March_hiring-test.jsonl"
    lines = publisher.path.read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert [record["id"] for record in records] == ["10", "11"]
    assert records[1]["raw_text"] == "Café Ltd | Paris"
    assert records[0]["posted_at"].startswith("2024-03-01T12:00:00")
    assert publisher.published == 2


def test_jsonl_publisher_concurrent_writes_stay_line_atomic(tmp_path) -> None:
    publisher = JsonLinesPublisher(tmp_path, run_tag="concurrent")
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: publisher.publish(make_posting(i, text="x" * 500)), range(200)))
    publisher.close()
    lines = publisher.path.read_text(encoding="utf-8").splitlines()
    assert sorted(int(json.loads(line)["id"]) for line in lines) == list(range(200))


def test_jsonl_publisher_after_close_raises_internal_error(tmp_path) -> None:
    publisher = JsonLinesPublisher(tmp_path, run_tag="closed")
    publisher.close()
    with pytest.raises(InternalError):
        publisher.publish(make_posting(1))
    publisher.close()


def test_sqlite_publisher_keeps_duplicates(tmp_path) -> None:
    path = tmp_path / "postings.db"
    publisher = SQLitePublisher(path)
    publisher.publish_many([make_posting(10), make_posting(10), make_posting(11)])
    publisher.close()

    conn = sqlite3.connect(path)
    rows = conn.execute("SELECT posting_id, parent_id, payload FROM job_postings ORDER BY row_id").fetchall()
    conn.close()
    assert [row[0] for row in rows] == ["10", "10", "11"]
    assert rows[0][1] == 1
    assert json.loads(rows[2][2])["description"] == "Acme | Remote"


def test_sqlite_publisher_after_close_raises_internal_error(tmp_path) -> None:
    publisher = SQLitePublisher(tmp_path / "postings.db")
    publisher.close()
    with pytest.raises(InternalError):
        publisher.publish(make_posting(1))
