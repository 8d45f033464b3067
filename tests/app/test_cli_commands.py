from __future__ import annotations

from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from hn_ingest.app import AppState, app
from hn_ingest.config import ConfigLocator, ConfigRepository
from hn_ingest.errors import CycleCancelled, InternalError, NotFoundError
from hn_ingest.infra import MemoryCache
from hn_ingest.models import ProcessingStats, SourcePost


class StubCycle:
    def __init__(self, stats: ProcessingStats | None = None, error: Exception | None = None) -> None:
        self.stats = stats or ProcessingStats()
        self.error = error
        self.calls = 0

    def run(self, cancel=None) -> ProcessingStats:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.stats


class StubClient:
    def __init__(self, items=None, threads=None, search_error: Exception | None = None) -> None:
        self.items = items or {}
        self.threads = threads or []
        self.search_error = search_error
        self.closed = False

    def get_item(self, item_id: int) -> SourcePost:
        try:
            return SourcePost.model_validate(self.items[item_id])
        except KeyError:
            raise NotFoundError("item not found", id=item_id) from None

    def get_top_stories(self) -> list[int]:
        return [5, 4, 3, 2, 1]

    def search_hiring_threads(self) -> list[int]:
        if self.search_error is not None:
            raise self.search_error
        return list(self.threads)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def cli_state(tmp_path, monkeypatch):
    monkeypatch.setenv("HN_INGEST_HOME", str(tmp_path))
    state = AppState(ConfigRepository(ConfigLocator(project_root=tmp_path)))
    monkeypatch.setattr("hn_ingest.app.build_state", lambda verbose: state)
    return state


def test_cli_fetch_prints_summary(cli_state) -> None:
    stats = ProcessingStats()
    stats.record_hiring_thread()
    for _ in range(3):
        stats.record_comment()
    cli_state.cycle = StubCycle(stats)

    result = CliRunner().invoke(app, ["fetch"])
    assert result.exit_code == 0, result.stdout
    assert "Fetch cycle summary" in result.stdout
    assert "Hiring threads found" in result.stdout
    assert "3" in result.stdout
    assert cli_state.cycle.calls == 1


def test_cli_fetch_reports_failure(cli_state) -> None:
    cli_state.cycle = StubCycle(error=InternalError("failed to search hiring threads"))
    result = CliRunner().invoke(app, ["fetch"])
    assert result.exit_code == 1
    assert "failed to search hiring threads" in result.stdout


def test_cli_fetch_cancelled_exit_code(cli_state) -> None:
    cli_state.cycle = StubCycle(error=CycleCancelled())
    result = CliRunner().invoke(app, ["fetch"])
    assert result.exit_code == 130


def test_cli_item_prints_json_and_closes_client(cli_state) -> None:
    client = StubClient(items={1: {"id": 1, "title": "Ask HN: Who is hiring?", "by": "whoishiring"}})
    cli_state.client = client
    result = CliRunner().invoke(app, ["item", "1"])
    assert result.exit_code == 0, result.stdout
    assert '"whoishiring"' in result.stdout
    assert client.closed


def test_cli_item_not_found(cli_state) -> None:
    cli_state.client = StubClient()
    result = CliRunner().invoke(app, ["item", "42"])
    assert result.exit_code == 1
    assert "Could not fetch item 42" in result.stdout


def test_cli_top_stories_respects_limit(cli_state) -> None:
    cli_state.client = StubClient()
    result = CliRunner().invoke(app, ["top-stories", "--limit", "2"])
    assert result.exit_code == 0, result.stdout
    assert "5" in result.stdout
    assert "3" not in result.stdout.split("Top stories", 1)[1]


def test_cli_search_lists_threads(cli_state) -> None:
    cli_state.client = StubClient(threads=[39562986, 39217310])
    result = CliRunner().invoke(app, ["search"])
    assert result.exit_code == 0, result.stdout
    assert "39562986" in result.stdout
    assert "39217310" in result.stdout


def test_cli_search_empty(cli_state) -> None:
    cli_state.client = StubClient()
    result = CliRunner().invoke(app, ["search"])
    assert result.exit_code == 0
    assert "No hiring threads found." in result.stdout


def test_cli_config_show_creates_defaults(cli_state, tmp_path) -> None:
    result = CliRunner().invoke(app, ["config", "show"])
    assert result.exit_code == 0, result.stdout
    assert "polling_interval" in result.stdout
    assert "story_workers" in result.stdout
    assert (tmp_path / "data" / "ingest_config.yaml").exists()


def test_cli_config_path(cli_state, tmp_path) -> None:
    result = CliRunner().invoke(app, ["config", "path"])
    assert result.exit_code == 0
    assert "ingest_config.yaml" in result.stdout


def test_cli_cache_clear(cli_state) -> None:
    cache = MemoryCache()
    cache.set("item:1", b"{}")
    cli_state.cache = cache
    result = CliRunner().invoke(app, ["cache", "clear", "--yes"])
    assert result.exit_code == 0, result.stdout
    assert "Cache cleared." in result.stdout
    assert cache.get("item:1") is None


def test_cli_cache_clear_aborted(cli_state) -> None:
    cache = MemoryCache()
    cache.set("item:1", b"{}")
    cli_state.cache = cache
    result = CliRunner().invoke(app, ["cache", "clear"], input="n\n")
    assert result.exit_code == 0
    assert cache.get("item:1") == b"{}"


def test_cli_run_stops_scheduler(cli_state) -> None:
    calls: list[str] = []

    def start(cancel) -> None:
        calls.append("start")
        raise CycleCancelled("polling loop cancelled")

    cli_state.scheduler = SimpleNamespace(start=start, stop=lambda: calls.append("stop"))
    result = CliRunner().invoke(app, ["run"])
    assert result.exit_code == 0, result.stdout
    assert calls == ["start", "stop"]
    assert "Scheduler stopped." in result.stdout
