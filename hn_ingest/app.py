"""Typer CLI entrypoint for the hiring-thread ingestion service."""

from __future__ import annotations

import json
import signal
from functools import cached_property
from threading import Event
from typing import Iterable, Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigLocator, ConfigRepository, IngestionConfig
from .engine import CachingSourceClient, Publisher
from .errors import CycleCancelled, IngestionError
from .infra import Cache
from .logging_conf import available_logs, configure_logging, default_log_dir, tail_log
from .models import ProcessingStats
from .orchestrator import FetchCycle, create_cache, create_publisher
from .scheduler import PollingScheduler

app = typer.Typer(
    help="Who-is-hiring ingestion service",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Configuration commands", no_args_is_help=True)
cache_app = typer.Typer(name="cache", help="Cache maintenance commands", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Log viewing commands", no_args_is_help=True)

console = Console()


class AppState:
    """Lazily built collaborators shared by the CLI commands."""

    def __init__(self, repository: ConfigRepository) -> None:
        self.repository = repository

    @property
    def locator(self) -> ConfigLocator:
        return self.repository.locator

    @cached_property
    def config(self) -> IngestionConfig:
        return self.repository.load_config()

    @cached_property
    def cache(self) -> Cache:
        return create_cache(self.config, self.locator)

    @cached_property
    def client(self) -> CachingSourceClient:
        return CachingSourceClient(self.config, self.cache)

    @cached_property
    def publisher(self) -> Publisher:
        return create_publisher(self.config, self.locator)

    @cached_property
    def cycle(self) -> FetchCycle:
        return FetchCycle(self.client, self.publisher, self.config.workers)

    @cached_property
    def scheduler(self) -> PollingScheduler:
        return PollingScheduler(self.cycle.run, self.config.polling_interval)

    def close(self) -> None:
        # only release what was actually built
        for name in ("client", "publisher", "cache"):
            resource = self.__dict__.get(name)
            if resource is not None:
                resource.close()


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(ConfigRepository())


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _render_stats_table(stats: ProcessingStats) -> Table:
    table = Table(title="Fetch cycle summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Count", style="green", justify="right")
    table.add_row("Hiring threads found", str(stats.hiring_threads_found))
    table.add_row("Comments processed", str(stats.comments_processed))
    return table


def _render_ids_table(title: str, ids: Iterable[int]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Item ID", style="cyan")
    for index, item_id in enumerate(ids, start=1):
        table.add_row(str(index), str(item_id))
    return table


def _install_signal_handlers(cancel: Event) -> None:
    def _handler(signum, _frame):  # noqa: ANN001
        console.print(f"Received signal {signum}, shutting down…", style="yellow")
        cancel.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _handler)
        except ValueError:
            # not in the main thread (e.g. under a test runner)
            continue


app.add_typer(config_app, name="config")
app.add_typer(cache_app, name="cache")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True)
) -> None:
    state = build_state(verbose)
    ctx.obj = state
    ctx.call_on_close(state.close)


@app.command("run", help="Poll for hiring threads until interrupted.")
def run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    cancel = Event()
    _install_signal_handlers(cancel)
    console.print(
        f"Polling every {state.config.polling_interval:g}s "
        f"({state.config.workers.story_workers} story / {state.config.workers.comment_workers} comment workers)",
        style="cyan",
    )
    try:
        state.scheduler.start(cancel)
    except CycleCancelled:
        pass
    finally:
        state.scheduler.stop()
    console.print("Scheduler stopped.", style="green")


@app.command("fetch", help="Run a single fetch cycle and print the summary.")
def fetch(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    cancel = Event()
    _install_signal_handlers(cancel)
    try:
        stats = state.cycle.run(cancel)
    except CycleCancelled:
        console.print("Fetch cycle cancelled.", style="yellow")
        raise typer.Exit(code=130)
    except IngestionError as exc:
        console.print(f"Fetch cycle failed: {exc}", style="red")
        raise typer.Exit(code=1)
    console.print(_render_stats_table(stats))


@app.command("item", help="Fetch one item through the cache and print it as JSON.")
def item(ctx: typer.Context, item_id: int = typer.Argument(..., help="Hacker News item id")) -> None:
    state = _get_state(ctx)
    try:
        post = state.client.get_item(item_id)
    except IngestionError as exc:
        console.print(f"Could not fetch item {item_id}: {exc}", style="red")
        raise typer.Exit(code=1)
    console.print_json(post.model_dump_json())


@app.command("top-stories", help="List the current top story ids.")
def top_stories(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", min=1, help="Show at most N ids."),
) -> None:
    state = _get_state(ctx)
    try:
        ids = state.client.get_top_stories()
    except IngestionError as exc:
        console.print(f"Could not fetch top stories: {exc}", style="red")
        raise typer.Exit(code=1)
    console.print(_render_ids_table("Top stories", ids[:limit]))


@app.command("search", help="List hiring threads inside the search window.")
def search(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        ids = state.client.search_hiring_threads()
    except IngestionError as exc:
        console.print(f"Search failed: {exc}", style="red")
        raise typer.Exit(code=1)
    if not ids:
        console.print("No hiring threads found.", style="dim")
        return
    console.print(_render_ids_table("Hiring threads", ids))


@config_app.command("show", help="Print the effective configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    payload = state.config.model_dump(mode="json")
    console.print(f"# {state.locator.config_path()}", style="dim")
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False))


@config_app.command("path", help="Print the configuration file location.")
def config_path(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(str(state.locator.config_path()))


@cache_app.command("clear", help="Drop every cached item and search result.")
def cache_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    if not yes and not typer.confirm("Clear the cache?"):
        raise typer.Exit(code=0)
    state.cache.clear()
    console.print("Cache cleared.", style="green")


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    logs = list(available_logs())
    if not logs:
        console.print("No log files yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the last lines of a log file.")
def log_show(
    name: str = typer.Option("ingest", "--name", help="Log name (ingest or error)."),
    tail: int = typer.Option(100, "--tail", min=1, help="Show the last N lines."),
) -> None:
    path = default_log_dir() / f"{name}.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    for line in lines:
        try:
            record = json.loads(line)
        except ValueError:
            console.print(line.rstrip("\n"), markup=False)
            continue
        console.print(json.dumps(record, ensure_ascii=False), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
