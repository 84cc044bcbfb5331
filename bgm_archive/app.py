"""Typer CLI entrypoint for bgm-archive."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, HarvestConfig, SourceName
from .errors import ConfigError
from .infra import IdentifierStore
from .logging_conf import available_stage_logs, configure_logging, stage_logger, tail_log
from .orchestrator import Orchestrator, RunSummary
from .ui import ProgressReporter

app = typer.Typer(
    help="Collect Bangumi subject ids and archive each subject as JSON.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(name="log", help="Inspect log files.", no_args_is_help=True)
app.add_typer(log_app)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: HarvestConfig
    id_store: IdentifierStore
    log_dir: Path


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load_config()
    repository.locator.ensure_directories(config)
    configure_logging(repository.locator.logs_dir, verbose=verbose)
    return AppState(
        repository=repository,
        config=config,
        id_store=IdentifierStore(config.ids_dir),
        log_dir=repository.locator.logs_dir,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        verbose = bool(ctx.meta.get("verbose", False))
        try:
            state = build_state(verbose)
        except ConfigError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(code=1) from exc
        except OSError as exc:
            console.print(f"[red]Cannot prepare working directories: {exc}[/red]")
            raise typer.Exit(code=1) from exc
        ctx.obj = state
    return state


def _render_summary(summary: RunSummary) -> Table:
    table = Table(title="Fetch summary", box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column("metric", style="bold")
    table.add_column("value", justify="right")
    for key, value in summary.as_dict().items():
        table.add_row(key, str(value))
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    ctx.meta["verbose"] = verbose


@app.command("collect", help="Collect subject ids from every configured source.")
def collect(
    ctx: typer.Context,
    source: Optional[list[SourceName]] = typer.Option(
        None, "--source", "-s", help="Limit collection to these sources (repeatable)."
    ),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", min=0, help="Rank listing pages."),
) -> None:
    state = _get_state(ctx)
    config = state.config
    if max_pages is not None:
        config = config.model_copy(
            update={"collect": config.collect.model_copy(update={"max_pages": max_pages})}
        )
    orchestrator = Orchestrator(config, id_store=state.id_store, logger=stage_logger("collect"))
    counts = orchestrator.run_collect(source or None)
    table = Table(title="Collected ids", box=box.SIMPLE_HEAVY)
    table.add_column("source")
    table.add_column("count", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


@app.command("fetch", help="Fetch every subject in the merged backlog.")
def fetch(
    ctx: typer.Context,
    rewrite: Optional[bool] = typer.Option(
        None, "--rewrite/--no-rewrite", help="Re-fetch subjects that already have a record."
    ),
    start_index: Optional[int] = typer.Option(
        None, "--start-index", min=0, help="Resume offset into the merged backlog."
    ),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a progress bar."),
) -> None:
    state = _get_state(ctx)
    config = state.config
    updates: dict[str, object] = {}
    if rewrite is not None:
        updates["rewrite"] = rewrite
    if start_index is not None:
        updates["start_index"] = start_index
    if updates:
        config = config.model_copy(update={"fetch": config.fetch.model_copy(update=updates)})
    orchestrator = Orchestrator(config, id_store=state.id_store, logger=stage_logger("fetch"))
    reporter = ProgressReporter(enabled=progress, console=console)
    reporter.set_label("fetch")
    summary = orchestrator.run_fetch(progress=reporter)
    console.print(_render_summary(summary))


@app.command("ids", help="Show the persisted identifier sets.")
def ids(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    table = Table(title="Identifier sets", box=box.SIMPLE_HEAVY)
    table.add_column("source")
    table.add_column("count", justify="right")
    table.add_column("range")
    for name in SourceName:
        values = state.id_store.load(name)
        span = f"{values[0]}..{values[-1]}" if values else "-"
        table.add_row(name.value, str(len(values)), span)
    console.print(table)


@log_app.command("list", help="List available log files.")
def log_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    paths = list(available_stage_logs(state.log_dir))
    if not paths:
        console.print("No log files yet.")
        return
    for path in paths:
        console.print(str(path.relative_to(state.log_dir)))


@log_app.command("show", help="Show the last lines of a log file.")
def log_show(
    ctx: typer.Context,
    name: str = typer.Argument("harvest", help="Log name, e.g. harvest, error or stages/fetch."),
    lines: int = typer.Option(50, "--lines", "-n", min=1),
) -> None:
    state = _get_state(ctx)
    path = state.log_dir / f"{name}.log"
    content = tail_log(path, lines)
    if not content:
        console.print(f"[yellow]{path} is empty or missing[/yellow]")
        return
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
