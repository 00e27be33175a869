"""Command line interface for curating portfolio display order."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from showcase.config import ShowcaseConfig, load_config, merge_cli_overrides
from showcase.content.models import CollectionType, ContentRecord
from showcase.content.store import JsonDocumentStore
from showcase.ordering.admin import OrderingSession
from showcase.ordering.reorder import Direction
from showcase.shared.errors import (
    PartialFailure,
    RecordNotFoundError,
    ShowcaseError,
    StoreWriteFailed,
)

app = typer.Typer(
    name="showcase",
    help="Curate the display order of portfolio projects, hackathons and blog posts.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from showcase import __version__

        console.print(f"showcase {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .showcase.toml file."),
    ] = None,
    store_dir: Annotated[
        Optional[Path],
        typer.Option("--store-dir", "-s", help="Directory holding the content store."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log at INFO level."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Showcase - curated ordering for portfolio content."""
    config = merge_cli_overrides(
        load_config(config_path),
        store_directory=str(store_dir) if store_dir is not None else None,
        log_level="INFO" if verbose else None,
    )
    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


def _resolve(session: OrderingSession, collection_type: CollectionType, ref: str) -> ContentRecord:
    """Find a record by id or unique id prefix."""
    view = session.view(collection_type)
    exact = view.find(ref)
    if exact is not None:
        return exact
    matches = [r for r in view.ordered_snapshot() if r.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        err_console.print(f"[red]Ambiguous id prefix '{ref}' ({len(matches)} matches)[/red]")
        raise typer.Exit(code=2)
    raise RecordNotFoundError(ref)


def _render(collection_type: CollectionType, records: list[ContentRecord]) -> Table:
    table = Table(title=collection_type.collection_name.capitalize())
    table.add_column("#", justify="right")
    table.add_column("Id")
    table.add_column("Order", justify="right")
    table.add_column("Created")
    table.add_column("Title")
    for position, record in enumerate(records):
        table.add_row(
            str(position),
            record.id[:8],
            "-" if record.display_order is None else str(record.display_order),
            record.created_at.strftime("%Y-%m-%d %H:%M"),
            record.title,
        )
    return table


def _run(
    config: ShowcaseConfig,
    collection_type: CollectionType,
    action: Callable[[OrderingSession], Awaitable[T]],
) -> T:
    """Open a session on one collection, run ``action``, and map errors to exit codes."""

    async def runner() -> T:
        store = JsonDocumentStore(config.store.path)
        session = OrderingSession(store, config)
        await session.open([collection_type])
        try:
            return await action(session)
        finally:
            session.close()

    try:
        return asyncio.run(runner())
    except StoreWriteFailed as exc:
        err_console.print(f"[red]Move failed:[/red] {exc}")
        if exc.succeeded:
            err_console.print(f"  kept writes: {', '.join(exc.succeeded)}")
        err_console.print(f"  failed: {', '.join(exc.failed)}")
        err_console.print("  Retry the move or run 'showcase repair'.")
        raise typer.Exit(code=1) from exc
    except PartialFailure as exc:
        err_console.print(f"[red]{exc}[/red]")
        err_console.print(f"  failed: {', '.join(exc.failed)}")
        raise typer.Exit(code=1) from exc
    except ShowcaseError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    collection_type: Annotated[CollectionType, typer.Argument(help="project, hackathon or blog")],
) -> None:
    """Show a collection in display order."""

    async def action(session: OrderingSession) -> list[ContentRecord]:
        return session.listing(collection_type)

    records = _run(ctx.obj, collection_type, action)
    if not records:
        console.print(f"No {collection_type.collection_name} found.")
        return
    console.print(_render(collection_type, records))


@app.command()
def move(
    ctx: typer.Context,
    collection_type: Annotated[CollectionType, typer.Argument(help="project, hackathon or blog")],
    record_id: Annotated[str, typer.Argument(help="Record id or unique id prefix")],
    direction: Annotated[Direction, typer.Argument(help="up or down")],
) -> None:
    """Swap a record with its neighbour."""

    async def action(session: OrderingSession):
        record = _resolve(session, collection_type, record_id)
        result = await session.move(collection_type, record.id, direction)
        # Pushes from the writes are still queued when refresh_after_write is off.
        return result, await session.view(collection_type).refresh()

    result, records = _run(ctx.obj, collection_type, action)
    if not result.moved:
        console.print(f"Already at the {'top' if direction == Direction.UP else 'bottom'}.")
        return
    console.print(f"Moved {result.record_id[:8]} {direction.value}.")
    console.print(_render(collection_type, records))


@app.command("init-order")
def init_order(
    ctx: typer.Context,
    collection_type: Annotated[CollectionType, typer.Argument(help="project, hackathon or blog")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
) -> None:
    """Assign order keys from creation date (oldest first).

    Meant to run once per collection, before any manual reordering.
    Running it later discards the curated order.
    """
    if not yes:
        typer.confirm(
            f"Rebuild display order of all {collection_type.collection_name} "
            "from creation date? Any manual ordering is lost.",
            abort=True,
        )

    async def action(session: OrderingSession):
        return await session.initialize_order(collection_type)

    result = _run(ctx.obj, collection_type, action)
    console.print(
        f"Initialized display order for {result.count} {collection_type.collection_name}."
    )


@app.command()
def repair(
    ctx: typer.Context,
    collection_type: Annotated[CollectionType, typer.Argument(help="project, hackathon or blog")],
) -> None:
    """Re-key a collection densely, keeping its current display order."""

    async def action(session: OrderingSession):
        return await session.repair_order(collection_type)

    result = _run(ctx.obj, collection_type, action)
    console.print(
        f"Repaired {collection_type.collection_name}: rewrote {result.count} of {result.total}."
    )


@app.command()
def check(
    ctx: typer.Context,
    collection_type: Annotated[CollectionType, typer.Argument(help="project, hackathon or blog")],
) -> None:
    """Report duplicate keys, gaps and un-keyed records."""

    async def action(session: OrderingSession):
        return session.key_space(collection_type), session.needs_initialization(collection_type)

    report, needs_init = _run(ctx.obj, collection_type, action)
    if needs_init:
        console.print("No order keys yet; run 'showcase init-order'.")
        return
    if report.is_dense:
        console.print(f"{report.total} records, keys 0..{report.total - 1}, no issues.")
        return
    for key, ids in report.duplicates.items():
        console.print(f"Duplicate key {key}: {', '.join(i[:8] for i in ids)}")
    if report.gaps:
        console.print(f"Missing keys: {', '.join(str(g) for g in report.gaps)}")
    if report.unkeyed:
        console.print(f"Un-keyed: {', '.join(i[:8] for i in report.unkeyed)}")
    console.print("Run 'showcase repair' to re-key.")
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
