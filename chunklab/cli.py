"""
Command-line interface for chunklab.

This module provides a Click-based CLI for uploading documents, building
collections with several chunking strategies, and comparing retrieval
methods over them.

Usage:
    # From project root
    python -m chunklab.cli --help

    # Or via the installed entry point
    chunklab add notes.md report.txt
    chunklab process -m recursive -m sentence
    chunklab search "What drove the budget cuts?" -r dense -r hybrid -k 3

Commands:
    strategies              List chunking strategies
    add FILE...             Add files to the workspace
    files / remove          List or remove files
    process                 Chunk and embed files into collections
    collections / delete    List or delete collections
    clear                   Delete every collection
    search QUERY            Rank chunks across collections
    experiments             Show the experiment history
"""

import logging
import time
from pathlib import Path

import click
from tqdm import tqdm

from .config import default_methods, load_config, params_from_config
from .errors import CAUSE_MESSAGES, ChunklabError, EmbeddingError, format_technical
from .pipeline import TaskEvent, TaskStatus
from .retrieval import RetrievalMethod
from .strategies import list_strategies
from .workspace import Workspace, open_workspace

PREVIEW_CHARS = 200


def _workspace(ctx: click.Context) -> Workspace:
    """Open the workspace for the current invocation."""
    try:
        return open_workspace(ctx.obj["config"])
    except ChunklabError as e:
        raise _click_error(ctx, e) from e


def _click_error(ctx: click.Context, e: Exception) -> click.ClickException:
    """Human message always; technical detail with --verbose."""
    message = CAUSE_MESSAGES[e.cause] if isinstance(e, EmbeddingError) else str(e)
    if ctx.obj.get("verbose"):
        message = f"{message}\n\n{format_technical(e)}"
    return click.ClickException(message)


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML config file (default: ./chunklab.yaml or ~/.chunklab/config.yaml)",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """
    Chunking and retrieval experiments CLI.

    Build collections from your documents with different chunking
    strategies, then compare how dense, sparse and hybrid retrieval
    rank their chunks.

    \b
    Examples:
        # Add documents and chunk them two ways
        chunklab add notes.md
        chunklab process -m recursive -m token

        # Compare retrieval methods across every collection
        chunklab search "quarterly revenue" -r dense -r sparse -r hybrid
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not load config: {e}") from e
    ctx.obj = {"config": config, "verbose": verbose}


@main.command()
def strategies() -> None:
    """List available chunking strategies."""
    click.echo("\nChunking Strategies")
    click.echo("=" * 50)
    for strategy in list_strategies():
        click.echo(f"\n{strategy['name']}")
        click.echo(f"  {strategy['description']}")
    click.echo("\n" + "=" * 50)


# ----------------------------------------------------------------------
# Files
# ----------------------------------------------------------------------

@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def add(ctx: click.Context, paths: tuple[str, ...]) -> None:
    """Add text, markdown, csv or pdf files to the workspace."""
    workspace = _workspace(ctx)
    try:
        added = workspace.add_files(paths)
    except ChunklabError as e:
        raise _click_error(ctx, e) from e
    for source_file in added:
        click.echo(f"Added {source_file.id}  {source_file.name} ({source_file.size} bytes)")


@main.command()
@click.pass_context
def files(ctx: click.Context) -> None:
    """List files in the workspace."""
    workspace = _workspace(ctx)
    if not workspace.files:
        click.echo("No files. Add some with: chunklab add FILE...")
        return
    for source_file in workspace.files:
        click.echo(
            f"{source_file.id}  {source_file.name}  "
            f"[{source_file.type}, {source_file.size} bytes, {source_file.uploaded_at}]"
        )


@main.command()
@click.argument("file_id")
@click.pass_context
def remove(ctx: click.Context, file_id: str) -> None:
    """Remove a file (its collections are kept)."""
    workspace = _workspace(ctx)
    if workspace.get_file(file_id) is None:
        raise click.ClickException(f"File '{file_id}' not found.")
    try:
        workspace.remove_file(file_id)
    except ChunklabError as e:
        raise _click_error(ctx, e) from e
    click.echo(f"Removed {file_id}")


# ----------------------------------------------------------------------
# Processing
# ----------------------------------------------------------------------

@main.command()
@click.option("--file", "-f", "file_ids", multiple=True, help="File ID to process (default: all)")
@click.option("--method", "-m", "methods", multiple=True, help="Chunking method (repeatable)")
@click.pass_context
def process(ctx: click.Context, file_ids: tuple[str, ...], methods: tuple[str, ...]) -> None:
    """Chunk and embed files into one collection per (file, method)."""
    config = ctx.obj["config"]
    workspace = _workspace(ctx)

    selected = list(file_ids) or [f.id for f in workspace.files]
    try:
        method_list = list(methods) or default_methods(config)
        params = params_from_config(config)
    except ValueError as e:
        raise click.ClickException(f"Invalid chunking config: {e}") from e

    click.echo(f"\n{'=' * 50}")
    click.echo(f"Processing {len(selected)} file(s) with: {', '.join(method_list)}")
    click.echo(f"{'=' * 50}\n")

    progress = tqdm(total=len(selected) * len(method_list), desc="Tasks")

    def on_event(event: TaskEvent) -> None:
        if event.task.status.is_terminal:
            progress.update(1)
            progress.set_postfix_str(f"{event.task.file_name}/{event.task.method.value}")

    workspace.add_listener(on_event)
    try:
        result = workspace.process(selected, method_list, params)
    except ChunklabError as e:
        raise _click_error(ctx, e) from e
    finally:
        progress.close()

    click.echo("\nTasks:")
    for task in result.tasks:
        line = f"  {task.task_id}: {task.status.value}"
        if task.status is TaskStatus.ERROR and task.error is not None:
            line += f" ({task.error.message})"
        click.echo(line)
        if ctx.obj["verbose"] and task.error is not None and task.error.technical:
            click.echo(task.error.technical, err=True)

    for collection in result.collections:
        click.echo(f"  + {collection.id}  {collection.name} ({collection.chunk_count} chunks)")

    if result.global_error is not None:
        message = result.global_error.message
        if ctx.obj["verbose"] and result.global_error.technical:
            message += f"\n\n{result.global_error.technical}"
        raise click.ClickException(message)
    if result.cancelled:
        click.echo("\nBatch cancelled; no experiment recorded.")
    elif result.experiment is not None:
        click.echo(
            f"\nExperiment {result.experiment.id}: "
            f"{len(result.finished)} finished, {len(result.failed)} failed "
            f"in {result.experiment.processing_time_ms} ms"
        )


# ----------------------------------------------------------------------
# Collections
# ----------------------------------------------------------------------

@main.command()
@click.pass_context
def collections(ctx: click.Context) -> None:
    """List collections."""
    workspace = _workspace(ctx)
    if not workspace.collections:
        click.echo("No collections. Build some with: chunklab process")
        return
    for collection in workspace.collections:
        click.echo(
            f"{collection.id}  {collection.name}  "
            f"[{collection.chunk_method.value}, {collection.chunk_count} chunks, "
            f"from {collection.source_file_name}]"
        )


@main.command()
@click.argument("collection_id")
@click.pass_context
def delete(ctx: click.Context, collection_id: str) -> None:
    """Delete one collection."""
    workspace = _workspace(ctx)
    if workspace.get_collection(collection_id) is None:
        raise click.ClickException(f"Collection '{collection_id}' not found.")
    try:
        workspace.delete_collection(collection_id)
    except ChunklabError as e:
        raise _click_error(ctx, e) from e
    click.echo(f"Deleted {collection_id}")


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Delete every collection."""
    workspace = _workspace(ctx)
    count = len(workspace.collections)
    if not yes:
        click.confirm(f"Delete {count} collection(s)?", abort=True)
    try:
        workspace.clear_collections()
    except ChunklabError as e:
        raise _click_error(ctx, e) from e
    click.echo(f"Deleted {count} collection(s)")


# ----------------------------------------------------------------------
# Retrieval
# ----------------------------------------------------------------------

@main.command()
@click.argument("query")
@click.option("--collection", "-c", "collection_ids", multiple=True,
              help="Collection ID to search (default: all)")
@click.option("--retrieval", "-r", "methods", multiple=True,
              type=click.Choice([m.value for m in RetrievalMethod]),
              help="Retrieval method (repeatable)")
@click.option("--top-k", "-k", type=int, default=None, help="Results per method")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    collection_ids: tuple[str, ...],
    methods: tuple[str, ...],
    top_k: int | None,
) -> None:
    """Rank chunks of the selected collections against QUERY."""
    retrieval_cfg = ctx.obj["config"].get("retrieval", {})
    workspace = _workspace(ctx)

    selected = list(collection_ids) or [c.id for c in workspace.collections]
    method_list = list(methods) or retrieval_cfg.get("methods", ["dense"])
    k = top_k if top_k is not None else retrieval_cfg.get("top_k", 5)

    start = time.perf_counter()
    try:
        results = workspace.search(query, selected, method_list, k)
    except ChunklabError as e:
        raise _click_error(ctx, e) from e
    latency_ms = (time.perf_counter() - start) * 1000

    click.echo(f"\n{len(results)} result(s) in {latency_ms:.0f} ms")
    click.echo("=" * 50)
    for rank, result in enumerate(results, 1):
        click.echo(
            f"\n#{rank}  {result.score:.3f}  {result.retrieval_method.value}  "
            f"{result.collection_name}  chunk {result.chunk.index}"
        )
        click.echo(f"  {_preview(result.chunk.text)}")


@main.command()
@click.pass_context
def experiments(ctx: click.Context) -> None:
    """Show the experiment history."""
    workspace = _workspace(ctx)
    if not workspace.experiments:
        click.echo("No experiments yet.")
        return
    for experiment in workspace.experiments:
        counts = ", ".join(f"{m.value}={n}" for m, n in experiment.chunk_counts.items())
        click.echo(f"\n{experiment.id}  {experiment.timestamp}")
        click.echo(f"  Files: {', '.join(experiment.files_processed)}")
        click.echo(f"  Methods: {', '.join(m.value for m in experiment.chunk_methods)}")
        click.echo(f"  Chunks: {counts or 'none'}")
        click.echo(f"  Time: {experiment.processing_time_ms} ms")


if __name__ == "__main__":
    main()
