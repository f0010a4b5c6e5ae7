"""
Human-readable output formatting.

Centralizes all CLI output formatting while keeping CLI commands thin and
focused. Tables go to stdout, errors to stderr.
"""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from ulid import ULID

from ..models import BlockMeta, encode_meta
from .facade import BlockListing

_console = Console()
_err_console = Console(stderr=True)


def print_meta(meta: BlockMeta, verbose: bool = False) -> None:
    """
    Print a summary of block metadata.

    Args:
        meta: Metadata to display
        verbose: Also print the raw meta.json document
    """
    tsdb = meta.tsdb
    table = Table(title=f"Block {tsdb.ulid}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Version", str(meta.version))
    table.add_row("Time range", f"{_format_ms(tsdb.min_time)} - {_format_ms(tsdb.max_time)}")
    table.add_row("Samples", f"{tsdb.stats.num_samples:,}")
    table.add_row("Series", f"{tsdb.stats.num_series:,}")
    table.add_row("Chunks", f"{tsdb.stats.num_chunks:,}")
    table.add_row("Compaction level", str(tsdb.compaction.level))
    table.add_row("Sources", str(len(tsdb.compaction.sources)))
    table.add_row("Resolution", _format_resolution(meta.thanos.downsample.resolution))
    labels = ", ".join(f"{k}={v}" for k, v in sorted(meta.thanos.labels.items()))
    table.add_row("Labels", labels or "[red]none[/]")
    _console.print(table)

    if verbose:
        _console.print_json(encode_meta(meta).decode("utf-8"))


def print_block_list(blocks: List[BlockListing], bucket_name: str) -> None:
    """Print blocks found in a bucket, marking pending uploads."""
    if not blocks:
        _console.print(f"[dim]No blocks in {bucket_name}[/]")
        return

    table = Table(title=f"Blocks in {bucket_name}")
    table.add_column("Block", style="cyan")
    table.add_column("Created")
    table.add_column("State")
    for listing in blocks:
        state = "published" if listing.complete else "[yellow]incomplete[/]"
        table.add_row(str(listing.block_id), _format_ulid_time(listing.block_id), state)
    _console.print(table)


def print_upload_summary(block_id: str, bucket_name: str) -> None:
    _console.print(f"Uploaded block [cyan]{block_id}[/] to {bucket_name}")


def print_download_summary(block_id: str, dest: Path) -> None:
    _console.print(f"Downloaded block [cyan]{block_id}[/] to {dest}")


def print_delete_summary(block_id: str, count: int, bucket_name: str) -> None:
    _console.print(f"Deleted block [cyan]{block_id}[/] ({count} objects) from {bucket_name}")


def print_error(exc: BaseException) -> None:
    _err_console.print(f"[bold red]Error:[/] {escape(str(exc))}", highlight=False)


def _format_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _format_ulid_time(block_id: ULID) -> str:
    return block_id.datetime.strftime("%Y-%m-%dT%H:%M:%SZ")


def _format_resolution(resolution: int) -> str:
    """Format a resolution in milliseconds; 0 means raw data."""
    if resolution == 0:
        return "raw"
    for unit, size in (("h", 3_600_000), ("m", 60_000), ("s", 1000)):
        if resolution % size == 0:
            return f"{resolution // size}{unit}"
    return f"{resolution}ms"
