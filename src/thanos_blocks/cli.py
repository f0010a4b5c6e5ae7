"""
thanos-blocks CLI

Implements block lifecycle verbs on top of the Operations facade:
- upload: Upload a finalized block directory to the bucket
- download: Download a block from the bucket
- meta: Show a block's metadata straight from the bucket
- delete: Delete a block from the bucket
- ls: List blocks in the bucket, marking incomplete uploads
- finalize: Attach external labels and resolution to a local block
- inspect: Show a local block's metadata
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer

from .cli_context import CLIContext
from .operations import Operations, OpsConfig, run_and_exit
from .operations.printers import (
    print_block_list, print_delete_summary, print_download_summary, print_meta,
    print_upload_summary
)

app = typer.Typer(name="thanos-blocks", help="Move TSDB blocks between local disk and object storage")

_BUCKET_HELP = "Bucket URL (file:///path or az://container)"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_labels(pairs: List[str]) -> Dict[str, str]:
    """
    Parse ``name=value`` label arguments.

    Raises:
        ValueError: If an argument has no '=' or an empty name, or a name repeats
    """
    labels: Dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Invalid label {pair!r}, expected name=value")
        if name in labels:
            raise ValueError(f"Duplicate label {name!r}")
        labels[name] = value
    return labels


def _remote_ops(bucket_url: Optional[str], timeout: Optional[float]) -> Operations:
    context = CLIContext.from_env(bucket_url)
    return Operations(config=OpsConfig(timeout_s=timeout), bucket=context.bucket)


@app.command()
def upload(
    block_dir: Path = typer.Argument(..., help="Block directory named after the block ID"),
    bucket: Optional[str] = typer.Option(None, "--bucket", envvar="THANOS_BLOCKS_BUCKET_URL", help=_BUCKET_HELP),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Abort after this many seconds"),
) -> None:
    """Upload a finalized block directory."""

    def _upload() -> None:
        ops = _remote_ops(bucket, timeout)
        block_id = ops.upload(block_dir)
        print_upload_summary(str(block_id), ops.bucket.name)

    run_and_exit(_upload)


@app.command()
def download(
    block_id: str = typer.Argument(..., help="Block ID"),
    dest: Path = typer.Argument(..., help="Data directory; the block lands in DEST/<block id>"),
    bucket: Optional[str] = typer.Option(None, "--bucket", envvar="THANOS_BLOCKS_BUCKET_URL", help=_BUCKET_HELP),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Abort after this many seconds"),
) -> None:
    """Download a block."""

    def _download() -> None:
        ops = _remote_ops(bucket, timeout)
        path = ops.download(block_id, dest)
        print_download_summary(path.name, path)

    run_and_exit(_download)


@app.command()
def meta(
    block_id: str = typer.Argument(..., help="Block ID"),
    bucket: Optional[str] = typer.Option(None, "--bucket", envvar="THANOS_BLOCKS_BUCKET_URL", help=_BUCKET_HELP),
    raw: bool = typer.Option(False, "--raw", help="Also print the meta.json document"),
) -> None:
    """Show metadata of an uploaded block without downloading it."""

    def _meta() -> None:
        ops = _remote_ops(bucket, None)
        print_meta(ops.meta(block_id), verbose=raw)

    run_and_exit(_meta)


@app.command()
def delete(
    block_id: str = typer.Argument(..., help="Block ID"),
    bucket: Optional[str] = typer.Option(None, "--bucket", envvar="THANOS_BLOCKS_BUCKET_URL", help=_BUCKET_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a block from the bucket."""

    if not yes:
        typer.confirm(f"Delete block {block_id}?", abort=True)

    def _delete() -> None:
        ops = _remote_ops(bucket, None)
        count = ops.delete(block_id)
        print_delete_summary(block_id, count, ops.bucket.name)

    run_and_exit(_delete)


@app.command("ls")
def list_blocks(
    bucket: Optional[str] = typer.Option(None, "--bucket", envvar="THANOS_BLOCKS_BUCKET_URL", help=_BUCKET_HELP),
) -> None:
    """List blocks in the bucket."""

    def _ls() -> None:
        ops = _remote_ops(bucket, None)
        print_block_list(ops.list_blocks(), ops.bucket.name)

    run_and_exit(_ls)


@app.command()
def finalize(
    block_dir: Path = typer.Argument(..., help="Block directory"),
    label: List[str] = typer.Option(..., "--label", "-l", help="External label as name=value (repeatable)"),
    resolution: int = typer.Option(0, "--resolution", min=0, help="Downsampling resolution in milliseconds"),
    source: Optional[Path] = typer.Option(None, "--source", help="Block this one was downsampled from"),
) -> None:
    """Attach external labels and resolution to a local block."""

    def _finalize() -> None:
        ops = Operations(config=OpsConfig())
        print_meta(ops.finalize(block_dir, _parse_labels(label), resolution, source))

    run_and_exit(_finalize)


@app.command()
def inspect(
    block_dir: Path = typer.Argument(..., help="Block directory"),
    raw: bool = typer.Option(False, "--raw", help="Also print the meta.json document"),
) -> None:
    """Show metadata of a local block."""

    def _inspect() -> None:
        ops = Operations(config=OpsConfig())
        print_meta(ops.inspect(block_dir), verbose=raw)

    run_and_exit(_inspect)


if __name__ == "__main__":
    app()
