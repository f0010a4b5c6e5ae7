"""
Local metadata store.

Reads, atomically writes and finalizes the ``meta.json`` of a block directory.
Writes go to a temporary sibling that is fsynced and renamed over the
canonical path, followed by an fsync of the directory, so a reader sees either
the old or the new file and never a truncated one.
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Mapping, Optional, Union

from pydantic import ValidationError

from .errors import BlockValidationError, MetaNotFoundError
from .layout import DEFAULT_LAYOUT, BlockLayout
from .models import BlockMeta, DownsampleMeta, ThanosMeta, TSDBMeta, decode_meta, encode_meta

__all__ = ["write_meta_file", "read_meta_file", "finalize"]

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def write_meta_file(block_dir: PathLike, meta: BlockMeta, *,
                    layout: BlockLayout = DEFAULT_LAYOUT) -> Path:
    """
    Atomically write metadata to ``<block_dir>/meta.json``.

    Args:
        block_dir: Existing block directory
        meta: Metadata to write
        layout: Artifact names

    Returns:
        Path of the written metadata file

    Raises:
        OSError: If any file operation fails; the canonical file is left untouched
    """
    path = Path(block_dir) / layout.metadata_filename
    tmp_path = path.with_name(f"{path.name}.tmp")
    payload = encode_meta(meta)

    try:
        with open(tmp_path, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        _replace_file(tmp_path, path)
    except Exception:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise

    logger.debug(f"Wrote {path} ({len(payload)} bytes)")
    return path


def read_meta_file(block_dir: PathLike, *, layout: BlockLayout = DEFAULT_LAYOUT) -> BlockMeta:
    """
    Read ``<block_dir>/meta.json``.

    Raises:
        MetaNotFoundError: If the file does not exist
        MetaVersionError: If the file declares an unsupported version
        MetaDecodeError: If the file is malformed
        OSError: For other read failures
    """
    path = Path(block_dir) / layout.metadata_filename
    try:
        raw = path.read_bytes()
    except FileNotFoundError as e:
        raise MetaNotFoundError(f"read meta file {path}: not found") from e
    return decode_meta(raw, source=str(path))


def finalize(block_dir: PathLike, ext_labels: Mapping[str, str], resolution: int,
             downsampled_meta: Optional[TSDBMeta] = None, *,
             layout: BlockLayout = DEFAULT_LAYOUT) -> BlockMeta:
    """
    Attach Thanos metadata to a freshly written block.

    Every component that produces a block calls this before upload; it is the
    one place external labels get attached. It also removes the tombstones
    file, which only matters to the local TSDB.

    Args:
        block_dir: Block directory holding a TSDB-written meta.json
        ext_labels: External labels of the producer
        resolution: Downsampling resolution, 0 for raw blocks
        downsampled_meta: Metadata of the block this one was downsampled from;
            its compaction lineage replaces the new block's
        layout: Artifact names

    Returns:
        The metadata that was written

    Raises:
        BlockValidationError: If labels or resolution are invalid; nothing is written
        MetaNotFoundError, MetaDecodeError: If existing metadata can't be read
        OSError: If writing metadata or removing tombstones fails
    """
    block_dir = Path(block_dir)
    try:
        thanos = ThanosMeta(labels=dict(ext_labels), downsample=DownsampleMeta(resolution=resolution))
    except ValidationError as e:
        raise BlockValidationError(f"finalize {block_dir}: invalid labels or resolution: {e}") from e

    meta = read_meta_file(block_dir, layout=layout)
    tsdb = meta.tsdb
    if downsampled_meta is not None:
        # Keep the source's compaction history instead of starting a new one.
        tsdb = tsdb.model_copy(update={"compaction": downsampled_meta.compaction.model_copy(deep=True)})
    meta = meta.model_copy(update={"tsdb": tsdb, "thanos": thanos})

    write_meta_file(block_dir, meta, layout=layout)

    tombstones = block_dir / layout.tombstones_filename
    try:
        tombstones.unlink()
    except FileNotFoundError:
        logger.debug(f"No tombstones in {block_dir}")

    logger.info(f"Finalized block {meta.block_id} with labels {dict(ext_labels)} "
                f"at resolution {resolution}")
    return meta


def _replace_file(src: Path, dst: Path) -> None:
    """Rename src over dst and persist the rename by syncing the parent directory."""
    if dst.is_dir():
        shutil.rmtree(dst)
    os.replace(src, dst)
    _fsync_directory(dst.parent)


def _fsync_directory(dir_path: Path) -> None:
    if os.name == "nt":
        # Directory handles can't be fsynced on Windows; NTFS journals the rename.
        return
    fd = os.open(str(dir_path), os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
    try:
        os.fsync(fd)
    finally:
        os.close(fd)
