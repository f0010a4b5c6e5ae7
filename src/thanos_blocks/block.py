"""
Block transfer between a local directory and a bucket.

Upload order is what makes partially uploaded blocks detectable without
locks: chunks and index go first, ``meta.json`` goes last. A bucket prefix
named after a block ID that has no ``meta.json`` is an upload in progress (or
an abandoned one) and must not be read as a block. If any step fails, the
block prefix is deleted again before the error is raised.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, NoReturn, Union

from ulid import ULID

from .errors import (
    BlockDownloadError,
    BlockUploadError,
    BlockValidationError,
    MetaDecodeError,
    MetaNotFoundError,
    PartialBlockError,
)
from .ids import BlockID, is_block_dir, parse_block_id
from .layout import DEFAULT_LAYOUT, BlockLayout
from .metadata import read_meta_file
from .models import BlockMeta, decode_meta
from .storage.base import DIR_DELIMITER, Bucket
from .storage.context import TransferContext
from .storage.errors import ObjectNotFoundError
from .storage.objstore import delete_dir, download_dir, upload_dir, upload_file

__all__ = [
    "upload",
    "download",
    "download_meta",
    "delete",
    "is_block_dir",
    "iter_block_ids",
    "is_upload_complete",
]

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def download(ctx: TransferContext, bkt: Bucket, block_id: BlockID, dst: PathLike, *,
             layout: BlockLayout = DEFAULT_LAYOUT) -> Path:
    """
    Download all objects of a block into dst.

    Empty directories can't exist in a bucket, so a block without chunks
    arrives without a chunks directory; it is created here so the result is
    always a complete block directory. A failed download leaves whatever was
    fetched in dst; the caller owns dst.

    Args:
        ctx: Transfer context
        bkt: Source bucket
        block_id: Block to fetch
        dst: Destination directory, usually ``<data dir>/<block id>``
        layout: Artifact names

    Returns:
        dst as a Path

    Raises:
        BlockValidationError: If block_id is not a valid ID
        BlockDownloadError: If fetching or creating the chunks directory fails
    """
    block_id = parse_block_id(block_id)
    dst = Path(dst)

    try:
        count = download_dir(ctx, bkt, str(block_id), dst)
    except (OSError, ValueError) as e:
        raise BlockDownloadError(f"download block {block_id} from {bkt.name}: {e}") from e

    chunks_dir = dst / layout.chunks_dirname
    try:
        chunks_dir.mkdir(exist_ok=True)
    except OSError as e:
        raise BlockDownloadError(f"create {chunks_dir}: {e}") from e

    logger.info(f"Downloaded block {block_id} ({count} objects) to {dst}")
    return dst


def upload(ctx: TransferContext, bkt: Bucket, block_dir: PathLike, *,
           layout: BlockLayout = DEFAULT_LAYOUT) -> ULID:
    """
    Upload a finalized block directory whose name is the block ID.

    Steps, in order:

    1. copy meta.json to the debug history prefix
    2. upload chunks
    3. upload index
    4. upload meta.json, which publishes the block

    A failure in steps 2-4 deletes the block prefix on a background context
    (the delete runs even if ctx was cancelled) before the error is raised.

    Args:
        ctx: Transfer context for the upload itself
        bkt: Destination bucket
        block_dir: Local block directory
        layout: Artifact names

    Returns:
        ID of the uploaded block

    Raises:
        BlockValidationError: If block_dir is not a block directory, its
            metadata can't be read or it has no external labels; nothing was
            written to the bucket
        BlockUploadError: If a transfer step failed; the partial block was removed
        PartialBlockError: If a transfer step failed and removing the partial
            block failed too
    """
    block_dir = Path(block_dir)
    if not block_dir.exists():
        raise BlockValidationError(f"stat {block_dir}: no such file or directory")
    if not block_dir.is_dir():
        raise BlockValidationError(f"{block_dir} is not a directory")

    block_id, ok = is_block_dir(block_dir)
    if not ok:
        raise BlockValidationError(f"not a block dir: {block_dir.name!r} is not a block ID")

    try:
        meta = read_meta_file(block_dir, layout=layout)
    except (MetaNotFoundError, MetaDecodeError, OSError) as e:
        raise BlockValidationError(f"read meta of block {block_id}: {e}") from e

    if not meta.thanos.labels:
        raise BlockValidationError(f"empty external labels are not allowed for block {block_id}")

    meta_path = block_dir / layout.metadata_filename

    try:
        upload_file(ctx, bkt, meta_path, layout.debug_meta_key(block_id))
    except Exception as e:
        raise BlockUploadError(f"upload meta file of block {block_id} to debug dir: {e}") from e

    steps = (
        ("upload chunks", lambda: upload_dir(ctx, bkt, block_dir / layout.chunks_dirname,
                                             layout.chunks_prefix(block_id))),
        ("upload index", lambda: upload_file(ctx, bkt, block_dir / layout.index_filename,
                                             layout.index_key(block_id))),
        # meta.json always goes last: a block prefix without it is a pending upload.
        ("upload meta file", lambda: upload_file(ctx, bkt, meta_path, layout.meta_key(block_id))),
    )
    for step, run in steps:
        try:
            run()
        except Exception as e:
            _clean_up(bkt, block_id, step, e)

    logger.info(f"Uploaded block {block_id} to {bkt.name} "
                f"(labels {meta.thanos.labels}, resolution {meta.thanos.downsample.resolution})")
    return block_id


def _clean_up(bkt: Bucket, block_id: ULID, step: str, err: Exception) -> NoReturn:
    """Delete a partially uploaded block, then raise the upload error."""
    logger.warning(f"{step} failed for block {block_id}, deleting partial upload: {err}")
    try:
        delete(TransferContext.background(), bkt, block_id)
    except Exception as clean_err:
        logger.error(f"Failed to clean up block {block_id} after upload issue: {clean_err}")
        raise PartialBlockError(
            f"{step} for block {block_id}: {err}; failed to clean block after upload issue, "
            f"partial block may remain in {bkt.name}: {clean_err}",
            block_id=str(block_id),
            cleanup_error=clean_err,
        ) from err
    raise BlockUploadError(f"{step} for block {block_id}: {err}") from err


def delete(ctx: TransferContext, bkt: Bucket, block_id: BlockID) -> int:
    """
    Delete all objects of a block.

    The ID is parsed before touching the bucket, so an empty or malformed
    value can never widen the delete to the bucket root. Prefer this over
    calling delete_dir directly.

    Returns:
        Number of deleted objects

    Raises:
        BlockValidationError: If block_id is not a valid ID
        BucketError: If listing or deleting fails
    """
    block_id = parse_block_id(block_id)
    count = delete_dir(ctx, bkt, str(block_id))
    logger.info(f"Deleted block {block_id} ({count} objects) from {bkt.name}")
    return count


def download_meta(ctx: TransferContext, bkt: Bucket, block_id: BlockID, *,
                  layout: BlockLayout = DEFAULT_LAYOUT) -> BlockMeta:
    """
    Fetch only the metadata of a block.

    Raises:
        BlockValidationError: If block_id is not a valid ID
        MetaNotFoundError: If the block has no meta.json (not published)
        MetaDecodeError: If meta.json is malformed
        BlockDownloadError: For other bucket failures
    """
    block_id = parse_block_id(block_id)
    key = layout.meta_key(block_id)
    ctx.raise_if_cancelled(f"get {key}")

    try:
        with bkt.get(key) as reader:
            raw = reader.read()
    except ObjectNotFoundError as e:
        raise MetaNotFoundError(f"{layout.metadata_filename} bkt get for {block_id}: {e}") from e
    except OSError as e:
        raise BlockDownloadError(f"{layout.metadata_filename} bkt get for {block_id}: {e}") from e

    return decode_meta(raw, source=f"{layout.metadata_filename} for block {block_id}", check_version=False)


def iter_block_ids(ctx: TransferContext, bkt: Bucket) -> Iterator[ULID]:
    """
    Yield the IDs of all block prefixes at the bucket root.

    Yields pending uploads too; use is_upload_complete() to tell them apart.
    Other top-level entries (e.g. the debug prefix) are skipped.
    """
    ctx.raise_if_cancelled("list blocks")
    for key in bkt.iter(""):
        if not key.endswith(DIR_DELIMITER):
            continue
        block_id, ok = is_block_dir(key)
        if ok:
            yield block_id


def is_upload_complete(ctx: TransferContext, bkt: Bucket, block_id: BlockID, *,
                       layout: BlockLayout = DEFAULT_LAYOUT) -> bool:
    """True once the block's meta.json exists, i.e. the block is published."""
    block_id = parse_block_id(block_id)
    key = layout.meta_key(block_id)
    ctx.raise_if_cancelled(f"exists {key}")
    return bkt.exists(key)
