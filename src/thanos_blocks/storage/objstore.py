"""
Recursive transfer helpers on top of the Bucket protocol.

Object stores have no directories, only keys. These helpers map a local
directory tree onto keys under a prefix and back. Each one checks its
TransferContext before every object operation so a transfer can be aborted
between objects.
"""
from __future__ import annotations

import logging
import os
import posixpath
import shutil
import tempfile
from pathlib import Path
from typing import Union

from ..path_safety import safe_key, safe_name, safe_prefix
from .base import DIR_DELIMITER, Bucket
from .context import TransferContext

__all__ = ["upload_file", "upload_dir", "download_file", "download_dir", "delete_dir"]

logger = logging.getLogger(__name__)

# Streaming I/O chunk size for downloads
CHUNK_SIZE = 1024 * 1024  # 1 MiB

PathLike = Union[str, Path]


def upload_file(ctx: TransferContext, bkt: Bucket, src: PathLike, dst_key: str) -> None:
    """
    Upload a local file to dst_key.

    Raises:
        TransferCancelled: If ctx is done
        OSError: If the local file can't be read
        BucketError: If the upload fails
    """
    dst_key = safe_key(dst_key)
    ctx.raise_if_cancelled(f"upload {dst_key}")
    with open(src, "rb") as f:
        bkt.upload(dst_key, f)
    logger.debug(f"Uploaded {src} to {bkt.name}:{dst_key}")


def upload_dir(ctx: TransferContext, bkt: Bucket, src_dir: PathLike, dst_prefix: str) -> int:
    """
    Upload every file below src_dir to keys under dst_prefix.

    Files are uploaded in sorted path order. Empty directories are not
    represented in the bucket.

    Returns:
        Number of uploaded files

    Raises:
        NotADirectoryError: If src_dir is not a directory
        TransferCancelled: If ctx is done
        BucketError: If an upload fails
    """
    src_dir = Path(src_dir)
    dst_prefix = safe_key(dst_prefix.strip("/"))
    if not src_dir.is_dir():
        raise NotADirectoryError(f"upload dir {src_dir}: not a directory")

    count = 0
    for path in sorted(src_dir.rglob("*")):
        if path.is_dir():
            continue
        rel = path.relative_to(src_dir).as_posix()
        upload_file(ctx, bkt, path, posixpath.join(dst_prefix, rel))
        count += 1
    return count


def download_file(ctx: TransferContext, bkt: Bucket, src_key: str, dst: PathLike) -> None:
    """
    Download an object to a local file.

    The content is streamed into a temporary sibling and renamed into place,
    so dst never holds a partial object.

    Raises:
        TransferCancelled: If ctx is done
        ObjectNotFoundError: If the object does not exist
        BucketError, OSError: If the transfer fails
    """
    src_key = safe_key(src_key)
    dst = Path(dst)
    ctx.raise_if_cancelled(f"download {src_key}")

    dst.parent.mkdir(parents=True, exist_ok=True)
    with bkt.get(src_key) as reader:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{dst.name}.", suffix=".tmp", dir=dst.parent)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(reader, out, CHUNK_SIZE)
            os.replace(tmp_path, dst)
        except Exception:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            raise
    logger.debug(f"Downloaded {bkt.name}:{src_key} to {dst}")


def download_dir(ctx: TransferContext, bkt: Bucket, src_prefix: str, dst_dir: PathLike) -> int:
    """
    Download every object under src_prefix into dst_dir, recreating nested prefixes.

    Returns:
        Number of downloaded files

    Raises:
        ValueError: If a listed key has an unsafe name
        TransferCancelled: If ctx is done
        BucketError, OSError: If the transfer fails
    """
    src_prefix = safe_key(src_prefix.strip("/"))
    dst_dir = Path(dst_dir)
    dst_dir.mkdir(parents=True, exist_ok=True)

    count = 0
    for key in list(bkt.iter(src_prefix)):
        name = safe_name(posixpath.basename(key.rstrip(DIR_DELIMITER)))
        if key.endswith(DIR_DELIMITER):
            count += download_dir(ctx, bkt, key, dst_dir / name)
        else:
            download_file(ctx, bkt, key, dst_dir / name)
            count += 1
    return count


def delete_dir(ctx: TransferContext, bkt: Bucket, prefix: str) -> int:
    """
    Delete every object under prefix, recursively.

    Refuses an empty prefix: deleting "" would wipe the whole bucket.

    Returns:
        Number of deleted objects

    Raises:
        ValueError: If prefix is empty or unsafe
        TransferCancelled: If ctx is done
        BucketError: If listing or deleting fails
    """
    if not safe_prefix(prefix):
        raise ValueError(f"refusing to delete bucket root of {bkt.name} (prefix {prefix!r})")
    prefix = safe_prefix(prefix)

    count = 0
    for key in list(bkt.iter(prefix)):
        if key.endswith(DIR_DELIMITER):
            count += delete_dir(ctx, bkt, key)
            continue
        ctx.raise_if_cancelled(f"delete {key}")
        bkt.delete(key)
        logger.debug(f"Deleted {bkt.name}:{key}")
        count += 1
    return count
