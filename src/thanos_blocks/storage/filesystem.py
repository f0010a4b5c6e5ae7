"""
Bucket backed by a local directory.

Useful for development, single-node setups and tests. Keys map to paths below
the root directory; objects are written atomically (temp file + rename) and
empty parent directories are pruned on delete so that a deleted prefix
disappears from listings, as it would in an object store.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, Iterator, Union

from ..path_safety import safe_key, safe_prefix
from .base import DIR_DELIMITER, Bucket
from .errors import BucketError, ObjectNotFoundError

__all__ = ["FilesystemBucket"]

logger = logging.getLogger(__name__)

# Temp files live next to their target; listings skip them.
_TMP_PREFIX = ".tb.tmp."


class FilesystemBucket(Bucket):
    """Bucket whose objects are files below a root directory."""

    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root).resolve()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BucketError(f"create bucket root {self._root}: {e}") from e
        logger.debug(f"Filesystem bucket rooted at {self._root}")

    @property
    def name(self) -> str:
        return f"file://{self._root.as_posix()}"

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        return self._root.joinpath(*safe_key(key).split("/"))

    def iter(self, prefix: str) -> Iterator[str]:
        prefix = safe_prefix(prefix)
        directory = self._root.joinpath(*prefix.split("/")) if prefix else self._root
        if not directory.is_dir():
            return
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise BucketError(f"list {self.name}:{prefix}: {e}") from e
        for entry in entries:
            if entry.name.startswith(_TMP_PREFIX):
                continue
            key = f"{prefix}/{entry.name}" if prefix else entry.name
            if entry.is_dir():
                yield key + DIR_DELIMITER
            else:
                yield key

    def get(self, key: str) -> IO[bytes]:
        path = self._path(key)
        try:
            return open(path, "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ObjectNotFoundError(f"get {self.name}:{key}: not found") from e
        except OSError as e:
            raise BucketError(f"get {self.name}:{key}: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def upload(self, key: str, data: IO[bytes]) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=_TMP_PREFIX, dir=path.parent)
        except OSError as e:
            raise BucketError(f"upload {self.name}:{key}: {e}") from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(data, out)
                out.flush()
                os.fsync(out.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            raise BucketError(f"upload {self.name}:{key}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ObjectNotFoundError(f"delete {self.name}:{key}: not found") from e
        except OSError as e:
            raise BucketError(f"delete {self.name}:{key}: {e}") from e
        self._prune_empty_parents(path.parent)

    def _prune_empty_parents(self, directory: Path) -> None:
        while directory != self._root and self._root in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                # Not empty (or already gone): stop pruning.
                return
            directory = directory.parent
