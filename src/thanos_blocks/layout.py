"""
On-disk and in-bucket naming of block artifacts.

A block lives in a directory named after its ID, both locally and under the
bucket prefix ``<id>/``. The names of the files inside it are configuration,
not global state: every operation takes a ``layout`` and defaults to
``DEFAULT_LAYOUT``.
"""
from __future__ import annotations

import posixpath
from dataclasses import dataclass

from ulid import ULID

__all__ = ["BlockLayout", "DEFAULT_LAYOUT", "META_VERSION"]

# The only metadata format version this package reads or writes.
META_VERSION = 1


@dataclass(frozen=True)
class BlockLayout:
    """
    Names of the artifacts that make up a block.

    Attributes:
        metadata_filename: JSON metadata descriptor, uploaded last
        index_filename: series index file
        chunks_dirname: directory of compressed sample chunks
        tombstones_filename: local-only deletion markers, removed by finalize
        debug_meta_prefix: bucket prefix holding a metadata copy per upload attempt
    """
    metadata_filename: str = "meta.json"
    index_filename: str = "index"
    chunks_dirname: str = "chunks"
    tombstones_filename: str = "tombstones"
    debug_meta_prefix: str = "debug/metas"

    def __post_init__(self):
        for field_name in ("metadata_filename", "index_filename", "chunks_dirname",
                           "tombstones_filename"):
            value = getattr(self, field_name)
            if not value or "/" in value or "\\" in value or value in (".", ".."):
                raise ValueError(f"{field_name} must be a plain file name, got {value!r}")
        if not self.debug_meta_prefix.strip("/"):
            raise ValueError("debug_meta_prefix must not be empty")

    def meta_key(self, block_id: ULID) -> str:
        return posixpath.join(str(block_id), self.metadata_filename)

    def index_key(self, block_id: ULID) -> str:
        return posixpath.join(str(block_id), self.index_filename)

    def chunks_prefix(self, block_id: ULID) -> str:
        return posixpath.join(str(block_id), self.chunks_dirname)

    def debug_meta_key(self, block_id: ULID) -> str:
        return posixpath.join(self.debug_meta_prefix.strip("/"), f"{block_id}.json")


DEFAULT_LAYOUT = BlockLayout()
