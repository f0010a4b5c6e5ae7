"""
Operations Facade - Application service layer.

Provides a clean interface between CLI and the block transfer API,
centralizing command orchestration and configuration while keeping
CLI commands thin and testable.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from ulid import ULID

from .. import block as _block
from ..ids import BlockID, parse_block_id
from ..layout import DEFAULT_LAYOUT, BlockLayout
from ..metadata import finalize as _finalize, read_meta_file
from ..models import BlockMeta
from ..storage.base import Bucket
from ..storage.context import TransferContext


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes policy decisions to avoid scattered configuration.
    """
    layout: BlockLayout = field(default=DEFAULT_LAYOUT)
    timeout_s: Optional[float] = None   # Deadline per command, None for no deadline


@dataclass(frozen=True)
class BlockListing:
    """One block prefix found in a bucket."""
    block_id: ULID
    complete: bool


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. The facade holds no state besides the injected
    config and bucket; exceptions bubble up for central exit code mapping.
    """

    def __init__(self, config: OpsConfig, bucket: Optional[Bucket] = None):
        """
        Initialize Operations facade.

        Args:
            config: Configuration settings
            bucket: Bucket for transfer operations (None for local-only commands)
        """
        self.cfg = config
        self._bucket = bucket

    @property
    def bucket(self) -> Bucket:
        if self._bucket is None:
            raise ValueError("This operation requires a bucket; set THANOS_BLOCKS_BUCKET_URL or --bucket")
        return self._bucket

    def _context(self) -> TransferContext:
        return TransferContext(timeout_s=self.cfg.timeout_s)

    def upload(self, block_dir: Union[str, Path]) -> ULID:
        return _block.upload(self._context(), self.bucket, block_dir, layout=self.cfg.layout)

    def download(self, block_id: BlockID, dest: Union[str, Path]) -> Path:
        """Download into dest/<block id>."""
        block_id = parse_block_id(block_id)
        return _block.download(self._context(), self.bucket, block_id, Path(dest) / str(block_id),
                               layout=self.cfg.layout)

    def meta(self, block_id: BlockID) -> BlockMeta:
        return _block.download_meta(self._context(), self.bucket, block_id, layout=self.cfg.layout)

    def delete(self, block_id: BlockID) -> int:
        return _block.delete(self._context(), self.bucket, block_id)

    def list_blocks(self) -> List[BlockListing]:
        ctx = self._context()
        return [
            BlockListing(block_id=block_id,
                         complete=_block.is_upload_complete(ctx, self.bucket, block_id, layout=self.cfg.layout))
            for block_id in sorted(_block.iter_block_ids(ctx, self.bucket), key=str)
        ]

    def finalize(self, block_dir: Union[str, Path], labels: Dict[str, str], resolution: int,
                 source_block_dir: Optional[Union[str, Path]] = None) -> BlockMeta:
        """
        Finalize a local block.

        Args:
            block_dir: Block to finalize
            labels: External labels
            resolution: Downsampling resolution
            source_block_dir: Block this one was downsampled from, whose
                compaction lineage is copied
        """
        downsampled_meta = None
        if source_block_dir is not None:
            downsampled_meta = read_meta_file(source_block_dir, layout=self.cfg.layout).tsdb
        return _finalize(block_dir, labels, resolution, downsampled_meta, layout=self.cfg.layout)

    def inspect(self, block_dir: Union[str, Path]) -> BlockMeta:
        return read_meta_file(block_dir, layout=self.cfg.layout)
