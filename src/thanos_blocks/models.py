"""
Block metadata models.

``meta.json`` is written by the TSDB and extended with a ``thanos`` section.
The TSDB statistics sit at the top level of the document next to ``version``,
so ``BlockMeta`` keeps them in a nested ``tsdb`` model and flattens it back on
serialization. Only ``version`` and ``thanos`` are interpreted here; the TSDB
part is carried through unchanged (including fields this package does not
know about).
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import MetaDecodeError, MetaVersionError
from .layout import META_VERSION

__all__ = [
    "BlockDesc",
    "BlockStats",
    "BlockCompaction",
    "TSDBMeta",
    "DownsampleMeta",
    "ThanosMeta",
    "BlockMeta",
    "decode_meta",
    "encode_meta",
]


class _TSDBModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class BlockDesc(_TSDBModel):
    """Reference to another block: its ID and time range."""
    ulid: str = Field(..., description="Block ID")
    min_time: int = Field(..., alias="minTime", description="Inclusive start, milliseconds")
    max_time: int = Field(..., alias="maxTime", description="Exclusive end, milliseconds")


class BlockStats(_TSDBModel):
    """Sample/series/chunk counts recorded by the TSDB."""
    num_samples: int = Field(default=0, alias="numSamples")
    num_series: int = Field(default=0, alias="numSeries")
    num_chunks: int = Field(default=0, alias="numChunks")
    num_tombstones: int = Field(default=0, alias="numTombstones")


class BlockCompaction(_TSDBModel):
    """Compaction lineage: level and the freshly cut blocks this block was built from."""
    level: int = Field(default=1, description="Compaction level, 1 for freshly cut blocks")
    sources: List[str] = Field(default_factory=list, description="IDs of the original freshly cut blocks")
    parents: List[BlockDesc] = Field(default_factory=list, description="Direct compaction inputs")
    failed: bool = Field(default=False, description="Compaction of this block failed")


class TSDBMeta(BlockDesc):
    """Base block statistics as written by the TSDB."""
    stats: BlockStats = Field(default_factory=BlockStats)
    compaction: BlockCompaction = Field(default_factory=BlockCompaction)


class DownsampleMeta(BaseModel):
    resolution: int = Field(default=0, ge=0, description="Downsampling resolution, 0 for raw data")


class ThanosMeta(BaseModel):
    """Block metadata owned by Thanos components."""
    labels: Dict[str, str] = Field(default_factory=dict, description="External labels of the producer")
    downsample: DownsampleMeta = Field(default_factory=DownsampleMeta)

    @field_validator("labels", mode="before")
    @classmethod
    def _null_labels(cls, v):
        # Older writers emit "labels": null for unlabeled blocks.
        return {} if v is None else v


class BlockMeta(BaseModel):
    """
    Contents of a block's ``meta.json``.

    Serialized as::

        {
            "version": 1,
            "ulid": ..., "minTime": ..., "maxTime": ..., "stats": {...}, "compaction": {...},
            "thanos": {"labels": {...}, "downsample": {"resolution": 0}}
        }
    """
    version: int = Field(..., description="Metadata format version")
    tsdb: TSDBMeta
    thanos: ThanosMeta = Field(default_factory=ThanosMeta)

    @model_validator(mode="before")
    @classmethod
    def _split_inline_tsdb(cls, data: Any) -> Any:
        """Accept the flat on-disk document as well as keyword construction."""
        if not isinstance(data, dict) or "tsdb" in data:
            return data
        doc = dict(data)
        nested: Dict[str, Any] = {}
        if "version" in doc:
            nested["version"] = doc.pop("version")
        if "thanos" in doc:
            nested["thanos"] = doc.pop("thanos")
        nested["tsdb"] = doc
        return nested

    @property
    def block_id(self) -> str:
        return self.tsdb.ulid

    def to_document(self) -> Dict[str, Any]:
        """Flatten to the on-disk JSON layout."""
        doc: Dict[str, Any] = {"version": self.version}
        doc.update(self.tsdb.model_dump(mode="json", by_alias=True))
        doc["thanos"] = self.thanos.model_dump(mode="json", by_alias=True)
        return doc


def encode_meta(meta: BlockMeta) -> bytes:
    """Serialize metadata with tab indentation and a trailing newline."""
    return (json.dumps(meta.to_document(), indent="\t") + "\n").encode("utf-8")


def decode_meta(raw: bytes, *, source: str, check_version: bool = True) -> BlockMeta:
    """
    Parse ``meta.json`` content.

    The version is checked before the schema so that a document written by a
    newer, incompatible format reports a version mismatch rather than a
    confusing schema error.

    Args:
        raw: File content
        source: Where the content came from, used in error messages
        check_version: Reject versions other than META_VERSION

    Raises:
        MetaVersionError: If check_version and the version is unsupported
        MetaDecodeError: If content is not valid JSON or does not match the schema
    """
    try:
        doc = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MetaDecodeError(f"decode {source}: {e}") from e

    if not isinstance(doc, dict):
        raise MetaDecodeError(f"decode {source}: expected JSON object, got {type(doc).__name__}")

    if check_version:
        version = doc.get("version")
        if version != META_VERSION or isinstance(version, bool):
            raise MetaVersionError(f"unexpected meta file version {version} in {source}", version=version)

    try:
        return BlockMeta.model_validate(doc)
    except ValidationError as e:
        raise MetaDecodeError(f"decode {source}: {e}") from e
