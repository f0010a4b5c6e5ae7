"""
Tests for block metadata models and their JSON layout.
"""
from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from thanos_blocks.errors import MetaDecodeError, MetaVersionError
from thanos_blocks.models import BlockMeta, decode_meta, encode_meta
from tests.helpers.blocks import make_meta

# meta.json as written by the Prometheus TSDB and extended by Thanos
TSDB_META = {
    "version": 1,
    "ulid": "01ARZ3NDEKTSV4RRFFQ69G5FAV",
    "minTime": 1600000000000,
    "maxTime": 1600007200000,
    "stats": {"numSamples": 1200, "numSeries": 10, "numChunks": 20},
    "compaction": {
        "level": 2,
        "sources": ["01ARZ3NDEKTSV4RRFFQ69G5FAV", "01BX5ZZKBKACTAV9WEVGEMMVRZ"],
        "parents": [
            {"ulid": "01BX5ZZKBKACTAV9WEVGEMMVRZ", "minTime": 1600000000000, "maxTime": 1600003600000},
        ],
    },
    "thanos": {"labels": {"replica": "0"}, "downsample": {"resolution": 300000}},
}


class TestBlockMetaLayout:
    """The TSDB part is stored inline next to version and thanos."""

    def test_parse_flat_document(self):
        meta = BlockMeta.model_validate(TSDB_META)
        assert meta.version == 1
        assert meta.block_id == "01ARZ3NDEKTSV4RRFFQ69G5FAV"
        assert meta.tsdb.min_time == 1600000000000
        assert meta.tsdb.stats.num_series == 10
        assert meta.tsdb.compaction.level == 2
        assert meta.tsdb.compaction.parents[0].ulid == "01BX5ZZKBKACTAV9WEVGEMMVRZ"
        assert meta.thanos.labels == {"replica": "0"}
        assert meta.thanos.downsample.resolution == 300000

    def test_document_is_flat(self):
        doc = make_meta("01ARZ3NDEKTSV4RRFFQ69G5FAV", labels={"a": "b"}).to_document()
        assert "tsdb" not in doc
        assert doc["version"] == 1
        assert doc["ulid"] == "01ARZ3NDEKTSV4RRFFQ69G5FAV"
        assert set(doc["stats"]) >= {"numSamples", "numSeries", "numChunks"}
        assert doc["thanos"] == {"labels": {"a": "b"}, "downsample": {"resolution": 0}}

    def test_unknown_tsdb_fields_survive(self):
        doc = dict(TSDB_META, futureField={"x": 1})
        meta = BlockMeta.model_validate(doc)
        assert meta.to_document()["futureField"] == {"x": 1}

    def test_null_labels_read_as_empty(self):
        doc = dict(TSDB_META, thanos={"labels": None, "downsample": {"resolution": 0}})
        assert BlockMeta.model_validate(doc).thanos.labels == {}

    def test_missing_thanos_section_defaults(self):
        doc = {k: v for k, v in TSDB_META.items() if k != "thanos"}
        meta = BlockMeta.model_validate(doc)
        assert meta.thanos.labels == {}
        assert meta.thanos.downsample.resolution == 0

    def test_version_is_required(self):
        doc = {k: v for k, v in TSDB_META.items() if k != "version"}
        with pytest.raises(ValidationError, match="version"):
            BlockMeta.model_validate(doc)


class TestEncodeMeta:

    def test_tab_indented_with_trailing_newline(self):
        text = encode_meta(make_meta()).decode("utf-8")
        assert text.endswith("}\n")
        assert '\n\t"version": 1,' in text

    def test_version_comes_first(self):
        doc = json.loads(encode_meta(make_meta()))
        assert next(iter(doc)) == "version"

    def test_encoding_is_deterministic(self):
        meta = make_meta("01ARZ3NDEKTSV4RRFFQ69G5FAV", labels={"b": "2", "a": "1"})
        assert encode_meta(meta) == encode_meta(meta.model_copy(deep=True))


class TestDecodeMeta:

    def test_decode_encoded(self):
        meta = make_meta(labels={"replica": "1"}, resolution=3600000)
        decoded = decode_meta(encode_meta(meta), source="test")
        assert decoded.model_dump() == meta.model_dump()

    def test_invalid_json(self):
        with pytest.raises(MetaDecodeError, match="decode test"):
            decode_meta(b"{not json", source="test")

    def test_non_object_document(self):
        with pytest.raises(MetaDecodeError, match="expected JSON object"):
            decode_meta(b"[1, 2]", source="test")

    def test_schema_violation(self):
        doc = dict(TSDB_META, minTime="yesterday")
        with pytest.raises(MetaDecodeError):
            decode_meta(json.dumps(doc).encode(), source="test")

    @pytest.mark.parametrize("version", [0, 2, None, "1", True])
    def test_unsupported_version(self, version):
        doc = dict(TSDB_META, version=version)
        with pytest.raises(MetaVersionError, match="unexpected meta file version"):
            decode_meta(json.dumps(doc).encode(), source="test")

    def test_missing_version(self):
        doc = {k: v for k, v in TSDB_META.items() if k != "version"}
        with pytest.raises(MetaVersionError):
            decode_meta(json.dumps(doc).encode(), source="test")

    def test_missing_version_without_check_is_decode_error(self):
        doc = {k: v for k, v in TSDB_META.items() if k != "version"}
        with pytest.raises(MetaDecodeError, match="version"):
            decode_meta(json.dumps(doc).encode(), source="test", check_version=False)

    def test_version_check_can_be_skipped(self):
        doc = dict(TSDB_META, version=2)
        meta = decode_meta(json.dumps(doc).encode(), source="test", check_version=False)
        assert meta.version == 2

    def test_version_error_is_decode_error(self):
        doc = dict(TSDB_META, version=2)
        with pytest.raises(MetaDecodeError):
            decode_meta(json.dumps(doc).encode(), source="test")
