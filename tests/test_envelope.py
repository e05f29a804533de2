"""
Tests for the stored envelope format and legacy detection.
"""

import json
import pytest

from snappwd.envelope import (
    FileMetadata, RawPayload, Record, encode_envelope, load_record, parse_stored
)
from snappwd.errors import InvalidInput
from snappwd.identifiers import PayloadKind


class TestSecretEnvelope:

    def test_wire_format(self):
        record = Record(PayloadKind.SECRET, "secret123", 1706900000, metadata={"label": "test"})
        body = json.loads(encode_envelope(record))
        assert body == {
            "encryptedSecret": "secret123",
            "createdAt": 1706900000,
            "metadata": {"label": "test"},
        }

    def test_missing_metadata_is_null(self):
        body = json.loads(encode_envelope(Record(PayloadKind.SECRET, "abc", 1)))
        assert body["metadata"] is None

    def test_parse_envelope(self):
        raw = '{"encryptedSecret":"abc","createdAt":1706900000,"metadata":{"label":"x"}}'
        parsed = parse_stored(PayloadKind.SECRET, raw)
        assert isinstance(parsed, Record)
        assert parsed.payload == "abc"
        assert parsed.created_at == 1706900000
        assert parsed.metadata == {"label": "x"}
        assert parsed.legacy is False

    def test_non_serializable_metadata_is_invalid_input(self):
        record = Record(PayloadKind.SECRET, "abc", 1, metadata={"when": object()})
        with pytest.raises(InvalidInput):
            encode_envelope(record)

    def test_nan_metadata_is_invalid_input(self):
        record = Record(PayloadKind.SECRET, "abc", 1, metadata={"score": float("nan")})
        with pytest.raises(InvalidInput):
            encode_envelope(record)


class TestLegacyDetection:
    """Bare ciphertext values written before the envelope existed"""

    @pytest.mark.parametrize("raw", [
        "cGxhaW50ZXh0",
        "U2FsdGVkX1+vupppZksvRf5pq5g5XjFRlipRkwB0K1Y=",
        "12345",            # valid JSON number
        '"quoted"',         # valid JSON string
        "[1, 2]",           # valid JSON array
        '{"other": 1}',     # object with the wrong shape
        '{"encryptedSecret": 5, "createdAt": 1}',
        '{"encryptedSecret": "a", "createdAt": true}',
        '{"encryptedSecret": "a", "createdAt": -3}',
        "",
    ])
    def test_raw_payloads(self, raw):
        parsed = parse_stored(PayloadKind.SECRET, raw)
        assert parsed == RawPayload(raw)

    def test_raw_payload_becomes_legacy_record(self):
        record = load_record(PayloadKind.SECRET, "cGxhaW50ZXh0")
        assert record.payload == "cGxhaW50ZXh0"
        assert record.created_at == 0
        assert record.metadata is None
        assert record.legacy is True

    def test_file_path_raw_payload(self):
        record = load_record(PayloadKind.FILE, "ZW5jcnlwdGVk")
        assert record.kind is PayloadKind.FILE
        assert record.file_metadata is None
        assert record.created_at == 0


class TestFileEnvelope:

    def test_wire_format(self, file_metadata):
        record = Record(PayloadKind.FILE, "encrypted123", 1706900000, file_metadata=file_metadata)
        body = json.loads(encode_envelope(record))
        assert body == {
            "metadata": {
                "originalFilename": "report.pdf",
                "contentType": "application/pdf",
                "iv": "b64-iv-value",
            },
            "encryptedData": "encrypted123",
            "createdAt": 1706900000,
        }

    def test_requires_file_metadata(self):
        with pytest.raises(InvalidInput):
            encode_envelope(Record(PayloadKind.FILE, "data", 1))

    def test_envelope_without_created_at_defaults_to_zero(self):
        raw = '{"metadata":{"originalFilename":"old.txt","contentType":"text/plain","iv":"iv"},"encryptedData":"data"}'
        record = load_record(PayloadKind.FILE, raw)
        assert record.legacy is False
        assert record.created_at == 0
        assert record.file_metadata == FileMetadata("old.txt", "text/plain", "iv")
        assert record.payload == "data"

    def test_incomplete_file_metadata_is_raw(self):
        raw = '{"metadata":{"originalFilename":"x"},"encryptedData":"data","createdAt":1}'
        assert parse_stored(PayloadKind.FILE, raw) == RawPayload(raw)

    def test_secret_envelope_is_not_a_file(self):
        raw = '{"encryptedSecret":"abc","createdAt":1,"metadata":null}'
        assert isinstance(parse_stored(PayloadKind.FILE, raw), RawPayload)
