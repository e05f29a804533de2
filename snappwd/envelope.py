"""
Record models and the stored envelope format.

Values in the backend come in two shapes that coexist indefinitely:

  - an envelope: JSON object carrying the ciphertext, the creation time and
    the metadata for its kind;
  - a legacy raw payload: the bare ciphertext string, written before the
    envelope existed.

``parse_stored`` makes that choice explicit by returning either a ``Record``
or a ``RawPayload``. A value is only an envelope when it parses as JSON *and*
has the expected shape; a ciphertext that happens to be valid JSON (for
example a run of digits) stays a raw payload.

Envelope layouts:

    secret: {"encryptedSecret": str, "createdAt": int, "metadata": any}
    file:   {"metadata": {"originalFilename": str, "contentType": str,
                          "iv": str},
             "encryptedData": str, "createdAt": int}

File envelopes written before ``createdAt`` existed load with created_at 0.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .errors import InvalidInput
from .identifiers import PayloadKind

LEGACY_CREATED_AT = 0


@dataclass(frozen=True)
class FileMetadata:
    """Caller-managed description of an uploaded file. Never interpreted."""
    original_filename: str
    content_type: str
    iv: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "originalFilename": self.original_filename,
            "contentType": self.content_type,
            "iv": self.iv,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["FileMetadata"]:
        if not isinstance(data, dict):
            return None
        fields = (data.get("originalFilename"), data.get("contentType"), data.get("iv"))
        if not all(isinstance(value, str) for value in fields):
            return None
        return cls(*fields)


@dataclass
class Record:
    """A stored payload as seen by callers."""
    kind: PayloadKind
    payload: str
    created_at: int
    metadata: Any = None
    file_metadata: Optional[FileMetadata] = None
    legacy: bool = False


@dataclass(frozen=True)
class RawPayload:
    """A legacy value: the bare ciphertext with no envelope around it."""
    value: str

    def to_record(self, kind: PayloadKind) -> Record:
        return Record(
            kind=kind,
            payload=self.value,
            created_at=LEGACY_CREATED_AT,
            legacy=True,
        )


@dataclass
class PeekResult:
    record: Record
    ttl_remaining: Optional[int]  # None when the key has no expiry


def encode_envelope(record: Record) -> str:
    """Serialize a record for the backend. Raises InvalidInput."""
    if record.kind is PayloadKind.SECRET:
        body = {
            "encryptedSecret": record.payload,
            "createdAt": record.created_at,
            "metadata": record.metadata,
        }
    else:
        if record.file_metadata is None:
            raise InvalidInput("File envelope requires file metadata")
        body = {
            "metadata": record.file_metadata.to_dict(),
            "encryptedData": record.payload,
            "createdAt": record.created_at,
        }

    try:
        return json.dumps(body, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Serialization error: {e}") from e


def _created_at(body: Dict[str, Any]) -> Optional[int]:
    value = body.get("createdAt", LEGACY_CREATED_AT)
    # bool is an int subclass and never a valid timestamp
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _secret_from(body: Dict[str, Any]) -> Optional[Record]:
    payload = body.get("encryptedSecret")
    created_at = _created_at(body)
    if not isinstance(payload, str) or created_at is None:
        return None
    return Record(
        kind=PayloadKind.SECRET,
        payload=payload,
        created_at=created_at,
        metadata=body.get("metadata"),
    )


def _file_from(body: Dict[str, Any]) -> Optional[Record]:
    payload = body.get("encryptedData")
    file_metadata = FileMetadata.from_dict(body.get("metadata"))
    created_at = _created_at(body)
    if not isinstance(payload, str) or file_metadata is None or created_at is None:
        return None
    return Record(
        kind=PayloadKind.FILE,
        payload=payload,
        created_at=created_at,
        file_metadata=file_metadata,
    )


def parse_stored(kind: PayloadKind, raw: str) -> Union[Record, RawPayload]:
    """Classify a backend value as an envelope of ``kind`` or a raw payload."""
    try:
        body = json.loads(raw)
    except ValueError:
        return RawPayload(raw)

    if not isinstance(body, dict):
        return RawPayload(raw)

    record = _secret_from(body) if kind is PayloadKind.SECRET else _file_from(body)
    if record is None:
        return RawPayload(raw)
    return record


def load_record(kind: PayloadKind, raw: str) -> Record:
    parsed = parse_stored(kind, raw)
    if isinstance(parsed, RawPayload):
        return parsed.to_record(kind)
    return parsed
