"""
One-time store: put, burn (take) and peek over a key-value backend.

The store holds no mutable state of its own. At-most-once consumption rests
entirely on the backend's atomic GETDEL; nothing here reads and then deletes
in two steps.
"""

from typing import Any, Optional

import structlog
from prometheus_client import Counter

from .envelope import FileMetadata, PeekResult, Record, encode_envelope, load_record
from .errors import InvalidInput, NotFound
from .identifiers import PayloadKind, accepts, generate_identifier, redact
from .ports import Backend, Clock, SystemClock, TTL_NO_EXPIRY, TTL_NO_KEY

logger = structlog.get_logger()

store_operations = Counter(
    'snappwd_store_operations_total',
    'One-time store operations',
    ['kind', 'operation', 'outcome']
)


class OneTimeStore:
    """Façade over a backend implementing put/take/peek for both payload kinds"""

    def __init__(self, backend: Backend, clock: Optional[Clock] = None):
        self.backend = backend
        self.clock = clock or SystemClock()

    async def put(
        self,
        kind: PayloadKind,
        payload: str,
        ttl_seconds: int,
        metadata: Any = None,
        file_metadata: Optional[FileMetadata] = None
    ) -> str:
        """
        Write a new record and return its identifier.

        Args:
            kind: Payload kind, decides prefix and envelope shape
            payload: Opaque ciphertext
            ttl_seconds: Expiry, already validated by the caller
            metadata: Opaque caller metadata (secrets)
            file_metadata: Required for files

        Raises:
            InvalidInput: Envelope cannot be built or serialized
            BackendUnavailable: Write could not be completed
        """
        if ttl_seconds <= 0:
            raise InvalidInput(f"ttl_seconds must be positive, got {ttl_seconds}")
        if kind is PayloadKind.FILE and file_metadata is None:
            raise InvalidInput("File payloads require file metadata")

        record = Record(
            kind=kind,
            payload=payload,
            created_at=self.clock.epoch_seconds(),
            metadata=metadata if kind is PayloadKind.SECRET else None,
            file_metadata=file_metadata if kind is PayloadKind.FILE else None,
        )
        value = encode_envelope(record)
        identifier = generate_identifier(kind)

        try:
            await self.backend.set_ex(identifier, value, ttl_seconds)
        except Exception:
            store_operations.labels(kind=kind.value, operation='put', outcome='error').inc()
            raise

        store_operations.labels(kind=kind.value, operation='put', outcome='success').inc()
        logger.info(
            f"{kind.value}_stored",
            id=redact(identifier),
            ttl_seconds=ttl_seconds,
            payload_length=len(payload),
            has_metadata=record.metadata is not None or record.file_metadata is not None
        )
        return identifier

    async def take(self, kind: PayloadKind, identifier: str) -> Record:
        """Burn: fetch and delete atomically. Raises NotFound."""
        if not accepts(kind, identifier):
            store_operations.labels(kind=kind.value, operation='take', outcome='rejected').inc()
            raise NotFound()

        try:
            raw = await self.backend.getdel(identifier)
        except Exception:
            store_operations.labels(kind=kind.value, operation='take', outcome='error').inc()
            raise

        if raw is None:
            store_operations.labels(kind=kind.value, operation='take', outcome='not_found').inc()
            logger.debug("record_not_found", id=redact(identifier), operation="take")
            raise NotFound()

        record = load_record(kind, raw)
        store_operations.labels(kind=kind.value, operation='take', outcome='success').inc()
        logger.info("record_burned", id=redact(identifier), legacy=record.legacy)
        return record

    async def peek(self, kind: PayloadKind, identifier: str) -> PeekResult:
        """
        Read a record and its remaining TTL without consuming it.

        GET and TTL are separate backend calls. A key that expires between
        them reports TTL_NO_KEY and is surfaced as NotFound.
        """
        if not accepts(kind, identifier):
            store_operations.labels(kind=kind.value, operation='peek', outcome='rejected').inc()
            raise NotFound()

        try:
            raw = await self.backend.get(identifier)
            ttl = await self.backend.ttl(identifier) if raw is not None else TTL_NO_KEY
        except Exception:
            store_operations.labels(kind=kind.value, operation='peek', outcome='error').inc()
            raise

        if raw is None or ttl == TTL_NO_KEY:
            store_operations.labels(kind=kind.value, operation='peek', outcome='not_found').inc()
            logger.debug("record_not_found", id=redact(identifier), operation="peek")
            raise NotFound()

        record = load_record(kind, raw)
        store_operations.labels(kind=kind.value, operation='peek', outcome='success').inc()
        logger.debug("record_peeked", id=redact(identifier), ttl_seconds=ttl)
        return PeekResult(
            record=record,
            ttl_remaining=None if ttl == TTL_NO_EXPIRY else ttl
        )

    # Kind-specific entry points used by the HTTP layer

    async def put_secret(self, encrypted_secret: str, ttl_seconds: int, metadata: Any = None) -> str:
        return await self.put(PayloadKind.SECRET, encrypted_secret, ttl_seconds, metadata=metadata)

    async def take_secret(self, identifier: str) -> Record:
        return await self.take(PayloadKind.SECRET, identifier)

    async def peek_secret(self, identifier: str) -> PeekResult:
        return await self.peek(PayloadKind.SECRET, identifier)

    async def put_file(self, file_metadata: FileMetadata, encrypted_data: str, ttl_seconds: int) -> str:
        return await self.put(PayloadKind.FILE, encrypted_data, ttl_seconds, file_metadata=file_metadata)

    async def take_file(self, identifier: str) -> Record:
        return await self.take(PayloadKind.FILE, identifier)

    async def peek_file(self, identifier: str) -> PeekResult:
        return await self.peek(PayloadKind.FILE, identifier)

    async def health_check(self) -> bool:
        """Check if the backend answers"""
        try:
            return await self.backend.ping()
        except Exception:
            return False
