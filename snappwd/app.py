import logging
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
import structlog
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from .config import load_settings
from .envelope import FileMetadata, PeekResult
from .errors import NotFound, SnapError
from .identifiers import redact
from .ports import InMemoryBackend
from .redis_backend import RedisBackend
from .store import OneTimeStore

# Configure structured logging
logger = structlog.get_logger()

settings = load_settings()

# Prometheus metrics
request_duration = Histogram('snappwd_request_duration_seconds', 'Request processing duration', ['status_class'])
validation_errors = Counter('snappwd_validation_errors_total', 'Validation errors by type', ['type'])
backend_errors = Counter('snappwd_backend_errors_total', 'Backend failures by operation', ['operation'])

app = FastAPI(
    title="snappwd-service",
    description="One-time secret and file sharing backend",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    max_age=3600,
)

# Global state
one_time_store: Optional[OneTimeStore] = None
start_time = time.time()


class FileMetadataModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_filename: str = Field(..., alias="originalFilename")
    content_type: str = Field(..., alias="contentType")
    iv: str

    def to_domain(self) -> FileMetadata:
        return FileMetadata(self.original_filename, self.content_type, self.iv)


class SecretRequest(BaseModel):
    """Create-secret body. The ciphertext is opaque to the service."""
    model_config = ConfigDict(populate_by_name=True)

    encrypted_secret: str = Field(..., alias="encryptedSecret")
    expiration: int = Field(..., description="TTL in seconds")
    metadata: Optional[Any] = Field(None, description="Opaque caller metadata, returned verbatim")


class FileRequest(BaseModel):
    """Create-file body"""
    model_config = ConfigDict(populate_by_name=True)

    metadata: FileMetadataModel
    encrypted_data: str = Field(..., alias="encryptedData", description="Base64 ciphertext")
    expiration: int = Field(..., description="TTL in seconds")


def configure_logging(log_level: str):
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level, logging.INFO))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_backend(redis_url: str):
    """memory:// selects the in-process backend, anything else is Redis"""
    if redis_url.startswith("memory://"):
        return InMemoryBackend()
    return RedisBackend.from_url(
        redis_url,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_connect_timeout
    )


def get_store() -> OneTimeStore:
    if one_time_store is None:
        raise HTTPException(status_code=503, detail="Store not initialized")
    return one_time_store


def check_expiration(corr_id: str, expiration: int):
    if not settings.expiration_allowed(expiration):
        validation_errors.labels(type="expiration").inc()
        logger.info(
            "Rejected expiration",
            corr_id=corr_id,
            expiration=expiration,
            min_seconds=settings.min_expiration_seconds,
            max_seconds=settings.max_expiration_seconds
        )
        raise HTTPException(status_code=400, detail="Invalid expiration time")


def server_error(corr_id: str, operation: str, error: SnapError) -> HTTPException:
    backend_errors.labels(operation=operation).inc()
    logger.error(
        "backend_error",
        corr_id=corr_id,
        operation=operation,
        error_type=type(error).__name__,
        error=str(error)
    )
    return HTTPException(status_code=500, detail="Internal server error")


def peek_body(result: PeekResult) -> Dict[str, Any]:
    record = result.record
    body: Dict[str, Any] = {
        "createdAt": record.created_at,
        "ttlSeconds": result.ttl_remaining,
    }
    if record.file_metadata is not None:
        body["metadata"] = record.file_metadata.to_dict()
    elif record.metadata is not None:
        body["metadata"] = record.metadata
    return body


def payload_too_large() -> JSONResponse:
    validation_errors.labels(type="size").inc()
    return JSONResponse(
        status_code=413,
        content={
            "error": "Payload too large",
            "max_size": f"{settings.body_limit_bytes} bytes"
        }
    )


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Body limit, correlation ID and request metrics"""
    if request.headers.get("content-length"):
        try:
            content_length = int(request.headers["content-length"])
        except ValueError:
            content_length = 0
        if content_length > settings.body_limit_bytes:
            return payload_too_large()
    elif request.method == "POST":
        # Chunked uploads carry no length header, so count bytes as they arrive
        chunks = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > settings.body_limit_bytes:
                return payload_too_large()
            chunks.append(chunk)
        request._body = b"".join(chunks)  # Cache the body for the route handler

    corr_id = request.headers.get("X-Correlation-ID", f"req_{uuid.uuid4().hex[:12]}")
    request.state.corr_id = corr_id

    start = time.time()
    response = await call_next(request)

    response.headers["X-Correlation-ID"] = corr_id
    response.headers["X-Service-Name"] = settings.service_name

    duration = time.time() - start
    request_duration.labels(status_class=f"{response.status_code // 100}xx").observe(duration)
    # Paths carry identifiers, so only the route template is logged
    route = request.url.path
    if route.startswith(("/v1/secrets/", "/v1/files/")):
        route = route.rsplit("/", 1)[0] + "/{id}"
    logger.info(
        "Request processed",
        corr_id=corr_id,
        method=request.method,
        route=route,
        duration_ms=duration * 1000,
        status_code=response.status_code
    )

    return response


@app.on_event("startup")
async def startup_event():
    """Connect the backend and build the store"""
    global one_time_store

    configure_logging(settings.log_level)

    try:
        backend = create_backend(settings.redis_url)
        await backend.ping()
        one_time_store = OneTimeStore(backend)

        logger.info(
            "snappwd service started",
            backend=type(backend).__name__,
            port=settings.port,
            service_name=settings.service_name,
            max_file_size_mb=settings.max_file_size_mb,
            min_expiration_seconds=settings.min_expiration_seconds,
            max_expiration_seconds=settings.max_expiration_seconds
        )
    except SnapError as e:
        logger.error(f"Failed to connect to backend: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Clean shutdown"""
    global one_time_store
    if one_time_store:
        await one_time_store.backend.close()
        one_time_store = None
    logger.info("snappwd service stopped")


@app.get("/healthz")
async def health_check():
    """Health check endpoint"""
    health_status = {
        "ok": True,
        "service": settings.service_name,
        "uptime_seconds": int(time.time() - start_time),
        "backend_connected": one_time_store is not None and await one_time_store.health_check()
    }

    if not health_status["backend_connected"]:
        health_status["ok"] = False
        health_status["error"] = "Backend disconnected"
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return PlainTextResponse(
        generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.post("/v1/secrets")
async def create_secret(request: Request, body: SecretRequest):
    corr_id = request.state.corr_id
    check_expiration(corr_id, body.expiration)
    store = get_store()

    try:
        secret_id = await store.put_secret(body.encrypted_secret, body.expiration, metadata=body.metadata)
    except SnapError as e:
        raise server_error(corr_id, "put_secret", e)

    return {"secretId": secret_id}


@app.get("/v1/secrets/{secret_id}")
async def get_secret(request: Request, secret_id: str, peek: bool = False):
    corr_id = request.state.corr_id
    store = get_store()

    try:
        if peek:
            return peek_body(await store.peek_secret(secret_id))
        record = await store.take_secret(secret_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Secret not found or already accessed")
    except SnapError as e:
        raise server_error(corr_id, "peek_secret" if peek else "take_secret", e)

    return {"encryptedSecret": record.payload}


@app.post("/v1/files")
async def create_file(request: Request, body: FileRequest):
    corr_id = request.state.corr_id
    check_expiration(corr_id, body.expiration)

    if not settings.encoded_size_allowed(len(body.encrypted_data)):
        validation_errors.labels(type="file_size").inc()
        logger.info(
            "Rejected oversized file",
            corr_id=corr_id,
            encoded_length=len(body.encrypted_data),
            max_file_size_mb=settings.max_file_size_mb
        )
        raise HTTPException(
            status_code=400,
            detail=f"File too large (max {settings.max_file_size_mb}MB)"
        )

    store = get_store()

    try:
        file_id = await store.put_file(body.metadata.to_domain(), body.encrypted_data, body.expiration)
    except SnapError as e:
        raise server_error(corr_id, "put_file", e)

    return {"fileId": file_id}


@app.get("/v1/files/{file_id}")
async def get_file(request: Request, file_id: str, peek: bool = False):
    corr_id = request.state.corr_id
    store = get_store()

    try:
        if peek:
            return peek_body(await store.peek_file(file_id))
        record = await store.take_file(file_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="File not found or already accessed")
    except SnapError as e:
        raise server_error(corr_id, "peek_file" if peek else "take_file", e)

    if record.legacy:
        logger.warning("Legacy file record without envelope", id=redact(file_id))

    return {
        "metadata": record.file_metadata.to_dict() if record.file_metadata else None,
        "encryptedData": record.payload,
        "createdAt": record.created_at,
    }
