"""
Service configuration, read from the environment once at startup.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

import structlog

logger = structlog.get_logger()

MIN_BODY_LIMIT_BYTES = 10 * 1024 * 1024


@dataclass
class Settings:
    """Deployment settings for the snappwd service."""
    redis_url: str = "redis://127.0.0.1:6379"
    redis_socket_timeout: float = 5.0
    redis_connect_timeout: float = 5.0
    port: int = 8080
    service_name: str = "snappwd-service"
    log_level: str = "INFO"

    # Boundary policy, not store invariants
    min_expiration_seconds: int = 60
    max_expiration_seconds: int = 604800  # 7 days
    max_file_size_mb: int = 2

    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        if self.min_expiration_seconds <= 0:
            raise ValueError("min_expiration_seconds must be positive")
        if self.min_expiration_seconds > self.max_expiration_seconds:
            raise ValueError(
                f"min_expiration_seconds ({self.min_expiration_seconds}) exceeds "
                f"max_expiration_seconds ({self.max_expiration_seconds})"
            )

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def body_limit_bytes(self) -> int:
        # base64 inflates by 4/3, plus the JSON around it
        return max(MIN_BODY_LIMIT_BYTES, self.max_file_size_bytes * 2)

    def expiration_allowed(self, seconds: int) -> bool:
        return self.min_expiration_seconds <= seconds <= self.max_expiration_seconds

    def encoded_size_allowed(self, encoded_length: int) -> bool:
        """Approximate check of a base64 payload against the decoded size limit"""
        return encoded_length <= self.max_file_size_bytes * 4 // 3 + 4


def _env_number(env: Mapping[str, str], name: str, default, cast=int):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Invalid numeric setting, using default", setting=name, value=raw, default=default)
        return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables"""
    env = os.environ if env is None else env
    defaults = Settings()

    origins = env.get("CORS_ALLOW_ORIGINS", "*")

    return Settings(
        redis_url=env.get("REDIS_URL", defaults.redis_url),
        redis_socket_timeout=_env_number(env, "REDIS_SOCKET_TIMEOUT", defaults.redis_socket_timeout, float),
        redis_connect_timeout=_env_number(env, "REDIS_CONNECT_TIMEOUT", defaults.redis_connect_timeout, float),
        port=_env_number(env, "PORT", defaults.port),
        service_name=env.get("SERVICE_NAME", defaults.service_name),
        log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        min_expiration_seconds=_env_number(env, "MIN_EXPIRATION_SECONDS", defaults.min_expiration_seconds),
        max_expiration_seconds=_env_number(env, "MAX_EXPIRATION_SECONDS", defaults.max_expiration_seconds),
        max_file_size_mb=_env_number(env, "MAX_FILE_SIZE_MB", defaults.max_file_size_mb),
        cors_allow_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
    )
