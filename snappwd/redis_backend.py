"""
Redis implementation of the backend port.

Burn uses GETDEL (Redis >= 6.2). Older servers answer GETDEL with an
"unknown command" error; the backend then switches, once, to a Lua script
doing GET and DEL inside a single EVAL, which Redis runs atomically.
"""

from typing import Optional

import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError, ResponseError

from .errors import BackendUnavailable

logger = structlog.get_logger()

GETDEL_SCRIPT = """
local value = redis.call('GET', KEYS[1])
if value then
    redis.call('DEL', KEYS[1])
end
return value
"""


class RedisBackend:
    """redis-py asyncio client behind the Backend port"""

    def __init__(self, client: aioredis.Redis):
        self.client = client
        self._getdel_script = None

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        socket_timeout: Optional[float] = 5,
        socket_connect_timeout: Optional[float] = 5
    ) -> "RedisBackend":
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
            health_check_interval=10
        )
        return cls(client)

    async def set_ex(self, key: str, value: str, ttl_s: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_s)
        except RedisError as e:
            raise BackendUnavailable(f"SET failed: {e}") from e

    async def getdel(self, key: str) -> Optional[str]:
        try:
            if self._getdel_script is None:
                try:
                    return await self.client.getdel(key)
                except ResponseError as e:
                    if "unknown command" not in str(e).lower():
                        raise
                    logger.warning("GETDEL unsupported by server, using atomic script fallback")
                    self._getdel_script = self.client.register_script(GETDEL_SCRIPT)
            return await self._getdel_script(keys=[key])
        except RedisError as e:
            raise BackendUnavailable(f"GETDEL failed: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise BackendUnavailable(f"GET failed: {e}") from e

    async def ttl(self, key: str) -> int:
        try:
            return int(await self.client.ttl(key))
        except RedisError as e:
            raise BackendUnavailable(f"TTL failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            raise BackendUnavailable(f"PING failed: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
