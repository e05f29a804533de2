from __future__ import annotations
import asyncio
from typing import Protocol

from .clock import Clock, SystemClock

# Redis TTL sentinels
TTL_NO_KEY = -2
TTL_NO_EXPIRY = -1

class Backend(Protocol):
    async def set_ex(self, key: str, value: str, ttl_s: int) -> None: ...
    async def getdel(self, key: str) -> str | None: ...
    async def get(self, key: str) -> str | None: ...
    async def ttl(self, key: str) -> int: ...
    async def ping(self) -> bool: ...
    async def close(self) -> None: ...

class InMemoryBackend(Backend):
    """Single-process backend with clock-driven expiry.

    Every method yields to the event loop once before touching the data so
    concurrent callers interleave the way they would against a network
    store; the mutation itself never awaits, which keeps getdel atomic.
    """
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._data: dict[str, str] = {}
        self._deadlines: dict[str, float] = {}
    def _now(self) -> float:
        return self._clock.now_utc().timestamp()
    def _evict_if_expired(self, key: str) -> None:
        deadline = self._deadlines.get(key)
        if deadline is not None and deadline <= self._now():
            self._data.pop(key, None)
            self._deadlines.pop(key, None)
    async def set_ex(self, key: str, value: str, ttl_s: int) -> None:
        await asyncio.sleep(0)
        self._data[key] = value
        self._deadlines[key] = self._now() + ttl_s
    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(0)
        self._data[key] = value
        self._deadlines.pop(key, None)
    async def getdel(self, key: str) -> str | None:
        await asyncio.sleep(0)
        self._evict_if_expired(key)
        self._deadlines.pop(key, None)
        return self._data.pop(key, None)
    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        self._evict_if_expired(key)
        return self._data.get(key)
    async def ttl(self, key: str) -> int:
        await asyncio.sleep(0)
        self._evict_if_expired(key)
        if key not in self._data:
            return TTL_NO_KEY
        deadline = self._deadlines.get(key)
        if deadline is None:
            return TTL_NO_EXPIRY
        # Redis rounds the remaining time to the nearest second
        return int(round(deadline - self._now()))
    async def ping(self) -> bool:
        return True
    async def close(self) -> None:
        self._data.clear()
        self._deadlines.clear()
    def __len__(self) -> int:
        return len(self._data)
