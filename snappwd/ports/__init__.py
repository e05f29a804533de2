"""Backend and clock ports. Framework-agnostic interfaces."""
from .backend import Backend, InMemoryBackend, TTL_NO_KEY, TTL_NO_EXPIRY
from .clock import Clock, SystemClock
__all__ = ["Backend","InMemoryBackend","TTL_NO_KEY","TTL_NO_EXPIRY",
           "Clock","SystemClock"]
