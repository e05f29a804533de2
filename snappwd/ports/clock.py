from __future__ import annotations
from datetime import datetime, timezone
from typing import Protocol

class Clock(Protocol):
    def now_utc(self) -> datetime: ...
    def epoch_seconds(self) -> int: ...

class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)
    def epoch_seconds(self) -> int:
        return int(self.now_utc().timestamp())
