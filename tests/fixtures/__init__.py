"""
Test fixtures for the snappwd service.

- FakeClock: Controllable time for timestamps and expiry
- ConfigFactory: Pre-configured Settings for boundary tests
"""

from .fake_clock import FakeClock, create_test_clock
from .config_factory import ConfigFactory

__all__ = [
    "FakeClock",
    "create_test_clock",
    "ConfigFactory",
]
