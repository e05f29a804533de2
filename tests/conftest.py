"""
pytest configuration and shared fixtures for snappwd tests.
"""

import pytest
from typing import Dict, Any

from snappwd.envelope import FileMetadata
from snappwd.ports import InMemoryBackend
from snappwd.store import OneTimeStore

from tests.fixtures import FakeClock, ConfigFactory, create_test_clock


# Infrastructure fixtures

@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a controllable clock for testing."""
    return create_test_clock()


@pytest.fixture
def backend(fake_clock) -> InMemoryBackend:
    """In-memory backend whose expiry follows the fake clock."""
    return InMemoryBackend(clock=fake_clock)


@pytest.fixture
def store(backend, fake_clock) -> OneTimeStore:
    return OneTimeStore(backend, clock=fake_clock)


@pytest.fixture
def default_settings():
    return ConfigFactory.default()


# Sample payloads

@pytest.fixture
def file_metadata() -> FileMetadata:
    return FileMetadata(
        original_filename="report.pdf",
        content_type="application/pdf",
        iv="b64-iv-value",
    )


@pytest.fixture
def sample_secret_request() -> Dict[str, Any]:
    """Create-secret body as a browser client sends it."""
    return {
        "encryptedSecret": "cGxhaW50ZXh0",
        "expiration": 3600,
        "metadata": {"label": "x"},
    }


@pytest.fixture
def sample_file_request() -> Dict[str, Any]:
    return {
        "metadata": {
            "originalFilename": "notes.txt",
            "contentType": "text/plain",
            "iv": "iv123",
        },
        "encryptedData": "ZW5jcnlwdGVkLWZpbGU=",
        "expiration": 3600,
    }
