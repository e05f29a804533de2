"""
snappwd: one-time retrieval store for client-side encrypted secrets and files
"""

from .envelope import FileMetadata, PeekResult, Record
from .errors import BackendUnavailable, InvalidInput, NotFound, SnapError
from .identifiers import PayloadKind
from .store import OneTimeStore

__version__ = "1.0.0"

__all__ = [
    "OneTimeStore",
    "PayloadKind",
    "Record",
    "PeekResult",
    "FileMetadata",
    "SnapError",
    "InvalidInput",
    "NotFound",
    "BackendUnavailable",
]
