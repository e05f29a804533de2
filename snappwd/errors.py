"""
Error taxonomy for the one-time store.

NotFound is a routine outcome (unknown, expired or already burned) and is
never logged as an error. InvalidInput and BackendUnavailable surface to
callers as server-side failures.
"""


class SnapError(Exception):
    """Base class for store errors"""


class InvalidInput(SnapError):
    """Envelope could not be built or serialized at write time"""


class NotFound(SnapError):
    """Identifier unknown, expired or already consumed"""

    def __init__(self, message: str = "Record not found or already accessed"):
        super().__init__(message)


class BackendUnavailable(SnapError):
    """Connectivity or protocol failure talking to the backend"""
