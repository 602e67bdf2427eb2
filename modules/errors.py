"""
SVI error types
Every error carries the HTTP status the routes answer with.
"""
from typing import Optional


class SviError(Exception):
    status = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(SviError):
    """Missing or expired Drive token."""
    status = 401

    def __init__(self, message: str = "No Drive token"):
        super().__init__(message)


class UpstreamError(SviError):
    """Non-2xx answer (or transport failure) from Drive or the records backend."""

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.upstream_status = status
        self.status = status if status and status >= 400 else 502


class ValidationError(SviError):
    status = 400


class StorageIOError(SviError):
    """Local video file could not be written or removed."""
    status = 500
