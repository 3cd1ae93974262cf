"""
Domain error taxonomy.

FetchError      reading a snapshot from the content store failed
ValidationError a write was rejected before touching the store
StoreError      an insert/update/delete against the content store failed
"""
from typing import Any, Optional


class SiteError(Exception):
    """Base class for errors raised by the site backend."""

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.message, "detail": self.detail if self.detail is not None else self.message}


class FetchError(SiteError):
    pass


class ValidationError(SiteError):
    pass


class StoreError(SiteError):
    pass
