"""Exception hierarchy for the relay's outbound calls."""
from typing import Optional


class RelayError(Exception):
    """Base exception for all relay errors."""
    
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RelayError):
    """Raised when required settings are missing."""
    pass


class ObjectStorageError(RelayError):
    """Raised when a bucket check, bucket creation or object write fails."""
    pass


class DocumentStoreError(RelayError):
    """
    Raised when saving a document fails.
    
    Carries the upstream status code and body when the document store
    answered, so callers can log them.
    """
    
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[bytes] = None
    ):
        super().__init__(message, {"status_code": status_code} if status_code else None)
        self.status_code = status_code
        self.body = body
