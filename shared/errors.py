"""
Shared error handling for the Sentimatrix Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for Access Layer components."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class StorageError(AccessLayerException):
    """Document store unreachable or query failure."""

    def __init__(self, operation: str, message: str = "Storage operation failed", details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__("STORAGE_ERROR", f"{operation}: {message}", details)


class NotFoundError(AccessLayerException):
    """Requested record does not exist."""

    def __init__(self, resource: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        self.resource = resource
        self.identifier = identifier
        merged = {"resource": resource, "identifier": identifier}
        merged.update(details or {})
        super().__init__("NOT_FOUND", f"{resource} '{identifier}' not found", merged)


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class CacheUnavailableError(AccessLayerException):
    """Cache backend could not be reached.

    Never surfaced to callers of the accessor operations; the access layer
    degrades to the direct-store path instead.
    """

    def __init__(self, message: str = "Cache backend unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class DeserializationError(AccessLayerException):
    """Cached payload could not be decoded. Treated as a cache miss."""

    def __init__(self, message: str = "Cached payload could not be decoded", details: Optional[Dict[str, Any]] = None):
        super().__init__("DESERIALIZATION_ERROR", message, details)
