"""
Shared error handling for Storefront services.
"""

from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import get_request_id


class ErrorKind(str, Enum):
    """Error kinds understood by every service and the gateway."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
    UNKNOWN_USER = "UNKNOWN_USER"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @classmethod
    def from_status(cls, status_code: int) -> "ErrorKind":
        """Best-effort kind for framework-raised HTTP errors."""
        if status_code == 404:
            return cls.NOT_FOUND
        if status_code == 401:
            return cls.AUTHENTICATION_ERROR
        if status_code < 500:
            return cls.VALIDATION_ERROR
        return cls.INTERNAL_ERROR


_STATUS_CODES = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.DUPLICATE_RESOURCE: 400,
    ErrorKind.UNKNOWN_USER: 400,
    ErrorKind.AUTHENTICATION_ERROR: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.INTERNAL_ERROR: 500,
    ErrorKind.UPSTREAM_UNAVAILABLE: 502,
    ErrorKind.STORAGE_UNAVAILABLE: 503,
    ErrorKind.UPSTREAM_TIMEOUT: 504,
}


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: ErrorKind
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ServiceException(Exception):
    """Base exception for Storefront services."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, kind: Optional[ErrorKind] = None):
        if kind is not None:
            self.kind = kind
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.kind,
            message=self.message,
            details=self.details
        )


class ValidationError(ServiceException):
    """Missing or malformed request fields."""
    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class DuplicateResourceError(ServiceException):
    kind = ErrorKind.DUPLICATE_RESOURCE

    def __init__(self, message: str = "Resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class UnknownUserError(ServiceException):
    kind = ErrorKind.UNKNOWN_USER

    def __init__(self, message: str = "User not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class AuthenticationError(ServiceException):
    """Authentication-related errors."""
    kind = ErrorKind.AUTHENTICATION_ERROR

    def __init__(self, message: str = "Invalid credentials", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class NotFoundError(ServiceException):
    """Entity or route does not exist."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class InvalidTransitionError(ServiceException):
    """Requested state change is not allowed from the current state."""
    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current: str, requested: str, details: Optional[Dict[str, Any]] = None):
        details = {"current": current, "requested": requested, **(details or {})}
        super().__init__(f"Cannot change status from {current} to {requested}", details)


class StorageUnavailableError(ServiceException):
    """The backing document store cannot be reached."""
    kind = ErrorKind.STORAGE_UNAVAILABLE

    def __init__(self, message: str = "Storage unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class UpstreamUnavailableError(ServiceException):
    """Downstream service refused or dropped the connection."""
    kind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __init__(self, service: str, message: str = "Service unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{service}: {message}", details)


class UpstreamTimeoutError(ServiceException):
    """Downstream service did not answer in time."""
    kind = ErrorKind.UPSTREAM_TIMEOUT

    def __init__(self, service: str, message: str = "Service timed out", details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{service}: {message}", details)
