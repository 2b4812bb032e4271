"""
Shared error handling for the admin data access layer.

Every failure that leaves the data access layer is one of the types below,
carrying a single human-readable message. Raw transport errors never reach
callers.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error shape handed to UI code."""

    request_id: Optional[str] = None
    code: str
    message: str
    status_code: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class FieldError(BaseModel):
    """A single per-field validation message returned by the server."""

    field: Optional[str] = None
    message: str


class DataAccessError(Exception):
    """Base exception for data access failures."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            status_code=self.status_code,
            details=self.details,
        )


class NetworkError(DataAccessError):
    """The request never reached the server (connection, DNS, timeout)."""

    def __init__(self, message: str = "No internet connection or network error. Please check your network settings and try again.",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("NETWORK_ERROR", message, details)


class ValidationError(DataAccessError):
    """Structured per-field validation errors from the server."""

    def __init__(self, message: str = "Validation failed",
                 field_errors: Optional[List[FieldError]] = None,
                 details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = 422):
        self.field_errors = list(field_errors or [])
        super().__init__("VALIDATION_ERROR", message, details, status_code)


class ServerError(DataAccessError):
    """5xx responses, including backend database/schema failures."""

    def __init__(self, message: str = "Server error occurred. Please try again later or contact support.",
                 is_database_error: bool = False,
                 details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = 500):
        self.is_database_error = is_database_error
        code = "DATABASE_ERROR" if is_database_error else "SERVER_ERROR"
        super().__init__(code, message, details, status_code)


class NotFoundError(DataAccessError):
    """The requested resource does not exist."""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details, 404)


class UnknownError(DataAccessError):
    """Fallback for failures that match no other category."""

    def __init__(self, message: str = "An unexpected error occurred. Please try again.",
                 details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = None):
        super().__init__("UNKNOWN_ERROR", message, details, status_code)
