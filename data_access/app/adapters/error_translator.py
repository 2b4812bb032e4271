"""
Translation of transport failures into the data access error taxonomy.

Response bodies from the admin APIs carry their message in several places
(``errors[0].message``, ``message``, ``error``, ``errors``). Everything here
reduces a failed exchange to one ``DataAccessError`` with a single
human-readable message.
"""

import re
from typing import Any, List, Mapping, Optional

import httpx

from shared.errors import (
    DataAccessError,
    FieldError,
    NetworkError,
    NotFoundError,
    ServerError,
    UnknownError,
    ValidationError,
)

DEFAULT_MESSAGE = "An unexpected error occurred. Please try again."

DATABASE_MARKERS = ("prisma", "Prisma", "Unknown field", "Invalid")
UNKNOWN_FIELD_PATTERN = re.compile(r"Unknown field `(\w+)`")

VALIDATION_STATUSES = (400, 409, 422)

TIMEOUT_MESSAGE = "Connection timeout. Please check your internet connection and try again."
REFUSED_MESSAGE = "Unable to connect to the server. Please check your internet connection and try again."
DNS_MESSAGE = "Unable to reach the server. Please check your internet connection and try again."
NETWORK_MESSAGE = "No internet connection or network error. Please check your network settings and try again."

_DNS_HINTS = ("name or service not known", "nodename nor servname", "getaddrinfo", "name resolution", "enotfound")
_REFUSED_HINTS = ("connection refused", "econnrefused", "errno 111", "errno 61")


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _collect_messages(errors: Any) -> List[str]:
    """Flatten an ``errors`` collection (list or dict of lists) into messages."""
    messages: List[str] = []
    if isinstance(errors, Mapping):
        for value in errors.values():
            messages.extend(_collect_messages(value))
    elif isinstance(errors, (list, tuple)):
        for item in errors:
            if isinstance(item, Mapping):
                message = _non_empty(item.get("message")) or _non_empty(item.get("msg"))
                if message:
                    messages.append(message)
            else:
                message = _non_empty(item)
                if message:
                    messages.append(message)
    else:
        message = _non_empty(errors)
        if message:
            messages.append(message)
    return messages


def extract_message(body: Any, fallback: str = DEFAULT_MESSAGE) -> str:
    """Pick the most specific message a response body offers."""
    text = _non_empty(body)
    if text:
        return text
    if not isinstance(body, Mapping):
        return fallback

    errors = body.get("errors")
    if isinstance(errors, (list, tuple)) and errors and isinstance(errors[0], Mapping):
        first = _non_empty(errors[0].get("message"))
        if first:
            return first

    message = _non_empty(body.get("message"))
    if message:
        return message

    error = body.get("error")
    if isinstance(error, Mapping):
        nested = _non_empty(error.get("message"))
        if nested:
            return nested
    else:
        nested = _non_empty(error)
        if nested:
            return nested

    collected = _collect_messages(errors)
    if collected:
        return ", ".join(collected)
    return fallback


def extract_field_errors(body: Any) -> List[FieldError]:
    """Per-field validation errors, from a list of objects or a field→messages dict."""
    if not isinstance(body, Mapping):
        return []
    errors = body.get("errors")
    field_errors: List[FieldError] = []
    if isinstance(errors, Mapping):
        for field_name, messages in errors.items():
            for message in _collect_messages(messages):
                field_errors.append(FieldError(field=str(field_name), message=message))
    elif isinstance(errors, (list, tuple)):
        for item in errors:
            if not isinstance(item, Mapping):
                continue
            message = _non_empty(item.get("message")) or _non_empty(item.get("msg"))
            if not message:
                continue
            field_name = item.get("field") or item.get("path") or item.get("param")
            if isinstance(field_name, (list, tuple)):
                field_name = ".".join(str(part) for part in field_name)
            field_errors.append(FieldError(field=str(field_name) if field_name else None, message=message))
    return field_errors


def server_error_message(message: str) -> ServerError:
    """Rewrite a 5xx message, flagging backend database/schema failures."""
    if any(marker in message for marker in DATABASE_MARKERS):
        match = UNKNOWN_FIELD_PATTERN.search(message)
        if match:
            text = (
                f"Backend database error: Field '{match.group(1)}' does not exist in the database schema. "
                "Please contact the backend team to fix this issue."
            )
        else:
            text = f"Backend database error: {message}. Please contact the backend team to fix this issue."
        return ServerError(text, is_database_error=True, details={"original_message": message})

    text = f"Backend error: {message}. Please try again later or contact support."
    return ServerError(text, details={"original_message": message})


def is_envelope_failure(body: Any) -> bool:
    """A 2xx body that still reports failure (``status: 0`` or ``success: false``)."""
    if not isinstance(body, Mapping):
        return False
    if "success" in body and body.get("success") is False:
        return True
    envelope_status = body.get("status")
    return envelope_status == 0 and not isinstance(envelope_status, bool)


def translate_response(status_code: int, body: Any, fallback: str = DEFAULT_MESSAGE) -> DataAccessError:
    """Map a failed HTTP response to the error taxonomy."""
    message = extract_message(body, fallback)
    details = {"status_code": status_code}

    if status_code >= 500:
        error = server_error_message(message)
        error.status_code = status_code
        error.details.update(details)
        return error

    if status_code == 404:
        return NotFoundError(message, details=details)

    if status_code in VALIDATION_STATUSES:
        field_errors = extract_field_errors(body)
        if field_errors or status_code == 422:
            return ValidationError(message, field_errors=field_errors, details=details, status_code=status_code)

    return UnknownError(message, details=details, status_code=status_code)


def translate_transport_error(exc: httpx.TransportError) -> NetworkError:
    """Classify connection, DNS and timeout failures."""
    details = {"error_type": type(exc).__name__}
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(TIMEOUT_MESSAGE, details=details)

    reason = str(exc).lower()
    if isinstance(exc, httpx.ConnectError):
        if any(hint in reason for hint in _DNS_HINTS):
            return NetworkError(DNS_MESSAGE, details=details)
        if any(hint in reason for hint in _REFUSED_HINTS):
            return NetworkError(REFUSED_MESSAGE, details=details)
    return NetworkError(NETWORK_MESSAGE, details=details)


def translate_exception(exc: Exception, fallback: str = DEFAULT_MESSAGE) -> DataAccessError:
    """Map any exception raised while talking to the API to the taxonomy."""
    if isinstance(exc, DataAccessError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        return translate_response(response.status_code, body, fallback)
    if isinstance(exc, httpx.TransportError):
        return translate_transport_error(exc)
    return UnknownError(str(exc) or fallback, details={"error_type": type(exc).__name__})
