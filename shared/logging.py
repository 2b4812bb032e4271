"""
Structured logging for the admin data access layer.

Every transport request runs inside ``request_context``, which tags log
events emitted during the request with a request id and the resource name.
"""

import sys
import structlog
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from contextvars import ContextVar

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
resource_var: ContextVar[Optional[str]] = ContextVar('resource', default=None)


def configure_logging(component: str, log_level: str = "info", json_output: bool = True) -> None:
    """Configure structlog and the stdlib root logger for a client process."""
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_component_context,
            add_correlation_context,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )
    structlog.get_logger(component).debug("Logging configured", log_level=log_level, json_output=json_output)


def add_component_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events with the top-level component, e.g. "data_access.query_cache" -> "data_access"."""
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["component"] = logger_name.split(".")[0]
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    # Explicit resource kwargs on the event win.
    resource = resource_var.get()
    if resource and "resource" not in event_dict:
        event_dict["resource"] = resource

    return event_dict


@contextmanager
def request_context(resource: Optional[str] = None, request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id and resource name for the duration of one request."""
    request_id = request_id or uuid.uuid4().hex
    request_token = request_id_var.set(request_id)
    resource_token = resource_var.set(resource)
    try:
        yield request_id
    finally:
        resource_var.reset(resource_token)
        request_id_var.reset(request_token)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
