"""
HTTP transport for the admin resource APIs.

Wraps each request in the response envelope handling shared by every admin
endpoint: ``{status | success, message, data}``. Callers get the unwrapped
``data`` value or a ``DataAccessError``.
"""

import inspect
import json
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

import httpx

from shared.logging import get_logger, request_context
from ..caching.keys import is_unset_param
from ..resources.registry import DocumentDefinition, ResourceDefinition
from .error_translator import is_envelope_failure, translate_response, translate_transport_error

TokenProvider = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]
Endpoint = Union[ResourceDefinition, DocumentDefinition]


def _is_file_value(value: Any) -> bool:
    if isinstance(value, (bytes, bytearray)):
        return True
    if hasattr(value, "read"):
        return True
    return isinstance(value, tuple) and len(value) in (2, 3) and isinstance(value[0], str)


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def encode_body(payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Request body keyword arguments: multipart when any value is file-like, JSON otherwise."""
    if payload is None:
        return {}
    if not any(_is_file_value(value) for value in payload.values()):
        return {"json": dict(payload)}

    files: Dict[str, Any] = {}
    data: Dict[str, str] = {}
    for name, value in payload.items():
        if value is None:
            continue
        if _is_file_value(value):
            files[name] = value
        else:
            data[name] = _form_value(value)
    return {"files": files, "data": data}


def clean_params(params: Optional[Mapping[str, Any]], resource: Optional[str] = None) -> Dict[str, Any]:
    """Query parameters with blank filters and "all" enum filters dropped."""
    return {
        name: value for name, value in (params or {}).items()
        if not is_unset_param(resource, name, value)
    }


class ResourceApiClient:
    """Client for the admin resource endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics=None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token_provider = token_provider
        self.transport = transport
        self.metrics = metrics
        self.logger = get_logger("data_access.api_client")

    @classmethod
    def from_config(cls, config, **kwargs) -> "ResourceApiClient":
        return cls(config.api_base_url, timeout=config.request_timeout, **kwargs)

    async def list(self, resource: ResourceDefinition, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Fetch a page of a collection."""
        return await self.request("GET", resource, params=clean_params(params, resource.name))

    async def get(self, resource: ResourceDefinition, entity_id: Any) -> Any:
        """Fetch a single record."""
        return await self.request("GET", resource, f"/{entity_id}")

    async def stats(self, resource: ResourceDefinition, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", resource, "/stats", params=clean_params(params, resource.name))

    async def create(self, resource: ResourceDefinition, payload: Mapping[str, Any]) -> Any:
        return await self.request("POST", resource, body=payload)

    async def update(self, resource: ResourceDefinition, entity_id: Any, payload: Mapping[str, Any]) -> Any:
        return await self.request("PUT", resource, f"/{entity_id}", body=payload)

    async def delete(self, resource: ResourceDefinition, entity_id: Any) -> Any:
        return await self.request("DELETE", resource, f"/{entity_id}")

    async def action(
        self,
        resource: ResourceDefinition,
        entity_id: Any,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
        method: str = "POST",
    ) -> Any:
        """Entity action such as approve, reject, status or publish."""
        return await self.request(method, resource, f"/{entity_id}/{action}", body=payload)

    async def read_document(self, document: DocumentDefinition, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Fetch a single document such as a dashboard aggregate or the settings object."""
        return await self.request("GET", document, params=clean_params(params, document.name))

    async def write_document(
        self,
        document: DocumentDefinition,
        payload: Optional[Mapping[str, Any]] = None,
        suffix: str = "",
        method: str = "PUT",
    ) -> Any:
        return await self.request(method, document, suffix, body=payload)

    async def request(
        self,
        method: str,
        resource: Endpoint,
        suffix: str = "",
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Execute a request and return the unwrapped envelope ``data``."""
        with request_context(resource.name) as request_id:
            return await self._send(method, resource, suffix, params, body, request_id)

    async def _send(
        self,
        method: str,
        resource: Endpoint,
        suffix: str,
        params: Optional[Dict[str, Any]],
        body: Optional[Mapping[str, Any]],
        request_id: str,
    ) -> Any:
        url = f"{self.base_url}{resource.path}{suffix}"
        headers = await self._headers()
        headers["X-Request-ID"] = request_id
        fallback = f"Failed to {method.lower()} {resource.name}"
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    params=params or None,
                    headers=headers,
                    **encode_body(body),
                )
        except httpx.TransportError as exc:
            self._record(method, resource, "network", start_time)
            self.logger.error(
                "API request failed",
                method=method,
                url=url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise translate_transport_error(exc) from exc

        self._record(method, resource, response.status_code, start_time)
        payload = self._decode(response)

        if response.is_error:
            error = translate_response(response.status_code, payload, fallback)
            self.logger.error(
                "API request rejected",
                method=method,
                url=url,
                status_code=response.status_code,
                error=error.message,
            )
            raise error

        if is_envelope_failure(payload):
            error = translate_response(response.status_code, payload, fallback)
            self.logger.warning("API envelope reported failure", method=method, url=url, error=error.message)
            raise error

        self.logger.debug("API request succeeded", method=method, url=url, status_code=response.status_code)
        return self._unwrap(payload)

    async def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token_provider is None:
            return headers
        token = self.token_provider()
        if inspect.isawaitable(token):
            token = await token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _unwrap(payload: Any) -> Any:
        if isinstance(payload, Mapping) and "data" in payload:
            return payload["data"]
        return payload

    def _record(self, method: str, resource: Endpoint, status_code: Union[int, str], start_time: float):
        if self.metrics is not None:
            self.metrics.record_api_request(method, resource.name, status_code, time.perf_counter() - start_time)
