"""Async HTTP client for the remote collaboration API.

Every operation returns a :data:`~collabsync.result.Result`: ``Ok`` with the
parsed response envelope, or ``Err`` with a :class:`TransportError`.  The
client never retries; that is left to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any

import httpx
import pydantic

from collabsync.errors import TransportError
from collabsync.models.forms import FormValue, LocalFile
from collabsync.result import Err, Ok, Result
from collabsync.rpc.operations import Operation, OperationRegistry
from collabsync.rpc.schemas import (
    ProjectListResponse,
    ProjectResponse,
    RoomListResponse,
    RoomResponse,
)
from collabsync.settings import DEFAULT_USER_AGENT, Settings

logger = logging.getLogger("collabsync.rpc")

_DEFAULT_HEADERS = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"}


def _is_binary(value: Any) -> bool:
    return isinstance(value, (LocalFile, bytes))


def _as_upload(name: str, value: LocalFile | bytes) -> tuple[str, bytes, str]:
    if isinstance(value, LocalFile):
        return value.as_upload()
    return name, value, "application/octet-stream"


def encode_request(operation: Operation, params: Mapping[str, Any]) -> dict[str, Any]:
    """Build the httpx keyword arguments for *operation*.

    Query parameters go to ``params``.  Body fields are sent as url-encoded
    form fields, or as multipart form data as soon as one of them is binary.
    ``None`` values are dropped.
    """
    kwargs: dict[str, Any] = {}
    query = {k: params[k] for k in operation.query if params.get(k) is not None}
    if query:
        kwargs["params"] = query

    body = {k: params[k] for k in operation.body if params.get(k) is not None}
    if body:
        files = {k: _as_upload(k, v) for k, v in body.items() if _is_binary(v)}
        kwargs["data"] = {k: str(v) for k, v in body.items() if not _is_binary(v)}
        if files:
            kwargs["files"] = files
    return kwargs


def _error_message(response: httpx.Response) -> str:
    """Best-effort human message from an error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "Request failed"
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return response.reason_phrase or "Request failed"


class RpcClient:
    """Typed client for the fixed set of remote operations.

    Wraps an ``httpx.AsyncClient``.  Session establishment is external:
    pass cookies or auth headers through *headers*.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={**_DEFAULT_HEADERS, **(headers or {})},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RpcClient:
        return cls(
            settings.api_base_url,
            timeout=settings.request_timeout_seconds,
            headers={"User-Agent": settings.user_agent, **(headers or {})},
            transport=transport,
        )

    # -- lifecycle -----------------------------------------------------------

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -- generic dispatch ----------------------------------------------------

    async def call(
        self, resource: str, verb: str, params: Mapping[str, Any] | None = None
    ) -> Result[pydantic.BaseModel, TransportError]:
        """Send one operation.

        Raises :class:`~collabsync.errors.ValidationError` (before any
        network activity) if *params* do not match the declared shape.
        """
        operation = OperationRegistry.get(resource, verb)
        params = dict(params or {})
        operation.check_params(params)
        request_kwargs = encode_request(operation, params)

        try:
            response = await self._http.request(operation.method, operation.path, **request_kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", operation.method, operation.path, exc)
            return Err(
                TransportError(
                    f"Request failed: {exc.__class__.__name__}",
                    operation=operation.name,
                    cause=exc,
                )
            )

        logger.debug("%s %s -> %d", operation.method, operation.path, response.status_code)
        if not response.is_success:
            logger.info(
                "%s %s returned HTTP %d", operation.method, operation.path, response.status_code
            )
            return Err(
                TransportError(
                    _error_message(response),
                    status_code=response.status_code,
                    operation=operation.name,
                )
            )

        try:
            body = operation.response_model.model_validate_json(response.content)
        except pydantic.ValidationError as exc:
            logger.warning("%s %s: unexpected response body", operation.method, operation.path)
            return Err(
                TransportError(
                    "Unexpected response body",
                    status_code=response.status_code,
                    operation=operation.name,
                    cause=exc,
                )
            )
        return Ok(body)

    # -- typed operations ----------------------------------------------------

    async def create_room(
        self, form: Mapping[str, FormValue]
    ) -> Result[RoomResponse, TransportError]:
        return await self.call("rooms", "create", form)  # type: ignore[return-value]

    async def list_rooms(self, workspace_id: str) -> Result[RoomListResponse, TransportError]:
        return await self.call("rooms", "list", {"workspaceId": workspace_id})  # type: ignore[return-value]

    async def create_project(
        self, form: Mapping[str, FormValue]
    ) -> Result[ProjectResponse, TransportError]:
        return await self.call("projects", "create", form)  # type: ignore[return-value]

    async def list_projects(
        self, workspace_id: str
    ) -> Result[ProjectListResponse, TransportError]:
        return await self.call("projects", "list", {"workspaceId": workspace_id})  # type: ignore[return-value]
