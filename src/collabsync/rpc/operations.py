"""Operation registry: the fixed set of remote operations and their declared shapes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from collabsync.errors import CollabSyncError, ValidationError
from collabsync.rpc.schemas import (
    ProjectListResponse,
    ProjectResponse,
    RoomListResponse,
    RoomResponse,
)


class UnsupportedOperationError(CollabSyncError):
    """Raised when ``(resource, verb)`` is not a registered operation."""

    def __init__(self, resource: str, verb: str, available: list[str]) -> None:
        self.resource = resource
        self.verb = verb
        self.available = available
        super().__init__(
            f"Unsupported operation '{resource}.{verb}'. Available: {', '.join(available)}"
        )


@dataclass(frozen=True)
class Operation:
    """Static description of one remote operation.

    ``query`` and ``body`` list the wire names of the parameters the
    operation accepts; ``required`` is the subset that must be present and
    non-empty.  Body fields holding a binary value switch the encoding to
    multipart.
    """

    resource: str
    verb: str
    method: str
    path: str
    response_model: type[BaseModel]
    query: tuple[str, ...] = ()
    body: tuple[str, ...] = ()
    required: frozenset[str] = frozenset()

    @property
    def name(self) -> str:
        return f"{self.resource}.{self.verb}"

    def check_params(self, params: Mapping[str, Any]) -> None:
        """Raise :class:`ValidationError` if *params* do not match the declared shape."""
        allowed = set(self.query) | set(self.body)
        errors: dict[str, str] = {}
        for name in sorted(set(params) - allowed):
            errors[name] = f"Unexpected parameter for {self.name}"
        for name in sorted(self.required):
            value = params.get(name)
            if value is None or (isinstance(value, str) and not value):
                errors[name] = "Required"
        if errors:
            raise ValidationError(errors, f"Invalid parameters for {self.name}: {sorted(errors)}")


class OperationRegistry:
    """Registry of remote operations keyed by ``(resource, verb)``."""

    _operations: dict[tuple[str, str], Operation] = {}

    @classmethod
    def register(cls, operation: Operation) -> Operation:
        cls._operations[(operation.resource, operation.verb)] = operation
        return operation

    @classmethod
    def get(cls, resource: str, verb: str) -> Operation:
        try:
            return cls._operations[(resource, verb)]
        except KeyError:
            raise UnsupportedOperationError(resource, verb, cls.available()) from None

    @classmethod
    def available(cls) -> list[str]:
        return sorted(op.name for op in cls._operations.values())


CREATE_ROOM = OperationRegistry.register(
    Operation(
        resource="rooms",
        verb="create",
        method="POST",
        path="/api/rooms",
        response_model=RoomResponse,
        body=("name", "workspaceId"),
        required=frozenset({"name"}),
    )
)

LIST_ROOMS = OperationRegistry.register(
    Operation(
        resource="rooms",
        verb="list",
        method="GET",
        path="/api/v1/rooms",
        response_model=RoomListResponse,
        query=("workspaceId",),
        required=frozenset({"workspaceId"}),
    )
)

CREATE_PROJECT = OperationRegistry.register(
    Operation(
        resource="projects",
        verb="create",
        method="POST",
        path="/api/projects",
        response_model=ProjectResponse,
        body=("name", "workspaceId", "accessToken", "image"),
        required=frozenset({"name", "workspaceId"}),
    )
)

LIST_PROJECTS = OperationRegistry.register(
    Operation(
        resource="projects",
        verb="list",
        method="GET",
        path="/api/projects",
        response_model=ProjectListResponse,
        query=("workspaceId",),
        required=frozenset({"workspaceId"}),
    )
)
