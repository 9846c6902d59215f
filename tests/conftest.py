"""Shared test fixtures: an in-process fake of the remote service plus a wired SyncContext."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport
from starlette.datastructures import UploadFile

from collabsync.cache.store import ResourceCache
from collabsync.service.context import SyncContext
from collabsync.service.notify import MemoryNotifier
from collabsync.settings import Settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@dataclass
class RecordedRequest:
    method: str
    path: str
    content_type: str
    query: dict[str, str] = field(default_factory=dict)
    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, tuple[str, bytes]] = field(default_factory=dict)


class FakeBackend:
    """State behind the fake API.  Tests poke at it to script failures and delays."""

    def __init__(self) -> None:
        self.rooms: list[dict[str, Any]] = []
        self.projects: list[dict[str, Any]] = []
        self.requests: list[RecordedRequest] = []
        self.failing_workspaces: set[str] = set()
        self.malformed_workspaces: set[str] = set()
        self.fail_creates = False
        self.holds: dict[str, asyncio.Event] = {}
        self._room_ids = itertools.count(1)
        self._project_ids = itertools.count(1)

    def add_room(self, workspace_id: str, name: str) -> dict[str, Any]:
        room = {"$id": f"r{next(self._room_ids)}", "name": name, "workspaceId": workspace_id}
        self.rooms.append(room)
        return room

    def add_project(
        self, workspace_id: str, name: str, image_url: str | None = None
    ) -> dict[str, Any]:
        project = {
            "$id": f"p{next(self._project_ids)}",
            "name": name,
            "workspaceId": workspace_id,
            "imageUrl": image_url,
        }
        self.projects.append(project)
        return project

    def requests_to(self, method: str, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path == path]


async def _record(backend: FakeBackend, request: Request) -> RecordedRequest:
    recorded = RecordedRequest(
        method=request.method,
        path=request.url.path,
        content_type=request.headers.get("content-type", ""),
        query=dict(request.query_params),
    )
    if request.method == "POST":
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                recorded.files[key] = (value.filename or "", await value.read())
            else:
                recorded.fields[key] = value
    backend.requests.append(recorded)
    return recorded


def create_fake_app(backend: FakeBackend) -> FastAPI:
    app = FastAPI()

    @app.post("/api/rooms")
    async def create_room(request: Request) -> Any:
        recorded = await _record(backend, request)
        name = recorded.fields.get("name", "")
        hold = backend.holds.get(name)
        if hold is not None:
            await hold.wait()
        if backend.fail_creates:
            return JSONResponse(status_code=500, content={"error": "Failed to create room"})
        if not name:
            return JSONResponse(status_code=400, content={"error": "name is required"})
        room = backend.add_room(recorded.fields.get("workspaceId", ""), name)
        return {"data": room}

    @app.get("/api/v1/rooms")
    async def list_rooms(request: Request) -> Any:
        recorded = await _record(backend, request)
        workspace_id = recorded.query.get("workspaceId", "")
        if workspace_id in backend.failing_workspaces:
            return JSONResponse(status_code=500, content={"error": "Failed to get rooms"})
        return {"data": [r for r in backend.rooms if r["workspaceId"] == workspace_id]}

    @app.post("/api/projects")
    async def create_project(request: Request) -> Any:
        recorded = await _record(backend, request)
        if backend.fail_creates:
            return JSONResponse(status_code=500, content={"error": "Failed to create project"})
        name = recorded.fields.get("name", "")
        workspace_id = recorded.fields.get("workspaceId", "")
        if not name or not workspace_id:
            return JSONResponse(status_code=400, content={"error": "name and workspaceId required"})
        image = recorded.files.get("image")
        image_url = f"https://cdn.test/{image[0]}" if image else None
        return {"data": backend.add_project(workspace_id, name, image_url)}

    @app.get("/api/projects")
    async def list_projects(request: Request) -> Any:
        recorded = await _record(backend, request)
        workspace_id = recorded.query.get("workspaceId", "")
        if workspace_id in backend.malformed_workspaces:
            return {"data": "not-a-list"}
        return {"data": [p for p in backend.projects if p["workspaceId"] == workspace_id]}

    return app


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, api_base_url="http://test")


@pytest.fixture
def cache() -> ResourceCache:
    return ResourceCache()


@pytest.fixture
def notifier() -> MemoryNotifier:
    return MemoryNotifier()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def transport(backend: FakeBackend) -> ASGITransport:
    return ASGITransport(app=create_fake_app(backend))


@pytest.fixture
async def ctx(
    settings: Settings, notifier: MemoryNotifier, transport: ASGITransport
) -> AsyncIterator[SyncContext]:
    context = SyncContext.from_settings(settings, notifier=notifier, transport=transport)
    yield context
    await context.aclose()
