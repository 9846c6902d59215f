"""Response envelopes: every endpoint wraps its payload in ``{"data": ...}``."""

from __future__ import annotations

from pydantic import BaseModel

from collabsync.models.resources import Project, Room


class RoomResponse(BaseModel):
    """Response body for POST /api/rooms."""

    data: Room


class RoomListResponse(BaseModel):
    """Response body for GET /api/v1/rooms."""

    data: list[Room] = []


class ProjectResponse(BaseModel):
    """Response body for POST /api/projects."""

    data: Project


class ProjectListResponse(BaseModel):
    """Response body for GET /api/projects."""

    data: list[Project] = []
