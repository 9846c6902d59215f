"""Pydantic domain models for collabsync."""

from collabsync.models.forms import CreateProjectInput, CreateRoomInput, IconConstraints, LocalFile
from collabsync.models.resources import Project, Room, Workspace

__all__ = [
    "CreateProjectInput",
    "CreateRoomInput",
    "IconConstraints",
    "LocalFile",
    "Project",
    "Room",
    "Workspace",
]
