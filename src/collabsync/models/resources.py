"""Workspace, project and room models as the remote service returns them."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _Resource(BaseModel):
    """Common shape: an opaque identifier plus whatever else the server sends."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    id: str = Field(validation_alias=AliasChoices("$id", "id"), serialization_alias="$id")
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("$createdAt", "createdAt", "created_at"),
        serialization_alias="$createdAt",
    )


class Workspace(_Resource):
    """A tenant / workspace: the top-level scope for projects and rooms."""

    name: str = ""


class Project(_Resource):
    """A project inside exactly one workspace."""

    name: str
    workspace_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("workspaceId", "workspace_id"),
        serialization_alias="workspaceId",
    )
    image_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("imageUrl", "image_url"),
        serialization_alias="imageUrl",
    )


class Room(_Resource):
    """A room. Membership and ownership fields stay in ``model_extra``."""

    name: str
    workspace_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("workspaceId", "workspace_id"),
        serialization_alias="workspaceId",
    )
