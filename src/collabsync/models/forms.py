"""Input schemas for create operations, plus the local binary upload value."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    SecretStr,
    StrictStr,
    StringConstraints,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

from collabsync.settings import DEFAULT_ICON_CONTENT_TYPES, DEFAULT_ICON_MAX_BYTES, Settings

T = TypeVar("T")

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class LocalFile(BaseModel):
    """A binary the user just picked locally, not yet uploaded anywhere."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path) -> LocalFile:
        """Read a file from disk, guessing its content type from the extension."""
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )

    def as_upload(self) -> tuple[str, bytes, str]:
        """Return the ``(filename, content, content_type)`` triple httpx expects."""
        return self.filename, self.content, self.content_type


FormValue = str | LocalFile


@dataclass(frozen=True)
class IconConstraints:
    """Size and type limits for project icons, supplied by the caller."""

    max_bytes: int = DEFAULT_ICON_MAX_BYTES
    content_types: frozenset[str] = frozenset(DEFAULT_ICON_CONTENT_TYPES)

    @classmethod
    def from_settings(cls, settings: Settings) -> IconConstraints:
        return cls(
            max_bytes=settings.icon_max_bytes,
            content_types=frozenset(settings.icon_content_types),
        )

    def check(self, file: LocalFile) -> None:
        if file.content_type not in self.content_types:
            raise PydanticCustomError(
                "icon_type",
                "Icon must be one of: {allowed}",
                {"allowed": ", ".join(sorted(self.content_types))},
            )
        if file.size > self.max_bytes:
            raise PydanticCustomError(
                "icon_size",
                "Icon must be at most {max_kb} KB",
                {"max_kb": self.max_bytes // 1024},
            )


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


Blankable = Annotated[T | None, BeforeValidator(_blank_to_none)]


class CreateRoomInput(BaseModel):
    """Body of Create Room. The write is not workspace-qualified."""

    model_config = ConfigDict(populate_by_name=True)

    name: NonEmptyStr
    workspace_id: Blankable[str] = Field(default=None, alias="workspaceId")

    def to_form(self) -> dict[str, FormValue]:
        form: dict[str, FormValue] = {"name": self.name}
        if self.workspace_id is not None:
            form["workspaceId"] = self.workspace_id
        return form


class CreateProjectInput(BaseModel):
    """Body of Create Project.

    ``image`` accepts either a freshly picked :class:`LocalFile` or a
    reference string left over from a previous fetch; only the former is
    ever uploaded.  Raw bytes are rejected rather than coerced to a string.
    ``access_token`` is kept as a secret and forwarded verbatim.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: NonEmptyStr
    workspace_id: NonEmptyStr = Field(alias="workspaceId")
    access_token: Blankable[SecretStr] = Field(default=None, alias="accessToken")
    image: Blankable[LocalFile | StrictStr] = None

    @field_validator("image")
    @classmethod
    def check_icon(
        cls, value: LocalFile | str | None, info: ValidationInfo
    ) -> LocalFile | str | None:
        if not isinstance(value, LocalFile):
            return value
        constraints = (info.context or {}).get("icon_constraints")
        if isinstance(constraints, IconConstraints):
            constraints.check(value)
        return value

    @property
    def upload(self) -> LocalFile | None:
        """The icon to upload, or ``None`` when nothing new was picked."""
        return self.image if isinstance(self.image, LocalFile) else None

    def to_form(self) -> dict[str, FormValue]:
        form: dict[str, FormValue] = {"name": self.name, "workspaceId": self.workspace_id}
        if self.access_token is not None:
            form["accessToken"] = self.access_token.get_secret_value()
        if self.upload is not None:
            form["image"] = self.upload
        return form
