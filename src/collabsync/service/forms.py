"""Form submission adapter: bound input state → validated payload → coordinator."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, Protocol, TypeVar

import pydantic

from collabsync.errors import TransportError, ValidationError
from collabsync.result import Err, Result
from collabsync.service.mutations import MutationCoordinator

logger = logging.getLogger("collabsync.forms")

I = TypeVar("I", bound=pydantic.BaseModel)  # noqa: E741
T = TypeVar("T")


class Navigator(Protocol):
    """Where post-submit navigation goes (a router, a CLI printer, a test double)."""

    def push(self, path: str) -> None: ...


def field_errors(schema: type[pydantic.BaseModel], exc: pydantic.ValidationError) -> dict[str, str]:
    """Map pydantic errors to ``{field_name: first message}``."""
    by_alias = {f.alias: name for name, f in schema.model_fields.items() if f.alias}
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        name = str(loc[0])
        errors.setdefault(by_alias.get(name, name), err["msg"])
    return errors


class FormSubmission(Generic[I, T]):
    """Holds a form's input values and submits them through a coordinator.

    *context* is passed to pydantic validation, which is how externally
    declared constraints (icon size and type) reach the schema.  On success
    the values are reset to *defaults* before *on_success* runs.
    """

    def __init__(
        self,
        schema: type[I],
        coordinator: MutationCoordinator[I, T],
        *,
        defaults: Mapping[str, Any] | None = None,
        context: Mapping[str, Any] | None = None,
        on_success: Callable[[T], None] | None = None,
    ) -> None:
        self._schema = schema
        self._coordinator = coordinator
        self._defaults = dict(defaults or {})
        self._context = dict(context or {})
        self._on_success = on_success
        self.values: dict[str, Any] = dict(self._defaults)
        self.errors: dict[str, str] = {}

    @property
    def coordinator(self) -> MutationCoordinator[I, T]:
        return self._coordinator

    @property
    def is_pending(self) -> bool:
        return self._coordinator.is_pending

    def set_value(self, name: str, value: Any) -> None:
        self.values[name] = value
        self.errors.pop(name, None)

    def reset(self) -> None:
        self.values = dict(self._defaults)
        self.errors = {}

    def validate(self) -> I:
        """Validate the current values.  Raises :class:`ValidationError`."""
        try:
            return self._schema.model_validate(self.values, context=self._context)
        except pydantic.ValidationError as exc:
            raise ValidationError(field_errors(self._schema, exc)) from exc

    async def submit(self) -> Result[T, ValidationError | TransportError]:
        """Validate, then run the mutation.  Invalid input never reaches the network."""
        try:
            payload = self.validate()
        except ValidationError as exc:
            self.errors = exc.field_errors
            logger.debug("%s rejected: %s", self._schema.__name__, sorted(exc.field_errors))
            return Err(exc)
        self.errors = {}
        return await self._coordinator.mutate(payload, on_success=self._succeeded)

    def _succeeded(self, data: T) -> None:
        self.reset()
        if self._on_success is not None:
            self._on_success(data)
