"""Room queries, the Create Room mutation and its form."""

from __future__ import annotations

from collections.abc import Callable

from collabsync.cache.keys import rooms_key
from collabsync.errors import TransportError
from collabsync.models.forms import CreateRoomInput
from collabsync.models.resources import Room
from collabsync.result import Result
from collabsync.rpc.schemas import RoomResponse
from collabsync.service.context import SyncContext
from collabsync.service.forms import FormSubmission
from collabsync.service.mutations import MutationCoordinator
from collabsync.service.queries import QueryBinder

ROOM_CREATED = "Room created successfully"
ROOM_CREATE_FAILED = "Failed to create room"


def rooms_query(ctx: SyncContext, workspace_id: str | None) -> QueryBinder[list[Room]]:
    """Room list of one workspace, cached under ``("rooms", workspace_id)``.

    Disabled (never fetches) until a workspace id is known.
    """

    async def fetch() -> Result[list[Room], TransportError]:
        result = await ctx.rpc.list_rooms(workspace_id or "")
        return result.map(lambda body: body.data)

    return QueryBinder(
        ctx.cache,
        rooms_key(workspace_id or None),
        fetch,
        enabled=bool(workspace_id),
        max_stale_retries=ctx.settings.max_stale_retries,
    )


def create_room_mutation(ctx: SyncContext) -> MutationCoordinator[CreateRoomInput, RoomResponse]:
    """Create Room.  The write is global, so every room list goes stale."""

    async def send(payload: CreateRoomInput) -> Result[RoomResponse, TransportError]:
        return await ctx.rpc.create_room(payload.to_form())

    return MutationCoordinator(
        "create_room",
        send,
        cache=ctx.cache,
        notifier=ctx.notifier,
        success_message=ROOM_CREATED,
        error_message=ROOM_CREATE_FAILED,
        invalidates=lambda _payload, _body: [rooms_key()],
        suppress_superseded_notifications=ctx.settings.suppress_superseded_notifications,
    )


def create_room_form(
    ctx: SyncContext,
    *,
    workspace_id: str | None = None,
    on_success: Callable[[RoomResponse], None] | None = None,
) -> FormSubmission[CreateRoomInput, RoomResponse]:
    return FormSubmission(
        CreateRoomInput,
        create_room_mutation(ctx),
        defaults={"name": "", "workspace_id": workspace_id},
        on_success=on_success,
    )
