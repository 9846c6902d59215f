"""Unit tests for MutationCoordinator: state machine, supersession, side effects."""

from __future__ import annotations

import asyncio

import pytest

from collabsync.cache.store import ResourceCache
from collabsync.errors import TransportError
from collabsync.result import Err, Ok, Result
from collabsync.service.mutations import MutationCoordinator, MutationStatus
from collabsync.service.notify import MemoryNotifier, Severity


class ScriptedWrite:
    """A write whose calls stay pending until the test resolves them by name."""

    def __init__(self) -> None:
        self.pending: dict[str, asyncio.Future[Result[str, TransportError]]] = {}

    async def __call__(self, name: str) -> Result[str, TransportError]:
        future: asyncio.Future[Result[str, TransportError]] = (
            asyncio.get_running_loop().create_future()
        )
        self.pending[name] = future
        return await future

    def resolve(self, name: str, result: Result[str, TransportError]) -> None:
        self.pending[name].set_result(result)


def _coordinator(
    write: ScriptedWrite,
    cache: ResourceCache,
    notifier: MemoryNotifier,
    *,
    suppress: bool = False,
) -> MutationCoordinator[str, str]:
    return MutationCoordinator(
        "create_room",
        write,
        cache=cache,
        notifier=notifier,
        success_message="Room created successfully",
        error_message="Failed to create room",
        invalidates=lambda _name, _body: [("rooms",)],
        suppress_superseded_notifications=suppress,
    )


async def _started(coordinator: MutationCoordinator, name: str, **kwargs) -> asyncio.Task:
    task = asyncio.ensure_future(coordinator.mutate(name, **kwargs))
    await asyncio.sleep(0)
    return task


class TestStateMachine:
    async def test_idle_before_first_call(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        coordinator = _coordinator(ScriptedWrite(), cache, notifier)
        assert coordinator.status == MutationStatus.IDLE
        assert coordinator.state is None

    async def test_pending_then_success(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)

        task = await _started(coordinator, "general")
        assert coordinator.is_pending

        write.resolve("general", Ok("r1"))
        result = await task

        assert result == Ok("r1")
        assert coordinator.status == MutationStatus.SUCCESS
        assert coordinator.state.data == "r1"  # type: ignore[union-attr]

    async def test_error_is_returned_not_raised(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)
        continuation: list[str] = []

        task = await _started(coordinator, "general", on_success=continuation.append)
        write.resolve("general", Err(TransportError("boom", status_code=500)))
        result = await task

        assert not result.is_ok
        assert coordinator.status == MutationStatus.ERROR
        assert coordinator.state.error.status_code == 500  # type: ignore[union-attr]
        assert notifier.texts(Severity.ERROR) == ["Failed to create room"]
        assert continuation == []

    async def test_raised_transport_error_is_converted(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        async def explode(_name: str) -> Result[str, TransportError]:
            raise TransportError("reset", operation="rooms.create")

        coordinator = MutationCoordinator(
            "create_room",
            explode,
            cache=cache,
            notifier=notifier,
            success_message="ok",
            error_message="Failed to create room",
        )
        result = await coordinator.mutate("general")

        assert not result.is_ok
        assert notifier.texts() == ["Failed to create room"]

    async def test_other_exceptions_propagate(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        async def broken(_name: str) -> Result[str, TransportError]:
            raise KeyError("bug")

        coordinator = MutationCoordinator(
            "create_room", broken, cache=cache, notifier=notifier,
            success_message="ok", error_message="failed",
        )
        with pytest.raises(KeyError):
            await coordinator.mutate("general")
        assert coordinator.status == MutationStatus.ERROR
        assert notifier.texts() == []

    async def test_reset_returns_to_idle(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)
        task = await _started(coordinator, "general")
        write.resolve("general", Ok("r1"))
        await task

        coordinator.reset()
        assert coordinator.status == MutationStatus.IDLE


class TestSuccessSideEffects:
    async def test_notifies_invalidates_then_continues(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        cache.put(("rooms", "w1"), [])
        cache.put(("projects", "w1"), [])
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)
        observed: list[tuple[str, bool]] = []

        def continuation(body: str) -> None:
            observed.append((body, cache.is_stale(("rooms", "w1"))))

        task = await _started(coordinator, "general", on_success=continuation)
        write.resolve("general", Ok("r1"))
        await task

        assert notifier.texts(Severity.SUCCESS) == ["Room created successfully"]
        assert observed == [("r1", True)]
        assert not cache.is_stale(("projects", "w1"))


class TestSupersession:
    async def test_later_call_wins_state_both_notify(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)
        continued: list[str] = []

        task_a = await _started(coordinator, "A", on_success=continued.append)
        task_b = await _started(coordinator, "B", on_success=continued.append)

        write.resolve("B", Ok("room-b"))
        await task_b
        write.resolve("A", Ok("room-a"))
        result_a = await task_a

        assert result_a == Ok("room-a")
        assert coordinator.state.variables == "B"  # type: ignore[union-attr]
        assert coordinator.state.data == "room-b"  # type: ignore[union-attr]
        assert notifier.texts(Severity.SUCCESS) == ["Room created successfully"] * 2
        assert continued == ["room-b"]

    async def test_superseded_call_still_invalidates(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)
        task_a = await _started(coordinator, "A")
        task_b = await _started(coordinator, "B")
        write.resolve("B", Ok("room-b"))
        await task_b

        cache.put(("rooms", "w1"), ["refreshed"])
        write.resolve("A", Ok("room-a"))
        await task_a

        assert cache.is_stale(("rooms", "w1"))

    async def test_superseded_error_does_not_change_state(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)
        task_a = await _started(coordinator, "A")
        task_b = await _started(coordinator, "B")
        write.resolve("B", Ok("room-b"))
        await task_b
        write.resolve("A", Err(TransportError("late failure", status_code=502)))
        await task_a

        assert coordinator.status == MutationStatus.SUCCESS
        assert notifier.texts() == ["Room created successfully", "Failed to create room"]

    async def test_suppression_is_configurable(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier, suppress=True)
        task_a = await _started(coordinator, "A")
        task_b = await _started(coordinator, "B")
        write.resolve("B", Ok("room-b"))
        await task_b
        write.resolve("A", Ok("room-a"))
        await task_a

        assert notifier.texts() == ["Room created successfully"]

    async def test_reset_drops_pending_continuation(
        self, cache: ResourceCache, notifier: MemoryNotifier
    ) -> None:
        write = ScriptedWrite()
        coordinator = _coordinator(write, cache, notifier)
        continued: list[str] = []
        task = await _started(coordinator, "A", on_success=continued.append)

        coordinator.reset()
        write.resolve("A", Ok("room-a"))
        await task

        assert continued == []
        assert notifier.texts() == ["Room created successfully"]
