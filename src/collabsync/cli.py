"""Command-line access to rooms and projects.

Usage::

    collabsync rooms list --workspace W
    collabsync rooms create NAME [--workspace W]
    collabsync projects list --workspace W
    collabsync projects create NAME --workspace W [--icon PATH] [--access-token TOKEN]

Exit codes: 0 success, 1 request failed, 2 invalid input.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from collabsync import __version__
from collabsync.errors import ValidationError
from collabsync.models.forms import LocalFile
from collabsync.service.context import SyncContext
from collabsync.service.projects import create_project_form, projects_query
from collabsync.service.rooms import create_room_form, rooms_query
from collabsync.settings import Settings

logger = logging.getLogger("collabsync.cli")

EXIT_OK = 0
EXIT_TRANSPORT = 1
EXIT_INVALID = 2


class _PrintNavigator:
    def push(self, path: str) -> None:
        print(f"Open {path}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="collabsync", description=__doc__.splitlines()[0])
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--api-url", help="Override API_BASE_URL")
    resources = parser.add_subparsers(dest="resource", required=True)

    rooms = resources.add_parser("rooms", help="List or create rooms")
    rooms_cmd = rooms.add_subparsers(dest="command", required=True)
    rooms_list = rooms_cmd.add_parser("list")
    rooms_list.add_argument("--workspace", required=True)
    rooms_create = rooms_cmd.add_parser("create")
    rooms_create.add_argument("name")
    rooms_create.add_argument("--workspace")

    projects = resources.add_parser("projects", help="List or create projects")
    projects_cmd = projects.add_subparsers(dest="command", required=True)
    projects_list = projects_cmd.add_parser("list")
    projects_list.add_argument("--workspace", required=True)
    projects_create = projects_cmd.add_parser("create")
    projects_create.add_argument("name")
    projects_create.add_argument("--workspace", required=True)
    projects_create.add_argument("--icon", help="Path to a JPEG, PNG or SVG icon")
    projects_create.add_argument("--access-token", help="Token used to import repository data")
    return parser


def _print_items(items: Sequence[object]) -> None:
    for item in items:
        print(json.dumps(item.model_dump(mode="json", by_alias=True)))  # type: ignore[attr-defined]


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    ctx = SyncContext.from_settings(settings)
    try:
        if args.command == "list":
            factory = rooms_query if args.resource == "rooms" else projects_query
            state = await factory(ctx, args.workspace).refetch()
            if state.is_error:
                print(f"Error: {state.error}", file=sys.stderr)
                return EXIT_TRANSPORT
            _print_items(state.data or [])
            return EXIT_OK

        if args.resource == "rooms":
            form = create_room_form(ctx, workspace_id=args.workspace)
        else:
            form = create_project_form(ctx, args.workspace, navigator=_PrintNavigator())
            if args.access_token:
                form.set_value("access_token", args.access_token)
            if args.icon:
                try:
                    form.set_value("image", LocalFile.from_path(args.icon))
                except OSError as exc:
                    print(f"image: cannot read {args.icon}: {exc.strerror}", file=sys.stderr)
                    return EXIT_INVALID
        form.set_value("name", args.name)

        result = await form.submit()
        if result.is_ok:
            print(json.dumps(result.value.data.model_dump(mode="json", by_alias=True)))
            return EXIT_OK
        if isinstance(result.error, ValidationError):
            for name, message in result.error.field_errors.items():
                print(f"{name}: {message}", file=sys.stderr)
            return EXIT_INVALID
        print(f"Error: {result.error}", file=sys.stderr)
        return EXIT_TRANSPORT
    finally:
        await ctx.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = Settings()
    if args.api_url:
        settings = settings.model_copy(update={"api_base_url": args.api_url})

    logging.basicConfig(level=settings.log_level.upper())
    logger.debug("collabsync v%s using %s", __version__, settings.api_base_url)
    return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
