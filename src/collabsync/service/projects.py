"""Project queries, the Create Project mutation and the create-project form."""

from __future__ import annotations

from collections.abc import Callable

from collabsync.cache.keys import projects_key
from collabsync.errors import TransportError
from collabsync.models.forms import CreateProjectInput, IconConstraints
from collabsync.models.resources import Project
from collabsync.result import Result
from collabsync.rpc.schemas import ProjectResponse
from collabsync.service.context import SyncContext
from collabsync.service.forms import FormSubmission, Navigator
from collabsync.service.mutations import MutationCoordinator
from collabsync.service.queries import QueryBinder

PROJECT_CREATED = "Project created successfully"
PROJECT_CREATE_FAILED = "Failed to create project"


def project_path(workspace_id: str, project_id: str) -> str:
    return f"/workspaces/{workspace_id}/projects/{project_id}"


def projects_query(ctx: SyncContext, workspace_id: str | None) -> QueryBinder[list[Project]]:
    async def fetch() -> Result[list[Project], TransportError]:
        result = await ctx.rpc.list_projects(workspace_id or "")
        return result.map(lambda body: body.data)

    return QueryBinder(
        ctx.cache,
        projects_key(workspace_id or None),
        fetch,
        enabled=bool(workspace_id),
        max_stale_retries=ctx.settings.max_stale_retries,
    )


def create_project_mutation(
    ctx: SyncContext,
) -> MutationCoordinator[CreateProjectInput, ProjectResponse]:
    """Create Project.  Invalidates the project list of the parent workspace only."""

    async def send(payload: CreateProjectInput) -> Result[ProjectResponse, TransportError]:
        return await ctx.rpc.create_project(payload.to_form())

    return MutationCoordinator(
        "create_project",
        send,
        cache=ctx.cache,
        notifier=ctx.notifier,
        success_message=PROJECT_CREATED,
        error_message=PROJECT_CREATE_FAILED,
        invalidates=lambda payload, _body: [projects_key(payload.workspace_id)],
        suppress_superseded_notifications=ctx.settings.suppress_superseded_notifications,
    )


def create_project_form(
    ctx: SyncContext,
    workspace_id: str,
    *,
    navigator: Navigator | None = None,
    on_success: Callable[[ProjectResponse], None] | None = None,
) -> FormSubmission[CreateProjectInput, ProjectResponse]:
    """Form for a new project in *workspace_id*.

    After a successful create the form is cleared and, given a *navigator*,
    the caller is sent to the new project's page.
    """

    def succeeded(body: ProjectResponse) -> None:
        if navigator is not None:
            navigator.push(project_path(workspace_id, body.data.id))
        if on_success is not None:
            on_success(body)

    return FormSubmission(
        CreateProjectInput,
        create_project_mutation(ctx),
        defaults={"name": "", "image": None, "access_token": "", "workspace_id": workspace_id},
        context={"icon_constraints": IconConstraints.from_settings(ctx.settings)},
        on_success=succeeded,
    )
