"""Workspace home endpoints (RPC-style).

All write operations use POST; reads use GET.  Submitting returns as soon as
the run is accepted; instance creation continues in the background and is
observed by polling ``/home/{workspace_id}/get``.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from runfleet.workspace_home.deps import Orchestrator, Registry
from runfleet.workspace_home.execution.naming import trim_whitespace
from runfleet.workspace_home.execution.orchestrator import RunOrchestrator
from runfleet.workspace_home.models.enums import SubmitRejection
from runfleet.workspace_home.models.api import (
    DraftUpdate,
    ModelCountUpdate,
    ModelToggle,
    ModeUpdate,
    SubmitRequest,
    SubmitResponse,
    WorkspaceHomeResponse,
)
from runfleet.workspace_home.models.workspace import WorkspaceInfo, order_projects
from runfleet.workspace_home.state.home import WorkspaceHomeView

router = APIRouter(prefix="/home", tags=["home"])


def _home(orchestrator: RunOrchestrator, workspace_id: str) -> WorkspaceHomeResponse:
    return WorkspaceHomeResponse.from_view(workspace_id, orchestrator.view(workspace_id))


def _rejection(before: WorkspaceHomeView) -> SubmitRejection:
    """Classify a submit that was not accepted, from the view taken before it."""
    if before.is_submitting:
        return SubmitRejection.IN_FLIGHT
    if not trim_whitespace(before.draft):
        return SubmitRejection.EMPTY_DRAFT
    return SubmitRejection.NO_MODELS


@router.get("/{workspace_id}/get", response_model=WorkspaceHomeResponse)
async def get_home(workspace_id: str, orchestrator: Orchestrator) -> WorkspaceHomeResponse:
    """Get the runs, draft and run settings of a workspace."""
    return _home(orchestrator, workspace_id)


@router.post("/{workspace_id}/draft", response_model=WorkspaceHomeResponse)
async def set_draft(workspace_id: str, body: DraftUpdate, orchestrator: Orchestrator) -> WorkspaceHomeResponse:
    orchestrator.set_draft(workspace_id, body.value)
    return _home(orchestrator, workspace_id)


@router.post("/{workspace_id}/mode", response_model=WorkspaceHomeResponse)
async def set_mode(workspace_id: str, body: ModeUpdate, orchestrator: Orchestrator) -> WorkspaceHomeResponse:
    orchestrator.set_run_mode(workspace_id, body.mode)
    return _home(orchestrator, workspace_id)


@router.post("/{workspace_id}/models/toggle", response_model=WorkspaceHomeResponse)
async def toggle_model(workspace_id: str, body: ModelToggle, orchestrator: Orchestrator) -> WorkspaceHomeResponse:
    orchestrator.toggle_model(workspace_id, body.model_id)
    return _home(orchestrator, workspace_id)


@router.post("/{workspace_id}/models/count", response_model=WorkspaceHomeResponse)
async def set_model_count(
    workspace_id: str,
    body: ModelCountUpdate,
    orchestrator: Orchestrator,
) -> WorkspaceHomeResponse:
    orchestrator.set_model_count(workspace_id, body.model_id, body.count)
    return _home(orchestrator, workspace_id)


@router.post("/submit", response_model=SubmitResponse)
async def submit(body: SubmitRequest, orchestrator: Orchestrator, registry: Registry) -> SubmitResponse:
    """Accept the workspace's draft as a new run and start executing it."""
    if registry.is_shutting_down:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is shutting down.")

    before = orchestrator.view(body.workspace.id)
    submission = orchestrator.accept(
        body.workspace,
        body.images,
        models=body.models,
        selected_model_id=body.selected_model_id,
    )
    if submission is None:
        return SubmitResponse(
            accepted=False,
            error=orchestrator.view(body.workspace.id).error,
            reason=_rejection(before),
        )

    registry.spawn(submission.workspace_id, orchestrator.execute(submission))
    return SubmitResponse(accepted=True, run=submission.run)


@router.post("/projects/order", response_model=list[WorkspaceInfo])
async def order_workspace_projects(body: list[WorkspaceInfo]) -> list[WorkspaceInfo]:
    """Order a workspace list for display: primary workspaces only."""
    return order_projects(body)
