"""API request / response schemas for the workspace home endpoints.

These thin schemas sit between HTTP and the orchestrator.  Domain models
(``Run``, ``WorkspaceInfo``, ``ModelOption``) are reused directly where they
already have the right shape.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from runfleet.workspace_home.models.enums import RunMode, SubmitRejection
from runfleet.workspace_home.models.run import Run
from runfleet.workspace_home.models.workspace import ModelOption, WorkspaceInfo
from runfleet.workspace_home.state.home import WorkspaceHomeView

# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------


class DraftUpdate(BaseModel):
    value: str


class ModeUpdate(BaseModel):
    mode: RunMode


class ModelToggle(BaseModel):
    model_id: str


class ModelCountUpdate(BaseModel):
    model_id: str
    count: int = Field(description="Clamped to at least 1.")


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


class SubmitRequest(BaseModel):
    """Submit the active workspace's draft.

    The caller supplies the workspace snapshot and model catalogue it is
    showing, so the run reflects exactly what the user saw.
    """

    workspace: WorkspaceInfo
    images: list[str] = Field(default_factory=list)
    models: list[ModelOption] = Field(default_factory=list)
    selected_model_id: str | None = None


class SubmitResponse(BaseModel):
    """Result of a submit call.

    ``accepted`` is false when the submission was ignored (empty draft,
    already submitting) or rejected (``error`` is then set); ``reason`` tells
    these apart.  When accepted, ``run`` is the provisional run; instances
    arrive once it settles.
    """

    accepted: bool
    run: Run | None = None
    error: str | None = None
    reason: SubmitRejection | None = None


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


class WorkspaceHomeResponse(BaseModel):
    """Serialized ``WorkspaceHomeView``."""

    workspace_id: str
    runs: list[Run]
    draft: str
    run_mode: RunMode
    model_selections: dict[str, int]
    error: str | None = None
    is_submitting: bool

    @classmethod
    def from_view(cls, workspace_id: str, view: WorkspaceHomeView) -> WorkspaceHomeResponse:
        return cls(
            workspace_id=workspace_id,
            runs=list(view.runs),
            draft=view.draft,
            run_mode=view.run_mode,
            model_selections=dict(view.model_selections),
            error=view.error,
            is_submitting=view.is_submitting,
        )
