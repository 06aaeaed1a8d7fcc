"""Workspace and model data models.

Both are owned by the host application's registries; the workspace home only
receives snapshots of them with each request and never mutates them.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from runfleet.workspace_home.models.enums import WorkspaceKind


class WorkspaceSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sort_order: int | None = Field(default=None, alias="sortOrder")


class WorkspaceInfo(BaseModel):
    """A workspace snapshot: either a primary checkout or a worktree copy."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    path: str = ""
    connected: bool = False
    kind: WorkspaceKind = WorkspaceKind.MAIN
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)


class ModelOption(BaseModel):
    """A model the user can pick for a run."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    model: str = ""
    display_name: str = Field(default="", alias="displayName")


class RunMetadata(BaseModel):
    """Title and worktree name suggested by the metadata service."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    worktree_name: str | None = Field(default=None, alias="worktreeName")


# -- Helpers -----------------------------------------------------------------


def _order_value(workspace: WorkspaceInfo) -> int:
    value = workspace.settings.sort_order
    return value if value is not None else sys.maxsize


def order_projects(workspaces: Iterable[WorkspaceInfo]) -> list[WorkspaceInfo]:
    """Return the primary workspaces in display order.

    Worktree copies are dropped.  Workspaces are sorted by their configured
    ``sort_order`` (unset values last), ties broken by name ignoring case.
    """
    projects = [ws for ws in workspaces if ws.kind != WorkspaceKind.WORKTREE]
    return sorted(projects, key=lambda ws: (_order_value(ws), ws.name.casefold(), ws.name))
