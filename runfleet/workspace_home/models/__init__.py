"""Data models for the workspace home."""

from runfleet.workspace_home.models.enums import RunMode, SlugIntent, WorkspaceKind
from runfleet.workspace_home.models.run import Run, RunInstance
from runfleet.workspace_home.models.workspace import (
    ModelOption,
    RunMetadata,
    WorkspaceInfo,
    WorkspaceSettings,
)

__all__ = [
    # Workspace
    "ModelOption",
    # Run
    "Run",
    "RunInstance",
    "RunMetadata",
    # Enums
    "RunMode",
    "SlugIntent",
    "WorkspaceInfo",
    "WorkspaceKind",
    "WorkspaceSettings",
]
