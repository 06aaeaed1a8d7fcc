"""Workspace service implementations used by the run orchestrator."""

from runfleet.workspace_home.services.base import WorkspaceServices
from runfleet.workspace_home.services.http import BackendError, HttpWorkspaceServices

__all__ = ["BackendError", "HttpWorkspaceServices", "WorkspaceServices"]
