"""In-memory workspace home state and the model selection table."""

from runfleet.workspace_home.state.home import HomeState, WorkspaceHomeStore, WorkspaceHomeView
from runfleet.workspace_home.state.selections import ModelSelection

__all__ = ["HomeState", "ModelSelection", "WorkspaceHomeStore", "WorkspaceHomeView"]
