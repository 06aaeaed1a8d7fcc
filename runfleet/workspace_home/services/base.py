"""Workspace services interface.

The orchestrator never creates worktrees, opens connections or talks to
threads itself.  It calls out to these services, which the host application
implements (see ``HttpWorkspaceServices`` for the HTTP backend).  All calls
are async and may raise; how a failure is treated (fatal, skip, fallback) is
the orchestrator's decision, not the service's.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from runfleet.workspace_home.models.workspace import RunMetadata, WorkspaceInfo


@runtime_checkable
class WorkspaceServices(Protocol):
    """Async protocol for the collaborators a run depends on."""

    async def generate_run_metadata(self, workspace_id: str, prompt: str) -> RunMetadata | None:
        """Suggest a title and worktree name for *prompt*.  Best-effort."""
        ...

    async def add_worktree_agent(
        self,
        workspace: WorkspaceInfo,
        branch: str,
        *,
        activate: bool = False,
    ) -> WorkspaceInfo | None:
        """Create an isolated copy of *workspace* on *branch*.  ``None`` means skip."""
        ...

    async def connect_workspace(self, workspace: WorkspaceInfo) -> None:
        """Connect the workspace's backend session."""
        ...

    async def start_thread_for_workspace(self, workspace_id: str, *, activate: bool = False) -> str | None:
        """Start a new conversation thread; returns its id or ``None``."""
        ...

    async def send_user_message_to_thread(
        self,
        workspace: WorkspaceInfo,
        thread_id: str,
        text: str,
        images: Sequence[str] = (),
        *,
        model: str | None = None,
        effort: str | None = None,
    ) -> None:
        """Send the user prompt (and image attachments) to a thread."""
        ...
