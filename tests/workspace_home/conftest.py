"""Shared fixtures for workspace-home tests.

``FakeServices`` stands in for the host backend.  Every collaborator is an
``AsyncMock`` so tests can both script behaviour (``side_effect``) and
assert on calls.  By default every call succeeds: worktrees are created as
``wt-<n>`` (disconnected), threads are ``thread-<n>``.
"""

from __future__ import annotations

import random
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from runfleet.workspace_home.app import app
from runfleet.workspace_home.execution.orchestrator import RunOrchestrator
from runfleet.workspace_home.models.enums import WorkspaceKind
from runfleet.workspace_home.models.workspace import ModelOption, WorkspaceInfo
from runfleet.workspace_home.registry import SubmissionRegistry
from runfleet.workspace_home.state.home import WorkspaceHomeStore

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


class FakeServices:
    """In-process ``WorkspaceServices`` with recorded calls."""

    def __init__(self) -> None:
        self.branches: list[str] = []
        self._thread_count = 0
        self.generate_run_metadata = AsyncMock(return_value=None)
        self.add_worktree_agent = AsyncMock(side_effect=self._add_worktree)
        self.connect_workspace = AsyncMock(return_value=None)
        self.start_thread_for_workspace = AsyncMock(side_effect=self._start_thread)
        self.send_user_message_to_thread = AsyncMock(return_value=None)

    async def _add_worktree(self, workspace: WorkspaceInfo, branch: str, *, activate: bool = False) -> WorkspaceInfo:
        self.branches.append(branch)
        return WorkspaceInfo(
            id=f"wt-{len(self.branches)}",
            name=branch,
            connected=False,
            kind=WorkspaceKind.WORKTREE,
        )

    async def _start_thread(self, workspace_id: str, *, activate: bool = False) -> str:
        self._thread_count += 1
        return f"thread-{self._thread_count}"


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def orchestrator(services: FakeServices) -> RunOrchestrator:
    return RunOrchestrator(
        services,
        WorkspaceHomeStore(),
        rng=random.Random(7),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def workspace() -> WorkspaceInfo:
    return WorkspaceInfo(id="ws-1", name="app", path="/src/app", connected=True)


@pytest.fixture
def models() -> list[ModelOption]:
    return [
        ModelOption(id="model-a", model="gpt-a", display_name="Model A"),
        ModelOption(id="model-b", model="gpt-b", display_name=""),
        ModelOption(id="model-c", model="", display_name=""),
    ]


@pytest.fixture
def registry() -> SubmissionRegistry:
    return SubmissionRegistry()


@pytest.fixture
async def client(orchestrator: RunOrchestrator, registry: SubmissionRegistry) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with a fake backend.

    The app lifespan does NOT run under ``ASGITransport``, so the state
    fields it would create are set here and reset afterwards.
    """
    app.state.orchestrator = orchestrator
    app.state.registry = registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await registry.wait_until_drained(timeout=5)
    app.state.orchestrator = None
    app.state.registry = None
