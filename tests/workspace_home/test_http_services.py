"""Tests for HttpWorkspaceServices against a mocked backend."""

from __future__ import annotations

import json

import httpx
import pytest

from runfleet.workspace_home.execution.orchestrator import RunOrchestrator
from runfleet.workspace_home.models.enums import WorkspaceKind
from runfleet.workspace_home.models.workspace import WorkspaceInfo
from runfleet.workspace_home.services import BackendError, HttpWorkspaceServices, WorkspaceServices


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, responses: dict[str, httpx.Response]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.get(request.url.path, httpx.Response(204))

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _services(recorder: Recorder) -> HttpWorkspaceServices:
    client = httpx.AsyncClient(base_url="http://backend", transport=httpx.MockTransport(recorder))
    return HttpWorkspaceServices(client=client)


def test_satisfies_protocol() -> None:
    assert isinstance(HttpWorkspaceServices(), WorkspaceServices)


async def test_generate_run_metadata() -> None:
    recorder = Recorder({
        "/api/runs/metadata": httpx.Response(200, json={"title": "Dark mode", "worktreeName": "feat/dark-mode"}),
    })
    services = _services(recorder)

    metadata = await services.generate_run_metadata("ws-1", "Add dark mode")

    assert metadata is not None
    assert metadata.title == "Dark mode"
    assert metadata.worktree_name == "feat/dark-mode"
    assert recorder.requests[0].method == "POST"
    assert recorder.body() == {"workspace_id": "ws-1", "prompt": "Add dark mode"}
    await services.close()


async def test_generate_run_metadata_empty_response() -> None:
    services = _services(Recorder({}))
    assert await services.generate_run_metadata("ws-1", "prompt") is None
    await services.close()


async def test_add_worktree_agent(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({
        "/api/workspaces/ws-1/worktrees/add": httpx.Response(
            200, json={"id": "wt-9", "name": "feat/x", "connected": False, "kind": "worktree"}
        ),
    })
    services = _services(recorder)

    worktree = await services.add_worktree_agent(workspace, "feat/x", activate=False)

    assert worktree is not None
    assert worktree.id == "wt-9"
    assert worktree.kind == WorkspaceKind.WORKTREE
    assert recorder.body() == {"branch": "feat/x", "activate": False}
    await services.close()


async def test_add_worktree_agent_null_response(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({"/api/workspaces/ws-1/worktrees/add": httpx.Response(200, content=b"")})
    services = _services(recorder)
    assert await services.add_worktree_agent(workspace, "feat/x") is None
    await services.close()


async def test_connect_workspace(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({})
    services = _services(recorder)

    await services.connect_workspace(workspace)

    assert recorder.requests[0].url.path == "/api/workspaces/ws-1/connect"
    await services.close()


@pytest.mark.parametrize(
    ("response", "expected"),
    [
        (httpx.Response(200, json={"thread_id": "thread-42"}), "thread-42"),
        (httpx.Response(200, json={"thread_id": None}), None),
        (httpx.Response(200, json={}), None),
        (httpx.Response(204), None),
    ],
)
async def test_start_thread(response: httpx.Response, expected: str | None) -> None:
    recorder = Recorder({"/api/workspaces/ws-1/threads/start": response})
    services = _services(recorder)

    assert await services.start_thread_for_workspace("ws-1", activate=False) == expected
    assert recorder.body() == {"activate": False}
    await services.close()


async def test_send_user_message(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({})
    services = _services(recorder)

    await services.send_user_message_to_thread(
        workspace, "thread-1", "Add dark mode", ("a.png",), model="model-a", effort=None
    )

    assert recorder.requests[0].url.path == "/api/workspaces/ws-1/threads/thread-1/send"
    assert recorder.body() == {"text": "Add dark mode", "images": ["a.png"], "model": "model-a", "effort": None}
    await services.close()


async def test_error_status_raises_with_detail(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({
        "/api/workspaces/ws-1/connect": httpx.Response(409, json={"detail": "Workspace is busy"}),
    })
    services = _services(recorder)

    with pytest.raises(BackendError, match=r"\(409\): Workspace is busy"):
        await services.connect_workspace(workspace)
    await services.close()


async def test_error_status_plain_text(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({"/api/workspaces/ws-1/connect": httpx.Response(502, text="bad gateway")})
    services = _services(recorder)

    with pytest.raises(BackendError, match="bad gateway"):
        await services.connect_workspace(workspace)
    await services.close()


async def test_transport_error_raises_backend_error(workspace: WorkspaceInfo) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(base_url="http://backend", transport=httpx.MockTransport(refuse))
    services = HttpWorkspaceServices(client=client)

    with pytest.raises(BackendError, match="connection refused"):
        await services.connect_workspace(workspace)
    await services.close()


async def test_token_sent_as_bearer() -> None:
    recorder = Recorder({})
    services = HttpWorkspaceServices("http://backend/", token="secret", transport=httpx.MockTransport(recorder))

    await services.connect_workspace(WorkspaceInfo(id="ws-1"))

    request = recorder.requests[0]
    assert request.headers["Authorization"] == "Bearer secret"
    assert str(request.url) == "http://backend/api/workspaces/ws-1/connect"
    await services.close()


async def test_no_auth_header_without_token() -> None:
    recorder = Recorder({})
    services = _services(recorder)

    await services.connect_workspace(WorkspaceInfo(id="ws-1"))

    assert "Authorization" not in recorder.requests[0].headers
    await services.close()


# ---------------------------------------------------------------------------
# Malformed success bodies
# ---------------------------------------------------------------------------


async def test_non_json_body_raises_backend_error() -> None:
    recorder = Recorder({
        "/api/workspaces/ws-1/threads/start": httpx.Response(200, text="<html>oops</html>"),
    })
    services = _services(recorder)

    with pytest.raises(BackendError, match="returned invalid JSON"):
        await services.start_thread_for_workspace("ws-1")
    await services.close()


async def test_wrongly_shaped_worktree_raises_backend_error(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({
        "/api/workspaces/ws-1/worktrees/add": httpx.Response(200, json={"name": "feat/x"}),
    })
    services = _services(recorder)

    with pytest.raises(BackendError, match="unexpected WorkspaceInfo payload"):
        await services.add_worktree_agent(workspace, "feat/x")
    await services.close()


async def test_wrongly_shaped_metadata_raises_backend_error() -> None:
    recorder = Recorder({"/api/runs/metadata": httpx.Response(200, json=["not", "an", "object"])})
    services = _services(recorder)

    with pytest.raises(BackendError, match="unexpected RunMetadata payload"):
        await services.generate_run_metadata("ws-1", "prompt")
    await services.close()


# ---------------------------------------------------------------------------
# Path escaping
# ---------------------------------------------------------------------------


async def test_ids_escaped_as_single_path_segments() -> None:
    recorder = Recorder({})
    services = _services(recorder)
    odd = WorkspaceInfo(id="team/app?x=1")

    await services.connect_workspace(odd)
    await services.send_user_message_to_thread(odd, "t#1", "hi")

    connect, send = recorder.requests
    assert connect.url.raw_path == b"/api/workspaces/team%2Fapp%3Fx%3D1/connect"
    assert connect.url.query == b""
    assert send.url.raw_path == b"/api/workspaces/team%2Fapp%3Fx%3D1/threads/t%231/send"
    await services.close()


async def test_invalid_json_becomes_readable_workspace_error(workspace: WorkspaceInfo) -> None:
    recorder = Recorder({
        "/api/workspaces/ws-1/threads/start": httpx.Response(200, text="<html>oops</html>"),
    })
    services = _services(recorder)
    orchestrator = RunOrchestrator(services)
    orchestrator.set_draft("ws-1", "Add dark mode")

    await orchestrator.submit(workspace)

    assert orchestrator.view("ws-1").error == "POST /api/workspaces/ws-1/threads/start returned invalid JSON"
    await services.close()
