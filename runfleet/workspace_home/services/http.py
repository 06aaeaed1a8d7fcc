"""HTTP implementation of the workspace services.

Talks to the host application's backend over its RPC-style API (all POST,
JSON bodies)::

    /api/runs/metadata
    /api/workspaces/{workspace_id}/worktrees/add
    /api/workspaces/{workspace_id}/connect
    /api/workspaces/{workspace_id}/threads/start
    /api/workspaces/{workspace_id}/threads/{thread_id}/send

Non-2xx responses, transport failures and malformed bodies are raised as
``BackendError`` with a message fit for showing to the user.  Workspace and
thread ids are opaque, so each is escaped as a single path segment.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from runfleet.workspace_home.models.workspace import RunMetadata, WorkspaceInfo


class BackendError(RuntimeError):
    """Raised when a backend call fails or returns an error status."""


M = TypeVar("M", bound=BaseModel)


def _segment(value: str) -> str:
    """Escape an opaque id for use as a single URL path segment."""
    return quote(value, safe="")


def _parse(model: type[M], data: Any, path: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        msg = f"POST {path} returned an unexpected {model.__name__} payload: {exc.error_count()} validation error(s)"
        raise BackendError(msg) from exc


def _error_detail(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.text.strip() or response.reason_phrase


class HttpWorkspaceServices:
    """``WorkspaceServices`` backed by the host application's HTTP API.

    Pass *client* to share a pre-configured ``httpx.AsyncClient``; otherwise
    one is created lazily from *base_url*, *token*, *timeout* and an optional
    *transport* (tests pass an ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._client = client
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        client = self._get_client()
        try:
            response = await client.post(path, json=payload or {})
        except httpx.HTTPError as exc:
            msg = f"POST {path} failed: {exc}"
            raise BackendError(msg) from exc

        if response.is_error:
            msg = f"POST {path} failed ({response.status_code}): {_error_detail(response)}"
            raise BackendError(msg)

        logger.debug("Backend: POST {} -> {}", path, response.status_code)
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            msg = f"POST {path} returned invalid JSON"
            raise BackendError(msg) from exc

    # -- Metadata --------------------------------------------------------------

    async def generate_run_metadata(self, workspace_id: str, prompt: str) -> RunMetadata | None:
        data = await self._post("/api/runs/metadata", {"workspace_id": workspace_id, "prompt": prompt})
        if data is None:
            return None
        return _parse(RunMetadata, data, "/api/runs/metadata")

    # -- Workspaces ------------------------------------------------------------

    async def add_worktree_agent(
        self,
        workspace: WorkspaceInfo,
        branch: str,
        *,
        activate: bool = False,
    ) -> WorkspaceInfo | None:
        path = f"/api/workspaces/{_segment(workspace.id)}/worktrees/add"
        data = await self._post(path, {"branch": branch, "activate": activate})
        if data is None:
            return None
        return _parse(WorkspaceInfo, data, path)

    async def connect_workspace(self, workspace: WorkspaceInfo) -> None:
        await self._post(f"/api/workspaces/{_segment(workspace.id)}/connect")

    # -- Threads ---------------------------------------------------------------

    async def start_thread_for_workspace(self, workspace_id: str, *, activate: bool = False) -> str | None:
        data = await self._post(f"/api/workspaces/{_segment(workspace_id)}/threads/start", {"activate": activate})
        if not isinstance(data, dict):
            return None
        thread_id = data.get("thread_id")
        return str(thread_id) if thread_id else None

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
        await self._post(
            f"/api/workspaces/{_segment(workspace.id)}/threads/{_segment(thread_id)}/send",
            {"text": text, "images": list(images), "model": model, "effort": effort},
        )
