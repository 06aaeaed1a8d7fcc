"""In-process submission registry.

Tracks the background tasks executing accepted submissions, keyed by
workspace id.  Ephemeral -- empty on process restart, like all workspace
home state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class ShuttingDownError(RuntimeError):
    """Raised when attempting to start a submission during shutdown."""


class SubmissionRegistry:
    """Registry of currently executing submissions.

    The orchestrator already refuses a second submission for a busy
    workspace, so there is at most one task per workspace.  The registry
    exists to keep task references alive and to let the app drain in-flight
    work on shutdown: ``wait_until_drained`` blocks until every task is done.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._drain_event = asyncio.Event()
        self._drain_event.set()  # Starts "drained" (no submissions).
        self._shutting_down = False

    # -- Mutation --------------------------------------------------------------

    def spawn(self, workspace_id: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run *coro* as a background task for *workspace_id*.

        Raises ``ShuttingDownError`` (and closes *coro*) if shutting down.
        """
        if self._shutting_down:
            coro.close()
            raise ShuttingDownError
        task = asyncio.create_task(coro, name=f"submission:{workspace_id}")
        self._tasks[workspace_id] = task
        self._drain_event.clear()
        task.add_done_callback(lambda done: self._discard(workspace_id, done))
        logger.debug("Registry: spawned submission for workspace {}", workspace_id)
        return task

    def _discard(self, workspace_id: str, task: asyncio.Task[Any]) -> None:
        if self._tasks.get(workspace_id) is task:
            del self._tasks[workspace_id]
            logger.debug("Registry: submission for workspace {} finished", workspace_id)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error("Submission for workspace {} crashed", workspace_id)
        if not self._tasks:
            self._drain_event.set()

    # -- Query -----------------------------------------------------------------

    def get(self, workspace_id: str) -> asyncio.Task[Any] | None:
        return self._tasks.get(workspace_id)

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    # -- Lifecycle -------------------------------------------------------------

    def begin_shutdown(self) -> None:
        """Mark the registry as shutting down.  New submissions are refused."""
        self._shutting_down = True
        logger.info("Registry: shutdown initiated, refusing new submissions")
        if not self._tasks:
            self._drain_event.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    async def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Wait until all submissions have finished.

        Returns ``True`` if nothing is in flight, ``False`` if *timeout*
        expired first.  Submissions are never cancelled here.
        """
        if not self._tasks:
            return True
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Registry: drain timed out after {}s with {} submissions still active",
                timeout,
                len(self._tasks),
            )
            return False
        else:
            return True
