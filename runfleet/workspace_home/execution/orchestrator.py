"""Run orchestrator -- turns a draft prompt into one run and its instances.

A submission goes through two phases:

1. **Accept** (synchronous): guard, validate, insert the run with no
   instances, clear the draft and mark the workspace as submitting.  Because
   nothing awaits here, a second submit for the same workspace always sees
   ``is_submitting`` and is ignored.
2. **Execute** (async): resolve naming, materialize instances, then settle
   the run in one store transition.

Materializing branches on the run mode:

- **local** -- one thread on the workspace itself.  Any failure is fatal for
  the submission and becomes the workspace error.
- **worktree** -- one isolated copy per (model, repetition), awaited strictly
  in order.  A failed repetition is skipped; its siblings still run.

Branch names use a run-wide counter: the first worktree gets the bare slug,
later ones ``<slug>-<n>``.  The counter is only race-free because
repetitions run sequentially -- keep it that way.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from runfleet.workspace_home.execution.attachments import attachment_title, normalize_images
from runfleet.workspace_home.execution.naming import (
    branch_for,
    build_run_title,
    build_worktree_slug,
    create_run_id,
    normalize_slug,
    resolve_model_label,
    trim_whitespace,
)
from runfleet.workspace_home.execution.outcome import Fallback, Ok, Outcome
from runfleet.workspace_home.models.enums import RunMode
from runfleet.workspace_home.models.run import Run, RunInstance
from runfleet.workspace_home.models.workspace import ModelOption, RunMetadata, WorkspaceInfo
from runfleet.workspace_home.services.base import WorkspaceServices
from runfleet.workspace_home.state import home
from runfleet.workspace_home.state.home import WorkspaceHomeStore, WorkspaceHomeView
from runfleet.workspace_home.state.selections import ModelSelection, selected_models

NO_MODELS_SELECTED_ERROR = "Select at least one model to run in a worktree."
LOCAL_THREAD_ERROR = "Failed to start a local thread."
DEFAULT_MODEL_LABEL = "Default model"


class ThreadStartError(RuntimeError):
    """The thread service did not return a thread id for a local run."""


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Submission:
    """An accepted submission, ready to execute."""

    workspace: WorkspaceInfo
    run: Run
    images: tuple[str, ...] = ()
    selections: tuple[ModelSelection, ...] = ()
    local_model_id: str | None = None
    local_model: ModelOption | None = None

    @property
    def workspace_id(self) -> str:
        return self.workspace.id

    @property
    def prompt(self) -> str:
        return self.run.prompt


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class RunOrchestrator:
    """Drives submissions for every workspace against one ``WorkspaceHomeStore``.

    One instance serves all workspaces; per-workspace isolation comes from the
    store's keyed slices and the ``submitting`` guard.
    """

    def __init__(
        self,
        services: WorkspaceServices,
        store: WorkspaceHomeStore | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._services = services
        self.store = store or WorkspaceHomeStore()
        self._rng = rng or random.Random()
        self._clock = clock

    # -- Intents ---------------------------------------------------------------

    def view(self, workspace_id: str | None) -> WorkspaceHomeView:
        return self.store.view(workspace_id)

    def set_draft(self, workspace_id: str | None, value: str) -> None:
        self.store.apply(home.set_draft, workspace_id, value)

    def set_run_mode(self, workspace_id: str | None, mode: RunMode) -> None:
        self.store.apply(home.set_run_mode, workspace_id, mode)

    def toggle_model(self, workspace_id: str | None, model_id: str) -> None:
        self.store.apply(home.toggle_model, workspace_id, model_id)

    def set_model_count(self, workspace_id: str | None, model_id: str, count: int) -> None:
        self.store.apply(home.set_model_count, workspace_id, model_id, count)

    # -- Submit ----------------------------------------------------------------

    async def submit(
        self,
        workspace: WorkspaceInfo | None,
        images: Sequence[str] = (),
        *,
        models: Sequence[ModelOption] = (),
        selected_model_id: str | None = None,
    ) -> Run | None:
        """Accept and execute a submission.  Returns the settled run, if any."""
        submission = self.accept(workspace, images, models=models, selected_model_id=selected_model_id)
        if submission is None:
            return None
        return await self.execute(submission)

    def accept(
        self,
        workspace: WorkspaceInfo | None,
        images: Sequence[str] = (),
        *,
        models: Sequence[ModelOption] = (),
        selected_model_id: str | None = None,
    ) -> Submission | None:
        """Validate the workspace's draft and record a new run.

        Returns ``None`` without touching state when there is nothing to
        submit or a submission is already in flight.  A worktree run with no
        selected model sets the workspace error and also returns ``None``.
        """
        if workspace is None or not workspace.id:
            return None
        current = self.store.view(workspace.id)
        prompt = trim_whitespace(current.draft)
        if not prompt or current.is_submitting:
            return None

        selections = selected_models(current.model_selections, models)
        if current.run_mode == RunMode.WORKTREE and not selections:
            self.store.apply(home.set_error, workspace.id, NO_MODELS_SELECTED_ERROR)
            logger.info("Workspace {}: worktree run rejected, no model selected", workspace.id)
            return None

        created_at = self._clock()
        run = Run(
            id=create_run_id(int(created_at.timestamp() * 1000), self._rng),
            workspace_id=workspace.id,
            title=build_run_title(prompt),
            prompt=prompt,
            created_at=created_at,
            mode=current.run_mode,
        )
        self.store.apply(home.accept_submission, workspace.id, run)

        lookup = {model.id: model for model in models}
        submission = Submission(
            workspace=workspace,
            run=run,
            images=normalize_images(images),
            selections=tuple(selections),
            local_model_id=selected_model_id,
            local_model=lookup.get(selected_model_id) if selected_model_id else None,
        )
        logger.info(
            "Run {} accepted: workspace={}, mode={}, instances={}, attachments={}",
            run.id,
            workspace.id,
            run.mode,
            sum(s.count for s in selections) if run.mode == RunMode.WORKTREE else 1,
            [attachment_title(image) for image in submission.images],
        )
        return submission

    async def execute(self, submission: Submission) -> Run | None:
        """Run an accepted submission to completion and settle it."""
        run = submission.run
        instances: list[RunInstance] = []
        error: str | None = None
        try:
            base_slug = await self._resolve_naming(submission)
            if run.mode == RunMode.LOCAL:
                instances.append(await self._run_local(submission))
            else:
                await self._run_worktrees(submission, base_slug, instances)
        except Exception as exc:
            logger.exception("Run {} failed", run.id)
            error = str(exc) or type(exc).__name__
        finally:
            self.store.apply(home.settle_submission, submission.workspace_id, run.id, instances, error)

        logger.info(
            "Run {} settled: {} instance(s){}",
            run.id,
            len(instances),
            f", error={error!r}" if error else "",
        )
        return next((r for r in self.store.view(submission.workspace_id).runs if r.id == run.id), None)

    # -- Naming ----------------------------------------------------------------

    async def _fetch_metadata(self, workspace_id: str, prompt: str) -> Outcome[RunMetadata]:
        try:
            metadata = await self._services.generate_run_metadata(workspace_id, prompt)
        except Exception as exc:
            return Fallback(reason=f"{type(exc).__name__}: {exc}")
        if metadata is None:
            return Fallback(reason="no metadata returned")
        return Ok(metadata)

    async def _resolve_naming(self, submission: Submission) -> str:
        """Apply a better title if one is suggested; return the base worktree slug."""
        run = submission.run
        outcome = await self._fetch_metadata(submission.workspace_id, run.prompt)

        suggested_slug: str | None = None
        if isinstance(outcome, Ok):
            metadata = outcome.value
            title = trim_whitespace(metadata.title or "")
            if title and title != run.title:
                self.store.apply(home.patch_run, submission.workspace_id, run.id, title=title)
            suggested_slug = normalize_slug(metadata.worktree_name)
        else:
            logger.debug("Run {}: metadata unavailable ({}), using local naming", run.id, outcome.reason)

        return suggested_slug or build_worktree_slug(run.prompt, self._rng)

    # -- Local -----------------------------------------------------------------

    async def _run_local(self, submission: Submission) -> RunInstance:
        workspace = submission.workspace
        if not workspace.connected:
            await self._services.connect_workspace(workspace)

        thread_id = await self._services.start_thread_for_workspace(workspace.id, activate=False)
        if not thread_id:
            raise ThreadStartError(LOCAL_THREAD_ERROR)

        await self._services.send_user_message_to_thread(workspace, thread_id, submission.prompt, submission.images)
        return RunInstance(
            id=f"{submission.run.id}-local-1",
            workspace_id=workspace.id,
            thread_id=thread_id,
            model_id=submission.local_model_id,
            model_label=resolve_model_label(submission.local_model, DEFAULT_MODEL_LABEL),
            sequence=1,
        )

    # -- Worktree --------------------------------------------------------------

    async def _run_worktrees(
        self,
        submission: Submission,
        base_slug: str,
        instances: list[RunInstance],
    ) -> None:
        """Fan out across worktrees, appending each success to *instances*."""
        run_id = submission.run.id
        counter = 0
        for selection in submission.selections:
            label = resolve_model_label(selection.model, selection.model_id)
            for sequence in range(1, selection.count + 1):
                counter += 1
                branch = branch_for(base_slug, counter)
                try:
                    instance = await self._run_worktree_instance(submission, selection, label, branch, sequence)
                except Exception:
                    logger.opt(exception=True).warning(
                        "Run {}: worktree {} ({} #{}) failed, skipping", run_id, branch, selection.model_id, sequence
                    )
                    continue
                if instance is None:
                    logger.warning(
                        "Run {}: worktree {} ({} #{}) produced no thread, skipping",
                        run_id,
                        branch,
                        selection.model_id,
                        sequence,
                    )
                    continue
                instances.append(instance)

    async def _run_worktree_instance(
        self,
        submission: Submission,
        selection: ModelSelection,
        label: str,
        branch: str,
        sequence: int,
    ) -> RunInstance | None:
        worktree = await self._services.add_worktree_agent(submission.workspace, branch, activate=False)
        if worktree is None:
            return None
        if not worktree.connected:
            await self._services.connect_workspace(worktree)

        thread_id = await self._services.start_thread_for_workspace(worktree.id, activate=False)
        if not thread_id:
            return None

        await self._services.send_user_message_to_thread(
            worktree,
            thread_id,
            submission.prompt,
            submission.images,
            model=selection.model_id,
            effort=None,
        )
        return RunInstance(
            id=f"{submission.run.id}-{selection.model_id}-{sequence}",
            workspace_id=worktree.id,
            thread_id=thread_id,
            model_id=selection.model_id,
            model_label=label,
            sequence=sequence,
        )
