"""Per-workspace home state.

``HomeState`` is an immutable value holding one mapping per slice, all keyed
by workspace id.  Transitions are plain functions ``(state, workspace_id,
...) -> HomeState`` that rebuild only the affected key; every other
workspace's entry is carried over by reference.

Rules shared by all transitions:

- A falsy ``workspace_id`` (nothing active) returns the state unchanged.
- Editing draft, mode or model selections clears that workspace's error.
- Runs are patched by id, never replaced as a whole list, so an update to
  one run cannot clobber a concurrent insert of another.

``WorkspaceHomeStore`` is the only mutable piece: it holds the current value
and swaps it atomically on each ``apply``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Concatenate, ParamSpec, TypeVar

from loguru import logger

from runfleet.workspace_home.models.enums import RunMode
from runfleet.workspace_home.models.run import Run, RunInstance
from runfleet.workspace_home.state import selections as selection_table

DEFAULT_MODE = RunMode.LOCAL

K = TypeVar("K")
V = TypeVar("V")
P = ParamSpec("P")


def _put(mapping: Mapping[K, V], key: K, value: V) -> dict[K, V]:
    return {**mapping, key: value}


# ---------------------------------------------------------------------------
# State value
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class HomeState:
    """All workspace home state.  Never mutated in place."""

    runs: Mapping[str, tuple[Run, ...]] = field(default_factory=dict)
    drafts: Mapping[str, str] = field(default_factory=dict)
    modes: Mapping[str, RunMode] = field(default_factory=dict)
    model_selections: Mapping[str, Mapping[str, int]] = field(default_factory=dict)
    errors: Mapping[str, str | None] = field(default_factory=dict)
    submitting: Mapping[str, bool] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class WorkspaceHomeView:
    """Read-only projection of one workspace's slices, with defaults applied.

    ``model_selections`` is a read-only proxy over the stored table.
    """

    runs: tuple[Run, ...] = ()
    draft: str = ""
    run_mode: RunMode = DEFAULT_MODE
    model_selections: Mapping[str, int] = field(default_factory=dict)
    error: str | None = None
    is_submitting: bool = False


def view_for(state: HomeState, workspace_id: str | None) -> WorkspaceHomeView:
    if not workspace_id:
        return WorkspaceHomeView()
    return WorkspaceHomeView(
        runs=state.runs.get(workspace_id, ()),
        draft=state.drafts.get(workspace_id, ""),
        run_mode=state.modes.get(workspace_id, DEFAULT_MODE),
        model_selections=MappingProxyType(state.model_selections.get(workspace_id, {})),
        error=state.errors.get(workspace_id),
        is_submitting=state.submitting.get(workspace_id, False),
    )


# ---------------------------------------------------------------------------
# Intent transitions (clear the workspace error)
# ---------------------------------------------------------------------------


def set_draft(state: HomeState, workspace_id: str | None, value: str) -> HomeState:
    if not workspace_id:
        return state
    return replace(
        state,
        drafts=_put(state.drafts, workspace_id, value),
        errors=_put(state.errors, workspace_id, None),
    )


def set_run_mode(state: HomeState, workspace_id: str | None, mode: RunMode) -> HomeState:
    if not workspace_id:
        return state
    return replace(
        state,
        modes=_put(state.modes, workspace_id, mode),
        errors=_put(state.errors, workspace_id, None),
    )


def _update_selections(
    state: HomeState,
    workspace_id: str,
    update: Callable[[Mapping[str, int]], dict[str, int]],
) -> HomeState:
    current = state.model_selections.get(workspace_id, {})
    return replace(
        state,
        model_selections=_put(state.model_selections, workspace_id, update(current)),
        errors=_put(state.errors, workspace_id, None),
    )


def toggle_model(state: HomeState, workspace_id: str | None, model_id: str) -> HomeState:
    if not workspace_id:
        return state
    return _update_selections(state, workspace_id, lambda current: selection_table.toggle(current, model_id))


def set_model_count(state: HomeState, workspace_id: str | None, model_id: str, count: int) -> HomeState:
    if not workspace_id:
        return state
    return _update_selections(
        state, workspace_id, lambda current: selection_table.with_count(current, model_id, count)
    )


# ---------------------------------------------------------------------------
# Orchestration transitions
# ---------------------------------------------------------------------------


def set_error(state: HomeState, workspace_id: str | None, message: str | None) -> HomeState:
    if not workspace_id:
        return state
    return replace(state, errors=_put(state.errors, workspace_id, message))


def accept_submission(state: HomeState, workspace_id: str | None, run: Run) -> HomeState:
    """Mark the workspace as submitting, prepend *run* and clear the draft."""
    if not workspace_id:
        return state
    return replace(
        state,
        runs=_put(state.runs, workspace_id, (run, *state.runs.get(workspace_id, ()))),
        drafts=_put(state.drafts, workspace_id, ""),
        errors=_put(state.errors, workspace_id, None),
        submitting=_put(state.submitting, workspace_id, True),
    )


def patch_run(state: HomeState, workspace_id: str | None, run_id: str, **changes: Any) -> HomeState:
    """Apply *changes* to the run with *run_id*; unknown ids are ignored."""
    if not workspace_id:
        return state
    runs = state.runs.get(workspace_id, ())
    patched = tuple(run.model_copy(update=changes) if run.id == run_id else run for run in runs)
    return replace(state, runs=_put(state.runs, workspace_id, patched))


def settle_submission(
    state: HomeState,
    workspace_id: str | None,
    run_id: str,
    instances: Sequence[RunInstance],
    error: str | None = None,
) -> HomeState:
    """Fold the collected instances into the run and leave submitting state.

    The run is kept even when *instances* is empty.  *error* (if any) becomes
    the workspace error.
    """
    if not workspace_id:
        return state
    state = patch_run(state, workspace_id, run_id, instances=tuple(instances))
    if error is not None:
        state = set_error(state, workspace_id, error)
    return replace(state, submitting=_put(state.submitting, workspace_id, False))


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class WorkspaceHomeStore:
    """Holds the current ``HomeState`` and swaps it on every transition.

    All access happens on the event loop thread, so a plain attribute swap is
    enough: readers see either the old or the new value, never a mix.
    """

    def __init__(self, state: HomeState | None = None) -> None:
        self._state = state or HomeState()

    @property
    def state(self) -> HomeState:
        return self._state

    def apply(
        self,
        transition: Callable[Concatenate[HomeState, P], HomeState],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> HomeState:
        self._state = transition(self._state, *args, **kwargs)
        logger.trace("Store: applied {}", transition.__name__)
        return self._state

    def view(self, workspace_id: str | None) -> WorkspaceHomeView:
        return view_for(self._state, workspace_id)
