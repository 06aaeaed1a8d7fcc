"""Shared enumerations used across the workspace home."""

from __future__ import annotations

from enum import StrEnum

# -- Run ---------------------------------------------------------------------


class RunMode(StrEnum):
    """Where a run's instances execute."""

    LOCAL = "local"
    WORKTREE = "worktree"


class SlugIntent(StrEnum):
    """Branch prefix derived from the prompt."""

    FIX = "fix"
    FEAT = "feat"


# -- Workspace ---------------------------------------------------------------


class WorkspaceKind(StrEnum):
    MAIN = "main"
    WORKTREE = "worktree"


# -- Submit ------------------------------------------------------------------


class SubmitRejection(StrEnum):
    """Why a submit call did not start a run."""

    EMPTY_DRAFT = "empty_draft"
    IN_FLIGHT = "in_flight"
    NO_MODELS = "no_models"
