"""Model selection table for worktree runs.

A selection mapping is ``{model_id: count}``.  A missing key means "not
selected"; stored counts are always >= 1 -- deselecting removes the key
instead of storing zero.  All functions return new mappings.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from runfleet.workspace_home.models.workspace import ModelOption


@dataclass(frozen=True, slots=True)
class ModelSelection:
    """A selected model and how many worktree instances to run for it."""

    model_id: str
    count: int
    model: ModelOption | None = None


def toggle(selections: Mapping[str, int], model_id: str) -> dict[str, int]:
    """Deselect *model_id* if it has a positive count, otherwise select it once."""
    updated = dict(selections)
    if updated.get(model_id, 0) > 0:
        del updated[model_id]
    else:
        updated[model_id] = 1
    return updated


def with_count(selections: Mapping[str, int], model_id: str, count: int) -> dict[str, int]:
    """Set the instance count for *model_id*, clamped to at least 1."""
    return {**selections, model_id: max(1, count)}


def selected_models(
    selections: Mapping[str, int],
    models: Sequence[ModelOption],
) -> list[ModelSelection]:
    """Enumerate positive selections for models the caller knows about.

    Selection order (insertion order of the mapping) is preserved.  Ids that
    are not in *models* -- e.g. a model removed since it was picked -- are
    ignored.
    """
    lookup = {model.id: model for model in models}
    return [
        ModelSelection(model_id=model_id, count=count, model=lookup[model_id])
        for model_id, count in selections.items()
        if count > 0 and model_id in lookup
    ]
