"""Run and run-instance data models.

A run is one accepted prompt submission; its instances are the threads it
materialized.  Both are frozen -- updates go through ``model_copy`` so the
state store can swap whole values.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from runfleet.workspace_home.models.enums import RunMode

# -- Instance ----------------------------------------------------------------


class RunInstance(BaseModel):
    """One conversation thread bound to one workspace and one model."""

    model_config = ConfigDict(frozen=True)

    id: str
    workspace_id: str
    thread_id: str
    model_id: str | None = None
    model_label: str
    sequence: int = Field(ge=1, description="1-based position among instances of the same model")


# -- Run ---------------------------------------------------------------------


class Run(BaseModel):
    """A user-initiated submission and the instances it produced."""

    model_config = ConfigDict(frozen=True)

    id: str
    workspace_id: str
    title: str
    prompt: str
    created_at: datetime
    mode: RunMode
    instances: tuple[RunInstance, ...] = ()
