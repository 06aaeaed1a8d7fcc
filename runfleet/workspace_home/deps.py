"""FastAPI dependency injection for the orchestrator and submission registry.

Usage in route handlers::

    @router.post("/things")
    async def do_thing(orchestrator: Orchestrator) -> ThingResponse:
        ...

Dependencies raise HTTP 503 if the lifespan has not initialised them.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from runfleet.workspace_home.execution.orchestrator import RunOrchestrator
from runfleet.workspace_home.registry import SubmissionRegistry


def get_orchestrator(request: Request) -> RunOrchestrator:
    orchestrator: RunOrchestrator | None = request.app.state.orchestrator
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Run orchestrator not initialised.",
        )
    return orchestrator


def get_registry(request: Request) -> SubmissionRegistry:
    registry: SubmissionRegistry | None = request.app.state.registry
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Submission registry not initialised.",
        )
    return registry


# -- Annotated type aliases for concise route signatures ---------------------

Orchestrator = Annotated[RunOrchestrator, Depends(get_orchestrator)]
"""Annotated dependency: the process-wide run orchestrator."""

Registry = Annotated[SubmissionRegistry, Depends(get_registry)]
"""Annotated dependency: the in-flight submission registry."""
