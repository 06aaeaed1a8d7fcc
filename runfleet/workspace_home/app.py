from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger

from runfleet.workspace_home.execution.orchestrator import RunOrchestrator
from runfleet.workspace_home.log import setup_logging
from runfleet.workspace_home.registry import SubmissionRegistry
from runfleet.workspace_home.services.http import HttpWorkspaceServices
from runfleet.workspace_home.settings import get_settings
from runfleet.workspace_home.state.home import WorkspaceHomeStore


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    logger.info("Workspace home starting (host={}, port={})", settings.host, settings.port)
    timeout_info = f"{settings.request_timeout}s" if settings.request_timeout is not None else "none"
    logger.info("Workspace backend: {} (timeout={})", settings.backend_url, timeout_info)

    services = HttpWorkspaceServices(
        settings.backend_url,
        token=settings.resolve_backend_token(),
        timeout=settings.request_timeout,
    )
    registry = SubmissionRegistry()
    _app.state.services = services
    _app.state.registry = registry
    _app.state.orchestrator = RunOrchestrator(services, WorkspaceHomeStore())
    logger.info("RunOrchestrator: initialised")

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Workspace home shutting down (active_submissions={})", registry.active_count)

    # 1. Stop accepting new submissions.
    registry.begin_shutdown()

    # 2. Let in-flight submissions settle.  They are never cancelled; if the
    #    drain times out the remaining ones are abandoned with the process.
    if registry.active_count > 0:
        timeout = settings.graceful_shutdown_timeout
        logger.info("Waiting for {} submissions to settle (timeout={}s)...", registry.active_count, timeout)
        await registry.wait_until_drained(timeout=timeout)

    # 3. Close the backend client (returns pooled connections).
    await services.close()
    logger.info("Workspace backend client: closed")


app = FastAPI(title="Runfleet Workspace Home", lifespan=lifespan)

# Lifespan does not run under ASGITransport / bare TestClient; start empty.
app.state.services = None
app.state.registry = None
app.state.orchestrator = None

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from runfleet.workspace_home.routers.home import router as home_router  # noqa: E402

api.include_router(home_router)

app.include_router(api)
