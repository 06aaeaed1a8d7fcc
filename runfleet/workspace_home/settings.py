"""Service configuration loaded from RUNFLEET_* environment variables."""

from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunfleetSettings(BaseSettings):
    """Runfleet workspace home settings.

    All fields are read from environment variables with the ``RUNFLEET_``
    prefix.  For example, ``RUNFLEET_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RUNFLEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit one JSON object per log record instead of the coloured text format."""

    # -- Workspace backend -----------------------------------------------------
    backend_url: str = "http://localhost:8000"
    """Base URL of the host application's workspace / thread API."""

    backend_token: SecretStr | None = None
    """Bearer token sent to the backend, if it requires one."""

    request_timeout: float | None = None
    """Per-request timeout in seconds for backend calls.

    Unset by default: a run waits on slow worktree creation or thread startup
    for as long as the backend takes.  A hung call keeps the workspace in the
    submitting state until it returns.
    """

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8100
    graceful_shutdown_timeout: int = 600
    """Seconds to wait for in-flight submissions to finish during shutdown."""

    # -- Helpers ---------------------------------------------------------------

    def resolve_backend_token(self) -> str | None:
        return self.backend_token.get_secret_value() if self.backend_token else None


def get_settings() -> RunfleetSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> RunfleetSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return RunfleetSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
