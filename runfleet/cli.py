import click


@click.group()
def main() -> None:
    """Runfleet - launch prompt runs locally or fanned out across worktrees."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from RUNFLEET_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from RUNFLEET_PORT or 8100).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the workspace home server."""
    import uvicorn

    from runfleet.workspace_home.settings import RunfleetSettings

    settings = RunfleetSettings()

    uvicorn.run(
        "runfleet.workspace_home.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # In-flight submissions get the drain timeout plus a short buffer
        # for closing the backend client.
        timeout_graceful_shutdown=settings.graceful_shutdown_timeout + 30,
    )


@main.command()
@click.argument("prompt")
@click.option("--suggested", default=None, help="Externally suggested worktree name to normalize.")
@click.option("--seed", default=None, type=int, help="Seed for the fallback slug token.")
def name(prompt: str, suggested: str | None, seed: int | None) -> None:
    """Show the title and worktree slug a run would get for PROMPT."""
    import random

    from runfleet.workspace_home.execution.naming import build_run_title, build_worktree_slug, normalize_slug

    rng = random.Random(seed)
    slug = normalize_slug(suggested) or build_worktree_slug(prompt, rng)
    click.echo(f"title: {build_run_title(prompt)}")
    click.echo(f"slug:  {slug}")


if __name__ == "__main__":
    main()
