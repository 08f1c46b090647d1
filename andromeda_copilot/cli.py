import click


def _preflight(settings) -> str:
    """Return the provider credential or exit 1 when the host is not ready."""
    from andromeda_copilot.agent_runtime.execution.environment import runtime_available

    api_key = settings.resolve_api_key()
    if not api_key:
        click.secho("OPENAI_API_KEY environment variable is required", fg="red", err=True)
        click.echo("Please set your OpenAI API key:", err=True)
        click.echo("export OPENAI_API_KEY=your_api_key_here", err=True)
        raise SystemExit(1)

    if not runtime_available(settings.runtime_command):
        click.secho(f"{settings.runtime_command} runtime is not installed or not in PATH", fg="red", err=True)
        raise SystemExit(1)

    return api_key


def _load_settings(*, terminal: bool = False):
    from andromeda_copilot.agent_runtime.log import setup_logging
    from andromeda_copilot.agent_runtime.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level, terminal=terminal)
    return settings


@click.group()
def main() -> None:
    """Andromeda Copilot - AI coding assistant for your workspaces."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from ANDROMEDA_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from ANDROMEDA_PORT or 8080).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP server and web client."""
    import uvicorn

    settings = _load_settings()
    _preflight(settings)

    uvicorn.run(
        "andromeda_copilot.agent_runtime.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


def _run_terminal(*, minimal: bool, workspace: str | None) -> None:
    import anyio

    from andromeda_copilot.agent_runtime.execution.runtime import CopilotAgent
    from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
    from andromeda_copilot.terminal.repl import TerminalChat

    settings = _load_settings(terminal=True)
    api_key = _preflight(settings)

    workspaces = None if minimal else WorkspaceManager(settings.registry_root)
    agent = CopilotAgent.from_settings(
        settings,
        workspace_path=workspace or settings.default_workspace,
        api_key=api_key,
        workspaces=workspaces,
    )
    anyio.run(TerminalChat(agent, workspaces=workspaces).run)


@main.command()
@click.option("--workspace", default=None, help="Fallback workspace directory when none is current.")
def chat(workspace: str | None) -> None:
    """Start the interactive copilot REPL."""
    _run_terminal(minimal=False, workspace=workspace)


@main.command()
@click.option("--workspace", default=None, help="Workspace directory (default: ./workspace).")
def mini(workspace: str | None) -> None:
    """Start the minimal REPL without workspace management."""
    _run_terminal(minimal=True, workspace=workspace)


# ---------------------------------------------------------------------------
# Workspace management
# ---------------------------------------------------------------------------


def _manager():
    from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager

    return WorkspaceManager(_load_settings(terminal=True).registry_root)


def _lookup(manager, name_or_id: str):
    workspace = manager.get_workspace(name_or_id) or manager.get_workspace_by_name(name_or_id)
    if workspace is None:
        raise click.ClickException(f'Workspace "{name_or_id}" not found')
    return workspace


def _call(fn, *args):
    """Run a registry coroutine, turning domain errors into CLI errors."""
    import anyio

    from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceError

    try:
        return anyio.run(fn, *args)
    except WorkspaceError as exc:
        raise click.ClickException(str(exc)) from None


@main.group()
def workspace() -> None:
    """Workspace registry commands."""


@workspace.command("list")
def list_() -> None:
    """List workspaces, most recently accessed first."""
    manager = _manager()
    entries = manager.list_workspaces()
    if not entries:
        click.echo("No workspaces found.")
        return
    current = manager.get_current_workspace()
    for ws in entries:
        marker = " (current)" if current and current.id == ws.id else ""
        click.echo(f"{ws.id}  {ws.name}{marker}  {ws.path}")


@workspace.command()
@click.argument("name")
@click.option("--description", default=None, help="Free-text description.")
@click.option("--path", "custom_path", default=None, help="Directory to use instead of <root>/<slug>.")
def create(name: str, description: str | None, custom_path: str | None) -> None:
    """Create a workspace and its directory."""
    manager = _manager()
    ws = _call(manager.create_workspace, name, description, custom_path)
    click.echo(f'Created workspace "{ws.name}" ({ws.id}) at {ws.path}')


@workspace.command()
@click.argument("name_or_id")
def switch(name_or_id: str) -> None:
    """Make a workspace current."""
    manager = _manager()
    ws = _call(manager.set_current_workspace, _lookup(manager, name_or_id).id)
    click.echo(f'Switched to workspace "{ws.name}"')


@workspace.command()
def current() -> None:
    """Show the current workspace."""
    ws = _manager().get_current_workspace()
    if ws is None:
        click.echo("No workspace selected (using default)")
        return
    click.echo(f"Name: {ws.name}")
    if ws.description:
        click.echo(f"Description: {ws.description}")
    click.echo(f"Path: {ws.path}")
    click.echo(f"Created: {ws.created_at.isoformat()}")
    click.echo(f"Last accessed: {ws.last_accessed.isoformat()}")


@workspace.command()
@click.argument("name_or_id")
@click.argument("new_name")
def rename(name_or_id: str, new_name: str) -> None:
    """Rename a workspace (its directory is left in place)."""
    manager = _manager()
    workspace_id = _lookup(manager, name_or_id).id
    _call(manager.rename_workspace, workspace_id, new_name)
    click.echo(f'Renamed workspace to "{manager.get_workspace(workspace_id).name}"')


@workspace.command()
@click.argument("name_or_id")
@click.argument("description")
def describe(name_or_id: str, description: str) -> None:
    """Set a workspace description."""
    manager = _manager()
    _call(manager.update_workspace_description, _lookup(manager, name_or_id).id, description)
    click.echo("Description updated.")


@workspace.command()
@click.argument("name_or_id")
@click.option("--delete-files", is_flag=True, default=False, help="Also remove the workspace directory.")
@click.confirmation_option(prompt="Are you sure you want to delete this workspace?")
def delete(name_or_id: str, delete_files: bool) -> None:
    """Remove a workspace from the registry."""
    manager = _manager()
    ws = _lookup(manager, name_or_id)
    _call(manager.delete_workspace, ws.id, delete_files)
    click.echo(f'Deleted workspace "{ws.name}"')


@workspace.command()
def stats() -> None:
    """Show registry counters."""
    counters = _manager().get_workspace_stats()
    click.echo(f"Total: {counters['total']}")
    click.echo(f"Current: {counters['current'] or '-'}")


if __name__ == "__main__":
    main()
