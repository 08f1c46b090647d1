"""``workspace`` commands for the terminal REPL."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from rich.console import Console
from rich.markup import escape

from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceError, WorkspaceManager

AskFn = Callable[[str], Awaitable[str]]
"""Reads one line of user input for a confirmation prompt."""

WORKSPACE_HELP = """
[blue]Workspace Commands:[/blue]
[green]workspace list[/green] - List all workspaces
[green]workspace create <name>[/green] - Create a new workspace
[green]workspace switch <name>[/green] - Switch to a workspace
[green]workspace current[/green] - Show current workspace info
[green]workspace delete <name>[/green] - Delete a workspace
[green]workspace help[/green] - Show this help
"""


def _confirmed(answer: str | None) -> bool:
    return (answer or "").strip().lower() in ("y", "yes")


def _list(workspaces: WorkspaceManager, console: Console) -> None:
    entries = workspaces.list_workspaces()
    if not entries:
        console.print("[yellow]No workspaces found. Create one with 'workspace create <name>'[/yellow]")
        return

    current = workspaces.get_current_workspace()
    console.print("\n[blue]Available Workspaces:[/blue]")
    for index, ws in enumerate(entries, start=1):
        marker = " [green](current)[/green]" if current and ws.id == current.id else ""
        console.print(f"[cyan]{index}.[/cyan] [bold]{escape(ws.name)}[/bold]{marker}")
        if ws.description:
            console.print(f"   [dim]{escape(ws.description)}[/dim]")
        console.print(f"   [dim]Path: {escape(ws.path)}[/dim]")
        console.print(f"   [dim]Last accessed: {ws.last_accessed:%Y-%m-%d}[/dim]")
        console.print()


def _current(workspaces: WorkspaceManager, console: Console) -> None:
    current = workspaces.get_current_workspace()
    if current is None:
        console.print("[yellow]No workspace selected (using default)[/yellow]")
        return

    console.print("\n[blue]Current Workspace:[/blue]")
    console.print(f"[bold]Name:[/bold] {escape(current.name)}")
    if current.description:
        console.print(f"[bold]Description:[/bold] {escape(current.description)}")
    console.print(f"[bold]Path:[/bold] {escape(current.path)}")
    console.print(f"[bold]Created:[/bold] {current.created_at:%Y-%m-%d}")
    console.print(f"[bold]Last accessed:[/bold] {current.last_accessed:%Y-%m-%d}")
    console.print()


async def handle_workspace_command(
    args: list[str],
    workspaces: WorkspaceManager,
    console: Console,
    ask: AskFn,
) -> None:
    """Run one ``workspace <subcommand> [name...]`` line.

    Registry errors are printed, never raised.  Deletion asks for
    confirmation twice: once for the entry, once for its files.
    """
    command = args[0].lower() if args else "help"
    name = " ".join(args[1:]).strip()

    if command in ("list", "ls"):
        _list(workspaces, console)

    elif command in ("create", "new"):
        if not name:
            console.print("[red]Please provide a workspace name: workspace create <name>[/red]")
            return
        try:
            workspace = await workspaces.create_workspace(name)
        except WorkspaceError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            return
        console.print(f'[green]Created workspace "{escape(workspace.name)}"[/green]')
        console.print(f"[blue]Switch to it with: workspace switch {escape(workspace.name)}[/blue]")

    elif command in ("switch", "use"):
        if not name:
            console.print("[red]Please provide a workspace name: workspace switch <name>[/red]")
            return
        target = workspaces.get_workspace_by_name(name)
        if target is None:
            console.print(f'[red]Workspace "{escape(name)}" not found[/red]')
            return
        try:
            await workspaces.set_current_workspace(target.id)
        except WorkspaceError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            return
        console.print(f'[green]Switched to workspace "{escape(target.name)}"[/green]')

    elif command in ("delete", "remove"):
        if not name:
            console.print("[red]Please provide a workspace name: workspace delete <name>[/red]")
            return
        target = workspaces.get_workspace_by_name(name)
        if target is None:
            console.print(f'[red]Workspace "{escape(name)}" not found[/red]')
            return
        if not _confirmed(await ask(f'Are you sure you want to delete workspace "{name}"? (y/N): ')):
            console.print("[blue]Cancelled[/blue]")
            return
        delete_files = _confirmed(await ask("Delete workspace files too? (y/N): "))
        await workspaces.delete_workspace(target.id, delete_files)
        console.print(f'[green]Deleted workspace "{escape(target.name)}"[/green]')

    elif command in ("current", "info"):
        _current(workspaces, console)

    else:
        console.print(WORKSPACE_HELP)
