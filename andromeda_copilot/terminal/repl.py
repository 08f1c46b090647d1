"""REPL-style chat using prompt_toolkit for input and rich for output.

Two flavours share one loop: the full copilot REPL, which also understands
``workspace ...`` commands, and a minimal REPL that only knows ``exit``,
``clear`` and ``help``.  Every line that is not a command is one independent
conversation turn.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape

from andromeda_copilot.agent_runtime.execution.runtime import (
    DEMO_RESPONSE,
    DEMO_USAGE,
    CopilotAgent,
    CredentialError,
    ProviderError,
)
from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
from andromeda_copilot.agent_runtime.models.api import UsageInfo
from andromeda_copilot.terminal.commands import handle_workspace_command

PromptFn = Callable[[str], Awaitable[str]]

RULE = "─" * 50

CAPABILITIES = """
[blue]Agent Capabilities:[/blue]
  - Write TypeScript/JavaScript files
  - Execute files with the code-execution runtime
  - Read and manage workspace files
  - Create applications and scripts

[blue]Example requests:[/blue]
  - "Create a TypeScript file that calculates fibonacci numbers"
  - "Write a simple web server and execute it"
  - "Show me the files in the workspace"
  - "Create a calculator application"
"""


def format_usage(usage: UsageInfo, *, mock: bool = False) -> str:
    suffix = " [Mock]" if mock else ""
    return (
        f"Tokens: {usage.total_tokens} "
        f"(prompt: {usage.prompt_tokens}, completion: {usage.completion_tokens}){suffix}"
    )


class TerminalChat:
    """Interactive loop around one ``CopilotAgent``.

    ``prompt`` reads a line of input and defaults to a prompt_toolkit
    ``PromptSession``; tests pass a coroutine fed from a list.  Passing
    ``workspaces=None`` gives the minimal REPL.
    """

    def __init__(
        self,
        agent: CopilotAgent,
        *,
        workspaces: WorkspaceManager | None = None,
        console: Console | None = None,
        prompt: PromptFn | None = None,
    ) -> None:
        self.agent = agent
        self.workspaces = workspaces
        self.console = console or Console()
        self._prompt = prompt or PromptSession().prompt_async

    @property
    def minimal(self) -> bool:
        return self.workspaces is None

    def show_banner(self) -> None:
        self.console.print("[magenta bold]Andromeda Copilot started![/magenta bold]")
        self.console.print("[blue]I can write and execute TypeScript/JavaScript files in your workspace[/blue]")
        self.console.print('[green]Type your requests below (type "exit" to quit)[/green]')
        self.console.print('[green]Type "clear" to clear conversation history[/green]')
        self.console.print('[green]Type "help" for available commands[/green]')
        if not self.minimal:
            self.console.print('[green]Type "workspace" for workspace management[/green]')
            current = self.workspaces.get_current_workspace()
            location = f"{current.name} ({current.path})" if current else f"default ({self.agent.workspace_path})"
            self.console.print(f"[dim]Current workspace: {escape(location)}[/dim]")
        self.console.print(f"[dim]{'─' * 60}[/dim]")

    def show_help(self) -> None:
        lines = [
            "\n[blue]Available commands:[/blue]",
            "  - exit: Quit the application",
            "  - clear: Clear conversation history",
            "  - help: Show this help message",
        ]
        if not self.minimal:
            lines.append("  - workspace: Manage workspaces (workspace help for details)")
        self.console.print("\n".join(lines))
        self.console.print(CAPABILITIES)

    async def handle_line(self, line: str) -> bool:
        """Process one input line.  Returns ``False`` when the loop should end."""
        text = line.strip()
        if not text:
            return True

        keyword = text.lower()
        if keyword == "exit":
            self.console.print("[yellow]Goodbye![/yellow]")
            return False
        if keyword == "clear":
            self.console.print(
                "[green]Conversation history cleared! (Note: Each request is independent with the new agent)[/green]"
            )
            return True
        if keyword == "help":
            self.show_help()
            return True

        words = text.split()
        if not self.minimal and words[0].lower() == "workspace":
            await handle_workspace_command(words[1:], self.workspaces, self.console, self._prompt)
            return True

        await self.send(text)
        return True

    async def send(self, message: str) -> None:
        self.console.print("[dim]Thinking...[/dim]")
        try:
            result = await self.agent.chat(message)
        except CredentialError:
            self.console.print("\n[blue bold]Andromeda Agent (Demo Mode):[/blue bold]")
            self.console.print(Markdown(DEMO_RESPONSE))
            self.console.print(f"[dim]{format_usage(DEMO_USAGE, mock=True)}[/dim]")
            return
        except ProviderError as exc:
            self.console.print(f"[red]Error:[/red] {escape(str(exc))}")
            self.console.print("[yellow]Please try again or check your API key.[/yellow]")
            return

        self.console.print("\n[blue bold]Andromeda Agent:[/blue bold]")
        self.console.print(Markdown(result.content))
        if result.usage:
            self.console.print(f"[dim]{format_usage(result.usage)}[/dim]")
        self.console.print(f"[dim]{RULE}[/dim]")

    async def run(self) -> None:
        self.show_banner()
        while True:
            try:
                line = await self._prompt("You: ")
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[yellow]Goodbye![/yellow]")
                break
            if not await self.handle_line(line):
                break
