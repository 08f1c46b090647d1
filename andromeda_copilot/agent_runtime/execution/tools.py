"""Tool catalog exposed to the model.

Each tool is an async function taking ``RunContext[ToolContext]`` followed by
its typed parameters.  pydantic-ai derives the JSON schema from the signature
and the ``Args:`` section of the docstring, validates the model's arguments
before the function runs, and sends a retry prompt back to the model when
they do not validate.

Executors never raise into the conversation loop.  Any exception is turned
into ``ToolResult(success=False, error="Failed to execute <op> operation: ...")``
so the model can see the failure and adapt.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Awaitable, Callable
from functools import partial
from pathlib import Path

import anyio
import httpx
from anyio import to_thread
from pydantic_ai import RunContext, Tool

from andromeda_copilot.agent_runtime.context import ToolContext
from andromeda_copilot.agent_runtime.execution.environment import shell_argv, split_command
from andromeda_copilot.agent_runtime.models.tools import ToolResult


async def run_operation(
    deps: ToolContext,
    operation: str,
    action: Callable[[], Awaitable[ToolResult]],
) -> ToolResult:
    """Run *action*, converting any exception into a failed result."""
    try:
        return await action()
    except Exception as exc:  # noqa: BLE001
        deps.logger.warning("Tool operation {} failed: {}", operation, exc)
        return ToolResult.failed(f"Failed to execute {operation} operation: {exc}")


# ---------------------------------------------------------------------------
# Sync filesystem helpers (run in thread pool)
# ---------------------------------------------------------------------------


def _write_text(path: Path, content: str, *, append: bool = False) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a" if append else "w", encoding="utf-8") as f:
        f.write(content)


def _list_entries(path: Path) -> list[str] | None:
    """Directory listing with ``/`` on subdirectories; ``None`` if it was just created."""
    if not path.is_dir():
        path.mkdir(parents=True, exist_ok=True)
        return None
    return sorted(f"{entry.name}/" if entry.is_dir() else entry.name for entry in path.iterdir())


def _copy(src: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)


def _move(src: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(src, dest)


# ---------------------------------------------------------------------------
# Subprocess helper
# ---------------------------------------------------------------------------


async def _run(argv: list[str], cwd: Path) -> tuple[int, str, str]:
    result = await anyio.run_process(argv, cwd=cwd, check=False)
    stdout = result.stdout.decode(errors="replace") if result.stdout else ""
    stderr = result.stderr.decode(errors="replace") if result.stderr else ""
    return result.returncode, stdout, stderr


# ---------------------------------------------------------------------------
# File tools
# ---------------------------------------------------------------------------


async def write_file(ctx: RunContext[ToolContext], path: str, content: str) -> ToolResult:
    """Write content to a file in the workspace, creating parent directories.

    Args:
        path: The file path relative to the workspace directory.
        content: The content to write to the file.
    """

    async def action() -> ToolResult:
        target = ctx.deps.resolve(path)
        await to_thread.run_sync(partial(_write_text, target, content))
        return ToolResult.ok(f"File written successfully: {path}")

    return await run_operation(ctx.deps, "write", action)


async def append_file(ctx: RunContext[ToolContext], path: str, content: str) -> ToolResult:
    """Append content to a file in the workspace, creating it if missing.

    Args:
        path: The file path relative to the workspace directory.
        content: The content to append.
    """

    async def action() -> ToolResult:
        target = ctx.deps.resolve(path)
        await to_thread.run_sync(partial(_write_text, target, content, append=True))
        return ToolResult.ok(f"Content appended successfully to: {path}")

    return await run_operation(ctx.deps, "append", action)


async def read_file(ctx: RunContext[ToolContext], path: str) -> ToolResult:
    """Read the content of a file from the workspace.

    Args:
        path: The file path relative to the workspace directory.
    """

    async def action() -> ToolResult:
        target = ctx.deps.resolve(path)
        text = await to_thread.run_sync(partial(target.read_text, encoding="utf-8"))
        return ToolResult.ok(text)

    return await run_operation(ctx.deps, "read", action)


async def delete_file(ctx: RunContext[ToolContext], path: str) -> ToolResult:
    """Delete a file from the workspace.

    Args:
        path: The file path relative to the workspace directory.
    """

    async def action() -> ToolResult:
        target = ctx.deps.resolve(path)
        await to_thread.run_sync(target.unlink)
        return ToolResult.ok(f"File deleted successfully: {path}")

    return await run_operation(ctx.deps, "delete", action)


async def list_files(ctx: RunContext[ToolContext], directory: str = ".") -> ToolResult:
    """List files in a workspace directory.

    Args:
        directory: The directory path relative to the workspace directory; defaults to the root.
    """

    async def action() -> ToolResult:
        target = ctx.deps.resolve(directory)
        entries = await to_thread.run_sync(partial(_list_entries, target))
        if entries is None:
            return ToolResult.ok("No files in workspace (directory created)")
        return ToolResult.ok("\n".join(entries) if entries else "No files in workspace")

    return await run_operation(ctx.deps, "list", action)


async def copy_file(ctx: RunContext[ToolContext], src: str, dest: str) -> ToolResult:
    """Copy a file from one path to another in the workspace.

    Args:
        src: Source file path relative to the workspace.
        dest: Destination file path relative to the workspace.
    """

    async def action() -> ToolResult:
        await to_thread.run_sync(partial(_copy, ctx.deps.resolve(src), ctx.deps.resolve(dest)))
        return ToolResult.ok(f"File copied from {src} to {dest}")

    return await run_operation(ctx.deps, "copy", action)


async def move_file(ctx: RunContext[ToolContext], src: str, dest: str) -> ToolResult:
    """Move or rename a file in the workspace.

    Args:
        src: Source file path relative to the workspace.
        dest: Destination file path relative to the workspace.
    """

    async def action() -> ToolResult:
        await to_thread.run_sync(partial(_move, ctx.deps.resolve(src), ctx.deps.resolve(dest)))
        return ToolResult.ok(f"File moved from {src} to {dest}")

    return await run_operation(ctx.deps, "move", action)


# ---------------------------------------------------------------------------
# Environment tools
# ---------------------------------------------------------------------------


async def get_env(ctx: RunContext[ToolContext], key: str) -> ToolResult:
    """Get an environment variable value (empty if unset).

    Args:
        key: Environment variable name.
    """
    return ToolResult.ok(os.environ.get(key, ""))


async def set_env(ctx: RunContext[ToolContext], key: str, value: str) -> ToolResult:
    """Set an environment variable for this process and its children.

    Args:
        key: Environment variable name.
        value: Value to set.
    """

    async def action() -> ToolResult:
        os.environ[key] = value
        return ToolResult.ok(f"Set {key}")

    return await run_operation(ctx.deps, "setEnv", action)


async def remove_env(ctx: RunContext[ToolContext], key: str) -> ToolResult:
    """Remove an environment variable.

    Args:
        key: Environment variable name.
    """
    os.environ.pop(key, None)
    return ToolResult.ok(f"Removed {key}")


async def list_env(ctx: RunContext[ToolContext]) -> ToolResult:
    """List all environment variables as KEY=value lines."""
    return ToolResult.ok("\n".join(f"{k}={v}" for k, v in sorted(os.environ.items())))


# ---------------------------------------------------------------------------
# Process tools
# ---------------------------------------------------------------------------


async def run_shell(ctx: RunContext[ToolContext], command: str) -> ToolResult:
    """Run a shell command with the workspace as working directory.

    Args:
        command: Command line to run.
    """

    async def action() -> ToolResult:
        code, stdout, stderr = await _run(shell_argv(command), ctx.deps.workspace_root())
        if code == 0:
            return ToolResult.ok(stdout)
        return ToolResult.failed(stderr or f"Command exited with code {code}", output=stdout)

    return await run_operation(ctx.deps, "shell", action)


async def execute_file(ctx: RunContext[ToolContext], path: str, args: list[str] | None = None) -> ToolResult:
    """Execute a TypeScript/JavaScript file with the code-execution runtime.

    Args:
        path: The file path relative to the workspace directory.
        args: Command line arguments to pass to the file.
    """

    async def action() -> ToolResult:
        target = ctx.deps.resolve(path)
        argv = [*split_command(ctx.deps.runtime_command), "run", str(target), *(args or [])]
        code, stdout, stderr = await _run(argv, ctx.deps.workspace_root())
        if code == 0:
            return ToolResult.ok(stdout or "Execution completed successfully")
        return ToolResult.failed(stderr or "Execution failed", output=stdout)

    return await run_operation(ctx.deps, "execute", action)


async def run_and_debug(ctx: RunContext[ToolContext], path: str, args: list[str] | None = None) -> ToolResult:
    """Run a file with the runtime and return stdout and stderr for debugging.

    Args:
        path: File path relative to the workspace.
        args: Arguments to pass to the file.
    """

    async def action() -> ToolResult:
        target = ctx.deps.resolve(path)
        argv = [*split_command(ctx.deps.runtime_command), "run", str(target), *(args or [])]
        code, stdout, stderr = await _run(argv, ctx.deps.workspace_root())
        report = f"STDOUT:\n{stdout}\nSTDERR:\n{stderr}"
        if code == 0:
            return ToolResult.ok(report)
        return ToolResult.failed(stderr or "Execution failed", output=report)

    return await run_operation(ctx.deps, "debug", action)


async def type_check(ctx: RunContext[ToolContext], config: str | None = None) -> ToolResult:
    """Type-check the workspace sources.

    Args:
        config: Optional type-checker config file path relative to the workspace.
    """

    async def action() -> ToolResult:
        argv = split_command(ctx.deps.typecheck_command)
        if config:
            argv += ["--config", str(ctx.deps.resolve(config))]
        argv.append(".")
        code, stdout, stderr = await _run(argv, ctx.deps.workspace_root())
        output = stdout + stderr
        if code == 0:
            return ToolResult.ok(output)
        return ToolResult.failed(stderr or f"Type check exited with code {code}", output=output)

    return await run_operation(ctx.deps, "typeCheck", action)


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


async def fetch_url(
    ctx: RunContext[ToolContext],
    url: str,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: str | None = None,
) -> ToolResult:
    """Fetch content from a URL.

    Args:
        url: HTTP URL to fetch.
        method: HTTP method.
        headers: Optional request headers.
        body: Optional request body.
    """

    async def action() -> ToolResult:
        async with httpx.AsyncClient(timeout=ctx.deps.fetch_timeout, follow_redirects=True) as client:
            response = await client.request(method.upper(), url, headers=headers, content=body)
        return ToolResult.ok(f"Status: {response.status_code}\n{response.text}")

    return await run_operation(ctx.deps, "fetch", action)


# ---------------------------------------------------------------------------
# Reasoning
# ---------------------------------------------------------------------------


async def think(ctx: RunContext[ToolContext], thought: str) -> ToolResult:
    """Log a reasoning step before acting; nothing on disk or in the environment changes.

    Args:
        thought: The reasoning to log.
    """
    ctx.deps.logger.debug("think: {}", thought)
    return ToolResult.ok(thought)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

TOOL_FUNCTIONS = (
    write_file,
    append_file,
    read_file,
    delete_file,
    list_files,
    copy_file,
    move_file,
    get_env,
    set_env,
    remove_env,
    list_env,
    run_shell,
    execute_file,
    run_and_debug,
    type_check,
    fetch_url,
    think,
)

TOOL_NAMES: tuple[str, ...] = tuple(fn.__name__ for fn in TOOL_FUNCTIONS)


def build_tools() -> list[Tool[ToolContext]]:
    """Wrap every catalog function as a pydantic-ai ``Tool``."""
    return [Tool(fn, takes_ctx=True) for fn in TOOL_FUNCTIONS]


def describe_tools() -> list[tuple[str, str]]:
    """``(name, summary)`` pairs for the system prompt."""
    return [(fn.__name__, (fn.__doc__ or "").strip().splitlines()[0]) for fn in TOOL_FUNCTIONS]
