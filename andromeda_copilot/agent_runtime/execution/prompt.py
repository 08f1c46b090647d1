"""System prompt rendering with Jinja2.

The prompt describes the tool catalog and the execution environment.  It is
rendered once per turn so the workspace directory it names always matches the
workspace the tools will resolve paths against.

Template variables available:

- ``tools``           : list[tuple[str, str]] -- (name, summary) pairs
- ``workspace_dir``   : str -- resolved workspace root
- ``workspace_name``  : str | None -- current workspace name, if any
- ``runtime_command`` : str -- code-execution runtime binary
- ``date``            : str -- current date (YYYY-MM-DD)
"""

from __future__ import annotations

from datetime import UTC, datetime

import jinja2

from andromeda_copilot.agent_runtime.execution.tools import describe_tools

DEFAULT_SYSTEM_PROMPT = """\
You are an AI agent that can control the {{ runtime_command }} runtime and write TypeScript files.

You have access to these tools:
{% for name, summary in tools -%}
{{ loop.index }}. {{ name }} - {{ summary }}
{% endfor %}
The {{ runtime_command }} runtime executes TypeScript/JavaScript files with its own global APIs; \
no imports are needed for built-ins.  Prefer those APIs over Node.js or Deno APIs and use the \
console object for debugging.

When calling tools, always use proper JSON formatting.  For multi-line file content, escape \
newlines as \\n rather than using template literals.

Current workspace directory: {{ workspace_dir }}
{%- if workspace_name %} (workspace "{{ workspace_name }}"){% endif %}
Today's date: {{ date }}

When you use tools, always explain what you're doing and show the results to the user.
"""


def render_system_prompt(
    *,
    workspace_dir: str,
    workspace_name: str | None = None,
    runtime_command: str = "andromeda",
    template: str = DEFAULT_SYSTEM_PROMPT,
    extra_vars: dict[str, object] | None = None,
) -> str:
    """Render the system prompt template.

    Parameters
    ----------
    workspace_dir:
        Resolved root the file tools operate in.
    workspace_name:
        Name of the current workspace, or ``None`` for the default directory.
    runtime_command:
        Name of the code-execution runtime.
    template:
        Jinja2 source; defaults to ``DEFAULT_SYSTEM_PROMPT``.
    extra_vars:
        Additional template variables (override defaults on conflict).

    Returns
    -------
    str
        The rendered system prompt.  If the template contains no Jinja2
        syntax, it is returned unchanged.
    """
    template_vars: dict[str, object] = {
        "tools": describe_tools(),
        "workspace_dir": workspace_dir,
        "workspace_name": workspace_name,
        "runtime_command": runtime_command,
        "date": datetime.now(tz=UTC).strftime("%Y-%m-%d"),
    }

    if extra_vars:
        template_vars.update(extra_vars)

    # Fast path: skip Jinja2 if no template syntax detected
    if "{{" not in template and "{%" not in template:
        return template

    env = jinja2.Environment(autoescape=False, keep_trailing_newline=True)  # noqa: S701
    return env.from_string(template).render(**template_vars)
