"""Tool execution result model."""

from __future__ import annotations

from pydantic import BaseModel


class ToolResult(BaseModel):
    """Outcome of one tool invocation, returned to the model as JSON."""

    success: bool
    output: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, output: str) -> ToolResult:
        return cls(success=True, output=output)

    @classmethod
    def failed(cls, error: str, output: str = "") -> ToolResult:
        return cls(success=False, output=output, error=error)
