"""Workspace data model.

A workspace is a named binding between a human-chosen label and a directory
on disk.  All workspaces live in a single JSON document (``WorkspaceConfig``)
owned by the workspace manager; there is no database.

JSON keys are camelCase and datetimes are ISO-8601 strings, so the document
and the HTTP payloads share one wire format.  Timestamps without an offset
are read as UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Workspace(BaseModel):
    """A persisted, named working directory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Opaque token generated at creation; never reused.")
    name: str
    description: str | None = None
    path: str
    created_at: datetime
    last_accessed: datetime

    @field_validator("created_at", "last_accessed")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Hand-edited documents may omit the offset; comparisons need aware values.
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class WorkspaceConfig(BaseModel):
    """The persisted envelope rewritten in full on every mutation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workspaces: list[Workspace] = Field(default_factory=list)
    current_workspace_id: str | None = Field(
        default=None,
        description="Id of the current workspace. May point at a deleted entry.",
    )
    default_workspace_path: str = "./workspaces"
    """Namespace root for auto-generated workspace paths."""
