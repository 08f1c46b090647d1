"""Workspace endpoints.

Thin HTTP adapter over ``WorkspaceManager``.  Selecting or deleting a
workspace invalidates every live session so later chats rebind to the new
current workspace.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status
from loguru import logger

from andromeda_copilot.agent_runtime.deps import Sessions, Workspaces
from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceError, WorkspaceNotFoundError
from andromeda_copilot.agent_runtime.models.api import (
    DeleteResponse,
    WorkspaceCreate,
    WorkspaceListResponse,
    WorkspaceSwitch,
)
from andromeda_copilot.agent_runtime.models.workspace import Workspace

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("", response_model=WorkspaceListResponse)
async def list_workspaces(workspaces: Workspaces) -> WorkspaceListResponse:
    """List workspaces (most recently accessed first) and the current one."""
    return WorkspaceListResponse(
        workspaces=workspaces.list_workspaces(),
        current_workspace=workspaces.get_current_workspace(),
    )


@router.post("", response_model=Workspace)
async def create_workspace(body: WorkspaceCreate, workspaces: Workspaces) -> Workspace:
    if not body.name:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Workspace name is required")
    try:
        return await workspaces.create_workspace(body.name, body.description)
    except WorkspaceError as exc:
        logger.warning("Workspace create error: {}", exc)
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None


@router.post("/switch", response_model=Workspace)
async def switch_workspace(body: WorkspaceSwitch, workspaces: Workspaces, sessions: Sessions) -> Workspace:
    """Select the current workspace by id or name and drop all sessions."""
    if not body.id and not body.name:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Workspace ID or name is required")

    workspace_id = body.id
    if not workspace_id:
        target = workspaces.get_workspace_by_name(body.name or "")
        if target is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f'Workspace "{body.name}" not found')
        workspace_id = target.id

    try:
        workspace = await workspaces.set_current_workspace(workspace_id)
    except WorkspaceNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from None

    sessions.clear()
    return workspace


@router.delete("", response_model=DeleteResponse)
async def delete_workspace(
    workspaces: Workspaces,
    sessions: Sessions,
    workspace_id: str | None = Query(None, alias="id"),
    delete_files: bool = Query(False, alias="deleteFiles"),
) -> DeleteResponse:
    if not workspace_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Workspace ID is required")

    if not await workspaces.delete_workspace(workspace_id, delete_files):
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Workspace not found")

    sessions.clear()
    return DeleteResponse(success=True)
