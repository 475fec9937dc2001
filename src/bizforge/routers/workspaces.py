"""Workspaces router."""

from fastapi import APIRouter, Depends, status

from ..dependencies import AppContainer, get_container, get_current_user
from ..models import User, Workspace
from ..schemas import WorkspaceCreate, WorkspaceRead

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("", response_model=list[WorkspaceRead])
async def list_workspaces(
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> list[Workspace]:
    """List the caller's workspaces."""
    return await container.projects.list_workspaces(user.id)


@router.post("", response_model=WorkspaceRead, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    workspace_in: WorkspaceCreate,
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> Workspace:
    """Create a workspace owned by the caller."""
    return await container.projects.create_workspace(user.id, workspace_in.name)
