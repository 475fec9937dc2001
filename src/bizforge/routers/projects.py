"""Projects router."""

from fastapi import APIRouter, Depends, status

from ..dependencies import AppContainer, get_container, get_current_user
from ..models import Project, User
from ..schemas import ProjectCreate, ProjectCreated, ProjectRead, VersionRead

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ProjectCreated, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> ProjectCreated:
    """Submit a business idea: creates the project and its first version."""
    project, version = await container.projects.create_project(
        user.id, project_in.workspace_id, project_in.idea
    )
    return ProjectCreated(
        **ProjectRead.model_validate(project).model_dump(),
        version=VersionRead.model_validate(version),
    )


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> list[Project]:
    """List the caller's projects, newest first."""
    return await container.projects.list_projects(user.id)
