"""Deployments router."""

from fastapi import APIRouter, Depends, status

from ..dependencies import AppContainer, get_container, get_current_user
from ..models import DeploymentRecord, User
from ..schemas import DeploymentStatusRead, DeploymentSubmitted

router = APIRouter(prefix="/deployments", tags=["deployments"])


@router.post(
    "/{version_id}",
    response_model=DeploymentSubmitted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_deployment(
    version_id: str,
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> DeploymentSubmitted:
    """Build and deploy a validated version whose files are stored."""
    build_id = await container.deployments.submit(version_id, user.id)
    return DeploymentSubmitted(build_id=build_id)


@router.get("/{build_id}/status", response_model=DeploymentStatusRead)
async def get_deployment_status(
    build_id: str,
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> DeploymentRecord:
    """Current deployment status, refreshed from the build provider until terminal."""
    return await container.deployments.refresh_status(build_id, user.id)
