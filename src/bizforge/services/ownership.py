"""Ownership guard - the single place that compares a resource owner to the caller."""

from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..errors import Forbidden, NotFound
from ..models import DeploymentRecord, Project, Version, Workspace

logger = structlog.get_logger(__name__)


class ResourceKind(str, Enum):
    WORKSPACE = "workspace"
    PROJECT = "project"
    VERSION = "version"
    DEPLOYMENT = "deployment"


_MODELS = {
    ResourceKind.WORKSPACE: Workspace,
    ResourceKind.PROJECT: Project,
    ResourceKind.VERSION: Version,
    ResourceKind.DEPLOYMENT: DeploymentRecord,
}


class OwnershipGuard:
    """Resolve a resource and check that ``caller_id`` owns it.

    There is no role-based bypass: admins reading another user's resource by
    id get ``Forbidden`` like everyone else.
    """

    async def authorize(
        self,
        session: AsyncSession,
        caller_id: str,
        kind: ResourceKind,
        resource_id: str,
    ):
        resource = await session.get(_MODELS[kind], resource_id)
        if resource is None:
            raise NotFound(f"{kind.value.capitalize()} {resource_id} not found")

        if resource.user_id != caller_id:
            logger.warning(
                "ownership_denied",
                resource_kind=kind.value,
                resource_id=resource_id,
                caller_id=caller_id,
            )
            raise Forbidden(f"{kind.value.capitalize()} {resource_id} is not owned by caller")

        return resource
