"""Workspaces and projects."""

from sqlalchemy import select
import structlog

from ..database import SessionFactory
from ..models import PipelineStage, Project, Version, Workspace
from ..models.base import new_id
from .ownership import OwnershipGuard, ResourceKind

logger = structlog.get_logger(__name__)


class ProjectService:
    def __init__(self, session_factory: SessionFactory, guard: OwnershipGuard):
        self.session_factory = session_factory
        self.guard = guard

    async def create_workspace(self, caller_id: str, name: str) -> Workspace:
        workspace = Workspace(user_id=caller_id, name=name)
        async with self.session_factory() as session, session.begin():
            session.add(workspace)
        logger.info("workspace_created", workspace_id=workspace.id, user_id=caller_id)
        return workspace

    async def list_workspaces(self, caller_id: str) -> list[Workspace]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Workspace)
                .where(Workspace.user_id == caller_id)
                .order_by(Workspace.timestamp.desc())
            )
            return list(result.scalars().all())

    async def create_project(
        self, caller_id: str, workspace_id: str, idea: str
    ) -> tuple[Project, Version]:
        """Create a project and its first version in one transaction.

        The version starts at the first pipeline stage.
        """
        project_id, version_id = new_id(), new_id()
        project = Project(
            id=project_id,
            user_id=caller_id,
            workspace_id=workspace_id,
            idea=idea,
            current_version_id=version_id,
        )
        version = Version(
            id=version_id,
            project_id=project_id,
            user_id=caller_id,
            stage=PipelineStage.STRATEGY.value,
            is_validated=False,
            files_stored=False,
        )

        async with self.session_factory() as session, session.begin():
            await self.guard.authorize(session, caller_id, ResourceKind.WORKSPACE, workspace_id)
            session.add_all([project, version])

        logger.info(
            "project_created", project_id=project_id, version_id=version_id, user_id=caller_id
        )
        return project, version

    async def list_projects(self, caller_id: str) -> list[Project]:
        """Caller's projects, newest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Project)
                .where(Project.user_id == caller_id)
                .order_by(Project.timestamp.desc())
            )
            return list(result.scalars().all())
