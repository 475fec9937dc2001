"""Persistence of generated source and distribution trees."""

from sqlalchemy import update
import structlog

from ..clients.storage import ArtifactStore, FileBlob
from ..database import SessionFactory
from ..errors import ConfigurationError, PreconditionFailed
from ..models import Version
from .ownership import OwnershipGuard, ResourceKind

logger = structlog.get_logger(__name__)


def version_prefix(version_id: str, tree: str) -> str:
    return f"versions/{version_id}/{tree}"


class ArtifactService:
    def __init__(
        self,
        session_factory: SessionFactory,
        store: ArtifactStore,
        guard: OwnershipGuard,
        bucket: str,
    ):
        self.session_factory = session_factory
        self.store = store
        self.guard = guard
        self.bucket = bucket

    async def persist(
        self,
        version_id: str,
        caller_id: str,
        source: list[FileBlob] | None = None,
        dist: list[FileBlob] | None = None,
    ) -> int:
        """Upload the trees and mark the version's files as stored.

        Returns the number of uploaded files. ``files_stored`` is only set after
        every upload succeeded.

        Raises:
            PreconditionFailed: No source files were given.
        """
        async with self.session_factory() as session:
            await self.guard.authorize(session, caller_id, ResourceKind.VERSION, version_id)
        if not self.bucket:
            raise ConfigurationError("GCS_BUCKET_NAME is not configured")
        if not source:
            raise PreconditionFailed("At least one source file is required")

        uploaded = 0
        for tree, files in (("source", source), ("dist", dist)):
            if files:
                names = await self.store.put_tree(
                    self.bucket, version_prefix(version_id, tree), files
                )
                uploaded += len(names)

        async with self.session_factory() as session, session.begin():
            await session.execute(
                update(Version).where(Version.id == version_id).values(files_stored=True)
            )

        logger.info("version_files_stored", version_id=version_id, files=uploaded)
        return uploaded
