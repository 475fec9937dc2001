"""Deployment tracker: submits builds and follows them to a terminal status."""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import update
import structlog

from ..clients.cloud_build import BuildProvider
from ..database import SessionFactory
from ..errors import (
    BuildProviderError,
    BuildSubmissionFailure,
    ConfigurationError,
    PreconditionFailed,
)
from ..models import TERMINAL_STATUSES, DeploymentRecord, DeploymentStatus, Version
from .ownership import OwnershipGuard, ResourceKind

logger = structlog.get_logger(__name__)

_TERMINAL_VALUES = [s.value for s in TERMINAL_STATUSES]


@dataclass(frozen=True)
class DeployTarget:
    """Where sources are read from and where the built service lands."""

    gcp_project_id: str
    bucket: str
    region: str = "us-central1"
    repository: str = "dgbp-apps"

    def require_complete(self) -> None:
        if not self.gcp_project_id or not self.bucket:
            raise ConfigurationError("GCP_PROJECT_ID and GCS_BUCKET_NAME must be configured")


def service_name_for(version_id: str) -> str:
    return f"biz-{version_id[:10]}".lower()


def source_location(bucket: str, version_id: str) -> str:
    return f"gs://{bucket}/versions/{version_id}/source"


def compose_build_spec(version_id: str, target: DeployTarget) -> dict[str, Any]:
    """Cloud Build request for a version.

    Only the storage location of the uploaded sources is referenced; the
    sources themselves are never read here. The same inputs always produce the
    same spec.
    """
    service_name = service_name_for(version_id)
    image = (
        f"{target.region}-docker.pkg.dev/{target.gcp_project_id}/"
        f"{target.repository}/{service_name}:latest"
    )
    return {
        "steps": [
            {
                "name": "gcr.io/cloud-builders/gsutil",
                "args": ["rsync", "-r", source_location(target.bucket, version_id), "."],
            },
            {"name": "gcr.io/cloud-builders/npm", "args": ["install"]},
            {"name": "gcr.io/cloud-builders/npm", "args": ["run", "build"]},
            {"name": "gcr.io/cloud-builders/docker", "args": ["build", "-t", "$_IMAGE", "."]},
            {"name": "gcr.io/cloud-builders/docker", "args": ["push", "$_IMAGE"]},
            {
                "name": "gcr.io/google.com/cloudsdktool/cloud-sdk",
                "entrypoint": "gcloud",
                "args": [
                    "run",
                    "deploy",
                    "$_SERVICE_NAME",
                    "--image",
                    "$_IMAGE",
                    "--platform",
                    "managed",
                    "--region",
                    "$_REGION",
                    "--allow-unauthenticated",
                ],
            },
        ],
        "substitutions": {
            "_SERVICE_NAME": service_name,
            "_REGION": target.region,
            "_IMAGE": image,
        },
        "tags": ["bizforge", f"version-{version_id}"],
    }


class DeploymentTracker:
    """Build/deploy lifecycle per version: QUEUED -> WORKING -> SUCCESS | FAILURE.

    Terminal statuses are sticky: once a record is SUCCESS or FAILURE, refreshes
    return it without consulting the provider again.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        build_provider: BuildProvider,
        guard: OwnershipGuard,
        target: DeployTarget,
    ):
        self.session_factory = session_factory
        self.build_provider = build_provider
        self.guard = guard
        self.target = target

    async def submit(self, version_id: str, caller_id: str) -> str:
        """Submit a build for a validated version whose files are stored.

        Raises:
            NotFound, Forbidden: Ownership check failed.
            PreconditionFailed: Version not validated or files not stored.
            ConfigurationError: Cloud project or bucket missing.
            BuildSubmissionFailure: The provider rejected the build.
        """
        async with self.session_factory() as session:
            version = await self.guard.authorize(
                session, caller_id, ResourceKind.VERSION, version_id
            )
        if not version.is_validated:
            raise PreconditionFailed(f"Version {version_id} has not passed validation")
        if not version.files_stored:
            raise PreconditionFailed(f"Version {version_id} has no stored files to build")
        self.target.require_complete()

        build_spec = compose_build_spec(version_id, self.target)
        try:
            build_id = await self.build_provider.submit(build_spec)
        except BuildProviderError as e:
            logger.error("deployment_submit_failed", version_id=version_id, error=str(e))
            raise BuildSubmissionFailure(f"Build submission failed: {e.message}") from e

        record = DeploymentRecord(
            build_id=build_id,
            version_id=version_id,
            user_id=caller_id,
            service_name=service_name_for(version_id),
            region=self.target.region,
            status=DeploymentStatus.WORKING.value,
        )
        async with self.session_factory() as session, session.begin():
            session.add(record)
            await session.execute(
                update(Version)
                .where(Version.id == version_id)
                .values(last_build=record.to_last_build())
            )

        logger.info(
            "deployment_submitted",
            build_id=build_id,
            version_id=version_id,
            service_name=record.service_name,
        )
        return build_id

    async def refresh_status(self, build_id: str, caller_id: str) -> DeploymentRecord:
        """Return the record, refreshed from the provider while non-terminal.

        A SUCCESS record without a service URL is still polled so the URL can be
        filled in once the service lookup succeeds. Provider errors and unknown
        statuses leave the persisted record as is.
        """
        async with self.session_factory() as session:
            record = await self.guard.authorize(
                session, caller_id, ResourceKind.DEPLOYMENT, build_id
            )
            await self.guard.authorize(session, caller_id, ResourceKind.VERSION, record.version_id)

        status = DeploymentStatus(record.status)
        awaiting_url = status is DeploymentStatus.SUCCESS and not record.service_url
        if status.is_terminal and not awaiting_url:
            return record

        try:
            report = await self.build_provider.get_status(build_id)
        except BuildProviderError as e:
            logger.warning("deployment_status_refresh_failed", build_id=build_id, error=str(e))
            return record

        if report.status is None:
            logger.info("deployment_status_unknown", build_id=build_id, raw=report.raw_status)
            return record

        if awaiting_url:
            if not report.service_url:
                return record
            stmt = (
                update(DeploymentRecord)
                .where(
                    DeploymentRecord.build_id == build_id,
                    DeploymentRecord.service_url.is_(None),
                )
                .values(service_url=report.service_url)
            )
        else:
            values: dict[str, Any] = {"status": report.status.value}
            if report.service_url:
                values["service_url"] = report.service_url
            stmt = (
                update(DeploymentRecord)
                .where(
                    DeploymentRecord.build_id == build_id,
                    DeploymentRecord.status.not_in(_TERMINAL_VALUES),
                )
                .values(**values)
            )

        async with self.session_factory() as session, session.begin():
            result = await session.execute(stmt)
            refreshed = await session.get(DeploymentRecord, build_id)
            if result.rowcount == 1:
                await session.execute(
                    update(Version)
                    .where(Version.id == refreshed.version_id)
                    .values(last_build=refreshed.to_last_build())
                )

        if result.rowcount == 1:
            logger.info(
                "deployment_status_updated",
                build_id=build_id,
                status=refreshed.status,
                service_url=refreshed.service_url,
            )
        return refreshed
