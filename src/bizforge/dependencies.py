"""Component wiring and FastAPI dependencies.

Provider clients are built once at startup into an ``AppContainer`` stored on
``app.state``; request handlers receive components through ``Depends``.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from .clients.cloud_build import CloudBuildClient
from .clients.gcp_auth import AccessTokenSource
from .clients.identity import GoogleIdentityVerifier, IdentityVerifier
from .clients.llm import ChatModelProvider
from .clients.storage import CloudStorageClient
from .config import Settings
from .database import SessionFactory, create_engine, create_session_factory
from .errors import Unauthorized
from .models import User
from .pipeline.executor import StageExecutor
from .pipeline.orchestrator import PipelineOrchestrator
from .services.artifacts import ArtifactService
from .services.deployments import DeploymentTracker, DeployTarget
from .services.ledger import LedgerAccountant, RateTable
from .services.ownership import OwnershipGuard
from .services.projects import ProjectService
from .services.users import UserDirectory, UserPolicy


@dataclass
class AppContainer:
    engine: AsyncEngine | None
    session_factory: SessionFactory
    verifier: IdentityVerifier
    users: UserDirectory
    projects: ProjectService
    orchestrator: PipelineOrchestrator
    artifacts: ArtifactService
    deployments: DeploymentTracker
    closeables: tuple = ()

    async def aclose(self) -> None:
        for client in self.closeables:
            await client.close()
        if self.engine is not None:
            await self.engine.dispose()


def build_container(settings: Settings) -> AppContainer:
    """Construct every component and provider client from settings."""
    engine = create_engine(settings.database_url)
    session_factory = create_session_factory(engine)
    guard = OwnershipGuard()

    token_source = AccessTokenSource(static_token=settings.gcp_access_token)
    build_client = CloudBuildClient(settings.gcp_project_id, token_source)
    storage_client = CloudStorageClient(token_source)

    accountant = LedgerAccountant(
        session_factory,
        RateTable(
            reasoning_model=settings.reasoning_model,
            reasoning_rate=settings.reasoning_rate_per_million,
            standard_rate=settings.standard_rate_per_million,
        ),
    )
    executor = StageExecutor(
        ChatModelProvider(settings.open_router_key, settings.llm_temperature),
        max_attempts=settings.generation_max_attempts,
    )

    return AppContainer(
        engine=engine,
        session_factory=session_factory,
        verifier=GoogleIdentityVerifier(settings.google_client_id),
        users=UserDirectory(
            session_factory,
            UserPolicy(
                admin_emails=tuple(settings.admin_email_list),
                starting_token_balance=settings.starting_token_balance,
            ),
        ),
        projects=ProjectService(session_factory, guard),
        orchestrator=PipelineOrchestrator(
            session_factory,
            executor,
            accountant,
            guard,
            reasoning_model=settings.reasoning_model,
            standard_model=settings.default_model,
        ),
        artifacts=ArtifactService(
            session_factory, storage_client, guard, settings.gcs_bucket_name
        ),
        deployments=DeploymentTracker(
            session_factory,
            build_client,
            guard,
            DeployTarget(
                gcp_project_id=settings.gcp_project_id,
                bucket=settings.gcs_bucket_name,
                region=settings.deploy_region,
                repository=settings.artifact_repository,
            ),
        ),
        closeables=(build_client, storage_client),
    )


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def get_current_user(
    authorization: str | None = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> User:
    """Resolve the caller from ``Authorization: Bearer <id token>``.

    Raises 401 if the header is missing or the token does not verify, 403 if
    the account is disabled.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Missing bearer token")

    token = authorization.removeprefix("Bearer ").strip()
    identity = await container.verifier.verify(token)
    return await container.users.sync(identity)
