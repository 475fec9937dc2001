"""Shared fixtures: in-memory database, seeded rows and fake collaborators."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from bizforge.database import create_all, create_session_factory
from bizforge.models import Project, User, Version, Workspace
from bizforge.pipeline.executor import StageExecutor
from bizforge.pipeline.orchestrator import PipelineOrchestrator
from bizforge.services.ledger import LedgerAccountant, RateTable
from bizforge.services.ownership import OwnershipGuard

from .fakes import (
    OTHER_ID,
    OWNER_ID,
    REASONING_MODEL,
    REASONING_RATE,
    STANDARD_MODEL,
    STANDARD_RATE,
    STARTING_BALANCE,
    ScriptedProvider,
)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


async def seed_rows(session_factory) -> dict:
    """Two users, one workspace and a fresh project/version owned by OWNER_ID."""
    async with session_factory() as session, session.begin():
        session.add_all(
            [
                User(id=OWNER_ID, email="alice@example.com", tokens_remaining=STARTING_BALANCE),
                User(id=OTHER_ID, email="bob@example.com", tokens_remaining=STARTING_BALANCE),
            ]
        )
        session.add(Workspace(id="ws-1", user_id=OWNER_ID, name="Main"))
        session.add(
            Project(
                id="proj-1",
                user_id=OWNER_ID,
                workspace_id="ws-1",
                idea="coffee subscription",
                current_version_id="ver-1",
                timestamp=datetime(2020, 1, 1, tzinfo=UTC),
            )
        )
        session.add(Version(id="ver-1", project_id="proj-1", user_id=OWNER_ID))
    return {"workspace_id": "ws-1", "project_id": "proj-1", "version_id": "ver-1"}


@pytest_asyncio.fixture
async def seeded(session_factory) -> dict:
    return await seed_rows(session_factory)


@pytest_asyncio.fixture
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed engine; concurrent sessions get separate connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bizforge.db'}",
        connect_args={"timeout": 30},
    )
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(file_engine):
    session_factory = create_session_factory(file_engine)
    await seed_rows(session_factory)
    return session_factory


@pytest.fixture
def rates() -> RateTable:
    return RateTable(
        reasoning_model=REASONING_MODEL,
        reasoning_rate=REASONING_RATE,
        standard_rate=STANDARD_RATE,
    )


@pytest.fixture
def accountant(session_factory, rates) -> LedgerAccountant:
    return LedgerAccountant(session_factory, rates)


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def orchestrator(session_factory, provider, accountant) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        session_factory,
        StageExecutor(provider),
        accountant,
        OwnershipGuard(),
        reasoning_model=REASONING_MODEL,
        standard_model=STANDARD_MODEL,
    )
