"""
Pytest configuration and fixtures for the test suite.
"""

from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from byok.app.core.config import Settings
from byok.app.db.session import create_engine, create_session_factory, create_tables
from byok.app.providers.base import AdapterRegistry
from byok.app.repositories.memory import (
    InMemoryCredentialRepository,
    InMemoryJobRepository,
    InMemoryKeyStore,
)
from byok.app.services.authorization import AllowListAuthorizer
from byok.app.services.orchestrator import GenerationOrchestrator
from byok.app.services.vault import CredentialVault
from tests.factories import FakeAdapter, RecordingSleep, make_user


@pytest.fixture
def key_store() -> InMemoryKeyStore:
    return InMemoryKeyStore()


@pytest.fixture
def credential_repo() -> InMemoryCredentialRepository:
    return InMemoryCredentialRepository()


@pytest.fixture
def job_repo() -> InMemoryJobRepository:
    return InMemoryJobRepository()


@pytest.fixture
def vault(credential_repo, key_store) -> CredentialVault:
    return CredentialVault(credential_repo, key_store)


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def orchestrator(vault, job_repo, adapter, sleep) -> GenerationOrchestrator:
    """Orchestrator with the reference 3 s / 80 attempt budget and a fake clock."""
    return GenerationOrchestrator(
        vault,
        job_repo,
        AdapterRegistry([adapter]),
        AllowListAuthorizer(["google-veo", "meta-moviegen", "runway-gen3"]),
        poll_interval=3.0,
        max_poll_attempts=80,
        max_prompt_length=500,
        sleep=sleep,
    )


@pytest.fixture
async def sql_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite database, created fresh for each test."""
    config = Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'byok-test.db'}")
    engine = create_engine(config)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sql_engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(sql_engine)
