"""Shared test fixtures."""

import sys
from pathlib import Path

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from healthsync.adapters.http_client import build_client  # noqa: E402
from healthsync.adapters.protocol import InMemoryCredentialStore  # noqa: E402
from healthsync.api.controller import ApiController  # noqa: E402
from healthsync.api.executor import RequestExecutor  # noqa: E402
from healthsync.api.session import Session  # noqa: E402
from healthsync.cursor_store import CursorStore  # noqa: E402
from healthsync.domain.models import CredentialPair  # noqa: E402
from healthsync.reporter import ErrorReporter  # noqa: E402
from shared.config import Settings  # noqa: E402
from shared.database import init_models  # noqa: E402
from tests.helpers import MockApi  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        enabled_streams={"sleep", "step_count"},
        app_id="app-123",
        app_secret="secret-456",
        app_version="2.1.0",
        device_id="device-1",
        device_type="iPhone",
        device_model="iPhone15,2",
        system="iOS",
        system_version="17.4",
    )


@pytest.fixture
def mock_api() -> MockApi:
    return MockApi()


@pytest.fixture
async def db_engine():
    """In-memory state database shared across sessions through one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def cursor_store(db_engine) -> CursorStore:
    return CursorStore(async_sessionmaker(db_engine, expire_on_commit=False))


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore(CredentialPair("profile-1", "refresh-1"))


@pytest.fixture
def session(credential_store) -> Session:
    return Session(credential_store)


@pytest.fixture
async def http_client(mock_api, test_settings):
    client = build_client(test_settings, httpx.MockTransport(mock_api.handler))
    yield client
    await client.aclose()


@pytest.fixture
def reporter(http_client, session, test_settings) -> ErrorReporter:
    return ErrorReporter(http_client, session, test_settings)


@pytest.fixture
def executor(http_client, session, reporter, test_settings) -> RequestExecutor:
    return RequestExecutor(http_client, session, reporter, test_settings)


@pytest.fixture
def api(executor) -> ApiController:
    return ApiController(executor)
