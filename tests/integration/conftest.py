"""Integration test fixtures: a file-backed state database.

Each test gets its own SQLite file so engines can be disposed and reopened
to simulate a process restart.
Run with: pytest tests/integration -v
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from shared.database import init_models


@pytest.fixture
def state_db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'healthsync_state.db'}"


@pytest.fixture
async def open_engine(state_db_url):
    """Open a fresh engine on the same database file. Disposed after the test."""
    engines = []

    async def _open():
        engine = create_async_engine(state_db_url, echo=False)
        await init_models(engine)
        engines.append(engine)
        return engine

    yield _open
    for engine in engines:
        await engine.dispose()
