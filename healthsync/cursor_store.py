"""Cursor store: one opaque synchronization cursor per stream.

Backed by the local state database. Every write runs in its own
transaction and is committed before ``commit`` returns, so a confirmed
chunk's cursor survives a process restart. Writes are serialized through
one asyncio.Lock.

``clear()`` starts a new generation. A commit tagged with an older
generation is discarded, so an upload that was in flight during
de-authentication cannot bring back the progress that was erased.
"""

import asyncio
from datetime import UTC, datetime

import structlog
from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthsync.domain.orm import StreamCursorModel

logger = structlog.get_logger()


class CursorStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def get(self, stream_id: str) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StreamCursorModel.cursor).where(StreamCursorModel.stream_id == stream_id)
            )
            return result.scalar_one_or_none()

    async def get_all(self) -> dict[str, str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StreamCursorModel.stream_id, StreamCursorModel.cursor)
            )
            return {row.stream_id: row.cursor for row in result}

    async def commit(self, stream_id: str, cursor: str, generation: int | None = None) -> bool:
        """Insert or replace the cursor for a stream.

        Returns False, writing nothing, when ``generation`` is given and the
        store has been cleared since it was read.
        """
        stmt = sqlite_insert(StreamCursorModel).values(
            stream_id=stream_id, cursor=cursor, updated_at=datetime.now(UTC)
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["stream_id"],
            set_={"cursor": stmt.excluded.cursor, "updated_at": stmt.excluded.updated_at},
        )
        async with self._lock:
            if generation is not None and generation != self._generation:
                logger.info("cursor_commit_discarded", stream=stream_id, cursor=cursor)
                return False
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        return True

    async def delete(self, stream_id: str) -> None:
        async with self._lock:
            async with self._session_factory() as session:
                await session.execute(
                    delete(StreamCursorModel).where(StreamCursorModel.stream_id == stream_id)
                )
                await session.commit()

    async def clear(self) -> None:
        async with self._lock:
            self._generation += 1
            async with self._session_factory() as session:
                await session.execute(delete(StreamCursorModel))
                await session.commit()
