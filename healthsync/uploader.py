"""Chunked uploader: batch → fixed-size chunks → log endpoint, in order.

Chunking is deterministic: L readings give ceil(L / size) chunks sized
[size, ..., size, remainder]. The plan is a lazy, restartable sequence of
slices; iterating it twice yields the same chunks.

Cursor policy:
- A chunk's boundary cursor is the batch cursor for the final chunk and the
  checkpoint of its last reading otherwise.
- The boundary is committed right after its chunk is confirmed, never
  before. A chunk with no known boundary commits nothing.
- Commits are tagged with the cursor store generation the caller read its
  starting cursor under (by default, the one current when the upload starts). If the store is cleared meanwhile the commit is discarded and
  the upload stops.
- On the first failed chunk the upload stops. The committed cursor is left
  where the last confirmed chunk put it, and the next sync pass resumes
  from there.
"""

import math
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from healthsync.api.controller import ApiController
from healthsync.api.endpoints import log_endpoint_for
from healthsync.cursor_store import CursorStore
from healthsync.domain.models import Batch, Reading
from shared.config import Settings, settings
from shared.exceptions import ApiError
from shared.metrics import chunk_uploads_total, readings_uploaded_total

logger = structlog.get_logger()


@dataclass(frozen=True)
class Chunk:
    index: int
    readings: list[Reading]
    cursor: str | None


class ChunkPlan:
    """Restartable sequence of fixed-size chunks over a batch."""

    def __init__(self, batch: Batch, size: int) -> None:
        if size < 1:
            raise ValueError("chunk size must be at least 1")
        self._batch = batch
        self._size = size

    def __len__(self) -> int:
        return math.ceil(len(self._batch) / self._size)

    def __iter__(self) -> Iterator[Chunk]:
        batch, size = self._batch, self._size
        total = len(batch)
        for index, start in enumerate(range(0, total, size)):
            end = min(start + size, total)
            cursor = batch.cursor if end == total else batch.checkpoints[end - 1]
            yield Chunk(index=index, readings=batch.readings[start:end], cursor=cursor)

    def sizes(self) -> list[int]:
        return [len(chunk.readings) for chunk in self]


@dataclass
class UploadResult:
    """Outcome of uploading one batch."""

    stream: str
    chunks_total: int = 0
    chunks_uploaded: int = 0
    readings_uploaded: int = 0
    committed_cursor: str | None = None
    error: ApiError | None = None
    discarded: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ChunkedUploader:
    def __init__(
        self,
        api: ApiController,
        cursors: CursorStore,
        config: Settings = settings,
    ) -> None:
        self._api = api
        self._cursors = cursors
        self._config = config

    async def upload(
        self,
        batch: Batch,
        starting_cursor: str | None,
        generation: int | None = None,
    ) -> UploadResult:
        plan = ChunkPlan(batch, self._config.chunk_size)
        endpoint = log_endpoint_for(batch.stream)
        result = UploadResult(
            stream=batch.stream,
            chunks_total=len(plan),
            committed_cursor=starting_cursor,
        )
        if generation is None:
            generation = self._cursors.generation

        if not batch.readings:
            if batch.cursor is not None and batch.cursor != starting_cursor:
                if await self._cursors.commit(batch.stream, batch.cursor, generation):
                    result.committed_cursor = batch.cursor
                else:
                    result.committed_cursor = None
                    result.discarded = True
            return result

        for chunk in plan:
            posted_at = datetime.now(UTC)
            try:
                await self._api.post_logs(endpoint, [r.posted(posted_at) for r in chunk.readings])
            except ApiError as exc:
                chunk_uploads_total.labels(stream=batch.stream, status="failed").inc()
                logger.warning(
                    "chunk_upload_failed",
                    stream=batch.stream,
                    chunk=chunk.index,
                    chunks_total=result.chunks_total,
                    kind=exc.kind.value,
                    committed_cursor=result.committed_cursor,
                )
                result.error = exc
                return result

            result.chunks_uploaded += 1
            result.readings_uploaded += len(chunk.readings)
            chunk_uploads_total.labels(stream=batch.stream, status="uploaded").inc()
            readings_uploaded_total.labels(stream=batch.stream).inc(len(chunk.readings))
            logger.info(
                "chunk_uploaded",
                stream=batch.stream,
                chunk=chunk.index,
                chunks_total=result.chunks_total,
                size=len(chunk.readings),
            )

            if chunk.cursor is not None:
                if not await self._cursors.commit(batch.stream, chunk.cursor, generation):
                    # cursors cleared mid-upload
                    result.committed_cursor = None
                    result.discarded = True
                    return result
                result.committed_cursor = chunk.cursor

        return result
