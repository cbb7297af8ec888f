"""Sync engine: change reader → batch builder → chunked uploader, per stream.

One pass for a stream:
1. Load the committed cursor (None on first run; the reader then applies
   its lookback window)
2. Query changes since the cursor
3. Build a batch and upload it chunk by chunk
4. Repeat while the reader reports more changes and the cursor advanced

A pass stops at the first failed chunk or reader error. Nothing is
retried inline; the next pass resumes from the committed cursor.

Streams sync concurrently. A per-stream lock keeps at most one pass per
stream in flight; a trigger that arrives during a pass is skipped.
"""

import asyncio
import time
from dataclasses import dataclass

import structlog

from healthsync.adapters.protocol import ChangeReader
from healthsync.api.session import Session
from healthsync.builder import BatchBuilder
from healthsync.cursor_store import CursorStore
from healthsync.reporter import ErrorReporter
from healthsync.uploader import ChunkedUploader
from shared.config import Settings, settings
from shared.metrics import sync_pass_duration_seconds

logger = structlog.get_logger()


@dataclass
class StreamSyncResult:
    """Per-stream result of one synchronization pass."""

    stream: str
    status: str = "success"  # "success", "failed", "skipped"
    starting_cursor: str | None = None
    committed_cursor: str | None = None
    batches: int = 0
    readings_uploaded: int = 0
    error: str | None = None

    @property
    def advanced(self) -> bool:
        return self.committed_cursor != self.starting_cursor


class SyncEngine:
    def __init__(
        self,
        reader: ChangeReader,
        builder: BatchBuilder,
        uploader: ChunkedUploader,
        cursors: CursorStore,
        session: Session,
        reporter: ErrorReporter,
        config: Settings = settings,
    ) -> None:
        self._reader = reader
        self._builder = builder
        self._uploader = uploader
        self._cursors = cursors
        self._session = session
        self._reporter = reporter
        self._config = config
        self._locks: dict[str, asyncio.Lock] = {}

    def is_syncing(self, stream: str) -> bool:
        lock = self._locks.get(stream)
        return lock is not None and lock.locked()

    async def sync_all(self) -> list[StreamSyncResult]:
        """Run one pass for every enabled stream, concurrently."""
        streams = sorted(self._config.enabled_streams)
        outcomes = await asyncio.gather(
            *(self.sync_stream(stream) for stream in streams),
            return_exceptions=True,
        )
        results: list[StreamSyncResult] = []
        for stream, outcome in zip(streams, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("sync_pass_crashed", stream=stream, exc_info=outcome)
                self._reporter.report_app_error(
                    str(outcome), path="SyncEngine", method="sync_stream", body=stream
                )
                results.append(StreamSyncResult(stream=stream, status="failed", error=str(outcome)))
            else:
                results.append(outcome)
        return results

    async def sync_stream(self, stream: str) -> StreamSyncResult:
        if not self._session.is_authenticated:
            logger.info("sync_skipped", stream=stream, reason="not_authenticated")
            return StreamSyncResult(stream=stream, status="skipped", error="not_authenticated")

        lock = self._locks.setdefault(stream, asyncio.Lock())
        if lock.locked():
            logger.info("sync_skipped", stream=stream, reason="pass_in_progress")
            return StreamSyncResult(stream=stream, status="skipped", error="pass_in_progress")

        async with lock:
            start_time = time.monotonic()
            try:
                return await self._run_pass(stream)
            finally:
                sync_pass_duration_seconds.labels(stream=stream).observe(
                    time.monotonic() - start_time
                )

    async def _run_pass(self, stream: str) -> StreamSyncResult:
        generation = self._cursors.generation
        cursor = await self._cursors.get(stream)
        result = StreamSyncResult(stream=stream, starting_cursor=cursor, committed_cursor=cursor)
        logger.info("sync_started", stream=stream, cursor=cursor)

        while True:
            try:
                changes = await self._reader.query_changes(stream, cursor)
            except Exception as exc:
                logger.exception("change_query_failed", stream=stream)
                self._reporter.report_app_error(
                    f"Change query failed: {exc}",
                    path="SyncEngine",
                    method="query_changes",
                    body=f"{stream} | {cursor}",
                )
                result.status = "failed"
                result.error = "change_query_failed"
                break

            batch = self._builder.build(stream, changes)
            upload = await self._uploader.upload(batch, cursor, generation)
            result.batches += 1
            result.readings_uploaded += upload.readings_uploaded
            result.committed_cursor = upload.committed_cursor

            if upload.discarded:
                logger.info("sync_abandoned", stream=stream, reason="cursors_cleared")
                result.status = "skipped"
                result.error = "cursors_cleared"
                break
            if not upload.succeeded:
                result.status = "failed"
                result.error = upload.error.kind.value
                break
            if not changes.has_more or upload.committed_cursor == cursor:
                break
            cursor = upload.committed_cursor

        logger.info(
            "sync_finished",
            stream=stream,
            status=result.status,
            batches=result.batches,
            readings_uploaded=result.readings_uploaded,
            committed_cursor=result.committed_cursor,
        )
        return result
