"""In-memory change reader.

Holds samples appended by the host (or by tests) and serves them through
the ChangeReader protocol with the same cursor semantics a platform
anchored query has: the cursor is the sequence number of the last sample
returned, opaque to callers.
"""

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import structlog

from healthsync.adapters.protocol import ChangeSet, RawSample
from healthsync.domain.sensors import RecordingMethod
from shared.config import settings

logger = structlog.get_logger()


class InMemoryChangeReader:
    def __init__(
        self,
        lookback: timedelta | None = None,
        page_size: int = 5000,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._lookback = lookback if lookback is not None else timedelta(days=settings.lookback_days)
        self._page_size = page_size
        self._clock = clock
        self._samples: dict[str, list[tuple[int, RawSample]]] = {}
        self._next_seq = 1
        self.queries: list[tuple[str, str | None, datetime | None]] = []

    def add_samples(self, stream_id: str, samples: Iterable[RawSample]) -> None:
        bucket = self._samples.setdefault(stream_id, [])
        for sample in samples:
            bucket.append((self._next_seq, sample))
            self._next_seq += 1

    async def query_changes(self, stream_id: str, since_cursor: str | None) -> ChangeSet:
        bucket = self._samples.get(stream_id, [])

        if since_cursor is None:
            window_start = self._clock() - self._lookback
            candidates = [(seq, s) for seq, s in bucket if _aware(s.end) >= window_start]
        else:
            window_start = None
            after = int(since_cursor)
            candidates = [(seq, s) for seq, s in bucket if seq > after]
        self.queries.append((stream_id, since_cursor, window_start))

        page = candidates[: self._page_size]
        if not page:
            return ChangeSet(new_cursor=since_cursor)

        # Manual entries are dropped after paging so the cursor still moves past them.
        samples = [
            replace(s, checkpoint=str(seq))
            for seq, s in page
            if s.recording_method != RecordingMethod.MANUAL_ENTRY
        ]
        logger.debug(
            "changes_queried",
            stream=stream_id,
            since_cursor=since_cursor,
            returned=len(samples),
        )
        return ChangeSet(
            new_cursor=str(page[-1][0]),
            samples=samples,
            has_more=len(candidates) > len(page),
        )


def _aware(value: datetime) -> datetime:
    """Naive platform timestamps are taken as local time."""
    return value if value.tzinfo is not None else value.astimezone()
