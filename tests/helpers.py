"""Test helpers: a scripted API behind httpx.MockTransport and sample factories."""

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from healthsync.adapters.protocol import RawSample
from healthsync.builder import BatchBuilder
from healthsync.domain.models import Batch, Reading

NOW = datetime(2024, 3, 15, 8, 0, tzinfo=UTC)

Reply = tuple[int, Any] | Exception | Callable[[httpx.Request], httpx.Response]


class MockApi:
    """Scripted API behind httpx.MockTransport.

    Replies are queued per (method, path). Each request pops the next reply;
    the last one repeats. A reply is ``(status, body)``, an exception to
    raise, or a callable taking the request. The error endpoint always
    accepts.
    """

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Reply]] = {}

    def queue(self, method: str, path: str, *replies: Reply) -> None:
        self._routes.setdefault((method, path), []).extend(replies)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.method == method and _path(r) == path]

    def error_reports(self) -> list[dict]:
        return [json.loads(r.content) for r in self.calls_to("POST", "error/mobile")]

    def posted_ids(self, path: str) -> list[list[str]]:
        """Reading ids of every request posted to a log endpoint, in order."""
        return [[r["id"] for r in json.loads(req.content)] for req in self.calls_to("POST", path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, _path(request))
        if key == ("POST", "error/mobile"):
            return httpx.Response(201)
        replies = self._routes.get(key)
        if not replies:
            return httpx.Response(404, json={"title": "Not Found", "statusCode": 404})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        status, body = reply
        if body is None:
            return httpx.Response(status)
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


def _path(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/api/")


def make_sample(
    sample_id: str,
    sensor: str = "sleep",
    start: datetime | None = None,
    minutes: int = 30,
    **overrides: Any,
) -> RawSample:
    start = start or NOW - timedelta(hours=8)
    fields: dict[str, Any] = {
        "sample_id": sample_id,
        "sensor": sensor,
        "value": 1.0,
        "start": start,
        "end": start + timedelta(minutes=minutes),
        "source": "com.example.watch",
        "device_type": "Watch6,1",
    }
    fields.update(overrides)
    return RawSample(**fields)


def make_samples(count: int, sensor: str = "sleep", prefix: str = "s") -> list[RawSample]:
    return [
        make_sample(f"{prefix}-{i}", sensor, start=NOW - timedelta(hours=8, minutes=i))
        for i in range(1, count + 1)
    ]


def make_reading(sample_id: str, stream: str = "sleep") -> Reading:
    return BatchBuilder().to_reading(stream, make_sample(sample_id, stream))


def make_batch(count: int, stream: str = "sleep", cursor: str | None = None) -> Batch:
    """Batch whose i-th reading (1-based) carries checkpoint ``str(i)``."""
    return Batch(
        stream=stream,
        readings=[make_reading(f"r-{i}", stream) for i in range(1, count + 1)],
        cursor=cursor if cursor is not None else str(count),
        checkpoints=[str(i) for i in range(1, count + 1)],
    )
