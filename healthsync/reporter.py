"""Best-effort diagnostic reporting.

Every executor failure, and every app-side failure the sync engine hits,
is mirrored here as an ErrorReport and sent to the error endpoint.

Delivery policy:
- Never blocks: the send is scheduled as a task on the running loop.
- Never raises: any failure to build or send the event is logged and dropped.
- Never retries or queues: undeliverable events are dropped, as are events
  beyond ``error_report_max_in_flight`` concurrent sends.
- Sends directly on the HTTP client, never through the request executor,
  so a failing report cannot itself be reported.
"""

import asyncio
import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from healthsync.api.endpoints import Endpoint
from healthsync.domain.models import ErrorPayload, ErrorReport
from shared.config import Settings, settings
from shared.exceptions import ApiError
from shared.metrics import error_reports_total

if TYPE_CHECKING:
    from healthsync.api.session import Session

logger = structlog.get_logger()

_MASK = "******"
_MAX_BODY_CHARS = 4096


def mask_secrets(data: Any) -> Any:
    """Replace the value of every key that looks like a token or secret."""
    if isinstance(data, dict):
        return {
            k: _MASK if _is_secret_key(k) else mask_secrets(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_secrets(item) for item in data]
    return data


def _is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return "token" in lowered or "secret" in lowered


def describe_body(content: bytes | None) -> str | None:
    """Masked, truncated text of a JSON request body for diagnostics."""
    if not content:
        return None
    try:
        text = json.dumps(mask_secrets(json.loads(content)))
    except ValueError:
        text = content.decode("utf-8", errors="replace")
    return text[:_MAX_BODY_CHARS]


class ErrorReporter:
    def __init__(
        self,
        client: httpx.AsyncClient,
        session: "Session",
        config: Settings = settings,
    ) -> None:
        self._client = client
        self._session = session
        self._config = config
        self._in_flight: set[asyncio.Task] = set()

    def report(self, event: ErrorReport) -> None:
        """Schedule delivery of ``event``. Returns immediately."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            error_reports_total.labels(status="dropped").inc()
            logger.debug("error_report_dropped", reason="no_event_loop")
            return

        if len(self._in_flight) >= self._config.error_report_max_in_flight:
            error_reports_total.labels(status="dropped").inc()
            logger.debug("error_report_dropped", reason="backpressure")
            return

        task = loop.create_task(self._send(event))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def report_api_error(
        self,
        error: ApiError,
        endpoint: Endpoint,
        method: str,
        request_body: str | None = None,
    ) -> None:
        error_body = None
        if isinstance(error.payload, ErrorPayload):
            error_body = json.dumps(error.payload.to_wire())
        self.report(
            self._event(
                error_source="api",
                error_code=error.status_code,
                error_location=endpoint.path,
                error_message=f"{error.kind}: {error.message}",
                error_body=error_body,
                code_path="RequestExecutor",
                code_method=method,
                code_body=request_body,
            )
        )

    def report_app_error(
        self,
        message: str,
        path: str,
        method: str,
        body: str | None = None,
    ) -> None:
        self.report(
            self._event(
                error_source="app",
                error_message=message,
                code_path=path,
                code_method=method,
                code_body=body,
            )
        )

    async def drain(self) -> None:
        """Wait for in-flight reports. Used on shutdown and in tests."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _event(self, **fields: Any) -> ErrorReport:
        cfg = self._config
        return ErrorReport(
            sdk_id=cfg.framework_id,
            sdk_version=cfg.sdk_version,
            app_id=cfg.app_id,
            app_version=cfg.app_version,
            device_id=cfg.device_id,
            device_type=cfg.device_type,
            device_model=cfg.device_model,
            system=cfg.system,
            system_version=cfg.system_version,
            time_zone=datetime.now().astimezone().strftime("%z"),
            **fields,
        )

    def _auth_headers(self) -> dict[str, str] | None:
        token = self._session.profile_token
        if token:
            return {"Authorization": f"Profile {token}"}
        if self._config.app_id and self._config.app_secret:
            return {"AppId": self._config.app_id, "AppSecret": self._config.app_secret}
        return None

    async def _send(self, event: ErrorReport) -> None:
        headers = self._auth_headers()
        if headers is None:
            error_reports_total.labels(status="dropped").inc()
            logger.debug("error_report_dropped", reason="missing_credentials")
            return
        try:
            response = await self._client.post(
                Endpoint.ERROR_REPORT.path, json=event.to_wire(), headers=headers
            )
        except Exception as exc:
            error_reports_total.labels(status="failed").inc()
            logger.warning("error_report_failed", error=str(exc))
            return
        if response.status_code >= 300:
            error_reports_total.labels(status="failed").inc()
            logger.warning("error_report_rejected", status_code=response.status_code)
            return
        error_reports_total.labels(status="sent").inc()
