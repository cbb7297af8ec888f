"""Tests for the best-effort error reporter."""

import json
import re

import httpx

from healthsync.adapters.protocol import InMemoryCredentialStore
from healthsync.api.endpoints import Endpoint
from healthsync.api.session import Session
from healthsync.reporter import ErrorReporter, describe_body, mask_secrets
from shared.config import Settings
from shared.exceptions import ServerRejected
from tests.helpers import MockApi


class TestMasking:
    def test_masks_nested_secret_keys(self):
        data = {
            "refreshToken": "r",
            "nested": [{"appSecret": "s", "value": 1}],
            "profile": {"profileToken": "p"},
        }
        assert mask_secrets(data) == {
            "refreshToken": "******",
            "nested": [{"appSecret": "******", "value": 1}],
            "profile": {"profileToken": "******"},
        }

    def test_describe_body_masks_json(self):
        assert describe_body(b'{"refreshToken": "r"}') == '{"refreshToken": "******"}'

    def test_describe_body_truncates(self):
        text = describe_body(json.dumps(["x" * 10000]).encode())
        assert len(text) == 4096

    def test_describe_body_non_json(self):
        assert describe_body(b"plain") == "plain"

    def test_describe_body_empty(self):
        assert describe_body(None) is None


class TestDelivery:
    async def test_app_error_carries_identity(self, reporter, mock_api):
        reporter.report_app_error("Change query failed", path="SyncEngine", method="query_changes")
        await reporter.drain()

        request = mock_api.calls_to("POST", "error/mobile")[0]
        assert request.headers["Authorization"] == "Profile profile-1"
        report = json.loads(request.content)
        assert report["sdkId"] == "python"
        assert report["sdkVersion"] == "1.0.0"
        assert report["appId"] == "app-123"
        assert report["appVersion"] == "2.1.0"
        assert report["deviceId"] == "device-1"
        assert report["deviceModel"] == "iPhone15,2"
        assert report["system"] == "iOS"
        assert report["systemVersion"] == "17.4"
        assert report["errorSource"] == "app"
        assert report["errorMessage"] == "Change query failed"
        assert report["codePath"] == "SyncEngine"
        assert report["codeMethod"] == "query_changes"
        assert re.fullmatch(r"[+-]\d{4}", report["timeZone"])

    async def test_api_error_fields(self, reporter, mock_api):
        error = ServerRejected("Bad request", status_code=400)
        reporter.report_api_error(error, Endpoint.SLEEP_LOG, "POST", '[{"id": "x"}]')
        await reporter.drain()

        report = mock_api.error_reports()[0]
        assert report["errorSource"] == "api"
        assert report["errorCode"] == 400
        assert report["errorLocation"] == "sleep/log"
        assert report["errorMessage"] == "server_rejected: Bad request"
        assert report["codeBody"] == '[{"id": "x"}]'

    async def test_falls_back_to_app_credentials(self, reporter, session, mock_api):
        await session.clear()

        reporter.report_app_error("boom", path="SyncEngine", method="sync_stream")
        await reporter.drain()

        request = mock_api.calls_to("POST", "error/mobile")[0]
        assert request.headers["AppId"] == "app-123"
        assert request.headers["AppSecret"] == "secret-456"
        assert "Authorization" not in request.headers

    async def test_dropped_without_any_credentials(self, mock_api):
        async with httpx.AsyncClient(
            base_url="https://sandbox-api.sahha.ai/api/",
            transport=httpx.MockTransport(mock_api.handler),
        ) as client:
            reporter = ErrorReporter(
                client, Session(InMemoryCredentialStore()), Settings(_env_file=None)
            )
            reporter.report_app_error("boom", path="SyncEngine", method="sync_stream")
            await reporter.drain()

        assert mock_api.calls == []

    async def test_send_failure_is_swallowed(self, session, test_settings):
        def down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network unreachable")

        async with httpx.AsyncClient(
            base_url=test_settings.api_base_url, transport=httpx.MockTransport(down)
        ) as client:
            reporter = ErrorReporter(client, session, test_settings)
            reporter.report_app_error("boom", path="SyncEngine", method="sync_stream")
            await reporter.drain()

    async def test_excess_reports_dropped(self, http_client, session, test_settings, mock_api):
        config = test_settings.model_copy(update={"error_report_max_in_flight": 1})
        reporter = ErrorReporter(http_client, session, config)

        reporter.report_app_error("first", path="SyncEngine", method="a")
        reporter.report_app_error("second", path="SyncEngine", method="b")
        await reporter.drain()

        assert [r["errorMessage"] for r in mock_api.error_reports()] == ["first"]


class TestWithoutEventLoop:
    def test_report_outside_loop_is_dropped(self, test_settings):
        api = MockApi()
        client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
        session = Session(InMemoryCredentialStore())
        reporter = ErrorReporter(client, session, test_settings)

        reporter.report_app_error("boom", path="SyncEngine", method="sync_stream")

        assert api.calls == []
