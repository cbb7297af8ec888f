"""Authenticated request executor.

Sends one logical request to the API and applies the status-code policy:

- Auth-required endpoints get ``Authorization: Profile <token>``; without a
  token the request fails with AuthenticationMissing before any I/O.
- The refresh endpoint gets AppId/AppSecret headers instead.
- POST/PUT/PATCH without a body fail with RequestMissingBody before any I/O.
- 410 clears the session and fails with AccountRemoved.
- 401 with a refresh token available triggers one shared refresh and one
  retry. The retry is the second and last tenacity attempt; a 401 on it is
  a plain ServerRejected, never another refresh.
- 204, and any 2xx for acknowledgement-only kinds, succeed without parsing.
- Other non-2xx responses decode the error payload and fail ServerRejected.

Every failure is mirrored to the error reporter before it is raised.
"""

import json
import time
from typing import Any, NoReturn

import httpx
import structlog
from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from healthsync.api.endpoints import EMPTY, Endpoint, HttpMethod, ResponseKind, json_of
from healthsync.api.session import Session
from healthsync.domain.models import (
    CredentialPair,
    EmptyResponse,
    ErrorPayload,
    RefreshTokenRequest,
    TokenResponse,
)
from healthsync.reporter import ErrorReporter, describe_body
from shared.config import Settings, settings
from shared.exceptions import (
    AccountRemoved,
    ApiError,
    AuthenticationMissing,
    DecodingError,
    EncodingError,
    MalformedResponse,
    RequestMissingBody,
    ServerRejected,
    TokenExpiredRecoverable,
    TransportError,
)
from shared.metrics import api_request_duration_seconds, api_requests_total, token_refresh_total

logger = structlog.get_logger()

# First attempt plus the single retry after a refresh.
MAX_ATTEMPTS = 2

RequestBody = BaseModel | list[BaseModel] | dict[str, Any] | list[Any]


def encode_body(body: RequestBody) -> bytes:
    """Serialize a request body to JSON bytes. Raises EncodingError."""
    if isinstance(body, BaseModel):
        data: Any = _wire(body)
    elif isinstance(body, list):
        data = [_wire(item) if isinstance(item, BaseModel) else item for item in body]
    else:
        data = body
    try:
        return json.dumps(data, allow_nan=False).encode()
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"Request body could not be encoded: {exc}") from exc


def _wire(model: BaseModel) -> Any:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class RequestExecutor:
    def __init__(
        self,
        client: httpx.AsyncClient,
        session: Session,
        reporter: ErrorReporter,
        config: Settings = settings,
    ) -> None:
        self._client = client
        self._session = session
        self._reporter = reporter
        self._config = config

    async def execute(
        self,
        endpoint: Endpoint,
        method: HttpMethod,
        body: RequestBody | None = None,
        kind: ResponseKind = EMPTY,
    ) -> Any:
        """Run one logical request, refreshing and retrying at most once."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            retry=retry_if_exception_type(TokenExpiredRecoverable),
            reraise=True,
        ):
            with attempt:
                is_retry = attempt.retry_state.attempt_number > 1
                result = await self._send(endpoint, method, body, kind, is_retry=is_retry)
        return result

    async def _send(
        self,
        endpoint: Endpoint,
        method: HttpMethod,
        body: RequestBody | None,
        kind: ResponseKind,
        is_retry: bool,
    ) -> Any:
        headers: dict[str, str] = {}
        token: str | None = None

        if endpoint.requires_auth:
            token = self._session.profile_token
            if not token:
                self._fail(AuthenticationMissing(), endpoint, method)
            headers["Authorization"] = f"Profile {token}"
        elif endpoint.uses_app_credentials:
            headers["AppId"] = self._config.app_id
            headers["AppSecret"] = self._config.app_secret

        content: bytes | None = None
        if body is None:
            if method.requires_body:
                self._fail(RequestMissingBody(method.value), endpoint, method)
        else:
            try:
                content = encode_body(body)
            except EncodingError as exc:
                self._fail(exc, endpoint, method)

        logger.debug("api_request", endpoint=endpoint.path, method=method.value, retry=is_retry)
        try:
            with api_request_duration_seconds.labels(endpoint=endpoint.path).time():
                response = await self._client.request(
                    method.value, endpoint.path, content=content, headers=headers
                )
        except (httpx.ProtocolError, httpx.DecodingError) as exc:
            self._fail(MalformedResponse(f"Malformed response: {exc}"), endpoint, method, content)
        except httpx.RequestError as exc:
            self._fail(TransportError(f"Transport error: {exc}"), endpoint, method, content)

        status = response.status_code
        api_requests_total.labels(
            endpoint=endpoint.path, method=method.value, status=str(status)
        ).inc()

        if status == 410:
            await self._session.clear()
            self._fail(AccountRemoved(), endpoint, method, content)

        if (
            status == 401
            and endpoint.requires_auth
            and not is_retry
            and self._session.refresh_token
        ):
            self._reporter.report_api_error(
                TokenExpiredRecoverable(), endpoint, method.value, describe_body(content)
            )
            logger.info("token_expired", endpoint=endpoint.path)
            try:
                await self._session.refresh(token, self._refresh)
            except AuthenticationMissing as exc:
                self._fail(exc, endpoint, method, content)
            raise TokenExpiredRecoverable()

        if status == 204 and (kind.expects_empty or kind.zero_on_no_content):
            return kind.empty_value()

        if status < 300 and kind.expects_empty:
            return EmptyResponse()

        if status >= 300:
            payload = self._decode_error_payload(response, endpoint)
            self._fail(
                ServerRejected(payload.title, status_code=status, payload=payload),
                endpoint,
                method,
                content,
            )

        try:
            return kind.decode(response.content)
        except ValidationError as exc:
            self._fail(
                DecodingError(f"Response could not be decoded: {exc.error_count()} error(s)", status),
                endpoint,
                method,
                content,
            )

    async def _refresh(self, refresh_token: str) -> CredentialPair:
        """The refresh call itself. Runs inside the session's shared refresh task."""
        try:
            tokens: TokenResponse = await self._send(
                Endpoint.REFRESH_TOKEN,
                HttpMethod.POST,
                RefreshTokenRequest(refresh_token=refresh_token),
                json_of(TokenResponse),
                is_retry=True,
            )
        except ApiError:
            token_refresh_total.labels(outcome="failure").inc()
            raise
        token_refresh_total.labels(outcome="success").inc()
        return CredentialPair(profile_token=tokens.profile_token, refresh_token=tokens.refresh_token)

    @staticmethod
    def _decode_error_payload(response: httpx.Response, endpoint: Endpoint) -> ErrorPayload:
        try:
            return ErrorPayload.model_validate_json(response.content)
        except ValidationError:
            return ErrorPayload.decoding_failure(response.status_code, endpoint.path)

    def _fail(
        self,
        error: ApiError,
        endpoint: Endpoint,
        method: HttpMethod,
        content: bytes | None = None,
    ) -> NoReturn:
        if error.status_code is None:
            api_requests_total.labels(
                endpoint=endpoint.path, method=method.value, status=error.kind.value
            ).inc()
        logger.warning(
            "api_request_failed",
            endpoint=endpoint.path,
            method=method.value,
            kind=error.kind.value,
            status_code=error.status_code,
            error=error.message,
        )
        self._reporter.report_api_error(error, endpoint, method.value, describe_body(content))
        raise error
