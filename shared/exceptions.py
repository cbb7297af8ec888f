"""API error hierarchy.

Every failure of the request executor is raised as an ApiError subclass.
Each subclass carries a stable ``kind`` used in logs, metrics and the
diagnostic events sent to the error reporter.
"""

from enum import StrEnum
from typing import Any


class ApiErrorKind(StrEnum):
    AUTHENTICATION_MISSING = "authentication_missing"
    REQUEST_MISSING_BODY = "request_missing_body"
    ENCODING_ERROR = "encoding_error"
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_RESPONSE = "malformed_response"
    ACCOUNT_REMOVED = "account_removed"
    TOKEN_EXPIRED = "token_expired"
    DECODING_ERROR = "decoding_error"
    SERVER_REJECTED = "server_rejected"


class ApiError(Exception):
    kind: ApiErrorKind

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code!r}, message={self.message!r})"


class AuthenticationMissing(ApiError):
    kind = ApiErrorKind.AUTHENTICATION_MISSING

    def __init__(self):
        super().__init__("Missing profile token")


class RequestMissingBody(ApiError):
    kind = ApiErrorKind.REQUEST_MISSING_BODY

    def __init__(self, method: str):
        super().__init__(f"{method} request requires a body")


class EncodingError(ApiError):
    kind = ApiErrorKind.ENCODING_ERROR


class TransportError(ApiError):
    kind = ApiErrorKind.TRANSPORT_ERROR


class MalformedResponse(ApiError):
    kind = ApiErrorKind.MALFORMED_RESPONSE


class AccountRemoved(ApiError):
    """The profile no longer exists. Credentials have been cleared."""

    kind = ApiErrorKind.ACCOUNT_REMOVED

    def __init__(self):
        super().__init__("Account removed", status_code=410)


class TokenExpiredRecoverable(ApiError):
    """Internal signal that a refresh succeeded and the request should run again.

    Never surfaces to callers of the executor.
    """

    kind = ApiErrorKind.TOKEN_EXPIRED

    def __init__(self):
        super().__init__("Profile token expired", status_code=401)


class DecodingError(ApiError):
    kind = ApiErrorKind.DECODING_ERROR


class ServerRejected(ApiError):
    kind = ApiErrorKind.SERVER_REJECTED
