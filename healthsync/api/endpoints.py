"""API endpoints, methods and response kinds.

The response kind is chosen at the call site, so the executor never has to
inspect the expected type to decide how a 204 or an empty body is handled.
"""

from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Any

from pydantic import BaseModel

from healthsync.domain.models import EmptyResponse
from shared.config import SLEEP_STREAMS


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def requires_body(self) -> bool:
        return self in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH)


class Endpoint(Enum):
    REFRESH_TOKEN = "oauth/profile/refreshToken"
    DEMOGRAPHIC = "profile/demographic"
    ANALYZE = "profile/analyze"
    SLEEP_LOG = "sleep/log"
    MOVEMENT_LOG = "movement/log"
    ERROR_REPORT = "error/mobile"

    @property
    def path(self) -> str:
        return self.value

    @property
    def requires_auth(self) -> bool:
        return self is not Endpoint.REFRESH_TOKEN

    @property
    def uses_app_credentials(self) -> bool:
        return self is Endpoint.REFRESH_TOKEN


def log_endpoint_for(stream: str) -> Endpoint:
    return Endpoint.SLEEP_LOG if stream in SLEEP_STREAMS else Endpoint.MOVEMENT_LOG


@dataclass(frozen=True)
class ResponseKind:
    """What a successful response decodes into.

    - ``model=None``: acknowledgement only; the body is never parsed.
    - ``zero_on_no_content``: a 204 yields ``model()`` instead of decoding.
    """

    model: type[BaseModel] | None = None
    zero_on_no_content: bool = False

    @property
    def expects_empty(self) -> bool:
        return self.model is None

    def empty_value(self) -> Any:
        if self.model is None:
            return EmptyResponse()
        return self.model()

    def decode(self, content: bytes) -> Any:
        if self.model is None:
            raise TypeError("acknowledgement-only responses have no body to decode")
        return self.model.model_validate_json(content)


EMPTY = ResponseKind()


def json_of(model: type[BaseModel], *, zero_on_no_content: bool = False) -> ResponseKind:
    return ResponseKind(model=model, zero_on_no_content=zero_on_no_content)
