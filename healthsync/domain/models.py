"""Wire models shared by the uploader, the executor and the error reporter.

Field names are snake_case in Python and camelCase on the wire. Decoding
accepts either spelling, since the API answers in snake_case while the
request schemas are camelCase.

Timestamps are sent as local date-times with a UTC offset, at second
precision, e.g. ``2024-03-14T23:00:00+13:00``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator
from pydantic.alias_generators import to_camel


def to_local(value: datetime) -> datetime:
    """Normalize to local time at second precision. Naive values are taken as local."""
    return value.astimezone().replace(microsecond=0)


def format_date_time(value: datetime) -> str:
    return to_local(value).isoformat()


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EmptyResponse(WireModel):
    """Canonical value for endpoints that acknowledge without a body."""


class Reading(WireModel):
    """One observation queued for upload."""

    id: UUID
    log_type: str
    data_type: str
    value: float
    unit: str
    source: str
    recording_method: str
    device_type: str
    device_id: str
    start_date_time: datetime
    end_date_time: datetime
    post_date_time: datetime | None = None
    aggregation: str | None = None
    periodicity: str | None = None
    additional_properties: dict[str, str] | None = None
    parent_id: UUID | None = None

    @field_validator("start_date_time", "end_date_time", "post_date_time", mode="after")
    @classmethod
    def normalize_timestamp(cls, v: datetime | None) -> datetime | None:
        return to_local(v) if v is not None else None

    @field_serializer("start_date_time", "end_date_time", "post_date_time")
    def serialize_timestamp(self, v: datetime | None) -> str | None:
        return format_date_time(v) if v is not None else None

    def posted(self, posted_at: datetime) -> "Reading":
        """Copy stamped with the time it is sent."""
        return self.model_copy(update={"post_date_time": to_local(posted_at)})


@dataclass
class Batch:
    """Readings for one stream plus the cursor that is valid once all are uploaded.

    ``checkpoints[i]`` is the cursor valid once readings ``0..i`` are uploaded,
    or None if the change reader did not supply one.
    """

    stream: str
    readings: list[Reading]
    cursor: str | None
    checkpoints: list[str | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.checkpoints:
            self.checkpoints = [None] * len(self.readings)
        if len(self.checkpoints) != len(self.readings):
            raise ValueError("checkpoints must align with readings")

    def __len__(self) -> int:
        return len(self.readings)


@dataclass(frozen=True)
class CredentialPair:
    profile_token: str
    refresh_token: str

    def __repr__(self) -> str:
        return "CredentialPair(profile_token='***', refresh_token='***')"


class RefreshTokenRequest(WireModel):
    refresh_token: str


class TokenResponse(WireModel):
    profile_token: str
    refresh_token: str
    expires_in: int = 0
    token_type: str = "Profile"


class Demographic(WireModel):
    age: int | None = None
    gender: str | None = None
    country: str | None = None
    birth_country: str | None = None
    ethnicity: str | None = None
    occupation: str | None = None
    industry: str | None = None
    income_range: str | None = None
    education: str | None = None
    relationship: str | None = None
    locale: str | None = None
    living_arrangement: str | None = None
    birth_date: str | None = None


class AnalysisRequest(WireModel):
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    include_source_data: bool = False

    @field_serializer("start_date_time", "end_date_time")
    def serialize_timestamp(self, v: datetime | None) -> str | None:
        return format_date_time(v) if v is not None else None


class AnalysisResponse(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str | None = None
    created_at: str | None = None
    state: str | None = None
    sub_state: str | None = None
    range: int | None = None
    confidence: float | None = None
    phenotypes: list[str] = []


class ErrorPayload(WireModel):
    """Structured error body returned by the API for non-2xx responses."""

    title: str
    status_code: int
    location: str | None = None
    errors: list[Any] = []

    @classmethod
    def decoding_failure(cls, status_code: int, location: str) -> "ErrorPayload":
        return cls(
            title="Error payload could not be decoded",
            status_code=status_code,
            location=location,
        )


class ErrorReport(WireModel):
    """Diagnostic event sent to the error endpoint."""

    sdk_id: str
    sdk_version: str
    app_id: str
    app_version: str
    device_id: str
    device_type: str
    device_model: str
    system: str
    system_version: str
    error_source: Literal["api", "app"]
    error_code: int | None = None
    error_location: str | None = None
    error_message: str | None = None
    error_body: str | None = None
    code_path: str | None = None
    code_method: str | None = None
    code_body: str | None = None
    time_zone: str | None = None
