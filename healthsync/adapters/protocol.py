"""Collaborator protocols: the sensor platform and the secure credential store.

The host app implements these against its platform (health store,
keychain, ...). The sync engine depends only on the protocols, never on
concrete implementations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from healthsync.domain.models import CredentialPair
from healthsync.domain.sensors import RecordingMethod


@dataclass(frozen=True)
class RawSample:
    """One platform sample as reported by the change reader.

    Attributes:
        sample_id:        Stable platform identifier of the sample.
        sensor:           Sensor name from the sensor catalogue.
        value:            Measured value in the sensor's unit.
        start:            Sample start.
        end:              Sample end.
        source:           Bundle/app identifier that recorded the sample.
        recording_method: How the sample was recorded.
        device_type:      Product type of the recording device.
        device_id:        Recording device id, when the platform exposes one.
        data_type:        Sleep stage or exercise activity, for those sensors.
        additional_properties: Extra string metadata (measurement location, ...).
        parent_sample_id: Sample this one belongs to (a sleep stage's session).
        aggregation:      Aggregation applied by the platform, if any.
        periodicity:      Aggregation period, if any.
        checkpoint:       Cursor valid once this sample and all before it are uploaded.
    """

    sample_id: str
    sensor: str
    value: float
    start: datetime
    end: datetime
    source: str
    recording_method: RecordingMethod = RecordingMethod.AUTOMATICALLY_RECORDED
    device_type: str = "unknown"
    device_id: str | None = None
    data_type: str | None = None
    additional_properties: dict[str, str] | None = None
    parent_sample_id: str | None = None
    aggregation: str | None = None
    periodicity: str | None = None
    checkpoint: str | None = None


@dataclass
class ChangeSet:
    """Result of one change query."""

    new_cursor: str | None
    samples: list[RawSample] = field(default_factory=list)
    has_more: bool = False


@runtime_checkable
class ChangeReader(Protocol):
    """Source of new samples for a stream.

    Contract:
    - Without ``since_cursor`` the query is bounded to ``lookback`` (7 days).
    - Manually entered samples are excluded.
    - ``new_cursor`` is only persisted by the caller after upload succeeds.
    """

    async def query_changes(self, stream_id: str, since_cursor: str | None) -> ChangeSet:
        ...


@runtime_checkable
class CredentialStore(Protocol):
    """Persistent storage for the credential pair (keychain or equivalent)."""

    def load(self) -> CredentialPair | None:
        ...

    def save(self, credentials: CredentialPair) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryCredentialStore:
    """Credential store that lives for the process only."""

    def __init__(self, credentials: CredentialPair | None = None) -> None:
        self._credentials = credentials

    def load(self) -> CredentialPair | None:
        return self._credentials

    def save(self, credentials: CredentialPair) -> None:
        self._credentials = credentials

    def clear(self) -> None:
        self._credentials = None
