"""Batch builder: raw platform samples → canonical Readings.

Reading ids are derived from the platform sample id, so the same sample
always maps to the same reading id and a re-sent chunk is idempotent at
the server. UUID sample ids are kept as-is; anything else is mapped with
UUIDv5 under a fixed namespace.

Mapping per log type:
- sleep:    dataType is the sleep stage, value is the duration in minutes
- exercise: dataType is ``exercise_session_<activity>``
- others:   dataType is the sensor name, value passes through
"""

from uuid import UUID, uuid5

import structlog

from healthsync.adapters.protocol import ChangeSet, RawSample
from healthsync.domain.models import Batch, Reading
from healthsync.domain.sensors import LogType, SleepStage, get_sensor
from healthsync.domain.validation import validate_sample
from shared.config import Settings, settings
from shared.metrics import samples_skipped_total

logger = structlog.get_logger()

READING_NAMESPACE = UUID("5f1b1a8e-8c1d-4b53-9a7e-2d0c6a3f9e41")


def reading_id(stream: str, sample_id: str) -> UUID:
    try:
        return UUID(sample_id)
    except ValueError:
        return uuid5(READING_NAMESPACE, f"{stream}:{sample_id}")


class BatchBuilder:
    def __init__(self, config: Settings = settings) -> None:
        self._config = config

    def build(self, stream: str, changes: ChangeSet) -> Batch:
        readings: list[Reading] = []
        checkpoints: list[str | None] = []

        for sample in changes.samples:
            errors = validate_sample(sample)
            if errors:
                for e in errors:
                    samples_skipped_total.labels(stream=stream, rule=e.reason).inc()
                logger.warning(
                    "sample_skipped",
                    stream=stream,
                    sample_id=sample.sample_id,
                    reasons=[e.reason for e in errors],
                )
                continue
            readings.append(self.to_reading(stream, sample))
            checkpoints.append(sample.checkpoint)

        return Batch(
            stream=stream,
            readings=readings,
            cursor=changes.new_cursor,
            checkpoints=checkpoints,
        )

    def to_reading(self, stream: str, sample: RawSample) -> Reading:
        spec = get_sensor(sample.sensor)

        if spec.log_type is LogType.SLEEP:
            data_type = sample.data_type or SleepStage.UNKNOWN.value
            value = float((sample.end - sample.start).total_seconds() // 60)
        elif spec.log_type is LogType.EXERCISE:
            data_type = f"exercise_session_{sample.data_type or 'other'}"
            value = float(sample.value)
        else:
            data_type = spec.name
            value = float(sample.value)

        parent_id = (
            reading_id(stream, sample.parent_sample_id) if sample.parent_sample_id else None
        )

        return Reading(
            id=reading_id(stream, sample.sample_id),
            log_type=spec.log_type.value,
            data_type=data_type,
            value=value,
            unit=spec.unit,
            source=sample.source,
            recording_method=sample.recording_method.value,
            device_type=sample.device_type,
            device_id=sample.device_id or self._config.device_id or "unknown",
            start_date_time=sample.start,
            end_date_time=sample.end,
            aggregation=sample.aggregation,
            periodicity=sample.periodicity,
            additional_properties=sample.additional_properties or None,
            parent_id=parent_id,
        )
