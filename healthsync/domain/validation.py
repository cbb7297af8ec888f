"""Validation rules for raw samples before they become readings.

Returns a list of ValidationError; empty list means valid. Invalid samples
are skipped by the batch builder rather than uploaded.
"""

import math
from dataclasses import dataclass
from typing import Any

from healthsync.adapters.protocol import RawSample
from healthsync.domain.sensors import SENSORS


@dataclass
class ValidationError:
    field: str
    rule: str
    reason: str
    value: Any


def validate_sample(sample: RawSample) -> list[ValidationError]:
    errors: list[ValidationError] = []

    # Rule 1: Known sensor
    if sample.sensor not in SENSORS:
        errors.append(ValidationError("sensor", "known_sensor", "unknown_sensor", sample.sensor))

    # Rule 2: Finite value (NaN/inf cannot be encoded as JSON)
    if not isinstance(sample.value, (int, float)) or not math.isfinite(sample.value):
        errors.append(ValidationError("value", "finite", "non_finite_value", sample.value))

    # Rule 3: Timezone on timestamps
    naive = False
    for ts_field in ("start", "end"):
        ts = getattr(sample, ts_field)
        if ts.tzinfo is None:
            naive = True
            errors.append(ValidationError(ts_field, "timezone", "missing_timezone", str(ts)))

    # Rule 4: Window ordering (start <= end)
    # Skip comparison if either timestamp failed the timezone check (Rule 3)
    if not naive and sample.end < sample.start:
        errors.append(
            ValidationError(
                "start",
                "ordering",
                "end_before_start",
                {"start": str(sample.start), "end": str(sample.end)},
            )
        )

    # Rule 5: Identity present
    if not sample.sample_id:
        errors.append(ValidationError("sample_id", "required", "missing_sample_id", None))

    return errors
