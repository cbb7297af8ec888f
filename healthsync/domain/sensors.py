"""Sensor catalogue: log type and unit for every sensor the SDK uploads.

The host's Change Reader reports samples by sensor name; the batch builder
looks the sensor up here to fill in ``logType`` and ``unit``.
"""

from dataclasses import dataclass
from enum import StrEnum


class LogType(StrEnum):
    DEMOGRAPHIC = "demographic"
    SLEEP = "sleep"
    ACTIVITY = "activity"
    DEVICE = "device"
    HEART = "heart"
    BLOOD = "blood"
    OXYGEN = "oxygen"
    ENERGY = "energy"
    TEMPERATURE = "temperature"
    BODY = "body"
    EXERCISE = "exercise"


class RecordingMethod(StrEnum):
    AUTOMATICALLY_RECORDED = "RECORDING_METHOD_AUTOMATICALLY_RECORDED"
    ACTIVELY_RECORDED = "RECORDING_METHOD_ACTIVELY_RECORDED"
    MANUAL_ENTRY = "RECORDING_METHOD_MANUAL_ENTRY"
    UNKNOWN = "RECORDING_METHOD_UNKNOWN"


class SleepStage(StrEnum):
    UNKNOWN = "sleep_stage_unknown"
    IN_BED = "sleep_stage_in_bed"
    AWAKE = "sleep_stage_awake"
    REM = "sleep_stage_rem"
    LIGHT = "sleep_stage_light"
    DEEP = "sleep_stage_deep"
    SLEEPING = "sleep_stage_sleeping"


class Periodicity(StrEnum):
    HOURLY = "hourly"
    DAILY = "daily"


@dataclass(frozen=True)
class SensorSpec:
    name: str
    log_type: LogType
    unit: str


_CATALOGUE = [
    SensorSpec("sleep", LogType.SLEEP, "minute"),
    SensorSpec("step_count", LogType.ACTIVITY, "count"),
    SensorSpec("floor_count", LogType.ACTIVITY, "count"),
    SensorSpec("move_time", LogType.ACTIVITY, "minute"),
    SensorSpec("stand_time", LogType.ACTIVITY, "minute"),
    SensorSpec("exercise_time", LogType.ACTIVITY, "minute"),
    SensorSpec("heart_rate", LogType.HEART, "bpm"),
    SensorSpec("resting_heart_rate", LogType.HEART, "bpm"),
    SensorSpec("walking_heart_rate_average", LogType.HEART, "bpm"),
    SensorSpec("heart_rate_variability_sdnn", LogType.HEART, "ms"),
    SensorSpec("blood_pressure_systolic", LogType.BLOOD, "mmHg"),
    SensorSpec("blood_pressure_diastolic", LogType.BLOOD, "mmHg"),
    SensorSpec("blood_glucose", LogType.BLOOD, "mg/dL"),
    SensorSpec("oxygen_saturation", LogType.OXYGEN, "percent"),
    SensorSpec("vo2_max", LogType.OXYGEN, "ml/kg/min"),
    SensorSpec("respiratory_rate", LogType.OXYGEN, "bps"),
    SensorSpec("active_energy_burned", LogType.ENERGY, "kcal"),
    SensorSpec("basal_energy_burned", LogType.ENERGY, "kcal"),
    SensorSpec("time_in_daylight", LogType.ENERGY, "minute"),
    SensorSpec("body_temperature", LogType.TEMPERATURE, "degC"),
    SensorSpec("basal_body_temperature", LogType.TEMPERATURE, "degC"),
    SensorSpec("sleeping_wrist_temperature", LogType.TEMPERATURE, "degC"),
    SensorSpec("height", LogType.BODY, "m"),
    SensorSpec("weight", LogType.BODY, "kg"),
    SensorSpec("lean_body_mass", LogType.BODY, "kg"),
    SensorSpec("body_mass_index", LogType.BODY, "count"),
    SensorSpec("body_fat", LogType.BODY, "percent"),
    SensorSpec("waist_circumference", LogType.BODY, "m"),
    SensorSpec("device_lock", LogType.DEVICE, "none"),
    SensorSpec("exercise", LogType.EXERCISE, "none"),
]

SENSORS: dict[str, SensorSpec] = {spec.name: spec for spec in _CATALOGUE}


def get_sensor(name: str) -> SensorSpec:
    spec = SENSORS.get(name)
    if spec is None:
        raise ValueError(f"Unsupported sensor: {name}")
    return spec
