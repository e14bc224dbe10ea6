"""
Device CSV measurement parsing.

Bed devices upload one line per minute:

    temperature,humidity,body_temperature,weight1,weight2,weight3,weight4,measured_at

Environmental readings may be blank. Weight columns map to sensor indexes 1-4;
a blank or non-numeric weight means that sensor did not report and is omitted.
"""

import math
from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bedwatch.domain.models import WeightSample
from bedwatch.exceptions import MeasurementParseError

FIELD_COUNT = 8
WEIGHT_SENSOR_COUNT = 4


class ParsedMeasurement(BaseModel):
    """One uploaded device line before it is assigned a snapshot id."""

    model_config = ConfigDict(frozen=True)

    measured_at: datetime
    temperature: float | None = None
    humidity: int | None = Field(default=None, ge=0, le=100)
    body_temperature: float | None = None
    weights: dict[int, float] = Field(default_factory=dict)

    @field_validator("measured_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive device timestamps are taken as UTC."""
        return v if v.tzinfo else v.replace(tzinfo=UTC)

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: dict[int, float]) -> dict[int, float]:
        for sensor, value in v.items():
            if not 1 <= sensor <= WEIGHT_SENSOR_COUNT:
                raise ValueError(f"Sensor index {sensor} outside 1-{WEIGHT_SENSOR_COUNT}")
            if value < 0:
                raise ValueError(f"Weight {value} on sensor {sensor} cannot be negative")
        return v

    def to_weight_samples(self, snapshot_id: int) -> list[WeightSample]:
        return [
            WeightSample(
                snapshot_id=snapshot_id,
                sensor_index=sensor,
                value=value,
                timestamp=self.measured_at,
            )
            for sensor, value in sorted(self.weights.items())
        ]


def _optional_float(raw: str) -> float | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    return None if math.isnan(value) else value


def parse_measurement_line(line: str) -> ParsedMeasurement:
    """Parse one CSV line; raises ``MeasurementParseError`` if it is malformed."""
    values = [part.strip() for part in line.strip().split(",")]
    if len(values) != FIELD_COUNT:
        raise MeasurementParseError(line, f"expected {FIELD_COUNT} fields, got {len(values)}")

    humidity = _optional_float(values[1])
    weights = {
        index: value
        for index, raw in enumerate(values[3:7], start=1)
        if (value := _optional_float(raw)) is not None
    }

    try:
        measured_at = datetime.fromisoformat(values[7])
    except ValueError as e:
        raise MeasurementParseError(line, f"bad timestamp {values[7]!r}") from e

    try:
        return ParsedMeasurement(
            measured_at=measured_at,
            temperature=_optional_float(values[0]),
            humidity=int(humidity) if humidity is not None else None,
            body_temperature=_optional_float(values[2]),
            weights=weights,
        )
    except ValidationError as e:
        raise MeasurementParseError(line, str(e.errors()[0]["msg"])) from e


def parse_measurement_lines(lines: Iterable[str]) -> list[ParsedMeasurement]:
    """Parse a whole upload; the first malformed line rejects the batch."""
    return [parse_measurement_line(line) for line in lines if line.strip()]
