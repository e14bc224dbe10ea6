"""
Domain models for in-bed posture monitoring.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; the storage layer only ever sees them through
the store protocols.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Per-sensor reference averages, keyed by sensor index
BaselinePattern = dict[int, float]


class WarningLevel(IntEnum):
    """Pressure-injury risk tiers derived from time since the last movement."""

    STABLE = 0
    CAUTION = 1
    RISK = 2


class SkipReason(str, Enum):
    """Why an evaluation produced no warning state."""

    NO_READINGS = "no_readings"
    NO_SAMPLES_IN_WINDOW = "no_samples_in_window"


class WeightSample(BaseModel):
    """One sensor's reading within one measurement snapshot."""

    model_config = ConfigDict(frozen=True)

    snapshot_id: int
    sensor_index: int = Field(ge=1)
    value: float = Field(ge=0.0)
    timestamp: datetime


class MeasurementSnapshot(BaseModel):
    """All sensor readings taken together at one point in time."""

    model_config = ConfigDict(frozen=True)

    snapshot_id: int
    timestamp: datetime
    sensor_values: dict[int, float]


@dataclass
class MovementCandidate:
    """A deviation from baseline that has not been confirmed yet."""

    start_time: datetime
    confirmation_count: int
    baseline: BaselinePattern


class NewWarningState(BaseModel):
    """Payload appended to the warning history after an evaluation."""

    model_config = ConfigDict(frozen=True)

    patient_code: int
    level: WarningLevel
    last_confirmed_movement_at: datetime | None = None
    description: str = Field(max_length=255)


class WarningState(NewWarningState):
    """Immutable warning history record. The latest by ``created_at`` is current."""

    warning_id: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Skipped(BaseModel):
    """The patient had nothing to evaluate; no warning state was written."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["skipped"] = "skipped"
    patient_code: int
    reason: SkipReason


class Evaluated(BaseModel):
    """The pipeline ran and appended ``warning_state``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["evaluated"] = "evaluated"
    patient_code: int
    level: WarningLevel
    last_confirmed_movement_at: datetime | None
    anchor: datetime
    warning_state: WarningState


EvaluationOutcome = Skipped | Evaluated


class PatientFailure(BaseModel):
    """A patient whose evaluation failed during a sweep."""

    model_config = ConfigDict(frozen=True)

    patient_code: int
    error_type: str
    message: str


class SweepReport(BaseModel):
    """Summary of one pass over the active roster."""

    started_at: datetime
    finished_at: datetime
    evaluated: list[Evaluated] = Field(default_factory=list)
    skipped: list[Skipped] = Field(default_factory=list)
    failures: list[PatientFailure] = Field(default_factory=list)

    @property
    def total_patients(self) -> int:
        return len(self.evaluated) + len(self.skipped) + len(self.failures)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
