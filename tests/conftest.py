"""Shared fixtures for building weight samples and snapshots."""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

import pytest

from bedwatch.domain.models import MeasurementSnapshot, WeightSample

SampleFactory = Callable[..., list[WeightSample]]
SnapshotFactory = Callable[..., list[MeasurementSnapshot]]


@pytest.fixture
def base_time() -> datetime:
    return datetime(2025, 3, 1, 8, 0, tzinfo=UTC)


@pytest.fixture
def make_samples(base_time: datetime) -> SampleFactory:
    """Turn per-minute rows of sensor values into WeightSamples (sensors 1..n)."""

    def _build(
        rows: Sequence[Sequence[float]],
        start: datetime | None = None,
        step_minutes: float = 1.0,
        first_snapshot_id: int = 1,
    ) -> list[WeightSample]:
        start = start or base_time
        samples = []
        for offset, row in enumerate(rows):
            timestamp = start + timedelta(minutes=offset * step_minutes)
            for sensor_index, value in enumerate(row, start=1):
                samples.append(
                    WeightSample(
                        snapshot_id=first_snapshot_id + offset,
                        sensor_index=sensor_index,
                        value=value,
                        timestamp=timestamp,
                    )
                )
        return samples

    return _build


@pytest.fixture
def make_snapshots(base_time: datetime) -> SnapshotFactory:
    """Turn per-minute rows of sensor values into ordered MeasurementSnapshots."""

    def _build(
        rows: Sequence[Sequence[float]],
        start: datetime | None = None,
        step_minutes: float = 1.0,
    ) -> list[MeasurementSnapshot]:
        start = start or base_time
        return [
            MeasurementSnapshot(
                snapshot_id=offset + 1,
                timestamp=start + timedelta(minutes=offset * step_minutes),
                sensor_values={index: value for index, value in enumerate(row, start=1)},
            )
            for offset, row in enumerate(rows)
        ]

    return _build
