"""
Sample aggregation: raw per-sensor readings into snapshots and a baseline.

Both operations are plain transformations over an already-fetched window, so the
result does not depend on the order the store returned the samples in.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from bedwatch.domain.models import BaselinePattern, MeasurementSnapshot, WeightSample


@dataclass(frozen=True)
class AggregatedWindow:
    """Snapshots in time order plus the window's per-sensor averages."""

    snapshots: list[MeasurementSnapshot]
    baseline: BaselinePattern


def _ordered(samples: Iterable[WeightSample]) -> list[WeightSample]:
    return sorted(samples, key=lambda s: (s.timestamp, s.snapshot_id, s.sensor_index, s.value))


def build_snapshots(samples: Iterable[WeightSample]) -> list[MeasurementSnapshot]:
    """
    Group samples sharing a ``snapshot_id`` into one snapshot each.

    Snapshots come back ordered by timestamp, ties broken by snapshot id. A
    snapshot takes its timestamp from its earliest sample.
    """
    timestamps: dict[int, datetime] = {}
    values: dict[int, dict[int, float]] = defaultdict(dict)

    for sample in _ordered(samples):
        timestamps.setdefault(sample.snapshot_id, sample.timestamp)
        values[sample.snapshot_id][sample.sensor_index] = sample.value

    snapshots = [
        MeasurementSnapshot(
            snapshot_id=snapshot_id,
            timestamp=timestamps[snapshot_id],
            sensor_values=dict(sorted(sensor_values.items())),
        )
        for snapshot_id, sensor_values in values.items()
    ]
    snapshots.sort(key=lambda s: (s.timestamp, s.snapshot_id))
    return snapshots


def compute_baseline(samples: Iterable[WeightSample]) -> BaselinePattern:
    """Arithmetic mean per sensor over every sample in the window."""
    totals: dict[int, float] = defaultdict(float)
    counts: dict[int, int] = defaultdict(int)

    for sample in _ordered(samples):
        totals[sample.sensor_index] += sample.value
        counts[sample.sensor_index] += 1

    return {sensor: totals[sensor] / counts[sensor] for sensor in sorted(totals)}


def aggregate_window(samples: Iterable[WeightSample]) -> AggregatedWindow:
    """Build snapshots and the baseline from one patient's lookback window."""
    ordered = _ordered(samples)
    return AggregatedWindow(snapshots=build_snapshots(ordered), baseline=compute_baseline(ordered))
