"""
Movement confirmation engine.

Walks one patient's snapshots in time order and decides whether, and when, the
patient genuinely repositioned. A deviation from the baseline only counts once it
has been seen on several snapshots within a bounded time span; a deviation that
falls back to baseline first is discarded as jitter. Each confirmed movement
re-baselines the walk to the confirming snapshot so the new resting position is
not detected again.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog

from bedwatch.config import PostureAnalysisConfig
from bedwatch.domain.models import BaselinePattern, MeasurementSnapshot, MovementCandidate
from bedwatch.exceptions import EmptySnapshotSequenceError

logger = structlog.get_logger(__name__)


def max_relative_change(
    sensor_values: Mapping[int, float], baseline: Mapping[int, float]
) -> float:
    """
    Largest ``|value - baseline| / baseline`` over sensors present in both maps.

    Sensors with a zero baseline are skipped. Returns 0.0 when nothing is comparable.
    """
    largest = 0.0
    for sensor, value in sensor_values.items():
        reference = baseline.get(sensor)
        if not reference:
            continue
        largest = max(largest, abs(value - reference) / reference)
    return largest


@dataclass
class MovementAnalysis:
    """Outcome of one walk over a snapshot sequence."""

    last_confirmed_at: datetime | None
    confirmed_movements: list[datetime] = field(default_factory=list)
    final_baseline: BaselinePattern = field(default_factory=dict)


class MovementConfirmationEngine:
    """
    State machine over snapshots: either no candidate, or one open candidate.

    The engine itself is stateless between calls; every ``analyze`` call starts
    from the baseline it is given.
    """

    def __init__(self, config: PostureAnalysisConfig | None = None) -> None:
        self.config = config or PostureAnalysisConfig()
        self.logger = logger.bind(component="movement_confirmation_engine")
        self._window = timedelta(minutes=self.config.confirmation_window_minutes)

    def find_last_confirmed_movement(
        self, snapshots: Sequence[MeasurementSnapshot], baseline: BaselinePattern
    ) -> datetime | None:
        """Timestamp of the most recent confirmed movement, or None."""
        return self.analyze(snapshots, baseline).last_confirmed_at

    def analyze(
        self, snapshots: Sequence[MeasurementSnapshot], baseline: BaselinePattern
    ) -> MovementAnalysis:
        if not snapshots:
            raise EmptySnapshotSequenceError("Cannot analyze movement without snapshots")

        current_baseline: BaselinePattern = dict(baseline)
        candidate: MovementCandidate | None = None
        analysis = MovementAnalysis(last_confirmed_at=None)

        for snapshot in snapshots:
            change = max_relative_change(snapshot.sensor_values, current_baseline)

            if change >= self.config.change_threshold:
                if candidate is None:
                    candidate = self._open_candidate(snapshot, current_baseline)
                elif snapshot.timestamp - candidate.start_time <= self._window:
                    candidate.confirmation_count += 1
                else:
                    self.logger.debug(
                        "movement_candidate_expired",
                        started_at=candidate.start_time.isoformat(),
                        confirmations=candidate.confirmation_count,
                    )
                    candidate = self._open_candidate(snapshot, current_baseline)

                if candidate.confirmation_count >= self.config.confirmation_count:
                    analysis.last_confirmed_at = candidate.start_time
                    analysis.confirmed_movements.append(candidate.start_time)
                    current_baseline = dict(snapshot.sensor_values)
                    self.logger.debug(
                        "movement_confirmed",
                        started_at=candidate.start_time.isoformat(),
                        confirmed_at=snapshot.timestamp.isoformat(),
                    )
                    candidate = None

            elif candidate is not None:
                reverted = max_relative_change(snapshot.sensor_values, candidate.baseline)
                if reverted <= self.config.stability_threshold:
                    self.logger.debug(
                        "movement_candidate_cancelled",
                        started_at=candidate.start_time.isoformat(),
                        change=round(reverted, 4),
                    )
                    candidate = None
                # Otherwise the change sits between the two thresholds: hold.

        analysis.final_baseline = current_baseline
        return analysis

    @staticmethod
    def _open_candidate(
        snapshot: MeasurementSnapshot, baseline: BaselinePattern
    ) -> MovementCandidate:
        return MovementCandidate(
            start_time=snapshot.timestamp, confirmation_count=1, baseline=baseline
        )
