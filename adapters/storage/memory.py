"""
In-memory implementations of the roster, sample and warning-state stores.

Used by the demo runner and the tests. They honour the same contracts a
relational backend would: closed-interval fetches ordered by timestamp then
sensor, soft-deleted patients hidden from the roster, append-only warnings.
"""

import itertools
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import structlog

from adapters.ingest.csv_measurements import ParsedMeasurement
from bedwatch.domain.models import NewWarningState, WarningState, WeightSample
from bedwatch.exceptions import UnknownPatientError

logger = structlog.get_logger(__name__)


class InMemoryPatientRoster:
    """Patients under monitoring, with soft delete."""

    def __init__(self, patient_codes: Iterable[int] = ()) -> None:
        self._deleted: dict[int, bool] = {code: False for code in patient_codes}

    def add(self, patient_code: int) -> None:
        self._deleted[patient_code] = False

    def remove(self, patient_code: int) -> None:
        """Soft-delete: the patient stays known but leaves the active roster."""
        if patient_code not in self._deleted:
            raise UnknownPatientError(patient_code)
        self._deleted[patient_code] = True

    def is_active(self, patient_code: int) -> bool:
        return self._deleted.get(patient_code) is False

    async def list_active_patients(self) -> list[int]:
        return [code for code, deleted in self._deleted.items() if not deleted]


class InMemorySampleStore:
    """Weight samples per patient, with generated snapshot ids."""

    def __init__(self, roster: InMemoryPatientRoster | None = None) -> None:
        self.roster = roster
        self._samples: dict[int, list[WeightSample]] = defaultdict(list)
        self._snapshot_ids = itertools.count(1)
        self.logger = logger.bind(component="in_memory_sample_store")

    def _check_patient(self, patient_code: int) -> None:
        if self.roster is not None and not self.roster.is_active(patient_code):
            raise UnknownPatientError(patient_code)

    def add_samples(self, patient_code: int, samples: Iterable[WeightSample]) -> None:
        self._check_patient(patient_code)
        self._samples[patient_code].extend(samples)

    def ingest(self, patient_code: int, measurements: Iterable[ParsedMeasurement]) -> list[int]:
        """
        Store parsed device measurements, one snapshot each.

        Returns:
            list[int]: the snapshot ids assigned, in input order.
        """
        self._check_patient(patient_code)

        snapshot_ids: list[int] = []
        new_samples: list[WeightSample] = []
        for measurement in measurements:
            snapshot_id = next(self._snapshot_ids)
            snapshot_ids.append(snapshot_id)
            new_samples.extend(measurement.to_weight_samples(snapshot_id))

        self._samples[patient_code].extend(new_samples)
        self.logger.info(
            "measurements_ingested",
            patient_code=patient_code,
            snapshots=len(snapshot_ids),
            samples=len(new_samples),
        )
        return snapshot_ids

    async def latest_reading_at(self, patient_code: int) -> datetime | None:
        samples = self._samples.get(patient_code)
        if not samples:
            return None
        return max(sample.timestamp for sample in samples)

    async def fetch_samples(
        self, patient_code: int, since: datetime, until: datetime
    ) -> list[WeightSample]:
        matching = [
            sample
            for sample in self._samples.get(patient_code, [])
            if since <= sample.timestamp <= until
        ]
        return sorted(matching, key=lambda s: (s.timestamp, s.sensor_index))


class InMemoryWarningStateStore:
    """Append-only warning history."""

    def __init__(self, now: Callable[[], datetime] | None = None) -> None:
        self._now = now or (lambda: datetime.now(UTC))
        self._history: dict[int, list[WarningState]] = defaultdict(list)
        self._ids = itertools.count(1)

    async def append(self, state: NewWarningState) -> WarningState:
        record = WarningState(
            warning_id=next(self._ids),
            created_at=self._now(),
            **state.model_dump(),
        )
        self._history[state.patient_code].append(record)
        return record

    async def latest(self, patient_code: int) -> WarningState | None:
        history = self._history.get(patient_code)
        if not history:
            return None
        # Stable max keeps the later append when created_at ties
        return max(reversed(history), key=lambda record: record.created_at)

    async def history(self, patient_code: int) -> list[WarningState]:
        return list(self._history.get(patient_code, []))

    def count(self, patient_code: int | None = None) -> int:
        if patient_code is not None:
            return len(self._history.get(patient_code, []))
        return sum(len(records) for records in self._history.values())
