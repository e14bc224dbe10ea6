"""
Protocols for the collaborators the evaluation pipeline reads from and writes to.

Why Protocol over ABC: Structural typing, easier test doubles, no coupling to a
particular database. Every method is async because each call is a blocking round
trip in production.
"""

from datetime import datetime
from typing import Protocol

from bedwatch.domain.models import NewWarningState, WarningState, WeightSample


class PatientRoster(Protocol):
    """Source of the patients currently under monitoring."""

    async def list_active_patients(self) -> list[int]:
        """Patient codes that are not soft-deleted."""
        ...


class SampleStore(Protocol):
    """Read access to already-ingested weight samples."""

    async def latest_reading_at(self, patient_code: int) -> datetime | None:
        """Timestamp of the patient's most recent sample, or None."""
        ...

    async def fetch_samples(
        self, patient_code: int, since: datetime, until: datetime
    ) -> list[WeightSample]:
        """
        Samples with ``since <= timestamp <= until``.

        Returns:
            list[WeightSample]: ordered by timestamp, then sensor index.
        """
        ...


class WarningStateStore(Protocol):
    """Append-only warning history."""

    async def append(self, state: NewWarningState) -> WarningState:
        """Persist a new record with a generated id and creation time."""
        ...

    async def latest(self, patient_code: int) -> WarningState | None: ...

    async def history(self, patient_code: int) -> list[WarningState]: ...
