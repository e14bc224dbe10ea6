"""
Evaluation orchestrator: runs the posture pipeline for one patient or the roster.

Pipeline per patient:
1. Anchor on the most recent reading (skip if there is none)
2. Fetch the lookback window ending at the anchor (skip if empty)
3. Aggregate, confirm movements, classify
4. Append one warning state to the history

Design principles:
- Graceful degradation (one patient failing never affects another)
- Single flight per patient (overlapping requests share one evaluation)
- Bounded concurrency and per-patient timeouts
- Observable (structured logging keyed by patient code)
"""

import asyncio
import time
from datetime import UTC, datetime, timedelta

import structlog

from bedwatch.config import AppConfig, get_config
from bedwatch.domain.models import (
    Evaluated,
    EvaluationOutcome,
    NewWarningState,
    PatientFailure,
    SkipReason,
    Skipped,
    SweepReport,
    WarningState,
)
from bedwatch.services.movement_detector import MovementConfirmationEngine
from bedwatch.services.result import Result
from bedwatch.services.sample_aggregator import aggregate_window
from bedwatch.services.stores import PatientRoster, SampleStore, WarningStateStore
from bedwatch.services.warning_classifier import WarningLevelClassifier

logger = structlog.get_logger(__name__)


class PostureEvaluationService:
    """Drives aggregation, movement confirmation and classification per patient."""

    def __init__(
        self,
        roster: PatientRoster,
        samples: SampleStore,
        warnings: WarningStateStore,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or get_config()
        self.roster = roster
        self.samples = samples
        self.warnings = warnings
        self.engine = MovementConfirmationEngine(self.config.posture)
        self.classifier = WarningLevelClassifier(self.config.posture)
        self.logger = logger.bind(component="posture_evaluation")

        self._in_flight: dict[int, asyncio.Task[EvaluationOutcome]] = {}

    async def evaluate(self, patient_code: int) -> Result[EvaluationOutcome, Exception]:
        """
        Evaluate one patient on demand.

        Returns:
            Result[EvaluationOutcome, Exception]: ``Skipped`` or ``Evaluated`` on
            success; the fetch/store error or a ``TimeoutError`` otherwise.
        """
        try:
            outcome = await self._join_or_start(patient_code)
        except TimeoutError as e:
            self.logger.warning(
                "patient_evaluation_timeout",
                patient_code=patient_code,
                timeout_seconds=self.config.scheduler.evaluation_timeout_seconds,
            )
            return Result.err(e)
        except Exception as e:
            self.logger.exception(
                "patient_evaluation_failed", patient_code=patient_code, error=str(e)
            )
            return Result.err(e)

        return Result.ok(outcome)

    async def current_state(self, patient_code: int) -> WarningState | None:
        """Most recent warning state for the patient, if any was ever written."""
        return await self.warnings.latest(patient_code)

    async def run_sweep(self) -> SweepReport:
        """
        Evaluate every active patient once.

        Per-patient failures are collected in the report; only a failure to read
        the roster itself propagates.
        """
        started_at = datetime.now(UTC)
        start_time = time.perf_counter()

        patient_codes = list(dict.fromkeys(await self.roster.list_active_patients()))
        semaphore = asyncio.Semaphore(self.config.scheduler.max_concurrent_evaluations)

        async def bounded(patient_code: int) -> Result[EvaluationOutcome, Exception]:
            async with semaphore:
                return await self.evaluate(patient_code)

        async with asyncio.TaskGroup() as task_group:
            tasks = {
                patient_code: task_group.create_task(
                    bounded(patient_code), name=f"sweep-patient-{patient_code}"
                )
                for patient_code in patient_codes
            }

        report = SweepReport(started_at=started_at, finished_at=started_at)
        for patient_code, task in tasks.items():
            result = task.result()
            if result.is_err():
                error = result.unwrap_err()
                report.failures.append(
                    PatientFailure(
                        patient_code=patient_code,
                        error_type=type(error).__name__,
                        message=str(error) or type(error).__name__,
                    )
                )
                continue

            outcome = result.unwrap()
            if isinstance(outcome, Evaluated):
                report.evaluated.append(outcome)
            else:
                report.skipped.append(outcome)

        report.finished_at = datetime.now(UTC)

        self.logger.info(
            "sweep_completed",
            total_patients=report.total_patients,
            evaluated=len(report.evaluated),
            skipped=len(report.skipped),
            failed=len(report.failures),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return report

    async def _join_or_start(self, patient_code: int) -> EvaluationOutcome:
        task = self._in_flight.get(patient_code)
        if task is None:
            task = asyncio.create_task(
                self._run_with_timeout(patient_code), name=f"evaluate-patient-{patient_code}"
            )
            self._in_flight[patient_code] = task
            task.add_done_callback(lambda done: self._finish_in_flight(patient_code, done))
        else:
            self.logger.debug("patient_evaluation_joined", patient_code=patient_code)

        # Shielded so one cancelled caller does not cancel the evaluation others await
        return await asyncio.shield(task)

    def _finish_in_flight(self, patient_code: int, task: asyncio.Task[EvaluationOutcome]) -> None:
        if self._in_flight.get(patient_code) is task:
            del self._in_flight[patient_code]
        if not task.cancelled():
            # Mark the exception retrieved; every waiter already got its own copy
            task.exception()

    async def _run_with_timeout(self, patient_code: int) -> EvaluationOutcome:
        # Cancels the pipeline on expiry, so a timed-out patient never gets a record
        timeout = self.config.scheduler.evaluation_timeout_seconds
        try:
            return await asyncio.wait_for(self._run_pipeline(patient_code), timeout=timeout)
        except TimeoutError:
            raise TimeoutError(f"Evaluation exceeded {timeout:g}s") from None

    async def _run_pipeline(self, patient_code: int) -> EvaluationOutcome:
        log = self.logger.bind(patient_code=patient_code)

        anchor = await self.samples.latest_reading_at(patient_code)
        if anchor is None:
            log.debug("patient_evaluation_skipped", reason=SkipReason.NO_READINGS.value)
            return Skipped(patient_code=patient_code, reason=SkipReason.NO_READINGS)

        since = anchor - timedelta(minutes=self.config.scheduler.lookback_minutes)
        samples = await self.samples.fetch_samples(patient_code, since, anchor)
        if not samples:
            log.debug("patient_evaluation_skipped", reason=SkipReason.NO_SAMPLES_IN_WINDOW.value)
            return Skipped(patient_code=patient_code, reason=SkipReason.NO_SAMPLES_IN_WINDOW)

        window = aggregate_window(samples)
        analysis = self.engine.analyze(window.snapshots, window.baseline)
        last_move = analysis.last_confirmed_at
        level = self.classifier.classify(last_move, anchor)

        state = await self.warnings.append(
            NewWarningState(
                patient_code=patient_code,
                level=level,
                last_confirmed_movement_at=last_move,
                description=self.classifier.describe(level, last_move, anchor),
            )
        )

        log.info(
            "patient_evaluated",
            warning_level=int(level),
            anchor=anchor.isoformat(),
            last_confirmed_movement_at=last_move.isoformat() if last_move else None,
            snapshots=len(window.snapshots),
            confirmed_movements=len(analysis.confirmed_movements),
            warning_id=state.warning_id,
        )
        return Evaluated(
            patient_code=patient_code,
            level=level,
            last_confirmed_movement_at=last_move,
            anchor=anchor,
            warning_state=state,
        )
