"""
Core services for posture monitoring.

This package contains the movement analysis pipeline (aggregation, movement
confirmation, classification) and the orchestration that runs it on a schedule.
"""

from bedwatch.observability import configure_logging

from .movement_detector import MovementAnalysis, MovementConfirmationEngine
from .posture_evaluation import PostureEvaluationService
from .result import Result
from .sample_aggregator import AggregatedWindow, aggregate_window, build_snapshots, compute_baseline
from .scheduler import Clock, SweepScheduler, SystemClock
from .stores import PatientRoster, SampleStore, WarningStateStore
from .warning_classifier import WarningLevelClassifier

__all__ = [
    "AggregatedWindow",
    "Clock",
    "MovementAnalysis",
    "MovementConfirmationEngine",
    "PatientRoster",
    "PostureEvaluationService",
    "Result",
    "SampleStore",
    "SweepScheduler",
    "SystemClock",
    "WarningLevelClassifier",
    "WarningStateStore",
    "aggregate_window",
    "build_snapshots",
    "compute_baseline",
    "configure_logging",
]
