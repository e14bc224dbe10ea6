"""Maps time since the last confirmed movement to a warning level."""

from datetime import datetime

from bedwatch.config import PostureAnalysisConfig
from bedwatch.domain.models import WarningLevel

_LEVEL_LABELS = {
    WarningLevel.STABLE: "stable",
    WarningLevel.CAUTION: "caution",
    WarningLevel.RISK: "risk",
}


class WarningLevelClassifier:
    """Pure classification; thresholds come from ``PostureAnalysisConfig``."""

    def __init__(self, config: PostureAnalysisConfig | None = None) -> None:
        self.config = config or PostureAnalysisConfig()

    @staticmethod
    def elapsed_minutes(last_confirmed: datetime, anchor: datetime) -> float:
        return (anchor - last_confirmed).total_seconds() / 60

    def classify(self, last_confirmed: datetime | None, anchor: datetime) -> WarningLevel:
        """
        Risk tier for the given last movement, measured at ``anchor``.

        No confirmed movement in the window is always RISK. Otherwise the caution
        and risk thresholds are inclusive lower bounds.
        """
        if last_confirmed is None:
            return WarningLevel.RISK

        elapsed = self.elapsed_minutes(last_confirmed, anchor)
        if elapsed >= self.config.risk_after_minutes:
            return WarningLevel.RISK
        if elapsed >= self.config.caution_after_minutes:
            return WarningLevel.CAUTION
        return WarningLevel.STABLE

    def describe(
        self, level: WarningLevel, last_confirmed: datetime | None, anchor: datetime
    ) -> str:
        """Human-readable summary stored alongside the level."""
        label = _LEVEL_LABELS[level]
        if last_confirmed is None:
            return f"{label}: no confirmed movement in lookback window"

        elapsed = int(self.elapsed_minutes(last_confirmed, anchor))
        return f"{label}: {elapsed} min since last confirmed movement"
