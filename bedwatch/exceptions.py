"""Custom exceptions for bedwatch."""


class PostureAnalysisError(Exception):
    """Base class for errors raised by the posture analysis engine."""


class EmptySnapshotSequenceError(PostureAnalysisError, ValueError):
    """The movement engine was asked to walk an empty snapshot sequence."""


class MeasurementParseError(PostureAnalysisError, ValueError):
    """A device measurement line could not be parsed."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"Invalid measurement line {line!r}: {reason}")


class UnknownPatientError(PostureAnalysisError, LookupError):
    """The patient is not on the active roster."""

    def __init__(self, patient_code: int) -> None:
        self.patient_code = patient_code
        super().__init__(f"Patient {patient_code} does not exist or was removed")
