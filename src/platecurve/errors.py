"""Error taxonomy and structured issues reported by a calibration run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class ErrorKind(str, Enum):
    MISSING_BLANK = "MissingBlank"
    INVALID_CONCENTRATION_LIST = "InvalidConcentrationList"
    REPLICATE_MISMATCH = "ReplicateMismatch"
    INSUFFICIENT_POINTS = "InsufficientPoints"
    FIT_DID_NOT_CONVERGE = "FitDidNotConverge"
    DIVISION_BY_ZERO_SLOPE = "DivisionByZeroSlope"
    PREDICTION_OUT_OF_RANGE = "PredictionOutOfRange"
    WELL_NOT_FOUND = "WellNotFound"
    ROLE_CONFLICT = "RoleConflict"
    DUPLICATE_WELL = "DuplicateWell"
    INVALID_WELL_LABEL = "InvalidWellLabel"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class AnalysisIssue:
    """A single error, warning or note surfaced to the caller."""

    kind: ErrorKind
    severity: Severity
    message: str
    subject: str | None = None
    context: Mapping[str, Any] = field(default_factory=dict)

    def as_record(self) -> dict[str, Any]:
        """Return a flat dictionary suitable for a DataFrame row."""
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "subject": self.subject,
            "message": self.message,
        }


class CalibrationError(ValueError):
    """Base class for every failure raised by the calibration core.

    ``kind`` identifies the failure and ``context`` carries the values
    (well IDs, counts, parameters) that explain it.
    """

    kind: ErrorKind

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context)

    def to_issue(
        self,
        severity: Severity = Severity.ERROR,
        subject: str | None = None,
    ) -> AnalysisIssue:
        return AnalysisIssue(
            kind=self.kind,
            severity=severity,
            message=self.message,
            subject=subject,
            context=dict(self.context),
        )


class MissingBlank(CalibrationError):
    kind = ErrorKind.MISSING_BLANK


class InvalidConcentrationList(CalibrationError):
    kind = ErrorKind.INVALID_CONCENTRATION_LIST


class ReplicateMismatch(CalibrationError):
    kind = ErrorKind.REPLICATE_MISMATCH


class InsufficientPoints(CalibrationError):
    kind = ErrorKind.INSUFFICIENT_POINTS


class FitDidNotConverge(CalibrationError):
    kind = ErrorKind.FIT_DID_NOT_CONVERGE


class DivisionByZeroSlope(CalibrationError):
    kind = ErrorKind.DIVISION_BY_ZERO_SLOPE


class PredictionOutOfRange(CalibrationError):
    kind = ErrorKind.PREDICTION_OUT_OF_RANGE


class WellNotFound(CalibrationError):
    kind = ErrorKind.WELL_NOT_FOUND


class RoleConflict(CalibrationError):
    kind = ErrorKind.ROLE_CONFLICT


class DuplicateWell(CalibrationError):
    kind = ErrorKind.DUPLICATE_WELL


class InvalidWellLabel(CalibrationError):
    kind = ErrorKind.INVALID_WELL_LABEL


__all__ = [
    "AnalysisIssue",
    "CalibrationError",
    "DivisionByZeroSlope",
    "DuplicateWell",
    "ErrorKind",
    "FitDidNotConverge",
    "InsufficientPoints",
    "InvalidConcentrationList",
    "InvalidWellLabel",
    "MissingBlank",
    "PredictionOutOfRange",
    "ReplicateMismatch",
    "RoleConflict",
    "Severity",
    "WellNotFound",
]
