"""High-level standard-curve analysis: blanks -> standards -> fit -> samples."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Sequence

import pandas as pd

from .curve_models import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    Failed,
    FitOutcome,
    FittedModel,
    fit_four_pl,
    fit_linear,
    select_model,
)
from .errors import AnalysisIssue, ErrorKind, Severity
from .pipeline_utils import curve_table, issues_table, samples_table, standards_table
from .prediction import SampleResult, predict_sample_groups
from .standards import (
    StandardPoint,
    aggregate_replicates,
    blank_correct,
    validate_concentrations,
)
from .wells import RoleAssignment, WellDataset

logger = logging.getLogger(__name__)


@dataclass
class AnalysisConfig:
    """User-tunable knobs for the standard-curve analysis."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    ftol: float = DEFAULT_TOLERANCE
    xtol: float = DEFAULT_TOLERANCE
    gtol: float = DEFAULT_TOLERANCE
    fit_four_pl: bool = True

    def __post_init__(self) -> None:
        self.max_iterations = int(self.max_iterations)
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        for name in ("ftol", "xtol", "gtol"):
            value = float(getattr(self, name))
            if value <= 0:
                raise ValueError(f"{name} must be positive")
            setattr(self, name, value)
        self.fit_four_pl = bool(self.fit_four_pl)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "AnalysisConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(mapping))


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one analysis run produces. Nothing here is shared between runs."""

    background: float
    standards: tuple[StandardPoint, ...]
    linear: FittedModel
    four_pl: FitOutcome
    model: FittedModel
    samples: tuple[SampleResult, ...]
    issues: tuple[AnalysisIssue, ...] = field(default_factory=tuple)

    def predict_od(self, concentration):
        """Forward curve of the selected model, for plotting collaborators."""
        return self.model.predict(concentration)

    def standards_table(self) -> pd.DataFrame:
        return standards_table(self.standards)

    def samples_table(self) -> pd.DataFrame:
        return samples_table(self.samples)

    def issues_table(self) -> pd.DataFrame:
        return issues_table(self.issues)

    def curve_table(self, points: int = 100, spacing: str = "log") -> pd.DataFrame:
        return curve_table(
            self.model,
            [point.concentration for point in self.standards],
            points=points,
            spacing=spacing,
        )


def run_analysis(
    od_values: Mapping[str, float | None],
    assignment: RoleAssignment,
    concentrations: Sequence[object],
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """
    Run one full calibration and return its result.

    Invalid blanks, concentrations or replicate layout raise a
    ``CalibrationError`` and produce no result. Plate entries that are not
    well labels are skipped and listed as warnings. A 4PL fit that does not
    converge falls back to the linear curve and is reported as an info issue;
    per-sample failures are attached to their ``SampleResult`` and listed as
    warnings.
    """
    config = config or AnalysisConfig()
    issues: list[AnalysisIssue] = []

    levels = validate_concentrations(concentrations)
    dataset = WellDataset.from_assignment(od_values, assignment)
    for key in dataset.ignored_labels:
        issues.append(
            AnalysisIssue(
                kind=ErrorKind.INVALID_WELL_LABEL,
                severity=Severity.WARNING,
                message=f"Plate entry {key!r} is not a well label; ignored.",
                subject=key,
                context={"well": key},
            )
        )
    background, corrected = blank_correct(dataset)
    logger.info("Blank background: %.6g", background)

    points = aggregate_replicates(assignment.standards, levels, corrected)
    fit_points = []
    for point in points:
        if point.is_measured:
            fit_points.append(point)
            continue
        message = (
            f"No measured OD for standard concentration {point.concentration:g}; "
            "excluded from the fit."
        )
        logger.warning("%s", message)
        issues.append(
            AnalysisIssue(
                kind=ErrorKind.INSUFFICIENT_POINTS,
                severity=Severity.WARNING,
                message=message,
                context={"concentration": point.concentration, "wells": list(point.wells)},
            )
        )

    x = [point.concentration for point in fit_points]
    y = [point.mean_od for point in fit_points]
    linear = fit_linear(x, y)

    if config.fit_four_pl:
        four_pl = fit_four_pl(
            x,
            y,
            max_iterations=config.max_iterations,
            ftol=config.ftol,
            xtol=config.xtol,
            gtol=config.gtol,
        )
    else:
        four_pl = Failed("4PL fitting disabled by configuration")
    if isinstance(four_pl, Failed):
        issues.append(four_pl.to_error().to_issue(severity=Severity.INFO))

    model = select_model(linear, four_pl)
    logger.info("Selected %s model: %s", model.kind.value, model.equation)

    samples = predict_sample_groups(assignment.samples, corrected, model)
    issues.extend(result.error for result in samples if result.error is not None)

    return AnalysisResult(
        background=background,
        standards=tuple(points),
        linear=linear,
        four_pl=four_pl,
        model=model,
        samples=tuple(samples),
        issues=tuple(issues),
    )


__all__ = ["AnalysisConfig", "AnalysisResult", "run_analysis"]
