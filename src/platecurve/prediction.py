"""Invert the selected standard curve to estimate sample concentrations."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np
import pandas as pd

from .curve_models import FittedModel, ModelKind
from .errors import (
    AnalysisIssue,
    CalibrationError,
    DivisionByZeroSlope,
    PredictionOutOfRange,
    Severity,
    WellNotFound,
)
from .wells import SampleGroup, canonical_well

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleResult:
    """Outcome for one sample group. ``concentration`` is None when prediction failed."""

    name: str
    wells: tuple[str, ...]
    mean_od: float
    sd: float
    n_replicates: int
    concentration: float | None
    error: AnalysisIssue | None = None


def _invert_linear(params: Sequence[float], od: float) -> float:
    a, b = params
    if a == 0:
        raise DivisionByZeroSlope(
            "The linear standard curve has zero slope; it cannot be inverted.",
            od=od,
        )
    return (od - b) / a


def _invert_four_pl(params: Sequence[float], od: float) -> float:
    a, b, c, d = params
    if od == d:
        raise PredictionOutOfRange(
            f"OD {od:.6g} equals the 4PL asymptote d; the concentration is unbounded.",
            od=od,
            d=d,
        )
    if b == 0:
        raise PredictionOutOfRange("The 4PL slope b is zero.", od=od, b=b)

    base = (a - d) / (od - d) - 1.0
    exponent = 1.0 / b
    if base < 0 and not float(exponent).is_integer():
        raise PredictionOutOfRange(
            f"OD {od:.6g} lies outside the 4PL curve's range "
            f"(negative base {base:.6g} with exponent {exponent:.6g}).",
            od=od,
            base=base,
            exponent=exponent,
        )
    if base == 0 and exponent < 0:
        raise PredictionOutOfRange(
            f"OD {od:.6g} equals the 4PL asymptote a; the concentration is unbounded.",
            od=od,
            a=a,
        )
    if base < 0:
        power = base ** int(exponent)
    else:
        power = base**exponent
    return c * power


def invert_model(model: FittedModel, od: float) -> float:
    """
    Concentration whose predicted OD equals ``od``.

    Raises ``DivisionByZeroSlope`` for a flat line and ``PredictionOutOfRange``
    when the 4PL inverse is undefined.
    """
    od = float(od)
    if not math.isfinite(od):
        raise PredictionOutOfRange(f"OD {od} is not a finite number.", od=od)
    try:
        if model.kind is ModelKind.LINEAR:
            concentration = _invert_linear(model.params, od)
        else:
            concentration = _invert_four_pl(model.params, od)
    except (OverflowError, ZeroDivisionError) as exc:
        raise PredictionOutOfRange(
            f"Inverting the {model.kind.value} curve at OD {od:.6g} failed: {exc}",
            od=od,
        ) from exc
    if isinstance(concentration, complex) or not math.isfinite(concentration):
        raise PredictionOutOfRange(
            f"Inverting the {model.kind.value} curve at OD {od:.6g} "
            "gives no finite concentration.",
            od=od,
        )
    return float(concentration)


def _failed_result(
    group: SampleGroup,
    wells: tuple[str, ...],
    error: CalibrationError,
    mean_od: float = float("nan"),
    sd: float = float("nan"),
    n_replicates: int = 0,
) -> SampleResult:
    issue = error.to_issue(severity=Severity.WARNING, subject=group.name)
    logger.warning("Sample '%s': %s", group.name, error.message)
    return SampleResult(
        name=group.name,
        wells=wells,
        mean_od=mean_od,
        sd=sd,
        n_replicates=n_replicates,
        concentration=None,
        error=issue,
    )


def _label(well: str) -> str:
    try:
        return canonical_well(well)
    except ValueError:
        return str(well)


def predict_sample_group(
    group: SampleGroup,
    corrected: Mapping[str, float] | pd.Series,
    model: FittedModel,
) -> SampleResult:
    """Average a group's corrected ODs and convert the mean to a concentration."""
    corrected = pd.Series(corrected, dtype=float)
    wells = tuple(_label(well) for well in group.wells)

    missing = [well for well in wells if well not in corrected.index]
    if missing:
        return _failed_result(
            group,
            wells,
            WellNotFound(
                f"Wells not present in the plate data: {', '.join(missing)}",
                wells=missing,
            ),
        )

    values = corrected.loc[list(wells)].dropna().to_numpy(dtype=float)
    n_replicates = int(values.size)
    if n_replicates == 0:
        return _failed_result(
            group,
            wells,
            PredictionOutOfRange("No measured OD in this sample group."),
        )
    mean_od = float(np.mean(values))
    sd = float(np.std(values, ddof=1)) if n_replicates >= 2 else float("nan")

    try:
        concentration = invert_model(model, mean_od)
    except (DivisionByZeroSlope, PredictionOutOfRange) as exc:
        return _failed_result(group, wells, exc, mean_od, sd, n_replicates)

    logger.debug("Sample '%s': OD %.6g -> %.6g", group.name, mean_od, concentration)
    return SampleResult(
        name=group.name,
        wells=wells,
        mean_od=mean_od,
        sd=sd,
        n_replicates=n_replicates,
        concentration=concentration,
    )


def predict_sample_groups(
    groups: Sequence[SampleGroup],
    corrected: Mapping[str, float] | pd.Series,
    model: FittedModel,
) -> list[SampleResult]:
    """Predict every group independently; failures stay local to their group."""
    corrected = pd.Series(corrected, dtype=float)
    return [predict_sample_group(group, corrected, model) for group in groups]


__all__ = [
    "SampleResult",
    "invert_model",
    "predict_sample_group",
    "predict_sample_groups",
]
