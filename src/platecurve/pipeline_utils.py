"""Tabular views of analysis outputs for display and export collaborators."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from .curve_models import FittedModel
from .errors import AnalysisIssue
from .prediction import SampleResult
from .standards import StandardPoint
from .wells import display_well

STANDARD_COLUMNS = ["concentration", "mean_od", "sd", "n_replicates", "wells"]
SAMPLE_COLUMNS = ["name", "mean_od", "sd", "concentration", "n_replicates", "wells", "error"]
ISSUE_COLUMNS = ["kind", "severity", "subject", "message"]


def _join_wells(wells: Sequence[str]) -> str:
    labels = []
    for well in wells:
        try:
            labels.append(display_well(well))
        except ValueError:
            labels.append(str(well))
    return ", ".join(labels)


def standards_table(points: Sequence[StandardPoint]) -> pd.DataFrame:
    rows = [
        {
            "concentration": point.concentration,
            "mean_od": point.mean_od,
            "sd": point.sd,
            "n_replicates": point.n_replicates,
            "wells": _join_wells(point.wells),
        }
        for point in points
    ]
    return pd.DataFrame(rows, columns=STANDARD_COLUMNS)


def samples_table(results: Sequence[SampleResult]) -> pd.DataFrame:
    rows = [
        {
            "name": result.name,
            "mean_od": result.mean_od,
            "sd": result.sd,
            "concentration": (
                float("nan") if result.concentration is None else result.concentration
            ),
            "n_replicates": result.n_replicates,
            "wells": _join_wells(result.wells),
            "error": None if result.error is None else result.error.kind.value,
        }
        for result in results
    ]
    return pd.DataFrame(rows, columns=SAMPLE_COLUMNS)


def issues_table(issues: Sequence[AnalysisIssue]) -> pd.DataFrame:
    return pd.DataFrame([issue.as_record() for issue in issues], columns=ISSUE_COLUMNS)


def concentration_grid(
    concentrations: Sequence[float],
    points: int = 100,
    spacing: str = "log",
) -> np.ndarray:
    """Evenly spaced concentrations spanning the given values (log or linear)."""
    values = np.asarray(concentrations, dtype=float)
    values = values[np.isfinite(values)]
    if values.size == 0:
        raise ValueError("Cannot build a grid from an empty concentration range.")
    if points < 2:
        raise ValueError("points must be at least 2")
    lower, upper = float(values.min()), float(values.max())
    if spacing == "log":
        if lower <= 0:
            raise ValueError("Log spacing needs strictly positive concentrations.")
        return np.geomspace(lower, upper, points)
    if spacing == "linear":
        return np.linspace(lower, upper, points)
    raise ValueError(f"Unknown spacing: '{spacing}'. Use 'log' or 'linear'.")


def curve_table(
    model: FittedModel,
    concentrations: Sequence[float],
    points: int = 100,
    spacing: str = "log",
) -> pd.DataFrame:
    """Sample ``model`` over the range of ``concentrations`` for plotting."""
    grid = concentration_grid(concentrations, points=points, spacing=spacing)
    return pd.DataFrame(
        {"concentration": grid, "od": np.asarray(model.predict(grid), dtype=float)}
    )


__all__ = [
    "ISSUE_COLUMNS",
    "SAMPLE_COLUMNS",
    "STANDARD_COLUMNS",
    "concentration_grid",
    "curve_table",
    "issues_table",
    "samples_table",
    "standards_table",
]
