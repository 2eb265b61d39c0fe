"""Linear and four-parameter logistic standard curves, and choosing between them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

import numpy as np
from scipy import stats
from scipy.optimize import least_squares

from .errors import FitDidNotConverge, InsufficientPoints

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10000
DEFAULT_TOLERANCE = 1e-12
FOUR_PL_PARAMETERS = 4


class ModelKind(str, Enum):
    LINEAR = "Linear"
    FOUR_PL = "FourPL"


PARAMETER_NAMES = {
    ModelKind.LINEAR: ("a", "b"),
    ModelKind.FOUR_PL: ("a", "b", "c", "d"),
}


def linear_model(concentration, a: float, b: float):
    """OD = a * C + b."""
    return a * np.asarray(concentration, dtype=float) + b


def four_param_logistic(concentration, a: float, b: float, c: float, d: float):
    """4PL curve: OD = d + (a - d) / (1 + (C / c) ** b)."""
    conc = np.asarray(concentration, dtype=float)
    with np.errstate(all="ignore"):
        return d + (a - d) / (1.0 + (conc / c) ** b)


def r_squared(observed: Sequence[float], predicted: Sequence[float]) -> float:
    """Coefficient of determination; NaN when the observations have no spread."""
    observed = np.asarray(observed, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    ss_res = float(np.sum((observed - predicted) ** 2))
    ss_tot = float(np.sum((observed - np.mean(observed)) ** 2))
    if ss_tot == 0:
        return float("nan")
    return 1.0 - ss_res / ss_tot


@dataclass(frozen=True)
class FittedModel:
    """A fitted standard curve and its R² against the aggregated standards."""

    kind: ModelKind
    params: tuple[float, ...]
    r_squared: float

    @property
    def parameters(self) -> dict[str, float]:
        return dict(zip(PARAMETER_NAMES[self.kind], self.params))

    def predict(self, concentration):
        """Forward curve, concentration -> OD. Accepts scalars or arrays."""
        if self.kind is ModelKind.LINEAR:
            values = linear_model(concentration, *self.params)
        else:
            values = four_param_logistic(concentration, *self.params)
        if np.ndim(values) == 0:
            return float(values)
        return values

    @property
    def equation(self) -> str:
        if self.kind is ModelKind.LINEAR:
            a, b = self.params
            return f"OD = {a:.4g} * C + {b:.4g}"
        a, b, c, d = self.params
        return f"OD = {d:.4g} + ({a:.4g} - {d:.4g}) / (1 + (C / {c:.4g})^{b:.4g})"


@dataclass(frozen=True)
class Converged:
    model: FittedModel

    @property
    def r_squared(self) -> float:
        return self.model.r_squared


@dataclass(frozen=True)
class Failed:
    reason: str

    def to_error(self) -> FitDidNotConverge:
        return FitDidNotConverge(
            f"4PL fit did not converge: {self.reason}", reason=self.reason
        )


FitOutcome = Union[Converged, Failed]


def _as_xy(
    concentrations: Sequence[float], mean_ods: Sequence[float]
) -> tuple[np.ndarray, np.ndarray]:
    x = np.asarray(concentrations, dtype=float)
    y = np.asarray(mean_ods, dtype=float)
    if x.shape != y.shape:
        raise ValueError(
            "Concentrations and ODs must have the same length "
            f"(got {x.shape} vs {y.shape})."
        )
    return x, y


def fit_linear(
    concentrations: Sequence[float], mean_ods: Sequence[float]
) -> FittedModel:
    """Ordinary least squares line through the aggregated standard points."""
    x, y = _as_xy(concentrations, mean_ods)
    n_distinct = np.unique(x).size
    if n_distinct < 2:
        raise InsufficientPoints(
            f"A linear fit needs at least 2 distinct concentrations, got {n_distinct}.",
            n_distinct=int(n_distinct),
        )
    slope, intercept, *_ = stats.linregress(x, y)
    params = (float(slope), float(intercept))
    model = FittedModel(
        kind=ModelKind.LINEAR,
        params=params,
        r_squared=r_squared(y, linear_model(x, *params)),
    )
    logger.info("Linear fit: %s (R2=%.6f)", model.equation, model.r_squared)
    return model


def initial_four_pl_guess(
    concentrations: Sequence[float], mean_ods: Sequence[float]
) -> np.ndarray:
    """
    Deterministic starting point for the 4PL solver.

    ``a`` (response at zero concentration) and ``d`` (response at saturation)
    start at the extreme ODs: a=max, d=min for a falling curve and the reverse
    for a rising one, so ``b`` can start at 1. ``c`` starts at the median
    concentration.
    """
    x, y = _as_xy(concentrations, mean_ods)
    order = np.argsort(x, kind="stable")
    rising = y[order][-1] > y[order][0]
    if rising:
        a, d = np.min(y), np.max(y)
    else:
        a, d = np.max(y), np.min(y)
    return np.array([a, 1.0, np.median(x), d], dtype=float)


def fit_four_pl(
    concentrations: Sequence[float],
    mean_ods: Sequence[float],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ftol: float = DEFAULT_TOLERANCE,
    xtol: float = DEFAULT_TOLERANCE,
    gtol: float = DEFAULT_TOLERANCE,
) -> FitOutcome:
    """
    Fit the 4PL curve by bounded nonlinear least squares.

    The solver may evaluate the residuals at most ``max_iterations`` times.
    Hitting that cap, or any numerical breakdown (non-finite residuals,
    singular problem, non-finite R²), returns ``Failed`` instead of raising.
    """
    x, y = _as_xy(concentrations, mean_ods)
    if x.size < FOUR_PL_PARAMETERS:
        return Failed(
            f"{x.size} standard points are fewer than the {FOUR_PL_PARAMETERS} "
            "parameters of the 4PL model"
        )
    if np.any(x <= 0):
        return Failed("4PL requires positive concentrations")

    p0 = initial_four_pl_guess(x, y)
    lower = np.array([-np.inf, -np.inf, np.min(x) * 1e-9, -np.inf])
    upper = np.full(FOUR_PL_PARAMETERS, np.inf)

    def residuals(params: np.ndarray) -> np.ndarray:
        return four_param_logistic(x, *params) - y

    try:
        with np.errstate(all="ignore"):
            result = least_squares(
                residuals,
                p0,
                bounds=(lower, upper),
                method="trf",
                x_scale="jac",
                max_nfev=max_iterations,
                ftol=ftol,
                xtol=xtol,
                gtol=gtol,
            )
    except (ValueError, FloatingPointError, np.linalg.LinAlgError) as exc:
        return Failed(f"solver error: {exc}")

    if result.status <= 0:
        return Failed(f"{result.message} (after {result.nfev} evaluations)")

    params = tuple(float(p) for p in result.x)
    if not all(np.isfinite(params)):
        return Failed("fitted parameters are not finite")
    predicted = four_param_logistic(x, *params)
    if not np.all(np.isfinite(predicted)):
        return Failed("fitted curve is not finite at the standard concentrations")
    r2 = r_squared(y, predicted)
    if not np.isfinite(r2):
        return Failed("R2 is undefined for the standard points")

    model = FittedModel(kind=ModelKind.FOUR_PL, params=params, r_squared=r2)
    logger.info(
        "4PL fit converged after %d evaluations: %s (R2=%.6f)",
        result.nfev,
        model.equation,
        model.r_squared,
    )
    return Converged(model)


def select_model(linear: FittedModel, four_pl: FitOutcome) -> FittedModel:
    """
    Pick the standard curve used for prediction.

    4PL is chosen only when it converged and its R² is strictly greater than
    the linear R²; a tie keeps Linear.
    """
    if isinstance(four_pl, Failed):
        logger.info("Using linear model: %s", four_pl.reason)
        return linear
    if linear.r_squared >= four_pl.r_squared:
        logger.info(
            "Using linear model (R2 %.6f >= 4PL R2 %.6f)",
            linear.r_squared,
            four_pl.r_squared,
        )
        return linear
    logger.info(
        "Using 4PL model (R2 %.6f > linear R2 %.6f)",
        four_pl.r_squared,
        linear.r_squared,
    )
    return four_pl.model


__all__ = [
    "Converged",
    "Failed",
    "FitOutcome",
    "FittedModel",
    "ModelKind",
    "PARAMETER_NAMES",
    "fit_four_pl",
    "fit_linear",
    "four_param_logistic",
    "initial_four_pl_guess",
    "linear_model",
    "r_squared",
    "select_model",
]
