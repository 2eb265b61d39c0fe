import math

import numpy as np
import pytest

from platecurve import (
    Converged,
    Failed,
    FitDidNotConverge,
    FittedModel,
    InsufficientPoints,
    ModelKind,
    fit_four_pl,
    fit_linear,
    four_param_logistic,
    r_squared,
    select_model,
)
from platecurve.curve_models import initial_four_pl_guess

TRUE_4PL = (2.0, 1.5, 5.0, 0.1)
CONCENTRATIONS = np.geomspace(0.25, 100.0, 10)


def test_linear_fit_recovers_noiseless_line() -> None:
    conc = [0.5, 1.0, 2.0, 4.0, 8.0]
    od = [2.0 * c + 1.0 for c in conc]
    model = fit_linear(conc, od)

    assert model.kind is ModelKind.LINEAR
    assert model.parameters["a"] == pytest.approx(2.0)
    assert model.parameters["b"] == pytest.approx(1.0)
    assert model.r_squared == pytest.approx(1.0)


def test_linear_fit_needs_two_distinct_concentrations() -> None:
    with pytest.raises(InsufficientPoints):
        fit_linear([1.0, 1.0, 1.0], [0.1, 0.2, 0.3])
    with pytest.raises(InsufficientPoints):
        fit_linear([], [])


def test_four_pl_fit_recovers_known_parameters() -> None:
    od = four_param_logistic(CONCENTRATIONS, *TRUE_4PL)
    outcome = fit_four_pl(CONCENTRATIONS, od)

    assert isinstance(outcome, Converged)
    assert outcome.model.kind is ModelKind.FOUR_PL
    assert outcome.model.params == pytest.approx(TRUE_4PL, rel=1e-4)
    assert outcome.r_squared == pytest.approx(1.0)


def test_four_pl_fit_recovers_rising_curve() -> None:
    params = (0.05, 1.2, 10.0, 2.5)
    od = four_param_logistic(CONCENTRATIONS, *params)
    outcome = fit_four_pl(CONCENTRATIONS, od)

    assert isinstance(outcome, Converged)
    assert outcome.model.params == pytest.approx(params, rel=1e-4)


def test_initial_guess_is_deterministic_and_oriented() -> None:
    falling = four_param_logistic(CONCENTRATIONS, *TRUE_4PL)
    guess = initial_four_pl_guess(CONCENTRATIONS, falling)
    assert guess[0] == pytest.approx(np.max(falling))
    assert guess[3] == pytest.approx(np.min(falling))
    assert guess[1] == 1.0
    assert guess[2] == pytest.approx(np.median(CONCENTRATIONS))

    rising = falling[::-1]
    flipped = initial_four_pl_guess(CONCENTRATIONS, rising)
    assert flipped[0] == pytest.approx(np.min(rising))
    assert flipped[3] == pytest.approx(np.max(rising))
    np.testing.assert_array_equal(guess, initial_four_pl_guess(CONCENTRATIONS, falling))


def test_four_pl_fit_fails_with_fewer_points_than_parameters() -> None:
    outcome = fit_four_pl([0.5, 1.0, 2.0], [0.2, 0.4, 0.8])
    assert isinstance(outcome, Failed)
    error = outcome.to_error()
    assert isinstance(error, FitDidNotConverge)
    assert error.context["reason"] == outcome.reason


def test_four_pl_fit_fails_on_flat_standards() -> None:
    outcome = fit_four_pl([0.5, 1.0, 2.0, 4.0, 8.0], [0.3] * 5)
    assert isinstance(outcome, Failed)


def test_four_pl_fit_fails_when_iteration_cap_is_hit() -> None:
    od = four_param_logistic(CONCENTRATIONS, *TRUE_4PL)
    outcome = fit_four_pl(CONCENTRATIONS, od, max_iterations=1)
    assert isinstance(outcome, Failed)


def test_selector_falls_back_to_linear_when_four_pl_failed() -> None:
    linear = FittedModel(ModelKind.LINEAR, (1.0, 0.0), r_squared=0.1)
    assert select_model(linear, Failed("solver gave up")) is linear


def test_selector_prefers_higher_r_squared_and_linear_on_tie() -> None:
    linear = FittedModel(ModelKind.LINEAR, (1.0, 0.0), r_squared=0.95)
    better = FittedModel(ModelKind.FOUR_PL, TRUE_4PL, r_squared=0.99)
    worse = FittedModel(ModelKind.FOUR_PL, TRUE_4PL, r_squared=0.90)
    tied = FittedModel(ModelKind.FOUR_PL, TRUE_4PL, r_squared=0.95)

    assert select_model(linear, Converged(better)) is better
    assert select_model(linear, Converged(worse)) is linear
    assert select_model(linear, Converged(tied)) is linear


def test_r_squared_is_undefined_without_spread() -> None:
    assert math.isnan(r_squared([0.5, 0.5], [0.5, 0.5]))
    assert r_squared([0.0, 1.0, 2.0], [0.0, 1.0, 2.0]) == pytest.approx(1.0)


def test_forward_prediction_accepts_scalars_and_arrays() -> None:
    model = FittedModel(ModelKind.FOUR_PL, TRUE_4PL, r_squared=1.0)
    value = model.predict(5.0)
    assert isinstance(value, float)
    assert value == pytest.approx((2.0 + 0.1) / 2)

    curve = model.predict(CONCENTRATIONS)
    assert curve.shape == CONCENTRATIONS.shape
    np.testing.assert_allclose(curve, four_param_logistic(CONCENTRATIONS, *TRUE_4PL))

    line = FittedModel(ModelKind.LINEAR, (0.4, 0.0), r_squared=1.0)
    assert line.predict(1.2) == pytest.approx(0.48)
    assert line.equation == "OD = 0.4 * C + 0"
