"""
Simulation check that builds a deterministic 96-well ELISA-style plate,
runs the platecurve analysis, and verifies that the back-calculated sample
concentrations match the simulated ground truth.
"""

from __future__ import annotations

from typing import Dict, Mapping

import numpy as np
import pandas as pd

from platecurve import (
    ModelKind,
    RoleAssignment,
    SampleGroup,
    four_param_logistic,
    run_analysis,
    wells_from_plate_frame,
)

#############################################################
################### Simulation parameters ###################
#############################################################

ROWS = "ABCDEFGH"
COLUMNS = range(1, 13)

# True 4PL curve (a, b, c, d): response at zero, slope, midpoint, saturation.
TRUE_PARAMS = (0.08, 1.4, 12.0, 2.2)

# Blank wells in column 1 scatter around this background.
BACKGROUND_OD = 0.05
BLANK_SCATTER = 0.004

# Two-fold dilution series, top standard first, triplicates in columns 2-4.
TOP_STANDARD = 200.0
N_STANDARDS = 8
STANDARD_COLUMNS = (2, 3, 4)

# Unknown samples: one duplicate pair per row in columns 6-7 and 9-10.
SAMPLE_CONCENTRATIONS = np.geomspace(2.0, 80.0, 16)

RELATIVE_TOLERANCE = 1e-3


#############################################################
################### Simulation helpers ###################
#############################################################


def standard_concentrations() -> list[float]:
    return [TOP_STANDARD / 2**idx for idx in range(N_STANDARDS)]


def standard_wells() -> list[str]:
    return [f"{row}{col}" for row in ROWS for col in STANDARD_COLUMNS]


def sample_groups() -> list[tuple[SampleGroup, float]]:
    groups = []
    pairs = [(6, 7), (9, 10)]
    for idx, concentration in enumerate(SAMPLE_CONCENTRATIONS):
        row = ROWS[idx % len(ROWS)]
        first, second = pairs[idx // len(ROWS)]
        group = SampleGroup(f"S{idx + 1:02d}", [f"{row}{first}", f"{row}{second}"])
        groups.append((group, float(concentration)))
    return groups


def build_plate_frame() -> pd.DataFrame:
    """Return an 8x12 grid of raw ODs (row letters as index, columns 1-12)."""
    plate = pd.DataFrame(np.nan, index=list(ROWS), columns=list(COLUMNS))

    offsets = np.linspace(-BLANK_SCATTER, BLANK_SCATTER, len(ROWS))
    for row, offset in zip(ROWS, offsets):
        plate.loc[row, 1] = BACKGROUND_OD + offset

    for row, concentration in zip(ROWS, standard_concentrations()):
        od = BACKGROUND_OD + float(four_param_logistic(concentration, *TRUE_PARAMS))
        for col in STANDARD_COLUMNS:
            plate.loc[row, col] = od

    for group, concentration in sample_groups():
        od = BACKGROUND_OD + float(four_param_logistic(concentration, *TRUE_PARAMS))
        for well in group.wells:
            plate.loc[well[0], int(well[1:])] = od
    return plate


#############################################################
################### Comparison helpers ###################
#############################################################


def expected_concentrations() -> Dict[str, float]:
    return {group.name: concentration for group, concentration in sample_groups()}


def compare_concentrations(
    measured: Mapping[str, float | None],
    expected: Mapping[str, float],
    rel_tol: float = RELATIVE_TOLERANCE,
) -> bool:
    """Print relative differences and return True when all are within tolerance."""
    print("Sample\tExpected\tMeasured\tRelDiff\tStatus")
    all_passed = True
    for name, expected_conc in expected.items():
        value = measured.get(name)
        if value is None:
            print(f"{name}\t{expected_conc:.4f}\tNA\tNA\tFAIL")
            all_passed = False
            continue
        rel_diff = abs(value - expected_conc) / expected_conc
        passed = rel_diff <= rel_tol
        status = "PASS" if passed else "FAIL"
        print(f"{name}\t{expected_conc:.4f}\t{value:.4f}\t{rel_diff:.2e}\t{status}")
        all_passed = all_passed and passed
    return all_passed


def run_simulation():
    od_values = wells_from_plate_frame(build_plate_frame())
    assignment = RoleAssignment(
        blanks=[f"{row}1" for row in ROWS],
        standards=standard_wells(),
        samples=[group for group, _ in sample_groups()],
    )
    return run_analysis(od_values, assignment, standard_concentrations())


#############################################################
################### Tests ###################
#############################################################


def test_simulated_plate_recovers_sample_concentrations() -> None:
    result = run_simulation()

    assert abs(result.background - BACKGROUND_OD) < 1e-12
    assert result.model.kind is ModelKind.FOUR_PL
    assert all(point.n_replicates == len(STANDARD_COLUMNS) for point in result.standards)
    measured = {sample.name: sample.concentration for sample in result.samples}
    assert compare_concentrations(measured, expected_concentrations())


def main() -> None:
    """Build the plate, run the analysis, and report recovered concentrations."""
    result = run_simulation()
    print(f"Selected model: {result.model.equation} (R2={result.model.r_squared:.6f})")
    measured = {sample.name: sample.concentration for sample in result.samples}
    if compare_concentrations(measured, expected_concentrations()):
        print("Simulation check: PASS")
    else:
        print("Simulation check: FAIL")


if __name__ == "__main__":
    main()
