"""
Configured standard-curve analysis for a single plate-reader export.

Edit the values in the parameter block below to point at a plate grid saved as
CSV (row letters in the first column, column numbers in the header), list the
blank, standard and sample wells, and choose where the result tables go. Then
run the script with ``python standard_curve_script.py``.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

# 8x12 OD grid exported from the plate reader.
PLATE_CSV = "plate_od.csv"

# Blank wells; their mean OD is subtracted from every well.
BLANK_WELLS = ["A1", "B1"]

# Standard wells in selection order. They are split into equal consecutive
# blocks, one block per entry of STANDARD_CONCENTRATIONS, in the same order.
STANDARD_WELLS = ["C1", "C2", "D1", "D2", "E1", "E2", "F1", "F2"]
STANDARD_CONCENTRATIONS = "100, 50, 25, 12.5"

# Named sample groups (replicate wells are averaged before back-calculation).
SAMPLE_GROUPS = {
    "Sample 1": ["A3", "A4"],
    "Sample 2": ["B3", "B4"],
}

# Hard cap on 4PL solver evaluations before falling back to the linear curve.
MAX_ITERATIONS = 10000

# Output directory for the standards, samples, issues and curve tables.
OUTPUT_DIR = "results"

# Console log level ("DEBUG", "INFO", "WARNING", ...).
LOG_LEVEL = "INFO"

# ---------------------------------------------------------------------------
# Imports and setup
# ---------------------------------------------------------------------------

from pathlib import Path

import pandas as pd

from platecurve import (
    AnalysisConfig,
    CalibrationError,
    RoleAssignment,
    SampleGroup,
    parse_concentrations,
    run_analysis,
    setup_logging,
    wells_from_plate_frame,
)


def main() -> None:
    logger = setup_logging(LOG_LEVEL)
    plate = pd.read_csv(PLATE_CSV, index_col=0)
    od_values = wells_from_plate_frame(plate)
    assignment = RoleAssignment(
        blanks=BLANK_WELLS,
        standards=STANDARD_WELLS,
        samples=[SampleGroup(name, wells) for name, wells in SAMPLE_GROUPS.items()],
    )

    try:
        result = run_analysis(
            od_values,
            assignment,
            parse_concentrations(STANDARD_CONCENTRATIONS),
            AnalysisConfig(max_iterations=MAX_ITERATIONS),
        )
    except CalibrationError as exc:
        logger.error("Analysis aborted (%s): %s", exc.kind.value, exc.message)
        raise SystemExit(1) from exc

    output_dir = Path(OUTPUT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    result.standards_table().to_csv(output_dir / "standards.csv", index=False)
    result.samples_table().to_csv(output_dir / "samples.csv", index=False)
    result.issues_table().to_csv(output_dir / "issues.csv", index=False)
    result.curve_table().to_csv(output_dir / "curve.csv", index=False)

    logger.info("Selected %s: %s", result.model.kind.value, result.model.equation)
    logger.info("Wrote result tables to %s", output_dir)


if __name__ == "__main__":
    main()
