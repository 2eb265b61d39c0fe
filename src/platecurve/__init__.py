"""Standard-curve calibration for plate-reader OD assays."""

from .curve_models import (
    Converged,
    Failed,
    FittedModel,
    ModelKind,
    fit_four_pl,
    fit_linear,
    four_param_logistic,
    r_squared,
    select_model,
)
from .errors import (
    AnalysisIssue,
    CalibrationError,
    DivisionByZeroSlope,
    DuplicateWell,
    ErrorKind,
    FitDidNotConverge,
    InsufficientPoints,
    InvalidConcentrationList,
    InvalidWellLabel,
    MissingBlank,
    PredictionOutOfRange,
    ReplicateMismatch,
    RoleConflict,
    Severity,
    WellNotFound,
)
from .logger import setup_logging
from .pipeline import AnalysisConfig, AnalysisResult, run_analysis
from .pipeline_utils import curve_table, issues_table, samples_table, standards_table
from .prediction import SampleResult, invert_model, predict_sample_groups
from .standards import (
    StandardPoint,
    aggregate_replicates,
    blank_correct,
    compute_background,
    parse_concentrations,
    validate_concentrations,
)
from .wells import (
    RoleAssignment,
    SampleGroup,
    Well,
    WellDataset,
    WellRole,
    canonical_well,
    display_well,
    split_well,
    wells_from_plate_frame,
)

__all__ = [
    "AnalysisConfig",
    "AnalysisIssue",
    "AnalysisResult",
    "CalibrationError",
    "Converged",
    "DivisionByZeroSlope",
    "DuplicateWell",
    "ErrorKind",
    "Failed",
    "FitDidNotConverge",
    "FittedModel",
    "InsufficientPoints",
    "InvalidConcentrationList",
    "InvalidWellLabel",
    "MissingBlank",
    "ModelKind",
    "PredictionOutOfRange",
    "ReplicateMismatch",
    "RoleAssignment",
    "RoleConflict",
    "SampleGroup",
    "SampleResult",
    "Severity",
    "StandardPoint",
    "Well",
    "WellDataset",
    "WellNotFound",
    "WellRole",
    "aggregate_replicates",
    "blank_correct",
    "canonical_well",
    "compute_background",
    "curve_table",
    "display_well",
    "fit_four_pl",
    "fit_linear",
    "four_param_logistic",
    "invert_model",
    "issues_table",
    "parse_concentrations",
    "predict_sample_groups",
    "r_squared",
    "run_analysis",
    "samples_table",
    "select_model",
    "setup_logging",
    "split_well",
    "standards_table",
    "validate_concentrations",
    "wells_from_plate_frame",
]
