"""Blank correction, concentration validation and replicate aggregation."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np
import pandas as pd

from .errors import (
    InvalidConcentrationList,
    MissingBlank,
    ReplicateMismatch,
    WellNotFound,
)
from .wells import WellDataset, WellRole, canonical_well

logger = logging.getLogger(__name__)

_CONCENTRATION_SEPARATORS = re.compile(r"[,;\s]+")


@dataclass(frozen=True)
class StandardPoint:
    """Mean and spread of the corrected OD measured at one known concentration."""

    concentration: float
    wells: tuple[str, ...]
    mean_od: float
    sd: float
    n_replicates: int

    @property
    def is_measured(self) -> bool:
        return math.isfinite(self.mean_od)


def compute_background(blank_values: Sequence[float | None]) -> float:
    """Return the mean blank OD, ignoring missing readings."""
    values = pd.to_numeric(pd.Series(list(blank_values), dtype=object), errors="coerce")
    values = values.dropna()
    if values.empty:
        raise MissingBlank(
            "At least one blank well with a measured OD is required.",
            n_blank_wells=len(blank_values),
        )
    return float(values.astype(float).mean())


def blank_correct(dataset: WellDataset) -> tuple[float, pd.Series]:
    """
    Subtract the blank background from every well in ``dataset``.

    Returns the background and the corrected OD series indexed by well.
    """
    blank_wells = dataset.wells_with_role(WellRole.BLANK)
    background = compute_background(dataset.raw_values(blank_wells).tolist())
    logger.debug("Background from %d blank wells: %.6g", len(blank_wells), background)
    return background, dataset.corrected(background)


def validate_concentrations(concentrations: Sequence[object]) -> list[float]:
    """Convert ``concentrations`` to floats, rejecting empty/non-numeric/non-positive lists."""
    concentrations = list(concentrations)
    if not concentrations:
        raise InvalidConcentrationList("The concentration list is empty.")

    validated: list[float] = []
    for position, entry in enumerate(concentrations):
        if isinstance(entry, bool):
            value = float("nan")
        else:
            try:
                value = float(entry)
            except (TypeError, ValueError):
                value = float("nan")
        if not math.isfinite(value):
            raise InvalidConcentrationList(
                f"Concentration #{position + 1} ({entry!r}) is not a number.",
                position=position,
                entry=repr(entry),
            )
        if value <= 0:
            raise InvalidConcentrationList(
                f"Concentration #{position + 1} ({entry!r}) must be positive.",
                position=position,
                entry=repr(entry),
            )
        validated.append(value)
    return validated


def parse_concentrations(text: str) -> list[float]:
    """Parse free text such as ``"2, 1; 0.5"`` into a validated concentration list."""
    tokens = [token for token in _CONCENTRATION_SEPARATORS.split(str(text)) if token]
    return validate_concentrations(tokens)


def aggregate_replicates(
    standard_wells: Sequence[str],
    concentrations: Sequence[object],
    corrected: Mapping[str, float] | pd.Series,
) -> list[StandardPoint]:
    """
    Group standard wells into per-concentration replicate blocks.

    The ordered well list is cut into ``len(concentrations)`` contiguous
    blocks of equal size; block ``i`` belongs to ``concentrations[i]``.
    Plate position plays no part in the mapping.
    """
    levels = validate_concentrations(concentrations)
    wells = [canonical_well(well) for well in standard_wells]
    if not wells or len(wells) % len(levels) != 0:
        raise ReplicateMismatch(
            f"{len(wells)} standard wells cannot be split evenly across "
            f"{len(levels)} concentrations.",
            n_wells=len(wells),
            n_concentrations=len(levels),
        )

    corrected = pd.Series(corrected, dtype=float)
    missing = [well for well in wells if well not in corrected.index]
    if missing:
        raise WellNotFound(
            f"Standard wells without a corrected OD: {', '.join(missing)}",
            wells=missing,
        )

    block_size = len(wells) // len(levels)
    points: list[StandardPoint] = []
    for idx, concentration in enumerate(levels):
        block = tuple(wells[idx * block_size : (idx + 1) * block_size])
        values = corrected.loc[list(block)].dropna()
        mean_od = float(values.mean()) if not values.empty else float("nan")
        sd = float(np.std(values.to_numpy(), ddof=1)) if len(values) >= 2 else float("nan")
        points.append(
            StandardPoint(
                concentration=concentration,
                wells=block,
                mean_od=mean_od,
                sd=sd,
                n_replicates=int(len(values)),
            )
        )
        logger.debug(
            "Standard %.6g: wells=%s mean=%.6g sd=%.6g",
            concentration,
            ",".join(block),
            mean_od,
            sd,
        )
    return points


__all__ = [
    "StandardPoint",
    "aggregate_replicates",
    "blank_correct",
    "compute_background",
    "parse_concentrations",
    "validate_concentrations",
]
