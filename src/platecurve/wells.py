"""Well identifiers, role assignment and the typed view of raw plate ODs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from .errors import DuplicateWell, InvalidWellLabel, RoleConflict, WellNotFound

logger = logging.getLogger(__name__)

PLATE_ROWS = "ABCDEFGHIJKLMNOP"


class WellRole(str, Enum):
    BLANK = "Blank"
    STANDARD = "Standard"
    SAMPLE = "Sample"
    UNASSIGNED = "Unassigned"


def split_well(well: str) -> tuple[str, int]:
    """Split a label like ``'b07'`` into ``('B', 7)``."""
    well = str(well).strip().upper()
    if not well:
        raise ValueError("Empty well label")
    row = well[0]
    col_part = well[1:]
    if row not in PLATE_ROWS or not col_part.isdigit() or int(col_part) < 1:
        raise ValueError(f"Invalid well label: {well}")
    return row, int(col_part)


def canonical_well(well: str) -> str:
    row, col = split_well(well)
    return f"{row}{col}"


def display_well(well: str) -> str:
    row, col = split_well(well)
    return f"{row}{col:02d}"


def wells_from_plate_frame(frame: pd.DataFrame) -> dict[str, float]:
    """
    Flatten a plate grid (row letters as index, column numbers as columns)
    into a ``{well: OD}`` mapping. Non-numeric cells become NaN. A row or
    column header that does not form a well label raises ``InvalidWellLabel``.
    """
    numeric = frame.apply(pd.to_numeric, errors="coerce")
    values: dict[str, float] = {}
    for row_label, row in numeric.iterrows():
        for col_label, value in row.items():
            text = f"{str(row_label).strip()}{str(col_label).strip()}"
            try:
                label = canonical_well(text)
            except ValueError as exc:
                raise InvalidWellLabel(
                    f"Plate grid cell ({row_label!r}, {col_label!r}) is not a well.",
                    well=text,
                    row=row_label,
                    column=col_label,
                ) from exc
            values[label] = float(value)
    return values


@dataclass(frozen=True)
class Well:
    well_id: str
    raw_od: float | None
    role: WellRole


@dataclass(frozen=True)
class SampleGroup:
    """A caller-named set of wells whose mean OD is converted to a concentration."""

    name: str
    wells: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "wells", tuple(self.wells))


@dataclass(frozen=True)
class RoleAssignment:
    """
    Which wells are blanks, standards and samples.

    ``standards`` is ordered: it is partitioned into contiguous blocks, one
    per concentration, in the order given.
    """

    blanks: tuple[str, ...] = ()
    standards: tuple[str, ...] = ()
    samples: tuple[SampleGroup, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "blanks", tuple(self.blanks))
        object.__setattr__(self, "standards", tuple(self.standards))
        object.__setattr__(self, "samples", tuple(self.samples))


class WellDataset:
    """Raw OD per well together with the role each well plays in the assay."""

    def __init__(self, frame: pd.DataFrame, ignored_labels: Sequence[str] = ()) -> None:
        self._frame = frame
        self.ignored_labels = tuple(ignored_labels)

    @classmethod
    def from_assignment(
        cls,
        od_values: Mapping[str, float | None],
        assignment: RoleAssignment,
    ) -> "WellDataset":
        """
        Build a dataset from a ``{well: OD}`` mapping and a role assignment.

        Raises ``DuplicateWell`` when two keys of ``od_values`` name the same
        well (``"A1"`` and ``"a01"``), ``InvalidWellLabel`` when a blank or
        standard label is not a well, ``RoleConflict`` when a well is given
        more than one role and ``WellNotFound`` when a blank or standard well
        is not in ``od_values``. Keys of ``od_values`` that are not well
        labels are skipped and kept in ``ignored_labels``. Sample wells
        missing from the plate are tolerated here and reported per group
        during prediction.
        """
        values: dict[str, object] = {}
        sources: dict[str, object] = {}
        ignored: list[str] = []
        for key, value in od_values.items():
            try:
                label = canonical_well(key)
            except ValueError:
                logger.warning("Ignoring plate entry %r: not a well label", key)
                ignored.append(str(key))
                continue
            if label in sources:
                raise DuplicateWell(
                    f"Keys {sources[label]!r} and {key!r} both name well {label}.",
                    well=label,
                    keys=[sources[label], key],
                )
            sources[label] = key
            values[label] = value

        raw = pd.Series(values, index=list(values), dtype=object)
        raw = pd.to_numeric(raw, errors="coerce").astype(float)
        frame = pd.DataFrame({"raw_od": raw, "role": WellRole.UNASSIGNED.value})
        frame.index.name = "well"

        roles: dict[str, WellRole] = {}

        def _claim(wells: Iterable[str], role: WellRole) -> None:
            for well in wells:
                try:
                    label = canonical_well(well)
                except ValueError as exc:
                    if role is WellRole.SAMPLE:
                        continue
                    raise InvalidWellLabel(
                        f"{role.value} well {well!r} is not a well label.",
                        well=well,
                        role=role.value,
                    ) from exc
                previous = roles.get(label)
                if previous is not None and previous != role:
                    raise RoleConflict(
                        f"Well {label} is assigned as both {previous.value} "
                        f"and {role.value}.",
                        well=label,
                        roles=[previous.value, role.value],
                    )
                roles[label] = role

        _claim(assignment.blanks, WellRole.BLANK)
        _claim(assignment.standards, WellRole.STANDARD)
        for group in assignment.samples:
            _claim(group.wells, WellRole.SAMPLE)

        missing = [
            label
            for label, role in roles.items()
            if role in (WellRole.BLANK, WellRole.STANDARD) and label not in frame.index
        ]
        if missing:
            raise WellNotFound(
                f"Blank/standard wells not present in the plate data: {', '.join(missing)}",
                wells=missing,
            )

        for label, role in roles.items():
            if label in frame.index:
                frame.loc[label, "role"] = role.value
        return cls(frame, ignored)

    def __len__(self) -> int:
        return len(self._frame)

    def __contains__(self, well: object) -> bool:
        try:
            return canonical_well(str(well)) in self._frame.index
        except ValueError:
            return False

    @property
    def wells(self) -> list[Well]:
        return [
            Well(
                well_id=str(label),
                raw_od=None if pd.isna(row["raw_od"]) else float(row["raw_od"]),
                role=WellRole(row["role"]),
            )
            for label, row in self._frame.iterrows()
        ]

    def role_of(self, well: str) -> WellRole:
        label = canonical_well(well)
        if label not in self._frame.index:
            raise WellNotFound(f"Well {label} is not in the dataset.", wells=[label])
        return WellRole(self._frame.at[label, "role"])

    def wells_with_role(self, role: WellRole) -> list[str]:
        return self._frame.index[self._frame["role"] == role.value].tolist()

    def raw_values(self, wells: Sequence[str]) -> np.ndarray:
        labels = [canonical_well(well) for well in wells]
        missing = [label for label in labels if label not in self._frame.index]
        if missing:
            raise WellNotFound(
                f"Wells not present in the plate data: {', '.join(missing)}",
                wells=missing,
            )
        return self._frame.loc[labels, "raw_od"].to_numpy(dtype=float)

    def corrected(self, background: float) -> pd.Series:
        """Return every well's OD minus ``background`` (missing stays NaN)."""
        corrected = self._frame["raw_od"] - float(background)
        corrected.name = "corrected_od"
        return corrected


__all__ = [
    "PLATE_ROWS",
    "RoleAssignment",
    "SampleGroup",
    "Well",
    "WellDataset",
    "WellRole",
    "canonical_well",
    "display_well",
    "split_well",
    "wells_from_plate_frame",
]
