"""
sheetdeps/core/dependents.py

Reverse lookup: which formulas read a given cell, directly or through a range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sheetdeps.core.errors import InvalidCoordinate, MissingInput
from sheetdeps.core.references import iter_cell_references, parse_coordinate
from sheetdeps.core.workbook import Cell, Sheet, Workbook, anchor_coordinate, is_metadata_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependentRecord:
    sheet: str
    coordinate: str
    formula: str

    def to_dict(self) -> Dict[str, Any]:
        return {"sheet": self.sheet, "cell": self.coordinate, "formula": self.formula}


def _cell_formula(sheet: Sheet, cell: Cell) -> Optional[str]:
    if cell.formula:
        return cell.formula
    if cell.array_range:
        anchor = anchor_coordinate(cell.array_range)
        anchor_cell = sheet.cells.get(anchor) if anchor else None
        if anchor_cell is not None and anchor_cell.formula:
            return anchor_cell.formula
    return None


def find_dependents(workbook: Workbook, target_sheet: str, target_coordinate: str) -> List[DependentRecord]:
    """
    Return one record per formula cell that references `target_sheet`!`target_coordinate`.

    Unqualified references belong to the formula's own sheet. Array-formula
    members are reported at their own coordinate with the anchor's formula.
    Raises MissingInput / InvalidCoordinate on bad input; no match is [].
    """
    if not target_sheet or not target_coordinate or not str(target_coordinate).strip():
        raise MissingInput()

    try:
        target_row, target_col = parse_coordinate(str(target_coordinate))
    except ValueError as e:
        raise InvalidCoordinate(str(target_coordinate)) from e

    if target_sheet not in workbook.sheet_names:
        logger.warning("Sheet %r is not in the workbook; no dependents possible", target_sheet)

    dependents: List[DependentRecord] = []
    for sheet in workbook.sheets:
        for coordinate, cell in sheet.cells.items():
            if is_metadata_key(coordinate):
                continue
            formula = _cell_formula(sheet, cell)
            if not formula:
                continue

            for ref in iter_cell_references(formula):
                if (ref.sheet or sheet.name) != target_sheet:
                    continue
                if ref.contains(target_row, target_col):
                    dependents.append(DependentRecord(sheet=sheet.name, coordinate=coordinate, formula=formula))
                    break

    logger.info(
        "%d dependent(s) of %s!%s", len(dependents), target_sheet, str(target_coordinate).strip().upper()
    )
    return dependents
