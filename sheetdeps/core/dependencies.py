"""
sheetdeps/core/dependencies.py

Builds the sheet-level dependency map from workbook formulas.

Public API:
  - build_dependencies(workbook) -> SheetDependencies
      dependency_map:  {sheet: set of sheets it reads from}
      formula_details: {sheet: [FormulaDetail, ...]}

A sheet never depends on itself. A formula that references no known sheet
contributes nothing; it is never an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from sheetdeps.core.named_ranges import resolve_named_ranges
from sheetdeps.core.references import extract_referenced_sheets
from sheetdeps.core.workbook import Cell, Sheet, Workbook, anchor_coordinate, is_metadata_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormulaDetail:
    coordinate: str
    formula: str
    referenced_sheets: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cell": self.coordinate,
            "formula": self.formula,
            "referenced_sheets": list(self.referenced_sheets),
        }


@dataclass
class SheetDependencies:
    dependency_map: Dict[str, Set[str]] = field(default_factory=dict)
    formula_details: Dict[str, List[FormulaDetail]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependencies": {s: sorted(deps) for s, deps in self.dependency_map.items()},
            "formula_details": {
                s: [d.to_dict() for d in details] for s, details in self.formula_details.items()
            },
        }


def _resolve_formula(
    sheet: Sheet,
    coordinate: str,
    cell: Cell,
    processed_ranges: Set[str],
) -> Optional[Tuple[str, str]]:
    """
    Return (origin coordinate, formula text) for a cell, or None.

    Array-formula members resolve to their anchor; each array range is handed
    out once per sheet, always under the anchor's coordinate.
    """
    if cell.array_range and cell.array_range in processed_ranges:
        return None

    if cell.formula:
        if cell.array_range:
            processed_ranges.add(cell.array_range)
        return coordinate, cell.formula

    if not cell.array_range:
        return None

    processed_ranges.add(cell.array_range)
    anchor = anchor_coordinate(cell.array_range)
    if anchor is None:
        return None
    anchor_cell = sheet.cells.get(anchor)
    if anchor_cell is None or not anchor_cell.formula:
        logger.debug("%s!%s: array range %s has no anchor formula", sheet.name, coordinate, cell.array_range)
        return None
    return anchor, anchor_cell.formula


def build_dependencies(workbook: Workbook) -> SheetDependencies:
    sheet_names = workbook.sheet_names
    known = set(sheet_names)
    named_ranges = resolve_named_ranges(workbook)

    dependency_map: Dict[str, Set[str]] = {name: set() for name in sheet_names}
    formula_details: Dict[str, List[FormulaDetail]] = {name: [] for name in sheet_names}

    for sheet in workbook.sheets:
        processed_ranges: Set[str] = set()
        deps = dependency_map[sheet.name]
        details = formula_details[sheet.name]

        for coordinate, cell in sheet.cells.items():
            if is_metadata_key(coordinate):
                continue

            resolved = _resolve_formula(sheet, coordinate, cell, processed_ranges)
            if resolved is None:
                continue
            origin, formula = resolved

            referenced = extract_referenced_sheets(formula, known, named_ranges)
            for ref in referenced:
                if ref != sheet.name:
                    deps.add(ref)
            if referenced:
                details.append(FormulaDetail(coordinate=origin, formula=formula, referenced_sheets=tuple(referenced)))

        logger.debug("%s: depends on %d sheet(s), %d formula detail(s)", sheet.name, len(deps), len(details))

    logger.info(
        "Built dependencies for %d sheet(s), %d edge(s)",
        len(sheet_names),
        sum(len(d) for d in dependency_map.values()),
    )
    return SheetDependencies(dependency_map=dependency_map, formula_details=formula_details)
