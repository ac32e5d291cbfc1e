"""
sheetdeps/core/workbook.py

In-memory workbook model consumed by the dependency engine, plus the openpyxl
loader that produces it.

The model is deliberately small:
  - Workbook: ordered sheets + named ranges
  - Sheet: name, sparse {coordinate: Cell} map, visibility, used range
  - Cell: formula text and/or an array-formula range marker

Only the anchor (top-left) cell of a multi-cell array formula carries formula
text; the other members carry the range marker alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.cell import get_column_letter, range_boundaries, rows_from_range
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.formula import ArrayFormula

from sheetdeps.core.errors import MalformedWorkbook

logger = logging.getLogger(__name__)

# openpyxl surfaces broken archives and broken XML parts through these;
# SyntaxError covers xml.etree ParseError and lxml XMLSyntaxError.
_LOAD_ERRORS = (InvalidFileException, BadZipFile, KeyError, OSError, ValueError, SyntaxError)

# Keys in Sheet.cells starting with this prefix are metadata, not cells.
METADATA_PREFIX = "!"


class SheetVisibility(Enum):
    VISIBLE = "visible"
    HIDDEN = "hidden"
    VERY_HIDDEN = "veryHidden"

    @classmethod
    def from_state(cls, state: Optional[str]) -> "SheetVisibility":
        for member in cls:
            if member.value == state:
                return member
        return cls.VISIBLE


@dataclass(frozen=True)
class Cell:
    formula: Optional[str] = None
    array_range: Optional[str] = None


@dataclass(frozen=True)
class NamedRange:
    name: str
    ref: str


@dataclass
class Sheet:
    name: str
    cells: Dict[str, Cell] = field(default_factory=dict)
    visibility: SheetVisibility = SheetVisibility.VISIBLE
    dimension: Optional[str] = None


@dataclass
class Workbook:
    sheets: List[Sheet] = field(default_factory=list)
    named_ranges: List[NamedRange] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen = set()
        for sheet in self.sheets:
            if sheet.name in seen:
                raise ValueError(f"Duplicate sheet name: {sheet.name!r}")
            seen.add(sheet.name)

    @property
    def sheet_names(self) -> List[str]:
        return [s.name for s in self.sheets]

    def sheet(self, name: str) -> Optional[Sheet]:
        for s in self.sheets:
            if s.name == name:
                return s
        return None


def is_metadata_key(key: str) -> bool:
    return key.startswith(METADATA_PREFIX)


def anchor_coordinate(array_range: str) -> Optional[str]:
    """Top-left coordinate of an array-formula range ("B2:C4" -> "B2")."""
    try:
        min_col, min_row, _max_col, _max_row = range_boundaries(array_range.replace("$", ""))
    except (TypeError, ValueError):
        return None
    if min_col is None or min_row is None:
        return None
    return f"{get_column_letter(min_col)}{min_row}"


# ---------------------------------------------------------------------------
# openpyxl loader
# ---------------------------------------------------------------------------


def _iter_cells(ws):
    """Yield populated cells.

    Note: ws._cells may exist but be empty until the worksheet has been iterated.
    """
    cells = getattr(ws, "_cells", None)
    if isinstance(cells, dict) and len(cells) > 0:
        for c in cells.values():
            yield c
        return
    for row in ws.iter_rows(values_only=False):
        for cell in row:
            yield cell


def _iter_defined_names(container) -> Iterator:
    if container is None:
        return
    yield from container.values()


def _load_sheet(ws) -> Sheet:
    cells: Dict[str, Cell] = {}
    has_content = False

    for c in _iter_cells(ws):
        value = c.value
        if value is None:
            continue
        has_content = True

        if isinstance(value, ArrayFormula):
            ref = str(value.ref or c.coordinate)
            for row in rows_from_range(ref.replace("$", "")):
                for coord in row:
                    if coord not in cells:
                        cells[coord] = Cell(array_range=ref)
            cells[c.coordinate] = Cell(formula=value.text, array_range=ref)
        elif isinstance(value, str) and value.startswith("="):
            existing = cells.get(c.coordinate)
            cells[c.coordinate] = Cell(
                formula=value,
                array_range=existing.array_range if existing else None,
            )

    return Sheet(
        name=ws.title,
        cells=cells,
        visibility=SheetVisibility.from_state(getattr(ws, "sheet_state", None)),
        dimension=ws.dimensions if has_content else None,
    )


def load_workbook_model(path: Union[str, Path]) -> Workbook:
    """
    Load an .xlsx/.xlsm file into the engine's Workbook model.
    Raises MalformedWorkbook when the file cannot be opened or parsed.
    """
    p = Path(path)
    if not p.exists():
        raise MalformedWorkbook(str(p), "file not found")

    try:
        wb = load_workbook(filename=str(p), data_only=False, read_only=False)
    except _LOAD_ERRORS as e:
        raise MalformedWorkbook(str(p), f"{type(e).__name__}: {e}") from e

    try:
        sheets = [_load_sheet(ws) for ws in wb.worksheets]

        named_ranges: List[NamedRange] = []
        for dn in _iter_defined_names(getattr(wb, "defined_names", None)):
            if dn.attr_text:
                named_ranges.append(NamedRange(name=dn.name, ref=str(dn.attr_text)))
        for ws in wb.worksheets:
            for dn in _iter_defined_names(getattr(ws, "defined_names", None)):
                if dn.attr_text:
                    named_ranges.append(NamedRange(name=dn.name, ref=str(dn.attr_text)))
    except _LOAD_ERRORS as e:
        raise MalformedWorkbook(str(p), f"{type(e).__name__}: {e}") from e
    finally:
        wb.close()

    logger.info(
        "Loaded %s: %d sheet(s), %d named range(s)", p.name, len(sheets), len(named_ranges)
    )
    return Workbook(sheets=sheets, named_ranges=named_ranges)
