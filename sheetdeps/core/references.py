"""
sheetdeps/core/references.py

Deterministic, lexical formula scanning for dependency building.

We do NOT evaluate or fully parse formulas. Two small grammars are recognised:
  - sheet qualifiers:      'My Sheet'!   Sheet1!
  - A1 references:         A1  $B$2  Sheet1!A1:C3  'Data Entry'!$A$1

Known false negatives: 3-D references (Sheet1:Sheet3!A1), structured table
references, R1C1 notation, whole-row / whole-column ranges.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Collection, Dict, Iterator, List, Mapping, Optional, Tuple

from openpyxl.utils.cell import column_index_from_string

logger = logging.getLogger(__name__)

# 'Quoted Sheet'!   (a doubled quote escapes a literal quote: 'O''Brien'!)
_QUOTED = r"'(?P<qs>(?:[^']|'')+)'"
# Bare_Sheet1!
_UNQUOTED = r"(?P<us>[A-Za-z0-9_]+)"

_RE_QUOTED_SHEET = re.compile(rf"{_QUOTED}!")
_RE_UNQUOTED_SHEET = re.compile(rf"{_UNQUOTED}!")

_RE_A1_REF = re.compile(
    rf"(?:(?:{_QUOTED}|{_UNQUOTED})!)?"
    r"(?P<col>\$?[A-Z]+)(?P<row>\$?\d+)"
    r"(?::(?P<end_col>\$?[A-Z]+)(?P<end_row>\$?\d+))?"
)

_RE_COORDINATE = re.compile(r"^\$?(?P<col>[A-Z]+)\$?(?P<row>\d+)$")


@dataclass(frozen=True)
class CellRef:
    """One A1 reference occurrence. Coordinates are (row, col), 1-based."""

    raw: str
    sheet: Optional[str]
    start: Tuple[int, int]
    end: Optional[Tuple[int, int]] = None

    @property
    def is_range(self) -> bool:
        return self.end is not None

    def contains(self, row: int, col: int) -> bool:
        if self.end is None:
            return self.start == (row, col)
        r1, r2 = sorted((self.start[0], self.end[0]))
        c1, c2 = sorted((self.start[1], self.end[1]))
        return r1 <= row <= r2 and c1 <= col <= c2


def _unquote_sheet(name: str) -> str:
    return name.replace("''", "'")


def _decode(col: str, row: str) -> Tuple[int, int]:
    r = int(row.lstrip("$"))
    if r < 1:
        raise ValueError(f"row must be >= 1, got {r}")
    return r, column_index_from_string(col.lstrip("$"))


def parse_coordinate(text: str) -> Tuple[int, int]:
    """
    Decode an A1 coordinate ("B7", "$b$7") to (row, col).
    Raises ValueError when the text is not A1 syntax.
    """
    s = (text or "").strip().upper()
    m = _RE_COORDINATE.match(s)
    if not m:
        raise ValueError(f"not an A1 coordinate: {text!r}")
    return _decode(m.group("col"), m.group("row"))


@lru_cache(maxsize=1024)
def _named_range_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(rf"\b{re.escape(name)}\b", re.IGNORECASE)


def extract_referenced_sheets(
    formula: str,
    sheet_names: Collection[str],
    named_ranges: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """
    Return the sheets a formula reads from, in first-seen order, without duplicates.

    Only names present in `sheet_names` are returned. `named_ranges` maps a
    named-range identifier to the sheet it resolves to; names are matched as
    whole words, case-insensitively.
    """
    if not formula:
        return []

    known = sheet_names if isinstance(sheet_names, (set, frozenset)) else set(sheet_names)
    found: Dict[str, None] = {}

    for m in _RE_QUOTED_SHEET.finditer(formula):
        name = _unquote_sheet(m.group("qs"))
        if name in known:
            found.setdefault(name)

    for m in _RE_UNQUOTED_SHEET.finditer(formula):
        name = m.group("us")
        if name in known:
            found.setdefault(name)

    if named_ranges:
        for name, sheet in named_ranges.items():
            if sheet in known and _named_range_pattern(name).search(formula):
                found.setdefault(sheet)

    return list(found)


def iter_cell_references(formula: str) -> Iterator[CellRef]:
    """
    Yield every A1 cell/range occurrence in a formula, qualified or not.
    Occurrences whose column letters cannot be decoded are skipped.
    """
    if not formula:
        return

    for m in _RE_A1_REF.finditer(formula):
        qs = m.group("qs")
        sheet = _unquote_sheet(qs) if qs is not None else m.group("us")
        try:
            start = _decode(m.group("col"), m.group("row"))
            end = None
            if m.group("end_col") and m.group("end_row"):
                end = _decode(m.group("end_col"), m.group("end_row"))
        except ValueError:
            logger.debug("Skipping undecodable reference %r", m.group(0))
            continue
        yield CellRef(raw=m.group(0), sheet=sheet, start=start, end=end)
