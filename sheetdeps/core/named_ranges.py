"""
sheetdeps/core/named_ranges.py

Resolve workbook named ranges to the sheet they point at, so formulas that use
a name instead of an explicit address still produce a sheet dependency.
"""

from __future__ import annotations

import logging
from typing import Dict

from sheetdeps.core.references import extract_referenced_sheets
from sheetdeps.core.workbook import Workbook

logger = logging.getLogger(__name__)


def resolve_named_ranges(workbook: Workbook) -> Dict[str, str]:
    """
    Map lowercase named-range identifier -> sheet name.

    A name spanning several sheets resolves to the first sheet found in its
    reference; a name resolving to no known sheet is left out. Later
    definitions of the same name overwrite earlier ones.
    """
    sheet_names = set(workbook.sheet_names)
    resolved: Dict[str, str] = {}

    for nr in workbook.named_ranges:
        # no named_ranges argument: names referring to names must not recurse
        sheets = extract_referenced_sheets(nr.ref, sheet_names)
        if not sheets:
            logger.debug("Named range %r (%s) resolves to no sheet; skipped", nr.name, nr.ref)
            continue
        if len(sheets) > 1:
            logger.debug("Named range %r spans %s; using %r", nr.name, sheets, sheets[0])
        resolved[nr.name.lower()] = sheets[0]

    return resolved
