"""
sheetdeps/core/errors.py

Hard errors surfaced to callers. Everything else (unknown sheet-like tokens,
unresolvable named ranges, array members without an anchor formula) is a
silent skip inside the engine, never an exception.

    SheetDepsError
    ├── MalformedWorkbook
    └── DependentsError
        ├── InvalidCoordinate
        └── MissingInput
"""

from __future__ import annotations

from typing import Optional


class SheetDepsError(Exception):
    """Base class for all sheetdeps errors."""


class MalformedWorkbook(SheetDepsError):
    """The workbook file could not be opened or parsed."""

    def __init__(self, path: str, details: Optional[str] = None) -> None:
        self.path = path
        self.details = details
        msg = f"Unable to parse workbook: {path}"
        if details:
            msg = f"{msg} ({details})"
        super().__init__(msg)


class DependentsError(SheetDepsError):
    """Bad input for a cell-dependents lookup."""


class InvalidCoordinate(DependentsError):
    def __init__(self, coordinate: str) -> None:
        self.coordinate = coordinate
        super().__init__(
            f"Invalid cell coordinate {coordinate!r}. Please use A1 format (e.g., A1, $B$2)."
        )


class MissingInput(DependentsError):
    def __init__(self, message: str = "Please select a sheet and enter a cell coordinate.") -> None:
        super().__init__(message)
