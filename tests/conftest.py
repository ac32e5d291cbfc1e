"""Pytest fixtures for sheetdeps tests."""

from __future__ import annotations

import tempfile
import zipfile
from pathlib import Path

import pytest
from openpyxl import Workbook as XlWorkbook
from openpyxl.workbook.defined_name import DefinedName
from openpyxl.worksheet.formula import ArrayFormula

from sheetdeps.core.workbook import Cell, Sheet, Workbook


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def summary_model() -> Workbook:
    """Summary reads from 'Data Entry' and Lookup; the other two have no formulas."""
    return Workbook(
        sheets=[
            Sheet(name="Summary", cells={"A1": Cell(formula="='Data Entry'!A1 + Lookup!B2")}),
            Sheet(name="Data Entry"),
            Sheet(name="Lookup"),
        ]
    )


@pytest.fixture
def array_model() -> Workbook:
    """Calc!B2:B4 is an array formula; only the anchor carries the formula text."""
    return Workbook(
        sheets=[
            Sheet(
                name="Calc",
                cells={
                    "B3": Cell(array_range="B2:B4"),
                    "B4": Cell(array_range="B2:B4"),
                    "B2": Cell(formula="=Sheet2!A1", array_range="B2:B4"),
                },
            ),
            Sheet(name="Sheet2", cells={"A1": Cell(formula="=1+1")}),
        ]
    )


@pytest.fixture
def dependents_model() -> Workbook:
    return Workbook(
        sheets=[
            Sheet(
                name="Sheet1",
                cells={
                    "A1": Cell(formula="=10"),
                    "E1": Cell(formula="=SUM(A1:C3)"),
                    "E2": Cell(formula="=B2*2+B2"),
                    "E3": Cell(formula="=$B$2"),
                    "E4": Cell(formula="=Sheet2!B2"),
                },
            ),
            Sheet(
                name="Sheet2",
                cells={
                    "A1": Cell(formula="=Sheet1!A1:C3"),
                    "A2": Cell(formula="=B2"),
                    "A3": Cell(formula="='Sheet1'!B2"),
                    "A4": Cell(formula="=Sheet1!D4"),
                },
            ),
        ]
    )


@pytest.fixture
def summary_workbook(temp_dir) -> Path:
    """Workbook file with cross-sheet formulas, a named range, an array formula and hidden sheets."""
    wb = XlWorkbook()
    ws = wb.active
    ws.title = "Summary"
    ws["A1"] = "='Data Entry'!A1 + Lookup!B2"
    ws["A2"] = "=TaxRate*A1"
    ws["A3"] = "=SUM(A1:A2)"
    ws["C1"] = ArrayFormula("C1:C3", "=Archive!A1:A3*2")

    data = wb.create_sheet("Data Entry")
    data["A1"] = 100
    data["B1"] = "=Summary!A3"

    lookup = wb.create_sheet("Lookup")
    lookup["B2"] = 0.2
    lookup.sheet_state = "hidden"

    archive = wb.create_sheet("Archive")
    archive["A1"] = 1
    archive.sheet_state = "veryHidden"

    wb.create_sheet("Empty")

    wb.defined_names["TaxRate"] = DefinedName("TaxRate", attr_text="Lookup!$B$2")
    wb.defined_names["Nowhere"] = DefinedName("Nowhere", attr_text="Missing!$A$1")

    path = temp_dir / "summary.xlsx"
    wb.save(path)
    wb.close()
    return path


@pytest.fixture
def not_a_workbook(temp_dir) -> Path:
    path = temp_dir / "broken.xlsx"
    path.write_bytes(b"this is not a zip archive")
    return path


@pytest.fixture
def corrupt_xml_workbook(temp_dir) -> Path:
    """A valid zip archive whose XML parts cannot be parsed."""
    path = temp_dir / "corrupt.xlsx"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("[Content_Types].xml", "<not-xml")
    return path
