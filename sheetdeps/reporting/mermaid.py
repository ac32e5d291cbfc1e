# sheetdeps/reporting/mermaid.py
from __future__ import annotations

import re
from typing import Dict, List, Set

from sheetdeps.core.workbook import SheetVisibility, Workbook

DIRECTIONS = ("TD", "LR")

_CLASS_DEFS = [
    "classDef visible fill:#afa,stroke:#333,stroke-width:2px;",
    "classDef hidden fill:#fca,stroke:#333,stroke-width:2px;",
    "classDef veryHidden fill:#fcc,stroke:#333,stroke-width:2px;",
]

_RE_UNSAFE_ID = re.compile(r"[^0-9A-Za-z_]")
_RE_UNSAFE_LABEL = re.compile(r"[\[\](){}<>|\"#;:]")


def node_ids(sheet_names: List[str]) -> Dict[str, str]:
    """Mermaid-safe, unique node id per sheet ("Data Entry" -> "Data_Entry")."""
    ids: Dict[str, str] = {}
    used: Set[str] = set()
    for name in sheet_names:
        base = _RE_UNSAFE_ID.sub("_", name) or "sheet"
        candidate = base
        n = 2
        while candidate in used:
            candidate = f"{base}_{n}"
            n += 1
        used.add(candidate)
        ids[name] = candidate
    return ids


def _label(name: str) -> str:
    if _RE_UNSAFE_LABEL.search(name):
        return '"' + name.replace('"', "#quot;") + '"'
    return name


def render_mermaid(workbook: Workbook, dependency_map: Dict[str, Set[str]], direction: str = "TD") -> str:
    """
    Mermaid flowchart of sheet dependencies. Edges point from the sheet being
    read to the sheet whose formulas read it.
    """
    direction = (direction or "TD").upper()
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")

    ids = node_ids(workbook.sheet_names)
    lines = [f"graph {direction}", *_CLASS_DEFS]

    for sheet in workbook.sheets:
        visibility = sheet.visibility or SheetVisibility.VISIBLE
        lines.append(f"    {ids[sheet.name]}[{_label(sheet.name)}]:::{visibility.value}")

    order = {name: i for i, name in enumerate(workbook.sheet_names)}
    for sheet_name in workbook.sheet_names:
        deps = [d for d in dependency_map.get(sheet_name, set()) if d in order and d != sheet_name]
        for dep in sorted(deps, key=order.__getitem__):
            lines.append(f"    {ids[dep]} --> {ids[sheet_name]}")

    return "\n".join(lines)
