# sheetdeps/reporting/markdown_report.py
from __future__ import annotations

from typing import Dict, List, Optional

from openpyxl.utils.cell import get_column_letter, range_boundaries

from sheetdeps.core.dependencies import FormulaDetail, SheetDependencies
from sheetdeps.core.graph import build_sheet_graph, dependencies_of, dependents_of, detect_sheet_cycles
from sheetdeps.core.workbook import Sheet, Workbook

DEFAULT_MAX_PER_GROUP = 10


def _md_code(text: str) -> str:
    # pipes would split the table cell
    text = str(text).replace("|", "\\|")
    if "`" in text:
        return "`` " + text + " ``"
    return "`" + text + "`"


def _sheet_extent(sheet: Sheet) -> List[str]:
    if not sheet.dimension:
        return ["- No data in this sheet."]
    try:
        _min_col, _min_row, max_col, max_row = range_boundaries(sheet.dimension)
    except (TypeError, ValueError):
        return ["- No data in this sheet."]
    return [
        f"- Rows: {max_row}",
        f"- Max Column: {get_column_letter(max_col)}",
        f"- Visibility: {sheet.visibility.value}",
    ]


def _name_list(title: str, names: List[str]) -> List[str]:
    if not names:
        return [f"- {title}: None"]
    return [f"- {title}:"] + [f"  - {n}" for n in names]


def _formula_block(details: List[FormulaDetail], max_per_group: int) -> List[str]:
    if not details:
        return ["No formulas in this sheet reference other sheets."]

    by_ref: Dict[str, List[FormulaDetail]] = {}
    for d in details:
        for ref in d.referenced_sheets:
            by_ref.setdefault(ref, []).append(d)

    lines = [
        "<details>",
        f"<summary>Formulas referencing other sheets ({len(details)} found)</summary>",
        "",
    ]
    for ref in sorted(by_ref):
        group = by_ref[ref]
        lines.append(f"#### Referencing: {ref}")
        lines.append("| Cell | Formula |")
        lines.append("|---|---|")
        for d in group[:max_per_group]:
            lines.append(f"| {_md_code(d.coordinate)} | {_md_code(d.formula)} |")
        if len(group) > max_per_group:
            lines.append(f"- ... {len(group) - max_per_group} more formulas not shown for {ref}.")
        lines.append("")
    lines.append("</details>")
    return lines


def render_markdown_report(
    workbook: Workbook,
    deps: SheetDependencies,
    graph_text: str,
    max_per_group: int = DEFAULT_MAX_PER_GROUP,
    max_cycles: int = 25,
    title: Optional[str] = None,
) -> str:
    """
    Markdown dependency report: per-sheet summary, grouped formula details
    (capped at `max_per_group` rows per referenced sheet), circular sheet
    dependencies and the Mermaid graph.
    """
    max_per_group = max(1, int(max_per_group))
    g = build_sheet_graph(workbook, deps.dependency_map)

    lines: List[str] = [f"# {title or 'XLSX Dependency Analysis'}", "", "## Sheets", ""]

    for sheet in workbook.sheets:
        lines.append(f"### {sheet.name}")
        lines.extend(_sheet_extent(sheet))
        lines.extend(_name_list("Used by this sheet", dependencies_of(g, sheet.name)))
        lines.extend(_name_list("Uses this sheet", dependents_of(g, sheet.name)))
        lines.extend(_formula_block(deps.formula_details.get(sheet.name, []), max_per_group))
        lines.append("")

    cycles = detect_sheet_cycles(g, limit=max_cycles)
    if cycles:
        lines.append("## Circular Dependencies")
        lines.append("")
        for cyc in cycles:
            lines.append("- " + " -> ".join(cyc + cyc[:1]))
        lines.append("")

    lines.append("## Dependency Graph")
    lines.append("")
    lines.append("```mermaid")
    lines.append(graph_text)
    lines.append("```")
    return "\n".join(lines)
