# sheetdeps/cli/main.py
from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sheetdeps.core.config import cfg_get, load_config
from sheetdeps.core.dependencies import SheetDependencies, build_dependencies
from sheetdeps.core.dependents import DependentRecord, find_dependents
from sheetdeps.core.errors import DependentsError, MalformedWorkbook
from sheetdeps.core.workbook import load_workbook_model
from sheetdeps.reporting.markdown_report import render_markdown_report
from sheetdeps.reporting.mermaid import DIRECTIONS, render_mermaid

logger = logging.getLogger("sheetdeps")

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_BAD_INPUT = 2
EXIT_MALFORMED = 3


def _configure_logging(cfg: Dict[str, Any], verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level_name = str(cfg_get(cfg, "app.logging.level", "WARNING") or "WARNING").upper()
        level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _resolve_output_path(workbook_path: str, out_dir: str, suffix: str) -> Path:
    """<out_dir or workbook folder>/<workbook_stem><suffix>"""
    wb = Path(workbook_path)
    base = Path(out_dir) if out_dir else wb.parent
    return (base / f"{wb.stem}{suffix}").resolve()


def build_report(
    workbook_path: str,
    direction: Optional[str] = None,
    cfg: Optional[Dict[str, Any]] = None,
) -> Tuple[str, SheetDependencies]:
    """
    Load a workbook and render its Markdown dependency report.
    Returns: (markdown, dependencies)
    """
    cfg = cfg if cfg is not None else load_config()
    workbook = load_workbook_model(workbook_path)
    deps = build_dependencies(workbook)

    graph_text = render_mermaid(
        workbook,
        deps.dependency_map,
        direction=direction or str(cfg_get(cfg, "app.graph.direction", "TD") or "TD"),
    )
    markdown = render_markdown_report(
        workbook,
        deps,
        graph_text,
        max_per_group=int(cfg_get(cfg, "app.report.max_formulas_per_group", 10) or 10),
        max_cycles=int(cfg_get(cfg, "app.graph.max_cycles", 25) or 25),
    )
    return markdown, deps


def run_report(
    workbook_path: str,
    out_dir: str = "",
    direction: Optional[str] = None,
    cfg: Optional[Dict[str, Any]] = None,
) -> str:
    """Write the report next to the workbook (or into out_dir). Returns the report path."""
    cfg = cfg if cfg is not None else load_config()
    markdown, _deps = build_report(workbook_path, direction=direction, cfg=cfg)

    suffix = str(cfg_get(cfg, "app.output.report_suffix", ".dependencies.md") or ".dependencies.md")
    out_path = _resolve_output_path(workbook_path, out_dir, suffix)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(markdown, encoding="utf-8")
    logger.info("Report written to %s", out_path)
    return str(out_path)


def run_dependents(workbook_path: str, sheet: str, cell: str) -> List[DependentRecord]:
    workbook = load_workbook_model(workbook_path)
    return find_dependents(workbook, sheet, cell)


def _format_dependents(records: List[DependentRecord]) -> str:
    if not records:
        return "No dependents found."
    header = ("Sheet Name", "Coordinates", "Formula")
    rows = [(r.sheet, r.coordinate, r.formula) for r in records]
    w_sheet = max(len(header[0]), *(len(r[0]) for r in rows))
    w_cell = max(len(header[1]), *(len(r[1]) for r in rows))
    out = [f"{header[0]:<{w_sheet}}  {header[1]:<{w_cell}}  {header[2]}"]
    for sheet, coord, formula in rows:
        out.append(f"{sheet:<{w_sheet}}  {coord:<{w_cell}}  {formula}")
    return "\n".join(out)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sheetdeps", description="sheetdeps - workbook sheet dependency analysis")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--config", dest="config_path", default="", help="Path to an alternate rules.yaml")

    # Same options after the subcommand; SUPPRESS keeps the top-level values when omitted.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="count", default=argparse.SUPPRESS, help="Increase log verbosity (-v, -vv)")
    common.add_argument("--config", dest="config_path", default=argparse.SUPPRESS, help="Path to an alternate rules.yaml")
    sub = parser.add_subparsers(dest="command")

    p_report = sub.add_parser("report", parents=[common], help="Write a Markdown dependency report with a Mermaid graph")
    p_report.add_argument("workbook", help="Path to .xlsx/.xlsm workbook")
    p_report.add_argument("-o", "--out", dest="out_dir", default="", help="Output directory (default: workbook folder)")
    p_report.add_argument("--direction", choices=DIRECTIONS, default=None, help="Graph direction (default from config)")
    p_report.add_argument("--stdout", action="store_true", help="Print the report instead of writing a file")

    p_deps = sub.add_parser("dependents", parents=[common], help="List formulas that depend on a cell")
    p_deps.add_argument("workbook", help="Path to .xlsx/.xlsm workbook")
    p_deps.add_argument("sheet", help="Sheet containing the target cell")
    p_deps.add_argument("cell", help="Target cell coordinate, e.g. B2 or $B$2")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_BAD_INPUT

    cfg = load_config(args.config_path or None)
    _configure_logging(cfg, int(args.verbose))

    try:
        if args.command == "report":
            if args.stdout:
                markdown, _deps = build_report(args.workbook, direction=args.direction, cfg=cfg)
                print(markdown)
            else:
                out_path = run_report(args.workbook, out_dir=args.out_dir, direction=args.direction, cfg=cfg)
                print(f"Markdown: {out_path}")
            return EXIT_OK

        records = run_dependents(args.workbook, args.sheet, args.cell)
        print(_format_dependents(records))
        return EXIT_OK
    except MalformedWorkbook as e:
        print(f"ERROR: Error parsing XLSX file. {e}")
        return EXIT_MALFORMED
    except DependentsError as e:
        print(f"ERROR: {e}")
        return EXIT_BAD_INPUT
    except Exception as e:
        print("ERROR:", e)
        traceback.print_exc()
        return EXIT_UNEXPECTED


if __name__ == "__main__":
    raise SystemExit(main())
