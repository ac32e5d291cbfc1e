"""
sheetdeps/core/graph.py

Sheet-level dependency graph built from the dependency map.
We do NOT evaluate formulas; an edge only records that some formula in one
sheet mentions another sheet.

Public API:
  - build_sheet_graph(workbook, dependency_map) -> nx.DiGraph
      nodes: sheet names (attrs: visibility, order)
      edges: sheet -> sheet it depends on
  - dependencies_of(g, sheet) -> list[str]   (sheets it reads from)
  - dependents_of(g, sheet) -> list[str]     (sheets reading from it)
  - detect_sheet_cycles(g, limit=25) -> list[list[str]]
"""

from __future__ import annotations

from itertools import islice
from typing import Dict, Iterable, List, Set

import networkx as nx

from sheetdeps.core.workbook import Workbook


def build_sheet_graph(workbook: Workbook, dependency_map: Dict[str, Set[str]]) -> nx.DiGraph:
    g = nx.DiGraph()
    for order, sheet in enumerate(workbook.sheets):
        g.add_node(sheet.name, visibility=sheet.visibility, order=order)

    for sheet_name in workbook.sheet_names:
        for dep in dependency_map.get(sheet_name, set()):
            if dep == sheet_name or not g.has_node(dep):
                continue
            g.add_edge(sheet_name, dep)

    return g


def _in_workbook_order(g: nx.DiGraph, nodes: Iterable[str]) -> List[str]:
    return sorted(nodes, key=lambda n: g.nodes[n].get("order", 0))


def dependencies_of(g: nx.DiGraph, sheet: str) -> List[str]:
    """Sheets whose cells are read by formulas in `sheet`."""
    if not g.has_node(sheet):
        return []
    return _in_workbook_order(g, g.successors(sheet))


def dependents_of(g: nx.DiGraph, sheet: str) -> List[str]:
    """Sheets with formulas that read from `sheet`."""
    if not g.has_node(sheet):
        return []
    return _in_workbook_order(g, g.predecessors(sheet))


def detect_sheet_cycles(g: nx.DiGraph, limit: int = 25) -> List[List[str]]:
    """
    Return up to `limit` circular sheet dependencies, each a list of sheet
    names rotated to start at the earliest sheet in workbook order.
    """
    out: List[List[str]] = []
    for cyc in islice(nx.simple_cycles(g), max(0, int(limit))):
        first = min(range(len(cyc)), key=lambda i: g.nodes[cyc[i]].get("order", 0))
        out.append([str(x) for x in cyc[first:] + cyc[:first]])
    out.sort(key=lambda c: [g.nodes[n].get("order", 0) for n in c])
    return out
