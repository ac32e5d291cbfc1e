"""Tests for the command line entry point and configuration loading."""

from __future__ import annotations

from pathlib import Path

from sheetdeps.cli.main import (
    EXIT_BAD_INPUT,
    EXIT_MALFORMED,
    EXIT_OK,
    build_report,
    main,
    run_report,
)
from sheetdeps.core.config import DEFAULT_CONFIG_PATH, cfg_get, load_config


class TestConfig:
    def test_default_config_loads(self):
        cfg = load_config()
        assert DEFAULT_CONFIG_PATH.name == "rules.yaml"
        assert cfg_get(cfg, "app.report.max_formulas_per_group") == 10
        assert cfg_get(cfg, "app.graph.direction") == "TD"

    def test_missing_config_falls_back_to_empty(self, temp_dir):
        assert load_config(temp_dir / "missing.yaml") == {}

    def test_non_mapping_config(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert load_config(path) == {}

    def test_cfg_get_defaults(self):
        cfg = {"app": {"graph": {"direction": "LR"}}}
        assert cfg_get(cfg, "app.graph.direction") == "LR"
        assert cfg_get(cfg, "app.graph.missing", 7) == 7
        assert cfg_get(cfg, "app.graph.direction.deeper", "x") == "x"
        assert cfg_get(cfg, "", "d") == "d"


class TestReportCommand:
    def test_build_report(self, summary_workbook):
        markdown, deps = build_report(str(summary_workbook), cfg={})
        assert deps.dependency_map["Summary"] == {"Data Entry", "Lookup", "Archive"}
        assert "### Empty\n- No data in this sheet." in markdown
        assert "- Visibility: veryHidden" in markdown
        assert "    Archive[Archive]:::veryHidden" in markdown
        assert "## Circular Dependencies\n\n- Summary -> Data Entry -> Summary" in markdown

    def test_config_controls_direction_and_cap(self, summary_workbook):
        cfg = {"app": {"graph": {"direction": "LR"}, "report": {"max_formulas_per_group": 1}}}
        markdown, _deps = build_report(str(summary_workbook), cfg=cfg)
        assert "```mermaid\ngraph LR" in markdown
        assert "- ... 1 more formulas not shown for Lookup." in markdown

    def test_run_report_writes_file(self, summary_workbook, temp_dir):
        out_dir = temp_dir / "out"
        path = Path(run_report(str(summary_workbook), out_dir=str(out_dir), cfg={}))
        assert path == (out_dir / "summary.dependencies.md").resolve()
        assert path.read_text(encoding="utf-8").startswith("# XLSX Dependency Analysis")

    def test_main_report(self, summary_workbook, temp_dir, capsys):
        rc = main(["report", str(summary_workbook), "-o", str(temp_dir), "--direction", "LR"])
        out = capsys.readouterr().out
        assert rc == EXIT_OK
        assert out.startswith("Markdown: ")
        assert "graph LR" in (temp_dir / "summary.dependencies.md").read_text(encoding="utf-8")

    def test_main_report_stdout(self, summary_workbook, capsys):
        rc = main(["report", str(summary_workbook), "--stdout"])
        assert rc == EXIT_OK
        assert "# XLSX Dependency Analysis" in capsys.readouterr().out

    def test_main_malformed_workbook(self, not_a_workbook, capsys):
        rc = main(["report", str(not_a_workbook), "--stdout"])
        assert rc == EXIT_MALFORMED
        assert "Error parsing XLSX file." in capsys.readouterr().out

    def test_main_corrupt_xml_parts(self, corrupt_xml_workbook, capsys):
        rc = main(["report", str(corrupt_xml_workbook), "--stdout"])
        assert rc == EXIT_MALFORMED
        assert "Error parsing XLSX file." in capsys.readouterr().out

    def test_config_after_subcommand(self, summary_workbook, temp_dir, capsys):
        cfg_path = temp_dir / "lr.yaml"
        cfg_path.write_text("app:\n  graph:\n    direction: LR\n", encoding="utf-8")
        rc = main(["report", str(summary_workbook), "--stdout", "--config", str(cfg_path)])
        assert rc == EXIT_OK
        assert "```mermaid\ngraph LR" in capsys.readouterr().out

    def test_config_before_subcommand(self, summary_workbook, temp_dir, capsys):
        cfg_path = temp_dir / "lr.yaml"
        cfg_path.write_text("app:\n  graph:\n    direction: LR\n", encoding="utf-8")
        rc = main(["--config", str(cfg_path), "-v", "report", str(summary_workbook), "--stdout"])
        assert rc == EXIT_OK
        assert "```mermaid\ngraph LR" in capsys.readouterr().out

    def test_main_without_command(self, capsys):
        assert main([]) == EXIT_BAD_INPUT


class TestDependentsCommand:
    def test_lists_dependents(self, summary_workbook, capsys):
        rc = main(["dependents", str(summary_workbook), "Lookup", "$B$2"])
        out = capsys.readouterr().out
        assert rc == EXIT_OK
        assert out.splitlines()[0].split() == ["Sheet", "Name", "Coordinates", "Formula"]
        assert "Summary" in out and "='Data Entry'!A1 + Lookup!B2" in out

    def test_no_dependents(self, summary_workbook, capsys):
        rc = main(["dependents", str(summary_workbook), "Lookup", "Z99"])
        assert rc == EXIT_OK
        assert capsys.readouterr().out.strip() == "No dependents found."

    def test_invalid_coordinate(self, summary_workbook, capsys):
        rc = main(["dependents", str(summary_workbook), "Summary", "1A"])
        assert rc == EXIT_BAD_INPUT
        assert "Invalid cell coordinate" in capsys.readouterr().out
