"""
Tests for the formflow CLI.

Validates that:
1. lint exits 0 for a clean schema and 1 when it finds errors
2. walk follows the same decisions as the transition engine
3. compute writes computed fields into the printed data
4. Load failures are reported with exit code 1, never a traceback
"""

import json
from pathlib import Path

import pytest

from formflow.cli import main

SAMPLE_FORM = Path(__file__).parent / "fixtures" / "sample_form.yaml"


@pytest.fixture
def adult_file(tmp_path):
    path = tmp_path / "adult.json"
    path.write_text(json.dumps({"age": 30, "income": 60000}))
    return str(path)


@pytest.fixture
def order_file(tmp_path):
    path = tmp_path / "order.yml"
    path.write_text("price: 3\nqty: 3\nfirst: ada\nlast: Lovelace\n")
    return str(path)


@pytest.fixture
def broken_schema(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text(
        "$id: broken\n"
        "steps: [{id: a}, {id: b}, {id: c}]\n"
        "transitions:\n"
        "  - {from: a, to: b, default: true}\n"
        "  - {from: a, to: c, default: true}\n"
    )
    return str(path)


class TestLintCommand:
    """formflow lint"""

    def test_clean_schema(self, capsys):
        """A clean schema passes."""
        assert main(["lint", str(SAMPLE_FORM)]) == 0
        assert "No issues found" in capsys.readouterr().out

    def test_errors_fail(self, broken_schema, capsys):
        """Errors give exit code 1 and are listed."""
        assert main(["lint", broken_schema]) == 1
        assert "1 error(s), 0 warning(s)" in capsys.readouterr().out

    def test_json_output(self, broken_schema, capsys):
        """--json prints a machine-readable report."""
        assert main(["lint", broken_schema, "--json"]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "fail"
        assert report["errors"][0]["keyword"] == "navigation:multiple-defaults"


class TestWalkCommand:
    """formflow walk"""

    def test_walk_to_terminal(self, adult_file, capsys):
        """Without --end the walk stops at the terminal review step."""
        assert main(["walk", str(SAMPLE_FORM), "--data", adult_file, "--json"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["path"] == ["intro", "employment", "contact", "review"]
        assert [h["type"] for h in report["history"]] == ["conditional", "conditional", "default"]

    def test_walk_to_end(self, adult_file, capsys):
        """--end reports the path between two steps."""
        code = main([
            "walk", str(SAMPLE_FORM), "--data", adult_file,
            "--start", "employment", "--end", "review", "--json",
        ])
        assert code == 0
        assert json.loads(capsys.readouterr().out)["path"] == ["employment", "contact", "review"]

    def test_unreachable_end(self, adult_file, capsys):
        """An end that is never reached fails."""
        assert main(["walk", str(SAMPLE_FORM), "--data", adult_file, "--end", "done"]) == 1
        assert "No path" in capsys.readouterr().out

    def test_step_limit(self, adult_file):
        """Running out of steps before a dead end fails."""
        assert main(["walk", str(SAMPLE_FORM), "--data", adult_file, "--max-steps", "1"]) == 1

    def test_table_output(self, adult_file, capsys):
        """The default output is a table of visited steps."""
        assert main(["walk", str(SAMPLE_FORM), "--data", adult_file]) == 0
        out = capsys.readouterr().out
        assert "Navigation Path" in out
        assert "employment" in out


class TestComputeCommand:
    """formflow compute"""

    def test_compute_json(self, order_file, capsys):
        """Computed values are written into the printed data."""
        assert main(["compute", str(SAMPLE_FORM), "--data", order_file, "--json"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "pass"
        assert report["data"]["total"] == 9
        assert report["data"]["display_name"] == "ADA Lovelace"
        assert [r["path"] for r in report["results"]] == ["$.total", "$.total_with_tax", "$.display_name"]

    def test_fallback_fails(self, tmp_path, capsys):
        """A field that fell back gives exit code 1."""
        data = tmp_path / "bad.yml"
        data.write_text("price: null\nqty: 2\nfirst: a\nlast: b\n")
        assert main(["compute", str(SAMPLE_FORM), "--data", str(data), "--json"]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "fail"
        assert "error" in report["results"][0]


class TestCliErrors:
    """Failures outside the engines."""

    def test_missing_schema(self, tmp_path, capsys):
        """A missing schema file is reported, not raised."""
        assert main(["lint", str(tmp_path / "nope.yml")]) == 1
        assert "FAIL" in capsys.readouterr().out

    def test_data_root_must_be_mapping(self, tmp_path):
        """A list as data is rejected."""
        data = tmp_path / "list.yml"
        data.write_text("- 1\n- 2\n")
        assert main(["compute", str(SAMPLE_FORM), "--data", str(data)]) == 1

    def test_no_command(self, capsys):
        """Running without a command prints a hint."""
        assert main([]) == 1
        assert "No command given" in capsys.readouterr().out
