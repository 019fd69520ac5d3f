"""
End-to-end tests for the finplan command-line interface.
"""

import json

import pytest

from finplanlab.cli import EXAMPLE_STATE, main


@pytest.fixture
def state_file(tmp_path, capsys):
    """Write the bundled example state to a JSON file."""
    assert main(["example"]) == 0
    printed = capsys.readouterr().out
    assert json.loads(printed) == EXAMPLE_STATE
    path = tmp_path / "state.json"
    path.write_text(printed)
    return str(path)


def _run_json(capsys, argv):
    code = main(argv)
    return code, json.loads(capsys.readouterr().out)


class TestCli:
    """Each subcommand against the example state."""

    def test_validate_example_is_clean(self, state_file, capsys):
        code, report = _run_json(
            capsys, ["validate", "-i", state_file, "--current-year", "2026", "--format", "json"]
        )
        assert code == 0
        assert report["is_valid"] is True
        assert report["errors"] == []

    def test_validate_human_output(self, state_file, capsys):
        assert main(["validate", "-i", state_file, "--current-year", "2026"]) == 0
        assert "Validation passed" in capsys.readouterr().out

    def test_validate_missing_file(self, tmp_path, capsys):
        code, payload = _run_json(
            capsys, ["validate", "-i", str(tmp_path / "nope.json"), "--format", "json"]
        )
        assert code == 1
        assert payload["is_valid"] is False

    def test_project_json(self, state_file, capsys):
        code, payload = _run_json(
            capsys,
            [
                "project",
                "-i",
                state_file,
                "--current-year",
                "2026",
                "--liquidation-order",
                "savings",
                "gold",
                "mutualFunds",
                "--json",
            ],
        )
        assert code == 0
        summary = payload["summary"]
        assert summary["years"] == 53
        assert summary["start_year"] == 2027
        assert summary["end_year"] == 2079
        assert {row["goal_id"] for row in payload["goals"]} == {"edu", "ret"}

    def test_project_table_and_output_file(self, state_file, tmp_path, capsys):
        out = tmp_path / "projection.json"
        assert main(["project", "-i", state_file, "--current-year", "2026", "-o", str(out)]) == 0
        printed = capsys.readouterr().out
        assert "Goal achievement" in printed
        saved = json.loads(out.read_text())
        assert len(saved["timeline"]) == 53
        assert saved["timeline"][0]["year"] == 2027

    def test_project_retirement_switches(self, state_file, tmp_path, capsys):
        default_out = tmp_path / "default.json"
        stopped_out = tmp_path / "stopped.json"
        base = ["project", "-i", state_file, "--current-year", "2026"]
        assert main([*base, "-o", str(default_out)]) == 0
        assert main([*base, "--stop-income", "--stop-expenses", "-o", str(stopped_out)]) == 0
        capsys.readouterr()

        default_rows = {r["year"]: r for r in json.loads(default_out.read_text())["timeline"]}
        stopped_rows = {r["year"]: r for r in json.loads(stopped_out.read_text())["timeline"]}
        # Retirement year of the example household is 2054
        assert default_rows[2060]["inflow"] > 0
        assert default_rows[2060]["expenses"] > 0
        assert stopped_rows[2053]["inflow"] == pytest.approx(default_rows[2053]["inflow"])
        assert stopped_rows[2060]["inflow"] == 0
        assert stopped_rows[2060]["expenses"] == 0

    def test_project_bad_bucket(self, state_file, capsys):
        code = main(
            ["project", "-i", state_file, "--current-year", "2026", "--liquidation-order", "crypto"]
        )
        assert code == 1
        assert "Bucket" in capsys.readouterr().err

    def test_amortize_yearly_json(self, state_file, capsys):
        code, payload = _run_json(
            capsys,
            ["amortize", "-i", state_file, "--current-year", "2026", "--yearly", "--json"],
        )
        assert code == 0
        home = payload["home"]
        assert home["basis"] == "months"
        assert home["converged"] is True
        assert home["months_remaining"] < 216
        assert home["schedule"][0]["year"] == 2026
        assert home["schedule"][0]["year_index"] == 1

    def test_amortize_prepayment_and_unknown_loan(self, state_file, capsys):
        assert main(["amortize", "-i", state_file, "--extra", "1000000"]) == 0
        assert "home: EMI" in capsys.readouterr().out
        assert main(["amortize", "-i", state_file, "--loan", "car"]) == 1

    def test_audit_json(self, state_file, capsys):
        code, payload = _run_json(
            capsys, ["audit", "-i", state_file, "--current-year", "2026", "--json"]
        )
        assert code == 0
        assert payload["summary"]["monthly_income"] == 160_000
        assert payload["recommendations"]
        assert all("code" in rec for rec in payload["recommendations"])
        assert [g["goal_id"] for g in payload["goals"]] == ["edu", "ret"]
        assert payload["goals"][0]["start_year"] == 2036

    def test_risk(self, capsys):
        code, profile = _run_json(capsys, ["risk", "3", "3", "3", "3", "3"])
        assert code == 0
        assert profile["score"] == 100
        assert profile["level"] == "Very Aggressive"

    def test_risk_wrong_answer_count(self, capsys):
        assert main(["risk", "1", "2"]) == 1
        assert "Expected 5 answers" in capsys.readouterr().err
