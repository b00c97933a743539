"""
Tests for the command-line entry point
"""

import json

import pytest

from main import build_parser, main


def run_cli(capsys, *argv):
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, out


class TestParser:
    """Tests for argument parsing"""

    def test_requires_household(self):
        """Test --household is mandatory"""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["optimize", "--user", "u", "--date", "2025-01-15"])

    def test_block_warning_needs_one_target(self):
        """Test --task-kwh and --task-id are mutually exclusive"""
        with pytest.raises(SystemExit):
            build_parser().parse_args([
                "--household", "h.json", "blockwarning", "--user", "u",
                "--as-of", "2025-01-10", "--task-kwh", "3", "--task-id", "t",
            ])


class TestCommands:
    """Tests for each subcommand"""

    def test_optimize(self, capsys, household_file):
        """Test the optimize command prints the plan"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "optimize", "--user", "user-tou", "--date", "2025-01-15",
        )

        assert code == 0
        body = json.loads(out)
        assert body["userId"] == "user-tou"
        assert body["date"] == "2025-01-15"
        assert body["plan"][0]["taskId"] == "washer-1"
        assert body["plan"][0]["suggestedStart"] == "2025-01-15T22:30:00+05:30"
        assert body["plan"][0]["estSavingLKR"] == pytest.approx(22.5)
        assert body["infeasible"][0]["taskId"] == "iron-1"

    def test_optimize_text(self, capsys, household_file):
        """Test the text format prints the summary"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "optimize", "--user", "user-tou", "--date", "2025-01-15", "--format", "text",
        )

        assert code == 0
        assert "SCHEDULE FOR user-tou ON 2025-01-15" in out
        assert "iron-1: NOT SCHEDULED" in out

    def test_variants(self, capsys, household_file):
        """Test the variants command prints four plans"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "variants", "--user", "user-tou", "--date", "2025-01-15",
        )

        assert code == 0
        body = json.loads(out)
        assert set(body) == {"plan", "balanced", "cheapest", "greenest"}
        assert body["greenest"] == []

    def test_preview(self, capsys, household_file):
        """Test the preview command"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "preview", "--user", "user-block", "--kwh", "100",
        )

        assert code == 0
        body = json.loads(out)
        assert body["estimatedKWh"] == 100
        assert body["estimatedCostLKR"] == pytest.approx(2640.0)
        assert "exportCredit" not in body

    def test_preview_with_export(self, capsys, household_file):
        """Test the preview command settles solar export"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "preview", "--user", "user-block", "--kwh", "100", "--exported-kwh", "20",
        )

        assert code == 0
        body = json.loads(out)
        assert body["exportCredit"]["settlementRule"] == "CARRY_FORWARD_UNITS"
        assert body["exportCredit"]["nettedKWh"] == pytest.approx(20.0)

    def test_project(self, capsys, household_file):
        """Test the project command"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "project", "--user", "user-block", "--as-of", "2025-01-10",
        )

        assert code == 0
        body = json.loads(out)
        assert body["totalKWh"] == pytest.approx(155.0)
        assert body["monthToDateKWh"] == pytest.approx(50.0)
        assert body["cycleStart"] == "2025-01-01"
        assert body["cycleEnd"] == "2025-01-31"
        assert body["treesRequired"] > 0

    def test_block_warning_by_task(self, capsys, household_file):
        """Test the blockwarning command with a stored task"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "blockwarning", "--user", "user-block", "--as-of", "2025-01-10",
            "--task-id", "heater-1",
        )

        assert code == 0
        body = json.loads(out)
        assert body["willCross"] is True
        assert body["nextThresholdKWh"] == 60


class TestErrors:
    """Tests for error output"""

    def test_unknown_user(self, capsys, household_file):
        """Test an unknown user exits 1 with a JSON error"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "optimize", "--user", "nobody", "--date", "2025-01-15",
        )

        assert code == 1
        assert json.loads(out)["error"] == "NotFoundError"

    def test_bad_date(self, capsys, household_file):
        """Test a malformed date names the field"""
        code, out = run_cli(
            capsys, "--household", str(household_file),
            "optimize", "--user", "user-tou", "--date", "tomorrow",
        )

        assert code == 1
        body = json.loads(out)
        assert body["error"] == "MalformedInput"
        assert body["field"] == "date"

    def test_missing_file(self, capsys, tmp_path):
        """Test an unreadable household file"""
        code, out = run_cli(
            capsys, "--household", str(tmp_path / "missing.json"),
            "preview", "--user", "user-tou", "--kwh", "10",
        )

        assert code == 1
        assert json.loads(out)["error"] == "RepositoryError"

    def test_duplicate_appliance_ids(self, capsys, tmp_path, tou_household):
        """Test two appliances sharing an id exit 1 with a JSON error"""
        tou_household["appliances"] = [
            {"id": "washer", "name": "Washer", "ratedPowerW": 500, "cycleMinutes": 60},
            {"id": "washer", "name": "Washer", "ratedPowerW": 500, "cycleMinutes": 60},
        ]
        path = tmp_path / "dupes.json"
        path.write_text(json.dumps(tou_household))

        code, out = run_cli(
            capsys, "--household", str(path),
            "optimize", "--user", "user-tou", "--date", "2025-01-15",
        )

        assert code == 1
        body = json.loads(out)
        assert body["error"] == "MalformedInput"
        assert "appliances" in body["field"]

    def test_duplicate_user_ids(self, capsys, tmp_path, tou_household):
        """Test a file listing the same household twice"""
        path = tmp_path / "twice.json"
        path.write_text(json.dumps({"households": [tou_household, tou_household]}))

        code, out = run_cli(
            capsys, "--household", str(path),
            "optimize", "--user", "user-tou", "--date", "2025-01-15",
        )

        assert code == 1
        assert json.loads(out)["error"] == "DuplicateError"

    def test_invalid_household(self, capsys, tmp_path):
        """Test a household failing validation"""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"userId": "u", "tariff": {"type": "TOU"}}))

        code, out = run_cli(
            capsys, "--household", str(path),
            "preview", "--user", "u", "--kwh", "10",
        )

        assert code == 1
        body = json.loads(out)
        assert body["error"] == "MalformedInput"
        assert body["field"].startswith("tariff")
