"""
Tests for the command-line interface.

Covers:
- paces: table output and out-of-range exit
- plan: generation from a profile file and JSON output
- workout, catalog and alternatives commands
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from runeq.cli import app
from runeq.plan_schemas import TrainingPlan

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def runner():
    return CliRunner()


class TestPacesCommand:
    def test_exact_row(self, runner):
        result = runner.invoke(app, ["paces", "Marathon", "4:00:00"])
        assert result.exit_code == 0
        assert "8:32" in result.output
        assert "9:09" in result.output

    def test_out_of_range(self, runner):
        result = runner.invoke(app, ["paces", "Marathon", "7:00:00"])
        assert result.exit_code == 1
        assert "Out of Range" in result.output

    def test_bad_distance(self, runner):
        result = runner.invoke(app, ["paces", "5K", "25:00"])
        assert result.exit_code == 1
        assert "Unsupported race distance" in result.output


class TestPlanCommand:
    def test_writes_plan_json(self, runner, tmp_path):
        output = tmp_path / "plan.json"
        result = runner.invoke(
            app,
            ["plan", "--profile", str(FIXTURES / "beginner_10k.json"), "--output", str(output), "--seed", "1"],
        )

        assert result.exit_code == 0, result.output
        assert "Loaded profile" in result.output
        plan = TrainingPlan.model_validate(json.loads(output.read_text()))
        assert plan.athlete_id == "beginner_10k"
        assert len(plan.weeks) == 8

    def test_invalid_profile_file(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"race_distance": "10K", "goal_time": "fast"}))
        result = runner.invoke(app, ["plan", "--profile", str(bad)])

        assert result.exit_code == 1
        assert "Failed to load profile" in result.output

    def test_goal_out_of_range(self, runner, tmp_path):
        profile = tmp_path / "fast.json"
        profile.write_text(json.dumps({"race_distance": "10K", "goal_time": "20:00"}))
        result = runner.invoke(app, ["plan", "--profile", str(profile)])
        assert result.exit_code == 1


class TestWorkoutCommand:
    def test_prescribe_with_paces(self, runner):
        result = runner.invoke(
            app,
            ["workout", "tempo", "Classic Tempo Run", "-d", "Marathon", "-g", "4:00:00", "--week", "12", "--total-weeks", "12"],
        )
        assert result.exit_code == 0, result.output
        assert "Classic Tempo Run (8:32/mi)" in result.output

    def test_unknown_workout(self, runner):
        result = runner.invoke(app, ["workout", "tempo", "Moonwalk"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestCatalogCommand:
    def test_category(self, runner):
        result = runner.invoke(app, ["catalog", "tempo", "-c", "traditional_tempo"])
        assert result.exit_code == 0
        assert "Classic Tempo Run" in result.output
        assert "workouts in library" in result.output


class TestAlternativesCommand:
    def test_rest_day(self, runner):
        result = runner.invoke(
            app,
            ["alternatives", "--profile", str(FIXTURES / "beginner_10k.json"), "--day", "tuesday", "--seed", "2"],
        )
        assert result.exit_code == 0, result.output
        assert "Light & Easy" in result.output

    def test_bad_week(self, runner):
        result = runner.invoke(
            app,
            ["alternatives", "--profile", str(FIXTURES / "beginner_10k.json"), "--day", "tuesday", "--week", "40"],
        )
        assert result.exit_code == 1
