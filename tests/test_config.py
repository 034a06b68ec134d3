"""
Tests for settings, plan rules and logging setup.

Covers:
- RUNEQ_* environment settings
- PlanRules defaults and lookups
- JSON and text log formatting
"""

import json
import logging

import pytest
from pydantic import ValidationError

from runeq.config import PlanRules, Settings
from runeq.logging_config import JSONFormatter, setup_logging
from runeq.schemas import ExperienceLevel, RaceDistance


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RUNEQ_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.DATABASE_URL == "sqlite:///runeq_plans.db"
        assert settings.LOG_FORMAT == "text"
        assert settings.DEFAULT_SEED is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("RUNEQ_DATABASE_URL", "sqlite:///other.db")
        monkeypatch.setenv("RUNEQ_DEFAULT_SEED", "11")
        monkeypatch.setenv("RUNEQ_API_PORT", "9000")

        settings = Settings(_env_file=None)
        assert settings.DATABASE_URL == "sqlite:///other.db"
        assert settings.DEFAULT_SEED == 11
        assert settings.API_PORT == 9000

    def test_invalid_log_format(self, monkeypatch):
        monkeypatch.setenv("RUNEQ_LOG_FORMAT", "xml")
        with pytest.raises(ValidationError, match="LOG_FORMAT must be"):
            Settings(_env_file=None)


class TestPlanRules:
    def test_phase_split_by_length(self):
        rules = PlanRules()
        assert rules.phase_split_for(8) is rules.short_plan_phases
        assert rules.phase_split_for(12) is rules.medium_plan_phases
        assert rules.phase_split_for(13) is rules.long_plan_phases

    def test_race_template_index(self):
        template = PlanRules().race_templates[RaceDistance.MARATHON]
        assert template.index_for(6) == 2
        assert template.peak_weekly_mileage[template.index_for(6)] == 60

    def test_unsupported_runs(self):
        template = PlanRules().race_templates[RaceDistance.TEN_K]
        with pytest.raises(ValueError, match="Choose from: \\[3, 4, 5, 6\\]"):
            template.index_for(7)

    def test_experience_scaling(self):
        scaling = PlanRules().experience_scaling
        assert scaling[ExperienceLevel.BEGINNER].peak_mileage == 0.8
        assert scaling[ExperienceLevel.ADVANCED].long_run == 1.1
        assert scaling[ExperienceLevel.INTERMEDIATE].peak_mileage == 1.0

    def test_step_back_interval_bounds(self):
        with pytest.raises(ValidationError):
            PlanRules(step_back_interval=5)


class TestLogging:
    def test_json_formatter(self):
        record = logging.LogRecord(
            name="runeq.planner",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Generated %d-week plan",
            args=(16,),
            exc_info=None,
        )
        record.extra_fields = {"athlete_id": "a1"}

        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "Generated 16-week plan"
        assert data["level"] == "INFO"
        assert data["logger"] == "runeq.planner"
        assert data["athlete_id"] == "a1"

    def test_setup_json(self, restore_root_logger):
        root = setup_logging("debug", "json")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_setup_text(self, restore_root_logger):
        root = setup_logging("warning", "text")
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
