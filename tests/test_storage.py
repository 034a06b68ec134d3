"""
Tests for plan persistence.

Covers:
- Saving and loading a plan through the async store
- One active plan per athlete
- Write failures raised as PlanSaveError, read failures as PlanLoadError
"""

import random

import pytest

from runeq.errors import PlanLoadError, PlanSaveError, StorageError
from runeq.planner import TrainingPlanGenerator
from runeq.schemas import UserProfile
from runeq.storage import Base, SqlAlchemyPlanStore, TrainingPlanRecord, init_database


@pytest.fixture
def database_url(tmp_path):
    """SQLite file in a temporary directory."""
    return f"sqlite:///{tmp_path / 'plans.db'}"


@pytest.fixture
def store(database_url):
    return SqlAlchemyPlanStore(database_url)


@pytest.fixture(scope="module")
def plan():
    """Short 10K plan."""
    profile = UserProfile(
        athlete_id="runner_1", race_distance="10K", goal_time="50:00", weeks_available=6
    )
    return TrainingPlanGenerator(rng=random.Random(3)).generate(profile)


class TestPlanStore:
    @pytest.mark.asyncio
    async def test_save_and_load(self, store, plan):
        plan_id = await store.save_plan(plan)
        loaded = await store.load_plan("runner_1")

        assert plan_id >= 1
        assert loaded is not None
        assert loaded.athlete_id == "runner_1"
        assert loaded.weekly_mileage() == plan.weekly_mileage()
        assert loaded.weeks[0].workouts[2].workout.name == plan.weeks[0].workouts[2].workout.name
        assert len(loaded.plan_decisions) == len(plan.plan_decisions)

    @pytest.mark.asyncio
    async def test_unknown_athlete(self, store):
        assert await store.load_plan("nobody") is None

    @pytest.mark.asyncio
    async def test_second_save_replaces_active_plan(self, store, plan, database_url):
        first_id = await store.save_plan(plan)
        second_id = await store.save_plan(plan.model_copy(update={"current_week": 3}))

        assert second_id > first_id
        loaded = await store.load_plan("runner_1")
        assert loaded.current_week == 3

        session = init_database(database_url)
        try:
            records = session.query(TrainingPlanRecord).order_by(TrainingPlanRecord.id).all()
            assert [r.is_active for r in records] == [False, True]
            assert records[1].race_distance == "10k"
            assert records[1].total_weeks == 6
        finally:
            session.close()

    @pytest.mark.asyncio
    async def test_save_failure_wrapped(self, store, plan):
        Base.metadata.drop_all(store.engine)
        with pytest.raises(PlanSaveError, match="Could not save plan for runner_1"):
            await store.save_plan(plan)

    @pytest.mark.asyncio
    async def test_load_failure_wrapped(self, store):
        Base.metadata.drop_all(store.engine)
        with pytest.raises(PlanLoadError, match="Could not load plan for runner_1") as excinfo:
            await store.load_plan("runner_1")
        assert not isinstance(excinfo.value, PlanSaveError)
        assert isinstance(excinfo.value, StorageError)
