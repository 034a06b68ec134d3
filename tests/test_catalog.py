"""
Tests for the workout libraries.

Covers:
- Loading every modality's catalog
- Category lookup, random picks and search
- Name resolution (exact and substring)
- Closest-duration matching
- Athlete-specific catalog menus
"""

import random

import pytest
from pydantic import ValidationError

from runeq.catalog import (
    all_template_names,
    catalog_menu,
    find_template,
    get_by_category,
    get_by_duration,
    get_categories,
    get_random,
    guidelines,
    iter_templates,
    load_catalog,
    search,
)
from runeq.errors import EmptyCategory, WorkoutNotFound
from runeq.schemas import (
    CrossTrainingEquipment,
    Modality,
    RunningStatus,
    StandUpBikeType,
    duration_minutes,
)


@pytest.fixture
def seeded_rng():
    """Deterministic random source."""
    return random.Random(42)


class TestLoading:
    @pytest.mark.parametrize("modality", list(Modality))
    def test_every_modality_loads(self, modality):
        """Each library has at least one non-empty category."""
        catalog = load_catalog(modality)
        assert catalog.modality == modality
        assert any(catalog.categories.values())

    @pytest.mark.parametrize("modality", list(Modality))
    def test_templates_know_their_category(self, modality):
        for key in get_categories(modality):
            for template in get_by_category(modality, key):
                assert template.category == key

    def test_catalog_is_cached(self):
        assert load_catalog(Modality.TEMPO) is load_catalog(Modality.TEMPO)

    def test_templates_are_frozen(self):
        template = next(iter_templates(Modality.TEMPO))
        with pytest.raises(ValidationError):
            template.name = "Changed"

    def test_string_modality_accepted(self):
        assert get_categories("tempo") == get_categories(Modality.TEMPO)

    def test_guidelines(self):
        assert "hill_grade_guidelines" in guidelines(Modality.HILLS)


class TestCategoryLookup:
    def test_known_category(self):
        names = [t.name for t in get_by_category(Modality.TEMPO, "traditional_tempo")]
        assert names == ["Classic Tempo Run", "Sandwich Tempo"]

    def test_unknown_category_is_empty(self):
        assert get_by_category(Modality.TEMPO, "no_such_category") == []

    def test_random_pick_comes_from_category(self, seeded_rng):
        category = get_by_category(Modality.INTERVALS, "vo2_max")
        for _ in range(20):
            assert get_random(Modality.INTERVALS, "vo2_max", seeded_rng) in category

    def test_random_pick_is_reproducible(self):
        first = [get_random(Modality.LONG_RUN, "progressive_runs", random.Random(7)).name for _ in range(3)]
        second = [get_random(Modality.LONG_RUN, "progressive_runs", random.Random(7)).name for _ in range(3)]
        assert first == second

    def test_empty_category_raises(self):
        with pytest.raises(EmptyCategory) as exc_info:
            get_random(Modality.TEMPO, "no_such_category")
        assert exc_info.value.category == "no_such_category"
        assert isinstance(exc_info.value, WorkoutNotFound)


class TestFindTemplate:
    def test_exact_match_case_insensitive(self):
        assert find_template(Modality.TEMPO, "classic tempo run").name == "Classic Tempo Run"

    def test_query_contained_in_name(self):
        assert find_template(Modality.TEMPO, "Cruise").name == "Cruise Intervals"

    def test_name_contained_in_query(self):
        """A pace-annotated name still resolves to its template."""
        template = find_template(Modality.TEMPO, "Classic Tempo Run (7:30/mi)")
        assert template.name == "Classic Tempo Run"

    def test_missing_returns_none(self):
        assert find_template(Modality.HILLS, "Underwater Basket Weaving") is None
        assert find_template(Modality.HILLS, "   ") is None

    @pytest.mark.parametrize("modality", list(Modality))
    def test_every_name_resolves_to_itself(self, modality):
        for name in all_template_names(modality):
            assert find_template(modality, name).name == name


class TestSearchAndDuration:
    def test_search_by_name(self):
        results = search(Modality.LONG_RUN, "progression")
        assert {"Thirds Progression", "DUSA Progression"} <= {t.name for t in results}

    def test_search_no_match(self):
        assert search(Modality.TEMPO, "zzz-no-match") == []

    def test_closest_duration(self):
        """The returned template has the smallest gap of any candidate."""
        target = 45
        best = get_by_duration(Modality.ELLIPTICAL, target, category="easy")
        gaps = [
            abs(t.duration_midpoint() - target)
            for t in get_by_category(Modality.ELLIPTICAL, "easy")
            if t.duration_midpoint() is not None
        ]
        assert best is not None
        assert abs(best.duration_midpoint() - target) == min(gaps)

    def test_duration_parsing(self):
        assert duration_minutes("30-45 minutes") == 37.5
        assert duration_minutes("20 minutes") == 20
        assert duration_minutes("no numbers here") is None
        assert duration_minutes(None) is None


class TestCatalogMenu:
    def test_active_runner_sees_running_libraries(self):
        menu = catalog_menu(RunningStatus.ACTIVE)
        assert set(menu["running"]) == {"tempo", "intervals", "hills", "long_run"}
        assert "cross_training" not in menu

    def test_bike_owner_sees_bike_library(self):
        menu = catalog_menu(RunningStatus.ACTIVE, standup_bike_type=StandUpBikeType.CYCLETE)
        assert list(menu["cross_training"]) == ["standup_bike"]

    def test_bike_only_athlete_sees_owned_cross_training(self):
        equipment = CrossTrainingEquipment(elliptical=True, swimming=True)
        menu = catalog_menu(RunningStatus.BIKE_ONLY, equipment, StandUpBikeType.ELLIPTIGO)
        assert "running" not in menu
        assert set(menu["cross_training"]) == {"standup_bike", "elliptical", "swimming"}

    def test_transitioning_sees_both(self):
        menu = catalog_menu(RunningStatus.TRANSITIONING, CrossTrainingEquipment(rowing=True))
        assert "running" in menu
        assert list(menu["cross_training"]) == ["rowing"]
