"""
Workout libraries.

Each modality's catalog is plain data (one JSON file per modality under
``runeq/data/catalogs``) loaded once into a frozen WorkoutCatalog. The read
contract is a set of free functions shared by every modality: category
lookup, random pick, search, closest-duration match, and name resolution.
"""

import json
import logging
import random
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from runeq.errors import EmptyCategory
from runeq.schemas import (
    CROSS_TRAINING_MODALITIES,
    CrossTrainingEquipment,
    Modality,
    RUNNING_MODALITIES,
    RunningStatus,
    StandUpBikeType,
    WorkoutCatalog,
    WorkoutTemplate,
)

logger = logging.getLogger(__name__)

CATALOG_DIR = Path(__file__).parent / "data" / "catalogs"

ModalityLike = Union[Modality, str]


def _modality(value: ModalityLike) -> Modality:
    return value if isinstance(value, Modality) else Modality(value)


@lru_cache(maxsize=None)
def load_catalog(modality: ModalityLike) -> WorkoutCatalog:
    """
    Load a modality's catalog from its JSON file.

    Cached for the life of the process; the returned catalog is immutable.

    Args:
        modality: Catalog to load

    Returns:
        WorkoutCatalog
    """
    mod = _modality(modality)
    path = CATALOG_DIR / f"{mod.value}.json"
    with open(path) as f:
        data = json.load(f)
    catalog = WorkoutCatalog(**data)
    logger.debug(
        "Loaded %s catalog: %d categories, %d templates",
        mod.value,
        len(catalog.categories),
        sum(len(t) for t in catalog.categories.values()),
    )
    return catalog


def get_categories(modality: ModalityLike) -> List[str]:
    """Category keys in catalog order."""
    return list(load_catalog(modality).categories)


def get_by_category(modality: ModalityLike, category: str) -> List[WorkoutTemplate]:
    """Templates in a category; an unknown category yields an empty list."""
    return list(load_catalog(modality).categories.get(category, []))


def get_random(
    modality: ModalityLike,
    category: str,
    rng: Optional[random.Random] = None,
) -> WorkoutTemplate:
    """
    Uniformly pick one template from a category.

    Args:
        modality: Catalog to draw from
        category: Category key
        rng: Random source (defaults to the process-wide ``random`` module)

    Raises:
        EmptyCategory: If the category has no templates
    """
    templates = get_by_category(modality, category)
    if not templates:
        raise EmptyCategory(_modality(modality).value, category)
    return (rng or random).choice(templates)


def iter_templates(modality: ModalityLike) -> Iterator[WorkoutTemplate]:
    """All templates in catalog order."""
    for templates in load_catalog(modality).categories.values():
        yield from templates


def all_template_names(modality: ModalityLike) -> List[str]:
    return [t.name for t in iter_templates(modality)]


def search(modality: ModalityLike, query: str) -> List[WorkoutTemplate]:
    """Case-insensitive substring search over name, description and source."""
    term = query.lower()
    return [
        t
        for t in iter_templates(modality)
        if term in t.name.lower()
        or term in t.description.lower()
        or term in t.source.lower()
    ]


def get_by_duration(
    modality: ModalityLike,
    target_minutes: float,
    category: Optional[str] = None,
) -> Optional[WorkoutTemplate]:
    """
    Template whose duration midpoint is closest to ``target_minutes``.

    Ties go to the earlier template in catalog order. Templates without a
    parseable duration in minutes are skipped.

    Returns:
        Closest template, or None if nothing has a usable duration
    """
    candidates = (
        get_by_category(modality, category) if category else list(iter_templates(modality))
    )
    best: Optional[WorkoutTemplate] = None
    best_gap = float("inf")
    for template in candidates:
        midpoint = template.duration_midpoint()
        if midpoint is None:
            continue
        gap = abs(midpoint - target_minutes)
        if gap < best_gap:
            best, best_gap = template, gap
    return best


def find_template(modality: ModalityLike, name: str) -> Optional[WorkoutTemplate]:
    """
    Resolve a workout name to a template.

    An exact (case-insensitive) name wins; otherwise the first template whose
    name contains the query, or is contained in it, in catalog order.

    Returns:
        The template, or None when nothing matches
    """
    query = name.strip().lower()
    if not query:
        return None
    templates = list(iter_templates(modality))
    for template in templates:
        if template.name.lower() == query:
            return template
    for template in templates:
        candidate = template.name.lower()
        if query in candidate or candidate in query:
            return template
    return None


def guidelines(modality: ModalityLike) -> Dict:
    """Library-level guidance (intensity guidelines, equipment specs, ...)."""
    return dict(load_catalog(modality).guidelines)


def catalog_menu(
    running_status: RunningStatus,
    equipment: Optional[CrossTrainingEquipment] = None,
    standup_bike_type: Optional[StandUpBikeType] = None,
) -> Dict[str, Dict[str, List[Tuple[str, str]]]]:
    """
    Names-only menu of the workouts an athlete can be given.

    Active runners see the running libraries (plus the stand-up bike if they
    own one); bike-only athletes see cross-training; transitioning athletes
    see both.

    Returns:
        {"running": {modality: [(name, category)]}, "cross_training": {...}}
    """
    equipment = equipment or CrossTrainingEquipment()
    menu: Dict[str, Dict[str, List[Tuple[str, str]]]] = {}

    def names(mod: Modality) -> List[Tuple[str, str]]:
        return [(t.name, t.category) for t in iter_templates(mod)]

    if running_status in (RunningStatus.ACTIVE, RunningStatus.TRANSITIONING):
        menu["running"] = {
            m.value: names(m) for m in Modality if m in RUNNING_MODALITIES
        }

    cross: Dict[str, List[Tuple[str, str]]] = {}
    if standup_bike_type is not None:
        cross[Modality.STANDUP_BIKE.value] = names(Modality.STANDUP_BIKE)
    if running_status in (RunningStatus.BIKE_ONLY, RunningStatus.TRANSITIONING):
        for mod in CROSS_TRAINING_MODALITIES:
            if equipment.owns(mod):
                cross[mod.value] = names(mod)
    if cross:
        menu["cross_training"] = cross
    return menu
