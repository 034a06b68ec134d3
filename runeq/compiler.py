"""
Prescription compiler.

Turns a catalog template into a concrete PrescribedWorkout for one athlete
and week:

1. Numeric ranges in the structure are resolved (runeq.structure).
2. The athlete's paces are injected through ordered (pattern, replacement)
   rules per zone.
3. Library-specific extras are derived: annotated names, track splits,
   terrain guidance, RunEQ naming, safety notes and situational alternatives.
4. Template fields and derived fields are merged by explicit precedence.

Also builds the three non-catalog day types: easy runs, rest days and
race day.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from re import Pattern
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from runeq.catalog import find_template, guidelines
from runeq.conversions import bike_miles_for_runeq_miles, minutes_for_runeq_miles
from runeq.errors import WorkoutNotFound
from runeq.paces import pace_to_seconds, round_half_up, seconds_to_pace
from runeq.plan_schemas import PrescribedWorkout
from runeq.schemas import (
    ExperienceLevel,
    Modality,
    PaceProfile,
    RaceDistance,
    StandUpBikeType,
    WorkoutTemplate,
)
from runeq.structure import convert_workout_structures, resolve_structure

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.34

# Appended paces never stack: text already followed by "(" is left alone
GUARD = r"(?!\s*\()"

# A name that already ends with a parenthesized pace, e.g. "Tempo (7:30/mi)"
_PACED_NAME = re.compile(r"\(\s*\d+:\d{2}[^()]*\)\s*$")


class PrescriptionOptions(BaseModel):
    """Per-athlete inputs to a prescription."""

    paces: Optional[PaceProfile] = Field(default=None, description="Paces to inject")
    week_number: Optional[int] = Field(default=None, ge=1, description="Plan week (enables progression)")
    total_weeks: Optional[int] = Field(default=None, ge=1)
    distance_miles: Optional[float] = Field(
        default=None, ge=0, description="Planned miles (RunEQ miles for stand-up bike rides)"
    )
    cross_training_preference: int = Field(default=0, ge=0, le=100)
    standup_bike_type: Optional[StandUpBikeType] = None
    has_garmin: bool = Field(default=True)
    experience_level: ExperienceLevel = Field(default=ExperienceLevel.INTERMEDIATE)


# ============================================================================
# Pace injection rules
# ============================================================================

@dataclass(frozen=True)
class PaceRule:
    """
    One pattern and the text that replaces it.

    ``replacement`` is a ``str.format`` template over pace values (``{easy}``,
    ``{threshold}``, ``{i400m}``...) and may use regex group references.
    A rule whose value is unavailable leaves the text unchanged.
    """

    pattern: Pattern[str]
    replacement: str

    def apply(self, text: str, values: Dict[str, str]) -> str:
        try:
            replacement = self.replacement.format(**values)
        except KeyError:
            return text
        return self.pattern.sub(replacement, text)


def _rule(pattern: str, replacement: str) -> PaceRule:
    return PaceRule(re.compile(pattern), replacement)


def apply_rules(text: str, rules: Tuple[PaceRule, ...], values: Dict[str, str]) -> str:
    for rule in rules:
        text = rule.apply(text, values)
    return text


EASY_RULES: Tuple[PaceRule, ...] = (
    _rule(rf"\beasy warmup\b{GUARD}", "easy warmup ({easy}/mile)"),
    _rule(rf"\beasy cooldown\b{GUARD}", "easy cooldown ({easy}/mile)"),
    _rule(rf"\beasy pace\b{GUARD}", "easy pace ({easy}/mile)"),
    _rule(rf"\bconversational pace\b{GUARD}", "conversational pace ({easy}/mile)"),
    _rule(
        rf"\b(min|minutes|miles) easy\b{GUARD}(?!\s+(?:warmup|cooldown|pace|running)\b)",
        r"\1 easy ({easy}/mile)",
    ),
)

THRESHOLD_RULES: Tuple[PaceRule, ...] = (
    _rule(r"@ (?:tempo|threshold)(?: pace| effort)?\b", "@ {threshold}/mile"),
    _rule(r"\b(min|minutes) tempo\b", r"\1 @ {threshold}/mile"),
    _rule(r"\btempo pace\b", "{threshold}/mile"),
)

MARATHON_RULES: Tuple[PaceRule, ...] = (
    _rule(r"@ marathon pace\b", "@ {marathon}/mile marathon pace"),
    _rule(r"@ MP\b", "@ {marathon}/mile"),
    _rule(r"@ half pace\b", "@ {marathon}/mile pace"),
)

LONG_RUN_EFFORT_RULES: Tuple[PaceRule, ...] = (
    _rule(rf"\bsteady state\b{GUARD}", "steady state ({threshold}/mile)"),
    _rule(rf"\bstrong pace\b{GUARD}", "strong pace ({threshold}/mile)"),
)

LONG_RUN_DESCRIPTION_RULES: Tuple[PaceRule, ...] = (
    _rule(rf"(?<!@ )(?<!half )\bmarathon pace\b{GUARD}", "marathon pace ({marathon}/mile)"),
    _rule(rf"\bgoal pace\b{GUARD}", "goal pace ({race}/mile)"),
)

INTERVAL_DESCRIPTION_RULES: Tuple[PaceRule, ...] = (
    _rule(r"(?<!\()\b5K race pace\b", "{interval}/mile (5K race pace)"),
    _rule(r"\b5K pace\b", "{interval}/mile"),
    _rule(r"(?<![(-])\b10K race pace\b", "{threshold}/mile (10K/threshold pace)"),
    _rule(r"(?<!-)\b10K pace\b", "{threshold}/mile"),
)

# Track splits: 400m/200m use interval splits, 800m/1200m threshold splits
TRACK_SPLIT_RULES: Tuple[PaceRule, ...] = (
    _rule(r"\b(\d+)\s*x\s*400m\b(?!\s*\()", r"\1 x 400m ({i400m} each)"),
    _rule(r"\b(\d+)\s*x\s*800m\b(?!\s*\()", r"\1 x 800m ({t800m} each)"),
    _rule(r"\b(\d+)\s*x\s*1200m\b(?!\s*\()", r"\1 x 1200m ({t1200m} each)"),
    _rule(r"\b(\d+)\s*x\s*200m\b(?!\s*\()", r"\1 x 200m ({i200m} each)"),
    _rule(r"\b(\d+)\s*x\s*1\s*mile\b(?!\s*@)", r"\1 x 1 mile @ {interval}/mile"),
    _rule(r"\b(\d+)\s*x\s*2\s*miles?\b(?!\s*@)", r"\1 x 2 miles @ {interval}/mile"),
)


def pace_values(profile: PaceProfile) -> Dict[str, str]:
    """Flatten a pace profile into the values the injection rules reference."""
    paces = profile.paces
    values = {
        "easy": f"{paces.easy.min}-{paces.easy.max}",
        "easy_min": paces.easy.min or paces.easy.pace,
        "easy_max": paces.easy.max or paces.easy.pace,
        "marathon": paces.marathon.pace,
        "threshold": paces.threshold.pace,
        "interval": paces.interval.pace,
        "race": paces.race.pace,
    }
    for split, time in profile.track_intervals.threshold.items():
        values[f"t{split}"] = time
    for split, time in profile.track_intervals.interval.items():
        values[f"i{split}"] = time
    return values


def easy_midpoint_seconds(profile: PaceProfile) -> float:
    easy = profile.paces.easy
    return (pace_to_seconds(easy.min) + pace_to_seconds(easy.max)) / 2


def mile_pace_for_split(split_time: str, meters: float) -> str:
    """Per-mile pace equivalent of a track split, e.g. 1:52 per 400m -> 7:30."""
    return seconds_to_pace(pace_to_seconds(split_time) / meters * METERS_PER_MILE)


def format_miles(miles: float) -> str:
    return f"{round(miles, 1):g}"


# ============================================================================
# Field merging
# ============================================================================

def merge_fields(template_fields: Dict[str, Any], derived_fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge template and derived fields by explicit precedence.

    A derived value replaces the template value only when it is not None.

    Raises:
        ValueError: If either mapping has a key PrescribedWorkout does not define
    """
    allowed = set(PrescribedWorkout.model_fields)
    unknown = (set(template_fields) | set(derived_fields)) - allowed
    if unknown:
        raise ValueError(f"Unknown prescription fields: {sorted(unknown)}")

    merged = dict(template_fields)
    for key, value in derived_fields.items():
        if value is not None:
            merged[key] = value
    return merged


def _template_fields(modality: Modality, template: WorkoutTemplate) -> Dict[str, Any]:
    return {
        "name": template.name,
        "modality": modality,
        "category": template.category,
        "structure": template.structure,
        "description": template.description,
        "duration": template.duration,
        "intensity": template.intensity,
        "benefits": template.benefits or template.focus or "",
        "source": template.source,
        "equipment": template.equipment,
        "details": dict(template.details),
    }


def runeq_recommendation(preference: int, bike_type: Optional[StandUpBikeType] = None) -> str:
    """How much of a running workout to move onto the stand-up bike."""
    bike = bike_type.display_name if bike_type else "Cyclete/ElliptiGO"
    if preference >= 70:
        return f"Full {bike} ride (use the Garmin RunEQ data field to track equivalent miles)"
    if preference >= 40:
        return "Split workout - start running, finish riding"
    if preference >= 20:
        return "Alternate segments between running and riding"
    return "Full running workout"


def _annotate_name(name: str, annotation: str) -> str:
    if _PACED_NAME.search(name):
        return name
    return f"{name} ({annotation})"


def _estimate_minutes(distance: Optional[float], pace_seconds: Optional[float]) -> Optional[int]:
    if not distance or pace_seconds is None:
        return None
    return round_half_up(distance * pace_seconds / 60)


# ============================================================================
# Library compilers
# ============================================================================
# Each returns derived fields for merge_fields(); None means "keep template".

def _compile_tempo(template: WorkoutTemplate, options: PrescriptionOptions) -> Dict[str, Any]:
    structure = resolve_structure(template.structure, options.week_number, options.total_weeks)
    derived: Dict[str, Any] = {"structure": structure}

    notes = [
        "Start conservatively - tempo should feel 'controlled discomfort'",
        "If breathing becomes labored, slow down slightly",
        "Better to run slightly too easy than too hard",
        "Recovery between intervals should be easy jogging or walking",
    ]
    if "Minutes" in template.name or "Alternating" in template.name:
        notes.append("Let easy segments naturally speed up as workout progresses")
    if "40" in template.duration or "50" in template.duration:
        notes.append("Fuel appropriately for longer tempo sessions")
        notes.append("Stay hydrated throughout the workout")
    derived["safety_notes"] = notes
    derived["alternatives"] = {
        "treadmill": "Use slight incline (1-2%) to simulate outdoor effort",
        "track": "4-6 laps for every mile of tempo running",
        "bad_weather": "Indoor track, treadmill, or covered area like parking garage",
        "injury": "Pool running, elliptical, or Cyclete/ElliptiGO ride maintaining same effort level",
        "no_time": "Shorten warmup/cooldown, focus on quality tempo portion",
        "too_hard": "Reduce intensity to comfortable-moderate effort, build gradually",
        "too_easy": "Slightly increase pace, but avoid going anaerobic",
    }

    if options.paces:
        values = pace_values(options.paces)
        derived["name"] = _annotate_name(template.name, f"{values['threshold']}/mi")
        derived["structure"] = apply_rules(
            structure, THRESHOLD_RULES + EASY_RULES + MARATHON_RULES, values
        )
        derived["estimated_minutes"] = _estimate_minutes(
            options.distance_miles, pace_to_seconds(values["threshold"])
        )
    return derived


def _interval_blocks(template: WorkoutTemplate, values: Optional[Dict[str, str]]) -> Dict[str, str]:
    easy = f" ({values['easy']}/mile)" if values else ""
    if template.intensity == "shortSpeed":
        warmup = f"20-25 minutes easy running{easy} + 10 minutes dynamic warmup + 4-6 progressive strides"
        estimated = "45-60 minutes total"
    else:
        warmup = f"15-20 minutes easy running{easy} + 5 minutes dynamic exercises + 3-4 x 20-second strides"
        estimated = "50-70 minutes total"
    reps = template.repetitions or ""
    if template.intensity != "shortSpeed" and ("x 6" in reps or "x 8" in reps):
        estimated = "60-75 minutes total"
    return {
        "warmup": warmup,
        "cooldown": f"15-20 minutes easy running{easy} + stretching",
        "estimated_time": estimated,
    }


def _interval_name(template: WorkoutTemplate, reps: str, values: Dict[str, str]) -> str:
    splits = (("400m", "i400m", 400), ("800m", "t800m", 800), ("1200m", "t1200m", 1200), ("200m", "i200m", 200))
    for label, key, meters in splits:
        if label in reps and key in values:
            split = values[key]
            return _annotate_name(
                template.name, f"{split}/{label} = {mile_pace_for_split(split, meters)}/mi"
            )
    return _annotate_name(template.name, f"{values['interval']}/mi")


def _compile_intervals(template: WorkoutTemplate, options: PrescriptionOptions) -> Dict[str, Any]:
    week, total = options.week_number, options.total_weeks
    values = pace_values(options.paces) if options.paces else None

    reps = resolve_structure(template.repetitions or template.structure, week, total)
    recovery = resolve_structure(template.recovery or "", week, total)
    blocks = {
        key: resolve_structure(text, week, total)
        for key, text in _interval_blocks(template, values).items()
    }

    main = reps
    if values:
        main = apply_rules(main, TRACK_SPLIT_RULES, values)
    if template.pace and "@" not in main and "each)" not in main:
        main = f"{main} @ {template.pace}"
    if values:
        main = apply_rules(main, INTERVAL_DESCRIPTION_RULES, values)
    if recovery:
        main = f"{main}; recovery: {recovery}"

    details = dict(template.details)
    details.update(
        {
            "repetitions": reps,
            "warmup": blocks["warmup"],
            "cooldown": blocks["cooldown"],
            "estimated_time": blocks["estimated_time"],
        }
    )
    guidance = guidelines(Modality.INTERVALS).get("interval_intensity_guidelines", {})
    key = re.sub(r"(?<!^)(?=[A-Z])", "_", template.intensity.split(" to ")[0]).lower()
    if key in guidance:
        details["intensity_guidance"] = guidance[key]
    if template.intensity == "shortSpeed":
        details["warmup_notes"] = "Extra warmup time crucial for speed work"

    notes = [
        "Proper warmup is CRUCIAL - never skip the full warmup routine",
        "Start conservatively - first interval should feel controlled",
        "Recovery should be truly easy - avoid rushing between intervals",
        "Stop workout if form breaks down significantly",
    ]
    if template.intensity == "shortSpeed":
        notes += [
            "Complete recovery between reps - walk or very easy jog only",
            "Focus on form and efficiency over pure speed",
        ]
    elif template.intensity == "vo2Max":
        notes += [
            "Should reach breathing heavily but not gasping",
            "Equal time recovery allows partial recovery while maintaining stimulus",
        ]
    else:
        notes += [
            "Maintain consistent pace across all intervals",
            "These should feel 'comfortably hard' not all-out",
        ]

    derived: Dict[str, Any] = {
        "structure": f"{blocks['warmup']} + {main} + {blocks['cooldown']}",
        "duration": template.duration or blocks["estimated_time"],
        "details": details,
        "safety_notes": notes,
        "alternatives": {
            "no_track": {
                "200m": "20-30 second hard efforts on any surface",
                "400m": "60-90 second hard efforts",
                "800m": "2.5-3 minute hard efforts",
                "1000m": "3-4 minute hard efforts",
                "1 mile": "5-7 minute hard efforts",
            },
            "bad_weather": "Treadmill (use 1% incline), indoor track, or covered parking garage",
            "injury": "Pool running, elliptical, or Cyclete/ElliptiGO ride maintaining same effort level",
            "altitude": "Reduce pace by 15-30 seconds per mile, extend recovery time",
            "heat": "Run early morning, extend recovery, focus on effort over pace",
            "beginners": "Start with fewer reps, longer recovery, slightly easier pace",
        },
    }
    if values:
        derived["name"] = _interval_name(template, reps, values)
        derived["structure"] = apply_rules(derived["structure"], EASY_RULES, values)
        if template.pace and ("5K" in template.pace or "10K" in template.pace):
            derived["description"] = apply_rules(
                template.description, INTERVAL_DESCRIPTION_RULES, values
            )
        derived["estimated_minutes"] = _estimate_minutes(
            options.distance_miles, pace_to_seconds(values["interval"])
        )
    return derived


HILL_TERRAIN_EXAMPLES: Dict[str, List[str]] = {
    "gentle": ["Long highway on-ramps", "Gradual neighborhood streets", "Park paths with slight incline", "Treadmill at 2-4% incline"],
    "moderate": ["Typical neighborhood hills", "Multi-story parking garage ramps", "Bridge approaches", "Treadmill at 4-7% incline"],
    "steep": ["Short neighborhood climbs", "Stadium stairs", "Steep parking garage ramps", "Treadmill at 7-12% incline"],
    "very_steep": ["Stadium steps", "Ski slope access roads", "Short power line hills", "Treadmill at 12%+ incline"],
}

HILL_CATEGORY_NOTES: Dict[str, List[str]] = {
    "short_power": ["Very high intensity - ensure adequate recovery", "Perfect form is critical at high speeds"],
    "medium_vo2": ["Monitor effort level - hills amplify perceived exertion", "Don't start too fast on first rep"],
    "long_strength": ["Pace should feel sustainable for the full duration", "Mental focus is as important as physical strength"],
    "downhill_specific": [
        "HIGH INJURY RISK - start very conservatively",
        "Focus on quick cadence, not long strides",
        "Stop if you feel excessive quad/knee stress",
    ],
    "hill_circuits": ["Monitor cumulative fatigue across multiple loops", "Adjust effort based on conditions and fatigue"],
}


def terrain_instructions(template: WorkoutTemplate) -> Dict[str, Any]:
    """Where to find a suitable hill, from the library's grade guidelines."""
    measurement = (
        "Use your phone's inclinometer app or estimate: you should feel challenged "
        "but able to maintain form"
    )
    backup = (
        "If no ideal hill available, use treadmill at appropriate incline or find "
        "closest available grade"
    )
    requirement = template.hill_requirement
    grades = guidelines(Modality.HILLS).get("hill_grade_guidelines", {})
    grade = grades.get(requirement.grade) if requirement else None
    if requirement is None or grade is None:
        return {
            "find_hill": "Look for a moderate hill with 4-7% grade",
            "measurement": measurement,
            "distance": "Hill should be at least 100 meters long",
            "examples": ["Neighborhood hills", "Park paths", "Treadmill incline"],
            "backup": backup,
        }
    return {
        "find_hill": f"Look for a hill with {grade['description']}",
        "measurement": measurement,
        "distance": f"Hill should be at least {requirement.distance}",
        "examples": HILL_TERRAIN_EXAMPLES.get(requirement.grade, []),
        "backup": backup,
    }


def _compile_hills(template: WorkoutTemplate, options: PrescriptionOptions) -> Dict[str, Any]:
    week, total = options.week_number, options.total_weeks
    structure = resolve_structure(template.structure, week, total)
    sets = convert_workout_structures(template.sets, week, total)

    details = dict(template.details)
    details["sets"] = sets
    details["terrain"] = terrain_instructions(template)
    if template.hill_requirement:
        details["hill_requirement"] = template.hill_requirement.model_dump()

    derived: Dict[str, Any] = {
        "structure": structure,
        "description": template.description or (
            template.hill_requirement.description if template.hill_requirement else None
        ),
        "details": details,
        "safety_notes": [
            "Start conservatively and build intensity gradually",
            "Focus on form - don't let hills break down your running mechanics",
            "Stay hydrated and fuel appropriately for longer hill sessions",
        ] + HILL_CATEGORY_NOTES.get(template.category, []),
        "alternatives": {
            "no_hill": "Use treadmill with appropriate incline setting",
            "hill_too_short": "Repeat shorter hill multiple times with brief recovery",
            "hill_too_long": "Use only portion of longer hill, mark turnaround point",
            "wrong_grade": "Adjust effort level to compensate - easier on steeper hills, harder on gentler grades",
            "indoor_option": "StairMaster, stadium stairs, or parking garage ramps can substitute",
        },
    }
    if options.paces:
        values = pace_values(options.paces)
        derived["name"] = _annotate_name(template.name, f"{values['threshold']}/mi")
        derived["structure"] = apply_rules(structure, EASY_RULES, values)
        details["sets"] = {
            key: apply_rules(text, EASY_RULES, values) for key, text in sets.items()
        }
        derived["estimated_minutes"] = _estimate_minutes(
            options.distance_miles, pace_to_seconds(values["threshold"])
        )
    return derived


def _compile_long_run(template: WorkoutTemplate, options: PrescriptionOptions) -> Dict[str, Any]:
    structure = resolve_structure(template.structure, options.week_number, options.total_weeks)
    derived: Dict[str, Any] = {"structure": structure}

    notes = [
        "Start conservatively - long runs should feel sustainable",
        "Focus on effort over pace, especially in varying weather/terrain",
        "Plan hydration strategy for runs over 90 minutes",
        "Carry identification and emergency contact information",
        "Know your route and have bailout options",
    ]
    if "marathonPace" in template.intensity or "fastFinish" in template.intensity:
        notes.append("Save faster segments for when you're warmed up (after 15+ minutes)")
        notes.append("If pace becomes unsustainable, dial back to easy effort")
    if "120" in template.duration or "150" in template.duration:
        notes.append("Practice race-day fueling for runs over 2 hours")
        notes.append("Consider electrolyte replacement for extended efforts")
    if "Progression" in template.name or "Progressive" in template.name:
        notes.append("Build pace gradually - avoid sudden speed changes")
        notes.append("Final segments should feel strong but controlled, not all-out")
    derived["safety_notes"] = notes
    derived["alternatives"] = {
        "bad_weather": {
            "treadmill": "Use 1% incline, break into segments if needed for mental engagement",
            "indoor": "Mall walking, indoor track (expect many laps)",
            "postpone": "Better to move day than compromise safety",
        },
        "time_constraints": {
            "shorten_distance": "Maintain workout structure but reduce total time/distance",
            "focus_on_quality": "Keep key pace segments, reduce easy portions",
            "split_across_days": "Not ideal, but could split very long runs across 2 days",
        },
        "injury": {
            "pool": "Aqua jogging maintaining same effort and time",
            "bike": "Stand-up bike or regular bike with appropriate time conversion",
            "elliptical": "Good alternative maintaining effort level",
        },
        "terrain": {
            "no_hills": "Use treadmill incline or find bridges/overpasses",
            "only_track": "Long run on track requires mental strategies, audiobooks/podcasts help",
            "only_treadmill": "Break into segments, vary incline/pace for mental engagement",
        },
    }

    name = template.name
    if options.distance_miles:
        name = f"{format_miles(options.distance_miles)}-Mile {name}"
    if options.paces:
        values = pace_values(options.paces)
        name = _annotate_name(name, f"{values['easy']}/mi")
        derived["structure"] = apply_rules(
            structure, EASY_RULES + MARATHON_RULES + LONG_RUN_EFFORT_RULES, values
        )
        derived["description"] = apply_rules(
            template.description, EASY_RULES + LONG_RUN_DESCRIPTION_RULES, values
        )
        derived["estimated_minutes"] = _estimate_minutes(
            options.distance_miles, easy_midpoint_seconds(options.paces)
        )
    derived["name"] = name
    return derived


def _compile_standup_bike(template: WorkoutTemplate, options: PrescriptionOptions) -> Dict[str, Any]:
    structure = resolve_structure(template.structure, options.week_number, options.total_weeks)
    bike = options.standup_bike_type
    details = dict(template.details)

    notes = [
        "Start with proper warmup to prepare for stand-up motion",
        "Focus on smooth, controlled movement throughout",
        "Stay hydrated, especially during longer sessions",
    ]
    if bike == StandUpBikeType.CYCLETE:
        notes += [
            "Maintain a natural running motion, avoid forcing the pattern",
            "Keep upper body relaxed to allow efficient power transfer",
        ]
        details["equipment_notes"] = {
            "motion": "Focus on smooth natural motion pattern",
            "strengths": template.details.get("cyclete_notes", "Excellent running simulation"),
            "effort": template.effort.get("heart_rate", "Monitor by heart rate or perceived effort"),
        }
    elif bike == StandUpBikeType.ELLIPTIGO:
        notes += [
            "Adjust stride length appropriately for intensity level",
            "Coordinate upper and lower body movement smoothly",
            "Use handles for balance, not to pull yourself forward",
        ]
        details["equipment_notes"] = {
            "motion": "Utilize full stride length and upper body engagement",
            "strengths": template.details.get("elliptigo_notes", "Full-body workout with adjustable stride"),
            "effort": template.effort.get("heart_rate", "Monitor by heart rate or perceived effort"),
        }
    if template.intensity in ("intervals", "tempo"):
        notes.append("Monitor effort level - equipment amplifies intensity compared to running")

    details["garmin_note"] = (
        "Ride until your Garmin RunEQ data field shows the prescribed RunEQ miles. "
        "Your actual bike distance will vary based on your riding intensity."
    )
    equipment_specs = guidelines(Modality.STANDUP_BIKE).get("equipment_specs", {})
    if bike and bike.value in equipment_specs:
        details["equipment_spec"] = equipment_specs[bike.value]

    derived: Dict[str, Any] = {
        "structure": structure,
        "details": details,
        "safety_notes": notes,
        "alternatives": {
            "weather_options": {
                "indoor": (
                    "ElliptiGO can be used on an indoor trainer"
                    if bike == StandUpBikeType.ELLIPTIGO
                    else "Cyclete is outdoor-specific"
                ),
                "outdoor": "Both excellent for outdoor training in various conditions",
            },
            "intensity_adjustments": {
                "too_hard": "Reduce resistance or effort level, maintain smooth motion",
                "too_easy": "Increase resistance or effort level, extend duration",
                "injury": "Both are excellent low-impact alternatives to running",
            },
            "duration_mods": {
                "time_constraint": "Focus on quality intervals, maintain warmup/cooldown",
                "extended": "Both platforms excel at longer endurance sessions",
            },
        },
        "equipment": bike.value if bike else None,
    }

    runeq = options.distance_miles
    if runeq:
        miles = format_miles(runeq)
        minutes = minutes_for_runeq_miles(runeq)
        bike_miles = bike_miles_for_runeq_miles(runeq)
        if options.has_garmin:
            derived["name"] = f"{miles} RunEQ Miles - {template.name}"
            derived["description"] = f"Ride until your Garmin shows {miles} RunEQ miles - {template.description}"
        else:
            derived["name"] = f"{minutes} min / ~{bike_miles} mi - {template.name}"
            derived["description"] = (
                f"Ride for approximately {minutes} minutes or {bike_miles} miles - {template.description}"
            )
        derived["runeq_miles"] = round(runeq, 1)
        derived["estimated_minutes"] = minutes
    return derived


def _compile_brick(template: WorkoutTemplate, options: PrescriptionOptions) -> Dict[str, Any]:
    structure = resolve_structure(template.structure, options.week_number, options.total_weeks)
    details = dict(template.details)
    details["pace_guidance"] = {
        "easy": "Conversational pace, 65-75% max HR",
        "tempo": "Comfortably hard, 85-90% max HR",
        "hard": "Hard effort, 90-95% max HR",
        "recovery": "Very easy, 60-70% max HR",
        "transitions": "Focus on smooth equipment changes, not speed",
    }
    transitions = guidelines(Modality.BRICK).get("equipment_transitions", {})
    bike = options.standup_bike_type or StandUpBikeType.CYCLETE
    if bike.value in transitions:
        details["equipment_transition"] = transitions[bike.value]

    derived: Dict[str, Any] = {
        "structure": structure,
        "details": details,
        "safety_notes": [
            "Practice transitions in training before using in workouts",
            "Stay hydrated during equipment changes",
            "Start with longer transition times, speed up as you improve",
            "Listen to your body - brick workouts are demanding",
            "Ensure proper bike setup before beginning workout",
        ],
        "alternatives": {
            "weather": {
                "hot": "Extend transition times for hydration",
                "cold": "Minimize transition time to maintain body temperature",
                "windy": "Consider indoor bike alternatives",
            },
            "equipment": {
                "no_bike": "Replace bike segments with hill running at equivalent effort",
                "no_transitions": "Combine segments into continuous workout",
                "treadmill": "Use incline to simulate bike resistance",
            },
            "fitness": {
                "beginner": "Extend transition times, reduce intensity slightly",
                "advanced": "Minimize transitions, increase intensity or duration",
            },
        },
    }
    if options.paces:
        derived["structure"] = apply_rules(structure, EASY_RULES, pace_values(options.paces))
    return derived


def _compile_cross_training(template: WorkoutTemplate, options: PrescriptionOptions) -> Dict[str, Any]:
    week, total = options.week_number, options.total_weeks
    details = dict(template.details)
    if template.sets:
        details["sets"] = convert_workout_structures(template.sets, week, total)
    return {
        "structure": resolve_structure(template.structure, week, total),
        "details": details,
    }


LibraryCompiler = Callable[[WorkoutTemplate, PrescriptionOptions], Dict[str, Any]]

LIBRARY_COMPILERS: Dict[Modality, LibraryCompiler] = {
    Modality.TEMPO: _compile_tempo,
    Modality.INTERVALS: _compile_intervals,
    Modality.HILLS: _compile_hills,
    Modality.LONG_RUN: _compile_long_run,
    Modality.STANDUP_BIKE: _compile_standup_bike,
    Modality.BRICK: _compile_brick,
}


# ============================================================================
# Public API
# ============================================================================

def compile_template(
    modality: Union[Modality, str],
    template: WorkoutTemplate,
    options: Optional[PrescriptionOptions] = None,
) -> PrescribedWorkout:
    """
    Compile an already-selected template into a prescription.

    Args:
        modality: Library the template belongs to
        template: Catalog template
        options: Athlete paces, week and preferences

    Returns:
        PrescribedWorkout with ranges resolved and paces injected
    """
    mod = modality if isinstance(modality, Modality) else Modality(modality)
    options = options or PrescriptionOptions()
    compiler = LIBRARY_COMPILERS.get(mod, _compile_cross_training)
    derived = compiler(template, options)

    if template.effort:
        derived.setdefault("details", dict(template.details))
        derived["details"].setdefault("effort", dict(template.effort))
    derived.setdefault("distance_miles", options.distance_miles)
    if options.paces and mod.is_running:
        derived.setdefault("paces", options.paces.paces)
    if mod.is_running:
        derived["runeq_recommendation"] = runeq_recommendation(
            options.cross_training_preference, options.standup_bike_type
        )
    if options.experience_level and "progression" in template.details:
        progression = template.details["progression"]
        if isinstance(progression, dict) and options.experience_level.value in progression:
            derived.setdefault("details", dict(template.details))
            derived["details"]["progression_for_level"] = progression[options.experience_level.value]

    fields = merge_fields(_template_fields(mod, template), derived)
    return PrescribedWorkout(**fields)


def prescribe(
    modality: Union[Modality, str],
    name: str,
    options: Optional[PrescriptionOptions] = None,
) -> PrescribedWorkout:
    """
    Resolve a workout by name and compile it for one athlete and week.

    Args:
        modality: Library to search
        name: Template name (exact, or a substring either way)
        options: Athlete paces, week and preferences

    Returns:
        PrescribedWorkout

    Raises:
        WorkoutNotFound: If no template in the library matches ``name``
    """
    mod = modality if isinstance(modality, Modality) else Modality(modality)
    template = find_template(mod, name)
    if template is None:
        raise WorkoutNotFound(mod.value, name)
    logger.debug("Prescribing %s workout %r", mod.value, template.name)
    return compile_template(mod, template, options)


def easy_run(distance_miles: float, paces: Optional[PaceProfile] = None) -> PrescribedWorkout:
    """Plain easy run; also the safe default when a prescription fails."""
    miles = format_miles(distance_miles)
    if paces:
        easy = f"{paces.paces.easy.min}-{paces.paces.easy.max}"
        structure = f"{miles} miles at easy pace ({easy}/mile)"
        description = f"Conversational pace ({easy}/mile), aerobic base building"
        minutes = _estimate_minutes(distance_miles, easy_midpoint_seconds(paces))
    else:
        structure = f"{miles} miles at easy, conversational pace"
        description = "Conversational pace, aerobic base building"
        minutes = None
    return PrescribedWorkout(
        name="Easy Run",
        category="easy",
        structure=structure,
        description=description,
        intensity="easy",
        benefits="Aerobic development, recovery, base building",
        paces=paces.paces if paces else None,
        safety_notes=["Should feel refreshed after this run, not fatigued"],
        distance_miles=round(distance_miles, 1),
        estimated_minutes=minutes,
    )


def rest_day(with_cross_training: bool = False) -> PrescribedWorkout:
    if with_cross_training:
        return PrescribedWorkout(
            name="Rest or Cross-Train",
            category="rest_or_xt",
            structure="Full rest, or 20-30 minutes of very easy cross-training",
            description="Recovery day - rest completely or move gently on your cross-training equipment",
            intensity="recovery",
            benefits="Recovery, adaptation, injury prevention",
        )
    return PrescribedWorkout(
        name="Rest Day",
        category="rest",
        structure="Full rest",
        description="Recovery day - no training",
        intensity="rest",
        benefits="Recovery, adaptation, injury prevention",
    )


RACE_COACHING: Dict[RaceDistance, List[str]] = {
    RaceDistance.TEN_K: [
        "Race Strategy: First 5K controlled at goal pace, second 5K at effort (pace will feel harder but stay consistent)",
        "Pacing: Even splits are your friend - negative splits are magic",
        "Mental Game: The middle miles (2-4) are where mental toughness counts",
        "Final kilometer: Give everything you've got left!",
    ],
    RaceDistance.HALF_MARATHON: [
        "Race Strategy: Miles 1-6 feel easy, 7-10 at goal pace, 11-13 dig deep",
        "Pacing: First half should feel controlled - if you're working hard before mile 8, you went too fast",
        "Mental Game: Mile 10 is the real start of the race - this is where your training pays off",
        "The final 5K is all guts - trust your training and push through",
        "Hydration: Take water at every aid station, even if just a sip",
    ],
    RaceDistance.MARATHON: [
        "Race Strategy: Miles 1-16 should feel easy and controlled, 17-20 maintain focus, 21-26 is the real race",
        "Pacing: The first 20 miles are the warmup for the last 6 miles",
        "Mental Game: \"The wall\" at mile 20 is real - but your training prepared you for this",
        "When it gets hard around mile 20, remember: this is why you trained",
        "Hydration & Fuel: Take water/electrolytes at every station, fuel every 45min starting at mile 6",
        "Break it down: Focus on one mile at a time, not the distance remaining",
        "You've got this - you've already done the hard work in training!",
    ],
}


def race_day(
    distance: RaceDistance,
    goal_time: str,
    paces: Optional[PaceProfile] = None,
    race_date: Optional[date] = None,
) -> PrescribedWorkout:
    """The race itself, scheduled in place of the final long run."""
    miles = round(distance.miles, 1)
    details: Dict[str, Any] = {
        "goal_time": goal_time,
        "notes": (
            f"Race Date: {race_date:%A, %B} {race_date.day}, {race_date.year}"
            if race_date
            else "Race Day"
        ),
    }
    if paces:
        details["goal_pace"] = f"{paces.paces.race.pace}/mile"
    return PrescribedWorkout(
        name=f"RACE DAY - {distance.display_name}",
        category="race",
        structure=f"Your {distance.display_name} race - {miles:g} miles",
        description="\n\n".join(RACE_COACHING[distance]),
        intensity="race",
        benefits=(
            "Today is what you've been training for! Trust your preparation, execute "
            "your race plan, and leave it all out there."
        ),
        paces=paces.paces if paces else None,
        distance_miles=miles,
        equipment="running",
        details=details,
    )
