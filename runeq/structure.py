"""
Range resolution for workout structure text.

Catalog templates describe sessions with ranges ("4-6 x 3-8 min", "6-8 miles",
"1-2 min recovery"). This module turns each range into one concrete number,
optionally progressing from the lower bound early in a plan toward the upper
bound later on.

Resolution is an ordered tuple of RangeRule entries. Each rule owns one
pattern and one resolver, and the rules are applied once, in order, per pass.
A "range" is two numbers joined by a hyphen. Time ranges ("8:07-8:56",
"2:00-2:10/500m") and ladders ("1-2-3-2-1", "400-800-1200") are left as
written.
"""

import re
from dataclasses import dataclass
from re import Match, Pattern
from typing import Callable, Dict, Optional, Tuple

from runeq.paces import round_half_up

NUMBER = r"\d+(?:\.\d+)?"

# Progression reaches the upper bound once this share of the plan has elapsed
PROGRESSION_CAP = 0.75

# Recovery windows at or under this many minutes are written in seconds
SECONDS_THRESHOLD_MINUTES = 2.0


def _range(name: str) -> str:
    """A lo-hi range with named groups ``{name}_lo`` and ``{name}_hi``."""
    return (
        rf"(?<![\d:/\-])(?<!\d\.)"
        rf"(?P<{name}_lo>{NUMBER})-(?P<{name}_hi>{NUMBER})"
        rf"(?!\.?\d|:|-\d)"
    )


RANGE_PATTERN: Pattern[str] = re.compile(_range("r"))

_MINUTES = r"min(?:ute)?s?\b"
_DISTANCE_UNITS = r"(?:miles?|mi|km|k|meters?|m|yards?|yds?)\b"
_RECOVERY_WORDS = r"(?:easy\s+)?(?:jog(?:ging)?\s+|walk(?:ing)?\s+)?(?:recovery|rest)\b"


def progression(week_number: Optional[int], total_weeks: Optional[int]) -> Optional[float]:
    """
    Share of the way from a range's lower to upper bound for a given week.

    Returns:
        0.0-1.0, or None when no usable week data is given
    """
    if not week_number or not total_weeks or total_weeks <= 0:
        return None
    return min(1.0, week_number / (total_weeks * PROGRESSION_CAP))


def resolve_value(low: float, high: float, progress: Optional[float]) -> int:
    """Pick one value from a range: progressive when possible, else the midpoint."""
    if progress is None:
        return round_half_up((low + high) / 2)
    return round_half_up(low + progress * (high - low))


def _bounds(match: Match[str], name: str) -> Tuple[float, float]:
    return float(match.group(f"{name}_lo")), float(match.group(f"{name}_hi"))


@dataclass(frozen=True)
class RangeRule:
    """One pattern and the function that rewrites each of its matches."""

    name: str
    pattern: Pattern[str]
    resolver: Callable[[Match[str], Optional[float]], str]

    def apply(self, text: str, progress: Optional[float]) -> str:
        return self.pattern.sub(lambda m: self.resolver(m, progress), text)


def _resolve_rep_duration(match: Match[str], progress: Optional[float]) -> str:
    reps = resolve_value(*_bounds(match, "reps"), progress)
    duration = resolve_value(*_bounds(match, "dur"), progress)
    return f"{reps}{match.group('sep')}{duration}"


def _recovery_text(match: Match[str]) -> str:
    midpoint = sum(_bounds(match, "r")) / 2
    if midpoint <= SECONDS_THRESHOLD_MINUTES:
        return f"{round_half_up(midpoint * 60)} sec"
    return f"{round_half_up(midpoint)}{match.group('unit')}"


def _resolve_recovery(match: Match[str], progress: Optional[float]) -> str:
    return _recovery_text(match)


def _resolve_recovery_prefix(match: Match[str], progress: Optional[float]) -> str:
    return f"{match.group('lead')}{_recovery_text(match)}"


def _resolve_single(match: Match[str], progress: Optional[float]) -> str:
    return str(resolve_value(*_bounds(match, "r"), progress))


RANGE_RULES: Tuple[RangeRule, ...] = (
    # "4-6 x 3-8 min": both the rep count and the duration progress
    RangeRule(
        name="rep_duration",
        pattern=re.compile(
            _range("reps")
            + r"(?P<sep>\s*x\s*)"
            + _range("dur")
            + rf"(?=\s*(?:{_MINUTES}|sec(?:ond)?s?\b))",
            re.IGNORECASE,
        ),
        resolver=_resolve_rep_duration,
    ),
    # "1-2 min recovery", "2-3 minutes easy jog recovery": always the midpoint
    RangeRule(
        name="recovery",
        pattern=re.compile(
            _range("r") + rf"(?P<unit>\s*{_MINUTES})(?=\s+{_RECOVERY_WORDS})",
            re.IGNORECASE,
        ),
        resolver=_resolve_recovery,
    ),
    # "recovery: 2-3 min"
    RangeRule(
        name="recovery_prefix",
        pattern=re.compile(
            r"(?P<lead>\brecovery:?\s*)" + _range("r") + rf"(?P<unit>\s*{_MINUTES})",
            re.IGNORECASE,
        ),
        resolver=_resolve_recovery_prefix,
    ),
    # "6-8 miles", "200-400 yards"
    RangeRule(
        name="distance",
        pattern=re.compile(_range("r") + rf"(?=\s*{_DISTANCE_UNITS})", re.IGNORECASE),
        resolver=_resolve_single,
    ),
    # Anything else: rep counts, durations, percentages
    RangeRule(
        name="generic",
        pattern=RANGE_PATTERN,
        resolver=_resolve_single,
    ),
)


def resolve_structure(
    text: str,
    week_number: Optional[int] = None,
    total_weeks: Optional[int] = None,
    rules: Tuple[RangeRule, ...] = RANGE_RULES,
) -> str:
    """
    Replace every numeric range in ``text`` with one concrete value.

    Idempotent: resolving an already-resolved string returns it unchanged.

    Args:
        text: Structure text, possibly containing ranges
        week_number: 1-based plan week (enables progression)
        total_weeks: Plan length (enables progression)
        rules: Ordered rules to apply

    Returns:
        Text with ranges resolved; everything else passed through
    """
    if not text:
        return text
    progress = progression(week_number, total_weeks)
    for rule in rules:
        text = rule.apply(text, progress)
    return text


def has_unresolved_range(text: str) -> bool:
    """True when ``text`` still contains a lo-hi numeric range."""
    return RANGE_PATTERN.search(text or "") is not None


def convert_workout_structures(
    structures: Dict[str, str],
    week_number: Optional[int] = None,
    total_weeks: Optional[int] = None,
) -> Dict[str, str]:
    """Resolve every string value of a mapping (hill sets, swim sets, ...)."""
    return {
        key: resolve_structure(value, week_number, total_weeks) if isinstance(value, str) else value
        for key, value in structures.items()
    }
