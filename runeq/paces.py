"""
Goal-time pace calculation.

Converts a race distance and goal finish time into per-zone training paces
using a tabulated set of reference rows. Goals between rows are linearly
interpolated; goals outside the table are rejected with OutOfRangeGoal.

Also estimates current fitness from recent training volume and blends
current-fitness paces toward goal paces week by week.
"""

import json
import logging
import math
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from runeq.errors import OutOfRangeGoal
from runeq.schemas import (
    PaceProfile,
    PaceTableRow,
    PaceZone,
    RaceDistance,
    TrackIntervals,
    TrainingPaces,
)

logger = logging.getLogger(__name__)

PACE_TABLE_PATH = Path(__file__).parent / "data" / "pace_table.json"

# Zone descriptions and heart-rate guidance
ZONE_INFO: Dict[str, Tuple[str, Optional[str]]] = {
    "easy": ("Easy/Recovery runs", "65-79% max HR"),
    "marathon": ("Marathon race pace", "80-85% max HR"),
    "threshold": ("Tempo/Threshold runs", "86-90% max HR"),
    "interval": ("VO2 Max intervals (3-8 min)", "95-100% max HR"),
    "race": ("Goal race pace", None),
}

# Approximate race times by fitness score (VDOT), Daniels-style
VDOT_RACE_TIMES: Dict[int, Dict[RaceDistance, str]] = {
    25: {RaceDistance.TEN_K: "65:00", RaceDistance.HALF_MARATHON: "2:35:00", RaceDistance.MARATHON: "5:30:00"},
    30: {RaceDistance.TEN_K: "58:00", RaceDistance.HALF_MARATHON: "2:15:00", RaceDistance.MARATHON: "4:45:00"},
    32: {RaceDistance.TEN_K: "55:00", RaceDistance.HALF_MARATHON: "2:08:00", RaceDistance.MARATHON: "4:30:00"},
    34: {RaceDistance.TEN_K: "52:00", RaceDistance.HALF_MARATHON: "2:02:00", RaceDistance.MARATHON: "4:15:00"},
    36: {RaceDistance.TEN_K: "49:30", RaceDistance.HALF_MARATHON: "1:56:00", RaceDistance.MARATHON: "4:02:00"},
    38: {RaceDistance.TEN_K: "47:00", RaceDistance.HALF_MARATHON: "1:50:00", RaceDistance.MARATHON: "3:50:00"},
    40: {RaceDistance.TEN_K: "45:00", RaceDistance.HALF_MARATHON: "1:45:00", RaceDistance.MARATHON: "3:40:00"},
    42: {RaceDistance.TEN_K: "43:00", RaceDistance.HALF_MARATHON: "1:40:00", RaceDistance.MARATHON: "3:30:00"},
    45: {RaceDistance.TEN_K: "40:30", RaceDistance.HALF_MARATHON: "1:33:00", RaceDistance.MARATHON: "3:15:00"},
    50: {RaceDistance.TEN_K: "37:00", RaceDistance.HALF_MARATHON: "1:23:00", RaceDistance.MARATHON: "2:55:00"},
}

MIN_VDOT = 25
MAX_VDOT = 55


# ============================================================================
# Time helpers
# ============================================================================

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def time_to_seconds(time_str: str) -> int:
    """
    Parse "H:MM:SS" or "MM:SS" into seconds.

    Raises:
        ValueError: If the string is not a valid time
    """
    parts = time_str.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time format: {time_str!r}. Use H:MM:SS or MM:SS")
    numbers = [int(p) for p in parts]
    if any(n >= 60 for n in numbers[1:]):
        raise ValueError(f"Invalid time format: {time_str!r}. Minutes and seconds must be below 60")
    if len(numbers) == 3:
        hours, minutes, seconds = numbers
        return hours * 3600 + minutes * 60 + seconds
    minutes, seconds = numbers
    return minutes * 60 + seconds


def seconds_to_time(total_seconds: float) -> str:
    """Format seconds as "H:MM:SS" (or "MM:SS" under an hour)."""
    total = round_half_up(total_seconds)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def pace_to_seconds(pace: str) -> int:
    """Parse a "M:SS" pace into seconds."""
    return time_to_seconds(pace)


def seconds_to_pace(total_seconds: float) -> str:
    """
    Format seconds as a "M:SS" pace.

    Rounds the total first so a value like 539.7 becomes "9:00", not "8:60".
    """
    minutes, seconds = divmod(round_half_up(total_seconds), 60)
    return f"{minutes}:{seconds:02d}"


def _lerp_pace(faster: str, slower: str, ratio: float) -> str:
    """Pace at ``ratio`` of the way from ``faster`` to ``slower``."""
    low = pace_to_seconds(faster)
    high = pace_to_seconds(slower)
    return seconds_to_pace(low + (high - low) * ratio)


@lru_cache()
def load_pace_table(path: Path = PACE_TABLE_PATH) -> Dict[RaceDistance, Tuple[PaceTableRow, ...]]:
    """
    Load the reference pace table, fastest goal first for each distance.

    The table is read once per process and never mutated.
    """
    with open(path) as f:
        raw = json.load(f)

    table: Dict[RaceDistance, Tuple[PaceTableRow, ...]] = {}
    for key, rows in raw.items():
        distance = RaceDistance(key)
        parsed = [PaceTableRow(**row) for row in rows]
        parsed.sort(key=lambda r: time_to_seconds(r.goal_time))
        table[distance] = tuple(parsed)
    return table


# ============================================================================
# Calculator
# ============================================================================

class PaceCalculator:
    """
    Derives training paces from a goal race time.

    Every public method is a pure function of its inputs and the shared,
    read-only pace table.
    """

    def __init__(self, table: Optional[Dict[RaceDistance, Tuple[PaceTableRow, ...]]] = None):
        """
        Initialize calculator.

        Args:
            table: Pace table override (defaults to the packaged table)
        """
        self.table = table if table is not None else load_pace_table()

    def _rows(self, distance: RaceDistance) -> Tuple[PaceTableRow, ...]:
        rows = self.table.get(distance)
        if not rows:
            raise ValueError(f"No pace data for {distance.display_name}")
        return rows

    def valid_range(self, distance: Union[str, RaceDistance]) -> Tuple[str, str]:
        """Fastest and slowest tabulated goal times for a distance."""
        rows = self._rows(RaceDistance.parse(distance))
        return rows[0].goal_time, rows[-1].goal_time

    def range_message(self, distance: Union[str, RaceDistance]) -> str:
        """Human-readable valid range, e.g. "Marathon: 2:00:00 to 6:00:00"."""
        dist = RaceDistance.parse(distance)
        fastest, slowest = self.valid_range(dist)
        return f"{dist.display_name}: {fastest} to {slowest}"

    def available_goal_times(self, distance: Union[str, RaceDistance]) -> List[str]:
        """Tabulated goal times, fastest first."""
        return [row.goal_time for row in self._rows(RaceDistance.parse(distance))]

    def calculate_from_goal(
        self, distance: Union[str, RaceDistance], goal_time: str
    ) -> PaceProfile:
        """
        Calculate training paces for a goal race time.

        An exact table match returns that row unchanged. Otherwise every pace
        and track split is linearly interpolated between the bounding rows.

        Args:
            distance: Race distance (enum or alias such as "Marathon")
            goal_time: Goal finish time as H:MM:SS or MM:SS

        Returns:
            PaceProfile for the goal

        Raises:
            OutOfRangeGoal: If the goal is faster or slower than the table
            ValueError: If the distance or time cannot be parsed
        """
        dist = RaceDistance.parse(distance)
        goal_seconds = time_to_seconds(goal_time)
        rows = self._rows(dist)
        fastest, slowest = rows[0], rows[-1]

        if not (time_to_seconds(fastest.goal_time) <= goal_seconds <= time_to_seconds(slowest.goal_time)):
            raise OutOfRangeGoal(
                dist.display_name, goal_time, fastest.goal_time, slowest.goal_time
            )

        race_zone = self._race_zone(dist, goal_seconds)

        for row in rows:
            if time_to_seconds(row.goal_time) == goal_seconds:
                return PaceProfile(
                    distance=dist,
                    goal_time=goal_time,
                    paces=self._paces_from_row(row, race_zone),
                    track_intervals=row.track_intervals,
                    interpolated=False,
                )

        # Bounding rows: faster <= goal <= slower
        faster = max(
            (r for r in rows if time_to_seconds(r.goal_time) < goal_seconds),
            key=lambda r: time_to_seconds(r.goal_time),
        )
        slower = min(
            (r for r in rows if time_to_seconds(r.goal_time) > goal_seconds),
            key=lambda r: time_to_seconds(r.goal_time),
        )
        low = time_to_seconds(faster.goal_time)
        high = time_to_seconds(slower.goal_time)
        ratio = (goal_seconds - low) / (high - low)

        paces = TrainingPaces(
            easy=self._easy_zone(
                _lerp_pace(faster.easy[0], slower.easy[0], ratio),
                _lerp_pace(faster.easy[1], slower.easy[1], ratio),
            ),
            marathon=self._zone("marathon", _lerp_pace(faster.marathon, slower.marathon, ratio)),
            threshold=self._zone("threshold", _lerp_pace(faster.threshold, slower.threshold, ratio)),
            interval=self._zone("interval", _lerp_pace(faster.interval, slower.interval, ratio)),
            race=race_zone,
        )
        track = TrackIntervals(
            threshold={
                split: _lerp_pace(t, slower.track_intervals.threshold[split], ratio)
                for split, t in faster.track_intervals.threshold.items()
            },
            interval={
                split: _lerp_pace(t, slower.track_intervals.interval[split], ratio)
                for split, t in faster.track_intervals.interval.items()
            },
        )
        return PaceProfile(
            distance=dist,
            goal_time=goal_time,
            paces=paces,
            track_intervals=track,
            interpolated=True,
            interpolated_between=(faster.goal_time, slower.goal_time),
        )

    # ------------------------------------------------------------------
    # Current fitness
    # ------------------------------------------------------------------

    @staticmethod
    def estimate_current_vdot(
        long_run_miles: Optional[float], weekly_mileage: Optional[float]
    ) -> int:
        """
        Conservative fitness score from recent training volume.

        The long run is the primary signal; weekly mileage adjusts it, or
        stands in when no long run is known.

        Args:
            long_run_miles: Longest recent run
            weekly_mileage: Current weekly miles

        Returns:
            Fitness score clamped to 25-55
        """
        weekly = weekly_mileage or 0
        if not long_run_miles or long_run_miles <= 0:
            if weekly >= 40:
                vdot = 40
            elif weekly >= 30:
                vdot = 35
            elif weekly >= 20:
                vdot = 32
            else:
                vdot = 30
        else:
            thresholds = [(18, 42), (15, 40), (13, 38), (10, 36), (8, 34), (6, 32)]
            vdot = next((v for miles, v in thresholds if long_run_miles >= miles), 30)
            if weekly >= 50:
                vdot += 2
            elif weekly < 20:
                vdot -= 2

        return max(MIN_VDOT, min(MAX_VDOT, vdot))

    @staticmethod
    def estimate_race_time(vdot: float, distance: Union[str, RaceDistance]) -> str:
        """Race time for the tabulated fitness score closest to ``vdot``."""
        dist = RaceDistance.parse(distance)
        closest = min(sorted(VDOT_RACE_TIMES), key=lambda v: abs(v - vdot))
        return VDOT_RACE_TIMES[closest][dist]

    def calculate_from_current_fitness(
        self,
        long_run_miles: Optional[float],
        weekly_mileage: Optional[float],
        distance: Union[str, RaceDistance],
    ) -> PaceProfile:
        """
        Paces for the athlete's estimated current race fitness.

        The estimated time is clamped into the table range so an unusual
        estimate never fails plan generation.
        """
        dist = RaceDistance.parse(distance)
        vdot = self.estimate_current_vdot(long_run_miles, weekly_mileage)
        estimated = self.estimate_race_time(vdot, dist)

        fastest, slowest = self.valid_range(dist)
        estimated_seconds = min(
            max(time_to_seconds(estimated), time_to_seconds(fastest)),
            time_to_seconds(slowest),
        )
        estimated = seconds_to_time(estimated_seconds)
        logger.info(
            "Estimated current fitness: VDOT %s = %s in %s",
            vdot,
            dist.display_name,
            estimated,
        )
        return self.calculate_from_goal(dist, estimated)

    @staticmethod
    def smooth_progression_curve(x: float) -> float:
        """
        Map linear plan progress onto a smoother pace progression.

        Stays near current paces for the first 30%, accelerates through the
        middle 40%, then eases into goal paces.
        """
        if x < 0.3:
            y = x * 0.5
        elif x < 0.7:
            y = 0.15 + (x - 0.3) * 1.5
        else:
            y = 0.75 + (x - 0.7) * 0.833
        return max(0.0, min(1.0, y))

    def blend_paces(
        self,
        current: PaceProfile,
        goal: PaceProfile,
        week_number: int,
        total_weeks: int,
    ) -> PaceProfile:
        """
        Paces for one week of a plan that progresses from current to goal fitness.

        Week 1 uses current paces; the final week uses goal paces. Race pace
        always stays at goal.

        Args:
            current: Current-fitness profile
            goal: Goal profile
            week_number: 1-based week
            total_weeks: Plan length

        Returns:
            Blended PaceProfile with progression_ratio set
        """
        raw = (week_number - 1) / (total_weeks - 1) if total_weeks > 1 else 1.0
        ratio = self.smooth_progression_curve(raw)

        def blend(cur: str, target: str) -> str:
            cur_s = pace_to_seconds(cur)
            return seconds_to_pace(cur_s - (cur_s - pace_to_seconds(target)) * ratio)

        cp, gp = current.paces, goal.paces
        paces = TrainingPaces(
            easy=self._easy_zone(blend(cp.easy.min, gp.easy.min), blend(cp.easy.max, gp.easy.max)),
            marathon=self._zone("marathon", blend(cp.marathon.pace, gp.marathon.pace)),
            threshold=self._zone("threshold", blend(cp.threshold.pace, gp.threshold.pace)),
            interval=self._zone("interval", blend(cp.interval.pace, gp.interval.pace)),
            race=gp.race,
        )
        track = TrackIntervals(
            threshold={
                k: blend(v, goal.track_intervals.threshold.get(k, v))
                for k, v in current.track_intervals.threshold.items()
            },
            interval={
                k: blend(v, goal.track_intervals.interval.get(k, v))
                for k, v in current.track_intervals.interval.items()
            },
        )
        return PaceProfile(
            distance=goal.distance,
            goal_time=goal.goal_time,
            paces=paces,
            track_intervals=track,
            interpolated=goal.interpolated,
            interpolated_between=goal.interpolated_between,
            progression_ratio=round(ratio, 4),
        )

    # ------------------------------------------------------------------
    # Zone builders
    # ------------------------------------------------------------------

    @staticmethod
    def _zone(name: str, pace: str) -> PaceZone:
        description, heart_rate = ZONE_INFO[name]
        return PaceZone(pace=pace, description=description, heart_rate=heart_rate)

    @staticmethod
    def _easy_zone(fast: str, slow: str) -> PaceZone:
        description, heart_rate = ZONE_INFO["easy"]
        return PaceZone(
            pace=f"{fast}-{slow}",
            min=fast,
            max=slow,
            description=description,
            heart_rate=heart_rate,
        )

    def _paces_from_row(self, row: PaceTableRow, race_zone: PaceZone) -> TrainingPaces:
        return TrainingPaces(
            easy=self._easy_zone(row.easy[0], row.easy[1]),
            marathon=self._zone("marathon", row.marathon),
            threshold=self._zone("threshold", row.threshold),
            interval=self._zone("interval", row.interval),
            race=race_zone,
        )

    @staticmethod
    def _race_zone(distance: RaceDistance, goal_seconds: int) -> PaceZone:
        description, heart_rate = ZONE_INFO["race"]
        return PaceZone(
            pace=seconds_to_pace(goal_seconds / distance.miles),
            description=f"{distance.display_name} {description.lower()}",
            heart_rate=heart_rate,
        )
