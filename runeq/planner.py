"""
Training plan generator.

Builds a periodized multi-week plan from an athlete profile:
- Race template and experience scaling set peak volume and long run cap
- Weeks are split into base/build/peak/taper phases by plan length
- Step-back weeks reduce volume periodically; the taper reduces it every week
- Each day is assigned a type (hard session, long run, bike, easy, rest) and
  a workout prescribed from the matching library with that week's paces

Every significant choice is recorded as a PlanDecision for the reasoning trace.
"""

import logging
import random
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Tuple

from runeq.catalog import get_by_category, get_random
from runeq.compiler import (
    PrescriptionOptions,
    compile_template,
    easy_midpoint_seconds,
    easy_run,
    format_miles,
    race_day,
    rest_day,
)
from runeq.config import PlanRules, RaceTemplate
from runeq.conversions import EASY_TIME_FACTOR, bike_minutes_for_run_minutes
from runeq.equivalency import equivalent_workouts
from runeq.errors import PrescriptionError
from runeq.paces import PaceCalculator, round_half_up, time_to_seconds
from runeq.plan_schemas import (
    DayEntry,
    PhaseBlock,
    PlanDecision,
    PlanOverview,
    PlanSummary,
    PlanWeek,
    PrescribedWorkout,
    TrainingPlan,
)
from runeq.schemas import (
    ExperienceLevel,
    Modality,
    PaceProfile,
    RunningStatus,
    StimulusCategory,
    TrainingPhase,
    UserProfile,
    WEEKDAY_ORDER,
    Weekday,
    WorkoutTemplate,
    WorkoutType,
)

logger = logging.getLogger(__name__)

PHASE_INFO: Dict[TrainingPhase, Tuple[str, str]] = {
    TrainingPhase.BASE: ("Base Building", "Aerobic development, easy miles"),
    TrainingPhase.BUILD: ("Build Phase", "Lactate threshold, tempo work"),
    TrainingPhase.PEAK: ("Peak/Sharpening", "Race-specific speed and power"),
    TrainingPhase.TAPER: ("Taper", "Maintain fitness, reduce volume"),
}

FOCUS_BY_TYPE: Dict[str, str] = {
    "hills": "Power & Strength",
    "tempo": "Lactate Threshold",
    "intervals": "VO2 Max & Speed",
    "easy": "Aerobic Base",
    "long_run": "Endurance",
    "rest": "Recovery",
    "rest_or_xt": "Recovery",
    "race": "Race Day",
    "bike": "Aerobic Power",
}

RECOVERY_WEEK_NOTE = "RECOVERY WEEK: Reduced volume to allow adaptation and recovery"
PEAK_WEEK_NOTE = "Peak phase: Focus on race-specific workouts and maintaining sharpness"
TAPER_WEEK_NOTE = "Taper phase: Maintain intensity but reduce volume for race readiness"

# Mid-week days preferred when only one hard session is placed
PREFERRED_SINGLE_HARD_DAYS = [Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY]

# Stand-up bike categories for non-hard rides
BIKE_LONG_CATEGORY = "long_endurance_rides"
BIKE_AEROBIC_CATEGORY = "aerobic_base"
BIKE_RECOVERY_CATEGORY = "recovery_specific"


def focus_for(workout_type: str) -> str:
    """Display focus for a day type ("tempo", "long_run", ...)."""
    return FOCUS_BY_TYPE.get(workout_type, "General Fitness")


def week_focus(phase: TrainingPhase) -> str:
    name, focus = PHASE_INFO[phase]
    return f"{name}: {focus}"


def spaced_days(candidates: List[Weekday], count: int, min_gap: int = 2) -> List[Weekday]:
    """
    Greedily pick up to ``count`` days, in calendar order, at least ``min_gap`` apart.

    Args:
        candidates: Days to choose from
        count: Number of days wanted
        min_gap: Minimum difference between calendar indexes

    Returns:
        Selected days in calendar order (may be fewer than ``count``)
    """
    if count <= 0 or not candidates:
        return []

    ordered = sorted(set(candidates), key=lambda d: d.index)

    if count == 1:
        for day in PREFERRED_SINGLE_HARD_DAYS:
            if day in ordered:
                return [day]
        return [ordered[0]]

    selected: List[Weekday] = []
    for day in ordered:
        if len(selected) >= count:
            break
        if not selected or day.index - selected[-1].index >= min_gap:
            selected.append(day)
    return selected


class TrainingPlanGenerator:
    """
    Generates a periodized training plan for one athlete.

    The generator:
    1. Scales the race template by experience level
    2. Splits the plan into phases and schedules step-back weeks
    3. Ramps weekly mileage to peak, then tapers
    4. Places hard sessions on spaced days and rotates their type by phase
    5. Prescribes every day from the workout libraries with that week's paces
    6. Documents all decisions for the reasoning trace
    """

    def __init__(
        self,
        rules: Optional[PlanRules] = None,
        calculator: Optional[PaceCalculator] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the plan generator.

        Args:
            rules: Plan-generation rules (defaults reproduce standard periodization)
            calculator: Pace calculator (defaults to the bundled pace table)
            rng: Random source for workout selection; seed it for reproducible plans
        """
        self.rules = rules or PlanRules()
        self.calculator = calculator or PaceCalculator()
        self.rng = rng
        self.plan_decisions: List[PlanDecision] = []
        self._history: Dict[str, Deque[str]] = {}

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def generate(self, profile: UserProfile) -> TrainingPlan:
        """
        Generate a complete training plan.

        Args:
            profile: Athlete goal, schedule and equipment

        Returns:
            TrainingPlan with every week and day prescribed

        Raises:
            OutOfRangeGoal: If the goal time is outside the pace table
            ValueError: If the template does not support the athlete's runs per week,
                or the plan length is outside the allowed range
        """
        self.plan_decisions = []
        self._history = defaultdict(lambda: deque(maxlen=self.rules.workout_history_size))

        # 1. Template and experience scaling
        template = self.rules.race_templates[profile.race_distance]
        peak_mileage, long_run_cap = self._scale_template(template, profile)

        # 2. Plan length and phases
        total_weeks = self._determine_total_weeks(template, profile)
        phases = self._determine_phases(total_weeks)

        # 3. Step-back weeks and mileage
        step_back_weeks = self._determine_step_back_weeks(total_weeks, phases)
        mileage = self._build_mileage_progression(
            total_weeks, phases, step_back_weeks, peak_mileage, profile
        )

        # 4. Paces
        goal_paces = self.calculator.calculate_from_goal(profile.race_distance, profile.goal_time)
        current_paces = self._determine_current_paces(profile, goal_paces)

        # 5. Schedule
        hard_days = self._determine_hard_days(profile)
        if profile.running_status == RunningStatus.BIKE_ONLY:
            self._decide(
                "Bike-Only Mode",
                [f"running_status={profile.running_status.value}",
                 f"standup_bike_type={profile.standup_bike_type.value}"],
                "Athlete is not running; every training day maps onto the stand-up bike library "
                "with distances expressed in RunEQ miles.",
                f"All training days prescribed as {profile.standup_bike_type.display_name} rides",
            )

        # 6. Week by week
        weeks = []
        for week_number in range(1, total_weeks + 1):
            phase = self._get_phase_for_week(week_number, phases)
            if current_paces is not None:
                week_paces = self.calculator.blend_paces(
                    current_paces, goal_paces, week_number, total_weeks
                )
            else:
                week_paces = goal_paces
            weeks.append(
                self._generate_week(
                    week_number=week_number,
                    total_weeks=total_weeks,
                    phase=phase,
                    weekly_mileage=mileage[week_number - 1],
                    is_step_back=week_number in step_back_weeks,
                    long_run_cap=long_run_cap,
                    hard_days=hard_days,
                    paces=week_paces,
                    profile=profile,
                )
            )

        # 7. Plan
        overview = PlanOverview(
            race_distance=profile.race_distance,
            goal_time=profile.goal_time,
            total_weeks=total_weeks,
            runs_per_week=profile.runs_per_week,
            experience_level=profile.experience_level,
            peak_weekly_mileage=peak_mileage,
            cross_training_preference=profile.cross_training_preference,
            standup_bike_type=profile.standup_bike_type,
            running_status=profile.running_status,
            phases=self._phase_blocks(phases),
        )
        plan = TrainingPlan(
            athlete_id=profile.athlete_id,
            plan_overview=overview,
            training_paces=goal_paces.paces,
            track_intervals=goal_paces.track_intervals,
            current_fitness_paces=current_paces.paces if current_paces else None,
            weeks=weeks,
            plan_decisions=self.plan_decisions,
        )
        plan.plan_summary = self.summarize(weeks)

        logger.info(
            "Generated %d-week %s plan for %s (%d decisions)",
            total_weeks,
            profile.race_distance.display_name,
            profile.athlete_id,
            len(self.plan_decisions),
        )
        return plan

    # ------------------------------------------------------------------
    # Plan-level decisions
    # ------------------------------------------------------------------

    def _decide(self, decision_point: str, input_factors: List[str], reasoning: str, outcome: str) -> None:
        self.plan_decisions.append(
            PlanDecision(
                decision_point=decision_point,
                input_factors=input_factors,
                reasoning=reasoning,
                outcome=outcome,
            )
        )
        logger.info("%s: %s", decision_point, outcome)

    def _scale_template(self, template: RaceTemplate, profile: UserProfile) -> Tuple[int, int]:
        """
        Peak weekly mileage and long run cap for this athlete.

        Raises:
            ValueError: If the template does not support the athlete's runs per week
        """
        index = template.index_for(profile.runs_per_week)
        scaling = self.rules.experience_scaling[profile.experience_level]
        peak = round_half_up(template.peak_weekly_mileage[index] * scaling.peak_mileage)
        long_cap = round_half_up(template.long_run_max[index] * scaling.long_run)

        self._decide(
            "Volume Targets",
            [
                f"race_distance={profile.race_distance.value}",
                f"runs_per_week={profile.runs_per_week}",
                f"experience_level={profile.experience_level.value}",
            ],
            f"{profile.race_distance.display_name} template at {profile.runs_per_week} runs/week "
            f"peaks at {template.peak_weekly_mileage[index]} miles with a "
            f"{template.long_run_max[index]}-mile long run, scaled x{scaling.peak_mileage} "
            f"(volume) and x{scaling.long_run} (long run) for experience.",
            f"Peak {peak} miles/week, long run capped at {long_cap} miles",
        )
        return peak, long_cap

    def _determine_total_weeks(self, template: RaceTemplate, profile: UserProfile) -> int:
        total = profile.weeks_available or template.weeks_recommended
        if not self.rules.min_plan_weeks <= total <= self.rules.max_plan_weeks:
            raise ValueError(
                f"Plan length must be {self.rules.min_plan_weeks}-"
                f"{self.rules.max_plan_weeks} weeks, got {total}"
            )
        return total

    def _determine_phases(self, total_weeks: int) -> Dict[TrainingPhase, int]:
        """
        Split the plan into phases using the configuration for its length.

        The build phase absorbs rounding so the phases always sum to the plan.

        Args:
            total_weeks: Plan length

        Returns:
            Dictionary mapping phases to week counts, in plan order

        Raises:
            ValueError: If the configured minimums leave no build weeks
        """
        split = self.rules.phase_split_for(total_weeks)

        base_weeks = max(split.min_base_weeks, int(total_weeks * split.base_percent))
        build_weeks = max(split.min_build_weeks, int(total_weeks * split.build_percent))
        peak_weeks = max(split.min_peak_weeks, int(total_weeks * split.peak_percent))
        taper_weeks = max(split.min_taper_weeks, int(total_weeks * split.taper_percent))

        build_weeks += total_weeks - (base_weeks + build_weeks + peak_weeks + taper_weeks)
        if build_weeks < 1:
            raise ValueError(f"Phase minimums do not fit a {total_weeks}-week plan")

        phases = {
            TrainingPhase.BASE: base_weeks,
            TrainingPhase.BUILD: build_weeks,
            TrainingPhase.PEAK: peak_weeks,
            TrainingPhase.TAPER: taper_weeks,
        }

        self._decide(
            "Training Phase Distribution",
            [f"total_weeks={total_weeks}"],
            f"Allocated {total_weeks} weeks using the "
            + (
                "short-plan"
                if total_weeks <= self.rules.short_plan_max_weeks
                else "medium-plan" if total_weeks <= self.rules.medium_plan_max_weeks else "long-plan"
            )
            + " distribution; build phase absorbs rounding.",
            f"{base_weeks}wk base, {build_weeks}wk build, {peak_weeks}wk peak, {taper_weeks}wk taper",
        )
        return phases

    @staticmethod
    def _get_phase_for_week(week_number: int, phases: Dict[TrainingPhase, int]) -> TrainingPhase:
        """Phase a 1-based week belongs to."""
        base_end = phases[TrainingPhase.BASE]
        build_end = base_end + phases[TrainingPhase.BUILD]
        peak_end = build_end + phases[TrainingPhase.PEAK]

        if week_number <= base_end:
            return TrainingPhase.BASE
        elif week_number <= build_end:
            return TrainingPhase.BUILD
        elif week_number <= peak_end:
            return TrainingPhase.PEAK
        else:
            return TrainingPhase.TAPER

    @staticmethod
    def _phase_blocks(phases: Dict[TrainingPhase, int]) -> List[PhaseBlock]:
        blocks = []
        start = 1
        for phase, weeks in phases.items():
            blocks.append(PhaseBlock(phase=phase, weeks=weeks, start_week=start, end_week=start + weeks - 1))
            start += weeks
        return blocks

    def _determine_step_back_weeks(
        self, total_weeks: int, phases: Dict[TrainingPhase, int]
    ) -> List[int]:
        """Weeks with reduced volume and no hard sessions; never in or just before the taper."""
        taper_start = total_weeks - phases[TrainingPhase.TAPER] + 1
        interval = self.rules.step_back_interval

        step_backs = []
        for week_number in range(interval, taper_start, interval):
            if self.rules.skip_step_back_before_taper and week_number + 1 >= taper_start:
                continue
            step_backs.append(week_number)

        self._decide(
            "Step-Back Weeks",
            [
                f"total_weeks={total_weeks}",
                f"step_back_interval={interval}",
                f"taper_start_week={taper_start}",
            ],
            f"Every {interval}th week drops to {int(self.rules.step_back_multiplier * 100)}% volume "
            "with no hard sessions to absorb training; none in the taper or the week before it.",
            f"Step-back weeks: {step_backs}" if step_backs else "No step-back weeks",
        )
        return step_backs

    def _taper_fractions(self, taper_weeks: int) -> List[float]:
        fractions = list(self.rules.taper_fractions)
        if taper_weeks <= len(fractions):
            return fractions[-taper_weeks:]
        return [fractions[0]] * (taper_weeks - len(fractions)) + fractions

    def _build_mileage_progression(
        self,
        total_weeks: int,
        phases: Dict[TrainingPhase, int],
        step_back_weeks: List[int],
        peak_mileage: int,
        profile: UserProfile,
    ) -> List[int]:
        """
        Weekly mileage for every week.

        Rises linearly from the starting volume to peak at the last pre-taper
        week, is reduced on step-back weeks, and decreases strictly through
        the taper.
        """
        if profile.current_weekly_mileage is not None:
            start = min(profile.current_weekly_mileage, peak_mileage)
        else:
            start = round_half_up(peak_mileage * self.rules.default_start_fraction)

        taper_weeks = phases[TrainingPhase.TAPER]
        build_weeks = total_weeks - taper_weeks

        mileage: List[int] = []
        for week_number in range(1, build_weeks + 1):
            if build_weeks > 1:
                progress = (week_number - 1) / (build_weeks - 1)
            else:
                progress = 1.0
            normal = start + (peak_mileage - start) * progress
            if week_number in step_back_weeks:
                normal *= self.rules.step_back_multiplier
            mileage.append(round_half_up(normal))

        previous = peak_mileage
        for fraction in self._taper_fractions(taper_weeks):
            week_miles = min(round_half_up(peak_mileage * fraction), previous - 1)
            week_miles = max(0, week_miles)
            mileage.append(week_miles)
            previous = week_miles

        self._decide(
            "Weekly Mileage Progression",
            [
                f"current_weekly_mileage={profile.current_weekly_mileage}",
                f"peak_mileage={peak_mileage}",
                f"taper_weeks={taper_weeks}",
            ],
            f"Start at {start} miles"
            + (" (current volume)" if profile.current_weekly_mileage is not None else " (half of peak)")
            + f", rise linearly to {peak_mileage} by week {build_weeks}, then taper.",
            " -> ".join(str(m) for m in mileage),
        )
        return mileage

    def _determine_current_paces(
        self, profile: UserProfile, goal: PaceProfile
    ) -> Optional[PaceProfile]:
        """Current-fitness paces when they are known and slower than goal, else None."""
        if profile.current_long_run_distance is None and profile.current_weekly_mileage is None:
            return None

        current = self.calculator.calculate_from_current_fitness(
            profile.current_long_run_distance,
            profile.current_weekly_mileage,
            profile.race_distance,
        )
        use_progression = time_to_seconds(current.goal_time) > time_to_seconds(goal.goal_time)

        self._decide(
            "Pace Progression",
            [
                f"current_long_run_distance={profile.current_long_run_distance}",
                f"current_weekly_mileage={profile.current_weekly_mileage}",
                f"goal_time={profile.goal_time}",
            ],
            f"Current fitness estimates a {current.goal_time} {profile.race_distance.display_name}. "
            + (
                "Paces blend from current toward goal fitness week by week."
                if use_progression
                else "Current fitness already meets the goal, so goal paces apply throughout."
            ),
            "Progressive pace blending" if use_progression else "Static goal paces",
        )
        return current if use_progression else None

    def _default_hard_day_count(self, profile: UserProfile) -> int:
        if profile.experience_level == ExperienceLevel.BEGINNER or profile.runs_per_week == 3:
            return 1
        if profile.experience_level == ExperienceLevel.ADVANCED and profile.runs_per_week >= 6:
            return 3
        return 2

    def _determine_hard_days(self, profile: UserProfile) -> List[Weekday]:
        """
        Days for tempo/interval/hill sessions, never two in a row.

        Uses the athlete's chosen days when given; otherwise picks spaced days
        from the non-long training days. Picks that would fall on consecutive
        days are dropped.
        """
        if profile.hard_session_days:
            requested = sorted(profile.hard_session_days, key=lambda d: d.index)
            source = "athlete-selected"
        else:
            bike_days = set(profile.preferred_bike_days) if profile.owns_standup_bike else set()
            candidates = [
                d for d in profile.training_days
                if d != profile.long_run_day and d not in bike_days
            ]
            count = self._default_hard_day_count(profile)
            requested = spaced_days(candidates, count)
            if len(requested) < count:
                self._decide(
                    "Hard Session Count",
                    [f"requested={count}", f"candidate_days={[d.value for d in candidates]}"],
                    f"Only {len(requested)} non-consecutive days are available for hard sessions.",
                    f"{len(requested)} hard sessions per week instead of {count}",
                )
            source = "auto-selected"

        hard_days = spaced_days(requested, len(requested)) if len(requested) > 1 else requested
        dropped = [d for d in requested if d not in hard_days]
        if dropped:
            logger.warning("Dropped consecutive hard session days: %s", [d.value for d in dropped])

        self._decide(
            "Hard Session Days",
            [
                f"source={source}",
                f"runs_per_week={profile.runs_per_week}",
                f"experience_level={profile.experience_level.value}",
                f"long_run_day={profile.long_run_day.value}",
            ],
            "Hard sessions need at least one easier day between them. "
            + (
                f"Dropped {', '.join(d.display_name for d in dropped)} to avoid back-to-back hard days."
                if dropped
                else "Selected days are already spaced."
            ),
            ", ".join(d.display_name for d in hard_days) or "No hard sessions",
        )
        return hard_days

    # ------------------------------------------------------------------
    # Week generation
    # ------------------------------------------------------------------

    def _generate_week(
        self,
        week_number: int,
        total_weeks: int,
        phase: TrainingPhase,
        weekly_mileage: int,
        is_step_back: bool,
        long_run_cap: int,
        hard_days: List[Weekday],
        paces: PaceProfile,
        profile: UserProfile,
    ) -> PlanWeek:
        runs = profile.runs_per_week
        long_fraction = (
            self.rules.long_run_fraction_low_frequency
            if runs <= self.rules.low_frequency_max_runs
            else self.rules.long_run_fraction_high_frequency
        )
        long_miles = min(round_half_up(weekly_mileage * long_fraction), long_run_cap)
        base_other = (weekly_mileage - long_miles) / (runs - 1)

        bike_only = profile.running_status == RunningStatus.BIKE_ONLY
        bike_days = set(profile.preferred_bike_days) if profile.owns_standup_bike else set()
        training_days = profile.training_days
        is_race_week = profile.race_date is not None and week_number == total_weeks

        ctx = _WeekContext(
            week_number=week_number,
            total_weeks=total_weeks,
            phase=phase,
            paces=paces,
            profile=profile,
            base_other=base_other,
        )

        entries: List[DayEntry] = []
        hard_index = 0
        easy_index = 0
        for day in WEEKDAY_ORDER:
            if day not in training_days:
                entries.append(self._rest_entry(day, profile))
            elif day == profile.long_run_day:
                if is_race_week:
                    entries.append(self._race_entry(day, paces, profile))
                elif bike_only:
                    entries.append(self._bike_entry(day, ctx, BIKE_LONG_CATEGORY, long_miles, "Endurance"))
                else:
                    entries.append(self._long_run_entry(day, ctx, long_miles))
            elif day in hard_days and not is_step_back:
                rotation = self.rules.hard_rotation[phase]
                hard_type = rotation[(hard_index + week_number) % len(rotation)]
                hard_index += 1
                if bike_only or day in bike_days:
                    entries.append(
                        self._bike_entry(
                            day,
                            ctx,
                            self.rules.bike_hard_categories[hard_type],
                            ctx.distance_for(hard_type, self.rules),
                            focus_for(hard_type),
                        )
                    )
                else:
                    entries.append(self._hard_entry(day, ctx, hard_type))
            elif bike_only:
                entries.append(
                    self._bike_entry(
                        day, ctx, BIKE_RECOVERY_CATEGORY, ctx.distance_for("bike", self.rules), "Recovery"
                    )
                )
            elif day in bike_days:
                entries.append(
                    self._bike_entry(
                        day, ctx, BIKE_AEROBIC_CATEGORY, ctx.distance_for("bike", self.rules), "Aerobic Base"
                    )
                )
            else:
                entries.append(self._easy_entry(day, ctx, easy_index))
                easy_index += 1

        return PlanWeek(
            week_number=week_number,
            phase=phase,
            total_mileage=weekly_mileage,
            is_rest_week=is_step_back,
            workouts=entries,
            week_focus=week_focus(phase),
            notes=self._generate_week_notes(phase, is_step_back, week_number, total_weeks),
        )

    @staticmethod
    def _generate_week_notes(
        phase: TrainingPhase, is_step_back: bool, week_number: int, total_weeks: int
    ) -> List[str]:
        notes = []
        if is_step_back:
            notes.append(RECOVERY_WEEK_NOTE)
        notes.append(f"Focus: {PHASE_INFO[phase][1]}")
        if phase == TrainingPhase.PEAK and week_number > total_weeks - 4:
            notes.append(PEAK_WEEK_NOTE)
        if phase == TrainingPhase.TAPER:
            notes.append(TAPER_WEEK_NOTE)
        return notes

    # ------------------------------------------------------------------
    # Day entries
    # ------------------------------------------------------------------

    def _select_template(
        self,
        modality: Modality,
        category: str,
        history_key: str,
        equipment: Optional[str] = None,
    ) -> WorkoutTemplate:
        """
        Pick a template, avoiding the most recently used ones for this slot.

        Raises:
            EmptyCategory: If the category has no templates
        """
        templates = get_by_category(modality, category)
        if equipment:
            templates = [t for t in templates if t.equipment in (equipment, "both", None)]
        history = self._history[history_key]
        recent = list(history)[-self.rules.avoid_recent:]
        fresh = [t for t in templates if t.name not in recent]
        if fresh:
            template = (self.rng or random).choice(fresh)
        else:
            template = get_random(modality, category, self.rng)
        history.append(template.name)
        return template

    def _prescribe_or_fallback(
        self,
        day: Weekday,
        ctx: "_WeekContext",
        modality: Modality,
        category: str,
        history_key: str,
        distance: float,
        equipment: Optional[str] = None,
    ) -> Optional[PrescribedWorkout]:
        """Compile a library workout for the day, or None after recording the failure."""
        try:
            template = self._select_template(modality, category, history_key, equipment)
            return compile_template(modality, template, ctx.options(distance))
        except (PrescriptionError, ValueError, LookupError) as e:
            logger.warning(
                "Week %d %s: %s/%s prescription failed (%s); using an easy run",
                ctx.week_number,
                day.value,
                modality.value,
                category,
                e,
            )
            self._decide(
                "Prescription Fallback",
                [f"week={ctx.week_number}", f"day={day.value}", f"library={modality.value}/{category}"],
                f"Prescription failed: {e}",
                "Scheduled a plain easy run instead",
            )
            return None

    def _rest_entry(self, day: Weekday, profile: UserProfile) -> DayEntry:
        with_xt = profile.owns_any_cross_training
        workout_type = WorkoutType.REST_OR_XT if with_xt else WorkoutType.REST
        return DayEntry(
            day=day,
            type=workout_type,
            workout=rest_day(with_cross_training=with_xt),
            distance=0,
            focus=focus_for(workout_type.value),
        )

    def _race_entry(self, day: Weekday, paces: PaceProfile, profile: UserProfile) -> DayEntry:
        distance = profile.race_distance
        return DayEntry(
            day=day,
            type=WorkoutType.RACE,
            workout=race_day(distance, profile.goal_time, paces, profile.race_date),
            distance=round(distance.miles, 1),
            focus=focus_for(WorkoutType.RACE.value),
        )

    def _long_run_entry(self, day: Weekday, ctx: "_WeekContext", miles: int) -> DayEntry:
        category = self.rules.phase_categories["long_run"][ctx.phase]
        workout = self._prescribe_or_fallback(
            day, ctx, Modality.LONG_RUN, category, "long_run", miles
        )
        return DayEntry(
            day=day,
            type=WorkoutType.LONG_RUN,
            workout=workout or easy_run(miles, ctx.paces),
            distance=miles,
            focus=focus_for(WorkoutType.LONG_RUN.value),
        )

    def _hard_entry(self, day: Weekday, ctx: "_WeekContext", hard_type: str) -> DayEntry:
        distance = ctx.distance_for(hard_type, self.rules)
        category = self.rules.phase_categories[hard_type][ctx.phase]
        workout = self._prescribe_or_fallback(
            day, ctx, Modality(hard_type), category, hard_type, distance
        )
        if workout is None:
            easy_distance = ctx.distance_for("easy", self.rules)
            return DayEntry(
                day=day,
                type=WorkoutType.EASY,
                workout=easy_run(easy_distance, ctx.paces),
                distance=easy_distance,
                focus=focus_for(WorkoutType.EASY.value),
            )
        return DayEntry(
            day=day,
            type=WorkoutType(hard_type),
            workout=workout,
            distance=distance,
            focus=focus_for(hard_type),
        )

    def _bike_entry(
        self, day: Weekday, ctx: "_WeekContext", category: str, miles: float, focus: str
    ) -> DayEntry:
        bike = ctx.profile.standup_bike_type
        workout = self._prescribe_or_fallback(
            day, ctx, Modality.STANDUP_BIKE, category, f"bike:{category}", miles, bike.value
        )
        if workout is None:
            return DayEntry(
                day=day,
                type=WorkoutType.EASY,
                workout=easy_run(miles, ctx.paces),
                distance=miles,
                focus=focus_for(WorkoutType.EASY.value),
            )
        return DayEntry(
            day=day,
            type=WorkoutType.BIKE,
            workout=workout,
            distance=miles,
            focus=focus,
            equipment_specific=True,
        )

    def _easy_entry(self, day: Weekday, ctx: "_WeekContext", easy_index: int) -> DayEntry:
        """Easy run, or every other easy day an easy cross-training session."""
        distance = ctx.distance_for("easy", self.rules)
        profile = ctx.profile
        owned = profile.equipment.owned_modalities()

        if (
            owned
            and easy_index % 2 == 1
            and profile.cross_training_preference >= self.rules.cross_training_threshold
        ):
            modality = owned[(easy_index // 2 + ctx.week_number) % len(owned)]
            workout = self._cross_training_session(modality, ctx, distance)
            if workout is not None:
                return DayEntry(
                    day=day,
                    type=WorkoutType.EASY,
                    workout=workout,
                    distance=distance,
                    focus=focus_for(WorkoutType.EASY.value),
                    equipment_specific=True,
                )

        return DayEntry(
            day=day,
            type=WorkoutType.EASY,
            workout=easy_run(distance, ctx.paces),
            distance=distance,
            focus=focus_for(WorkoutType.EASY.value),
        )

    def _cross_training_session(
        self, modality: Modality, ctx: "_WeekContext", run_miles: float
    ) -> Optional[PrescribedWorkout]:
        """Easy session on owned equipment, sized to match the easy run it replaces."""
        try:
            options = ctx.options(None)
            workouts = equivalent_workouts(
                StimulusCategory.EASY, modality, limit=3, options=options, equipment=ctx.profile.equipment
            )
        except (PrescriptionError, ValueError, LookupError) as e:
            logger.warning("Week %d: %s cross-training unavailable (%s)", ctx.week_number, modality.value, e)
            return None
        if not workouts:
            return None

        workout = (self.rng or random).choice(workouts)
        run_minutes = run_miles * easy_midpoint_seconds(ctx.paces) / 60
        minutes = bike_minutes_for_run_minutes(run_minutes, "easy")
        details = dict(workout.details)
        details["replaces"] = f"{format_miles(run_miles)} mile easy run"
        details["conversion"] = f"{EASY_TIME_FACTOR:g}x easy running time"
        return workout.model_copy(
            update={
                "duration": f"{minutes} minutes",
                "estimated_minutes": minutes,
                "equipment": modality.value,
                "details": details,
            }
        )

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    @staticmethod
    def summarize(weeks: List[PlanWeek]) -> PlanSummary:
        """Totals, type breakdown and variety across all weeks."""
        breakdown: Dict[str, int] = {}
        names = []
        for week in weeks:
            for entry in week.workouts:
                breakdown[entry.type.value] = breakdown.get(entry.type.value, 0) + 1
                if not entry.type.is_rest:
                    names.append(entry.workout.name)

        total_miles = sum(week.total_mileage for week in weeks)
        total_workouts = len(names)
        return PlanSummary(
            total_workouts=total_workouts,
            total_miles=total_miles,
            workout_breakdown=breakdown,
            average_weekly_miles=round_half_up(total_miles / len(weeks)),
            peak_week_miles=max(week.total_mileage for week in weeks),
            variety_score=round(len(set(names)) / total_workouts, 3) if total_workouts else 0.0,
        )


class _WeekContext:
    """Per-week inputs shared by every day entry."""

    def __init__(
        self,
        week_number: int,
        total_weeks: int,
        phase: TrainingPhase,
        paces: PaceProfile,
        profile: UserProfile,
        base_other: float,
    ):
        self.week_number = week_number
        self.total_weeks = total_weeks
        self.phase = phase
        self.paces = paces
        self.profile = profile
        self.base_other = base_other

    def distance_for(self, workout_type: str, rules: PlanRules) -> int:
        """Miles for a non-long day, scaled by its type multiplier."""
        multiplier = rules.distance_multipliers.get(workout_type, 1.0)
        return max(1, round_half_up(self.base_other * multiplier))

    def options(self, distance: Optional[float]) -> PrescriptionOptions:
        profile = self.profile
        return PrescriptionOptions(
            paces=self.paces,
            week_number=self.week_number,
            total_weeks=self.total_weeks,
            distance_miles=distance,
            cross_training_preference=profile.cross_training_preference,
            standup_bike_type=profile.standup_bike_type,
            has_garmin=profile.has_garmin,
            experience_level=profile.experience_level,
        )
