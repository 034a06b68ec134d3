"""
Command-line interface for the prescription engine.

Provides commands for:
- Goal pace tables
- Plan generation (display, JSON export, database save)
- Single workout prescriptions
- Alternatives for a plan day
- Browsing the workout libraries
"""

import asyncio
import json
import random
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from runeq.alternatives import AlternativeGenerator
from runeq.catalog import get_by_category, get_categories, load_catalog
from runeq.compiler import PrescriptionOptions, prescribe
from runeq.config import get_settings
from runeq.errors import OutOfRangeGoal, PlanSaveError, WorkoutNotFound
from runeq.logging_config import setup_logging
from runeq.paces import PaceCalculator
from runeq.plan_schemas import AlternativeCategory, PrescribedWorkout, TrainingPlan
from runeq.planner import TrainingPlanGenerator
from runeq.schemas import Modality, PaceProfile, UserProfile, Weekday
from runeq.storage import SqlAlchemyPlanStore

# Initialize Typer app and Rich console
app = typer.Typer(
    help="RunEQ Training Prescription Engine - goal paces, periodized plans and cross-training alternatives"
)
console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override RUNEQ_LOG_LEVEL"
    ),
):
    """Configure logging before any command runs."""
    setup_logging(level=log_level)


# ===== LOADING HELPERS =====


def _load_profile(path: Path) -> UserProfile:
    try:
        with open(path) as f:
            profile = UserProfile(**json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]✗ Failed to load profile: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"✓ Loaded profile: [green]{profile.athlete_id}[/green]")
    return profile


def _rng(seed: Optional[int]) -> Optional[random.Random]:
    if seed is None:
        seed = get_settings().DEFAULT_SEED
    return random.Random(seed) if seed is not None else None


def _out_of_range(error: OutOfRangeGoal):
    console.print(
        Panel(
            str(error),
            title="Goal Time Out of Range",
            border_style="red",
        )
    )
    raise typer.Exit(1)


# ===== DISPLAY HELPER FUNCTIONS =====


def _display_paces(profile: PaceProfile):
    """
    Display a pace profile as zone and track tables.

    Args:
        profile: PaceProfile from the calculator
    """
    title = f"{profile.distance.display_name} {profile.goal_time}"
    if profile.interpolated and profile.interpolated_between:
        faster, slower = profile.interpolated_between
        title += f" (interpolated between {faster} and {slower})"

    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Zone", style="cyan")
    table.add_column("Pace /mile", justify="right", style="yellow")
    table.add_column("Heart Rate", justify="right")
    table.add_column("Description")

    paces = profile.paces
    for zone_name in ("easy", "marathon", "threshold", "interval", "race"):
        zone = getattr(paces, zone_name)
        table.add_row(zone_name.title(), zone.pace, zone.heart_rate or "-", zone.description)
    console.print(table)

    track = Table(title="Track Splits", box=box.ROUNDED)
    track.add_column("Distance", style="cyan")
    track.add_column("Threshold", justify="right")
    track.add_column("Interval", justify="right")
    distances = list(dict.fromkeys(
        list(profile.track_intervals.threshold) + list(profile.track_intervals.interval)
    ))
    for distance in distances:
        track.add_row(
            distance,
            profile.track_intervals.threshold.get(distance, "-"),
            profile.track_intervals.interval.get(distance, "-"),
        )
    console.print(track)


def _display_workout(workout: PrescribedWorkout):
    """
    Display one prescribed workout.

    Args:
        workout: PrescribedWorkout from the compiler
    """
    lines = [f"[bold]{workout.structure}[/bold]"] if workout.structure else []
    if workout.description:
        lines.append(workout.description)
    if workout.duration:
        lines.append(f"Duration: {workout.duration}")
    if workout.intensity:
        lines.append(f"Intensity: {workout.intensity}")
    if workout.runeq_miles is not None:
        lines.append(f"RunEQ miles: {workout.runeq_miles:g}")
    if workout.runeq_recommendation:
        lines.append(f"[dim]{workout.runeq_recommendation}[/dim]")
    for note in workout.safety_notes:
        lines.append(f"[yellow]! {note}[/yellow]")
    console.print(Panel("\n".join(lines), title=workout.name, border_style="cyan"))


def _display_plan_summary(plan: TrainingPlan, weeks_to_show: int):
    """
    Display plan overview, phases, mileage and the first weeks.

    Args:
        plan: Generated plan
        weeks_to_show: How many weeks of daily detail to print
    """
    overview = plan.plan_overview
    console.print(
        f"\n✓ Generated [green]{overview.total_weeks}-week {overview.race_distance.display_name} plan[/green]"
        f" (goal {overview.goal_time}, peak {overview.peak_weekly_mileage} mi/week)"
    )

    console.print("\n[bold]Phase Distribution:[/bold]")
    for block in overview.phases:
        console.print(
            f"  {block.phase.value}: {block.weeks} weeks (weeks {block.start_week}-{block.end_week})"
        )

    mileage = Table(title="Weekly Mileage", box=box.ROUNDED)
    mileage.add_column("Week", justify="right", style="cyan")
    mileage.add_column("Phase")
    mileage.add_column("Miles", justify="right", style="yellow")
    mileage.add_column("Focus")
    for week in plan.weeks:
        marker = " (step-back)" if week.is_rest_week else ""
        mileage.add_row(str(week.week_number), week.phase.value, f"{week.total_mileage}{marker}", week.week_focus)
    console.print(mileage)

    for week in plan.weeks[:weeks_to_show]:
        table = Table(title=f"Week {week.week_number} ({week.phase.value})", box=box.ROUNDED)
        table.add_column("Day", style="cyan")
        table.add_column("Type")
        table.add_column("Workout")
        table.add_column("Miles", justify="right")
        for entry in week.workouts:
            table.add_row(
                entry.day.display_name,
                entry.type.value,
                entry.workout.name,
                f"{entry.distance:g}" if entry.distance else "-",
            )
        console.print(table)

    if plan.plan_summary:
        summary = plan.plan_summary
        console.print(
            f"\n[bold]Summary:[/bold] {summary.total_workouts} workouts, {summary.total_miles} miles, "
            f"variety {summary.variety_score:.2f}"
        )


def _display_alternatives(categories: List[AlternativeCategory]):
    """
    Display alternative categories with numbered options.

    Args:
        categories: Output of AlternativeGenerator.generate
    """
    for category in categories:
        table = Table(title=category.title, caption=category.subtitle or None, box=box.ROUNDED)
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Workout")
        table.add_column("Type")
        table.add_column("Duration")
        for i, option in enumerate(category.options, 1):
            table.add_row(str(i), option.workout.name, option.workout_type.value, option.workout.duration or "-")
        console.print(table)


# ===== CLI COMMANDS =====


@app.command()
def paces(
    distance: str = typer.Argument(..., help="Race distance (10K, Half, Marathon)"),
    goal_time: str = typer.Argument(..., help="Goal time as H:MM:SS or MM:SS"),
):
    """
    Show training paces for a goal race time.
    """
    calculator = PaceCalculator()
    try:
        profile = calculator.calculate_from_goal(distance, goal_time)
    except OutOfRangeGoal as e:
        _out_of_range(e)
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    _display_paces(profile)


@app.command()
def plan(
    profile: Path = typer.Option(
        ...,
        "--profile",
        "-p",
        help="Path to user profile JSON file",
        exists=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the plan as JSON to this path",
    ),
    save: bool = typer.Option(
        False,
        "--save",
        help="Save the plan to the database (RUNEQ_DATABASE_URL)",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible workout selection",
    ),
    show_weeks: int = typer.Option(
        1,
        "--show-weeks",
        "-w",
        help="Number of weeks to print in detail",
    ),
):
    """
    Generate a periodized training plan from a profile.
    """
    console.print("\n[bold cyan]RunEQ Training Plan[/bold cyan]\n")
    user_profile = _load_profile(profile)

    generator = TrainingPlanGenerator(rng=_rng(seed))
    try:
        training_plan = generator.generate(user_profile)
    except OutOfRangeGoal as e:
        _out_of_range(e)
    except ValueError as e:
        console.print(f"[red]✗ Plan generation failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    _display_plan_summary(training_plan, show_weeks)

    if output:
        output.write_text(training_plan.model_dump_json(indent=2))
        console.print(f"\n✓ Plan saved: [cyan]{output}[/cyan]")

    if save:
        store = SqlAlchemyPlanStore()
        try:
            record_id = asyncio.run(store.save_plan(training_plan))
        except PlanSaveError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(1)
        console.print(f"✓ Stored plan [cyan]#{record_id}[/cyan] for {training_plan.athlete_id}")


@app.command()
def workout(
    modality: Modality = typer.Argument(..., help="Workout library"),
    name: str = typer.Argument(..., help="Template name (substring match)"),
    distance: Optional[str] = typer.Option(None, "--distance", "-d", help="Goal race distance for paces"),
    goal_time: Optional[str] = typer.Option(None, "--goal-time", "-g", help="Goal time for paces"),
    week: Optional[int] = typer.Option(None, "--week", help="Plan week (enables progression)"),
    total_weeks: Optional[int] = typer.Option(None, "--total-weeks", help="Plan length in weeks"),
    miles: Optional[float] = typer.Option(None, "--miles", help="Planned miles (RunEQ miles for bike rides)"),
):
    """
    Prescribe a single workout from a library.
    """
    pace_profile = None
    if distance and goal_time:
        try:
            pace_profile = PaceCalculator().calculate_from_goal(distance, goal_time)
        except OutOfRangeGoal as e:
            _out_of_range(e)

    options = PrescriptionOptions(
        paces=pace_profile,
        week_number=week,
        total_weeks=total_weeks,
        distance_miles=miles,
    )
    try:
        prescribed = prescribe(modality, name, options)
    except WorkoutNotFound as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    _display_workout(prescribed)


@app.command()
def alternatives(
    profile: Path = typer.Option(
        ...,
        "--profile",
        "-p",
        help="Path to user profile JSON file",
        exists=True,
    ),
    week: int = typer.Option(1, "--week", help="Plan week"),
    day: Weekday = typer.Option(..., "--day", help="Day of the week"),
    weather: bool = typer.Option(False, "--weather", help="Include weather-safe options"),
    mode: str = typer.Option("replace", "--mode", help="replace or add"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
):
    """
    List alternatives for one day of a freshly generated plan.
    """
    user_profile = _load_profile(profile)
    rng = _rng(seed)
    try:
        training_plan = TrainingPlanGenerator(rng=rng).generate(user_profile)
        entry = training_plan.get_week(week).entry_for(day)
    except OutOfRangeGoal as e:
        _out_of_range(e)
    except (KeyError, ValueError) as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(
        f"\n[bold]Week {week} {day.display_name}:[/bold] {entry.workout.name} ({entry.type.value})\n"
    )
    try:
        categories = AlternativeGenerator(rng=rng).generate(
            entry, user_profile, weather_extreme=weather, mode=mode
        )
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    _display_alternatives(categories)


@app.command()
def catalog(
    modality: Modality = typer.Argument(..., help="Workout library"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only this category"),
):
    """
    Browse a workout library.
    """
    library = load_catalog(modality)
    categories = [category] if category else get_categories(modality)

    for key in categories:
        templates = get_by_category(modality, key)
        if not templates:
            console.print(f"[yellow]No workouts in category: {key}[/yellow]")
            continue
        table = Table(title=f"{modality.display_name}: {key}", box=box.ROUNDED)
        table.add_column("Workout", style="cyan")
        table.add_column("Duration")
        table.add_column("Intensity")
        for template in templates:
            table.add_row(template.name, template.duration or "-", template.intensity or "-")
        console.print(table)

    console.print(f"\n{sum(len(t) for t in library.categories.values())} workouts in library")


if __name__ == "__main__":
    app()
