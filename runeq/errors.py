"""
Error types raised by the prescription engine.

Three kinds matter to callers:
- OutOfRangeGoal: goal time outside the tabulated paces (user-correctable)
- WorkoutNotFound: template lookup miss (catalog/data defect, caller falls back)
- MissingEquipmentData: request references equipment the athlete does not own

StorageError wraps failures of the storage collaborator: PlanSaveError for
writes, PlanLoadError for reads.
"""

from typing import Optional


class PrescriptionError(Exception):
    """Base class for all engine errors."""


class OutOfRangeGoal(PrescriptionError, ValueError):
    """Goal time is faster or slower than the pace table covers."""

    def __init__(
        self,
        distance: str,
        goal_time: str,
        fastest: str,
        slowest: str,
    ):
        self.distance = distance
        self.goal_time = goal_time
        self.fastest = fastest
        self.slowest = slowest
        super().__init__(
            f"Goal time {goal_time} is outside the supported range for {distance}. "
            f"Valid range: {fastest} to {slowest}."
        )


class WorkoutNotFound(PrescriptionError, LookupError):
    """No template in the catalog matches the requested name."""

    def __init__(self, modality: str, name: str, message: Optional[str] = None):
        self.modality = modality
        self.name = name
        super().__init__(message or f'Workout "{name}" not found in {modality} library')


class EmptyCategory(WorkoutNotFound):
    """A random pick was requested from a category with no templates."""

    def __init__(self, modality: str, category: str):
        self.category = category
        super().__init__(
            modality,
            category,
            message=f"No workouts found in category: {category} ({modality} library)",
        )


class MissingEquipmentData(PrescriptionError):
    """The athlete does not own the equipment a request relies on."""

    def __init__(self, equipment: str):
        self.equipment = equipment
        super().__init__(f"Athlete does not have equipment: {equipment}")


class StorageError(PrescriptionError):
    """The storage collaborator failed."""


class PlanSaveError(StorageError):
    """The storage collaborator failed to persist a plan."""


class PlanLoadError(StorageError):
    """The storage collaborator failed to read a plan."""
