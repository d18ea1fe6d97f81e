"""Schedule output models for dailyplan."""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from dailyplan.models.task import Task
from dailyplan.models.settings import SleepSchedule


class ConflictType(str, Enum):
    """Kind of problem found in a finished schedule."""
    TIME_OVERLAP = "time_overlap"
    DEPENDENCY_VIOLATION = "dependency_violation"
    MISSING_DEPENDENCY = "missing_dependency"
    MULTIPLE = "multiple"  # Task-level summary only, never on a single record


class ConflictSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScheduleError(str, Enum):
    """Failure codes of generate_schedule_for_date."""
    IMPOSSIBLE_SCHEDULE = "impossible_schedule"
    SCHEDULING_ERROR = "scheduling_error"


class Conflict(BaseModel):
    """One detected conflict on a scheduled task."""

    type: ConflictType
    conflicting_task_id: Optional[str] = Field(None, description="Other task in a time overlap")
    dependency_id: Optional[str] = Field(None, description="Predecessor involved")
    overlap_minutes: Optional[int] = None
    violation_minutes: Optional[int] = None
    message: str = ""

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class ScheduledTask(Task):
    """Task definition placed (or not) on one date's timetable."""

    scheduled_time: Optional[str] = Field(None, description="Start time (HH:MM); None if unplaced")
    is_anchor: bool = False
    is_flexible: bool = False
    has_conflicts: bool = False
    conflict_type: Optional[ConflictType] = None
    conflict_severity: Optional[ConflictSeverity] = None
    conflicts: List[Conflict] = Field(default_factory=list)

    @classmethod
    def from_task(cls, task: Task, **updates) -> "ScheduledTask":
        data = task.model_dump()
        data.update(updates)
        return cls(**data)


class FeasibilityResult(BaseModel):
    """Outcome of the mandatory-workload check."""

    possible: bool
    message: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
    mandatory_minutes: int = 0
    available_minutes: int = 0


class OverdueTask(BaseModel):
    """A scheduled task whose end time has already passed."""

    task: ScheduledTask
    overdue_minutes: int


class ScheduleResult(BaseModel):
    """Result of generate_schedule_for_date (success or failure shape)."""

    success: bool
    date: Optional[str] = None
    schedule: List[ScheduledTask] = Field(default_factory=list)
    unscheduled: List[ScheduledTask] = Field(default_factory=list)
    total_tasks: int = 0
    scheduled_tasks: int = 0
    sleep_schedule: Optional[SleepSchedule] = None
    error: Optional[ScheduleError] = None
    message: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
