"""Task definition model for dailyplan."""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from dailyplan.models.recurrence import RecurrenceRule


class SchedulingType(str, Enum):
    """How a task's start time is chosen."""
    FIXED = "fixed"
    FLEXIBLE = "flexible"


class TimeWindowName(str, Enum):
    """Named part of the day a flexible task may start in."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    ANYTIME = "anytime"


class InstanceStatus(str, Enum):
    """Status of a task's occurrence on one date."""
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    POSTPONED = "postponed"


class Task(BaseModel):
    """Recurring task definition (template)."""

    id: str = Field(..., description="Unique task identifier, stable across runs")
    name: str = Field("", description="Display name")
    duration_minutes: int = Field(30, gt=0, description="Duration in minutes")
    scheduling_type: SchedulingType = Field(SchedulingType.FLEXIBLE, description="fixed or flexible")
    default_time: Optional[str] = Field(None, description="Start time (HH:MM) for fixed tasks")
    time_window: TimeWindowName = Field(TimeWindowName.ANYTIME, description="Window for flexible tasks")
    priority: int = Field(3, description="Higher is more important; tie-break only")
    is_mandatory: bool = Field(False, description="Counted by the feasibility check")
    depends_on: Optional[str] = Field(None, description="Predecessor task ID")
    recurrence_rule: RecurrenceRule = Field(
        default_factory=RecurrenceRule, description="When the task occurs"
    )

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def predecessor_ids(self) -> List[str]:
        """Predecessor IDs as a list.

        Graph building and placement only go through this list, so moving
        `depends_on` to several parents only needs a change here.
        """
        return [self.depends_on] if self.depends_on else []

    @property
    def is_fixed(self) -> bool:
        return self.scheduling_type == SchedulingType.FIXED


class TaskInstance(BaseModel):
    """Existing per-date record of a task, used to skip finished work."""

    template_id: str = Field(..., description="ID of the task definition")
    status: InstanceStatus = Field(InstanceStatus.PENDING, description="Occurrence status")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
