"""Data models for dailyplan."""

from dailyplan.models.recurrence import (
    RecurrenceFrequency,
    RecurrenceRule,
    CustomPattern,
    CustomPatternType,
    Weekday,
)
from dailyplan.models.task import Task, TaskInstance, InstanceStatus, SchedulingType, TimeWindowName
from dailyplan.models.settings import Settings, SleepSchedule, DailyScheduleOverride
from dailyplan.models.schedule import (
    Conflict,
    ConflictSeverity,
    ConflictType,
    FeasibilityResult,
    OverdueTask,
    ScheduledTask,
    ScheduleError,
    ScheduleResult,
)

__all__ = [
    "RecurrenceFrequency",
    "RecurrenceRule",
    "CustomPattern",
    "CustomPatternType",
    "Weekday",
    "Task",
    "TaskInstance",
    "InstanceStatus",
    "SchedulingType",
    "TimeWindowName",
    "Settings",
    "SleepSchedule",
    "DailyScheduleOverride",
    "Conflict",
    "ConflictSeverity",
    "ConflictType",
    "FeasibilityResult",
    "OverdueTask",
    "ScheduledTask",
    "ScheduleError",
    "ScheduleResult",
]
