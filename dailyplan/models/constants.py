"""Constants for dailyplan.

This module centralizes the magic numbers and fixed tables used by the engine.
Tunable values come from `dailyplan.config`.
"""

from typing import Dict

from dailyplan.models.task import TimeWindowName

# Scheduling (tunable via environment)
from dailyplan.config import (  # noqa: F401
    DEPENDENCY_BUFFER_MINUTES,
    MAX_OCCURRENCE_LOOKAHEAD_DAYS,
    SCHEDULING_GRANULARITY_MINUTES,
)


# Named windows where a flexible task's start may fall ("HH:MM", end exclusive)
TIME_WINDOWS: Dict[str, Dict[str, str]] = {
    TimeWindowName.MORNING.value: {"start": "06:00", "end": "12:00", "label": "Morning (6:00-12:00)"},
    TimeWindowName.AFTERNOON.value: {"start": "12:00", "end": "18:00", "label": "Afternoon (12:00-18:00)"},
    TimeWindowName.EVENING.value: {"start": "18:00", "end": "23:00", "label": "Evening (18:00-23:00)"},
    TimeWindowName.ANYTIME.value: {"start": "06:00", "end": "23:00", "label": "Anytime (6:00-23:00)"},
}

# Overlap severity thresholds (minutes)
LOW_OVERLAP_LIMIT_MIN = 30  # below this: low
HIGH_OVERLAP_LIMIT_MIN = 60  # above this: high

# Impossibility suggestions, shown in order
IMPOSSIBLE_SCHEDULE_SUGGESTIONS = [
    "Reduce the number of mandatory tasks or their duration",
    "Make some tasks skippable instead of mandatory",
    "Move your wake or sleep time to widen the day",
    "Postpone some tasks to another day",
]
