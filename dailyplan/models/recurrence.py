"""Recurrence rule models for dailyplan.

Canonical internal representation of how a task definition repeats.
Evaluation lives in `dailyplan.recurrence.engine`.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class RecurrenceFrequency(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class CustomPatternType(str, Enum):
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    NTH_WEEKDAY = "nth_weekday"


class Weekday(str, Enum):
    MO = "mo"
    TU = "tu"
    WE = "we"
    TH = "th"
    FR = "fr"
    SA = "sa"
    SU = "su"


# Python weekday(): Monday=0 ... Sunday=6
WEEKDAY_ORDER: List[Weekday] = [
    Weekday.MO, Weekday.TU, Weekday.WE, Weekday.TH, Weekday.FR, Weekday.SA, Weekday.SU,
]

LAST_DAY_OF_MONTH = -1


class CustomPattern(BaseModel):
    """Tagged sub-pattern for `custom` frequency.

    `nth_weekday` needs both `day_of_week` and `nth_week` (1-5), e.g.
    the 2nd Tuesday is `day_of_week="tu", nth_week=2`.
    """

    type: CustomPatternType
    day_of_week: Optional[Weekday] = None
    nth_week: Optional[int] = Field(None, ge=1, le=5)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class RecurrenceRule(BaseModel):
    """Structured recurrence rule.

    Notes:
    - `day_of_month = -1` means the last day of the month.
    - `start_date` anchors interval counting; without it every period matches.
    - Range bounds are inclusive.
    """

    frequency: RecurrenceFrequency = RecurrenceFrequency.DAILY
    interval: int = Field(1, ge=1, description="Every N units (days/weeks/months/years)")

    days_of_week: Optional[List[Weekday]] = Field(
        None, description="For weekly recurrence: weekdays on which it occurs"
    )
    day_of_month: Optional[int] = Field(None, description="1-31, or -1 for the last day")
    month: Optional[int] = Field(None, ge=1, le=12, description="For yearly recurrence: 1-12")
    custom_pattern: Optional[CustomPattern] = None

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    end_after_occurrences: Optional[int] = Field(
        None, ge=1, description="Stop after this many occurrences counted from start_date"
    )

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @field_validator("days_of_week")
    @classmethod
    def _dedupe_days_of_week(cls, v):
        if v is None:
            return None
        # Deduplicate but preserve order
        seen = set()
        out: List[Weekday] = []
        for day in v:
            if day not in seen:
                seen.add(day)
                out.append(day)
        return out

    @field_validator("day_of_month")
    @classmethod
    def _validate_day_of_month(cls, v):
        if v is None:
            return None
        if v != LAST_DAY_OF_MONTH and not 1 <= v <= 31:
            raise ValueError("day_of_month must be 1-31 or -1 for the last day")
        return v
