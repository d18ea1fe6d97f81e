"""User settings and sleep schedule models for dailyplan."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from dailyplan.timeutils import time_string_to_minutes
from dailyplan.config import (
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_SLEEP_TIME,
    DEFAULT_WAKE_TIME,
    DESIRED_SLEEP_DURATION,
)


class Settings(BaseModel):
    """Per-user scheduling settings."""

    default_wake_time: str = Field(DEFAULT_WAKE_TIME, description="Wake time (HH:MM)")
    default_sleep_time: str = Field(DEFAULT_SLEEP_TIME, description="Sleep time (HH:MM)")
    desired_sleep_duration: float = Field(DESIRED_SLEEP_DURATION, ge=0, le=24, description="Hours of sleep")
    buffer_minutes: int = Field(DEFAULT_BUFFER_MINUTES, ge=0, description="Preferred gap between tasks")


class DailyScheduleOverride(BaseModel):
    """Wake/sleep times that supersede settings for one date."""

    wake_time: str
    sleep_time: str


class SleepSchedule(BaseModel):
    """Usable scheduling horizon for one date: [wake_time, sleep_time)."""

    wake_time: str = Field(..., description="Start of the horizon (HH:MM)")
    sleep_time: str = Field(..., description="End of the horizon (HH:MM), same day")
    duration_hours: Optional[float] = Field(None, description="Desired sleep duration in hours")

    @field_validator("sleep_time")
    @classmethod
    def _validate_sleep_after_wake(cls, v, info):
        wake = info.data.get("wake_time")
        if wake is not None and time_string_to_minutes(v) <= time_string_to_minutes(wake):
            raise ValueError("sleep_time must be after wake_time on the same day")
        return v

    @property
    def available_minutes(self) -> int:
        return time_string_to_minutes(self.sleep_time) - time_string_to_minutes(self.wake_time)
