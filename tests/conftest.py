"""Pytest fixtures and configuration for dailyplan tests."""

import pytest
import uuid
from fastapi.testclient import TestClient

from dailyplan.engine.dependencies import DependencyResolver
from dailyplan.engine.scheduler import SchedulingEngine
from dailyplan.models.recurrence import RecurrenceFrequency
from dailyplan.models.settings import Settings, SleepSchedule
from dailyplan.models.task import SchedulingType, Task, TimeWindowName
from dailyplan.recurrence.engine import RecurrenceEngine


@pytest.fixture
def sample_task_base():
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    return {
        "id": str(uuid.uuid4()),
        "name": "Test Task",
        "duration_minutes": 30,
        "scheduling_type": SchedulingType.FLEXIBLE,
        "default_time": None,
        "time_window": TimeWindowName.ANYTIME,
        "priority": 3,
        "is_mandatory": False,
        "depends_on": None,
        "recurrence_rule": {"frequency": RecurrenceFrequency.DAILY.value, "interval": 1},
    }


@pytest.fixture
def make_task(sample_task_base):
    """Factory: make_task(id="a", duration_minutes=45, ...) -> Task."""
    def _make(**overrides):
        return Task(**{**sample_task_base, "id": str(uuid.uuid4()), **overrides})
    return _make


@pytest.fixture
def fixed_task(make_task):
    """Create a fixed-time task at 09:00."""
    return make_task(id="fixed", scheduling_type=SchedulingType.FIXED, default_time="09:00")


@pytest.fixture
def recurrence_engine():
    return RecurrenceEngine()


@pytest.fixture
def dependency_resolver():
    return DependencyResolver()


@pytest.fixture
def scheduling_engine(recurrence_engine, dependency_resolver):
    return SchedulingEngine(recurrence_engine, dependency_resolver)


@pytest.fixture
def settings():
    """Settings with an explicit 06:30-23:00 day."""
    return Settings(
        default_wake_time="06:30",
        default_sleep_time="23:00",
        desired_sleep_duration=7.5,
    )


@pytest.fixture
def sleep_schedule():
    """Full waking day (06:00-23:00)."""
    return SleepSchedule(wake_time="06:00", sleep_time="23:00", duration_hours=7.5)


@pytest.fixture
def test_client():
    """Create a FastAPI test client with an empty schedule cache."""
    from dailyplan.api.app import app, schedule_cache

    schedule_cache.clear()
    with TestClient(app) as client:
        yield client
    schedule_cache.clear()
