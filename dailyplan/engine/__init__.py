"""Scheduling engine for dailyplan."""

from dailyplan.engine.dependencies import (
    DependencyResolver,
    DependencyNode,
    ChainValidation,
    DependencyStatistics,
)
from dailyplan.engine.conflicts import detect_and_mark_conflicts, calculate_conflict_severity
from dailyplan.engine.scheduler import SchedulingEngine

__all__ = [
    "DependencyResolver",
    "DependencyNode",
    "ChainValidation",
    "DependencyStatistics",
    "detect_and_mark_conflicts",
    "calculate_conflict_severity",
    "SchedulingEngine",
]
