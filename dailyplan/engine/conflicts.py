"""Conflict detection for finished schedules.

Runs once over the complete timetable, independent of how it was placed.
Detection only: nothing is moved, conflicting tasks are annotated.
"""

import logging
from typing import Dict, List, Optional, Sequence

from dailyplan.models.constants import HIGH_OVERLAP_LIMIT_MIN, LOW_OVERLAP_LIMIT_MIN
from dailyplan.models.schedule import Conflict, ConflictSeverity, ConflictType, ScheduledTask
from dailyplan.timeutils import has_time_overlap, overlap_minutes, time_string_to_minutes

logger = logging.getLogger(__name__)


_SEVERITY_RANK = {
    ConflictSeverity.LOW: 0,
    ConflictSeverity.MEDIUM: 1,
    ConflictSeverity.HIGH: 2,
}


def task_interval(task: ScheduledTask) -> tuple:
    """[start, end) of a scheduled task in minutes since midnight."""
    start = time_string_to_minutes(task.scheduled_time)
    return start, start + task.duration_minutes


def overlap_severity(minutes: int) -> ConflictSeverity:
    """Severity of a time overlap from its length alone."""
    if minutes < LOW_OVERLAP_LIMIT_MIN:
        return ConflictSeverity.LOW
    if minutes <= HIGH_OVERLAP_LIMIT_MIN:
        return ConflictSeverity.MEDIUM
    return ConflictSeverity.HIGH


def _conflict_severity(conflict: Conflict) -> ConflictSeverity:
    if conflict.type == ConflictType.DEPENDENCY_VIOLATION:
        return ConflictSeverity.HIGH
    if conflict.type == ConflictType.MISSING_DEPENDENCY:
        return ConflictSeverity.MEDIUM
    return overlap_severity(conflict.overlap_minutes or 0)


def calculate_conflict_severity(conflicts: Sequence[Conflict]) -> Optional[ConflictSeverity]:
    """Highest severity among a task's conflicts, or None when there are none.

    Dependency violations are always high. Missing dependencies are medium.
    Overlaps: under 30 minutes low, 30-60 medium, over 60 high.
    """
    worst: Optional[ConflictSeverity] = None
    for conflict in conflicts:
        severity = _conflict_severity(conflict)
        if worst is None or _SEVERITY_RANK[severity] > _SEVERITY_RANK[worst]:
            worst = severity
    return worst


def validate_dependency_constraints(task: ScheduledTask, schedule: Sequence[ScheduledTask]) -> bool:
    """True if `task` starts no earlier than every scheduled predecessor ends."""
    if not task.scheduled_time:
        return True
    by_id = {t.id: t for t in schedule if t.scheduled_time}
    start, _ = task_interval(task)
    for dependency_id in task.predecessor_ids:
        predecessor = by_id.get(dependency_id)
        if predecessor is None:
            continue
        _, predecessor_end = task_interval(predecessor)
        if start < predecessor_end:
            return False
    return True


def _summary_type(conflicts: List[Conflict]) -> Optional[str]:
    kinds = []
    for conflict in conflicts:
        if conflict.type not in kinds:
            kinds.append(conflict.type)
    if not kinds:
        return None
    if len(kinds) > 1:
        return ConflictType.MULTIPLE.value
    return ConflictType(kinds[0]).value


def detect_and_mark_conflicts(schedule: Sequence[ScheduledTask]) -> List[ScheduledTask]:
    """Annotate every task in `schedule` with its conflicts.

    Returns new ScheduledTask objects in the input order; the input is not
    modified. Previous annotations are discarded, so running this twice gives
    the same result.
    """
    found: Dict[int, List[Conflict]] = {i: [] for i in range(len(schedule))}
    placed = [i for i, task in enumerate(schedule) if task.scheduled_time]
    intervals = {i: task_interval(schedule[i]) for i in placed}

    # Pairwise time overlaps
    for a_pos, i in enumerate(placed):
        start_i, end_i = intervals[i]
        for j in placed[a_pos + 1:]:
            start_j, end_j = intervals[j]
            if not has_time_overlap(start_i, end_i, start_j, end_j):
                continue
            minutes = overlap_minutes(start_i, end_i, start_j, end_j)
            first, second = schedule[i], schedule[j]
            found[i].append(
                Conflict(
                    type=ConflictType.TIME_OVERLAP,
                    conflicting_task_id=second.id,
                    overlap_minutes=minutes,
                    message=f"Overlaps with {second.name or second.id} by {minutes} minutes",
                )
            )
            found[j].append(
                Conflict(
                    type=ConflictType.TIME_OVERLAP,
                    conflicting_task_id=first.id,
                    overlap_minutes=minutes,
                    message=f"Overlaps with {first.name or first.id} by {minutes} minutes",
                )
            )

    # Dependency checks
    present = {task.id: i for i, task in enumerate(schedule)}
    for i, task in enumerate(schedule):
        for dependency_id in task.predecessor_ids:
            if dependency_id not in present:
                found[i].append(
                    Conflict(
                        type=ConflictType.MISSING_DEPENDENCY,
                        dependency_id=dependency_id,
                        message=f"Depends on {dependency_id}, which is not in the schedule",
                    )
                )
                continue
            j = present[dependency_id]
            if i not in intervals or j not in intervals:
                continue
            start, _ = intervals[i]
            _, predecessor_end = intervals[j]
            if start < predecessor_end:
                minutes = predecessor_end - start
                found[i].append(
                    Conflict(
                        type=ConflictType.DEPENDENCY_VIOLATION,
                        dependency_id=dependency_id,
                        violation_minutes=minutes,
                        message=f"Starts {minutes} minutes before {dependency_id} ends",
                    )
                )

    marked: List[ScheduledTask] = []
    for i, task in enumerate(schedule):
        conflicts = found[i]
        severity = calculate_conflict_severity(conflicts)
        marked.append(
            task.model_copy(
                update={
                    "has_conflicts": bool(conflicts),
                    "conflict_type": _summary_type(conflicts),
                    "conflict_severity": ConflictSeverity(severity).value if severity else None,
                    "conflicts": conflicts,
                }
            )
        )

    conflicted = sum(1 for task in marked if task.has_conflicts)
    if conflicted:
        logger.debug(f"Marked {conflicted} of {len(marked)} tasks with conflicts")
    return marked
