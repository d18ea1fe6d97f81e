"""Scheduling engine for dailyplan.

Turns the task definitions that apply to one date into a conflict-annotated
timetable:

1. Filter tasks for the date (recurrence + existing instance status)
2. Check the mandatory workload fits the waking horizon
3. Place fixed-time tasks as anchors
4. Order tasks by dependencies and priority
5. Slot flexible tasks into their time windows (first fit, fixed step)
6. Detect and mark conflicts

Infeasibility and unplaceable tasks are normal outcomes, reported in the
result rather than raised.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from dailyplan.engine.conflicts import (
    calculate_conflict_severity,
    detect_and_mark_conflicts,
    task_interval,
    validate_dependency_constraints,
)
from dailyplan.engine.dependencies import DependencyResolver
from dailyplan.models.constants import (
    DEPENDENCY_BUFFER_MINUTES,
    IMPOSSIBLE_SCHEDULE_SUGGESTIONS,
    SCHEDULING_GRANULARITY_MINUTES,
    TIME_WINDOWS,
)
from dailyplan.models.schedule import (
    Conflict,
    ConflictSeverity,
    FeasibilityResult,
    OverdueTask,
    ScheduledTask,
    ScheduleError,
    ScheduleResult,
)
from dailyplan.models.settings import DailyScheduleOverride, Settings, SleepSchedule
from dailyplan.models.task import InstanceStatus, Task, TaskInstance, TimeWindowName
from dailyplan.recurrence.engine import RecurrenceEngine
from dailyplan.timeutils import has_time_overlap, minutes_to_time_string, time_string_to_minutes

logger = logging.getLogger(__name__)


_FINISHED_STATUSES = {InstanceStatus.COMPLETED.value, InstanceStatus.SKIPPED.value}


def _by_start_time(task: ScheduledTask) -> int:
    return time_string_to_minutes(task.scheduled_time)


class SchedulingEngine:
    """Stateless scheduling service.

    Holds its two collaborators and tuning values only; every call builds
    its own working schedule, so instances can be shared between threads.
    """

    def __init__(
        self,
        recurrence_engine: Optional[RecurrenceEngine] = None,
        dependency_resolver: Optional[DependencyResolver] = None,
        granularity_minutes: int = SCHEDULING_GRANULARITY_MINUTES,
        dependency_buffer_minutes: int = DEPENDENCY_BUFFER_MINUTES,
    ):
        if granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be positive")
        self.recurrence_engine = recurrence_engine or RecurrenceEngine()
        self.dependency_resolver = dependency_resolver or DependencyResolver()
        self.granularity_minutes = granularity_minutes
        self.dependency_buffer_minutes = dependency_buffer_minutes

    # Time helpers (kept on the engine for callers that only hold an engine)

    time_string_to_minutes = staticmethod(time_string_to_minutes)
    minutes_to_time_string = staticmethod(minutes_to_time_string)
    has_time_overlap = staticmethod(has_time_overlap)

    # Inputs

    def get_effective_sleep_schedule(
        self,
        settings: Settings,
        daily_schedule: Optional[DailyScheduleOverride] = None,
    ) -> SleepSchedule:
        """Daily override if present, otherwise the settings defaults."""
        if daily_schedule is not None:
            return SleepSchedule(
                wake_time=daily_schedule.wake_time,
                sleep_time=daily_schedule.sleep_time,
                duration_hours=settings.desired_sleep_duration,
            )
        return SleepSchedule(
            wake_time=settings.default_wake_time,
            sleep_time=settings.default_sleep_time,
            duration_hours=settings.desired_sleep_duration,
        )

    def get_active_tasks_for_date(
        self,
        templates: Sequence[Task],
        instances: Sequence[TaskInstance],
        target: Union[date, str],
    ) -> List[Task]:
        """Tasks that fire on `target` and aren't already completed or skipped."""
        finished = {
            instance.template_id
            for instance in instances
            if InstanceStatus(instance.status).value in _FINISHED_STATUSES
        }
        return [
            task
            for task in templates
            if task.id not in finished and self.recurrence_engine.should_generate_for_date(task, target)
        ]

    # Feasibility

    def check_schedule_impossibility(
        self,
        tasks: Sequence[Task],
        sleep_schedule: SleepSchedule,
    ) -> FeasibilityResult:
        """Compare total mandatory minutes with the waking horizon.

        Advisory only: callers may still run placement after a negative result.
        """
        mandatory = [task for task in tasks if task.is_mandatory]
        mandatory_minutes = sum(task.duration_minutes for task in mandatory)
        available_minutes = sleep_schedule.available_minutes

        if mandatory_minutes > available_minutes:
            shortfall = mandatory_minutes - available_minutes
            return FeasibilityResult(
                possible=False,
                message=(
                    f"{len(mandatory)} mandatory tasks require {mandatory_minutes} minutes "
                    f"({mandatory_minutes / 60:.1f} hours), but only {available_minutes} minutes "
                    f"({available_minutes / 60:.1f} hours) are available between "
                    f"{sleep_schedule.wake_time} and {sleep_schedule.sleep_time}. "
                    f"Short by {shortfall} minutes."
                ),
                suggestions=list(IMPOSSIBLE_SCHEDULE_SUGGESTIONS),
                mandatory_minutes=mandatory_minutes,
                available_minutes=available_minutes,
            )

        return FeasibilityResult(
            possible=True,
            mandatory_minutes=mandatory_minutes,
            available_minutes=available_minutes,
        )

    # Placement

    def place_anchors(self, tasks: Sequence[Task]) -> List[ScheduledTask]:
        """Stamp fixed-time tasks at their default time, sorted by time.

        Anchors are never moved afterwards.
        """
        anchors = [
            ScheduledTask.from_task(task, scheduled_time=task.default_time, is_anchor=True)
            for task in tasks
            if task.is_fixed and task.default_time
        ]
        anchors.sort(key=_by_start_time)
        logger.debug(f"Placed {len(anchors)} anchor tasks")
        return anchors

    def resolve_dependencies(self, tasks: Sequence[Task]) -> List[Task]:
        """Processing order from the dependency resolver."""
        return self.dependency_resolver.topological_sort(tasks)

    def calculate_earliest_start_time(
        self,
        task: Task,
        schedule: Sequence[ScheduledTask],
    ) -> Optional[int]:
        """Latest predecessor end plus the buffer, in minutes.

        None when the task has no predecessor placed in `schedule`.
        """
        by_id = {t.id: t for t in schedule if t.scheduled_time}
        ends = [
            task_interval(by_id[dependency_id])[1]
            for dependency_id in task.predecessor_ids
            if dependency_id in by_id
        ]
        if not ends:
            return None
        return max(ends) + self.dependency_buffer_minutes

    def find_best_time_slot(
        self,
        task: Task,
        existing_schedule: Sequence[ScheduledTask],
        time_window: Dict[str, str],
        earliest_start: Optional[Union[int, str]] = None,
    ) -> Optional[str]:
        """First free start time for `task` inside `time_window`.

        Probes every `granularity_minutes` from max(window start, earliest
        start). A candidate must end by the window end and must not overlap
        anything already in `existing_schedule`.
        """
        window_start = time_string_to_minutes(time_window["start"])
        window_end = time_string_to_minutes(time_window["end"])
        if isinstance(earliest_start, str):
            earliest_start = time_string_to_minutes(earliest_start)

        start = window_start if earliest_start is None else max(window_start, earliest_start)
        occupied = [task_interval(t) for t in existing_schedule if t.scheduled_time]
        duration = task.duration_minutes

        candidate = start
        while candidate + duration <= window_end:
            end = candidate + duration
            if not any(has_time_overlap(candidate, end, s, e) for s, e in occupied):
                return minutes_to_time_string(candidate)
            candidate += self.granularity_minutes
        return None

    def waking_window(
        self,
        time_window: Dict[str, str],
        sleep_schedule: Optional[SleepSchedule] = None,
    ) -> Dict[str, str]:
        """Intersect a named time window with [wake_time, sleep_time).

        The result may be empty (start >= end), in which case nothing fits.
        """
        if sleep_schedule is None:
            return time_window
        start = max(time_string_to_minutes(time_window["start"]), time_string_to_minutes(sleep_schedule.wake_time))
        end = min(time_string_to_minutes(time_window["end"]), time_string_to_minutes(sleep_schedule.sleep_time))
        return {"start": minutes_to_time_string(start), "end": minutes_to_time_string(end)}

    def slot_flexible_tasks(
        self,
        anchors: Sequence[ScheduledTask],
        ordered_tasks: Sequence[Task],
        sleep_schedule: Optional[SleepSchedule] = None,
    ) -> Tuple[List[ScheduledTask], List[ScheduledTask]]:
        """Place non-anchor tasks in dependency order.

        Returns (schedule, unscheduled). `schedule` holds the anchors plus
        every placed task, sorted by start time. Each task's window is cut to
        the waking hours of `sleep_schedule` when one is given. A task whose
        predecessor is in this run but not placed yet stays unscheduled; a
        predecessor that isn't part of the run at all imposes no constraint.
        """
        schedule: List[ScheduledTask] = list(anchors)
        anchor_ids = {anchor.id for anchor in anchors}
        run_ids = {task.id for task in ordered_tasks} | anchor_ids
        unscheduled: List[ScheduledTask] = []

        for task in ordered_tasks:
            if task.id in anchor_ids:
                continue

            placed_ids = {t.id for t in schedule}
            waiting_on = [
                dependency_id
                for dependency_id in task.predecessor_ids
                if dependency_id in run_ids and dependency_id not in placed_ids
            ]
            if waiting_on:
                logger.debug(f"Task {task.id} not placed: predecessor {waiting_on} not scheduled")
                unscheduled.append(ScheduledTask.from_task(task, scheduled_time=None))
                continue

            earliest = self.calculate_earliest_start_time(task, schedule)
            window = self.waking_window(
                TIME_WINDOWS[TimeWindowName(task.time_window or TimeWindowName.ANYTIME).value],
                sleep_schedule,
            )
            slot = self.find_best_time_slot(task, schedule, window, earliest)

            if slot is None:
                logger.debug(f"Task {task.id} not placed: no free slot in {task.time_window} window")
                unscheduled.append(ScheduledTask.from_task(task, scheduled_time=None))
                continue

            schedule.append(ScheduledTask.from_task(task, scheduled_time=slot, is_flexible=True))

        schedule.sort(key=_by_start_time)
        return schedule, unscheduled

    # Conflicts

    def detect_and_mark_conflicts(self, schedule: Sequence[ScheduledTask]) -> List[ScheduledTask]:
        return detect_and_mark_conflicts(schedule)

    def calculate_conflict_severity(self, conflicts: Sequence[Conflict]) -> Optional[ConflictSeverity]:
        return calculate_conflict_severity(conflicts)

    def validate_dependency_constraints(
        self,
        task: ScheduledTask,
        schedule: Sequence[ScheduledTask],
    ) -> bool:
        return validate_dependency_constraints(task, schedule)

    # Orchestration

    def run_scheduling_algorithm(
        self,
        tasks: Sequence[Task],
        sleep_schedule: Optional[SleepSchedule] = None,
    ) -> Tuple[List[ScheduledTask], List[ScheduledTask]]:
        """Anchors, dependency order, flexible placement, conflict scan.

        Returns (schedule, unscheduled) with `schedule` sorted by start time.
        Flexible tasks start inside both their time window and the waking
        hours of `sleep_schedule`; anchors keep their default time.
        """
        anchors = self.place_anchors(tasks)
        ordered = self.resolve_dependencies(tasks)
        schedule, unscheduled = self.slot_flexible_tasks(anchors, ordered, sleep_schedule)
        schedule = self.detect_and_mark_conflicts(schedule)
        logger.debug(
            f"Scheduled {len(schedule)} of {len(tasks)} tasks "
            f"({len(anchors)} anchors, {len(unscheduled)} unscheduled)"
        )
        return schedule, unscheduled

    def generate_schedule_for_date(
        self,
        target: Union[date, str],
        *,
        settings: Settings,
        templates: Sequence[Task],
        instances: Sequence[TaskInstance] = (),
        daily_schedule: Optional[DailyScheduleOverride] = None,
    ) -> ScheduleResult:
        """Build the conflict-annotated schedule for one date.

        Never raises: infeasibility comes back as `impossible_schedule`, any
        unexpected failure as `scheduling_error` with the underlying message.
        """
        day = str(target)
        try:
            sleep_schedule = self.get_effective_sleep_schedule(settings, daily_schedule)
            active = self.get_active_tasks_for_date(templates, instances, target)

            feasibility = self.check_schedule_impossibility(active, sleep_schedule)
            if not feasibility.possible:
                logger.debug(f"Impossible schedule for {day}: {feasibility.message}")
                return ScheduleResult(
                    success=False,
                    date=day,
                    error=ScheduleError.IMPOSSIBLE_SCHEDULE,
                    message=feasibility.message,
                    suggestions=feasibility.suggestions,
                    total_tasks=len(active),
                    sleep_schedule=sleep_schedule,
                )

            schedule, unscheduled = self.run_scheduling_algorithm(active, sleep_schedule)
            return ScheduleResult(
                success=True,
                date=day,
                schedule=schedule,
                unscheduled=unscheduled,
                total_tasks=len(active),
                scheduled_tasks=len(schedule),
                sleep_schedule=sleep_schedule,
            )
        except Exception as e:
            logger.error(f"Failed to generate schedule for {day}: {type(e).__name__}: {str(e)}")
            return ScheduleResult(
                success=False,
                date=day,
                error=ScheduleError.SCHEDULING_ERROR,
                message=f"Failed to generate schedule: {str(e)}",
            )

    def generate_schedules_for_dates(
        self,
        dates: Iterable[Union[date, str]],
        *,
        settings: Settings,
        templates: Sequence[Task],
        instances_by_date: Optional[Dict[str, Sequence[TaskInstance]]] = None,
        daily_schedules: Optional[Dict[str, DailyScheduleOverride]] = None,
    ) -> Dict[str, ScheduleResult]:
        """Run generate_schedule_for_date for each caller-chosen date.

        Dict keys are ISO date strings; each date is independent.
        """
        instances_by_date = instances_by_date or {}
        daily_schedules = daily_schedules or {}
        results: Dict[str, ScheduleResult] = {}
        for target in dates:
            key = str(target)
            results[key] = self.generate_schedule_for_date(
                target,
                settings=settings,
                templates=templates,
                instances=instances_by_date.get(key, ()),
                daily_schedule=daily_schedules.get(key),
            )
        return results

    def check_overdue_tasks(
        self,
        schedule: Sequence[ScheduledTask],
        current_time: str,
    ) -> List[OverdueTask]:
        """Scheduled tasks that ended before `current_time` ("HH:MM")."""
        now = time_string_to_minutes(current_time)
        overdue: List[OverdueTask] = []
        for task in schedule:
            if not task.scheduled_time:
                continue
            _, end = task_interval(task)
            if now > end:
                overdue.append(OverdueTask(task=task, overdue_minutes=now - end))
        return overdue
