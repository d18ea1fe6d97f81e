"""FastAPI web application for dailyplan.

Thin HTTP layer around the scheduling engine. Callers send settings, task
definitions and instance statuses with every request; nothing is persisted.
Generated schedules are cached in memory per date and request payload.
"""

import hashlib
import logging
import threading
from collections import OrderedDict
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator, List, Optional, Tuple

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from dailyplan import __version__
from dailyplan.config import SCHEDULE_CACHE_MAX_ENTRIES
from dailyplan.engine.dependencies import ChainValidation, DependencyResolver, DependencyStatistics
from dailyplan.engine.scheduler import SchedulingEngine
from dailyplan.models.schedule import ScheduleResult
from dailyplan.models.settings import DailyScheduleOverride, Settings
from dailyplan.models.task import Task, TaskInstance
from dailyplan.recurrence.engine import RecurrenceEngine, RuleValidation, validate_recurrence_rule

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="dailyplan API",
    description="Builds a conflict-annotated daily timetable from recurring task definitions",
    version=__version__,
)

recurrence_engine = RecurrenceEngine()
dependency_resolver = DependencyResolver()
scheduling_engine = SchedulingEngine(recurrence_engine, dependency_resolver)


class _DayLock:
    """Lock for one date plus the number of requests holding or waiting on it."""

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class ScheduleCache:
    """Bounded LRU of schedule results keyed by (date, payload fingerprint).

    A per-date lock keeps at most one generation in flight for any date.
    Locks only live while a request for their date is running.
    """

    def __init__(self, max_entries: int = SCHEDULE_CACHE_MAX_ENTRIES):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._results: "OrderedDict[Tuple[str, str], ScheduleResult]" = OrderedDict()
        self._locks: Dict[str, _DayLock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def lock_for(self, day: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(day)
            if entry is None:
                entry = self._locks[day] = _DayLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[day]

    def get(self, day: str, fingerprint: str) -> Optional[ScheduleResult]:
        with self._guard:
            result = self._results.get((day, fingerprint))
            if result is not None:
                self._results.move_to_end((day, fingerprint))
            return result

    def put(self, day: str, fingerprint: str, result: ScheduleResult) -> None:
        with self._guard:
            self._results[(day, fingerprint)] = result
            self._results.move_to_end((day, fingerprint))
            while len(self._results) > self.max_entries:
                evicted, _ = self._results.popitem(last=False)
                logger.debug(f"Evicted cached schedule for {evicted[0]}")

    def clear(self) -> int:
        with self._guard:
            count = len(self._results)
            self._results.clear()
            return count

    def active_locks(self) -> int:
        with self._guard:
            return len(self._locks)

    def __len__(self) -> int:
        return len(self._results)


schedule_cache = ScheduleCache()


# Request/response models
class ScheduleRequest(BaseModel):
    """Everything the engine needs for one date."""
    settings: Settings = Field(default_factory=Settings)
    templates: List[Task] = Field(default_factory=list)
    instances: List[TaskInstance] = Field(default_factory=list)
    daily_schedule: Optional[DailyScheduleOverride] = None
    use_cache: bool = True


class OccurrencesRequest(BaseModel):
    task: Task
    start: date
    end: date


class OccurrencesResponse(BaseModel):
    task_id: str
    occurrences: List[date]
    next_occurrence: Optional[date] = None


class DependencyReport(BaseModel):
    validation: ChainValidation
    statistics: DependencyStatistics
    order: List[str]


class CacheClearResponse(BaseModel):
    cleared: int


def _parse_day(day: str) -> date:
    try:
        return date.fromisoformat(day)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {day}. Use YYYY-MM-DD.")


def _fingerprint(request: ScheduleRequest) -> str:
    payload = request.model_dump_json(exclude={"use_cache"})
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@app.get("/health")
def health():
    """Liveness check."""
    return {"status": "ok", "version": __version__, "cached_schedules": len(schedule_cache)}


@app.post("/schedule/{day}", response_model=ScheduleResult)
def build_schedule(day: str, request: ScheduleRequest):
    """Generate (or return the cached) schedule for one date."""
    target = _parse_day(day)
    key = target.isoformat()
    fingerprint = _fingerprint(request)

    with schedule_cache.lock_for(key):
        if request.use_cache:
            cached = schedule_cache.get(key, fingerprint)
            if cached is not None:
                logger.debug(f"Schedule cache hit for {key}")
                return cached

        result = scheduling_engine.generate_schedule_for_date(
            target,
            settings=request.settings,
            templates=request.templates,
            instances=request.instances,
            daily_schedule=request.daily_schedule,
        )
        if result.success:
            schedule_cache.put(key, fingerprint, result)
        return result


@app.delete("/schedule/cache", response_model=CacheClearResponse)
def clear_schedule_cache():
    """Drop every cached schedule."""
    return CacheClearResponse(cleared=schedule_cache.clear())


@app.post("/recurrence/validate", response_model=RuleValidation)
def validate_rule(rule: Dict[str, Any]):
    """Validate a raw recurrence rule."""
    return validate_recurrence_rule(rule)


@app.post("/recurrence/occurrences", response_model=OccurrencesResponse)
def list_occurrences(request: OccurrencesRequest):
    """Occurrences of a task in [start, end] plus the next one after end."""
    if request.end < request.start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    try:
        occurrences = recurrence_engine.get_occurrences_in_range(request.task, request.start, request.end)
        next_occurrence = recurrence_engine.get_next_occurrence(request.task, request.end)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to compute occurrences: {str(e)}")
    return OccurrencesResponse(
        task_id=request.task.id,
        occurrences=occurrences,
        next_occurrence=next_occurrence,
    )


@app.post("/dependencies/validate", response_model=DependencyReport)
def validate_dependencies(tasks: List[Task]):
    """Cycle/missing-predecessor report, statistics and processing order."""
    return DependencyReport(
        validation=dependency_resolver.validate_dependency_chain(tasks),
        statistics=dependency_resolver.get_dependency_statistics(tasks),
        order=[task.id for task in dependency_resolver.topological_sort(tasks)],
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
