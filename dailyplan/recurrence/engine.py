"""Recurrence evaluation for task definitions.

Decides whether a task's recurrence rule fires on a date and enumerates
occurrences over ranges. Pure date arithmetic; no I/O.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field

from dailyplan.models.constants import MAX_OCCURRENCE_LOOKAHEAD_DAYS
from dailyplan.models.recurrence import (
    LAST_DAY_OF_MONTH,
    WEEKDAY_ORDER,
    CustomPatternType,
    RecurrenceFrequency,
    RecurrenceRule,
    Weekday,
)
from dailyplan.models.task import Task

logger = logging.getLogger(__name__)


class RuleValidation(BaseModel):
    """Result of validate_recurrence_rule."""

    is_valid: bool
    errors: List[str] = Field(default_factory=list)


def _weekday_enum(d: date) -> Weekday:
    return WEEKDAY_ORDER[d.weekday()]


def _daterange(start: date, end_inclusive: date) -> Iterable[date]:
    cur = start
    while cur <= end_inclusive:
        yield cur
        cur = cur + timedelta(days=1)


def _as_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _last_day_of_month(d: date) -> int:
    return calendar.monthrange(d.year, d.month)[1]


def _day_of_month_matches(day_of_month: Optional[int], d: date) -> bool:
    if day_of_month is None:
        return True
    if day_of_month == LAST_DAY_OF_MONTH:
        return d.day == _last_day_of_month(d)
    return d.day == day_of_month


class RecurrenceEngine:
    """Evaluates recurrence rules against calendar dates.

    Holds no per-call state; one instance can be shared freely.
    """

    def __init__(self, max_lookahead_days: int = MAX_OCCURRENCE_LOOKAHEAD_DAYS):
        self.max_lookahead_days = max_lookahead_days

    def should_generate_for_date(self, task: Task, target: Union[date, str]) -> bool:
        """Return True if the task's rule produces an occurrence on `target`.

        `none`-frequency (one-off) tasks never auto-generate.
        """
        rule = task.recurrence_rule
        if rule is None or rule.frequency == RecurrenceFrequency.NONE:
            return False

        day = _as_date(target)
        if not self._matches(rule, day):
            return False
        return not self._occurrence_limit_reached(rule, day)

    def get_next_occurrence(self, task: Task, from_date: Union[date, str]) -> Optional[date]:
        """First occurrence strictly after `from_date`, or None.

        The forward scan stops after `max_lookahead_days` so a rule that can
        never fire (e.g. February 30th) does not loop forever.
        """
        rule = task.recurrence_rule
        if rule is None or rule.frequency == RecurrenceFrequency.NONE:
            return None

        day = _as_date(from_date)
        for _ in range(self.max_lookahead_days):
            day = day + timedelta(days=1)
            if rule.end_date and day > rule.end_date:
                return None
            if self.should_generate_for_date(task, day):
                return day

        logger.warning(
            f"No occurrence of task {task.id} within {self.max_lookahead_days} days after {from_date}"
        )
        return None

    def get_occurrences_in_range(
        self,
        task: Task,
        start: Union[date, str],
        end: Union[date, str],
    ) -> List[date]:
        """All occurrence dates in [start, end], ascending."""
        rule = task.recurrence_rule
        if rule is None or rule.frequency == RecurrenceFrequency.NONE:
            return []

        start_day = _as_date(start)
        end_day = _as_date(end)
        if end_day < start_day:
            return []

        # Count once up front instead of per day for occurrence-limited rules
        seen = self._count_matches_before(rule, start_day) if self._has_limit(rule) else 0
        out: List[date] = []
        for day in _daterange(start_day, end_day):
            if not self._matches(rule, day):
                continue
            if self._has_limit(rule):
                if seen >= rule.end_after_occurrences:
                    break
                seen += 1
            out.append(day)
        return out

    def validate_recurrence_rule(self, rule: Union[RecurrenceRule, Mapping[str, Any]]) -> RuleValidation:
        """Check a rule (model or raw mapping) and collect every problem found."""
        return validate_recurrence_rule(rule)

    # Pattern matching

    def _matches(self, rule: RecurrenceRule, day: date) -> bool:
        if rule.start_date and day < rule.start_date:
            return False
        if rule.end_date and day > rule.end_date:
            return False

        frequency = rule.frequency
        if frequency == RecurrenceFrequency.DAILY:
            return self._matches_daily(rule, day)
        if frequency == RecurrenceFrequency.WEEKLY:
            return self._matches_weekly(rule, day)
        if frequency == RecurrenceFrequency.MONTHLY:
            return self._matches_monthly(rule, day)
        if frequency == RecurrenceFrequency.YEARLY:
            return self._matches_yearly(rule, day)
        if frequency == RecurrenceFrequency.CUSTOM:
            return self._matches_custom(rule, day)
        return False

    def _matches_daily(self, rule: RecurrenceRule, day: date) -> bool:
        anchor = rule.start_date or day
        delta = (day - anchor).days
        return delta >= 0 and delta % rule.interval == 0

    def _matches_weekly(self, rule: RecurrenceRule, day: date) -> bool:
        if not rule.days_of_week:
            return False
        if _weekday_enum(day) not in rule.days_of_week:
            return False
        anchor = rule.start_date or day
        week_delta = (day - anchor).days // 7
        return week_delta >= 0 and week_delta % rule.interval == 0

    def _matches_monthly(self, rule: RecurrenceRule, day: date) -> bool:
        # Without an explicit day, repeat on the start date's day of month
        day_of_month = rule.day_of_month
        if day_of_month is None and rule.start_date:
            day_of_month = rule.start_date.day
        if not _day_of_month_matches(day_of_month, day):
            return False
        anchor = rule.start_date or day
        months = (day.year - anchor.year) * 12 + (day.month - anchor.month)
        return months >= 0 and months % rule.interval == 0

    def _matches_yearly(self, rule: RecurrenceRule, day: date) -> bool:
        if rule.month is not None and day.month != rule.month:
            return False
        if not _day_of_month_matches(rule.day_of_month, day):
            return False
        anchor = rule.start_date or day
        years = day.year - anchor.year
        return years >= 0 and years % rule.interval == 0

    def _matches_custom(self, rule: RecurrenceRule, day: date) -> bool:
        pattern = rule.custom_pattern
        if pattern is None:
            return False
        if pattern.type == CustomPatternType.WEEKDAYS:
            return day.weekday() < 5
        if pattern.type == CustomPatternType.WEEKENDS:
            return day.weekday() >= 5
        if pattern.type == CustomPatternType.NTH_WEEKDAY:
            if pattern.day_of_week is None or pattern.nth_week is None:
                return False
            nth_week = (day.day - 1) // 7 + 1
            return _weekday_enum(day) == pattern.day_of_week and nth_week == pattern.nth_week
        return False

    # Occurrence limits

    @staticmethod
    def _has_limit(rule: RecurrenceRule) -> bool:
        # Counting needs a fixed starting point
        return bool(rule.end_after_occurrences and rule.start_date)

    def _count_matches_before(self, rule: RecurrenceRule, day: date) -> int:
        count = 0
        if rule.start_date is None or day <= rule.start_date:
            return 0
        for d in _daterange(rule.start_date, day - timedelta(days=1)):
            if self._matches(rule, d):
                count += 1
        return count

    def _occurrence_limit_reached(self, rule: RecurrenceRule, day: date) -> bool:
        if not self._has_limit(rule):
            return False
        return self._count_matches_before(rule, day) >= rule.end_after_occurrences


_WEEKDAY_VALUES = {w.value for w in Weekday}
_FREQUENCY_VALUES = {f.value for f in RecurrenceFrequency}
_PATTERN_VALUES = {p.value for p in CustomPatternType}


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _is_one_of(value: Any, allowed: set) -> bool:
    return isinstance(value, str) and value in allowed


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def validate_recurrence_rule(rule: Union[RecurrenceRule, Mapping[str, Any]]) -> RuleValidation:
    """Validate a recurrence rule.

    Works on raw mappings so unknown frequency tags and bad intervals are
    reported as errors instead of failing model construction.

    Args:
        rule: RecurrenceRule or a mapping with the same field names

    Returns:
        RuleValidation with every error found (empty when valid)
    """
    data = rule.model_dump() if isinstance(rule, BaseModel) else dict(rule or {})
    errors: List[str] = []

    frequency = _enum_value(data.get("frequency"))
    if not _is_one_of(frequency, _FREQUENCY_VALUES):
        errors.append(f"Invalid frequency: {frequency}")

    interval = data.get("interval")
    if interval is not None and not _is_positive_int(interval):
        errors.append("Interval must be a positive integer")

    if frequency == RecurrenceFrequency.WEEKLY.value:
        days = data.get("days_of_week") or []
        if not isinstance(days, (list, tuple)):
            errors.append("days_of_week must be a list of weekdays")
        elif not days:
            errors.append("Weekly recurrence requires at least one day of the week")
        else:
            for d in days:
                if not _is_one_of(_enum_value(d), _WEEKDAY_VALUES):
                    errors.append(f"Invalid day of week: {d}")

    day_of_month = data.get("day_of_month")
    if day_of_month is not None and not (
        day_of_month == LAST_DAY_OF_MONTH
        or (isinstance(day_of_month, int) and 1 <= day_of_month <= 31)
    ):
        errors.append("Day of month must be 1-31 or -1 for the last day")

    month = data.get("month")
    if month is not None and not (isinstance(month, int) and 1 <= month <= 12):
        errors.append("Month must be between 1 and 12")

    if frequency == RecurrenceFrequency.CUSTOM.value:
        errors.extend(_validate_custom_pattern(data.get("custom_pattern")))

    limit = data.get("end_after_occurrences")
    if limit is not None and not _is_positive_int(limit):
        errors.append("end_after_occurrences must be a positive integer")

    start_date = _parse_optional_date(data.get("start_date"), "start_date", errors)
    end_date = _parse_optional_date(data.get("end_date"), "end_date", errors)
    if start_date and end_date and end_date <= start_date:
        errors.append("End date must be after start date")

    return RuleValidation(is_valid=not errors, errors=errors)


def _validate_custom_pattern(pattern: Any) -> List[str]:
    if not pattern:
        return ["Custom recurrence requires a custom pattern"]
    if isinstance(pattern, BaseModel):
        pattern = pattern.model_dump()
    if not isinstance(pattern, Mapping):
        return ["Custom pattern must be an object with a type"]
    pattern_type = _enum_value(pattern.get("type"))
    if not _is_one_of(pattern_type, _PATTERN_VALUES):
        return [f"Invalid custom pattern type: {pattern_type}"]
    errors: List[str] = []
    if pattern_type == CustomPatternType.NTH_WEEKDAY.value:
        if not _is_one_of(_enum_value(pattern.get("day_of_week")), _WEEKDAY_VALUES):
            errors.append("nth_weekday pattern requires a valid day_of_week")
        nth_week = pattern.get("nth_week")
        if not (_is_positive_int(nth_week) and nth_week <= 5):
            errors.append("nth_weekday pattern requires nth_week between 1 and 5")
    return errors


def _parse_optional_date(value: Any, field: str, errors: List[str]) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return _as_date(value)
    except (TypeError, ValueError):
        errors.append(f"Invalid {field}: {value}")
        return None
