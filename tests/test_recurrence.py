"""Tests for recurrence evaluation (occurs-on-date, next occurrence, ranges, validation)."""

import logging
import pytest
from datetime import date

from dailyplan.models.recurrence import RecurrenceRule, Weekday
from dailyplan.models.task import Task
from dailyplan.recurrence.engine import RecurrenceEngine, validate_recurrence_rule


def _task(**rule):
    return Task(id="t", name="Recurring", recurrence_rule=rule)


class TestDaily:
    """Daily frequency with intervals anchored at start_date."""

    def test_daily_fires_every_day(self, recurrence_engine):
        task = _task(frequency="daily")
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 1))
        assert recurrence_engine.should_generate_for_date(task, date(2031, 7, 19))

    def test_default_rule_is_daily(self, recurrence_engine):
        task = Task(id="t")
        assert recurrence_engine.should_generate_for_date(task, date(2024, 5, 5))

    def test_interval_counts_from_start_date(self, recurrence_engine):
        task = _task(frequency="daily", interval=2, start_date="2024-01-01")
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 1))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 2))
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 3))

    def test_before_start_date_never_fires(self, recurrence_engine):
        task = _task(frequency="daily", start_date="2024-01-10")
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 9))

    def test_after_end_date_never_fires(self, recurrence_engine):
        task = _task(frequency="daily", end_date="2024-01-10")
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 10))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 11))

    def test_accepts_iso_string_dates(self, recurrence_engine):
        task = _task(frequency="daily", interval=2, start_date="2024-01-01")
        assert recurrence_engine.should_generate_for_date(task, "2024-01-05")


class TestWeekly:
    """Weekly frequency (2024-01-01 is a Monday)."""

    def test_listed_weekdays_only(self, recurrence_engine):
        task = _task(frequency="weekly", days_of_week=["mo", "we", "fr"])
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 3))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 4))

    def test_biweekly_skips_alternate_weeks(self, recurrence_engine):
        task = _task(frequency="weekly", interval=2, days_of_week=["mo"], start_date="2024-01-01")
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 1))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 8))
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 15))

    def test_no_days_never_fires(self, recurrence_engine):
        task = _task(frequency="weekly", days_of_week=[])
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 1))

    def test_duplicate_days_are_dropped(self):
        rule = RecurrenceRule(frequency="weekly", days_of_week=["mo", "mo", Weekday.TU])
        assert rule.days_of_week == ["mo", "tu"]


class TestMonthly:
    """Monthly frequency including last-day-of-month handling."""

    def test_last_day_of_month_in_leap_year(self, recurrence_engine):
        task = _task(frequency="monthly", day_of_month=-1)
        assert recurrence_engine.should_generate_for_date(task, date(2024, 2, 29))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 2, 28))

    def test_last_day_of_month_in_common_year(self, recurrence_engine):
        task = _task(frequency="monthly", day_of_month=-1)
        assert recurrence_engine.should_generate_for_date(task, date(2023, 2, 28))
        assert recurrence_engine.should_generate_for_date(task, date(2023, 4, 30))

    def test_day_31_skips_short_months(self, recurrence_engine):
        task = _task(frequency="monthly", day_of_month=31)
        start = date(2024, 4, 1)
        end = date(2024, 4, 30)
        assert recurrence_engine.get_occurrences_in_range(task, start, end) == []

    def test_defaults_to_start_date_day(self, recurrence_engine):
        task = _task(frequency="monthly", start_date="2024-01-15")
        assert recurrence_engine.should_generate_for_date(task, date(2024, 2, 15))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 2, 16))

    def test_quarterly_interval(self, recurrence_engine):
        task = _task(frequency="monthly", interval=3, day_of_month=1, start_date="2024-01-01")
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 2, 1))
        assert recurrence_engine.should_generate_for_date(task, date(2024, 4, 1))

    def test_rejects_out_of_range_day(self):
        with pytest.raises(ValueError):
            RecurrenceRule(frequency="monthly", day_of_month=32)


class TestYearly:
    """Yearly frequency and leap days."""

    def test_month_and_day(self, recurrence_engine):
        task = _task(frequency="yearly", month=3, day_of_month=14)
        assert recurrence_engine.should_generate_for_date(task, date(2025, 3, 14))
        assert not recurrence_engine.should_generate_for_date(task, date(2025, 4, 14))

    def test_leap_day_next_occurrence_is_four_years_later(self):
        engine = RecurrenceEngine(max_lookahead_days=2000)
        task = _task(frequency="yearly", month=2, day_of_month=29, start_date="2024-02-29")
        assert engine.get_next_occurrence(task, date(2024, 2, 29)) == date(2028, 2, 29)


class TestCustom:
    """Custom patterns: weekdays, weekends, nth weekday of month."""

    def test_weekdays(self, recurrence_engine):
        task = _task(frequency="custom", custom_pattern={"type": "weekdays"})
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 5))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 6))

    def test_weekends(self, recurrence_engine):
        task = _task(frequency="custom", custom_pattern={"type": "weekends"})
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 6))
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 7))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 8))

    def test_second_tuesday(self, recurrence_engine):
        task = _task(
            frequency="custom",
            custom_pattern={"type": "nth_weekday", "day_of_week": "tu", "nth_week": 2},
        )
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 2))
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 9))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 16))

    def test_custom_without_pattern_never_fires(self, recurrence_engine):
        task = _task(frequency="custom")
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 1))


class TestNoneFrequency:
    """One-off tasks never auto-generate."""

    def test_never_generates(self, recurrence_engine):
        task = _task(frequency="none")
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 1))
        assert recurrence_engine.get_next_occurrence(task, date(2024, 1, 1)) is None
        assert recurrence_engine.get_occurrences_in_range(task, date(2024, 1, 1), date(2024, 12, 31)) == []


class TestOccurrenceQueries:
    """get_next_occurrence and get_occurrences_in_range."""

    def test_next_occurrence_is_strictly_after(self, recurrence_engine):
        task = _task(frequency="daily")
        assert recurrence_engine.get_next_occurrence(task, date(2024, 1, 1)) == date(2024, 1, 2)

    def test_next_occurrence_stops_at_end_date(self, recurrence_engine):
        task = _task(frequency="daily", end_date="2024-01-10")
        assert recurrence_engine.get_next_occurrence(task, date(2024, 1, 10)) is None

    def test_next_occurrence_gives_up_after_lookahead(self, caplog):
        engine = RecurrenceEngine(max_lookahead_days=400)
        task = _task(frequency="yearly", month=2, day_of_month=30)
        with caplog.at_level(logging.WARNING):
            assert engine.get_next_occurrence(task, date(2024, 1, 1)) is None
        assert "within 400 days" in caplog.text

    def test_range_is_inclusive(self, recurrence_engine):
        task = _task(frequency="weekly", days_of_week=["mo"])
        dates = recurrence_engine.get_occurrences_in_range(task, date(2024, 1, 1), date(2024, 1, 15))
        assert dates == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]

    def test_reversed_range_is_empty(self, recurrence_engine):
        task = _task(frequency="daily")
        assert recurrence_engine.get_occurrences_in_range(task, date(2024, 1, 5), date(2024, 1, 1)) == []

    def test_range_matches_single_day_checks(self, recurrence_engine):
        task = _task(frequency="weekly", interval=2, days_of_week=["tu", "th"], start_date="2024-01-01")
        start, end = date(2024, 1, 1), date(2024, 3, 31)
        dates = recurrence_engine.get_occurrences_in_range(task, start, end)
        assert dates
        for d in dates:
            assert recurrence_engine.should_generate_for_date(task, d)
        assert dates == sorted(dates)


class TestOccurrenceLimit:
    """end_after_occurrences counted from start_date."""

    def test_stops_after_limit(self, recurrence_engine):
        task = _task(frequency="daily", start_date="2024-01-01", end_after_occurrences=3)
        assert recurrence_engine.should_generate_for_date(task, date(2024, 1, 3))
        assert not recurrence_engine.should_generate_for_date(task, date(2024, 1, 4))

    def test_range_respects_limit(self, recurrence_engine):
        task = _task(frequency="daily", start_date="2024-01-01", end_after_occurrences=3)
        dates = recurrence_engine.get_occurrences_in_range(task, date(2024, 1, 1), date(2024, 1, 10))
        assert dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_range_starting_mid_series(self, recurrence_engine):
        task = _task(frequency="daily", start_date="2024-01-01", end_after_occurrences=3)
        dates = recurrence_engine.get_occurrences_in_range(task, date(2024, 1, 2), date(2024, 1, 10))
        assert dates == [date(2024, 1, 2), date(2024, 1, 3)]

    def test_next_occurrence_after_last_is_none(self):
        engine = RecurrenceEngine(max_lookahead_days=30)
        task = _task(frequency="daily", start_date="2024-01-01", end_after_occurrences=2)
        assert engine.get_next_occurrence(task, date(2024, 1, 2)) is None


class TestValidateRecurrenceRule:
    """validate_recurrence_rule on raw mappings and models."""

    def test_valid_model(self):
        result = validate_recurrence_rule(RecurrenceRule(frequency="weekly", days_of_week=["mo"]))
        assert result.is_valid
        assert result.errors == []

    def test_unknown_frequency(self):
        result = validate_recurrence_rule({"frequency": "hourly"})
        assert not result.is_valid
        assert "Invalid frequency: hourly" in result.errors

    def test_non_positive_interval(self):
        result = validate_recurrence_rule({"frequency": "daily", "interval": 0})
        assert "Interval must be a positive integer" in result.errors

    def test_weekly_requires_days(self):
        result = validate_recurrence_rule({"frequency": "weekly", "days_of_week": []})
        assert "Weekly recurrence requires at least one day of the week" in result.errors

    def test_invalid_weekday(self):
        result = validate_recurrence_rule({"frequency": "weekly", "days_of_week": ["xx"]})
        assert not result.is_valid

    def test_end_before_start(self):
        result = validate_recurrence_rule(
            {"frequency": "daily", "start_date": "2024-02-01", "end_date": "2024-01-01"}
        )
        assert "End date must be after start date" in result.errors

    def test_custom_requires_pattern(self):
        result = validate_recurrence_rule({"frequency": "custom"})
        assert not result.is_valid

    def test_days_of_week_not_a_list(self):
        result = validate_recurrence_rule({"frequency": "weekly", "days_of_week": 5})
        assert not result.is_valid
        assert "days_of_week must be a list of weekdays" in result.errors

    def test_custom_pattern_not_an_object(self):
        result = validate_recurrence_rule({"frequency": "custom", "custom_pattern": "weekdays"})
        assert not result.is_valid
        assert "Custom pattern must be an object with a type" in result.errors

    @pytest.mark.parametrize(
        "rule",
        [
            {"frequency": ["daily"]},
            {"frequency": "weekly", "days_of_week": [["mo"]]},
            {"frequency": "weekly", "days_of_week": {"mo": True}},
            {"frequency": "custom", "custom_pattern": {"type": {"x": 1}}},
            {"frequency": "custom", "custom_pattern": {"type": "nth_weekday", "day_of_week": [], "nth_week": "2"}},
            {"frequency": "daily", "start_date": 20240101},
            {"frequency": "daily", "end_date": ["2024-01-01"]},
        ],
    )
    def test_malformed_shapes_are_errors(self, rule):
        result = validate_recurrence_rule(rule)
        assert result.is_valid is False
        assert result.errors

    def test_collects_every_error(self):
        result = validate_recurrence_rule({"frequency": "monthly", "interval": -2, "day_of_month": 40})
        assert len(result.errors) == 2

    def test_engine_method_delegates(self, recurrence_engine):
        assert recurrence_engine.validate_recurrence_rule({"frequency": "daily"}).is_valid
