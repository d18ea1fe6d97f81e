"""Recurrence evaluation for dailyplan."""

from dailyplan.recurrence.engine import RecurrenceEngine, RuleValidation, validate_recurrence_rule

__all__ = [
    "RecurrenceEngine",
    "RuleValidation",
    "validate_recurrence_rule",
]
