"""dailyplan: daily task-scheduling engine.

Turns recurring task definitions, their dependencies and a sleep window into
a conflict-annotated timetable for one date.
"""

__version__ = "0.1.0"
