"""Wall-clock helpers shared by the models and the engine.

Times are "HH:MM" strings on a single day, handled as minutes since midnight.
"""


def time_string_to_minutes(time_string: str) -> int:
    """Convert "HH:MM" to minutes since midnight.

    An empty string maps to 0. Malformed input raises ValueError.
    """
    if not time_string:
        return 0
    hours, minutes = time_string.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time_string(minutes: int) -> str:
    """Convert minutes since midnight to zero-padded "HH:MM"."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def has_time_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Half-open interval overlap: [start1, end1) and [start2, end2)."""
    return start1 < end2 and start2 < end1


def overlap_minutes(start1: int, end1: int, start2: int, end2: int) -> int:
    """Length of the shared part of two intervals (0 when disjoint)."""
    return max(0, min(end1, end2) - max(start1, start2))
