"""Runtime configuration for dailyplan.

Values are read from the environment (optionally via a local `.env` file)
once at import time. Every value has a default so the engine runs with no
environment at all.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


# Placement scan step for flexible tasks (minutes)
SCHEDULING_GRANULARITY_MINUTES = _int_env("SCHEDULING_GRANULARITY_MINUTES", 15)

# Gap kept between a predecessor's end and its dependent's start (minutes)
DEPENDENCY_BUFFER_MINUTES = _int_env("DEPENDENCY_BUFFER_MINUTES", 5)

# Generated schedules kept by the HTTP layer before the least recently used is dropped
SCHEDULE_CACHE_MAX_ENTRIES = _int_env("SCHEDULE_CACHE_MAX_ENTRIES", 256)

# Upper bound for the forward scan in get_next_occurrence (days)
MAX_OCCURRENCE_LOOKAHEAD_DAYS = _int_env("MAX_OCCURRENCE_LOOKAHEAD_DAYS", 1000)

# Fallback user settings when the caller supplies none
DEFAULT_WAKE_TIME = os.getenv("DEFAULT_WAKE_TIME", "06:30")
DEFAULT_SLEEP_TIME = os.getenv("DEFAULT_SLEEP_TIME", "23:00")
DESIRED_SLEEP_DURATION = _float_env("DESIRED_SLEEP_DURATION", 7.5)
DEFAULT_BUFFER_MINUTES = _int_env("DEFAULT_BUFFER_MINUTES", 0)

DEBUG = os.getenv("DEBUG", "False").lower() == "true"
