"""Conversion between minutes-since-midnight, 24-hour "HH:MM" strings and
12-hour slot labels such as "09:30 AM".

Slot generation and booking validation both go through this module so the
two never disagree on what a label means.
"""

import re
from datetime import time

from clinic_backend.scheduling.errors import InvalidTimeLabelError, MalformedWorkingHoursError

MINUTES_PER_DAY = 24 * 60

HHMM_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')
LABEL_PATTERN = re.compile(r'^(\d{1,2}):([0-5][0-9])\s*(AM|PM|ص|م)$', re.IGNORECASE)

# The Arabic UI renders periods as ص (morning) and م (evening).
PERIOD_ALIASES = {
    'am': 'AM',
    'pm': 'PM',
    'ص': 'AM',
    'م': 'PM',
}


def parse_hhmm(value: str) -> int:
    match = HHMM_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise MalformedWorkingHoursError(f'Invalid working-hours time: {value!r}')

    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    hour, minute = divmod(minutes, 60)
    return f'{hour:02d}:{minute:02d}'


def minutes_to_label(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'Minutes out of range: {minutes}')

    hour, minute = divmod(minutes, 60)
    period = 'PM' if hour >= 12 else 'AM'
    display_hour = hour % 12 or 12
    return f'{display_hour:02d}:{minute:02d} {period}'


def label_to_minutes(label: str) -> int:
    match = LABEL_PATTERN.match(label.strip()) if isinstance(label, str) else None
    if not match:
        raise InvalidTimeLabelError(f'Invalid time label: {label!r}')

    hour = int(match.group(1))
    minute = int(match.group(2))
    period = PERIOD_ALIASES[match.group(3).lower()]

    if not 1 <= hour <= 12:
        raise InvalidTimeLabelError(f'Invalid time label: {label!r}')

    if period == 'PM' and hour != 12:
        hour += 12
    elif period == 'AM' and hour == 12:
        hour = 0

    return hour * 60 + minute


def normalize_time(value) -> int:
    """Accept a slot label, an (hour, minute) pair or a ``datetime.time``."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if isinstance(value, str):
        return label_to_minutes(value)

    if isinstance(value, (tuple, list)) and len(value) == 2:
        hour, minute = value
        is_int = all(isinstance(part, int) and not isinstance(part, bool) for part in value)
        if is_int and 0 <= hour <= 23 and 0 <= minute <= 59:
            return hour * 60 + minute

    raise InvalidTimeLabelError(f'Invalid time: {value!r}')


def minutes_to_time(minutes: int) -> time:
    hour, minute = divmod(minutes, 60)
    return time(hour, minute)
