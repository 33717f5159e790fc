from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Iterable

from clinic_backend.scheduling.time_of_day import minutes_to_label, minutes_to_time
from clinic_backend.scheduling.working_hours import (
    Off,
    UseDefaultTemplate,
    WellFormed,
    WorkingHours,
    parse_day_rule,
)

SLOT_MINUTES = 30
DEFAULT_FIRST_SLOT = 9 * 60
DEFAULT_DAY_END = 18 * 60
# Midday slot kept closed in the fallback template.
DEFAULT_BLOCKED_LABELS = frozenset({'12:00 PM'})


@dataclass(frozen=True)
class TimeSlot:
    label: str
    start_minutes: int
    available: bool = True


def _default_template() -> tuple[TimeSlot, ...]:
    slots = []
    for start_minutes in range(DEFAULT_FIRST_SLOT, DEFAULT_DAY_END, SLOT_MINUTES):
        label = minutes_to_label(start_minutes)
        slots.append(TimeSlot(label, start_minutes, available=label not in DEFAULT_BLOCKED_LABELS))
    return tuple(slots)


DEFAULT_TEMPLATE = _default_template()


def _slots_between(start_minutes: int, end_minutes: int) -> list[TimeSlot]:
    slots = []
    current = start_minutes
    while current + SLOT_MINUTES <= end_minutes:
        slots.append(TimeSlot(minutes_to_label(current), current, available=True))
        current += SLOT_MINUTES
    return slots


def generate_slots(
    day: date,
    working_hours: WorkingHours | None,
    now: datetime | None = None,
) -> list[TimeSlot]:
    """Bookable 30-minute slots for ``day``.

    An empty list means the clinic is closed that day. A misconfigured day
    gets the default template instead of an error. When ``now`` is given and
    ``day`` is today, slots that already started are marked unavailable.
    """
    if working_hours is None:
        slots = list(DEFAULT_TEMPLATE)
    else:
        parsed = parse_day_rule(working_hours.day_rule_for(day))
        if isinstance(parsed, Off):
            return []
        elif isinstance(parsed, UseDefaultTemplate):
            slots = list(DEFAULT_TEMPLATE)
        elif isinstance(parsed, WellFormed):
            slots = _slots_between(parsed.start_minutes, parsed.end_minutes) or list(DEFAULT_TEMPLATE)
        else:
            raise TypeError(f'Unhandled day rule: {parsed!r}')

    if now is not None and day == now.date():
        slots = [
            replace(slot, available=False)
            if datetime.combine(day, minutes_to_time(slot.start_minutes)) < now
            else slot
            for slot in slots
        ]

    return slots


def mark_taken(slots: Iterable[TimeSlot], taken_minutes: Iterable[int]) -> list[TimeSlot]:
    taken = set(taken_minutes)
    return [replace(slot, available=False) if slot.start_minutes in taken else slot for slot in slots]


def is_date_available(day: date, working_hours: WorkingHours | None, today: date) -> bool:
    if day < today:
        return False

    if working_hours is None:
        return True

    return not isinstance(parse_day_rule(working_hours.day_rule_for(day)), Off)


def find_first_available_date(working_hours: WorkingHours | None, today: date, max_days: int = 30) -> date:
    for offset in range(max_days):
        candidate = today + timedelta(days=offset)
        if is_date_available(candidate, working_hours, today):
            return candidate

    return today
