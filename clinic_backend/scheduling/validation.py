"""Booking-time checks for a candidate (date, time) pair.

These run again at submission even though the picker only offers valid
times, since the client may be holding a stale slot list.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Union

from clinic_backend.scheduling.errors import (
    ClinicClosedError,
    OutsideWorkingHoursError,
    PastDateError,
    PastTimeError,
)
from clinic_backend.scheduling.slots import generate_slots
from clinic_backend.scheduling.time_of_day import minutes_to_time, normalize_time
from clinic_backend.scheduling.working_hours import Off, WorkingHours, parse_day_rule

TimeInput = Union[str, time, tuple]


@dataclass(frozen=True)
class AppointmentCandidate:
    date: date
    time: TimeInput
    clinic_id: int
    patient_id: int | None = None


def is_bookable(day: date, slot_time: TimeInput, working_hours: WorkingHours | None, now: datetime) -> bool:
    """Return True or raise the first ``SchedulingError`` that applies."""
    if day < now.date():
        raise PastDateError()

    if working_hours is not None and isinstance(parse_day_rule(working_hours.day_rule_for(day)), Off):
        raise ClinicClosedError()

    start_minutes = normalize_time(slot_time)
    offered = {slot.start_minutes for slot in generate_slots(day, working_hours) if slot.available}
    if start_minutes not in offered:
        raise OutsideWorkingHoursError()

    if datetime.combine(day, minutes_to_time(start_minutes)) < now:
        raise PastTimeError()

    return True


def resolve_candidate(candidate: AppointmentCandidate, working_hours: WorkingHours | None, now: datetime) -> datetime:
    is_bookable(candidate.date, candidate.time, working_hours, now)
    return datetime.combine(candidate.date, minutes_to_time(normalize_time(candidate.time)))
