from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_staff, require_clinic_member
from clinic_backend.core import config
from clinic_backend.models.user import User
from clinic_backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    get_now,
    to_http_exception,
)
from clinic_backend.scheduling.errors import SchedulingError
from clinic_backend.scheduling.slots import find_first_available_date, generate_slots, mark_taken
from clinic_backend.scheduling.time_of_day import HHMM_PATTERN, format_hhmm, parse_hhmm
from clinic_backend.scheduling.working_hours import WEEKDAYS, DayRule, WorkingHours
from clinic_backend.services import appointment_store, clinic_profile

router = APIRouter(tags=['scheduling'])


class DayRulePayload(BaseModel):
    off: bool = False
    start: str | None = None
    end: str | None = None

    @field_validator('start', 'end')
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if not HHMM_PATTERN.match(normalized):
            raise ValueError('Times must use the 24-hour HH:MM format.')

        return format_hhmm(parse_hhmm(normalized))


class WorkingHoursPayload(BaseModel):
    saturday: DayRulePayload | None = None
    sunday: DayRulePayload | None = None
    monday: DayRulePayload | None = None
    tuesday: DayRulePayload | None = None
    wednesday: DayRulePayload | None = None
    thursday: DayRulePayload | None = None
    friday: DayRulePayload | None = None

    def to_working_hours(self) -> WorkingHours:
        days = {}
        for weekday in WEEKDAYS:
            rule = getattr(self, weekday)
            if rule is not None:
                days[weekday] = DayRule(off=rule.off, start=rule.start, end=rule.end)
        return WorkingHours(days=days)


class TimeSlotResponse(BaseModel):
    label: str
    start_minutes: int
    available: bool

    class Config:
        from_attributes = True


class DaySlotsResponse(BaseModel):
    date: date
    is_open: bool
    slots: list[TimeSlotResponse]


class FirstAvailableDateResponse(BaseModel):
    date: date


def _working_hours_response(hours: WorkingHours | None) -> dict:
    return hours.to_dict() if hours is not None else {}


@router.get('/{clinic_id}/working-hours')
def read_working_hours(clinic_id: int, db: Session = Depends(get_db)):
    try:
        return _working_hours_response(clinic_profile.get_working_hours(db, clinic_id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.put('/{clinic_id}/working-hours')
def replace_working_hours(
    clinic_id: int,
    data: WorkingHoursPayload,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    require_clinic_member(current_user, clinic_id)

    try:
        hours = clinic_profile.update_working_hours(db, clinic_id, data.to_working_hours())
        return _working_hours_response(hours)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/{clinic_id}/slots', response_model=DaySlotsResponse)
def list_day_slots(
    clinic_id: int,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        hours = clinic_profile.get_working_hours(db, clinic_id)
        if slot_date < now.date():
            return DaySlotsResponse(date=slot_date, is_open=False, slots=[])

        slots = generate_slots(slot_date, hours, now=now)
        slots = mark_taken(slots, appointment_store.taken_slot_minutes(db, clinic_id, slot_date))

        return DaySlotsResponse(
            date=slot_date,
            is_open=bool(slots),
            slots=[TimeSlotResponse.model_validate(slot) for slot in slots],
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{clinic_id}/first-available-date', response_model=FirstAvailableDateResponse)
def first_available_date(
    clinic_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    try:
        hours = clinic_profile.get_working_hours(db, clinic_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return FirstAvailableDateResponse(
        date=find_first_available_date(hours, now.date(), max_days=config.BOOKING_SEARCH_DAYS),
    )
