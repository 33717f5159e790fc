from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_staff
from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.user import User
from clinic_backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    get_now,
    to_http_exception,
)
from clinic_backend.scheduling.errors import SchedulingError
from clinic_backend.scheduling.lifecycle import (
    AppointmentSource,
    AppointmentStatus,
    allowed_next_statuses,
    initial_status_for,
)
from clinic_backend.scheduling.reminders import (
    build_reminder_message,
    build_whatsapp_link,
    can_offer_reminder,
    format_whatsapp_phone,
)
from clinic_backend.scheduling.validation import AppointmentCandidate, resolve_candidate
from clinic_backend.services import appointment_store, clinic_profile

router = APIRouter(tags=['appointments'])


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    patient_id: int
    date: date
    time: str
    status: AppointmentStatus | None = None
    price: Decimal | None = None
    notes: str | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Appointment time is required.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class BookingRequest(BaseModel):
    patient_name: str
    patient_phone: str
    date: date
    time: str
    notes: str | None = None

    @field_validator('patient_name')
    @classmethod
    def validate_patient_name(cls, value: str) -> str:
        normalized = ' '.join(value.split())
        if not normalized:
            raise ValueError('Patient name is required.')
        return normalized

    @field_validator('patient_phone')
    @classmethod
    def validate_patient_phone(cls, value: str) -> str:
        normalized = ''.join(character for character in value if character.isdigit() or character == '+')
        if len(normalized.lstrip('+')) < 7:
            raise ValueError('A valid phone number is required.')
        return normalized

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Appointment time is required.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return value.strip().lower()


class PatientSummary(BaseModel):
    id: int
    name: str
    phone: str | None = None

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: int
    clinic_id: int
    date: datetime
    status: str
    source: str
    price: Decimal | None = None
    notes: str | None = None
    created_at: datetime | None = None
    patient: PatientSummary | None = None
    allowed_next_statuses: list[str] = []

    class Config:
        from_attributes = True


class AppointmentListResponse(BaseModel):
    items: list[AppointmentResponse]
    total: int


class ReminderResponse(BaseModel):
    appointment_id: int
    eligible: bool
    whatsapp_url: str | None = None
    message: str | None = None


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    response = AppointmentResponse.model_validate(appointment)
    response.allowed_next_statuses = [next_status.value for next_status in allowed_next_statuses(appointment.status)]
    return response


@router.post('/booking/{clinic_id}', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_online_booking(
    clinic_id: int,
    data: BookingRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        hours = clinic_profile.get_working_hours(db, clinic_id)
        start = resolve_candidate(AppointmentCandidate(date=data.date, time=data.time, clinic_id=clinic_id), hours, now)
        patient = appointment_store.find_or_create_patient(db, clinic_id, data.patient_name, data.patient_phone)
        appointment = appointment_store.create_appointment(
            db,
            clinic_id=clinic_id,
            patient_id=patient.id,
            start=start,
            status=initial_status_for(AppointmentSource.BOOKING),
            source=AppointmentSource.BOOKING,
            notes=data.notes,
        )
        return to_appointment_response(appointment)
    except SchedulingError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_clinic_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    current_user: User = Depends(get_current_staff),
):
    ensure_database_ready()
    clinic_id = current_user.clinic_id

    try:
        initial_status = initial_status_for(AppointmentSource.CLINIC, data.status)
        hours = clinic_profile.get_working_hours(db, clinic_id)
        candidate = AppointmentCandidate(date=data.date, time=data.time, clinic_id=clinic_id, patient_id=data.patient_id)
        start = resolve_candidate(candidate, hours, now)

        if not appointment_store.patient_belongs_to_clinic(db, data.patient_id, clinic_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Patient not found.',
            )

        appointment = appointment_store.create_appointment(
            db,
            clinic_id=clinic_id,
            patient_id=data.patient_id,
            start=start,
            status=initial_status,
            source=AppointmentSource.CLINIC,
            price=data.price,
            notes=data.notes,
        )
        return to_appointment_response(appointment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('', response_model=AppointmentListResponse)
def list_appointments(
    time: str = Query(default='all', pattern='^(all|upcoming)$'),
    on_date: date | None = Query(default=None, alias='date'),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias='status'),
    source: str | None = Query(default=None),
    has_notes: bool = Query(default=False),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    current_user: User = Depends(get_current_staff),
):
    ensure_database_ready()

    filters = appointment_store.AppointmentFilter(
        time=time,
        on_date=on_date,
        date_from=date_from,
        date_to=date_to,
        status=status_filter,
        source=source,
        has_notes=has_notes,
        search=search,
        page=page,
        page_size=page_size,
    )

    try:
        items, total = appointment_store.list_appointments(db, current_user.clinic_id, filters, now)
        return AppointmentListResponse(items=[to_appointment_response(item) for item in items], total=total)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def read_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    try:
        return to_appointment_response(appointment_store.get_appointment(db, appointment_id, current_user.clinic_id))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def change_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_staff),
):
    ensure_database_ready()

    try:
        appointment = appointment_store.update_appointment_status(
            db,
            appointment_id,
            current_user.clinic_id,
            data.status,
        )
        return to_appointment_response(appointment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/{appointment_id}/reminder', response_model=ReminderResponse)
def appointment_reminder(
    appointment_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    current_user: User = Depends(get_current_staff),
):
    try:
        appointment = appointment_store.get_appointment(db, appointment_id, current_user.clinic_id)
        clinic = clinic_profile.get_clinic(db, current_user.clinic_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if not can_offer_reminder(appointment.status, appointment.date, now):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='Reminders can only be sent within 2 hours before an active appointment.',
        )

    country_code = clinic.whatsapp_country_code or config.DEFAULT_WHATSAPP_COUNTRY_CODE
    phone = format_whatsapp_phone(appointment.patient.phone if appointment.patient else None, country_code)
    if not phone:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='The patient has no valid phone number.',
        )

    message = build_reminder_message(appointment.patient.name, appointment.date, clinic.name)
    return ReminderResponse(
        appointment_id=appointment.id,
        eligible=True,
        whatsapp_url=build_whatsapp_link(phone, message),
        message=message,
    )
