import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import case, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_backend.models.appointment import Appointment
from clinic_backend.models.patient import Patient
from clinic_backend.scheduling.errors import AppointmentNotFoundError, InvalidTransitionError, SlotTakenError
from clinic_backend.scheduling.lifecycle import AppointmentSource, AppointmentStatus, transition

logger = logging.getLogger(__name__)

ALL = 'all'


@dataclass
class AppointmentFilter:
    time: str = ALL  # 'upcoming' or 'all'
    on_date: date | None = None
    date_from: date | None = None
    date_to: date | None = None
    status: str | None = None
    source: str | None = None
    has_notes: bool = False
    search: str | None = None
    page: int = 1
    page_size: int = 10


def _active_at(db: Session, clinic_id: int, start: datetime):
    return db.query(Appointment).filter(
        Appointment.clinic_id == clinic_id,
        Appointment.date == start,
        Appointment.status != AppointmentStatus.CANCELLED.value,
    ).first()


def create_appointment(
    db: Session,
    clinic_id: int,
    patient_id: int,
    start: datetime,
    status: AppointmentStatus,
    source: AppointmentSource,
    price: Decimal | None = None,
    notes: str | None = None,
) -> Appointment:
    """Insert the appointment or raise ``SlotTakenError``.

    The pre-check gives a clean error in the common case. The partial unique
    index on (clinic_id, date) settles the race when two writers pass it at
    the same time.
    """
    start = start.replace(second=0, microsecond=0)

    if _active_at(db, clinic_id, start):
        raise SlotTakenError()

    appointment = Appointment(
        clinic_id=clinic_id,
        patient_id=patient_id,
        date=start,
        status=AppointmentStatus(status).value,
        source=AppointmentSource(source).value,
        price=price,
        notes=notes,
    )
    db.add(appointment)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Lost booking race for clinic %s at %s', clinic_id, start.isoformat())
        raise SlotTakenError() from exc

    db.refresh(appointment)
    logger.info('Created %s appointment %s (%s) for clinic %s', appointment.status, appointment.id, appointment.source, clinic_id)
    return appointment


def get_appointment(db: Session, appointment_id: int, clinic_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.clinic_id == clinic_id,
    ).first()
    if appointment is None:
        raise AppointmentNotFoundError()
    return appointment


def update_appointment_status(db: Session, appointment_id: int, clinic_id: int, new_status) -> Appointment:
    appointment = get_appointment(db, appointment_id, clinic_id)
    previous_status = appointment.status
    next_status = transition(previous_status, new_status)

    if next_status.value == previous_status:
        return appointment

    # Compare-and-set so a concurrent change is not silently overwritten.
    updated = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.status == previous_status,
    ).update(
        {Appointment.status: next_status.value, Appointment.updated_at: datetime.now()},
        synchronize_session=False,
    )
    if updated == 0:
        db.rollback()
        raise InvalidTransitionError('The appointment status was changed by someone else. Reload and try again.')

    db.commit()
    db.refresh(appointment)
    logger.info('Appointment %s status %s -> %s', appointment_id, previous_status, next_status.value)
    return appointment


def list_appointments(
    db: Session,
    clinic_id: int,
    filters: AppointmentFilter,
    now: datetime,
) -> tuple[list[Appointment], int]:
    query = db.query(Appointment).join(Patient, Appointment.patient_id == Patient.id).filter(
        Appointment.clinic_id == clinic_id,
    )

    if filters.time == 'upcoming':
        query = query.filter(Appointment.date >= now)

    if filters.date_from or filters.date_to:
        if filters.date_from:
            query = query.filter(Appointment.date >= datetime.combine(filters.date_from, time.min))
        if filters.date_to:
            query = query.filter(Appointment.date <= datetime.combine(filters.date_to, time.max))
    elif filters.on_date:
        day_start = datetime.combine(filters.on_date, time.min)
        query = query.filter(Appointment.date >= day_start, Appointment.date < day_start + timedelta(days=1))

    if filters.status and filters.status != ALL:
        query = query.filter(Appointment.status == filters.status)

    if filters.source and filters.source != ALL:
        query = query.filter(Appointment.source == filters.source)

    if filters.has_notes:
        query = query.filter(Appointment.notes.is_not(None), Appointment.notes != '')

    if filters.search and filters.search.strip():
        pattern = f'%{filters.search.strip()}%'
        query = query.filter(or_(Patient.name.ilike(pattern), Patient.phone.ilike(pattern)))

    total = query.count()

    if filters.time == 'upcoming':
        query = query.order_by(Appointment.status.desc(), Appointment.date.asc())
    elif filters.source == AppointmentSource.BOOKING.value:
        # Online bookings awaiting confirmation come first.
        pending_first = case((Appointment.status == AppointmentStatus.PENDING.value, 0), else_=1)
        query = query.order_by(pending_first, Appointment.created_at.desc())
    else:
        query = query.order_by(Appointment.date.desc())

    page = max(filters.page, 1)
    items = query.offset((page - 1) * filters.page_size).limit(filters.page_size).all()
    return items, total


def taken_slot_minutes(db: Session, clinic_id: int, day: date) -> set[int]:
    day_start = datetime.combine(day, time.min)
    rows = db.query(Appointment.date).filter(
        Appointment.clinic_id == clinic_id,
        Appointment.status != AppointmentStatus.CANCELLED.value,
        Appointment.date >= day_start,
        Appointment.date < day_start + timedelta(days=1),
    ).all()
    return {start.hour * 60 + start.minute for (start,) in rows}


def find_or_create_patient(db: Session, clinic_id: int, name: str, phone: str) -> Patient:
    patient = db.query(Patient).filter(
        Patient.clinic_id == clinic_id,
        Patient.phone == phone,
    ).first()
    if patient is not None:
        return patient

    patient = Patient(clinic_id=clinic_id, name=name, phone=phone)
    db.add(patient)
    db.flush()
    return patient


def patient_belongs_to_clinic(db: Session, patient_id: int, clinic_id: int) -> bool:
    return db.query(Patient.id).filter(Patient.id == patient_id, Patient.clinic_id == clinic_id).first() is not None
