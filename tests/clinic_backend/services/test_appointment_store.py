from datetime import date, datetime

import pytest

from clinic_backend.models.appointment import Appointment
from clinic_backend.models.patient import Patient
from clinic_backend.scheduling.errors import AppointmentNotFoundError, InvalidTransitionError, SlotTakenError
from clinic_backend.scheduling.lifecycle import AppointmentSource, AppointmentStatus
from clinic_backend.services import appointment_store
from clinic_backend.services.appointment_store import AppointmentFilter

NOW = datetime(2026, 10, 19, 10, 0)
SLOT = datetime(2026, 10, 20, 9, 30)


def _create(db, clinic, patient, start=SLOT, status=AppointmentStatus.CONFIRMED, source=AppointmentSource.CLINIC):
    return appointment_store.create_appointment(
        db,
        clinic_id=clinic.id,
        patient_id=patient.id,
        start=start,
        status=status,
        source=source,
    )


def test_create_appointment_persists_status_and_source(db, clinic, patient) -> None:
    appointment = _create(db, clinic, patient, status=AppointmentStatus.PENDING, source=AppointmentSource.BOOKING)

    assert appointment.id is not None
    assert appointment.status == 'pending'
    assert appointment.source == 'booking'
    assert appointment.date == SLOT


def test_create_appointment_rejects_taken_slot(db, clinic, patient) -> None:
    _create(db, clinic, patient)

    with pytest.raises(SlotTakenError):
        _create(db, clinic, patient)


def test_unique_index_settles_a_lost_race(db, clinic, patient, monkeypatch: pytest.MonkeyPatch) -> None:
    _create(db, clinic, patient)
    # Both writers passed the pre-check before either committed.
    monkeypatch.setattr(appointment_store, '_active_at', lambda *args: None)

    with pytest.raises(SlotTakenError):
        _create(db, clinic, patient)

    assert db.query(Appointment).count() == 1


def test_cancelled_appointment_frees_its_slot(db, clinic, patient) -> None:
    first = _create(db, clinic, patient)
    appointment_store.update_appointment_status(db, first.id, clinic.id, 'cancelled')

    second = _create(db, clinic, patient)

    assert second.id != first.id
    assert appointment_store.taken_slot_minutes(db, clinic.id, SLOT.date()) == {9 * 60 + 30}


def test_same_time_in_another_clinic_is_not_taken(db, clinic, other_clinic, patient) -> None:
    _create(db, clinic, patient)
    other_patient = appointment_store.find_or_create_patient(db, other_clinic.id, 'Omar', '01199999999')
    db.commit()

    appointment = _create(db, other_clinic, other_patient)

    assert appointment.clinic_id == other_clinic.id


def test_status_moves_along_the_lifecycle(db, clinic, patient) -> None:
    appointment = _create(db, clinic, patient, status=AppointmentStatus.PENDING)

    appointment = appointment_store.update_appointment_status(db, appointment.id, clinic.id, 'confirmed')
    assert appointment.status == 'confirmed'

    appointment = appointment_store.update_appointment_status(db, appointment.id, clinic.id, 'completed')
    assert appointment.status == 'completed'


def test_illegal_status_write_is_rejected_and_not_stored(db, clinic, patient) -> None:
    appointment = _create(db, clinic, patient)
    appointment_store.update_appointment_status(db, appointment.id, clinic.id, 'completed')

    with pytest.raises(InvalidTransitionError):
        appointment_store.update_appointment_status(db, appointment.id, clinic.id, 'pending')

    db.expire_all()
    assert db.query(Appointment).filter(Appointment.id == appointment.id).one().status == 'completed'


def test_repeating_the_current_status_is_tolerated(db, clinic, patient) -> None:
    appointment = _create(db, clinic, patient)

    appointment = appointment_store.update_appointment_status(db, appointment.id, clinic.id, 'confirmed')

    assert appointment.status == 'confirmed'


def test_status_update_is_scoped_to_the_clinic(db, clinic, other_clinic, patient) -> None:
    appointment = _create(db, clinic, patient)

    with pytest.raises(AppointmentNotFoundError):
        appointment_store.update_appointment_status(db, appointment.id, other_clinic.id, 'cancelled')


def test_find_or_create_patient_matches_by_phone(db, clinic, patient) -> None:
    found = appointment_store.find_or_create_patient(db, clinic.id, 'Mona A.', patient.phone)
    created = appointment_store.find_or_create_patient(db, clinic.id, 'Karim', '01055555555')

    assert found.id == patient.id
    assert created.id != patient.id
    assert db.query(Patient).filter(Patient.clinic_id == clinic.id).count() == 2


def test_patient_belongs_to_clinic(db, clinic, other_clinic, patient) -> None:
    assert appointment_store.patient_belongs_to_clinic(db, patient.id, clinic.id)
    assert not appointment_store.patient_belongs_to_clinic(db, patient.id, other_clinic.id)


@pytest.fixture
def listed(db, clinic, patient):
    karim = Patient(clinic_id=clinic.id, name='Karim Saleh', phone='01222222222')
    db.add(karim)
    db.flush()
    rows = [
        Appointment(clinic_id=clinic.id, patient_id=patient.id, date=datetime(2026, 10, 12, 9, 0), status='completed',
                    source='clinic', created_at=datetime(2026, 10, 1, 8, 0)),
        Appointment(clinic_id=clinic.id, patient_id=karim.id, date=datetime(2026, 10, 20, 9, 0), status='confirmed',
                    source='booking', notes='First visit', created_at=datetime(2026, 10, 2, 8, 0)),
        Appointment(clinic_id=clinic.id, patient_id=patient.id, date=datetime(2026, 10, 21, 9, 0), status='pending',
                    source='booking', created_at=datetime(2026, 10, 3, 8, 0)),
        Appointment(clinic_id=clinic.id, patient_id=karim.id, date=datetime(2026, 10, 22, 9, 0), status='pending',
                    source='booking', created_at=datetime(2026, 10, 1, 9, 0)),
        Appointment(clinic_id=clinic.id, patient_id=patient.id, date=datetime(2026, 10, 20, 11, 0), status='cancelled',
                    source='clinic', notes='', created_at=datetime(2026, 10, 4, 8, 0)),
    ]
    db.add_all(rows)
    db.commit()
    return rows


def test_list_appointments_defaults_to_newest_first(db, clinic, listed) -> None:
    items, total = appointment_store.list_appointments(db, clinic.id, AppointmentFilter(), NOW)

    assert total == 5
    assert [item.date for item in items] == sorted((row.date for row in listed), reverse=True)


def test_list_upcoming_excludes_past_appointments(db, clinic, listed) -> None:
    items, total = appointment_store.list_appointments(db, clinic.id, AppointmentFilter(time='upcoming'), NOW)

    assert total == 4
    assert datetime(2026, 10, 12, 9, 0) not in [item.date for item in items]


def test_list_online_bookings_puts_pending_first(db, clinic, listed) -> None:
    items, total = appointment_store.list_appointments(db, clinic.id, AppointmentFilter(source='booking'), NOW)

    assert total == 3
    assert [(item.status, item.date.day) for item in items] == [('pending', 21), ('pending', 22), ('confirmed', 20)]


@pytest.mark.parametrize(
    ('filters', 'expected_total'),
    [
        (AppointmentFilter(status='pending'), 2),
        (AppointmentFilter(status='all'), 5),
        (AppointmentFilter(on_date=date(2026, 10, 20)), 2),
        (AppointmentFilter(date_from=date(2026, 10, 20), date_to=date(2026, 10, 21)), 3),
        (AppointmentFilter(has_notes=True), 1),
        (AppointmentFilter(search='karim'), 2),
        (AppointmentFilter(search='0101234'), 3),
    ],
)
def test_list_appointments_filters(db, clinic, listed, filters: AppointmentFilter, expected_total: int) -> None:
    _, total = appointment_store.list_appointments(db, clinic.id, filters, NOW)

    assert total == expected_total


def test_list_appointments_paginates(db, clinic, listed) -> None:
    items, total = appointment_store.list_appointments(db, clinic.id, AppointmentFilter(page=2, page_size=2), NOW)

    assert total == 5
    assert len(items) == 2


def test_taken_slot_minutes_ignores_cancelled(db, clinic, listed) -> None:
    assert appointment_store.taken_slot_minutes(db, clinic.id, date(2026, 10, 20)) == {540}
