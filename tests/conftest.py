import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment  # noqa: E402
from clinic_backend.models.clinic import Clinic  # noqa: E402
from clinic_backend.models.patient import Patient  # noqa: E402
from clinic_backend.models.user import User  # noqa: E402

CLINIC_HOURS = {
    'saturday': {'off': True},
    'sunday': {'off': False, 'start': '09:00', 'end': '17:00'},
    'monday': {'off': False, 'start': '09:00', 'end': '13:00'},
    'tuesday': {'off': False, 'start': '09:00', 'end': '17:00'},
    'wednesday': {'off': False, 'start': '09:00', 'end': '17:00'},
    'thursday': {'off': False, 'start': '', 'end': ''},
    'friday': {'off': True},
}

# Monday, 19 October 2026.
NOW = datetime(2026, 10, 19, 10, 0)


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    tables = [Clinic.__table__, User.__table__, Patient.__table__, Appointment.__table__]
    Base.metadata.create_all(bind=engine, tables=tables)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(tables)))


@pytest.fixture
def clinic(db) -> Clinic:
    clinic = Clinic(name='Nile Dental', working_hours=CLINIC_HOURS, whatsapp_country_code='20')
    db.add(clinic)
    db.commit()
    db.refresh(clinic)
    return clinic


@pytest.fixture
def other_clinic(db) -> Clinic:
    clinic = Clinic(name='Delta Clinic', working_hours=CLINIC_HOURS)
    db.add(clinic)
    db.commit()
    db.refresh(clinic)
    return clinic


@pytest.fixture
def patient(db, clinic) -> Patient:
    patient = Patient(clinic_id=clinic.id, name='Mona Adel', phone='01012345678')
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


@pytest.fixture
def staff_user(db, clinic) -> User:
    user = User(email='doctor@nile.example', role='doctor', clinic_id=clinic.id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
