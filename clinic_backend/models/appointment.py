"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import relationship

from clinic_backend.database import Base
from clinic_backend.models.patient import Patient
from clinic_backend.scheduling.lifecycle import AppointmentSource, AppointmentStatus


class Appointment(Base):
    """A booked visit. ``date`` is fixed at creation; only ``status`` moves."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    date = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    source = Column(String, nullable=False, default=AppointmentSource.CLINIC.value)
    price = Column(Numeric(10, 2))
    notes = Column(String)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    patient = relationship(Patient)

    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "clinic_id",
            "date",
            unique=True,
            sqlite_where=text("status <> 'cancelled'"),
            postgresql_where=text("status <> 'cancelled'"),
        ),
        Index("idx_appointments_clinic_status", "clinic_id", "status"),
    )
