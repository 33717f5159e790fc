"""Clinic model definitions."""

from sqlalchemy import Column, Integer, JSON, String
from clinic_backend.database import Base


class Clinic(Base):
    """Clinic profile. ``working_hours`` maps weekday names to day rules."""
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    working_hours = Column(JSON)
    whatsapp_country_code = Column(String)
