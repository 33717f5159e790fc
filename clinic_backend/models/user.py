"""User model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from clinic_backend.database import Base


class User(Base):
    """Clinic staff account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    role = Column(String)  # doctor/assistant
    clinic_id = Column(Integer, ForeignKey("clinics.id"))
