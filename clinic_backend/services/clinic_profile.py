from sqlalchemy.orm import Session

from clinic_backend.models.clinic import Clinic
from clinic_backend.scheduling.errors import ClinicNotFoundError
from clinic_backend.scheduling.working_hours import WorkingHours


def get_clinic(db: Session, clinic_id: int) -> Clinic:
    clinic = db.query(Clinic).filter(Clinic.id == clinic_id).first()
    if clinic is None:
        raise ClinicNotFoundError()
    return clinic


def get_working_hours(db: Session, clinic_id: int) -> WorkingHours | None:
    """None means the clinic never configured its hours."""
    clinic = get_clinic(db, clinic_id)
    if not clinic.working_hours:
        return None
    return WorkingHours.from_mapping(clinic.working_hours)


def update_working_hours(db: Session, clinic_id: int, hours: WorkingHours) -> WorkingHours:
    clinic = get_clinic(db, clinic_id)
    clinic.working_hours = hours.to_dict()
    db.commit()
    db.refresh(clinic)
    return WorkingHours.from_mapping(clinic.working_hours)
