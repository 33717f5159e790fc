import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False

# One live appointment per clinic and start time. Cancelled rows free the slot.
ACTIVE_SLOT_INDEX_SQL = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot "
    "ON appointments(clinic_id, date) WHERE status <> 'cancelled'"
)


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('source', "ALTER TABLE appointments ADD COLUMN source VARCHAR DEFAULT 'clinic'"),
            ('price', 'ALTER TABLE appointments ADD COLUMN price NUMERIC(10, 2)'),
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
            ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(text(ACTIVE_SLOT_INDEX_SQL))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_clinic_status ON appointments(clinic_id, status)')
            )

        _appointment_schema_checked = True
