from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from salon_api.core import config


engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_working_schedule_schema_checked = False
_appointment_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _apply_missing_columns(table_name: str, migration_steps: list[tuple[str, str]], indexes: list[str]) -> None:
    inspector = inspect(engine)

    if table_name not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns(table_name)}

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                connection.execute(text(statement))
        for statement in indexes:
            connection.execute(text(statement))


def ensure_working_schedule_schema() -> None:
    global _working_schedule_schema_checked

    if _working_schedule_schema_checked:
        return

    with _schema_lock:
        if _working_schedule_schema_checked:
            return

        _apply_missing_columns(
            'working_schedule',
            [
                (
                    'time_slot_interval_minutes',
                    'ALTER TABLE working_schedule ADD COLUMN time_slot_interval_minutes INTEGER DEFAULT 30',
                ),
            ],
            [
                'CREATE INDEX IF NOT EXISTS idx_working_schedule_practitioner_day '
                'ON working_schedule(practitioner_id, day_of_week, start_time)',
            ],
        )

        _working_schedule_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        _apply_missing_columns(
            'appointments',
            [
                ('service_ids', 'ALTER TABLE appointments ADD COLUMN service_ids JSON'),
                ('is_external_client', 'ALTER TABLE appointments ADD COLUMN is_external_client BOOLEAN DEFAULT FALSE'),
                ('client_first_name', 'ALTER TABLE appointments ADD COLUMN client_first_name VARCHAR'),
                ('client_last_name', 'ALTER TABLE appointments ADD COLUMN client_last_name VARCHAR'),
                ('client_email', 'ALTER TABLE appointments ADD COLUMN client_email VARCHAR'),
                ('client_phone', 'ALTER TABLE appointments ADD COLUMN client_phone VARCHAR'),
            ],
            [
                'CREATE INDEX IF NOT EXISTS idx_appointments_practitioner_date '
                'ON appointments(practitioner_id, appointment_date)',
                'CREATE INDEX IF NOT EXISTS idx_appointments_time_range ON appointments(start_time, end_time)',
            ],
        )

        _appointment_schema_checked = True
