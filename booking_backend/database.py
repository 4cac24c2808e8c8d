from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from booking_backend.core import config


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_settings_schema_checked = False


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
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
            ('cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR'),
            ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_business_range '
                    'ON appointments(business_id, start_time, end_time)'
                )
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot '
                    "ON appointments(business_id, start_time) WHERE status != 'cancelled'"
                )
            )

        _appointment_schema_checked = True


def ensure_settings_schema() -> None:
    global _settings_schema_checked

    if _settings_schema_checked:
        return

    with _schema_lock:
        if _settings_schema_checked:
            return

        inspector = inspect(engine)

        if 'site_settings' not in inspector.get_table_names():
            _settings_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('site_settings')}
        if 'auto_approve_bookings' not in existing_columns:
            with engine.begin() as connection:
                connection.execute(
                    text('ALTER TABLE site_settings ADD COLUMN auto_approve_bookings BOOLEAN DEFAULT FALSE')
                )

        _settings_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
