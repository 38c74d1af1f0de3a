import os
import sqlite3
from threading import Lock

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slot_booking.db")

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_schema_checked = False


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE clauses unless foreign keys are switched on per connection.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def ensure_scheduling_schema(bind: Engine | None = None) -> None:
    global _scheduling_schema_checked

    if _scheduling_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _scheduling_schema_checked:
            return

        inspector = inspect(bind)
        table_names = inspector.get_table_names()

        with bind.begin() as connection:
            if 'appointments' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
                migration_steps = [
                    ('consultation_fee', 'ALTER TABLE appointments ADD COLUMN consultation_fee NUMERIC(10, 2)'),
                    ('is_paid', 'ALTER TABLE appointments ADD COLUMN is_paid BOOLEAN NOT NULL DEFAULT FALSE'),
                    ('payment_reference', 'ALTER TABLE appointments ADD COLUMN payment_reference VARCHAR(255)'),
                    ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_status_date ON appointments(status, appointment_date)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_user_date ON appointments(user_id, appointment_date)')
                )

            if 'time_slots' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_time_slots_day_start ON time_slots(calendar_day_id, start_time)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_time_slots_day_status ON time_slots(calendar_day_id, status)')
                )

        _scheduling_schema_checked = True
