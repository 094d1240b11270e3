from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # FastAPI runs sync routes in a threadpool.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(
    config.DATABASE_URL,
    echo=config.DATABASE_ECHO,
    **_engine_options(config.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_indexes_checked = False


BOOKING_INDEXES = {
    'appointments': [
        'CREATE INDEX IF NOT EXISTS idx_appointments_staff_start ON appointments(staff_id, start_time)',
        'CREATE INDEX IF NOT EXISTS idx_appointments_business_status ON appointments(business_id, status)',
    ],
    'schedule_blocks': [
        'CREATE INDEX IF NOT EXISTS idx_schedule_blocks_time_range ON schedule_blocks(start_time, end_time)',
        'CREATE INDEX IF NOT EXISTS idx_schedule_blocks_series ON schedule_blocks(series_id)',
    ],
    'staff_schedules': [
        'CREATE INDEX IF NOT EXISTS idx_staff_schedules_lookup ON staff_schedules(staff_id, business_id, day_of_week)',
    ],
}


def ensure_booking_indexes(bind=None) -> None:
    global _booking_indexes_checked

    if _booking_indexes_checked:
        return

    with _schema_lock:
        if _booking_indexes_checked:
            return

        bind = bind or engine
        existing_tables = set(inspect(bind).get_table_names())

        with bind.begin() as connection:
            for table_name, statements in BOOKING_INDEXES.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _booking_indexes_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    return SessionLocal
