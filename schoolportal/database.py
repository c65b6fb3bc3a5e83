import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./schoolportal.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_registration_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_registration_schema() -> None:
    """Backfill columns added after the registration tables first shipped."""
    global _registration_schema_checked

    if _registration_schema_checked:
        return

    with _schema_lock:
        if _registration_schema_checked:
            return

        inspector = inspect(engine)
        table_names = set(inspector.get_table_names())
        migration_steps = [
            ('learner_registrations', 'student_number', 'ALTER TABLE learner_registrations ADD COLUMN student_number VARCHAR'),
            ('staff_registrations', 'staff_number', 'ALTER TABLE staff_registrations ADD COLUMN staff_number VARCHAR'),
            ('users', 'email_confirmed', 'ALTER TABLE users ADD COLUMN email_confirmed BOOLEAN DEFAULT TRUE'),
        ]

        with engine.begin() as connection:
            for table_name, column_name, statement in migration_steps:
                if table_name not in table_names:
                    continue
                existing_columns = {column['name'] for column in inspector.get_columns(table_name)}
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            if 'user_roles' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_user_roles_status_created ON user_roles(application_status, created_at)')
                )

        _registration_schema_checked = True
