"""Create the tables and seed one class per grade and section.

Usage:
    python -m schoolportal.init_db [academic_year]
"""
import logging
import sys
from datetime import date

from sqlalchemy.orm import Session

from schoolportal.app_logger import setup_logging
from schoolportal.core import config
from schoolportal.core.choices import ClassSection, GradeLevel
from schoolportal.database import Base, SessionLocal, engine, ensure_registration_schema
from schoolportal.models import message, profile, registration, user, user_role  # noqa: F401
from schoolportal.models.school_class import SchoolClass

logger = logging.getLogger("schoolportal.init_db")


def seed_classes(db: Session, academic_year: int) -> int:
    """Insert missing classes for ``academic_year``; returns how many were added."""
    existing = {
        (row.grade, row.section)
        for row in db.query(SchoolClass).filter(SchoolClass.academic_year == academic_year)
    }
    added = 0
    for grade in GradeLevel:
        for section in ClassSection:
            if (grade.value, section.value) in existing:
                continue
            db.add(SchoolClass(
                grade=grade.value,
                section=section.value,
                academic_year=academic_year,
                max_capacity=config.DEFAULT_CLASS_CAPACITY,
                current_count=0,
            ))
            added += 1
    db.commit()
    return added


def main() -> None:
    setup_logging()
    academic_year = int(sys.argv[1]) if len(sys.argv) > 1 else date.today().year

    Base.metadata.create_all(bind=engine)
    ensure_registration_schema()

    db = SessionLocal()
    try:
        added = seed_classes(db, academic_year)
    finally:
        db.close()
    logger.info("Seeded %d classes for %d", added, academic_year)


if __name__ == "__main__":
    main()
