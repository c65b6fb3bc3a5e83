"""Class model definitions."""

import uuid

from sqlalchemy import Column, DateTime, Integer, String
from schoolportal.database import Base
from schoolportal.models.user import _utcnow


class SchoolClass(Base):
    """A grade/section class with an enrolment cap."""
    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    grade = Column(String(1), nullable=False)
    section = Column(String(1), nullable=False)
    academic_year = Column(Integer, nullable=False)
    max_capacity = Column(Integer, default=40)
    current_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
