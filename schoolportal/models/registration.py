"""Role-specific registration records."""

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from schoolportal.database import Base
from schoolportal.models.user import _utcnow


class LearnerRegistration(Base):
    """Admission details submitted by a learner applicant."""
    __tablename__ = "learner_registrations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, index=True, nullable=False)
    applying_for_grade = Column(String(1), nullable=False)
    previous_grade = Column(String(1))
    parent_guardian_name = Column(String, nullable=False)
    parent_guardian_phone = Column(String, nullable=False)
    parent_guardian_email = Column(String)
    parent_guardian_id_url = Column(String, nullable=False)
    previous_report_url = Column(String, nullable=False)
    banking_details_url = Column(String, nullable=False)
    student_number = Column(String)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class StaffRegistration(Base):
    """Employment details submitted by a staff applicant."""
    __tablename__ = "staff_registrations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, index=True, nullable=False)
    grades_teaching = Column(JSON, default=list)
    subjects_teaching = Column(JSON, default=list)
    qualification_document_url = Column(String, nullable=False)
    staff_number = Column(String)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
