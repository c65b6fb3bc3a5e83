"""Role assignment model definitions."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String
from schoolportal.database import Base
from schoolportal.models.user import _utcnow


class RoleAssignment(Base):
    """A (user, role, application status) triple."""
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    role = Column(String, nullable=False)  # see AppRole
    application_status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), default=_utcnow)
