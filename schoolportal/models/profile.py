"""Profile model definitions."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from schoolportal.database import Base
from schoolportal.models.user import _utcnow


class Profile(Base):
    """Personal details captured at registration, one per user."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    identity_number = Column(String(13), nullable=False)
    age = Column(Integer, nullable=False)
    physical_address = Column(String, nullable=False)
    next_of_kin_contact = Column(String)
    backup_email = Column(String)
    identity_document_url = Column(String)
    proof_of_address_url = Column(String)
    avatar_url = Column(String)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
