"""Message model definitions."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from schoolportal.database import Base
from schoolportal.models.user import _utcnow


class Message(Base):
    """A direct message from one portal user to another."""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    recipient_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    subject = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String, nullable=False, default="message")  # see MessageType
    attachment_url = Column(String)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
