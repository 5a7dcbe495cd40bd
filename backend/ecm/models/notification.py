"""Notification ORM model."""
import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Enum as SAEnum
from ecm.database import Base
from ecm.models.common import EntityType, utcnow


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_recipient", "user_id", "org_id"),)

    notification_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    org_id = Column(String(36), ForeignKey("organizations.org_id"), nullable=False)
    user_id = Column(String(36), nullable=False)
    entity_type = Column(SAEnum(EntityType), nullable=True)
    entity_id = Column(String(36), nullable=True)
    type = Column(String(100), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    read_at = Column(DateTime(timezone=True), nullable=True)
