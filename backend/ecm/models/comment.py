"""Comment ORM model."""
import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Enum as SAEnum
from ecm.database import Base
from ecm.models.common import EntityType, utcnow


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (Index("ix_comments_subject", "entity_type", "entity_id"),)

    comment_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    org_id = Column(String(36), ForeignKey("organizations.org_id"), nullable=False)
    entity_type = Column(SAEnum(EntityType), nullable=False)
    entity_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)
    comment_text = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
