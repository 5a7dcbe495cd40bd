"""ActivityLog ORM model: append-only ledger of creations and status changes."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Enum as SAEnum
from ecm.database import Base
from ecm.models.common import EntityType, utcnow


class ActivityAction(str, enum.Enum):
    created = "created"
    status_changed = "status_changed"


class ActivityLog(Base):
    __tablename__ = "activity_log"
    __table_args__ = (Index("ix_activity_log_org_created", "org_id", "created_at"),)

    activity_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    org_id = Column(String(36), ForeignKey("organizations.org_id"), nullable=False)
    actor_id = Column(String(36), nullable=False)
    entity_type = Column(SAEnum(EntityType), nullable=False)
    entity_id = Column(String(36), nullable=False)
    entity_number = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    action = Column(SAEnum(ActivityAction), nullable=False)
    from_status = Column(String(30), nullable=True)
    to_status = Column(String(30), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
