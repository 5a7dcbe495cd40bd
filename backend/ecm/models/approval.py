"""Approval ORM model: one sign-off task on a polymorphic subject."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Index, Enum as SAEnum, text
from ecm.database import Base
from ecm.models.common import EntityType, utcnow


class ApprovalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    conditional = "conditional"


class Approval(Base):
    __tablename__ = "approvals"
    __table_args__ = (
        Index("ix_approvals_subject", "entity_type", "entity_id"),
        Index("ix_approvals_approver_status", "approver_id", "status"),
        # At most one open task per approver and level on a subject
        Index(
            "uq_approvals_pending_per_level",
            "entity_type", "entity_id", "approver_id", "approval_level",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    approval_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Copied from the subject so org-scoped queries never join three tables
    org_id = Column(String(36), ForeignKey("organizations.org_id"), nullable=False, index=True)
    entity_type = Column(SAEnum(EntityType), nullable=False)
    entity_id = Column(String(36), nullable=False)
    approver_id = Column(String(36), nullable=False)
    approval_level = Column(Integer, nullable=False, default=1)
    status = Column(SAEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending)
    comments = Column(Text, nullable=True)
    conditions = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
