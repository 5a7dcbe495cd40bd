"""ECR (Engineering Change Request) ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, DateTime, JSON, ForeignKey, UniqueConstraint, Enum as SAEnum
from ecm.database import Base
from ecm.models.common import utcnow


class EcrPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class EcrStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"
    more_info_needed = "more_info_needed"
    crb_review = "crb_review"


class ApprovalType(str, enum.Enum):
    manager_only = "manager_only"
    change_review_board = "change_review_board"


class Ecr(Base):
    __tablename__ = "ecrs"
    __table_args__ = (UniqueConstraint("org_id", "ecr_number", name="uq_ecrs_org_number"),)

    ecr_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    org_id = Column(String(36), ForeignKey("organizations.org_id"), nullable=False, index=True)
    ecr_number = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    business_justification = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    requestor_id = Column(String(36), nullable=False)
    priority = Column(SAEnum(EcrPriority), nullable=False, default=EcrPriority.medium)
    status = Column(SAEnum(EcrStatus), nullable=False, default=EcrStatus.draft)
    approval_type = Column(SAEnum(ApprovalType), nullable=False, default=ApprovalType.manager_only)
    estimated_cost = Column(Integer, nullable=True)
    estimated_hours = Column(Integer, nullable=True)
    affected_products = Column(JSON, nullable=False, default=list)
    affected_departments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
