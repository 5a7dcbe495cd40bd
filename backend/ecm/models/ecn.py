"""ECN (Engineering Change Notice) ORM model. An ECN cannot exist without its ECO."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, JSON, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from ecm.database import Base
from ecm.models.common import utcnow


class NotificationType(str, enum.Enum):
    review_required = "review_required"
    notification_only = "notification_only"


class EcnApprovalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ImplementationStatus(str, enum.Enum):
    waiting = "waiting"
    in_progress = "in_progress"
    completed = "completed"


class Ecn(Base):
    __tablename__ = "ecns"
    __table_args__ = (UniqueConstraint("org_id", "ecn_number", name="uq_ecns_org_number"),)

    ecn_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    org_id = Column(String(36), ForeignKey("organizations.org_id"), nullable=False, index=True)
    ecn_number = Column(String(20), nullable=False)
    eco_id = Column(String(36), ForeignKey("ecos.eco_id"), nullable=False)
    title = Column(String(255), nullable=False)
    implementation_instructions = Column(Text, nullable=True)
    notification_type = Column(SAEnum(NotificationType), nullable=False, default=NotificationType.notification_only)
    affected_departments = Column(JSON, nullable=False, default=list)
    approval_status = Column(SAEnum(EcnApprovalStatus), nullable=False, default=EcnApprovalStatus.pending)
    implementation_status = Column(SAEnum(ImplementationStatus), nullable=False, default=ImplementationStatus.waiting)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    approval_resolved_at = Column(DateTime(timezone=True), nullable=True)
    implemented_at = Column(DateTime(timezone=True), nullable=True)

    eco = relationship("Eco", back_populates="ecns")

    @property
    def requires_approval(self) -> bool:
        return self.notification_type == NotificationType.review_required
