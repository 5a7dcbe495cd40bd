"""ECO (Engineering Change Order) ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, DateTime, JSON, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from ecm.database import Base
from ecm.models.common import utcnow


class EcoStatus(str, enum.Enum):
    backlog = "backlog"
    in_progress = "in_progress"
    review = "review"
    completed = "completed"
    on_hold = "on_hold"


class Eco(Base):
    __tablename__ = "ecos"
    __table_args__ = (UniqueConstraint("org_id", "eco_number", name="uq_ecos_org_number"),)

    eco_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    org_id = Column(String(36), ForeignKey("organizations.org_id"), nullable=False, index=True)
    eco_number = Column(String(20), nullable=False)
    # Weak parent/child link, not ownership: no cascade either way
    parent_eco_id = Column(String(36), ForeignKey("ecos.eco_id"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    technical_details = Column(Text, nullable=True)
    lead_engineer_id = Column(String(36), nullable=False)
    assigned_engineers = Column(JSON, nullable=False, default=list)
    status = Column(SAEnum(EcoStatus), nullable=False, default=EcoStatus.backlog)
    linked_ecr_ids = Column(JSON, nullable=False, default=list)
    estimated_hours = Column(Integer, nullable=True)
    actual_hours = Column(Integer, nullable=True)
    implementation_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    ecns = relationship("Ecn", back_populates="eco")
