"""Organization ORM model: the tenant boundary every record is scoped by."""
import uuid
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from ecm.database import Base


class Organization(Base):
    __tablename__ = "organizations"

    org_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    subdomain = Column(String(100), nullable=False, unique=True)
    # crb_member_ids: list[str], timezone: IANA name
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
