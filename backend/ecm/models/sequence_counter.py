"""SequenceCounter ORM model: one row per (organization, entity type, year) numbering key."""
from sqlalchemy import Column, String, Integer, ForeignKey, Enum as SAEnum
from ecm.database import Base
from ecm.models.common import EntityType


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    org_id = Column(String(36), ForeignKey("organizations.org_id"), primary_key=True)
    entity_type = Column(SAEnum(EntityType), primary_key=True)
    year = Column(Integer, primary_key=True)  # four-digit calendar year
    last_value = Column(Integer, nullable=False, default=0)
