"""Pydantic schemas for Approvals."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ecm.models.approval import ApprovalStatus
from ecm.models.common import EntityType


class ApprovalCreate(BaseModel):
    entity_type: EntityType
    entity_id: str
    approver_id: str
    approval_level: int = Field(1, ge=1)


class ApprovalResolve(BaseModel):
    status: ApprovalStatus  # approved, rejected or conditional
    comments: Optional[str] = None
    conditions: Optional[str] = None


class ApprovalOut(BaseModel):
    approval_id: str
    org_id: str
    entity_type: EntityType
    entity_id: str
    approver_id: str
    approval_level: int
    status: ApprovalStatus
    comments: Optional[str] = None
    conditions: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SubjectApprovalsOut(BaseModel):
    entity_type: EntityType
    entity_id: str
    satisfied: bool
    approvals: list[ApprovalOut]
