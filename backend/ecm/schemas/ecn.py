"""Pydantic schemas for ECNs."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ecm.models.ecn import EcnApprovalStatus, ImplementationStatus, NotificationType


class EcnCreate(BaseModel):
    eco_id: str
    title: str = Field(min_length=1, max_length=255)
    implementation_instructions: Optional[str] = None
    notification_type: NotificationType = NotificationType.notification_only
    affected_departments: list[str] = []


class EcnImplementationUpdate(BaseModel):
    status: ImplementationStatus


class EcnApprovalDecision(BaseModel):
    decision: EcnApprovalStatus


class EcnOut(BaseModel):
    ecn_id: str
    org_id: str
    ecn_number: str
    eco_id: str
    title: str
    implementation_instructions: Optional[str] = None
    notification_type: NotificationType
    affected_departments: list[str] = []
    approval_status: EcnApprovalStatus
    implementation_status: ImplementationStatus
    created_at: datetime
    approval_resolved_at: Optional[datetime] = None
    implemented_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
