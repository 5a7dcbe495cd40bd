"""Pydantic schemas for ECRs."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ecm.models.ecr import ApprovalType, EcrPriority, EcrStatus


class EcrCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    business_justification: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    priority: EcrPriority = EcrPriority.medium
    approval_type: ApprovalType = ApprovalType.manager_only
    estimated_cost: Optional[int] = Field(None, ge=0)
    estimated_hours: Optional[int] = Field(None, ge=0)
    affected_products: list[str] = []
    affected_departments: list[str] = []


class EcrUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    business_justification: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    priority: Optional[EcrPriority] = None
    approval_type: Optional[ApprovalType] = None
    estimated_cost: Optional[int] = Field(None, ge=0)
    estimated_hours: Optional[int] = Field(None, ge=0)
    affected_products: Optional[list[str]] = None
    affected_departments: Optional[list[str]] = None


class EcrTransition(BaseModel):
    status: EcrStatus


class EcrOut(BaseModel):
    ecr_id: str
    org_id: str
    ecr_number: str
    title: str
    description: Optional[str] = None
    business_justification: Optional[str] = None
    category: Optional[str] = None
    requestor_id: str
    priority: EcrPriority
    status: EcrStatus
    approval_type: ApprovalType
    estimated_cost: Optional[int] = None
    estimated_hours: Optional[int] = None
    affected_products: list[str] = []
    affected_departments: list[str] = []
    created_at: datetime
    submitted_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
