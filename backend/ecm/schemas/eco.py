"""Pydantic schemas for ECOs."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ecm.models.eco import EcoStatus


class EcoCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    technical_details: Optional[str] = None
    parent_eco_id: Optional[str] = None
    lead_engineer_id: Optional[str] = None  # defaults to the creating user
    assigned_engineers: list[str] = []
    linked_ecr_ids: list[str] = []
    estimated_hours: Optional[int] = Field(None, ge=0)
    implementation_notes: Optional[str] = None


class EcoUpdate(BaseModel):
    """Status and links are not editable here; use the transition routes."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    technical_details: Optional[str] = None
    assigned_engineers: Optional[list[str]] = None
    estimated_hours: Optional[int] = Field(None, ge=0)
    actual_hours: Optional[int] = Field(None, ge=0)
    implementation_notes: Optional[str] = None


class EcoTransition(BaseModel):
    status: EcoStatus


class EcoOut(BaseModel):
    eco_id: str
    org_id: str
    eco_number: str
    parent_eco_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    technical_details: Optional[str] = None
    lead_engineer_id: str
    assigned_engineers: list[str] = []
    status: EcoStatus
    linked_ecr_ids: list[str] = []
    estimated_hours: Optional[int] = None
    actual_hours: Optional[int] = None
    implementation_notes: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
