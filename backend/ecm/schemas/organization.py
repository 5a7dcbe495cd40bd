"""Pydantic schemas for Organizations."""
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    subdomain: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    settings: dict[str, Any] = {}


class OrganizationSettingsUpdate(BaseModel):
    crb_member_ids: Optional[list[str]] = None
    timezone: Optional[str] = None  # IANA tz


class OrganizationOut(BaseModel):
    org_id: str
    name: str
    subdomain: str
    settings: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}
