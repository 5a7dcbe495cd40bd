"""Pydantic schemas for the dashboard read path."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ecm.models.activity_log import ActivityAction
from ecm.models.common import EntityType


class DashboardMetrics(BaseModel):
    """Serialized with the camelCase keys the dashboard client reads."""

    active_ecrs: int = Field(alias="activeECRs")
    in_progress_ecos: int = Field(alias="inProgressECOs")
    pending_approvals: int = Field(alias="pendingApprovals")
    completed_this_month: int = Field(alias="completedThisMonth")

    model_config = {"populate_by_name": True}


class ActivityOut(BaseModel):
    activity_id: str
    entity_type: EntityType
    entity_id: str
    entity_number: str
    title: str
    action: ActivityAction
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    actor_id: str
    created_at: datetime

    model_config = {"from_attributes": True}
