"""Pydantic schemas for Comments and Notifications."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ecm.models.common import EntityType


class CommentCreate(BaseModel):
    entity_type: EntityType
    entity_id: str
    comment_text: str = Field(min_length=1)
    is_internal: bool = False


class CommentOut(BaseModel):
    comment_id: str
    entity_type: EntityType
    entity_id: str
    user_id: str
    comment_text: str
    is_internal: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationOut(BaseModel):
    notification_id: str
    user_id: str
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    type: str
    title: str
    message: Optional[str] = None
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
