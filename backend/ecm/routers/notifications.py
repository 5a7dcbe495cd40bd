"""Notification API routes: the caller's own notifications only."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_identity
from ecm.database import get_db
from ecm.schemas.comment import NotificationOut
from ecm.services import notification_service

router = APIRouter()


@router.get("/", response_model=list[NotificationOut])
def list_notifications(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return notification_service.list_notifications(db, identity.user_id, identity.org_id)


@router.put("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return notification_service.mark_read(db, notification_id, identity.user_id, identity.org_id)
