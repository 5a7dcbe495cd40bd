"""Notification sink.

Notifications are best effort: they are written after the triggering
operation has committed, and a failure to write one is logged and dropped so
it can never undo or fail the workflow change that caused it.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecm.errors import NotFound, PermissionDenied
from ecm.models.common import EntityType, utcnow
from ecm.models.notification import Notification

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS = 50


def _persist(db: Session, notification: Notification) -> None:
    db.add(notification)
    db.commit()


def notify(
    db: Session,
    org_id: str,
    user_id: Optional[str],
    type: str,
    title: str,
    message: Optional[str] = None,
    entity_type: Optional[EntityType] = None,
    entity_id: Optional[str] = None,
) -> Optional[Notification]:
    """Record a notification for user_id; returns None when there is no recipient or the write failed."""
    if not user_id:
        return None
    notification = Notification(
        org_id=org_id,
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        entity_type=entity_type,
        entity_id=entity_id,
    )
    try:
        _persist(db, notification)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Dropped '%s' notification for user %s: %s", type, user_id, exc)
        return None
    logger.info("Notified user %s: %s", user_id, title)
    return notification


def list_notifications(db: Session, user_id: str, org_id: str) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.org_id == org_id)
        .order_by(Notification.created_at.desc(), Notification.notification_id)
        .limit(MAX_NOTIFICATIONS)
        .all()
    )


def mark_read(db: Session, notification_id: str, user_id: str, org_id: str) -> Notification:
    """Only the recipient may change read state; read_at keeps the first read."""
    notification = (
        db.query(Notification)
        .filter(Notification.notification_id == notification_id, Notification.org_id == org_id)
        .first()
    )
    if not notification:
        raise NotFound("Notification", notification_id)
    if notification.user_id != user_id:
        raise PermissionDenied("Only the recipient may mark a notification as read")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification
