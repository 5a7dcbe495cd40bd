"""Dashboard aggregates, derived on demand from repository state.

Every metric is a COUNT scoped to one organization, including pending
approvals. The "this month" window is the calendar month in the
organization's timezone (UTC unless its settings name another), converted to
UTC bounds before querying.
"""
import logging
from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy import func
from sqlalchemy.orm import Session

from ecm.config import settings
from ecm.models.activity_log import ActivityLog
from ecm.models.approval import Approval, ApprovalStatus
from ecm.models.common import utcnow
from ecm.models.ecr import Ecr, EcrStatus
from ecm.models.eco import Eco, EcoStatus
from ecm.models.organization import Organization

logger = logging.getLogger(__name__)

MAX_ACTIVITY_LIMIT = 100


def organization_timezone(db: Session, org_id: str) -> str:
    org = db.query(Organization).filter(Organization.org_id == org_id).first()
    tz_name = (org.settings or {}).get("timezone") if org else None
    return tz_name or settings.DEFAULT_TIMEZONE


def month_bounds(tz_name: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """[first instant of the current month, first instant of the next month) in UTC."""
    tz = pytz.timezone(tz_name)
    now = now or utcnow()
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    local = now.astimezone(tz)
    start = tz.localize(datetime(local.year, local.month, 1))
    if local.month == 12:
        end = tz.localize(datetime(local.year + 1, 1, 1))
    else:
        end = tz.localize(datetime(local.year, local.month + 1, 1))
    return start.astimezone(pytz.utc), end.astimezone(pytz.utc)


def _count(query) -> int:
    return query.scalar() or 0


def get_metrics(db: Session, org_id: str, now: Optional[datetime] = None) -> dict[str, int]:
    start, end = month_bounds(organization_timezone(db, org_id), now)
    metrics = {
        "active_ecrs": _count(
            db.query(func.count(Ecr.ecr_id)).filter(Ecr.org_id == org_id, Ecr.status == EcrStatus.submitted)
        ),
        "in_progress_ecos": _count(
            db.query(func.count(Eco.eco_id)).filter(Eco.org_id == org_id, Eco.status == EcoStatus.in_progress)
        ),
        "pending_approvals": _count(
            db.query(func.count(Approval.approval_id)).filter(
                Approval.org_id == org_id, Approval.status == ApprovalStatus.pending
            )
        ),
        "completed_this_month": _count(
            db.query(func.count(Eco.eco_id)).filter(
                Eco.org_id == org_id,
                Eco.status == EcoStatus.completed,
                Eco.completed_at >= start,
                Eco.completed_at < end,
            )
        ),
    }
    logger.debug("Dashboard metrics for %s: %s", org_id, metrics)
    return metrics


def recent_activity(db: Session, org_id: str, limit: Optional[int] = None) -> list[ActivityLog]:
    """Creations and status changes of ECRs, ECOs and ECNs, newest first, ties by entity id."""
    limit = limit or settings.ACTIVITY_FEED_LIMIT
    limit = max(1, min(limit, MAX_ACTIVITY_LIMIT))
    return (
        db.query(ActivityLog)
        .filter(ActivityLog.org_id == org_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.entity_id, ActivityLog.activity_id)
        .limit(limit)
        .all()
    )
