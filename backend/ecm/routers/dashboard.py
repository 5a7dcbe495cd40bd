"""Dashboard API routes (read-only)."""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_identity
from ecm.database import get_db
from ecm.schemas.approval import ApprovalOut
from ecm.schemas.dashboard import ActivityOut, DashboardMetrics
from ecm.services import approval_service, dashboard_service

router = APIRouter()


@router.get("/metrics", response_model=DashboardMetrics)
def get_metrics(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return DashboardMetrics(**dashboard_service.get_metrics(db, identity.org_id))


@router.get("/activity", response_model=list[ActivityOut])
def get_activity(
    limit: Optional[int] = Query(None, ge=1, le=dashboard_service.MAX_ACTIVITY_LIMIT),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return dashboard_service.recent_activity(db, identity.org_id, limit)


@router.get("/pending-approvals", response_model=list[ApprovalOut])
def get_pending_approvals(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """Approvals waiting on the caller."""
    return approval_service.pending_for(db, identity.user_id, identity.org_id)
