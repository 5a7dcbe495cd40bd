"""ECR API routes."""
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_identity
from ecm.database import get_db
from ecm.schemas.ecr import EcrCreate, EcrOut, EcrTransition, EcrUpdate
from ecm.services import workflow_service

router = APIRouter()


@router.get("/", response_model=list[EcrOut])
def list_ecrs(
    status_filter: Optional[str] = None,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """List the organization's ECRs, newest first, optionally by status."""
    return workflow_service.list_ecrs(db, identity.org_id, status_filter)


@router.post("/", response_model=EcrOut, status_code=status.HTTP_201_CREATED)
def create_ecr(payload: EcrCreate, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """Create a draft ECR; the caller is the requestor."""
    return workflow_service.create_ecr(db, identity.org_id, identity.user_id, payload.model_dump())


@router.get("/{ecr_id}", response_model=EcrOut)
def get_ecr(ecr_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.get_ecr(db, ecr_id, identity.org_id)


@router.put("/{ecr_id}", response_model=EcrOut)
def update_ecr(
    ecr_id: str,
    payload: EcrUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Edit a draft (or sent-back) ECR. Status is only changed through submit/transition."""
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    return workflow_service.update_ecr(db, ecr_id, identity.org_id, identity.user_id, updates)


@router.post("/{ecr_id}/submit", response_model=EcrOut)
def submit_ecr(ecr_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.submit_ecr(db, ecr_id, identity.org_id, identity.user_id)


@router.post("/{ecr_id}/transition", response_model=EcrOut)
def transition_ecr(
    ecr_id: str,
    payload: EcrTransition,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Move an ECR along its workflow (review, approve, reject, request info, board review)."""
    return workflow_service.transition_ecr(db, ecr_id, identity.org_id, payload.status, identity.user_id)
