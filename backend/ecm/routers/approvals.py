"""Approval API routes."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_identity
from ecm.database import get_db
from ecm.models.common import EntityType
from ecm.schemas.approval import ApprovalCreate, ApprovalOut, ApprovalResolve, SubjectApprovalsOut
from ecm.services import approval_service, subject_service

router = APIRouter()


@router.post("/", response_model=ApprovalOut, status_code=status.HTTP_201_CREATED)
def open_approval(payload: ApprovalCreate, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """Assign an approval task on an ECR, ECO or ECN."""
    return approval_service.open_approval(
        db,
        identity.org_id,
        payload.entity_type,
        payload.entity_id,
        payload.approver_id,
        payload.approval_level,
    )


@router.get("/{entity_type}/{entity_id}", response_model=SubjectApprovalsOut)
def list_subject_approvals(
    entity_type: EntityType,
    entity_id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """All approvals of a subject and whether its approval requirement is met."""
    subject_service.get_subject(db, identity.org_id, entity_type, entity_id)
    return SubjectApprovalsOut(
        entity_type=entity_type,
        entity_id=entity_id,
        satisfied=approval_service.is_satisfied(db, entity_type, entity_id),
        approvals=approval_service.list_for_subject(db, entity_type, entity_id),
    )


@router.put("/{approval_id}", response_model=ApprovalOut)
def resolve_approval(
    approval_id: str,
    payload: ApprovalResolve,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Approve, reject or conditionally approve (assigned approver only)."""
    return approval_service.resolve(
        db,
        approval_id,
        identity.org_id,
        payload.status,
        comments=payload.comments,
        conditions=payload.conditions,
        actor_id=identity.user_id,
    )
