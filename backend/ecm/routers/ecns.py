"""ECN API routes."""
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_identity
from ecm.database import get_db
from ecm.schemas.ecn import EcnApprovalDecision, EcnCreate, EcnImplementationUpdate, EcnOut
from ecm.services import workflow_service

router = APIRouter()


@router.get("/", response_model=list[EcnOut])
def list_ecns(
    status_filter: Optional[str] = None,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """List ECNs; status_filter matches implementation status."""
    return workflow_service.list_ecns(db, identity.org_id, status_filter)


@router.post("/", response_model=EcnOut, status_code=status.HTTP_201_CREATED)
def create_ecn(payload: EcnCreate, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.create_ecn(db, identity.org_id, identity.user_id, payload.model_dump())


@router.get("/{ecn_id}", response_model=EcnOut)
def get_ecn(ecn_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.get_ecn(db, ecn_id, identity.org_id)


@router.post("/{ecn_id}/implementation", response_model=EcnOut)
def advance_implementation(
    ecn_id: str,
    payload: EcnImplementationUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return workflow_service.advance_ecn_implementation(
        db, ecn_id, identity.org_id, payload.status, identity.user_id
    )


@router.post("/{ecn_id}/approval", response_model=EcnOut)
def resolve_approval(
    ecn_id: str,
    payload: EcnApprovalDecision,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return workflow_service.resolve_ecn_approval(db, ecn_id, identity.org_id, payload.decision, identity.user_id)
