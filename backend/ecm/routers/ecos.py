"""ECO API routes."""
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_identity
from ecm.database import get_db
from ecm.schemas.eco import EcoCreate, EcoOut, EcoTransition, EcoUpdate
from ecm.services import workflow_service

router = APIRouter()


@router.get("/", response_model=list[EcoOut])
def list_ecos(
    status_filter: Optional[str] = None,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return workflow_service.list_ecos(db, identity.org_id, status_filter)


@router.post("/", response_model=EcoOut, status_code=status.HTTP_201_CREATED)
def create_eco(payload: EcoCreate, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """Create a backlog ECO linked to ECRs of the same organization."""
    return workflow_service.create_eco(db, identity.org_id, identity.user_id, payload.model_dump())


@router.get("/{eco_id}", response_model=EcoOut)
def get_eco(eco_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.get_eco(db, eco_id, identity.org_id)


@router.put("/{eco_id}", response_model=EcoOut)
def update_eco(
    eco_id: str,
    payload: EcoUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Edit descriptive fields, assignments and hours. Status only changes through the transition routes."""
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    return workflow_service.update_eco(db, eco_id, identity.org_id, identity.user_id, updates)


@router.post("/{eco_id}/start", response_model=EcoOut)
def start_eco(eco_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.start_eco(db, eco_id, identity.org_id, identity.user_id)


@router.post("/{eco_id}/review", response_model=EcoOut)
def submit_eco_for_review(eco_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.submit_eco_for_review(db, eco_id, identity.org_id, identity.user_id)


@router.post("/{eco_id}/complete", response_model=EcoOut)
def complete_eco(eco_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.complete_eco(db, eco_id, identity.org_id, identity.user_id)


@router.post("/{eco_id}/hold", response_model=EcoOut)
def hold_eco(eco_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return workflow_service.hold_eco(db, eco_id, identity.org_id, identity.user_id)


@router.post("/{eco_id}/transition", response_model=EcoOut)
def transition_eco(
    eco_id: str,
    payload: EcoTransition,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return workflow_service.transition_eco(db, eco_id, identity.org_id, payload.status, identity.user_id)
