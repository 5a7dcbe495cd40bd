"""Comment API routes."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_identity
from ecm.database import get_db
from ecm.models.common import EntityType
from ecm.schemas.comment import CommentCreate, CommentOut
from ecm.services import comment_service

router = APIRouter()


@router.post("/", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def add_comment(payload: CommentCreate, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return comment_service.add_comment(
        db,
        identity.org_id,
        identity.user_id,
        payload.entity_type,
        payload.entity_id,
        payload.comment_text,
        payload.is_internal,
    )


@router.get("/{entity_type}/{entity_id}", response_model=list[CommentOut])
def list_comments(
    entity_type: EntityType,
    entity_id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return comment_service.list_comments(db, identity.org_id, entity_type, entity_id)
