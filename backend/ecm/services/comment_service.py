"""Comments on ECR/ECO/ECN subjects."""
import logging
from typing import Union

from sqlalchemy.orm import Session

from ecm.models.comment import Comment
from ecm.models.common import EntityType
from ecm.services import subject_service

logger = logging.getLogger(__name__)


def add_comment(
    db: Session,
    org_id: str,
    user_id: str,
    entity_type: Union[EntityType, str],
    entity_id: str,
    comment_text: str,
    is_internal: bool = False,
) -> Comment:
    subject = subject_service.get_subject(db, org_id, entity_type, entity_id)
    comment = Comment(
        org_id=org_id,
        entity_type=subject_service.entity_type_of(subject),
        entity_id=entity_id,
        user_id=user_id,
        comment_text=comment_text,
        is_internal=is_internal,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("User %s commented on %s", user_id, subject_service.number_of(subject))
    return comment


def list_comments(db: Session, org_id: str, entity_type: Union[EntityType, str], entity_id: str) -> list[Comment]:
    subject = subject_service.get_subject(db, org_id, entity_type, entity_id)
    return (
        db.query(Comment)
        .filter(
            Comment.org_id == org_id,
            Comment.entity_type == subject_service.entity_type_of(subject),
            Comment.entity_id == entity_id,
        )
        .order_by(Comment.created_at.desc(), Comment.comment_id)
        .all()
    )
