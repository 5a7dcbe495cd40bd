"""Approval coordinator: opens, resolves and queries sign-off tasks on ECR/ECO/ECN subjects.

A subject may carry several approvals at once (one per approver and level);
each is resolved on its own. Resolution is a single conditional UPDATE so a
pending approval leaves `pending` exactly once; only `conditional` approvals
may be resolved again.
"""
import logging
from typing import Any, Optional, Union

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ecm.errors import AlreadyResolved, DuplicateApproval, NotFound, PermissionDenied, ValidationError
from ecm.models.approval import Approval, ApprovalStatus
from ecm.models.common import EntityType, utcnow
from ecm.models.ecn import Ecn
from ecm.services import notification_service, subject_service

logger = logging.getLogger(__name__)

RESOLVABLE_STATUSES = (ApprovalStatus.pending, ApprovalStatus.conditional)


def has_pending(db: Session, entity_type: EntityType, entity_id: str, approver_id: str, level: int) -> bool:
    return (
        db.query(Approval.approval_id)
        .filter(
            Approval.entity_type == entity_type,
            Approval.entity_id == entity_id,
            Approval.approver_id == approver_id,
            Approval.approval_level == level,
            Approval.status == ApprovalStatus.pending,
        )
        .first()
        is not None
    )


def add_approval(
    db: Session,
    org_id: str,
    entity_type: EntityType,
    entity_id: str,
    approver_id: str,
    level: int = 1,
) -> Approval:
    """Stage a pending approval in the caller's transaction (no commit).

    A pending duplicate is caught by the pre-check or, when two opens race,
    by the partial unique index on pending rows; in the latter case the
    session is rolled back before DuplicateApproval is raised.
    """
    if level < 1:
        raise ValidationError(
            "Approval level must be at least 1",
            errors=[{"loc": ["approval_level"], "msg": "must be >= 1", "input": level}],
        )
    if has_pending(db, entity_type, entity_id, approver_id, level):
        raise _duplicate(entity_type, entity_id, approver_id, level)
    approval = Approval(
        org_id=org_id,
        entity_type=entity_type,
        entity_id=entity_id,
        approver_id=approver_id,
        approval_level=level,
        status=ApprovalStatus.pending,
    )
    db.add(approval)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Concurrent level %d approval for %s on %s %s lost to an existing pending one",
            level, approver_id, entity_type.value, entity_id,
        )
        raise _duplicate(entity_type, entity_id, approver_id, level)
    return approval


def _duplicate(entity_type: EntityType, entity_id: str, approver_id: str, level: int) -> DuplicateApproval:
    return DuplicateApproval(
        f"{approver_id} already has a pending level {level} approval on {entity_type.value} {entity_id}",
        entity_type=entity_type.value,
        entity_id=entity_id,
        approver_id=approver_id,
        approval_level=level,
    )


def open_approval(
    db: Session,
    org_id: str,
    entity_type: Union[EntityType, str],
    entity_id: str,
    approver_id: str,
    level: int = 1,
) -> Approval:
    """Create a pending approval on a subject of the organization and notify the approver."""
    subject = subject_service.get_subject(db, org_id, entity_type, entity_id)
    entity_type = subject_service.entity_type_of(subject)
    approval = add_approval(db, org_id, entity_type, entity_id, approver_id, level)
    db.commit()
    db.refresh(approval)
    logger.info(
        "Opened level %d approval %s on %s %s for %s",
        level, approval.approval_id, entity_type.value, entity_id, approver_id,
    )
    notification_service.notify(
        db, org_id, approver_id, "approval_requested",
        f"Approval requested for {subject_service.number_of(subject)}",
        entity_type=entity_type, entity_id=entity_id,
    )
    return approval


def get_approval(db: Session, approval_id: str, org_id: str) -> Approval:
    approval = (
        db.query(Approval)
        .filter(Approval.approval_id == approval_id, Approval.org_id == org_id)
        .first()
    )
    if not approval:
        raise NotFound("Approval", approval_id)
    return approval


def resolve(
    db: Session,
    approval_id: str,
    org_id: str,
    decision: Any,
    comments: Optional[str] = None,
    conditions: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> Approval:
    """Resolve a pending (or conditional) approval.

    Args:
        decision: approved, rejected or conditional
        actor_id: when given, must be the assigned approver; internal callers pass None

    Raises:
        ValidationError, NotFound, AlreadyResolved, PermissionDenied
    """
    try:
        decision = ApprovalStatus(decision)
    except ValueError:
        decision = None
    if decision is None or decision == ApprovalStatus.pending:
        raise ValidationError(
            "Invalid decision",
            errors=[{"loc": ["decision"], "msg": "must be approved, rejected or conditional"}],
        )

    approval = get_approval(db, approval_id, org_id)
    if approval.status not in RESOLVABLE_STATUSES:
        raise AlreadyResolved(approval_id, approval.status.value)
    if actor_id is not None and approval.approver_id != actor_id:
        raise PermissionDenied("Only the assigned approver may resolve this approval")

    values: dict[str, Any] = {"status": decision, "resolved_at": utcnow()}
    if comments is not None:
        values["comments"] = comments
    if conditions is not None:
        values["conditions"] = conditions
    result = db.execute(
        update(Approval)
        .where(Approval.approval_id == approval_id, Approval.status.in_(RESOLVABLE_STATUSES))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        current = db.execute(select(Approval.status).where(Approval.approval_id == approval_id)).scalar_one()
        raise AlreadyResolved(approval_id, current.value)
    db.commit()
    db.refresh(approval)
    logger.info("Approval %s resolved as %s", approval_id, decision.value)

    _notify_owner(db, approval)
    return approval


def _notify_owner(db: Session, approval: Approval) -> None:
    try:
        subject = subject_service.get_subject(db, approval.org_id, approval.entity_type, approval.entity_id)
    except NotFound:
        logger.warning("Approval %s points at a missing %s", approval.approval_id, approval.entity_type.value)
        return
    notification_service.notify(
        db, approval.org_id, subject_service.owner_of(db, subject), "approval_resolved",
        f"{subject_service.number_of(subject)}: level {approval.approval_level} {approval.status.value}",
        message=approval.comments,
        entity_type=approval.entity_type, entity_id=approval.entity_id,
    )


def count_for_subject(db: Session, entity_type: EntityType, entity_id: str) -> int:
    return (
        db.query(func.count(Approval.approval_id))
        .filter(Approval.entity_type == entity_type, Approval.entity_id == entity_id)
        .scalar()
    ) or 0


def list_for_subject(db: Session, entity_type: Union[EntityType, str], entity_id: str) -> list[Approval]:
    entity_type = subject_service.coerce_entity_type(entity_type)
    return (
        db.query(Approval)
        .filter(Approval.entity_type == entity_type, Approval.entity_id == entity_id)
        .order_by(Approval.approval_level, Approval.created_at, Approval.approval_id)
        .all()
    )


def _requires_approval(db: Session, entity_type: EntityType, entity_id: str) -> bool:
    """Everything needs sign-off except notification-only ECNs."""
    if entity_type != EntityType.ECN:
        return True
    ecn = db.query(Ecn).filter(Ecn.ecn_id == entity_id).first()
    return ecn.requires_approval if ecn else True


def is_satisfied(
    db: Session,
    entity_type: Union[EntityType, str],
    entity_id: str,
    requires_approval: Optional[bool] = None,
) -> bool:
    """True iff every approval of the subject is approved.

    With no approvals at all the answer is the subject's policy: unsatisfied
    when it requires approval, vacuously satisfied when it does not.
    """
    entity_type = subject_service.coerce_entity_type(entity_type)
    statuses = [
        row[0]
        for row in db.query(Approval.status)
        .filter(Approval.entity_type == entity_type, Approval.entity_id == entity_id)
        .all()
    ]
    if not statuses:
        if requires_approval is None:
            requires_approval = _requires_approval(db, entity_type, entity_id)
        return not requires_approval
    return all(s == ApprovalStatus.approved for s in statuses)


def pending_for(db: Session, approver_id: str, org_id: str) -> list[Approval]:
    """Pending approvals assigned to approver_id in org_id, newest first."""
    return (
        db.query(Approval)
        .filter(
            Approval.approver_id == approver_id,
            Approval.org_id == org_id,
            Approval.status == ApprovalStatus.pending,
        )
        .order_by(Approval.created_at.desc(), Approval.approval_id)
        .all()
    )
