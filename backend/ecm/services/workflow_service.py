"""Workflow engine for ECR → ECO → ECN.

Responsibilities:
- State graphs for ECR status, ECO status and ECN implementation/approval status
- Atomic transitions: every status change is one conditional UPDATE on the
  expected current status, so two writers racing from the same state cannot
  both succeed
- Side effects of transitions (timestamps, change review board approvals,
  activity log entries, notifications)
- Creation of the three entities with allocated numbers

Transition failures are deterministic logic errors: they are raised, never
retried.
"""
import enum
import logging
from typing import Any, Optional, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ecm.errors import DuplicateApproval, InvalidTransition, NotFound, PermissionDenied, ValidationError
from ecm.models.activity_log import ActivityLog, ActivityAction
from ecm.models.approval import Approval
from ecm.models.common import EntityType, utcnow
from ecm.models.ecr import Ecr, EcrStatus, ApprovalType
from ecm.models.eco import Eco, EcoStatus
from ecm.models.ecn import Ecn, EcnApprovalStatus, ImplementationStatus, NotificationType
from ecm.models.organization import Organization
from ecm.services import approval_service, notification_service, numbering_service
from ecm.services.subject_service import Subject, entity_id_of, entity_type_of, number_of

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=enum.Enum)

ECR_TRANSITIONS: dict[EcrStatus, set[EcrStatus]] = {
    EcrStatus.draft: {EcrStatus.submitted},
    EcrStatus.submitted: {EcrStatus.under_review},
    EcrStatus.under_review: {
        EcrStatus.approved,
        EcrStatus.rejected,
        EcrStatus.more_info_needed,
        EcrStatus.crb_review,
    },
    EcrStatus.more_info_needed: {EcrStatus.submitted},
    EcrStatus.crb_review: {EcrStatus.approved, EcrStatus.rejected},
    EcrStatus.approved: set(),
    EcrStatus.rejected: set(),
}

ECO_TRANSITIONS: dict[EcoStatus, set[EcoStatus]] = {
    EcoStatus.backlog: {EcoStatus.in_progress},
    EcoStatus.in_progress: {EcoStatus.review},
    EcoStatus.review: {EcoStatus.completed, EcoStatus.on_hold},
    EcoStatus.on_hold: {EcoStatus.in_progress},
    EcoStatus.completed: set(),
}

ECN_IMPLEMENTATION_TRANSITIONS: dict[ImplementationStatus, set[ImplementationStatus]] = {
    ImplementationStatus.waiting: {ImplementationStatus.in_progress},
    ImplementationStatus.in_progress: {ImplementationStatus.completed},
    ImplementationStatus.completed: set(),
}

ECR_EDITABLE_STATUSES = (EcrStatus.draft, EcrStatus.more_info_needed)


# ── helpers ─────────────────────────────────────────────────────────────────

def _coerce(enum_cls: Type[E], value: Any, field: str) -> E:
    """Parse a status value, reporting unknown ones as input errors rather than transitions."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {field}: {value}",
            errors=[{"loc": [field], "msg": f"must be one of {allowed}", "input": str(value)}],
        )


def _check_edge(
    graph: dict[E, set[E]],
    entity_type: EntityType,
    entity_id: str,
    current: E,
    target: E,
) -> None:
    if target not in graph.get(current, set()):
        logger.warning(
            "Rejected %s %s transition %s -> %s", entity_type.value, entity_id, current.value, target.value
        )
        raise InvalidTransition(entity_type.value, entity_id, current.value, target.value)


def _apply_status(
    db: Session,
    subject: Subject,
    status_attr,
    expected: E,
    target: E,
    values: Optional[dict[str, Any]] = None,
) -> None:
    """Conditional UPDATE ... WHERE status = expected; losing a race surfaces the fresh status."""
    model = type(subject)
    pk = model.__mapper__.primary_key[0]
    entity_id = entity_id_of(subject)
    changes = {status_attr.key: target, **(values or {})}
    result = db.execute(
        update(model)
        .where(pk == entity_id, status_attr == expected)
        .values(**changes)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        current = db.execute(select(status_attr).where(pk == entity_id)).scalar_one_or_none()
        current_value = current.value if isinstance(current, enum.Enum) else str(current)
        logger.warning(
            "Stale %s %s transition %s -> %s (now %s)",
            entity_type_of(subject).value, entity_id, expected.value, target.value, current_value,
        )
        raise InvalidTransition(
            entity_type_of(subject).value,
            entity_id,
            current_value,
            target.value,
            reason="status was changed concurrently",
        )


def _record_activity(
    db: Session,
    subject: Subject,
    actor_id: str,
    action: ActivityAction,
    from_status: Optional[enum.Enum] = None,
    to_status: Optional[enum.Enum] = None,
) -> None:
    """Append a ledger entry; caller commits it together with the change it describes."""
    db.add(ActivityLog(
        org_id=subject.org_id,
        actor_id=actor_id,
        entity_type=entity_type_of(subject),
        entity_id=entity_id_of(subject),
        entity_number=number_of(subject),
        title=subject.title,
        action=action,
        from_status=from_status.value if from_status is not None else None,
        to_status=to_status.value if to_status is not None else None,
    ))


def _org_settings(db: Session, org_id: str) -> dict[str, Any]:
    org = db.query(Organization).filter(Organization.org_id == org_id).first()
    return (org.settings or {}) if org else {}


def _dedupe(ids: Optional[list[str]]) -> list[str]:
    return list(dict.fromkeys(str(i) for i in ids or []))


# ── ECR ─────────────────────────────────────────────────────────────────────

def get_ecr(db: Session, ecr_id: str, org_id: str) -> Ecr:
    ecr = db.query(Ecr).filter(Ecr.ecr_id == ecr_id, Ecr.org_id == org_id).first()
    if not ecr:
        raise NotFound("ECR", ecr_id)
    return ecr


def list_ecrs(db: Session, org_id: str, status: Optional[str] = None) -> list[Ecr]:
    query = db.query(Ecr).filter(Ecr.org_id == org_id)
    if status:
        query = query.filter(Ecr.status == _coerce(EcrStatus, status, "status"))
    return query.order_by(Ecr.created_at.desc(), Ecr.ecr_id).all()


def create_ecr(db: Session, org_id: str, requestor_id: str, data: dict[str, Any]) -> Ecr:
    """Create an ECR in draft under the next ECR number of the organization."""
    number = numbering_service.allocate(db, org_id, EntityType.ECR)
    ecr = Ecr(
        org_id=org_id,
        ecr_number=number,
        requestor_id=requestor_id,
        status=EcrStatus.draft,
        **data,
    )
    db.add(ecr)
    db.flush()
    _record_activity(db, ecr, requestor_id, ActivityAction.created, to_status=EcrStatus.draft)
    db.commit()
    db.refresh(ecr)
    logger.info("Created %s '%s' (%s) by %s", number, ecr.title, ecr.ecr_id, requestor_id)
    return ecr


def update_ecr(db: Session, ecr_id: str, org_id: str, actor_id: str, updates: dict[str, Any]) -> Ecr:
    """Edit descriptive fields; only the requestor, only while draft or sent back for more info."""
    ecr = get_ecr(db, ecr_id, org_id)
    if ecr.requestor_id != actor_id:
        raise PermissionDenied("Only the requestor may edit this ECR")
    if ecr.status not in ECR_EDITABLE_STATUSES:
        raise InvalidTransition(
            EntityType.ECR.value, ecr_id, ecr.status.value, ecr.status.value,
            reason="ECR can only be edited while draft or more_info_needed",
        )
    for field, value in updates.items():
        setattr(ecr, field, value)
    db.commit()
    db.refresh(ecr)
    logger.info("Updated ECR %s fields %s", ecr.ecr_number, sorted(updates))
    return ecr


def _open_board_approvals(db: Session, ecr: Ecr) -> list[Approval]:
    """One level-1 approval per change review board member configured on the organization.

    Runs after the status change has committed; each approval commits on its
    own, and a member who already holds a pending one is skipped.
    """
    org_id, ecr_id = ecr.org_id, ecr.ecr_id
    opened = []
    for member_id in _dedupe(_org_settings(db, org_id).get("crb_member_ids")):
        try:
            approval = approval_service.add_approval(db, org_id, EntityType.ECR, ecr_id, member_id, 1)
            db.commit()
        except DuplicateApproval:
            logger.info("Board member %s already has a pending approval on ECR %s", member_id, ecr_id)
            continue
        opened.append(approval)
    return opened


def _transition_ecr(db: Session, ecr: Ecr, target: EcrStatus, actor_id: str) -> Ecr:
    current = ecr.status
    _check_edge(ECR_TRANSITIONS, EntityType.ECR, ecr.ecr_id, current, target)

    is_board = ecr.approval_type == ApprovalType.change_review_board
    if is_board and target == EcrStatus.approved:
        if approval_service.count_for_subject(db, EntityType.ECR, ecr.ecr_id) == 0:
            logger.warning("Rejected approval of board ECR %s without approval records", ecr.ecr_id)
            raise InvalidTransition(
                EntityType.ECR.value, ecr.ecr_id, current.value, target.value,
                reason="change review board ECRs need at least one approval record",
            )

    now = utcnow()
    values: dict[str, Any] = {}
    if target == EcrStatus.submitted:
        values["submitted_at"] = now
    if target in (EcrStatus.approved, EcrStatus.rejected):
        values["resolved_at"] = now

    _apply_status(db, ecr, Ecr.status, current, target, values)
    _record_activity(db, ecr, actor_id, ActivityAction.status_changed, current, target)
    db.commit()
    opened = _open_board_approvals(db, ecr) if is_board and target == EcrStatus.under_review else []
    db.refresh(ecr)
    logger.info("ECR %s moved %s -> %s by %s", ecr.ecr_number, current.value, target.value, actor_id)

    notification_service.notify(
        db, ecr.org_id, ecr.requestor_id, "ecr_status_changed",
        f"{ecr.ecr_number} is now {target.value}",
        message=f"'{ecr.title}' moved from {current.value} to {target.value}",
        entity_type=EntityType.ECR, entity_id=ecr.ecr_id,
    )
    for approval in opened:
        notification_service.notify(
            db, ecr.org_id, approval.approver_id, "approval_requested",
            f"Review requested for {ecr.ecr_number}",
            entity_type=EntityType.ECR, entity_id=ecr.ecr_id,
        )
    return ecr


def submit_ecr(db: Session, ecr_id: str, org_id: str, actor_id: str) -> Ecr:
    """draft | more_info_needed → submitted."""
    ecr = get_ecr(db, ecr_id, org_id)
    if ecr.status not in ECR_EDITABLE_STATUSES:
        logger.warning("Rejected submit of ECR %s in status %s", ecr_id, ecr.status.value)
        raise InvalidTransition(
            EntityType.ECR.value, ecr_id, ecr.status.value, EcrStatus.submitted.value,
            reason="only draft or more_info_needed ECRs can be submitted",
        )
    return _transition_ecr(db, ecr, EcrStatus.submitted, actor_id)


def transition_ecr(db: Session, ecr_id: str, org_id: str, target_status: Any, actor_id: str) -> Ecr:
    target = _coerce(EcrStatus, target_status, "status")
    ecr = get_ecr(db, ecr_id, org_id)
    return _transition_ecr(db, ecr, target, actor_id)


# ── ECO ─────────────────────────────────────────────────────────────────────

def get_eco(db: Session, eco_id: str, org_id: str) -> Eco:
    eco = db.query(Eco).filter(Eco.eco_id == eco_id, Eco.org_id == org_id).first()
    if not eco:
        raise NotFound("ECO", eco_id)
    return eco


def list_ecos(db: Session, org_id: str, status: Optional[str] = None) -> list[Eco]:
    query = db.query(Eco).filter(Eco.org_id == org_id)
    if status:
        query = query.filter(Eco.status == _coerce(EcoStatus, status, "status"))
    return query.order_by(Eco.created_at.desc(), Eco.eco_id).all()


def _check_linked_ecrs(db: Session, org_id: str, ecr_ids: list[str]) -> None:
    if not ecr_ids:
        return
    found = {
        row[0]
        for row in db.query(Ecr.ecr_id).filter(Ecr.ecr_id.in_(ecr_ids), Ecr.org_id == org_id).all()
    }
    errors = [
        {"loc": ["linked_ecr_ids", i], "msg": "ECR not found in organization", "input": ecr_id}
        for i, ecr_id in enumerate(ecr_ids)
        if ecr_id not in found
    ]
    if errors:
        raise ValidationError("Linked ECRs must belong to the organization", errors=errors)


def create_eco(db: Session, org_id: str, actor_id: str, data: dict[str, Any]) -> Eco:
    """Create an ECO in backlog; linked ECRs and the parent ECO must be in the same organization.

    The lead engineer defaults to the creating user.
    """
    data = dict(data)
    data["linked_ecr_ids"] = _dedupe(data.get("linked_ecr_ids"))
    data["assigned_engineers"] = _dedupe(data.get("assigned_engineers"))
    _check_linked_ecrs(db, org_id, data["linked_ecr_ids"])
    if data.get("parent_eco_id"):
        data["parent_eco_id"] = get_eco(db, str(data["parent_eco_id"]), org_id).eco_id

    number = numbering_service.allocate(db, org_id, EntityType.ECO)
    eco = Eco(
        org_id=org_id,
        eco_number=number,
        lead_engineer_id=data.pop("lead_engineer_id", None) or actor_id,
        status=EcoStatus.backlog,
        **data,
    )
    db.add(eco)
    db.flush()
    _record_activity(db, eco, actor_id, ActivityAction.created, to_status=EcoStatus.backlog)
    db.commit()
    db.refresh(eco)
    logger.info("Created %s '%s' (%s) lead %s", number, eco.title, eco.eco_id, eco.lead_engineer_id)
    return eco


def update_eco(db: Session, eco_id: str, org_id: str, actor_id: str, updates: dict[str, Any]) -> Eco:
    """Edit descriptive and tracking fields; lead or assigned engineers only, until completed."""
    eco = get_eco(db, eco_id, org_id)
    if actor_id != eco.lead_engineer_id and actor_id not in (eco.assigned_engineers or []):
        raise PermissionDenied("Only the lead or an assigned engineer may edit this ECO")
    if eco.status == EcoStatus.completed:
        raise InvalidTransition(
            EntityType.ECO.value, eco_id, eco.status.value, eco.status.value,
            reason="completed ECOs can no longer be edited",
        )
    updates = dict(updates)
    if "assigned_engineers" in updates:
        updates["assigned_engineers"] = _dedupe(updates["assigned_engineers"])
    for field, value in updates.items():
        setattr(eco, field, value)
    db.commit()
    db.refresh(eco)
    logger.info("Updated ECO %s fields %s by %s", eco.eco_number, sorted(updates), actor_id)
    return eco


def _transition_eco(db: Session, eco: Eco, target: EcoStatus, actor_id: str) -> Eco:
    current = eco.status
    _check_edge(ECO_TRANSITIONS, EntityType.ECO, eco.eco_id, current, target)

    now = utcnow()
    values: dict[str, Any] = {}
    if target == EcoStatus.in_progress and eco.started_at is None:
        values["started_at"] = now
    if target == EcoStatus.completed:
        values["completed_at"] = now

    _apply_status(db, eco, Eco.status, current, target, values)
    _record_activity(db, eco, actor_id, ActivityAction.status_changed, current, target)
    db.commit()
    db.refresh(eco)
    logger.info("ECO %s moved %s -> %s by %s", eco.eco_number, current.value, target.value, actor_id)

    if actor_id != eco.lead_engineer_id:
        notification_service.notify(
            db, eco.org_id, eco.lead_engineer_id, "eco_status_changed",
            f"{eco.eco_number} is now {target.value}",
            entity_type=EntityType.ECO, entity_id=eco.eco_id,
        )
    return eco


def transition_eco(db: Session, eco_id: str, org_id: str, target_status: Any, actor_id: str) -> Eco:
    target = _coerce(EcoStatus, target_status, "status")
    return _transition_eco(db, get_eco(db, eco_id, org_id), target, actor_id)


def start_eco(db: Session, eco_id: str, org_id: str, actor_id: str) -> Eco:
    """backlog | on_hold → in_progress; started_at keeps the first start."""
    return _transition_eco(db, get_eco(db, eco_id, org_id), EcoStatus.in_progress, actor_id)


def submit_eco_for_review(db: Session, eco_id: str, org_id: str, actor_id: str) -> Eco:
    return _transition_eco(db, get_eco(db, eco_id, org_id), EcoStatus.review, actor_id)


def complete_eco(db: Session, eco_id: str, org_id: str, actor_id: str) -> Eco:
    """review → completed. ECNs are issued afterwards, so none are required here."""
    return _transition_eco(db, get_eco(db, eco_id, org_id), EcoStatus.completed, actor_id)


def hold_eco(db: Session, eco_id: str, org_id: str, actor_id: str) -> Eco:
    return _transition_eco(db, get_eco(db, eco_id, org_id), EcoStatus.on_hold, actor_id)


# ── ECN ─────────────────────────────────────────────────────────────────────

def get_ecn(db: Session, ecn_id: str, org_id: str) -> Ecn:
    ecn = db.query(Ecn).filter(Ecn.ecn_id == ecn_id, Ecn.org_id == org_id).first()
    if not ecn:
        raise NotFound("ECN", ecn_id)
    return ecn


def list_ecns(db: Session, org_id: str, status: Optional[str] = None) -> list[Ecn]:
    """ECNs of the organization; the status filter applies to implementation status."""
    query = db.query(Ecn).filter(Ecn.org_id == org_id)
    if status:
        query = query.filter(Ecn.implementation_status == _coerce(ImplementationStatus, status, "status"))
    return query.order_by(Ecn.created_at.desc(), Ecn.ecn_id).all()


def create_ecn(db: Session, org_id: str, actor_id: str, data: dict[str, Any]) -> Ecn:
    """Issue an ECN against an ECO of the same organization.

    Notification-only ECNs need no sign-off, so their approval status starts
    out approved; review-required ones start pending.
    """
    data = dict(data)
    eco = get_eco(db, str(data.pop("eco_id")), org_id)
    notification_type = NotificationType(data.pop("notification_type", None) or NotificationType.notification_only)
    approval_status = (
        EcnApprovalStatus.pending
        if notification_type == NotificationType.review_required
        else EcnApprovalStatus.approved
    )

    number = numbering_service.allocate(db, org_id, EntityType.ECN)
    ecn = Ecn(
        org_id=org_id,
        ecn_number=number,
        eco_id=eco.eco_id,
        notification_type=notification_type,
        approval_status=approval_status,
        implementation_status=ImplementationStatus.waiting,
        **data,
    )
    db.add(ecn)
    db.flush()
    _record_activity(db, ecn, actor_id, ActivityAction.created, to_status=ImplementationStatus.waiting)
    db.commit()
    db.refresh(ecn)
    logger.info("Created %s '%s' for %s (%s)", number, ecn.title, eco.eco_number, notification_type.value)
    return ecn


def advance_ecn_implementation(db: Session, ecn_id: str, org_id: str, target_status: Any, actor_id: str) -> Ecn:
    """waiting → in_progress → completed, one step at a time, once any required approval is granted."""
    target = _coerce(ImplementationStatus, target_status, "status")
    ecn = get_ecn(db, ecn_id, org_id)
    current = ecn.implementation_status
    _check_edge(ECN_IMPLEMENTATION_TRANSITIONS, EntityType.ECN, ecn_id, current, target)

    if ecn.requires_approval and ecn.approval_status != EcnApprovalStatus.approved:
        logger.warning("Rejected implementation of ECN %s with approval %s", ecn_id, ecn.approval_status.value)
        raise InvalidTransition(
            EntityType.ECN.value, ecn_id, current.value, target.value,
            reason=f"ECN approval is {ecn.approval_status.value}",
        )

    values = {"implemented_at": utcnow()} if target == ImplementationStatus.completed else {}
    _apply_status(db, ecn, Ecn.implementation_status, current, target, values)
    _record_activity(db, ecn, actor_id, ActivityAction.status_changed, current, target)
    db.commit()
    db.refresh(ecn)
    logger.info("ECN %s implementation %s -> %s", ecn.ecn_number, current.value, target.value)
    return ecn


def resolve_ecn_approval(db: Session, ecn_id: str, org_id: str, decision: Any, actor_id: str) -> Ecn:
    """pending → approved | rejected, for review_required ECNs only."""
    decision = _coerce(EcnApprovalStatus, decision, "decision")
    if decision == EcnApprovalStatus.pending:
        raise ValidationError(
            "Invalid decision: pending",
            errors=[{"loc": ["decision"], "msg": "must be approved or rejected", "input": "pending"}],
        )
    ecn = get_ecn(db, ecn_id, org_id)
    current = ecn.approval_status
    if not ecn.requires_approval:
        raise InvalidTransition(
            EntityType.ECN.value, ecn_id, current.value, decision.value,
            reason="notification-only ECNs are not reviewed",
        )
    if current != EcnApprovalStatus.pending:
        raise InvalidTransition(
            EntityType.ECN.value, ecn_id, current.value, decision.value,
            reason="ECN approval is already resolved",
        )

    _apply_status(db, ecn, Ecn.approval_status, current, decision, {"approval_resolved_at": utcnow()})
    _record_activity(db, ecn, actor_id, ActivityAction.status_changed, current, decision)
    db.commit()
    db.refresh(ecn)
    logger.info("ECN %s approval %s by %s", ecn.ecn_number, decision.value, actor_id)

    eco = db.query(Eco).filter(Eco.eco_id == ecn.eco_id).first()
    if eco:
        notification_service.notify(
            db, ecn.org_id, eco.lead_engineer_id, "ecn_approval_resolved",
            f"{ecn.ecn_number} was {decision.value}",
            entity_type=EntityType.ECN, entity_id=ecn.ecn_id,
        )
    return ecn
