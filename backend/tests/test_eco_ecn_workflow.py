"""Tests for ECO status flow and ECN issuance/implementation."""
import pytest

from ecm.errors import InvalidTransition, NotFound, PermissionDenied, ValidationError
from ecm.models.eco import EcoStatus
from ecm.models.ecn import EcnApprovalStatus, ImplementationStatus, NotificationType
from ecm.models.notification import Notification
from ecm.services import workflow_service
from tests.conftest import make_ecn, make_eco, make_ecr, make_org


class TestEcoWorkflow:
    def test_full_path(self, db):
        """backlog → in_progress → review → completed."""
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        assert eco.status == EcoStatus.backlog
        assert eco.lead_engineer_id == "eng-1"

        eco = workflow_service.start_eco(db, eco.eco_id, org.org_id, "eng-1")
        assert eco.status == EcoStatus.in_progress
        assert eco.started_at is not None

        eco = workflow_service.submit_eco_for_review(db, eco.eco_id, org.org_id, "eng-1")
        assert eco.status == EcoStatus.review

        eco = workflow_service.complete_eco(db, eco.eco_id, org.org_id, "eng-1")
        assert eco.status == EcoStatus.completed
        assert eco.completed_at is not None

    def test_complete_twice_fails(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        for step in (workflow_service.start_eco, workflow_service.submit_eco_for_review, workflow_service.complete_eco):
            eco = step(db, eco.eco_id, org.org_id, "eng-1")

        with pytest.raises(InvalidTransition) as exc_info:
            workflow_service.complete_eco(db, eco.eco_id, org.org_id, "eng-1")
        assert exc_info.value.current_status == "completed"

    def test_cannot_skip_review(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        eco = workflow_service.start_eco(db, eco.eco_id, org.org_id, "eng-1")
        with pytest.raises(InvalidTransition):
            workflow_service.complete_eco(db, eco.eco_id, org.org_id, "eng-1")

    def test_hold_and_resume_keeps_first_start(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        eco = workflow_service.start_eco(db, eco.eco_id, org.org_id, "eng-1")
        first_start = eco.started_at
        workflow_service.submit_eco_for_review(db, eco.eco_id, org.org_id, "eng-1")
        eco = workflow_service.hold_eco(db, eco.eco_id, org.org_id, "eng-1")
        assert eco.status == EcoStatus.on_hold

        eco = workflow_service.start_eco(db, eco.eco_id, org.org_id, "eng-1")
        assert eco.status == EcoStatus.in_progress
        assert eco.started_at == first_start

    def test_generic_transition_rejects_unknown_status(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        with pytest.raises(ValidationError):
            workflow_service.transition_eco(db, eco.eco_id, org.org_id, "shipped", "eng-1")

    def test_lead_notified_when_someone_else_moves_it(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id, lead_engineer_id="lead-1")
        workflow_service.start_eco(db, eco.eco_id, org.org_id, "mgr-1")
        assert db.query(Notification).filter(Notification.user_id == "lead-1").count() == 1

    def test_linked_ecrs_must_belong_to_org(self, db):
        org = make_org(db)
        other = make_org(db, "other")
        own = make_ecr(db, org.org_id)
        foreign = make_ecr(db, other.org_id)

        with pytest.raises(ValidationError) as exc_info:
            make_eco(db, org.org_id, linked_ecr_ids=[own.ecr_id, foreign.ecr_id, "missing"])
        bad = [e["input"] for e in exc_info.value.errors]
        assert bad == [foreign.ecr_id, "missing"]

        eco = make_eco(db, org.org_id, linked_ecr_ids=[own.ecr_id, own.ecr_id])
        assert eco.linked_ecr_ids == [own.ecr_id]

    def test_parent_eco_must_exist(self, db):
        org = make_org(db)
        with pytest.raises(NotFound):
            make_eco(db, org.org_id, parent_eco_id="nope")


class TestUpdateEco:
    def test_lead_records_hours_and_notes(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id, estimated_hours=8)
        eco = workflow_service.update_eco(db, eco.eco_id, org.org_id, "eng-1", {
            "actual_hours": 12,
            "implementation_notes": "Second tooling pass needed",
        })
        assert eco.actual_hours == 12
        assert eco.estimated_hours == 8
        assert eco.implementation_notes == "Second tooling pass needed"
        assert eco.status == EcoStatus.backlog

    def test_assigned_engineer_may_edit(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id, assigned_engineers=["eng-2"])
        eco = workflow_service.update_eco(db, eco.eco_id, org.org_id, "eng-2", {"title": "Rework housing v2"})
        assert eco.title == "Rework housing v2"

    def test_assignments_are_deduplicated(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        eco = workflow_service.update_eco(
            db, eco.eco_id, org.org_id, "eng-1", {"assigned_engineers": ["eng-2", "eng-3", "eng-2"]}
        )
        assert eco.assigned_engineers == ["eng-2", "eng-3"]

    def test_outsider_cannot_edit(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        with pytest.raises(PermissionDenied):
            workflow_service.update_eco(db, eco.eco_id, org.org_id, "someone-else", {"title": "Hijacked"})
        db.refresh(eco)
        assert eco.title == "Rework housing drawing"

    def test_completed_eco_is_frozen(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        for step in (workflow_service.start_eco, workflow_service.submit_eco_for_review, workflow_service.complete_eco):
            eco = step(db, eco.eco_id, org.org_id, "eng-1")
        with pytest.raises(InvalidTransition) as exc_info:
            workflow_service.update_eco(db, eco.eco_id, org.org_id, "eng-1", {"actual_hours": 3})
        assert exc_info.value.current_status == "completed"

    def test_unknown_eco(self, db):
        org = make_org(db)
        with pytest.raises(NotFound):
            workflow_service.update_eco(db, "nope", org.org_id, "eng-1", {"title": "x"})


class TestEcnIssuance:
    def test_notification_only_is_pre_approved(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id)
        assert ecn.notification_type == NotificationType.notification_only
        assert ecn.approval_status == EcnApprovalStatus.approved
        assert ecn.implementation_status == ImplementationStatus.waiting
        assert ecn.ecn_number.startswith("ECN-")

    def test_review_required_starts_pending(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id, notification_type="review_required")
        assert ecn.approval_status == EcnApprovalStatus.pending

    def test_eco_from_other_org_rejected(self, db):
        org = make_org(db)
        other = make_org(db, "other")
        eco = make_eco(db, other.org_id)
        with pytest.raises(NotFound):
            make_ecn(db, org.org_id, eco.eco_id)


class TestEcnImplementation:
    def test_cannot_jump_to_completed(self, db):
        """waiting → completed fails; waiting → in_progress → completed succeeds."""
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id)

        with pytest.raises(InvalidTransition):
            workflow_service.advance_ecn_implementation(db, ecn.ecn_id, org.org_id, "completed", "eng-1")

        ecn = workflow_service.advance_ecn_implementation(db, ecn.ecn_id, org.org_id, "in_progress", "eng-1")
        assert ecn.implementation_status == ImplementationStatus.in_progress
        ecn = workflow_service.advance_ecn_implementation(db, ecn.ecn_id, org.org_id, "completed", "eng-1")
        assert ecn.implementation_status == ImplementationStatus.completed
        assert ecn.implemented_at is not None

    def test_review_required_blocks_until_approved(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id, notification_type="review_required")

        with pytest.raises(InvalidTransition) as exc_info:
            workflow_service.advance_ecn_implementation(db, ecn.ecn_id, org.org_id, "in_progress", "eng-1")
        assert exc_info.value.reason == "ECN approval is pending"

        ecn = workflow_service.resolve_ecn_approval(db, ecn.ecn_id, org.org_id, "approved", "mgr-1")
        assert ecn.approval_status == EcnApprovalStatus.approved
        assert ecn.approval_resolved_at is not None

        ecn = workflow_service.advance_ecn_implementation(db, ecn.ecn_id, org.org_id, "in_progress", "eng-1")
        assert ecn.implementation_status == ImplementationStatus.in_progress

    def test_rejected_ecn_stays_waiting(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id, notification_type="review_required")
        workflow_service.resolve_ecn_approval(db, ecn.ecn_id, org.org_id, "rejected", "mgr-1")

        with pytest.raises(InvalidTransition):
            workflow_service.advance_ecn_implementation(db, ecn.ecn_id, org.org_id, "in_progress", "eng-1")


class TestEcnApproval:
    def test_resolve_only_once(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id, notification_type="review_required")
        workflow_service.resolve_ecn_approval(db, ecn.ecn_id, org.org_id, "approved", "mgr-1")
        with pytest.raises(InvalidTransition):
            workflow_service.resolve_ecn_approval(db, ecn.ecn_id, org.org_id, "rejected", "mgr-1")

    def test_notification_only_not_reviewed(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id)
        with pytest.raises(InvalidTransition):
            workflow_service.resolve_ecn_approval(db, ecn.ecn_id, org.org_id, "approved", "mgr-1")

    def test_pending_is_not_a_decision(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id)
        ecn = make_ecn(db, org.org_id, eco.eco_id, notification_type="review_required")
        with pytest.raises(ValidationError):
            workflow_service.resolve_ecn_approval(db, ecn.ecn_id, org.org_id, "pending", "mgr-1")

    def test_eco_lead_notified(self, db):
        org = make_org(db)
        eco = make_eco(db, org.org_id, lead_engineer_id="lead-7")
        ecn = make_ecn(db, org.org_id, eco.eco_id, notification_type="review_required")
        workflow_service.resolve_ecn_approval(db, ecn.ecn_id, org.org_id, "approved", "mgr-1")
        note = db.query(Notification).filter(Notification.user_id == "lead-7").one()
        assert note.type == "ecn_approval_resolved"
