"""Tests for dashboard metrics and the activity feed."""
from datetime import datetime

import pytest
from sqlalchemy import update

from ecm.models.activity_log import ActivityLog
from ecm.models.eco import Eco, EcoStatus
from ecm.services import approval_service, dashboard_service, workflow_service
from tests.conftest import create_test_ecr, create_test_org, headers, make_eco, make_ecr, make_org

NOW = datetime(2025, 4, 15, 12, 0)


def _completed_eco(db, org_id, completed_at):
    eco = make_eco(db, org_id)
    db.execute(
        update(Eco)
        .where(Eco.eco_id == eco.eco_id)
        .values(status=EcoStatus.completed, completed_at=completed_at)
    )
    db.commit()
    return eco


class TestMonthBounds:
    def test_utc(self):
        start, end = dashboard_service.month_bounds("UTC", NOW)
        assert (start.year, start.month, start.day, start.hour) == (2025, 4, 1, 0)
        assert (end.year, end.month, end.day, end.hour) == (2025, 5, 1, 0)

    def test_december_rolls_over(self):
        start, end = dashboard_service.month_bounds("UTC", datetime(2025, 12, 31, 23, 59))
        assert (start.month, end.year, end.month) == (12, 2026, 1)

    def test_organization_timezone(self):
        """Midnight in New York on April 1st is 04:00 UTC (EDT)."""
        start, end = dashboard_service.month_bounds("America/New_York", NOW)
        assert (start.month, start.day, start.hour) == (4, 1, 4)
        assert (end.month, end.day, end.hour) == (5, 1, 4)

    def test_local_month_can_differ_from_utc_month(self):
        """01:00 UTC on May 1st is still April in New York."""
        start, _ = dashboard_service.month_bounds("America/New_York", datetime(2025, 5, 1, 1, 0))
        assert start.month == 4


class TestMetrics:
    def test_completed_this_month_window(self, db):
        """Last day of the previous month is excluded, first day of this month is included."""
        org = make_org(db)
        _completed_eco(db, org.org_id, datetime(2025, 3, 31, 23, 30))
        _completed_eco(db, org.org_id, datetime(2025, 4, 1, 0, 0))
        _completed_eco(db, org.org_id, datetime(2025, 5, 1, 0, 0))

        metrics = dashboard_service.get_metrics(db, org.org_id, now=NOW)
        assert metrics["completed_this_month"] == 1

    def test_completed_window_uses_org_timezone(self, db):
        org = make_org(db, settings={"timezone": "America/New_York"})
        # 02:00 UTC on April 1st is still March 31st in New York
        _completed_eco(db, org.org_id, datetime(2025, 4, 1, 2, 0))
        _completed_eco(db, org.org_id, datetime(2025, 4, 1, 5, 0))
        assert dashboard_service.get_metrics(db, org.org_id, now=NOW)["completed_this_month"] == 1

    def test_counts(self, db):
        org = make_org(db)
        submitted = make_ecr(db, org.org_id)
        workflow_service.submit_ecr(db, submitted.ecr_id, org.org_id, "req-1")
        make_ecr(db, org.org_id, title="Still draft")

        running = make_eco(db, org.org_id)
        workflow_service.start_eco(db, running.eco_id, org.org_id, "eng-1")
        make_eco(db, org.org_id, title="Backlog")

        approval_service.open_approval(db, org.org_id, "ECR", submitted.ecr_id, "appr-1")
        done = approval_service.open_approval(db, org.org_id, "ECR", submitted.ecr_id, "appr-2")
        approval_service.resolve(db, done.approval_id, org.org_id, "approved")

        metrics = dashboard_service.get_metrics(db, org.org_id)
        assert metrics == {
            "active_ecrs": 1,
            "in_progress_ecos": 1,
            "pending_approvals": 1,
            "completed_this_month": 0,
        }

    def test_scoped_to_organization(self, db):
        """Another organization's records, pending approvals included, are not counted."""
        org = make_org(db)
        other = make_org(db, "other")
        foreign = make_ecr(db, other.org_id)
        workflow_service.submit_ecr(db, foreign.ecr_id, other.org_id, "req-1")
        approval_service.open_approval(db, other.org_id, "ECR", foreign.ecr_id, "appr-1")

        assert dashboard_service.get_metrics(db, org.org_id) == {
            "active_ecrs": 0,
            "in_progress_ecos": 0,
            "pending_approvals": 0,
            "completed_this_month": 0,
        }
        assert dashboard_service.get_metrics(db, other.org_id)["pending_approvals"] == 1

    def test_empty_organization(self, db):
        org = make_org(db)
        assert set(dashboard_service.get_metrics(db, org.org_id).values()) == {0}


class TestRecentActivity:
    def test_newest_first_with_limit(self, db):
        org = make_org(db)
        ecrs = [make_ecr(db, org.org_id, title=f"ECR {i}") for i in range(4)]
        feed = dashboard_service.recent_activity(db, org.org_id, limit=3)
        assert [a.entity_id for a in feed] == [ecrs[3].ecr_id, ecrs[2].ecr_id, ecrs[1].ecr_id]

    def test_ties_broken_by_entity_id(self, db):
        org = make_org(db)
        first = make_ecr(db, org.org_id)
        second = make_ecr(db, org.org_id)
        same_instant = datetime(2025, 4, 1, 9, 0)
        db.execute(update(ActivityLog).values(created_at=same_instant))
        db.commit()

        feed = dashboard_service.recent_activity(db, org.org_id)
        assert [a.entity_id for a in feed] == sorted([first.ecr_id, second.ecr_id])

    def test_includes_transitions_across_types(self, db):
        org = make_org(db)
        ecr = make_ecr(db, org.org_id)
        eco = make_eco(db, org.org_id)
        workflow_service.submit_ecr(db, ecr.ecr_id, org.org_id, "req-1")

        feed = dashboard_service.recent_activity(db, org.org_id)
        assert feed[0].entity_id == ecr.ecr_id
        assert feed[0].to_status == "submitted"
        assert {a.entity_type.value for a in feed} == {"ECR", "ECO"}
        assert eco.eco_id in {a.entity_id for a in feed}

    @pytest.mark.parametrize("limit,expected", [(0, 10), (500, 12)])
    def test_limit_is_clamped(self, db, limit, expected):
        org = make_org(db)
        for i in range(12):
            make_ecr(db, org.org_id, title=f"ECR {i}")
        assert len(dashboard_service.recent_activity(db, org.org_id, limit=limit)) == expected

    def test_other_org_activity_hidden(self, db):
        org = make_org(db)
        other = make_org(db, "other")
        make_ecr(db, other.org_id)
        assert dashboard_service.recent_activity(db, org.org_id) == []


class TestDashboardApi:
    def test_metrics_use_camel_case_keys(self, client):
        org = create_test_org(client)
        ecr = create_test_ecr(client, org["org_id"])
        client.post(f"/api/ecr/{ecr['ecr_id']}/submit", headers=headers("req-1", org["org_id"]))

        resp = client.get("/api/dashboard/metrics", headers=headers("req-1", org["org_id"]))
        assert resp.status_code == 200
        assert resp.json() == {
            "activeECRs": 1,
            "inProgressECOs": 0,
            "pendingApprovals": 0,
            "completedThisMonth": 0,
        }

    def test_activity_endpoint(self, client):
        org = create_test_org(client)
        create_test_ecr(client, org["org_id"])
        resp = client.get("/api/dashboard/activity?limit=5", headers=headers("req-1", org["org_id"]))
        assert resp.status_code == 200
        body = resp.json()
        assert len(body) == 1
        assert body[0]["action"] == "created"
        assert body[0]["entity_number"].startswith("ECR-")

    def test_pending_approvals_for_caller(self, client):
        org = create_test_org(client)
        ecr = create_test_ecr(client, org["org_id"])
        client.post("/api/approvals/", json={
            "entity_type": "ECR",
            "entity_id": ecr["ecr_id"],
            "approver_id": "appr-1",
        }, headers=headers("mgr-1", org["org_id"]))

        mine = client.get("/api/dashboard/pending-approvals", headers=headers("appr-1", org["org_id"]))
        theirs = client.get("/api/dashboard/pending-approvals", headers=headers("mgr-1", org["org_id"]))
        assert len(mine.json()) == 1
        assert theirs.json() == []
