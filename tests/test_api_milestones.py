"""
IdeaBoard
Tests - Milestone API (roadmap kanban).

Covers:
    - Create (pending, appended to the column) + validation
    - List ordering and status filter
    - Roadmap board: four fixed columns + summary
    - Move: status / order_index only, round trip, configured workflow
    - Move failure: store error → 500 and the canonical row is kept
    - Owner isolation
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from ideaboard.context import UserContext
from ideaboard.core.exceptions import NotFoundError
from ideaboard.models import db
from ideaboard.models.activity import ActivityLog
from ideaboard.models.milestone import Milestone
from ideaboard.services import milestone_service, optimistic
from ideaboard.services.milestone_service import transition_allowed

FIELDS = ("id", "idea_id", "title", "description", "status", "due_date", "order_index", "created_at")


def _create(client, idea_id, **kw):
    payload = {"title": "Design schema"}
    payload.update(kw)
    res = client.post(f"/api/v1/ideas/{idea_id}/milestones", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _move(client, milestone_id, **body):
    return client.patch(f"/api/v1/milestones/{milestone_id}/move", json=body)


def _diff(a, b):
    return {k for k in FIELDS if a[k] != b[k]}


# ═════════════════════════════════════════════════════════════════════════════
# CREATE / LIST
# ═════════════════════════════════════════════════════════════════════════════

class TestCreateMilestone:
    def test_created_pending_and_appended(self, client, idea):
        first = _create(client, idea["id"], title="One", due_date="2025-03-01")
        second = _create(client, idea["id"], title="Two")
        assert first["status"] == "pending"
        assert first["due_date"] == "2025-03-01"
        assert (first["order_index"], second["order_index"]) == (0, 1)

    def test_title_required(self, client, idea):
        res = client.post(f"/api/v1/ideas/{idea['id']}/milestones", json={"title": ""})
        assert res.status_code == 400
        assert Milestone.query.count() == 0

    def test_bad_due_date(self, client, idea):
        res = client.post(f"/api/v1/ideas/{idea['id']}/milestones",
                          json={"title": "X", "due_date": "next tuesday"})
        assert res.status_code == 400

    def test_day_first_due_date_rejected(self, client, idea, milestone):
        res = client.post(f"/api/v1/ideas/{idea['id']}/milestones",
                          json={"title": "X", "due_date": "01.06.2025"})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"due_date": "01.06.2025"}

        res = client.put(f"/api/v1/milestones/{milestone['id']}", json={"due_date": "01.06.2025"})
        assert res.status_code == 400
        assert db.session.get(Milestone, milestone["id"]).due_date is None

    def test_unknown_idea(self, client):
        res = client.post("/api/v1/ideas/nope/milestones", json={"title": "X"})
        assert res.status_code == 404

    def test_list_ordered_by_order_index(self, client, idea):
        _create(client, idea["id"], title="Later", order_index=5)
        _create(client, idea["id"], title="Sooner", order_index=1)
        items = client.get(f"/api/v1/ideas/{idea['id']}/milestones").get_json()["items"]
        assert [m["title"] for m in items] == ["Sooner", "Later"]

    def test_edit_fields(self, client, milestone):
        res = client.put(f"/api/v1/milestones/{milestone['id']}",
                         json={"title": "Clickable prototype", "due_date": None})
        assert res.status_code == 200
        assert res.get_json()["title"] == "Clickable prototype"

    def test_edit_refuses_status(self, client, milestone):
        res = client.put(f"/api/v1/milestones/{milestone['id']}", json={"status": "completed"})
        assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# BOARD
# ═════════════════════════════════════════════════════════════════════════════

class TestRoadmapBoard:
    def test_four_columns_in_order(self, client, idea):
        a = _create(client, idea["id"], title="A")
        _create(client, idea["id"], title="B")
        c = _create(client, idea["id"], title="C")
        _move(client, a["id"], status="completed")
        _move(client, c["id"], status="in_progress")

        board = client.get(f"/api/v1/ideas/{idea['id']}/roadmap").get_json()
        assert [col["id"] for col in board["columns"]] == \
            ["pending", "in_progress", "completed", "blocked"]
        titles = {col["id"]: [m["title"] for m in col["milestones"]] for col in board["columns"]}
        assert titles == {"pending": ["B"], "in_progress": ["C"], "completed": ["A"], "blocked": []}
        assert board["summary"]["total"] == 3
        assert board["summary"]["completion_pct"] == 33

    def test_empty_board(self, client, idea):
        board = client.get(f"/api/v1/ideas/{idea['id']}/roadmap").get_json()
        assert board["summary"] == {
            "total": 0,
            "by_status": {"pending": 0, "in_progress": 0, "completed": 0, "blocked": 0},
            "completion_pct": 0,
        }


# ═════════════════════════════════════════════════════════════════════════════
# MOVE
# ═════════════════════════════════════════════════════════════════════════════

class TestMoveMilestone:
    def test_round_trip_only_status_and_order_change(self, client, milestone):
        blocked = _move(client, milestone["id"], status="blocked").get_json()
        assert blocked["status"] == "blocked"
        assert _diff(milestone, blocked) <= {"status", "order_index"}

        back = _move(client, milestone["id"], status="pending").get_json()
        assert back["status"] == "pending"
        assert _diff(blocked, back) <= {"status", "order_index"}
        assert _diff(milestone, back) == set()

    def test_appends_to_destination_column(self, client, idea):
        a = _create(client, idea["id"], title="A")
        b = _create(client, idea["id"], title="B")
        _move(client, a["id"], status="completed")
        moved = _move(client, b["id"], status="completed").get_json()
        assert moved["order_index"] == 1

    def test_explicit_position(self, client, milestone):
        res = _move(client, milestone["id"], order_index=7)
        assert res.status_code == 200
        assert res.get_json()["order_index"] == 7
        assert res.get_json()["status"] == "pending"

    def test_any_to_any_by_default(self):
        for old in ("pending", "in_progress", "completed", "blocked"):
            for new in ("pending", "in_progress", "completed", "blocked"):
                assert transition_allowed(old, new)

    def test_unknown_status(self, client, milestone):
        res = _move(client, milestone["id"], status="archived")
        assert res.status_code == 400

    def test_empty_body(self, client, milestone):
        assert _move(client, milestone["id"]).status_code == 400

    def test_configured_workflow_blocks_transition(self, app, client, milestone, monkeypatch):
        monkeypatch.setitem(app.config, "MILESTONE_TRANSITIONS", {
            "pending": ["in_progress"],
            "in_progress": ["completed", "blocked"],
        })
        res = _move(client, milestone["id"], status="completed")
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_TRANSITION_BLOCKED"
        assert _move(client, milestone["id"], status="in_progress").status_code == 200

    def test_move_logs_activity(self, client, milestone):
        _move(client, milestone["id"], status="in_progress")
        entry = ActivityLog.query.filter_by(action="milestone.moved").one()
        assert entry.details["from"]["status"] == "pending"
        assert entry.details["to"]["status"] == "in_progress"

    def test_store_failure_keeps_canonical_state(self, client, milestone):
        error = OperationalError("COMMIT", {}, Exception("database is locked"))
        with patch.object(optimistic, "_persist", side_effect=error):
            res = _move(client, milestone["id"], status="blocked", order_index=9)

        assert res.status_code == 500
        assert res.get_json()["code"] == "ERR_DATABASE"

        db.session.expire_all()
        row = db.session.get(Milestone, milestone["id"])
        assert (row.status, row.order_index) == ("pending", 0)
        assert ActivityLog.query.filter_by(action="milestone.moved").count() == 0


class TestTentativeChange:
    def test_restore_from_store(self, milestone):
        row = db.session.get(Milestone, milestone["id"])
        change = optimistic.TentativeChange(row, ("status", "order_index"))
        change.apply(status="completed", order_index=4)
        assert change.changed == {"status": "completed", "order_index": 4}

        change.restore()
        assert change.restored_from == "store"
        assert (row.status, row.order_index) == ("pending", 0)

    def test_restore_falls_back_to_snapshot(self, milestone):
        row = db.session.get(Milestone, milestone["id"])
        change = optimistic.TentativeChange(row, ("status", "order_index"))
        change.apply(status="completed", order_index=4)

        error = OperationalError("SELECT", {}, Exception("connection lost"))
        with patch.object(db.session, "refresh", side_effect=error):
            change.restore()
        assert change.restored_from == "snapshot"
        assert (row.status, row.order_index) == ("pending", 0)

    def test_apply_rejects_unsnapshotted_field(self, milestone):
        row = db.session.get(Milestone, milestone["id"])
        change = optimistic.TentativeChange(row, ("status",))
        with pytest.raises(ValueError):
            change.apply(title="nope")
        assert row.title == milestone["title"]


class TestMilestoneOwnership:
    def test_other_user_cannot_move(self, client, milestone):
        res = client.patch(f"/api/v1/milestones/{milestone['id']}/move",
                           json={"status": "completed"}, headers={"X-User-Id": "intruder"})
        assert res.status_code == 404

    def test_other_user_cannot_see_board(self, client, idea):
        res = client.get(f"/api/v1/ideas/{idea['id']}/roadmap", headers={"X-User-Id": "intruder"})
        assert res.status_code == 404

    def test_service_lookup_requires_owner(self, milestone):
        ctx = UserContext(user_id="intruder")
        with pytest.raises(NotFoundError):
            milestone_service.get_milestone(ctx, milestone["id"])
