"""
IdeaBoard
Tests - Idea API.

Covers:
    - Create with defaults, validation errors
    - Detail payload (recommendation, badge, validation questions)
    - List ordering, filters, search, pagination
    - Score updates and priority recomputation
    - Owner isolation (other users' ideas are 404)
    - Voice capture
    - Activity history
    - Auth / Content-Type guards
"""

import pytest

from ideaboard.models import db
from ideaboard.models.activity import ActivityLog, write_activity
from ideaboard.models.idea import Idea


def _create(client, user=None, **kw):
    payload = {"title": "Plant watering reminder"}
    payload.update(kw)
    headers = {"X-User-Id": user} if user else {}
    res = client.post("/api/v1/ideas", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# CREATE / DETAIL
# ═════════════════════════════════════════════════════════════════════════════

class TestCreateIdea:
    def test_defaults(self, client):
        data = _create(client)
        assert data["category"] == "tech"
        assert data["status"] == "captured"
        assert data["source"] == "manual"
        assert data["user_id"] == "test-user"
        assert (data["impact_score"], data["effort_score"], data["excitement_score"]) == (5, 5, 5)
        assert data["priority_score"] == 5.0
        assert data["priority_display"] == "5.00"
        assert data["badge"] == "low"
        assert data["recommendation"]["tier"] == "consider-carefully"

    def test_scores_and_fields(self, client):
        data = _create(
            client, title="  Budget bot  ", category="business", tags=["finance", " ai "],
            mood="hyped", impact_score=9, effort_score=3, excitement_score=8,
        )
        assert data["title"] == "Budget bot"
        assert data["tags"] == ["finance", "ai"]
        assert data["priority_score"] == 24.0
        assert data["badge"] == "high"
        assert data["recommendation"]["tier"] == "must-build"

    def test_title_required(self, client):
        res = client.post("/api/v1/ideas", json={"title": "   "})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"title": "required"}
        assert Idea.query.count() == 0

    def test_title_too_long(self, client):
        res = client.post("/api/v1/ideas", json={"title": "x" * 256})
        assert res.status_code == 400

    @pytest.mark.parametrize("field,value", [
        ("impact_score", 0), ("effort_score", 11), ("excitement_score", "lots"),
    ])
    def test_out_of_range_scores_rejected(self, client, field, value):
        res = client.post("/api/v1/ideas", json={"title": "Bad", field: value})
        assert res.status_code == 400
        assert field in res.get_json()["details"]
        assert Idea.query.count() == 0

    def test_unknown_category(self, client):
        res = client.post("/api/v1/ideas", json={"title": "Bad", "category": "sports"})
        assert res.status_code == 400

    def test_detail_payload(self, client, idea):
        res = client.get(f"/api/v1/ideas/{idea['id']}")
        assert res.status_code == 200
        data = res.get_json()
        assert data["priority_score"] == 12.0
        assert data["badge"] == "medium"
        assert data["recommendation"]["tier"] == "strong-candidate"
        assert len(data["validation_questions"]) == 5
        assert data["milestone_count"] == 0

    def test_missing_idea_404(self, client):
        res = client.get("/api/v1/ideas/does-not-exist")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ═════════════════════════════════════════════════════════════════════════════
# LIST
# ═════════════════════════════════════════════════════════════════════════════

class TestListIdeas:
    def test_ordering_priority_desc_nulls_last(self, client):
        low = _create(client, title="Low", impact_score=2, effort_score=8, excitement_score=2)
        high = _create(client, title="High", impact_score=10, effort_score=2, excitement_score=10)
        unscored = client.post("/api/v1/ideas/voice", json={"transcript": "Unscored"}).get_json()
        mid = _create(client, title="Mid")

        items = client.get("/api/v1/ideas").get_json()["items"]
        assert [i["id"] for i in items] == [high["id"], mid["id"], low["id"], unscored["id"]]
        assert items[-1]["priority_display"] == "N/A"
        assert items[-1]["badge"] == "neutral"

    def test_high_priority_filter(self, client):
        _create(client, title="Edge", impact_score=5, effort_score=5, excitement_score=3)   # 3.0
        _create(client, title="Exactly", impact_score=6, effort_score=2, excitement_score=5)  # 15.0
        hot = _create(client, title="Hot", impact_score=8, effort_score=2, excitement_score=4)  # 16.0
        data = client.get("/api/v1/ideas?filter=high-priority").get_json()
        assert [i["id"] for i in data["items"]] == [hot["id"]]

    def test_status_filter(self, client):
        a = _create(client, title="A")
        _create(client, title="B")
        client.put(f"/api/v1/ideas/{a['id']}", json={"status": "validating"})
        data = client.get("/api/v1/ideas?filter=validating").get_json()
        assert [i["id"] for i in data["items"]] == [a["id"]]

    def test_unknown_filter(self, client):
        assert client.get("/api/v1/ideas?filter=spicy").status_code == 400

    def test_search(self, client):
        _create(client, title="Garden planner", description="seasonal planting")
        _create(client, title="Chess clock")
        data = client.get("/api/v1/ideas?q=planting").get_json()
        assert [i["title"] for i in data["items"]] == ["Garden planner"]

    def test_pagination(self, client):
        for n in range(5):
            _create(client, title=f"Idea {n}")
        data = client.get("/api/v1/ideas?limit=2&offset=1").get_json()
        assert data["total"] == 5
        assert len(data["items"]) == 2


# ═════════════════════════════════════════════════════════════════════════════
# UPDATE / SCORES
# ═════════════════════════════════════════════════════════════════════════════

class TestUpdateIdea:
    def test_update_fields(self, client, idea):
        res = client.put(f"/api/v1/ideas/{idea['id']}", json={
            "title": "Renamed", "status": "planning", "tags": "a, b",
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["title"] == "Renamed"
        assert data["status"] == "planning"
        assert data["tags"] == ["a", "b"]

    def test_invalid_status(self, client, idea):
        res = client.put(f"/api/v1/ideas/{idea['id']}", json={"status": "done"})
        assert res.status_code == 400

    def test_patch_scores_recomputes_priority(self, client, idea):
        res = client.patch(f"/api/v1/ideas/{idea['id']}/scores", json={"effort_score": 1})
        assert res.status_code == 200
        assert res.get_json()["priority_score"] == 48.0

        stored = db.session.get(Idea, idea["id"])
        assert stored.priority_score == 48.0

    def test_clearing_a_score_nulls_priority(self, client, idea):
        res = client.patch(f"/api/v1/ideas/{idea['id']}/scores", json={"impact_score": None})
        data = res.get_json()
        assert data["priority_score"] is None
        assert data["priority_display"] == "N/A"

    def test_scores_body_required(self, client, idea):
        res = client.patch(f"/api/v1/ideas/{idea['id']}/scores", json={"title": "x"})
        assert res.status_code == 400

    def test_invalid_score_leaves_row_unchanged(self, client, idea):
        res = client.patch(f"/api/v1/ideas/{idea['id']}/scores",
                           json={"impact_score": 3, "effort_score": 42})
        assert res.status_code == 400
        stored = db.session.get(Idea, idea["id"])
        assert stored.impact_score == 8


# ═════════════════════════════════════════════════════════════════════════════
# OWNERSHIP
# ═════════════════════════════════════════════════════════════════════════════

class TestOwnerIsolation:
    def test_other_user_gets_404(self, client, idea):
        headers = {"X-User-Id": "intruder"}
        assert client.get(f"/api/v1/ideas/{idea['id']}", headers=headers).status_code == 404
        res = client.put(f"/api/v1/ideas/{idea['id']}", json={"title": "Mine now"}, headers=headers)
        assert res.status_code == 404
        assert db.session.get(Idea, idea["id"]).title == idea["title"]

    def test_list_is_owner_scoped(self, client, idea):
        _create(client, user="intruder", title="Intruder idea")
        mine = client.get("/api/v1/ideas").get_json()["items"]
        theirs = client.get("/api/v1/ideas", headers={"X-User-Id": "intruder"}).get_json()["items"]
        assert [i["id"] for i in mine] == [idea["id"]]
        assert [i["title"] for i in theirs] == ["Intruder idea"]


# ═════════════════════════════════════════════════════════════════════════════
# VOICE CAPTURE / ACTIVITY
# ═════════════════════════════════════════════════════════════════════════════

class TestVoiceCapture:
    def test_first_line_becomes_title(self, client):
        res = client.post("/api/v1/ideas/voice", json={
            "transcript": "Podcast about sourdough\nweekly episodes with guests",
            "category": "content",
        })
        assert res.status_code == 201
        data = res.get_json()
        assert data["title"] == "Podcast about sourdough"
        assert data["description"] == "Podcast about sourdough\nweekly episodes with guests"
        assert data["source"] == "voice"
        assert data["category"] == "content"
        assert data["priority_score"] is None

    def test_long_first_line_truncated(self, client):
        res = client.post("/api/v1/ideas/voice", json={"transcript": "y" * 300})
        assert len(res.get_json()["title"]) == 255

    def test_empty_transcript(self, client):
        res = client.post("/api/v1/ideas/voice", json={"transcript": "   "})
        assert res.status_code == 400
        assert Idea.query.count() == 0


class TestActivity:
    def test_history_records_lifecycle(self, client, idea):
        client.patch(f"/api/v1/ideas/{idea['id']}/scores", json={"impact_score": 10})
        client.put(f"/api/v1/ideas/{idea['id']}", json={"status": "validating"})
        res = client.get(f"/api/v1/ideas/{idea['id']}/activity")
        actions = {e["action"] for e in res.get_json()["items"]}
        assert {"idea.created", "idea.scored", "idea.status_changed"} <= actions

        scored = ActivityLog.query.filter_by(action="idea.scored").one()
        assert scored.details["priority_before"] == 12.0
        assert scored.details["priority_after"] == 15.0

    def test_unknown_action_rejected(self, idea):
        with pytest.raises(ValueError):
            write_activity(user_id="test-user", action="idea.teleported", idea_id=idea["id"])
        assert ActivityLog.query.filter_by(action="idea.teleported").count() == 0


class TestGuards:
    def test_non_json_write_rejected(self, client):
        res = client.post("/api/v1/ideas", data="title=x",
                          content_type="application/x-www-form-urlencoded")
        assert res.status_code == 415

    def test_api_key_required_when_auth_enabled(self, app, client, monkeypatch):
        monkeypatch.setenv("API_AUTH_ENABLED", "true")
        monkeypatch.setenv("API_KEYS", "secret-key:key-owner")
        assert client.get("/api/v1/ideas").status_code == 401
        assert client.get("/api/v1/ideas", headers={"X-API-Key": "wrong"}).status_code == 401

        res = client.post("/api/v1/ideas", json={"title": "Keyed"},
                          headers={"X-API-Key": "secret-key"})
        assert res.status_code == 201
        assert res.get_json()["user_id"] == "key-owner"

    def test_health_is_public(self, client, monkeypatch):
        monkeypatch.setenv("API_AUTH_ENABLED", "true")
        assert client.get("/api/v1/health/ready").status_code == 200
        assert client.get("/api/v1/health/live").get_json()["status"] == "healthy"
