"""
Shared pytest fixtures for the IdeaBoard test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - idea / milestone / project: entities created through the API
"""

import pytest

from ideaboard import create_app
from ideaboard.models import db as _db
from ideaboard.services.change_feed import get_feed


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        get_feed().clear()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


def _create_idea(client, user=None, **kw):
    payload = {"title": "Recipe swap app", "category": "tech"}
    payload.update(kw)
    headers = {"X-User-Id": user} if user else {}
    res = client.post("/api/v1/ideas", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _create_milestone(client, idea_id, **kw):
    payload = {"title": "Wireframes"}
    payload.update(kw)
    res = client.post(f"/api/v1/ideas/{idea_id}/milestones", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def idea(client):
    return _create_idea(client, impact_score=8, effort_score=4, excitement_score=6)


@pytest.fixture()
def milestone(client, idea):
    return _create_milestone(client, idea["id"])


@pytest.fixture()
def project(client, idea):
    res = client.post(f"/api/v1/ideas/{idea['id']}/convert", json={})
    assert res.status_code == 201, res.get_json()
    return res.get_json()
