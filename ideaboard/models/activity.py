"""
IdeaBoard
Activity domain models.

Models:
    - Profile: display data for a user id.
    - ActivityLog: append-only trail of idea lifecycle events.
"""

from ideaboard.models import db, _utcnow, _uuid
from ideaboard.utils.helpers import isoformat

ACTIVITY_ACTIONS = {
    "idea.created",
    "idea.updated",
    "idea.scored",
    "idea.status_changed",
    "idea.converted",
    "milestone.created",
    "milestone.updated",
    "milestone.moved",
    "project.updated",
    "project.shipped",
    "time.logged",
    "time.stopped",
}


class Profile(db.Model):
    """User profile; ``id`` is the authenticated user id."""

    __tablename__ = "profiles"

    id = db.Column(db.String(64), primary_key=True)
    username = db.Column(db.String(100), nullable=True, unique=True)
    full_name = db.Column(db.String(200), nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Profile {self.id}: {self.username}>"


class ActivityLog(db.Model):
    """
    Immutable activity trail.

    One row per action. ``metadata`` is a reserved attribute name on
    declarative models, so the column is mapped as ``details``.
    """

    __tablename__ = "activity_log"
    __table_args__ = (
        db.Index("idx_activity_idea", "idea_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"),
        nullable=True,
    )
    action = db.Column(db.String(60), nullable=False)
    details = db.Column("metadata", db.JSON, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "idea_id": self.idea_id,
            "action": self.action,
            "metadata": self.details or {},
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_activity(*, user_id, action, idea_id=None, metadata=None):
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control.  Raises ValueError for an action outside
    ACTIVITY_ACTIONS.
    """
    if action not in ACTIVITY_ACTIONS:
        raise ValueError(f"Unknown activity action: {action!r}")
    log = ActivityLog(
        user_id=user_id,
        idea_id=idea_id,
        action=action,
        details=metadata or {},
    )
    db.session.add(log)
    db.session.flush()
    return log
