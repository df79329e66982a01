"""
IdeaBoard
Project and TimeLog domain models.

Models:
    - Project: an idea promoted to active execution.
    - TimeLog: a start/end interval of work on a project (end null = running).
"""

from ideaboard.models import db, _utcnow, _uuid
from ideaboard.utils.helpers import isoformat

PROJECT_STATUSES = ("active", "paused", "completed", "abandoned")


class Project(db.Model):
    """Execution unit created by converting an idea."""

    __tablename__ = "projects"
    __table_args__ = (
        db.UniqueConstraint("user_id", "slug", name="uq_projects_user_slug"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False)
    github_url = db.Column(db.String(500), nullable=True)
    live_url = db.Column(db.String(500), nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default="active",
        comment="active | paused | completed | abandoned",
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    # ── Relationships
    time_logs = db.relationship(
        "TimeLog", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "idea_id": self.idea_id,
            "user_id": self.user_id,
            "name": self.name,
            "slug": self.slug,
            "github_url": self.github_url,
            "live_url": self.live_url,
            "status": self.status,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.slug}>"


class TimeLog(db.Model):
    """Work interval attributed to a project."""

    __tablename__ = "time_logs"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(
        db.DateTime(timezone=True), nullable=True,
        comment="NULL while the log is still running",
    )
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    @property
    def is_ongoing(self):
        return self.end_time is None

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "start_time": isoformat(self.start_time),
            "end_time": isoformat(self.end_time),
            "description": self.description,
            "is_ongoing": self.is_ongoing,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<TimeLog {self.id}: project={self.project_id}>"
