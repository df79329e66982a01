"""
IdeaBoard
Idea domain model.

Models:
    - Idea: a captured concept with impact / effort / excitement scoring.

``priority_score`` is never written by callers: it is recomputed from the
three sub-scores on every insert/update (see ``_priority_sync``).
"""

from ideaboard.models import db, _utcnow, _uuid
from ideaboard.utils.helpers import isoformat

# ── Shared constants ─────────────────────────────────────────────────────

IDEA_CATEGORIES = ("tech", "business", "content", "life", "random")

# Lifecycle: captured → validating → validated → planning → building → shipped
# (archived is reachable from anywhere)
IDEA_STATUSES = (
    "captured", "validating", "validated", "planning", "building", "shipped", "archived",
)

IDEA_SOURCES = ("manual", "voice", "telegram")

SCORE_FIELDS = ("impact_score", "effort_score", "excitement_score")

TITLE_MAX_LENGTH = 255


class Idea(db.Model):
    """
    A captured idea, scored by its owner and ranked by ``priority_score``.

    Ideas are not deleted through the API; they move to ``archived`` or
    ``shipped`` instead.
    """

    __tablename__ = "ideas"
    __table_args__ = (
        db.Index("idx_ideas_user_priority", "user_id", "priority_score"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    title = db.Column(db.String(TITLE_MAX_LENGTH), nullable=False)
    description = db.Column(db.Text, default="")
    category = db.Column(
        db.String(20), nullable=False, default="tech",
        comment="tech | business | content | life | random",
    )
    status = db.Column(
        db.String(20), nullable=False, default="captured",
        comment="captured | validating | validated | planning | building | shipped | archived",
    )
    source = db.Column(
        db.String(20), nullable=False, default="manual",
        comment="manual | voice | telegram",
    )
    tags = db.Column(db.JSON, default=list)
    mood = db.Column(db.String(50), default="")

    # ── Scoring (1..10 each, nullable)
    impact_score = db.Column(db.Integer, nullable=True)
    effort_score = db.Column(db.Integer, nullable=True)
    excitement_score = db.Column(db.Integer, nullable=True)
    priority_score = db.Column(
        db.Float, nullable=True,
        comment="Derived from the three sub-scores; null when any is missing",
    )

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships
    milestones = db.relationship(
        "Milestone", backref="idea", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    projects = db.relationship("Project", backref="idea", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "status": self.status,
            "source": self.source,
            "tags": list(self.tags or []),
            "mood": self.mood,
            "impact_score": self.impact_score,
            "effort_score": self.effort_score,
            "excitement_score": self.excitement_score,
            "priority_score": self.priority_score,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Idea {self.id}: {self.title[:30]}>"
