"""
IdeaBoard
Milestone domain model - kanban cards on an idea's roadmap.
"""

from ideaboard.models import db, _utcnow, _uuid
from ideaboard.utils.helpers import isoformat

# Column order on the roadmap board
MILESTONE_STATUSES = ("pending", "in_progress", "completed", "blocked")

MILESTONE_STATUS_TITLES = {
    "pending": "Pending",
    "in_progress": "In Progress",
    "completed": "Completed",
    "blocked": "Blocked",
}


class Milestone(db.Model):
    """
    A sub-task of an idea.

    ``order_index`` positions the card inside its status column. Ties are
    allowed; the board breaks them by ``created_at`` then ``id``.
    """

    __tablename__ = "milestones"
    __table_args__ = (
        db.Index("idx_milestones_idea_status", "idea_id", "status", "order_index"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(
        db.String(20), nullable=False, default="pending",
        comment="pending | in_progress | completed | blocked",
    )
    due_date = db.Column(db.Date, nullable=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "idea_id": self.idea_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "order_index": self.order_index,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Milestone {self.id}: [{self.status}] {self.title[:30]}>"
