"""Milestone service layer - roadmap kanban board.

Transaction policy: create/update use flush() and leave the commit to the
route handler. ``move_milestone`` is the exception: it owns its commit so it
can restore the canonical row when the write fails (see ``optimistic``).

State machine:
    pending ⇄ in_progress ⇄ completed ⇄ blocked - any status may move to any
    other by default. ``MILESTONE_TRANSITIONS`` (app config) can narrow this to
    an explicit {from: {to, ...}} table.
"""
from __future__ import annotations

import logging

from flask import current_app, has_app_context
from sqlalchemy import func

from ideaboard.context import UserContext
from ideaboard.core.exceptions import BusinessRuleError, NotFoundError, ValidationError
from ideaboard.models import db
from ideaboard.models.activity import write_activity
from ideaboard.models.milestone import MILESTONE_STATUS_TITLES, MILESTONE_STATUSES, Milestone
from ideaboard.services import idea_service
from ideaboard.services.optimistic import TentativeChange
from ideaboard.utils.helpers import parse_date

logger = logging.getLogger(__name__)

MOVABLE_FIELDS = ("status", "order_index")


# ── Transition rules ─────────────────────────────────────────────────────────

def _configured_transitions():
    if not has_app_context():
        return None
    return current_app.config.get("MILESTONE_TRANSITIONS")


def transition_allowed(old_status: str, new_status: str, transitions: dict | None = None) -> bool:
    """Whether a card may move from ``old_status`` to ``new_status``.

    With no table configured every pair of known statuses is allowed.
    Staying in the same column (reordering) is always allowed.
    """
    if new_status not in MILESTONE_STATUSES:
        return False
    if old_status == new_status:
        return True
    if transitions is None:
        transitions = _configured_transitions()
    if transitions is None:
        return True
    return new_status in set(transitions.get(old_status, ()))


# ── Queries ──────────────────────────────────────────────────────────────────

def _board_order(query):
    return query.order_by(Milestone.order_index, Milestone.created_at, Milestone.id)


def list_milestones(ctx: UserContext, idea_id: str, status: str | None = None) -> list[Milestone]:
    idea_service.get_idea(ctx, idea_id)
    query = Milestone.query.filter(Milestone.idea_id == idea_id)
    if status:
        if status not in MILESTONE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(MILESTONE_STATUSES)}")
        query = query.filter(Milestone.status == status)
    return _board_order(query).all()


def get_milestone(ctx: UserContext, milestone_id: str) -> Milestone:
    milestone = db.session.get(Milestone, milestone_id)
    if milestone is None or not ctx.owns(milestone.idea):
        raise NotFoundError("Milestone", milestone_id, user_id=ctx.user_id)
    return milestone


def _next_order_index(idea_id: str, status: str) -> int:
    current = (
        db.session.query(func.max(Milestone.order_index))
        .filter(Milestone.idea_id == idea_id, Milestone.status == status)
        .scalar()
    )
    return 0 if current is None else current + 1


def compute_board(ctx: UserContext, idea_id: str) -> dict:
    """Kanban board - four status columns in fixed order, plus a summary.

    Returns:
        dict with 'columns' (list of {id, title, milestones}) and 'summary'.
    """
    milestones = list_milestones(ctx, idea_id)
    grouped = {s: [] for s in MILESTONE_STATUSES}
    for m in milestones:
        grouped.setdefault(m.status, []).append(m.to_dict())

    total = len(milestones)
    completed = len(grouped["completed"])
    return {
        "idea_id": idea_id,
        "columns": [
            {"id": s, "title": MILESTONE_STATUS_TITLES[s], "milestones": grouped[s]}
            for s in MILESTONE_STATUSES
        ],
        "summary": {
            "total": total,
            "by_status": {s: len(grouped[s]) for s in MILESTONE_STATUSES},
            "completion_pct": round(completed / total * 100) if total else 0,
        },
    }


# ── Mutations ────────────────────────────────────────────────────────────────

def create_milestone(ctx: UserContext, idea_id: str, data: dict) -> Milestone:
    """Create a milestone in the ``pending`` column, appended after existing cards."""
    idea_service.get_idea(ctx, idea_id)

    title = str(data.get("title") or "").strip()
    if not title:
        raise ValidationError("Milestone title is required", details={"title": "required"})

    due_raw = data.get("due_date")
    due_date = parse_date(due_raw)
    if due_raw and due_date is None:
        raise ValidationError("due_date must be YYYY-MM-DD", details={"due_date": due_raw})

    order_index = data.get("order_index")
    if order_index is None:
        order_index = _next_order_index(idea_id, "pending")
    elif not isinstance(order_index, int) or isinstance(order_index, bool):
        raise ValidationError("order_index must be an integer")

    milestone = Milestone(
        idea_id=idea_id,
        title=title,
        description=str(data.get("description") or ""),
        status="pending",
        due_date=due_date,
        order_index=order_index,
    )
    db.session.add(milestone)
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=idea_id, action="milestone.created",
        metadata={"milestone_id": milestone.id, "title": title},
    )
    return milestone


def update_milestone(ctx: UserContext, milestone: Milestone, data: dict) -> Milestone:
    """Edit title / description / due date. Status changes go through ``move_milestone``."""
    if "status" in data or "order_index" in data:
        raise ValidationError("Use the move endpoint to change status or position")

    if "title" in data:
        title = str(data["title"] or "").strip()
        if not title:
            raise ValidationError("Milestone title cannot be empty")
        milestone.title = title
    if "description" in data:
        milestone.description = str(data["description"] or "")
    if "due_date" in data:
        due_raw = data["due_date"]
        due_date = parse_date(due_raw)
        if due_raw and due_date is None:
            raise ValidationError("due_date must be YYYY-MM-DD", details={"due_date": due_raw})
        milestone.due_date = due_date

    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=milestone.idea_id, action="milestone.updated",
        metadata={"milestone_id": milestone.id, "fields": sorted(data)},
    )
    return milestone


def move_milestone(ctx: UserContext, milestone: Milestone, data: dict) -> Milestone:
    """Drag-and-drop move: set status and/or order_index, then commit.

    Body:
        status      - destination column (defaults to the current one)
        order_index - position in the destination column (defaults to the end)

    Only ``status`` and ``order_index`` are written. If the commit fails the
    row is restored from the store and StoreError is raised.
    """
    if not any(k in data for k in MOVABLE_FIELDS):
        raise ValidationError("status or order_index is required")

    new_status = data.get("status", milestone.status)
    if new_status not in MILESTONE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(MILESTONE_STATUSES)}",
            details={"status": new_status},
        )
    old_status = milestone.status
    if not transition_allowed(old_status, new_status):
        raise BusinessRuleError(
            f"Invalid transition: {old_status} → {new_status}",
            details={"from": old_status, "to": new_status},
        )

    if "order_index" in data and data["order_index"] is not None:
        order_index = data["order_index"]
        if not isinstance(order_index, int) or isinstance(order_index, bool):
            raise ValidationError("order_index must be an integer")
    elif new_status != old_status:
        order_index = _next_order_index(milestone.idea_id, new_status)
    else:
        order_index = milestone.order_index

    change = TentativeChange(milestone, MOVABLE_FIELDS)
    change.apply(status=new_status, order_index=order_index)
    if change.changed:
        write_activity(
            user_id=ctx.user_id, idea_id=milestone.idea_id, action="milestone.moved",
            metadata={
                "milestone_id": milestone.id,
                "from": {"status": old_status, "order_index": change.snapshot["order_index"]},
                "to": {"status": new_status, "order_index": order_index},
            },
        )
    change.commit(operation="move milestone")
    logger.info(
        "Milestone %s moved %s → %s (order %s)", milestone.id, old_status, new_status, order_index,
    )
    return milestone
