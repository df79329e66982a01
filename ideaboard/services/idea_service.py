"""Idea service layer.

Transaction policy: functions use flush() for ID generation, never commit().
The route handler owns db.session.commit().

Operations:
- list / get (owner-scoped; list ordered priority desc nulls last, newest first)
- create (manual form), capture (voice / chat-bot text)
- update fields, update scores, change status
- activity history
"""
from __future__ import annotations

import logging

from sqlalchemy import or_

from ideaboard.context import UserContext
from ideaboard.core.exceptions import ValidationError
from ideaboard.models import db
from ideaboard.models.activity import ActivityLog, write_activity
from ideaboard.models.idea import (
    IDEA_CATEGORIES, IDEA_SOURCES, IDEA_STATUSES, SCORE_FIELDS, TITLE_MAX_LENGTH, Idea,
)
from ideaboard.services.scoring import HIGH_PRIORITY_THRESHOLD, validate_score

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 5

IDEA_FILTERS = ("all", "high-priority") + IDEA_STATUSES


def _ordered(query):
    return query.order_by(
        Idea.priority_score.is_(None),
        Idea.priority_score.desc(),
        Idea.created_at.desc(),
    )


def list_query(ctx: UserContext, filter_name: str = "all"):
    """Owner-scoped idea query for the dashboard filter buttons."""
    if filter_name not in IDEA_FILTERS:
        raise ValidationError(
            f"filter must be one of: {', '.join(IDEA_FILTERS)}",
            details={"filter": filter_name},
        )
    query = Idea.query.filter(Idea.user_id == ctx.user_id)
    if filter_name == "high-priority":
        query = query.filter(Idea.priority_score > HIGH_PRIORITY_THRESHOLD)
    elif filter_name != "all":
        query = query.filter(Idea.status == filter_name)
    return _ordered(query)


def search_query(query, text: str | None):
    if not text:
        return query
    like = f"%{text.strip()}%"
    return query.filter(or_(Idea.title.ilike(like), Idea.description.ilike(like)))


def get_idea(ctx: UserContext, idea_id: str) -> Idea:
    idea = db.session.get(Idea, idea_id)
    return ctx.require_owned(idea, "Idea", idea_id)


def _clean_title(value) -> str:
    title = str(value or "").strip()
    if not title:
        raise ValidationError("Title is required", details={"title": "required"})
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title must be at most {TITLE_MAX_LENGTH} characters",
            details={"title": "too_long"},
        )
    return title


def _choice(field: str, value, allowed) -> str:
    value = str(value or "").strip().lower()
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(allowed)}",
            details={field: value},
        )
    return value


def _clean_tags(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValidationError("tags must be a list of strings", details={"tags": "invalid"})
    return [str(t).strip() for t in value if str(t).strip()]


def _clean_scores(data: dict, defaults: bool) -> dict:
    scores = {}
    errors = {}
    for field in SCORE_FIELDS:
        if field in data:
            try:
                scores[field] = validate_score(field, data[field])
            except ValueError as exc:
                errors[field] = str(exc)
        elif defaults:
            scores[field] = DEFAULT_SCORE
    if errors:
        raise ValidationError("Invalid scores", details=errors)
    return scores


def create_idea(ctx: UserContext, data: dict) -> Idea:
    """Create an idea from the manual capture form.

    Defaults: category ``tech``, status ``captured``, scores 5/5/5.
    """
    title = _clean_title(data.get("title"))
    category = _choice("category", data.get("category") or "tech", IDEA_CATEGORIES)
    status = _choice("status", data.get("status") or "captured", IDEA_STATUSES)
    scores = _clean_scores(data, defaults=True)

    idea = Idea(
        user_id=ctx.user_id,
        title=title,
        description=str(data.get("description") or ""),
        category=category,
        status=status,
        source="manual",
        tags=_clean_tags(data.get("tags")),
        mood=str(data.get("mood") or ""),
        **scores,
    )
    db.session.add(idea)
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=idea.id, action="idea.created",
        metadata={"source": "manual", "category": category},
    )
    return idea


def split_capture_text(text: str) -> tuple[str, str]:
    """First line (≤255 chars) becomes the title; the full text is the description."""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Captured text is empty", details={"text": "required"})
    first_line = text.splitlines()[0].strip()
    return first_line[:TITLE_MAX_LENGTH], text


def capture_idea(
    ctx: UserContext,
    text: str,
    *,
    source: str,
    category: str = "random",
) -> Idea:
    """Create an idea from free text (voice transcript or chat message).

    Captured ideas are left unscored so they show as "N/A" until triaged.
    """
    if source not in IDEA_SOURCES:
        raise ValidationError(f"Unknown capture source: {source}")
    title, description = split_capture_text(text)
    category = _choice("category", category, IDEA_CATEGORIES)

    idea = Idea(
        user_id=ctx.user_id,
        title=title,
        description=description,
        category=category,
        status="captured",
        source=source,
        tags=[],
        mood="",
    )
    db.session.add(idea)
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=idea.id, action="idea.created",
        metadata={"source": source, "category": category},
    )
    logger.info("Captured idea %s via %s for user=%s", idea.id, source, ctx.user_id)
    return idea


def update_idea(ctx: UserContext, idea: Idea, data: dict) -> Idea:
    """Update descriptive fields and/or status."""
    changed = {}
    if "title" in data:
        idea.title = _clean_title(data["title"])
        changed["title"] = idea.title
    if "description" in data:
        idea.description = str(data["description"] or "")
        changed["description"] = True
    if "category" in data:
        idea.category = _choice("category", data["category"], IDEA_CATEGORIES)
        changed["category"] = idea.category
    if "tags" in data:
        idea.tags = _clean_tags(data["tags"])
        changed["tags"] = idea.tags
    if "mood" in data:
        idea.mood = str(data["mood"] or "")
        changed["mood"] = idea.mood

    old_status = idea.status
    if "status" in data:
        idea.status = _choice("status", data["status"], IDEA_STATUSES)

    if any(f in data for f in SCORE_FIELDS):
        update_scores(ctx, idea, {f: data[f] for f in SCORE_FIELDS if f in data})

    db.session.flush()
    if changed:
        write_activity(
            user_id=ctx.user_id, idea_id=idea.id, action="idea.updated",
            metadata={"fields": sorted(changed)},
        )
    if idea.status != old_status:
        write_activity(
            user_id=ctx.user_id, idea_id=idea.id, action="idea.status_changed",
            metadata={"from": old_status, "to": idea.status},
        )
    return idea


def update_scores(ctx: UserContext, idea: Idea, data: dict) -> Idea:
    """Set any of impact/effort/excitement; priority is recomputed on flush."""
    if not any(f in data for f in SCORE_FIELDS):
        raise ValidationError(
            "At least one of impact_score, effort_score, excitement_score is required",
        )
    scores = _clean_scores(data, defaults=False)
    before = idea.priority_score
    for field, value in scores.items():
        setattr(idea, field, value)
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=idea.id, action="idea.scored",
        metadata={**scores, "priority_before": before, "priority_after": idea.priority_score},
    )
    return idea


def set_status(ctx: UserContext, idea: Idea, status: str) -> Idea:
    old = idea.status
    idea.status = _choice("status", status, IDEA_STATUSES)
    db.session.flush()
    if old != idea.status:
        write_activity(
            user_id=ctx.user_id, idea_id=idea.id, action="idea.status_changed",
            metadata={"from": old, "to": idea.status},
        )
    return idea


def list_activity(ctx: UserContext, idea_id: str, limit: int = 100) -> list[ActivityLog]:
    get_idea(ctx, idea_id)
    return (
        ActivityLog.query
        .filter(ActivityLog.idea_id == idea_id, ActivityLog.user_id == ctx.user_id)
        .order_by(ActivityLog.created_at.desc())
        .limit(limit)
        .all()
    )
