"""
IdeaBoard
Idea Blueprint - capture, scoring and the idea dashboard.

Endpoints:
    GET    /api/v1/ideas                 - List (filter, q, limit/offset)
    POST   /api/v1/ideas                 - Create from the capture form
    GET    /api/v1/ideas/<id>            - Detail + recommendation / badge / questions
    PUT    /api/v1/ideas/<id>            - Update fields and status
    PATCH  /api/v1/ideas/<id>/scores     - Update impact / effort / excitement
    GET    /api/v1/ideas/<id>/activity   - Activity history
    GET    /api/v1/ideas/changes         - Change feed since a sequence number
    POST   /api/v1/ideas/voice           - Capture from a voice transcript
"""

import logging

from flask import Blueprint, jsonify, request

from ideaboard.blueprints import json_body, paginate_query
from ideaboard.context import current_context
from ideaboard.core.exceptions import ValidationError
from ideaboard.services import idea_service
from ideaboard.services.change_feed import get_feed
from ideaboard.services.scoring import VALIDATION_QUESTIONS, describe
from ideaboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

idea_bp = Blueprint("ideas", __name__, url_prefix="/api/v1")


def _idea_payload(idea, detail=False):
    data = idea.to_dict()
    data.update(describe(idea.priority_score))
    if detail:
        data["validation_questions"] = list(VALIDATION_QUESTIONS)
        data["milestone_count"] = idea.milestones.count()
    return data


@idea_bp.route("/ideas", methods=["GET"])
def list_ideas():
    """List the caller's ideas, highest priority first.

    Query params:
        filter - all | high-priority | <status>   (default all)
        q      - substring match on title / description
    """
    ctx = current_context()
    query = idea_service.list_query(ctx, request.args.get("filter", "all"))
    query = idea_service.search_query(query, request.args.get("q"))
    items, total = paginate_query(query)
    return jsonify({"items": [_idea_payload(i) for i in items], "total": total})


@idea_bp.route("/ideas", methods=["POST"])
def create_idea():
    ctx = current_context()
    idea = idea_service.create_idea(ctx, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_idea_payload(idea)), 201


@idea_bp.route("/ideas/<idea_id>", methods=["GET"])
def get_idea(idea_id):
    ctx = current_context()
    idea = idea_service.get_idea(ctx, idea_id)
    return jsonify(_idea_payload(idea, detail=True))


@idea_bp.route("/ideas/<idea_id>", methods=["PUT"])
def update_idea(idea_id):
    ctx = current_context()
    idea = idea_service.get_idea(ctx, idea_id)
    idea_service.update_idea(ctx, idea, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_idea_payload(idea))


@idea_bp.route("/ideas/<idea_id>/scores", methods=["PATCH"])
def update_scores(idea_id):
    """Body: any of {impact_score, effort_score, excitement_score} (1–10 or null)."""
    ctx = current_context()
    idea = idea_service.get_idea(ctx, idea_id)
    idea_service.update_scores(ctx, idea, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_idea_payload(idea))


@idea_bp.route("/ideas/<idea_id>/activity", methods=["GET"])
def idea_activity(idea_id):
    ctx = current_context()
    entries = idea_service.list_activity(ctx, idea_id)
    return jsonify({"items": [e.to_dict() for e in entries], "total": len(entries)})


@idea_bp.route("/ideas/changes", methods=["GET"])
def idea_changes():
    """Poll for idea changes.

    Query params:
        since - last sequence number seen by the client (default 0)

    Returns ``{events, last_seq, reset}``; on ``reset`` the client re-fetches
    the list instead of merging.
    """
    ctx = current_context()
    try:
        since = int(request.args.get("since", 0))
    except (TypeError, ValueError):
        raise ValidationError("since must be an integer", details={"since": request.args.get("since")})
    return jsonify(get_feed().since(since, user_id=ctx.user_id))


@idea_bp.route("/ideas/voice", methods=["POST"])
def capture_voice():
    """Body: {transcript, category?}. The first line becomes the title."""
    ctx = current_context()
    data = json_body()
    transcript = data.get("transcript")
    if not isinstance(transcript, str) or not transcript.strip():
        raise ValidationError("transcript is required", details={"transcript": "required"})
    idea = idea_service.capture_idea(
        ctx, transcript, source="voice", category=data.get("category") or "random",
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_idea_payload(idea)), 201
