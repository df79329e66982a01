"""
IdeaBoard
Milestone Blueprint - roadmap kanban board per idea.

Endpoints:
    GET    /api/v1/ideas/<id>/milestones   - List (ordered by order_index)
    POST   /api/v1/ideas/<id>/milestones   - Create (pending, appended)
    GET    /api/v1/ideas/<id>/roadmap      - Kanban board (4 columns + summary)
    PUT    /api/v1/milestones/<id>         - Edit title / description / due_date
    PATCH  /api/v1/milestones/<id>/move    - Move (status / order_index)
"""

import logging

from flask import Blueprint, jsonify, request

from ideaboard.blueprints import json_body
from ideaboard.context import current_context
from ideaboard.services import milestone_service
from ideaboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

milestone_bp = Blueprint("milestones", __name__, url_prefix="/api/v1")


@milestone_bp.route("/ideas/<idea_id>/milestones", methods=["GET"])
def list_milestones(idea_id):
    ctx = current_context()
    items = milestone_service.list_milestones(ctx, idea_id, request.args.get("status"))
    return jsonify({"items": [m.to_dict() for m in items], "total": len(items)})


@milestone_bp.route("/ideas/<idea_id>/milestones", methods=["POST"])
def create_milestone(idea_id):
    """Body: {title, description?, due_date? (YYYY-MM-DD), order_index?}"""
    ctx = current_context()
    milestone = milestone_service.create_milestone(ctx, idea_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(milestone.to_dict()), 201


@milestone_bp.route("/ideas/<idea_id>/roadmap", methods=["GET"])
def roadmap(idea_id):
    ctx = current_context()
    return jsonify(milestone_service.compute_board(ctx, idea_id))


@milestone_bp.route("/milestones/<milestone_id>", methods=["PUT"])
def update_milestone(milestone_id):
    ctx = current_context()
    milestone = milestone_service.get_milestone(ctx, milestone_id)
    milestone_service.update_milestone(ctx, milestone, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(milestone.to_dict())


@milestone_bp.route("/milestones/<milestone_id>/move", methods=["PATCH"])
def move_milestone(milestone_id):
    """Drag-and-drop move. Body: {status?, order_index?}

    The service commits; on a store failure the card is restored and a 500
    is returned by the StoreError handler.
    """
    ctx = current_context()
    milestone = milestone_service.get_milestone(ctx, milestone_id)
    milestone_service.move_milestone(ctx, milestone, json_body())
    return jsonify(milestone.to_dict())
