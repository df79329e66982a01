"""
IdeaBoard
Profile Blueprint.

Endpoints:
    GET  /api/v1/profile  - Own profile (created on first access)
    PUT  /api/v1/profile  - Update username / full_name / avatar_url
"""

from flask import Blueprint, jsonify

from ideaboard.blueprints import json_body
from ideaboard.context import current_context
from ideaboard.services import profile_service
from ideaboard.utils.helpers import db_commit_or_error

profile_bp = Blueprint("profile", __name__, url_prefix="/api/v1")


@profile_bp.route("/profile", methods=["GET"])
def get_profile():
    ctx = current_context()
    profile = profile_service.get_or_create_profile(ctx)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(profile.to_dict())


@profile_bp.route("/profile", methods=["PUT"])
def update_profile():
    ctx = current_context()
    profile = profile_service.update_profile(ctx, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(profile.to_dict())
