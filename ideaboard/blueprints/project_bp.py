"""
IdeaBoard
Project Blueprint - converting ideas, project edits and time tracking.

Endpoints:
    POST   /api/v1/ideas/<id>/convert           - Convert idea to project
    GET    /api/v1/projects                     - List own projects (+ total minutes)
    GET    /api/v1/projects/<id>                - Detail
    PUT    /api/v1/projects/<id>                - Edit name / slug / urls / status
    POST   /api/v1/projects/<id>/ship           - Mark completed, idea → shipped
    GET    /api/v1/projects/<id>/time-logs      - Logs + aggregate
    POST   /api/v1/projects/<id>/time-logs      - Log time (end_time optional)
    POST   /api/v1/time-logs/<id>/stop          - Stop an ongoing log
"""

import logging

from flask import Blueprint, jsonify, request

from ideaboard.blueprints import json_body
from ideaboard.context import current_context
from ideaboard.services import project_service, time_log_service
from ideaboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1")


@project_bp.route("/ideas/<idea_id>/convert", methods=["POST"])
def convert_idea(idea_id):
    """Body (optional): {name?, slug?, github_url?, live_url?}"""
    ctx = current_context()
    project = project_service.convert_idea(ctx, idea_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project_service.project_summary(ctx, project)), 201


@project_bp.route("/projects", methods=["GET"])
def list_projects():
    ctx = current_context()
    projects = project_service.list_projects(ctx, request.args.get("status"))
    items = [project_service.project_summary(ctx, p) for p in projects]
    return jsonify({"items": items, "total": len(items)})


@project_bp.route("/projects/<project_id>", methods=["GET"])
def get_project(project_id):
    ctx = current_context()
    project = project_service.get_project(ctx, project_id)
    return jsonify(project_service.project_summary(ctx, project))


@project_bp.route("/projects/<project_id>", methods=["PUT"])
def update_project(project_id):
    ctx = current_context()
    project = project_service.get_project(ctx, project_id)
    project_service.update_project(ctx, project, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project_service.project_summary(ctx, project))


@project_bp.route("/projects/<project_id>/ship", methods=["POST"])
def ship_project(project_id):
    ctx = current_context()
    project = project_service.get_project(ctx, project_id)
    project_service.ship_project(ctx, project)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project_service.project_summary(ctx, project))


# ═════════════════════════════════════════════════════════════════════════════
# TIME LOGS
# ═════════════════════════════════════════════════════════════════════════════


@project_bp.route("/projects/<project_id>/time-logs", methods=["GET"])
def list_time_logs(project_id):
    ctx = current_context()
    project = project_service.get_project(ctx, project_id)
    logs = time_log_service.list_time_logs(ctx, project)
    now = ctx.now()
    items = []
    for log in logs:
        row = log.to_dict()
        row["minutes"] = round(max(time_log_service.elapsed_minutes(log, now), 0), 2)
        items.append(row)
    return jsonify({
        "items": items,
        "total": len(items),
        **time_log_service.project_totals(logs, now),
    })


@project_bp.route("/projects/<project_id>/time-logs", methods=["POST"])
def log_time(project_id):
    """Body: {start_time, end_time?, description?} (ISO-8601)"""
    ctx = current_context()
    project = project_service.get_project(ctx, project_id)
    log = time_log_service.log_time(ctx, project, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(log.to_dict()), 201


@project_bp.route("/time-logs/<log_id>/stop", methods=["POST"])
def stop_time_log(log_id):
    ctx = current_context()
    log = time_log_service.get_time_log(ctx, log_id)
    time_log_service.stop_log(ctx, log)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(log.to_dict())
