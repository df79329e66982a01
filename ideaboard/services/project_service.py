"""Project service layer.

Transaction policy: functions use flush() for ID generation, never commit().
The route handler owns db.session.commit().

Operations:
- convert an idea into a project (idea status → building)
- list / get / update (owner-scoped, slug unique per user)
- ship (project → completed, idea → shipped)
"""
from __future__ import annotations

import logging
import re
import unicodedata

from ideaboard.context import UserContext
from ideaboard.core.exceptions import ConflictError, NotFoundError, ValidationError
from ideaboard.models import db
from ideaboard.models.activity import write_activity
from ideaboard.models.idea import Idea
from ideaboard.models.project import PROJECT_STATUSES, Project, TimeLog
from ideaboard.services import idea_service, time_log_service

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
URL_FIELDS = ("github_url", "live_url")


def slugify(value: str) -> str:
    """``"Café Finder 2.0"`` → ``"cafe-finder-2-0"``."""
    normalized = unicodedata.normalize("NFKD", value or "")
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    return _SLUG_STRIP.sub("-", ascii_text).strip("-")


def _slug_taken(user_id: str, slug: str, exclude_id: str | None = None) -> bool:
    query = Project.query.filter(Project.user_id == user_id, Project.slug == slug)
    if exclude_id:
        query = query.filter(Project.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _unique_slug(user_id: str, base: str) -> str:
    slug = base or "project"
    suffix = 2
    while _slug_taken(user_id, slug):
        slug = f"{base or 'project'}-{suffix}"
        suffix += 1
    return slug


def _clean_url(value) -> str | None:
    value = str(value or "").strip()
    return value or None


# ── Queries ──────────────────────────────────────────────────────────────────

def list_projects(ctx: UserContext, status: str | None = None) -> list[Project]:
    query = Project.query.filter(Project.user_id == ctx.user_id)
    if status:
        if status not in PROJECT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PROJECT_STATUSES)}")
        query = query.filter(Project.status == status)
    return query.order_by(Project.created_at.desc(), Project.id).all()


def get_project(ctx: UserContext, project_id: str) -> Project:
    project = db.session.get(Project, project_id)
    return ctx.require_owned(project, "Project", project_id)


def project_summary(ctx: UserContext, project: Project) -> dict:
    """Project dict with the idea title and tracked-time totals."""
    data = project.to_dict()
    idea = db.session.get(Idea, project.idea_id) if project.idea_id else None
    data["idea_title"] = idea.title if idea is not None else None
    logs = project.time_logs.order_by(TimeLog.start_time.desc()).all()
    data.update(time_log_service.project_totals(logs, ctx.now()))
    return data


# ── Mutations ────────────────────────────────────────────────────────────────

def convert_idea(ctx: UserContext, idea_id: str, data: dict | None = None) -> Project:
    """Promote an idea to a project.

    The project name defaults to the idea title; the slug is derived from the
    name and made unique for the user. The idea moves to ``building``.
    """
    data = data or {}
    idea = idea_service.get_idea(ctx, idea_id)

    name = str(data.get("name") or idea.title).strip()
    if not name:
        raise ValidationError("Project name is required", details={"name": "required"})

    requested_slug = data.get("slug")
    if requested_slug:
        slug = slugify(str(requested_slug))
        if not slug:
            raise ValidationError("Slug must contain letters or digits", details={"slug": requested_slug})
        if _slug_taken(ctx.user_id, slug):
            raise ConflictError("Project", "slug", slug)
    else:
        slug = _unique_slug(ctx.user_id, slugify(name))

    project = Project(
        idea_id=idea.id,
        user_id=ctx.user_id,
        name=name,
        slug=slug,
        github_url=_clean_url(data.get("github_url")),
        live_url=_clean_url(data.get("live_url")),
        status="active",
    )
    db.session.add(project)
    idea_service.set_status(ctx, idea, "building")
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=idea.id, action="idea.converted",
        metadata={"project_id": project.id, "slug": slug},
    )
    logger.info("Idea %s converted to project %s (%s)", idea.id, project.id, slug)
    return project


def update_project(ctx: UserContext, project: Project, data: dict) -> Project:
    """Edit name / slug / links / status.

    Name and slug may not be blanked. Empty URLs are stored as null.
    """
    if "name" in data:
        name = str(data["name"] or "").strip()
        if not name:
            raise ValidationError("Project name is required", details={"name": "required"})
        project.name = name

    if "slug" in data:
        slug = slugify(str(data["slug"] or ""))
        if not slug:
            raise ValidationError("Slug is required", details={"slug": "required"})
        if _slug_taken(ctx.user_id, slug, exclude_id=project.id):
            raise ConflictError("Project", "slug", slug)
        project.slug = slug

    for field in URL_FIELDS:
        if field in data:
            setattr(project, field, _clean_url(data[field]))

    if "status" in data:
        status = str(data["status"] or "").strip().lower()
        if status not in PROJECT_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(PROJECT_STATUSES)}",
                details={"status": data["status"]},
            )
        project.status = status

    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=project.idea_id, action="project.updated",
        metadata={"project_id": project.id, "fields": sorted(data)},
    )
    return project


def ship_project(ctx: UserContext, project: Project) -> Project:
    """Mark the project completed and its source idea shipped."""
    project.status = "completed"
    if project.idea_id:
        try:
            idea = idea_service.get_idea(ctx, project.idea_id)
        except NotFoundError:
            idea = None
        if idea is not None:
            idea_service.set_status(ctx, idea, "shipped")
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=project.idea_id, action="project.shipped",
        metadata={"project_id": project.id},
    )
    return project
