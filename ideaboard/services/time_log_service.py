"""Time log service layer.

Elapsed time for one log is ``(end_time or now) - start_time`` in minutes.
A project total sums those values, counting any negative interval as zero
and reporting it under ``anomalies`` so bad rows stay visible.

Transaction policy: flush() only; the route handler commits.
"""
from __future__ import annotations

import logging
from datetime import datetime

from ideaboard.context import UserContext
from ideaboard.core.exceptions import BusinessRuleError, ValidationError
from ideaboard.models import db
from ideaboard.models.activity import write_activity
from ideaboard.models.project import Project, TimeLog
from ideaboard.utils.helpers import as_utc, parse_datetime

logger = logging.getLogger(__name__)


def elapsed_minutes(log: TimeLog, now: datetime) -> float:
    """Signed minutes for one log; an ongoing log runs up to ``now``."""
    end = as_utc(log.end_time) if log.end_time is not None else as_utc(now)
    return (end - as_utc(log.start_time)).total_seconds() / 60


def project_totals(logs, now: datetime) -> dict:
    total = 0.0
    anomalies = []
    ongoing = 0
    for log in logs:
        minutes = elapsed_minutes(log, now)
        if log.is_ongoing:
            ongoing += 1
        if minutes < 0:
            anomalies.append({"time_log_id": log.id, "minutes": round(minutes, 2)})
            continue
        total += minutes
    return {
        "total_minutes": round(total, 2),
        "total_hours": round(total / 60, 2),
        "ongoing_count": ongoing,
        "anomalies": anomalies,
    }


def _parse(field: str, value):
    try:
        return parse_datetime(value)
    except ValueError as exc:
        raise ValidationError(str(exc), details={field: value}) from exc


def get_time_log(ctx: UserContext, log_id: str) -> TimeLog:
    log = db.session.get(TimeLog, log_id)
    return ctx.require_owned(log, "TimeLog", log_id)


def list_time_logs(ctx: UserContext, project: Project) -> list[TimeLog]:
    return (
        project.time_logs
        .filter(TimeLog.user_id == ctx.user_id)
        .order_by(TimeLog.start_time.desc(), TimeLog.id)
        .all()
    )


def log_time(ctx: UserContext, project: Project, data: dict) -> TimeLog:
    """Record a work interval.

    ``start_time`` is required. ``end_time`` may be omitted for a running
    log; when given it must not precede ``start_time``.
    """
    start = _parse("start_time", data.get("start_time"))
    if start is None:
        raise ValidationError("start_time is required", details={"start_time": "required"})
    end = _parse("end_time", data.get("end_time"))
    if end is not None and end < start:
        raise ValidationError(
            "end_time must not be before start_time",
            details={"start_time": start.isoformat(), "end_time": end.isoformat()},
        )

    log = TimeLog(
        project_id=project.id,
        user_id=ctx.user_id,
        start_time=start,
        end_time=end,
        description=str(data.get("description") or "").strip() or None,
    )
    db.session.add(log)
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=project.idea_id, action="time.logged",
        metadata={"project_id": project.id, "time_log_id": log.id, "ongoing": end is None},
    )
    return log


def stop_log(ctx: UserContext, log: TimeLog) -> TimeLog:
    """Close a running log at the context's current time."""
    if not log.is_ongoing:
        raise BusinessRuleError("Time log is already stopped", details={"time_log_id": log.id})
    now = as_utc(ctx.now())
    if now < as_utc(log.start_time):
        raise ValidationError("Cannot stop a log before it started", details={"time_log_id": log.id})
    log.end_time = now
    db.session.flush()
    write_activity(
        user_id=ctx.user_id, idea_id=log.project.idea_id, action="time.stopped",
        metadata={"project_id": log.project_id, "time_log_id": log.id,
                  "minutes": round(elapsed_minutes(log, now), 2)},
    )
    logger.info("Time log %s stopped after %.1f min", log.id, elapsed_minutes(log, now))
    return log
