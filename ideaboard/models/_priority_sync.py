"""Recompute ``Idea.priority_score`` whenever an idea is flushed.

Every write path (API, webhook, voice capture, shell) goes through the ORM,
so a mapper hook keeps the stored value a pure function of the three
sub-scores. The formula comes from ``PRIORITY_FORMULA`` / ``PRIORITY_WEIGHTS``
when an app context is active, else the default ratio formula.
"""

import logging

from flask import current_app, has_app_context
from sqlalchemy import event

from ideaboard.services.scoring import priority_score, resolve_formula

logger = logging.getLogger(__name__)

_registered = False


def _current_formula():
    if not has_app_context():
        return None
    return resolve_formula(
        current_app.config.get("PRIORITY_FORMULA"),
        current_app.config.get("PRIORITY_WEIGHTS"),
    )


def _sync_priority(mapper, connection, target):
    target.priority_score = priority_score(
        target.impact_score,
        target.effort_score,
        target.excitement_score,
        formula=_current_formula(),
    )


def register_all():
    """Install the insert/update listeners once per process."""
    global _registered
    if _registered:
        return
    from ideaboard.models.idea import Idea

    event.listen(Idea, "before_insert", _sync_priority)
    event.listen(Idea, "before_update", _sync_priority)
    _registered = True
    logger.debug("Priority sync listeners registered on Idea")
