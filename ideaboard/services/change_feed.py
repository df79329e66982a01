"""Idea change feed.

Two halves:

Store side
    ``ChangeFeed`` is a bounded, sequence-numbered buffer of idea
    INSERT / UPDATE / DELETE events. Session hooks collect changed ideas at
    flush time and publish them only after the transaction commits, so a
    rolled-back write never reaches clients.

Client side
    ``reduce_ideas(ideas, event)`` is a pure reducer that folds one event
    into an idea list ordered the same way as the list endpoint (priority
    desc with nulls last, then newest first). ``IdeaFeed`` wraps it and can
    optionally re-fetch on UPDATE/DELETE instead of merging.

Delivery is at-least-once: the same idea may appear in several events for
one transaction, and a client that falls behind the buffer gets
``reset=True`` and must re-fetch the whole list.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable

from flask import current_app, has_app_context
from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
EVENT_TYPES = (INSERT, UPDATE, DELETE)

EXTENSION_KEY = "ideaboard.change_feed"
_PENDING_KEY = "ideaboard.pending_idea_events"


@dataclass(frozen=True)
class ChangeEvent:
    type: str
    record: dict
    seq: int = 0
    user_id: str | None = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {"seq": self.seq, "type": self.type, "record": self.record}

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeEvent":
        etype = str(data.get("type", "")).upper()
        if etype not in EVENT_TYPES:
            raise ValueError(f"Unknown change event type: {data.get('type')!r}")
        record = data.get("record") or {}
        if "id" not in record:
            raise ValueError("Change event record must carry an id")
        return cls(type=etype, record=record, seq=int(data.get("seq", 0)))


class ChangeFeed:
    """Thread-safe ring buffer of committed idea changes."""

    def __init__(self, maxlen: int = 500) -> None:
        self._events: deque[ChangeEvent] = deque(maxlen=maxlen)
        self._seq = 0
        self._lock = threading.Lock()

    @property
    def last_seq(self) -> int:
        return self._seq

    def publish(self, etype: str, record: dict, user_id: str | None = None) -> ChangeEvent:
        with self._lock:
            self._seq += 1
            evt = ChangeEvent(type=etype, record=record, seq=self._seq, user_id=user_id)
            self._events.append(evt)
        return evt

    def since(self, seq: int, user_id: str | None = None) -> dict:
        """Events after ``seq`` visible to ``user_id``.

        ``reset`` is True when events after ``seq`` have already been
        evicted from the buffer; the caller must re-fetch instead of merging.
        """
        with self._lock:
            events = list(self._events)
            last = self._seq
        oldest = events[0].seq if events else last + 1
        reset = seq < oldest - 1
        visible = [
            e for e in events
            if e.seq > seq and (user_id is None or e.user_id == user_id)
        ]
        return {
            "events": [e.to_dict() for e in visible],
            "last_seq": last,
            "reset": reset,
        }

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


# ── Ordering + reducer ───────────────────────────────────────────────────────

def _priority_key(idea: dict):
    score = idea.get("priority_score")
    return (score is None, -(score or 0))


def sort_ideas(ideas: Iterable[dict]) -> list[dict]:
    """Priority desc (nulls last), then created_at desc."""
    newest_first = sorted(ideas, key=lambda i: i.get("created_at") or "", reverse=True)
    return sorted(newest_first, key=_priority_key)


def reduce_ideas(ideas: list[dict], event: ChangeEvent) -> list[dict]:
    """Return the idea list after applying ``event``. ``ideas`` is not mutated."""
    record = event.record
    rest = [i for i in ideas if i.get("id") != record.get("id")]
    if event.type == DELETE:
        return rest
    if event.type in (INSERT, UPDATE):
        return sort_ideas([record] + rest)
    raise ValueError(f"Unknown change event type: {event.type!r}")


class IdeaFeed:
    """Client-side idea list kept current by change events.

    Inserts are always merged locally. With ``refetch`` set, updates and
    deletes trigger a full reload instead of a merge.
    """

    def __init__(self, ideas: Iterable[dict] = (), refetch: Callable[[], list[dict]] | None = None):
        self.ideas = sort_ideas(ideas)
        self._refetch = refetch
        self.last_seq = 0

    def apply(self, event: ChangeEvent) -> list[dict]:
        if event.type != INSERT and self._refetch is not None:
            self.ideas = sort_ideas(self._refetch())
        else:
            self.ideas = reduce_ideas(self.ideas, event)
        self.last_seq = max(self.last_seq, event.seq)
        return self.ideas

    def apply_batch(self, payload: dict) -> list[dict]:
        """Apply a ``ChangeFeed.since`` response."""
        if payload.get("reset") and self._refetch is not None:
            self.ideas = sort_ideas(self._refetch())
        else:
            for raw in payload.get("events", []):
                self.apply(ChangeEvent.from_dict(raw))
        self.last_seq = max(self.last_seq, int(payload.get("last_seq", 0)))
        return self.ideas


# ── Session hooks ────────────────────────────────────────────────────────────

def _collect_idea_changes(session, flush_context):
    from ideaboard.models.idea import Idea

    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        if isinstance(obj, Idea):
            pending.append((INSERT, obj.to_dict(), obj.user_id))
    for obj in session.dirty:
        if isinstance(obj, Idea) and session.is_modified(obj, include_collections=False):
            pending.append((UPDATE, obj.to_dict(), obj.user_id))
    for obj in session.deleted:
        if isinstance(obj, Idea):
            pending.append((DELETE, {"id": obj.id, "user_id": obj.user_id}, obj.user_id))


def _publish_pending(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending or not has_app_context():
        return
    feed = current_app.extensions.get(EXTENSION_KEY)
    if feed is None:
        return
    for etype, record, user_id in pending:
        feed.publish(etype, record, user_id=user_id)
    logger.debug("Published %d idea change event(s)", len(pending))


def _discard_pending(session):
    session.info.pop(_PENDING_KEY, None)


_hooks_installed = False


def init_change_feed(app) -> ChangeFeed:
    """Attach a ChangeFeed to ``app`` and install the session hooks once."""
    global _hooks_installed
    feed = ChangeFeed(maxlen=app.config.get("CHANGE_FEED_SIZE", 500))
    app.extensions[EXTENSION_KEY] = feed
    if not _hooks_installed:
        sa_event.listen(Session, "after_flush", _collect_idea_changes)
        sa_event.listen(Session, "after_commit", _publish_pending)
        sa_event.listen(Session, "after_rollback", _discard_pending)
        _hooks_installed = True
    return feed


def get_feed() -> ChangeFeed:
    return current_app.extensions[EXTENSION_KEY]
