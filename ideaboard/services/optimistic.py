"""Two-phase (tentative) updates with explicit rollback.

    change = TentativeChange(milestone, ("status", "order_index"))
    change.apply(status="blocked", order_index=3)
    change.commit()          # raises StoreError after restoring on failure

On a failed commit the session is rolled back and the object is re-read
from the store; if the re-read also fails, the snapshot taken before
``apply`` is written back as the committed state so the instance never
shows the rejected values.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import set_committed_value

from ideaboard.core.exceptions import StoreError
from ideaboard.models import db

logger = logging.getLogger(__name__)


def _persist():
    db.session.commit()


class TentativeChange:
    """Snapshot → apply → commit, restoring the object if the commit fails."""

    def __init__(self, obj, fields):
        self.obj = obj
        self.fields = tuple(fields)
        self.snapshot = {f: getattr(obj, f) for f in self.fields}
        self.applied = {}
        self.restored_from = None

    def apply(self, **changes):
        unknown = set(changes) - set(self.fields)
        if unknown:
            raise ValueError(f"Fields not covered by snapshot: {sorted(unknown)}")
        for name, value in changes.items():
            setattr(self.obj, name, value)
        self.applied.update(changes)
        return self.obj

    @property
    def changed(self):
        return {f: v for f, v in self.applied.items() if self.snapshot.get(f) != v}

    def commit(self, operation="update"):
        try:
            _persist()
        except SQLAlchemyError as exc:
            logger.error(
                "Tentative %s failed for %r; restoring canonical state: %s",
                operation, self.obj, exc,
            )
            self.restore()
            raise StoreError(f"Failed to {operation}. Changes were reverted.", operation=operation) from exc
        return self.obj

    def restore(self):
        """Discard the tentative values: canonical re-read, else snapshot."""
        db.session.rollback()
        try:
            db.session.refresh(self.obj)
            self.restored_from = "store"
        except SQLAlchemyError:
            logger.warning("Canonical re-read failed for %r; restoring snapshot", self.obj)
            for name, value in self.snapshot.items():
                set_committed_value(self.obj, name, value)
            self.restored_from = "snapshot"
        return self.obj
