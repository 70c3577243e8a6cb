# Overview: Row locking, optimistic-lock retry and commit helpers for multi-step mutations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import NotFoundError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id columns
    on InventoryRecord/InventoryItem provide the compare-and-swap instead.
    """
    return query.with_for_update().populate_existing()


def get_locked(model, pk: int, *, label: str | None = None):
    """Load one row by primary key under FOR UPDATE, or raise NotFoundError."""
    row = lock_for_update(db.session.query(model).filter_by(id=pk)).first()
    if row is None:
        raise NotFoundError(f"{label or model.__name__} {pk} not found")
    return row


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work with retry on concurrency-related failures.

    func must perform its own reads, so a retry starts from fresh state.
    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (version_id mismatch: another writer changed the row since it was read).
    Any other exception rolls the session back and propagates.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent write detected (%s), retrying attempt %d/%d",
                type(exc).__name__, attempt + 2, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise

