# Overview: Append-only inventory audit log plus the structured log line for each action.

from __future__ import annotations

import time
from typing import Any, Optional

from flask import current_app

from ..extensions import db
from ..models import InventoryAuditEvent
from ..actor import Actor
from stockroom.time_utils import format_duration

"""
Inventory Audit Invariants (authoritative)

- Append-only: no updates or deletes of existing events.
- No domain logic here; callers decide what to record.
- Events are added to the same DB transaction as the change they describe,
  so a rolled-back operation leaves no audit trace.
- inventory_id is not a foreign key: the trail outlives deleted records.
"""

ACTION_PREFIXES = {
    "inventory_create": "[INV CREATE]",
    "inventory_update": "[INV UPDATE]",
    "inventory_delete": "[INV DELETE]",
    "inventory_received": "[INV RECEIVED]",
    "inventory_archived": "[INV ARCHIVED]",
    "inventory_unarchived": "[INV UNARCHIVED]",
    "inventory_pickup": "[INV PICKUP]",
    "inventory_restock": "[INV RESTOCK]",
    "inventory_adjustment": "[INV ADJUST]",
    "inventory_manual": "[INV MANUAL]",
    "photo_upload_complete": "[UPLOAD DONE]",
    "photo_upload_failed": "[UPLOAD FAIL]",
}


class Timer:
    """Wall-clock timer for measuring operation duration."""

    def __init__(self):
        self._start = time.perf_counter()

    def elapsed(self) -> int:
        return int(round((time.perf_counter() - self._start) * 1000))


def log_inventory_action(
    *,
    action: str,
    actor: Actor | None,
    inventory_id: int | None = None,
    details: Optional[dict[str, Any]] = None,
    duration_ms: int | None = None,
) -> InventoryAuditEvent:
    """
    Record an inventory action in the audit table and the application log.

    The row is flushed, not committed: it commits or rolls back with the
    caller's unit of work.
    """
    ev = InventoryAuditEvent(
        action=action,
        inventory_id=inventory_id,
        actor_id=actor.id if actor else None,
        actor_name=actor.display_name if actor else None,
        duration_ms=duration_ms,
        details=details or {},
    )
    db.session.add(ev)
    db.session.flush()

    parts = []
    if inventory_id is not None:
        parts.append(f"id={inventory_id}")
    if actor is not None:
        parts.append(f"user={actor.display_name}")
    if duration_ms is not None:
        parts.append(f"took={format_duration(duration_ms)}")
    prefix = ACTION_PREFIXES.get(action, f"[{action}]")
    current_app.logger.info("%s %s %s", prefix, " | ".join(parts), details or {})
    return ev


def list_audit_events(
    *,
    inventory_id: int | None = None,
    action: str | None = None,
    limit: int = 100,
) -> list[InventoryAuditEvent]:
    """Most recent first."""
    q = InventoryAuditEvent.query
    if inventory_id is not None:
        q = q.filter(InventoryAuditEvent.inventory_id == inventory_id)
    if action:
        q = q.filter(InventoryAuditEvent.action == action)
    return (
        q.order_by(InventoryAuditEvent.occurred_at.desc(), InventoryAuditEvent.id.desc())
        .limit(limit)
        .all()
    )
