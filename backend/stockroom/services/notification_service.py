# Overview: Arrival notification fan-out collaborator and per-user notification reads.

"""
Notification Collaborator

fan_out_arrival(record, recipients, received_by_name=...) tells every
interested user that goods arrived. It is BEST-EFFORT: it runs after the
receive has committed, and any failure is logged, never raised, so it can
never roll back a receipt.

The default ArrivalNotificationService writes one ArrivalNotification row per
recipient; each user dismisses their own alerts.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, Sequence

from flask import current_app

from ..extensions import db
from ..models import InventoryRecord, ArrivalNotification, User
from stockroom.time_utils import utcnow
from .concurrency import run_with_retry


class NotificationService(Protocol):
    def fan_out_arrival(
        self,
        record: InventoryRecord,
        recipients: Sequence[User],
        *,
        received_by_name: str,
    ) -> None: ...


class ArrivalNotificationService:
    """Database-backed arrival alerts (arrival_notifications table)."""

    def fan_out_arrival(self, record, recipients, *, received_by_name):
        if not recipients:
            return
        try:
            for user in recipients:
                db.session.add(ArrivalNotification(
                    inventory_id=record.id,
                    user_id=user.id,
                    product_name=record.product_name,
                    order_number=record.order_number,
                    client_name=record.client_name,
                    received_at=record.received_at,
                    received_by_name=received_by_name,
                    rack_location=record.rack_location,
                    total_quantity=record.total_quantity,
                    dismissed=False,
                ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to create arrival notifications for inventory %s", record.id
            )


def admin_recipients() -> list[User]:
    """Active users whose role is admin-class (see Config.ADMIN_ROLES)."""
    roles = list(current_app.config.get("ADMIN_ROLES", ()))
    if not roles:
        return []
    return (
        User.query
        .filter(User.role.in_(roles), User.is_active.is_(True))
        .order_by(User.id)
        .all()
    )


def list_arrivals(user_id: int, *, include_dismissed: bool = False, limit: int = 50) -> list[ArrivalNotification]:
    q = ArrivalNotification.query.filter_by(user_id=user_id)
    if not include_dismissed:
        q = q.filter_by(dismissed=False)
    return (
        q.order_by(ArrivalNotification.created_at.desc(), ArrivalNotification.id.desc())
        .limit(limit)
        .all()
    )


def dismiss_arrivals(user_id: int, notification_ids: Sequence[int] | None = None) -> int:
    """
    Dismiss a user's alerts (all undismissed ones when no ids are given).

    Returns the number of notifications dismissed.
    """
    def _op():
        q = ArrivalNotification.query.filter_by(user_id=user_id, dismissed=False)
        if notification_ids:
            q = q.filter(ArrivalNotification.id.in_(list(notification_ids)))
        now = utcnow()
        count = 0
        for n in q.all():
            n.dismissed = True
            n.dismissed_at = now
            count += 1
        db.session.commit()
        return count

    return run_with_retry(_op)


def prune_dismissed(retention_days: int) -> int:
    """Delete dismissed notifications older than the retention window."""
    cutoff = utcnow() - timedelta(days=retention_days)

    def _op():
        deleted = (
            ArrivalNotification.query
            .filter(ArrivalNotification.dismissed.is_(True), ArrivalNotification.dismissed_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.session.commit()
        return deleted

    return run_with_retry(_op)
