# Overview: Pickup operations: full pickup dispatch and the partial-pickup record splitter.

"""
Partial Pickup Splitter

Picking up P of a record's T units (0 < P < T) forks the record:

    ratio     = P / T
    archived  = round(q * ratio)        per variant, on a NEW archived record
    remaining = round(q * (1 - ratio))  per variant, left on the source record

Rounding is half-up (exact integer arithmetic), applied to each variant
independently and NOT reconciled against the totals. Per variant the two
shares sum to q unless q * ratio falls exactly on .5, in which case both
round up and the variant gains one unit. So:

    0 <= archived_total + remaining_total - T <= variant_count

and the drift is never negative and identical for identical inputs. It is
recorded on the audit event ("drift") rather than corrected.

The split is structural, not a pickup/restock/adjustment: it does not write
InventoryTransaction rows. It is recorded as one "inventory_pickup" audit
event carrying the picked quantity and remainder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..extensions import db
from ..models import InventoryRecord, InventoryItem
from ..statuses import InventoryStatus
from ..errors import ValidationError
from ..actor import Actor, require_actor
from stockroom.time_utils import utcnow
from .concurrency import get_locked, run_with_retry
from .audit_service import Timer, log_inventory_action
from .lifecycle_service import archive_record, ensure_transition, require_picked_up_by


def round_half_up_div(numerator: int, denominator: int) -> int:
    """round(numerator / denominator) with .5 rounding up, for non-negative ints."""
    return (2 * numerator + denominator) // (2 * denominator)


@dataclass(frozen=True)
class SplitPlan:
    total: int
    pickup_quantity: int
    archived: tuple[int, ...]
    remaining: tuple[int, ...]

    @property
    def archived_total(self) -> int:
        return sum(self.archived)

    @property
    def remaining_total(self) -> int:
        return sum(self.remaining)

    @property
    def drift(self) -> int:
        return self.archived_total + self.remaining_total - self.total


def split_quantities(quantities: Sequence[int], pickup_quantity: int) -> SplitPlan:
    """
    Proportionally split per-variant quantities for a partial pickup.

    Raises:
        ValidationError: pickup_quantity not strictly between 0 and the total
    """
    total = sum(quantities)
    if not 0 < pickup_quantity < total:
        raise ValidationError(
            f"Pickup quantity must be between 1 and {total - 1} for a partial pickup",
            field="pickup_quantity",
        )
    rest = total - pickup_quantity
    return SplitPlan(
        total=total,
        pickup_quantity=pickup_quantity,
        archived=tuple(round_half_up_div(q * pickup_quantity, total) for q in quantities),
        remaining=tuple(round_half_up_div(q * rest, total) for q in quantities),
    )


@dataclass
class PickupResult:
    archived_record: InventoryRecord
    remaining_record: InventoryRecord | None = None
    plan: SplitPlan | None = None

    @property
    def is_partial(self) -> bool:
        return self.remaining_record is not None


def _validate_pickup_quantity(pickup_quantity, total: int) -> int:
    if pickup_quantity is None:
        return total
    if isinstance(pickup_quantity, bool) or not isinstance(pickup_quantity, int):
        raise ValidationError("pickup_quantity must be an integer", field="pickup_quantity")
    if pickup_quantity <= 0 or pickup_quantity > total:
        raise ValidationError(
            f"Pickup quantity must be between 1 and {total}", field="pickup_quantity"
        )
    return pickup_quantity


def _archived_copy(source: InventoryRecord, *, picked_up_by: str, actor: Actor) -> InventoryRecord:
    return InventoryRecord(
        order_product_id=source.order_product_id,
        order_id=source.order_id,
        client_id=source.client_id,
        product_order_number=source.product_order_number,
        product_name=source.product_name,
        order_number=source.order_number,
        client_name=source.client_name,
        rack_location=source.rack_location,
        notes=source.notes,
        status=InventoryStatus.ARCHIVED.value,
        received_at=source.received_at,
        received_by=source.received_by,
        archived_at=utcnow(),
        archived_by=actor.id,
        picked_up_by=picked_up_by,
        split_from_id=source.id,
    )


def pickup_inventory(
    record_id: int,
    *,
    picked_up_by: str,
    pickup_quantity: int | None = None,
    actor: Actor,
) -> PickupResult:
    """
    Record a pickup from an in-stock record.

    pickup_quantity None or equal to the record's total is a full pickup
    (the record itself is archived). Anything strictly between 0 and the
    total splits the record.

    Raises:
        ValidationError: missing picked_up_by, record not in stock, or
            pickup_quantity out of range
        NotFoundError: record does not exist
    """
    actor = require_actor(actor)
    name = require_picked_up_by(picked_up_by)
    timer = Timer()

    def _op():
        source = get_locked(InventoryRecord, record_id, label="Inventory record")
        ensure_transition(source, InventoryStatus.ARCHIVED)

        total = source.total_quantity
        quantity = _validate_pickup_quantity(pickup_quantity, total)

        if quantity == total:
            archive_record(source, picked_up_by=name, actor=actor, timer=timer)
            db.session.commit()
            return PickupResult(archived_record=source)

        items = list(source.items)
        plan = split_quantities([i.expected_quantity or 0 for i in items], quantity)

        archived = _archived_copy(source, picked_up_by=name, actor=actor)
        for item, archived_qty, remaining_qty in zip(items, plan.archived, plan.remaining):
            archived.items.append(InventoryItem(
                order_item_id=item.order_item_id,
                variant_combo=item.variant_combo,
                expected_quantity=archived_qty,
                verified=item.verified,
                verified_at=item.verified_at,
                verified_by=item.verified_by,
                notes=item.notes,
            ))
            item.expected_quantity = remaining_qty
        db.session.add(archived)
        db.session.flush()

        log_inventory_action(
            action="inventory_pickup",
            actor=actor,
            inventory_id=source.id,
            duration_ms=timer.elapsed(),
            details={
                "product_name": source.product_name,
                "order_number": source.order_number,
                "picked_up_by": name,
                "picked_quantity": quantity,
                "remaining_quantity": total - quantity,
                "total_quantity": total,
                "archived_total": plan.archived_total,
                "remaining_total": plan.remaining_total,
                "drift": plan.drift,
                "partial_pickup": True,
                "archived_record_id": archived.id,
            },
        )
        db.session.commit()
        return PickupResult(archived_record=archived, remaining_record=source, plan=plan)

    return run_with_retry(_op)
