# Overview: Service-layer operations for the per-item quantity ledger.

"""
Quantity Ledger Invariants (authoritative)

- InventoryTransaction rows are the history; InventoryItem.expected_quantity is
  a projection of the latest quantity_after.
- quantity_after = quantity_before + quantity_change, always.
- quantity_after >= 0, always. A request that would go negative is rejected
  before anything is written.
- The append and the projection update are one unit of work: both are flushed
  in the same DB transaction and committed together.
- Per-item mutations are serialized: the item row is read FOR UPDATE and its
  version_id makes the projection write a compare-and-swap. Two writers that
  read the same quantity_before cannot both commit; the loser is retried
  against a fresh read.

Sign convention:
- restock                    +quantity
- pickup, adjustment, manual -quantity
"""

from __future__ import annotations

from ..extensions import db
from ..models import InventoryItem, InventoryTransaction
from ..statuses import TransactionType
from ..errors import ValidationError, NotFoundError
from ..actor import Actor, require_actor
from .concurrency import get_locked, run_with_retry
from .audit_service import Timer, log_inventory_action


def parse_transaction_type(value) -> TransactionType:
    try:
        return TransactionType(getattr(value, "value", value))
    except ValueError:
        allowed = ", ".join(t.value for t in TransactionType)
        raise ValidationError(
            f"Invalid transaction_type '{value}'. Must be one of: {allowed}",
            field="transaction_type",
        )


def validate_quantity(quantity) -> int:
    """Positive integer; bools and floats are rejected."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer", field="quantity")
    if quantity <= 0:
        raise ValidationError("quantity must be greater than 0", field="quantity")
    return quantity


def signed_delta(transaction_type: TransactionType, quantity: int) -> int:
    return transaction_type.sign * quantity


def compute_quantities(quantity_before: int, transaction_type, quantity: int) -> tuple[int, int]:
    """
    Pure ledger arithmetic: returns (quantity_change, quantity_after).

    Raises:
        ValidationError: if the result would go negative
    """
    tx_type = parse_transaction_type(transaction_type)
    quantity = validate_quantity(quantity)
    change = signed_delta(tx_type, quantity)
    after = quantity_before + change
    if after < 0:
        raise ValidationError(
            f"{tx_type.value} of {quantity} would go negative "
            f"(current quantity {quantity_before})",
            field="quantity",
        )
    return change, after


def record_transaction(
    item_id: int,
    transaction_type,
    quantity: int,
    *,
    counterpart_name: str | None = None,
    notes: str | None = None,
    actor: Actor,
) -> InventoryTransaction:
    """
    Append a quantity-changing event and update the item's current quantity.

    Args:
        item_id: InventoryItem to change
        transaction_type: pickup, restock, adjustment or manual
        quantity: positive amount; the sign comes from the type
        counterpart_name: free-text counterpart (e.g. driver picking up)
        notes: optional notes
        actor: who is recording the change

    Returns:
        The committed InventoryTransaction

    Raises:
        ValidationError: bad type/quantity, or the change would go negative
        NotFoundError: item does not exist
    """
    actor = require_actor(actor)
    tx_type = parse_transaction_type(transaction_type)
    quantity = validate_quantity(quantity)
    timer = Timer()

    def _op():
        item = get_locked(InventoryItem, item_id, label="Inventory item")

        before = item.expected_quantity or 0
        change, after = compute_quantities(before, tx_type, quantity)

        tx = InventoryTransaction(
            inventory_item_id=item.id,
            transaction_type=tx_type.value,
            quantity_change=change,
            quantity_before=before,
            quantity_after=after,
            picked_up_by=(counterpart_name or "").strip() or None,
            notes=(notes or "").strip() or None,
            created_by=actor.id,
            created_by_name=actor.display_name,
        )
        db.session.add(tx)
        item.expected_quantity = after
        db.session.flush()

        log_inventory_action(
            action=f"inventory_{tx_type.value}",
            actor=actor,
            inventory_id=item.inventory_id,
            duration_ms=timer.elapsed(),
            details={
                "item_id": item.id,
                "variant_combo": item.variant_combo,
                "transaction_type": tx_type.value,
                "quantity_before": before,
                "quantity_change": change,
                "quantity_after": after,
                "picked_up_by": tx.picked_up_by,
                "notes": tx.notes,
            },
        )

        db.session.commit()
        return tx

    return run_with_retry(_op)


def get_history(item_id: int) -> list[InventoryTransaction]:
    """
    Transactions for one item, most recent first.

    Raises:
        NotFoundError: item does not exist
    """
    if db.session.get(InventoryItem, item_id) is None:
        raise NotFoundError(f"Inventory item {item_id} not found")

    return (
        InventoryTransaction.query
        .filter_by(inventory_item_id=item_id)
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .all()
    )
