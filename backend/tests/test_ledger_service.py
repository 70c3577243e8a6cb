"""
Quantity ledger tests: arithmetic, negative guard, history ordering, retry.
"""

import random

import pytest
from sqlalchemy.orm.exc import StaleDataError

from stockroom.extensions import db
from stockroom.errors import ValidationError, NotFoundError
from stockroom.models import InventoryItem, InventoryTransaction, InventoryAuditEvent
from stockroom.statuses import TransactionType
from stockroom.services import ledger_service
from stockroom.services.concurrency import run_with_retry


def test_compute_quantities_random_triples():
    rng = random.Random(20261019)
    types = list(TransactionType)
    for _ in range(500):
        before = rng.randint(0, 50)
        tx_type = rng.choice(types)
        amount = rng.randint(1, 60)
        expected = before + (amount if tx_type is TransactionType.RESTOCK else -amount)

        if expected < 0:
            with pytest.raises(ValidationError):
                ledger_service.compute_quantities(before, tx_type, amount)
            continue

        change, after = ledger_service.compute_quantities(before, tx_type, amount)
        assert after == before + change
        assert after == expected
        assert after >= 0


def test_only_restock_adds_stock():
    assert ledger_service.signed_delta(TransactionType.RESTOCK, 4) == 4
    for tx_type in (TransactionType.PICKUP, TransactionType.ADJUSTMENT, TransactionType.MANUAL):
        assert ledger_service.signed_delta(tx_type, 4) == -4


@pytest.mark.parametrize("bad", [0, -3, 1.5, True, "2", None])
def test_validate_quantity_rejects_non_positive_integers(bad):
    with pytest.raises(ValidationError) as exc:
        ledger_service.validate_quantity(bad)
    assert exc.value.field == "quantity"


def test_unknown_transaction_type_rejected():
    with pytest.raises(ValidationError) as exc:
        ledger_service.parse_transaction_type("sale")
    assert exc.value.field == "transaction_type"


def test_restock_appends_and_updates_projection(make_record, actor):
    record = make_record(variants=(("S", 4),))
    item = record.items[0]

    tx = ledger_service.record_transaction(item.id, "restock", 6, notes="  late delivery  ", actor=actor)

    assert (tx.quantity_before, tx.quantity_change, tx.quantity_after) == (4, 6, 10)
    assert tx.notes == "late delivery"
    assert tx.created_by == actor.id
    assert tx.created_by_name == "Dock Clerk"
    assert db.session.get(InventoryItem, item.id).expected_quantity == 10

    event = InventoryAuditEvent.query.filter_by(action="inventory_restock").one()
    assert event.inventory_id == record.id
    assert event.details["quantity_after"] == 10


def test_pickup_more_than_on_hand_is_rejected_and_writes_nothing(make_record, actor):
    record = make_record(variants=(("S", 3),))
    item_id = record.items[0].id

    with pytest.raises(ValidationError, match="would go negative"):
        ledger_service.record_transaction(item_id, TransactionType.PICKUP, 5, actor=actor)

    assert db.session.get(InventoryItem, item_id).expected_quantity == 3
    assert InventoryTransaction.query.count() == 0
    assert InventoryAuditEvent.query.count() == 0


def test_pickup_records_counterpart(make_record, actor):
    record = make_record(variants=(("S", 3),))
    tx = ledger_service.record_transaction(
        record.items[0].id, "pickup", 3, counterpart_name=" Courier Co ", actor=actor
    )
    assert tx.picked_up_by == "Courier Co"
    assert tx.quantity_after == 0


def test_projection_matches_latest_transaction(make_record, actor):
    record = make_record(variants=(("S", 10),))
    item_id = record.items[0].id
    for tx_type, qty in [("pickup", 2), ("restock", 5), ("adjustment", 1), ("manual", 4)]:
        ledger_service.record_transaction(item_id, tx_type, qty, actor=actor)

    history = ledger_service.get_history(item_id)
    assert [t.transaction_type for t in history] == ["manual", "adjustment", "restock", "pickup"]
    assert history[0].quantity_after == db.session.get(InventoryItem, item_id).expected_quantity == 8
    for newer, older in zip(history, history[1:]):
        assert newer.quantity_before == older.quantity_after


def test_history_for_missing_item_raises(app):
    with pytest.raises(NotFoundError):
        ledger_service.get_history(999)


def test_record_transaction_for_missing_item_raises(app, actor):
    with pytest.raises(NotFoundError):
        ledger_service.record_transaction(999, "restock", 1, actor=actor)


def test_actor_is_required(make_record):
    record = make_record(variants=(("S", 1),))
    with pytest.raises(ValidationError) as exc:
        ledger_service.record_transaction(record.items[0].id, "restock", 1, actor=None)
    assert exc.value.field == "actor"


def test_transactions_are_immutable(make_record, actor):
    record = make_record(variants=(("S", 1),))
    tx = ledger_service.record_transaction(record.items[0].id, "restock", 1, actor=actor)

    tx.notes = "rewritten"
    with pytest.raises(ValueError, match="immutable"):
        db.session.flush()
    db.session.rollback()


def test_run_with_retry_retries_stale_writes(app):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise StaleDataError("version mismatch")
        return "ok"

    assert run_with_retry(flaky, backoff_base=0) == "ok"
    assert len(calls) == 2


def test_run_with_retry_does_not_retry_domain_errors(app):
    calls = []

    def invalid():
        calls.append(1)
        raise ValidationError("nope")

    with pytest.raises(ValidationError):
        run_with_retry(invalid, backoff_base=0)
    assert len(calls) == 1
