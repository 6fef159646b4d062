from __future__ import annotations

import logging

import pytest

from pgvms.models import (
    Customer,
    ItemStatus,
    Payment,
    Sale,
    crate_entry_from_record,
    customer_from_record,
    lot_from_record,
    transaction_from_record,
)
from pgvms.services.crates import customer_crate_summary, total_crate_debt, with_running_balances
from pgvms.services.ledger import balances


def test_sale_record_drops_malformed_lines(caplog):
    record = {
        "id": "t1",
        "customerId": "c1",
        "date": "2026-10-17T09:30:00",
        "type": "sale",
        "items": [
            {"inventoryLotId": "inv1", "itemName": "Tomatoes", "quantity": 10, "unit": "kg", "pricePerUnit": 40},
            {"inventoryLotId": "", "itemName": "Ghost", "quantity": 1, "unit": "kg", "pricePerUnit": 10},
            {"inventoryLotId": "inv2", "itemName": "Apples", "quantity": None, "unit": "lot", "pricePerUnit": 10},
            {"inventoryLotId": "inv3", "itemName": "Onions", "quantity": "2", "unit": "kg", "pricePerUnit": "x"},
        ],
    }
    with caplog.at_level(logging.WARNING, logger="pgvms.models"):
        tx = transaction_from_record(record)

    assert isinstance(tx, Sale)
    assert [l.item_name for l in tx.lines] == ["Tomatoes"]
    assert tx.total_amount == 400
    assert tx.describe() == "10 kg Tomatoes"
    assert len([r for r in caplog.records if "malformed sale line" in r.getMessage()]) == 3


def test_payment_record():
    tx = transaction_from_record({"id": "p1", "customerId": "c1", "date": "2026-10-17", "type": "Payment", "paymentAmount": "250"})

    assert isinstance(tx, Payment)
    assert tx.payment_amount == 250
    assert tx.describe() == "Payment Received"


def test_payment_record_without_amount_counts_zero():
    tx = transaction_from_record({"id": "p1", "customerId": "c1", "date": "2026-10-17", "type": "payment"})
    assert tx.total_amount == 0


def test_unparseable_date_becomes_none():
    tx = transaction_from_record({"id": "p1", "customerId": "c1", "date": "yesterday", "type": "payment", "paymentAmount": 5})
    assert tx.date is None


def test_unknown_transaction_type():
    with pytest.raises(ValueError, match="Unknown transaction type"):
        transaction_from_record({"id": "r1", "customerId": "c1", "date": "2026-10-17", "type": "refund"})


def test_lot_and_customer_records():
    lot = lot_from_record(
        {
            "id": "inv1",
            "name": " Tomatoes ",
            "variant": "Roma",
            "lotNumber": "LOTA-1",
            "quantity": "75",
            "unit": "kg",
            "purchaseDate": "2026-10-10",
            "expiryDate": "2026-10-20T00:00:00Z",
        }
    )
    assert lot.label == "Tomatoes (Roma)"
    assert lot.quantity == 75.0
    assert lot.expiry_date.tzinfo is None

    c = customer_from_record({"id": "c1", "name": "Rajesh", "contactNumber": "98", "aadhaarVerified": True})
    assert (c.contact_number, c.kyc_verified, c.address) == ("98", True, "")


def test_crate_record_defaults():
    e = crate_entry_from_record({"id": "cr1", "customerId": "c1", "date": "2026-10-17", "cratesIssued": None})
    assert (e.crates_issued, e.crates_returned, e.net) == (0, 0, 0)


def test_status_values_are_display_labels():
    assert [s.value for s in ItemStatus] == ["Fresh", "Expiring Soon", "Expired"]


def test_null_customer_ids_are_not_aggregated():
    crate = crate_entry_from_record({"id": "cr1", "customerId": None, "date": "2026-10-17", "cratesIssued": 3})
    payment = transaction_from_record(
        {"id": "p1", "customerId": None, "date": "2026-10-17", "type": "payment", "paymentAmount": 5}
    )

    assert crate.customer_id == ""
    assert payment.customer_id == ""
    assert with_running_balances([crate]) == []
    assert total_crate_debt([crate]) == 0
    assert balances([], [payment]) == {}


def test_negative_crate_counts_are_dropped():
    good = crate_entry_from_record({"id": "ok", "customerId": "x", "date": "2026-10-16", "cratesIssued": 4})
    bad = crate_entry_from_record({"id": "neg", "customerId": "x", "date": "2026-10-17", "cratesIssued": -5})

    assert [(e.id, e.balance) for e in with_running_balances([good, bad])] == [("ok", 4)]
    assert total_crate_debt([good, bad]) == 4
    assert customer_crate_summary([Customer(id="x", name="X")], [good, bad])[0].balance == 4


def test_lot_record_without_expiry_is_rejected():
    with pytest.raises(ValueError, match="no expiry date"):
        lot_from_record({"id": "inv9", "name": "Okra", "purchaseDate": "2026-10-10", "expiryDate": None})
    with pytest.raises(KeyError):
        lot_from_record({"id": "inv9", "name": "Okra", "purchaseDate": "2026-10-10"})
