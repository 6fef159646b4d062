from __future__ import annotations

from datetime import date

import pytest

from conftest import make_payment, make_sale
from pgvms.errors import ValidationError
from pgvms.models import Payment, Sale
from pgvms.services.crates import customer_crate_summary
from pgvms.services.ledger import balances
from pgvms.services.reports import build_report
from pgvms.services.sales import (
    SaleLineInput,
    delete_transaction,
    filter_ledger,
    ledger_frame,
    record_payment,
    record_sale,
    update_transaction,
)


def crate_balance(state, customer_id):
    return {s.customer.id: s.balance for s in customer_crate_summary(state.customers, state.crate_ledger)}[customer_id]


def test_record_sale_uses_lot_labels_and_skips_blank_rows(sample_state):
    lines = [
        SaleLineInput("inv004", 5, 30),
        SaleLineInput(None, 2, 10),
        SaleLineInput("inv002", "", 1200, unit="lot"),
        SaleLineInput("inv002", 1, 1100, unit="LOT"),
    ]
    state, sale = record_sale(sample_state, customer_id="cust003", when=date(2026, 10, 18), lines=lines)

    assert state.transactions[0] is sale
    assert [l.item_name for l in sale.lines] == ["Tomatoes (Roma)", "Apples (Granny Smith)"]
    assert sale.lines[1].unit == "lot"
    assert sale.total_amount == 1250
    assert balances(state.customers, state.transactions)["cust003"] == 1250
    assert len(sample_state.transactions) == 4


def test_record_sale_does_not_touch_stock(sample_state):
    state, _ = record_sale(sample_state, customer_id="cust003", when="2026-10-18", lines=[SaleLineInput("inv004", 70, 30)])
    assert state.find_lot("inv004").quantity == 75


def test_record_sale_with_crates_adds_issue_entry(sample_state):
    state, sale = record_sale(
        sample_state,
        customer_id="cust003",
        when="2026-10-18",
        lines=[SaleLineInput("inv003", 10, 25)],
        crates_issued=4,
    )
    added = [e for e in state.crate_ledger if e not in sample_state.crate_ledger]

    assert len(added) == 1
    assert (added[0].customer_id, added[0].crates_issued, added[0].date) == ("cust003", 4, sale.date)
    assert crate_balance(state, "cust003") == 4


def test_record_sale_without_crates_leaves_crate_ledger(sample_state):
    state, _ = record_sale(sample_state, customer_id="cust003", when="2026-10-18", lines=[SaleLineInput("inv003", 1, 25)])
    assert state.crate_ledger == sample_state.crate_ledger


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"customer_id": "", "lines": [SaleLineInput("inv003", 1, 25)]}, "select a customer"),
        ({"customer_id": "cust001", "lines": []}, "at least one valid item"),
        ({"customer_id": "cust001", "lines": [SaleLineInput("inv003", 0, 25)]}, "Quantity must be > 0"),
        ({"customer_id": "cust001", "lines": [SaleLineInput("inv003", 2, 0)]}, "Price per unit must be > 0"),
        ({"customer_id": "cust001", "lines": [SaleLineInput("inv003", "two", 25)]}, "Quantity must be a number"),
        ({"customer_id": "cust001", "lines": [SaleLineInput("nope", 1, 25)]}, "at least one valid item"),
        ({"customer_id": "cust001", "lines": [SaleLineInput("inv003", 1, 25, unit="box")]}, "Invalid unit"),
        ({"customer_id": "cust001", "lines": [SaleLineInput("inv003", 1, 25)], "crates_issued": -1}, "negative"),
    ],
)
def test_record_sale_validation(sample_state, kwargs, message):
    with pytest.raises(ValidationError, match=message):
        record_sale(sample_state, when="2026-10-18", **kwargs)


def test_record_payment(sample_state):
    state, payment = record_payment(sample_state, customer_id="cust001", when="2026-10-18", amount="900")

    assert isinstance(payment, Payment)
    assert payment.payment_amount == 900
    assert balances(state.customers, state.transactions)["cust001"] == 500


@pytest.mark.parametrize("amount", [None, "", 0, -10, "abc"])
def test_record_payment_rejects_bad_amounts(sample_state, amount):
    with pytest.raises(ValidationError):
        record_payment(sample_state, customer_id="cust001", when="2026-10-18", amount=amount)


def test_update_sale_and_payment(sample_state):
    state, sale = update_transaction(
        sample_state,
        "txn001",
        customer_id="cust003",
        when="2026-10-17",
        lines=[SaleLineInput("inv001", 2, 40)],
    )
    assert isinstance(sale, Sale)
    assert (sale.customer_id, sale.total_amount) == ("cust003", 80)

    state, payment = update_transaction(state, "txn003", customer_id="cust001", when="2026-10-17", amount=100)
    assert payment.payment_amount == 100

    b = balances(state.customers, state.transactions)
    assert b == {"cust001": 1400.0, "cust002": 2400.0, "cust003": 80.0}
    assert [t.id for t in state.transactions] == [t.id for t in sample_state.transactions]


def test_update_and_delete_unknown_transaction(sample_state):
    with pytest.raises(ValidationError, match="not found"):
        update_transaction(sample_state, "missing", customer_id="cust001", when="2026-10-18", amount=5)
    with pytest.raises(ValidationError, match="not found"):
        delete_transaction(sample_state, "missing")


def test_delete_transaction(sample_state):
    state = delete_transaction(sample_state, "txn003")
    assert state.find_transaction("txn003") is None
    assert balances(state.customers, state.transactions)["cust001"] == 1900


def test_filter_ledger_views_and_order():
    txs = [
        make_payment("p1", "c1", -1, 50),
        make_sale("s1", "c1", -3, ("Tomatoes (Roma)", 1, 10)),
        make_sale("s2", "c2", -2, ("Apples", 1, 10)),
    ]

    assert [t.id for t in filter_ledger(txs)] == ["p1", "s2", "s1"]
    assert [t.id for t in filter_ledger(txs, view="sales")] == ["s2", "s1"]
    assert [t.id for t in filter_ledger(txs, view="payments")] == ["p1"]
    assert [t.id for t in filter_ledger(txs, customer_id="c1")] == ["p1", "s1"]
    assert [t.id for t in filter_ledger(txs, item_filter="ROMA")] == ["s1"]

    with pytest.raises(ValueError):
        filter_ledger(txs, view="refunds")


def test_ledger_frame(sample_state):
    df = ledger_frame(filter_ledger(sample_state.transactions), sample_state)

    assert list(df["id"]) == ["txn002", "txn003", "txn001", "txn001a"]
    row = df[df["id"] == "txn003"].iloc[0]
    assert (row["customer"], row["type"], row["details"], row["amount"]) == (
        "Rajesh Kumar",
        "payment",
        "Payment Received",
        "- 500.00",
    )
    assert df[df["id"] == "txn001a"].iloc[0]["amount"] == "+ 1,500.00"


def test_non_positive_quantity_rejects_whole_sale(sample_state):
    lines = [SaleLineInput("inv002", 2, 100, unit="lot"), SaleLineInput("inv003", -3, 30)]

    with pytest.raises(ValidationError, match="Quantity must be > 0"):
        record_sale(sample_state, customer_id="cust003", when="2026-10-18", lines=lines, crates_issued=2)


def test_blank_editor_rows_are_skipped(sample_state):
    lines = [
        SaleLineInput("inv004", 1, 30),
        SaleLineInput(None, None, None),
        SaleLineInput(float("nan"), float("nan"), float("nan"), unit="nan"),
        SaleLineInput("inv004", None, 30),
    ]
    _, sale = record_sale(sample_state, customer_id="cust003", when="2026-10-18", lines=lines)
    assert [(l.inventory_lot_id, l.quantity) for l in sale.lines] == [("inv004", 1.0)]


def test_ledger_and_report_item_filters_agree(sample_state):
    for needle in ("tomatoes", "ROMA", "apples (granny", "nothing"):
        ledger_ids = {t.id for t in filter_ledger(sample_state.transactions, item_filter=needle)}
        report = build_report(sample_state.transactions, "2026-01-01", "2026-12-31", item_filter=needle)
        assert ledger_ids == {l.transaction.id for l in report.lines}
