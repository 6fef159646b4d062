from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from pgvms.errors import ValidationError
from pgvms.models import UNITS, Payment, Sale, SaleLine, Transaction
from pgvms.services import crates as crate_service
from pgvms.services.reports import matches_item
from pgvms.state import AppState
from pgvms.utils import new_id, to_datetime

logger = logging.getLogger(__name__)

LEDGER_VIEWS = ("all", "sales", "payments")


@dataclass
class SaleLineInput:
    inventory_lot_id: Optional[str]
    quantity: Optional[float]
    price_per_unit: Optional[float]
    unit: str = "kg"


def _require_customer(state: AppState, customer_id: Optional[str]) -> str:
    if not customer_id or state.find_customer(customer_id) is None:
        raise ValidationError("Please select a customer.")
    return str(customer_id)


def _require_date(when) -> datetime:
    try:
        dt = to_datetime(when)
    except (TypeError, ValueError):
        raise ValidationError("Date must be a valid ISO date.")
    if dt is None:
        raise ValidationError("Date is required.")
    return dt


def _number(v, what: str) -> Optional[float]:
    # Blank form cells (None, "", NaN from the data editor) read as missing.
    if v is None or v == "":
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        raise ValidationError(f"{what} must be a number.")
    return None if math.isnan(f) else f


def _build_lines(state: AppState, lines: Iterable[SaleLineInput]) -> tuple[SaleLine, ...]:
    """
    Keeps the form rows that resolve to a lot with a quantity and a price.
    Incomplete rows are skipped. A quantity or price that is filled in but
    not > 0 rejects the whole sale, as does having no usable row at all.
    """
    out: list[SaleLine] = []
    for l in lines:
        lot = state.find_lot(l.inventory_lot_id)
        qty = _number(l.quantity, "Quantity")
        price = _number(l.price_per_unit, "Price per unit")
        if qty is not None and qty <= 0:
            raise ValidationError("Quantity must be > 0.")
        if price is not None and price <= 0:
            raise ValidationError("Price per unit must be > 0.")
        unit = str(l.unit or "kg").strip().lower()
        if lot is None or qty is None or price is None:
            continue
        if unit not in UNITS:
            raise ValidationError("Invalid unit. Use 'kg' or 'lot'.")
        out.append(
            SaleLine(
                inventory_lot_id=lot.id,
                item_name=lot.label,
                quantity=qty,
                unit=unit,
                price_per_unit=price,
            )
        )
    if not out:
        raise ValidationError("Please add at least one valid item for the sale.")
    return tuple(out)


def _require_amount(amount) -> float:
    a = _number(amount, "Payment amount")
    if a is None or a <= 0:
        raise ValidationError("Please enter a valid payment amount.")
    return round(a, 2)


# -------------------------
# Writers
# -------------------------

def record_sale(
    state: AppState,
    *,
    customer_id: str,
    when,
    lines: list[SaleLineInput],
    crates_issued: int = 0,
) -> tuple[AppState, Sale]:
    """
    Adds a sale (newest first in the collection). When crates_issued > 0 a
    matching crate-issue entry is added on the same date.
    Stock quantities are left untouched.
    """
    cid = _require_customer(state, customer_id)
    dt = _require_date(when)
    sale_lines = _build_lines(state, lines)

    try:
        crates = int(crates_issued or 0)
    except (TypeError, ValueError):
        raise ValidationError("Crates issued must be a whole number.")
    if crates < 0:
        raise ValidationError("Crates issued cannot be negative.")

    sale = Sale(id=new_id("txn"), customer_id=cid, date=dt, lines=sale_lines)
    new_state = state.with_transactions((sale,) + state.transactions)

    if crates > 0:
        new_state, entry = crate_service.issue_crates(new_state, customer_id=cid, quantity=crates, when=dt)
        logger.info("Sale %s issued %d crate(s) as %s", sale.id, crates, entry.id)

    return new_state, sale


def record_payment(state: AppState, *, customer_id: str, when, amount) -> tuple[AppState, Payment]:
    cid = _require_customer(state, customer_id)
    dt = _require_date(when)
    payment = Payment(id=new_id("txn"), customer_id=cid, date=dt, payment_amount=_require_amount(amount))
    return state.with_transactions((payment,) + state.transactions), payment


def update_transaction(
    state: AppState,
    tx_id: str,
    *,
    customer_id: str,
    when,
    lines: Optional[list[SaleLineInput]] = None,
    amount=None,
) -> tuple[AppState, Transaction]:
    """
    Replaces the whole record. The kind (sale/payment) of a transaction cannot
    change, and crates are not re-issued on edit.
    """
    existing = state.find_transaction(tx_id)
    if existing is None:
        raise ValidationError("Transaction not found.")

    cid = _require_customer(state, customer_id)
    dt = _require_date(when)

    if isinstance(existing, Sale):
        updated: Transaction = replace(existing, customer_id=cid, date=dt, lines=_build_lines(state, lines or []))
    else:
        updated = replace(existing, customer_id=cid, date=dt, payment_amount=_require_amount(amount))

    return state.with_transactions(updated if t.id == tx_id else t for t in state.transactions), updated


def delete_transaction(state: AppState, tx_id: str) -> AppState:
    if state.find_transaction(tx_id) is None:
        raise ValidationError("Transaction not found.")
    return state.with_transactions(t for t in state.transactions if t.id != tx_id)


# -------------------------
# On-screen ledger
# -------------------------

def filter_ledger(
    transactions: Iterable[Transaction],
    *,
    view: str = "all",
    customer_id: Optional[str] = None,
    item_filter: Optional[str] = None,
) -> list[Transaction]:
    """Ledger list, newest first. Undated records are left out."""
    view = str(view or "all").lower()
    if view not in LEDGER_VIEWS:
        raise ValueError(f"Invalid ledger view {view!r}. Use one of {', '.join(LEDGER_VIEWS)}.")

    needle = (item_filter or "").strip().lower()
    out = []
    for tx in transactions:
        if tx.date is None:
            continue
        if view == "sales" and not isinstance(tx, Sale):
            continue
        if view == "payments" and not isinstance(tx, Payment):
            continue
        if customer_id and tx.customer_id != customer_id:
            continue
        if needle and not matches_item(tx, needle):
            continue
        out.append(tx)

    return sorted(out, key=lambda t: t.date, reverse=True)


def ledger_frame(rows: list[Transaction], state: AppState) -> pd.DataFrame:
    data = [
        {
            "id": t.id,
            "date": t.date.date().isoformat(),
            "customer": state.customer_name(t.customer_id),
            "type": t.kind,
            "details": t.describe(),
            "amount": f"{'+' if isinstance(t, Sale) else '-'} {t.total_amount:,.2f}",
        }
        for t in rows
    ]
    return pd.DataFrame(data, columns=["id", "date", "customer", "type", "details", "amount"])
