from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from pgvms.errors import ValidationError
from pgvms.models import CrateLedgerEntry, Customer
from pgvms.state import AppState
from pgvms.utils import new_id, to_datetime

logger = logging.getLogger(__name__)

VIEWS = ("all", "issued", "returned")


@dataclass(frozen=True)
class CrateSummary:
    customer: Customer
    balance: int


def _is_well_formed(e: CrateLedgerEntry) -> bool:
    counts_ok = int(e.crates_issued or 0) >= 0 and int(e.crates_returned or 0) >= 0
    return bool(e.customer_id) and e.date is not None and counts_ok


def _usable(entries: Iterable[CrateLedgerEntry]) -> list[CrateLedgerEntry]:
    out = []
    for e in entries:
        if not _is_well_formed(e):
            logger.warning("Dropping malformed crate entry %s", e.id)
            continue
        out.append(e)
    return out


def with_running_balances(entries: Iterable[CrateLedgerEntry]) -> list[CrateLedgerEntry]:
    """
    Returns copies of the entries in chronological order, each carrying the
    running crate balance of its customer after that entry.

    The date sort is global (all customers together, stable on ties); the
    accumulator is per customer. Entries without a date or customer, or with a
    negative count, are dropped and logged.
    """
    usable = _usable(entries)

    running: dict[str, int] = {}
    out: list[CrateLedgerEntry] = []
    for e in sorted(usable, key=lambda x: x.date):
        running[e.customer_id] = running.get(e.customer_id, 0) + e.net
        out.append(replace(e, balance=running[e.customer_id]))
    return out


def crate_view(entries: Iterable[CrateLedgerEntry], view: str = "all") -> list[CrateLedgerEntry]:
    """
    Ledger table rows: balances first, then the view filter, then newest first.
    Filtering before the balance pass would give wrong running totals.
    """
    view = str(view or "all").lower()
    if view not in VIEWS:
        raise ValueError(f"Invalid crate view {view!r}. Use one of {', '.join(VIEWS)}.")

    annotated = with_running_balances(entries)
    if view == "issued":
        annotated = [e for e in annotated if e.crates_issued > 0]
    elif view == "returned":
        annotated = [e for e in annotated if e.crates_returned > 0]

    return sorted(annotated, key=lambda x: x.date, reverse=True)


def customer_crate_summary(
    customers: Iterable[Customer],
    entries: Iterable[CrateLedgerEntry],
) -> list[CrateSummary]:
    entries = _usable(entries)
    out = []
    for c in customers:
        mine = [e for e in entries if e.customer_id == c.id]
        issued = sum(int(e.crates_issued or 0) for e in mine)
        returned = sum(int(e.crates_returned or 0) for e in mine)
        out.append(CrateSummary(customer=c, balance=issued - returned))
    return out


def total_crate_debt(entries: Iterable[CrateLedgerEntry]) -> int:
    return sum(e.net for e in _usable(entries))


def crate_frame(rows: list[CrateLedgerEntry], state: AppState) -> pd.DataFrame:
    data = [
        {
            "id": e.id,
            "date": e.date.date().isoformat(),
            "customer": state.customer_name(e.customer_id),
            "issued": f"+{e.crates_issued}" if e.crates_issued > 0 else "-",
            "returned": f"-{e.crates_returned}" if e.crates_returned > 0 else "-",
            "balance": e.balance,
        }
        for e in rows
    ]
    return pd.DataFrame(data, columns=["id", "date", "customer", "issued", "returned", "balance"])


# -------------------------
# Ledger edits
# -------------------------

def _validated(state: AppState, customer_id: Optional[str], quantity, when) -> tuple[str, int, datetime]:
    if not customer_id or state.find_customer(customer_id) is None:
        raise ValidationError("Please select a customer.")
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Crate quantity must be a whole number.")
    if qty <= 0:
        raise ValidationError("Crate quantity must be > 0.")
    try:
        dt = to_datetime(when)
    except (TypeError, ValueError):
        raise ValidationError("Date must be a valid ISO date.")
    if dt is None:
        raise ValidationError("Date is required.")
    return str(customer_id), qty, dt


def issue_crates(state: AppState, *, customer_id: str, quantity: int, when) -> tuple[AppState, CrateLedgerEntry]:
    cid, qty, dt = _validated(state, customer_id, quantity, when)
    entry = CrateLedgerEntry(id=new_id("crate"), customer_id=cid, date=dt, crates_issued=qty, crates_returned=0)
    return state.with_crate_ledger(state.crate_ledger + (entry,)), entry


def return_crates(state: AppState, *, customer_id: str, quantity: int, when) -> tuple[AppState, CrateLedgerEntry]:
    cid, qty, dt = _validated(state, customer_id, quantity, when)
    entry = CrateLedgerEntry(id=new_id("crate"), customer_id=cid, date=dt, crates_issued=0, crates_returned=qty)
    return state.with_crate_ledger(state.crate_ledger + (entry,)), entry


def update_crate_entry(
    state: AppState,
    entry_id: str,
    *,
    customer_id: str,
    quantity: int,
    when,
    direction: str,
) -> tuple[AppState, CrateLedgerEntry]:
    """Replaces the whole entry. direction is 'issue' or 'return'."""
    existing = state.find_crate_entry(entry_id)
    if existing is None:
        raise ValidationError("Crate entry not found.")
    if direction not in {"issue", "return"}:
        raise ValidationError("Invalid direction. Use 'issue' or 'return'.")

    cid, qty, dt = _validated(state, customer_id, quantity, when)
    updated = replace(
        existing,
        customer_id=cid,
        date=dt,
        crates_issued=qty if direction == "issue" else 0,
        crates_returned=qty if direction == "return" else 0,
        balance=0,
    )
    return state.with_crate_ledger(updated if e.id == entry_id else e for e in state.crate_ledger), updated


def delete_crate_entry(state: AppState, entry_id: str) -> AppState:
    if state.find_crate_entry(entry_id) is None:
        raise ValidationError("Crate entry not found.")
    return state.with_crate_ledger(e for e in state.crate_ledger if e.id != entry_id)
