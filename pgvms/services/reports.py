from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from pgvms.errors import ValidationError
from pgvms.models import Customer, Payment, Sale, Transaction
from pgvms.utils import DateLike, end_of_day, format_money, start_of_day

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = "Unknown Customer"


@dataclass(frozen=True)
class ReportLine:
    transaction: Transaction
    # Resolved when the report is built; later customer edits do not change it.
    customer_name: str

    @property
    def date(self) -> datetime:
        return self.transaction.date

    @property
    def sale_amount(self) -> Optional[float]:
        return self.transaction.total_amount if isinstance(self.transaction, Sale) else None

    @property
    def payment_amount(self) -> Optional[float]:
        if isinstance(self.transaction, Payment):
            return float(self.transaction.payment_amount or 0.0)
        return None


@dataclass(frozen=True)
class Totals:
    total_sales: float
    total_payments: float
    final_balance: float


@dataclass(frozen=True)
class Report:
    start: datetime
    end: datetime
    # Oldest first: the order of the printed statement body.
    lines: tuple[ReportLine, ...]
    totals: Totals

    @property
    def total_sales(self) -> float:
        return self.totals.total_sales

    @property
    def total_payments(self) -> float:
        return self.totals.total_payments

    @property
    def final_balance(self) -> float:
        return self.totals.final_balance

    def ledger_lines(self) -> list[ReportLine]:
        """Newest first, for the on-screen ledger list."""
        return sorted(self.lines, key=lambda l: l.date, reverse=True)


@dataclass(frozen=True)
class PrintView:
    kind: str  # "customer" | "business"
    title: str
    report: Report
    customer: Optional[Customer] = None


def summarize(lines: Iterable[ReportLine]) -> Totals:
    total_sales = 0.0
    total_payments = 0.0
    for l in lines:
        tx = l.transaction
        if isinstance(tx, Sale):
            total_sales += tx.total_amount
        elif isinstance(tx, Payment):
            total_payments += float(tx.payment_amount or 0.0)
    total_sales = round(total_sales, 2)
    total_payments = round(total_payments, 2)
    return Totals(
        total_sales=total_sales,
        total_payments=total_payments,
        final_balance=round(total_sales - total_payments, 2),
    )


def matches_item(tx: Transaction, needle: str) -> bool:
    """True for a sale with a valid line whose label contains `needle` (already lower-cased)."""
    if not isinstance(tx, Sale):
        return False
    return any(needle in (l.item_name or "").lower() for l in tx.valid_lines)


def build_report(
    transactions: Iterable[Transaction],
    start: DateLike,
    end: DateLike,
    *,
    customer_id: Optional[str] = None,
    item_filter: Optional[str] = None,
    customers: Iterable[Customer] = (),
) -> Report:
    """
    Statement over an inclusive day range.

    start is taken from 00:00:00.000 and end to 23:59:59.999 of their days.
    An item filter keeps only sales with a matching line label
    (case-insensitive substring) and drops every payment.
    """
    lo = start_of_day(start)
    hi = end_of_day(end)
    if lo > hi:
        raise ValidationError("Start date must be on or before end date.")

    names = {c.id: c.name for c in customers}
    needle = (item_filter or "").strip().lower()

    kept: list[ReportLine] = []
    for tx in transactions:
        if tx.date is None:
            logger.warning("Skipping transaction %s without a date", tx.id)
            continue
        if not tx.customer_id:
            logger.warning("Skipping transaction %s without a customer", tx.id)
            continue
        if not (lo <= tx.date <= hi):
            continue
        if customer_id and tx.customer_id != customer_id:
            continue
        if needle and not matches_item(tx, needle):
            continue
        kept.append(ReportLine(transaction=tx, customer_name=names.get(tx.customer_id, UNKNOWN_CUSTOMER)))

    kept.sort(key=lambda l: l.date)
    return Report(start=lo, end=hi, lines=tuple(kept), totals=summarize(kept))


def customer_statement(
    transactions: Iterable[Transaction],
    customer: Customer,
    start: DateLike,
    end: DateLike,
) -> PrintView:
    report = build_report(transactions, start, end, customer_id=customer.id, customers=[customer])
    return PrintView(kind="customer", title="Customer Transaction Statement", report=report, customer=customer)


def business_report(
    transactions: Iterable[Transaction],
    customers: Iterable[Customer],
    start: DateLike,
    end: DateLike,
) -> PrintView:
    report = build_report(transactions, start, end, customers=customers)
    return PrintView(kind="business", title="Business Transaction Report", report=report)


# -------------------------
# Rendering
# -------------------------

def statement_frame(view: PrintView) -> pd.DataFrame:
    cols = ["date"] + (["customer"] if view.kind == "business" else []) + ["details", "sale", "payment"]
    rows = []
    for l in view.report.lines:
        row = {
            "date": l.date.date().isoformat(),
            "details": l.transaction.describe(),
            "sale": l.sale_amount,
            "payment": l.payment_amount,
        }
        if view.kind == "business":
            row["customer"] = l.customer_name
        rows.append(row)
    return pd.DataFrame(rows, columns=cols)


def statement_csv(view: PrintView) -> str:
    return statement_frame(view).to_csv(index=False)


def render_statement_html(view: PrintView, *, currency_symbol: str = "₹") -> str:
    """Static, printable statement (the Print button prints this page)."""
    esc = html.escape
    r = view.report

    def money(v: Optional[float]) -> str:
        return "-" if v is None else esc(format_money(v, currency_symbol))

    head = "<th>Date</th>" + ("<th>Customer</th>" if view.kind == "business" else "")
    head += "<th>Details</th><th class='num'>Sale</th><th class='num'>Payment</th>"

    body = []
    for l in r.lines:
        cells = f"<td>{l.date.date().isoformat()}</td>"
        if view.kind == "business":
            cells += f"<td>{esc(l.customer_name)}</td>"
        cells += f"<td>{esc(l.transaction.describe())}</td>"
        cells += f"<td class='num'>{money(l.sale_amount)}</td><td class='num'>{money(l.payment_amount)}</td>"
        body.append(f"<tr>{cells}</tr>")

    customer_block = ""
    if view.customer is not None:
        c = view.customer
        customer_block = (
            f"<p><strong>Customer:</strong> {esc(c.name)}</p>"
            f"<p><strong>Contact:</strong> {esc(c.contact_number)}</p>"
            f"<p><strong>Address:</strong> {esc(c.address)}</p>"
        )

    return f"""<!doctype html>
<html><head><meta charset="utf-8"><title>{esc(view.title)}</title>
<style>
body {{ font-family: sans-serif; max-width: 56rem; margin: 2rem auto; color: #1f2937; }}
table {{ width: 100%; border-collapse: collapse; }}
th, td {{ padding: .4rem .6rem; border-bottom: 1px solid #e5e7eb; text-align: left; }}
.num {{ text-align: right; }}
.summary td {{ border: none; }}
</style></head>
<body>
<header><h1>PGVMS</h1><p>Perishable Goods Vendor Management System</p></header>
<section><h2>{esc(view.title)}</h2>{customer_block}
<p><strong>Report Period:</strong> {r.start.date().isoformat()} to {r.end.date().isoformat()}</p></section>
<table><thead><tr>{head}</tr></thead><tbody>{''.join(body)}</tbody></table>
<h3>Summary</h3>
<table class="summary">
<tr><td>Total Sales:</td><td class="num">{money(r.total_sales)}</td></tr>
<tr><td>Total Payments:</td><td class="num">{money(r.total_payments)}</td></tr>
<tr><td><strong>Final Balance:</strong></td><td class="num"><strong>{money(r.final_balance)}</strong></td></tr>
</table>
</body></html>
"""
