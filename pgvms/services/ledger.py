from __future__ import annotations

import logging
from typing import Iterable

from pgvms.models import Customer, CustomerWithBalance, Payment, Sale, Transaction

logger = logging.getLogger(__name__)


def balances(customers: Iterable[Customer], transactions: Iterable[Transaction]) -> dict[str, float]:
    """
    Outstanding balance per customer id over the full history:
    sum of sale totals minus sum of payments.

    Every known customer is present (0 when they have no transactions).
    Transactions for ids not in `customers` still get an entry; transactions
    with no customer id at all are skipped. Pure summation, so input order
    does not matter. Negative means credit.
    """
    out: dict[str, float] = {c.id: 0.0 for c in customers}
    for tx in transactions:
        if not tx.customer_id:
            logger.warning("Skipping transaction %s without a customer", tx.id)
            continue
        out.setdefault(tx.customer_id, 0.0)
        if isinstance(tx, Sale):
            out[tx.customer_id] += tx.total_amount
        elif isinstance(tx, Payment):
            out[tx.customer_id] -= float(tx.payment_amount or 0.0)
    return {k: round(v, 2) for k, v in out.items()}


def customers_with_balance(
    customers: Iterable[Customer],
    transactions: Iterable[Transaction],
) -> list[CustomerWithBalance]:
    customers = list(customers)
    b = balances(customers, transactions)
    return [CustomerWithBalance(customer=c, outstanding_balance=b.get(c.id, 0.0)) for c in customers]


def total_outstanding(rows: Iterable[CustomerWithBalance]) -> float:
    return round(sum(r.outstanding_balance for r in rows), 2)
