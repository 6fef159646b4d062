from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from pgvms.models import CrateLedgerEntry, Customer, InventoryLot, Transaction


@dataclass(frozen=True)
class AppState:
    """
    One consistent snapshot of the four owned collections.

    Edits never touch a collection in place: they build a new tuple and a new
    AppState (see with_*), so anything derived from an older snapshot stays
    internally consistent.
    """

    inventory: tuple[InventoryLot, ...] = ()
    customers: tuple[Customer, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    crate_ledger: tuple[CrateLedgerEntry, ...] = ()

    def with_inventory(self, lots: Iterable[InventoryLot]) -> "AppState":
        return replace(self, inventory=tuple(lots))

    def with_customers(self, customers: Iterable[Customer]) -> "AppState":
        return replace(self, customers=tuple(customers))

    def with_transactions(self, transactions: Iterable[Transaction]) -> "AppState":
        return replace(self, transactions=tuple(transactions))

    def with_crate_ledger(self, entries: Iterable[CrateLedgerEntry]) -> "AppState":
        return replace(self, crate_ledger=tuple(entries))

    # lookups

    def find_lot(self, lot_id: Optional[str]) -> Optional[InventoryLot]:
        return next((l for l in self.inventory if l.id == lot_id), None)

    def find_customer(self, customer_id: Optional[str]) -> Optional[Customer]:
        return next((c for c in self.customers if c.id == customer_id), None)

    def find_transaction(self, tx_id: Optional[str]) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == tx_id), None)

    def find_crate_entry(self, entry_id: Optional[str]) -> Optional[CrateLedgerEntry]:
        return next((e for e in self.crate_ledger if e.id == entry_id), None)

    def customer_name(self, customer_id: Optional[str]) -> str:
        c = self.find_customer(customer_id)
        return c.name if c else "Unknown Customer"
