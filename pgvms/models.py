from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pgvms.utils import to_datetime

logger = logging.getLogger(__name__)

UNITS = ("kg", "lot")


class ItemStatus(str, Enum):
    FRESH = "Fresh"
    EXPIRING_SOON = "Expiring Soon"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class InventoryLot:
    id: str
    name: str
    variant: str
    lot_number: str
    quantity: float
    unit: str
    purchase_date: datetime
    expiry_date: datetime

    @property
    def label(self) -> str:
        return f"{self.name} ({self.variant})" if self.variant else self.name


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    address: str = ""
    contact_number: str = ""
    photo_url: str = ""
    kyc_verified: bool = False


@dataclass(frozen=True)
class CustomerWithBalance:
    customer: Customer
    outstanding_balance: float


@dataclass(frozen=True)
class SaleLine:
    inventory_lot_id: Optional[str]
    item_name: str
    quantity: Optional[float]
    unit: str
    price_per_unit: Optional[float]

    @property
    def is_valid(self) -> bool:
        return bool(self.inventory_lot_id) and self.quantity is not None and self.price_per_unit is not None

    @property
    def total(self) -> float:
        if not self.is_valid:
            return 0.0
        return round(float(self.quantity) * float(self.price_per_unit), 2)

    def describe(self) -> str:
        qty = f"{float(self.quantity):g}" if self.quantity is not None else "?"
        return f"{qty} {self.unit} {self.item_name}"


@dataclass(frozen=True)
class Sale:
    id: str
    customer_id: str
    date: Optional[datetime]
    lines: tuple[SaleLine, ...] = ()
    kind: str = field(default="sale", init=False)

    @property
    def valid_lines(self) -> tuple[SaleLine, ...]:
        return tuple(l for l in self.lines if l.is_valid)

    @property
    def total_amount(self) -> float:
        return round(sum(l.total for l in self.valid_lines), 2)

    def describe(self) -> str:
        return ", ".join(l.describe() for l in self.valid_lines)


@dataclass(frozen=True)
class Payment:
    id: str
    customer_id: str
    date: Optional[datetime]
    payment_amount: Optional[float] = None
    kind: str = field(default="payment", init=False)

    @property
    def total_amount(self) -> float:
        return float(self.payment_amount or 0.0)

    def describe(self) -> str:
        return "Payment Received"


Transaction = Union[Sale, Payment]


@dataclass(frozen=True)
class CrateLedgerEntry:
    id: str
    customer_id: str
    date: Optional[datetime]
    crates_issued: int = 0
    crates_returned: int = 0
    # Derived; only meaningful on entries returned by crates.with_running_balances().
    balance: int = 0

    @property
    def net(self) -> int:
        return int(self.crates_issued or 0) - int(self.crates_returned or 0)


# -------------------------
# Raw record converters
# -------------------------
# Records use the same keys as the app's JSON export (camelCase) so sample data and
# exports can be fed through unchanged.
# Whole records that cannot be represented raise ValueError/KeyError; the
# loader in services/demo_data.py skips and logs them.

def _num(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _date_or_none(v: Any, *, record_id: str) -> Optional[datetime]:
    try:
        return to_datetime(v)
    except (TypeError, ValueError):
        logger.warning("Record %s has an unparseable date %r", record_id, v)
        return None


def lot_from_record(r: Mapping[str, Any]) -> InventoryLot:
    expiry = to_datetime(r["expiryDate"])
    if expiry is None:
        raise ValueError(f"Lot {r.get('id')!r} has no expiry date.")
    return InventoryLot(
        id=str(r["id"]),
        name=str(r.get("name", "")).strip(),
        variant=str(r.get("variant", "") or "").strip(),
        lot_number=str(r.get("lotNumber", "")),
        quantity=_num(r.get("quantity")) or 0.0,
        unit=str(r.get("unit", "kg")),
        purchase_date=to_datetime(r["purchaseDate"]),
        expiry_date=expiry,
    )


def customer_from_record(r: Mapping[str, Any]) -> Customer:
    return Customer(
        id=str(r["id"]),
        name=str(r.get("name", "")).strip(),
        address=str(r.get("address", "") or ""),
        contact_number=str(r.get("contactNumber", "") or ""),
        photo_url=str(r.get("photoUrl", "") or ""),
        kyc_verified=bool(r.get("aadhaarVerified", False)),
    )


def sale_line_from_record(r: Mapping[str, Any]) -> SaleLine:
    return SaleLine(
        inventory_lot_id=(str(r["inventoryLotId"]) if r.get("inventoryLotId") else None),
        item_name=str(r.get("itemName", "") or ""),
        quantity=_num(r.get("quantity")),
        unit=str(r.get("unit", "kg") or "kg"),
        price_per_unit=_num(r.get("pricePerUnit")),
    )


def transaction_from_record(r: Mapping[str, Any]) -> Transaction:
    tx_id = str(r["id"])
    kind = str(r.get("type", "")).strip().lower()
    when = _date_or_none(r.get("date"), record_id=tx_id)

    if kind == "sale":
        lines = []
        for raw in r.get("items") or []:
            line = sale_line_from_record(raw)
            if not line.is_valid:
                logger.warning("Dropping malformed sale line in %s: %r", tx_id, raw)
                continue
            lines.append(line)
        return Sale(id=tx_id, customer_id=str(r.get("customerId") or ""), date=when, lines=tuple(lines))

    if kind == "payment":
        return Payment(
            id=tx_id,
            customer_id=str(r.get("customerId") or ""),
            date=when,
            payment_amount=_num(r.get("paymentAmount")),
        )

    raise ValueError(f"Unknown transaction type {r.get('type')!r} for {tx_id}.")


def crate_entry_from_record(r: Mapping[str, Any]) -> CrateLedgerEntry:
    entry_id = str(r["id"])
    return CrateLedgerEntry(
        id=entry_id,
        customer_id=str(r.get("customerId") or ""),
        date=_date_or_none(r.get("date"), record_id=entry_id),
        crates_issued=int(_num(r.get("cratesIssued")) or 0),
        crates_returned=int(_num(r.get("cratesReturned")) or 0),
    )
