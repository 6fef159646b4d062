from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from pgvms.errors import ValidationError
from pgvms.models import UNITS, InventoryLot, ItemStatus
from pgvms.state import AppState
from pgvms.utils import ceil_days, new_id, now as _now, to_datetime

DEFAULT_EXPIRING_SOON_DAYS = 3


@dataclass(frozen=True)
class RankedLot:
    rank: int
    lot: InventoryLot
    status: ItemStatus
    days_left: int
    sell_first: bool


def days_left(lot: InventoryLot, now: datetime) -> int:
    return ceil_days(lot.expiry_date - now)


def classify(
    lot: InventoryLot,
    now: datetime,
    *,
    expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
) -> ItemStatus:
    d = days_left(lot, now)
    if d < 0:
        return ItemStatus.EXPIRED
    if d <= expiring_soon_days:
        return ItemStatus.EXPIRING_SOON
    return ItemStatus.FRESH


def rank_for_fefo(
    lots: Iterable[InventoryLot],
    now: datetime,
    *,
    expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
) -> list[RankedLot]:
    """
    First-Expiry-First-Out ordering: soonest expiry first, ties keep insertion
    order (sorted() is stable).

    The first lot in that order that is not Expired gets sell_first; an
    expired lot at the head of the list is shown but never promoted.
    Recomputed on every call.
    """
    ordered = sorted(lots, key=lambda l: l.expiry_date)

    out: list[RankedLot] = []
    promoted = False
    for i, lot in enumerate(ordered):
        status = classify(lot, now, expiring_soon_days=expiring_soon_days)
        sell_first = not promoted and status != ItemStatus.EXPIRED
        promoted = promoted or sell_first
        out.append(
            RankedLot(
                rank=i,
                lot=lot,
                status=status,
                days_left=days_left(lot, now),
                sell_first=sell_first,
            )
        )
    return out


def available_lots(lots: Iterable[InventoryLot], now: datetime) -> list[InventoryLot]:
    """Lots that can still be put on a sale (expiry strictly in the future), FEFO order."""
    return sorted((l for l in lots if l.expiry_date > now), key=lambda l: l.expiry_date)


def count_expiring_soon(
    lots: Iterable[InventoryLot],
    now: datetime,
    *,
    expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
) -> int:
    return sum(
        1 for l in lots if classify(l, now, expiring_soon_days=expiring_soon_days) == ItemStatus.EXPIRING_SOON
    )


def inventory_frame(ranked: list[RankedLot]) -> pd.DataFrame:
    rows = []
    for r in ranked:
        rows.append(
            {
                "rank": r.rank + 1,
                "item": r.lot.name,
                "variant": r.lot.variant,
                "lot_number": r.lot.lot_number,
                "quantity": f"{r.lot.quantity:g} {r.lot.unit}",
                "expiry_date": r.lot.expiry_date.date().isoformat(),
                "days_left": f"{r.days_left} days left" if r.days_left > 0 else "Expired",
                "status": r.status.value,
                "sell_first": "Sell First" if r.sell_first else "",
            }
        )
    return pd.DataFrame(
        rows,
        columns=["rank", "item", "variant", "lot_number", "quantity", "expiry_date", "days_left", "status", "sell_first"],
    )


# -------------------------
# Stock receipt
# -------------------------

def _normalize_item_code(name: str) -> str:
    # "Green Chillies" -> "GRECHI", "Tomatoes" -> "TOMATO"
    parts = [p for p in str(name).strip().upper().split() if p.isalnum()]
    if not parts:
        return "LOT"
    if len(parts) == 1:
        return parts[0][:6]
    return "".join(p[:3] for p in parts)[:8]


def _generate_lot_number(existing: Iterable[InventoryLot], *, name: str, purchase_date: datetime) -> str:
    """
    {ITEMCODE}-{YYYYMMDD}-{NNN}, numbered per item and day.
    Example: TOMATO-20261018-002
    """
    prefix = f"{_normalize_item_code(name)}-{purchase_date.strftime('%Y%m%d')}-"
    n = sum(1 for l in existing if l.lot_number.startswith(prefix))
    return f"{prefix}{n + 1:03d}"


def add_lot(
    state: AppState,
    *,
    name: str,
    variant: str,
    quantity: float,
    unit: str,
    expiry_date,
    purchase_date=None,
    now: Optional[datetime] = None,
) -> tuple[AppState, InventoryLot]:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Item name is required.")

    try:
        quantity = float(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a number.")
    if quantity <= 0:
        raise ValidationError("Quantity must be > 0.")

    unit = str(unit or "").strip().lower()
    if unit not in UNITS:
        raise ValidationError("Invalid unit. Use 'kg' or 'lot'.")

    try:
        expiry = to_datetime(expiry_date)
        purchased = to_datetime(purchase_date) or (now or _now())
    except (TypeError, ValueError):
        raise ValidationError("Dates must be valid ISO dates.")
    if expiry is None:
        raise ValidationError("Expiry date is required.")

    lot = InventoryLot(
        id=new_id("inv"),
        name=name,
        variant=str(variant or "").strip(),
        lot_number=_generate_lot_number(state.inventory, name=name, purchase_date=purchased),
        quantity=quantity,
        unit=unit,
        purchase_date=purchased,
        expiry_date=expiry,
    )
    return state.with_inventory(state.inventory + (lot,)), lot
