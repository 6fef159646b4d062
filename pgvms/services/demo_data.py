from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional

from pgvms.models import (
    crate_entry_from_record,
    customer_from_record,
    lot_from_record,
    transaction_from_record,
)
from pgvms.state import AppState
from pgvms.utils import now as _now

logger = logging.getLogger(__name__)


def _sample_records(today: datetime) -> dict[str, list[dict]]:
    def day(n: int) -> str:
        return (today + timedelta(days=n)).isoformat()

    inventory = [
        ("inv001", "Tomatoes", "Heirloom", "LOTA-101", 50, "kg", -5, 2),
        ("inv002", "Apples", "Granny Smith", "LOTB-202", 100, "lot", -2, 12),
        ("inv003", "Potatoes", "Russet", "LOTC-303", 200, "kg", -10, 20),
        ("inv004", "Tomatoes", "Roma", "LOTA-102", 75, "kg", -1, 6),
        ("inv005", "Bananas", "Cavendish", "LOTD-401", 30, "lot", -3, 4),
        ("inv006", "Old Carrots", "Organic", "LOTE-501", 10, "kg", -10, -1),
    ]
    customers = [
        ("cust001", "Rajesh Kumar", "123 Main St, Delhi", "9876543210", "rajesh", True),
        ("cust002", "Sunita Sharma", "456 Market Rd, Mumbai", "9876543211", "sunita", True),
        ("cust003", "Amit Singh", "789 Central Ave, Bangalore", "9876543212", "amit", False),
    ]

    return {
        "inventory": [
            {
                "id": i,
                "name": name,
                "variant": variant,
                "lotNumber": lot,
                "quantity": qty,
                "unit": unit,
                "purchaseDate": day(bought),
                "expiryDate": day(expires),
            }
            for i, name, variant, lot, qty, unit, bought, expires in inventory
        ],
        "customers": [
            {
                "id": i,
                "name": name,
                "address": address,
                "contactNumber": phone,
                "photoUrl": f"https://picsum.photos/seed/{seed}/100",
                "aadhaarVerified": kyc,
            }
            for i, name, address, phone, seed, kyc in customers
        ],
        "transactions": [
            {
                "id": "txn001",
                "customerId": "cust001",
                "date": day(-2),
                "type": "sale",
                "items": [{"inventoryLotId": "inv001", "itemName": "Tomatoes", "quantity": 10, "unit": "kg", "pricePerUnit": 40}],
            },
            {
                "id": "txn001a",
                "customerId": "cust001",
                "date": day(-3),
                "type": "sale",
                "items": [{"inventoryLotId": "inv003", "itemName": "Potatoes", "quantity": 50, "unit": "kg", "pricePerUnit": 30}],
            },
            {
                "id": "txn002",
                "customerId": "cust002",
                "date": day(-1),
                "type": "sale",
                "items": [{"inventoryLotId": "inv002", "itemName": "Apples", "quantity": 2, "unit": "lot", "pricePerUnit": 1200}],
            },
            {
                "id": "txn003",
                "customerId": "cust001",
                "date": day(-1),
                "type": "payment",
                "items": [],
                "paymentAmount": 500,
            },
        ],
        "crate_ledger": [
            {"id": "crate001", "customerId": "cust001", "date": day(-5), "cratesIssued": 10, "cratesReturned": 0},
            {"id": "crate002", "customerId": "cust002", "date": day(-3), "cratesIssued": 25, "cratesReturned": 0},
            {"id": "crate003", "customerId": "cust001", "date": day(-1), "cratesIssued": 0, "cratesReturned": 5},
        ],
    }


def empty_state() -> AppState:
    return AppState()


def _convert(records: Iterable[Mapping[str, Any]], convert: Callable, kind: str) -> tuple:
    out = []
    for r in records:
        try:
            out.append(convert(r))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed %s record %r: %s", kind, r.get("id"), e)
    return tuple(out)


def state_from_records(rec: Mapping[str, Iterable[Mapping[str, Any]]]) -> AppState:
    """
    Builds a snapshot from raw camelCase records. A record the converters
    reject is logged and left out; the rest still load.
    """
    return AppState(
        inventory=_convert(rec.get("inventory", ()), lot_from_record, "inventory"),
        customers=_convert(rec.get("customers", ()), customer_from_record, "customer"),
        transactions=_convert(rec.get("transactions", ()), transaction_from_record, "transaction"),
        crate_ledger=_convert(rec.get("crate_ledger", ()), crate_entry_from_record, "crate"),
    )


def load_sample_state(now: Optional[datetime] = None) -> AppState:
    """Sample collections dated relative to `now` (default: current time)."""
    return state_from_records(_sample_records(now or _now()))
