from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from pgvms.models import Customer, InventoryLot, Payment, Sale, SaleLine
from pgvms.services.demo_data import load_sample_state

NOW = datetime(2026, 10, 18, 12, 0, 0)


def make_lot(lot_id: str, expiry_days: float, *, name: str = "Tomatoes", variant: str = "Roma") -> InventoryLot:
    return InventoryLot(
        id=lot_id,
        name=name,
        variant=variant,
        lot_number=f"LOT-{lot_id}",
        quantity=10.0,
        unit="kg",
        purchase_date=NOW - timedelta(days=2),
        expiry_date=NOW + timedelta(days=expiry_days),
    )


def make_sale(tx_id: str, customer_id: str, days: float, *lines: tuple) -> Sale:
    """lines: (item_name, quantity, price) tuples."""
    return Sale(
        id=tx_id,
        customer_id=customer_id,
        date=NOW + timedelta(days=days),
        lines=tuple(
            SaleLine(inventory_lot_id=f"lot-{i}", item_name=name, quantity=q, unit="kg", price_per_unit=p)
            for i, (name, q, p) in enumerate(lines)
        ),
    )


def make_payment(tx_id: str, customer_id: str, days: float, amount) -> Payment:
    return Payment(id=tx_id, customer_id=customer_id, date=NOW + timedelta(days=days), payment_amount=amount)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def customers() -> list[Customer]:
    return [
        Customer(id="c1", name="Rajesh Kumar", address="Delhi", contact_number="9876543210"),
        Customer(id="c2", name="Sunita Sharma", address="Mumbai", contact_number="9876543211"),
        Customer(id="c3", name="Amit Singh", address="Bangalore", contact_number="9876543212"),
    ]


@pytest.fixture
def sample_state():
    return load_sample_state(NOW)
