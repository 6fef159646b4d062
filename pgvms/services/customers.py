from __future__ import annotations

from dataclasses import replace
from typing import Optional

from pgvms.errors import ValidationError
from pgvms.models import Customer
from pgvms.state import AppState
from pgvms.utils import new_id


def _default_photo_url(seed: str) -> str:
    return f"https://picsum.photos/seed/{seed}/100"


def _clean(v: Optional[str]) -> str:
    return str(v or "").strip()


def _validate(name: str, contact_number: str, address: str) -> None:
    if not name:
        raise ValidationError("Full name is required.")
    if not contact_number:
        raise ValidationError("Contact number is required.")
    if not address:
        raise ValidationError("Address is required.")


def add_customer(
    state: AppState,
    *,
    name: str,
    contact_number: str,
    address: str,
    photo_url: Optional[str] = None,
) -> tuple[AppState, Customer]:
    """New customers go to the top of the list and start with KYC pending."""
    name, contact_number, address = _clean(name), _clean(contact_number), _clean(address)
    _validate(name, contact_number, address)

    cid = new_id("cust")
    customer = Customer(
        id=cid,
        name=name,
        address=address,
        contact_number=contact_number,
        photo_url=_clean(photo_url) or _default_photo_url(cid),
        kyc_verified=False,
    )
    return state.with_customers((customer,) + state.customers), customer


def update_customer(
    state: AppState,
    customer_id: str,
    *,
    name: str,
    contact_number: str,
    address: str,
    photo_url: Optional[str] = None,
) -> tuple[AppState, Customer]:
    existing = state.find_customer(customer_id)
    if existing is None:
        raise ValidationError("Customer not found.")

    name, contact_number, address = _clean(name), _clean(contact_number), _clean(address)
    _validate(name, contact_number, address)

    updated = replace(
        existing,
        name=name,
        contact_number=contact_number,
        address=address,
        photo_url=_clean(photo_url) or existing.photo_url or _default_photo_url(existing.id),
    )
    return state.with_customers(updated if c.id == customer_id else c for c in state.customers), updated
