from __future__ import annotations

import streamlit as st

from pgvms.config import get_settings
from pgvms.log import setup_logging
from pgvms.services.crates import total_crate_debt
from pgvms.services.inventory import count_expiring_soon
from pgvms.services.ledger import customers_with_balance, total_outstanding
from pgvms.session import get_state
from pgvms.utils import format_money, now

st.set_page_config(page_title="PGVMS", page_icon="🥬", layout="wide")

settings = get_settings()
setup_logging(settings)
state = get_state()

st.title("🥬 Welcome to your Dashboard")
st.caption("Your central hub for managing perishable goods, customers, and finances.")

links = [
    ("pages/1_📦_Inventory.py", "Manage Inventory", "Track stock, expiry, and enforce FEFO.", "📦"),
    ("pages/2_👥_Customers.py", "Customer Profiles", "View customer details and KYC status.", "👥"),
    ("pages/3_📒_Transactions.py", "Transaction Ledger", "Digital Patti Book for sales and payments.", "📒"),
    ("pages/4_🧺_Crates.py", "Crate Management", "Track returnable asset debt.", "🧺"),
    ("pages/5_📈_Forecasting.py", "AI Demand Forecast", "Minimize waste with smart predictions.", "📈"),
]
cols = st.columns(3, gap="large")
for i, (path, label, description, icon) in enumerate(links):
    with cols[i % 3]:
        with st.container(border=True):
            st.page_link(path, label=label, icon=icon)
            st.caption(description)

rows = customers_with_balance(state.customers, state.transactions)

st.subheader("Quick Stats")
c1, c2, c3, c4 = st.columns(4)
c1.metric("Total Customers", f"{len(state.customers)}")
c2.metric(
    "Items Expiring Soon",
    f"{count_expiring_soon(state.inventory, now(), expiring_soon_days=settings.expiring_soon_days)}",
)
c3.metric("Total Outstanding", format_money(total_outstanding(rows), settings.currency_symbol))
c4.metric("Crates Debt", f"{total_crate_debt(state.crate_ledger)}")
