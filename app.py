from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="PGVMS", page_icon="🥬", layout="wide")

pages = [
    st.Page("home.py", title="Dashboard", icon="🏠"),
    st.Page("pages/1_📦_Inventory.py", title="Inventory", icon="📦"),
    st.Page("pages/2_👥_Customers.py", title="Customers", icon="👥"),
    st.Page("pages/3_📒_Transactions.py", title="Transactions", icon="📒"),
    st.Page("pages/4_🧺_Crates.py", title="Crates", icon="🧺"),
    st.Page("pages/5_📈_Forecasting.py", title="Forecasting", icon="📈"),
    st.Page("pages/6_🖨️_Reports.py", title="Reports", icon="🖨️"),
    st.Page("pages/7_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
