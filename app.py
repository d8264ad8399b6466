from __future__ import annotations

import logging

import streamlit as st

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Clinic ERP", page_icon="🦻", layout="wide")

pages = [
    st.Page("home.py", title="Home", icon="🏠"),
    st.Page("pages/1_📦_Inventory.py", title="Inventory", icon="📦"),
    st.Page("pages/2_📊_Stock_Position.py", title="Stock Position", icon="📊"),
    st.Page("pages/3_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
