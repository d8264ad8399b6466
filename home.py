from __future__ import annotations

import streamlit as st

from core.config import get_settings
from core.db import get_conn, ensure_schema
from core.services.demo_data import upsert_reference_data

st.set_page_config(page_title="Clinic ERP", page_icon="🦻", layout="wide")

st.title("🦻 Clinic ERP: Inventory")
st.caption(
    "Stock is never stored: every view reconciles material inward, purchases, materials out, "
    "sales and patient-visit sales into one deduplicated inventory."
)

settings = get_settings()
conn = get_conn(settings.db_path)
ensure_schema(conn)
upsert_reference_data(conn)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")
    st.write(f"**Head office fallback:** `{settings.head_office_fallback}`")

st.info(
    "Use the left sidebar navigation. Start with **🧪 Data Management** to load demo data, then open **Inventory** and **Stock Position**.",
    icon="ℹ️",
)
