import sqlite3

import streamlit as st

from src.db import get_all_settings, save_settings


def render(conn: sqlite3.Connection) -> None:
    st.subheader("Settings")

    current = get_all_settings(conn)

    with st.form("settings_form"):
        col1, col2 = st.columns(2)
        with col1:
            company_name = st.text_input("Company name (PDF header)", value=current["company_name"])
            polling_interval = st.number_input(
                "Live price refresh (seconds)",
                min_value=1,
                max_value=3600,
                value=int(current["polling_interval_seconds"]),
                step=1,
            )

        with col2:
            gold_rate = st.number_input(
                "Default 24K gold rate (catalog)",
                min_value=0.0,
                value=float(current["default_gold_rate_24k"]),
                step=1.0,
            )
            dia_rate = st.number_input(
                "Default diamond rate (catalog)",
                min_value=0.0,
                value=float(current["default_dia_rate"]),
                step=1.0,
            )

        submitted = st.form_submit_button("Save settings", type="primary")

    if submitted:
        try:
            save_settings(
                conn,
                {
                    "company_name": company_name,
                    "polling_interval_seconds": polling_interval,
                    "default_gold_rate_24k": gold_rate,
                    "default_dia_rate": dia_rate,
                },
            )
        except sqlite3.Error as exc:
            st.error(f"Failed to save settings: {exc}")
        else:
            st.success("Settings saved.")
