import sqlite3
from datetime import UTC, datetime

import pandas as pd
import streamlit as st

from src.db import get_all_settings
from src.models import SpotPriceQuote
from src.pricing import round_money
from src.ui.price_feed import current_quote, ensure_poller, render_feed_notice

BID_ASK_SPREAD = 0.5

QUOTE_ROWS = [
    ("Gold (XAU)", "gold", "per troy oz"),
    ("Silver (XAG)", "silver", "per troy oz"),
    ("Platinum (XPT)", "platinum", "per troy oz"),
    ("Diamond", "diamond", "per carat"),
]


def _format_gmt_timestamp(observed_at: datetime) -> str:
    if observed_at.tzinfo is None:
        observed_at = observed_at.replace(tzinfo=UTC)
    return observed_at.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S GMT")


def _format_usd_price(value: float | None) -> str:
    if value is None:
        return "No data"
    return f"${value:,.2f}"


def _render_board(quote: SpotPriceQuote) -> None:
    render_feed_notice(quote)
    st.caption(f"Updated: {_format_gmt_timestamp(quote.observed_at)}")

    columns = st.columns(len(QUOTE_ROWS))
    for column, (label, field_name, basis) in zip(columns, QUOTE_ROWS):
        column.metric(label, _format_usd_price(getattr(quote, field_name)), help=basis)

    rows = []
    for label, field_name, basis in QUOTE_ROWS:
        price = float(getattr(quote, field_name))
        rows.append(
            {
                "Asset": label,
                "Basis": basis,
                "Bid": _format_usd_price(round_money(price - BID_ASK_SPREAD)),
                "Spot": _format_usd_price(round_money(price)),
                "Ask": _format_usd_price(round_money(price + BID_ASK_SPREAD)),
            }
        )

    st.dataframe(pd.DataFrame(rows), width="stretch", hide_index=True)


def render(conn: sqlite3.Connection) -> None:
    st.subheader("Live Prices")
    st.caption("Market monitor in USD, refreshed automatically")

    settings = get_all_settings(conn)
    interval = settings["polling_interval_seconds"]
    poller = ensure_poller(interval)

    if st.button("Refresh prices now", type="primary"):
        poller.refresh_now()

    @st.fragment(run_every=f"{interval}s")
    def live_board() -> None:
        poller.tick()
        _render_board(current_quote())

    live_board()

    st.info(f"Prices refresh every {interval} seconds. Change the interval in Settings.")
