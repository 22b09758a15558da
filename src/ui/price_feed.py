import streamlit as st

from src.live_prices import PricePoller, QuoteBoard
from src.models import SpotPriceQuote

BOARD_KEY = "quote_board"
POLLER_KEY = "price_poller"


def get_quote_board() -> QuoteBoard:
    if BOARD_KEY not in st.session_state:
        st.session_state[BOARD_KEY] = QuoteBoard()
    return st.session_state[BOARD_KEY]


def ensure_poller(interval_seconds: float) -> PricePoller:
    poller: PricePoller | None = st.session_state.get(POLLER_KEY)
    if poller is None:
        poller = PricePoller(get_quote_board(), interval_seconds=interval_seconds)
        st.session_state[POLLER_KEY] = poller
    poller.interval_seconds = interval_seconds
    poller.start()
    return poller


def stop_poller() -> None:
    poller: PricePoller | None = st.session_state.get(POLLER_KEY)
    if poller is not None:
        poller.stop()


def current_quote() -> SpotPriceQuote:
    return get_quote_board().latest()


def render_feed_notice(quote: SpotPriceQuote) -> None:
    if quote.is_fallback:
        st.info("Live feed unavailable. Showing reference prices until it recovers.")
