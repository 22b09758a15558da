from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

from src.db import get_connection, init_db
from src.logger import setup_logging
from src.ui import invoice_create, invoices, prices, products, settings
from src.ui.price_feed import stop_poller


# Load environment variables from local .env file.
load_dotenv(dotenv_path=Path(__file__).parent / ".env")
setup_logging()


st.set_page_config(page_title="Jewellery Back Office", page_icon="💍", layout="wide")

# Pages that read live prices keep the session's price polling switched on.
PRICE_PAGES = {"Live Prices", "Create Invoice"}


def main() -> None:
    st.title("💍 Jewellery Back Office")
    st.caption("Live prices, invoices and product costing")

    conn = get_connection()
    init_db(conn)

    page = st.sidebar.radio(
        "Navigate",
        [
            "Live Prices",
            "Invoices",
            "Create Invoice",
            "Product Costing",
            "Settings",
        ],
    )

    if page not in PRICE_PAGES:
        stop_poller()

    if page == "Live Prices":
        prices.render(conn)
    elif page == "Invoices":
        invoices.render(conn)
    elif page == "Create Invoice":
        invoice_create.render(conn)
    elif page == "Product Costing":
        products.render(conn)
    elif page == "Settings":
        settings.render(conn)


if __name__ == "__main__":
    main()
