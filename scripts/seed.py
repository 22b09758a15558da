"""
Creates the back office SQLite tables and default settings.

Safe to re-run: tables are created only when missing and existing settings
are left alone. Pass --demo to also store one sample invoice.
"""

import argparse
from datetime import date

from dotenv import load_dotenv

from src.db import create_invoice, get_connection, get_db_path, init_db
from src.logger import get_logger, setup_logging
from src.models import Invoice, LineItem

logger = get_logger(__name__)


def demo_invoice() -> Invoice:
    return Invoice(
        client_name="Demo Client",
        email="demo@example.com",
        date=date.today().isoformat(),
        items=[
            LineItem(category="Gold", quantity=10, unit="g", purity=22, unit_price=2025.50),
            LineItem(category="Diamond", quantity=1.5, unit="ct", purity=0, unit_price=5450.00),
        ],
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialise the back office database.")
    parser.add_argument("--demo", action="store_true", help="insert a sample invoice")
    args = parser.parse_args()

    load_dotenv()
    setup_logging()

    conn = get_connection()
    init_db(conn)
    logger.info("Database ready at %s", get_db_path())

    if args.demo:
        invoice_id = create_invoice(conn, demo_invoice())
        logger.info("Inserted demo invoice #%d", invoice_id)

    conn.close()


if __name__ == "__main__":
    main()
