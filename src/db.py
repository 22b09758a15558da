import os
import sqlite3
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.logger import get_logger
from src.models import Invoice, InvoiceStatus, LineItem, ProductRecord
from src.pricing import calculate_invoice_total, calculate_line_total

logger = get_logger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DB_PATH = DATA_DIR / "back_office.db"

DEFAULT_SETTINGS: dict[str, str] = {
    "company_name": "Rrumi",
    "polling_interval_seconds": "10",
    "default_gold_rate_24k": "430",
    "default_dia_rate": "450",
}

PRODUCT_COLUMNS = [
    "name",
    "shape",
    "solitaire_wt",
    "cad",
    "quality",
    "gross_wt",
    "gold_purity",
    "gold_rate_24k",
    "dia_wt",
    "dia_rate",
    "net_wt",
    "making",
    "somn_dia",
    "total",
    "date",
    "category",
    "image_name",
    "image_mime",
    "image_data",
]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_db_path() -> Path:
    override = os.getenv("BACK_OFFICE_DB_PATH", "").strip()
    return Path(override) if override else DB_PATH


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    target = db_path or get_db_path()
    if str(target) != ":memory:":
        Path(target).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    cursor = conn.cursor()

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS invoices (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            client_name TEXT NOT NULL,
            email TEXT NOT NULL,
            date TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'Pending',
            total_amount REAL NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS invoice_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_id INTEGER NOT NULL,
            item_type TEXT NOT NULL,
            quantity REAL NOT NULL,
            unit TEXT NOT NULL,
            purity REAL,
            unit_price REAL NOT NULL,
            total REAL NOT NULL,
            FOREIGN KEY (invoice_id) REFERENCES invoices(id)
        )
        """
    )

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            id TEXT PRIMARY KEY,
            name TEXT,
            shape TEXT,
            solitaire_wt TEXT,
            cad TEXT,
            quality TEXT,
            gross_wt TEXT,
            gold_purity TEXT,
            gold_rate_24k TEXT,
            dia_wt TEXT,
            dia_rate TEXT,
            net_wt TEXT,
            making TEXT,
            somn_dia TEXT,
            total TEXT,
            date TEXT,
            category TEXT NOT NULL,
            image_name TEXT,
            image_mime TEXT,
            image_data BLOB,
            created_at TEXT NOT NULL
        )
        """
    )

    for key, value in DEFAULT_SETTINGS.items():
        cursor.execute(
            """
            INSERT OR IGNORE INTO settings (key, value, updated_at)
            VALUES (?, ?, ?)
            """,
            (key, value, utc_now_iso()),
        )

    conn.commit()


def get_all_settings(conn: sqlite3.Connection) -> dict[str, Any]:
    rows = conn.execute("SELECT key, value FROM settings").fetchall()
    raw = {row["key"]: row["value"] for row in rows}

    def get_float(key: str) -> float:
        try:
            return float(raw.get(key, DEFAULT_SETTINGS[key]))
        except (TypeError, ValueError):
            return float(DEFAULT_SETTINGS[key])

    return {
        "company_name": raw.get("company_name") or DEFAULT_SETTINGS["company_name"],
        "polling_interval_seconds": max(1, int(get_float("polling_interval_seconds"))),
        "default_gold_rate_24k": get_float("default_gold_rate_24k"),
        "default_dia_rate": get_float("default_dia_rate"),
    }


def save_settings(conn: sqlite3.Connection, settings: dict[str, Any]) -> None:
    now = utc_now_iso()
    payload = {
        "company_name": str(settings["company_name"]).strip() or DEFAULT_SETTINGS["company_name"],
        "polling_interval_seconds": str(int(settings["polling_interval_seconds"])),
        "default_gold_rate_24k": str(settings["default_gold_rate_24k"]),
        "default_dia_rate": str(settings["default_dia_rate"]),
    }

    for key, value in payload.items():
        conn.execute(
            """
            INSERT INTO settings (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, value, now),
        )
    conn.commit()


def _row_to_line_item(row: sqlite3.Row) -> LineItem:
    return LineItem(
        id=int(row["id"]),
        category=row["item_type"],
        quantity=float(row["quantity"]),
        unit=row["unit"],
        purity=None if row["purity"] is None else float(row["purity"]),
        unit_price=float(row["unit_price"]),
    )


def create_invoice(conn: sqlite3.Connection, invoice: Invoice) -> int:
    """
    Stores an invoice with its items in one transaction.

    Item totals and the invoice total are always recomputed here, so what is
    stored matches the pricing formula at the moment of saving.
    """
    cursor = conn.cursor()
    try:
        cursor.execute(
            """
            INSERT INTO invoices (client_name, email, date, status, total_amount, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                invoice.client_name.strip(),
                invoice.email.strip(),
                invoice.date,
                InvoiceStatus(invoice.status).value,
                calculate_invoice_total(invoice.items),
                utc_now_iso(),
            ),
        )
        invoice_id = int(cursor.lastrowid)

        for item in invoice.items:
            cursor.execute(
                """
                INSERT INTO invoice_items (invoice_id, item_type, quantity, unit, purity, unit_price, total)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    invoice_id,
                    item.category.value,
                    item.quantity,
                    item.unit.value,
                    item.purity,
                    item.unit_price,
                    calculate_line_total(item),
                ),
            )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise

    logger.info("Created invoice #%d for %s with %d item(s)", invoice_id, invoice.client_name, len(invoice.items))
    return invoice_id


def list_invoices(conn: sqlite3.Connection, limit: int = 1000) -> list[sqlite3.Row]:
    return conn.execute(
        """
        SELECT id, client_name, email, date, status, total_amount, created_at
        FROM invoices
        ORDER BY created_at DESC, id DESC
        LIMIT ?
        """,
        (limit,),
    ).fetchall()


def get_invoice_items(conn: sqlite3.Connection, invoice_id: int) -> list[LineItem]:
    rows = conn.execute(
        "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY id ASC",
        (invoice_id,),
    ).fetchall()
    return [_row_to_line_item(row) for row in rows]


def get_invoice(conn: sqlite3.Connection, invoice_id: int) -> Invoice | None:
    row = conn.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,)).fetchone()
    if row is None:
        return None
    return Invoice(
        id=int(row["id"]),
        client_name=row["client_name"],
        email=row["email"],
        date=row["date"],
        status=row["status"],
        created_at=row["created_at"],
        items=get_invoice_items(conn, invoice_id),
    )


def update_invoice_status(conn: sqlite3.Connection, invoice_id: int, status: InvoiceStatus | str) -> None:
    new_status = InvoiceStatus(status)
    conn.execute("UPDATE invoices SET status = ? WHERE id = ?", (new_status.value, invoice_id))
    conn.commit()
    logger.info("Invoice #%d marked %s", invoice_id, new_status.value)


def delete_invoice(conn: sqlite3.Connection, invoice_id: int) -> None:
    try:
        conn.execute("DELETE FROM invoice_items WHERE invoice_id = ?", (invoice_id,))
        conn.execute("DELETE FROM invoices WHERE id = ?", (invoice_id,))
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    logger.info("Deleted invoice #%d", invoice_id)


def invoice_stats(conn: sqlite3.Connection) -> dict[str, Any]:
    row = conn.execute(
        """
        SELECT
            COUNT(*) AS invoice_count,
            COALESCE(SUM(total_amount), 0) AS revenue,
            COALESCE(SUM(CASE WHEN status = 'Paid' THEN 1 ELSE 0 END), 0) AS paid_count,
            COALESCE(SUM(CASE WHEN status = 'Pending' THEN 1 ELSE 0 END), 0) AS pending_count,
            COALESCE(SUM(CASE WHEN status = 'Overdue' THEN 1 ELSE 0 END), 0) AS overdue_count
        FROM invoices
        """
    ).fetchone()
    return {
        "invoice_count": int(row["invoice_count"]),
        "revenue": float(row["revenue"]),
        "paid_count": int(row["paid_count"]),
        "pending_count": int(row["pending_count"]),
        "overdue_count": int(row["overdue_count"]),
    }


def _generate_product_id(conn: sqlite3.Connection) -> str:
    candidate = int(time.time() * 1000)
    while conn.execute("SELECT 1 FROM products WHERE id = ?", (str(candidate),)).fetchone():
        candidate += 1
    return str(candidate)


def add_product(conn: sqlite3.Connection, product: ProductRecord) -> str:
    product_id = _generate_product_id(conn)
    values = {column: getattr(product, column) for column in PRODUCT_COLUMNS}
    if not str(values["date"] or "").strip():
        values["date"] = datetime.now().strftime("%d/%m/%y")

    columns = ["id", *PRODUCT_COLUMNS, "created_at"]
    placeholders = ", ".join("?" for _ in columns)
    conn.execute(
        f"INSERT INTO products ({', '.join(columns)}) VALUES ({placeholders})",
        (product_id, *values.values(), utc_now_iso()),
    )
    conn.commit()
    logger.info("Added product %s (%s)", product_id, product.name or "no code")
    return product_id


def _row_to_product(row: sqlite3.Row) -> ProductRecord:
    data = {column: row[column] for column in PRODUCT_COLUMNS}
    for column in PRODUCT_COLUMNS:
        if column not in {"image_name", "image_mime", "image_data"} and data[column] is None:
            data[column] = ""
    return ProductRecord(id=row["id"], created_at=row["created_at"], **data)


def list_products(conn: sqlite3.Connection, category: str | None = None) -> list[ProductRecord]:
    if category and category != "All":
        rows = conn.execute(
            "SELECT * FROM products WHERE category = ? ORDER BY created_at DESC, id DESC",
            (category,),
        ).fetchall()
    else:
        rows = conn.execute("SELECT * FROM products ORDER BY created_at DESC, id DESC").fetchall()
    return [_row_to_product(row) for row in rows]


def delete_product(conn: sqlite3.Connection, product_id: str) -> None:
    conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
    conn.commit()
    logger.info("Deleted product %s", product_id)
