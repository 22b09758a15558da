import re

import pytest

from src.db import (
    add_product,
    create_invoice,
    delete_invoice,
    delete_product,
    get_all_settings,
    get_connection,
    get_invoice,
    init_db,
    invoice_stats,
    list_invoices,
    list_products,
    save_settings,
    update_invoice_status,
)
from src.models import Invoice, InvoiceStatus, LineItem, ProductRecord


def _invoice(client="Jane Doe", status="Pending"):
    return Invoice(
        client_name=client,
        email="jane@example.com",
        date="2024-03-12",
        status=status,
        items=[
            LineItem(category="Gold", quantity=1, unit="oz", purity=24, unit_price=2000),
            LineItem(category="Diamond", quantity=0.5, unit="ct", purity=0, unit_price=5000),
        ],
    )


def test_default_settings(conn):
    settings = get_all_settings(conn)
    assert settings == {
        "company_name": "Rrumi",
        "polling_interval_seconds": 10,
        "default_gold_rate_24k": 430.0,
        "default_dia_rate": 450.0,
    }


def test_save_settings_round_trip(conn):
    save_settings(
        conn,
        {
            "company_name": "  ",
            "polling_interval_seconds": 30,
            "default_gold_rate_24k": 445.5,
            "default_dia_rate": 500,
        },
    )
    settings = get_all_settings(conn)
    assert settings["company_name"] == "Rrumi"
    assert settings["polling_interval_seconds"] == 30
    assert settings["default_gold_rate_24k"] == 445.5


def test_init_db_keeps_saved_settings(conn):
    save_settings(conn, {"company_name": "Acme", "polling_interval_seconds": 5, "default_gold_rate_24k": 1, "default_dia_rate": 2})
    init_db(conn)
    assert get_all_settings(conn)["company_name"] == "Acme"


def test_create_invoice_stores_computed_totals(conn):
    invoice_id = create_invoice(conn, _invoice())

    stored = get_invoice(conn, invoice_id)
    assert stored is not None
    assert stored.client_name == "Jane Doe"
    assert stored.status is InvoiceStatus.PENDING
    assert stored.total_amount == pytest.approx(4500.0)
    assert [item.category.value for item in stored.items] == ["Gold", "Diamond"]

    row = list_invoices(conn)[0]
    assert row["total_amount"] == pytest.approx(4500.0)
    item_totals = [r["total"] for r in conn.execute("SELECT total FROM invoice_items ORDER BY id")]
    assert item_totals == pytest.approx([2000.0, 2500.0])


def test_get_missing_invoice(conn):
    assert get_invoice(conn, 404) is None


def test_update_status_and_stats(conn):
    paid_id = create_invoice(conn, _invoice("Paid Client"))
    create_invoice(conn, _invoice("Pending Client"))
    update_invoice_status(conn, paid_id, "Paid")

    assert get_invoice(conn, paid_id).status is InvoiceStatus.PAID
    assert invoice_stats(conn) == {
        "invoice_count": 2,
        "revenue": pytest.approx(9000.0),
        "paid_count": 1,
        "pending_count": 1,
        "overdue_count": 0,
    }


def test_update_status_rejects_unknown_value(conn):
    invoice_id = create_invoice(conn, _invoice())
    with pytest.raises(ValueError):
        update_invoice_status(conn, invoice_id, "Cancelled")


def test_delete_invoice_removes_items(conn):
    invoice_id = create_invoice(conn, _invoice())
    delete_invoice(conn, invoice_id)

    assert get_invoice(conn, invoice_id) is None
    assert conn.execute("SELECT COUNT(*) FROM invoice_items").fetchone()[0] == 0


def test_add_list_and_delete_products(conn):
    ring_id = add_product(conn, ProductRecord(name="RDLR501", gross_wt="9.74g", category="Rings", image_data=b"\x89PNG"))
    pendant_id = add_product(conn, ProductRecord(name="RP12", category="Pendant", date="01/02/24"))
    assert ring_id != pendant_id

    assert {p.name for p in list_products(conn)} == {"RDLR501", "RP12"}
    assert {p.name for p in list_products(conn, "All")} == {"RDLR501", "RP12"}

    (ring,) = list_products(conn, "Rings")
    assert ring.gross_wt == "9.74g"
    assert ring.image_data == b"\x89PNG"
    assert re.fullmatch(r"\d{2}/\d{2}/\d{2}", ring.date)

    (pendant,) = list_products(conn, "Pendant")
    assert pendant.date == "01/02/24"

    delete_product(conn, ring_id)
    assert [p.id for p in list_products(conn)] == [pendant_id]


def test_db_path_override(tmp_path, monkeypatch):
    target = tmp_path / "nested" / "office.db"
    monkeypatch.setenv("BACK_OFFICE_DB_PATH", str(target))

    connection = get_connection()
    init_db(connection)
    connection.close()
    assert target.exists()
