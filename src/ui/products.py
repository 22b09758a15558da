import sqlite3

import pandas as pd
import streamlit as st

from src.db import add_product, delete_product, get_all_settings, list_products
from src.errors import ExportError
from src.exports import build_catalog_workbook
from src.extraction import apply_extracted_fields
from src.models import PRODUCT_CATEGORIES, ProductRecord
from src.ocr import ScanResult, scan_product_tag
from src.pricing import calculate_product_costing, round_money

FORM_PREFIX = "product_form_"
UPLOAD_KEY = "product_image_upload"
SCANNING_KEY = "product_is_scanning"
SCAN_MESSAGE_KEY = "product_scan_message"
SAVE_MESSAGE_KEY = "product_save_message"

TEXT_FIELDS = [
    ("name", "Item code"),
    ("shape", "Shape"),
    ("solitaire_wt", "Solitaire wt"),
    ("gross_wt", "Gross wt"),
    ("dia_wt", "Diamond wt"),
    ("net_wt", "Net wt"),
    ("making", "Making"),
    ("somn_dia", "SOMN dia"),
    ("total", "Total"),
    ("date", "Date"),
    ("gold_rate_24k", "24K gold rate"),
    ("dia_rate", "Diamond rate"),
]


def _empty_form(settings: dict) -> dict[str, object]:
    return {
        "name": "",
        "shape": "",
        "solitaire_wt": "",
        "cad": "YES",
        "quality": "D",
        "gross_wt": "",
        "gold_purity": "18K",
        "gold_rate_24k": f"{settings['default_gold_rate_24k']:g}",
        "dia_wt": "",
        "dia_rate": f"{settings['default_dia_rate']:g}",
        "net_wt": "",
        "making": "",
        "somn_dia": "",
        "total": "",
        "date": "",
        "category": "Rings",
    }


def _load_form_state(defaults: dict[str, object]) -> None:
    for key, value in defaults.items():
        st.session_state.setdefault(f"{FORM_PREFIX}{key}", value)
    st.session_state.setdefault(SCANNING_KEY, False)


def _current_form() -> dict[str, object]:
    return {
        key[len(FORM_PREFIX):]: value
        for key, value in st.session_state.items()
        if isinstance(key, str) and key.startswith(FORM_PREFIX)
    }


def _write_form(values: dict[str, object]) -> None:
    for key, value in values.items():
        st.session_state[f"{FORM_PREFIX}{key}"] = value


def _on_scan_complete(result: ScanResult) -> None:
    if result.ok:
        _write_form(apply_extracted_fields(_current_form(), result.fields))
        if result.fields:
            st.session_state[SCAN_MESSAGE_KEY] = ("success", f"Filled {len(result.fields)} field(s) from the tag. Check them before saving.")
        else:
            st.session_state[SCAN_MESSAGE_KEY] = ("warning", "No fields recognised on this image.")
    else:
        st.session_state[SCAN_MESSAGE_KEY] = ("warning", f"Scan failed: {result.error}. The form was left unchanged.")


def _run_scan() -> None:
    uploaded = st.session_state.get(UPLOAD_KEY)
    if uploaded is None or st.session_state.get(SCANNING_KEY):
        return
    st.session_state[SCANNING_KEY] = True
    try:
        with st.spinner("Scanning..."):
            scan_product_tag(uploaded.getvalue(), on_complete=_on_scan_complete)
    finally:
        st.session_state[SCANNING_KEY] = False


def _save_product(conn: sqlite3.Connection, defaults: dict[str, object]) -> None:
    form = _current_form()
    uploaded = st.session_state.get(UPLOAD_KEY)
    product = ProductRecord(
        **{key: str(form.get(key, "")).strip() for key in defaults},
        image_name=uploaded.name if uploaded is not None else None,
        image_mime=(uploaded.type or "application/octet-stream") if uploaded is not None else None,
        image_data=uploaded.getvalue() if uploaded is not None else None,
    )
    try:
        product_id = add_product(conn, product)
    except sqlite3.Error as exc:
        st.session_state[SAVE_MESSAGE_KEY] = ("error", f"Failed to save product: {exc}")
        return

    _write_form(defaults)
    st.session_state.pop(UPLOAD_KEY, None)
    st.session_state[SAVE_MESSAGE_KEY] = ("success", f"Product {product.name or product_id} added.")


def _show_message(key: str) -> None:
    message = st.session_state.pop(key, None)
    if message:
        level, text = message
        getattr(st, level)(text)


def _catalog_frame(products: list[ProductRecord]) -> pd.DataFrame:
    rows = []
    for product in products:
        costing = calculate_product_costing(product)
        rows.append(
            {
                "id": product.id,
                "code": product.name,
                "category": product.category,
                "shape": product.shape,
                "gross_wt": product.gross_wt,
                "gold_purity": product.gold_purity,
                "dia_wt": product.dia_wt,
                "net_wt": product.net_wt,
                "making": product.making,
                "gold_value": round_money(
                    costing["gold_value_14k"] if product.gold_purity == "14K" else costing["gold_value_18k"]
                ),
                "dia_value": round_money(costing["dia_value"]),
                "cost": round_money(costing["cost_14k"] if product.gold_purity == "14K" else costing["cost_18k"]),
                "date": product.date,
                "has_image": bool(product.image_data),
            }
        )
    return pd.DataFrame(rows)


def _render_catalog(conn: sqlite3.Connection) -> None:
    selected_category = st.radio("Category", options=["All"] + PRODUCT_CATEGORIES, horizontal=True)
    try:
        products = list_products(conn, selected_category)
    except sqlite3.Error as exc:
        st.error(f"Failed to load products: {exc}")
        return

    st.caption(f"{len(products)} items in catalog")
    if not products:
        st.info("No products yet. Add your first item in the next tab.")
        return

    st.dataframe(_catalog_frame(products), width="stretch", hide_index=True)

    selected_id = st.selectbox(
        "Select product to view/delete",
        options=[product.id for product in products],
        format_func=lambda pid: next(f"{p.name or 'No code'} ({p.category})" for p in products if p.id == pid),
    )
    selected = next(product for product in products if product.id == selected_id)
    if selected.image_data:
        st.image(selected.image_data, caption=selected.image_name or "Product image", width=180)

    with st.form(f"delete_product_form_{selected_id}"):
        confirm = st.checkbox("Are you sure you want to delete this item?")
        delete_click = st.form_submit_button("Delete product")
    if delete_click:
        if not confirm:
            st.error("Tick the confirmation box to delete.")
        else:
            try:
                delete_product(conn, selected_id)
            except sqlite3.Error as exc:
                st.error(f"Failed to delete product: {exc}")
            else:
                st.success("Product deleted.")
                st.rerun()


def _render_add_form(conn: sqlite3.Connection, settings: dict) -> None:
    defaults = _empty_form(settings)
    _load_form_state(defaults)

    _show_message(SCAN_MESSAGE_KEY)
    _show_message(SAVE_MESSAGE_KEY)

    uploaded = st.file_uploader(
        "Product tag image",
        type=["png", "jpg", "jpeg", "webp"],
        key=UPLOAD_KEY,
    )
    if uploaded is not None:
        st.image(uploaded.getvalue(), width=180)

    is_scanning = bool(st.session_state[SCANNING_KEY])
    st.button(
        "Scanning..." if is_scanning else "Scan tag",
        on_click=_run_scan,
        disabled=is_scanning or uploaded is None,
        help="Read weights, making, total, date and item code from the tag image",
    )

    with st.form("add_product_form"):
        col1, col2, col3 = st.columns(3)
        columns = [col1, col2, col3]
        for index, (field_name, label) in enumerate(TEXT_FIELDS):
            with columns[index % 3]:
                st.text_input(label, key=f"{FORM_PREFIX}{field_name}")
        with col1:
            st.selectbox("CAD", options=["YES", "NO"], key=f"{FORM_PREFIX}cad")
        with col2:
            st.selectbox("Quality (H/D)", options=["D", "E", "F", "G", "H"], key=f"{FORM_PREFIX}quality")
            st.selectbox("Gold purity", options=["18K", "14K"], key=f"{FORM_PREFIX}gold_purity")
        with col3:
            st.selectbox("Category", options=PRODUCT_CATEGORIES, key=f"{FORM_PREFIX}category")

        st.form_submit_button(
            "Add product",
            type="primary",
            on_click=_save_product,
            args=(conn, defaults),
            disabled=is_scanning,
        )


def _render_export(conn: sqlite3.Connection) -> None:
    try:
        products = list_products(conn)
    except sqlite3.Error as exc:
        st.error(f"Failed to load products: {exc}")
        return

    if st.button("Prepare Excel export"):
        try:
            workbook_bytes = build_catalog_workbook(products)
        except ExportError as exc:
            st.error(str(exc))
            return
        st.download_button(
            "Download catalog (.xlsx)",
            data=workbook_bytes,
            file_name="Rrumi_Detailed_Catalog.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


def render(conn: sqlite3.Connection) -> None:
    st.subheader("Product Costing")
    settings = get_all_settings(conn)

    tab1, tab2, tab3 = st.tabs(["Catalog", "Add item", "Excel export"])
    with tab1:
        _render_catalog(conn)
    with tab2:
        _render_add_form(conn, settings)
    with tab3:
        _render_export(conn)
