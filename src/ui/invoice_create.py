import sqlite3
import uuid
from datetime import date

import streamlit as st

from src.db import create_invoice, get_all_settings
from src.models import PURITY_OPTIONS, Category, Invoice, InvoiceStatus, LineItem, SpotPriceQuote, Unit
from src.pricing import calculate_invoice_total, calculate_line_total, change_category, format_usd, sync_live_prices
from src.ui.price_feed import current_quote, ensure_poller, render_feed_notice
from src.validation import validate_invoice_form

DRAFT_KEY = "invoice_draft_items"
ERRORS_KEY = "invoice_form_errors"
FLASH_KEY = "invoice_flash"


def _new_draft_item() -> dict[str, object]:
    return {
        "uid": uuid.uuid4().hex[:8],
        "category": Category.CUSTOM.value,
        "quantity": 1.0,
        "unit": Unit.TROY_OUNCE.value,
        "purity": 24.0,
        "unit_price": 0.0,
    }


def _to_line_item(draft: dict[str, object]) -> LineItem:
    return LineItem(
        category=draft["category"],
        quantity=draft["quantity"],
        unit=draft["unit"],
        purity=draft["purity"],
        unit_price=draft["unit_price"],
    )


def _store_line_item(draft: dict[str, object], item: LineItem) -> None:
    draft["category"] = item.category.value
    draft["purity"] = item.purity
    draft["unit_price"] = item.unit_price


def _reset_form() -> None:
    st.session_state[DRAFT_KEY] = [_new_draft_item()]
    st.session_state[ERRORS_KEY] = {}
    for key in ["invoice_client_name", "invoice_email", "invoice_date", "invoice_status"]:
        st.session_state.pop(key, None)


def _sync_drafts(drafts: list[dict[str, object]], quote: SpotPriceQuote) -> None:
    items = sync_live_prices([_to_line_item(draft) for draft in drafts], quote)
    for draft, item in zip(drafts, items):
        draft["unit_price"] = item.unit_price


def _field_error(errors: dict[str, str], key: str) -> None:
    message = errors.get(key)
    if message:
        st.caption(f":red[{message}]")


def _render_item(index: int, draft: dict[str, object], quote: SpotPriceQuote, errors: dict[str, str]) -> bool:
    uid = draft["uid"]
    category_options = [category.value for category in Category]
    unit_options = [unit.value for unit in Unit]

    c1, c2, c3, c4, c5, c6 = st.columns([2, 2, 1.5, 2, 2, 0.6])
    with c1:
        selected_category = st.selectbox(
            "Type",
            options=category_options,
            index=category_options.index(draft["category"]),
            key=f"category_{uid}",
        )
        if selected_category != draft["category"]:
            updated = change_category(_to_line_item(draft), selected_category, quote)
            _store_line_item(draft, updated)

    category = Category(draft["category"])
    purity_options = list(PURITY_OPTIONS[category])
    with c2:
        current_purity = draft["purity"] if draft["purity"] in purity_options else purity_options[0]
        draft["purity"] = st.selectbox(
            "Purity",
            options=purity_options,
            index=purity_options.index(current_purity),
            format_func=lambda value: PURITY_OPTIONS[category][value],
            key=f"purity_{uid}_{category.value}",
        )
    with c3:
        draft["quantity"] = st.number_input(
            "Qty",
            value=float(draft["quantity"]),
            step=0.1,
            format="%.4f",
            key=f"quantity_{uid}",
        )
        _field_error(errors, f"{index}_quantity")
    with c4:
        draft["unit"] = st.selectbox(
            "Unit",
            options=unit_options,
            index=unit_options.index(draft["unit"]),
            format_func=lambda value: Unit(value).label,
            key=f"unit_{uid}",
        )
    with c5:
        if category.is_live_priced:
            basis = "ct" if category is Category.DIAMOND else "oz"
            st.number_input(
                f"Price / {basis} (live)",
                value=float(draft["unit_price"]),
                disabled=True,
                format="%.2f",
                key=f"live_price_{uid}_{category.value}_{draft['unit_price']}",
            )
        else:
            draft["unit_price"] = st.number_input(
                "Price / oz",
                value=float(draft["unit_price"]),
                step=1.0,
                format="%.2f",
                key=f"custom_price_{uid}",
            )
        _field_error(errors, f"{index}_unit_price")
    with c6:
        st.write("")
        remove_clicked = st.button("✕", key=f"remove_{uid}", help="Remove item")

    try:
        st.caption(f"Line total: {format_usd(calculate_line_total(_to_line_item(draft)))}")
    except ValueError as exc:
        st.caption(f":red[{exc}]")
    return remove_clicked


def render(conn: sqlite3.Connection) -> None:
    st.subheader("Create Invoice")

    settings = get_all_settings(conn)
    interval = settings["polling_interval_seconds"]
    poller = ensure_poller(interval)

    if DRAFT_KEY not in st.session_state:
        _reset_form()

    flash = st.session_state.pop(FLASH_KEY, None)
    if flash:
        st.success(flash)

    errors: dict[str, str] = st.session_state.get(ERRORS_KEY, {})

    col1, col2 = st.columns(2)
    with col1:
        client_name = st.text_input("Client name", placeholder="e.g. Acme Corp", key="invoice_client_name")
        _field_error(errors, "client_name")
        invoice_date = st.date_input("Date", value=date.today(), key="invoice_date")
        _field_error(errors, "date")
    with col2:
        email = st.text_input("Client email", placeholder="client@company.com", key="invoice_email")
        _field_error(errors, "email")
        status = st.selectbox(
            "Status",
            options=[status.value for status in InvoiceStatus],
            key="invoice_status",
        )

    @st.fragment(run_every=f"{interval}s")
    def line_items_editor() -> None:
        poller.tick()
        quote = current_quote()
        render_feed_notice(quote)
        drafts: list[dict[str, object]] = st.session_state[DRAFT_KEY]
        _sync_drafts(drafts, quote)

        st.markdown("### Items")
        remove_uid = None
        for index, draft in enumerate(drafts):
            with st.container(border=True):
                if _render_item(index, draft, quote, errors):
                    remove_uid = draft["uid"]

        if remove_uid is not None and len(drafts) > 1:
            st.session_state[DRAFT_KEY] = [draft for draft in drafts if draft["uid"] != remove_uid]
            st.rerun(scope="fragment")

        if st.button("+ Add item"):
            new_item = _new_draft_item()
            drafts.append(new_item)
            st.rerun(scope="fragment")

        try:
            total = calculate_invoice_total([_to_line_item(draft) for draft in drafts])
            st.metric("Total amount", format_usd(total))
        except ValueError:
            st.metric("Total amount", "-")
        st.caption("Sum of all items (converted to oz or ct and adjusted for purity)")

    line_items_editor()

    if st.button("Create invoice", type="primary"):
        drafts = st.session_state[DRAFT_KEY]
        _sync_drafts(drafts, current_quote())
        items = [_to_line_item(draft) for draft in drafts]
        date_text = invoice_date.isoformat() if invoice_date else ""

        errors = validate_invoice_form(client_name, email, date_text, items)
        st.session_state[ERRORS_KEY] = errors
        if errors:
            st.rerun()

        invoice = Invoice(
            client_name=client_name.strip(),
            email=email.strip(),
            date=date_text,
            status=status,
            items=items,
        )
        try:
            invoice_id = create_invoice(conn, invoice)
        except sqlite3.Error as exc:
            st.error(f"Failed to save invoice: {exc}")
            return

        _reset_form()
        st.session_state[FLASH_KEY] = f"Invoice #{invoice_id} saved ({format_usd(invoice.total_amount)})."
        st.rerun()
