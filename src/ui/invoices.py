import sqlite3

import pandas as pd
import streamlit as st

from src.db import delete_invoice, get_all_settings, get_invoice, invoice_stats, list_invoices, update_invoice_status
from src.errors import ExportError
from src.exports import build_invoice_pdf, build_invoices_csv
from src.models import Invoice, InvoiceStatus
from src.pricing import format_usd, purity_label


def _filter_invoices(df: pd.DataFrame, search_text: str, status_filter: str) -> pd.DataFrame:
    filtered_df = df.copy()
    if search_text.strip():
        search_term = search_text.strip().lower()
        client = filtered_df["client_name"].fillna("").str.lower()
        invoice_id = filtered_df["id"].astype(str)
        filtered_df = filtered_df[client.str.contains(search_term, regex=False) | invoice_id.str.contains(search_term, regex=False)]
    if status_filter != "All":
        filtered_df = filtered_df[filtered_df["status"] == status_filter]
    return filtered_df


def _render_stats(conn: sqlite3.Connection) -> None:
    stats = invoice_stats(conn)
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Invoices", stats["invoice_count"])
    k2.metric("Revenue", format_usd(stats["revenue"]))
    k3.metric("Pending", stats["pending_count"])
    k4.metric("Overdue", stats["overdue_count"])


def _render_detail(conn: sqlite3.Connection, invoice: Invoice, company_name: str) -> None:
    st.markdown(f"### Invoice #{invoice.id} · {invoice.client_name}")
    st.write(
        {
            "client_name": invoice.client_name,
            "email": invoice.email,
            "date": invoice.date,
            "status": invoice.status.value,
            "created_at": invoice.created_at,
        }
    )

    items_df = pd.DataFrame(
        [
            {
                "Type": item.category.value,
                "Qty": item.quantity,
                "Unit": item.unit.label,
                "Purity": purity_label(item.category, item.purity),
                "Price": format_usd(item.unit_price),
                "Total": format_usd(item.total),
            }
            for item in invoice.items
        ]
    )
    st.dataframe(items_df, hide_index=True, width="stretch")
    st.metric("Total amount", format_usd(invoice.total_amount))

    col1, col2 = st.columns(2)
    with col1:
        status_options = [status.value for status in InvoiceStatus]
        with st.form(f"status_form_{invoice.id}"):
            new_status = st.selectbox(
                "Status",
                options=status_options,
                index=status_options.index(invoice.status.value),
            )
            update_submit = st.form_submit_button("Update status")
        if update_submit and new_status != invoice.status.value:
            try:
                update_invoice_status(conn, int(invoice.id), new_status)
            except sqlite3.Error as exc:
                st.error(f"Failed to update status: {exc}")
            else:
                st.success(f"Invoice marked {new_status}.")
                st.rerun()

    with col2:
        try:
            pdf_bytes = build_invoice_pdf(invoice, company_name=company_name)
        except ExportError as exc:
            st.error(str(exc))
        else:
            st.download_button(
                "Download PDF",
                data=pdf_bytes,
                file_name=f"invoice-{invoice.id}.pdf",
                mime="application/pdf",
            )

    with st.expander("Danger zone: delete invoice"):
        with st.form(f"delete_invoice_form_{invoice.id}"):
            confirm = st.checkbox("I understand this permanently deletes the invoice and its items")
            delete_submit = st.form_submit_button("Delete invoice")
        if delete_submit:
            if not confirm:
                st.error("Tick the confirmation box to delete.")
            else:
                try:
                    delete_invoice(conn, int(invoice.id))
                except sqlite3.Error as exc:
                    st.error(f"Failed to delete invoice: {exc}")
                else:
                    st.success("Invoice deleted.")
                    st.rerun()


def render(conn: sqlite3.Connection) -> None:
    st.subheader("Invoices")
    settings = get_all_settings(conn)

    try:
        rows = list_invoices(conn)
    except sqlite3.Error as exc:
        st.error(f"Failed to load invoices: {exc}")
        return

    _render_stats(conn)

    if not rows:
        st.info("No invoices yet. Create one from the Create Invoice page.")
        return

    invoices_df = pd.DataFrame([dict(row) for row in rows])

    col1, col2 = st.columns([3, 1])
    with col1:
        search_text = st.text_input("Search by client or ID")
    with col2:
        status_filter = st.selectbox("Status", options=["All"] + [status.value for status in InvoiceStatus])

    filtered_df = _filter_invoices(invoices_df, search_text, status_filter)
    if filtered_df.empty:
        st.caption("No invoices match your filters.")
        return

    display_df = filtered_df[["id", "client_name", "email", "date", "status", "total_amount"]].copy()
    display_df["total_amount"] = display_df["total_amount"].map(format_usd)
    st.dataframe(display_df, hide_index=True, width="stretch")

    st.download_button(
        "Export filtered invoices CSV",
        data=build_invoices_csv(filtered_df.to_dict("records")),
        file_name="invoices.csv",
        mime="text/csv",
    )

    st.divider()
    selected_id = st.selectbox(
        "Open invoice",
        options=[int(value) for value in filtered_df["id"].tolist()],
        format_func=lambda invoice_id: f"#{invoice_id}",
    )

    try:
        invoice = get_invoice(conn, selected_id)
    except sqlite3.Error as exc:
        st.error(f"Failed to load invoice: {exc}")
        return

    if invoice is None:
        st.error("Invoice not found.")
        return

    _render_detail(conn, invoice, settings["company_name"])
