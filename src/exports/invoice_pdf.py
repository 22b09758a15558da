import io
from datetime import date as date_type
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from src.errors import ExportError
from src.logger import get_logger
from src.models import Invoice
from src.pricing import format_usd, purity_label

logger = get_logger(__name__)

BRAND_COLOR = colors.HexColor("#89986D")


def _format_invoice_date(value: str) -> str:
    try:
        return date_type.fromisoformat(value).strftime("%d %b %Y")
    except (TypeError, ValueError):
        return value or "-"


def build_invoice_pdf(invoice: Invoice, company_name: str = "Rrumi") -> bytes:
    """Renders the invoice as a one-section A4 PDF and returns the bytes."""
    try:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=14 * mm,
            rightMargin=14 * mm,
            topMargin=14 * mm,
            bottomMargin=14 * mm,
            title=f"Invoice {invoice.id or ''}".strip(),
        )
        styles = getSampleStyleSheet()
        brand_style = ParagraphStyle("Brand", parent=styles["Heading1"], fontSize=22, textColor=BRAND_COLOR)
        subtitle_style = ParagraphStyle("Subtitle", parent=styles["Normal"], fontSize=12, textColor=colors.grey)
        body_style = ParagraphStyle("Body", parent=styles["Normal"], fontSize=10, leading=14)
        total_style = ParagraphStyle("Total", parent=styles["Normal"], fontSize=14, alignment=2)

        elements = [
            Paragraph(escape(company_name), brand_style),
            Paragraph("Invoice Details", subtitle_style),
            Spacer(1, 10 * mm),
        ]

        info_block = Paragraph(
            f"<b>Invoice ID:</b> {invoice.id if invoice.id is not None else 'Draft'}<br/>"
            f"<b>Date:</b> {_format_invoice_date(invoice.date)}<br/>"
            f"<b>Status:</b> {invoice.status.value}",
            body_style,
        )
        bill_to_block = Paragraph(
            f"Bill To:<br/><b>{escape(invoice.client_name)}</b><br/>{escape(invoice.email)}",
            body_style,
        )
        header_table = Table([[info_block, bill_to_block]], colWidths=[95 * mm, 85 * mm])
        header_table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
        elements.extend([header_table, Spacer(1, 8 * mm)])

        table_data = [["Type", "Qty", "Unit", "Purity", "Price", "Total"]]
        for item in invoice.items:
            table_data.append(
                [
                    item.category.value,
                    f"{item.quantity:g}",
                    item.unit.label,
                    purity_label(item.category, item.purity),
                    format_usd(item.unit_price),
                    format_usd(item.total),
                ]
            )

        items_table = Table(table_data, repeatRows=1)
        items_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#E5E7EB")),
                    ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        elements.extend([items_table, Spacer(1, 8 * mm)])
        elements.append(Paragraph(f"Total Amount: {format_usd(invoice.total_amount)}", total_style))

        doc.build(elements)
        return buffer.getvalue()
    except Exception as exc:
        logger.error("Failed to build PDF for invoice %s: %s", invoice.id, exc)
        raise ExportError(f"Failed to generate PDF: {exc}") from exc
