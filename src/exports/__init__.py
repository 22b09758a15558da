from .catalog_workbook import build_catalog_workbook
from .invoice_csv import build_invoices_csv
from .invoice_pdf import build_invoice_pdf

__all__ = [
	"build_catalog_workbook",
	"build_invoice_pdf",
	"build_invoices_csv",
]
