from . import invoice_create, invoices, price_feed, prices, products, settings

__all__ = [
	"prices",
	"invoices",
	"invoice_create",
	"products",
	"settings",
	"price_feed",
]
