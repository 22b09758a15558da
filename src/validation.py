import re
from typing import Iterable

from src.models import LineItem

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


def validate_invoice_form(
    client_name: str,
    email: str,
    date: str,
    items: Iterable[LineItem],
) -> dict[str, str]:
    """Returns per-field error messages; an empty dict means the form can be saved."""
    errors: dict[str, str] = {}

    if not (client_name or "").strip():
        errors["client_name"] = "Client name is required"

    email = (email or "").strip()
    if not email:
        errors["email"] = "Email address is required"
    elif not EMAIL_PATTERN.search(email):
        errors["email"] = "Please enter a valid email address"

    if not (date or "").strip():
        errors["date"] = "Date is required"

    items = list(items)
    if not items:
        errors["items"] = "At least one line item is required"

    for index, item in enumerate(items):
        if item.quantity <= 0:
            errors[f"{index}_quantity"] = "Qty > 0"
        if item.unit_price < 0:
            errors[f"{index}_unit_price"] = "Price >= 0"

    return errors
