from src.models import LineItem
from src.validation import validate_invoice_form


def _item(**overrides):
    values = {"category": "Gold", "quantity": 1, "unit": "oz", "purity": 24, "unit_price": 2000}
    values.update(overrides)
    return LineItem(**values)


def test_valid_form_has_no_errors():
    assert validate_invoice_form("Jane Doe", "jane@example.com", "2024-03-12", [_item()]) == {}


def test_required_fields():
    errors = validate_invoice_form("  ", "", "", [_item()])
    assert errors == {
        "client_name": "Client name is required",
        "email": "Email address is required",
        "date": "Date is required",
    }


def test_email_format():
    errors = validate_invoice_form("Jane", "jane.example.com", "2024-03-12", [_item()])
    assert errors == {"email": "Please enter a valid email address"}


def test_item_quantity_and_price_errors_are_keyed_by_row():
    items = [_item(), _item(quantity=0), _item(category="Custom", unit_price=-1, quantity=-2)]
    errors = validate_invoice_form("Jane", "jane@example.com", "2024-03-12", items)
    assert errors == {
        "1_quantity": "Qty > 0",
        "2_quantity": "Qty > 0",
        "2_unit_price": "Price >= 0",
    }


def test_at_least_one_item():
    errors = validate_invoice_form("Jane", "jane@example.com", "2024-03-12", [])
    assert errors == {"items": "At least one line item is required"}
