import pytest

from conftest import make_quote
from src.errors import LivePriceLockedError
from src.models import Category, Invoice, LineItem, ProductRecord, Unit
from src.pricing import (
    MASS_TO_OZ,
    TROY_OZ_TO_GRAMS,
    calculate_invoice_total,
    calculate_line_total,
    calculate_product_costing,
    change_category,
    convert_to_carats,
    convert_to_oz,
    format_usd,
    live_price_for,
    parse_measure,
    purity_label,
    round_money,
    set_unit_price,
    sync_live_prices,
)


def test_unit_constants_follow_troy_ounce():
    assert TROY_OZ_TO_GRAMS == 31.1034768
    assert MASS_TO_OZ[Unit.GRAM] == 1 / 31.1034768
    assert MASS_TO_OZ[Unit.MILLIGRAM] == 1 / 31103.4768
    assert MASS_TO_OZ[Unit.KILOGRAM] == 1000 / 31.1034768
    assert MASS_TO_OZ[Unit.TROY_OUNCE] == 1
    assert MASS_TO_OZ[Unit.CARAT] == 0.2 / 31.1034768


def test_convert_to_oz_and_carats():
    assert convert_to_oz(31.1034768, "g") == pytest.approx(1.0, rel=1e-12)
    assert convert_to_carats(1, "g") == pytest.approx(5.0, rel=1e-12)
    assert convert_to_carats(2.5, Unit.CARAT) == pytest.approx(2.5, rel=1e-12)


@pytest.mark.parametrize("unit", list(Unit))
@pytest.mark.parametrize("quantity", [0.001, 1, 7.25, 1500])
def test_pure_gold_total_is_quantity_times_rate(unit, quantity):
    item = LineItem(category=Category.GOLD, quantity=quantity, unit=unit, purity=24, unit_price=2025.5)
    expected = quantity * MASS_TO_OZ[unit] * 2025.5
    assert calculate_line_total(item) == pytest.approx(expected, rel=1e-9)


def test_diamond_total_ignores_purity():
    loose = LineItem(category="Diamond", quantity=0.75, unit="ct", purity=0, unit_price=5450)
    set_in_gold = LineItem(category="Diamond", quantity=0.75, unit="ct", purity=24, unit_price=5450)
    assert calculate_line_total(loose) == calculate_line_total(set_in_gold)
    assert calculate_line_total(loose) == pytest.approx(0.75 * 5450)


def test_diamond_weighed_in_grams_is_priced_per_carat():
    item = LineItem(category="Diamond", quantity=1, unit="g", purity=0, unit_price=1000)
    assert calculate_line_total(item) == pytest.approx(5000.0)


def test_halving_purity_halves_metal_total():
    full = LineItem(category="Gold", quantity=2, unit="oz", purity=24, unit_price=1800)
    half = LineItem(category="Gold", quantity=2, unit="oz", purity=12, unit_price=1800)
    assert calculate_line_total(half) == pytest.approx(calculate_line_total(full) / 2)


def test_unset_purity_counts_as_pure():
    unset = LineItem(category="Silver", quantity=10, unit="oz", purity=None, unit_price=25)
    assert calculate_line_total(unset) == pytest.approx(250.0)


def test_sterling_silver_total():
    item = LineItem(category="Silver", quantity=1, unit="oz", purity=22.2, unit_price=24)
    assert calculate_line_total(item) == pytest.approx(24 * 22.2 / 24)


def test_invoice_total_is_sum_of_line_totals():
    items = [
        LineItem(category="Gold", quantity=12.5, unit="g", purity=22, unit_price=2031.17),
        LineItem(category="Platinum", quantity=3, unit="oz", purity=22.8, unit_price=980.2),
        LineItem(category="Custom", quantity=400, unit="mg", purity=18, unit_price=77.7),
        LineItem(category="Diamond", quantity=1.33, unit="ct", purity=18, unit_price=5450),
    ]
    expected = sum(calculate_line_total(item) for item in items)
    assert calculate_invoice_total(items) == pytest.approx(expected, rel=1e-12)
    assert calculate_invoice_total(reversed(items)) == pytest.approx(expected, rel=1e-12)


def test_invoice_total_of_no_items_is_zero():
    assert calculate_invoice_total([]) == 0.0


def test_gold_and_loose_diamond_invoice_totals_4500():
    invoice = Invoice(
        client_name="A. Buyer",
        email="buyer@example.com",
        date="2024-03-12",
        items=[
            LineItem(category="Gold", quantity=1, unit="oz", purity=24, unit_price=2000),
            LineItem(category="Diamond", quantity=0.5, unit="ct", purity=0, unit_price=5000),
        ],
    )
    assert [round_money(item.total) for item in invoice.items] == [2000.00, 2500.00]
    assert round_money(invoice.total_amount) == 4500.00


def test_metal_purity_accepts_any_karat_up_to_24():
    assert LineItem(category="Silver", quantity=1, unit="oz", purity=18, unit_price=24).purity == 18
    assert LineItem(category="Custom", quantity=1, unit="g", purity=9.6).purity == 9.6
    for purity in (0, -1, 24.5):
        with pytest.raises(ValueError):
            LineItem(category="Platinum", quantity=1, unit="oz", purity=purity, unit_price=980)


def test_diamond_purity_limited_to_setting_karats():
    assert LineItem(category="Diamond", quantity=1, unit="ct", purity=0).purity == 0
    with pytest.raises(ValueError):
        LineItem(category="Diamond", quantity=1, unit="ct", purity=12, unit_price=5450)


def test_line_item_rejects_unknown_category_and_unit():
    with pytest.raises(ValueError):
        LineItem(category="Bronze", quantity=1, unit="oz")
    with pytest.raises(ValueError):
        LineItem(category="Gold", quantity=1, unit="lb")


def test_live_price_for_rounds_to_cents(quote):
    assert live_price_for("Gold", make_quote(gold=2025.456)) == 2025.46
    assert live_price_for(Category.DIAMOND, quote) == 5000.0
    assert live_price_for(Category.CUSTOM, quote) is None


def test_sync_live_prices_snaps_only_live_items(quote):
    items = [
        LineItem(category="Gold", quantity=1, unit="oz", unit_price=0),
        LineItem(category="Custom", quantity=1, unit="oz", unit_price=123.45),
        LineItem(category="Diamond", quantity=1, unit="ct", purity=0, unit_price=1),
    ]
    synced = sync_live_prices(items, quote)
    assert [item.unit_price for item in synced] == [2000.0, 123.45, 5000.0]
    assert items[0].unit_price == 0


def test_sync_live_prices_ignores_non_positive_quote():
    item = LineItem(category="Silver", quantity=1, unit="oz", unit_price=24.5)
    (synced,) = sync_live_prices([item], make_quote(silver=0))
    assert synced.unit_price == 24.5


def test_custom_and_back_to_gold_discards_manual_price(quote):
    item = LineItem(category="Gold", quantity=5, unit="g", purity=22, unit_price=2000)

    custom = change_category(item, "Custom", quote)
    assert custom.category is Category.CUSTOM
    assert custom.unit_price == 2000
    assert custom.purity == 22

    custom = set_unit_price(custom, 1500)
    assert custom.unit_price == 1500

    gold = change_category(custom, "Gold", make_quote(gold=2050.0))
    assert gold.unit_price == 2050.0


def test_change_category_resets_invalid_purity(quote):
    item = LineItem(category="Silver", quantity=1, unit="oz", purity=22.2, unit_price=25)
    moved = change_category(item, "Gold", quote)
    assert moved.purity == 24
    assert moved.unit_price == 2000.0

    loose = LineItem(category="Diamond", quantity=1, unit="ct", purity=0, unit_price=5000)
    assert change_category(loose, "Platinum", quote).purity == 24


def test_manual_price_is_locked_for_live_categories():
    item = LineItem(category="Platinum", quantity=1, unit="oz", purity=22.8, unit_price=950)
    with pytest.raises(LivePriceLockedError):
        set_unit_price(item, 10)


@pytest.mark.parametrize(
    "category, purity, label",
    [
        ("Gold", 22, "22k"),
        ("Gold", None, "24k"),
        ("Silver", 22.2, "925"),
        ("Silver", 24, "999"),
        ("Platinum", 22.8, "950"),
        ("Platinum", 21.6, "900"),
        ("Diamond", 0, "Loose"),
        ("Diamond", 18, "18k Set"),
        ("Custom", 14, "14k"),
        ("Platinum", 12, "12k"),
    ],
)
def test_purity_label(category, purity, label):
    assert purity_label(category, purity) == label


def test_format_usd():
    assert format_usd(1234.5) == "$1,234.50"
    assert format_usd(0) == "$0.00"
    assert format_usd(-5) == "-$5.00"


@pytest.mark.parametrize(
    "raw, expected",
    [("9.74g", 9.74), ("1,250 AED", 1250.0), ("0.52ct", 0.52), ("", 0.0), (None, 0.0), ("n/a", 0.0)],
)
def test_parse_measure(raw, expected):
    assert parse_measure(raw) == pytest.approx(expected)


def test_product_costing_18k():
    product = ProductRecord(gross_wt="10g", gold_purity="18K", gold_rate_24k="400", dia_wt="0.5", dia_rate="450", making="100")
    costing = calculate_product_costing(product)

    assert costing["rate_14k"] == pytest.approx(234.0)
    assert costing["rate_18k"] == pytest.approx(300.0)
    assert costing["gold_wt_14k"] == 0.0
    assert costing["gold_wt_18k"] == pytest.approx(10.0)
    assert costing["gold_value_18k"] == pytest.approx(3000.0)
    assert costing["dia_value"] == pytest.approx(225.0)
    assert costing["cost_18k"] == pytest.approx(3325.0)
    assert costing["cost_14k"] == pytest.approx(325.0)


def test_product_costing_14k_puts_weight_in_14k_column():
    product = ProductRecord(gross_wt="4", gold_purity="14K", gold_rate_24k="430", dia_wt="", making="")
    costing = calculate_product_costing(product)
    assert costing["gold_wt_14k"] == pytest.approx(4.0)
    assert costing["gold_wt_18k"] == 0.0
    assert costing["gold_value_14k"] == pytest.approx(4 * 430 * 0.585)
    assert costing["cost_14k"] == pytest.approx(4 * 430 * 0.585)
