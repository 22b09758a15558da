import re
from dataclasses import replace
from typing import Any, Iterable, Optional

from src.errors import LivePriceLockedError
from src.models import (
    PURITY_OPTIONS,
    Category,
    LineItem,
    ProductRecord,
    SpotPriceQuote,
    Unit,
    default_purity,
)

TROY_OZ_TO_GRAMS = 31.1034768

MASS_TO_OZ: dict[Unit, float] = {
    Unit.MILLIGRAM: 1 / 31103.4768,
    Unit.GRAM: 1 / 31.1034768,
    Unit.KILOGRAM: 1000 / 31.1034768,
    Unit.TROY_OUNCE: 1,
    Unit.CARAT: 0.2 / 31.1034768,
}

GOLD_14K_FACTOR = 0.585
GOLD_18K_FACTOR = 0.750


def round_money(value: float) -> float:
    return round(value, 2)


def format_usd(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def convert_to_oz(quantity: float, unit: Unit | str) -> float:
    return quantity * MASS_TO_OZ[Unit(unit)]


def convert_to_carats(quantity: float, unit: Unit | str) -> float:
    return quantity * (MASS_TO_OZ[Unit(unit)] / MASS_TO_OZ[Unit.CARAT])


def calculate_line_total(item: LineItem) -> float:
    if item.category is Category.DIAMOND:
        # Diamond prices are per carat; the setting karat is informational.
        return convert_to_carats(item.quantity, item.unit) * item.unit_price

    purity = item.purity if item.purity is not None else 24
    purity_factor = purity / 24
    return convert_to_oz(item.quantity, item.unit) * item.unit_price * purity_factor


def calculate_invoice_total(items: Iterable[LineItem]) -> float:
    return sum((calculate_line_total(item) for item in items), 0.0)


def live_price_for(category: Category | str, quote: SpotPriceQuote) -> Optional[float]:
    price = quote.price_for(Category(category))
    if price is None:
        return None
    return round_money(price)


def sync_live_prices(items: list[LineItem], quote: SpotPriceQuote) -> list[LineItem]:
    synced: list[LineItem] = []
    for item in items:
        new_price = live_price_for(item.category, quote)
        if new_price is not None and new_price > 0 and item.unit_price != new_price:
            synced.append(replace(item, unit_price=new_price))
        else:
            synced.append(item)
    return synced


def change_category(item: LineItem, category: Category | str, quote: SpotPriceQuote) -> LineItem:
    category = Category(category)
    purity = item.purity
    if purity is not None and purity not in PURITY_OPTIONS[category]:
        purity = default_purity(category)

    unit_price = item.unit_price
    live_price = live_price_for(category, quote)
    if live_price is not None:
        unit_price = live_price

    return replace(item, category=category, purity=purity, unit_price=unit_price)


def set_unit_price(item: LineItem, price: float) -> LineItem:
    if item.category.is_live_priced:
        raise LivePriceLockedError(
            f"{item.category.value} is priced from the live feed and can't be edited"
        )
    return replace(item, unit_price=float(price))


def purity_label(category: Category | str, purity: Optional[float]) -> str:
    category = Category(category)
    if purity is None:
        purity = 24
    if category is Category.SILVER:
        return {24: "999", 22.2: "925"}.get(purity, f"{purity:g}k")
    if category is Category.PLATINUM:
        return {24: "999", 22.8: "950", 21.6: "900"}.get(purity, f"{purity:g}k")
    if category is Category.DIAMOND:
        return "Loose" if purity == 0 else f"{purity:g}k Set"
    return f"{purity:g}k"


def parse_measure(value: Any) -> float:
    """Reads a number out of free text such as '9.74g' or '1,250 AED'."""
    cleaned = re.sub(r"[^\d.]", "", str(value or ""))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def calculate_product_costing(product: ProductRecord) -> dict[str, Any]:
    gold_rate_24k = parse_measure(product.gold_rate_24k)
    rate_14k = gold_rate_24k * GOLD_14K_FACTOR
    rate_18k = gold_rate_24k * GOLD_18K_FACTOR

    gross_wt = parse_measure(product.gross_wt)
    gold_wt_14k = gross_wt if product.gold_purity == "14K" else 0.0
    gold_wt_18k = gross_wt if product.gold_purity == "18K" else 0.0

    gold_value_14k = gold_wt_14k * rate_14k
    gold_value_18k = gold_wt_18k * rate_18k

    dia_wt = parse_measure(product.dia_wt)
    dia_rate = parse_measure(product.dia_rate)
    dia_value = dia_wt * dia_rate

    making = parse_measure(product.making)

    return {
        "gold_rate_24k": gold_rate_24k,
        "rate_14k": rate_14k,
        "rate_18k": rate_18k,
        "gold_wt_14k": gold_wt_14k,
        "gold_wt_18k": gold_wt_18k,
        "gold_value_14k": gold_value_14k,
        "gold_value_18k": gold_value_18k,
        "dia_wt": dia_wt,
        "dia_rate": dia_rate,
        "dia_value": dia_value,
        "making": making,
        "cost_14k": gold_value_14k + dia_value + making,
        "cost_18k": gold_value_18k + dia_value + making,
    }
