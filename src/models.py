from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Category(str, Enum):
    GOLD = "Gold"
    SILVER = "Silver"
    PLATINUM = "Platinum"
    DIAMOND = "Diamond"
    CUSTOM = "Custom"

    @property
    def is_live_priced(self) -> bool:
        return self is not Category.CUSTOM


class Unit(str, Enum):
    MILLIGRAM = "mg"
    GRAM = "g"
    KILOGRAM = "kg"
    TROY_OUNCE = "oz"
    CARAT = "ct"

    @property
    def label(self) -> str:
        return UNIT_LABELS[self]


UNIT_LABELS: dict[Unit, str] = {
    Unit.MILLIGRAM: "milligrams",
    Unit.GRAM: "grams",
    Unit.KILOGRAM: "kilograms",
    Unit.TROY_OUNCE: "troy oz",
    Unit.CARAT: "carats (ct)",
}


class InvoiceStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"


# Karat-equivalent purity values offered per category in the UI, first entry is the default.
# Metals accept any karat in (0, 24]; diamonds only the listed settings.
PURITY_OPTIONS: dict[Category, dict[float, str]] = {
    Category.GOLD: {24: "24k", 22: "22k", 21: "21k", 18: "18k", 14: "14k"},
    Category.SILVER: {24: "Fine (999)", 22.2: "Sterling (925)"},
    Category.PLATINUM: {24: "Pure (999)", 22.8: "950 Plat", 21.6: "900 Plat"},
    Category.DIAMOND: {24: "Setting: 24k", 18: "Setting: 18k", 14: "Setting: 14k", 0: "Loose (No Metal)"},
    Category.CUSTOM: {24: "Pure/24k", 22: "22k", 18: "18k", 14: "14k"},
}

PRODUCT_CATEGORIES = [
    "Rings",
    "Bracelet",
    "Pendant",
    "Earrings",
    "Necklace",
    "Two Finger Rings",
]


def default_purity(category: Category) -> float:
    return next(iter(PURITY_OPTIONS[category]))


def is_valid_purity(category: Category, purity: float) -> bool:
    if category is Category.DIAMOND:
        return purity in PURITY_OPTIONS[category]
    return 0 < purity <= 24


@dataclass
class LineItem:
    category: Category
    quantity: float
    unit: Unit
    purity: Optional[float] = 24
    unit_price: float = 0.0
    id: Optional[int] = None

    def __post_init__(self) -> None:
        self.category = Category(self.category)
        self.unit = Unit(self.unit)
        self.quantity = float(self.quantity)
        self.unit_price = float(self.unit_price)
        if self.purity is not None:
            self.purity = float(self.purity)
            if not is_valid_purity(self.category, self.purity):
                raise ValueError(
                    f"Purity {self.purity:g} is not valid for {self.category.value}"
                )

    @property
    def total(self) -> float:
        from src.pricing import calculate_line_total

        return calculate_line_total(self)


@dataclass
class Invoice:
    client_name: str
    email: str
    date: str
    status: InvoiceStatus = InvoiceStatus.PENDING
    items: list[LineItem] = field(default_factory=list)
    id: Optional[int] = None
    created_at: Optional[str] = None

    def __post_init__(self) -> None:
        self.status = InvoiceStatus(self.status)

    @property
    def total_amount(self) -> float:
        from src.pricing import calculate_invoice_total

        return calculate_invoice_total(self.items)


@dataclass
class SpotPriceQuote:
    gold: float
    silver: float
    platinum: float
    diamond: float
    observed_at: datetime
    source: str = "upstream"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"

    def price_for(self, category: Category) -> Optional[float]:
        prices = {
            Category.GOLD: self.gold,
            Category.SILVER: self.silver,
            Category.PLATINUM: self.platinum,
            Category.DIAMOND: self.diamond,
        }
        return prices.get(Category(category))


@dataclass
class ProductRecord:
    name: str = ""
    shape: str = ""
    solitaire_wt: str = ""
    cad: str = "YES"
    quality: str = "D"
    gross_wt: str = ""
    gold_purity: str = "18K"
    gold_rate_24k: str = "430"
    dia_wt: str = ""
    dia_rate: str = "450"
    net_wt: str = ""
    making: str = ""
    somn_dia: str = ""
    total: str = ""
    date: str = ""
    category: str = "Rings"
    image_name: Optional[str] = None
    image_mime: Optional[str] = None
    image_data: Optional[bytes] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
