import io
from typing import Iterable

from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from PIL import Image, UnidentifiedImageError

from src.errors import ExportError
from src.logger import get_logger
from src.models import PRODUCT_CATEGORIES, ProductRecord
from src.pricing import calculate_product_costing, round_money

logger = get_logger(__name__)

ALL_ITEMS_SHEET = "All Items"
IMAGE_SIZE_PX = 80
IMAGE_ROW_HEIGHT = 65
PLAIN_ROW_HEIGHT = 20

# (header, key, width)
CATALOG_COLUMNS: list[tuple[str, str, int]] = [
    ("Sr No", "sr_no", 6),
    ("CODE", "code", 15),
    ("PRODUCT", "product", 15),
    ("SHAPE", "shape", 10),
    ("SOLITAIRE WT", "solitaire_wt", 12),
    ("CAD", "cad", 6),
    ("H/D", "quality", 6),
    ("STL", "stl", 6),
    ("RENDER PICK", "render_pick", 12),
    ("GOLD WT 14K", "gold_wt_14k", 12),
    ("GOLD WT 18K", "gold_wt_18k", 12),
    ("24K GOLD RATE", "gold_rate_24k", 12),
    ("14K GOLD VALUE", "gold_value_14k", 12),
    ("18K GOLD VALUE", "gold_value_18k", 12),
    ("Shape", "dia_shape", 8),
    ("Size", "dia_size", 8),
    ("Pcs", "dia_pcs", 6),
    ("TOTAL DIAMOND WT", "dia_wt", 15),
    ("RATE", "dia_rate", 8),
    ("TOTAL DIAMOND VALUE", "dia_value", 15),
    ("MAKING", "making", 10),
    ("14K COST", "cost_14k", 12),
    ("18K COST", "cost_18k", 12),
]

PRODUCT_IMAGE_COLUMN = "C"
HEADER_FONT = Font(bold=True, color="FFFFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF1A472A")


def catalog_row(index: int, product: ProductRecord) -> dict[str, object]:
    costing = calculate_product_costing(product)
    return {
        "sr_no": index,
        "code": product.name,
        "product": "",
        "shape": product.shape,
        "solitaire_wt": product.solitaire_wt,
        "cad": product.cad,
        "quality": product.quality,
        "stl": "",
        "render_pick": "",
        "gold_wt_14k": costing["gold_wt_14k"] or "",
        "gold_wt_18k": costing["gold_wt_18k"] or "",
        "gold_rate_24k": product.gold_rate_24k,
        "gold_value_14k": round_money(costing["gold_value_14k"]),
        "gold_value_18k": round_money(costing["gold_value_18k"]),
        "dia_shape": "RD",
        "dia_size": "",
        "dia_pcs": "",
        "dia_wt": product.dia_wt,
        "dia_rate": product.dia_rate,
        "dia_value": round_money(costing["dia_value"]),
        "making": costing["making"],
        "cost_14k": round_money(costing["cost_14k"]),
        "cost_18k": round_money(costing["cost_18k"]),
    }


def _embed_image(sheet: Worksheet, product: ProductRecord, row_number: int) -> bool:
    if not product.image_data:
        return False
    try:
        with Image.open(io.BytesIO(product.image_data)) as source:
            source.load()
            png_buffer = io.BytesIO()
            source.convert("RGB").save(png_buffer, format="PNG")
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Skipping image for product %s: %s", product.id, exc)
        return False

    png_buffer.seek(0)
    image = XLImage(png_buffer)
    image.width = IMAGE_SIZE_PX
    image.height = IMAGE_SIZE_PX
    sheet.add_image(image, f"{PRODUCT_IMAGE_COLUMN}{row_number}")
    return True


def _add_sheet(workbook: Workbook, sheet_name: str, products: list[ProductRecord]) -> None:
    sheet = workbook.create_sheet(title=sheet_name)
    sheet.append([header for header, _, _ in CATALOG_COLUMNS])

    for column_index, (_, _, width) in enumerate(CATALOG_COLUMNS, start=1):
        sheet.column_dimensions[get_column_letter(column_index)].width = width
    for cell in sheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    for index, product in enumerate(products, start=1):
        row_values = catalog_row(index, product)
        sheet.append([row_values[key] for _, key, _ in CATALOG_COLUMNS])
        row_number = sheet.max_row
        has_image = _embed_image(sheet, product, row_number)
        sheet.row_dimensions[row_number].height = IMAGE_ROW_HEIGHT if has_image else PLAIN_ROW_HEIGHT


def build_catalog_workbook(products: Iterable[ProductRecord]) -> bytes:
    """
    Builds the catalog workbook: "All Items" first, then one sheet per
    product category that has items. Returns the .xlsx bytes.
    """
    products = list(products)
    try:
        workbook = Workbook()
        workbook.remove(workbook.active)

        if products:
            _add_sheet(workbook, ALL_ITEMS_SHEET, products)
        for category in PRODUCT_CATEGORIES:
            category_items = [product for product in products if product.category == category]
            if category_items:
                _add_sheet(workbook, category, category_items)

        if not workbook.worksheets:
            workbook.create_sheet(title="Empty")

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()
    except Exception as exc:
        logger.error("Failed to build catalog workbook: %s", exc)
        raise ExportError(f"Failed to generate spreadsheet: {exc}") from exc
