"""
Text recognition for product tag photos.

Recognition goes through Tesseract (pytesseract + Pillow). Tesseract itself
must be installed on the machine; point TESSERACT_CMD at the binary when it
isn't on PATH.
"""

import io
import os
from dataclasses import dataclass, field
from typing import Callable

import pytesseract
from PIL import Image, UnidentifiedImageError

from src.errors import OCRError
from src.extraction import extract_tag_fields
from src.logger import get_logger

logger = get_logger(__name__)

OCR_LANGUAGE = "eng"


@dataclass
class ScanResult:
    fields: dict[str, str] = field(default_factory=dict)
    text: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def recognize_text(image_bytes: bytes) -> str:
    tesseract_cmd = os.getenv("TESSERACT_CMD", "").strip()
    if tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return pytesseract.image_to_string(image.convert("RGB"), lang=OCR_LANGUAGE)
    except UnidentifiedImageError as exc:
        raise OCRError("Uploaded file is not a readable image") from exc
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
        raise OCRError(f"Text recognition failed: {exc}") from exc


def scan_product_tag(
    image_bytes: bytes,
    on_complete: Callable[[ScanResult], None],
    recognizer: Callable[[bytes], str] = recognize_text,
) -> None:
    """
    Recognize a tag photo and hand the extracted fields to ``on_complete``.

    ``on_complete`` is called exactly once whether recognition succeeds or
    fails. A failure yields an empty field set plus an error message, so the
    form keeps whatever the user already typed.
    """
    try:
        text = recognizer(image_bytes)
        result = ScanResult(fields=extract_tag_fields(text), text=text)
        logger.debug("OCR extracted %d field(s)", len(result.fields))
    except Exception as exc:
        logger.warning("OCR scan failed", exc_info=True)
        result = ScanResult(error=str(exc) or exc.__class__.__name__)

    on_complete(result)
