"""
Field extraction for scanned product tags.

Product tags come back from OCR as loose multi-line text, e.g.::

    RRUMI JEWELRY
    RDLR501
    GROSS WT - 9.74g
    DIA WT : 0.52ct
    NET WT - 9.64g
    MAKING - 350 AED
    TOTAL = 4,210 AED
    12.03.24

``extract_tag_fields`` turns that into a partial product form. A field is
present in the result only when its pattern matched; nothing is guessed.
"""

import re
from typing import Any, Mapping

BRAND_MARKER = "RRUMI"
MAX_CODE_LINE_LENGTH = 15

_SEP = r"[-–_:]?"

FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "gross_wt": re.compile(rf"GROSS\s*WT\s*{_SEP}\s*([\d.,]+\s*g?)", re.IGNORECASE),
    "dia_wt": re.compile(rf"DIA\s*WT\s*{_SEP}\s*([\d.,]+\s*(?:CT)?)", re.IGNORECASE),
    "net_wt": re.compile(rf"NET\s*WT\s*{_SEP}\s*([\d.,]+\s*g?)", re.IGNORECASE),
    "making": re.compile(rf"MAKING\s*{_SEP}\s*([\d.,]+(?:[ \t]*[A-Z]{{3}}\b)?)", re.IGNORECASE),
    "total": re.compile(r"TOTAL\s*[-–_:=]?\s*([\d.,]+(?:[ \t]*[A-Z]{3}\b)?)", re.IGNORECASE),
    "somn_dia": re.compile(rf"SOMN\s*DIA\s*{_SEP}\s*(.+)", re.IGNORECASE),
}

DATE_PATTERN = re.compile(r"(\d{2}\.\d{2}\.(?:\d{4}|\d{2}))\b")
ITEM_CODE_PATTERN = re.compile(r"\b(R[A-Z]*\d+[A-Z0-9]*)\b", re.IGNORECASE)


def _find_item_code(text: str) -> str | None:
    for line in text.splitlines():
        if BRAND_MARKER in line:
            continue
        if len(line.strip()) >= MAX_CODE_LINE_LENGTH:
            continue
        match = ITEM_CODE_PATTERN.search(line)
        if match:
            return match.group(1)
    return None


def extract_tag_fields(text: str | None) -> dict[str, str]:
    if not text:
        return {}

    extracted: dict[str, str] = {}
    for field_name, pattern in FIELD_PATTERNS.items():
        match = pattern.search(text)
        if match:
            value = match.group(1).strip()
            if value:
                extracted[field_name] = value

    date_match = DATE_PATTERN.search(text)
    if date_match:
        extracted["date"] = date_match.group(1)

    item_code = _find_item_code(text)
    if item_code:
        extracted["name"] = item_code

    return extracted


def apply_extracted_fields(form: Mapping[str, Any], extracted: Mapping[str, str]) -> dict[str, Any]:
    updated = dict(form)
    for key, value in extracted.items():
        if value:
            updated[key] = value
    return updated
