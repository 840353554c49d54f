"""
Text Parsers
============

Pure helpers that turn loosely formatted feed text into typed values.
"""

import re
from typing import Optional, Tuple

from ..catalog.models import PricePair

TITLE_DELIMITER = " ("
PRICE_SEPARATOR = "/"
SOLD_OUT_MARKER = "ausverkauft"

_NON_NUMERIC = re.compile(r"[^\d,.+\-]")
_NON_DIGIT = re.compile(r"\D")


def parse_price(text: str) -> Optional[float]:
    """Parse a German price fragment such as ``"2,50 €)"``.

    Separators left over from surrounding words (``"inkl. MwSt."``) are
    trimmed. Returns None when nothing numeric is left.
    """
    cleaned = _NON_NUMERIC.sub("", text).strip(".,").replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_price_pair(title: str) -> Tuple[str, Optional[PricePair]]:
    """Split a feed title into meal name and prices.

    ``"Soup (1,50 € / 2,50 €)"`` gives ``("Soup", PricePair(1.5, 2.5))``.
    """
    name, delimiter, rest = title.partition(TITLE_DELIMITER)
    if not delimiter:
        return title, None

    parts = rest.split(PRICE_SEPARATOR)
    if len(parts) not in (1, 2):
        return name, None

    student = parse_price(parts[0])
    if student is None:
        return name, None

    employee = parse_price(parts[1]) if len(parts) == 2 else None
    return name, PricePair(student=student, employee=employee)


def parse_id_from_link(url: str) -> int:
    """Keep only the digits of a link; ``0`` when there are none."""
    digits = _NON_DIGIT.sub("", url or "")
    return int(digits) if digits else 0


def is_sold_out(title: str) -> bool:
    """Whether the bracketed title suffix carries the sold-out marker."""
    _, delimiter, rest = title.partition(TITLE_DELIMITER)
    return bool(delimiter) and SOLD_OUT_MARKER in rest.lower()
