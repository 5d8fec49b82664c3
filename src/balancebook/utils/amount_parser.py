"""Amount parsing utilities.

Amounts are whole numbers in the smallest currency unit, so every
separator character is treated as a thousands separator.
"""

import re

CURRENCY_PATTERN = re.compile(r"^(rp|idr|usd|eur)\.?|[$€£¥]", re.IGNORECASE)
SEPARATOR_PATTERN = re.compile(r"[,._'\s]")


def parse_amount(amount_str: str) -> int:
    """Parse an amount string into an integer.

    Handles various formats:
    - "120000"
    - "Rp 120.000" / "Rp120,000"
    - "$1,234"
    - "-50 000"
    - "(5,000)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Integer amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    text = str(amount_str).strip()

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1].strip()
    if text.startswith("-"):
        is_negative = not is_negative
        text = text[1:].strip()

    text = CURRENCY_PATTERN.sub("", text)
    text = SEPARATOR_PATTERN.sub("", text)

    if not text.isdigit():
        raise ValueError(f"Could not parse amount '{amount_str}'")

    amount = int(text)
    return -amount if is_negative else amount
