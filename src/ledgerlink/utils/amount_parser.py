"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

ZERO = Decimal("0")

_CURRENCY_SYMBOLS = re.compile(r"[$€£¥]")


def _clean(amount_str: str) -> tuple[str, bool]:
    """Strip quotes, symbols and separators. Returns (numeric text, is_negative)."""
    amount_str = amount_str.strip().strip("\"'").strip()
    amount_str = _CURRENCY_SYMBOLS.sub("", amount_str)
    amount_str = amount_str.replace(",", "").replace(" ", "")

    is_negative = False
    # "-$(5)" arrives here as "-(5)"
    if amount_str.startswith("-"):
        is_negative = True
        amount_str = amount_str.lstrip("-")

    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # "-$12", "$-12", "(-5)" and "-12" all end up here with a leading minus
    if amount_str.startswith("-"):
        is_negative = True
        amount_str = amount_str.lstrip("-")

    return amount_str, is_negative


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "-$123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    cleaned, is_negative = _clean(str(amount_str))

    try:
        amount = Decimal(cleaned)
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")

    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")

    return -amount if is_negative else amount


def normalize_amount(amount_str) -> Decimal:
    """Lenient variant of parse_amount used by the import pipeline.

    Never raises: unparseable input (garbage, empty, None) becomes zero, so
    callers that care must treat ``Decimal("0")`` as possibly unparseable.
    Numbers that are already numeric are passed through as Decimal.
    """
    if isinstance(amount_str, Decimal):
        return amount_str
    if isinstance(amount_str, (int, float)):
        return Decimal(str(amount_str))
    try:
        return parse_amount(amount_str)
    except ValueError:
        return ZERO


def format_amount_key(amount: Decimal) -> str:
    """Absolute value with exactly two decimals, for composite match keys."""
    return f"{abs(amount):.2f}"
