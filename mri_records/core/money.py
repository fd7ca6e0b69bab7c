"""Currency normalization for every monetary amount the API accepts."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

# Largest value a Numeric(14, 2) column holds
MAX_AMOUNT = Decimal("999999999999.99")

# Leading marks tolerated in front of an amount, e.g. "₦50,000" or "NGN 50,000"
CURRENCY_PREFIXES = ("NGN", "₦", "N", "$")


def sanitize_amount(value: Any) -> Decimal:
    """
    Normalize a user supplied amount to a 2-place Decimal.

    Thousands separators, surrounding whitespace and a leading currency mark
    are stripped. Parsing goes through the textual form, so a float such as
    ``19.005`` is read as the literal ``"19.005"`` rather than its binary
    approximation, and rounding is half-up.

    Args:
        value: Amount as str, int, float, Decimal or None

    Returns:
        Amount quantized to cents; ``0.00`` when absent, blank, unparsable or
        too long to carry two decimal places
    """
    if value is None or isinstance(value, bool):
        return ZERO

    text = str(value).strip().replace(",", "").replace(" ", "")
    for prefix in CURRENCY_PREFIXES:
        if text.upper().startswith(prefix):
            text = text[len(prefix) :]
            break

    if not text:
        return ZERO

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return ZERO

    if not amount.is_finite():
        return ZERO

    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context can carry at two places
        return ZERO


def sum_amounts(amounts: list[Decimal]) -> Decimal:
    """Sum already sanitized amounts, quantized to cents."""
    return sum(amounts, ZERO).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_naira(value: Any) -> str:
    """Format an amount for printed documents, e.g. ``NGN 60,000.50``."""
    return f"NGN {sanitize_amount(value):,.2f}"
