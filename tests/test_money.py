"""Tests for currency sanitization."""

from decimal import Decimal

import pytest

from mri_records.core.money import format_naira, sanitize_amount, sum_amounts


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("50,000", Decimal("50000.00")),
        (" 1 250.5 ", Decimal("1250.50")),
        ("₦12,000", Decimal("12000.00")),
        ("NGN 7,500.25", Decimal("7500.25")),
        ("$99.999", Decimal("100.00")),
        (10000.5, Decimal("10000.50")),
        (19.005, Decimal("19.01")),
        (0.125, Decimal("0.13")),
        (42, Decimal("42.00")),
        (Decimal("3.14159"), Decimal("3.14")),
    ],
)
def test_sanitize_amount_normalizes_input(raw, expected):
    """Separators and currency marks are stripped and rounding is half-up."""
    assert sanitize_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "12abc", "NaN", "Infinity", True])
def test_sanitize_amount_unparsable_is_zero(raw):
    """Missing or malformed amounts become zero instead of raising."""
    assert sanitize_amount(raw) == Decimal("0.00")


def test_sanitize_amount_is_idempotent():
    """Sanitizing an already sanitized amount changes nothing."""
    once = sanitize_amount("1,234.565")
    assert sanitize_amount(once) == once
    assert sanitize_amount(str(once)) == once


def test_sanitize_amount_keeps_negative_sign():
    """Negative amounts parse so callers can reject them."""
    assert sanitize_amount("-500") == Decimal("-500.00")


def test_sum_amounts():
    """Sums stay exact at two decimal places."""
    assert sum_amounts([Decimal("50000.00"), Decimal("10000.50")]) == Decimal("60000.50")
    assert sum_amounts([Decimal("0.10")] * 3) == Decimal("0.30")
    assert sum_amounts([]) == Decimal("0.00")


def test_format_naira():
    """Printed amounts carry the currency code and thousands separators."""
    assert format_naira(Decimal("60000.5")) == "NGN 60,000.50"
    assert format_naira(None) == "NGN 0.00"


@pytest.mark.parametrize("raw", ["1e40", "9" * 40])
def test_sanitize_amount_too_long_is_zero(raw):
    """Amounts with more digits than two decimal places allow never raise."""
    assert sanitize_amount(raw) == Decimal("0.00")
