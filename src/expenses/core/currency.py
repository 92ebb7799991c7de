#!/usr/bin/env python3
"""
Currency Conversion and Handling Utilities

All expense arithmetic is done in integer pence to avoid floating-point drift.

Currency Systems:
- Monzo reports amounts in signed minor units: -850 = £8.50 spent
- Internal calculations use pence: 100 pence = £1.00
- The CSV baseline and JSON output use major-unit numbers: 8.5

Key Principles:
- Never sum floats; convert to pence first
- Round once, when a total is rendered back to a major-unit number
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

DEFAULT_CURRENCY = "GBP"

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
}


def pence_to_pounds_str(pence: int) -> str:
    """
    Convert pence to a pounds string using pure integer arithmetic.

    Args:
        pence: Amount in pence

    Returns:
        Formatted string without currency symbol

    Example:
        pence_to_pounds_str(850) -> "8.50"
    """
    is_negative = pence < 0
    abs_pence = abs(int(pence))

    pounds = abs_pence // 100
    remainder = abs_pence % 100

    if is_negative:
        return f"-{pounds}.{remainder:02d}"
    return f"{pounds}.{remainder:02d}"


def parse_pounds_to_pence(pounds_str: str) -> int:
    """
    Parse a pounds string to pence.

    Args:
        pounds_str: String representation like "8.50", "£1,234.56" or "12"

    Returns:
        Amount in pence

    Raises:
        ValueError: If the string is not a number

    Examples:
        parse_pounds_to_pence("8.5") -> 850
        parse_pounds_to_pence("£1,234.56") -> 123456
    """
    clean = str(pounds_str).strip()
    for symbol in CURRENCY_SYMBOLS.values():
        clean = clean.replace(symbol, "")
    clean = clean.replace(",", "").strip()

    if not clean:
        raise ValueError(f"Empty amount: {pounds_str!r}")

    try:
        value = Decimal(clean)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {pounds_str!r}") from e

    if not value.is_finite():
        raise ValueError(f"Invalid amount: {pounds_str!r}")

    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def major_to_pence(amount: Union[int, float, str, Decimal]) -> int:
    """
    Convert a major-unit number (as found in JSON documents) to pence.

    Goes through the decimal string form so that 9.2 becomes 920, not 919.
    """
    if isinstance(amount, bool):
        raise ValueError(f"Invalid amount: {amount!r}")
    if isinstance(amount, int):
        return amount * 100
    if isinstance(amount, Decimal):
        return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return parse_pounds_to_pence(repr(amount) if isinstance(amount, float) else amount)


def pence_to_major(pence: int) -> float:
    """
    Render pence as a 2-decimal major-unit number for JSON output.

    Example:
        pence_to_major(2095) -> 20.95
    """
    return float(Decimal(pence) / 100)


def minor_units_to_pence(minor_units: int) -> int:
    """
    Convert a signed Monzo minor-unit amount to unsigned pence.

    Example:
        minor_units_to_pence(-850) -> 850
    """
    return abs(int(minor_units))


def format_pence(pence: int, currency: str = DEFAULT_CURRENCY) -> str:
    """Format pence with the currency symbol, e.g. '£8.50'."""
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    return f"{symbol}{pence_to_pounds_str(pence)}"
