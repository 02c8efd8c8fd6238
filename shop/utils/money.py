"""
Money helpers.

Amounts are integer minor units (cents). Rounding is always ROUND_HALF_UP.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union


def round_half_up(value: Union[int, float, Decimal, str]) -> int:
    """Round to the nearest whole cent, ties away from zero."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def percent_of(percent: int, amount_cents: int) -> int:
    """
    Percentage of an amount in cents.

    Examples:
        percent_of(10, 4550) -> 455
        percent_of(15, 1010) -> 152   (151.5 rounds up)
    """
    return round_half_up(Decimal(percent) * Decimal(amount_cents) / Decimal(100))


def cents_to_decimal_string(amount_cents: int) -> str:
    """
    Provider wire format for an amount: "45.50".
    """
    return f"{amount_cents // 100}.{amount_cents % 100:02d}"


def format_cents(amount_cents, symbol: str = '€') -> str:
    """
    Human readable amount for emails.

    Examples:
        format_cents(4095) -> "€40.95"
        format_cents(None) -> "-"
    """
    if amount_cents is None:
        return "-"
    num = (Decimal(int(amount_cents)) / Decimal(100)).quantize(Decimal('0.01'))
    return f"{symbol}{num}"
