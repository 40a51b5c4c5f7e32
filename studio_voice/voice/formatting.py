"""
Display and money helpers shared by the resolver and executor.

Money arrives from the parser as a Decimal in major units and is
converted to integer minor units here, with half-up rounding.
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union


def pretty_date(date_key: str) -> str:
    """
    Short display form of a date key.

    Examples:
        >>> pretty_date("2026-02-17")
        'Tue, Feb 17'
    """
    d = date.fromisoformat(date_key)
    return f"{d:%a}, {d:%b} {d.day}"


def shift_date(date_key: str, days: int) -> str:
    """Date key moved by a number of days."""
    return (date.fromisoformat(date_key) + timedelta(days=days)).isoformat()


def to_minor_units(amount: Union[Decimal, int, str]) -> int:
    """
    Major currency units to integer cents.

    Examples:
        >>> to_minor_units(Decimal("100"))
        10000
        >>> to_minor_units(Decimal("80.505"))
        8051
    """
    cents = (Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def prorate_cents(amount_cents: int, from_minutes: int, to_minutes: int) -> int:
    """
    Rescale a lesson amount to a new duration.

    Examples:
        >>> prorate_cents(6000, 60, 90)
        9000
    """
    return round_cents(Decimal(amount_cents) * to_minutes / max(1, from_minutes))


def amount_for_rate(rate_cents_per_hour: int, duration_minutes: int) -> int:
    """Lesson amount for an hourly rate and a duration."""
    return round_cents(Decimal(rate_cents_per_hour) * duration_minutes / 60)


def format_money(cents: int) -> str:
    """
    Dollar display; whole amounts drop the cents.

    Examples:
        >>> format_money(10000)
        '$100'
        >>> format_money(8050)
        '$80.50'
    """
    dollars, remainder = divmod(cents, 100)
    if remainder == 0:
        return f"${dollars}"
    return f"${dollars}.{remainder:02d}"


def title_case_name(name: str) -> str:
    """Capitalize each word of a spoken name; non-Latin text is left as is."""
    return " ".join(part[:1].upper() + part[1:] for part in name.split())


def join_names(names: Iterable[str]) -> str:
    return ", ".join(names)
