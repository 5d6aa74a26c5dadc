"""
Exact money arithmetic.

Money is stored as integer minor units (paise/cents). Rates are stored as
basis points (1800 = 18%). Intermediate values are Decimal; rounding to whole
minor units is round-half-even and happens once, where a value leaves the
calculation.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation

BPS_PER_UNIT = Decimal(10000)
MINOR_PER_MAJOR = Decimal(100)

# Maximum price: 9,999,999.99 (999,999,999 minor units)
MAX_MONEY_CENTS = 999_999_999


def round_cents(value: Decimal) -> int:
    """Round an exact minor-unit amount to a whole minor unit (half-even)."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def apply_rate(amount, rate_bps: int) -> Decimal:
    """Exact tax on an amount in minor units; never rounded here."""
    return Decimal(amount) * Decimal(rate_bps) / BPS_PER_UNIT


def parse_money(value) -> int:
    """
    Convert a major-unit decimal ("15000", "15000.50", Decimal) to minor units.

    Floats are rejected: they cannot be converted without drift.
    More than two fraction digits is an error, not a rounding opportunity.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError("money must be given as a decimal string or integer")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"invalid money amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"invalid money amount: {value!r}")
    cents = amount * MINOR_PER_MAJOR
    if cents != cents.to_integral_value():
        raise ValueError(f"money amount has more than 2 fraction digits: {value!r}")
    return int(cents)


def parse_rate(value) -> int:
    """Convert a percentage ("18", "2.5") to basis points."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError("rate must be given as a decimal string or integer")
    try:
        pct = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"invalid rate: {value!r}")
    bps = pct * 100
    if not bps.is_finite() or bps != bps.to_integral_value():
        raise ValueError(f"rate has more than 2 fraction digits: {value!r}")
    return int(bps)


def format_money(cents: int | None) -> str | None:
    """Minor units -> decimal string with two fraction digits ("19222.00")."""
    if cents is None:
        return None
    return str((Decimal(cents) / MINOR_PER_MAJOR).quantize(Decimal("0.01")))


def format_rate(rate_bps: int | None) -> str | None:
    """Basis points -> percent string ("18.00")."""
    if rate_bps is None:
        return None
    return str((Decimal(rate_bps) / 100).quantize(Decimal("0.01")))
