# Overview: Pure totals calculation for documents (subtotal, tax, discount, freight, grand total).

"""
Totals Calculator

WHY: Every document kind prints the same set of totals. The only difference
between kinds is how a flat discount interacts with tax, so that choice is a
policy argument instead of five separate formulas.

DESIGN PRINCIPLES:
- Pure: no I/O, no session, safe to call from anywhere
- Exact: integer minor units in, Decimal in between, integers out
- Round once: each reported component is rounded half-even a single time;
  the grand total is the integer combination of the rounded components
- Validate before computing: a bad line fails the whole call
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..constants import DISCOUNT_FLAT_POST_SUBTOTAL, DISCOUNT_PROPORTIONAL_PER_ITEM
from ..errors import InvalidLineItem, InvalidAmount
from ..money import MAX_MONEY_CENTS, apply_rate, round_cents

MAX_RATE_BPS = 10000
MAX_QUANTITY = 1_000_000
# Largest value a stored INTEGER column can hold
MAX_STORED_CENTS = 2**63 - 1


@dataclass(frozen=True)
class LineInput:
    """One line as supplied by a caller, before any derived value exists."""
    description: str
    quantity: int
    unit_price_cents: int
    tax_rate_bps: int = 0
    product_id: int | None = None
    hsn: str | None = None
    model: str | None = None
    track_stock: bool = True


@dataclass(frozen=True)
class Freight:
    amount_cents: int = 0
    # None means "use the configured default" at the document layer
    tax_rate_bps: int | None = None


@dataclass(frozen=True)
class LineTotals:
    amount_cents: int
    discount_share_cents: int
    taxable_base_cents: int
    tax_cents: int
    price_with_tax_cents: int


@dataclass(frozen=True)
class Totals:
    lines: tuple[LineTotals, ...]
    gross_cents: int
    discount_cents: int
    subtotal_cents: int
    tax_total_cents: int
    freight_cents: int
    freight_tax_cents: int
    grand_total_cents: int
    grand_total_clamped: bool

    def to_dict(self) -> dict:
        return {
            "gross_cents": self.gross_cents,
            "discount_cents": self.discount_cents,
            "subtotal_cents": self.subtotal_cents,
            "tax_total_cents": self.tax_total_cents,
            "freight_cents": self.freight_cents,
            "freight_tax_cents": self.freight_tax_cents,
            "grand_total_cents": self.grand_total_cents,
            "grand_total_clamped": self.grand_total_clamped,
        }


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_line(item: LineInput, index: int = 0) -> None:
    details = {"index": index, "description": getattr(item, "description", None)}

    description = item.description
    if not isinstance(description, str) or not description.strip():
        raise InvalidLineItem(f"Line {index + 1}: description is required", details)

    if not _is_int(item.quantity):
        raise InvalidLineItem(f"Line {index + 1}: quantity must be a whole number", details)
    if item.quantity < 1:
        raise InvalidLineItem(f"Line {index + 1}: quantity must be at least 1", details)
    if item.quantity > MAX_QUANTITY:
        raise InvalidLineItem(f"Line {index + 1}: quantity exceeds {MAX_QUANTITY}", details)

    if not _is_int(item.unit_price_cents):
        raise InvalidLineItem(f"Line {index + 1}: unit price must be integer minor units", details)
    if item.unit_price_cents < 0:
        raise InvalidLineItem(f"Line {index + 1}: unit price must be >= 0", details)
    if item.unit_price_cents > MAX_MONEY_CENTS:
        raise InvalidLineItem(f"Line {index + 1}: unit price exceeds {MAX_MONEY_CENTS}", details)

    if not _is_int(item.tax_rate_bps) or not 0 <= item.tax_rate_bps <= MAX_RATE_BPS:
        raise InvalidLineItem(f"Line {index + 1}: tax rate must be between 0% and 100%", details)


def validate_lines(items) -> None:
    for index, item in enumerate(items):
        validate_line(item, index)


def _validate_amounts(discount_cents: int, freight: Freight) -> None:
    if not _is_int(discount_cents) or discount_cents < 0:
        raise InvalidAmount("Discount must be a non-negative amount", {"discount_cents": discount_cents})
    if discount_cents > MAX_MONEY_CENTS:
        raise InvalidAmount(f"Discount exceeds {MAX_MONEY_CENTS}", {"discount_cents": discount_cents})
    if not _is_int(freight.amount_cents) or freight.amount_cents < 0:
        raise InvalidAmount("Freight must be a non-negative amount", {"freight_cents": freight.amount_cents})
    if freight.amount_cents > MAX_MONEY_CENTS:
        raise InvalidAmount(f"Freight exceeds {MAX_MONEY_CENTS}", {"freight_cents": freight.amount_cents})
    rate = freight.tax_rate_bps
    if rate is not None and (not _is_int(rate) or not 0 <= rate <= MAX_RATE_BPS):
        raise InvalidAmount("Freight tax rate must be between 0% and 100%", {"freight_tax_rate_bps": rate})


def compute_totals(
    items,
    discount_cents: int = 0,
    freight: Freight | None = None,
    discount_policy: str = DISCOUNT_FLAT_POST_SUBTOTAL,
    freight_taxable: bool = True,
) -> Totals:
    """
    Compute document totals.

    FLAT_POST_SUBTOTAL:
        subtotal = sum(qty * price); tax per line on the undiscounted amount;
        the discount is subtracted once, after the subtotal.

    PROPORTIONAL_PER_ITEM:
        the discount (capped at the gross) is spread over lines by their share
        of the gross; tax is computed on each discounted base;
        subtotal = gross - discount.

    Both:
        grand = max(0, gross - discount + tax_total + freight + freight_tax)
        and grand_total_clamped records whether the max() applied.

    Rounding:
        tax_total and freight_tax are each rounded once, from their exact
        sums. The grand total adds those stored integers rather than rounding
        the exact sum a second time, so it can differ by one minor unit from
        round(exact grand) when both taxes sit on a half cent. In exchange the
        identity above holds exactly on the values that are persisted.

    Raises:
        InvalidLineItem: bad quantity, price, rate or description
        InvalidAmount: negative or oversized discount or freight, or a total
            too large to store
    """
    items = list(items or [])
    freight = freight or Freight()

    validate_lines(items)
    _validate_amounts(discount_cents, freight)

    if discount_policy not in (DISCOUNT_FLAT_POST_SUBTOTAL, DISCOUNT_PROPORTIONAL_PER_ITEM):
        raise ValueError(f"Unknown discount policy: {discount_policy}")

    amounts = [item.quantity * item.unit_price_cents for item in items]
    gross = sum(amounts)
    if gross > MAX_STORED_CENTS:
        raise InvalidAmount("Document total is too large to store", {"gross_cents": gross})

    proportional = discount_policy == DISCOUNT_PROPORTIONAL_PER_ITEM
    # Never distribute more than there is to discount
    distributed = Decimal(min(discount_cents, gross)) if proportional else Decimal(0)

    line_totals = []
    exact_tax_total = Decimal(0)
    for item, amount in zip(items, amounts):
        if proportional and gross > 0:
            share = Decimal(amount) * distributed / Decimal(gross)
        else:
            share = Decimal(0)
        base = Decimal(amount) - share
        tax = apply_rate(base, item.tax_rate_bps)
        exact_tax_total += tax

        line_totals.append(LineTotals(
            amount_cents=amount,
            discount_share_cents=round_cents(share),
            taxable_base_cents=round_cents(base),
            tax_cents=round_cents(tax),
            price_with_tax_cents=round_cents(
                Decimal(item.unit_price_cents) + apply_rate(item.unit_price_cents, item.tax_rate_bps)
            ),
        ))

    tax_total = round_cents(exact_tax_total)

    freight_rate = freight.tax_rate_bps or 0
    freight_tax = round_cents(apply_rate(freight.amount_cents, freight_rate)) if freight_taxable else 0

    subtotal = gross - discount_cents if proportional else gross

    raw_grand = gross - discount_cents + tax_total + freight.amount_cents + freight_tax
    if raw_grand > MAX_STORED_CENTS:
        raise InvalidAmount("Document total is too large to store", {"grand_total_cents": raw_grand})
    clamped = raw_grand < 0

    return Totals(
        lines=tuple(line_totals),
        gross_cents=gross,
        discount_cents=discount_cents,
        subtotal_cents=subtotal,
        tax_total_cents=tax_total,
        freight_cents=freight.amount_cents,
        freight_tax_cents=freight_tax,
        grand_total_cents=0 if clamped else raw_grand,
        grand_total_clamped=clamped,
    )
