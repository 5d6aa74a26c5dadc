# Overview: Engine error taxonomy and the stock-underflow warning.

from __future__ import annotations

from dataclasses import dataclass


class LedgerError(Exception):
    """Base for every engine failure. Nothing is persisted when one is raised."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvalidLineItem(LedgerError):
    """Non-positive quantity, negative price, bad tax rate or missing description."""


class InvalidAmount(LedgerError):
    """Negative discount or freight."""


class IncompleteDocument(LedgerError):
    """Missing counterparty or zero line items at finalize time."""


class InvalidPayment(LedgerError):
    """Payment rejected; the ledger is unchanged."""


class NumberingConflict(LedgerError):
    """A document number collided and no free slot was found after retrying."""


class UnknownProduct(LedgerError):
    """A stock-tracked line could not be resolved to a product."""


class DocumentNotFound(LedgerError):
    pass


class DocumentLocked(LedgerError):
    """Items and totals of a finalized document cannot change."""


@dataclass(frozen=True)
class StockUnderflow:
    """
    Recoverable warning: a decrement asked for more than was on hand.

    Stock is clamped at zero; the shortfall is reported, not hidden.
    """
    product_id: int
    product_name: str
    requested: int
    available: int
    reference: str

    @property
    def shortfall(self) -> int:
        return self.requested - self.available

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "requested": self.requested,
            "available": self.available,
            "shortfall": self.shortfall,
            "reference": self.reference,
        }
