# Overview: Catalog and directory lookups used to pre-fill lines and counterparties.

"""
Autofill collaborators.

A lookup miss is never an error: the caller's values are kept as typed.
The SQL implementations read the products and counterparties tables; any
object with the same methods can be passed instead.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol

from sqlalchemy.exc import IntegrityError

from ..errors import LedgerError
from ..repositories import get_repositories
from .totals_service import LineInput


@dataclass(frozen=True)
class CatalogEntry:
    product_id: int
    description: str
    unit_price_cents: int
    tax_rate_bps: int
    hsn: str | None = None
    model: str | None = None


@dataclass(frozen=True)
class DirectoryEntry:
    ref: str | None
    name: str
    hospital: str | None = None
    address: str | None = None
    tax_id: str | None = None


class CatalogLookup(Protocol):
    def by_id(self, product_id: int) -> CatalogEntry | None: ...
    def by_name(self, name: str) -> CatalogEntry | None: ...


class DirectoryLookup(Protocol):
    def by_name(self, name: str) -> DirectoryEntry | None: ...


def _catalog_entry(product) -> CatalogEntry:
    return CatalogEntry(
        product_id=product.id,
        description=product.name,
        unit_price_cents=product.price_cents,
        tax_rate_bps=product.tax_rate_bps,
        hsn=product.hsn,
        model=product.model,
    )


class SqlCatalogLookup:
    def __init__(self, repos=None):
        self.repos = repos or get_repositories()

    def by_id(self, product_id: int) -> CatalogEntry | None:
        product = self.repos.products.get(product_id)
        if product is None or not product.is_active:
            return None
        return _catalog_entry(product)

    def by_name(self, name: str) -> CatalogEntry | None:
        matches = self.repos.products.find_by_name(name)
        return _catalog_entry(matches[0]) if matches else None


class SqlDirectoryLookup:
    def __init__(self, repos=None):
        self.repos = repos or get_repositories()

    def by_name(self, name: str) -> DirectoryEntry | None:
        row = self.repos.counterparties.find_by_name(name)
        if row is None:
            return None
        return DirectoryEntry(
            ref=row.code,
            name=row.name,
            hospital=row.hospital,
            address=row.address,
            tax_id=row.tax_id,
        )


def autofill_line(line: LineInput, catalog: CatalogLookup) -> LineInput:
    """
    Fill a line from the catalog, by product id first, then by description.

    Picking a product sets its price, tax rate, HSN and model on the line;
    the description the caller typed is kept. Unmatched lines come back
    unchanged.
    """
    entry = None
    if line.product_id is not None:
        entry = catalog.by_id(line.product_id)
    if entry is None and line.description:
        entry = catalog.by_name(line.description)
    if entry is None:
        return line

    return replace(
        line,
        product_id=entry.product_id,
        description=line.description or entry.description,
        unit_price_cents=entry.unit_price_cents,
        tax_rate_bps=entry.tax_rate_bps,
        hsn=entry.hsn if entry.hsn else line.hsn,
        model=entry.model if entry.model else line.model,
    )


def autofill_counterparty(counterparty: dict, directory: DirectoryLookup) -> dict:
    """
    Complete address, hospital and tax id from the directory by name.

    Values already present in the input win over directory values.
    """
    name = (counterparty or {}).get("name")
    if not name:
        return dict(counterparty or {})
    entry = directory.by_name(name)
    if entry is None:
        return dict(counterparty)

    filled = {
        "ref": entry.ref,
        "name": entry.name,
        "hospital": entry.hospital,
        "address": entry.address,
        "tax_id": entry.tax_id,
    }
    for key, value in counterparty.items():
        if value:
            filled[key] = value
    return filled


def create_counterparty(
    *,
    code: str,
    name: str,
    hospital: str | None = None,
    address: str | None = None,
    tax_id: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    repos=None,
):
    """Add a directory entry. Existing documents keep their own snapshot."""
    from ..models import Counterparty

    repos = repos or get_repositories()
    row = Counterparty(
        code=code.strip(),
        name=name.strip(),
        hospital=hospital,
        address=address,
        tax_id=tax_id,
        email=email,
        phone=phone,
    )
    try:
        repos.counterparties.add(row)
        repos.commit()
    except IntegrityError:
        repos.rollback()
        raise LedgerError(f"Directory code {code} already exists", {"code": code})
    return row
