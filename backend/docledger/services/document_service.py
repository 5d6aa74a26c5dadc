# Overview: Service-layer operations for documents; creation, draft edits and finalization.

"""
Document lifecycle

DRAFT -> (finalize) -> PENDING / PAID -> (payments) -> PARTIAL / PAID

- Drafts are editable; every edit recomputes totals from scratch.
- Finalization freezes lines and totals and, in the same transaction,
  applies stock movements and loyalty points. The finalize marker
  (finalized_at) makes a second call a no-op.
- Numbers are allocated from the per-type sequence when the document is
  first written and never change afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..constants import DOCUMENT_TYPES, STATUS_DRAFT
from ..errors import (
    DocumentLocked,
    DocumentNotFound,
    IncompleteDocument,
    NumberingConflict,
    StockUnderflow,
)
from ..models import Document, DocumentLine, PointHistoryEntry, StockMovement
from ..repositories import get_repositories
from ..time_utils import utcnow, today, parse_iso_date
from . import numbering_service, inventory_service, loyalty_service
from .concurrency import run_with_retry
from .payment_service import apply_paid_total
from .totals_service import LineInput, Freight, Totals, compute_totals

COUNTERPARTY_FIELDS = {
    "ref": "counterparty_ref",
    "name": "counterparty_name",
    "hospital": "counterparty_hospital",
    "address": "counterparty_address",
    "tax_id": "counterparty_tax_id",
}


@dataclass
class FinalizeResult:
    document: Document
    movements: list[StockMovement] = field(default_factory=list)
    point_entry: PointHistoryEntry | None = None
    warnings: list[StockUnderflow] = field(default_factory=list)
    already_finalized: bool = False

    def to_dict(self) -> dict:
        return {
            "document": self.document.to_dict(),
            "movements": [m.to_dict() for m in self.movements],
            "point_entry": self.point_entry.to_dict() if self.point_entry else None,
            "warnings": [w.to_dict() for w in self.warnings],
            "already_finalized": self.already_finalized,
        }


# =============================================================================
# HELPERS
# =============================================================================

def _check_type(document_type: str) -> None:
    if document_type not in DOCUMENT_TYPES:
        raise ValueError(f"Unknown document type: {document_type}. Must be one of {DOCUMENT_TYPES}")


def _snapshot_counterparty(counterparty) -> dict:
    """
    Copy counterparty fields onto document columns.

    Accepts a plain dict or a directory row (anything with the same
    attribute names). The document keeps its own copy.
    """
    if counterparty is None:
        return {}
    snapshot = {}
    for key, column in COUNTERPARTY_FIELDS.items():
        if isinstance(counterparty, dict):
            value = counterparty.get(key)
        else:
            value = getattr(counterparty, key, None)
            if key == "ref" and value is None:
                value = getattr(counterparty, "code", None)
        if isinstance(value, str):
            value = value.strip() or None
        snapshot[column] = value
    return snapshot


def _resolve_freight(document_type: str, freight) -> Freight:
    if freight is None:
        freight = Freight()
    elif isinstance(freight, int) and not isinstance(freight, bool):
        freight = Freight(amount_cents=freight)
    if freight.tax_rate_bps is None:
        freight = Freight(
            amount_cents=freight.amount_cents,
            tax_rate_bps=current_app.config["DEFAULT_FREIGHT_TAX_RATE_BPS"],
        )
    return freight


def _compute(document_type: str, items, discount_cents: int, freight: Freight) -> Totals:
    return compute_totals(
        items,
        discount_cents=discount_cents,
        freight=freight,
        discount_policy=current_app.config["DISCOUNT_POLICIES"][document_type],
        freight_taxable=current_app.config["FREIGHT_TAXABLE"].get(document_type, True),
    )


def _line_input(line: DocumentLine) -> LineInput:
    return LineInput(
        description=line.description,
        quantity=line.quantity,
        unit_price_cents=line.unit_price_cents,
        tax_rate_bps=line.tax_rate_bps,
        product_id=line.product_id,
        hsn=line.hsn,
        model=line.model,
        track_stock=line.track_stock,
    )


def _build_lines(items, totals: Totals) -> list[DocumentLine]:
    lines = []
    for position, (item, computed) in enumerate(zip(items, totals.lines), start=1):
        lines.append(DocumentLine(
            position=position,
            product_id=item.product_id,
            track_stock=item.track_stock,
            description=item.description.strip(),
            model=item.model,
            hsn=item.hsn,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            tax_rate_bps=item.tax_rate_bps,
            amount_cents=computed.amount_cents,
            taxable_base_cents=computed.taxable_base_cents,
            tax_cents=computed.tax_cents,
            price_with_tax_cents=computed.price_with_tax_cents,
        ))
    return lines


def _apply_totals(document: Document, totals: Totals, freight: Freight) -> None:
    document.discount_cents = totals.discount_cents
    document.freight_cents = freight.amount_cents
    document.freight_tax_rate_bps = freight.tax_rate_bps
    document.subtotal_cents = totals.subtotal_cents
    document.tax_total_cents = totals.tax_total_cents
    document.freight_tax_cents = totals.freight_tax_cents
    document.grand_total_cents = totals.grand_total_cents
    document.grand_total_clamped = totals.grand_total_clamped
    document.balance_due_cents = totals.grand_total_cents - (document.total_paid_cents or 0)


def _require_complete(document: Document) -> None:
    missing = []
    if not (document.counterparty_name or "").strip():
        missing.append("counterparty name")
    if not document.lines:
        missing.append("line items")
    if missing:
        raise IncompleteDocument(
            f"Document {document.number} is missing {', '.join(missing)}",
            {"number": document.number, "missing": missing},
        )


def _finalize_locked(document: Document, actor: str | None, repos) -> FinalizeResult:
    """
    Finalize a document the caller has already locked.

    Never commits; the caller owns the transaction.
    """
    if document.finalized_at is not None:
        return FinalizeResult(document=document, already_finalized=True)

    _require_complete(document)

    document.finalize_started_at = utcnow()
    movements, warnings = inventory_service.apply_finalize_movements(document, repos=repos)

    document.finalized_at = utcnow()
    document.finalized_by = actor or document.created_by
    apply_paid_total(document, document.total_paid_cents or 0)

    point_entry = loyalty_service.accrue_for_document(document, repos=repos)
    repos.flush()

    return FinalizeResult(
        document=document,
        movements=movements,
        point_entry=point_entry,
        warnings=warnings,
    )


# =============================================================================
# CREATION
# =============================================================================

def _write_document(
    *,
    document_type: str,
    counterparty,
    items,
    discount_cents: int,
    freight,
    document_date,
    due_date,
    created_by: str | None,
    finalize: bool,
    repos,
):
    _check_type(document_type)
    items = list(items or [])
    freight = _resolve_freight(document_type, freight)

    # Validation happens before a number is allocated
    totals = _compute(document_type, items, discount_cents, freight)
    snapshot = _snapshot_counterparty(counterparty)
    doc_date = parse_iso_date(document_date) or today()
    due = parse_iso_date(due_date)

    retries = current_app.config.get("NUMBERING_CONFLICT_RETRIES", 5)
    last_number = None
    for _attempt in range(retries):
        number = numbering_service.next_number(document_type, repos=repos)
        last_number = number
        if repos.documents.number_exists(document_type, number):
            current_app.logger.warning("Document number %s already taken, allocating the next one", number)
            continue

        document = Document(
            document_type=document_type,
            number=number,
            document_date=doc_date,
            due_date=due,
            discount_policy=current_app.config["DISCOUNT_POLICIES"][document_type],
            status=STATUS_DRAFT,
            total_paid_cents=0,
            created_by=created_by,
            **snapshot,
        )
        _apply_totals(document, totals, freight)
        document.lines = _build_lines(items, totals)

        try:
            if finalize:
                repos.begin_exclusive()
            repos.documents.add(document)
            repos.flush()
            result = _finalize_locked(document, created_by, repos) if finalize else None
            repos.commit()
        except IntegrityError:
            repos.rollback()
            if not repos.documents.number_exists(document_type, number):
                raise
            current_app.logger.warning("Document number %s collided on insert, retrying", number)
            continue
        except Exception:
            repos.rollback()
            raise

        current_app.logger.info(
            "Created %s %s (grand total %d, %s)",
            document_type, number, document.grand_total_cents, document.status,
        )
        return result if finalize else document

    raise NumberingConflict(
        f"No free {document_type} number after {retries} attempts",
        {"document_type": document_type, "last_number": last_number},
    )


def create_document(
    document_type: str,
    counterparty=None,
    items=None,
    discount_cents: int = 0,
    freight=None,
    document_date=None,
    due_date=None,
    created_by: str | None = None,
    repos=None,
) -> Document:
    """
    Create a DRAFT document with a freshly allocated number.

    Args:
        document_type: QUOTATION, CUSTOMER_PO, SUPPLIER_PO, SERVICE_ORDER, INVOICE
        counterparty: dict (name, hospital, address, tax_id, ref) or directory row
        items: LineInput sequence
        discount_cents: Flat discount (minor units)
        freight: Freight, or an int amount using the default freight rate

    Raises:
        InvalidLineItem / InvalidAmount: nothing is written
        NumberingConflict: no free number after retrying
    """
    repos = repos or get_repositories()
    return _write_document(
        document_type=document_type,
        counterparty=counterparty,
        items=items,
        discount_cents=discount_cents,
        freight=freight,
        document_date=document_date,
        due_date=due_date,
        created_by=created_by,
        finalize=False,
        repos=repos,
    )


def issue_document(
    document_type: str,
    counterparty=None,
    items=None,
    discount_cents: int = 0,
    freight=None,
    document_date=None,
    due_date=None,
    created_by: str | None = None,
    repos=None,
) -> FinalizeResult:
    """Create and finalize in one transaction (the document is never seen as a draft)."""
    repos = repos or get_repositories()
    return _write_document(
        document_type=document_type,
        counterparty=counterparty,
        items=items,
        discount_cents=discount_cents,
        freight=freight,
        document_date=document_date,
        due_date=due_date,
        created_by=created_by,
        finalize=True,
        repos=repos,
    )


# =============================================================================
# DRAFT EDITS
# =============================================================================

def update_draft(
    document_id: int,
    *,
    items=None,
    counterparty=None,
    discount_cents: int | None = None,
    freight=None,
    due_date=None,
    document_date=None,
    repos=None,
) -> Document:
    """
    Edit a draft. Omitted arguments keep their stored value; totals are
    always recomputed.

    Raises:
        DocumentLocked: the document is already finalized
    """
    repos = repos or get_repositories()

    def _op() -> Document:
        document = repos.documents.get(document_id, for_update=True)
        if document is None:
            raise DocumentNotFound(f"Document {document_id} not found", {"document_id": document_id})
        if document.status != STATUS_DRAFT or document.finalized_at is not None:
            raise DocumentLocked(
                f"Document {document.number} is {document.status}; only drafts can be edited",
                {"number": document.number, "status": document.status},
            )

        new_items = list(items) if items is not None else [_line_input(line) for line in document.lines]
        new_discount = discount_cents if discount_cents is not None else document.discount_cents
        if freight is not None:
            new_freight = _resolve_freight(document.document_type, freight)
        else:
            new_freight = Freight(document.freight_cents, document.freight_tax_rate_bps)

        totals = _compute(document.document_type, new_items, new_discount, new_freight)

        if items is not None:
            # Old rows must be gone before new ones reuse their positions
            document.lines = []
            repos.flush()
            document.lines = _build_lines(new_items, totals)
        else:
            for line, computed in zip(document.lines, totals.lines):
                line.amount_cents = computed.amount_cents
                line.taxable_base_cents = computed.taxable_base_cents
                line.tax_cents = computed.tax_cents
                line.price_with_tax_cents = computed.price_with_tax_cents

        if counterparty is not None:
            for column, value in _snapshot_counterparty(counterparty).items():
                setattr(document, column, value)
        if due_date is not None:
            document.due_date = parse_iso_date(due_date)
        if document_date is not None:
            document.document_date = parse_iso_date(document_date)

        _apply_totals(document, totals, new_freight)
        repos.commit()
        return document

    return run_with_retry(_op)


# =============================================================================
# FINALIZATION
# =============================================================================

def finalize_document(document_id: int, actor: str | None = None, repos=None) -> FinalizeResult:
    """
    Finalize a draft: freeze totals, move stock, credit points.

    All side effects share one transaction. Calling it again for the same
    document returns already_finalized=True and changes nothing.

    Raises:
        IncompleteDocument: no counterparty name or no lines
        UnknownProduct: a stock-tracked line has no matching product
    """
    repos = repos or get_repositories()

    def _op() -> FinalizeResult:
        repos.begin_exclusive()
        document = repos.documents.get(document_id, for_update=True)
        if document is None:
            raise DocumentNotFound(f"Document {document_id} not found", {"document_id": document_id})

        result = _finalize_locked(document, actor, repos)
        repos.commit()

        if result.already_finalized:
            current_app.logger.info("Document %s already finalized; nothing to do", document.number)
        else:
            current_app.logger.info(
                "Finalized %s: status=%s movements=%d warnings=%d points=%s",
                document.number, document.status, len(result.movements), len(result.warnings),
                result.point_entry.points if result.point_entry else 0,
            )
        return result

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_document(document_id: int, repos=None) -> Document:
    repos = repos or get_repositories()
    document = repos.documents.get(document_id)
    if document is None:
        raise DocumentNotFound(f"Document {document_id} not found", {"document_id": document_id})
    return document


def find_by_number(document_type: str, number: str, repos=None) -> Document:
    repos = repos or get_repositories()
    document = repos.documents.find_by_number(document_type, number)
    if document is None:
        raise DocumentNotFound(
            f"{document_type} {number} not found",
            {"document_type": document_type, "number": number},
        )
    return document


def list_documents(document_type: str | None = None, status: str | None = None, repos=None) -> list[Document]:
    repos = repos or get_repositories()
    return repos.documents.list(document_type=document_type, status=status)


def list_overdue(as_of=None, repos=None) -> list[Document]:
    """Finalized documents past their due date that still have a balance."""
    repos = repos or get_repositories()
    return repos.documents.list_overdue(parse_iso_date(as_of) or today())
