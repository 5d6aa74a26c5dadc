from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ..constants import STATUS_DRAFT, DISCOUNT_FLAT_POST_SUBTOTAL


class Document(db.Model):
    """
    Commercial document: quotation, customer PO, supplier PO, service order or invoice.

    LIFECYCLE:
    1. DRAFT: Editable. Lines and totals may be recomputed. No side effects.
    2. PENDING / PARTIAL / PAID: Finalized. Lines and totals are frozen;
       only payments, total_paid_cents, balance_due_cents and status move.

    INVARIANTS:
    - grand_total_cents = max(0, gross - discount + tax + freight + freight tax)
    - total_paid_cents = sum of payment amounts
    - balance_due_cents = grand_total_cents - total_paid_cents
    - number is unique within document_type and never changes

    The counterparty block is a snapshot taken when the document was written,
    not a live reference to the directory.
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("document_type", "number", name="uq_documents_type_number"),
        db.Index("ix_documents_type_status", "document_type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)

    # Human-readable document number (e.g., "SMQ 137")
    number = db.Column(db.String(64), nullable=False, index=True)

    document_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=True)

    # Counterparty snapshot
    counterparty_ref = db.Column(db.String(64), nullable=True)
    counterparty_name = db.Column(db.String(255), nullable=True)
    counterparty_hospital = db.Column(db.String(255), nullable=True)
    counterparty_address = db.Column(db.Text, nullable=True)
    counterparty_tax_id = db.Column(db.String(32), nullable=True)

    # Pricing inputs (all amounts in minor units, rates in basis points)
    discount_policy = db.Column(db.String(32), nullable=False, default=DISCOUNT_FLAT_POST_SUBTOTAL)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    freight_cents = db.Column(db.Integer, nullable=False, default=0)
    freight_tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    # Computed totals
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_total_cents = db.Column(db.Integer, nullable=False, default=0)
    freight_tax_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_clamped = db.Column(db.Boolean, nullable=False, default=False)

    # Payment tracking
    total_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_due_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=STATUS_DRAFT, index=True)

    created_by = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Finalize marker: both are written in the same transaction as the
    # stock and loyalty side effects.
    finalize_started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    finalized_at = db.Column(db.DateTime(timezone=True), nullable=True)
    finalized_by = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "DocumentLine",
        backref="document",
        lazy=True,
        order_by="DocumentLine.position",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "number": self.number,
            "document_date": to_iso_date(self.document_date),
            "due_date": to_iso_date(self.due_date),
            "counterparty_ref": self.counterparty_ref,
            "counterparty_name": self.counterparty_name,
            "counterparty_hospital": self.counterparty_hospital,
            "counterparty_address": self.counterparty_address,
            "counterparty_tax_id": self.counterparty_tax_id,
            "discount_policy": self.discount_policy,
            "discount_cents": self.discount_cents,
            "freight_cents": self.freight_cents,
            "freight_tax_rate_bps": self.freight_tax_rate_bps,
            "subtotal_cents": self.subtotal_cents,
            "tax_total_cents": self.tax_total_cents,
            "freight_tax_cents": self.freight_tax_cents,
            "grand_total_cents": self.grand_total_cents,
            "grand_total_clamped": self.grand_total_clamped,
            "total_paid_cents": self.total_paid_cents,
            "balance_due_cents": self.balance_due_cents,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "finalized_at": to_utc_z(self.finalized_at) if self.finalized_at else None,
            "finalized_by": self.finalized_by,
            "version_id": self.version_id,
            "lines": [line.to_dict() for line in self.lines],
        }


class DocumentLine(db.Model):
    """Individual line items on a document, in print order."""
    __tablename__ = "document_lines"
    __table_args__ = (
        db.UniqueConstraint("document_id", "position", name="uq_document_lines_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    # Stable product reference; null for legacy lines resolved by name
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    track_stock = db.Column(db.Boolean, nullable=False, default=True)

    description = db.Column(db.String(255), nullable=False)
    model = db.Column(db.String(128), nullable=True)
    hsn = db.Column(db.String(16), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    # Display values, each rounded once from the exact computation
    amount_cents = db.Column(db.Integer, nullable=False)
    taxable_base_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    price_with_tax_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "position": self.position,
            "product_id": self.product_id,
            "track_stock": self.track_stock,
            "description": self.description,
            "model": self.model,
            "hsn": self.hsn,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "amount_cents": self.amount_cents,
            "taxable_base_cents": self.taxable_base_cents,
            "tax_cents": self.tax_cents,
            "price_with_tax_cents": self.price_with_tax_cents,
        }


class DocumentSequence(db.Model):
    """
    Atomic per-type document sequences.

    WHY: Deriving the next number from a count of existing documents races
    when two documents of the same type are created at once.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
