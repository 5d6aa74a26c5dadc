from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


class PaymentRecord(db.Model):
    """
    Payment applied against a finalized document.

    DESIGN: Payments are separate rows (many-to-one) so a document can be
    settled in parts. Records are append-only; there is no void or reversal.

    IDEMPOTENCY: idempotency_key is a client-supplied token. A retried
    submission with the same key maps onto the same row instead of counting
    twice.
    """
    __tablename__ = "payment_records"
    __table_args__ = (
        db.UniqueConstraint("document_id", "idempotency_key", name="uq_payment_records_doc_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=False, index=True)

    payment_date = db.Column(db.Date, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    mode = db.Column(db.String(32), nullable=False)
    reference = db.Column(db.String(128), nullable=True)
    idempotency_key = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    document = db.relationship(
        "Document",
        backref=db.backref("payments", lazy=True, order_by="PaymentRecord.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "payment_date": to_iso_date(self.payment_date),
            "amount_cents": self.amount_cents,
            "mode": self.mode,
            "reference": self.reference,
            "idempotency_key": self.idempotency_key,
            "created_at": to_utc_z(self.created_at),
        }
