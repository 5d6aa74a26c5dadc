from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Counterparty(db.Model):
    """
    Directory entry for a client or supplier.

    Documents copy these fields at write time; edits here never reach a
    document that was already written.
    """
    __tablename__ = "counterparties"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_counterparties_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)  # e.g., "CLI-001"
    name = db.Column(db.String(255), nullable=False, index=True)
    hospital = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_id = db.Column(db.String(32), nullable=True)  # GSTIN
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "hospital": self.hospital,
            "address": self.address,
            "tax_id": self.tax_id,
            "email": self.email,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }
