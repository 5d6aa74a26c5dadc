from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


class PointAccount(db.Model):
    """
    Points balance for one holder (the salesperson credited with a sale).

    WHY: Tracks balance and lifetime earning without summing history rows
    on every read.
    """
    __tablename__ = "point_accounts"
    __table_args__ = (
        db.UniqueConstraint("holder", name="uq_point_accounts_holder"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    holder = db.Column(db.String(128), nullable=False)

    points_balance = db.Column(db.Integer, nullable=False, default=0)
    lifetime_points_earned = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "holder": self.holder,
            "points_balance": self.points_balance,
            "lifetime_points_earned": self.lifetime_points_earned,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class PointHistoryEntry(db.Model):
    """
    Append-only ledger of point events.

    points may be negative for manual corrections; accrual from documents is
    always positive and happens at most once per document and category.
    """
    __tablename__ = "point_history"
    __table_args__ = (
        db.UniqueConstraint("document_id", "category", name="uq_point_history_doc_category"),
        db.Index("ix_point_history_account_date", "account_id", "entry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("point_accounts.id"), nullable=False, index=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=True, index=True)

    entry_date = db.Column(db.Date, nullable=False)
    points = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(32), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("PointAccount", backref=db.backref("entries", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "document_id": self.document_id,
            "entry_date": to_iso_date(self.entry_date),
            "points": self.points,
            "category": self.category,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
