from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


class Product(db.Model):
    """
    Catalog product with its on-hand stock count.

    stock_on_hand is never negative. Concurrent finalizations touching the
    same product serialize on the row (lock + version_id).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False, index=True)
    category = db.Column(db.String(32), nullable=True)  # Equipment, Consumable, Spare Part
    model = db.Column(db.String(128), nullable=True)
    description = db.Column(db.Text, nullable=True)
    hsn = db.Column(db.String(16), nullable=True)
    location = db.Column(db.String(128), nullable=True)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=1800)

    stock_on_hand = db.Column(db.Integer, nullable=False, default=0)
    min_level = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "model": self.model,
            "description": self.description,
            "hsn": self.hsn,
            "location": self.location,
            "price_cents": self.price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "stock_on_hand": self.stock_on_hand,
            "min_level": self.min_level,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class StockMovement(db.Model):
    """
    Append-only log of stock quantity changes.

    quantity is always positive; direction says which way it went.
    reference is the document number for document-driven movements.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_date", "product_id", "movement_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    direction = db.Column(db.String(8), nullable=False)  # IN, OUT
    movement_date = db.Column(db.Date, nullable=False)
    reference = db.Column(db.String(64), nullable=True, index=True)
    purpose = db.Column(db.String(16), nullable=False)  # SALE, SERVICE, RESTOCK, DEMO

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "document_id": self.document_id,
            "quantity": self.quantity,
            "direction": self.direction,
            "movement_date": to_iso_date(self.movement_date),
            "reference": self.reference,
            "purpose": self.purpose,
            "created_at": to_utc_z(self.created_at),
        }
