# Overview: SQLAlchemy implementations of the repository interfaces.

from __future__ import annotations

from datetime import date

from sqlalchemy import func, update

from ..constants import FINALIZED_STATUSES
from ..extensions import db
from ..models import (
    Document,
    DocumentSequence,
    PaymentRecord,
    Product,
    StockMovement,
    PointAccount,
    PointHistoryEntry,
    Counterparty,
)
from ..services.concurrency import lock_for_update, begin_immediate
from .base import (
    Repositories,
    UnitOfWork,
    DocumentRepository,
    PaymentRepository,
    ProductRepository,
    MovementRepository,
    SequenceRepository,
    PointRepository,
    CounterpartyRepository,
)


class SqlDocumentRepository(DocumentRepository):
    def get(self, document_id: int, *, for_update: bool = False):
        query = db.session.query(Document).filter_by(id=document_id)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def find_by_number(self, document_type: str, number: str):
        return db.session.query(Document).filter_by(document_type=document_type, number=number).first()

    def number_exists(self, document_type: str, number: str) -> bool:
        return db.session.query(
            db.session.query(Document.id)
            .filter_by(document_type=document_type, number=number)
            .exists()
        ).scalar()

    def list(self, *, document_type: str | None = None, status: str | None = None) -> list:
        query = db.session.query(Document)
        if document_type:
            query = query.filter(Document.document_type == document_type)
        if status:
            query = query.filter(Document.status == status)
        return query.order_by(Document.document_date.desc(), Document.id.desc()).all()

    def list_overdue(self, as_of: date) -> list:
        return (
            db.session.query(Document)
            .filter(
                Document.status.in_(FINALIZED_STATUSES),
                Document.due_date.isnot(None),
                Document.due_date < as_of,
                Document.balance_due_cents > 0,
            )
            .order_by(Document.due_date.asc(), Document.id.asc())
            .all()
        )

    def add(self, document) -> None:
        db.session.add(document)


class SqlPaymentRepository(PaymentRepository):
    def add(self, payment) -> None:
        db.session.add(payment)

    def list_for_document(self, document_id: int) -> list:
        return (
            db.session.query(PaymentRecord)
            .filter_by(document_id=document_id)
            .order_by(PaymentRecord.id.asc())
            .all()
        )

    def find_by_key(self, document_id: int, idempotency_key: str):
        return (
            db.session.query(PaymentRecord)
            .filter_by(document_id=document_id, idempotency_key=idempotency_key)
            .first()
        )

    def total_for_document(self, document_id: int) -> int:
        total = (
            db.session.query(func.coalesce(func.sum(PaymentRecord.amount_cents), 0))
            .filter(PaymentRecord.document_id == document_id)
            .scalar()
        )
        return int(total or 0)


class SqlProductRepository(ProductRepository):
    def get(self, product_id: int):
        return db.session.get(Product, product_id)

    def lock_many(self, product_ids) -> list:
        ids = sorted(set(product_ids))
        if not ids:
            return []
        # Sorted lock order keeps two finalizations from deadlocking
        return (
            lock_for_update(db.session.query(Product).filter(Product.id.in_(ids)))
            .order_by(Product.id.asc())
            .all()
        )

    def find_by_name(self, name: str) -> list:
        key = (name or "").strip().lower()
        if not key:
            return []
        return (
            db.session.query(Product)
            .filter(
                Product.is_active.is_(True),
                (func.lower(Product.name) == key) | (func.lower(Product.sku) == key),
            )
            .order_by(Product.id.asc())
            .all()
        )

    def find_by_sku(self, sku: str):
        return db.session.query(Product).filter_by(sku=sku).first()

    def list_low_stock(self) -> list:
        return (
            db.session.query(Product)
            .filter(Product.is_active.is_(True), Product.stock_on_hand < Product.min_level)
            .order_by(Product.name.asc())
            .all()
        )

    def add(self, product) -> None:
        db.session.add(product)


class SqlMovementRepository(MovementRepository):
    def add(self, movement) -> None:
        db.session.add(movement)

    def list(self, *, product_id: int | None = None, reference: str | None = None) -> list:
        query = db.session.query(StockMovement)
        if product_id is not None:
            query = query.filter(StockMovement.product_id == product_id)
        if reference:
            query = query.filter(StockMovement.reference == reference)
        return query.order_by(StockMovement.id.asc()).all()


class SqlSequenceRepository(SequenceRepository):
    def increment(self, document_type: str) -> int | None:
        stmt = (
            update(DocumentSequence)
            .where(DocumentSequence.document_type == document_type)
            .values(next_number=DocumentSequence.next_number + 1)
        )
        result = db.session.execute(stmt)
        if not result.rowcount:
            return None
        db.session.flush()
        return self.current(document_type)

    def create(self, document_type: str, next_number: int) -> None:
        db.session.add(DocumentSequence(document_type=document_type, next_number=next_number))
        db.session.flush()

    def current(self, document_type: str) -> int | None:
        return (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )


class SqlPointRepository(PointRepository):
    def get_account(self, holder: str, *, for_update: bool = False):
        query = db.session.query(PointAccount).filter_by(holder=holder)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def add_account(self, account) -> None:
        db.session.add(account)
        db.session.flush()

    def add_entry(self, entry) -> None:
        db.session.add(entry)

    def entry_exists(self, document_id: int, category: str) -> bool:
        return db.session.query(
            db.session.query(PointHistoryEntry.id)
            .filter_by(document_id=document_id, category=category)
            .exists()
        ).scalar()

    def list_entries(self, holder: str) -> list:
        return (
            db.session.query(PointHistoryEntry)
            .join(PointAccount, PointAccount.id == PointHistoryEntry.account_id)
            .filter(PointAccount.holder == holder)
            .order_by(PointHistoryEntry.entry_date.desc(), PointHistoryEntry.id.desc())
            .all()
        )


class SqlCounterpartyRepository(CounterpartyRepository):
    def find_by_name(self, name: str):
        key = (name or "").strip().lower()
        if not key:
            return None
        return (
            db.session.query(Counterparty)
            .filter(func.lower(Counterparty.name) == key)
            .order_by(Counterparty.id.asc())
            .first()
        )

    def add(self, counterparty) -> None:
        db.session.add(counterparty)


class SqlUnitOfWork(UnitOfWork):
    def commit(self) -> None:
        db.session.commit()

    def rollback(self) -> None:
        db.session.rollback()

    def flush(self) -> None:
        db.session.flush()

    def begin_exclusive(self) -> None:
        begin_immediate()


def get_repositories() -> Repositories:
    """Default repositories bound to the Flask-SQLAlchemy session."""
    return Repositories(
        documents=SqlDocumentRepository(),
        payments=SqlPaymentRepository(),
        products=SqlProductRepository(),
        movements=SqlMovementRepository(),
        sequences=SqlSequenceRepository(),
        points=SqlPointRepository(),
        counterparties=SqlCounterpartyRepository(),
        unit_of_work=SqlUnitOfWork(),
    )
