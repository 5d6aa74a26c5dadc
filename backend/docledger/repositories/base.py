# Overview: Storage interfaces the services depend on.

"""
Repository interfaces.

Services talk to these instead of the ORM session so the storage engine can
be swapped (or faked in tests) without touching ledger rules. The SQLAlchemy
implementation lives in repositories.sql.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date


class DocumentRepository(ABC):
    @abstractmethod
    def get(self, document_id: int, *, for_update: bool = False):
        ...

    @abstractmethod
    def find_by_number(self, document_type: str, number: str):
        ...

    @abstractmethod
    def number_exists(self, document_type: str, number: str) -> bool:
        ...

    @abstractmethod
    def list(self, *, document_type: str | None = None, status: str | None = None) -> list:
        ...

    @abstractmethod
    def list_overdue(self, as_of: date) -> list:
        ...

    @abstractmethod
    def add(self, document) -> None:
        ...


class PaymentRepository(ABC):
    @abstractmethod
    def add(self, payment) -> None:
        ...

    @abstractmethod
    def list_for_document(self, document_id: int) -> list:
        ...

    @abstractmethod
    def find_by_key(self, document_id: int, idempotency_key: str):
        ...

    @abstractmethod
    def total_for_document(self, document_id: int) -> int:
        ...


class ProductRepository(ABC):
    @abstractmethod
    def get(self, product_id: int):
        ...

    @abstractmethod
    def lock_many(self, product_ids) -> list:
        """Lock and return products in ascending id order."""

    @abstractmethod
    def find_by_name(self, name: str) -> list:
        """Case-insensitive exact match on name or SKU."""

    @abstractmethod
    def find_by_sku(self, sku: str):
        ...

    @abstractmethod
    def list_low_stock(self) -> list:
        ...

    @abstractmethod
    def add(self, product) -> None:
        ...


class MovementRepository(ABC):
    @abstractmethod
    def add(self, movement) -> None:
        ...

    @abstractmethod
    def list(self, *, product_id: int | None = None, reference: str | None = None) -> list:
        ...


class SequenceRepository(ABC):
    @abstractmethod
    def increment(self, document_type: str) -> int | None:
        """Atomically bump the counter; returns the new value or None if no row exists."""

    @abstractmethod
    def create(self, document_type: str, next_number: int) -> None:
        ...

    @abstractmethod
    def current(self, document_type: str) -> int | None:
        ...


class PointRepository(ABC):
    @abstractmethod
    def get_account(self, holder: str, *, for_update: bool = False):
        ...

    @abstractmethod
    def add_account(self, account) -> None:
        ...

    @abstractmethod
    def add_entry(self, entry) -> None:
        ...

    @abstractmethod
    def entry_exists(self, document_id: int, category: str) -> bool:
        ...

    @abstractmethod
    def list_entries(self, holder: str) -> list:
        ...


class CounterpartyRepository(ABC):
    @abstractmethod
    def find_by_name(self, name: str):
        ...

    @abstractmethod
    def add(self, counterparty) -> None:
        ...


@dataclass
class Repositories:
    """
    Bundle of repositories sharing one unit of work.

    commit/rollback/flush act on every repository at once; begin_exclusive
    takes the database write lock where the engine needs it up front.
    """
    documents: DocumentRepository
    payments: PaymentRepository
    products: ProductRepository
    movements: MovementRepository
    sequences: SequenceRepository
    points: PointRepository
    counterparties: CounterpartyRepository
    unit_of_work: "UnitOfWork"

    def commit(self) -> None:
        self.unit_of_work.commit()

    def rollback(self) -> None:
        self.unit_of_work.rollback()

    def flush(self) -> None:
        self.unit_of_work.flush()

    def begin_exclusive(self) -> None:
        self.unit_of_work.begin_exclusive()


class UnitOfWork(ABC):
    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...

    @abstractmethod
    def flush(self) -> None:
        ...

    @abstractmethod
    def begin_exclusive(self) -> None:
        ...
