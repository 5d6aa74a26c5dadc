# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Ledger

WHY: Documents are settled in one or more payments (cheque now, NEFT later).
The ledger keeps total paid, balance due and status consistent with the
payment rows after every write.

DESIGN PRINCIPLES:
- Payments are separate from documents (many-to-one relationship)
- Append-only: no void or reversal
- total_paid is always re-summed from payment rows, never incremented
- Idempotency: a replayed client token is counted once
- Overpayment handling is a configuration choice (OVERPAYMENT_POLICY)
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..constants import (
    STATUS_DRAFT,
    STATUS_PENDING,
    STATUS_PARTIAL,
    STATUS_PAID,
    PAYMENT_MODES,
    OVERPAYMENT_ALLOW,
    OVERPAYMENT_REJECT,
    OVERPAYMENT_CAP,
    OVERPAYMENT_POLICIES,
)
from ..errors import InvalidPayment, DocumentNotFound
from ..models import Document, PaymentRecord
from ..money import MAX_MONEY_CENTS
from ..repositories import get_repositories
from ..time_utils import today, parse_iso_date
from .concurrency import run_with_retry


# =============================================================================
# STATUS DERIVATION
# =============================================================================

def derive_status(grand_total_cents: int, total_paid_cents: int) -> str:
    """
    Status of a finalized document from its stored totals.

    PAID     balance <= 0 (includes zero-total documents and credit balances)
    PARTIAL  something paid, something still due
    PENDING  nothing paid yet
    """
    balance = grand_total_cents - total_paid_cents
    if balance <= 0:
        return STATUS_PAID
    if total_paid_cents > 0 and balance < grand_total_cents:
        return STATUS_PARTIAL
    return STATUS_PENDING


def apply_paid_total(document: Document, total_paid_cents: int) -> None:
    """Set total paid, balance due and status together."""
    document.total_paid_cents = total_paid_cents
    document.balance_due_cents = document.grand_total_cents - total_paid_cents
    document.status = derive_status(document.grand_total_cents, total_paid_cents)


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def _overpayment_policy() -> str:
    policy = current_app.config.get("OVERPAYMENT_POLICY", OVERPAYMENT_ALLOW)
    if policy not in OVERPAYMENT_POLICIES:
        raise ValueError(f"Unknown OVERPAYMENT_POLICY: {policy}")
    return policy


def _check_replay(existing: PaymentRecord, amount_cents: int, mode: str, policy: str) -> None:
    same_amount = existing.amount_cents == amount_cents
    if policy == OVERPAYMENT_CAP:
        # A capped payment was stored with less than was asked for
        same_amount = existing.amount_cents <= amount_cents
    if not same_amount or existing.mode != mode:
        raise InvalidPayment(
            "Idempotency key was already used for a different payment",
            {
                "idempotency_key": existing.idempotency_key,
                "recorded_amount_cents": existing.amount_cents,
                "recorded_mode": existing.mode,
            },
        )


def apply_payment(
    document_id: int,
    amount_cents: int,
    mode: str,
    payment_date=None,
    reference: str | None = None,
    idempotency_key: str | None = None,
    repos=None,
) -> Document:
    """
    Record a payment against a finalized document.

    Args:
        document_id: Document being paid
        amount_cents: Amount received (minor units, > 0)
        mode: CASH, CHEQUE, BANK_TRANSFER, NEFT, UPI, CARD
        payment_date: Business date (defaults to today)
        reference: Cheque number, UTR, etc. (optional)
        idempotency_key: Client token; a replay returns the document unchanged

    Returns:
        The document with refreshed total_paid, balance_due and status

    Raises:
        InvalidPayment: bad amount or mode, draft document, key reused with
            different values, or rejected by the overpayment policy
        DocumentNotFound: unknown document id
    """
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
        raise InvalidPayment("Payment amount must be positive", {"amount_cents": amount_cents})
    if amount_cents > MAX_MONEY_CENTS:
        raise InvalidPayment(f"Payment amount exceeds {MAX_MONEY_CENTS}", {"amount_cents": amount_cents})
    if mode not in PAYMENT_MODES:
        raise InvalidPayment(f"Invalid payment mode: {mode}. Must be one of {PAYMENT_MODES}", {"mode": mode})
    try:
        paid_on = parse_iso_date(payment_date) or today()
    except ValueError:
        raise InvalidPayment("payment_date must be YYYY-MM-DD", {"payment_date": payment_date})

    policy = _overpayment_policy()
    key = (idempotency_key or "").strip() or None
    repos = repos or get_repositories()

    def _op() -> Document:
        # Serialize writers on SQLite; elsewhere the row lock below does it
        repos.begin_exclusive()
        document = repos.documents.get(document_id, for_update=True)
        if document is None:
            raise DocumentNotFound(f"Document {document_id} not found", {"document_id": document_id})
        if document.status == STATUS_DRAFT:
            raise InvalidPayment("Cannot record a payment against a draft", {"number": document.number})

        if key:
            existing = repos.payments.find_by_key(document.id, key)
            if existing is not None:
                _check_replay(existing, amount_cents, mode, policy)
                current_app.logger.info("Replayed payment key %s on %s ignored", key, document.number)
                repos.commit()
                return document

        amount = amount_cents
        balance = document.grand_total_cents - document.total_paid_cents
        if amount > balance:
            if policy == OVERPAYMENT_REJECT:
                raise InvalidPayment(
                    "Payment exceeds balance due",
                    {"amount_cents": amount, "balance_due_cents": balance},
                )
            if policy == OVERPAYMENT_CAP:
                if balance <= 0:
                    raise InvalidPayment("Nothing is due on this document", {"balance_due_cents": balance})
                amount = balance

        payment = PaymentRecord(
            document_id=document.id,
            payment_date=paid_on,
            amount_cents=amount,
            mode=mode,
            reference=reference,
            idempotency_key=key,
        )
        repos.payments.add(payment)
        repos.flush()

        apply_paid_total(document, repos.payments.total_for_document(document.id))
        repos.commit()

        current_app.logger.info(
            "Payment %d (%s) on %s: paid=%d balance=%d status=%s",
            amount, mode, document.number, document.total_paid_cents,
            document.balance_due_cents, document.status,
        )
        return document

    try:
        return run_with_retry(_op, attempts=5)
    except IntegrityError:
        # Same key inserted concurrently; the other writer's row stands
        if key and repos.payments.find_by_key(document_id, key) is not None:
            return repos.documents.get(document_id)
        raise


# =============================================================================
# QUERIES
# =============================================================================

def _require_document(document_id: int, repos) -> Document:
    document = repos.documents.get(document_id)
    if document is None:
        raise DocumentNotFound(f"Document {document_id} not found", {"document_id": document_id})
    return document


def list_payments(document_id: int, repos=None) -> list[PaymentRecord]:
    repos = repos or get_repositories()
    _require_document(document_id, repos)
    return repos.payments.list_for_document(document_id)


def get_payment_summary(document_id: int, repos=None) -> dict:
    """
    Payment summary for a document.

    WHY: Recomputes total paid from the rows so drift between the stored
    column and the ledger is visible.
    """
    repos = repos or get_repositories()
    document = _require_document(document_id, repos)
    payments = repos.payments.list_for_document(document_id)
    ledger_total = sum(p.amount_cents for p in payments)

    return {
        "document_id": document.id,
        "number": document.number,
        "status": document.status,
        "grand_total_cents": document.grand_total_cents,
        "total_paid_cents": document.total_paid_cents,
        "balance_due_cents": document.balance_due_cents,
        "ledger_total_cents": ledger_total,
        "in_balance": ledger_total == document.total_paid_cents,
        "payment_count": len(payments),
        "payments": [p.to_dict() for p in payments],
    }
