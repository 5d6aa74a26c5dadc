import pytest

from docledger.constants import (
    DOC_CUSTOMER_PO,
    DOC_QUOTATION,
    STATUS_PENDING,
    STATUS_PARTIAL,
    STATUS_PAID,
    OVERPAYMENT_REJECT,
    OVERPAYMENT_CAP,
)
from docledger.errors import InvalidPayment, DocumentNotFound
from docledger.services import document_service, payment_service
from docledger.services.payment_service import derive_status

from helpers import example_items, EXAMPLE_DISCOUNT, EXAMPLE_FREIGHT


@pytest.fixture
def issued(db_session, counterparty):
    """Finalized customer PO with grand total 19222.00."""
    result = document_service.issue_document(
        DOC_CUSTOMER_PO, counterparty, example_items(), EXAMPLE_DISCOUNT, EXAMPLE_FREIGHT
    )
    return result.document


def _assert_ledger(doc):
    payments = payment_service.list_payments(doc.id)
    assert doc.total_paid_cents == sum(p.amount_cents for p in payments)
    assert doc.balance_due_cents == doc.grand_total_cents - doc.total_paid_cents


def test_derive_status():
    assert derive_status(1922200, 0) == STATUS_PENDING
    assert derive_status(1922200, 1000000) == STATUS_PARTIAL
    assert derive_status(1922200, 1922200) == STATUS_PAID
    assert derive_status(1922200, 2000000) == STATUS_PAID
    assert derive_status(0, 0) == STATUS_PAID


def test_status_progression(issued):
    assert issued.status == STATUS_PENDING

    doc = payment_service.apply_payment(issued.id, 1000000, "CHEQUE", reference="CHQ 004512")
    assert doc.status == STATUS_PARTIAL
    assert doc.balance_due_cents == 922200
    _assert_ledger(doc)

    doc = payment_service.apply_payment(issued.id, 922200, "NEFT")
    assert doc.status == STATUS_PAID
    assert doc.balance_due_cents == 0
    _assert_ledger(doc)


def test_payment_record_fields(issued):
    payment_service.apply_payment(issued.id, 500000, "UPI", payment_date="2026-04-02", reference="UTR99")

    (record,) = payment_service.list_payments(issued.id)
    assert record.payment_date.isoformat() == "2026-04-02"
    assert record.mode == "UPI"
    assert record.reference == "UTR99"


def test_draft_rejects_payment(db_session, counterparty):
    draft = document_service.create_document(DOC_QUOTATION, counterparty, example_items())

    with pytest.raises(InvalidPayment):
        payment_service.apply_payment(draft.id, 1000, "CASH")

    assert payment_service.list_payments(draft.id) == []


@pytest.mark.parametrize("amount", [0, -100, True, 1_000_000_000, 10**20])
def test_out_of_range_amount_rejected(issued, amount):
    with pytest.raises(InvalidPayment):
        payment_service.apply_payment(issued.id, amount, "CASH")

    assert payment_service.list_payments(issued.id) == []


def test_unknown_mode_rejected(issued):
    with pytest.raises(InvalidPayment):
        payment_service.apply_payment(issued.id, 1000, "BARTER")


def test_unknown_document(db_session):
    with pytest.raises(DocumentNotFound):
        payment_service.apply_payment(999, 1000, "CASH")


def test_idempotent_replay_counts_once(issued):
    payment_service.apply_payment(issued.id, 1000000, "NEFT", idempotency_key="utr-1")
    doc = payment_service.apply_payment(issued.id, 1000000, "NEFT", idempotency_key="utr-1")

    assert doc.total_paid_cents == 1000000
    assert len(payment_service.list_payments(issued.id)) == 1
    _assert_ledger(doc)


def test_idempotency_key_reused_with_other_amount(issued):
    payment_service.apply_payment(issued.id, 1000000, "NEFT", idempotency_key="utr-1")

    with pytest.raises(InvalidPayment):
        payment_service.apply_payment(issued.id, 5000, "NEFT", idempotency_key="utr-1")

    assert document_service.get_document(issued.id).total_paid_cents == 1000000


def test_overpayment_allowed_by_default(issued):
    doc = payment_service.apply_payment(issued.id, 2000000, "CASH")

    assert doc.status == STATUS_PAID
    assert doc.balance_due_cents == -77800
    _assert_ledger(doc)


def test_overpayment_rejected(app, issued, monkeypatch):
    monkeypatch.setitem(app.config, "OVERPAYMENT_POLICY", OVERPAYMENT_REJECT)

    with pytest.raises(InvalidPayment):
        payment_service.apply_payment(issued.id, 2000000, "CASH")

    doc = document_service.get_document(issued.id)
    assert doc.total_paid_cents == 0
    assert doc.status == STATUS_PENDING


def test_overpayment_capped(app, issued, monkeypatch):
    monkeypatch.setitem(app.config, "OVERPAYMENT_POLICY", OVERPAYMENT_CAP)

    doc = payment_service.apply_payment(issued.id, 2000000, "CASH")

    assert doc.total_paid_cents == 1922200
    assert doc.status == STATUS_PAID

    with pytest.raises(InvalidPayment):
        payment_service.apply_payment(issued.id, 100, "CASH")


def test_payment_summary(issued):
    payment_service.apply_payment(issued.id, 1000000, "CHEQUE")
    payment_service.apply_payment(issued.id, 200000, "CASH")

    summary = payment_service.get_payment_summary(issued.id)

    assert summary["payment_count"] == 2
    assert summary["total_paid_cents"] == 1200000
    assert summary["ledger_total_cents"] == 1200000
    assert summary["balance_due_cents"] == 722200
    assert summary["in_balance"] is True
    assert summary["status"] == STATUS_PARTIAL
    assert [p["amount_cents"] for p in summary["payments"]] == [1000000, 200000]


def test_finalized_totals_do_not_change_with_payments(issued):
    payment_service.apply_payment(issued.id, 1000000, "CHEQUE")

    doc = document_service.get_document(issued.id)
    assert doc.grand_total_cents == 1922200
    assert doc.tax_total_cents == 223200
