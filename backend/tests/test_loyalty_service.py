import pytest

from docledger.constants import DOC_INVOICE, DOC_QUOTATION, DISCOUNT_FLAT_POST_SUBTOTAL, POINTS_CATEGORY_SALES
from docledger.services import document_service, loyalty_service
from docledger.services.totals_service import LineInput

from helpers import example_items, EXAMPLE_DISCOUNT, EXAMPLE_FREIGHT


@pytest.fixture
def flat_invoices(app, monkeypatch):
    """Invoices priced like the paper example (flat discount)."""
    monkeypatch.setitem(app.config["DISCOUNT_POLICIES"], DOC_INVOICE, DISCOUNT_FLAT_POST_SUBTOTAL)


def _issue_invoice(counterparty, created_by="Ravi", items=None):
    return document_service.issue_document(
        DOC_INVOICE,
        counterparty,
        items if items is not None else example_items(),
        EXAMPLE_DISCOUNT if items is None else 0,
        EXAMPLE_FREIGHT if items is None else None,
        created_by=created_by,
    )


def test_points_for_total(app):
    assert loyalty_service.points_for_total(1922200) == 38
    assert loyalty_service.points_for_total(50000) == 1
    assert loyalty_service.points_for_total(49999) == 0
    assert loyalty_service.points_for_total(0) == 0


def test_invoice_credits_creator(db_session, counterparty, flat_invoices):
    result = _issue_invoice(counterparty)

    entry = result.point_entry
    assert entry.points == 38
    assert entry.category == POINTS_CATEGORY_SALES
    assert entry.document_id == result.document.id
    assert result.document.number in entry.description
    assert loyalty_service.get_point_balance("Ravi") == 38


def test_default_holder(db_session, counterparty, flat_invoices):
    _issue_invoice(counterparty, created_by=None)

    assert loyalty_service.get_point_balance("System") == 38


def test_points_accumulate(db_session, counterparty, flat_invoices):
    _issue_invoice(counterparty)
    _issue_invoice(counterparty)

    assert loyalty_service.get_point_balance("Ravi") == 76
    assert len(loyalty_service.list_point_history("Ravi")) == 2


def test_only_invoices_earn(db_session, counterparty):
    result = document_service.issue_document(DOC_QUOTATION, counterparty, example_items(), created_by="Ravi")

    assert result.point_entry is None
    assert loyalty_service.get_point_balance("Ravi") == 0


def test_small_invoice_earns_nothing(db_session, counterparty):
    items = [LineInput(description="Gel", quantity=1, unit_price_cents=40000, track_stock=False)]

    result = _issue_invoice(counterparty, items=items)

    assert result.point_entry is None
    assert loyalty_service.list_point_history("Ravi") == []


def test_accrual_once_per_document(db_session, counterparty, flat_invoices):
    result = _issue_invoice(counterparty)

    again = document_service.finalize_document(result.document.id)
    direct = loyalty_service.accrue_for_document(result.document)

    assert again.point_entry is None
    assert direct is None
    assert loyalty_service.get_point_balance("Ravi") == 38


def test_unknown_holder_has_zero_balance(db_session):
    assert loyalty_service.get_point_balance("Nobody") == 0
    assert loyalty_service.list_point_history("Nobody") == []
