from datetime import date

import pytest

from docledger.constants import (
    DOC_QUOTATION,
    DOC_CUSTOMER_PO,
    DOC_SUPPLIER_PO,
    DOC_SERVICE_ORDER,
    DOC_INVOICE,
    DISCOUNT_FLAT_POST_SUBTOTAL,
    STATUS_DRAFT,
)
from docledger.errors import NumberingConflict
from docledger.models import Document
from docledger.services import numbering_service, document_service

from helpers import example_items


def _occupy(db_session, number, document_type=DOC_QUOTATION):
    """Simulate a number already used by an imported document."""
    db_session.add(Document(
        document_type=document_type,
        number=number,
        document_date=date(2026, 1, 1),
        discount_policy=DISCOUNT_FLAT_POST_SUBTOTAL,
        status=STATUS_DRAFT,
    ))
    db_session.commit()


def test_first_numbers_continue_paper_series(db_session):
    assert numbering_service.next_number(DOC_QUOTATION) == "SMQ 137"
    assert numbering_service.next_number(DOC_CUSTOMER_PO) == "SMCPO 151"
    assert numbering_service.next_number(DOC_SUPPLIER_PO) == "SMPOC 101"
    assert numbering_service.next_number(DOC_SERVICE_ORDER) == "SMCSO 201"
    assert numbering_service.next_number(DOC_INVOICE) == "SMINV 001"


def test_numbers_increase_per_type(db_session):
    first = numbering_service.next_number(DOC_QUOTATION)
    numbering_service.next_number(DOC_INVOICE)
    second = numbering_service.next_number(DOC_QUOTATION)

    assert (first, second) == ("SMQ 137", "SMQ 138")


def test_peek_does_not_allocate(db_session):
    assert numbering_service.peek_next_number(DOC_QUOTATION) == "SMQ 137"
    assert numbering_service.peek_next_number(DOC_QUOTATION) == "SMQ 137"

    assert numbering_service.next_number(DOC_QUOTATION) == "SMQ 137"
    assert numbering_service.peek_next_number(DOC_QUOTATION) == "SMQ 138"


def test_format_number(app):
    assert numbering_service.format_number(DOC_SERVICE_ORDER, 5) == "SMCSO 206"
    assert numbering_service.format_number(DOC_INVOICE, 41) == "SMINV 042"


def test_unknown_type_rejected(db_session):
    with pytest.raises(ValueError):
        numbering_service.next_number("RECEIPT")


def test_create_document_skips_taken_number(db_session):
    _occupy(db_session, "SMQ 137")

    doc = document_service.create_document(DOC_QUOTATION, {"name": "Dr. Rao"}, example_items())

    assert doc.number == "SMQ 138"


def test_numbering_conflict_after_retries(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "NUMBERING_CONFLICT_RETRIES", 2)
    _occupy(db_session, "SMQ 137")
    _occupy(db_session, "SMQ 138")

    with pytest.raises(NumberingConflict) as excinfo:
        document_service.create_document(DOC_QUOTATION, {"name": "Dr. Rao"}, example_items())

    assert excinfo.value.details["document_type"] == DOC_QUOTATION
    assert len(document_service.list_documents(document_type=DOC_QUOTATION)) == 2
