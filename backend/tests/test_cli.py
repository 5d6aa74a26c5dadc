import json

import pytest

from docledger.constants import DOC_CUSTOMER_PO, DOC_INVOICE, STATUS_PAID
from docledger.extensions import db
from docledger.services import document_service, inventory_service


@pytest.fixture
def runner(app, db_session):
    return app.test_cli_runner()


@pytest.fixture
def po_file(tmp_path):
    payload = {
        "document_type": "customer_po",
        "counterparty": {"name": "Dr. Mehta", "hospital": "City Care Hospital"},
        "items": [
            {"description": "Patient Monitor", "quantity": 1, "unit_price": "15000.00",
             "tax_rate": "12", "track_stock": False},
            {"description": "SpO2 Probe", "quantity": 2, "unit_price": "1200.00",
             "tax_rate": "18", "track_stock": False},
        ],
        "discount": "1000.00",
        "freight": {"amount": "500.00", "tax_rate": "18"},
        "due_date": "2026-04-04",
    }
    path = tmp_path / "po.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_numbering_peek_shows_offsets(runner):
    result = runner.invoke(args=["numbering", "peek"])

    assert result.exit_code == 0
    assert "SMQ 137" in result.output
    assert "SMINV 001" in result.output


def test_add_product_and_receive(runner):
    result = runner.invoke(args=[
        "stock", "add-product", "--sku", "ECG-01", "--name", "ECG Machine",
        "--price", "45000.00", "--tax-rate", "12", "--stock", "3",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS Created product ECG-01" in result.output

    db.session.expire_all()
    product = inventory_service.resolve_product_by_name("ECG-01")
    assert product.price_cents == 4500000
    assert product.tax_rate_bps == 1200

    result = runner.invoke(args=["stock", "receive", str(product.id), "2", "--reference", "GRN 44"])
    assert result.exit_code == 0, result.output
    assert "on hand 5" in result.output


def test_import_issue_then_pay(runner, po_file):
    result = runner.invoke(args=["documents", "import", str(po_file), "--issue"])
    assert result.exit_code == 0, result.output
    assert "PASS Created CUSTOMER_PO SMCPO 151" in result.output
    assert "Grand total: 19222.00" in result.output

    db.session.expire_all()
    doc = document_service.find_by_number(DOC_CUSTOMER_PO, "SMCPO 151")
    assert doc.is_finalized

    result = runner.invoke(args=[
        "documents", "pay", str(doc.id), "--amount", "19222.00", "--mode", "neft", "--key", "utr-1",
    ])
    assert result.exit_code == 0, result.output
    assert "status PAID" in result.output

    db.session.expire_all()
    assert document_service.get_document(doc.id).status == STATUS_PAID

    result = runner.invoke(args=["system", "check-ledger"])
    assert result.exit_code == 0, result.output
    assert "PASS" in result.output


def test_show_json_matches_export(runner, po_file):
    runner.invoke(args=["documents", "import", str(po_file), "--issue"])
    db.session.expire_all()
    doc = document_service.find_by_number(DOC_CUSTOMER_PO, "SMCPO 151")

    result = runner.invoke(args=["documents", "show", str(doc.id), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["number"] == "SMCPO 151"
    assert data["totals"]["grand_total"] == "19222.00"
    assert data["balance_due"] == "19222.00"


def test_import_rejects_float_money(runner, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({
        "document_type": "INVOICE",
        "counterparty": {"name": "Dr. Mehta"},
        "items": [{"description": "Probe", "quantity": 1, "unit_price": 12.5}],
    }), encoding="utf-8")

    result = runner.invoke(args=["documents", "import", str(path)])

    assert result.exit_code == 1
    assert "FAIL" in result.output
    db.session.expire_all()
    assert document_service.list_documents(document_type=DOC_INVOICE) == []


def test_pay_draft_fails(runner, po_file):
    runner.invoke(args=["documents", "import", str(po_file)])
    db.session.expire_all()
    doc = document_service.find_by_number(DOC_CUSTOMER_PO, "SMCPO 151")

    result = runner.invoke(args=["documents", "pay", str(doc.id), "--amount", "100.00", "--mode", "CASH"])

    assert result.exit_code == 1
    assert "draft" in result.output
