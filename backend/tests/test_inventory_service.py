import pytest

from docledger.constants import (
    DOC_INVOICE,
    DOC_QUOTATION,
    DOC_SERVICE_ORDER,
    DIRECTION_IN,
    DIRECTION_OUT,
    PURPOSE_SALE,
    PURPOSE_SERVICE,
    PURPOSE_RESTOCK,
    PURPOSE_DEMO,
    STATUS_DRAFT,
)
from docledger.errors import LedgerError, InvalidAmount, UnknownProduct
from docledger.services import document_service, inventory_service
from docledger.services.totals_service import LineInput

from helpers import stock_line


def _invoice(counterparty, items, document_type=DOC_INVOICE):
    return document_service.create_document(document_type, counterparty, items, created_by="Ravi")


class TestFinalizeMovements:
    def test_invoice_decrements_stock(self, db_session, make_product, counterparty):
        product = make_product(stock=10)
        doc = _invoice(counterparty, [stock_line(product, 3)])

        result = document_service.finalize_document(doc.id)

        assert product.stock_on_hand == 7
        assert len(result.movements) == 1
        movement = result.movements[0]
        assert movement.direction == DIRECTION_OUT
        assert movement.purpose == PURPOSE_SALE
        assert movement.quantity == 3
        assert movement.reference == "SMINV 001"
        assert movement.document_id == doc.id
        assert result.warnings == []

    def test_service_order_uses_service_purpose(self, db_session, make_product, counterparty):
        product = make_product(stock=4)
        doc = _invoice(counterparty, [stock_line(product, 1)], document_type=DOC_SERVICE_ORDER)

        result = document_service.finalize_document(doc.id)

        assert result.movements[0].purpose == PURPOSE_SERVICE
        assert product.stock_on_hand == 3

    def test_quotation_never_moves_stock(self, db_session, make_product, counterparty):
        product = make_product(stock=4)
        doc = _invoice(counterparty, [stock_line(product, 2)], document_type=DOC_QUOTATION)

        result = document_service.finalize_document(doc.id)

        assert result.movements == []
        assert product.stock_on_hand == 4

    def test_legacy_line_resolved_by_name(self, db_session, make_product, counterparty):
        product = make_product(name="ECG Machine", stock=5)
        line = LineInput(description="ecg machine", quantity=2, unit_price_cents=4500000, tax_rate_bps=1200)
        doc = _invoice(counterparty, [line])

        document_service.finalize_document(doc.id)

        assert product.stock_on_hand == 3
        assert document_service.get_document(doc.id).lines[0].product_id == product.id

    def test_legacy_line_resolved_by_sku(self, db_session, make_product, counterparty):
        product = make_product(name="Syringe Pump", stock=5, sku="SP-100")
        line = LineInput(description="sp-100", quantity=1, unit_price_cents=100)
        doc = _invoice(counterparty, [line])

        document_service.finalize_document(doc.id)

        assert product.stock_on_hand == 4

    def test_untracked_lines_are_ignored(self, db_session, make_product, counterparty):
        product = make_product(stock=5)
        lines = [
            stock_line(product, 1),
            LineInput(description="Installation charges", quantity=1, unit_price_cents=50000, track_stock=False),
        ]
        doc = _invoice(counterparty, lines)

        result = document_service.finalize_document(doc.id)

        assert len(result.movements) == 1
        assert product.stock_on_hand == 4

    def test_unknown_product_rolls_back_everything(self, db_session, make_product, counterparty):
        product = make_product(stock=10)
        lines = [
            stock_line(product, 2),
            LineInput(description="Unlisted gadget", quantity=1, unit_price_cents=100),
        ]
        doc = _invoice(counterparty, lines)

        with pytest.raises(UnknownProduct) as excinfo:
            document_service.finalize_document(doc.id)

        assert excinfo.value.details["description"] == "Unlisted gadget"
        assert product.stock_on_hand == 10
        assert inventory_service.list_movements(reference=doc.number) == []
        reloaded = document_service.get_document(doc.id)
        assert reloaded.status == STATUS_DRAFT
        assert reloaded.finalized_at is None

    def test_unknown_product_on_issue_persists_nothing(self, db_session, counterparty):
        line = LineInput(description="Unlisted gadget", quantity=1, unit_price_cents=100)

        with pytest.raises(UnknownProduct):
            document_service.issue_document(DOC_INVOICE, counterparty, [line])

        assert document_service.list_documents() == []

    def test_stock_floor_with_underflow_warning(self, db_session, make_product, counterparty):
        product = make_product(stock=1)
        doc = _invoice(counterparty, [stock_line(product, 5)])

        result = document_service.finalize_document(doc.id)

        assert product.stock_on_hand == 0
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert (warning.product_id, warning.requested, warning.available) == (product.id, 5, 1)
        assert warning.shortfall == 4
        assert warning.reference == doc.number
        assert result.movements[0].quantity == 1

    def test_empty_stock_writes_no_movement(self, db_session, make_product, counterparty):
        product = make_product(stock=0)
        doc = _invoice(counterparty, [stock_line(product, 2)])

        result = document_service.finalize_document(doc.id)

        assert result.movements == []
        assert result.warnings[0].available == 0
        assert product.stock_on_hand == 0

    def test_finalize_twice_moves_stock_once(self, db_session, make_product, counterparty):
        product = make_product(stock=10)
        doc = _invoice(counterparty, [stock_line(product, 4)])

        document_service.finalize_document(doc.id)
        again = document_service.finalize_document(doc.id)

        assert again.already_finalized is True
        assert again.movements == []
        assert product.stock_on_hand == 6
        assert len(inventory_service.list_movements(reference=doc.number)) == 1

    def test_same_product_on_two_lines(self, db_session, make_product, counterparty):
        product = make_product(stock=5)
        doc = _invoice(counterparty, [stock_line(product, 2), stock_line(product, 2)])

        result = document_service.finalize_document(doc.id)

        assert [m.quantity for m in result.movements] == [2, 2]
        assert product.stock_on_hand == 1


class TestStockOperations:
    def test_create_product_records_opening_stock(self, db_session, make_product):
        product = make_product(stock=8)

        movements = inventory_service.list_movements(product_id=product.id)
        assert len(movements) == 1
        assert movements[0].direction == DIRECTION_IN
        assert movements[0].purpose == PURPOSE_RESTOCK
        assert movements[0].quantity == 8

    def test_duplicate_sku_rejected(self, db_session, make_product):
        make_product(sku="DUP-1")

        with pytest.raises(LedgerError):
            make_product(sku="DUP-1")

    def test_receive_stock(self, db_session, make_product):
        product = make_product(stock=0)

        movement = inventory_service.receive_stock(product.id, 5, reference="GRN 12")

        assert product.stock_on_hand == 5
        assert movement.direction == DIRECTION_IN
        assert movement.reference == "GRN 12"

    @pytest.mark.parametrize("quantity", [0, 1_000_001, 10**13])
    def test_receive_rejects_bad_quantity(self, db_session, make_product, quantity):
        product = make_product(stock=0)

        with pytest.raises(InvalidAmount):
            inventory_service.receive_stock(product.id, quantity)

        assert inventory_service.get_product(product.id).stock_on_hand == 0

    def test_receive_unknown_product(self, db_session):
        with pytest.raises(UnknownProduct):
            inventory_service.receive_stock(404, 1)

    def test_remove_stock_for_demo_is_clamped(self, db_session, make_product):
        product = make_product(stock=2)

        movement, warning = inventory_service.remove_stock(product.id, 3, reference="Demo at AIIMS")

        assert product.stock_on_hand == 0
        assert movement.quantity == 2
        assert movement.purpose == PURPOSE_DEMO
        assert warning.shortfall == 1

    def test_low_stock(self, db_session, make_product):
        low = make_product(name="Gel", stock=1, min_level=5)
        make_product(name="Leads", stock=10, min_level=5)

        assert [p.id for p in inventory_service.list_low_stock()] == [low.id]

    def test_resolve_product_by_name_miss(self, db_session, make_product):
        make_product(name="ECG Machine")

        assert inventory_service.resolve_product_by_name("ECG") is None
        assert inventory_service.resolve_product_by_name("  ") is None
