import pytest

from docledger.errors import LedgerError
from docledger.models import Counterparty
from docledger.services import lookups
from docledger.services.lookups import CatalogEntry, DirectoryEntry
from docledger.services.totals_service import LineInput
from docledger.validation import ValidationError, parse_document_payload, parse_line_item


class FakeCatalog:
    def __init__(self, entries):
        self.entries = entries

    def by_id(self, product_id):
        return next((e for e in self.entries if e.product_id == product_id), None)

    def by_name(self, name):
        return next((e for e in self.entries if e.description.lower() == name.lower()), None)


class FakeDirectory:
    def by_name(self, name):
        if name == "City Care":
            return DirectoryEntry(ref="CLI-7", name="City Care", address="MG Road", tax_id="29XYZ")
        return None


CATALOG = FakeCatalog([
    CatalogEntry(product_id=7, description="ECG Machine", unit_price_cents=4500000, tax_rate_bps=1200,
                 hsn="9018", model="E-12"),
])


def test_autofill_line_by_name():
    line = LineInput(description="ecg machine", quantity=2, unit_price_cents=0)

    filled = lookups.autofill_line(line, CATALOG)

    assert filled.product_id == 7
    assert filled.unit_price_cents == 4500000
    assert filled.tax_rate_bps == 1200
    assert filled.hsn == "9018"
    assert filled.model == "E-12"
    assert filled.description == "ecg machine"
    assert filled.quantity == 2


def test_autofill_line_by_id():
    line = LineInput(description="Cardiac monitor (refurb)", quantity=1, unit_price_cents=0, product_id=7)

    assert lookups.autofill_line(line, CATALOG).unit_price_cents == 4500000


def test_autofill_line_miss_keeps_input():
    line = LineInput(description="Custom cable", quantity=1, unit_price_cents=1500, tax_rate_bps=1800)

    assert lookups.autofill_line(line, CATALOG) is line


def test_autofill_counterparty():
    filled = lookups.autofill_counterparty({"name": "City Care", "tax_id": "29OVERRIDE"}, FakeDirectory())

    assert filled["address"] == "MG Road"
    assert filled["ref"] == "CLI-7"
    assert filled["tax_id"] == "29OVERRIDE"


def test_autofill_counterparty_miss():
    assert lookups.autofill_counterparty({"name": "Walk-in"}, FakeDirectory()) == {"name": "Walk-in"}


def test_sql_lookups(db_session, make_product):
    product = make_product(name="Syringe Pump", price_cents=1800000, tax_rate_bps=1200, hsn="9018")
    lookups.create_counterparty(code="CLI-001", name="Apollo Clinic", address="Jayanagar", tax_id="29AP")

    catalog = lookups.SqlCatalogLookup()
    directory = lookups.SqlDirectoryLookup()

    assert catalog.by_name("SYRINGE PUMP").product_id == product.id
    assert catalog.by_id(product.id).unit_price_cents == 1800000
    assert catalog.by_name("Infusion pump") is None
    assert directory.by_name("apollo clinic").address == "Jayanagar"
    assert directory.by_name("Unknown") is None


def test_duplicate_directory_code(db_session):
    lookups.create_counterparty(code="CLI-001", name="Apollo Clinic")

    with pytest.raises(LedgerError) as excinfo:
        lookups.create_counterparty(code="CLI-001", name="Other")

    assert "already exists" in str(excinfo.value)
    assert db_session.query(Counterparty).count() == 1


class TestPayloadValidation:
    def test_parse_document_payload(self):
        kwargs = parse_document_payload({
            "document_type": "invoice",
            "counterparty": {"name": "City Care"},
            "items": [{"description": "ECG Machine", "quantity": "2", "unit_price": "45000.00", "tax_rate": "12"}],
            "discount": "1000",
            "freight": {"amount": "500.00", "tax_rate": 18},
            "document_date": "2026-03-05",
        })

        assert kwargs["document_type"] == "INVOICE"
        item = kwargs["items"][0]
        assert (item.quantity, item.unit_price_cents, item.tax_rate_bps) == (2, 4500000, 1200)
        assert kwargs["discount_cents"] == 100000
        assert kwargs["freight"].amount_cents == 50000
        assert kwargs["freight"].tax_rate_bps == 1800
        assert kwargs["document_date"].isoformat() == "2026-03-05"

    @pytest.mark.parametrize("quantity", [1.0, "1.5", "1e3", "", "two"])
    def test_quantity_must_be_plain_integer(self, quantity):
        with pytest.raises(ValidationError):
            parse_line_item({"description": "A", "quantity": quantity, "unit_price": "1.00"})

    def test_float_money_rejected(self):
        with pytest.raises(ValidationError):
            parse_line_item({"description": "A", "quantity": 1, "unit_price": 10.5})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            parse_document_payload({"document_type": "INVOICE", "colour": "blue"})

    def test_missing_type(self):
        with pytest.raises(ValidationError):
            parse_document_payload({"items": []})
