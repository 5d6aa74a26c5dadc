"""
Pytest fixtures for document ledger tests.

Provides an app on in-memory SQLite, a per-test table wipe, and small
factories for products and example documents.
"""

import pytest

from docledger import create_app
from docledger.extensions import db
from docledger.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: create a catalog product with opening stock."""
    counter = {"n": 0}

    def _make(name="ECG Machine", stock=10, price_cents=4500000, tax_rate_bps=1200, **kwargs):
        counter["n"] += 1
        return inventory_service.create_product(
            sku=kwargs.pop("sku", f"SKU-{counter['n']:03d}"),
            name=name,
            price_cents=price_cents,
            tax_rate_bps=tax_rate_bps,
            stock_on_hand=stock,
            **kwargs,
        )

    return _make


@pytest.fixture
def counterparty():
    return {
        "name": "Dr. Mehta",
        "hospital": "City Care Hospital",
        "address": "12 MG Road, Bengaluru",
        "tax_id": "29ABCDE1234F1Z5",
    }
