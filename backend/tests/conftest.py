"""
Pytest fixtures for stockbook backend tests.

Provides test database setup, a record store, product fixtures and a test client.
"""

from datetime import date

import pytest
from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import (
    InventoryItem,
    Product,
    Transaction,
    TransactionItem,
    ITEM_IN_STOCK,
    STATUS_SCHEDULED,
    TYPE_IN,
    default_category,
)
from stockbook.services.store import RecordStore


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
def client(app, db_session):
    """Create test client."""
    return app.test_client()


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
def store(db_session):
    """Record store over the test session (default chunk and page sizes)."""
    return RecordStore(db_session)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: insert a product and return it."""
    def _make(name="Widget", **fields):
        product = Product(name=name, **fields)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def widget(make_product):
    return make_product("Widget", product_code="W-001", internal_barcode="4900000000011",
                        cost_price=100, selling_price=180, default_unit_price=100, current_stock=2)


@pytest.fixture(scope='function')
def gadget(make_product):
    return make_product("Gadget", product_code="G-001", cost_price=250, selling_price=400,
                        default_unit_price=250, current_stock=0)


@pytest.fixture(scope='function')
def make_transaction(db_session):
    """Factory: insert a transaction with lines [(product, quantity, price), ...]."""
    def _make(tx_type=TYPE_IN, lines=(), *, status=STATUS_SCHEDULED, tx_date=None, **fields):
        tx = Transaction(
            type=tx_type,
            status=status,
            category=fields.pop("category", default_category(tx_type)),
            date=tx_date or date(2024, 1, 10),
            total_amount=sum(q * p for _, q, p in lines),
            **fields,
        )
        db_session.add(tx)
        db_session.flush()
        for n, (product, quantity, price) in enumerate(lines, start=1):
            db_session.add(TransactionItem(
                transaction_id=tx.id,
                product_id=product.id,
                quantity=quantity,
                price=price,
                line_no=n,
            ))
        db_session.commit()
        return tx
    return _make


@pytest.fixture(scope='function')
def make_stock_item(db_session):
    """Factory: insert an IN_STOCK tracking item."""
    def _make(product, in_date, tracking_number="T-1", **fields):
        item = InventoryItem(
            product_id=product.id,
            tracking_number=tracking_number,
            status=fields.pop("status", ITEM_IN_STOCK),
            in_date=in_date,
            **fields,
        )
        db_session.add(item)
        db_session.commit()
        return item
    return _make
