"""
Pytest fixtures for PDV backend tests.

Provides an in-memory database, a test client and small factories for the
records most tests start from (operator, products with stock, customer,
supplier).
"""

import pytest

from pdv import create_app
from pdv.extensions import db
from pdv.models import Customer, Product, Supplier
from pdv.schemas import PaymentInput, SaleInput, SaleItemInput
from pdv.services import inventory_service, operator_service, sales_service


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
def client(app):
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
def operator(db_session):
    """Cashier with a 2.5% commission."""
    return operator_service.create_operator(
        name="Maria Caixa",
        username="maria",
        commission_type="PERCENTAGE",
        commission_value=250,
    )


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: product with optional opening stock posted as an inventory entry."""
    counter = {"n": 0}

    def _make(*, name=None, price=1000, stock=0, unit_cost=500, min_stock=0, **fields):
        counter["n"] += 1
        product = Product(
            name=name or f"Produto {counter['n']}",
            barcode=fields.pop("barcode", f"789{counter['n']:010d}"),
            selling_price_cents=price,
            cost_price_cents=unit_cost,
            min_stock=min_stock,
            current_stock=0,
            average_cost_cents=0,
            invested_value_cents=0,
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        if stock:
            inventory_service.apply_entry(product_id=product.id, quantity=stock, unit_cost_cents=unit_cost)
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """10 units in stock at cost 5.00, selling for 10.00."""
    return make_product(name="Arroz 5kg", price=1000, stock=10, unit_cost=500)


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer with a 1000.00 credit limit."""
    row = Customer(name="João Cliente", credit_limit_cents=100000, current_debt_cents=0, loyalty_points=0)
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture(scope='function')
def supplier(db_session):
    row = Supplier(name="Distribuidora Sul", reliability_score=100)
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture(scope='function')
def sell(operator):
    """Helper: run a checkout with (product, qty) lines and (method, amount) payments."""
    def _sell(lines, payments, *, customer=None, discount_cents=0, seller=None, credit_due_date=None):
        data = SaleInput(
            operator_id=(seller or operator).id,
            items=tuple(SaleItemInput(product_id=p.id, quantity=q) for p, q in lines),
            payments=tuple(PaymentInput(method=m, amount_cents=a) for m, a in payments),
            discount_cents=discount_cents,
            customer_id=customer.id if customer else None,
            credit_due_date=credit_due_date,
        )
        return sales_service.process_sale(data)

    return _sell
