"""
Pytest fixtures for stockbook backend tests.

Provides the app on an in-memory database, a per-test clean session,
staff users for every role, a couple of catalog products, and the test client.
"""

from decimal import Decimal

import pytest
from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Product, SalesTransaction
from stockbook.models.auth import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF, ROLE_SUPER_ADMIN
from stockbook.services.auth_service import create_user
from stockbook.services.session_service import create_session

TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
        'BCRYPT_ROUNDS': 4,
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
        # Core deletes: the ORM refuses to delete sales rows
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(email: str, role: str):
    return create_user(email, TEST_PASSWORD, "Test", role.title(), role=role)


@pytest.fixture(scope='function')
def super_admin(db_session):
    return _make_user("owner@stockbook.test", ROLE_SUPER_ADMIN)


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user("admin@stockbook.test", ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager(db_session):
    return _make_user("manager@stockbook.test", ROLE_MANAGER)


@pytest.fixture(scope='function')
def staff(db_session):
    return _make_user("staff@stockbook.test", ROLE_STAFF)


def make_product(db_session, **overrides) -> Product:
    """Insert a product; defaults describe a scale-measured item."""
    values = dict(
        name="Chicken (Whole)",
        category="protein",
        measurement_type="scale",
        container_size=None,
        price_per_unit=Decimal("100"),
        cost_price=Decimal("70"),
        current_stock=Decimal("10"),
        min_stock_level=Decimal("5"),
        supplier="Local Poultry Farm",
    )
    values.update(overrides)
    product = Product(**values)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product(db_session):
    """Scenario product: stock 10, min 5, price 100, cost 70."""
    return make_product(db_session)


@pytest.fixture(scope='function')
def tomatoes(db_session):
    return make_product(
        db_session,
        name="Tomatoes",
        category="vegetable",
        measurement_type="container",
        container_size="medium",
        price_per_unit=Decimal("500"),
        cost_price=Decimal("350"),
        current_stock=Decimal("100"),
        min_stock_level=Decimal("20"),
        supplier="Local Market",
    )


def make_transaction(db_session, seller, *, code, total_amount, total_cost, created_at, payment_method="cash"):
    """Insert a sales transaction row directly (no lines, no stock change)."""
    sale = SalesTransaction(
        transaction_code=code,
        total_amount=Decimal(total_amount),
        total_cost=Decimal(total_cost),
        profit=Decimal(total_amount) - Decimal(total_cost),
        payment_method=payment_method,
        sold_by_user_id=seller.id,
        created_at=created_at,
    )
    db_session.add(sale)
    db_session.commit()
    return sale


def stock_of(db_session, product_id: int) -> Decimal:
    """Current stock straight from the database."""
    db_session.expire_all()
    return db_session.get(Product, product_id).current_stock


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def token_for(user) -> str:
    """Issue a session directly, skipping the login round trip."""
    _, token = create_session(user.id)
    return token
