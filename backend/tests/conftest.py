"""
Pytest fixtures for MarketEase backend tests.

Provides test database setup, user/product factories, and test client.
"""

import pytest
from cryptography.fernet import Fernet

from marketease import create_app
from marketease.extensions import db, view_cache
from marketease.models import Product, ROLE_ADMIN, ROLE_USER
from marketease.services import currency_service
from marketease.services.auth_service import create_user


TEST_AUDIT_KEY = Fernet.generate_key().decode()

DEFAULT_PASSWORD = "secret123"


def make_test_config(**overrides) -> dict:
    config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'AUDIT_ENCRYPTION_KEY': TEST_AUDIT_KEY,
        'ADMIN_EMAILS': {'admin@marketease.com'},
        'LOW_STOCK_THRESHOLD': 50,
        'EXCHANGE_RATE_API_URL': 'https://rates.test/json/last/',
    }
    config.update(overrides)
    return config


@pytest.fixture(scope='session')
def config_factory():
    """Build a test config with overrides, for tests that need their own app."""
    return make_test_config


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(make_test_config())

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
        view_cache.invalidate()
        currency_service.clear_cache()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: insert a product directly and return it."""
    def _make(name="Eggs", price_cents=499, cost_cents=250, quantity=60):
        product = Product(name=name, price_cents=price_cents, cost_cents=cost_cents, quantity=quantity)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def cashier(db_session):
    return create_user(name="Casey Cashier", email="cashier@marketease.com",
                       password=DEFAULT_PASSWORD, role=ROLE_USER)


@pytest.fixture(scope='function')
def admin(db_session):
    return create_user(name="Ada Admin", email="admin@marketease.com",
                       password=DEFAULT_PASSWORD, role=ROLE_ADMIN)


def get_auth_token(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
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


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, cashier.email))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))
