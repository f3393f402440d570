"""
Pytest fixtures for kioskpos backend tests.

Provides the app (in-memory SQLite, temporary storage root), a per-test
table wipe, one manager and two kiosks, and bearer token helpers.
"""

import pytest
from kioskpos import create_app
from kioskpos.extensions import db
from kioskpos.models import KioskItem, FactoryItem, ROLE_MANAGER, ROLE_KIOSK, stock_status
from kioskpos.services import auth_service


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STORAGE_ROOT': str(tmp_path_factory.mktemp("storage")),
        'BCRYPT_ROUNDS': 4,
        'REALTIME_KEEPALIVE_SECONDS': 0.2,
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
def manager(db_session):
    return auth_service.sign_up(
        name="Factory Manager",
        email="manager@factory.test",
        password=PASSWORD,
        role=ROLE_MANAGER,
    )


@pytest.fixture(scope='function')
def kiosk_a(db_session):
    return auth_service.sign_up(
        name="Asha",
        email="asha@kiosk.test",
        password=PASSWORD,
        role=ROLE_KIOSK,
        kiosk_name="Station Road",
    )


@pytest.fixture(scope='function')
def kiosk_b(db_session):
    return auth_service.sign_up(
        name="Bilal",
        email="bilal@kiosk.test",
        password=PASSWORD,
        role=ROLE_KIOSK,
        kiosk_name="Market Square",
    )


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a profile."""
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
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.email))


@pytest.fixture(scope='function')
def kiosk_a_headers(client, kiosk_a):
    return auth_headers(get_auth_token(client, kiosk_a.email))


@pytest.fixture(scope='function')
def kiosk_b_headers(client, kiosk_b):
    return auth_headers(get_auth_token(client, kiosk_b.email))


def _make_kiosk_item(kiosk, item_name: str, stock: int, price_cents: int) -> KioskItem:
    row = KioskItem(
        kiosk_id=kiosk.id,
        item_name=item_name,
        stock=stock,
        price_cents=price_cents,
        status=stock_status(stock),
    )
    db.session.add(row)
    db.session.commit()
    return row


def _make_factory_item(name: str, price_cents: int, stock: int = 999999) -> FactoryItem:
    item = FactoryItem(name=name, price_cents=price_cents, stock=stock, status=stock_status(stock))
    db.session.add(item)
    db.session.commit()
    return item


@pytest.fixture(scope='function')
def make_kiosk_item(db_session):
    """Factory fixture: insert a kiosk catalog row directly."""
    return _make_kiosk_item


@pytest.fixture(scope='function')
def make_factory_item(db_session):
    """Factory fixture: insert a factory catalog row directly."""
    return _make_factory_item


@pytest.fixture(scope='function')
def login(client):
    """Factory fixture: email -> Authorization headers."""
    def _login(email: str, password: str = PASSWORD) -> dict:
        return auth_headers(get_auth_token(client, email, password))
    return _login
