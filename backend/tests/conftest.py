"""
Pytest fixtures for VoucherPOS backend tests.

Provides the test app (in-memory SQLite), a fresh database per test, and
small factories for retailers, terminals, voucher stock and logins.
"""

import pytest

from voucherpos import create_app
from voucherpos.extensions import db
from voucherpos.models.auth import ROLE_ADMIN, ROLE_AGENT, ROLE_RETAILER
from voucherpos.services import account_service, commission_service, inventory_service, ledger_service
from voucherpos.services.auth_service import create_user


PASSWORD = "Password123!"
TEST_ROUNDS = 4

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    "BCRYPT_ROUNDS": TEST_ROUNDS,
    "LOG_LEVEL": "WARNING",
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def group(db_session):
    return commission_service.create_group("Standard", "Default rates")


@pytest.fixture(scope='function')
def agent(db_session):
    return account_service.create_agent("North Agent")


@pytest.fixture(scope='function')
def retailer(db_session, group, agent):
    """Retailer with R100 balance, R50 credit limit, in the Standard group."""
    retailer = account_service.create_retailer(
        "Corner Spaza",
        credit_limit_cents=5000,
        commission_group_id=group.id,
        agent_id=agent.id,
    )
    ledger_service.deposit(retailer.id, 10000, note="Opening float")
    return retailer


@pytest.fixture(scope='function')
def terminal(db_session, retailer):
    return account_service.create_terminal(retailer.id, "Till 1")


@pytest.fixture(scope='function')
def airtime(db_session, group):
    """MTN airtime type with a 5% retailer / 1% agent rate."""
    voucher_type = inventory_service.create_voucher_type(
        name="MTN Airtime",
        category="airtime",
        network_provider="MTN",
    )
    commission_service.upsert_rate(group.id, voucher_type.id, "5.0", "1.0")
    return voucher_type


def load_units(voucher_type, amount_cents, count, prefix=None):
    """Load `count` units of one denomination; returns nothing (ids via lookups)."""
    prefix = prefix or f"{voucher_type.id}-{amount_cents}"
    inventory_service.add_inventory_units(voucher_type.id, [
        {"amount_cents": amount_cents, "pin": f"{prefix}-{i:04d}", "serial_number": f"SN{prefix}{i}"}
        for i in range(count)
    ])


@pytest.fixture(scope='function')
def stocked(airtime):
    """Three R10 and two R50 MTN airtime units."""
    load_units(airtime, 1000, 3)
    load_units(airtime, 5000, 2)
    return airtime


@pytest.fixture(scope='function')
def cashier(db_session, terminal):
    return account_service.create_cashier(
        terminal.id, "till1", "till1@voucherpos.local", PASSWORD, rounds=TEST_ROUNDS
    )


@pytest.fixture(scope='function')
def owner(db_session, retailer):
    return create_user(
        username="owner",
        email="owner@voucherpos.local",
        password=PASSWORD,
        role=ROLE_RETAILER,
        retailer_id=retailer.id,
        rounds=TEST_ROUNDS,
    )


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user(
        username="admin",
        email="admin@voucherpos.local",
        password=PASSWORD,
        role=ROLE_ADMIN,
        rounds=TEST_ROUNDS,
    )


@pytest.fixture(scope='function')
def agent_user(db_session, agent):
    return create_user(
        username="agent",
        email="agent@voucherpos.local",
        password=PASSWORD,
        role=ROLE_AGENT,
        agent_id=agent.id,
        rounds=TEST_ROUNDS,
    )


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def add_units(db_session):
    """Loader fixture: add_units(voucher_type, amount_cents, count)."""
    return load_units


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, cashier.username))


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, owner.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def agent_headers(client, agent_user):
    return auth_headers(get_auth_token(client, agent_user.username))
