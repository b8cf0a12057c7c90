"""
Pytest fixtures for back-office tests.

Provides an in-memory database, a test client, seeded catalog/staff/card
rows and login headers for both roles.
"""

from datetime import date, timedelta

import pytest

from backoffice import create_app
from backoffice.entities import (
    ROLE_CASHIER,
    ROLE_MANAGER,
    Address,
    CategoryInput,
    Client,
    EmployeeInput,
    PersonName,
    ProductInput,
    StoreProductInput,
)
from backoffice.extensions import db
from backoffice.repositories import (
    CategoryRepository,
    ClientRepository,
    EmployeeRepository,
    ProductRepository,
    StoreProductRepository,
)
from backoffice.services.auth_service import hash_password
from backoffice.services.session_service import SessionStore

PASSWORD = "Password123!"
TEST_ROUNDS = 4


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'HASH_SALT_ROUNDS': TEST_ROUNDS,
        'DISCOUNT_QUOTIENT': 0.5,
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
    """Empty every table (and the session store) before each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions["session_store"] = SessionStore()

        yield db.session

        db.session.rollback()


def make_employee(
    employee_id: str,
    role: str,
    login: str | None = None,
    last_name: str = "Shevchenko",
    birth_date: date = date(1990, 5, 17),
    work_start_date: date = date(2015, 1, 1),
    password: str | None = PASSWORD,
) -> EmployeeInput:
    return EmployeeInput(
        employee_id=employee_id,
        name=PersonName("Taras", last_name, "Hryhorovych"),
        role=role,
        salary=2_500_000,
        birth_date=birth_date,
        work_start_date=work_start_date,
        phone="+380501234567",
        address=Address("Kyiv", "Khreshchatyk 1", "01001"),
        login=login,
        password_hash=hash_password(password, TEST_ROUNDS) if password else None,
    )


def make_client(card_number: str = "CARD000000001", discount: int = 15, last_name: str = "Kovalenko") -> Client:
    return Client(
        card_number=card_number,
        name=PersonName("Olena", last_name),
        phone="+380671112233",
        discount=discount,
        address=Address("Lviv", "Rynok 10", "79000"),
    )


@pytest.fixture(scope='function')
def category(db_session):
    """Create the Dairy category."""
    category_id = CategoryRepository(db_session).insert(CategoryInput("Dairy"))
    db_session.commit()
    return category_id


@pytest.fixture(scope='function')
def product(db_session, category):
    """Create product 111 (Milk) in Dairy."""
    upc = ProductRepository(db_session).insert(ProductInput(
        upc="111",
        category_id=category,
        product_name="Milk",
        manufacturer="Halychyna",
        specs="2.5% fat, 1 l",
    ))
    db_session.commit()
    return upc


@pytest.fixture(scope='function')
def store_product(db_session, product):
    """Create the base store product for 111: price 1000, quantity 50."""
    store_product_id = StoreProductRepository(db_session).insert(StoreProductInput(upc=product, price=1000, quantity=50))
    db_session.commit()
    return store_product_id


@pytest.fixture(scope='function')
def store_products(db_session):
    """A repository using the same quotient as the test app (0.5)."""
    return StoreProductRepository(db_session, discount_quotient=0.5)


@pytest.fixture(scope='function')
def manager(db_session):
    employee_id = EmployeeRepository(db_session).insert(make_employee("M001", ROLE_MANAGER, login="manager"))
    db_session.commit()
    return employee_id


@pytest.fixture(scope='function')
def cashier(db_session):
    employee_id = EmployeeRepository(db_session).insert(
        make_employee("C001", ROLE_CASHIER, login="cashier", last_name="Franko")
    )
    db_session.commit()
    return employee_id


@pytest.fixture(scope='function')
def client_card(db_session):
    """Create customer card CARD000000001 with a 15% discount."""
    card_number = ClientRepository(db_session).insert(make_client())
    db_session.commit()
    return card_number


@pytest.fixture(scope='function')
def seed(db_session, store_product, manager, cashier, client_card):
    """Catalog, both roles and a customer card."""
    return {
        "store_product_id": store_product,
        "manager_id": manager,
        "cashier_id": cashier,
        "card_number": client_card,
    }


def get_auth_token(client, login: str, password: str = PASSWORD) -> str | None:
    """Helper to get auth token for an employee."""
    response = client.post('/api/auth/login', json={'login': login, 'password': password})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, "manager"))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, "cashier"))


@pytest.fixture(scope='function')
def yesterday():
    return date.today() - timedelta(days=1)
