import os

# Settings are read at import time; keep tests off the real database file
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATIONS_ASYNC", "false")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db, import_models, install_sqlite_hooks
from models.customer import Customer
from models.location import Location
from models.product import Product
from models.supplier import Supplier
from models.users import User, UserRole
from utils.hashing import get_password_hash
from utils.notifier import get_notifier
from utils.tokenJWT import create_access_token

PASSWORD = "testpassword123"
# bcrypt is deliberately slow; hash once per test session
PASSWORD_HASH = get_password_hash(PASSWORD)


class RecordingNotifier:
    """Collects published events instead of delivering them."""

    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)

    def of_type(self, cls):
        return [e for e in self.events if isinstance(e, cls)]


class FailingNotifier:
    def __init__(self):
        self.calls = 0

    def publish(self, event):
        self.calls += 1
        raise RuntimeError("notification channel down")


@pytest.fixture
def engine():
    """In-memory SQLite with the production connection hooks."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_sqlite_hooks(engine)
    import_models()
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


def _make_user(db, email, role, is_active=True):
    user = User(email=email, password_hash=PASSWORD_HASH, role=role.value,
                first_name=role.value.title(), last_name="Tester", is_active=is_active)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def manager(db):
    return _make_user(db, "manager@example.com", UserRole.MANAGER)


@pytest.fixture
def staff(db):
    return _make_user(db, "staff@example.com", UserRole.STAFF)


@pytest.fixture
def locations(db):
    main = Location(name="Main Warehouse")
    store = Location(name="Store Room")
    db.add_all([main, store])
    db.commit()
    return main, store


@pytest.fixture
def product(db):
    product = Product(sku="SKU-001", name="Widget", reorder_level=0, cost_price=1.0, selling_price=2.0)
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def tracked_product(db):
    """Product with low-stock detection enabled at 10 units."""
    product = Product(sku="SKU-LOW", name="Gadget", reorder_level=10, cost_price=3.0, selling_price=5.0)
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def supplier(db):
    supplier = Supplier(name="Acme Supplies", email="orders@acme.com")
    db.add(supplier)
    db.commit()
    return supplier


@pytest.fixture
def customer(db):
    customer = Customer(name="Builders Ltd")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def client(db, notifier):
    """Test client sharing the test session and recording notifier."""
    from main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield TestClient(app)

    app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token(data={"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}
