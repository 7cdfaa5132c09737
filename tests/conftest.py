# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SYSTEM_LOCK_WORKER_ENABLED", "false")
os.environ.setdefault("REDIS_URL", "")

from agricart.core.security import create_access_token, hash_password
from agricart.core.settings import Settings
from agricart.db.session import Base
from agricart.db.session import get_db as app_get_session
from agricart.main import app as fastapi_app
from agricart.models import Product, ProductUnit, Stock, User, UserAddress, UserType
from agricart.services.throttle import get_lockout_check_throttle

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "password123"

_TEST_SETTINGS_INSTANCE = Settings()
# Hashed once for every fixture user.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_lockout_check_throttle() -> Iterator[None]:
    get_lockout_check_throttle().reset()
    yield
    get_lockout_check_throttle().reset()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


def _make_user(db: Session, user_type: UserType, name: str, **fields: object) -> User:
    user = User(type=user_type, name=name, password_hash=_PASSWORD_HASH, **fields)
    db.add(user)
    db.flush()
    db.refresh(user)
    return user


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.type)}"}


@pytest.fixture()
def customer(db_session: Session) -> User:
    """Create and return a persisted customer."""
    return _make_user(
        db_session,
        UserType.CUSTOMER,
        "Juan Dela Cruz",
        email="juan@example.com",
        contact_number="+639171234567",
    )


@pytest.fixture()
def other_customer(db_session: Session) -> User:
    return _make_user(db_session, UserType.CUSTOMER, "Maria Clara", email="maria@example.com")


@pytest.fixture()
def admin(db_session: Session) -> User:
    """Create and return a persisted administrator."""
    return _make_user(db_session, UserType.ADMIN, "Admin", email="admin@example.com")


@pytest.fixture()
def member(db_session: Session) -> User:
    """Create and return a persisted farmer member."""
    return _make_user(db_session, UserType.MEMBER, "Farmer Pedro", member_identifier="M-0001")


@pytest.fixture()
def customer_headers(customer: User) -> dict[str, str]:
    """Return authorization headers for the customer."""
    return auth_headers_for(customer)


@pytest.fixture()
def other_customer_headers(other_customer: User) -> dict[str, str]:
    return auth_headers_for(other_customer)


@pytest.fixture()
def admin_headers(admin: User) -> dict[str, str]:
    """Return authorization headers for the administrator."""
    return auth_headers_for(admin)


@pytest.fixture()
def default_address(db_session: Session, customer: User) -> UserAddress:
    address = UserAddress(
        user_id=customer.id,
        street="123 Rizal St",
        barangay="San Isidro",
        city="Cabanatuan",
        province="Nueva Ecija",
        is_default=True,
    )
    db_session.add(address)
    db_session.flush()
    db_session.refresh(address)
    return address


@pytest.fixture()
def stocked_product(db_session: Session, member: User) -> Product:
    """A kilo-priced product with 10 kilos of member stock."""
    product = Product(name="Tomatoes", unit=ProductUnit.KILO, price=Decimal("50.00"))
    db_session.add(product)
    db_session.flush()
    db_session.add(
        Stock(
            product_id=product.id,
            member_id=member.id,
            quantity=Decimal("10"),
            sold_quantity=Decimal("0"),
        )
    )
    db_session.flush()
    db_session.refresh(product)
    return product
