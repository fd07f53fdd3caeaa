"""Shared test fixtures for all test modules."""

import contextlib
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core import database as db_module
from app.core.database import Base, get_db
from app.repositories.coupon_store import SqlCouponStore
from app.schemas.coupon import CouponCreate
from app.services.coupon_admin import CouponAdminService
from tests.fakes import InMemoryCouponStore

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Fixed "current time" used by services under test
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return NOW


def coupon_data(**overrides: Any) -> CouponCreate:
    """Build a valid coupon definition, active around NOW."""
    values: dict[str, Any] = {
        "code": "SAVE10",
        "name": "Save ten",
        "coupon_type": "percentage",
        "value": Decimal("10"),
        "start_date": NOW - timedelta(days=1),
        "end_date": NOW + timedelta(days=30),
    }
    values.update(overrides)
    return CouponCreate(**values)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def sql_store(db_session):
    """CouponStore backed by the test database."""
    return SqlCouponStore(db_session)


@pytest.fixture
def memory_store():
    """CouponStore held in memory."""
    return InMemoryCouponStore()


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Run a test against both store implementations."""
    if request.param == "sql":
        return request.getfixturevalue("sql_store")
    return request.getfixturevalue("memory_store")


@pytest.fixture
def make_coupon(store):
    """Create coupons in ``store`` through the admin service."""
    admin = CouponAdminService(store, clock=fixed_clock)

    def _make(**overrides: Any):
        return admin.create_coupon(coupon_data(**overrides))

    return _make
