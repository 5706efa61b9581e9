"""
Centralized Test Configuration.
"""

import os

# Run the app with debug off so unhandled errors go through the JSON error handler
os.environ.setdefault("DEBUG", "false")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from ivms.app.main import app
from ivms.app.db.session import get_db, Base
from ivms.app.core.redis_client import get_redis
from ivms.app.core.security import get_password_hash
from ivms.app.models.car import Car
from ivms.app.models.enums import CarStatus, CarType, Department, Role, TrackingMode
from ivms.app.models.part import Part
from ivms.app.models.rental_company import RentalCompany
from ivms.app.models.user import User
import ivms.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def setex(self, key, seconds, value):
        return await self.set(key, value, ex=seconds)

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


# Redis Fixture (Session Scope)
@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def session_factory():
    """For tests that need more than one independent session."""
    return TestingSessionLocal


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


# --- Users ---

@pytest.fixture
def make_user(db_session):
    """Factory: persist a user and return it."""
    async def _make_user(username, department, role, password="secret123", is_active=True):
        user = User(
            username=username,
            hashed_password=get_password_hash(password),
            full_name=username.title(),
            department=department,
            role=role,
            is_active=is_active
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
async def super_admin(make_user):
    return await make_user("superadmin", Department.ADMIN, Role.SUPER_ADMIN)


@pytest.fixture
async def operator(make_user):
    return await make_user("operator", Department.OPERATION, Role.OPERATOR)


@pytest.fixture
async def other_operator(make_user):
    return await make_user("operator2", Department.OPERATION, Role.OPERATOR)


@pytest.fixture
async def garage_user(make_user):
    return await make_user("garage", Department.GARAGE, Role.ADMIN)


@pytest.fixture
async def technician(make_user):
    return await make_user("technician", Department.MAINTENANCE, Role.TECHNICIAN)


# --- Fleet ---

@pytest.fixture
def make_car(db_session):
    async def _make_car(license_plate="ABC-123", type=CarType.SEDAN, status=CarStatus.AVAILABLE, mileage=1000):
        car = Car(
            model="Toyota Camry",
            type=type,
            year=2022,
            license_plate=license_plate,
            current_mileage=mileage,
            status=status
        )
        db_session.add(car)
        await db_session.commit()
        await db_session.refresh(car)
        return car
    return _make_car


@pytest.fixture
async def car(make_car):
    return await make_car()


@pytest.fixture
async def rental_company(db_session):
    company = RentalCompany(name="Hertz", contact_person="Jane", phone="555-0100", is_active=True)
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


# --- Parts ---

@pytest.fixture
def make_part(db_session):
    async def _make_part(name="Brake Pad", quantity=10, tracking_mode=TrackingMode.QUANTITY, serial_number=None):
        part = Part(
            name=name,
            car_type=CarType.SEDAN,
            car_model="Toyota Camry",
            tracking_mode=tracking_mode,
            quantity=quantity,
            serial_number=serial_number
        )
        db_session.add(part)
        await db_session.commit()
        await db_session.refresh(part)
        return part
    return _make_part
