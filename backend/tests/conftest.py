"""
Configuración de pytest y fixtures comunes.

Las variables de entorno se fijan antes de importar `app` para que la
configuración apunte a SQLite en memoria y nunca a PostgreSQL.
"""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-for-pytest-only-0123456789"
os.environ["ADMIN_PASSWORD"] = "admin123"
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="taller-tests-")

import datetime
from decimal import Decimal
from typing import AsyncGenerator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.deps import get_notifications
from app.core.rate_limit import rate_limiter
from app.core.security import ADMIN_COOKIE, create_admin_session_token
from app.main import app
from app.models import Base
from app.schemas.order import OrderAggregate, OrderCreate
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.order_store import OrderStore


# ============================================================
# Base de datos SQLite en memoria
# ============================================================


@pytest.fixture
async def engine():
    """Engine aiosqlite compartido por todas las sesiones del test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================
# Servicios
# ============================================================


@pytest.fixture
def notifications(tmp_path) -> NotificationService:
    return NotificationService(tmp_path / "notifications.json", cache_ttl=0)


@pytest.fixture
def store() -> OrderStore:
    return OrderStore()


@pytest.fixture
def order_service(notifications, store) -> OrderService:
    return OrderService(notifications, store)


# ============================================================
# Datos de ejemplo
# ============================================================


NOW = datetime.datetime(2025, 3, 10, 15, 30, tzinfo=datetime.timezone.utc)


@pytest.fixture
def now() -> datetime.datetime:
    return NOW


@pytest.fixture
def order_data() -> OrderCreate:
    return OrderCreate(
        customer_name="María López",
        customer_phone="55 1234-5678",
        customer_email="maria@example.com",
        device_type="Laptop",
        device_brand="Lenovo",
        device_model="ThinkPad T14",
        problem_description="No enciende",
        estimated_cost=Decimal("1500"),
    )


def make_order(**overrides) -> OrderAggregate:
    """Agregado en memoria con valores por defecto razonables."""
    values = {
        "order_number": "ORD-202503-0001",
        "customer_name": "María López",
        "customer_phone": "5512345678",
        "device_type": "Laptop",
        "device_brand": "Lenovo",
        "device_model": "ThinkPad T14",
        "problem_description": "No enciende",
        "estimated_cost": Decimal("1000"),
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return OrderAggregate(**values)


@pytest.fixture
def order() -> OrderAggregate:
    return make_order()


# ============================================================
# Cliente HTTP
# ============================================================


@pytest.fixture
async def client(session_factory, notifications) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Cliente httpx contra la app, con la sesión de base de datos y las
    notificaciones redirigidas a los recursos del test.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifications] = lambda: notifications
    rate_limiter.reset()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http

    app.dependency_overrides.clear()
    rate_limiter.reset()


@pytest.fixture
async def admin_client(client) -> httpx.AsyncClient:
    client.cookies.set(ADMIN_COOKIE, create_admin_session_token())
    return client
