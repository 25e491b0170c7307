"""
Configuración de la base de datos - SQLAlchemy 2.0 Async
Proyecto: Taller Manager (Gestión de Taller)

Define engine, session factory y la dependencia para FastAPI.
"""

import logging
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict[str, Any]:
    """Opciones del engine según el dialecto (SQLite no acepta pool_size)."""
    options: dict[str, Any] = {
        "echo": settings.debug,
        "pool_pre_ping": True,
    }
    if not settings.is_sqlite:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


# ------------------------------------------------------------
# Engine Async SQLAlchemy 2.0
# ------------------------------------------------------------
engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options())


# ------------------------------------------------------------
# Session Factory
# ------------------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependencia de FastAPI.

    Crea una sesión por petición y la cierra al terminar.

    Yields:
        AsyncSession: Sesión async de base de datos
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """
    Verifica la conexión y crea las tablas que falten.
    """
    from app.models import Base

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Conexión a la base de datos establecida")
    except Exception as e:
        logger.error("Error de conexión a la base de datos: %s", e)
        raise


async def close_db() -> None:
    """Cierra las conexiones del pool (shutdown)."""
    await engine.dispose()
    logger.info("Conexiones a la base de datos cerradas")
