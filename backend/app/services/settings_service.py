"""
Servicio de Configuración del Negocio
Proyecto: Taller Manager (Gestión de Taller)

La configuración vive en una fila única (id = 1). Mientras no exista se
devuelven los valores por defecto de `BusinessSettingsBase`.
"""

import logging
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.settings import SETTINGS_ROW_ID, BusinessSettings
from app.schemas.settings import (
    BusinessSettingsBase,
    BusinessSettingsRead,
    BusinessSettingsUpdate,
)

logger = logging.getLogger(__name__)


class SettingsProvider(Protocol):
    """Lo único que el núcleo de órdenes necesita de la configuración."""

    async def get_cancellation_fee(self) -> Decimal:
        ...

    async def get_low_stock_threshold(self) -> int:
        ...


class SettingsService:
    """
    Lectura y escritura de la configuración del negocio.
    """

    async def get_row(self, db: AsyncSession) -> Optional[BusinessSettings]:
        return await db.get(BusinessSettings, SETTINGS_ROW_ID)

    async def get(self, db: AsyncSession) -> BusinessSettingsRead:
        """
        Devuelve la configuración actual o los valores por defecto.

        Args:
            db: Sesión de base de datos

        Returns:
            BusinessSettingsRead (sin hash de contraseña)
        """
        row = await self.get_row(db)
        if row is None:
            logger.debug("Configuración no encontrada, usando valores por defecto")
            return BusinessSettingsRead(**BusinessSettingsBase().model_dump())
        return BusinessSettingsRead.model_validate(row)

    async def get_or_create_row(self, db: AsyncSession) -> BusinessSettings:
        """Fila de configuración, creada con los valores por defecto si falta."""
        row = await self.get_row(db)
        if row is None:
            row = BusinessSettings(id=SETTINGS_ROW_ID, **BusinessSettingsBase().model_dump())
            db.add(row)
            await db.flush()
            logger.info("Fila de configuración creada con valores por defecto")
        return row

    async def update(
        self,
        db: AsyncSession,
        data: BusinessSettingsUpdate,
    ) -> BusinessSettingsRead:
        """
        Actualiza los campos enviados de la configuración.

        Args:
            db: Sesión de base de datos
            data: Campos a modificar

        Returns:
            BusinessSettingsRead actualizada
        """
        row = await self.get_or_create_row(db)

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(row, field, value)

        await db.flush()
        logger.info("Configuración actualizada: %s", sorted(update_data))
        return BusinessSettingsRead.model_validate(row)


class DatabaseSettingsProvider:
    """SettingsProvider respaldado por la fila de configuración."""

    def __init__(self, db: AsyncSession, service: Optional[SettingsService] = None) -> None:
        self.db = db
        self.service = service or settings_service

    async def get_cancellation_fee(self) -> Decimal:
        current = await self.service.get(self.db)
        return current.cancellation_fee

    async def get_low_stock_threshold(self) -> int:
        current = await self.service.get(self.db)
        return current.low_stock_threshold


class StaticSettingsProvider:
    """SettingsProvider con valores fijos, para scripts y tests."""

    def __init__(
        self,
        cancellation_fee: Decimal = Decimal("0"),
        low_stock_threshold: int = 3,
    ) -> None:
        self.cancellation_fee = Decimal(cancellation_fee)
        self.low_stock_threshold = low_stock_threshold

    async def get_cancellation_fee(self) -> Decimal:
        return self.cancellation_fee

    async def get_low_stock_threshold(self) -> int:
        return self.low_stock_threshold


settings_service = SettingsService()
