"""
Servicio de Repuestos e Inventario
Proyecto: Taller Manager (Gestión de Taller)

Contiene la lógica de negocio para:
- CRUD de repuestos
- Descuento y reposición de existencias
- Alertas de stock bajo

Las órdenes guardan una copia (nombre y costo) de cada repuesto usado, así
que borrar un repuesto no altera las órdenes existentes.
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.part import Part
from app.schemas.part import PartCreate, PartUpdate

logger = logging.getLogger(__name__)


class PartService:
    """
    Operaciones sobre el inventario.

    Los métodos hacen `flush`; la confirmación queda a cargo del router.
    """

    # ------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[list[Part], int]:
        """
        Lista de repuestos ordenada por nombre.

        Args:
            db: Sesión de base de datos
            search: Texto a buscar en el nombre
            page: Número de página (desde 1)
            per_page: Elementos por página

        Returns:
            Tupla (repuestos, total)
        """
        query = select(Part)
        count_query = select(func.count(Part.id))

        if search:
            condition = Part.name.ilike(f"%{search}%")
            query = query.filter(condition)
            count_query = count_query.filter(condition)

        query = query.order_by(Part.name.asc()).offset((page - 1) * per_page).limit(per_page)

        items = list((await db.execute(query)).scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    async def get_by_id(self, db: AsyncSession, part_id: uuid.UUID) -> Part:
        """
        Raises:
            NotFoundError: Si el repuesto no existe
        """
        part = await db.get(Part, part_id)
        if part is None:
            logger.warning("Repuesto no encontrado: %s", part_id)
            raise NotFoundError(f"Repuesto con ID {part_id} no encontrado")
        return part

    async def create(self, db: AsyncSession, data: PartCreate) -> Part:
        part = Part(**data.model_dump())
        db.add(part)
        await db.flush()
        await db.refresh(part)
        logger.info("Repuesto creado: %s (stock %d)", part.name, part.stock)
        return part

    async def update(self, db: AsyncSession, part_id: uuid.UUID, data: PartUpdate) -> Part:
        part = await self.get_by_id(db, part_id)

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(part, field, value)

        await db.flush()
        await db.refresh(part)
        logger.info("Repuesto actualizado: %s", part_id)
        return part

    async def delete(self, db: AsyncSession, part_id: uuid.UUID) -> None:
        part = await self.get_by_id(db, part_id)
        await db.delete(part)
        await db.flush()
        logger.info("Repuesto eliminado: %s", part_id)

    # ------------------------------------------------------------
    # Existencias
    # ------------------------------------------------------------

    async def reduce_stock(self, db: AsyncSession, part_id: uuid.UUID, quantity: int) -> Part:
        """
        Descuenta existencias al usar el repuesto en una orden.

        El stock nunca baja de cero y `times_used` aumenta en uno por
        cada llamada.

        Args:
            db: Sesión de base de datos
            part_id: UUID del repuesto
            quantity: Unidades usadas

        Returns:
            Part actualizado
        """
        query = select(Part).where(Part.id == part_id).with_for_update()
        part = (await db.execute(query)).scalar_one_or_none()
        if part is None:
            raise NotFoundError(f"Repuesto con ID {part_id} no encontrado")

        if quantity > part.stock:
            logger.warning(
                "Stock insuficiente de %s: %d solicitados, %d disponibles",
                part.name,
                quantity,
                part.stock,
            )
        part.stock = max(0, part.stock - quantity)
        part.times_used += 1

        await db.flush()
        await db.refresh(part)
        return part

    async def restore_stock(self, db: AsyncSession, part_id: uuid.UUID, quantity: int) -> Part:
        """Devuelve existencias (ej. repuesto retirado de una orden)."""
        part = await self.get_by_id(db, part_id)
        part.stock += quantity
        await db.flush()
        await db.refresh(part)
        return part

    async def low_stock(self, db: AsyncSession, threshold: int) -> list[Part]:
        """Repuestos con existencias menores o iguales al umbral."""
        query = select(Part).where(Part.stock <= threshold).order_by(Part.stock.asc(), Part.name.asc())
        return list((await db.execute(query)).scalars().all())


# Instancia singleton del servicio
part_service = PartService()
