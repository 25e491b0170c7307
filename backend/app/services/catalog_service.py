"""
Servicio del Catálogo de Servicios
Proyecto: Taller Manager (Gestión de Taller)

CRUD de servicios (con repuesto vinculado opcional) y de categorías.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateError, NotFoundError
from app.models.catalog import Category, RepairService
from app.schemas.catalog import CategoryCreate, RepairServiceCreate, RepairServiceUpdate
from app.services.part_service import part_service

logger = logging.getLogger(__name__)


class CatalogService:
    """Servicios del taller y sus categorías."""

    # ------------------------------------------------------------
    # Servicios
    # ------------------------------------------------------------

    async def get_services(
        self,
        db: AsyncSession,
        category: Optional[str] = None,
    ) -> list[RepairService]:
        query = select(RepairService)
        if category:
            query = query.where(RepairService.category == category)
        query = query.order_by(RepairService.category.asc(), RepairService.name.asc())
        return list((await db.execute(query)).scalars().all())

    async def get_service(self, db: AsyncSession, service_id: uuid.UUID) -> RepairService:
        service = await db.get(RepairService, service_id)
        if service is None:
            raise NotFoundError(f"Servicio con ID {service_id} no encontrado")
        return service

    async def _link_part(
        self,
        db: AsyncSession,
        service: RepairService,
        part_id: Optional[uuid.UUID],
    ) -> None:
        """Copia nombre y costo del repuesto vinculado (o limpia el vínculo)."""
        if part_id is None:
            service.linked_part_id = None
            service.linked_part_name = None
            service.linked_part_cost = None
            return
        part = await part_service.get_by_id(db, part_id)
        service.linked_part_id = part.id
        service.linked_part_name = part.name
        service.linked_part_cost = part.cost

    async def create_service(self, db: AsyncSession, data: RepairServiceCreate) -> RepairService:
        """
        Crea un servicio del catálogo.

        Raises:
            NotFoundError: Si el repuesto vinculado no existe
        """
        service = RepairService(**data.model_dump(exclude={"linked_part_id"}))
        await self._link_part(db, service, data.linked_part_id)

        db.add(service)
        await db.flush()
        await db.refresh(service)
        logger.info("Servicio creado: %s (%s)", service.name, service.category)
        return service

    async def update_service(
        self,
        db: AsyncSession,
        service_id: uuid.UUID,
        data: RepairServiceUpdate,
    ) -> RepairService:
        service = await self.get_service(db, service_id)
        update_data = data.model_dump(exclude_unset=True)

        if "linked_part_id" in update_data:
            await self._link_part(db, service, update_data.pop("linked_part_id"))

        for field, value in update_data.items():
            if value is not None:
                setattr(service, field, value)

        await db.flush()
        await db.refresh(service)
        return service

    async def delete_service(self, db: AsyncSession, service_id: uuid.UUID) -> None:
        service = await self.get_service(db, service_id)
        await db.delete(service)
        await db.flush()
        logger.info("Servicio eliminado: %s", service_id)

    # ------------------------------------------------------------
    # Categorías
    # ------------------------------------------------------------

    async def get_categories(self, db: AsyncSession) -> list[Category]:
        result = await db.execute(select(Category).order_by(Category.name.asc()))
        return list(result.scalars().all())

    async def create_category(self, db: AsyncSession, data: CategoryCreate) -> Category:
        """
        Crea una categoría.

        Raises:
            DuplicateError: Si ya existe una categoría con ese nombre
        """
        existing = await db.execute(
            select(Category).where(func.lower(Category.name) == data.name.lower())
        )
        if existing.scalar_one_or_none():
            raise DuplicateError(f"La categoría {data.name} ya existe")

        category = Category(name=data.name)
        db.add(category)
        await db.flush()
        logger.info("Categoría creada: %s", category.name)
        return category

    async def delete_category(self, db: AsyncSession, category_id: uuid.UUID) -> None:
        """Elimina la categoría; los servicios conservan el texto de su categoría."""
        category = await db.get(Category, category_id)
        if category is None:
            raise NotFoundError(f"Categoría con ID {category_id} no encontrada")
        await db.delete(category)
        await db.flush()


catalog_service = CatalogService()
