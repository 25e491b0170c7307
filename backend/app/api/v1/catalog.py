"""
Router FastAPI para el Catálogo de Servicios y Categorías
Proyecto: Taller Manager (Gestión de Taller)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import DbSession, require_admin
from app.schemas.catalog import (
    CategoryCreate,
    CategoryRead,
    RepairServiceCreate,
    RepairServiceRead,
    RepairServiceUpdate,
)
from app.services.catalog_service import catalog_service

router = APIRouter(
    prefix="/services",
    tags=["Catálogo de Servicios"],
    dependencies=[Depends(require_admin)],
)

categories_router = APIRouter(
    prefix="/categories",
    tags=["Categorías"],
    dependencies=[Depends(require_admin)],
)


# ------------------------------------------------------------
# Servicios
# ------------------------------------------------------------

@router.get("/", name="services_list", summary="Lista de servicios", response_model=list[RepairServiceRead])
async def list_services(
    db: DbSession,
    category: Optional[str] = Query(None, description="Filtro por categoría"),
) -> list[RepairServiceRead]:
    services = await catalog_service.get_services(db, category)
    return [RepairServiceRead.model_validate(s) for s in services]


@router.get("/{service_id}", name="service_detail", summary="Detalle de servicio", response_model=RepairServiceRead)
async def get_service(service_id: uuid.UUID, db: DbSession) -> RepairServiceRead:
    service = await catalog_service.get_service(db, service_id)
    return RepairServiceRead.model_validate(service)


@router.post(
    "/",
    name="service_create",
    summary="Crea un servicio",
    response_model=RepairServiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_service(data: RepairServiceCreate, db: DbSession) -> RepairServiceRead:
    """
    Crea un servicio; si se indica un repuesto vinculado se copian su
    nombre y costo para calcular el margen.
    """
    service = await catalog_service.create_service(db, data)
    await db.commit()
    return RepairServiceRead.model_validate(service)


@router.put("/{service_id}", name="service_update", summary="Actualiza un servicio", response_model=RepairServiceRead)
async def update_service(
    service_id: uuid.UUID,
    data: RepairServiceUpdate,
    db: DbSession,
) -> RepairServiceRead:
    service = await catalog_service.update_service(db, service_id, data)
    await db.commit()
    return RepairServiceRead.model_validate(service)


@router.delete(
    "/{service_id}",
    name="service_delete",
    summary="Elimina un servicio",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_service(service_id: uuid.UUID, db: DbSession) -> None:
    await catalog_service.delete_service(db, service_id)
    await db.commit()


# ------------------------------------------------------------
# Categorías
# ------------------------------------------------------------

@categories_router.get("/", name="categories_list", summary="Lista de categorías", response_model=list[CategoryRead])
async def list_categories(db: DbSession) -> list[CategoryRead]:
    categories = await catalog_service.get_categories(db)
    return [CategoryRead.model_validate(c) for c in categories]


@categories_router.post(
    "/",
    name="category_create",
    summary="Crea una categoría",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(data: CategoryCreate, db: DbSession) -> CategoryRead:
    """409 si ya existe una categoría con el mismo nombre."""
    category = await catalog_service.create_category(db, data)
    await db.commit()
    return CategoryRead.model_validate(category)


@categories_router.delete(
    "/{category_id}",
    name="category_delete",
    summary="Elimina una categoría",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_category(category_id: uuid.UUID, db: DbSession) -> None:
    await catalog_service.delete_category(db, category_id)
    await db.commit()
