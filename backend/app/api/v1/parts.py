"""
Router FastAPI para Repuestos e Inventario
Proyecto: Taller Manager (Gestión de Taller)

NOTA: el orden de las rutas es intencional:
1. GET /low-stock (antes de /{part_id})
2. GET / (lista paginada)
3. GET, PUT, DELETE /{part_id}
4. POST /{part_id}/reduce y /{part_id}/restore
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import DbSession, get_settings_provider, require_admin
from app.schemas.part import (
    LowStockAlert,
    LowStockAlertList,
    PartCreate,
    PartList,
    PartRead,
    PartUpdate,
    StockChange,
)
from app.services.part_service import part_service
from app.services.settings_service import SettingsProvider

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/parts",
    tags=["Repuestos"],
    dependencies=[Depends(require_admin)],
)


# ------------------------------------------------------------
# Endpoint: Alertas de stock bajo
# ------------------------------------------------------------

@router.get(
    "/low-stock",
    name="low_stock_alerts",
    summary="Alertas de stock bajo",
    response_model=LowStockAlertList,
)
async def get_low_stock_alerts(
    db: DbSession,
    settings_provider: SettingsProvider = Depends(get_settings_provider),
) -> LowStockAlertList:
    """
    Repuestos con existencias en o por debajo del umbral configurado.
    """
    threshold = await settings_provider.get_low_stock_threshold()
    parts = await part_service.low_stock(db, threshold)
    return LowStockAlertList(
        items=[
            LowStockAlert(part_id=p.id, name=p.name, stock=p.stock, threshold=threshold)
            for p in parts
        ],
        total=len(parts),
        threshold=threshold,
    )


# ------------------------------------------------------------
# Endpoint: Lista
# ------------------------------------------------------------

@router.get(
    "/",
    name="parts_list",
    summary="Lista de repuestos",
    response_model=PartList,
)
async def get_parts(
    db: DbSession,
    page: int = Query(1, ge=1, description="Número de página"),
    per_page: int = Query(50, ge=1, le=200, description="Elementos por página"),
    search: Optional[str] = Query(None, description="Texto a buscar en el nombre"),
) -> PartList:
    parts, total = await part_service.get_all(db, search=search, page=page, per_page=per_page)
    return PartList(
        items=[PartRead.model_validate(p) for p in parts],
        total=total,
        page=page,
        per_page=per_page,
    )


# ------------------------------------------------------------
# Endpoint: CRUD
# ------------------------------------------------------------

@router.get("/{part_id}", name="part_detail", summary="Detalle de repuesto", response_model=PartRead)
async def get_part(part_id: uuid.UUID, db: DbSession) -> PartRead:
    part = await part_service.get_by_id(db, part_id)
    return PartRead.model_validate(part)


@router.post(
    "/",
    name="part_create",
    summary="Crea un repuesto",
    response_model=PartRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_part(data: PartCreate, db: DbSession) -> PartRead:
    part = await part_service.create(db, data)
    await db.commit()
    return PartRead.model_validate(part)


@router.put("/{part_id}", name="part_update", summary="Actualiza un repuesto", response_model=PartRead)
async def update_part(part_id: uuid.UUID, data: PartUpdate, db: DbSession) -> PartRead:
    part = await part_service.update(db, part_id, data)
    await db.commit()
    return PartRead.model_validate(part)


@router.delete(
    "/{part_id}",
    name="part_delete",
    summary="Elimina un repuesto",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_part(part_id: uuid.UUID, db: DbSession) -> None:
    """
    Elimina el repuesto. Las órdenes que lo usaron conservan su copia.
    """
    await part_service.delete(db, part_id)
    await db.commit()


# ------------------------------------------------------------
# Endpoint: Existencias
# ------------------------------------------------------------

@router.post(
    "/{part_id}/reduce",
    name="part_reduce_stock",
    summary="Descuenta existencias",
    response_model=PartRead,
)
async def reduce_stock(part_id: uuid.UUID, data: StockChange, db: DbSession) -> PartRead:
    part = await part_service.reduce_stock(db, part_id, data.quantity)
    await db.commit()
    return PartRead.model_validate(part)


@router.post(
    "/{part_id}/restore",
    name="part_restore_stock",
    summary="Repone existencias",
    response_model=PartRead,
)
async def restore_stock(part_id: uuid.UUID, data: StockChange, db: DbSession) -> PartRead:
    part = await part_service.restore_stock(db, part_id, data.quantity)
    await db.commit()
    return PartRead.model_validate(part)
