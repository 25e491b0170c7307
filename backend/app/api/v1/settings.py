"""
Router de Configuración del Negocio
Proyecto: Taller Manager (Gestión de Taller)

La lectura es pública (el portal muestra nombre, logo y horario); la
escritura exige sesión de administrador.
"""

from fastapi import APIRouter, Depends

from app.core.deps import DbSession, require_admin
from app.schemas.settings import BusinessSettingsRead, BusinessSettingsUpdate
from app.services.settings_service import settings_service

router = APIRouter(
    prefix="/settings",
    tags=["Configuración"],
)


@router.get("/", name="settings_read", summary="Configuración del negocio", response_model=BusinessSettingsRead)
async def get_settings_endpoint(db: DbSession) -> BusinessSettingsRead:
    return await settings_service.get(db)


@router.put(
    "/",
    name="settings_update",
    summary="Actualiza la configuración",
    response_model=BusinessSettingsRead,
    dependencies=[Depends(require_admin)],
)
async def update_settings(data: BusinessSettingsUpdate, db: DbSession) -> BusinessSettingsRead:
    updated = await settings_service.update(db, data)
    await db.commit()
    return updated
