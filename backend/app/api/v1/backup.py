"""
Router de Respaldo y Exportación
Proyecto: Taller Manager (Gestión de Taller)
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.core.deps import DbSession, require_admin
from app.schemas.order import utcnow
from app.services.backup_service import backup_service

router = APIRouter(
    tags=["Respaldo"],
    dependencies=[Depends(require_admin)],
)


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/backup", name="backup_zip", summary="Respaldo completo en ZIP")
async def download_backup(db: DbSession) -> Response:
    content = await backup_service.create_zip(db)
    return Response(
        content=content,
        media_type="application/zip",
        headers=_attachment(f"backup_{utcnow():%Y-%m-%d}.zip"),
    )


@router.get("/export", name="export", summary="Exporta órdenes (CSV) o todo (JSON)")
async def export(
    db: DbSession,
    format: Literal["csv", "json"] = Query("csv", description="Formato de exportación"),
) -> Response:
    today = f"{utcnow():%Y-%m-%d}"
    if format == "json":
        return Response(
            content=await backup_service.export_json(db),
            media_type="application/json",
            headers=_attachment(f"backup_{today}.json"),
        )
    return Response(
        content=await backup_service.export_csv(db),
        media_type="text/csv; charset=utf-8",
        headers=_attachment(f"ordenes_{today}.csv"),
    )
