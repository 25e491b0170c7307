"""
Respaldo y exportación
Proyecto: Taller Manager (Gestión de Taller)

- Exportación JSON completa (órdenes, configuración, repuestos, servicios,
  categorías)
- Exportación CSV de órdenes para hojas de cálculo (UTF-8 con BOM)
- ZIP con un JSON por colección y `metadata.json`
"""

import csv
import io
import json
import logging
import zipfile
from typing import Any, Optional

from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.catalog import CategoryRead, RepairServiceRead
from app.schemas.order import STATUS_LABELS, OrderAggregate, utcnow
from app.schemas.part import PartRead
from app.services.catalog_service import catalog_service
from app.services.order_store import OrderStore
from app.services.part_service import part_service
from app.services.settings_service import settings_service

logger = logging.getLogger(__name__)

BACKUP_VERSION = "2.0"

CSV_HEADERS = [
    "Número de Orden",
    "Fecha de Creación",
    "Estado",
    "Cliente",
    "Teléfono",
    "Email",
    "Tipo de Equipo",
    "Marca",
    "Modelo",
    "Número de Serie",
    "Accesorios",
    "Problema",
    "Diagnóstico",
    "Costo Estimado",
    "Costo Repuestos",
    "Entrega Estimada",
    "Notas Internas",
    "Última Actualización",
]

_orders_adapter = TypeAdapter(list[OrderAggregate])
_parts_adapter = TypeAdapter(list[PartRead])
_services_adapter = TypeAdapter(list[RepairServiceRead])
_categories_adapter = TypeAdapter(list[CategoryRead])


class BackupService:
    """Genera los respaldos a partir del estado confirmado de la base."""

    def __init__(self, store: Optional[OrderStore] = None) -> None:
        self.store = store or OrderStore()

    async def collect(self, db: AsyncSession) -> dict[str, Any]:
        """
        Reúne todas las colecciones en estructuras serializables a JSON.

        Returns:
            dict con orders, settings, parts, services, categories
        """
        orders = await self.store.list_all(db)
        business = await settings_service.get(db)
        parts, _ = await part_service.get_all(db, per_page=100_000)
        services = await catalog_service.get_services(db)
        categories = await catalog_service.get_categories(db)

        return {
            "orders": _orders_adapter.dump_python(orders, mode="json", by_alias=True),
            "settings": business.model_dump(mode="json"),
            "parts": _parts_adapter.dump_python(
                [PartRead.model_validate(p) for p in parts], mode="json"
            ),
            "services": _services_adapter.dump_python(
                [RepairServiceRead.model_validate(s) for s in services], mode="json"
            ),
            "categories": _categories_adapter.dump_python(
                [CategoryRead.model_validate(c) for c in categories], mode="json"
            ),
        }

    async def export_json(self, db: AsyncSession) -> str:
        """Respaldo completo en un único documento JSON."""
        data = await self.collect(db)
        backup = {
            "version": BACKUP_VERSION,
            "exportDate": utcnow().isoformat(),
            **data,
        }
        logger.info("Respaldo JSON generado: %d órdenes", len(data["orders"]))
        return json.dumps(backup, indent=2, ensure_ascii=False)

    async def export_csv(self, db: AsyncSession) -> str:
        """
        Órdenes en CSV con encabezados en español.

        Empieza con BOM para que Excel detecte UTF-8. Los campos con comas,
        comillas o saltos de línea van entre comillas y las comillas internas
        se duplican.
        """
        orders = await self.store.list_all(db)

        buffer = io.StringIO()
        buffer.write("\ufeff")
        writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for order in orders:
            writer.writerow(order_csv_row(order))

        logger.info("Exportación CSV generada: %d órdenes", len(orders))
        return buffer.getvalue()

    async def create_zip(self, db: AsyncSession) -> bytes:
        """ZIP con orders/settings/parts/services/categories.json y metadata.json."""
        data = await self.collect(db)
        metadata = {
            "date": utcnow().isoformat(),
            "version": BACKUP_VERSION,
            "type": "full_backup",
        }

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, content in data.items():
                zf.writestr(f"{name}.json", json.dumps(content, indent=2, ensure_ascii=False))
            zf.writestr("metadata.json", json.dumps(metadata, indent=2))

        logger.info("Respaldo ZIP generado")
        return buffer.getvalue()


def order_csv_row(order: OrderAggregate) -> list[str]:
    return [
        order.order_number,
        order.created_at.strftime("%d/%m/%Y"),
        STATUS_LABELS[order.status],
        order.customer_name,
        order.customer_phone,
        order.customer_email or "",
        order.device_type,
        order.device_brand or "",
        order.device_model or "",
        order.serial_number or "",
        order.accessories or "",
        order.problem_description,
        order.diagnosis or "",
        str(order.estimated_cost),
        str(order.parts_cost),
        order.estimated_delivery.isoformat() if order.estimated_delivery else "",
        " | ".join(n.text for n in order.internal_notes),
        order.updated_at.strftime("%d/%m/%Y"),
    ]


backup_service = BackupService()
