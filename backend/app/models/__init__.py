"""
Modelos SQLAlchemy
Proyecto: Taller Manager (Gestión de Taller)

Importación centralizada de todos los modelos para `create_all` y uso general.

- Order: Orden de reparación (raíz del agregado) y sus seis colecciones hijas
- OrderNumberCounter: Contador mensual de números de orden
- Part: Inventario de repuestos
- RepairService, Category: Catálogo de servicios
- BusinessSettings: Configuración del negocio (fila única)
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Clase base de todos los modelos SQLAlchemy."""
    pass


from app.models.order import (
    DevicePhoto,
    Order,
    OrderNote,
    OrderNumberCounter,
    OrderPart,
    OrderPayment,
    OrderServiceLine,
    OrderStatusHistory,
)
from app.models.part import Part
from app.models.catalog import Category, RepairService
from app.models.settings import BusinessSettings

__all__ = [
    "Base",
    "Order",
    "OrderPart",
    "OrderServiceLine",
    "OrderStatusHistory",
    "OrderNote",
    "DevicePhoto",
    "OrderPayment",
    "OrderNumberCounter",
    "Part",
    "RepairService",
    "Category",
    "BusinessSettings",
]
