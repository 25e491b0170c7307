"""
Modelos SQLAlchemy para el Catálogo de Servicios
Proyecto: Taller Manager (Gestión de Taller)

Contiene:
- RepairService: Servicio ofrecido por el taller
- Category: Categoría de servicios
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


class RepairService(Base, UUIDMixin, TimestampMixin):
    """
    Servicio del catálogo.

    El repuesto vinculado se guarda como snapshot (id, nombre, costo) para
    mostrar el margen; no hay FK hacia `parts`.
    """

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    linked_part_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    linked_part_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    linked_part_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    def __repr__(self) -> str:
        return f"<RepairService(id={self.id}, name={self.name!r})>"


class Category(Base, UUIDMixin):
    """Categoría de servicios (nombre único)."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"Category(name={self.name!r})"
