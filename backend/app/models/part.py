"""
Modelo SQLAlchemy para el Inventario de Repuestos
Proyecto: Taller Manager (Gestión de Taller)
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


class Part(Base, UUIDMixin, TimestampMixin):
    """
    Repuesto en inventario.

    Attributes:
        id: UUID primary key
        name: Nombre del repuesto
        cost: Costo unitario
        stock: Existencias (nunca negativas)
        times_used: Veces que se descontó en una orden
    """

    __tablename__ = "parts"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        doc="Nombre del repuesto",
    )

    cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Costo unitario",
    )

    stock: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Existencias actuales",
    )

    times_used: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Contador de usos en órdenes",
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_parts_stock"),
        CheckConstraint("cost >= 0", name="ck_parts_cost"),
    )

    def __repr__(self) -> str:
        return f"<Part(id={self.id}, name={self.name!r}, stock={self.stock})>"
