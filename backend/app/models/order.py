"""
Modelos SQLAlchemy para las Órdenes de Reparación
Proyecto: Taller Manager (Gestión de Taller)

Contiene:
- Order: Orden de reparación (raíz del agregado)
- OrderPart: Repuestos usados (snapshot)
- OrderServiceLine: Servicios seleccionados (snapshot)
- OrderStatusHistory: Historial de cambios de estado
- OrderNote: Notas internas
- DevicePhoto: Fotos del equipo
- OrderPayment: Pagos registrados
- OrderNumberCounter: Contador de números de orden por mes

Las seis tablas hijas pertenecen en exclusiva a la orden y se reescriben
completas en cada guardado (ver app.services.order_store). La columna
`position` conserva el orden de cada lista.
"""


from __future__ import annotations
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


class Order(Base, UUIDMixin, TimestampMixin):
    """
    Orden de reparación.

    Attributes:
        id: UUID primary key
        order_number: Número visible para el cliente (ORD-YYYYMM-NNNN)
        customer_*: Datos del cliente
        device_*: Descripción del equipo recibido
        problem_description / diagnosis / detailed_diagnosis: Textos libres
        estimated_cost / parts_cost: Importes (no negativos)
        status: Estado del ciclo de vida
        budget_status: Estado del presupuesto (none, pending, approved, rejected)
        payment_status: Último estado de pago calculado
        version: Versión para control de concurrencia optimista

    States:
        recibido → diagnosticando → reparando → listo → entregado
                  (cancelado desde cualquier estado no terminal)
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        doc="Número de orden visible (ORD-YYYYMM-NNNN)",
    )

    # ------------------------------------------------------------
    # Cliente
    # ------------------------------------------------------------
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # ------------------------------------------------------------
    # Equipo
    # ------------------------------------------------------------
    device_type: Mapped[str] = mapped_column(String(100), nullable=False)
    device_brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    device_model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    accessories: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Diagnóstico
    # ------------------------------------------------------------
    problem_description: Mapped[str] = mapped_column(Text, nullable=False)
    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    detailed_diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Importes y entrega
    # ------------------------------------------------------------
    estimated_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )
    parts_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )
    estimated_delivery: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    signature: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Firma del cliente en la recepción",
    )

    # ------------------------------------------------------------
    # Estados
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="recibido")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDIENTE")

    # ------------------------------------------------------------
    # Presupuesto
    # ------------------------------------------------------------
    budget_status: Mapped[str] = mapped_column(String(20), nullable=False, default="none")
    budget_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    budget_responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    budget_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    client_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approval_signature: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Firma del cliente al aprobar el presupuesto",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Versión del agregado, se incrementa en cada guardado",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    used_parts: Mapped[List["OrderPart"]] = relationship(
        "OrderPart",
        cascade="all, delete-orphan",
        order_by="OrderPart.position",
        lazy="noload",
    )
    selected_services: Mapped[List["OrderServiceLine"]] = relationship(
        "OrderServiceLine",
        cascade="all, delete-orphan",
        order_by="OrderServiceLine.position",
        lazy="noload",
    )
    status_history: Mapped[List["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.position",
        lazy="noload",
    )
    notes: Mapped[List["OrderNote"]] = relationship(
        "OrderNote",
        cascade="all, delete-orphan",
        order_by="OrderNote.position",
        lazy="noload",
    )
    photos: Mapped[List["DevicePhoto"]] = relationship(
        "DevicePhoto",
        cascade="all, delete-orphan",
        order_by="DevicePhoto.position",
        lazy="noload",
    )
    payments: Mapped[List["OrderPayment"]] = relationship(
        "OrderPayment",
        cascade="all, delete-orphan",
        order_by="OrderPayment.position",
        lazy="noload",
    )

    # ------------------------------------------------------------
    # Índices y restricciones
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_orders_status_created", "status", "created_at"),
        CheckConstraint(
            "status IN ('recibido', 'diagnosticando', 'reparando', 'listo', 'entregado', 'cancelado')",
            name="ck_orders_status",
        ),
        CheckConstraint(
            "budget_status IN ('none', 'pending', 'approved', 'rejected')",
            name="ck_orders_budget_status",
        ),
        CheckConstraint("estimated_cost >= 0", name="ck_orders_estimated_cost"),
        CheckConstraint("parts_cost >= 0", name="ck_orders_parts_cost"),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number={self.order_number}, status={self.status})>"


class _OrderChild(UUIDMixin):
    """Columnas comunes de las tablas hijas: FK a la orden y posición."""

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class OrderPart(Base, _OrderChild):
    """
    Repuesto usado en la orden.

    `part_id` no tiene FK: el repuesto puede borrarse del inventario y la
    orden conserva el nombre y el costo copiados.
    """

    __tablename__ = "order_parts"

    part_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    part_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))


class OrderServiceLine(Base, _OrderChild):
    """Servicio del catálogo seleccionado en la orden (snapshot)."""

    __tablename__ = "order_services"

    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    service_name: Mapped[str] = mapped_column(String(200), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    linked_part_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    linked_part_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    linked_part_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)


class OrderStatusHistory(Base, _OrderChild):
    """Cambio de estado registrado (from → to)."""

    __tablename__ = "order_status_history"

    from_status: Mapped[str] = mapped_column(String(20), nullable=False)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class OrderNote(Base, _OrderChild):
    """Nota interna del taller."""

    __tablename__ = "order_notes"

    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DevicePhoto(Base, _OrderChild):
    """Foto del equipo (URL o data URI)."""

    __tablename__ = "order_photos"

    url: Mapped[str] = mapped_column(Text, nullable=False)


class OrderPayment(Base, _OrderChild):
    """Pago registrado contra la orden."""

    __tablename__ = "order_payments"

    payment_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_order_payments_amount"),
    )


class OrderNumberCounter(Base):
    """
    Último número emitido por prefijo mensual (ORD-YYYYMM).

    Se incrementa bajo bloqueo de fila en la misma transacción que
    inserta la orden.
    """

    __tablename__ = "order_number_counters"

    prefix: Mapped[str] = mapped_column(String(12), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
