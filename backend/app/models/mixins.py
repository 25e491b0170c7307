"""
Mixins SQLAlchemy para los modelos
Proyecto: Taller Manager (Gestión de Taller)

Mixins reutilizables para funcionalidades comunes de los modelos.
"""

import datetime
import uuid

from sqlalchemy import DateTime, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


def utcnow() -> datetime.datetime:
    """Fecha/hora actual en UTC con zona horaria."""
    return datetime.datetime.now(datetime.timezone.utc)


class TimestampMixin:
    """
    Mixin para timestamps de creación y actualización.

    Añade los campos:
    - created_at: fecha/hora de creación del registro
    - updated_at: fecha/hora de la última modificación

    Usage:
        class MyModel(Base, TimestampMixin):
            __tablename__ = "my_table"
            ...
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Fecha/hora de creación del registro",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Fecha/hora de la última modificación del registro",
    )


class UUIDMixin:
    """
    Mixin para una clave primaria UUID generada en la aplicación.

    Usage:
        class MyModel(Base, UUIDMixin):
            __tablename__ = "my_table"
            ...
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Actualiza `updated_at` de los objetos modificados antes de cada flush.

    Las órdenes no pasan por aquí: el almacén del agregado escribe su
    `updated_at` de forma explícita.
    """
    now = utcnow()

    for obj in session.dirty:
        if hasattr(obj, "updated_at") and session.is_modified(obj, include_collections=False):
            obj.updated_at = now
