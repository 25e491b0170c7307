"""
Modelo SQLAlchemy para la Configuración del Negocio
Proyecto: Taller Manager (Gestión de Taller)

Tabla de una sola fila (id = 1).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base

SETTINGS_ROW_ID = 1


class BusinessSettings(Base):
    """
    Perfil del negocio, moneda, umbral de stock, costo de cancelación,
    plantillas de WhatsApp y hash de la contraseña del administrador.
    """

    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SETTINGS_ROW_ID)

    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    whatsapp: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    logo_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    brand_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#2563eb")
    schedule: Mapped[str] = mapped_column(Text, nullable=False, default="")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    country_code: Mapped[str] = mapped_column(String(5), nullable=False, default="52")
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    cancellation_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    whatsapp_template_created: Mapped[str] = mapped_column(Text, nullable=False, default="")
    whatsapp_template_ready: Mapped[str] = mapped_column(Text, nullable=False, default="")

    admin_password: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    password_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<BusinessSettings(business_name={self.business_name!r})>"
