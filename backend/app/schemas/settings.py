"""
Schemas Pydantic para la Configuración del Negocio
Proyecto: Taller Manager (Gestión de Taller)
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TEMPLATE_CREATED = (
    "Hola {nombre}, su equipo {equipo} ha sido recibido. Su número de orden es: {orden}. "
    "Le mantendremos informado sobre el progreso."
)
DEFAULT_TEMPLATE_READY = (
    "Hola {nombre}, su equipo {equipo} está listo para recoger. Orden: {orden}. "
    "¡Gracias por su preferencia!"
)


class BusinessSettingsBase(BaseModel):
    """
    Configuración editable del negocio.

    Los valores por defecto son los que se devuelven cuando aún no existe
    la fila de configuración.
    """
    business_name: str = Field(default="Mi Taller", min_length=1, max_length=200)
    phone: str = Field(default="", max_length=30)
    email: str = Field(default="", max_length=200)
    address: str = Field(default="", max_length=300)
    whatsapp: str = Field(default="", max_length=30)
    logo_url: str = Field(default="")
    brand_color: str = Field(default="#2563eb", max_length=20)
    schedule: str = Field(default="")
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    country_code: str = Field(default="52", pattern=r"^\d{1,4}$")
    low_stock_threshold: int = Field(default=3, ge=0)
    cancellation_fee: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    whatsapp_template_created: str = Field(default=DEFAULT_TEMPLATE_CREATED)
    whatsapp_template_ready: str = Field(default=DEFAULT_TEMPLATE_READY)


class BusinessSettingsUpdate(BaseModel):
    """Actualización parcial; solo se aplican los campos enviados."""
    business_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = Field(None, max_length=300)
    whatsapp: Optional[str] = Field(None, max_length=30)
    logo_url: Optional[str] = None
    brand_color: Optional[str] = Field(None, max_length=20)
    schedule: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    country_code: Optional[str] = Field(None, pattern=r"^\d{1,4}$")
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    cancellation_fee: Optional[Decimal] = Field(None, ge=Decimal("0"))
    whatsapp_template_created: Optional[str] = None
    whatsapp_template_ready: Optional[str] = None


class BusinessSettingsRead(BusinessSettingsBase):
    """Lectura pública: nunca incluye el hash de la contraseña."""
    model_config = ConfigDict(from_attributes=True)

    password_updated_at: Optional[datetime.datetime] = None
