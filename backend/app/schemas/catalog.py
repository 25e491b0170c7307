"""
Schemas Pydantic para el Catálogo de Servicios
Proyecto: Taller Manager (Gestión de Taller)

Contiene los schemas de servicios (con repuesto vinculado opcional) y de
categorías.
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

DEFAULT_CATEGORY = "General"


# ------------------------------------------------------------
# Servicios
# ------------------------------------------------------------

class RepairServiceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nombre del servicio")
    description: Optional[str] = Field(None, max_length=2000)
    category: str = Field(default=DEFAULT_CATEGORY, max_length=100)
    base_price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), description="Precio base")
    linked_part_id: Optional[uuid.UUID] = Field(None, description="Repuesto vinculado (opcional)")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre del servicio es requerido")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Optional[str]) -> str:
        """Sin categoría se usa "General"."""
        if v is None or not str(v).strip():
            return DEFAULT_CATEGORY
        return str(v).strip()


class RepairServiceCreate(RepairServiceBase):
    """
    Alta de servicio.

    Si se indica `linked_part_id`, nombre y costo del repuesto se copian
    desde el inventario al guardar.
    """
    pass


class RepairServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=100)
    base_price: Optional[Decimal] = Field(None, ge=Decimal("0"))
    linked_part_id: Optional[uuid.UUID] = None


class RepairServiceRead(RepairServiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    linked_part_name: Optional[str] = None
    linked_part_cost: Optional[Decimal] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @computed_field
    @property
    def margin(self) -> Optional[Decimal]:
        """Precio base menos el costo del repuesto vinculado."""
        if self.linked_part_cost is None:
            return None
        return self.base_price - self.linked_part_cost


# ------------------------------------------------------------
# Categorías
# ------------------------------------------------------------

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Nombre de la categoría")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre de la categoría es requerido")
        return v


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
