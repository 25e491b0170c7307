"""
Schemas Pydantic para Repuestos e Inventario
Proyecto: Taller Manager (Gestión de Taller)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PartBase(BaseModel):
    """Campos editables comunes a creación y lectura."""
    name: str = Field(..., min_length=1, max_length=200, description="Nombre del repuesto")
    cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), description="Costo unitario")
    stock: int = Field(default=0, ge=0, description="Existencias")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre del repuesto es requerido")
        return v


class PartCreate(PartBase):
    pass


class PartUpdate(BaseModel):
    """Actualización parcial de un repuesto."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    cost: Optional[Decimal] = Field(None, ge=Decimal("0"))
    stock: Optional[int] = Field(None, ge=0)


class PartRead(PartBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    times_used: int = 0
    created_at: datetime.datetime
    updated_at: datetime.datetime


class PartList(BaseModel):
    """
    Lista paginada de repuestos.
    """
    items: list[PartRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "PartList":
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self


class StockChange(BaseModel):
    """Cantidad a descontar o reponer."""
    quantity: int = Field(..., ge=1, description="Unidades")


class LowStockAlert(BaseModel):
    part_id: uuid.UUID
    name: str
    stock: int
    threshold: int


class LowStockAlertList(BaseModel):
    items: list[LowStockAlert]
    total: int
    threshold: int
