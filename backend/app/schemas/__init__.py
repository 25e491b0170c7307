"""
Schemas Pydantic
Proyecto: Taller Manager (Gestión de Taller)

Exportación centralizada de los schemas más usados.
"""

from app.schemas.order import (
    BudgetAction,
    BudgetDecision,
    BudgetSend,
    BudgetStatus,
    OrderAggregate,
    OrderCreate,
    OrderList,
    OrderPublicRead,
    OrderStatus,
    OrderUpdate,
    PaymentCreate,
    PaymentMethod,
    PaymentStatus,
)
from app.schemas.part import PartCreate, PartRead, PartUpdate
from app.schemas.catalog import CategoryCreate, CategoryRead, RepairServiceCreate, RepairServiceRead
from app.schemas.settings import BusinessSettingsRead, BusinessSettingsUpdate
from app.schemas.notification import Notification, NotificationType

__all__ = [
    "OrderStatus",
    "BudgetStatus",
    "BudgetAction",
    "PaymentMethod",
    "PaymentStatus",
    "OrderAggregate",
    "OrderCreate",
    "OrderUpdate",
    "OrderList",
    "OrderPublicRead",
    "PaymentCreate",
    "BudgetSend",
    "BudgetDecision",
    "PartCreate",
    "PartRead",
    "PartUpdate",
    "RepairServiceCreate",
    "RepairServiceRead",
    "CategoryCreate",
    "CategoryRead",
    "BusinessSettingsRead",
    "BusinessSettingsUpdate",
    "Notification",
    "NotificationType",
]
