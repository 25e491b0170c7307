"""
Schemas Pydantic para Notificaciones
Proyecto: Taller Manager (Gestión de Taller)
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class NotificationType(str, Enum):
    BUDGET_APPROVED = "budget_approved"
    BUDGET_REJECTED = "budget_rejected"
    ORDER_CREATED = "order_created"
    ORDER_COMPLETED = "order_completed"


class Notification(BaseModel):
    """Entrada del archivo de notificaciones."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    type: NotificationType
    title: str
    message: str
    order_id: Optional[uuid.UUID] = None
    order_number: Optional[str] = None
    read: bool = False
    created_at: datetime.datetime = Field(default_factory=_utcnow)


class NotificationList(BaseModel):
    items: list[Notification]
    unread: int


class UnreadCount(BaseModel):
    count: int
