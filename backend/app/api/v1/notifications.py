"""
Router de Notificaciones
Proyecto: Taller Manager (Gestión de Taller)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import Notifications, require_admin
from app.schemas.notification import Notification, NotificationList, UnreadCount

router = APIRouter(
    prefix="/notifications",
    tags=["Notificaciones"],
    dependencies=[Depends(require_admin)],
)


@router.get("/", name="notifications_list", summary="Lista de notificaciones", response_model=NotificationList)
async def list_notifications(
    notifications: Notifications,
    limit: Optional[int] = Query(None, ge=1, le=500, description="Máximo de elementos"),
) -> NotificationList:
    items = notifications.list(limit)
    return NotificationList(items=items, unread=notifications.unread_count())


@router.get("/unread-count", name="notifications_unread", summary="Notificaciones sin leer", response_model=UnreadCount)
async def unread_count(notifications: Notifications) -> UnreadCount:
    return UnreadCount(count=notifications.unread_count())


@router.post("/read-all", name="notifications_read_all", summary="Marca todas como leídas", response_model=UnreadCount)
async def mark_all_read(notifications: Notifications) -> UnreadCount:
    notifications.mark_all_read()
    return UnreadCount(count=0)


@router.post(
    "/{notification_id}/read",
    name="notification_read",
    summary="Marca una notificación como leída",
    response_model=Notification,
)
async def mark_read(notification_id: uuid.UUID, notifications: Notifications) -> Notification:
    return notifications.mark_read(notification_id)


@router.delete(
    "/{notification_id}",
    name="notification_delete",
    summary="Elimina una notificación",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_notification(notification_id: uuid.UUID, notifications: Notifications) -> None:
    notifications.delete(notification_id)
