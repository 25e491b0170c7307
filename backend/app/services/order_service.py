"""
Servicio de Órdenes de Reparación
Proyecto: Taller Manager (Gestión de Taller)

Orquesta el agregado: cada operación carga la orden, aplica una
transformación pura (ciclo de vida, presupuesto o pagos), la guarda en una
transacción y, tras confirmar, emite las notificaciones que correspondan.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, DuplicateError
from app.schemas.notification import NotificationType
from app.schemas.order import (
    BudgetAction,
    OrderAggregate,
    OrderCreate,
    OrderStatus,
    OrderUpdate,
    PaymentMethod,
    utcnow,
)
from app.services import budget_service, order_lifecycle, payment_ledger
from app.services.budget_service import BudgetService
from app.services.notification_service import NotificationService
from app.services.order_store import OrderStore
from app.services.settings_service import SettingsProvider

logger = logging.getLogger(__name__)

# Intentos de alta ante un número de orden duplicado
CREATE_ATTEMPTS = 2


class OrderService:
    """
    Operaciones de negocio sobre órdenes, sin dependencias de FastAPI.

    Args:
        notifications: Servicio de notificaciones
        store: Almacén del agregado (por defecto uno nuevo)
    """

    def __init__(
        self,
        notifications: NotificationService,
        store: Optional[OrderStore] = None,
    ) -> None:
        self.store = store or OrderStore()
        self.notifications = notifications
        self.budgets = BudgetService(self.store, notifications)

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
    async def get(self, db: AsyncSession, order_id: uuid.UUID) -> OrderAggregate:
        return await self.store.get(db, order_id)

    async def get_by_number(self, db: AsyncSession, order_number: str) -> OrderAggregate:
        return await self.store.get_by_number(db, order_number)

    async def list(
        self,
        db: AsyncSession,
        status_filter: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[OrderAggregate], int]:
        return await self.store.list(
            db,
            status_filter=status_filter,
            search=search,
            page=page,
            per_page=per_page,
        )

    async def search_by_phone(self, db: AsyncSession, phone: str) -> list[OrderAggregate]:
        return await self.store.search_by_phone(db, phone)

    # ------------------------------------------------------------
    # Alta
    # ------------------------------------------------------------
    async def create_order(
        self,
        db: AsyncSession,
        data: OrderCreate,
        now: Optional[datetime.datetime] = None,
    ) -> OrderAggregate:
        """
        Registra una orden nueva.

        El número se emite dentro de la misma transacción que la inserción.
        Si otro alta concurrente se quedó con el mismo número, se reintenta
        una vez con un número nuevo.

        Args:
            db: Sesión de base de datos
            data: Datos de recepción ya validados
            now: Instante de creación

        Returns:
            OrderAggregate guardada

        Raises:
            DuplicateError: Si el número sigue en conflicto tras reintentar
            StorageError: Fallo de la base de datos
        """
        now = now or utcnow()

        for attempt in range(1, CREATE_ATTEMPTS + 1):
            order_number = await self.store.generate_order_number(db, now)
            order = OrderAggregate(
                order_number=order_number,
                created_at=now,
                updated_at=now,
                **data.model_dump(),
            )
            try:
                saved = await self.store.save(db, payment_ledger.refresh(order))
                break
            except DuplicateError:
                if attempt == CREATE_ATTEMPTS:
                    raise
                logger.warning("Reintentando alta tras número duplicado %s", order_number)

        logger.info("Orden creada: %s (%s)", saved.order_number, saved.customer_name)
        self.notifications.emit(
            NotificationType.ORDER_CREATED,
            "Nueva Orden",
            f"Orden {saved.order_number} registrada para {saved.customer_name}",
            saved.id,
            saved.order_number,
        )
        return saved

    # ------------------------------------------------------------
    # Modificación
    # ------------------------------------------------------------
    async def update_order(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        changes: OrderUpdate,
    ) -> OrderAggregate:
        """
        Actualización general (estado + campos + colecciones completas).

        Raises:
            NotFoundError: La orden no existe
            ConflictError: `changes.version` no coincide con la versión actual
            BudgetNotApprovedError: El nuevo estado está bloqueado
        """
        order = await self.store.get(db, order_id)
        if changes.version is not None and changes.version != order.version:
            raise ConflictError(
                "La orden fue modificada por otra petición, recárgala e intenta de nuevo",
                extra={"version": order.version},
            )

        updated = order_lifecycle.apply_update(order, changes)
        if updated is order:
            logger.debug("Orden %s sin cambios", order.order_number)
            return order

        saved = await self.store.save(db, updated)
        if saved.status == OrderStatus.ENTREGADO and order.status != OrderStatus.ENTREGADO:
            self._notify_completed(saved)
        return saved

    async def change_status(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        note: Optional[str] = None,
    ) -> OrderAggregate:
        """Cambio de estado aislado, con nota opcional para el historial."""
        return await self.update_order(
            db,
            order_id,
            OrderUpdate(status=new_status, status_change_note=note),
        )

    async def add_payment(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        amount: Decimal,
        method: PaymentMethod = PaymentMethod.EFECTIVO,
        date: Optional[datetime.datetime] = None,
        note: Optional[str] = None,
    ) -> OrderAggregate:
        order = await self.store.get(db, order_id)
        updated = payment_ledger.add_payment(order, amount, method, date, note)
        saved = await self.store.save(db, updated)
        logger.info(
            "Pago de %s registrado en la orden %s (%s)",
            amount,
            saved.order_number,
            saved.payment_status.value,
        )
        return saved

    async def remove_payment(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        payment_id: uuid.UUID,
    ) -> OrderAggregate:
        order = await self.store.get(db, order_id)
        updated = payment_ledger.remove_payment(order, payment_id)
        saved = await self.store.save(db, updated)
        logger.info("Pago %s eliminado de la orden %s", payment_id, saved.order_number)
        return saved

    async def add_note(self, db: AsyncSession, order_id: uuid.UUID, text: str) -> OrderAggregate:
        order = await self.store.get(db, order_id)
        return await self.store.save(db, order_lifecycle.add_note(order, text))

    async def add_photo(self, db: AsyncSession, order_id: uuid.UUID, url: str) -> OrderAggregate:
        order = await self.store.get(db, order_id)
        return await self.store.save(db, order_lifecycle.add_photo(order, url))

    # ------------------------------------------------------------
    # Presupuesto
    # ------------------------------------------------------------
    async def send_budget(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        estimated_cost: Optional[Decimal] = None,
        budget_note: Optional[str] = None,
    ) -> OrderAggregate:
        """
        Envía el presupuesto al cliente (lado del taller).

        Raises:
            NotFoundError: La orden no existe
            ConflictError: Presupuesto ya pendiente o estado no válido
        """
        order = await self.store.get(db, order_id)
        updated = budget_service.send_budget(order, estimated_cost, budget_note)
        saved = await self.store.save(db, updated)
        logger.info("Presupuesto enviado para la orden %s", saved.order_number)
        return saved

    async def decide_budget(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        token_order_number: str,
        action: BudgetAction,
        settings_provider: SettingsProvider,
        client_note: Optional[str] = None,
        approval_signature: Optional[str] = None,
    ) -> OrderAggregate:
        """Decisión del cliente; ver `BudgetService.decide`."""
        return await self.budgets.decide(
            db,
            order_id,
            token_order_number,
            action,
            settings_provider,
            client_note=client_note,
            approval_signature=approval_signature,
        )

    # ------------------------------------------------------------
    # Baja
    # ------------------------------------------------------------
    async def delete_order(self, db: AsyncSession, order_id: uuid.UUID) -> bool:
        return await self.store.delete(db, order_id)

    def _notify_completed(self, order: OrderAggregate) -> None:
        self.notifications.emit(
            NotificationType.ORDER_COMPLETED,
            "Orden Entregada",
            f"La orden {order.order_number} fue entregada a {order.customer_name}",
            order.id,
            order.order_number,
        )
