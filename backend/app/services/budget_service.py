"""
Aprobación de presupuestos
Proyecto: Taller Manager (Gestión de Taller)

Máquina de estados secundaria sobre `budget_status`:

    none ──send──> pending ──approve──> approved   (orden → reparando)
                          └──reject───> rejected   (orden → cancelado,
                                                    costo = cargo de cancelación)

El taller envía el presupuesto; el cliente decide desde el portal con un
token ligado al número de su orden.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError,
    BusinessValidationError,
    ConflictError,
    NoPendingBudgetError,
    SignatureRequiredError,
)
from app.schemas.order import (
    BudgetAction,
    BudgetStatus,
    OrderAggregate,
    OrderStatus,
    StatusChange,
    utcnow,
)
from app.services import payment_ledger
from app.services.notification_service import NotificationService, NotificationType
from app.services.order_store import OrderStore
from app.services.settings_service import SettingsProvider

logger = logging.getLogger(__name__)

APPROVED_NOTE = "Presupuesto aceptado por cliente"
REJECTED_NOTE = "Presupuesto rechazado por cliente. Aplicado costo de cancelación."

# Estados desde los que se puede enviar un presupuesto
BUDGET_OPEN_STATUSES = frozenset({OrderStatus.RECIBIDO, OrderStatus.DIAGNOSTICANDO})


def _with_history(
    order: OrderAggregate,
    new_status: OrderStatus,
    note: str,
    now: datetime.datetime,
) -> list[StatusChange]:
    if new_status == order.status:
        return list(order.status_history)
    return [
        *order.status_history,
        StatusChange(from_status=order.status, to_status=new_status, date=now, note=note),
    ]


def send_budget(
    order: OrderAggregate,
    estimated_cost: Optional[Decimal] = None,
    budget_note: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """
    Abre el presupuesto para que el cliente lo apruebe o rechace.

    Args:
        order: Agregado actual
        estimated_cost: Nuevo costo estimado (opcional)
        budget_note: Nota para el cliente (opcional)
        now: Instante de la operación

    Returns:
        OrderAggregate: Orden con budget_status = pending

    Raises:
        ConflictError: Si ya hay un presupuesto pendiente o la orden no
            está en recepción/diagnóstico
    """
    if order.budget_status == BudgetStatus.PENDING:
        raise ConflictError("Ya hay un presupuesto pendiente de aprobación")
    if order.status not in BUDGET_OPEN_STATUSES:
        raise ConflictError(
            f"No se puede enviar un presupuesto con la orden en estado '{order.status.value}'"
        )

    now = now or utcnow()
    update = {
        "budget_status": BudgetStatus.PENDING,
        "budget_sent_at": now,
        "budget_responded_at": None,
        "updated_at": now,
    }
    if estimated_cost is not None:
        update["estimated_cost"] = estimated_cost
    if budget_note is not None:
        update["budget_note"] = budget_note.strip() or None

    return payment_ledger.refresh(order.model_copy(update=update))


def _parse_action(action) -> BudgetAction:
    try:
        return BudgetAction(action)
    except ValueError as e:
        raise BusinessValidationError(
            "Acción no válida", extra={"action": str(action)}
        ) from e


def decide_budget(
    order: OrderAggregate,
    action: BudgetAction,
    cancellation_fee: Decimal,
    client_note: Optional[str] = None,
    approval_signature: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """
    Aplica la decisión del cliente sobre el presupuesto.

    Aprobar pasa la orden a reparando y guarda la firma. Rechazar cancela
    la orden y reescribe los importes: el costo estimado pasa a ser el
    cargo de cancelación, el costo de repuestos queda en cero y se vacía la
    lista de servicios. La reescritura es irreversible.

    Args:
        order: Agregado actual
        action: approve | reject
        cancellation_fee: Cargo de cancelación configurado por el taller
        client_note: Comentario del cliente
        approval_signature: Firma del cliente (obligatoria al aprobar)
        now: Instante de la operación

    Returns:
        OrderAggregate: Orden con la decisión aplicada

    Raises:
        BusinessValidationError: Acción desconocida
        NoPendingBudgetError: El presupuesto no está pendiente
        SignatureRequiredError: Aprobación sin firma
    """
    action = _parse_action(action)

    if order.budget_status != BudgetStatus.PENDING:
        raise NoPendingBudgetError()

    now = now or utcnow()
    client_note = (client_note or "").strip() or None

    if action == BudgetAction.APPROVE:
        if not approval_signature or not approval_signature.strip():
            raise SignatureRequiredError()

        updated = order.model_copy(update={
            "status": OrderStatus.REPARANDO,
            "status_history": _with_history(order, OrderStatus.REPARANDO, APPROVED_NOTE, now),
            "budget_status": BudgetStatus.APPROVED,
            "budget_responded_at": now,
            "client_note": client_note,
            "approval_signature": approval_signature,
            "updated_at": now,
        })
    else:
        updated = order.model_copy(update={
            "status": OrderStatus.CANCELADO,
            "status_history": _with_history(order, OrderStatus.CANCELADO, REJECTED_NOTE, now),
            "budget_status": BudgetStatus.REJECTED,
            "budget_responded_at": now,
            "client_note": client_note,
            "estimated_cost": Decimal(cancellation_fee),
            "parts_cost": Decimal("0"),
            "selected_services": [],
            "updated_at": now,
        })

    return payment_ledger.refresh(updated)


class BudgetService:
    """
    Flujo completo de la decisión del cliente: verificación del token,
    transformación, guardado transaccional y notificación.
    """

    def __init__(
        self,
        store: OrderStore,
        notifications: NotificationService,
    ) -> None:
        self.store = store
        self.notifications = notifications

    async def decide(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        token_order_number: str,
        action: BudgetAction,
        settings_provider: SettingsProvider,
        client_note: Optional[str] = None,
        approval_signature: Optional[str] = None,
    ) -> OrderAggregate:
        """
        Procesa la aprobación o el rechazo del presupuesto.

        Args:
            db: Sesión de base de datos
            order_id: UUID de la orden
            token_order_number: Número de orden ligado al token del cliente
            action: approve | reject
            settings_provider: Fuente del cargo de cancelación
            client_note: Comentario del cliente
            approval_signature: Firma del cliente

        Returns:
            OrderAggregate: Orden guardada

        Raises:
            NotFoundError: La orden no existe
            AuthorizationError: El token pertenece a otra orden
            NoPendingBudgetError / SignatureRequiredError / BusinessValidationError
        """
        order = await self.store.get(db, order_id)

        if order.order_number.lower() != token_order_number.lower():
            logger.warning(
                "Token de %s usado sobre la orden %s",
                token_order_number,
                order.order_number,
            )
            raise AuthorizationError()

        action = _parse_action(action)
        fee = Decimal("0")
        if action == BudgetAction.REJECT:
            fee = await settings_provider.get_cancellation_fee()

        decided = decide_budget(
            order,
            action,
            cancellation_fee=fee,
            client_note=client_note,
            approval_signature=approval_signature,
        )
        saved = await self.store.save(db, decided)

        if saved.budget_status == BudgetStatus.APPROVED:
            self.notifications.emit(
                NotificationType.BUDGET_APPROVED,
                "Presupuesto Aprobado",
                "El cliente aprobó el presupuesto. Orden en reparación.",
                saved.id,
                saved.order_number,
            )
        else:
            self.notifications.emit(
                NotificationType.BUDGET_REJECTED,
                "Presupuesto Rechazado",
                f"El cliente rechazó el presupuesto. Se aplicó cargo de cancelación de ${fee}",
                saved.id,
                saved.order_number,
            )

        logger.info(
            "Presupuesto de la orden %s: %s",
            saved.order_number,
            saved.budget_status.value,
        )
        return saved
