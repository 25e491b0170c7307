"""
Ciclo de vida de la orden
Proyecto: Taller Manager (Gestión de Taller)

Transformaciones puras del agregado: cambio de estado con historial,
bloqueo por presupuesto y actualización general de campos. Ninguna función
modifica la orden recibida; devuelven una copia nueva.

    recibido → diagnosticando → reparando → listo → entregado
                      (cancelado desde cualquier estado)

Las transiciones no son estrictamente lineales: cualquier estado puede
fijarse directamente, salvo reparando, listo y entregado mientras el
presupuesto está pendiente o rechazado.
"""

import datetime
import logging
from typing import Optional

from app.core.exceptions import BudgetNotApprovedError
from app.schemas.order import (
    BLOCKING_BUDGET_STATUSES,
    GATED_STATUSES,
    REQUIRED_ORDER_FIELDS,
    InternalNote,
    OrderAggregate,
    OrderStatus,
    OrderUpdate,
    StatusChange,
    utcnow,
)

logger = logging.getLogger(__name__)

# Campos de OrderUpdate que no son atributos de la orden
_CONTROL_FIELDS = frozenset({"status", "status_change_note", "version"})


def check_status_gate(order: OrderAggregate, new_status: OrderStatus) -> None:
    """
    Verifica que el presupuesto permita entrar en `new_status`.

    Raises:
        BudgetNotApprovedError: Si el estado está bloqueado por el presupuesto
    """
    if new_status in GATED_STATUSES and order.budget_status in BLOCKING_BUDGET_STATUSES:
        logger.warning(
            "Orden %s: cambio a '%s' bloqueado (presupuesto %s)",
            order.order_number,
            new_status.value,
            order.budget_status.value,
        )
        raise BudgetNotApprovedError(
            extra={"status": new_status.value, "budget_status": order.budget_status.value},
        )


def apply_status_change(
    order: OrderAggregate,
    new_status: OrderStatus,
    note: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """
    Aplica un cambio de estado.

    Si el estado cambia añade una entrada al historial y actualiza
    `updated_at`; si es el mismo estado devuelve la orden sin cambios.

    Args:
        order: Agregado actual
        new_status: Estado solicitado
        note: Nota opcional para el historial
        now: Instante de la operación

    Returns:
        OrderAggregate: Orden con el estado aplicado

    Raises:
        BudgetNotApprovedError: Si el estado está bloqueado por el presupuesto
    """
    new_status = OrderStatus(new_status)
    check_status_gate(order, new_status)

    if new_status == order.status:
        return order

    now = now or utcnow()
    entry = StatusChange(
        from_status=order.status,
        to_status=new_status,
        date=now,
        note=(note or "").strip() or None,
    )
    logger.info(
        "Orden %s: %s -> %s",
        order.order_number,
        order.status.value,
        new_status.value,
    )
    return order.model_copy(update={
        "status": new_status,
        "status_history": [*order.status_history, entry],
        "updated_at": now,
    })


def apply_update(
    order: OrderAggregate,
    changes: OrderUpdate,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """
    Actualización general de la orden.

    Primero se resuelve el cambio de estado y después se combinan el resto
    de campos enviados. Las colecciones enviadas reemplazan la lista
    completa. `updated_at` solo avanza si algo cambió.

    Args:
        order: Agregado actual
        changes: Campos enviados por el cliente (solo los definidos)
        now: Instante de la operación

    Returns:
        OrderAggregate: Orden actualizada

    Raises:
        BudgetNotApprovedError: Si el nuevo estado está bloqueado
    """
    now = now or utcnow()
    updated = order

    if changes.status is not None:
        updated = apply_status_change(updated, changes.status, changes.status_change_note, now)

    values = {}
    for name in changes.model_fields_set - _CONTROL_FIELDS:
        value = getattr(changes, name)
        if value is None and name in REQUIRED_ORDER_FIELDS:
            continue
        if getattr(updated, name) != value:
            values[name] = value

    if not values:
        return updated

    logger.debug("Orden %s: campos actualizados %s", order.order_number, sorted(values))
    return updated.model_copy(update={**values, "updated_at": now})


def add_note(
    order: OrderAggregate,
    text: str,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """Añade una nota interna al final de la lista."""
    now = now or utcnow()
    note = InternalNote(text=text.strip(), date=now)
    return order.model_copy(update={
        "internal_notes": [*order.internal_notes, note],
        "updated_at": now,
    })


def add_photo(
    order: OrderAggregate,
    url: str,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """Añade la referencia de una foto del equipo."""
    return order.model_copy(update={
        "device_photos": [*order.device_photos, url],
        "updated_at": now or utcnow(),
    })
