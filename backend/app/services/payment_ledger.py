"""
Libro de pagos de la orden
Proyecto: Taller Manager (Gestión de Taller)

Derivaciones puras sobre la lista de pagos del agregado: total pagado,
saldo pendiente y estado de cobro. No persiste nada por sí mismo; la lista
de pagos se guarda con el resto del agregado.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.schemas.order import (
    OrderAggregate,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def total_paid(order: OrderAggregate) -> Decimal:
    return sum((p.amount for p in order.payments), ZERO)


def balance_due(order: OrderAggregate) -> Decimal:
    return order.estimated_cost - total_paid(order)


def derive_payment_status(order: OrderAggregate) -> PaymentStatus:
    """
    Calcula el estado de cobro.

    - PENDIENTE: no hay pagos
    - PAGADO: hay pagos y el saldo es <= 0
    - ANTICIPO: pagado parcial (0 < pagado < costo estimado)
    - CANCELADO: orden cancelada sin nada cobrado ni por cobrar

    Args:
        order: Agregado de la orden

    Returns:
        PaymentStatus derivado
    """
    paid = total_paid(order)
    if paid == ZERO:
        if order.status == OrderStatus.CANCELADO and order.estimated_cost <= ZERO:
            return PaymentStatus.CANCELADO
        return PaymentStatus.PENDIENTE
    if order.estimated_cost - paid <= ZERO:
        return PaymentStatus.PAGADO
    return PaymentStatus.ANTICIPO


def refresh(order: OrderAggregate) -> OrderAggregate:
    """Devuelve la orden con `payment_status` recalculado."""
    status = derive_payment_status(order)
    if status == order.payment_status:
        return order
    return order.model_copy(update={"payment_status": status})


def add_payment(
    order: OrderAggregate,
    amount: Decimal,
    method: PaymentMethod = PaymentMethod.EFECTIVO,
    date: Optional[datetime.datetime] = None,
    note: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """
    Añade un pago al final de la lista y recalcula el estado de cobro.

    Args:
        order: Agregado de la orden
        amount: Monto (> 0)
        method: Método de pago
        date: Fecha del pago (default: ahora)
        note: Nota opcional
        now: Instante de la operación (inyectable en tests)

    Returns:
        OrderAggregate: Nueva versión de la orden

    Raises:
        BusinessValidationError: Si el monto no es positivo
    """
    if amount is None or Decimal(amount) <= ZERO:
        raise BusinessValidationError("El monto del pago debe ser mayor a cero")

    now = now or utcnow()
    payment = Payment(
        amount=Decimal(amount),
        method=method,
        date=date or now,
        note=(note or "").strip() or None,
    )
    updated = order.model_copy(update={
        "payments": [*order.payments, payment],
        "updated_at": now,
    })
    logger.debug("Pago %s de %s añadido a la orden %s", payment.id, amount, order.order_number)
    return refresh(updated)


def remove_payment(
    order: OrderAggregate,
    payment_id: uuid.UUID,
    now: Optional[datetime.datetime] = None,
) -> OrderAggregate:
    """
    Quita un pago por id y recalcula el estado de cobro.

    Raises:
        NotFoundError: Si el pago no pertenece a la orden
    """
    remaining = [p for p in order.payments if p.id != payment_id]
    if len(remaining) == len(order.payments):
        raise NotFoundError(f"Pago con ID {payment_id} no encontrado en la orden {order.order_number}")

    updated = order.model_copy(update={
        "payments": remaining,
        "updated_at": now or utcnow(),
    })
    return refresh(updated)
