"""
Router FastAPI para las Órdenes de Reparación
Proyecto: Taller Manager (Gestión de Taller)

Endpoints del panel del taller (sesión de administrador) y la decisión de
presupuesto del cliente (token del portal).

NOTA: el orden de las rutas es intencional:
1. GET /search (antes de /{order_id})
2. GET / y POST /
3. GET, PUT, DELETE /{order_id}
4. Sub-recursos: payments, notes, photos, budget, whatsapp

Los guardados del agregado confirman su propia transacción; estos
endpoints no llaman a `commit`.
"""

import logging
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import (
    AdminSession,
    ClientSession,
    DbSession,
    Orders,
    get_settings_provider,
    require_admin,
)
from app.schemas.order import (
    BudgetDecision,
    BudgetDecisionResult,
    BudgetSend,
    NoteCreate,
    OrderAggregate,
    OrderCreate,
    OrderList,
    OrderStatus,
    OrderUpdate,
    PaymentCreate,
    PhotoCreate,
    WhatsAppMessage,
)
from app.services import message_service
from app.services.settings_service import SettingsProvider, settings_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Órdenes"],
)


# ------------------------------------------------------------
# Endpoint: Búsqueda por teléfono
# ------------------------------------------------------------

@router.get(
    "/search",
    name="orders_by_phone",
    summary="Busca órdenes por teléfono",
    response_model=list[OrderAggregate],
    dependencies=[Depends(require_admin)],
)
async def search_orders_by_phone(
    db: DbSession,
    orders: Orders,
    phone: str = Query(..., min_length=3, description="Teléfono o parte de él"),
) -> list[OrderAggregate]:
    return await orders.search_by_phone(db, phone)


# ------------------------------------------------------------
# Endpoint: Lista y alta
# ------------------------------------------------------------

@router.get(
    "/",
    name="orders_list",
    summary="Lista de órdenes",
    description="Lista paginada, las más recientes primero.",
    response_model=OrderList,
    dependencies=[Depends(require_admin)],
)
async def list_orders(
    db: DbSession,
    orders: Orders,
    page: int = Query(1, ge=1, description="Número de página"),
    per_page: int = Query(20, ge=1, le=100, description="Elementos por página"),
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filtro por estado"),
    search: Optional[str] = Query(None, description="Cliente, número de orden, marca o modelo"),
) -> OrderList:
    items, total = await orders.list(
        db,
        status_filter=status_filter,
        search=search,
        page=page,
        per_page=per_page,
    )
    return OrderList(items=items, total=total, page=page, per_page=per_page)


@router.post(
    "/",
    name="order_create",
    summary="Registra una orden",
    response_model=OrderAggregate,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_order(
    data: OrderCreate,
    db: DbSession,
    orders: Orders,
) -> OrderAggregate:
    """
    Registra la recepción de un equipo.

    El número de orden (ORD-YYYYMM-NNNN) se asigna en el servidor.
    """
    return await orders.create_order(db, data)


# ------------------------------------------------------------
# Endpoint: Detalle, actualización y baja
# ------------------------------------------------------------

@router.get(
    "/{order_id}",
    name="order_detail",
    summary="Detalle de una orden",
    response_model=OrderAggregate,
    dependencies=[Depends(require_admin)],
)
async def get_order(order_id: uuid.UUID, db: DbSession, orders: Orders) -> OrderAggregate:
    return await orders.get(db, order_id)


@router.put(
    "/{order_id}",
    name="order_update",
    summary="Actualiza una orden",
    response_model=OrderAggregate,
    dependencies=[Depends(require_admin)],
)
async def update_order(
    order_id: uuid.UUID,
    data: OrderUpdate,
    db: DbSession,
    orders: Orders,
) -> OrderAggregate:
    """
    Actualización general.

    - `status` se procesa primero y queda en el historial
      (422 BUDGET_NOT_APPROVED si el presupuesto lo bloquea)
    - Las colecciones enviadas reemplazan la lista completa
    - `version` (opcional) evita pisar cambios de otra petición (409)
    """
    return await orders.update_order(db, order_id, data)


@router.delete(
    "/{order_id}",
    name="order_delete",
    summary="Elimina una orden",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_order(order_id: uuid.UUID, db: DbSession, orders: Orders) -> None:
    await orders.delete_order(db, order_id)


# ------------------------------------------------------------
# Endpoint: Pagos
# ------------------------------------------------------------

@router.post(
    "/{order_id}/payments",
    name="order_add_payment",
    summary="Registra un pago",
    response_model=OrderAggregate,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def add_payment(
    order_id: uuid.UUID,
    data: PaymentCreate,
    db: DbSession,
    orders: Orders,
) -> OrderAggregate:
    return await orders.add_payment(db, order_id, data.amount, data.method, data.date, data.note)


@router.delete(
    "/{order_id}/payments/{payment_id}",
    name="order_remove_payment",
    summary="Elimina un pago",
    response_model=OrderAggregate,
    dependencies=[Depends(require_admin)],
)
async def remove_payment(
    order_id: uuid.UUID,
    payment_id: uuid.UUID,
    db: DbSession,
    orders: Orders,
) -> OrderAggregate:
    return await orders.remove_payment(db, order_id, payment_id)


# ------------------------------------------------------------
# Endpoint: Notas y fotos
# ------------------------------------------------------------

@router.post(
    "/{order_id}/notes",
    name="order_add_note",
    summary="Añade una nota interna",
    response_model=OrderAggregate,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def add_note(
    order_id: uuid.UUID,
    data: NoteCreate,
    db: DbSession,
    orders: Orders,
) -> OrderAggregate:
    return await orders.add_note(db, order_id, data.text)


@router.post(
    "/{order_id}/photos",
    name="order_add_photo",
    summary="Añade una foto del equipo",
    response_model=OrderAggregate,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def add_photo(
    order_id: uuid.UUID,
    data: PhotoCreate,
    db: DbSession,
    orders: Orders,
) -> OrderAggregate:
    return await orders.add_photo(db, order_id, data.url)


# ------------------------------------------------------------
# Endpoint: Presupuesto
# ------------------------------------------------------------

@router.post(
    "/{order_id}/budget/send",
    name="order_send_budget",
    summary="Envía el presupuesto al cliente",
    response_model=OrderAggregate,
    dependencies=[Depends(require_admin)],
)
async def send_budget(
    order_id: uuid.UUID,
    data: BudgetSend,
    db: DbSession,
    orders: Orders,
) -> OrderAggregate:
    return await orders.send_budget(db, order_id, data.estimated_cost, data.budget_note)


@router.post(
    "/{order_id}/budget",
    name="order_budget_decision",
    summary="Aprueba o rechaza el presupuesto (cliente)",
    response_model=BudgetDecisionResult,
)
async def decide_budget(
    order_id: uuid.UUID,
    data: BudgetDecision,
    client: ClientSession,
    db: DbSession,
    orders: Orders,
    settings_provider: SettingsProvider = Depends(get_settings_provider),
) -> BudgetDecisionResult:
    """
    Decisión del cliente desde el portal.

    - approve: requiere `approval_signature`; la orden pasa a reparando
    - reject: la orden se cancela y se aplica el cargo de cancelación

    Errores: 401 sin token, 403 si el token es de otra orden,
    409 si no hay presupuesto pendiente, 422 si falta la firma.
    """
    order = await orders.decide_budget(
        db,
        order_id,
        client.sub,
        data.action,
        settings_provider,
        client_note=data.client_note,
        approval_signature=data.approval_signature,
    )
    return BudgetDecisionResult(
        success=True,
        budget_status=order.budget_status,
        status=order.status,
    )


# ------------------------------------------------------------
# Endpoint: WhatsApp
# ------------------------------------------------------------

@router.get(
    "/{order_id}/whatsapp",
    name="order_whatsapp",
    summary="Mensaje de WhatsApp para el cliente",
    response_model=WhatsAppMessage,
)
async def whatsapp_message(
    order_id: uuid.UUID,
    _: AdminSession,
    db: DbSession,
    orders: Orders,
    kind: Literal["created", "ready"] = Query("created", description="Plantilla a usar"),
) -> WhatsAppMessage:
    order = await orders.get(db, order_id)
    business = await settings_service.get(db)
    return message_service.build_message(order, kind, business)
