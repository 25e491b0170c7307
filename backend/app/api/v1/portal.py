"""
Router del portal de clientes
Proyecto: Taller Manager (Gestión de Taller)

El cliente se identifica con el número de orden y su teléfono; recibe un
token ligado a esa orden (cookie `str_client_token`) con el que puede
consultarla y decidir sobre el presupuesto.
"""

import logging
import re

from fastapi import APIRouter, Depends, Response

from app.core.config import settings
from app.core.deps import ClientSession, DbSession, Orders, verify_rate_limit
from app.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from app.core.security import CLIENT_COOKIE, create_client_token
from app.schemas.order import OrderPublicRead
from app.schemas.token import ClientVerifyRequest, SessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/portal",
    tags=["Portal de Clientes"],
)

# Dígitos finales del teléfono que deben coincidir
PHONE_MATCH_DIGITS = 4


def phone_matches(stored: str, provided: str) -> bool:
    """Compara los últimos dígitos de ambos teléfonos."""
    stored_digits = re.sub(r"\D", "", stored or "")
    provided_digits = re.sub(r"\D", "", provided or "")
    if len(provided_digits) < PHONE_MATCH_DIGITS or len(stored_digits) < PHONE_MATCH_DIGITS:
        return False
    return stored_digits[-PHONE_MATCH_DIGITS:] == provided_digits[-PHONE_MATCH_DIGITS:]


@router.post(
    "/verify",
    response_model=SessionResponse,
    summary="Verifica al cliente",
    dependencies=[Depends(verify_rate_limit)],
)
async def verify(
    data: ClientVerifyRequest,
    response: Response,
    db: DbSession,
    orders: Orders,
) -> SessionResponse:
    """
    Verifica número de orden + teléfono y entrega el token del portal.

    Devuelve 401 tanto si la orden no existe como si el teléfono no
    coincide, para no revelar qué números de orden existen.
    """
    try:
        order = await orders.get_by_number(db, data.order_number)
    except NotFoundError:
        raise AuthenticationError("Datos de verificación incorrectos")

    if not phone_matches(order.customer_phone, data.phone):
        logger.warning("Verificación fallida para la orden %s", order.order_number)
        raise AuthenticationError("Datos de verificación incorrectos")

    response.set_cookie(
        key=CLIENT_COOKIE,
        value=create_client_token(order.order_number),
        max_age=settings.client_token_hours * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
    logger.info("Cliente verificado para la orden %s", order.order_number)
    return SessionResponse(success=True, order_number=order.order_number)


@router.get(
    "/orders/{order_number}",
    response_model=OrderPublicRead,
    summary="Consulta pública de la orden",
)
async def get_public_order(
    order_number: str,
    client: ClientSession,
    db: DbSession,
    orders: Orders,
) -> OrderPublicRead:
    if client.sub.lower() != order_number.lower():
        raise AuthorizationError()
    order = await orders.get_by_number(db, order_number)
    return OrderPublicRead.from_aggregate(order)


@router.post(
    "/logout",
    response_model=SessionResponse,
    summary="Cierra la sesión del portal",
)
async def portal_logout(response: Response) -> SessionResponse:
    response.delete_cookie(CLIENT_COOKIE, path="/")
    return SessionResponse(success=True)
