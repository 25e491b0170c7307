"""
Dependency Injection para autenticación y servicios
Proyecto: Taller Manager (Gestión de Taller)

Funciones de inyección de dependencias para FastAPI: sesión del
administrador, token del portal de clientes, rate limiting y servicios.
"""

from typing import Annotated, Optional

from fastapi import Cookie, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError, RateLimitError
from app.core.rate_limit import client_ip, rate_limiter
from app.core.security import ADMIN_COOKIE, CLIENT_COOKIE, decode_token
from app.schemas.token import TokenPayload
from app.services.notification_service import NotificationService, get_notification_service
from app.services.order_service import OrderService
from app.services.settings_service import DatabaseSettingsProvider, SettingsProvider


async def require_admin(
    session: Optional[str] = Cookie(None, alias=ADMIN_COOKIE),
) -> TokenPayload:
    """
    Exige una sesión de administrador válida.

    Raises:
        AuthenticationError: Si falta la cookie o el token no es válido
    """
    if not session:
        raise AuthenticationError("Sesión no iniciada")
    return decode_token(session, expected_type="admin")


async def require_client(
    token: Optional[str] = Cookie(None, alias=CLIENT_COOKIE),
) -> TokenPayload:
    """
    Exige un token del portal de clientes.

    `sub` contiene el número de orden verificado.

    Raises:
        AuthenticationError: Si falta la cookie o el token no es válido
    """
    if not token:
        raise AuthenticationError("Verificación requerida")
    return decode_token(token, expected_type="client")


def get_client_ip(request: Request) -> str:
    return client_ip(
        request.headers.get("x-forwarded-for"),
        request.headers.get("x-real-ip"),
        request.client.host if request.client else None,
    )


def enforce_rate_limit(request: Request, scope: str, max_attempts: int, window_seconds: int) -> None:
    """
    Registra un intento de `scope` para la IP de la petición.

    Raises:
        RateLimitError: Si se superó el límite de la ventana
    """
    result = rate_limiter.check(f"{get_client_ip(request)}:{scope}", max_attempts, window_seconds)
    if not result.allowed:
        raise RateLimitError(result.retry_after_seconds)


async def login_rate_limit(request: Request) -> None:
    enforce_rate_limit(request, "login", settings.login_max_attempts, settings.login_window_seconds)


async def verify_rate_limit(request: Request) -> None:
    enforce_rate_limit(request, "verify", settings.verify_max_attempts, settings.verify_window_seconds)


def get_notifications() -> NotificationService:
    return get_notification_service()


def get_order_service(
    notifications: NotificationService = Depends(get_notifications),
) -> OrderService:
    return OrderService(notifications)


def get_settings_provider(db: AsyncSession = Depends(get_db)) -> SettingsProvider:
    return DatabaseSettingsProvider(db)


# Alias tipados para los routers
DbSession = Annotated[AsyncSession, Depends(get_db)]
AdminSession = Annotated[TokenPayload, Depends(require_admin)]
ClientSession = Annotated[TokenPayload, Depends(require_client)]
Orders = Annotated[OrderService, Depends(get_order_service)]
Notifications = Annotated[NotificationService, Depends(get_notifications)]
