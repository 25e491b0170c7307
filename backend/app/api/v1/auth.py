"""
Router de autenticación del administrador
Proyecto: Taller Manager (Gestión de Taller)

Login, logout, cambio de contraseña y estado de la sesión. La sesión viaja
en la cookie httpOnly `str_admin_session`.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from app.core.config import settings
from app.core.deps import AdminSession, DbSession, login_rate_limit
from app.core.security import ADMIN_COOKIE
from app.schemas.token import ChangePasswordRequest, LoginRequest, SessionResponse
from app.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Autenticación"],
)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=ADMIN_COOKIE,
        value=token,
        max_age=settings.admin_session_hours * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Inicia sesión del administrador",
    dependencies=[Depends(login_rate_limit)],
)
async def login(
    data: LoginRequest,
    response: Response,
    db: DbSession,
) -> SessionResponse:
    """
    Verifica la contraseña y abre la sesión.

    Máximo 5 intentos cada 5 minutos por IP (429 al superarlo).
    """
    token = await auth_service.login(db, data.password)
    # Guarda hashes regenerados o la contraseña inicial
    await db.commit()
    _set_session_cookie(response, token)
    return SessionResponse(success=True)


@router.post(
    "/logout",
    response_model=SessionResponse,
    summary="Cierra la sesión",
)
async def logout(response: Response) -> SessionResponse:
    response.delete_cookie(ADMIN_COOKIE, path="/")
    return SessionResponse(success=True)


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Comprueba la sesión actual",
)
async def session(_: AdminSession) -> SessionResponse:
    return SessionResponse(success=True)


@router.post(
    "/change-password",
    response_model=SessionResponse,
    summary="Cambia la contraseña del administrador",
)
async def change_password(
    data: ChangePasswordRequest,
    _: AdminSession,
    db: DbSession,
) -> SessionResponse:
    """
    Cambia la contraseña; exige la contraseña actual.
    """
    await auth_service.change_password(db, data.current_password, data.new_password)
    await db.commit()
    return SessionResponse(success=True)
