"""
Schemas Pydantic para autenticación
Proyecto: Taller Manager (Gestión de Taller)

Payload de los tokens JWT y cuerpos de login / cambio de contraseña.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """
    Payload contenido en los tokens JWT.

    Attributes:
        sub: "admin" para la sesión del taller, número de orden para clientes
        exp: Fecha/hora de expiración
        type: Tipo de token ("admin" o "client")
    """

    sub: str = Field(..., description="Sujeto del token")
    exp: datetime = Field(..., description="Fecha/hora de expiración")
    type: str = Field(..., description="Tipo de token (admin/client)")


class LoginRequest(BaseModel):
    """Credenciales del administrador."""

    password: str = Field(..., min_length=1, max_length=200)


class ChangePasswordRequest(BaseModel):
    """Cambio de contraseña del administrador."""

    current_password: str = Field(..., min_length=1, max_length=200)
    new_password: str = Field(..., min_length=6, max_length=200)


class ClientVerifyRequest(BaseModel):
    """
    Verificación del portal de clientes.

    Attributes:
        order_number: Número de orden impreso en el comprobante
        phone: Teléfono registrado en la orden
    """

    order_number: str = Field(..., min_length=3, max_length=30)
    phone: str = Field(..., min_length=4, max_length=30)


class SessionResponse(BaseModel):
    """Respuesta de login/verificación."""

    success: bool = True
    order_number: str | None = None


__all__ = [
    "TokenPayload",
    "LoginRequest",
    "ChangePasswordRequest",
    "ClientVerifyRequest",
    "SessionResponse",
]
