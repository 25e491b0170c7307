"""
Módulo de seguridad
Proyecto: Taller Manager (Gestión de Taller)

Hash de contraseñas y tokens JWT para la sesión del administrador y
para el portal de clientes.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.schemas.token import TokenPayload

# Nombres de las cookies de sesión
ADMIN_COOKIE = "str_admin_session"
CLIENT_COOKIE = "str_client_token"

ADMIN_SUBJECT = "admin"

# pbkdf2_sha512 para hashes nuevos; hex_sha256 solo para verificar hashes
# heredados (sha256 sin sal), que se marcan como obsoletos y se regeneran.
pwd_context = CryptContext(
    schemes=["pbkdf2_sha512", "hex_sha256"],
    deprecated=["hex_sha256"],
    pbkdf2_sha512__rounds=100_000,
)


def hash_password(password: str) -> str:
    """
    Genera el hash de una contraseña en claro.

    Args:
        password: Contraseña en claro

    Returns:
        Hash en formato modular crypt
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> Tuple[bool, Optional[str]]:
    """
    Verifica una contraseña y, si el hash es obsoleto, devuelve uno nuevo.

    Args:
        plain_password: Contraseña en claro
        hashed_password: Hash almacenado

    Returns:
        (válida, hash_nuevo): hash_nuevo es None si no hace falta actualizarlo
    """
    try:
        return pwd_context.verify_and_update(plain_password, hashed_password)
    except ValueError:
        # Hash con formato desconocido
        return False, None


def _encode(subject: str, token_type: str, lifetime: timedelta) -> str:
    expire = datetime.now(timezone.utc) + lifetime
    payload = {
        "sub": subject,
        "exp": expire,
        "type": token_type,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_admin_session_token() -> str:
    """Crea el token de sesión del administrador."""
    return _encode(ADMIN_SUBJECT, "admin", timedelta(hours=settings.admin_session_hours))


def create_client_token(order_number: str) -> str:
    """
    Crea un token del portal de clientes ligado a una orden.

    Args:
        order_number: Número de orden verificado (ej. ORD-202503-0001)

    Returns:
        Token JWT firmado
    """
    return _encode(order_number, "client", timedelta(hours=settings.client_token_hours))


def decode_token(token: str, expected_type: str) -> TokenPayload:
    """
    Decodifica y valida un token JWT.

    Args:
        token: Token a decodificar
        expected_type: Tipo esperado ("admin" o "client")

    Returns:
        TokenPayload con los datos del token

    Raises:
        AuthenticationError: Si el token es inválido, expiró o es de otro tipo
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise AuthenticationError("Sesión expirada")

    if not payload.get("sub") or payload.get("type") != expected_type:
        raise AuthenticationError("Token inválido")

    return TokenPayload(
        sub=payload["sub"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        type=payload["type"],
    )


__all__ = [
    "ADMIN_COOKIE",
    "CLIENT_COOKIE",
    "hash_password",
    "verify_password",
    "create_admin_session_token",
    "create_client_token",
    "decode_token",
]
