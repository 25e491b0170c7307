"""
Servicio de autenticación
Proyecto: Taller Manager (Gestión de Taller)

Un único administrador cuya contraseña se guarda (hasheada) en la fila de
configuración. Hasta que exista un hash se acepta la contraseña de la
variable de entorno ADMIN_PASSWORD, que se guarda hasheada en el primer
login correcto.
"""

import hmac
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.security import create_admin_session_token, hash_password, verify_password
from app.models.mixins import utcnow
from app.services.settings_service import SettingsService, settings_service

logger = logging.getLogger(__name__)


class AuthService:
    """Login y cambio de contraseña del administrador."""

    def __init__(
        self,
        settings_svc: Optional[SettingsService] = None,
        env_password: Optional[str] = None,
    ) -> None:
        self.settings_svc = settings_svc or settings_service
        self.env_password = env_password if env_password is not None else settings.admin_password

    async def _check_password(self, db: AsyncSession, password: str) -> bool:
        """
        Verifica la contraseña y actualiza el hash guardado si hace falta.

        - Hash guardado obsoleto (sha256 sin sal): se regenera con pbkdf2.
        - Sin hash guardado: se compara con ADMIN_PASSWORD y se guarda.
        """
        row = await self.settings_svc.get_or_create_row(db)

        if row.admin_password:
            valid, new_hash = verify_password(password, row.admin_password)
            if valid and new_hash:
                row.admin_password = new_hash
                row.password_updated_at = utcnow()
                await db.flush()
                logger.info("Hash de contraseña del administrador actualizado a pbkdf2_sha512")
            return valid

        if not self.env_password or not hmac.compare_digest(
            password.encode("utf-8"), self.env_password.encode("utf-8")
        ):
            return False

        row.admin_password = hash_password(password)
        row.password_updated_at = utcnow()
        await db.flush()
        logger.info("Contraseña inicial del administrador guardada")
        return True

    async def login(self, db: AsyncSession, password: str) -> str:
        """
        Autentica al administrador.

        Args:
            db: Sesión de base de datos
            password: Contraseña en claro

        Returns:
            Token de sesión (JWT) para la cookie

        Raises:
            AuthenticationError: Si la contraseña es incorrecta
        """
        if not await self._check_password(db, password):
            logger.warning("Login de administrador fallido")
            raise AuthenticationError("Contraseña incorrecta")

        logger.info("Login de administrador correcto")
        return create_admin_session_token()

    async def change_password(
        self,
        db: AsyncSession,
        current_password: str,
        new_password: str,
    ) -> None:
        """
        Cambia la contraseña del administrador.

        Raises:
            AuthenticationError: Si la contraseña actual no es correcta
        """
        if not await self._check_password(db, current_password):
            raise AuthenticationError("La contraseña actual es incorrecta")

        row = await self.settings_svc.get_or_create_row(db)
        row.admin_password = hash_password(new_password)
        row.password_updated_at = utcnow()
        await db.flush()
        logger.info("Contraseña del administrador cambiada")


auth_service = AuthService()
