"""
Servicio de Notificaciones
Proyecto: Taller Manager (Gestión de Taller)

Lista de notificaciones guardada en un archivo JSON, la más reciente
primero. No forma parte de la transacción de la orden: se escribe después
de confirmar el guardado.

Las lecturas se memorizan durante `notifications_cache_ttl` segundos;
cualquier escritura invalida la copia en memoria.
"""

import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import NotFoundError, StorageError
from app.schemas.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

__all__ = ["NotificationService", "NotificationType", "get_notification_service"]

_adapter = TypeAdapter(list[Notification])


class NotificationService:
    """
    Notificaciones del panel de administración.

    Args:
        path: Archivo JSON
        cache_ttl: Segundos de validez de la lectura memorizada
        clock: Reloj monotónico (inyectable en tests)
    """

    def __init__(
        self,
        path: Path,
        cache_ttl: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._cache: Optional[list[Notification]] = None
        self._cached_at = 0.0

    # ------------------------------------------------------------
    # Archivo
    # ------------------------------------------------------------
    def _read_file(self) -> list[Notification]:
        if not self.path.exists():
            return []
        try:
            return _adapter.validate_json(self.path.read_bytes())
        except PydanticValidationError as e:
            logger.error("Archivo de notificaciones corrupto %s: %s", self.path, e)
            return []
        except OSError as e:
            logger.error("No se pudo leer %s: %s", self.path, e)
            raise StorageError("No se pudieron leer las notificaciones") from e

    def _write_file(self, items: list[Notification]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            tmp.write_bytes(_adapter.dump_json(items, indent=2))
            tmp.replace(self.path)
        except OSError as e:
            logger.error("No se pudo escribir %s: %s", self.path, e)
            raise StorageError("No se pudieron guardar las notificaciones") from e
        finally:
            self.invalidate()

    def invalidate(self) -> None:
        self._cache = None
        self._cached_at = 0.0

    def _load(self) -> list[Notification]:
        now = self._clock()
        if self._cache is not None and now - self._cached_at < self.cache_ttl:
            return self._cache
        self._cache = self._read_file()
        self._cached_at = now
        return self._cache

    # ------------------------------------------------------------
    # Operaciones
    # ------------------------------------------------------------
    def list(self, limit: Optional[int] = None) -> list[Notification]:
        """Notificaciones, la más reciente primero."""
        with self._lock:
            items = list(self._load())
        return items[:limit] if limit else items

    def unread_count(self) -> int:
        return sum(1 for n in self.list() if not n.read)

    def create(
        self,
        type: NotificationType,
        title: str,
        message: str,
        order_id: Optional[uuid.UUID] = None,
        order_number: Optional[str] = None,
    ) -> Notification:
        """
        Añade una notificación al principio de la lista.

        Args:
            type: Tipo de evento
            title: Título corto
            message: Texto de la notificación
            order_id: Orden relacionada
            order_number: Número de la orden relacionada

        Returns:
            Notification creada
        """
        notification = Notification(
            type=type,
            title=title,
            message=message,
            order_id=order_id,
            order_number=order_number,
        )
        with self._lock:
            items = self._read_file()
            self._write_file([notification, *items])

        logger.info("Notificación %s: %s", type.value, order_number or "-")
        return notification

    def emit(
        self,
        type: NotificationType,
        title: str,
        message: str,
        order_id: Optional[uuid.UUID] = None,
        order_number: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Como `create`, pero un fallo del archivo solo se registra en el log.

        Se usa después de confirmar una orden: la orden ya está guardada y
        la petición no debe fallar por la notificación.
        """
        try:
            return self.create(type, title, message, order_id, order_number)
        except StorageError:
            logger.warning(
                "Notificación %s de la orden %s no guardada",
                type.value,
                order_number or "-",
            )
            return None

    def mark_read(self, notification_id: uuid.UUID) -> Notification:
        """
        Marca una notificación como leída.

        Raises:
            NotFoundError: Si la notificación no existe
        """
        with self._lock:
            items = self._read_file()
            for i, item in enumerate(items):
                if item.id == notification_id:
                    items[i] = item.model_copy(update={"read": True})
                    self._write_file(items)
                    return items[i]
        raise NotFoundError(f"Notificación {notification_id} no encontrada")

    def mark_all_read(self) -> int:
        """Marca todas como leídas y devuelve cuántas cambiaron."""
        with self._lock:
            items = self._read_file()
            changed = sum(1 for n in items if not n.read)
            if changed:
                self._write_file([n.model_copy(update={"read": True}) for n in items])
        return changed

    def delete(self, notification_id: uuid.UUID) -> None:
        """
        Elimina una notificación.

        Raises:
            NotFoundError: Si la notificación no existe
        """
        with self._lock:
            items = self._read_file()
            remaining = [n for n in items if n.id != notification_id]
            if len(remaining) == len(items):
                raise NotFoundError(f"Notificación {notification_id} no encontrada")
            self._write_file(remaining)


_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """Instancia compartida, ligada a `settings.data_dir`."""
    global _service
    if _service is None:
        _service = NotificationService(
            Path(settings.data_dir) / "notifications.json",
            cache_ttl=settings.notifications_cache_ttl,
        )
    return _service
