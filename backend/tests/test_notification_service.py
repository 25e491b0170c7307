"""
Tests del servicio de notificaciones (archivo JSON).
"""

import uuid

import pytest

from app.core.exceptions import NotFoundError
from app.schemas.notification import NotificationType
from app.services.notification_service import NotificationService


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cached(tmp_path, clock):
    return NotificationService(tmp_path / "notifications.json", cache_ttl=3.0, clock=clock)


# ============================================================
# Tests de operaciones
# ============================================================


class TestNotificationOperations:
    """Tests de create/list/mark_read/delete."""

    def test_empty_without_file(self, notifications):
        assert notifications.list() == []
        assert notifications.unread_count() == 0

    def test_create_prepends(self, notifications):
        """Test la notificación más reciente va primero."""
        first = notifications.create(NotificationType.ORDER_CREATED, "Nueva Orden", "Primera")
        second = notifications.create(NotificationType.ORDER_COMPLETED, "Orden Entregada", "Segunda")

        items = notifications.list()

        assert [n.id for n in items] == [second.id, first.id]
        assert notifications.unread_count() == 2
        assert [n.id for n in notifications.list(limit=1)] == [second.id]

    def test_mark_read(self, notifications):
        created = notifications.create(NotificationType.BUDGET_APPROVED, "Presupuesto Aprobado", "Ok")

        marked = notifications.mark_read(created.id)

        assert marked.read is True
        assert notifications.unread_count() == 0

    def test_mark_all_read(self, notifications):
        notifications.create(NotificationType.ORDER_CREATED, "Nueva Orden", "A")
        notifications.create(NotificationType.ORDER_CREATED, "Nueva Orden", "B")

        assert notifications.mark_all_read() == 2
        assert notifications.mark_all_read() == 0
        assert notifications.unread_count() == 0

    def test_delete(self, notifications):
        created = notifications.create(NotificationType.ORDER_CREATED, "Nueva Orden", "A")

        notifications.delete(created.id)

        assert notifications.list() == []

    def test_unknown_id(self, notifications):
        """Test id inexistente → NotFoundError."""
        with pytest.raises(NotFoundError):
            notifications.mark_read(uuid.uuid4())
        with pytest.raises(NotFoundError):
            notifications.delete(uuid.uuid4())

    def test_corrupt_file_reads_as_empty(self, notifications):
        notifications.path.write_text("{no es json", encoding="utf-8")

        assert notifications.list() == []

    def test_emit_swallows_storage_failure(self, tmp_path):
        """Test emit no propaga un fallo del archivo."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        service = NotificationService(blocker / "notifications.json", cache_ttl=0)

        assert service.emit(NotificationType.ORDER_CREATED, "Nueva Orden", "A") is None


# ============================================================
# Tests de la caché en memoria
# ============================================================


class TestNotificationCache:
    """Tests de la lectura memorizada con TTL."""

    def test_cached_read_within_ttl(self, cached, clock):
        """Test dentro del TTL no se relee el archivo."""
        cached.create(NotificationType.ORDER_CREATED, "Nueva Orden", "A")
        assert len(cached.list()) == 1

        # Escritura externa al servicio
        other = NotificationService(cached.path, cache_ttl=0)
        other.create(NotificationType.ORDER_CREATED, "Nueva Orden", "B")

        clock.now = 2.0
        assert len(cached.list()) == 1

        clock.now = 3.5
        assert len(cached.list()) == 2

    def test_write_invalidates_cache(self, cached, clock):
        """Test cada escritura propia invalida la caché."""
        assert cached.list() == []

        cached.create(NotificationType.ORDER_CREATED, "Nueva Orden", "A")

        assert len(cached.list()) == 1
