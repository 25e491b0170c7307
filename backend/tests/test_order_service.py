"""
Tests del servicio de órdenes (orquestación + notificaciones).
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import BudgetNotApprovedError, ConflictError, DuplicateError
from app.schemas.notification import NotificationType
from app.schemas.order import (
    BudgetStatus,
    OrderAggregate,
    OrderStatus,
    OrderUpdate,
    PaymentMethod,
    PaymentStatus,
)
from app.services.order_service import CREATE_ATTEMPTS, OrderService
from conftest import NOW


# ============================================================
# Tests de alta
# ============================================================


class TestCreateOrder:
    """Tests de OrderService.create_order."""

    async def test_create_assigns_number_and_notifies(self, db, order_service, order_data, notifications):
        """Test alta con número ORD-YYYYMM-NNNN y notificación."""
        order = await order_service.create_order(db, order_data, now=NOW)

        assert order.order_number == "ORD-202503-0001"
        assert order.version == 1
        assert order.status == OrderStatus.RECIBIDO
        assert order.budget_status == BudgetStatus.NONE
        assert order.payment_status == PaymentStatus.PENDIENTE
        assert order.customer_phone == "55 1234-5678"

        created = notifications.list()
        assert len(created) == 1
        assert created[0].type == NotificationType.ORDER_CREATED
        assert created[0].order_id == order.id

    async def test_consecutive_orders(self, db, order_service, order_data):
        first = await order_service.create_order(db, order_data, now=NOW)
        second = await order_service.create_order(db, order_data, now=NOW)

        assert first.order_number == "ORD-202503-0001"
        assert second.order_number == "ORD-202503-0002"

    async def test_duplicate_number_retried(self, db, notifications, store, order_data):
        """Test un número duplicado se reintenta una vez."""
        await store.save(db, _order_from(order_data, "ORD-202503-0001"))
        numbers = iter(["ORD-202503-0001", "ORD-202503-0002"])
        store.generate_order_number = AsyncMock(side_effect=lambda db, now: next(numbers))
        service = OrderService(notifications, store)

        order = await service.create_order(db, order_data, now=NOW)

        assert order.order_number == "ORD-202503-0002"
        assert store.generate_order_number.await_count == CREATE_ATTEMPTS

    async def test_duplicate_number_gives_up(self, db, notifications, store, order_data):
        await store.save(db, _order_from(order_data, "ORD-202503-0001"))
        store.generate_order_number = AsyncMock(return_value="ORD-202503-0001")
        service = OrderService(notifications, store)

        with pytest.raises(DuplicateError):
            await service.create_order(db, order_data, now=NOW)

        assert notifications.list() == []


def _order_from(data, number):
    return OrderAggregate(order_number=number, created_at=NOW, updated_at=NOW, **data.model_dump())


# ============================================================
# Tests de actualización
# ============================================================


class TestUpdateOrder:
    """Tests de OrderService.update_order."""

    async def test_update_bumps_version(self, db, order_service, order_data):
        order = await order_service.create_order(db, order_data, now=NOW)

        updated = await order_service.update_order(
            db, order.id, OrderUpdate(diagnosis="Corto en placa", version=order.version)
        )

        assert updated.diagnosis == "Corto en placa"
        assert updated.version == order.version + 1

    async def test_stale_version_rejected(self, db, order_service, order_data):
        """Test versión enviada distinta a la actual → ConflictError."""
        order = await order_service.create_order(db, order_data, now=NOW)
        await order_service.update_order(db, order.id, OrderUpdate(diagnosis="A"))

        with pytest.raises(ConflictError):
            await order_service.update_order(
                db, order.id, OrderUpdate(diagnosis="B", version=order.version)
            )

    async def test_no_changes_skips_save(self, db, order_service, order_data):
        order = await order_service.create_order(db, order_data, now=NOW)

        same = await order_service.update_order(db, order.id, OrderUpdate())

        assert same.version == order.version

    async def test_delivered_notifies_once(self, db, order_service, order_data, notifications):
        """Test pasar a entregado emite ORDER_COMPLETED una sola vez."""
        order = await order_service.create_order(db, order_data, now=NOW)

        await order_service.change_status(db, order.id, OrderStatus.ENTREGADO, "Entregado en mostrador")
        await order_service.update_order(db, order.id, OrderUpdate(diagnosis="Post entrega"))

        completed = [n for n in notifications.list() if n.type == NotificationType.ORDER_COMPLETED]
        assert len(completed) == 1
        assert completed[0].title == "Orden Entregada"

    async def test_gate_blocks_status_change(self, db, order_service, order_data):
        """Test con presupuesto pendiente no se puede pasar a reparando."""
        order = await order_service.create_order(db, order_data, now=NOW)
        await order_service.send_budget(db, order.id, Decimal("1800"), "Pantalla nueva")

        with pytest.raises(BudgetNotApprovedError):
            await order_service.change_status(db, order.id, OrderStatus.REPARANDO)

        current = await order_service.get(db, order.id)
        assert current.status == OrderStatus.RECIBIDO
        assert current.budget_status == BudgetStatus.PENDING
        assert current.estimated_cost == Decimal("1800")


# ============================================================
# Tests de pagos, notas y fotos
# ============================================================


class TestSubResources:

    async def test_add_and_remove_payment(self, db, order_service, order_data):
        order = await order_service.create_order(db, order_data, now=NOW)

        paid = await order_service.add_payment(db, order.id, Decimal("1500"), PaymentMethod.TARJETA)
        assert paid.payment_status == PaymentStatus.PAGADO

        removed = await order_service.remove_payment(db, order.id, paid.payments[0].id)
        assert removed.payments == []
        assert removed.payment_status == PaymentStatus.PENDIENTE

    async def test_add_note_and_photo(self, db, order_service, order_data):
        order = await order_service.create_order(db, order_data, now=NOW)

        await order_service.add_note(db, order.id, "Cliente avisado")
        updated = await order_service.add_photo(db, order.id, "frente.jpg")

        assert [n.text for n in updated.internal_notes] == ["Cliente avisado"]
        assert updated.device_photos == ["frente.jpg"]
        assert updated.version == 3

    async def test_delete_order(self, db, order_service, order_data):
        order = await order_service.create_order(db, order_data, now=NOW)

        assert await order_service.delete_order(db, order.id) is True
        items, total = await order_service.list(db)
        assert total == 0
