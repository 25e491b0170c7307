"""
Tests del ciclo de vida de la orden.

Funciones puras: no hace falta base de datos.
"""

import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import BudgetNotApprovedError
from app.schemas.order import (
    BudgetStatus,
    OrderStatus,
    OrderUpdate,
    UsedPart,
)
from app.services import order_lifecycle
from conftest import NOW, make_order

LATER = NOW + datetime.timedelta(hours=1)


# ============================================================
# Tests de cambio de estado
# ============================================================


class TestStatusChange:
    """Tests de apply_status_change."""

    def test_status_change_appends_history(self, order):
        """Test cambio de estado añade una entrada al historial."""
        updated = order_lifecycle.apply_status_change(
            order, OrderStatus.DIAGNOSTICANDO, note="Revisando placa", now=LATER
        )

        assert updated.status == OrderStatus.DIAGNOSTICANDO
        assert len(updated.status_history) == 1
        entry = updated.status_history[0]
        assert entry.from_status == OrderStatus.RECIBIDO
        assert entry.to_status == OrderStatus.DIAGNOSTICANDO
        assert entry.note == "Revisando placa"
        assert entry.date == LATER
        assert updated.updated_at == LATER

    def test_same_status_is_noop(self, order):
        """Test fijar el mismo estado no cambia nada."""
        updated = order_lifecycle.apply_status_change(order, OrderStatus.RECIBIDO, now=LATER)

        assert updated is order
        assert updated.status_history == []
        assert updated.updated_at == NOW

    def test_original_order_not_mutated(self, order):
        """Test la orden original queda intacta."""
        order_lifecycle.apply_status_change(order, OrderStatus.LISTO, now=LATER)

        assert order.status == OrderStatus.RECIBIDO
        assert order.status_history == []

    def test_status_can_jump(self, order):
        """Test las transiciones no son estrictamente lineales."""
        updated = order_lifecycle.apply_status_change(order, OrderStatus.ENTREGADO, now=LATER)
        reopened = order_lifecycle.apply_status_change(updated, OrderStatus.RECIBIDO, now=LATER)

        assert reopened.status == OrderStatus.RECIBIDO
        assert [h.to_status for h in reopened.status_history] == [
            OrderStatus.ENTREGADO,
            OrderStatus.RECIBIDO,
        ]

    def test_blank_note_stored_as_none(self, order):
        updated = order_lifecycle.apply_status_change(order, OrderStatus.LISTO, note="   ")
        assert updated.status_history[0].note is None

    def test_history_serializes_with_from_to(self, order):
        """Test el historial se serializa con las claves from/to."""
        updated = order_lifecycle.apply_status_change(order, OrderStatus.LISTO, now=LATER)
        dumped = updated.model_dump(mode="json", by_alias=True)

        assert dumped["status_history"][0]["from"] == "recibido"
        assert dumped["status_history"][0]["to"] == "listo"


# ============================================================
# Tests del bloqueo por presupuesto
# ============================================================


class TestStatusGate:
    """Tests del bloqueo de reparando/listo/entregado por presupuesto."""

    @pytest.mark.parametrize("target", [OrderStatus.REPARANDO, OrderStatus.LISTO, OrderStatus.ENTREGADO])
    @pytest.mark.parametrize("budget", [BudgetStatus.PENDING, BudgetStatus.REJECTED])
    def test_gated_status_blocked(self, target, budget):
        """Test estados bloqueados con presupuesto pendiente o rechazado."""
        order = make_order(budget_status=budget)

        with pytest.raises(BudgetNotApprovedError) as exc_info:
            order_lifecycle.apply_status_change(order, target)

        assert exc_info.value.status_code == 422
        assert exc_info.value.extra["budget_status"] == budget.value

    @pytest.mark.parametrize("target", [OrderStatus.DIAGNOSTICANDO, OrderStatus.CANCELADO])
    def test_ungated_status_allowed_with_pending_budget(self, target):
        """Test diagnosticando y cancelado siempre se pueden fijar."""
        order = make_order(budget_status=BudgetStatus.PENDING)

        updated = order_lifecycle.apply_status_change(order, target)

        assert updated.status == target

    @pytest.mark.parametrize("budget", [BudgetStatus.NONE, BudgetStatus.APPROVED])
    def test_gated_status_allowed_without_blocking_budget(self, budget):
        order = make_order(budget_status=budget)

        updated = order_lifecycle.apply_status_change(order, OrderStatus.REPARANDO)

        assert updated.status == OrderStatus.REPARANDO

    def test_gate_applies_to_same_status(self):
        """Test el bloqueo se comprueba antes de la comparación de estado."""
        order = make_order(status=OrderStatus.REPARANDO, budget_status=BudgetStatus.PENDING)

        with pytest.raises(BudgetNotApprovedError):
            order_lifecycle.apply_status_change(order, OrderStatus.REPARANDO)


# ============================================================
# Tests de actualización general
# ============================================================


class TestApplyUpdate:
    """Tests de apply_update."""

    def test_update_fields(self, order):
        """Test actualización de campos simples."""
        changes = OrderUpdate(diagnosis="Fuente dañada", estimated_cost=Decimal("2000"))

        updated = order_lifecycle.apply_update(order, changes, now=LATER)

        assert updated.diagnosis == "Fuente dañada"
        assert updated.estimated_cost == Decimal("2000")
        assert updated.updated_at == LATER
        assert updated.status_history == []

    def test_status_processed_before_fields(self, order):
        """Test el estado se procesa primero y luego los campos."""
        changes = OrderUpdate(
            status=OrderStatus.DIAGNOSTICANDO,
            status_change_note="Inicio de revisión",
            diagnosis="Pendiente",
        )

        updated = order_lifecycle.apply_update(order, changes, now=LATER)

        assert updated.status == OrderStatus.DIAGNOSTICANDO
        assert updated.status_history[0].note == "Inicio de revisión"
        assert updated.diagnosis == "Pendiente"

    def test_gate_blocks_whole_update(self):
        """Test un estado bloqueado impide aplicar el resto de campos."""
        order = make_order(budget_status=BudgetStatus.PENDING)
        changes = OrderUpdate(status=OrderStatus.LISTO, diagnosis="Ok")

        with pytest.raises(BudgetNotApprovedError):
            order_lifecycle.apply_update(order, changes)

    def test_collections_replace_whole_list(self):
        """Test las colecciones enviadas reemplazan la lista completa."""
        order = make_order(used_parts=[UsedPart(part_name="Pantalla", quantity=1)])
        changes = OrderUpdate(used_parts=[
            UsedPart(part_name="Batería", quantity=2, unit_cost=Decimal("350")),
        ])

        updated = order_lifecycle.apply_update(order, changes, now=LATER)

        assert [p.part_name for p in updated.used_parts] == ["Batería"]
        assert updated.used_parts[0].quantity == 2

    def test_no_changes_returns_same_order(self, order):
        """Test sin cambios reales se devuelve la misma orden."""
        changes = OrderUpdate(customer_name=order.customer_name, version=0)

        updated = order_lifecycle.apply_update(order, changes, now=LATER)

        assert updated is order

    def test_required_field_none_ignored(self, order):
        """Test un None explícito no borra un campo obligatorio."""
        changes = OrderUpdate.model_validate({"customer_name": None, "diagnosis": "Ok"})

        updated = order_lifecycle.apply_update(order, changes, now=LATER)

        assert updated.customer_name == order.customer_name
        assert updated.diagnosis == "Ok"

    def test_optional_field_can_be_cleared(self):
        order = make_order(diagnosis="Algo")
        changes = OrderUpdate.model_validate({"diagnosis": None})

        updated = order_lifecycle.apply_update(order, changes, now=LATER)

        assert updated.diagnosis is None

    def test_blank_required_text_rejected(self):
        """Test un nombre vacío se rechaza en la validación."""
        with pytest.raises(ValueError):
            OrderUpdate(customer_name="   ")


# ============================================================
# Tests de notas y fotos
# ============================================================


class TestNotesAndPhotos:

    def test_add_note_appends(self, order):
        first = order_lifecycle.add_note(order, "  Cliente llamó  ", now=LATER)
        second = order_lifecycle.add_note(first, "Pieza pedida", now=LATER)

        assert [n.text for n in second.internal_notes] == ["Cliente llamó", "Pieza pedida"]
        assert second.internal_notes[0].date == LATER

    def test_add_photo_appends(self, order):
        updated = order_lifecycle.add_photo(order, "https://cdn.example.com/a.jpg", now=LATER)

        assert updated.device_photos == ["https://cdn.example.com/a.jpg"]
        assert updated.updated_at == LATER
