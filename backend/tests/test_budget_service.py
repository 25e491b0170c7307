"""
Tests de aprobación de presupuestos.

Las transformaciones puras se prueban sin base de datos; el flujo
completo de BudgetService usa SQLite en memoria.
"""

import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import (
    AuthorizationError,
    BusinessValidationError,
    ConflictError,
    NoPendingBudgetError,
    SignatureRequiredError,
)
from app.schemas.notification import NotificationType
from app.schemas.order import (
    BudgetAction,
    BudgetStatus,
    OrderStatus,
    PaymentStatus,
    SelectedService,
)
from app.services import budget_service, payment_ledger
from app.services.settings_service import StaticSettingsProvider
from conftest import NOW, make_order

LATER = NOW + datetime.timedelta(days=1)


def pending_order(**overrides):
    values = {
        "status": OrderStatus.DIAGNOSTICANDO,
        "budget_status": BudgetStatus.PENDING,
        "budget_sent_at": NOW,
        "parts_cost": Decimal("300"),
        "selected_services": [SelectedService(name="Cambio de pantalla", base_price=Decimal("800"))],
    }
    values.update(overrides)
    return make_order(**values)


# ============================================================
# Tests de envío del presupuesto
# ============================================================


class TestSendBudget:
    """Tests de send_budget."""

    def test_send_budget_sets_pending(self, order):
        """Test envío desde recibido → pending."""
        updated = budget_service.send_budget(
            order, estimated_cost=Decimal("1800"), budget_note=" Incluye mano de obra ", now=LATER
        )

        assert updated.budget_status == BudgetStatus.PENDING
        assert updated.budget_sent_at == LATER
        assert updated.budget_responded_at is None
        assert updated.estimated_cost == Decimal("1800")
        assert updated.budget_note == "Incluye mano de obra"
        assert updated.status == OrderStatus.RECIBIDO

    def test_send_budget_keeps_cost_when_omitted(self, order):
        updated = budget_service.send_budget(order, now=LATER)

        assert updated.estimated_cost == order.estimated_cost

    def test_send_budget_twice_conflicts(self):
        """Test no se puede enviar con un presupuesto ya pendiente."""
        with pytest.raises(ConflictError):
            budget_service.send_budget(pending_order())

    def test_send_budget_from_reparando_conflicts(self):
        """Test solo desde recibido o diagnosticando."""
        order = make_order(status=OrderStatus.REPARANDO)

        with pytest.raises(ConflictError):
            budget_service.send_budget(order)

    def test_resend_after_rejection(self):
        """Test se puede reenviar tras un rechazo si la orden se reabrió."""
        order = make_order(budget_status=BudgetStatus.REJECTED, status=OrderStatus.DIAGNOSTICANDO)

        updated = budget_service.send_budget(order, now=LATER)

        assert updated.budget_status == BudgetStatus.PENDING


# ============================================================
# Tests de la decisión del cliente
# ============================================================


class TestDecideBudget:
    """Tests de decide_budget."""

    def test_approve(self):
        """Test aprobar → reparando con firma y nota en el historial."""
        order = pending_order()

        updated = budget_service.decide_budget(
            order,
            BudgetAction.APPROVE,
            cancellation_fee=Decimal("150"),
            client_note="Adelante",
            approval_signature="data:image/png;base64,AAAA",
            now=LATER,
        )

        assert updated.status == OrderStatus.REPARANDO
        assert updated.budget_status == BudgetStatus.APPROVED
        assert updated.budget_responded_at == LATER
        assert updated.client_note == "Adelante"
        assert updated.approval_signature == "data:image/png;base64,AAAA"
        assert updated.estimated_cost == order.estimated_cost
        assert updated.status_history[-1].note == budget_service.APPROVED_NOTE
        assert updated.status_history[-1].from_status == OrderStatus.DIAGNOSTICANDO

    def test_approve_without_signature(self):
        """Test aprobar sin firma → SignatureRequiredError."""
        with pytest.raises(SignatureRequiredError):
            budget_service.decide_budget(pending_order(), BudgetAction.APPROVE, Decimal("0"))

    def test_approve_with_blank_signature(self):
        with pytest.raises(SignatureRequiredError):
            budget_service.decide_budget(
                pending_order(), BudgetAction.APPROVE, Decimal("0"), approval_signature="  "
            )

    def test_reject_rewrites_amounts(self):
        """Test rechazar → cancelado, costo = cargo, sin servicios."""
        order = pending_order()

        updated = budget_service.decide_budget(
            order, BudgetAction.REJECT, cancellation_fee=Decimal("150"), now=LATER
        )

        assert updated.status == OrderStatus.CANCELADO
        assert updated.budget_status == BudgetStatus.REJECTED
        assert updated.estimated_cost == Decimal("150")
        assert updated.parts_cost == Decimal("0")
        assert updated.selected_services == []
        assert updated.payment_status == PaymentStatus.PENDIENTE
        assert updated.status_history[-1].note == budget_service.REJECTED_NOTE

    def test_reject_with_zero_fee_is_cancelado(self):
        """Test rechazo sin cargo ni pagos → estado de cobro CANCELADO."""
        updated = budget_service.decide_budget(pending_order(), BudgetAction.REJECT, Decimal("0"))

        assert updated.payment_status == PaymentStatus.CANCELADO

    def test_reject_with_advance_payment(self):
        """Test rechazo con anticipo mayor al cargo → PAGADO."""
        order = payment_ledger.add_payment(pending_order(), Decimal("500"), now=NOW)

        updated = budget_service.decide_budget(order, BudgetAction.REJECT, Decimal("150"))

        assert updated.payment_status == PaymentStatus.PAGADO
        assert updated.balance_due == Decimal("-350")

    @pytest.mark.parametrize("budget", [BudgetStatus.NONE, BudgetStatus.APPROVED, BudgetStatus.REJECTED])
    def test_decide_without_pending_budget(self, budget):
        """Test decidir sin presupuesto pendiente → NoPendingBudgetError (409)."""
        order = make_order(budget_status=budget)

        with pytest.raises(NoPendingBudgetError) as exc_info:
            budget_service.decide_budget(order, BudgetAction.REJECT, Decimal("0"))

        assert exc_info.value.status_code == 409

    def test_invalid_action(self):
        with pytest.raises(BusinessValidationError, match="Acción no válida"):
            budget_service.decide_budget(pending_order(), "maybe", Decimal("0"))

    def test_decision_when_status_already_target(self):
        """Test sin entrada de historial si el estado ya era el destino."""
        order = pending_order(status=OrderStatus.CANCELADO)

        updated = budget_service.decide_budget(order, BudgetAction.REJECT, Decimal("0"))

        assert updated.status_history == []


# ============================================================
# Tests del flujo completo con base de datos
# ============================================================


class TestBudgetServiceFlow:
    """Tests de BudgetService.decide con guardado y notificación."""

    async def _saved_pending(self, db, store):
        return await store.save(db, pending_order())

    async def test_reject_uses_configured_fee(self, db, store, order_service, notifications):
        """Test el cargo de cancelación viene del proveedor de configuración."""
        saved = await self._saved_pending(db, store)

        result = await order_service.decide_budget(
            db,
            saved.id,
            saved.order_number,
            BudgetAction.REJECT,
            StaticSettingsProvider(cancellation_fee=Decimal("200")),
        )

        assert result.status == OrderStatus.CANCELADO
        assert result.estimated_cost == Decimal("200")
        assert result.version == saved.version + 1

        latest = notifications.list()[0]
        assert latest.type == NotificationType.BUDGET_REJECTED
        assert latest.order_number == saved.order_number
        assert "$200" in latest.message

    async def test_approve_emits_notification(self, db, store, order_service, notifications):
        saved = await self._saved_pending(db, store)

        result = await order_service.decide_budget(
            db,
            saved.id,
            saved.order_number.lower(),
            BudgetAction.APPROVE,
            StaticSettingsProvider(),
            approval_signature="firma",
        )

        assert result.status == OrderStatus.REPARANDO
        assert notifications.list()[0].type == NotificationType.BUDGET_APPROVED

    async def test_token_for_other_order_forbidden(self, db, store, order_service, notifications):
        """Test token de otra orden → AuthorizationError (403) sin cambios."""
        saved = await self._saved_pending(db, store)

        with pytest.raises(AuthorizationError) as exc_info:
            await order_service.decide_budget(
                db,
                saved.id,
                "ORD-202503-9999",
                BudgetAction.APPROVE,
                StaticSettingsProvider(),
                approval_signature="firma",
            )

        assert exc_info.value.status_code == 403
        reloaded = await store.get(db, saved.id)
        assert reloaded.budget_status == BudgetStatus.PENDING
        assert notifications.list() == []

    async def test_failed_decision_does_not_save(self, db, store, order_service):
        """Test una aprobación sin firma no modifica la orden guardada."""
        saved = await self._saved_pending(db, store)

        with pytest.raises(SignatureRequiredError):
            await order_service.decide_budget(
                db, saved.id, saved.order_number, BudgetAction.APPROVE, StaticSettingsProvider()
            )

        reloaded = await store.get(db, saved.id)
        assert reloaded.version == saved.version
        assert reloaded.budget_status == BudgetStatus.PENDING

    async def test_unknown_action_rejected(self, db, store, order_service):
        """Test una acción desconocida → BusinessValidationError sin guardar."""
        saved = await self._saved_pending(db, store)

        with pytest.raises(BusinessValidationError) as exc_info:
            await order_service.decide_budget(
                db, saved.id, saved.order_number, "foo", StaticSettingsProvider()
            )

        assert exc_info.value.status_code == 422
        reloaded = await store.get(db, saved.id)
        assert reloaded.version == saved.version
        assert reloaded.budget_status == BudgetStatus.PENDING
