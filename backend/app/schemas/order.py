"""
Schemas Pydantic para las Órdenes de Reparación
Proyecto: Taller Manager (Gestión de Taller)

Define los enums del dominio, el agregado en memoria `OrderAggregate`
(raíz + seis colecciones) y los schemas de entrada/salida de la API.
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


# -------------------------------------------------------------------
# Enums
# -------------------------------------------------------------------

class OrderStatus(str, Enum):
    """Estados del ciclo de vida de una orden."""
    RECIBIDO = "recibido"
    DIAGNOSTICANDO = "diagnosticando"
    REPARANDO = "reparando"
    LISTO = "listo"
    ENTREGADO = "entregado"
    CANCELADO = "cancelado"


class BudgetStatus(str, Enum):
    """Estados del presupuesto enviado al cliente."""
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BudgetAction(str, Enum):
    """Decisión del cliente sobre el presupuesto."""
    APPROVE = "approve"
    REJECT = "reject"


class PaymentMethod(str, Enum):
    EFECTIVO = "EFECTIVO"
    TRANSFERENCIA = "TRANSFERENCIA"
    TARJETA = "TARJETA"
    OTRO = "OTRO"


class PaymentStatus(str, Enum):
    """Estado de cobro derivado de los pagos."""
    PENDIENTE = "PENDIENTE"
    ANTICIPO = "ANTICIPO"
    PAGADO = "PAGADO"
    CANCELADO = "CANCELADO"


# Estados que no se pueden alcanzar con el presupuesto pendiente o rechazado
GATED_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.REPARANDO,
    OrderStatus.LISTO,
    OrderStatus.ENTREGADO,
})

BLOCKING_BUDGET_STATUSES: frozenset[BudgetStatus] = frozenset({
    BudgetStatus.PENDING,
    BudgetStatus.REJECTED,
})

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.ENTREGADO,
    OrderStatus.CANCELADO,
})

STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.RECIBIDO: "Recibido",
    OrderStatus.DIAGNOSTICANDO: "Diagnosticando",
    OrderStatus.REPARANDO: "Reparando",
    OrderStatus.LISTO: "Listo para Entrega",
    OrderStatus.ENTREGADO: "Entregado",
    OrderStatus.CANCELADO: "Cancelado",
}


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _strip_required(v: Optional[str], label: str) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError(f"{label} es requerido")
    return v


# -------------------------------------------------------------------
# Colecciones hijas del agregado
# -------------------------------------------------------------------

class UsedPart(BaseModel):
    """
    Repuesto usado (snapshot).

    `part_id` puede apuntar a un repuesto ya eliminado del inventario.
    """
    part_id: Optional[uuid.UUID] = None
    part_name: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(default=1, ge=1)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))


class SelectedService(BaseModel):
    """Servicio del catálogo incluido en la orden (snapshot)."""
    id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, max_length=200)
    base_price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    linked_part_id: Optional[uuid.UUID] = None
    linked_part_name: Optional[str] = None
    linked_part_cost: Optional[Decimal] = None


class StatusChange(BaseModel):
    """Entrada del historial de estados."""
    model_config = ConfigDict(populate_by_name=True)

    from_status: OrderStatus = Field(..., alias="from")
    to_status: OrderStatus = Field(..., alias="to")
    date: datetime.datetime
    note: Optional[str] = None


class InternalNote(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    text: str = Field(..., min_length=1, max_length=5000)
    date: datetime.datetime = Field(default_factory=utcnow)


class Payment(BaseModel):
    """Pago registrado. El monto se valida en el libro de pagos."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    amount: Decimal
    method: PaymentMethod = PaymentMethod.EFECTIVO
    date: datetime.datetime = Field(default_factory=utcnow)
    note: Optional[str] = None


# -------------------------------------------------------------------
# Agregado
# -------------------------------------------------------------------

class OrderAggregate(BaseModel):
    """
    Orden de reparación completa: raíz + seis colecciones.

    Se lee y se escribe siempre como una unidad. `total_paid` y
    `balance_due` se calculan, nunca se almacenan; `payment_status` se
    recalcula en cada lectura y guardado.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    order_number: str
    version: int = 0

    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None

    device_type: str
    device_brand: Optional[str] = None
    device_model: Optional[str] = None
    serial_number: Optional[str] = None
    accessories: Optional[str] = None

    problem_description: str
    diagnosis: Optional[str] = None
    detailed_diagnosis: Optional[str] = None

    estimated_cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    parts_cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    estimated_delivery: Optional[datetime.date] = None
    signature: Optional[str] = None

    status: OrderStatus = OrderStatus.RECIBIDO
    payment_status: PaymentStatus = PaymentStatus.PENDIENTE

    budget_status: BudgetStatus = BudgetStatus.NONE
    budget_sent_at: Optional[datetime.datetime] = None
    budget_responded_at: Optional[datetime.datetime] = None
    budget_note: Optional[str] = None
    client_note: Optional[str] = None
    approval_signature: Optional[str] = None

    created_at: datetime.datetime = Field(default_factory=utcnow)
    updated_at: datetime.datetime = Field(default_factory=utcnow)

    used_parts: list[UsedPart] = Field(default_factory=list)
    selected_services: list[SelectedService] = Field(default_factory=list)
    status_history: list[StatusChange] = Field(default_factory=list)
    internal_notes: list[InternalNote] = Field(default_factory=list)
    device_photos: list[str] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)

    @computed_field
    @property
    def total_paid(self) -> Decimal:
        """Suma de los pagos registrados."""
        return sum((p.amount for p in self.payments), Decimal("0"))

    @computed_field
    @property
    def balance_due(self) -> Decimal:
        """Saldo pendiente (costo estimado - pagado)."""
        return self.estimated_cost - self.total_paid


# -------------------------------------------------------------------
# Schemas de entrada
# -------------------------------------------------------------------

class OrderCreate(BaseModel):
    """
    Datos de recepción de una orden nueva.

    Nombre, teléfono, tipo de equipo y descripción del problema son
    obligatorios y no pueden quedar vacíos tras quitar espacios.
    """
    customer_name: str = Field(..., max_length=200)
    customer_phone: str = Field(..., max_length=30)
    customer_email: Optional[str] = Field(None, max_length=200)
    device_type: str = Field(..., max_length=100)
    device_brand: Optional[str] = Field(None, max_length=100)
    device_model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    accessories: Optional[str] = Field(None, max_length=2000)
    problem_description: str = Field(..., max_length=5000)
    diagnosis: Optional[str] = Field(None, max_length=5000)
    estimated_cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    parts_cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    estimated_delivery: Optional[datetime.date] = None
    signature: Optional[str] = None
    device_photos: list[str] = Field(default_factory=list)
    used_parts: list[UsedPart] = Field(default_factory=list)
    selected_services: list[SelectedService] = Field(default_factory=list)
    internal_notes: list[InternalNote] = Field(default_factory=list)

    @field_validator("customer_name")
    @classmethod
    def validate_customer_name(cls, v: str) -> str:
        return _strip_required(v, "El nombre del cliente")

    @field_validator("customer_phone")
    @classmethod
    def validate_customer_phone(cls, v: str) -> str:
        return _strip_required(v, "El teléfono del cliente")

    @field_validator("device_type")
    @classmethod
    def validate_device_type(cls, v: str) -> str:
        return _strip_required(v, "El tipo de equipo")

    @field_validator("problem_description")
    @classmethod
    def validate_problem_description(cls, v: str) -> str:
        return _strip_required(v, "La descripción del problema")

    @field_validator(
        "customer_email", "device_brand", "device_model", "serial_number",
        "accessories", "diagnosis",
    )
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Los textos opcionales vacíos se guardan como ausentes."""
        if v is None:
            return v
        v = v.strip()
        return v or None


# Campos de OrderUpdate que no admiten None (no se pueden borrar)
REQUIRED_ORDER_FIELDS = frozenset({
    "customer_name",
    "customer_phone",
    "device_type",
    "problem_description",
    "estimated_cost",
    "parts_cost",
    "used_parts",
    "selected_services",
    "internal_notes",
    "device_photos",
})


class OrderUpdate(BaseModel):
    """
    Actualización general de una orden.

    Todos los campos son opcionales; solo se aplican los enviados. Las
    colecciones, si se envían, reemplazan la lista completa. El estado se
    procesa primero (historial + bloqueo por presupuesto) y después se
    combinan los demás campos.

    `version` permite detectar que otra petición modificó la orden desde
    que el cliente la leyó.
    """
    status: Optional[OrderStatus] = None
    status_change_note: Optional[str] = Field(None, max_length=1000)
    version: Optional[int] = Field(None, ge=0)

    customer_name: Optional[str] = Field(None, max_length=200)
    customer_phone: Optional[str] = Field(None, max_length=30)
    customer_email: Optional[str] = Field(None, max_length=200)
    device_type: Optional[str] = Field(None, max_length=100)
    device_brand: Optional[str] = Field(None, max_length=100)
    device_model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    accessories: Optional[str] = Field(None, max_length=2000)
    problem_description: Optional[str] = Field(None, max_length=5000)
    diagnosis: Optional[str] = Field(None, max_length=5000)
    detailed_diagnosis: Optional[str] = Field(None, max_length=10000)
    estimated_cost: Optional[Decimal] = Field(None, ge=Decimal("0"))
    parts_cost: Optional[Decimal] = Field(None, ge=Decimal("0"))
    estimated_delivery: Optional[datetime.date] = None
    signature: Optional[str] = None

    used_parts: Optional[list[UsedPart]] = None
    selected_services: Optional[list[SelectedService]] = None
    internal_notes: Optional[list[InternalNote]] = None
    device_photos: Optional[list[str]] = None

    @field_validator("customer_name", "customer_phone", "device_type", "problem_description")
    @classmethod
    def validate_required_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v, "El campo")


class PaymentCreate(BaseModel):
    """Registro de un pago."""
    amount: Decimal = Field(..., gt=Decimal("0"), description="Monto pagado (> 0)")
    method: PaymentMethod = PaymentMethod.EFECTIVO
    date: Optional[datetime.datetime] = None
    note: Optional[str] = Field(None, max_length=500)


class NoteCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _strip_required(v, "El texto de la nota")


class PhotoCreate(BaseModel):
    url: str = Field(..., min_length=1)


class BudgetSend(BaseModel):
    """Envío del presupuesto al cliente (lado del taller)."""
    estimated_cost: Optional[Decimal] = Field(None, ge=Decimal("0"))
    budget_note: Optional[str] = Field(None, max_length=2000)


class BudgetDecision(BaseModel):
    """
    Decisión del cliente sobre el presupuesto.

    Attributes:
        action: approve | reject
        client_note: Comentario opcional del cliente
        approval_signature: Firma (obligatoria para aprobar)
    """
    action: BudgetAction
    client_note: Optional[str] = Field(None, max_length=2000)
    approval_signature: Optional[str] = None


# -------------------------------------------------------------------
# Schemas de salida
# -------------------------------------------------------------------

class OrderList(BaseModel):
    """
    Respuesta paginada de órdenes.

    Attributes:
        items: Órdenes de la página
        total: Total de registros
        page: Página actual
        per_page: Registros por página
        total_pages: Total de páginas (calculado)
    """
    items: list[OrderAggregate]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "OrderList":
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self


class OrderPublicRead(BaseModel):
    """
    Vista de la orden para el portal de clientes.

    Omite notas internas, firmas y datos de costo interno.
    """
    id: uuid.UUID
    order_number: str
    customer_name: str
    device_type: str
    device_brand: Optional[str] = None
    device_model: Optional[str] = None
    problem_description: str
    diagnosis: Optional[str] = None
    detailed_diagnosis: Optional[str] = None
    estimated_cost: Decimal
    estimated_delivery: Optional[datetime.date] = None
    status: OrderStatus
    status_history: list[StatusChange]
    budget_status: BudgetStatus
    budget_sent_at: Optional[datetime.datetime] = None
    budget_note: Optional[str] = None
    selected_services: list[SelectedService]
    payment_status: PaymentStatus
    total_paid: Decimal
    balance_due: Decimal
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @classmethod
    def from_aggregate(cls, order: OrderAggregate) -> "OrderPublicRead":
        data = order.model_dump(include=set(cls.model_fields) - {"total_paid", "balance_due"})
        return cls(**data, total_paid=order.total_paid, balance_due=order.balance_due)


class BudgetDecisionResult(BaseModel):
    success: bool = True
    budget_status: BudgetStatus
    status: OrderStatus


class WhatsAppMessage(BaseModel):
    """Mensaje de WhatsApp generado a partir de una plantilla."""
    message: str
    url: str
