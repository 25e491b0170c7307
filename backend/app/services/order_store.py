"""
Almacén del agregado Orden
Proyecto: Taller Manager (Gestión de Taller)

Lee y escribe la orden completa (fila raíz + seis tablas hijas) como una
unidad dentro de una sola transacción. Cada guardado borra y vuelve a
insertar las filas hijas a partir de las listas del agregado, por lo que el
llamador siempre pasa el estado completo deseado, nunca un parche.
"""

from __future__ import annotations

import datetime
import logging
import re
import uuid
from typing import Optional, Sequence

from sqlalchemy import and_, delete, func, insert, or_, select, true, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, DuplicateError, NotFoundError, StorageError
from app.models import (
    DevicePhoto,
    Order,
    OrderNote,
    OrderNumberCounter,
    OrderPart,
    OrderPayment,
    OrderServiceLine,
    OrderStatusHistory,
)
from app.schemas.order import (
    InternalNote,
    OrderAggregate,
    OrderStatus,
    Payment,
    SelectedService,
    StatusChange,
    UsedPart,
    utcnow,
)
from app.services import payment_ledger

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD"

# Columnas escalares de la fila raíz que se copian tal cual desde el agregado
_ROOT_FIELDS = (
    "customer_name",
    "customer_phone",
    "customer_email",
    "device_type",
    "device_brand",
    "device_model",
    "serial_number",
    "accessories",
    "problem_description",
    "diagnosis",
    "detailed_diagnosis",
    "estimated_cost",
    "parts_cost",
    "estimated_delivery",
    "signature",
    "budget_sent_at",
    "budget_responded_at",
    "budget_note",
    "client_note",
    "approval_signature",
    "updated_at",
)

_CHILD_MODELS = (
    OrderPart,
    OrderServiceLine,
    OrderStatusHistory,
    OrderNote,
    DevicePhoto,
    OrderPayment,
)

_LOAD_OPTIONS = (
    selectinload(Order.used_parts),
    selectinload(Order.selected_services),
    selectinload(Order.status_history),
    selectinload(Order.notes),
    selectinload(Order.photos),
    selectinload(Order.payments),
)


def _aware(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """SQLite devuelve datetimes sin zona: se interpretan como UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=datetime.timezone.utc)


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


# ------------------------------------------------------------
# Mapeo fila <-> agregado
# ------------------------------------------------------------
def to_aggregate(row: Order) -> OrderAggregate:
    """Convierte la fila raíz con sus hijas cargadas en un OrderAggregate."""
    order = OrderAggregate(
        id=row.id,
        order_number=row.order_number,
        version=row.version,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        customer_email=row.customer_email,
        device_type=row.device_type,
        device_brand=row.device_brand,
        device_model=row.device_model,
        serial_number=row.serial_number,
        accessories=row.accessories,
        problem_description=row.problem_description,
        diagnosis=row.diagnosis,
        detailed_diagnosis=row.detailed_diagnosis,
        estimated_cost=row.estimated_cost,
        parts_cost=row.parts_cost,
        estimated_delivery=row.estimated_delivery,
        signature=row.signature,
        status=OrderStatus(row.status),
        payment_status=row.payment_status,
        budget_status=row.budget_status,
        budget_sent_at=_aware(row.budget_sent_at),
        budget_responded_at=_aware(row.budget_responded_at),
        budget_note=row.budget_note,
        client_note=row.client_note,
        approval_signature=row.approval_signature,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        used_parts=[
            UsedPart(
                part_id=p.part_id,
                part_name=p.part_name,
                quantity=p.quantity,
                unit_cost=p.unit_cost,
            )
            for p in row.used_parts
        ],
        selected_services=[
            SelectedService(
                id=s.service_id,
                name=s.service_name,
                base_price=s.base_price,
                linked_part_id=s.linked_part_id,
                linked_part_name=s.linked_part_name,
                linked_part_cost=s.linked_part_cost,
            )
            for s in row.selected_services
        ],
        status_history=[
            StatusChange(
                from_status=h.from_status,
                to_status=h.to_status,
                date=_aware(h.changed_at),
                note=h.note,
            )
            for h in row.status_history
        ],
        internal_notes=[
            InternalNote(id=n.note_id, text=n.text, date=_aware(n.created_on))
            for n in row.notes
        ],
        device_photos=[photo.url for photo in row.photos],
        payments=[
            Payment(
                id=p.payment_id,
                amount=p.amount,
                method=p.method,
                date=_aware(p.paid_at),
                note=p.note,
            )
            for p in row.payments
        ],
    )
    return payment_ledger.refresh(order)


def _child_rows(order: OrderAggregate) -> dict:
    """Filas de las seis tablas hijas, con `position` según el orden de la lista."""
    return {
        OrderPart: [
            {
                "order_id": order.id,
                "position": i,
                "part_id": p.part_id,
                "part_name": p.part_name,
                "quantity": p.quantity,
                "unit_cost": p.unit_cost,
            }
            for i, p in enumerate(order.used_parts)
        ],
        OrderServiceLine: [
            {
                "order_id": order.id,
                "position": i,
                "service_id": s.id,
                "service_name": s.name,
                "base_price": s.base_price,
                "linked_part_id": s.linked_part_id,
                "linked_part_name": s.linked_part_name,
                "linked_part_cost": s.linked_part_cost,
            }
            for i, s in enumerate(order.selected_services)
        ],
        OrderStatusHistory: [
            {
                "order_id": order.id,
                "position": i,
                "from_status": h.from_status.value,
                "to_status": h.to_status.value,
                "changed_at": h.date,
                "note": h.note,
            }
            for i, h in enumerate(order.status_history)
        ],
        OrderNote: [
            {
                "order_id": order.id,
                "position": i,
                "note_id": n.id,
                "text": n.text,
                "created_on": n.date,
            }
            for i, n in enumerate(order.internal_notes)
        ],
        DevicePhoto: [
            {"order_id": order.id, "position": i, "url": url}
            for i, url in enumerate(order.device_photos)
        ],
        OrderPayment: [
            {
                "order_id": order.id,
                "position": i,
                "payment_id": p.id,
                "amount": p.amount,
                "method": p.method.value,
                "paid_at": p.date,
                "note": p.note,
            }
            for i, p in enumerate(order.payments)
        ],
    }


class OrderStore:
    """
    Persistencia transaccional del agregado Orden.

    `save` es dueño de la transacción: confirma al terminar y revierte ante
    cualquier error, de modo que el llamador nunca observa un agregado a
    medio escribir.
    """

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
    async def _load_rows(self, db: AsyncSession, *conditions) -> Sequence[Order]:
        query = (
            select(Order)
            .where(*conditions)
            .options(*_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
            .order_by(Order.created_at.desc(), Order.order_number.desc())
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get(self, db: AsyncSession, order_id: uuid.UUID) -> OrderAggregate:
        """
        Recupera una orden completa por ID.

        Raises:
            NotFoundError: Si la orden no existe
        """
        rows = await self._load_rows(db, Order.id == order_id)
        if not rows:
            logger.warning("Orden no encontrada: %s", order_id)
            raise NotFoundError(f"Orden con ID {order_id} no encontrada")
        return to_aggregate(rows[0])

    async def get_by_number(self, db: AsyncSession, order_number: str) -> OrderAggregate:
        """
        Recupera una orden por su número visible (sin distinguir mayúsculas).

        Raises:
            NotFoundError: Si la orden no existe
        """
        rows = await self._load_rows(
            db, func.upper(Order.order_number) == order_number.strip().upper()
        )
        if not rows:
            logger.warning("Orden no encontrada: %s", order_number)
            raise NotFoundError(f"Orden {order_number} no encontrada")
        return to_aggregate(rows[0])

    async def list(
        self,
        db: AsyncSession,
        status_filter: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[OrderAggregate], int]:
        """
        Lista paginada de órdenes, las más recientes primero.

        Args:
            db: Sesión de base de datos
            status_filter: Filtro opcional por estado
            search: Texto a buscar en cliente, número de orden, marca y modelo
            page: Número de página (desde 1)
            per_page: Elementos por página

        Returns:
            Tupla (órdenes, total)
        """
        conditions = []
        if status_filter:
            conditions.append(Order.status == OrderStatus(status_filter).value)
        if search and search.strip():
            term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Order.customer_name.ilike(term),
                    Order.order_number.ilike(term),
                    Order.device_brand.ilike(term),
                    Order.device_model.ilike(term),
                )
            )

        where = and_(*conditions) if conditions else true()

        count_query = select(func.count()).select_from(Order).where(where)
        total = (await db.execute(count_query)).scalar() or 0

        query = (
            select(Order)
            .where(where)
            .options(*_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
            .order_by(Order.created_at.desc(), Order.order_number.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        rows = (await db.execute(query)).scalars().all()

        logger.debug("Recuperadas %d órdenes de %d", len(rows), total)
        return [to_aggregate(row) for row in rows], total

    async def list_all(self, db: AsyncSession) -> list[OrderAggregate]:
        """Todas las órdenes, las más recientes primero (exportación)."""
        rows = await self._load_rows(db)
        return [to_aggregate(row) for row in rows]

    async def search_by_phone(self, db: AsyncSession, phone: str) -> list[OrderAggregate]:
        """
        Órdenes cuyo teléfono contiene los dígitos indicados.

        Se comparan solo los dígitos, así "55 1234-5678" y "5512345678"
        coinciden.
        """
        digits = _digits(phone)
        if not digits:
            return []

        result = await db.execute(select(Order.id, Order.customer_phone))
        ids = [row.id for row in result if digits in _digits(row.customer_phone)]
        if not ids:
            return []

        rows = await self._load_rows(db, Order.id.in_(ids))
        return [to_aggregate(row) for row in rows]

    # ------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------
    async def save(self, db: AsyncSession, order: OrderAggregate) -> OrderAggregate:
        """
        Guarda el agregado completo en una transacción.

        Una orden con `version == 0` se inserta; cualquier otra se actualiza
        solo si la versión en base de datos coincide con la que leyó el
        llamador. Las filas hijas se borran y se vuelven a insertar.

        Args:
            db: Sesión de base de datos
            order: Estado completo deseado de la orden

        Returns:
            OrderAggregate: La orden releída tras confirmar

        Raises:
            ConflictError: Otra petición guardó la orden entretanto
            NotFoundError: La orden fue eliminada entretanto
            DuplicateError: El número de orden ya existe
            StorageError: Fallo de la base de datos (transacción revertida)
        """
        order = payment_ledger.refresh(order)
        root = {name: getattr(order, name) for name in _ROOT_FIELDS}
        root.update(
            status=order.status.value,
            payment_status=order.payment_status.value,
            budget_status=order.budget_status.value,
        )

        try:
            if order.version == 0:
                await db.execute(
                    insert(Order).values(
                        id=order.id,
                        order_number=order.order_number,
                        created_at=order.created_at,
                        version=1,
                        **root,
                    )
                )
            else:
                root["updated_at"] = utcnow()
                result = await db.execute(
                    update(Order)
                    .where(Order.id == order.id, Order.version == order.version)
                    .values(version=order.version + 1, **root)
                )
                if result.rowcount == 0:
                    exists = await db.scalar(select(Order.id).where(Order.id == order.id))
                    await db.rollback()
                    if exists is None:
                        raise NotFoundError(f"Orden con ID {order.id} no encontrada")
                    logger.warning(
                        "Conflicto de versión en la orden %s (versión %d)",
                        order.order_number,
                        order.version,
                    )
                    raise ConflictError(
                        "La orden fue modificada por otra petición, recárgala e intenta de nuevo",
                        extra={"version": order.version},
                    )

                for model in _CHILD_MODELS:
                    await db.execute(delete(model).where(model.order_id == order.id))

            for model, rows in _child_rows(order).items():
                if rows:
                    await db.execute(insert(model), rows)

            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if order.version == 0:
                logger.warning("Número de orden duplicado: %s", order.order_number)
                raise DuplicateError(
                    f"El número de orden {order.order_number} ya existe",
                    extra={"order_number": order.order_number},
                ) from e
            logger.error("Error de integridad guardando la orden %s: %s", order.order_number, e)
            raise StorageError() from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Error guardando la orden %s: %s", order.order_number, e)
            raise StorageError() from e

        logger.info("Orden %s guardada (versión %d)", order.order_number, order.version + 1)
        return await self.get(db, order.id)

    async def delete(self, db: AsyncSession, order_id: uuid.UUID) -> bool:
        """
        Elimina la orden y sus seis colecciones.

        Raises:
            NotFoundError: Si la orden no existe
            StorageError: Fallo de la base de datos
        """
        try:
            for model in _CHILD_MODELS:
                await db.execute(delete(model).where(model.order_id == order_id))
            result = await db.execute(delete(Order).where(Order.id == order_id))
            if result.rowcount == 0:
                await db.rollback()
                raise NotFoundError(f"Orden con ID {order_id} no encontrada")
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Error eliminando la orden %s: %s", order_id, e)
            raise StorageError() from e

        logger.info("Orden eliminada: %s", order_id)
        return True

    # ------------------------------------------------------------
    # Numeración
    # ------------------------------------------------------------
    async def generate_order_number(
        self,
        db: AsyncSession,
        now: Optional[datetime.datetime] = None,
    ) -> str:
        """
        Emite el siguiente número de orden del mes (ORD-YYYYMM-NNNN).

        El contador del prefijo se bloquea con SELECT ... FOR UPDATE y se
        incrementa sin confirmar: la confirmación llega con el `save` de la
        orden, así que número e inserción quedan en la misma transacción.
        Si el contador no existe se inicializa desde el último número ya
        guardado con ese prefijo.
        """
        now = now or utcnow()
        prefix = f"{ORDER_NUMBER_PREFIX}-{now:%Y%m}"

        last_number = await db.scalar(
            select(func.max(Order.order_number)).where(Order.order_number.like(f"{prefix}-%"))
        )
        seed = 0
        if last_number:
            match = re.search(r"(\d+)$", last_number)
            if match:
                seed = int(match.group(1))

        counter = await db.get(
            OrderNumberCounter,
            prefix,
            with_for_update=True,
            populate_existing=True,
        )
        if counter is None:
            counter = OrderNumberCounter(prefix=prefix, last_value=seed)
            db.add(counter)

        counter.last_value = max(counter.last_value, seed) + 1
        await db.flush()

        number = f"{prefix}-{counter.last_value:04d}"
        logger.debug("Número de orden generado: %s", number)
        return number
