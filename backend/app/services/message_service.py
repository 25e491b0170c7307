"""
Mensajes de WhatsApp
Proyecto: Taller Manager (Gestión de Taller)

Rellena las plantillas configuradas con los datos de la orden y arma el
enlace wa.me. No envía nada: el enlace lo abre el navegador del taller.
"""

import logging
import re
from decimal import Decimal
from urllib.parse import quote

from app.schemas.order import STATUS_LABELS, OrderAggregate, WhatsAppMessage
from app.schemas.settings import BusinessSettingsBase

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{(nombre|equipo|orden|estado|total)\}")

# Longitud de un número nacional sin código de país
LOCAL_PHONE_DIGITS = 10


def format_money(amount: Decimal, currency: str = "MXN") -> str:
    return f"${amount:,.2f} {currency}"


def describe_device(order: OrderAggregate) -> str:
    """Tipo, marca y modelo del equipo en una sola cadena."""
    parts = [order.device_type, order.device_brand, order.device_model]
    return " ".join(p for p in parts if p)


def render_template(template: str, order: OrderAggregate, currency: str = "MXN") -> str:
    """
    Sustituye {nombre}, {equipo}, {orden}, {estado} y {total}.

    Cualquier otra llave se deja tal cual.
    """
    values = {
        "nombre": order.customer_name,
        "equipo": describe_device(order),
        "orden": order.order_number,
        "estado": STATUS_LABELS[order.status],
        "total": format_money(order.balance_due, currency),
    }
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)


def whatsapp_number(phone: str, country_code: str) -> str:
    """Solo dígitos, con el código de país delante si falta."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) <= LOCAL_PHONE_DIGITS and country_code:
        digits = f"{country_code}{digits}"
    return digits


def whatsapp_link(phone: str, message: str, country_code: str) -> str:
    return f"https://wa.me/{whatsapp_number(phone, country_code)}?text={quote(message)}"


def build_message(
    order: OrderAggregate,
    kind: str,
    business: BusinessSettingsBase,
) -> WhatsAppMessage:
    """
    Mensaje de recepción ("created") o de equipo listo ("ready").

    Args:
        order: Orden de reparación
        kind: "created" | "ready"
        business: Configuración con plantillas, moneda y código de país

    Returns:
        WhatsAppMessage con el texto y el enlace wa.me
    """
    template = (
        business.whatsapp_template_ready if kind == "ready"
        else business.whatsapp_template_created
    )
    message = render_template(template, order, business.currency)
    url = whatsapp_link(order.customer_phone, message, business.country_code)
    logger.debug("Mensaje '%s' generado para la orden %s", kind, order.order_number)
    return WhatsAppMessage(message=message, url=url)
