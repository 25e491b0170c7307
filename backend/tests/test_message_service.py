"""
Tests de los mensajes de WhatsApp.
"""

from decimal import Decimal
from urllib.parse import unquote

from app.schemas.order import OrderStatus
from app.schemas.settings import BusinessSettingsBase
from app.services import message_service, payment_ledger
from conftest import make_order


class TestRenderTemplate:
    """Tests de render_template."""

    def test_all_placeholders(self):
        order = payment_ledger.add_payment(
            make_order(status=OrderStatus.LISTO, estimated_cost=Decimal("1500")),
            Decimal("265.50"),
        )
        template = "{nombre} | {equipo} | {orden} | {estado} | {total}"

        text = message_service.render_template(template, order, "MXN")

        assert text == (
            "María López | Laptop Lenovo ThinkPad T14 | ORD-202503-0001 | "
            "Listo para Entrega | $1,234.50 MXN"
        )

    def test_unknown_braces_kept(self, order):
        text = message_service.render_template("Hola {nombre}, {otro} {}", order)

        assert text == "Hola María López, {otro} {}"

    def test_device_without_brand(self):
        order = make_order(device_brand=None, device_model="X1")

        assert message_service.describe_device(order) == "Laptop X1"


class TestWhatsAppLink:

    def test_local_number_gets_country_code(self):
        assert message_service.whatsapp_number("(55) 1234-5678", "52") == "525512345678"

    def test_international_number_unchanged(self):
        assert message_service.whatsapp_number("+52 1 55 1234 5678", "52") == "5215512345678"

    def test_link_is_url_encoded(self):
        url = message_service.whatsapp_link("5512345678", "Hola María & cía", "52")

        assert url.startswith("https://wa.me/525512345678?text=")
        assert " " not in url
        assert unquote(url.split("text=", 1)[1]) == "Hola María & cía"

    def test_build_ready_message(self, order):
        """Test plantilla de equipo listo con la configuración por defecto."""
        message = message_service.build_message(order, "ready", BusinessSettingsBase())

        assert message.message.startswith("Hola María López, su equipo Laptop Lenovo ThinkPad T14 está listo")
        assert "ORD-202503-0001" in message.message
        assert message.url.startswith("https://wa.me/525512345678?text=")

    def test_build_created_message(self, order):
        business = BusinessSettingsBase(whatsapp_template_created="Orden {orden} recibida", country_code="34")

        message = message_service.build_message(order, "created", business)

        assert message.message == "Orden ORD-202503-0001 recibida"
        assert message.url.startswith("https://wa.me/345512345678")
