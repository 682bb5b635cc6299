"""User-facing copy and the layouts of every outbound message."""

from megan_bot.logging_config import get_logger
from megan_bot.schemas.catalog import Product
from megan_bot.services.catalog_service import CatalogService
from megan_bot.services.messenger_service import (
    MessengerService,
    postback_button,
    quick_reply,
    web_url_button,
)
from megan_bot.services.state_machine import Gender

logger = get_logger("reply_service")

MSG_MAIN_MENU = (
    "👋 ¡Hola! Bienvenido a Tiendas Megan\n"
    "⌚💎 Descubre tu reloj ideal o el regalo perfecto 🎁\n"
    "Elige una opción para ayudarte 👇"
)
MSG_GENDER_SUBMENU = {
    Gender.CABALLEROS: "🔥 ¡Excelente elección! ¿Qué tipo de reloj para caballeros le interesa?",
    Gender.DAMAS: "🔥 ¡Excelente elección! ¿Qué tipo de reloj para damas le interesa?",
}
MSG_ASK_GENDER = "😊 Claro que sí. ¿El catálogo que desea ver es para caballeros o para damas?"
MSG_EMPTY_CATEGORY = "❌ No tenemos productos en esta categoría por ahora."
MSG_MODEL_NOT_FOUND = "😔 Lo siento, no encontramos ese modelo en nuestra base de datos."
MSG_THANKS = "😄 ¡Gracias a usted! Estamos para servirle."
MSG_NOT_UNDERSTOOD = "❓ No entendí su selección, por favor intente de nuevo."

MSG_ASK_LOCATION = "😊 Por favor indíquenos, ¿su pedido es para Lima o para Provincia?"
MSG_LIMA_DATA_REQUEST = (
    "😊 Claro que sí. Por favor, para enviar su pedido indíquenos los siguientes datos:\n\n"
    "✅ Nombre completo ✍️\n"
    "✅ Número de WhatsApp 📱\n"
    "✅ Dirección exacta 📍\n"
    "✅ Una referencia de cómo llegar a su domicilio 🏠"
)
MSG_PROVINCIA_DATA_REQUEST = (
    "😊 Claro que sí. Por favor, permítanos los siguientes datos para programar su pedido:\n\n"
    "✅ Nombre completo ✍️\n"
    "✅ DNI 🪪\n"
    "✅ Número de WhatsApp 📱\n"
    "✅ Agencia Shalom que le queda más cerca 🚚"
)
MSG_LIMA_CONFIRMED = (
    "✅ Su orden ha sido confirmada ✔\nEnvío de: 1 Reloj Premium\n"
    "👉 Forma: Envío express a domicilio\n"
    "👉 Datos recibidos correctamente.\n"
    "💰 El costo incluye S/10 adicionales por envío a domicilio."
)
MSG_PROVINCIA_CONFIRMED = (
    "✅ Su orden ha sido confirmada ✔\nEnvío de: 1 Reloj Premium\n"
    "👉 Forma: Envío a recoger en Agencia Shalom\n"
    "👉 Datos recibidos correctamente.\n"
)
MSG_PAYMENT_INSTRUCTIONS = (
    "😊 Estimado cliente, para enviar su pedido necesitamos un adelanto simbólico de 20 soles "
    "por motivo de seguridad.\n\n"
    "📱 YAPE: 979 434 826 (Paulina Gonzales Ortega)\n"
    "🏦 BCP: 19303208489096\n"
    "🏦 CCI: 00219310320848909613\n\n"
    "📤 Envíe la captura de su pago aquí para registrar su adelanto."
)
MSG_DATA_REMINDER = (
    "📌 Por favor, asegúrese de enviar sus datos correctos (nombre, WhatsApp, DNI/dirección y agencia Shalom)."
)

MSG_ADVISOR_ENTRY = (
    "😊 ¡Claro que sí! Estamos listos para responder todas sus dudas y consultas. "
    "Por favor, escríbenos qué te gustaría saber ✍️"
)
MSG_ADVISOR_EXIT_TEXT = "🚪 Has salido del chat con asesor. Volviendo al menú principal..."
MSG_ADVISOR_EXIT_BUTTON = "🚪 Has salido del chat con asesor."
MSG_ADVISOR_ERROR = "⚠️ Lo siento, hubo un problema al conectarme con el asesor. Intenta nuevamente en unos minutos."

MSG_INACTIVITY_NUDGE = (
    "¿Le gustaría que le ayudemos en algo más o desea continuar la conversación con un asesor por WhatsApp?"
)
MSG_SESSION_ENDED = "⏳ Su sesión ha terminado."

CATEGORY_BY_PAYLOAD = {
    "CABALLEROS_AUTO": "caballeros_automaticos",
    "CABALLEROS_CUARZO": "caballeros_cuarzo",
    "DAMAS_AUTO": "damas_automaticos",
    "DAMAS_CUARZO": "damas_cuarzo",
}


class ReplyService:
    def __init__(
        self,
        messenger: MessengerService,
        catalog: CatalogService,
        whatsapp_url: str,
        advisor_exit_button_after: int = 6,
    ):
        self.messenger = messenger
        self.catalog = catalog
        self.whatsapp_url = whatsapp_url
        self.advisor_exit_button_after = advisor_exit_button_after

    @property
    def whatsapp_buy_url(self) -> str:
        return f"{self.whatsapp_url}?text=Hola%20quiero%20comprar%20este%20modelo"

    async def text(self, sender_id: str, text: str) -> None:
        await self.messenger.send_text(sender_id, text)

    async def main_menu(self, sender_id: str) -> None:
        await self.messenger.send_buttons(
            sender_id,
            MSG_MAIN_MENU,
            [
                postback_button("⌚ Para Caballeros", "CABALLEROS"),
                postback_button("🕒 Para Damas", "DAMAS"),
                postback_button("💬 Hablar con Asesor", "ASESOR"),
            ],
        )

    async def gender_submenu(self, sender_id: str, gender: Gender) -> None:
        await self.messenger.send_buttons(
            sender_id,
            MSG_GENDER_SUBMENU[gender],
            [
                postback_button("⌚ Automáticos ⚙️", f"{gender.value}_AUTO"),
                postback_button("🕑 De cuarzo ✨", f"{gender.value}_CUARZO"),
            ],
        )

    async def product_card(self, sender_id: str, product: Product) -> None:
        """Image attachment followed by the product text and its three buttons."""
        await self.messenger.send_image(sender_id, product.image_url)
        await self.messenger.send_buttons(
            sender_id,
            product.card_text(),
            [
                postback_button("🛍️ Comprar ahora", f"COMPRAR_{product.code}"),
                web_url_button("📞 Comprar por WhatsApp", self.whatsapp_buy_url),
                postback_button("📖 Ver otros modelos", "VER_MODELOS"),
            ],
        )

    async def catalog_listing(self, sender_id: str, category: str) -> None:
        products = self.catalog.products(category)
        if not products:
            logger.info("Empty catalog category requested", extra={"context": {"category": category}})
            await self.text(sender_id, MSG_EMPTY_CATEGORY)
            return
        for product in products:
            await self.product_card(sender_id, product)

    async def ask_location(self, sender_id: str) -> None:
        await self.messenger.send_quick_replies(
            sender_id,
            MSG_ASK_LOCATION,
            [quick_reply("🏙 Lima", "UBICACION_LIMA"), quick_reply("🏞 Provincia", "UBICACION_PROVINCIA")],
        )

    async def advisor_reply(self, sender_id: str, text: str, message_count: int | None) -> None:
        """Plain text until the advisor chat is long enough to offer a way back to the menu."""
        if message_count is None or message_count < self.advisor_exit_button_after:
            await self.text(sender_id, text)
            return
        await self.messenger.send_buttons(
            sender_id,
            text,
            [postback_button("↩️ Volver al inicio", "SALIR_ASESOR")],
        )

    async def inactivity_nudge(self, sender_id: str) -> None:
        await self.messenger.send_buttons(
            sender_id,
            MSG_INACTIVITY_NUDGE,
            [web_url_button("📞 Continuar en WhatsApp", self.whatsapp_url)],
        )

    async def session_ended(self, sender_id: str) -> None:
        await self.text(sender_id, MSG_SESSION_ENDED)
