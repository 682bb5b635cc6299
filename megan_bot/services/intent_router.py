import re
from enum import Enum

from megan_bot.logging_config import LoggerAdapter, get_logger
from megan_bot.schemas.messenger import EventKind, MessagingEvent
from megan_bot.services.advisor_service import AdvisorService
from megan_bot.services.catalog_service import match_promo_trigger
from megan_bot.services.purchase_flow import PurchaseFlow
from megan_bot.services.reply_service import (
    CATEGORY_BY_PAYLOAD,
    MSG_ADVISOR_ENTRY,
    MSG_ADVISOR_EXIT_BUTTON,
    MSG_ADVISOR_EXIT_TEXT,
    MSG_LIMA_DATA_REQUEST,
    MSG_MODEL_NOT_FOUND,
    MSG_NOT_UNDERSTOOD,
    MSG_PROVINCIA_DATA_REQUEST,
    MSG_THANKS,
    ReplyService,
)
from megan_bot.services.session_store import SessionStore
from megan_bot.services.state_machine import Gender, Stage, is_purchase_stage

logger = get_logger("intent_router")

EXIT_COMMAND = "salir"
GRATITUDE_PATTERN = re.compile(r"^(gracias|muchas gracias|mil gracias|gracias!|gracias :\))$", re.IGNORECASE)
MENU_TRIGGERS = ("ver otros modelos", "hola")
BUY_PREFIX = "COMPRAR_"


class TextRoute(str, Enum):
    ADVISOR_EXIT = "advisor_exit"
    ADVISOR = "advisor"
    GRATITUDE = "gratitude"
    PURCHASE = "purchase"
    PROMO = "promo"
    MENU = "menu"
    FIRST_MESSAGE = "first_message"
    AI_FALLBACK = "ai_fallback"
    BLANK = "blank"


class IntentRouter:
    """Routes one inbound Messenger event to a scripted flow or the advisor."""

    def __init__(
        self,
        store: SessionStore,
        replies: ReplyService,
        purchase: PurchaseFlow,
        advisor: AdvisorService,
    ):
        self.store = store
        self.replies = replies
        self.purchase = purchase
        self.advisor = advisor

    async def handle_event(self, event: MessagingEvent) -> None:
        sender_id = event.sender_id
        log = LoggerAdapter(logger, {"sender_id": sender_id})
        kind = event.kind

        try:
            if kind == EventKind.QUICK_REPLY:
                handled = await self.handle_quick_reply(sender_id, event.message.quick_reply.payload)
                if not handled and event.message.text:
                    await self.handle_text(sender_id, event.message.text)
            elif kind == EventKind.TEXT:
                await self.handle_text(sender_id, event.message.text)
            elif kind == EventKind.POSTBACK:
                await self.handle_postback(sender_id, event.postback.payload)
            else:
                log.debug("Ignoring messaging event without text or payload")
        except Exception as e:
            log.error(f"Event handling failed: {e}", exc_info=True, context={"kind": kind.value})

    async def handle_text(self, sender_id: str, raw_text: str) -> TextRoute:
        self.store.touch(sender_id)

        text = raw_text.strip()
        if not text:
            logger.debug("Ignoring blank text", extra={"context": {"sender_id": sender_id}})
            return TextRoute.BLANK

        normalized = text.lower()
        session = self.store.get(sender_id)
        first_message = self.store.mark_text_seen(sender_id)

        route = await self._route_text(sender_id, session.stage, text, normalized, first_message)
        logger.info(
            "Text routed",
            extra={"context": {"sender_id": sender_id, "route": route.value, "stage": session.stage.value}},
        )
        return route

    async def _route_text(
        self,
        sender_id: str,
        stage: Stage,
        text: str,
        normalized: str,
        first_message: bool,
    ) -> TextRoute:
        if stage == Stage.ADVISOR:
            if normalized == EXIT_COMMAND:
                await self.exit_advisor(sender_id, MSG_ADVISOR_EXIT_TEXT)
                return TextRoute.ADVISOR_EXIT
            await self.advisor.ask(sender_id, text)
            return TextRoute.ADVISOR

        if GRATITUDE_PATTERN.match(normalized):
            await self.replies.text(sender_id, MSG_THANKS)
            return TextRoute.GRATITUDE

        if is_purchase_stage(stage):
            await self.purchase.handle(sender_id, text)
            return TextRoute.PURCHASE

        promo_key = match_promo_trigger(normalized)
        if promo_key:
            product = self.replies.catalog.promo(promo_key)
            if product:
                await self.replies.product_card(sender_id, product)
            else:
                logger.warning("Promo not configured", extra={"context": {"promo": promo_key}})
                await self.replies.text(sender_id, MSG_MODEL_NOT_FOUND)
            return TextRoute.PROMO

        if any(trigger in normalized for trigger in MENU_TRIGGERS):
            await self.replies.main_menu(sender_id)
            return TextRoute.MENU

        # The very first unmatched text gets no answer at all.
        if first_message:
            return TextRoute.FIRST_MESSAGE

        await self.advisor.ask(sender_id, text)
        return TextRoute.AI_FALLBACK

    async def handle_quick_reply(self, sender_id: str, payload: str) -> bool:
        """Returns False for payloads that should be treated as plain text."""
        if payload.startswith(BUY_PREFIX):
            await self.replies.ask_location(sender_id)
            return True

        if payload == "UBICACION_LIMA":
            session = self.store.set_stage(sender_id, Stage.AWAITING_DATA_LIMA)
            session.warning_sent = False
            await self.replies.text(sender_id, MSG_LIMA_DATA_REQUEST)
            return True

        if payload == "UBICACION_PROVINCIA":
            session = self.store.set_stage(sender_id, Stage.AWAITING_DATA_PROVINCIA)
            session.warning_sent = False
            session.province_confirmation_sent = False
            await self.replies.text(sender_id, MSG_PROVINCIA_DATA_REQUEST)
            return True

        return False

    async def handle_postback(self, sender_id: str, payload: str) -> None:
        if payload in (Gender.CABALLEROS.value, Gender.DAMAS.value):
            await self.replies.gender_submenu(sender_id, Gender(payload))

        elif payload == "ASESOR":
            session = self.store.enter_advisor(sender_id)
            await self.replies.advisor_reply(sender_id, MSG_ADVISOR_ENTRY, session.advisor_message_count)

        elif payload in CATEGORY_BY_PAYLOAD:
            await self.replies.catalog_listing(sender_id, CATEGORY_BY_PAYLOAD[payload])

        elif payload == "VER_MODELOS":
            await self.replies.main_menu(sender_id)

        elif payload == "SALIR_ASESOR":
            await self.exit_advisor(sender_id, MSG_ADVISOR_EXIT_BUTTON)

        elif payload.startswith(BUY_PREFIX):
            await self.replies.ask_location(sender_id)

        else:
            logger.info("Unknown postback payload", extra={"context": {"sender_id": sender_id, "payload": payload}})
            await self.replies.text(sender_id, MSG_NOT_UNDERSTOOD)

    async def exit_advisor(self, sender_id: str, farewell: str) -> None:
        self.store.end(sender_id)
        await self.replies.text(sender_id, farewell)
        await self.replies.main_menu(sender_id)
