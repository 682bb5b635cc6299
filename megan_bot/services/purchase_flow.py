import re
from dataclasses import dataclass
from typing import Optional

from megan_bot.logging_config import get_logger
from megan_bot.services.reply_service import (
    MSG_DATA_REMINDER,
    MSG_LIMA_CONFIRMED,
    MSG_PAYMENT_INSTRUCTIONS,
    MSG_PROVINCIA_CONFIRMED,
    ReplyService,
)
from megan_bot.services.result import Result
from megan_bot.services.session_store import SessionStore
from megan_bot.services.state_machine import Stage

logger = get_logger("purchase_flow")

_UPPER = "A-ZÁÉÍÓÚÑÜ"
_LOWER = "a-záéíóúñü"

NAME_PATTERN = re.compile(rf"\b[{_UPPER}][{_LOWER}]+(?:\s+[{_UPPER}][{_LOWER}]+){{1,3}}\b")
PHONE_PATTERN = re.compile(r"\b9\d{8}\b")
DNI_PATTERN = re.compile(r"\b\d{8}\b")
ADDRESS_PATTERN = re.compile(
    r"(jirón|jr\.|avenida|av\.|calle|pasaje|mz|mza|lote|urb\.|urbanización)",
    re.IGNORECASE,
)
_DIGIT_PATTERN = re.compile(r"\d")

ERROR_MESSAGES = {
    "missing_name": "📌 Por favor envíe su nombre completo.",
    "invalid_dni": "📌 Su DNI debe tener 8 dígitos. Por favor, envíelo correctamente.",
    "invalid_phone": "📌 Su número de WhatsApp debe tener 9 dígitos y comenzar con 9.",
    "missing_address": "📌 Su dirección debe incluir calle, avenida, jirón o pasaje.",
}


@dataclass(frozen=True)
class OrderData:
    destination: Stage
    name: str
    phone: str
    dni: Optional[str] = None
    address: Optional[str] = None


def _failure(code: str) -> Result[OrderData]:
    return Result.failure(ERROR_MESSAGES[code], code)


def validate_provincia(text: str) -> Result[OrderData]:
    """Name (leading the message), then DNI, then phone. The first missing field decides the error."""
    text = text.strip()
    name = NAME_PATTERN.match(text)
    if not name:
        return _failure("missing_name")
    dni = DNI_PATTERN.search(text)
    if not dni:
        return _failure("invalid_dni")
    phone = PHONE_PATTERN.search(text)
    if not phone:
        return _failure("invalid_phone")
    return Result.success(
        OrderData(Stage.AWAITING_DATA_PROVINCIA, name=name.group(0), phone=phone.group(0), dni=dni.group(0))
    )


def validate_lima(text: str) -> Result[OrderData]:
    """Name (leading the message), then phone, then a street-type keyword."""
    text = text.strip()
    name = NAME_PATTERN.match(text)
    if not name:
        return _failure("missing_name")
    phone = PHONE_PATTERN.search(text)
    if not phone:
        return _failure("invalid_phone")
    address = ADDRESS_PATTERN.search(text)
    if not address:
        return _failure("missing_address")
    return Result.success(
        OrderData(
            Stage.AWAITING_DATA_LIMA,
            name=name.group(0),
            phone=phone.group(0),
            address=text[address.start():].strip(),
        )
    )


def validate_order(stage: Stage, text: str) -> Result[OrderData]:
    if stage == Stage.AWAITING_DATA_PROVINCIA:
        return validate_provincia(text)
    if stage == Stage.AWAITING_DATA_LIMA:
        return validate_lima(text)
    return Result.failure(f"Not collecting order data in stage {stage.value}", "invalid_stage")


def looks_like_order_data(text: str) -> bool:
    """True if the message attempts at least one of the requested fields."""
    return bool(
        NAME_PATTERN.search(text)
        or ADDRESS_PATTERN.search(text)
        or _DIGIT_PATTERN.search(text)
    )


class PurchaseFlow:
    def __init__(self, store: SessionStore, replies: ReplyService):
        self.store = store
        self.replies = replies

    async def handle(self, sender_id: str, text: str) -> Result[OrderData]:
        session = self.store.get(sender_id)
        result = validate_order(session.stage, text)

        if not result.ok:
            if result.failed_with("invalid_stage"):
                return result
            if not session.warning_sent and not looks_like_order_data(text):
                session.warning_sent = True
                await self.replies.text(sender_id, MSG_DATA_REMINDER)
                return result
            await self.replies.text(sender_id, result.error)
            return result

        order = result.value
        logger.info(
            "Order data received",
            extra={"context": {"sender_id": sender_id, "destination": order.destination.value}},
        )

        if order.destination == Stage.AWAITING_DATA_PROVINCIA:
            await self.replies.text(sender_id, MSG_PROVINCIA_CONFIRMED)
            if not session.province_confirmation_sent:
                await self.replies.text(sender_id, MSG_PAYMENT_INSTRUCTIONS)
                session.province_confirmation_sent = True
        else:
            await self.replies.text(sender_id, MSG_LIMA_CONFIRMED)

        self.store.set_stage(sender_id, Stage.NONE)
        return result
