from dataclasses import dataclass
from enum import Enum
from typing import Optional

from megan_bot.logging_config import get_logger
from megan_bot.services.alert_service import AlertService
from megan_bot.services.catalog_service import CatalogService
from megan_bot.services.llm.base import LLMProvider
from megan_bot.services.reply_service import (
    MSG_ADVISOR_ERROR,
    MSG_ASK_GENDER,
    MSG_MODEL_NOT_FOUND,
    ReplyService,
)
from megan_bot.services.result import Result
from megan_bot.services.session_store import SessionStore, UserSession
from megan_bot.services.state_machine import InvalidStageError, Stage, awaiting_type, parse_gender

logger = get_logger("advisor_service")

CATALOG_PREAMBLE = "Aquí tienes los datos del catálogo: "


class CommandKind(str, Enum):
    SHOW_PRODUCT = "show_product"
    SHOW_CATALOG = "show_catalog"
    ASK_GENDER = "ask_gender"
    ASK_TYPE = "ask_type"
    REPLY = "reply"


@dataclass(frozen=True)
class AdvisorCommand:
    kind: CommandKind
    payload: str = ""


_PREFIX_COMMANDS = (
    ("MOSTRAR_MODELO:", CommandKind.SHOW_PRODUCT),
    ("MOSTRAR_CATALOGO:", CommandKind.SHOW_CATALOG),
    ("PREGUNTAR_TIPO:", CommandKind.ASK_TYPE),
)


def parse_advisor_reply(reply: str) -> AdvisorCommand:
    """Turn the model's raw reply into a command. Anything unrecognised is a plain reply."""
    text = (reply or "").strip()
    for prefix, kind in _PREFIX_COMMANDS:
        if text.startswith(prefix):
            return AdvisorCommand(kind, text[len(prefix):].strip())
    if text == "PEDIR_CATALOGO":
        return AdvisorCommand(CommandKind.ASK_GENDER)
    return AdvisorCommand(CommandKind.REPLY, text)


def build_context(system_prompt: str, catalog_json: str, history: list[dict]) -> list[dict]:
    system = {"role": "system", "content": f"{system_prompt}\n\n{CATALOG_PREAMBLE}{catalog_json}"}
    return [system, *history]


class AdvisorService:
    """Delegates free text to the AI model and carries out what it answers."""

    def __init__(
        self,
        store: SessionStore,
        replies: ReplyService,
        catalog: CatalogService,
        llm: LLMProvider,
        model: Optional[str] = None,
        alerts: Optional[AlertService] = None,
    ):
        self.store = store
        self.replies = replies
        self.catalog = catalog
        self.llm = llm
        self.model = model
        self.alerts = alerts or AlertService()

    async def ask(self, sender_id: str, message: str) -> Result[AdvisorCommand]:
        session = self.store.get(sender_id)
        session.add_turn("user", message)
        if session.stage == Stage.ADVISOR:
            session.advisor_message_count = (session.advisor_message_count or 0) + 1

        context = build_context(self.catalog.system_prompt, self.catalog.as_prompt_json(), session.conversation_history)

        try:
            response = await self.llm.generate(context, model=self.model)
        except Exception as e:
            logger.error(
                f"Advisor call failed: {e}",
                exc_info=True,
                extra={"context": {"sender_id": sender_id, "history_len": len(session.conversation_history)}},
            )
            await self.alerts.error("Advisor call failed", {"sender_id": sender_id, "error": str(e)[:300]})
            await self.replies.text(sender_id, MSG_ADVISOR_ERROR)
            return Result.failure(str(e), "llm_error")

        session.add_turn("assistant", response.content)
        command = parse_advisor_reply(response.content)
        logger.info(
            "Advisor replied",
            extra={"context": {"sender_id": sender_id, "command": command.kind.value}},
        )
        await self.execute(sender_id, session, command)
        return Result.success(command)

    async def execute(self, sender_id: str, session: UserSession, command: AdvisorCommand) -> None:
        if command.kind == CommandKind.SHOW_PRODUCT:
            product = self.catalog.find_product(command.payload)
            if product:
                await self.replies.product_card(sender_id, product)
            else:
                logger.warning("Advisor asked for unknown product", extra={"context": {"code": command.payload}})
                await self.replies.text(sender_id, MSG_MODEL_NOT_FOUND)

        elif command.kind == CommandKind.SHOW_CATALOG:
            await self.replies.catalog_listing(sender_id, command.payload)

        elif command.kind == CommandKind.ASK_GENDER:
            await self.replies.text(sender_id, MSG_ASK_GENDER)
            self.store.set_stage(sender_id, Stage.AWAITING_GENDER)

        elif command.kind == CommandKind.ASK_TYPE:
            try:
                gender = parse_gender(command.payload)
            except InvalidStageError:
                logger.warning("Advisor sent unknown gender", extra={"context": {"gender": command.payload}})
                await self.replies.text(sender_id, MSG_ASK_GENDER)
                self.store.set_stage(sender_id, Stage.AWAITING_GENDER)
                return
            self.store.set_stage(sender_id, awaiting_type(gender))
            await self.replies.gender_submenu(sender_id, gender)

        else:
            await self.replies.advisor_reply(sender_id, command.payload, session.advisor_message_count)
