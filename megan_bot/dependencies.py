from dataclasses import dataclass

from fastapi import Request

from megan_bot.config import Settings, settings
from megan_bot.logging_config import get_logger
from megan_bot.services.advisor_service import AdvisorService
from megan_bot.services.alert_service import AlertService
from megan_bot.services.catalog_service import CatalogService
from megan_bot.services.intent_router import IntentRouter
from megan_bot.services.llm.openai_provider import OpenAIProvider
from megan_bot.services.messenger_service import MessengerService
from megan_bot.services.purchase_flow import PurchaseFlow
from megan_bot.services.reply_service import ReplyService
from megan_bot.services.session_store import SessionStore

logger = get_logger("dependencies")


@dataclass
class Bot:
    catalog: CatalogService
    messenger: MessengerService
    replies: ReplyService
    store: SessionStore
    router: IntentRouter

    def close(self) -> None:
        self.store.close()


def build_bot(config: Settings) -> Bot:
    catalog = CatalogService.from_files(config.catalog_path, config.promos_path, config.system_prompt_path)
    messenger = MessengerService(config.page_access_token, api_version=config.graph_api_version)
    replies = ReplyService(
        messenger,
        catalog,
        whatsapp_url=config.whatsapp_url,
        advisor_exit_button_after=config.advisor_exit_button_after,
    )
    store = SessionStore(
        on_nudge=replies.inactivity_nudge,
        on_session_ended=replies.session_ended,
        nudge_after_seconds=config.nudge_after_seconds,
        finalize_after_seconds=config.finalize_after_seconds,
    )
    advisor = AdvisorService(
        store,
        replies,
        catalog,
        llm=OpenAIProvider(
            config.openai_api_key,
            default_model=config.openai_model,
            timeout_seconds=config.openai_timeout_seconds,
        ),
        model=config.openai_model,
        alerts=AlertService(config.alert_bot_token, config.alert_chat_id),
    )
    router = IntentRouter(store, replies, PurchaseFlow(store, replies), advisor)

    if not config.page_access_token:
        logger.warning("PAGE_ACCESS_TOKEN is not set; outbound messages will be rejected")
    if not config.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; advisor replies will fail")

    return Bot(catalog=catalog, messenger=messenger, replies=replies, store=store, router=router)


def get_bot(request: Request) -> Bot:
    bot = getattr(request.app.state, "bot", None)
    if bot is None:
        bot = build_bot(settings)
        request.app.state.bot = bot
    return bot
