from unittest.mock import AsyncMock

import pytest

from megan_bot.services.advisor_service import AdvisorService
from megan_bot.services.alert_service import AlertService
from megan_bot.services.catalog_service import CatalogService
from megan_bot.services.intent_router import IntentRouter
from megan_bot.services.llm.base import LLMProvider, LLMResponse
from megan_bot.services.messenger_service import MessengerService
from megan_bot.services.purchase_flow import PurchaseFlow
from megan_bot.services.reply_service import ReplyService
from megan_bot.services.session_store import SessionStore

from helpers import FakeClock, make_product


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return CatalogService(
        categories={
            "caballeros_automaticos": [make_product("RX100", "Reloj RX100"), make_product("RX200", "Reloj RX200")],
            "caballeros_cuarzo": [make_product("CQ1", "Reloj Cuarzo")],
            "damas_automaticos": [],
            "damas_cuarzo": [make_product("DQ1", "Reloj Dama")],
        },
        promos={
            "reloj1": make_product("PROMO1", "Reloj Exclusivo"),
            "reloj2": make_product("PROMO2", "Reloj de Lujo"),
        },
        system_prompt="Eres el asesor de Tiendas Megan.",
    )


@pytest.fixture
def messenger():
    return AsyncMock(spec=MessengerService)


@pytest.fixture
def replies(messenger, catalog):
    return ReplyService(messenger, catalog, whatsapp_url="https://wa.me/51900000000", advisor_exit_button_after=6)


@pytest.fixture
def store(replies, clock):
    return SessionStore(
        on_nudge=replies.inactivity_nudge,
        on_session_ended=replies.session_ended,
        nudge_after_seconds=600,
        finalize_after_seconds=720,
        sleep_func=clock.sleep,
    )


@pytest.fixture
def llm():
    provider = AsyncMock(spec=LLMProvider)
    provider.generate.return_value = LLMResponse(content="¡Hola! ¿En qué le ayudo?", model="gpt-4o")
    return provider


@pytest.fixture
def alerts():
    return AsyncMock(spec=AlertService)


@pytest.fixture
def advisor(store, replies, catalog, llm, alerts):
    return AdvisorService(store, replies, catalog, llm, model="gpt-4o", alerts=alerts)


@pytest.fixture
def purchase(store, replies):
    return PurchaseFlow(store, replies)


@pytest.fixture
def router(store, replies, purchase, advisor):
    return IntentRouter(store, replies, purchase, advisor)
