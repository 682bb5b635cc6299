import asyncio
import json

import pytest

from megan_bot.services.advisor_service import (
    CATALOG_PREAMBLE,
    AdvisorCommand,
    CommandKind,
    build_context,
    parse_advisor_reply,
)
from megan_bot.services.llm.base import LLMProviderError, LLMResponse
from megan_bot.services.reply_service import MSG_ADVISOR_ERROR, MSG_ASK_GENDER, MSG_MODEL_NOT_FOUND
from megan_bot.services.state_machine import Stage

from helpers import SENDER, sent_button_payloads, sent_texts


def reply_with(llm, content: str):
    llm.generate.return_value = LLMResponse(content=content, model="gpt-4o")


class TestParseAdvisorReply:
    @pytest.mark.parametrize(
        "reply,expected",
        [
            ("MOSTRAR_MODELO:RX100", AdvisorCommand(CommandKind.SHOW_PRODUCT, "RX100")),
            ("  MOSTRAR_MODELO: RX100 \n", AdvisorCommand(CommandKind.SHOW_PRODUCT, "RX100")),
            ("MOSTRAR_CATALOGO:damas_cuarzo", AdvisorCommand(CommandKind.SHOW_CATALOG, "damas_cuarzo")),
            ("PREGUNTAR_TIPO:caballeros", AdvisorCommand(CommandKind.ASK_TYPE, "caballeros")),
            ("PEDIR_CATALOGO", AdvisorCommand(CommandKind.ASK_GENDER)),
            ("Claro, el envío tarda 2 días.", AdvisorCommand(CommandKind.REPLY, "Claro, el envío tarda 2 días.")),
        ],
    )
    def test_commands(self, reply, expected):
        assert parse_advisor_reply(reply) == expected

    def test_command_inside_sentence_is_plain_reply(self):
        command = parse_advisor_reply("Puedo mostrarle PEDIR_CATALOGO si desea")
        assert command.kind == CommandKind.REPLY

    def test_empty_reply(self):
        assert parse_advisor_reply("") == AdvisorCommand(CommandKind.REPLY, "")


class TestBuildContext:
    def test_system_message_first(self):
        history = [{"role": "user", "content": "hola"}]
        context = build_context("Eres asesor.", '{"a": 1}', history)

        assert context[0]["role"] == "system"
        assert context[0]["content"] == f"Eres asesor.\n\n{CATALOG_PREAMBLE}" + '{"a": 1}'
        assert context[1:] == history

    def test_catalog_json_is_embedded(self, catalog):
        context = build_context(catalog.system_prompt, catalog.as_prompt_json(), [])
        payload = context[0]["content"].split(CATALOG_PREAMBLE, 1)[1]
        assert json.loads(payload)["caballeros_automaticos"][0]["code"] == "RX100"


class TestAsk:
    def test_plain_reply_is_sent_and_recorded(self, store, advisor, llm, messenger):
        store.enter_advisor(SENDER)

        result = asyncio.run(advisor.ask(SENDER, "¿Hacen envíos?"))

        assert result.ok is True
        assert sent_texts(messenger) == ["¡Hola! ¿En qué le ayudo?"]
        session = store.get(SENDER)
        assert session.conversation_history == [
            {"role": "user", "content": "¿Hacen envíos?"},
            {"role": "assistant", "content": "¡Hola! ¿En qué le ayudo?"},
        ]
        assert session.advisor_message_count == 1

        messages = llm.generate.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert messages[-1] == {"role": "user", "content": "¿Hacen envíos?"}
        assert llm.generate.call_args.kwargs["model"] == "gpt-4o"

    def test_counter_untouched_outside_advisor_stage(self, store, advisor):
        asyncio.run(advisor.ask(SENDER, "¿precio?"))
        assert store.get(SENDER).advisor_message_count is None

    def test_show_product(self, store, advisor, llm, messenger):
        reply_with(llm, "MOSTRAR_MODELO:RX100")

        asyncio.run(advisor.ask(SENDER, "quiero ver el RX100"))

        messenger.send_image.assert_awaited_once_with(SENDER, "https://img.example/RX100.jpg")
        assert messenger.send_text.await_count == 0
        assert sent_button_payloads(messenger)[0][0] == "COMPRAR_RX100"

    def test_show_unknown_product(self, store, advisor, llm, messenger):
        reply_with(llm, "MOSTRAR_MODELO:ZZZ")

        asyncio.run(advisor.ask(SENDER, "quiero el ZZZ"))

        assert sent_texts(messenger) == [MSG_MODEL_NOT_FOUND]
        messenger.send_image.assert_not_called()

    def test_show_catalog(self, store, advisor, llm, messenger):
        reply_with(llm, "MOSTRAR_CATALOGO:caballeros_automaticos")

        asyncio.run(advisor.ask(SENDER, "automáticos de hombre"))

        assert messenger.send_image.await_count == 2
        assert [p[0] for p in sent_button_payloads(messenger)] == ["COMPRAR_RX100", "COMPRAR_RX200"]

    def test_ask_gender_changes_stage(self, store, advisor, llm, messenger):
        store.enter_advisor(SENDER)
        reply_with(llm, "PEDIR_CATALOGO")

        asyncio.run(advisor.ask(SENDER, "muéstrame el catálogo"))

        assert sent_texts(messenger) == [MSG_ASK_GENDER]
        session = store.get(SENDER)
        assert session.stage == Stage.AWAITING_GENDER
        assert session.advisor_message_count is None
        assert len(session.conversation_history) == 2

    def test_ask_type_shows_submenu(self, store, advisor, llm, messenger):
        reply_with(llm, "PREGUNTAR_TIPO:damas")

        asyncio.run(advisor.ask(SENDER, "relojes de mujer"))

        assert store.get(SENDER).stage == Stage.AWAITING_TYPE_DAMAS
        assert sent_button_payloads(messenger) == [["DAMAS_AUTO", "DAMAS_CUARZO"]]

    def test_ask_type_with_unknown_gender(self, store, advisor, llm, messenger):
        reply_with(llm, "PREGUNTAR_TIPO:niños")

        asyncio.run(advisor.ask(SENDER, "relojes para niños"))

        assert sent_texts(messenger) == [MSG_ASK_GENDER]
        assert store.get(SENDER).stage == Stage.AWAITING_GENDER

    def test_exit_button_after_six_messages(self, store, advisor, messenger):
        store.enter_advisor(SENDER)

        async def scenario():
            for i in range(6):
                await advisor.ask(SENDER, f"pregunta {i}")

        asyncio.run(scenario())

        assert messenger.send_text.await_count == 5
        assert sent_button_payloads(messenger) == [["SALIR_ASESOR"]]
        assert store.get(SENDER).advisor_message_count == 6

    def test_llm_failure(self, store, advisor, llm, alerts, messenger):
        store.enter_advisor(SENDER)
        llm.generate.side_effect = LLMProviderError("OpenAI error 500")

        result = asyncio.run(advisor.ask(SENDER, "hola?"))

        assert result.failed_with("llm_error")
        assert sent_texts(messenger) == [MSG_ADVISOR_ERROR]
        alerts.error.assert_awaited_once()
        session = store.get(SENDER)
        assert session.conversation_history == [{"role": "user", "content": "hola?"}]
        assert session.stage == Stage.ADVISOR
