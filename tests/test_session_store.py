import asyncio

from megan_bot.services.reply_service import MSG_SESSION_ENDED
from megan_bot.services.state_machine import Stage

from helpers import SENDER, sent_texts


class TestGet:
    def test_creates_default_session(self, store):
        session = store.get(SENDER)
        assert session.stage == Stage.NONE
        assert session.conversation_history == []
        assert session.advisor_message_count is None
        assert session.warning_sent is False
        assert session.province_confirmation_sent is False

    def test_returns_same_session(self, store):
        assert store.get(SENDER) is store.get(SENDER)

    def test_sessions_are_per_sender(self, store):
        store.set_stage("a", Stage.ADVISOR)
        assert store.get("b").stage == Stage.NONE


class TestSeenSenders:
    def test_first_text_only_once(self, store):
        assert store.mark_text_seen(SENDER) is True
        assert store.mark_text_seen(SENDER) is False
        assert store.mark_text_seen("otro") is True

    def test_survives_clear_and_end(self, store):
        store.mark_text_seen(SENDER)
        store.clear(SENDER)
        store.end(SENDER)
        assert store.mark_text_seen(SENDER) is False


class TestClear:
    def test_clear_then_get_is_fresh(self, store):
        session = store.enter_advisor(SENDER)
        session.add_turn("user", "hola")
        session.warning_sent = True

        store.clear(SENDER)
        fresh = store.get(SENDER)

        assert fresh.stage == Stage.NONE
        assert fresh.conversation_history == []
        assert fresh.warning_sent is False

    def test_clear_is_idempotent(self, store):
        store.clear(SENDER)
        store.clear(SENDER)
        assert store.get(SENDER).stage == Stage.NONE
        assert store.get(SENDER).conversation_history == []


class TestStages:
    def test_enter_advisor_resets_history_and_counter(self, store):
        session = store.get(SENDER)
        session.add_turn("user", "antes")
        store.enter_advisor(SENDER)
        assert session.stage == Stage.ADVISOR
        assert session.conversation_history == []
        assert session.advisor_message_count == 0

    def test_leaving_advisor_drops_counter(self, store):
        store.enter_advisor(SENDER)
        session = store.set_stage(SENDER, Stage.AWAITING_GENDER)
        assert session.advisor_message_count is None

    def test_set_stage_advisor_starts_counter(self, store):
        session = store.set_stage(SENDER, Stage.ADVISOR)
        assert session.advisor_message_count == 0


class TestLifecycle:
    def test_end_cancels_timers_and_clears(self, store, clock, messenger):
        async def scenario():
            store.touch(SENDER)
            store.enter_advisor(SENDER)
            store.end(SENDER)
            await clock.advance(720)

        asyncio.run(scenario())

        assert store.exists(SENDER) is False
        assert store.timers.is_armed(SENDER) is False
        assert sent_texts(messenger) == []

    def test_inactivity_nudges_then_ends_session(self, store, clock, messenger):
        async def scenario():
            store.touch(SENDER)
            store.enter_advisor(SENDER).add_turn("user", "hola")

            await clock.advance(600)
            assert messenger.send_buttons.await_count == 1
            assert store.get(SENDER).stage == Stage.ADVISOR

            await clock.advance(120)

        asyncio.run(scenario())

        assert sent_texts(messenger)[-1] == MSG_SESSION_ENDED
        assert store.exists(SENDER) is False
        assert store.timers.is_armed(SENDER) is False

    def test_close_cancels_everything(self, store, clock, messenger):
        async def scenario():
            store.touch("a")
            store.touch("b")
            store.get("a")
            store.close()
            await clock.advance(720)

        asyncio.run(scenario())

        assert len(store) == 0
        assert len(store.timers) == 0
        messenger.send_text.assert_not_called()
