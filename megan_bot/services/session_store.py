import asyncio
from dataclasses import dataclass, field
from typing import Optional

from megan_bot.logging_config import get_logger
from megan_bot.services.inactivity_service import InactivityTimerRegistry, SenderCallback
from megan_bot.services.state_machine import Stage

logger = get_logger("session_store")


@dataclass
class UserSession:
    stage: Stage = Stage.NONE
    conversation_history: list[dict] = field(default_factory=list)
    # Only set while stage == ADVISOR.
    advisor_message_count: Optional[int] = None
    warning_sent: bool = False
    province_confirmation_sent: bool = False

    def add_turn(self, role: str, content: str) -> None:
        self.conversation_history.append({"role": role, "content": content})


class SessionStore:
    """In-process per-sender sessions plus the inactivity timers that expire them.

    All access happens on the event loop thread, so a plain dict is enough.
    """

    def __init__(
        self,
        on_nudge: SenderCallback,
        on_session_ended: SenderCallback,
        nudge_after_seconds: float = 10 * 60,
        finalize_after_seconds: float = 12 * 60,
        sleep_func=asyncio.sleep,
    ):
        self._sessions: dict[str, UserSession] = {}
        # Survives clear(): only a sender's first-ever text counts as new.
        self._seen_senders: set[str] = set()
        self._on_session_ended = on_session_ended
        self.timers = InactivityTimerRegistry(
            on_nudge=on_nudge,
            on_finalize=self._finalize,
            nudge_after_seconds=nudge_after_seconds,
            finalize_after_seconds=finalize_after_seconds,
            sleep_func=sleep_func,
        )

    def get(self, sender_id: str) -> UserSession:
        session = self._sessions.get(sender_id)
        if session is None:
            session = UserSession()
            self._sessions[sender_id] = session
        return session

    def exists(self, sender_id: str) -> bool:
        return sender_id in self._sessions

    def set_stage(self, sender_id: str, stage: Stage) -> UserSession:
        session = self.get(sender_id)
        if stage == Stage.ADVISOR:
            if session.advisor_message_count is None:
                session.advisor_message_count = 0
        else:
            session.advisor_message_count = None
        session.stage = stage
        return session

    def enter_advisor(self, sender_id: str) -> UserSession:
        session = self.get(sender_id)
        session.conversation_history = []
        session.advisor_message_count = 0
        session.stage = Stage.ADVISOR
        return session

    def clear(self, sender_id: str) -> None:
        self._sessions.pop(sender_id, None)

    def mark_text_seen(self, sender_id: str) -> bool:
        """Record free text from sender_id. Returns True only for their first one."""
        if sender_id in self._seen_senders:
            return False
        self._seen_senders.add(sender_id)
        return True

    def touch(self, sender_id: str) -> None:
        """Restart the inactivity deadlines for sender_id."""
        self.timers.arm(sender_id)

    def end(self, sender_id: str) -> None:
        """User-initiated teardown: no stale finalize may fire afterwards."""
        self.timers.cancel(sender_id)
        self.clear(sender_id)

    def close(self) -> None:
        self.timers.cancel_all()
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    async def _finalize(self, sender_id: str) -> None:
        await self._on_session_ended(sender_id)
        self.clear(sender_id)
        logger.info("Session finalized after inactivity", extra={"context": {"sender_id": sender_id}})
