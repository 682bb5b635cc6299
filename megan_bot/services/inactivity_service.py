import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from megan_bot.logging_config import get_logger

logger = get_logger("inactivity_service")

SenderCallback = Callable[[str], Awaitable[None]]


@dataclass(eq=False)
class TimerPair:
    nudge: Optional[asyncio.Task] = None
    finalize: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        for task in (self.nudge, self.finalize):
            if task is not None and not task.done():
                task.cancel()


class InactivityTimerRegistry:
    """Per-sender nudge and finalize deadlines, restarted on every inbound text.

    Each sender owns at most one TimerPair. A callback only runs while its pair
    is still the registered one, so a re-arm never lets an older deadline fire.
    """

    def __init__(
        self,
        on_nudge: SenderCallback,
        on_finalize: SenderCallback,
        nudge_after_seconds: float = 10 * 60,
        finalize_after_seconds: float = 12 * 60,
        sleep_func=asyncio.sleep,
    ):
        self._on_nudge = on_nudge
        self._on_finalize = on_finalize
        self.nudge_after_seconds = nudge_after_seconds
        self.finalize_after_seconds = finalize_after_seconds
        self._sleep = sleep_func
        self._pairs: dict[str, TimerPair] = {}

    def arm(self, sender_id: str) -> None:
        """Replace any pending pair for sender_id. Needs a running event loop."""
        self.cancel(sender_id)
        loop = asyncio.get_running_loop()
        pair = TimerPair()
        self._pairs[sender_id] = pair
        pair.nudge = loop.create_task(
            self._fire(sender_id, pair, self.nudge_after_seconds, self._on_nudge, last=False)
        )
        pair.finalize = loop.create_task(
            self._fire(sender_id, pair, self.finalize_after_seconds, self._on_finalize, last=True)
        )

    def cancel(self, sender_id: str) -> None:
        pair = self._pairs.pop(sender_id, None)
        if pair is not None:
            pair.cancel()

    def cancel_all(self) -> None:
        for sender_id in list(self._pairs):
            self.cancel(sender_id)

    def is_armed(self, sender_id: str) -> bool:
        return sender_id in self._pairs

    def __len__(self) -> int:
        return len(self._pairs)

    async def _fire(
        self,
        sender_id: str,
        pair: TimerPair,
        delay: float,
        callback: SenderCallback,
        last: bool,
    ) -> None:
        await self._sleep(delay)
        if self._pairs.get(sender_id) is not pair:
            return
        kind = "finalize" if last else "nudge"
        logger.info(f"Inactivity {kind} fired", extra={"context": {"sender_id": sender_id}})
        try:
            await callback(sender_id)
        except Exception as e:
            logger.error(
                f"Inactivity {kind} callback failed: {e}",
                exc_info=True,
                extra={"context": {"sender_id": sender_id}},
            )
        if last and self._pairs.get(sender_id) is pair:
            del self._pairs[sender_id]
