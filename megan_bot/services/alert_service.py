"""Ops alerts to a Telegram chat. Silently disabled when not configured."""

from typing import Optional

import httpx

from megan_bot.logging_config import get_logger

logger = get_logger("alert_service")

LEVEL_EMOJI = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌", "CRITICAL": "🔥"}


class AlertService:
    def __init__(self, bot_token: Optional[str] = None, chat_id: Optional[str] = None):
        self.bot_token = bot_token
        self.chat_id = chat_id

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def format(self, level: str, message: str, context: Optional[dict] = None) -> str:
        text = f"{LEVEL_EMOJI.get(level, '📢')} *{level}*\n\n{message}"
        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            text += f"\n\n```\n{context_str}\n```"
        return text

    async def send(self, level: str, message: str, context: Optional[dict] = None) -> bool:
        """Send alert; returns True if Telegram accepted it."""
        if not self.enabled:
            logger.warning(f"Alert not configured: {level} - {message}", extra={"context": context or {}})
            return False

        try:
            async with httpx.AsyncClient(timeout=10) as client:
                response = await client.post(
                    f"https://api.telegram.org/bot{self.bot_token}/sendMessage",
                    json={
                        "chat_id": self.chat_id,
                        "text": self.format(level, message, context),
                        "parse_mode": "Markdown",
                    },
                )
                return response.status_code == 200
        except Exception as e:
            logger.error(f"Failed to send alert: {e}")
            return False

    async def error(self, message: str, context: Optional[dict] = None) -> bool:
        return await self.send("ERROR", message, context)

    async def warning(self, message: str, context: Optional[dict] = None) -> bool:
        return await self.send("WARNING", message, context)
