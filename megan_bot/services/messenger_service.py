from typing import Optional

import httpx

from megan_bot.logging_config import get_logger

logger = get_logger("messenger_service")

MAX_TEMPLATE_BUTTONS = 3
MAX_QUICK_REPLIES = 13


class MessengerService:
    """Send API client for a Facebook page. Delivery failures are logged, never raised."""

    BASE_URL = "https://graph.facebook.com/{version}/me/messages"

    def __init__(self, page_access_token: str, api_version: str = "v17.0", timeout_seconds: float = 30.0):
        self.page_access_token = page_access_token
        self.url = self.BASE_URL.format(version=api_version)
        self.timeout_seconds = timeout_seconds

    async def _make_request(self, recipient_id: str, message: dict) -> dict:
        data = {"recipient": {"id": recipient_id}, "message": message}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    self.url,
                    params={"access_token": self.page_access_token},
                    json=data,
                )
            if response.status_code != 200:
                logger.error(
                    "Messenger send rejected",
                    extra={
                        "context": {
                            "recipient_id": recipient_id,
                            "status": response.status_code,
                            "body": response.text[:500],
                        }
                    },
                )
                return {"ok": False, "status": response.status_code, "error": response.text}
            return {"ok": True, "result": response.json()}
        except Exception as e:
            logger.error(f"Messenger API error: {e}", extra={"context": {"recipient_id": recipient_id}})
            return {"ok": False, "error": str(e)}

    async def send_text(self, recipient_id: str, text: str) -> dict:
        return await self._make_request(recipient_id, {"text": text})

    async def send_image(self, recipient_id: str, url: str) -> dict:
        message = {"attachment": {"type": "image", "payload": {"url": url, "is_reusable": True}}}
        return await self._make_request(recipient_id, message)

    async def send_buttons(self, recipient_id: str, text: str, buttons: list[dict]) -> dict:
        """Send a button template (text plus up to three buttons)."""
        if not buttons or len(buttons) > MAX_TEMPLATE_BUTTONS:
            raise ValueError(f"Button template takes 1-{MAX_TEMPLATE_BUTTONS} buttons, got {len(buttons)}")
        message = {
            "attachment": {
                "type": "template",
                "payload": {"template_type": "button", "text": text, "buttons": buttons},
            }
        }
        return await self._make_request(recipient_id, message)

    async def send_quick_replies(self, recipient_id: str, text: str, options: list[dict]) -> dict:
        if not options or len(options) > MAX_QUICK_REPLIES:
            raise ValueError(f"Quick replies take 1-{MAX_QUICK_REPLIES} options, got {len(options)}")
        return await self._make_request(recipient_id, {"text": text, "quick_replies": options})


def postback_button(title: str, payload: str) -> dict:
    return {"type": "postback", "title": title, "payload": payload}


def web_url_button(title: str, url: str) -> dict:
    return {"type": "web_url", "url": url, "title": title}


def quick_reply(title: str, payload: Optional[str] = None) -> dict:
    return {"content_type": "text", "title": title, "payload": payload or title}
