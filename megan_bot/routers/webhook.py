import hashlib
import hmac
import json
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from megan_bot.config import Settings, get_settings
from megan_bot.dependencies import Bot, get_bot
from megan_bot.logging_config import get_logger
from megan_bot.schemas.messenger import WebhookPayload

logger = get_logger("webhook")

router = APIRouter()


def verify_signature(raw_body: bytes, signature_header: Optional[str], app_secret: str) -> bool:
    """Check Meta's X-Hub-Signature-256 header ("sha256=<hex digest>")."""
    if not signature_header or not signature_header.startswith("sha256="):
        return False
    expected = hmac.new(app_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header[len("sha256="):])


def parse_webhook_body(raw: bytes) -> Optional[dict]:
    """Decode the webhook body, tolerating non-UTF-8 bytes."""
    for enc in ("utf-8", "latin-1"):
        try:
            data = json.loads(raw.decode(enc, errors="replace"))
        except ValueError:
            continue
        return data if isinstance(data, dict) else None

    logger.error("Failed to decode webhook payload after fallbacks")
    return None


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
    app_settings: Settings = Depends(get_settings),
):
    """Subscription handshake: echo the challenge when the verify token matches."""
    if hub_mode == "subscribe" and app_settings.verify_token and hub_verify_token == app_settings.verify_token:
        logger.info("Webhook verified")
        return PlainTextResponse(hub_challenge or "")

    logger.warning("Webhook verification failed", extra={"context": {"mode": hub_mode}})
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhook", response_class=PlainTextResponse)
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    bot: Bot = Depends(get_bot),
    app_settings: Settings = Depends(get_settings),
):
    """
    Accept page events and acknowledge immediately.
    Each messaging event is handled after the response, in arrival order.
    """
    raw = await request.body()

    if app_settings.app_secret and not verify_signature(
        raw, request.headers.get("X-Hub-Signature-256"), app_settings.app_secret
    ):
        logger.warning("Invalid X-Hub-Signature-256")
        raise HTTPException(status_code=403, detail="Invalid signature")

    body = parse_webhook_body(raw)
    if body is None:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    try:
        payload = WebhookPayload.model_validate(body)
    except ValidationError as exc:
        logger.warning("Webhook payload validation failed", extra={"context": {"error": str(exc)}})
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    if payload.object != "page":
        raise HTTPException(status_code=404, detail="Unsupported object")

    events = 0
    for entry in payload.entry:
        for event in entry.messaging:
            background_tasks.add_task(bot.router.handle_event, event)
            events += 1

    logger.debug(f"Webhook accepted {events} event(s)")
    return PlainTextResponse("EVENT_RECEIVED")
