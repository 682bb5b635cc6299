from megan_bot.schemas.catalog import Product
from megan_bot.schemas.messenger import (
    EventKind,
    MessagingEvent,
    WebhookEntry,
    WebhookPayload,
)

__all__ = ["EventKind", "MessagingEvent", "Product", "WebhookEntry", "WebhookPayload"]
