from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MessengerUser(BaseModel):
    id: str


class QuickReply(BaseModel):
    payload: str


class MessengerMessage(BaseModel):
    mid: Optional[str] = None
    text: Optional[str] = None
    quick_reply: Optional[QuickReply] = None
    is_echo: bool = False

    model_config = ConfigDict(extra="allow")


class Postback(BaseModel):
    payload: str
    title: Optional[str] = None


class EventKind(str, Enum):
    QUICK_REPLY = "quick_reply"
    POSTBACK = "postback"
    TEXT = "text"
    IGNORED = "ignored"


class MessagingEvent(BaseModel):
    sender: MessengerUser
    recipient: Optional[MessengerUser] = None
    timestamp: Optional[int] = None
    message: Optional[MessengerMessage] = None
    postback: Optional[Postback] = None

    model_config = ConfigDict(extra="allow")

    @property
    def sender_id(self) -> str:
        return self.sender.id

    @property
    def kind(self) -> EventKind:
        if self.message and not self.message.is_echo:
            if self.message.quick_reply:
                return EventKind.QUICK_REPLY
            if self.message.text:
                return EventKind.TEXT
        if self.postback:
            return EventKind.POSTBACK
        return EventKind.IGNORED


class WebhookEntry(BaseModel):
    id: Optional[str] = None
    time: Optional[int] = None
    messaging: list[MessagingEvent] = []


class WebhookPayload(BaseModel):
    object: str
    entry: list[WebhookEntry] = []
