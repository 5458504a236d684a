from typing import Literal, Optional
from pydantic import BaseModel, Field


class TelegramUser(BaseModel):
    """Sender of a Telegram message"""
    id: int
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None


class TelegramChat(BaseModel):
    """Chat a Telegram message belongs to"""
    id: int
    type: Literal["private", "group", "supergroup", "channel"] = "private"


class TelegramMessage(BaseModel):
    """Inbound Telegram message"""
    message_id: int
    from_user: Optional[TelegramUser] = Field(None, alias="from")
    chat: TelegramChat
    date: int
    text: Optional[str] = None


class WebhookUpdate(BaseModel):
    """Telegram webhook update payload"""
    update_id: int
    message: Optional[TelegramMessage] = None
