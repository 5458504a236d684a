"""Telegram Bot API client for outbound delivery"""

from typing import Any, Dict, Optional
import httpx
import structlog

from chatrouter.infrastructure.errors.exceptions import ConfigurationError, DeliveryError

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
# Bot API limit for a single text message, counted in UTF-16 code units
MAX_MESSAGE_LENGTH = 4096


def truncate_utf16(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Cut text to at most ``limit`` UTF-16 code units without splitting a surrogate pair"""
    encoded = text.encode("utf-16-le")
    if len(encoded) <= limit * 2:
        return text
    return encoded[:limit * 2].decode("utf-16-le", errors="ignore")


class TelegramClient:
    """Sends replies to Telegram chats"""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not bot_token:
            raise ConfigurationError("Telegram client requires a bot token")

        self.api_url = f"{TELEGRAM_API_URL}/bot{bot_token}"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send_message(self, chat_id: Any, text: str, **kwargs: Any) -> Dict[str, Any]:
        """Send a text message and return the Bot API result object"""

        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": truncate_utf16(text)
        }

        # Optional Telegram formatting
        if kwargs.get("parse_mode"):
            payload["parse_mode"] = kwargs["parse_mode"]
        if kwargs.get("disable_web_page_preview"):
            payload["disable_web_page_preview"] = kwargs["disable_web_page_preview"]
        if kwargs.get("reply_to_message_id"):
            payload["reply_to_message_id"] = kwargs["reply_to_message_id"]

        try:
            response = await self._client.post(f"{self.api_url}/sendMessage", json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Telegram request failed: {e}") from e

        if response.status_code != 200:
            raise DeliveryError(f"Telegram API returned {response.status_code}: {response.text}")

        result = response.json()
        if not result.get("ok"):
            raise DeliveryError(result.get("description", "Unknown error"))

        message = result.get("result", {})
        logger.debug("Telegram message sent", chat_id=chat_id, message_id=message.get("message_id"))
        return message

    async def close(self) -> None:
        await self._client.aclose()
