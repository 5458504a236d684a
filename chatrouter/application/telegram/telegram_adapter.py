from typing import Optional
import structlog

from chatrouter.application.api.schema.telegram import WebhookUpdate
from chatrouter.domain.context.context_store import ConversationContextStore
from chatrouter.domain.orchestration.router import MessageRouter
from chatrouter.infrastructure.clients.telegram_client import TelegramClient
from chatrouter.infrastructure.observability.logging import new_correlation_id

logger = structlog.get_logger(__name__)

ERROR_REPLY = "❌ Sorry, I encountered an error processing your message."


class TelegramAdapter:
    """Feeds Telegram updates into the router and delivers the replies"""

    def __init__(
        self,
        router: MessageRouter,
        store: ConversationContextStore,
        telegram_client: TelegramClient
    ):
        self.router = router
        self.store = store
        self.telegram_client = telegram_client

    async def handle_update(self, update: WebhookUpdate) -> Optional[str]:
        """Route a text update and send the reply; returns the reply, or None if ignored"""

        message = update.message
        if message is None or not message.text or message.from_user is None:
            logger.debug("Ignoring non-text update", update_id=update.update_id)
            return None

        chat_id = message.chat.id
        user = message.from_user

        context = await self.store.get_or_create(
            chat_id,
            user_id=user.id,
            metadata={
                "platform": "telegram",
                "username": user.username,
                "chat_type": message.chat.type
            }
        )
        context.metadata["correlation_id"] = (
            structlog.contextvars.get_contextvars().get("correlation_id") or new_correlation_id()
        )

        try:
            reply = await self.router.handle_message(message.text, context)
        except Exception as e:
            logger.error("Router failed", chat_id=chat_id, error=str(e))
            reply = ERROR_REPLY

        await self.telegram_client.send_message(chat_id, reply)

        logger.info(
            "Webhook message processed",
            chat_id=chat_id,
            user_id=user.id,
            response_length=len(reply)
        )
        return reply
