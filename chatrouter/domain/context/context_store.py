from typing import Dict, Any, Optional
from collections import OrderedDict
from datetime import timedelta
import asyncio
import structlog

from chatrouter.domain.models.conversation import ConversationContext, utc_now

logger = structlog.get_logger(__name__)


class ConversationContextStore:
    """In-memory conversation contexts with LRU and idle-TTL eviction

    One process, no persistence. The least recently used context is dropped
    once ``max_size`` is exceeded; contexts idle for longer than
    ``ttl_seconds`` are dropped on access or by ``clear_expired``.
    """

    def __init__(self, max_size: int = 10_000, ttl_seconds: Optional[int] = 86_400):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self.contexts: "OrderedDict[str, ConversationContext]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def get_or_create(
        self,
        conversation_id: Any,
        user_id: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> ConversationContext:
        """Return the context for a conversation, creating it on first message"""

        key = str(conversation_id)

        async with self._lock:
            context = self.contexts.get(key)

            if context is not None and self._is_expired(context):
                logger.info("Conversation context expired", conversation_id=key)
                del self.contexts[key]
                context = None

            if context is None:
                context = ConversationContext(
                    conversation_id=key,
                    user_id=str(user_id) if user_id is not None else None,
                    metadata=dict(metadata or {})
                )
                self.contexts[key] = context
                logger.debug("Created conversation context", conversation_id=key)
                self._evict_overflow()
            else:
                if metadata:
                    context.metadata.update(metadata)
                self.contexts.move_to_end(key)

            context.touch()
            return context

    async def get(self, conversation_id: Any) -> Optional[ConversationContext]:
        """Get an existing context without creating or refreshing it"""

        async with self._lock:
            context = self.contexts.get(str(conversation_id))
            if context is None or self._is_expired(context):
                return None
            return context

    async def evict(self, conversation_id: Any) -> bool:
        async with self._lock:
            return self.contexts.pop(str(conversation_id), None) is not None

    async def clear_expired(self) -> int:
        """Drop idle contexts and return how many were removed"""

        async with self._lock:
            expired_keys = [
                key for key, context in self.contexts.items()
                if self._is_expired(context)
            ]

            for key in expired_keys:
                del self.contexts[key]

            return len(expired_keys)

    async def get_stats(self) -> Dict[str, Any]:
        async with self._lock:
            return {
                "active_conversations": len(self.contexts),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds
            }

    def _is_expired(self, context: ConversationContext) -> bool:
        if self.ttl_seconds is None:
            return False
        return utc_now() - context.last_activity > timedelta(seconds=self.ttl_seconds)

    def _evict_overflow(self) -> None:
        while len(self.contexts) > self.max_size:
            key, _ = self.contexts.popitem(last=False)
            logger.info("Evicted least recently used conversation", conversation_id=key)

    def __len__(self) -> int:
        return len(self.contexts)
