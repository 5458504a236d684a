from typing import Any, Iterable, List, Optional
from enum import Enum
import asyncio
import inspect
import structlog

from chatrouter.domain.models.conversation import (
    ConversationContext, ConversationMessage, MessageRole, ModuleInfo
)
from chatrouter.domain.modules.base_module import BaseModule
from chatrouter.domain.modules.module_registry import ModuleRegistry
from chatrouter.infrastructure.observability.logging import MetricsCollector, RequestLogger

logger = structlog.get_logger(__name__)

MAX_HISTORY = 20
DEFAULT_MODULE_TIMEOUT = 30.0
FALLBACK_MESSAGE = "🤔 I'm not sure how to help with that. Try /help for available commands."


class RouteState(str, Enum):
    """Per-call dispatch state"""
    SCANNING = "scanning"
    DISPATCHED = "dispatched"
    EXHAUSTED = "exhausted"


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class MessageRouter:
    """Routes an inbound message to the first capability module that answers it

    Modules are examined in ascending priority. A module whose predicate raises
    is skipped; a module whose handler raises or times out is treated as having
    declined, and the scan continues. When nothing answers, the fixed fallback
    message is returned. The router never raises for an unanswered message,
    including when no modules are registered.
    """

    def __init__(
        self,
        modules: Iterable[BaseModule] = (),
        *,
        max_history: int = MAX_HISTORY,
        module_timeout: Optional[float] = DEFAULT_MODULE_TIMEOUT,
        fallback_message: str = FALLBACK_MESSAGE,
        metrics: Optional[MetricsCollector] = None
    ):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        if not fallback_message:
            raise ValueError("fallback_message must be non-empty")

        self.registry = ModuleRegistry(modules)
        self.max_history = max_history
        self.module_timeout = module_timeout
        self.fallback_message = fallback_message
        self.metrics = metrics or MetricsCollector()

    @property
    def modules(self) -> tuple:
        """Registered modules in dispatch order"""
        return self.registry.snapshot()

    def register_module(self, module: BaseModule) -> None:
        self.registry.register(module)

    def get_module_info(self) -> List[ModuleInfo]:
        return self.registry.get_module_info()

    async def initialize(self) -> None:
        """Run every module's initialize hook; failures are logged, not raised"""

        for module in self.registry:
            try:
                await module.initialize()
            except Exception as e:
                logger.error("Module initialization failed", module=module.name, error=str(e))

        logger.info("Loaded modules", modules=[m.name.lower() for m in self.registry])

    async def cleanup(self) -> None:
        """Run every module's cleanup hook and empty the registry"""

        for module in self.registry:
            try:
                await module.cleanup()
            except Exception as e:
                logger.error("Module cleanup failed", module=module.name, error=str(e))

        self.registry.clear()

    async def handle_message(self, text: str, context: ConversationContext) -> str:
        """Route one message and return the reply"""

        # Calls for the same conversation are serialized; others run freely
        async with context.lock:
            return await self._dispatch(text, context)

    async def _dispatch(self, text: str, context: ConversationContext) -> str:
        request_logger = RequestLogger(
            __name__,
            correlation_id=context.metadata.get("correlation_id"),
            conversation_id=context.conversation_id,
            user_id=context.user_id
        )
        request_logger.start_timer("message_processing")
        request_logger.start_timer("module_routing")

        context.attach_router(self)
        context.logger = request_logger
        context.touch()

        self._add_to_history(context, MessageRole.USER, text)
        request_logger.log_message_received(
            text,
            history_size=len(context.history),
            platform=context.metadata.get("platform")
        )
        # Only the router writes history; anything a module changed is rolled back
        owned_history = list(context.history)

        state = RouteState.SCANNING
        response: Optional[str] = None

        for module in self.registry:
            if not await self._can_handle(module, text, context, request_logger):
                continue

            routing_ms = request_logger.end_timer("module_routing")
            request_logger.log_routed(module.name, module.priority, routing_ms)

            request_logger.start_timer("module_execution")
            try:
                response = await self._with_timeout(module.handle(text, context))
                if not isinstance(response, str):
                    raise TypeError(f"handle() returned {type(response).__name__}, expected str")
            except Exception as e:
                request_logger.end_timer("module_execution")
                request_logger.log_module_error(module.name, "handle", e)
                self.metrics.increment_counter("module_errors", tags={"module": module.name})
                request_logger.start_timer("module_routing")
                continue

            execution_ms = request_logger.end_timer("module_execution")
            total_ms = request_logger.end_timer("message_processing")

            state = RouteState.DISPATCHED
            self._restore_history(context, owned_history, request_logger)
            self._add_to_history(context, MessageRole.ASSISTANT, response)

            request_logger.log_command(
                text,
                module.name,
                "success",
                {
                    "response_length": len(response),
                    "timing_breakdown": {
                        "routing": routing_ms,
                        "execution": execution_ms,
                        "total": total_ms
                    }
                }
            )
            self.metrics.record_latency("handle_message", total_ms, tags={"module": module.name})
            self.metrics.increment_counter("messages_dispatched", tags={"module": module.name})
            break

        if state is RouteState.SCANNING:
            state = RouteState.EXHAUSTED
            response = self.fallback_message
            self._restore_history(context, owned_history, request_logger)
            self._add_to_history(context, MessageRole.ASSISTANT, response)

            total_ms = request_logger.end_timer("message_processing")
            request_logger.log_fallback(text, total_ms)
            self.metrics.record_latency("handle_message", total_ms, tags={"module": "fallback"})
            self.metrics.increment_counter("fallbacks")

        return response

    async def _can_handle(
        self,
        module: BaseModule,
        text: str,
        context: ConversationContext,
        request_logger: RequestLogger
    ) -> bool:
        try:
            return bool(await self._with_timeout(module.can_handle(text, context)))
        except Exception as e:
            # A broken predicate only removes its own module from this scan
            request_logger.log_module_error(module.name, "can_handle", e)
            return False

    async def _with_timeout(self, call: Any) -> Any:
        if self.module_timeout is None or not inspect.isawaitable(call):
            return await _resolve(call)
        return await asyncio.wait_for(call, timeout=self.module_timeout)

    def _restore_history(
        self,
        context: ConversationContext,
        owned_history: List[ConversationMessage],
        request_logger: RequestLogger
    ) -> None:
        if context.history != owned_history:
            request_logger.warning(
                "history_modified_by_module",
                expected_size=len(owned_history),
                found_size=len(context.history)
            )
            context.history[:] = owned_history

    def _add_to_history(self, context: ConversationContext, role: MessageRole, content: str) -> None:
        context.history.append(ConversationMessage(role=role, content=content))

        # Keep the most recent messages
        overflow = len(context.history) - self.max_history
        if overflow > 0:
            del context.history[:overflow]
