from typing import Optional
from datetime import datetime, timezone
import time
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import structlog

from chatrouter import __version__
from chatrouter.application.api.schema.telegram import WebhookUpdate
from chatrouter.application.bootstrap import build_context_store, build_router
from chatrouter.application.telegram.telegram_adapter import TelegramAdapter
from chatrouter.domain.context.context_store import ConversationContextStore
from chatrouter.domain.orchestration.router import MessageRouter
from chatrouter.infrastructure.clients.telegram_client import TelegramClient
from chatrouter.infrastructure.config.settings import Settings, get_settings
from chatrouter.infrastructure.observability.logging import new_correlation_id, setup_logging

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def create_app(
    settings: Optional[Settings] = None,
    router: Optional[MessageRouter] = None,
    store: Optional[ConversationContextStore] = None,
    telegram_client: Optional[TelegramClient] = None
) -> FastAPI:
    """Build the webhook server around a router"""

    if settings is None:
        settings = get_settings()
    if router is None:
        router = build_router(settings)
    if store is None:
        store = build_context_store(settings)
    if telegram_client is None:
        telegram_client = TelegramClient(settings.TG_TOKEN)
    adapter = TelegramAdapter(router, store, telegram_client)
    started_at = time.monotonic()

    app = FastAPI(title="chatrouter", version=__version__)
    app.state.router = router
    app.state.store = store
    app.state.adapter = adapter

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Bind a correlation id for the request and log its outcome"""
        correlation_id = request.headers.get(CORRELATION_HEADER) or new_correlation_id()
        started = time.perf_counter()

        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                ip=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
                correlation_id=correlation_id
            )
            response = await call_next(request)
            logger.info(
                "HTTP response",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                correlation_id=correlation_id
            )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @app.on_event("startup")
    async def startup_event():
        """Initialize modules before traffic arrives"""
        await router.initialize()
        logger.info(
            "Server started",
            port=settings.PORT,
            environment=settings.ENVIRONMENT,
            features=settings.features.model_dump()
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        await router.cleanup()
        await telegram_client.close()
        logger.info("Server stopped")

    @app.get("/")
    async def root():
        return {
            "name": "chatrouter",
            "version": __version__,
            "description": "Modular chat message router with AI and trading modules"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        stats = await store.get_stats()
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(time.monotonic() - started_at, 3),
            "environment": settings.ENVIRONMENT,
            "features": settings.features.model_dump(),
            "modules": [info.name for info in router.get_module_info()],
            "active_conversations": stats["active_conversations"],
            "metrics": router.metrics.get_metrics_summary()
        }

    @app.post("/webhook")
    async def telegram_webhook(request: Request):
        """Telegram webhook; always acknowledges so Telegram does not redeliver"""
        try:
            update = WebhookUpdate.model_validate(await request.json())
        except (ValidationError, ValueError) as e:
            logger.warning("Invalid webhook payload", error=str(e))
            return JSONResponse({"ok": True})

        try:
            await adapter.handle_update(update)
        except Exception as e:
            logger.error("Webhook error", update_id=update.update_id, error=str(e))

        return JSONResponse({"ok": True})

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    setup_logging(log_level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
