import pytest
from pydantic import ValidationError

from chatrouter.application.bootstrap import (
    Collaborators,
    build_collaborators,
    build_context_store,
    build_modules,
    build_router,
)
from chatrouter.infrastructure.clients.http_json_client import HttpJsonClient
from chatrouter.infrastructure.config.settings import Settings


def make_settings(**overrides):
    values = {"TG_TOKEN": "123:abc", "ANTHROPIC_API_KEY": None, "SERPAPI_KEY": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_without_ai_key_only_command_modules_are_loaded():
    settings = make_settings()

    router = build_router(settings)

    assert [m.name for m in router.modules] == ["Trading", "Help"]
    assert router.max_history == settings.MAX_HISTORY
    assert router.module_timeout == settings.MODULE_TIMEOUT_SECONDS


def test_with_ai_key_ai_module_is_last():
    settings = make_settings(ANTHROPIC_API_KEY="sk-ant-test", SERPAPI_KEY="serp")
    collaborators = build_collaborators(settings)

    modules = build_modules(settings, collaborators)

    assert [(m.name, m.priority) for m in modules] == [("Trading", 10), ("Help", 20), ("AI", 50)]
    assert modules[-1].search_client is collaborators.search


def test_development_environment_uses_test_wallet_directory():
    collaborators = build_collaborators(make_settings(ENVIRONMENT="development"))

    assert isinstance(collaborators.market_data, HttpJsonClient)
    assert collaborators.wallets.environment == "development"
    assert collaborators.completion is None
    assert collaborators.search is None


def test_explicit_collaborators_are_used():
    market = HttpJsonClient()
    router = build_router(make_settings(), Collaborators(market_data=market))

    trading = router.registry.get("Trading")
    assert trading.position_service.market_data is market


def test_context_store_follows_settings():
    store = build_context_store(make_settings(CONTEXT_STORE_MAX_SIZE=5, CONTEXT_TTL_SECONDS=30))

    assert store.max_size == 5
    assert store.ttl_seconds == 30


@pytest.mark.asyncio
async def test_router_cleanup_closes_http_clients():
    settings = make_settings(SERPAPI_KEY="serp", ANTHROPIC_API_KEY="sk-ant-test")
    collaborators = build_collaborators(settings)
    router = build_router(settings, collaborators)

    await router.cleanup()

    assert collaborators.market_data._client.is_closed
    assert collaborators.search._client.is_closed


def test_collaborators_reject_wrong_client_types():
    with pytest.raises(ValidationError):
        Collaborators(market_data="https://api.hyperliquid.xyz/info")
    with pytest.raises(ValidationError):
        Collaborators(market_data=HttpJsonClient(), completion=object())


def test_collaborators_default_to_production_wallets():
    collaborators = Collaborators(market_data=HttpJsonClient())

    assert collaborators.completion is None
    assert collaborators.search is None
    assert collaborators.wallets.environment == "production"
