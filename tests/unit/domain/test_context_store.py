from datetime import timedelta

import pytest

from chatrouter.domain.context.context_store import ConversationContextStore
from chatrouter.domain.models.conversation import utc_now


@pytest.mark.asyncio
async def test_first_message_creates_context(store):
    context = await store.get_or_create(12345, user_id=678, metadata={"platform": "telegram"})

    assert context.conversation_id == "12345"
    assert context.user_id == "678"
    assert context.history == []
    assert context.metadata == {"platform": "telegram"}
    assert len(store) == 1


@pytest.mark.asyncio
async def test_same_conversation_returns_same_context(store):
    first = await store.get_or_create("chat", metadata={"platform": "telegram"})
    first.metadata["seen"] = True
    second = await store.get_or_create("chat", metadata={"username": "alice"})

    assert second is first
    assert second.metadata == {"platform": "telegram", "seen": True, "username": "alice"}


@pytest.mark.asyncio
async def test_least_recently_used_context_is_evicted(store):
    await store.get_or_create("a")
    await store.get_or_create("b")
    await store.get_or_create("c")
    await store.get_or_create("a")
    await store.get_or_create("d")

    assert await store.get("b") is None
    assert await store.get("a") is not None
    assert list(store.contexts) == ["c", "a", "d"]


@pytest.mark.asyncio
async def test_idle_context_expires(store):
    context = await store.get_or_create("old")
    context.last_activity = utc_now() - timedelta(seconds=120)

    assert await store.get("old") is None

    fresh = await store.get_or_create("old")
    assert fresh is not context
    assert fresh.history == []


@pytest.mark.asyncio
async def test_clear_expired_returns_count(store):
    stale = await store.get_or_create("stale")
    await store.get_or_create("active")
    stale.last_activity = utc_now() - timedelta(seconds=3600)

    assert await store.clear_expired() == 1
    assert list(store.contexts) == ["active"]


@pytest.mark.asyncio
async def test_ttl_can_be_disabled():
    store = ConversationContextStore(max_size=10, ttl_seconds=None)
    context = await store.get_or_create("forever")
    context.last_activity = utc_now() - timedelta(days=365)

    assert await store.get("forever") is context
    assert await store.clear_expired() == 0


@pytest.mark.asyncio
async def test_evict_and_stats(store):
    await store.get_or_create("a")

    assert await store.evict("a") is True
    assert await store.evict("a") is False
    assert await store.get_stats() == {
        "active_conversations": 0,
        "max_size": 3,
        "ttl_seconds": 60,
    }


def test_max_size_must_be_positive():
    with pytest.raises(ValueError):
        ConversationContextStore(max_size=0)
