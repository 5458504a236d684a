from unittest.mock import AsyncMock

import pytest

from chatrouter.domain.interfaces.collaborators import CompletionClient, WebSearchClient, WebSearchResult
from chatrouter.domain.models.conversation import ConversationContext, ConversationMessage, MessageRole
from chatrouter.domain.modules.ai_module import DEFAULT_PROMPT, TRADING_HINT, AIModule
from chatrouter.domain.orchestration.router import FALLBACK_MESSAGE, MessageRouter
from chatrouter.infrastructure.errors.exceptions import CompletionError, ConfigurationError, WebSearchError
from tests.conftest import PatternModule


@pytest.fixture
def completion():
    client = AsyncMock(spec=CompletionClient)
    client.complete.return_value = "Bitcoin is a cryptocurrency."
    return client


@pytest.fixture
def search():
    client = AsyncMock(spec=WebSearchClient)
    client.search.return_value = [
        WebSearchResult(title="BTC price", snippet="$65,000", link="https://example.com/btc")
    ]
    return client


@pytest.fixture
def ai(completion, search):
    return AIModule(completion_client=completion, search_client=search)


def test_requires_completion_client():
    with pytest.raises(ConfigurationError):
        AIModule(completion_client=None)


@pytest.mark.asyncio
@pytest.mark.parametrize("text, expected", [
    ("What is Bitcoin?", True),
    ("", True),
    ("/unknown", False),
    ("!ping", False),
    ("hello /world", True),
])
async def test_claims_everything_but_commands(ai, context, text, expected):
    assert await ai.can_handle(text, context) is expected


@pytest.mark.asyncio
async def test_sends_history_with_current_message_last(ai, completion):
    router = MessageRouter([ai])
    context = ConversationContext(conversation_id="c")

    await router.handle_message("first question", context)
    reply = await router.handle_message("What is Bitcoin?", context)

    assert reply == "Bitcoin is a cryptocurrency."
    _, messages = completion.complete.await_args.args
    assert [(m.role, m.content) for m in messages] == [
        (MessageRole.USER, "first question"),
        (MessageRole.ASSISTANT, "Bitcoin is a cryptocurrency."),
        (MessageRole.USER, "What is Bitcoin?"),
    ]


def test_prepare_messages_appends_missing_user_turn(ai):
    history = [ConversationMessage(role=MessageRole.ASSISTANT, content="hi")]

    messages = ai.prepare_messages(history, "hello")

    assert messages[-1].role == MessageRole.USER
    assert messages[-1].content == "hello"
    assert len(messages) == 2


@pytest.mark.asyncio
async def test_time_sensitive_question_triggers_search(ai, search, completion, context):
    await ai.handle("what is the current btc price", context)

    search.search.assert_awaited_once_with("what is the current btc price", limit=3)
    system_prompt, _ = completion.complete.await_args.args
    assert "https://example.com/btc" in system_prompt


@pytest.mark.asyncio
async def test_plain_question_skips_search(ai, search, context):
    await ai.handle("explain proof of stake", context)

    search.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_failure_is_tolerated(ai, search, completion, context):
    search.search.side_effect = WebSearchError("quota exceeded")

    reply = await ai.handle("latest news", context)

    assert reply == "Bitcoin is a cryptocurrency."
    system_prompt, _ = completion.complete.await_args.args
    assert "current information from the web" not in system_prompt


def test_prompt_mentions_trading_commands_when_relevant(ai, context):
    prompt = ai.build_system_prompt("how does leverage work", None, context)

    assert prompt.startswith(DEFAULT_PROMPT)
    assert TRADING_HINT in prompt


def test_custom_prompt_is_prepended(completion, context):
    module = AIModule(completion_client=completion, system_prompt="You are Nova.")

    prompt = module.build_system_prompt("hello", None, context)

    assert prompt == f"You are Nova.\n\n{DEFAULT_PROMPT}"


def test_services_file_used_for_service_questions(completion, context, tmp_path):
    services = tmp_path / "services.txt"
    services.write_text("We offer blockchain consulting.\n", encoding="utf-8")
    module = AIModule(completion_client=completion, services_file=services)

    prompt = module.build_system_prompt("what services do you offer", None, context)

    assert prompt == "We offer blockchain consulting."


def test_missing_services_file_falls_back_to_default(completion, context, tmp_path):
    module = AIModule(completion_client=completion, services_file=tmp_path / "missing.txt")

    prompt = module.build_system_prompt("tell me about your consulting", None, context)

    assert prompt == DEFAULT_PROMPT


@pytest.mark.asyncio
async def test_prompt_lists_router_features(ai, completion):
    router = MessageRouter([PatternModule("Trading", 10, r"^/position$"), ai])
    context = ConversationContext(conversation_id="c")

    await router.handle_message("hi there", context)

    system_prompt, _ = completion.complete.await_args.args
    assert "• Trading: Trading test module" in system_prompt
    assert "• AI: " in system_prompt


@pytest.mark.asyncio
async def test_completion_failure_falls_through_to_fallback(ai, completion):
    completion.complete.side_effect = CompletionError("upstream 529 overloaded")
    router = MessageRouter([ai])
    context = ConversationContext(conversation_id="c")

    reply = await router.handle_message("hello", context)

    assert reply == FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_cleanup_closes_clients(ai, completion, search):
    await ai.cleanup()

    completion.close.assert_awaited_once()
    search.close.assert_awaited_once()
