"""Tests for mentora_ai/executors against mocked SDK clients."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config.config_loader import ExecutorConfig
from mentora_ai.builders.base import START_PLACEHOLDER, Prompt
from mentora_ai.builders.schemas import ClosureClassifier, StageResponse
from mentora_ai.executors.anthropic_executor import OUTPUT_TOOL_NAME, AnthropicPromptExecutor
from mentora_ai.executors.base import ExecutorError
from mentora_ai.executors.gemini import GeminiPromptExecutor
from mentora_ai.executors.openai_executor import OpenAIPromptExecutor
from mentora_ai.models import HistoryEntry, Role, TokenUsage
from tests.conftest import ScriptedExecutor, reply

STRUCTURED_PROMPT = Prompt(
    contents=(HistoryEntry(Role.MODEL, "Opening question"), HistoryEntry(Role.USER, "My answer")),
    system_instruction="You are a test.",
    schema=StageResponse,
)
TEXT_PROMPT = Prompt(contents=(HistoryEntry(Role.USER, "hi"),), system_instruction=None, schema=None)

VALID_JSON = json.dumps(reply("Nice point.", "Why?"))


def _config(name: str, sdk: str, **overrides) -> ExecutorConfig:
    values = dict(
        name=name,
        sdk=sdk,
        model=f"{name}-model",
        api_key_env="TEST_EXECUTOR_KEY",
        timeout_sec=5,
        max_tokens=1024,
        max_retries=3,
        retry_base_delay=0.0,
    )
    values.update(overrides)
    return ExecutorConfig(**values)


def _gemini_response(text: str | None, **usage) -> SimpleNamespace:
    metadata = SimpleNamespace(
        prompt_token_count=usage.get("prompt", 100),
        cached_content_token_count=usage.get("cached", 20),
        tool_use_prompt_token_count=usage.get("tool_use", 5),
        candidates_token_count=usage.get("candidates", 40),
        thoughts_token_count=usage.get("thoughts", 30),
        total_token_count=usage.get("total", 190),
    )
    return SimpleNamespace(text=text, usage_metadata=metadata)


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("TEST_EXECUTOR_KEY", "test-key")


@pytest.fixture
def gemini(api_key):
    with patch("mentora_ai.executors.gemini.genai.Client", MagicMock()):
        executor = GeminiPromptExecutor(_config("gemini", "google-genai"))
    executor._client.aio.models.generate_content = AsyncMock(return_value=_gemini_response(VALID_JSON))
    return executor


# --- construction ---

def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("TEST_EXECUTOR_KEY", raising=False)
    with pytest.raises(ExecutorError, match="Missing API key"):
        GeminiPromptExecutor(_config("gemini", "google-genai"))


def test_executor_error_prefixes_name():
    err = ExecutorError("gemini", "boom")
    assert str(err) == "[gemini] boom"
    assert err.executor_name == "gemini"


# --- Gemini ---

async def test_gemini_returns_validated_schema_instance(gemini):
    result = await gemini.execute(STRUCTURED_PROMPT)
    assert isinstance(result, StageResponse)
    assert result.response_message == "Nice point."


async def test_gemini_sends_structured_output_config(gemini):
    await gemini.execute(STRUCTURED_PROMPT)
    kwargs = gemini._client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-model"
    config = kwargs["config"]
    assert config.response_mime_type == "application/json"
    assert config.response_json_schema == StageResponse.model_json_schema()
    assert "You are a test." in str(config.system_instruction)
    assert [c.role for c in kwargs["contents"]] == ["model", "user"]


async def test_gemini_text_prompt_returns_text(gemini):
    gemini._client.aio.models.generate_content = AsyncMock(return_value=_gemini_response("plain text"))
    result = await gemini.execute(TEXT_PROMPT)
    assert result == "plain text"
    config = gemini._client.aio.models.generate_content.call_args.kwargs["config"]
    assert config.response_mime_type == "text/plain"


async def test_gemini_token_accounting(gemini):
    await gemini.execute(STRUCTURED_PROMPT)
    usage = gemini.get_token_usage()
    # input = prompt + cached + tool_use; total = max(reported, input + output + thoughts)
    assert usage == TokenUsage(input=125, output=40, cached=20, thoughts=30, total=195)


async def test_gemini_token_usage_accumulates_and_resets(gemini):
    await gemini.execute(STRUCTURED_PROMPT)
    await gemini.execute(STRUCTURED_PROMPT)
    assert gemini.get_token_usage().input == 250
    gemini.reset_token_usage()
    assert gemini.get_token_usage() == TokenUsage()


async def test_gemini_reported_total_wins_when_larger(gemini):
    gemini._client.aio.models.generate_content = AsyncMock(
        return_value=_gemini_response(VALID_JSON, total=1000)
    )
    await gemini.execute(STRUCTURED_PROMPT)
    assert gemini.get_token_usage().total == 1000


async def test_gemini_missing_counts_treated_as_zero(gemini):
    response = _gemini_response(VALID_JSON)
    response.usage_metadata = SimpleNamespace(
        prompt_token_count=None,
        cached_content_token_count=None,
        tool_use_prompt_token_count=None,
        candidates_token_count=7,
        thoughts_token_count=None,
        total_token_count=None,
    )
    gemini._client.aio.models.generate_content = AsyncMock(return_value=response)
    await gemini.execute(STRUCTURED_PROMPT)
    assert gemini.get_token_usage() == TokenUsage(input=0, output=7, cached=0, thoughts=0, total=7)


async def test_get_token_usage_returns_copy(gemini):
    await gemini.execute(STRUCTURED_PROMPT)
    usage = gemini.get_token_usage()
    usage.input = 0
    assert gemini.get_token_usage().input == 125


async def test_retry_recovers_from_transient_failure(gemini):
    gemini._client.aio.models.generate_content = AsyncMock(
        side_effect=[RuntimeError("503 unavailable"), _gemini_response(VALID_JSON)]
    )
    result = await gemini.execute(STRUCTURED_PROMPT)
    assert isinstance(result, StageResponse)
    assert gemini._client.aio.models.generate_content.await_count == 2


async def test_retry_uses_exponential_backoff(api_key):
    with patch("mentora_ai.executors.gemini.genai.Client", MagicMock()):
        executor = GeminiPromptExecutor(_config("gemini", "google-genai", retry_base_delay=0.1))
    executor._client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("down"))

    with patch("mentora_ai.executors.base.asyncio.sleep", AsyncMock()) as sleep:
        with pytest.raises(ExecutorError, match="after 3 attempts"):
            await executor.execute(STRUCTURED_PROMPT)

    assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.1, 0.2])
    assert executor._client.aio.models.generate_content.await_count == 3


async def test_schema_mismatch_is_an_error_not_coerced(gemini):
    gemini._client.aio.models.generate_content = AsyncMock(
        return_value=_gemini_response(json.dumps({"unexpected": True}))
    )
    with pytest.raises(ExecutorError, match="Schema validation failed"):
        await gemini.execute(STRUCTURED_PROMPT)


async def test_invalid_json_is_an_error(gemini):
    gemini._client.aio.models.generate_content = AsyncMock(return_value=_gemini_response("not json {"))
    with pytest.raises(ExecutorError):
        await gemini.execute(STRUCTURED_PROMPT)


async def test_empty_response_is_an_error(gemini):
    gemini._client.aio.models.generate_content = AsyncMock(return_value=_gemini_response("   "))
    with pytest.raises(ExecutorError, match="Empty response"):
        await gemini.execute(STRUCTURED_PROMPT)


async def test_timeout_is_an_error(api_key):
    with patch("mentora_ai.executors.gemini.genai.Client", MagicMock()):
        executor = GeminiPromptExecutor(_config("gemini", "google-genai", timeout_sec=0.01, max_retries=1))

    async def slow(**kwargs):
        await asyncio.sleep(1)

    executor._client.aio.models.generate_content = slow
    with pytest.raises(ExecutorError, match="timed out"):
        await executor.execute(STRUCTURED_PROMPT)


# --- OpenAI ---

def _openai_response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(
            prompt_tokens=100,
            completion_tokens=50,
            total_tokens=150,
            prompt_tokens_details=SimpleNamespace(cached_tokens=20),
            completion_tokens_details=SimpleNamespace(reasoning_tokens=10),
        ),
    )


@pytest.fixture
def openai_client_cls():
    with patch("mentora_ai.executors.openai_executor.AsyncOpenAI") as client_cls:
        client_cls.return_value.chat.completions.create = AsyncMock(return_value=_openai_response(VALID_JSON))
        yield client_cls


async def test_openai_maps_roles_and_schema(api_key, openai_client_cls):
    executor = OpenAIPromptExecutor(_config("openai", "openai"))
    result = await executor.execute(STRUCTURED_PROMPT)

    assert isinstance(result, StageResponse)
    kwargs = openai_client_cls.return_value.chat.completions.create.call_args.kwargs
    assert [m["role"] for m in kwargs["messages"]] == ["system", "assistant", "user"]
    assert kwargs["response_format"]["type"] == "json_schema"
    assert kwargs["response_format"]["json_schema"]["name"] == "StageResponse"


async def test_openai_token_accounting(api_key, openai_client_cls):
    executor = OpenAIPromptExecutor(_config("openai", "openai"))
    await executor.execute(STRUCTURED_PROMPT)
    assert executor.get_token_usage() == TokenUsage(input=100, output=40, cached=20, thoughts=10, total=150)


async def test_openai_compatible_base_url(api_key, openai_client_cls):
    OpenAIPromptExecutor(_config("grok", "openai", base_url="https://api.x.ai/v1"))
    assert openai_client_cls.call_args.kwargs["base_url"] == "https://api.x.ai/v1"


async def test_openai_empty_choice_is_an_error(api_key, openai_client_cls):
    openai_client_cls.return_value.chat.completions.create = AsyncMock(return_value=_openai_response(None))
    executor = OpenAIPromptExecutor(_config("openai", "openai", max_retries=1))
    with pytest.raises(ExecutorError):
        await executor.execute(STRUCTURED_PROMPT)


# --- Anthropic ---

@pytest.fixture
def anthropic_client_cls():
    with patch("mentora_ai.executors.anthropic_executor.anthropic_sdk.AsyncAnthropic") as client_cls:
        yield client_cls


def _anthropic_response(blocks: list) -> SimpleNamespace:
    return SimpleNamespace(
        content=blocks,
        usage=SimpleNamespace(input_tokens=30, output_tokens=12, cache_read_input_tokens=None),
    )


async def test_anthropic_forces_output_tool(api_key, anthropic_client_cls):
    tool_block = SimpleNamespace(
        type="tool_use",
        name=OUTPUT_TOOL_NAME,
        input={"thought_process": "ok", "detected_intent": "TR_CONFIRM", "confidence_score": 0.8},
    )
    create = AsyncMock(return_value=_anthropic_response([tool_block]))
    anthropic_client_cls.return_value.messages.create = create

    executor = AnthropicPromptExecutor(_config("claude", "anthropic"))
    prompt = Prompt(contents=STRUCTURED_PROMPT.contents, system_instruction="sys", schema=ClosureClassifier)
    result = await executor.execute(prompt)

    assert isinstance(result, ClosureClassifier)
    assert result.detected_intent == "TR_CONFIRM"
    kwargs = create.call_args.kwargs
    assert kwargs["tool_choice"] == {"type": "tool", "name": OUTPUT_TOOL_NAME}
    assert kwargs["tools"][0]["input_schema"] == ClosureClassifier.model_json_schema()
    assert kwargs["system"] == "sys"
    # First turn must come from the user
    assert kwargs["messages"][0] == {"role": "user", "content": START_PLACEHOLDER}
    assert executor.get_token_usage() == TokenUsage(input=30, output=12, cached=0, thoughts=0, total=42)


async def test_anthropic_missing_tool_call_is_an_error(api_key, anthropic_client_cls):
    text_block = SimpleNamespace(type="text", text="I refuse to use tools")
    anthropic_client_cls.return_value.messages.create = AsyncMock(return_value=_anthropic_response([text_block]))
    executor = AnthropicPromptExecutor(_config("claude", "anthropic", max_retries=1))
    with pytest.raises(ExecutorError):
        await executor.execute(STRUCTURED_PROMPT)


async def test_anthropic_text_prompt(api_key, anthropic_client_cls):
    text_block = SimpleNamespace(type="text", text="hello there")
    anthropic_client_cls.return_value.messages.create = AsyncMock(return_value=_anthropic_response([text_block]))
    executor = AnthropicPromptExecutor(_config("claude", "anthropic"))
    assert await executor.execute(TEXT_PROMPT) == "hello there"


async def test_unexpected_exception_is_wrapped_and_retried():
    executor = ScriptedExecutor([RuntimeError("connection reset"), reply("Recovered.")], max_retries=2)
    result = await executor.execute(STRUCTURED_PROMPT)
    assert result.response_message == "Recovered."


async def test_unexpected_exception_becomes_executor_error():
    executor = ScriptedExecutor([AttributeError("'NoneType' object has no attribute 'text'")])
    with pytest.raises(ExecutorError, match="Unexpected AttributeError") as exc_info:
        await executor.execute(STRUCTURED_PROMPT)
    assert isinstance(exc_info.value.__cause__.__cause__, AttributeError)
