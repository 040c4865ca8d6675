"""Tests for the executors module.

Tests cover:
- NoOpExecutor results
- ExecutorRegistry lookup and factory methods
- get_executor name dispatch
- AnthropicExecutor request building and reply parsing (fake client)
"""

import asyncio
import json
from types import SimpleNamespace

import jsonschema
import pytest

from stepchain.errors import ExecutionError
from stepchain.executors import Executor, ExecutorRegistry, NoOpExecutor, get_executor
from stepchain.executors.claude import (
    STRUCTURED_INSTRUCTION,
    AnthropicExecutor,
    build_structured_prompt,
    parse_json_response,
    validate_structured,
)
from stepchain.executors.noop import NOOP_RESPONSE
from stepchain.runner import ChainConfig, ChainState, create_chain
from stepchain.schemas import Usage


async def _collect(stream):
    return [item async for item in stream]


# -----------------------------------------------------------------------------
# Test Fixtures
# -----------------------------------------------------------------------------


class _FakeStream:
    def __init__(self, chunks):
        self._chunks = chunks

    async def __aenter__(self):
        self.text_stream = self._text()
        return self

    async def __aexit__(self, *exc):
        return False

    async def _text(self):
        for chunk in self._chunks:
            yield chunk

    async def get_final_message(self):
        return SimpleNamespace(usage=SimpleNamespace(input_tokens=7, output_tokens=3))


class _FakeMessages:
    def __init__(self, text="", chunks=(), error=None):
        self.text = text
        self.chunks = list(chunks)
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            content=[SimpleNamespace(text=self.text)],
            usage=SimpleNamespace(input_tokens=12, output_tokens=34),
        )

    def stream(self, **kwargs):
        self.requests.append(kwargs)
        return _FakeStream(self.chunks)


def _executor(messages, **kwargs):
    executor = AnthropicExecutor("claude-test", **kwargs)
    executor._client = SimpleNamespace(messages=messages)
    return executor


# -----------------------------------------------------------------------------
# NoOpExecutor
# -----------------------------------------------------------------------------


class TestNoOpExecutor:
    """Tests for NoOpExecutor."""

    def test_satisfies_protocol(self):
        assert isinstance(NoOpExecutor(), Executor)

    def test_text(self):
        result = asyncio.run(NoOpExecutor().generate_text("hello"))
        assert result.text == NOOP_RESPONSE
        assert result.usage == Usage()

    def test_custom_response(self):
        result = asyncio.run(NoOpExecutor(response="fixed").generate_text("hello"))
        assert result.text == "fixed"

    def test_structured_is_empty_object(self):
        result = asyncio.run(NoOpExecutor().generate_structured("hello", {"type": "object"}))
        assert result.object == {}

    def test_stream_single_chunk(self):
        assert asyncio.run(_collect(NoOpExecutor().stream_text("hello"))) == [NOOP_RESPONSE]


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------


class TestExecutorRegistry:
    """Tests for ExecutorRegistry."""

    def test_register_and_get(self):
        registry = ExecutorRegistry()
        executor = NoOpExecutor()
        registry.register("mine", executor)
        assert registry.get("mine") is executor
        assert registry.has("mine")
        assert "mine" in registry
        assert registry.list_names() == ["mine"]

    def test_get_unknown_lists_registered(self):
        registry = ExecutorRegistry.create_default()
        with pytest.raises(KeyError) as exc_info:
            registry.get("nope")
        assert "No executor registered under name: nope" in exc_info.value.args[0]
        assert "noop" in exc_info.value.args[0]

    def test_create_default_has_noop(self):
        registry = ExecutorRegistry.create_default()
        assert isinstance(registry.get("noop"), NoOpExecutor)

    def test_resolve(self):
        registry = ExecutorRegistry.create_default()
        instance = NoOpExecutor()
        assert registry.resolve(None) is None
        assert registry.resolve(instance) is instance
        assert isinstance(registry.resolve("noop"), NoOpExecutor)

    def test_ensure_builds_once(self):
        registry = ExecutorRegistry()
        first = registry.ensure("claude-haiku-4-5")
        assert isinstance(first, AnthropicExecutor)
        assert registry.ensure("claude-haiku-4-5") is first


class TestGetExecutor:
    """Tests for get_executor."""

    def test_noop(self):
        assert isinstance(get_executor("noop"), NoOpExecutor)

    def test_claude_model(self):
        executor = get_executor("claude-sonnet-4-5")
        assert isinstance(executor, AnthropicExecutor)
        assert executor.model_id == "claude-sonnet-4-5"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown executor: 'gpt-4'"):
            get_executor("gpt-4")


# -----------------------------------------------------------------------------
# Anthropic executor
# -----------------------------------------------------------------------------


class TestParseJsonResponse:
    """Tests for parse_json_response."""

    def test_plain(self):
        assert parse_json_response('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}

    def test_bare_fence(self):
        assert parse_json_response('```\n[1, 2]\n```') == [1, 2]

    def test_invalid(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_response("not json")


class TestAnthropicExecutor:
    """Tests for AnthropicExecutor against a fake client."""

    def test_generate_text(self):
        messages = _FakeMessages(text="  hi there \n")
        result = asyncio.run(_executor(messages).generate_text("Say hi"))
        assert result.text == "hi there"
        assert result.usage == Usage(input_units=12, output_units=34)
        request = messages.requests[0]
        assert request["model"] == "claude-test"
        assert request["messages"] == [{"role": "user", "content": "Say hi"}]
        assert "system" not in request

    def test_system_prompt(self):
        messages = _FakeMessages(text="ok")
        asyncio.run(_executor(messages, system_prompt="Be brief").generate_text("x"))
        assert messages.requests[0]["system"] == "Be brief"

    def test_generate_structured(self):
        schema = {"type": "object", "properties": {"name": {"type": "string"}}}
        messages = _FakeMessages(text='```json\n{"name": "Widget"}\n```')
        result = asyncio.run(_executor(messages).generate_structured("Extract", schema))
        assert result.object == {"name": "Widget"}
        sent = messages.requests[0]["messages"][0]["content"]
        assert sent == build_structured_prompt("Extract", schema)
        assert sent.startswith(STRUCTURED_INSTRUCTION)
        assert sent.endswith("Extract")

    def test_invalid_json_is_execution_error(self):
        messages = _FakeMessages(text="Sure! Here you go")
        with pytest.raises(ExecutionError, match="invalid JSON"):
            asyncio.run(_executor(messages).generate_structured("x", {}))

    def test_provider_error_wrapped(self):
        cause = ConnectionError("reset")
        messages = _FakeMessages(error=cause)
        with pytest.raises(ExecutionError) as exc_info:
            asyncio.run(_executor(messages).generate_text("x"))
        assert exc_info.value.cause is cause

    def test_stream_yields_chunks_then_usage(self):
        messages = _FakeMessages(chunks=["Hel", "lo"])
        items = asyncio.run(_collect(_executor(messages).stream_text("x")))
        assert items == ["Hel", "lo", Usage(input_units=7, output_units=3)]

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ExecutionError, match="ANTHROPIC_API_KEY"):
            asyncio.run(AnthropicExecutor().generate_text("x"))


class TestStructuredValidation:
    """Structured replies are checked against their JSON Schema."""

    SCHEMA = {
        "type": "object",
        "properties": {"name": {"type": "string"}},
        "required": ["name"],
    }

    def test_validate_structured_accepts_match(self):
        validate_structured({"name": "Widget"}, self.SCHEMA)

    def test_validate_structured_skips_non_mapping_schema(self):
        validate_structured(["anything"], object())

    def test_mismatched_reply_is_execution_error(self):
        messages = _FakeMessages(text='{"unrelated": 1}')
        with pytest.raises(ExecutionError, match="does not match the schema") as exc_info:
            asyncio.run(_executor(messages).generate_structured("Extract", self.SCHEMA))
        assert isinstance(exc_info.value.cause, jsonschema.ValidationError)

    def test_wrong_top_level_type(self):
        messages = _FakeMessages(text='["a", "b"]')
        with pytest.raises(ExecutionError, match="does not match the schema"):
            asyncio.run(_executor(messages).generate_structured("Extract", self.SCHEMA))

    def test_mismatch_fails_the_run(self):
        executor = _executor(_FakeMessages(text='{"unrelated": 1}'))
        chain = create_chain(ChainConfig(
            steps=[{"id": "extract", "prompt": "Extract", "schema": self.SCHEMA}],
            default_executor=executor,
        ))
        with pytest.raises(ExecutionError):
            asyncio.run(chain.run())
        assert chain.state == ChainState.FAILED
