"""
Anthropic Claude executor.

Handles provider-specific concerns:
- Async client creation and timeout configuration
- JSON-only instructions for structured steps
- Parsing JSON replies that arrive wrapped in markdown fences
- Validating structured replies against their JSON Schema
- Usage reporting for sync and streamed calls

The anthropic SDK is imported lazily so the rest of stepchain imports
without it; install the "anthropic" extra to use this executor.
"""

import json
import logging
import os
import time
from collections.abc import Mapping
from typing import Any, AsyncIterator, Optional

import jsonschema

from stepchain.errors import ExecutionError
from stepchain.executors.base import ObjectResult, StreamItem, TextResult
from stepchain.schemas import Usage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 8000

STRUCTURED_INSTRUCTION = (
    "Return only valid JSON, with no explanatory text. Follow the JSON schema "
    "below exactly, including every required field."
)


def parse_json_response(raw_text: str) -> Any:
    """Parse JSON from a model reply, handling markdown code fences.

    Models sometimes wrap JSON in ```json ... ``` fences despite being told
    not to. The fences are stripped before parsing.

    Args:
        raw_text: Raw text from the model

    Returns:
        Parsed JSON value

    Raises:
        json.JSONDecodeError: If the text cannot be parsed as JSON
    """
    content = raw_text.strip()

    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]

    if content.endswith("```"):
        content = content.rsplit("```", 1)[0]

    return json.loads(content.strip())


def validate_structured(value: Any, schema: Any) -> None:
    """Check a parsed reply against a JSON Schema dict.

    Non-mapping schema handles are passed through unchecked.

    Raises:
        jsonschema.ValidationError: If the value does not match the schema
    """
    if isinstance(schema, Mapping):
        jsonschema.validate(instance=value, schema=schema)


def build_structured_prompt(prompt: str, schema: Any) -> str:
    """Prefix a prompt with the JSON-only instruction and the schema."""
    schema_text = json.dumps(schema, indent=2, ensure_ascii=False, default=str)
    return f"{STRUCTURED_INSTRUCTION}\n\nSchema:\n{schema_text}\n\n{prompt}"


class AnthropicExecutor:
    """
    Executor backed by the Anthropic Messages API.

    Usage:
        executor = AnthropicExecutor("claude-sonnet-4-5")
        chain = create_chain(ChainConfig(default_executor=executor, steps=[...]))
    """

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        api_key: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ):
        self._model_id = model_id
        self._max_tokens = max_tokens
        self._api_key = api_key
        self._system_prompt = system_prompt
        self._client = None

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self):
        if self._client is None:
            api_key = self._api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ExecutionError(
                    "Anthropic executor unavailable. Set ANTHROPIC_API_KEY environment variable."
                )

            import httpx
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(
                api_key=api_key,
                timeout=httpx.Timeout(connect=60.0, read=600.0, write=120.0, pool=60.0),
            )
        return self._client

    def _request(self, prompt: str) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._model_id,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self._system_prompt:
            kwargs["system"] = self._system_prompt
        return kwargs

    async def _create(self, prompt: str) -> tuple[str, Usage]:
        client = self._get_client()
        start_time = time.time()
        try:
            response = await client.messages.create(**self._request(prompt))
        except Exception as e:
            raise ExecutionError(f"{self._model_id} call failed: {e}", cause=e) from e

        raw_text = "".join(
            block.text for block in response.content if hasattr(block, "text")
        )
        usage = Usage(
            input_units=response.usage.input_tokens,
            output_units=response.usage.output_tokens,
        )
        logger.info(
            f"{self._model_id} completed: {usage.input_units}+{usage.output_units} tokens, "
            f"{int((time.time() - start_time) * 1000)}ms, {len(raw_text):,} chars"
        )
        return raw_text, usage

    async def generate_text(self, prompt: str) -> TextResult:
        text, usage = await self._create(prompt)
        return TextResult(text=text.strip(), usage=usage)

    async def generate_structured(self, prompt: str, schema: Any) -> ObjectResult:
        raw_text, usage = await self._create(build_structured_prompt(prompt, schema))
        try:
            parsed = parse_json_response(raw_text)
        except json.JSONDecodeError as e:
            raise ExecutionError(
                f"{self._model_id} returned invalid JSON: {e}", cause=e
            ) from e
        try:
            validate_structured(parsed, schema)
        except jsonschema.ValidationError as e:
            raise ExecutionError(
                f"{self._model_id} reply does not match the schema: {e.message}", cause=e
            ) from e
        return ObjectResult(object=parsed, usage=usage)

    async def stream_text(self, prompt: str) -> AsyncIterator[StreamItem]:
        client = self._get_client()
        try:
            async with client.messages.stream(**self._request(prompt)) as stream:
                async for text in stream.text_stream:
                    yield text
                response = await stream.get_final_message()
        except Exception as e:
            raise ExecutionError(f"{self._model_id} stream failed: {e}", cause=e) from e

        yield Usage(
            input_units=response.usage.input_tokens,
            output_units=response.usage.output_tokens,
        )

    def __repr__(self) -> str:
        return f"AnthropicExecutor(model_id={self._model_id!r})"
