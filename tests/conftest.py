"""Shared fixtures: a scripted executor that records every call."""

import asyncio
from typing import Any, Optional

import pytest

from stepchain.executors import ObjectResult, TextResult
from stepchain.schemas import Usage


class FakeExecutor:
    """
    Scripted executor for tests.

    Responses, delays and failures are keyed by a marker string; the first
    marker found in the prompt wins. Unmatched prompts echo back.
    """

    def __init__(
        self,
        responses: Optional[dict[str, Any]] = None,
        usage: Optional[Usage] = None,
        delays: Optional[dict[str, float]] = None,
        failures: Optional[dict[str, Exception]] = None,
        chunks: Optional[list[str]] = None,
        stream_usage: Optional[Usage] = None,
    ):
        self.responses = responses or {}
        self.usage = usage or Usage()
        self.delays = delays or {}
        self.failures = failures or {}
        self.chunks = chunks
        self.stream_usage = stream_usage

        self.calls: list[tuple[str, str, Any]] = []
        self.cancelled: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def prompts(self) -> list[str]:
        return [prompt for _, prompt, _ in self.calls]

    def _match(self, table: dict[str, Any], prompt: str) -> Any:
        for marker, value in table.items():
            if marker in prompt:
                return value
        return None

    async def _call(self, kind: str, prompt: str, schema: Any = None) -> None:
        self.calls.append((kind, prompt, schema))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._match(self.delays, prompt) or 0)
        except asyncio.CancelledError:
            self.cancelled.append(prompt)
            raise
        finally:
            self.in_flight -= 1

        failure = self._match(self.failures, prompt)
        if failure is not None:
            raise failure

    async def generate_text(self, prompt: str) -> TextResult:
        await self._call("text", prompt)
        response = self._match(self.responses, prompt)
        return TextResult(text=response if response is not None else f"echo: {prompt}", usage=self.usage)

    async def generate_structured(self, prompt: str, schema: Any) -> ObjectResult:
        await self._call("structured", prompt, schema)
        response = self._match(self.responses, prompt)
        return ObjectResult(object=response if response is not None else {"prompt": prompt}, usage=self.usage)

    async def stream_text(self, prompt: str):
        await self._call("stream", prompt)
        for chunk in self.chunks if self.chunks is not None else [f"echo: {prompt}"]:
            await asyncio.sleep(0)
            yield chunk
        if self.stream_usage is not None:
            yield self.stream_usage


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def make_executor():
    """Factory for FakeExecutors with custom scripts."""
    return FakeExecutor
