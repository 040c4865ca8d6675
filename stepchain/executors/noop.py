"""
No-op executor for dry runs and tests.

Returns fixed results without calling any provider, so a chain definition
can be exercised end to end (batching, interpolation, ledger writes)
offline.
"""

import logging
from typing import Any, AsyncIterator

from stepchain.executors.base import ObjectResult, StreamItem, TextResult
from stepchain.schemas import Usage

logger = logging.getLogger(__name__)

NOOP_RESPONSE = "[noop response]"


class NoOpExecutor:
    """
    Executor that returns mock results.

    Text calls return NOOP_RESPONSE, structured calls an empty dict, and
    streams a single NOOP_RESPONSE chunk. Usage is always zero.
    """

    name = "noop"

    def __init__(self, response: str = NOOP_RESPONSE):
        self._response = response

    async def generate_text(self, prompt: str) -> TextResult:
        logger.debug(f"noop generate_text ({len(prompt)} chars)")
        return TextResult(text=self._response, usage=Usage())

    async def generate_structured(self, prompt: str, schema: Any) -> ObjectResult:
        logger.debug(f"noop generate_structured ({len(prompt)} chars)")
        return ObjectResult(object={}, usage=Usage())

    async def stream_text(self, prompt: str) -> AsyncIterator[StreamItem]:
        logger.debug(f"noop stream_text ({len(prompt)} chars)")
        yield self._response

    def __repr__(self) -> str:
        return "NoOpExecutor()"
