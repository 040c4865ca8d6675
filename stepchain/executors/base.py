"""
Executor protocol and result types.

An executor is the generation capability a step calls: it turns a prompt
into text, a structured object, or a stream of text chunks, and reports the
units it consumed.

The protocol keeps the chain runner free of provider imports, so that:
1. The provider can be swapped (Anthropic, local, mock)
2. Tests run against scripted fakes
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Protocol, Union, runtime_checkable

from stepchain.schemas import Usage


@dataclass(frozen=True)
class TextResult:
    """Free-text response from an executor."""
    text: str
    usage: Usage = field(default_factory=Usage)


@dataclass(frozen=True)
class ObjectResult:
    """Structured response from an executor (already parsed)."""
    object: Any
    usage: Usage = field(default_factory=Usage)


StreamItem = Union[str, Usage]


@runtime_checkable
class Executor(Protocol):
    """
    Protocol for generation executors.

    stream_text yields text chunks in order and may yield a single Usage as
    its last item when the provider reports usage for streamed calls.
    """

    async def generate_text(self, prompt: str) -> TextResult:
        """
        Generate free text for a prompt.

        Args:
            prompt: The fully interpolated prompt

        Returns:
            TextResult with the text and usage
        """
        ...

    async def generate_structured(self, prompt: str, schema: Any) -> ObjectResult:
        """
        Generate an object conforming to a schema.

        Args:
            prompt: The fully interpolated prompt
            schema: Schema handle from the step's Structured output spec

        Returns:
            ObjectResult with the parsed object and usage
        """
        ...

    def stream_text(self, prompt: str) -> AsyncIterator[StreamItem]:
        """Stream free text for a prompt as ordered chunks."""
        ...
