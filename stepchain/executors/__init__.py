"""
Executors module - generation capabilities that steps call.

The chain runner only talks to the Executor protocol. Concrete executors:
- NoOpExecutor: offline, fixed results (dry runs, tests)
- AnthropicExecutor: Claude via the Anthropic Messages API

Usage:
    from stepchain.executors import ExecutorRegistry, get_executor

    registry = ExecutorRegistry.create_default()
    registry.register("writer", get_executor("claude-sonnet-4-5"))
"""

from stepchain.executors.base import Executor, ObjectResult, StreamItem, TextResult
from stepchain.executors.noop import NoOpExecutor
from stepchain.executors.registry import ExecutorRegistry, get_executor

__all__ = [
    "Executor",
    "ObjectResult",
    "StreamItem",
    "TextResult",
    "NoOpExecutor",
    "ExecutorRegistry",
    "get_executor",
]
