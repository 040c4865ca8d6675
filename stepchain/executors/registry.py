"""
Executor Registry for resolving executors by name.

Chain definition files name executors ("noop", "claude-sonnet-4-5") rather
than holding executor objects. The registry maps those names to Executor
instances, and the runner resolves string overrides through it.
"""

from typing import Any, Optional

from stepchain.executors.base import Executor
from stepchain.executors.noop import NoOpExecutor


def get_executor(name: str) -> Executor:
    """Build an executor from a name or model ID.

    Args:
        name: "noop" or a Claude model ID (e.g. 'claude-sonnet-4-5')

    Returns:
        Executor instance for the name

    Raises:
        ValueError: If the name is not recognized
    """
    if name == "noop":
        return NoOpExecutor()
    elif name.startswith("claude-"):
        from stepchain.executors.claude import AnthropicExecutor
        return AnthropicExecutor(model_id=name)
    else:
        raise ValueError(
            f"Unknown executor: '{name}'. "
            f"Expected 'noop' or a model ID starting with 'claude-'."
        )


class ExecutorRegistry:
    """
    Registry for executor lookup by name.

    Usage:
        registry = ExecutorRegistry()
        registry.register("fast", AnthropicExecutor("claude-haiku-4-5"))

        executor = registry.get("fast")

        # Or use factory with defaults
        registry = ExecutorRegistry.create_default()
    """

    def __init__(self) -> None:
        """Initialize an empty executor registry."""
        self._executors: dict[str, Executor] = {}

    def register(self, name: str, executor: Executor) -> None:
        """
        Register an executor under a name.

        Args:
            name: Name steps and definitions use to refer to it
            executor: Executor instance
        """
        self._executors[name] = executor

    def get(self, name: str) -> Executor:
        """
        Get the executor registered under a name.

        Raises:
            KeyError: If no executor is registered under this name
        """
        if name not in self._executors:
            registered = list(self._executors.keys())
            raise KeyError(
                f"No executor registered under name: {name}. "
                f"Registered: {registered}"
            )
        return self._executors[name]

    def has(self, name: str) -> bool:
        return name in self._executors

    def __contains__(self, name: object) -> bool:
        return name in self._executors

    def list_names(self) -> list[str]:
        """List all registered executor names."""
        return list(self._executors.keys())

    def resolve(self, ref: Any) -> Optional[Executor]:
        """
        Resolve an executor reference.

        Args:
            ref: None, a registered name, or an executor instance

        Returns:
            The executor, or None when ref is None

        Raises:
            KeyError: If ref is a name with no registered executor
        """
        if ref is None:
            return None
        if isinstance(ref, str):
            return self.get(ref)
        return ref

    def ensure(self, name: str) -> Executor:
        """Get an executor by name, building and registering it on first use."""
        if name not in self._executors:
            self.register(name, get_executor(name))
        return self._executors[name]

    @classmethod
    def create_default(cls) -> "ExecutorRegistry":
        """
        Create a registry with the offline "noop" executor registered.

        Returns:
            Configured ExecutorRegistry
        """
        registry = cls()
        registry.register("noop", NoOpExecutor())
        return registry
