"""
Error classes for stepchain execution.

Every chain error is fatal: the first one observed aborts the whole run and
is the single error surfaced to the caller. There is no retry and no partial
RunResult.

- ConfigurationError: The chain cannot run as declared (no executor for a
  step, duplicate step ids, duplicate output keys within a batch)
- DependencyError: The step graph has a cycle or references a step id that
  never completes. Raised before any step executes.
- ExecutionError: The generation capability failed. Raised by the bundled
  executors; the runner propagates whatever an executor raises unchanged.

Error handling contract:
- Results are success-only
- Errors are exceptions, not values
"""

from typing import Iterable, Optional


class StepchainError(Exception):
    """Base exception for stepchain."""
    pass


class ConfigurationError(StepchainError):
    """
    The chain is misconfigured.

    Examples:
    - A step has no executor override and the chain has no default executor
    - A step names an executor that is not registered
    - Two steps share an id after normalization

    Attributes:
        step_id: The offending step, when the error is tied to one step
    """

    def __init__(self, message: str, step_id: Optional[str] = None):
        self.step_id = step_id
        super().__init__(message)


class DuplicateOutputKeyError(ConfigurationError):
    """
    Two steps in the same batch write the same output key.

    Steps in a batch run concurrently, so the winner of such a collision
    would be whichever finished last. The chain is rejected instead.
    """

    def __init__(self, output_key: str, step_ids: Iterable[str]):
        self.output_key = output_key
        self.step_ids = tuple(step_ids)
        super().__init__(
            f"Steps {', '.join(self.step_ids)} write the same output key "
            f"'{output_key}' in one batch"
        )


class DependencyError(StepchainError):
    """
    Circular or missing dependency in the step graph.

    Attributes:
        step_ids: Every step that could not be scheduled, in declaration order
    """

    def __init__(self, step_ids: Iterable[str]):
        self.step_ids = tuple(step_ids)
        super().__init__(
            "Circular dependency or missing dependency detected. "
            f"Remaining steps: {', '.join(self.step_ids)}"
        )


class ExecutionError(StepchainError):
    """Raised by an executor when the underlying generation call fails."""

    def __init__(
        self,
        message: str,
        step_id: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        self.step_id = step_id
        self.cause = cause
        if step_id:
            message = f"Step '{step_id}' failed: {message}"
        super().__init__(message)


class ConfigError(StepchainError):
    """Chain definition file is missing or invalid."""
    pass
