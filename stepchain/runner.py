"""
Runner - Execute a chain of steps in dependency order.

The Chain implements:
- Step normalization (plain prompts and descriptors -> Steps)
- Batch resolution (dependency-ordered, cycle/missing-dependency detection)
- Per-batch fan-out: every step in a batch is launched before any is awaited
- Prompt interpolation against the ledger snapshot taken at batch start
- Executor resolution (step override, else chain default)
- Cost and duration accounting in the run's StateLedger

Execution flow:
1. Create a fresh StateLedger, seeded with the caller's input
2. Normalize steps and reject duplicate step ids
3. Resolve batches and reject duplicate output keys within a batch
4. For each batch, in order:
   a. Snapshot the ledger
   b. Launch one task per step; each renders its prompt against the
      snapshot, calls its executor and writes its output
   c. Wait for the whole batch; the first failure cancels the siblings
      and is re-raised unchanged
5. Assemble the RunResult

Nothing here retries, caches or persists. A failed run returns no result.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from stepchain.errors import ConfigurationError
from stepchain.executors import Executor, ExecutorRegistry
from stepchain.interpolation import interpolate
from stepchain.ledger import PricingRate, StateLedger
from stepchain.normalizer import normalize_steps
from stepchain.resolver import Batch, resolve_batches, validate_batches
from stepchain.schemas import Freeform, RunResult, Step, StepInput, Structured, Usage

logger = logging.getLogger(__name__)

# Streaming sink: called with (chunk, step_id) for every chunk, in order
ChunkSink = Callable[[str, str], None]

OUTPUT_KEY = "output"
INPUT_KEY = "input"


class ChainState(str, Enum):
    """Lifecycle state of a chain run."""
    IDLE = "idle"
    NORMALIZING = "normalizing"
    RESOLVING = "resolving"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ChainConfig:
    """
    Configuration for a chain.

    Attributes:
        steps: Ordered step declarations (prompt strings, StepDescriptors or dicts)
        default_executor: Executor (or registered name) for steps without an override
        streaming: Stream free-text steps through the executor's stream_text
        on_chunk: Sink called with (chunk, step_id) for every streamed chunk
        pricing: Rate applied to reported usage
        max_concurrency: Upper bound on in-flight steps within a batch (None = unbounded)
        registry: Registry used to resolve executor names
        name: Label used in logs
    """
    steps: Sequence[StepInput] = field(default_factory=list)
    default_executor: Any = None
    streaming: bool = False
    on_chunk: Optional[ChunkSink] = None
    pricing: PricingRate = field(default_factory=PricingRate)
    max_concurrency: Optional[int] = None
    registry: Optional[ExecutorRegistry] = None
    name: str = "chain"

    def __post_init__(self):
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")


class Chain:
    """
    A runnable chain of steps.

    Usage:
        chain = Chain.create(
            default_executor=AnthropicExecutor("claude-sonnet-4-5"),
            steps=[
                {"id": "outline", "prompt": "Outline a post about {{input.topic}}"},
                {"id": "draft", "prompt": "Write it:\\n{{outline}}", "after": "outline"},
            ],
        )
        result = await chain.run({"topic": "tea"})
        result.output, result.cost.total_cost, result.duration

    Each run() gets its own ledger; a Chain can be run repeatedly.
    """

    def __init__(self, config: ChainConfig):
        self._config = config
        self._registry = config.registry or ExecutorRegistry.create_default()
        self._state = ChainState.IDLE
        self._batch_index: Optional[int] = None

    @classmethod
    def create(cls, config: Optional[ChainConfig] = None, **kwargs: Any) -> "Chain":
        """Create a chain from a ChainConfig or from ChainConfig keyword arguments."""
        if config is None:
            config = ChainConfig(**kwargs)
        elif kwargs:
            raise TypeError("Pass either a ChainConfig or keyword arguments, not both")
        return cls(config)

    @property
    def config(self) -> ChainConfig:
        return self._config

    @property
    def state(self) -> ChainState:
        return self._state

    @property
    def batch_index(self) -> Optional[int]:
        """Index of the batch currently (or last) executing."""
        return self._batch_index

    def plan(self) -> list[Batch]:
        """
        Normalize and resolve the steps without executing anything.

        Returns:
            Ordered batches

        Raises:
            ConfigurationError: On duplicate step ids or output keys within a batch
            DependencyError: On cyclic or missing dependencies
        """
        return self._resolve(normalize_steps(self._config.steps))

    @staticmethod
    def _resolve(steps: Sequence[Step]) -> list[Batch]:
        _check_unique_ids(steps)
        batches = resolve_batches(steps)
        validate_batches(batches)
        return batches

    async def run(self, initial_input: Optional[dict[str, Any]] = None) -> RunResult:
        """
        Run the chain.

        Args:
            initial_input: Caller input, available to prompts as {{input.*}}

        Returns:
            RunResult with output, ledger snapshot, cost and duration

        Raises:
            ConfigurationError: Misconfigured chain or step without an executor
            DependencyError: Cyclic or missing dependency (before any step runs)
            Exception: Whatever an executor or the chunk sink raised, unchanged
        """
        ledger = StateLedger(self._config.pricing)
        ledger.write(INPUT_KEY, initial_input if initial_input is not None else {})
        self._batch_index = None

        try:
            self._state = ChainState.NORMALIZING
            steps = normalize_steps(self._config.steps)

            self._state = ChainState.RESOLVING
            batches = self._resolve(steps)

            logger.info(
                f"Starting chain '{self._config.name}': "
                f"{sum(len(b) for b in batches)} steps in {len(batches)} batches",
                extra={"chain": self._config.name},
            )

            self._state = ChainState.EXECUTING
            semaphore = (
                asyncio.Semaphore(self._config.max_concurrency)
                if self._config.max_concurrency
                else None
            )
            for index, batch in enumerate(batches):
                self._batch_index = index
                logger.debug(
                    f"Batch {index + 1}/{len(batches)}: {[s.step_id for s in batch]}",
                    extra={"chain": self._config.name},
                )
                await self._run_batch(batch, ledger, semaphore)
        except BaseException as e:
            self._state = ChainState.FAILED
            logger.error(
                f"Chain '{self._config.name}' failed: {type(e).__name__}: {e}",
                extra={"chain": self._config.name},
            )
            raise

        self._state = ChainState.COMPLETED
        result = _build_result(ledger)
        logger.info(
            f"Chain '{self._config.name}' completed: "
            f"{result.cost.total_units:,} units, cost={result.cost.total_cost:.4f}, "
            f"duration={result.duration}",
            extra={"chain": self._config.name},
        )
        return result

    def run_sync(self, initial_input: Optional[dict[str, Any]] = None) -> RunResult:
        """Run the chain from synchronous code (must not be called inside an event loop)."""
        return asyncio.run(self.run(initial_input))

    async def _run_batch(
        self,
        batch: Batch,
        ledger: StateLedger,
        semaphore: Optional[asyncio.Semaphore],
    ) -> None:
        """
        Run every step of a batch concurrently and wait for all of them.

        Siblings see the snapshot taken here, never each other's writes.
        """
        snapshot = ledger.snapshot()
        tasks = [
            asyncio.create_task(
                self._run_step(step, snapshot, ledger, semaphore),
                name=f"step:{step.step_id}",
            )
            for step in batch
        ]

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        failures = [
            task.exception() for task in tasks
            if task in done and not task.cancelled() and task.exception() is not None
        ]
        if failures:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise failures[0]

    async def _run_step(
        self,
        step: Step,
        snapshot: Any,
        ledger: StateLedger,
        semaphore: Optional[asyncio.Semaphore],
    ) -> None:
        if semaphore is None:
            await self._execute_step(step, snapshot, ledger)
        else:
            async with semaphore:
                await self._execute_step(step, snapshot, ledger)

    async def _execute_step(self, step: Step, snapshot: Any, ledger: StateLedger) -> None:
        """
        Execute a single step and commit its output to the ledger.

        Args:
            step: The step to execute
            snapshot: Ledger snapshot taken at batch start
            ledger: The run's ledger
        """
        start_time = time.perf_counter()
        prompt = interpolate(step.prompt, snapshot)
        executor = self._resolve_executor(step)

        spec = step.output_spec
        if isinstance(spec, Structured):
            result = await executor.generate_structured(prompt, spec.schema)
            value = result.object
            usage: Optional[Usage] = result.usage
        elif isinstance(spec, Freeform):
            if self._config.streaming:
                value, usage = await self._stream(executor, step, prompt)
            else:
                text_result = await executor.generate_text(prompt)
                value, usage = text_result.text, text_result.usage
        else:
            raise TypeError(f"Unknown output spec for step '{step.step_id}': {spec!r}")

        ledger.write(step.output_key, value)
        if usage is not None:
            ledger.add_usage(usage)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        ledger.add_elapsed(elapsed_ms)
        logger.info(
            f"Step '{step.step_id}' -> '{step.output_key}' completed in {elapsed_ms:.0f}ms",
            extra={"step_id": step.step_id, "chain": self._config.name},
        )

    async def _stream(
        self, executor: Executor, step: Step, prompt: str
    ) -> tuple[str, Optional[Usage]]:
        """Stream a free-text step, forwarding chunks to the sink in order."""
        chunks: list[str] = []
        usage: Optional[Usage] = None
        sink = self._config.on_chunk

        async for item in executor.stream_text(prompt):
            if isinstance(item, Usage):
                usage = item
                continue
            chunks.append(item)
            if sink is not None:
                sink(item, step.step_id)

        return "".join(chunks), usage

    def _resolve_executor(self, step: Step) -> Executor:
        """
        Resolve the executor for a step: its override, else the chain default.

        Raises:
            ConfigurationError: If neither resolves to an executor
        """
        ref = step.executor if step.executor is not None else self._config.default_executor
        if ref is None:
            raise ConfigurationError(
                f"No executor specified for step {step.step_id}", step_id=step.step_id
            )
        try:
            return self._registry.resolve(ref)
        except KeyError as e:
            raise ConfigurationError(
                f"Step {step.step_id}: {e.args[0]}", step_id=step.step_id
            ) from e


def _check_unique_ids(steps: Sequence[Step]) -> None:
    seen: set[str] = set()
    for step in steps:
        if step.step_id in seen:
            raise ConfigurationError(
                f"Duplicate step id: {step.step_id}", step_id=step.step_id
            )
        seen.add(step.step_id)


def _build_result(ledger: StateLedger) -> RunResult:
    """Assemble the RunResult: "output" if written, else the latest write."""
    if OUTPUT_KEY in ledger:
        output = ledger.read(OUTPUT_KEY)
    else:
        _, output = ledger.last_written()

    return RunResult(
        output=output,
        state=ledger.snapshot(),
        cost=ledger.cost(),
        duration=ledger.duration(),
        duration_ms=ledger.elapsed_ms,
    )


def create_chain(config: ChainConfig) -> Chain:
    """Convenience function to build a Chain from a ChainConfig."""
    return Chain(config)
