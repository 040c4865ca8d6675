"""
Step schemas - the declared and canonical shapes of a chain step.

Callers declare steps either as plain prompt strings or as StepDescriptors
(or dicts with the same keys). The normalizer turns every declaration into
exactly one canonical Step, so nothing downstream has to care which shape
was used.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union


@dataclass(frozen=True)
class Freeform:
    """Output is free text produced by the executor."""


@dataclass(frozen=True, eq=False)
class Structured:
    """
    Output is a structured object shaped by a schema.

    Compared by identity, since schema handles are usually unhashable dicts.

    Attributes:
        schema: Opaque schema handle handed to the executor. The bundled
                executors expect a JSON Schema dict.
    """
    schema: Any


OutputSpec = Union[Freeform, Structured]

FREEFORM = Freeform()


@dataclass(frozen=True)
class StepDescriptor:
    """
    A step declaration with optional metadata.

    Attributes:
        prompt: Prompt template, may contain {{dotted.path}} placeholders
        id: Step identifier (defaults to step{position})
        output: Ledger key the result is written to (defaults to the id)
        schema: Structured-output schema; absent means free text
        executor: Executor override (executor object or registry name)
        after: Id or ids this step depends on
    """
    prompt: str
    id: Optional[str] = None
    output: Optional[str] = None
    schema: Any = None
    executor: Any = None
    after: Union[str, Sequence[str], None] = None


@dataclass(frozen=True)
class Step:
    """
    A canonical step, immutable for the lifetime of a run.

    Attributes:
        step_id: Identifier, unique within a run
        prompt: Prompt template
        output_key: Ledger key the result is written to
        output_spec: Freeform() or Structured(schema)
        executor: Executor override, or None to use the chain default
        depends_on: Ids of steps that must complete first (declared order)
    """
    step_id: str
    prompt: str
    output_key: str
    output_spec: OutputSpec = FREEFORM
    executor: Any = field(default=None, compare=False)
    depends_on: tuple[str, ...] = ()

    @property
    def is_structured(self) -> bool:
        return isinstance(self.output_spec, Structured)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for display (schemas and executors omitted)."""
        result: dict[str, Any] = {
            "step_id": self.step_id,
            "output_key": self.output_key,
            "output": "structured" if self.is_structured else "freeform",
        }
        if self.depends_on:
            result["depends_on"] = list(self.depends_on)
        if isinstance(self.executor, str):
            result["executor"] = self.executor
        return result


StepInput = Union[str, StepDescriptor, dict]
