"""
Normalizer - Turn declared steps into canonical Steps.

Declared steps come in two shapes:
- A plain prompt string
- A StepDescriptor (or a dict with the same keys)

Both become a Step with an id, an output key, an OutputSpec and a
dependency tuple. Positional defaults are 1-based: the item at index 0
becomes "step1".
"""

from collections.abc import Mapping
from typing import Any, Iterable, Sequence, Union

from stepchain.schemas import FREEFORM, Step, StepDescriptor, StepInput, Structured

DESCRIPTOR_KEYS = frozenset({"prompt", "id", "output", "schema", "executor", "after"})


def _default_id(index: int) -> str:
    return f"step{index + 1}"


def _normalize_after(after: Union[str, Sequence[str], None]) -> tuple[str, ...]:
    """Coerce an `after` declaration into a deduplicated tuple, keeping order."""
    if after is None:
        return ()
    if isinstance(after, str):
        return (after,)
    deps: list[str] = []
    for dep in after:
        if dep not in deps:
            deps.append(dep)
    return tuple(deps)


def _descriptor_from_mapping(data: Mapping[str, Any]) -> StepDescriptor:
    unknown = set(data) - DESCRIPTOR_KEYS
    if unknown:
        raise TypeError(f"Unknown step descriptor keys: {sorted(unknown)}")
    if "prompt" not in data:
        raise TypeError("Step descriptor requires a 'prompt'")
    return StepDescriptor(**data)


def normalize_step(item: StepInput, index: int) -> Step:
    """
    Normalize a single declared step.

    Args:
        item: Plain prompt string, StepDescriptor, or descriptor dict
        index: 0-based position of the item in the declared list

    Returns:
        Canonical Step
    """
    if isinstance(item, str):
        step_id = _default_id(index)
        return Step(step_id=step_id, prompt=item, output_key=step_id)

    if isinstance(item, Mapping):
        item = _descriptor_from_mapping(item)
    elif not isinstance(item, StepDescriptor):
        raise TypeError(
            f"Step at position {index + 1} must be a str, StepDescriptor or dict, "
            f"got {type(item).__name__}"
        )

    step_id = item.id or _default_id(index)
    output_spec = Structured(item.schema) if item.schema is not None else FREEFORM

    return Step(
        step_id=step_id,
        prompt=item.prompt,
        output_key=item.output or step_id,
        output_spec=output_spec,
        executor=item.executor,
        depends_on=_normalize_after(item.after),
    )


def normalize_steps(steps: Iterable[StepInput]) -> list[Step]:
    """Normalize an ordered list of declared steps, preserving order."""
    return [normalize_step(item, index) for index, item in enumerate(steps)]
