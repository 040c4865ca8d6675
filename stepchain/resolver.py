"""
Resolver - Partition Steps into ordered execution batches.

A batch is a group of steps with no dependency on one another, so they can
run concurrently. Batches run strictly in order: a step only ever depends on
steps placed in an earlier batch.

Chains where no step declares a dependency run one step per batch, in
declaration order.
"""

import logging
from collections import defaultdict
from typing import Sequence

from stepchain.errors import DependencyError, DuplicateOutputKeyError
from stepchain.schemas import Step

logger = logging.getLogger(__name__)

Batch = tuple[Step, ...]


def resolve_batches(steps: Sequence[Step]) -> list[Batch]:
    """
    Resolve steps into ordered batches.

    Each round collects every unscheduled step whose dependencies have all
    completed, scanning in declaration order so batch membership is
    deterministic.

    Args:
        steps: Normalized steps in declaration order

    Returns:
        Ordered list of batches

    Raises:
        DependencyError: If a round finds no ready step while steps remain.
            Lists every stuck step (cycles and unknown ids alike).
    """
    if not any(step.depends_on for step in steps):
        return [(step,) for step in steps]

    completed: set[str] = set()
    remaining = list(steps)
    batches: list[Batch] = []

    while remaining:
        ready = tuple(
            step for step in remaining
            if all(dep in completed for dep in step.depends_on)
        )

        if not ready:
            raise DependencyError(step.step_id for step in remaining)

        batches.append(ready)
        completed.update(step.step_id for step in ready)
        remaining = [step for step in remaining if step.step_id not in completed]

    logger.debug(
        f"Resolved {len(steps)} steps into {len(batches)} batches: "
        f"{[[step.step_id for step in batch] for batch in batches]}"
    )
    return batches


def validate_batches(batches: Sequence[Batch]) -> None:
    """
    Reject batches in which two steps write the same output key.

    Raises:
        DuplicateOutputKeyError: For the first colliding key found
    """
    for batch in batches:
        writers: dict[str, list[str]] = defaultdict(list)
        for step in batch:
            writers[step.output_key].append(step.step_id)
        for output_key, step_ids in writers.items():
            if len(step_ids) > 1:
                raise DuplicateOutputKeyError(output_key, step_ids)
