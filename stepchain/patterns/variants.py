"""
Variant generation: over-generate, score, then refine the best.

Generates max(count * 2, 10) candidates, evaluates each one, and writes
`count` refined variants inspired by the top scorers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from stepchain.errors import ExecutionError
from stepchain.runner import ChainConfig, create_chain
from stepchain.schemas import CostSummary


def initial_variant_count(count: int) -> int:
    return max(count * 2, 10)


def _variants_schema(expected: int) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "variants": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": max(expected - 2, 0),
                "maxItems": expected + 2,
            },
        },
        "required": ["variants"],
    }


def _evaluations_schema(expected: int) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "evaluations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "variant": {"type": "string"},
                        "score": {"type": "number", "minimum": 0, "maximum": 100},
                        "reasoning": {"type": "string"},
                    },
                    "required": ["variant", "score", "reasoning"],
                },
                "minItems": max(expected - 2, 0),
                "maxItems": expected + 2,
            },
        },
        "required": ["evaluations"],
    }


def _list_field(state: Mapping[str, Any], key: str, name: str, step_id: str) -> list[Any]:
    """Pull the list `name` out of the structured object stored under `key`."""
    value = state.get(key) or {}
    if not isinstance(value, Mapping):
        raise ExecutionError(
            f"expected an object with '{name}', got {type(value).__name__}", step_id=step_id
        )
    items = value.get(name, [])
    if not isinstance(items, list):
        raise ExecutionError(
            f"expected '{name}' to be a list, got {type(items).__name__}", step_id=step_id
        )
    return list(items)


@dataclass(frozen=True)
class VariantsResult:
    """
    Attributes:
        variants: The refined variants
        all_variants: Every scored candidate ({"variant", "score", "reasoning"})
    """
    variants: list[str] = field(default_factory=list)
    all_variants: list[dict[str, Any]] = field(default_factory=list)
    cost: CostSummary = field(default_factory=CostSummary)
    duration: str = "0.0s"


async def generate_variants(
    input_text: str,
    count: int,
    executor: Any,
    style: Optional[str] = None,
    constraints: Optional[Sequence[str]] = None,
) -> VariantsResult:
    """
    Generate `count` polished variants of input_text.

    Args:
        input_text: Text to vary
        count: Number of final variants (>= 1)
        executor: Executor (or registered name) for every step
        style: Optional style direction
        constraints: Optional bullet constraints

    Returns:
        VariantsResult with the final variants and every scored candidate
    """
    if count < 1:
        raise ValueError("count must be >= 1")

    initial = initial_variant_count(count)
    style_text = f"\nStyle: {style}" if style else ""
    constraints_text = (
        "\nConstraints:\n" + "\n".join(f"- {c}" for c in constraints) if constraints else ""
    )

    steps = [
        {
            "id": "generate-initial",
            "prompt": (
                f"Generate {initial} diverse variants of this:\n\n"
                f"Original:\n{input_text}\n"
                f"{style_text}\n{constraints_text}\n\n"
                "Focus on creating variety - try different angles, tones, and approaches."
            ),
            "schema": _variants_schema(initial),
            "output": "initial",
        },
        {
            "id": "evaluate",
            "prompt": (
                "Evaluate these variants and score each one:\n\n"
                f"Original: {input_text}\n"
                f"{style_text}\n{constraints_text}\n\n"
                "Variants:\n{{initial.variants}}\n\n"
                "Score each variant (0-100) based on:\n"
                "- How well it matches the style\n"
                "- Whether it meets constraints\n"
                "- Creativity and appeal\n"
                "- Clarity\n\n"
                "Return evaluation for each variant."
            ),
            "schema": _evaluations_schema(initial),
            "output": "evaluated",
        },
        {
            "id": "refine",
            "prompt": (
                f"Based on the evaluation, generate {count} final variants.\n\n"
                "Top performing variants (use as inspiration):\n"
                "{{evaluated.evaluations}}\n\n"
                f"Generate {count} refined variants that:\n"
                "- Take the best elements from top-scoring variants\n"
                "- Maintain the style and constraints\n"
                "- Push quality even higher"
            ),
            "schema": _variants_schema(count),
            "output": "final",
        },
    ]

    chain = create_chain(ChainConfig(
        steps=steps, default_executor=executor, name="generate-variants"
    ))
    result = await chain.run()

    return VariantsResult(
        variants=_list_field(result.state, "final", "variants", step_id="refine"),
        all_variants=_list_field(result.state, "evaluated", "evaluations", step_id="evaluate"),
        cost=result.cost,
        duration=result.duration,
    )
