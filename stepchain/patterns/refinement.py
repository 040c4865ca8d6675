"""
Iterative refinement: generate, then alternate critique and rewrite.

With iterations=N the chain is v1, critique1, v2, ..., critiqueN, v{N+1}.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from stepchain.runner import ChainConfig, create_chain
from stepchain.schemas import CostSummary

FINAL_CRITIQUE = "Final version"


@dataclass(frozen=True)
class Iteration:
    """One version and the critique written about it."""
    output: Any
    critique: str


@dataclass(frozen=True)
class RefinementResult:
    final: Any
    iterations: list[Iteration] = field(default_factory=list)
    cost: CostSummary = field(default_factory=CostSummary)
    duration: str = "0.0s"


def build_refinement_steps(
    prompt: str,
    schema: Any,
    iterations: int,
    critique_focus: Optional[Sequence[str]] = None,
) -> list[dict[str, Any]]:
    """Build the step declarations for a refinement chain."""
    focus_text = f"\nFocus critique on: {', '.join(critique_focus)}" if critique_focus else ""

    steps: list[dict[str, Any]] = [
        {"id": "generate-v1", "prompt": prompt, "schema": schema, "output": "v1"},
    ]
    for version in range(1, iterations + 1):
        previous = f"v{version}"
        critique = f"critique{version}"
        steps.append({
            "id": f"critique-v{version}",
            "prompt": (
                "Critically analyze this output and identify specific improvements:\n\n"
                f"Output:\n{{{{{previous}}}}}\n"
                f"{focus_text}\n\n"
                "Provide specific, actionable feedback."
            ),
            "output": critique,
        })
        steps.append({
            "id": f"refine-v{version}",
            "prompt": (
                "Improve this output based on the critique:\n\n"
                f"Original:\n{{{{{previous}}}}}\n\n"
                f"Critique:\n{{{{{critique}}}}}\n\n"
                "Generate improved version."
            ),
            "schema": schema,
            "output": f"v{version + 1}",
        })
    return steps


async def iterative_refinement(
    prompt: str,
    schema: Any,
    executor: Any,
    iterations: int = 1,
    critique_focus: Optional[Sequence[str]] = None,
) -> RefinementResult:
    """
    Generate a structured output and refine it through critique rounds.

    Args:
        prompt: Prompt for the first version
        schema: Schema every version must follow
        executor: Executor (or registered name) for every step
        iterations: Number of critique/refine rounds (>= 1)
        critique_focus: Aspects the critiques should concentrate on

    Returns:
        RefinementResult with the final version and the version history
    """
    if iterations < 1:
        raise ValueError("iterations must be >= 1")

    chain = create_chain(ChainConfig(
        steps=build_refinement_steps(prompt, schema, iterations, critique_focus),
        default_executor=executor,
        name="iterative-refinement",
    ))
    result = await chain.run()

    history = []
    for version in range(1, iterations + 2):
        output = result.state.get(f"v{version}")
        if output is None:
            continue
        critique = result.state.get(f"critique{version}") if version <= iterations else None
        history.append(Iteration(output=output, critique=critique or FINAL_CRITIQUE))

    return RefinementResult(
        final=result.state.get(f"v{iterations + 1}"),
        iterations=history,
        cost=result.cost,
        duration=result.duration,
    )
