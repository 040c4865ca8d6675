"""
Research synthesis: analyze several aspects in parallel, then synthesize.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

from stepchain.runner import ChainConfig, create_chain
from stepchain.schemas import CostSummary


@dataclass(frozen=True)
class ResearchResult:
    synthesis: Any
    aspect_analysis: dict[str, Any] = field(default_factory=dict)
    cost: CostSummary = field(default_factory=CostSummary)
    duration: str = "0.0s"


async def research_synthesis(
    input_text: str,
    aspects: Sequence[str],
    executor: Any,
    synthesis_schema: Any,
) -> ResearchResult:
    """
    Analyze input_text once per aspect, then merge the analyses.

    Aspect analyses share one batch; the synthesis step runs after all of
    them. Each aspect name doubles as its ledger key, so aspects must be
    distinct identifiers.

    Args:
        input_text: Subject of the research
        aspects: Aspect names, e.g. ["market", "competitors", "risks"]
        executor: Executor (or registered name) for every step
        synthesis_schema: Schema for the synthesized output

    Returns:
        ResearchResult with the synthesis and each aspect's analysis
    """
    if not aspects:
        raise ValueError("research_synthesis needs at least one aspect")

    steps: list[dict[str, Any]] = [
        {
            "id": f"analyze-{aspect}",
            "prompt": (
                f"Analyze the {aspect} aspect of this:\n\n{input_text}\n\n"
                f"Provide detailed analysis focusing specifically on {aspect}."
            ),
            "output": aspect,
        }
        for aspect in aspects
    ]
    context = "\n\n".join(f"{aspect}: {{{{{aspect}}}}}" for aspect in aspects)
    steps.append({
        "id": "synthesize",
        "prompt": (
            "Synthesize all analyses into a comprehensive output:\n\n"
            f"{context}\n\n"
            "Create a unified, structured analysis."
        ),
        "schema": synthesis_schema,
        "output": "synthesis",
        "after": [f"analyze-{aspect}" for aspect in aspects],
    })

    chain = create_chain(ChainConfig(
        steps=steps, default_executor=executor, name="research-synthesis"
    ))
    result = await chain.run()

    return ResearchResult(
        synthesis=result.state.get("synthesis"),
        aspect_analysis={aspect: result.state.get(aspect) for aspect in aspects},
        cost=result.cost,
        duration=result.duration,
    )
