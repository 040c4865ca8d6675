"""
Extract -> enrich -> structure.

Pulls basic facts out of free text, enriches them by inference, then
reshapes both into a final structured object.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from stepchain.runner import ChainConfig, create_chain
from stepchain.schemas import CostSummary


@dataclass(frozen=True)
class ExtractEnrichResult:
    final: Any
    extracted: Any
    enriched: Any
    cost: CostSummary
    duration: str


def _rules_text(rules: Optional[Sequence[str]]) -> str:
    if not rules:
        return ""
    return "\nEnrichment rules:\n" + "\n".join(f"- {rule}" for rule in rules)


async def extract_enrich_structure(
    input_text: str,
    base_schema: Any,
    final_schema: Any,
    executor: Any,
    enrichment_rules: Optional[Sequence[str]] = None,
) -> ExtractEnrichResult:
    """
    Run the three-step extract/enrich/structure chain.

    Args:
        input_text: Source text
        base_schema: Schema for the extraction step
        final_schema: Schema for the final structured output
        executor: Executor (or registered name) for every step
        enrichment_rules: Optional bullet rules for the enrichment step

    Returns:
        ExtractEnrichResult with every intermediate output
    """
    steps = [
        {
            "id": "extract",
            "prompt": f"Extract basic information from this text:\n\n{input_text}",
            "schema": base_schema,
            "output": "extracted",
        },
        {
            "id": "enrich",
            "prompt": (
                "Enrich this data with additional context and inferences:\n\n"
                "Data:\n{{extracted}}\n"
                f"{_rules_text(enrichment_rules)}\n\n"
                "Add missing information through logical inference."
            ),
            "output": "enriched",
        },
        {
            "id": "structure",
            "prompt": (
                "Structure this into final format:\n\n"
                "Extracted:\n{{extracted}}\n\n"
                "Enriched:\n{{enriched}}\n\n"
                "Create final structured output."
            ),
            "schema": final_schema,
            "output": "final",
        },
    ]

    chain = create_chain(ChainConfig(
        steps=steps, default_executor=executor, name="extract-enrich-structure"
    ))
    result = await chain.run()

    return ExtractEnrichResult(
        final=result.state.get("final"),
        extracted=result.state.get("extracted"),
        enriched=result.state.get("enriched"),
        cost=result.cost,
        duration=result.duration,
    )
