"""
Ready-made chains for common multi-step prompting patterns.

Each pattern builds a Chain, runs it once and unpacks the ledger into a
result dataclass. They take the executor as an argument and know nothing
about providers.
"""

from stepchain.patterns.extract_enrich import ExtractEnrichResult, extract_enrich_structure
from stepchain.patterns.refinement import Iteration, RefinementResult, iterative_refinement
from stepchain.patterns.research import ResearchResult, research_synthesis
from stepchain.patterns.variants import VariantsResult, generate_variants

__all__ = [
    "ExtractEnrichResult",
    "extract_enrich_structure",
    "Iteration",
    "RefinementResult",
    "iterative_refinement",
    "ResearchResult",
    "research_synthesis",
    "VariantsResult",
    "generate_variants",
]
