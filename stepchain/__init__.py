"""
stepchain - Prompt-chain orchestration.

Declare steps as prompt templates, wire them together with `after`, and run
them in dependency-ordered batches against a pluggable executor:

    from stepchain import ChainConfig, create_chain
    from stepchain.executors import get_executor

    chain = create_chain(ChainConfig(
        default_executor=get_executor("claude-sonnet-4-5"),
        steps=[
            {"id": "extract", "prompt": "Extract facts from: {{input.text}}", "output": "facts"},
            {"id": "summary", "prompt": "Summarize:\\n{{facts}}", "output": "output", "after": "extract"},
        ],
    ))
    result = await chain.run({"text": "..."})
"""

__version__ = "0.1.0"

from stepchain.errors import (
    ConfigError,
    ConfigurationError,
    DependencyError,
    DuplicateOutputKeyError,
    ExecutionError,
    StepchainError,
)
from stepchain.interpolation import interpolate
from stepchain.ledger import PricingRate, StateLedger
from stepchain.normalizer import normalize_steps
from stepchain.resolver import resolve_batches
from stepchain.runner import Chain, ChainConfig, ChainState, create_chain
from stepchain.schemas import (
    CostSummary,
    Freeform,
    RunResult,
    Step,
    StepDescriptor,
    Structured,
    Usage,
)

__all__ = [
    "__version__",
    # Runner
    "Chain",
    "ChainConfig",
    "ChainState",
    "create_chain",
    # Components
    "interpolate",
    "normalize_steps",
    "resolve_batches",
    "PricingRate",
    "StateLedger",
    # Schemas
    "CostSummary",
    "Freeform",
    "RunResult",
    "Step",
    "StepDescriptor",
    "Structured",
    "Usage",
    # Errors
    "ConfigError",
    "ConfigurationError",
    "DependencyError",
    "DuplicateOutputKeyError",
    "ExecutionError",
    "StepchainError",
]
