"""
stepchain.schemas - Data structures shared by the chain components.

StepInput (str | StepDescriptor | dict) -> Step -> batches of Steps -> RunResult

Lifecycle:
1. StepInput: What the caller declares (plain prompt or descriptor)
2. Step: Canonical, immutable record produced by the normalizer
3. Usage / CostSummary: Per-call units folded into run-wide cost
4. RunResult: Final output, ledger snapshot, cost and duration
"""

from .step import (
    FREEFORM,
    Freeform,
    OutputSpec,
    Step,
    StepDescriptor,
    StepInput,
    Structured,
)
from .result import (
    CostSummary,
    RunResult,
    Usage,
)

__all__ = [
    # Steps
    "FREEFORM",
    "Freeform",
    "OutputSpec",
    "Step",
    "StepDescriptor",
    "StepInput",
    "Structured",
    # Results
    "CostSummary",
    "RunResult",
    "Usage",
]
