"""
Run result schemas - usage accounting and the final run report.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Usage:
    """
    Units consumed by one generation call.

    Attributes:
        input_units: Prompt-side units (tokens)
        output_units: Completion-side units (tokens)
    """
    input_units: int = 0
    output_units: int = 0

    def __post_init__(self):
        if self.input_units < 0 or self.output_units < 0:
            raise ValueError("Usage units must be >= 0")

    @property
    def total_units(self) -> int:
        return self.input_units + self.output_units

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Usage":
        """Build from provider-style usage dicts (input/prompt, output/completion)."""
        input_units = data.get("input_units", data.get("input_tokens", data.get("prompt_tokens", 0)))
        output_units = data.get(
            "output_units", data.get("output_tokens", data.get("completion_tokens", 0))
        )
        return cls(input_units=int(input_units or 0), output_units=int(output_units or 0))


@dataclass(frozen=True)
class CostSummary:
    """
    Running cost of a run.

    Attributes:
        total_cost: Cost in currency units under the configured PricingRate
        total_units: input_units + output_units
        input_units: Prompt-side units across all steps
        output_units: Completion-side units across all steps
    """
    total_cost: float = 0.0
    total_units: int = 0
    input_units: int = 0
    output_units: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cost": self.total_cost,
            "total_units": self.total_units,
            "input_units": self.input_units,
            "output_units": self.output_units,
        }


@dataclass(frozen=True)
class RunResult:
    """
    Result of running a chain.

    Attributes:
        output: The "output" ledger entry if present, else the last written entry
        state: Read-only snapshot of the full ledger, including "input"
        cost: Aggregated cost across all steps
        duration: Summed step wall time, one-decimal seconds (e.g. "2.4s")
        duration_ms: Summed step wall time in milliseconds
    """
    output: Any
    state: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    cost: CostSummary = field(default_factory=CostSummary)
    duration: str = "0.0s"
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "output": self.output,
            "state": dict(self.state),
            "cost": self.cost.to_dict(),
            "duration": self.duration,
        }
