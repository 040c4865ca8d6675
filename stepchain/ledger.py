"""
StateLedger - Run-scoped key/value state plus cost and duration counters.

One ledger is created per run, seeded with the caller's input under the
"input" key, written by every completed step, and discarded when the run
ends. Nothing persists across runs.

Steps in a batch complete concurrently, so every mutating operation takes
the ledger lock. Reads return copies so a snapshot never changes under a
reader.
"""

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from stepchain.schemas import CostSummary, Usage


@dataclass(frozen=True)
class PricingRate:
    """
    Two-tier rate applied to usage, per 1000 units.

    Defaults are generic placeholders, not a provider's price list; pass the
    rate for the model actually in use.
    """
    input_per_1k: float = 0.003
    output_per_1k: float = 0.015

    def __post_init__(self):
        if self.input_per_1k < 0 or self.output_per_1k < 0:
            raise ValueError("PricingRate values must be >= 0")

    def cost(self, usage: Usage) -> float:
        return (
            usage.input_units / 1000 * self.input_per_1k
            + usage.output_units / 1000 * self.output_per_1k
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PricingRate":
        defaults = cls()
        return cls(
            input_per_1k=float(data.get("input_per_1k", defaults.input_per_1k)),
            output_per_1k=float(data.get("output_per_1k", defaults.output_per_1k)),
        )


class StateLedger:
    """
    Accumulating state for a single chain run.

    Usage:
        ledger = StateLedger(PricingRate(input_per_1k=0.001, output_per_1k=0.002))
        ledger.write("input", {"topic": "tea"})
        ledger.write("draft", "Tea is ...")
        ledger.add_usage(Usage(input_units=120, output_units=300))
        ledger.add_elapsed(850.0)

        ledger.snapshot()   # read-only copy of every entry
        ledger.cost()       # CostSummary
        ledger.duration()   # "0.9s"
    """

    def __init__(self, pricing: Optional[PricingRate] = None):
        self._pricing = pricing or PricingRate()
        self._lock = threading.Lock()
        self._entries: dict[str, Any] = {}
        self._write_order: dict[str, int] = {}
        self._write_count = 0
        self._total_cost = 0.0
        self._input_units = 0
        self._output_units = 0
        self._elapsed_ms = 0.0

    @property
    def pricing(self) -> PricingRate:
        return self._pricing

    @property
    def write_count(self) -> int:
        """Number of writes so far, including overwrites."""
        with self._lock:
            return self._write_count

    def write(self, key: str, value: Any) -> None:
        """Store (or overwrite) an entry and record it as the latest write."""
        with self._lock:
            self._write_count += 1
            self._entries[key] = value
            self._write_order[key] = self._write_count

    def read(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def snapshot(self) -> Mapping[str, Any]:
        """Return a read-only copy of all entries."""
        with self._lock:
            return MappingProxyType(dict(self._entries))

    def last_written(self) -> tuple[Optional[str], Any]:
        """
        Return the (key, value) most recently written, by write order.

        Returns:
            (None, None) if nothing has been written
        """
        with self._lock:
            if not self._write_order:
                return None, None
            key = max(self._write_order, key=self._write_order.__getitem__)
            return key, self._entries[key]

    def add_usage(self, usage: Usage) -> None:
        """Fold one call's usage into the running totals."""
        cost = self._pricing.cost(usage)
        with self._lock:
            self._input_units += usage.input_units
            self._output_units += usage.output_units
            self._total_cost += cost

    def add_elapsed(self, ms: float) -> None:
        """Accumulate step wall time in milliseconds."""
        with self._lock:
            self._elapsed_ms += ms

    def cost(self) -> CostSummary:
        with self._lock:
            return CostSummary(
                total_cost=self._total_cost,
                total_units=self._input_units + self._output_units,
                input_units=self._input_units,
                output_units=self._output_units,
            )

    @property
    def elapsed_ms(self) -> float:
        with self._lock:
            return self._elapsed_ms

    def duration(self) -> str:
        """Accumulated wall time as one-decimal seconds, e.g. "3.2s"."""
        return f"{self.elapsed_ms / 1000:.1f}s"
