"""
Configuration management for stepchain.

Loads and validates chain definition files (YAML or JSON):

    chain:
      name: product-brief
      description: Extract, enrich and structure a product description
    executor: claude-sonnet-4-5
    streaming: false
    max_concurrency: 4
    pricing:
      input_per_1k: 0.003
      output_per_1k: 0.015
    logging:
      level: INFO
      format: pretty
      file: logs/product-brief.log
    steps:
      - id: extract
        prompt: "Extract the basic facts from: {{input.text}}"
        output: extracted
        schema: {type: object, properties: {name: {type: string}}}
      - id: enrich
        prompt: "Enrich: {{extracted}}"
        after: extract
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from stepchain.errors import ConfigError
from stepchain.executors import ExecutorRegistry
from stepchain.ledger import PricingRate
from stepchain.normalizer import DESCRIPTOR_KEYS
from stepchain.runner import ChainConfig, ChunkSink

LOG_LEVEL_ENV = "STEPCHAIN_LOG_LEVEL"


class ChainDefinition:
    """A chain definition loaded from a file."""

    def __init__(self, data: Dict[str, Any], source: Optional[Path] = None):
        self.source = source
        self.raw_config = data

        chain = data.get("chain", {}) or {}
        default_name = source.stem if source else "chain"
        self.name = chain.get("name", default_name)
        self.description = chain.get("description", "")

        self.executor: Optional[str] = data.get("executor")
        self.streaming = bool(data.get("streaming", False))
        self.max_concurrency: Optional[int] = data.get("max_concurrency")
        self.pricing = PricingRate.from_dict(data.get("pricing", {}) or {})
        self.logging = data.get("logging", {}) or {}
        self.steps: List[Any] = list(data.get("steps", []) or [])

    def get_log_level(self) -> str:
        """Get logging level (STEPCHAIN_LOG_LEVEL wins over the file)."""
        return os.environ.get(LOG_LEVEL_ENV, self.logging.get("level", "INFO")).upper()

    def get_log_format(self) -> str:
        """Get log format (structured or pretty)."""
        return self.logging.get("format", "pretty")

    def should_log_to_console(self) -> bool:
        return self.logging.get("console", True)

    def get_log_file(self) -> Optional[Path]:
        """Get the log file path, relative paths resolved against the definition file."""
        log_file = self.logging.get("file")
        if not log_file:
            return None
        path = Path(log_file)
        if not path.is_absolute() and self.source is not None:
            path = self.source.parent / path
        return path

    def executor_names(self) -> List[str]:
        """Every executor name the definition refers to, default first."""
        names: List[str] = []
        if self.executor:
            names.append(self.executor)
        for step in self.steps:
            if isinstance(step, dict) and isinstance(step.get("executor"), str):
                if step["executor"] not in names:
                    names.append(step["executor"])
        return names

    def validate(self) -> None:
        """Validate the definition structure."""
        if not self.steps:
            raise ConfigError(f"Chain '{self.name}': no steps defined")

        if self.executor is not None and not isinstance(self.executor, str):
            raise ConfigError(f"Chain '{self.name}': 'executor' must be a name")

        if self.max_concurrency is not None:
            if not isinstance(self.max_concurrency, int) or self.max_concurrency < 1:
                raise ConfigError(f"Chain '{self.name}': 'max_concurrency' must be a positive integer")

        for position, step in enumerate(self.steps, start=1):
            if isinstance(step, str):
                continue
            if not isinstance(step, dict):
                raise ConfigError(
                    f"Chain '{self.name}': step {position} must be a string or a mapping"
                )
            if "prompt" not in step:
                raise ConfigError(f"Chain '{self.name}': step {position} is missing 'prompt'")
            unknown = set(step) - DESCRIPTOR_KEYS
            if unknown:
                raise ConfigError(
                    f"Chain '{self.name}': step {position} has unknown keys: {sorted(unknown)}"
                )

    def to_chain_config(
        self,
        registry: ExecutorRegistry,
        on_chunk: Optional[ChunkSink] = None,
        streaming: Optional[bool] = None,
    ) -> ChainConfig:
        """
        Build a ChainConfig. Executor names stay names and are resolved
        through the registry when each step runs.

        Args:
            registry: Registry holding every executor the definition names
            on_chunk: Optional streaming sink
            streaming: Override the file's streaming flag
        """
        return ChainConfig(
            steps=[dict(step) if isinstance(step, dict) else step for step in self.steps],
            default_executor=self.executor,
            streaming=self.streaming if streaming is None else streaming,
            on_chunk=on_chunk,
            pricing=self.pricing,
            max_concurrency=self.max_concurrency,
            registry=registry,
            name=self.name,
        )

    def __repr__(self) -> str:
        return f"ChainDefinition(name={self.name}, steps={len(self.steps)})"


def _load_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML or JSON definition file."""
    if not path.exists():
        raise ConfigError(f"Chain definition not found: {path}")

    text = path.read_text()
    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Invalid syntax in {path}: {e}")

    if not data:
        raise ConfigError(f"Chain definition is empty: {path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Chain definition must be a mapping: {path}")
    return data


def load_chain_definition(path: Path | str) -> ChainDefinition:
    """
    Load and validate a chain definition.

    Args:
        path: Path to a .yaml, .yml or .json file

    Returns:
        Validated ChainDefinition

    Raises:
        ConfigError: If the file is missing, unparseable or invalid
    """
    path = Path(path)
    definition = ChainDefinition(_load_file(path), source=path)
    definition.validate()
    return definition
