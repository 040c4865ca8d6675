"""
Interpolation - Substitute {{dotted.path}} placeholders in prompt templates.

{{extracted}} resolves to state["extracted"]
{{initial.variants}} resolves to state["initial"]["variants"]
{{evaluated.items.0}} resolves to state["evaluated"]["items"][0]

Placeholders that cannot be resolved are left in the prompt verbatim so
callers can detect missing substitutions downstream.
"""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

# Placeholder pattern: {{identifier(.identifier)*}}
PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+(?:\.\w+)*)\}\}")


def resolve_path(path: str, state: Mapping[str, Any]) -> Any:
    """
    Resolve a dotted path against ledger state.

    Args:
        path: Dotted path like "user.name"
        state: Ledger snapshot

    Returns:
        The resolved value, or None if any segment is missing or the walk
        reaches a value that cannot be indexed
    """
    first, *rest = path.split(".")
    value = state.get(first)

    for part in rest:
        if isinstance(value, Mapping):
            if part not in value:
                return None
            value = value[part]
        elif isinstance(value, (list, tuple)) and part.isdigit():
            index = int(part)
            if index >= len(value):
                return None
            value = value[index]
        else:
            return None
    return value


def render_value(value: Any) -> str:
    """Render a resolved value for prompt insertion."""
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    if isinstance(value, bool):
        return json.dumps(value)
    return str(value)


def find_placeholders(template: str) -> list[str]:
    """List the placeholder paths in a template, in order of appearance."""
    return PLACEHOLDER_PATTERN.findall(template)


def interpolate(template: str, state: Mapping[str, Any]) -> str:
    """
    Replace every {{path}} placeholder with its rendered value.

    Mappings and sequences render as two-space indented JSON, booleans as
    JSON literals, other values via str(). None and unresolved paths keep
    the original placeholder.

    Args:
        template: Prompt template
        state: Ledger snapshot

    Returns:
        The interpolated prompt
    """
    unresolved = [path for path in find_placeholders(template) if resolve_path(path, state) is None]
    if unresolved:
        logger.debug(f"Unresolved placeholders left in prompt: {unresolved}")

    def replace(match: re.Match) -> str:
        value = resolve_path(match.group(1), state)
        if value is None:
            return match.group(0)
        return render_value(value)

    return PLACEHOLDER_PATTERN.sub(replace, template)
