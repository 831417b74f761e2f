"""Parsing and resolution of per-patch option values."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from patchctl.core.errors import OptionError
from patchctl.core.model import Patch

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionAssignment:
    patch: str
    key: str
    value: Any


def _split_list(inner: str) -> list[str]:
    items: list[str] = []
    current: list[str] = []
    escaped = False
    depth = 0
    for char in inner:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "[":
            depth += 1
            current.append(char)
        elif char == "]" and depth:
            depth -= 1
            current.append(char)
        elif char == "," and not depth:
            items.append("".join(current))
            current = []
        else:
            current.append(char)
    items.append("".join(current))
    return items


def _to_int(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


def _to_float(text: str) -> float | None:
    try:
        number = float(text)
    except ValueError:
        return None
    # nan, inf and overflowing literals stay text
    return number if math.isfinite(number) else None


def parse_option_value(value: Any) -> Any:
    """Convert a textual option value to a Python value.

    ``[a,b]`` becomes a list, quoted text stays a string, ``true``/``false``
    become booleans and numbers (with optional ``f``/``L`` suffix) become
    ``int`` or ``float``. Anything else is returned unchanged.
    """
    if value is None:
        return None
    if isinstance(value, list):
        return [parse_option_value(item) for item in value]
    if not isinstance(value, str):
        return value

    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        if not inner:
            return []
        return [parse_option_value(item) for item in _split_list(inner)]

    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    if value.endswith("f") and len(value) > 1:
        number = _to_float(value[:-1])
        return value if number is None else number
    if value.endswith("L") and len(value) > 1:
        number = _to_int(value[:-1])
        return value if number is None else number
    number = _to_int(value)
    if number is None:
        number = _to_float(value)
    return value if number is None else number


def parse_option_assignment(text: str) -> OptionAssignment:
    """Parse ``PATCH:KEY=VALUE``; an empty value means ``None``."""
    patch, sep, rest = text.partition(":")
    if not sep or not patch.strip():
        raise OptionError(f"Option '{text}' must look like 'Patch name:key=value'")
    key, sep, raw = rest.partition("=")
    if not key.strip():
        raise OptionError(f"Option '{text}' is missing a key")
    value = parse_option_value(raw) if sep and raw != "" else None
    return OptionAssignment(patch=patch.strip(), key=key.strip(), value=value)


def resolve_options(
    patches: Sequence[Patch],
    assignments: Iterable[OptionAssignment],
) -> tuple[dict[str, dict[str, Any]], tuple[str, ...]]:
    """Merge option defaults of ``patches`` with explicit assignments."""
    by_name: Mapping[str, Patch] = {patch.name: patch for patch in patches}
    resolved: dict[str, dict[str, Any]] = {
        patch.name: {key: option.default for key, option in patch.options.items()}
        for patch in patches
    }
    warnings: list[str] = []

    for assignment in assignments:
        patch = by_name.get(assignment.patch)
        if patch is None:
            warnings.append(f"Cannot set options of '{assignment.patch}': patch is not selected")
            continue
        if assignment.key not in patch.options:
            available = ", ".join(sorted(patch.options)) or "none"
            warnings.append(
                f"Patch '{patch.name}' has no option '{assignment.key}'. Available: {available}"
            )
            continue
        resolved[patch.name][assignment.key] = assignment.value

    for patch in patches:
        for key, option in patch.options.items():
            if option.required and resolved[patch.name][key] is None:
                raise OptionError(f"Option '{key}' of patch '{patch.name}' requires a value")

    for warning in warnings:
        LOGGER.warning(warning)
    return resolved, tuple(warnings)
