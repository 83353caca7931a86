"""
Configuration merge primitives.

Layers are plain nested dicts. Merging is right-biased: nested dicts merge
recursively, every other value (lists included) replaces the lower layer's
value wholesale. ``None`` is treated as "not set" and never overrides.
"""

import copy
from functools import reduce
from typing import Any, Dict, Iterable, Optional

_MISSING = object()


def deep_merge(base: Optional[Dict[str, Any]], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge ``override`` on top of ``base`` and return a new dict.

    Args:
        base: Lower priority configuration
        override: Higher priority configuration

    Returns:
        A merged copy. Neither argument is mutated.
    """
    result = copy.deepcopy(base) if base else {}
    if not override:
        return result

    for key, value in override.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        elif isinstance(value, dict):
            result[key] = prune_none(value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def merge_layers(layers: Iterable[Optional[Dict[str, Any]]]) -> Dict[str, Any]:
    """Fold ``deep_merge`` over layers ordered lowest to highest priority."""
    return reduce(deep_merge, layers, {})


def prune_none(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``config`` without keys whose value is None."""
    pruned = {}
    for key, value in config.items():
        if value is None:
            continue
        pruned[key] = prune_none(value) if isinstance(value, dict) else copy.deepcopy(value)
    return pruned


def flatten_keys(config: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Map dotted key paths to leaf values.

    Lists and empty dicts are treated as leaves.
    """
    flat = {}
    for key, value in config.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            flat.update(flatten_keys(value, path))
        elif value is not None:
            flat[path] = value
    return flat


def get_path(config: Dict[str, Any], dotted_key: str, default: Any = None) -> Any:
    """Look up ``a.b.c`` style keys in nested dicts."""
    current: Any = config
    for part in dotted_key.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return default
    return current
