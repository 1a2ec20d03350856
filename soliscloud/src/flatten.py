"""
Pure JSON-to-flat-path transducer.

Turns an arbitrarily nested JSON value (as decoded by ``json.loads``) into a
flat ``{path: leaf}`` dict, where each path is a dot-joined sequence of
sanitized object keys and array indices.  Leaves are ``None``, ``bool``,
``int``, ``float`` or ``str``; subtrees that are collapsed (array ``json``
mode, depth guard) become compact JSON text.

This is a pure function: no I/O, no clock, no logging.

CHANGELOG:
- 2026-10-03: Add depth guard for pathological nesting (STORY-104)
- 2026-10-02: Initial creation (STORY-103)

TODO:
- None
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal

ArrayMode = Literal["index", "json"]

DEFAULT_MAX_DEPTH: int = 12
"""Nesting depth after which a subtree is stored as a single JSON leaf."""

_UNSAFE_CHARS = re.compile(r"[^\w.-]", re.ASCII)


def sanitize_key(key: object) -> str:
    """Replace every character outside ``[A-Za-z0-9_.-]`` with ``_``."""
    return _UNSAFE_CHARS.sub("_", str(key))


def to_json_text(value: Any) -> str:
    """Serialize *value* as compact JSON, falling back to ``str`` for odd types."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def flatten(
    value: Any,
    array_mode: ArrayMode = "index",
    max_depth: int = DEFAULT_MAX_DEPTH,
    prefix: str = "",
) -> dict[str, Any]:
    """Flatten a nested JSON value into ``{path: leaf}``.

    Args:
        value: Any JSON-shaped value (dict, list, str, int, float, bool, None).
        array_mode: ``"index"`` expands sequences into one path segment per
            element; ``"json"`` stores the whole sequence as JSON text.
        max_depth: Maximum recursion depth before the remaining subtree is
            emitted as a single JSON text leaf.
        prefix: Path prefix for all produced keys.  A leaf reached with an
            empty prefix is stored under ``"value"``.

    Returns:
        A new dict mapping flat paths to primitive leaves.  Empty containers
        (in ``index`` mode) produce no entries.

    Example::

        >>> flatten(["a", "b"], prefix="x")
        {'x.0': 'a', 'x.1': 'b'}
        >>> flatten(["a", "b"], array_mode="json", prefix="x")
        {'x': '["a","b"]'}
    """
    out: dict[str, Any] = {}
    _flatten_into(out, value, array_mode, max_depth, prefix, 0)
    return out


def _flatten_into(
    out: dict[str, Any],
    value: Any,
    array_mode: ArrayMode,
    max_depth: int,
    prefix: str,
    depth: int,
) -> None:
    key = prefix or "value"

    if depth > max_depth:
        out[key] = to_json_text(value)
        return

    if value is None:
        out[key] = None
        return

    if isinstance(value, (list, tuple)):
        if array_mode == "json":
            out[key] = to_json_text(value)
            return
        for index, item in enumerate(value):
            child = f"{prefix}.{index}" if prefix else str(index)
            _flatten_into(out, item, array_mode, max_depth, child, depth + 1)
        return

    if isinstance(value, dict):
        for raw_key, item in value.items():
            safe = sanitize_key(raw_key)
            child = f"{prefix}.{safe}" if prefix else safe
            _flatten_into(out, item, array_mode, max_depth, child, depth + 1)
        return

    if isinstance(value, (bool, int, float, str)):
        out[key] = value
        return

    # Not JSON-shaped (e.g. a datetime slipped in); keep it as text.
    out[key] = to_json_text(value)
