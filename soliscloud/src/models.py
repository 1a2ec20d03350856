"""
Pydantic models for persisted point metadata.

A persisted point is identified by its flat path and carries a declared type,
a role tag and an optional unit.  The definition is written once when the
point is first seen and never changed afterwards; only the value is
overwritten on later polls.

CHANGELOG:
- 2026-10-03: Initial creation (STORY-110)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

PointType = Literal["number", "boolean", "string"]


class PointDefinition(BaseModel):
    """Typed metadata for one persisted point.

    Attributes:
        path: Flat dot-separated path, unique per point.
        type: Declared storage type, fixed at creation.
        role: Role tag, e.g. ``"value.power"``, ``"text"``, ``"json"``.
        unit: Engineering unit, or ``None``.
        name: Human-readable name (defaults to the leaf segment).
        read: Whether the point is readable by consumers.
        write: Whether consumers may write the point.
    """

    path: str
    type: PointType
    role: str = "value"
    unit: str | None = None
    name: str = ""
    read: bool = True
    write: bool = False


class PointState(BaseModel):
    """Current value of a persisted point.

    Attributes:
        path: Flat path of the point.
        value: Last written value (``None``, bool, number or string).
        ack: ``True`` when the value was confirmed by the data source.
        ts: When the value was written.
    """

    path: str
    value: Any = None
    ack: bool = False
    ts: datetime


def point_type_of(value: Any) -> PointType:
    """Return the declared type matching a Python value.

    ``bool`` is checked before ``int`` since it is a subclass.  ``None`` and
    non-primitive values are stored as strings.
    """
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"
