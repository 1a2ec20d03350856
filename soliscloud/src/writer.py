"""
State materializer: flat key/value maps -> typed persisted points.

For every flattened leaf the writer makes sure a point definition exists at
the full path (created once, with the declared type taken from the first
value seen and the role/unit inferred from the leaf name) and then overwrites
the point's value with ``ack=True``.

Once a point's declared type is set it never changes.  A later value of a
different kind is coerced into the declared shape through its JSON text
rather than redefining the point.

CHANGELOG:
- 2026-10-04: Coerce values to the declared type of existing points (STORY-111)
- 2026-10-03: Initial creation (STORY-111)

TODO:
- None
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol

from soliscloud.src.flatten import to_json_text
from soliscloud.src.models import PointDefinition, PointState, PointType, point_type_of
from soliscloud.src.semantic import infer_semantic

logger = logging.getLogger(__name__)

_REPEATED_DOTS = re.compile(r"\.{2,}")


class PointStore(Protocol):
    """The subset of :class:`~soliscloud.src.store.StateStore` the writer uses."""

    async def get_object(self, path: str) -> PointDefinition | None: ...

    async def create_object_if_absent(self, path: str, definition: PointDefinition) -> bool: ...

    async def get_value(self, path: str) -> PointState | None: ...

    async def set_value(self, path: str, value: Any, ack: bool = False) -> None: ...


def join_path(prefix: str, suffix: str) -> str:
    """Join two path parts and collapse repeated or dangling dots."""
    return _REPEATED_DOTS.sub(".", f"{prefix}.{suffix}").strip(".")


def to_state_value(value: Any) -> Any:
    """Convert a flattened leaf into a storable value.

    Primitives and ``None`` pass through; anything else becomes JSON text.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return to_json_text(value)


def coerce_to_type(value: Any, declared: PointType) -> Any:
    """Coerce *value* into the shape of an existing point's declared type."""
    value = to_state_value(value)
    if value is None:
        return None
    if point_type_of(value) == declared:
        return value
    # Kind changed since the point was defined; fall back to its text form.
    return value if isinstance(value, str) else to_json_text(value)


class StateWriter:
    """Materialize flattened responses as typed points in a store.

    Args:
        store: Point store (see :class:`PointStore`).
    """

    def __init__(self, store: PointStore) -> None:
        self._store = store

    async def write_flat(self, prefix: str, flat: dict[str, Any]) -> int:
        """Create missing points and write every value under *prefix*.

        Args:
            prefix: Series prefix, e.g. ``stations.123.day.2026-10-18``.
            flat: Output of :func:`~soliscloud.src.flatten.flatten`.

        Returns:
            Number of points newly created.
        """
        created = 0
        for suffix, value in flat.items():
            path = join_path(prefix, suffix)
            definition = await self._store.get_object(path)
            if definition is None:
                definition = self._define(path, value)
                if await self._store.create_object_if_absent(path, definition):
                    created += 1
                else:
                    definition = await self._store.get_object(path) or definition
            await self._store.set_value(path, coerce_to_type(value, definition.type), ack=True)
        if created:
            logger.debug("Created %d new points under %s", created, prefix)
        return created

    @staticmethod
    def _define(path: str, value: Any) -> PointDefinition:
        leaf = path.rsplit(".", 1)[-1]
        semantic = infer_semantic(leaf)
        return PointDefinition(
            path=path,
            type=point_type_of(to_state_value(value)),
            role=semantic.role,
            unit=semantic.unit,
            name=leaf,
        )
