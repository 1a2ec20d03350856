"""
Device identifier caches with a persisted mirror.

The static cycle lists every device class and records the observed ids here;
the realtime cycle only reads them, so it never has to re-list devices.  Each
class is kept in memory and mirrored into the point store as a JSON-encoded
list (string point, role ``json``) so the ids survive restarts.

CHANGELOG:
- 2026-10-06: Reload in-memory caches from the persisted mirror (STORY-113)
- 2026-10-04: Initial creation (STORY-112)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType

from soliscloud.src.models import PointDefinition
from soliscloud.src.writer import PointStore

logger = logging.getLogger(__name__)

CACHE_PATHS: MappingProxyType[str, str] = MappingProxyType(
    {
        "stations": "cache.stationIds",
        "inverters": "cache.inverterSNs",
        "epms": "cache.epmSNs",
        "collectors": "cache.collectorSNs",
        "weather": "cache.weatherSNs",
        "ammeters": "cache.ammeterSNs",
    }
)
"""Device class -> persisted mirror path."""

DEVICE_CLASSES: tuple[str, ...] = tuple(CACHE_PATHS)


def _parse_ids(raw: object) -> list[str]:
    if not raw:
        return []
    try:
        parsed = json.loads(str(raw))
    except json.JSONDecodeError:
        return []
    return [str(item) for item in parsed] if isinstance(parsed, list) else []


class DeviceCache:
    """In-memory device id lists mirrored into the point store.

    Args:
        store: Point store holding the persisted mirrors.
    """

    def __init__(self, store: PointStore) -> None:
        self._store = store
        self._ids: dict[str, list[str]] = {name: [] for name in DEVICE_CLASSES}

    def get(self, device_class: str) -> list[str]:
        """Return a copy of the cached ids for *device_class*."""
        return list(self._ids[device_class])

    def sizes(self) -> dict[str, int]:
        """Return the number of cached ids per device class."""
        return {name: len(ids) for name, ids in self._ids.items()}

    async def update(self, device_class: str, ids: list[str]) -> None:
        """Replace the ids for *device_class* in memory and in the store."""
        path = CACHE_PATHS[device_class]
        self._ids[device_class] = list(ids)
        await self._store.create_object_if_absent(
            path,
            PointDefinition(path=path, type="string", role="json", name=path),
        )
        await self._store.set_value(path, json.dumps(list(ids)), ack=True)

    async def load(self) -> None:
        """Reload every in-memory list from its persisted mirror."""
        for name, path in CACHE_PATHS.items():
            state = await self._store.get_value(path)
            self._ids[name] = _parse_ids(state.value if state is not None else None)
        logger.info("Device caches reloaded from store: %s", self.sizes())

    def clear(self) -> None:
        """Empty every in-memory list; persisted mirrors are left untouched."""
        self._ids = {name: [] for name in DEVICE_CLASSES}
