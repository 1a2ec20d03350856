"""
Health file writer for the SolisCloud bridge.

Writes a JSON health file at a configurable path with these fields:
- last_realtime_ts: ISO timestamp of the most recent successful realtime cycle.
- last_static_ts: ISO timestamp of the most recent successful static cycle.
- last_error: Short description of the most recent cycle failure, or null.
- device_counts: Number of cached device ids per device class.

The file is rewritten on every state change, providing a simple liveness
signal that a container HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-06: Track realtime and static cycles separately (STORY-115)
- 2026-10-06: Initial creation, adapted from the edge health writer (STORY-115)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes bridge health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_realtime_ts: str | None = None
        self._last_static_ts: str | None = None
        self._last_error: str | None = None
        self._device_counts: dict[str, int] = {}

    def record_cycle(self, cycle: str) -> None:
        """Record a successful ``"realtime"`` or ``"static"`` cycle."""
        now = datetime.now(tz=UTC).isoformat()
        if cycle == "realtime":
            self._last_realtime_ts = now
        else:
            self._last_static_ts = now
        self._write()

    def record_error(self, cycle: str, exc: BaseException) -> None:
        """Record a failed cycle."""
        self._last_error = f"{cycle}: {type(exc).__name__}: {exc}"[:300]
        self._write()

    def set_device_counts(self, counts: dict[str, int]) -> None:
        """Update the cached device counts and write health file."""
        self._device_counts = dict(counts)
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_realtime_ts": self._last_realtime_ts,
            "last_static_ts": self._last_static_ts,
            "last_error": self._last_error,
            "device_counts": self._device_counts,
        }
        self.path.write_text(json.dumps(data))
