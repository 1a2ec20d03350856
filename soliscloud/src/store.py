"""
Durable point store using async SQLite.

Holds both the point definitions (path, declared type, role, unit) and their
current values.  It is the persistence collaborator for the state writer and
for the device identifier cache mirrors.  Backed by a SQLite database file in
WAL mode, so points survive process restarts.

Operations:
- get_object(path): Return the PointDefinition at path, or None.
- create_object_if_absent(path, definition): INSERT OR IGNORE a definition.
- get_value(path): Return the current PointState, or None.
- set_value(path, value, ack): UPSERT the current value.
- list_objects(prefix): Definitions whose path starts with prefix.
- close(): Close the underlying database connection.

Supports async context manager protocol for clean resource management.

CHANGELOG:
- 2026-10-03: Initial creation, adapted from the upload spool (STORY-110)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from soliscloud.src.models import PointDefinition, PointState

_CREATE_OBJECTS_SQL = """\
CREATE TABLE IF NOT EXISTS objects (
    path TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    role TEXT NOT NULL,
    unit TEXT,
    name TEXT NOT NULL,
    read INTEGER NOT NULL DEFAULT 1,
    write INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_CREATE_STATES_SQL = """\
CREATE TABLE IF NOT EXISTS states (
    path TEXT PRIMARY KEY,
    value TEXT,
    ack INTEGER NOT NULL,
    ts TEXT NOT NULL
);
"""

_GET_OBJECT_SQL = """\
SELECT path, type, role, unit, name, read, write
FROM objects
WHERE path = ?;
"""

_INSERT_OBJECT_SQL = """\
INSERT OR IGNORE INTO objects (path, type, role, unit, name, read, write)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_LIST_OBJECTS_SQL = """\
SELECT path, type, role, unit, name, read, write
FROM objects
WHERE substr(path, 1, ?) = ?
ORDER BY path ASC;
"""

_GET_STATE_SQL = """\
SELECT path, value, ack, ts
FROM states
WHERE path = ?;
"""

_UPSERT_STATE_SQL = """\
INSERT INTO states (path, value, ack, ts) VALUES (?, ?, ?, ?)
ON CONFLICT(path) DO UPDATE SET value = excluded.value, ack = excluded.ack, ts = excluded.ts;
"""


def _row_to_definition(row: aiosqlite.Row | tuple[Any, ...]) -> PointDefinition:
    return PointDefinition(
        path=row[0],
        type=row[1],
        role=row[2],
        unit=row[3],
        name=row[4],
        read=bool(row[5]),
        write=bool(row[6]),
    )


class StateStore:
    """Async key-value store of typed points backed by SQLite.

    Values are stored as JSON text so ``None``, booleans, numbers and strings
    come back with their Python type intact.

    Args:
        path: Filesystem path for the SQLite database file.
              Accepts ``str`` or ``pathlib.Path``.

    Usage::

        async with StateStore(path="/data/soliscloud.db") as store:
            definition = PointDefinition(path="info.connection", type="boolean")
            await store.create_object_if_absent("info.connection", definition)
            await store.set_value("info.connection", True, ack=True)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the SQLite connection and initialize the schema."""
        self._db = await aiosqlite.connect(str(self._path))
        await self._db.execute("PRAGMA journal_mode=WAL;")
        await self._db.execute(_CREATE_OBJECTS_SQL)
        await self._db.execute(_CREATE_STATES_SQL)
        await self._db.commit()

    async def close(self) -> None:
        """Close the underlying SQLite connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> StateStore:
        """Enter async context manager: open the database."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager: close the database."""
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_object(self, path: str) -> PointDefinition | None:
        """Return the definition stored at *path*, or ``None``."""
        assert self._db is not None, "Store not opened. Call open() or use async with."
        cursor = await self._db.execute(_GET_OBJECT_SQL, (path,))
        row = await cursor.fetchone()
        return _row_to_definition(row) if row is not None else None

    async def create_object_if_absent(self, path: str, definition: PointDefinition) -> bool:
        """Create the point at *path* unless one already exists.

        An existing definition is never modified.

        Args:
            path: Flat path of the point (overrides ``definition.path``).
            definition: Declared type, role, unit and name.

        Returns:
            ``True`` if a new point was created, ``False`` if it existed.
        """
        assert self._db is not None, "Store not opened. Call open() or use async with."
        cursor = await self._db.execute(
            _INSERT_OBJECT_SQL,
            (
                path,
                definition.type,
                definition.role,
                definition.unit,
                definition.name or path.rsplit(".", 1)[-1],
                int(definition.read),
                int(definition.write),
            ),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def list_objects(self, prefix: str = "") -> list[PointDefinition]:
        """Return all definitions whose path starts with *prefix*."""
        assert self._db is not None, "Store not opened. Call open() or use async with."
        cursor = await self._db.execute(_LIST_OBJECTS_SQL, (len(prefix), prefix))
        rows = await cursor.fetchall()
        return [_row_to_definition(row) for row in rows]

    async def get_value(self, path: str) -> PointState | None:
        """Return the current value at *path*, or ``None`` if never written."""
        assert self._db is not None, "Store not opened. Call open() or use async with."
        cursor = await self._db.execute(_GET_STATE_SQL, (path,))
        row = await cursor.fetchone()
        if row is None:
            return None
        value = json.loads(row[1]) if row[1] is not None else None
        return PointState(
            path=row[0],
            value=value,
            ack=bool(row[2]),
            ts=datetime.fromisoformat(row[3]),
        )

    async def set_value(self, path: str, value: Any, ack: bool = False) -> None:
        """Write the current value at *path*.

        Args:
            path: Flat path of the point.
            value: ``None``, bool, number or string.
            ack: ``True`` to mark the value as confirmed by the data source.
        """
        assert self._db is not None, "Store not opened. Call open() or use async with."
        await self._db.execute(
            _UPSERT_STATE_SQL,
            (
                path,
                json.dumps(value, ensure_ascii=False),
                int(ack),
                datetime.now(tz=UTC).isoformat(),
            ),
        )
        await self._db.commit()
