"""SQLite storage implementation."""

import asyncio
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable, Protocol

import aiosqlite

from ..clock import ensure_utc
from ..config import resolve_db_path
from ..errors import ConflictError, NotFoundError
from ..logging_config import get_logger
from ..models import (
    ActorKind,
    ActorRef,
    EventType,
    GeoPoint,
    Role,
    TraceabilityEvent,
    TraceableUnit,
    UserProfile,
    VtiStatus,
    parse_payload,
)

logger = get_logger(__name__)

_UNIT_COLUMNS = (
    "id, type, creation_time, current_location, status, linked_vtis, "
    "metadata, is_public_traceable"
)
_EVENT_COLUMNS = (
    "id, vti_id, field_context_id, timestamp, event_type, actor_kind, actor_id, "
    "geo_location, payload, is_public_traceable"
)


class IStorage(Protocol):
    """Persistent document store for units, events and user profiles."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Units
    async def save_unit(self, unit: TraceableUnit) -> None:
        """Insert a new unit. Raises ConflictError if the id exists."""
        ...

    async def get_unit(self, vti_id: str) -> TraceableUnit | None:
        """Get a unit by id."""
        ...

    async def get_units(self, vti_ids: Iterable[str]) -> list[TraceableUnit]:
        """Get all units whose id is in vti_ids."""
        ...

    async def get_recent_public_units(self, limit: int = 10) -> list[TraceableUnit]:
        """Get publicly traceable units, newest first."""
        ...

    # Events
    async def save_event(self, event: TraceabilityEvent) -> None:
        """Append an event. Raises NotFoundError if its unit does not exist."""
        ...

    async def save_unit_with_events(
        self, unit: TraceableUnit, events: list[TraceabilityEvent]
    ) -> None:
        """Insert a unit and its events in one transaction."""
        ...

    async def get_event(self, event_id: str) -> TraceabilityEvent | None:
        """Get an event by id."""
        ...

    async def get_events_for_unit(self, vti_id: str) -> list[TraceabilityEvent]:
        """Events scoped to a unit, oldest first."""
        ...

    async def get_events_for_field(
        self, field_context_id: str, unscoped_only: bool = False
    ) -> list[TraceabilityEvent]:
        """Events referencing a field context, oldest first."""
        ...

    async def get_first_event(
        self, vti_id: str, event_type: EventType
    ) -> TraceabilityEvent | None:
        """Earliest event of a type for a unit."""
        ...

    # Users
    async def save_user(self, user: UserProfile) -> None:
        """Save a user profile."""
        ...

    async def get_user(self, user_id: str) -> UserProfile | None:
        """Get a user profile by id."""
        ...

    async def get_users(self, user_ids: Iterable[str]) -> list[UserProfile]:
        """Get all user profiles whose id is in user_ids."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


def _ts(value: datetime) -> str:
    # fixed width so that lexical order matches chronological order
    return ensure_utc(value).isoformat(timespec="microseconds")


def _parse_ts(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))


def _placeholders(count: int) -> str:
    return ",".join("?" * count)


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        # one shared connection: reads must not observe an open write
        # transaction and writes must not interleave across commits
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA foreign_keys = ON")

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()
        logger.debug("Storage opened at %s", self._db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def _fetchone(self, sql: str, params: Iterable = ()):
        conn = self._require_conn()
        async with self._lock:
            async with conn.execute(sql, params) as cursor:
                return await cursor.fetchone()

    async def _fetchall(self, sql: str, params: Iterable = ()) -> list:
        conn = self._require_conn()
        async with self._lock:
            async with conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())

    # Units
    async def _insert_unit(self, conn: aiosqlite.Connection, unit: TraceableUnit) -> None:
        try:
            await conn.execute(
                f"""
                INSERT INTO vti_registry ({_UNIT_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    unit.id,
                    unit.type,
                    _ts(unit.creation_time),
                    json.dumps(unit.current_location.to_dict()) if unit.current_location else None,
                    unit.status.value,
                    json.dumps(unit.linked_vtis),
                    json.dumps(unit.metadata),
                    int(unit.is_public_traceable),
                ),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise ConflictError(f"Unit {unit.id} already exists") from e
            raise

    async def save_unit(self, unit: TraceableUnit) -> None:
        """Insert a new unit. Raises ConflictError if the id exists."""
        conn = self._require_conn()
        async with self._lock:
            try:
                await self._insert_unit(conn, unit)
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def get_unit(self, vti_id: str) -> TraceableUnit | None:
        """Get a unit by id."""
        row = await self._fetchone(
            f"SELECT {_UNIT_COLUMNS} FROM vti_registry WHERE id = ?",
            (vti_id,),
        )
        return self._row_to_unit(row) if row else None

    async def get_units(self, vti_ids: Iterable[str]) -> list[TraceableUnit]:
        """Get all units whose id is in vti_ids."""
        ids = list(dict.fromkeys(vti_ids))
        if not ids:
            return []

        rows = await self._fetchall(
            f"SELECT {_UNIT_COLUMNS} FROM vti_registry WHERE id IN ({_placeholders(len(ids))})",
            ids,
        )
        return [self._row_to_unit(row) for row in rows]

    async def get_recent_public_units(self, limit: int = 10) -> list[TraceableUnit]:
        """Get publicly traceable units, newest first."""
        rows = await self._fetchall(
            f"""
            SELECT {_UNIT_COLUMNS}
            FROM vti_registry
            WHERE is_public_traceable = 1
            ORDER BY creation_time DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [self._row_to_unit(row) for row in rows]

    # Events
    async def _insert_event(
        self, conn: aiosqlite.Connection, event: TraceabilityEvent
    ) -> None:
        await conn.execute(
            f"""
            INSERT INTO traceability_events ({_EVENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.id,
                event.vti_id,
                event.field_context_id,
                _ts(event.timestamp),
                event.event_type.value,
                event.actor_ref.kind.value,
                event.actor_ref.id,
                json.dumps(event.geo_location.to_dict()) if event.geo_location else None,
                json.dumps(event.payload.to_dict()),
                int(event.is_public_traceable),
            ),
        )

    async def save_event(self, event: TraceabilityEvent) -> None:
        """Append an event. Raises NotFoundError if its unit does not exist."""
        conn = self._require_conn()
        async with self._lock:
            try:
                await self._insert_event(conn, event)
                await conn.commit()
            except Exception as e:
                await conn.rollback()
                if isinstance(e, sqlite3.IntegrityError) and "FOREIGN KEY" in str(e):
                    raise NotFoundError(f"VTI with ID {event.vti_id} not found") from e
                raise

    async def save_unit_with_events(
        self, unit: TraceableUnit, events: list[TraceabilityEvent]
    ) -> None:
        """Insert a unit and its events in one transaction."""
        conn = self._require_conn()
        async with self._lock:
            try:
                await self._insert_unit(conn, unit)
                for event in events:
                    await self._insert_event(conn, event)
                await conn.commit()
            except Exception:
                await conn.rollback()
                logger.warning(
                    "Rolled back unit write", extra={"vti_id": unit.id}
                )
                raise

    async def get_event(self, event_id: str) -> TraceabilityEvent | None:
        """Get an event by id."""
        row = await self._fetchone(
            f"SELECT {_EVENT_COLUMNS} FROM traceability_events WHERE id = ?",
            (event_id,),
        )
        return self._row_to_event(row) if row else None

    async def get_events_for_unit(self, vti_id: str) -> list[TraceabilityEvent]:
        """Events scoped to a unit, oldest first."""
        rows = await self._fetchall(
            f"""
            SELECT {_EVENT_COLUMNS}
            FROM traceability_events
            WHERE vti_id = ?
            ORDER BY timestamp ASC
            """,
            (vti_id,),
        )
        return [self._row_to_event(row) for row in rows]

    async def get_events_for_field(
        self, field_context_id: str, unscoped_only: bool = False
    ) -> list[TraceabilityEvent]:
        """Events referencing a field context, oldest first.

        With unscoped_only, events that also carry a vti id are excluded.
        """
        condition = "AND vti_id IS NULL" if unscoped_only else ""
        rows = await self._fetchall(
            f"""
            SELECT {_EVENT_COLUMNS}
            FROM traceability_events
            WHERE field_context_id = ? {condition}
            ORDER BY timestamp ASC
            """,
            (field_context_id,),
        )
        return [self._row_to_event(row) for row in rows]

    async def get_first_event(
        self, vti_id: str, event_type: EventType
    ) -> TraceabilityEvent | None:
        """Earliest event of a type for a unit."""
        row = await self._fetchone(
            f"""
            SELECT {_EVENT_COLUMNS}
            FROM traceability_events
            WHERE vti_id = ? AND event_type = ?
            ORDER BY timestamp ASC
            LIMIT 1
            """,
            (vti_id, event_type.value),
        )
        return self._row_to_event(row) if row else None

    # Users
    async def save_user(self, user: UserProfile) -> None:
        """Save a user profile."""
        conn = self._require_conn()
        async with self._lock:
            try:
                await conn.execute(
                    """
                    INSERT OR REPLACE INTO users (id, name, role, avatar_url)
                    VALUES (?, ?, ?, ?)
                    """,
                    (user.id, user.name, user.role.value, user.avatar_url),
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def get_user(self, user_id: str) -> UserProfile | None:
        """Get a user profile by id."""
        users = await self.get_users([user_id])
        return users[0] if users else None

    async def get_users(self, user_ids: Iterable[str]) -> list[UserProfile]:
        """Get all user profiles whose id is in user_ids."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []

        rows = await self._fetchall(
            f"""
            SELECT id, name, role, avatar_url
            FROM users
            WHERE id IN ({_placeholders(len(ids))})
            """,
            ids,
        )
        return [
            UserProfile(id=row[0], name=row[1], role=Role(row[2]), avatar_url=row[3])
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        # children before parents
        tables = ["traceability_events", "vti_registry", "users"]

        async with self._lock:
            try:
                for table in tables:
                    await conn.execute(f"DELETE FROM {table}")
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    # Row mapping
    @staticmethod
    def _row_to_unit(row) -> TraceableUnit:
        return TraceableUnit(
            id=row[0],
            type=row[1],
            creation_time=_parse_ts(row[2]),
            current_location=GeoPoint(**json.loads(row[3])) if row[3] else None,
            status=VtiStatus(row[4]),
            linked_vtis=json.loads(row[5]),
            metadata=json.loads(row[6]),
            is_public_traceable=bool(row[7]),
        )

    @staticmethod
    def _row_to_event(row) -> TraceabilityEvent:
        event_type = EventType(row[4])
        return TraceabilityEvent(
            id=row[0],
            vti_id=row[1],
            field_context_id=row[2],
            timestamp=_parse_ts(row[3]),
            event_type=event_type,
            actor_ref=ActorRef(ActorKind(row[5]), row[6]),
            geo_location=GeoPoint(**json.loads(row[7])) if row[7] else None,
            payload=parse_payload(event_type, json.loads(row[8])),
            is_public_traceable=bool(row[9]),
        )
