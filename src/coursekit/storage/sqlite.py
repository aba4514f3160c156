"""SQLite storage adapter. One connection and one transaction per call."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar

from coursekit.artifacts.models import (
    Artifact,
    ArtifactMetadata,
    Link,
    LinkRelationship,
    Project,
    ProjectCreate,
    ProjectUpdate,
    generate_id,
    utc_now,
)
from coursekit.errors import CoreError, NotFoundError, StorageError
from coursekit.storage.base import prepare_artifact_write

_LOGGER = logging.getLogger(__name__)

R = TypeVar("R")

CREATE_SQL = (
    """
    CREATE TABLE IF NOT EXISTS projects (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        owner_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS artifacts (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
        type TEXT NOT NULL,
        schema_version TEXT NOT NULL,
        metadata_json TEXT NOT NULL,
        data_json TEXT NOT NULL,
        created_at TEXT NOT NULL,
        modified_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS artifact_links (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
        source_id TEXT NOT NULL,
        target_id TEXT NOT NULL,
        relationship TEXT NOT NULL
            CHECK (relationship IN ('assesses', 'derived_from', 'contains')),
        created_by TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_artifacts_project_type ON artifacts(project_id, type)",
    "CREATE INDEX IF NOT EXISTS idx_links_project ON artifact_links(project_id)",
)


def _to_text(value: datetime) -> str:
    """Store timestamps as UTC ISO-8601 so text order is time order."""
    return value.astimezone(UTC).isoformat()


def _from_text(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        owner_id=row["owner_id"],
        created_at=_from_text(row["created_at"]),
        updated_at=_from_text(row["updated_at"]),
    )


def _row_to_artifact(row: sqlite3.Row) -> Artifact:
    return Artifact(
        id=row["id"],
        project_id=row["project_id"],
        type=row["type"],
        schema_version=row["schema_version"],
        metadata=ArtifactMetadata.model_validate_json(row["metadata_json"]),
        data=json.loads(row["data_json"]),
    )


def _artifact_columns(artifact: Artifact) -> tuple[str, str]:
    """Return the ``(metadata_json, data_json)`` column values for a row.

    Payload keys are sorted so equal payloads always store identical text.
    """
    data_json = json.dumps(
        artifact.data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return artifact.metadata.model_dump_json(), data_json


def _row_to_link(row: sqlite3.Row) -> Link:
    return Link(
        id=row["id"],
        project_id=row["project_id"],
        source_id=row["source_id"],
        target_id=row["target_id"],
        relationship=LinkRelationship(row["relationship"]),
        created_by=row["created_by"],
        created_at=_from_text(row["created_at"]),
    )


def _fetch_artifact(conn: sqlite3.Connection, artifact_id: str) -> Artifact | None:
    row = conn.execute("SELECT * FROM artifacts WHERE id = ?", (artifact_id,)).fetchone()
    return _row_to_artifact(row) if row is not None else None


def _require_project(conn: sqlite3.Connection, project_id: str) -> sqlite3.Row:
    row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
    if row is None:
        raise NotFoundError(
            f"Project not found: {project_id!r}", data={"project_id": project_id}
        )
    return row


class SqliteStorageAdapter:
    """``StorageAdapter`` over a SQLite file.

    Blocking sqlite3 work runs in a worker thread so the event loop stays
    free. Each call opens its own connection and commits or rolls back as a
    unit; foreign keys carry the project cascade.
    """

    def __init__(
        self, db_path: Path, *, clock: Callable[[], datetime] = utc_now
    ) -> None:
        """Bind adapter to a database file (created on first use).

        Args:
            db_path: SQLite database file path.
            clock: Source of the current time for audit timestamps.
        """
        self._db_path = db_path
        self._clock = clock

    @property
    def db_path(self) -> Path:
        """Database file path."""
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        for statement in CREATE_SQL:
            conn.execute(statement)
        return conn

    def _transact(self, work: Callable[[sqlite3.Connection], R]) -> R:
        """Run ``work`` in one transaction; wrap backend failures.

        Core errors raised by ``work`` roll back and propagate unchanged.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(
                f"Cannot open storage database: {exc}",
                data={"db_path": str(self._db_path)},
            ) from exc
        try:
            with conn:
                return work(conn)
        except CoreError:
            raise
        except sqlite3.Error as exc:
            raise StorageError(
                f"Storage operation failed: {exc}",
                data={"db_path": str(self._db_path)},
            ) from exc
        finally:
            conn.close()

    async def _run(self, work: Callable[[sqlite3.Connection], R]) -> R:
        return await asyncio.to_thread(self._transact, work)

    async def get_projects(self) -> list[Project]:
        def work(conn: sqlite3.Connection) -> list[Project]:
            rows = conn.execute(
                "SELECT * FROM projects ORDER BY updated_at DESC, id DESC"
            ).fetchall()
            return [_row_to_project(row) for row in rows]

        return await self._run(work)

    async def get_project(self, project_id: str) -> Project | None:
        def work(conn: sqlite3.Connection) -> Project | None:
            row = conn.execute(
                "SELECT * FROM projects WHERE id = ?", (project_id,)
            ).fetchone()
            return _row_to_project(row) if row is not None else None

        return await self._run(work)

    async def create_project(self, project: ProjectCreate) -> Project:
        now = self._clock()
        created = Project(
            id=generate_id(),
            name=project.name,
            description=project.description,
            owner_id=project.owner_id,
            created_at=now,
            updated_at=now,
        )

        def work(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO projects (id, name, description, owner_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    created.id,
                    created.name,
                    created.description,
                    created.owner_id,
                    _to_text(created.created_at),
                    _to_text(created.updated_at),
                ),
            )

        await self._run(work)
        return created

    async def update_project(self, project_id: str, updates: ProjectUpdate) -> Project:
        now = self._clock()

        def work(conn: sqlite3.Connection) -> Project:
            existing = _row_to_project(_require_project(conn, project_id))
            changes = updates.changes()
            changes["updated_at"] = max(now, existing.updated_at)
            updated = Project.model_validate(existing.model_dump() | changes)
            conn.execute(
                "UPDATE projects SET name = ?, description = ?, updated_at = ? WHERE id = ?",
                (
                    updated.name,
                    updated.description,
                    _to_text(updated.updated_at),
                    project_id,
                ),
            )
            return updated

        return await self._run(work)

    async def delete_project(self, project_id: str) -> None:
        def work(conn: sqlite3.Connection) -> None:
            _require_project(conn, project_id)
            conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))

        await self._run(work)
        _LOGGER.debug("deleted project %s with its artifacts and links", project_id)

    async def get_artifacts(
        self, project_id: str, artifact_type: str | None = None
    ) -> list[Artifact]:
        sql = "SELECT * FROM artifacts WHERE project_id = ?"
        params: list[str] = [project_id]
        if artifact_type is not None:
            sql += " AND type = ?"
            params.append(artifact_type)
        sql += " ORDER BY created_at, id"

        def work(conn: sqlite3.Connection) -> list[Artifact]:
            return [_row_to_artifact(row) for row in conn.execute(sql, params).fetchall()]

        return await self._run(work)

    async def get_artifact(self, artifact_id: str) -> Artifact | None:
        return await self._run(lambda conn: _fetch_artifact(conn, artifact_id))

    async def save_artifact(self, artifact: Artifact) -> None:
        now = self._clock()

        def work(conn: sqlite3.Connection) -> Artifact:
            _require_project(conn, artifact.project_id)
            stored = prepare_artifact_write(
                _fetch_artifact(conn, artifact.id), artifact, now
            )
            conn.execute(
                """
                INSERT INTO artifacts (
                    id, project_id, type, schema_version, metadata_json,
                    data_json, created_at, modified_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    project_id = excluded.project_id,
                    schema_version = excluded.schema_version,
                    metadata_json = excluded.metadata_json,
                    data_json = excluded.data_json,
                    modified_at = excluded.modified_at
                """,
                (
                    stored.id,
                    stored.project_id,
                    stored.type,
                    stored.schema_version,
                    *_artifact_columns(stored),
                    _to_text(stored.metadata.created_at),
                    _to_text(stored.metadata.modified_at),
                ),
            )
            return stored

        stored = await self._run(work)
        _LOGGER.debug("saved artifact %s (%s)", stored.id, stored.type)

    async def delete_artifact(self, artifact_id: str) -> None:
        def work(conn: sqlite3.Connection) -> None:
            cur = conn.execute("DELETE FROM artifacts WHERE id = ?", (artifact_id,))
            if cur.rowcount == 0:
                raise NotFoundError(
                    f"Artifact not found: {artifact_id!r}",
                    data={"artifact_id": artifact_id},
                )

        await self._run(work)

    async def get_links(self, project_id: str) -> list[Link]:
        def work(conn: sqlite3.Connection) -> list[Link]:
            rows = conn.execute(
                "SELECT * FROM artifact_links WHERE project_id = ? ORDER BY created_at, id",
                (project_id,),
            ).fetchall()
            return [_row_to_link(row) for row in rows]

        return await self._run(work)

    async def save_link(self, link: Link) -> None:
        def work(conn: sqlite3.Connection) -> None:
            _require_project(conn, link.project_id)
            conn.execute(
                """
                INSERT OR REPLACE INTO artifact_links (
                    id, project_id, source_id, target_id, relationship,
                    created_by, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    link.id,
                    link.project_id,
                    link.source_id,
                    link.target_id,
                    link.relationship.value,
                    link.created_by,
                    _to_text(link.created_at),
                ),
            )

        await self._run(work)

    async def delete_link(self, link_id: str) -> None:
        def work(conn: sqlite3.Connection) -> None:
            cur = conn.execute("DELETE FROM artifact_links WHERE id = ?", (link_id,))
            if cur.rowcount == 0:
                raise NotFoundError(
                    f"Link not found: {link_id!r}", data={"link_id": link_id}
                )

        await self._run(work)
