"""SQLite-backed persistence gateway for mapping versions, field rows, and confirmations.

Stores projects, mapping versions, the selected field rows of each version,
and manual confirmation audits. Every write runs inside a transaction;
``replace_field_rows`` performs a whole save (delete, insert, clear
confirmations) atomically. Concurrent writers are last-writer-wins.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from mapstudio.models.lifecycle import (
    DEFAULT_ACTOR,
    ConfirmationAudit,
    MappingFieldRow,
    MappingVersion,
    VersionStatus,
)


class MappingStore:
    """SQLite-backed persistence gateway.

    Usage::

        store = MappingStore(Path(".mapstudio/mapstudio.db"))
        store.ensure_version("ORDERS", "1.0.0", "{}", created_at=now)
        store.replace_field_rows("ORDERS", "1.0.0", rows, saved_at=now)
    """

    def __init__(self, db_path: Path) -> None:
        """Open or create the SQLite database.

        Args:
            db_path: Path to the SQLite database file, or ``:memory:``.
                     Parent directory is created if needed.
        """
        if str(db_path) != ":memory:":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_tables()

    def _ensure_tables(self) -> None:
        """Create tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS mapping_project (
                project_code TEXT PRIMARY KEY,
                project_name TEXT NOT NULL,
                source_type TEXT NOT NULL,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS mapping_version (
                project_code TEXT NOT NULL,
                version_code TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'DRAFT',
                target_schema_json TEXT NOT NULL DEFAULT '{}',
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                saved_at TEXT,
                published_at TEXT,
                artifact_id TEXT,
                PRIMARY KEY (project_code, version_code),
                FOREIGN KEY (project_code) REFERENCES mapping_project(project_code)
            );
            CREATE TABLE IF NOT EXISTS mapping_field (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                project_code TEXT NOT NULL,
                version_code TEXT NOT NULL,
                source_path TEXT NOT NULL,
                target_path TEXT NOT NULL,
                transform_type TEXT NOT NULL DEFAULT 'DIRECT',
                transform_config TEXT NOT NULL DEFAULT '{}',
                confidence REAL NOT NULL DEFAULT 0,
                reasoning TEXT NOT NULL DEFAULT '',
                FOREIGN KEY (project_code, version_code)
                    REFERENCES mapping_version(project_code, version_code)
            );
            CREATE TABLE IF NOT EXISTS mapping_confirm_audit (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                project_code TEXT NOT NULL,
                version_code TEXT NOT NULL,
                confirmed INTEGER NOT NULL DEFAULT 1,
                confirmed_by TEXT NOT NULL,
                selected_count INTEGER NOT NULL,
                mapping_snapshot TEXT NOT NULL,
                notes TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_mapping_field_version
                ON mapping_field(project_code, version_code);
            CREATE INDEX IF NOT EXISTS idx_confirm_audit_version
                ON mapping_confirm_audit(project_code, version_code);
        """)
        self._conn.commit()

    def _insert_project_version(
        self,
        project_code: str,
        version_code: str,
        *,
        source_type: str,
        target_schema_json: str,
        created_by: str,
        created_at: str,
    ) -> bool:
        """Insert project and version rows unless present. Caller owns the transaction."""
        self._conn.execute(
            """INSERT OR IGNORE INTO mapping_project
               (project_code, project_name, source_type, created_by, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (project_code, project_code, source_type, created_by, created_at),
        )
        cursor = self._conn.execute(
            """INSERT OR IGNORE INTO mapping_version
               (project_code, version_code, status, target_schema_json,
                created_by, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                project_code,
                version_code,
                VersionStatus.DRAFT.value,
                target_schema_json,
                created_by,
                created_at,
            ),
        )
        return cursor.rowcount > 0

    def ensure_version(
        self,
        project_code: str,
        version_code: str,
        target_schema_json: str = "{}",
        *,
        created_at: str,
        source_type: str = "JSON",
        created_by: str = DEFAULT_ACTOR,
    ) -> bool:
        """Create the project and DRAFT version rows if missing.

        Returns:
            True if a new version row was created.
        """
        with self._conn:
            return self._insert_project_version(
                project_code,
                version_code,
                source_type=source_type,
                target_schema_json=target_schema_json,
                created_by=created_by,
                created_at=created_at,
            )

    def get_project_source_type(self, project_code: str) -> str | None:
        """Return the source type recorded for a project, or None."""
        row = self._conn.execute(
            "SELECT source_type FROM mapping_project WHERE project_code = ?",
            (project_code,),
        ).fetchone()
        return None if row is None else row["source_type"]

    def get_version(self, project_code: str, version_code: str) -> MappingVersion | None:
        """Load one mapping version, or None if it does not exist."""
        row = self._conn.execute(
            "SELECT * FROM mapping_version WHERE project_code = ? AND version_code = ?",
            (project_code, version_code),
        ).fetchone()
        if row is None:
            return None
        return MappingVersion(
            project_code=row["project_code"],
            version_code=row["version_code"],
            status=VersionStatus(row["status"]),
            target_schema_snapshot=row["target_schema_json"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            saved_at=row["saved_at"],
            published_at=row["published_at"],
            artifact_id=row["artifact_id"],
        )

    def replace_field_rows(
        self,
        project_code: str,
        version_code: str,
        rows: list[MappingFieldRow],
        *,
        saved_at: str,
        source_type: str = "JSON",
        created_by: str = DEFAULT_ACTOR,
    ) -> int:
        """Atomically replace a version's field rows and clear its confirmations.

        Upserts the project/version, deletes existing field rows, inserts
        ``rows``, deletes all confirmation audits for the version, and stamps
        ``saved_at``. Either everything commits or everything rolls back.

        Returns:
            Number of field rows inserted.
        """
        with self._conn:
            self._insert_project_version(
                project_code,
                version_code,
                source_type=source_type,
                target_schema_json="{}",
                created_by=created_by,
                created_at=saved_at,
            )
            self._conn.execute(
                "DELETE FROM mapping_field WHERE project_code = ? AND version_code = ?",
                (project_code, version_code),
            )
            self._conn.executemany(
                """INSERT INTO mapping_field
                   (project_code, version_code, source_path, target_path,
                    transform_type, transform_config, confidence, reasoning)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        project_code,
                        version_code,
                        r.source_path,
                        r.target_path,
                        r.transform_type,
                        r.transform_config,
                        r.confidence,
                        r.reasoning,
                    )
                    for r in rows
                ],
            )
            self._conn.execute(
                "DELETE FROM mapping_confirm_audit WHERE project_code = ? AND version_code = ?",
                (project_code, version_code),
            )
            self._conn.execute(
                """UPDATE mapping_version SET saved_at = ?
                   WHERE project_code = ? AND version_code = ?""",
                (saved_at, project_code, version_code),
            )
        return len(rows)

    def list_field_rows(self, project_code: str, version_code: str) -> list[MappingFieldRow]:
        """Return the persisted field rows of a version in insertion order."""
        rows = self._conn.execute(
            """SELECT * FROM mapping_field
               WHERE project_code = ? AND version_code = ? ORDER BY id""",
            (project_code, version_code),
        ).fetchall()
        return [
            MappingFieldRow(
                source_path=r["source_path"],
                target_path=r["target_path"],
                transform_type=r["transform_type"],
                transform_config=r["transform_config"],
                confidence=r["confidence"],
                reasoning=r["reasoning"],
            )
            for r in rows
        ]

    def insert_confirmation(self, audit: ConfirmationAudit) -> None:
        """Append a confirmation audit row."""
        with self._conn:
            self._conn.execute(
                """INSERT INTO mapping_confirm_audit
                   (project_code, version_code, confirmed, confirmed_by,
                    selected_count, mapping_snapshot, notes, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    audit.project_code,
                    audit.version_code,
                    int(audit.confirmed),
                    audit.confirmed_by,
                    audit.selected_count,
                    audit.mapping_snapshot,
                    audit.notes,
                    audit.created_at,
                ),
            )

    def has_active_confirmation(self, project_code: str, version_code: str) -> bool:
        """True when a confirmed audit row exists for the version."""
        row = self._conn.execute(
            """SELECT COUNT(*) AS n FROM mapping_confirm_audit
               WHERE project_code = ? AND version_code = ? AND confirmed = 1""",
            (project_code, version_code),
        ).fetchone()
        return row["n"] > 0

    def latest_confirmation(self, project_code: str, version_code: str) -> ConfirmationAudit | None:
        """Return the most recent confirmed audit for a version, if any."""
        row = self._conn.execute(
            """SELECT * FROM mapping_confirm_audit
               WHERE project_code = ? AND version_code = ? AND confirmed = 1
               ORDER BY id DESC LIMIT 1""",
            (project_code, version_code),
        ).fetchone()
        if row is None:
            return None
        return ConfirmationAudit(
            project_code=row["project_code"],
            version_code=row["version_code"],
            confirmed=bool(row["confirmed"]),
            confirmed_by=row["confirmed_by"],
            selected_count=row["selected_count"],
            mapping_snapshot=row["mapping_snapshot"],
            notes=row["notes"],
            created_at=row["created_at"],
        )

    def mark_published(
        self,
        project_code: str,
        version_code: str,
        *,
        artifact_id: str,
        published_at: str,
    ) -> int:
        """Set a version's status to PUBLISHED. Returns the number of rows updated."""
        with self._conn:
            cursor = self._conn.execute(
                """UPDATE mapping_version
                   SET status = ?, published_at = ?, artifact_id = ?
                   WHERE project_code = ? AND version_code = ?""",
                (
                    VersionStatus.PUBLISHED.value,
                    published_at,
                    artifact_id,
                    project_code,
                    version_code,
                ),
            )
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
