"""
Assessment storage engine for SpaceComply.

This module provides the AssessmentStore class which persists assessments,
their per-requirement statuses and the history of computed scores in a
SQLite database.

Storage Structure:
    data/
        spacecomply.db                      # SQLite database

Design Decisions:
    - SQLite is used for its simplicity, portability, and ACID compliance
    - Profiles and list-valued fields are stored as JSON TEXT
    - A status row exists for exactly the requirements applicable to the
      assessment's current profile; rows are added as not_assessed and
      pruned in the same transaction as the profile write
    - Deletion is soft by default; hard deletion cascades to statuses
      and snapshots

Thread Safety:
    The store uses SQLite's thread-safe mode and connection-per-operation
    pattern. Multiple processes should use separate AssessmentStore instances.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from spacecomply.catalog.models import ComplianceStatus
from spacecomply.storage.models import (
    Assessment,
    RequirementStatusRecord,
    ScoreSnapshot,
)

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class AssessmentNotFoundError(StorageError):
    """Raised when a requested assessment does not exist."""

    pass


class RequirementNotApplicableError(StorageError):
    """Raised when a status is set for a requirement outside the applicable set."""

    pass


# Database schema version for migrations
SCHEMA_VERSION = 1


# SQL statements for creating tables
CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Assessments (aggregate root)
CREATE TABLE IF NOT EXISTS assessments (
    id TEXT PRIMARY KEY,
    regime TEXT NOT NULL,
    name TEXT NOT NULL,
    profile_json TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    score INTEGER,
    maturity_level TEXT,
    risk_level TEXT,
    classification TEXT,
    evaluated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_assessments_regime ON assessments(regime);
CREATE INDEX IF NOT EXISTS idx_assessments_deleted ON assessments(deleted_at);

-- Per-requirement statuses
CREATE TABLE IF NOT EXISTS requirement_statuses (
    assessment_id TEXT NOT NULL,
    requirement_id TEXT NOT NULL,
    status TEXT NOT NULL,
    notes TEXT,
    evidence_json TEXT,
    attributes_json TEXT,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (assessment_id, requirement_id),
    FOREIGN KEY (assessment_id) REFERENCES assessments(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_statuses_status ON requirement_statuses(status);

-- Score history (append only)
CREATE TABLE IF NOT EXISTS score_snapshots (
    id TEXT PRIMARY KEY,
    assessment_id TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    regime TEXT NOT NULL,
    score INTEGER NOT NULL,
    maturity_level TEXT NOT NULL,
    breakdown_json TEXT NOT NULL,
    FOREIGN KEY (assessment_id) REFERENCES assessments(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_snapshots_assessment ON score_snapshots(assessment_id, timestamp);
"""


class AssessmentStore:
    """
    Persistent storage for assessments, statuses and score history.

    The store does not evaluate applicability itself. Callers pass the IDs
    of the requirements applicable to a profile whenever the profile is
    written, and the store keeps the status rows in sync with that set.

    Example:
        store = AssessmentStore(data_dir=Path("./data"))

        assessment = store.create_assessment("nis2", "Ground segment", profile, ids)
        store.set_status(assessment.id, "nis2-001", "compliant")

        # Profile change prunes and adds statuses atomically
        changes = store.update_profile(assessment.id, new_profile, new_ids)

        statuses = store.get_status_map(assessment.id)

    Attributes:
        data_dir: Base directory for all data storage.
        db_path: Path to the SQLite database file.
    """

    def __init__(self, data_dir: Path | str | None = None) -> None:
        """
        Initialize the assessment store.

        Args:
            data_dir: Base directory for data storage. Defaults to
                ~/.spacecomply/data
        """
        if data_dir is None:
            data_dir = Path.home() / ".spacecomply" / "data"
        elif isinstance(data_dir, str):
            data_dir = Path(data_dir)

        self.data_dir = data_dir
        self.db_path = data_dir / "spacecomply.db"

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(CREATE_TABLES_SQL)

            cursor = conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = cursor.fetchone()

            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, datetime.now(UTC).isoformat()),
                )
                logger.info(f"Initialized database schema version {SCHEMA_VERSION}")
            elif row[0] < SCHEMA_VERSION:
                logger.warning(
                    f"Database schema version {row[0]} is older than "
                    f"expected version {SCHEMA_VERSION}"
                )

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection with row factory set.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            isolation_level=None,  # Autocommit mode, we manage transactions manually
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Assessment Methods
    # -------------------------------------------------------------------------

    def create_assessment(
        self,
        regime: str,
        name: str,
        profile: dict[str, Any],
        requirement_ids: Iterable[str],
    ) -> Assessment:
        """
        Create an assessment with a not_assessed status per requirement.

        Args:
            regime: Regime key.
            name: Display name.
            profile: Profile answers document.
            requirement_ids: IDs of the requirements applicable to the profile.

        Returns:
            The new assessment.

        Raises:
            StorageError: If storage fails.
        """
        assessment = Assessment.create(regime=regime, name=name, profile=profile)
        ids = list(dict.fromkeys(requirement_ids))

        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN TRANSACTION")
                conn.execute(
                    """
                    INSERT INTO assessments (
                        id, regime, name, profile_json, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        assessment.id,
                        assessment.regime,
                        assessment.name,
                        json.dumps(assessment.profile),
                        assessment.created_at.isoformat(),
                        assessment.updated_at.isoformat(),
                    ),
                )
                self._insert_not_assessed(conn, assessment.id, ids, assessment.created_at)
                conn.execute("COMMIT")
            except Exception as e:
                conn.execute("ROLLBACK")
                logger.error(f"Failed to create assessment: {e}")
                raise StorageError(f"Failed to create assessment: {e}") from e

        logger.info(
            f"Created {regime} assessment {assessment.id} with "
            f"{len(ids)} applicable requirements"
        )
        return assessment

    def get_assessment(
        self, assessment_id: str, include_deleted: bool = False
    ) -> Assessment:
        """
        Get an assessment by ID.

        Args:
            assessment_id: Assessment ID.
            include_deleted: Also return soft-deleted assessments.

        Raises:
            AssessmentNotFoundError: If no such assessment exists.
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM assessments WHERE id = ?", (assessment_id,)
            ).fetchone()

        if row is None or (row["deleted_at"] and not include_deleted):
            raise AssessmentNotFoundError(f"Assessment not found: {assessment_id}")
        return self._row_to_assessment(row)

    def list_assessments(
        self, regime: str | None = None, include_deleted: bool = False
    ) -> list[Assessment]:
        """
        List assessments, most recently updated first.

        Args:
            regime: Only list assessments of this regime.
            include_deleted: Include soft-deleted assessments.
        """
        sql = "SELECT * FROM assessments WHERE 1=1"
        params: list[Any] = []
        if regime:
            sql += " AND regime = ?"
            params.append(regime)
        if not include_deleted:
            sql += " AND deleted_at IS NULL"
        sql += " ORDER BY updated_at DESC"

        with self._get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_assessment(row) for row in rows]

    def update_profile(
        self,
        assessment_id: str,
        profile: dict[str, Any],
        requirement_ids: Iterable[str],
    ) -> dict[str, list[str]]:
        """
        Replace an assessment's profile and sync its statuses.

        Statuses of requirements no longer applicable are deleted and
        not_assessed statuses are added for newly applicable ones. The
        profile write and both status changes commit together.

        Args:
            assessment_id: Assessment ID.
            profile: New profile answers document.
            requirement_ids: IDs applicable to the new profile.

        Returns:
            Dictionary with "added" and "removed" requirement IDs.

        Raises:
            AssessmentNotFoundError: If no such assessment exists.
            StorageError: If storage fails.
        """
        self.get_assessment(assessment_id)
        applicable = list(dict.fromkeys(requirement_ids))
        now = datetime.now(UTC)

        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN TRANSACTION")
                existing = [
                    row["requirement_id"]
                    for row in conn.execute(
                        "SELECT requirement_id FROM requirement_statuses WHERE assessment_id = ?",
                        (assessment_id,),
                    )
                ]
                applicable_set = set(applicable)
                existing_set = set(existing)
                removed = [rid for rid in existing if rid not in applicable_set]
                added = [rid for rid in applicable if rid not in existing_set]

                conn.executemany(
                    "DELETE FROM requirement_statuses WHERE assessment_id = ? AND requirement_id = ?",
                    [(assessment_id, rid) for rid in removed],
                )
                self._insert_not_assessed(conn, assessment_id, added, now)
                conn.execute(
                    "UPDATE assessments SET profile_json = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(profile), now.isoformat(), assessment_id),
                )
                conn.execute("COMMIT")
            except Exception as e:
                conn.execute("ROLLBACK")
                logger.error(f"Failed to update profile of {assessment_id}: {e}")
                raise StorageError(f"Failed to update profile: {e}") from e

        logger.info(
            f"Updated profile of {assessment_id}: {len(added)} requirements added, "
            f"{len(removed)} pruned"
        )
        return {"added": added, "removed": removed}

    def rename_assessment(self, assessment_id: str, name: str) -> None:
        self.get_assessment(assessment_id)
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE assessments SET name = ?, updated_at = ? WHERE id = ?",
                (name, datetime.now(UTC).isoformat(), assessment_id),
            )

    def update_cached_results(
        self,
        assessment_id: str,
        score: int,
        maturity_level: str,
        risk_level: str | None = None,
        classification: str | None = None,
    ) -> None:
        """Store the latest computed results on the assessment record."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE assessments
                SET score = ?, maturity_level = ?, risk_level = ?,
                    classification = ?, evaluated_at = ?
                WHERE id = ?
                """,
                (
                    score,
                    maturity_level,
                    risk_level,
                    classification,
                    datetime.now(UTC).isoformat(),
                    assessment_id,
                ),
            )
            if cursor.rowcount == 0:
                raise AssessmentNotFoundError(f"Assessment not found: {assessment_id}")

    def delete_assessment(self, assessment_id: str, hard: bool = False) -> None:
        """
        Delete an assessment.

        Soft deletion hides the assessment from listings and lookups. Hard
        deletion removes it together with its statuses and snapshots.

        Raises:
            AssessmentNotFoundError: If no such assessment exists.
            StorageError: If storage fails.
        """
        self.get_assessment(assessment_id, include_deleted=hard)

        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN TRANSACTION")
                if hard:
                    conn.execute(
                        "DELETE FROM requirement_statuses WHERE assessment_id = ?",
                        (assessment_id,),
                    )
                    conn.execute(
                        "DELETE FROM score_snapshots WHERE assessment_id = ?",
                        (assessment_id,),
                    )
                    conn.execute("DELETE FROM assessments WHERE id = ?", (assessment_id,))
                else:
                    conn.execute(
                        "UPDATE assessments SET deleted_at = ? WHERE id = ?",
                        (datetime.now(UTC).isoformat(), assessment_id),
                    )
                conn.execute("COMMIT")
            except Exception as e:
                conn.execute("ROLLBACK")
                logger.error(f"Failed to delete assessment {assessment_id}: {e}")
                raise StorageError(f"Failed to delete assessment: {e}") from e

        logger.info(f"{'Hard' if hard else 'Soft'} deleted assessment {assessment_id}")

    # -------------------------------------------------------------------------
    # Status Methods
    # -------------------------------------------------------------------------

    def _insert_not_assessed(
        self,
        conn: sqlite3.Connection,
        assessment_id: str,
        requirement_ids: list[str],
        timestamp: datetime,
    ) -> None:
        conn.executemany(
            """
            INSERT INTO requirement_statuses (
                assessment_id, requirement_id, status, updated_at
            ) VALUES (?, ?, ?, ?)
            """,
            [
                (
                    assessment_id,
                    rid,
                    ComplianceStatus.NOT_ASSESSED.value,
                    timestamp.isoformat(),
                )
                for rid in requirement_ids
            ],
        )

    def set_status(
        self,
        assessment_id: str,
        requirement_id: str,
        status: ComplianceStatus | str,
        notes: str | None = None,
        evidence: list[str] | None = None,
        attributes: dict[str, Any] | None = None,
        drop_attributes: Iterable[str] = (),
    ) -> RequirementStatusRecord:
        """
        Record the status of one requirement.

        Notes, evidence and attributes are left unchanged when not given.

        Args:
            assessment_id: Assessment ID.
            requirement_id: Requirement ID.
            status: New status.
            notes: Free-text notes.
            evidence: Evidence references.
            attributes: Regime-specific values, merged into existing ones.
            drop_attributes: Attribute keys to remove before merging.

        Returns:
            The updated status record.

        Raises:
            ValueError: If the status is not a valid ComplianceStatus.
            AssessmentNotFoundError: If no such assessment exists.
            RequirementNotApplicableError: If the requirement is not applicable
                to the assessment's profile.
        """
        status = ComplianceStatus(status)
        self.get_assessment(assessment_id)
        now = datetime.now(UTC)

        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN TRANSACTION")
                row = conn.execute(
                    """
                    SELECT * FROM requirement_statuses
                    WHERE assessment_id = ? AND requirement_id = ?
                    """,
                    (assessment_id, requirement_id),
                ).fetchone()
                if row is None:
                    raise RequirementNotApplicableError(
                        f"Requirement {requirement_id} is not applicable to "
                        f"assessment {assessment_id}"
                    )

                record = self._row_to_status(row)
                record.status = status
                record.updated_at = now
                if notes is not None:
                    record.notes = notes
                if evidence is not None:
                    record.evidence = list(evidence)
                for key in drop_attributes:
                    record.attributes.pop(key, None)
                if attributes:
                    record.attributes.update(attributes)

                conn.execute(
                    """
                    UPDATE requirement_statuses
                    SET status = ?, notes = ?, evidence_json = ?,
                        attributes_json = ?, updated_at = ?
                    WHERE assessment_id = ? AND requirement_id = ?
                    """,
                    (
                        record.status.value,
                        record.notes,
                        json.dumps(record.evidence) if record.evidence else None,
                        json.dumps(record.attributes) if record.attributes else None,
                        now.isoformat(),
                        assessment_id,
                        requirement_id,
                    ),
                )
                conn.execute(
                    "UPDATE assessments SET updated_at = ? WHERE id = ?",
                    (now.isoformat(), assessment_id),
                )
                conn.execute("COMMIT")
            except RequirementNotApplicableError:
                conn.execute("ROLLBACK")
                raise
            except Exception as e:
                conn.execute("ROLLBACK")
                logger.error(f"Failed to set status of {requirement_id}: {e}")
                raise StorageError(f"Failed to set status: {e}") from e

        logger.debug(f"Set {requirement_id} to {status.value} in {assessment_id}")
        return record

    def get_statuses(self, assessment_id: str) -> dict[str, RequirementStatusRecord]:
        """
        Get all status records of an assessment keyed by requirement ID.

        Raises:
            AssessmentNotFoundError: If no such assessment exists.
        """
        self.get_assessment(assessment_id, include_deleted=True)
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM requirement_statuses WHERE assessment_id = ? ORDER BY rowid",
                (assessment_id,),
            ).fetchall()
        return {row["requirement_id"]: self._row_to_status(row) for row in rows}

    def get_status_map(self, assessment_id: str) -> dict[str, ComplianceStatus]:
        """Requirement ID to status for an assessment."""
        return {
            rid: record.status
            for rid, record in self.get_statuses(assessment_id).items()
        }

    # -------------------------------------------------------------------------
    # Score Snapshot Methods
    # -------------------------------------------------------------------------

    def save_snapshot(self, snapshot: ScoreSnapshot) -> None:
        """
        Append a score snapshot.

        Raises:
            StorageError: If storage fails.
        """
        with self._get_connection() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO score_snapshots (
                        id, assessment_id, timestamp, regime, score,
                        maturity_level, breakdown_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        snapshot.id,
                        snapshot.assessment_id,
                        snapshot.timestamp.isoformat(),
                        snapshot.regime,
                        snapshot.score,
                        snapshot.maturity_level,
                        json.dumps(snapshot.breakdown, default=str),
                    ),
                )
            except sqlite3.Error as e:
                logger.error(f"Failed to save score snapshot: {e}")
                raise StorageError(f"Failed to save score snapshot: {e}") from e

    def get_snapshots(
        self, assessment_id: str, limit: int | None = None
    ) -> list[ScoreSnapshot]:
        """Score history of an assessment, newest first."""
        sql = "SELECT * FROM score_snapshots WHERE assessment_id = ? ORDER BY timestamp DESC"
        params: list[Any] = [assessment_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [
            ScoreSnapshot(
                id=row["id"],
                assessment_id=row["assessment_id"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                regime=row["regime"],
                score=row["score"],
                maturity_level=row["maturity_level"],
                breakdown=json.loads(row["breakdown_json"]),
            )
            for row in rows
        ]

    def get_latest_snapshot(self, assessment_id: str) -> ScoreSnapshot | None:
        snapshots = self.get_snapshots(assessment_id, limit=1)
        return snapshots[0] if snapshots else None

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_statistics(self) -> dict[str, Any]:
        """
        Get storage statistics.

        Returns:
            Dictionary with storage statistics.
        """
        with self._get_connection() as conn:
            stats: dict[str, Any] = {}

            cursor = conn.execute(
                "SELECT COUNT(*) FROM assessments WHERE deleted_at IS NULL"
            )
            stats["total_assessments"] = cursor.fetchone()[0]

            cursor = conn.execute(
                "SELECT COUNT(*) FROM assessments WHERE deleted_at IS NOT NULL"
            )
            stats["deleted_assessments"] = cursor.fetchone()[0]

            cursor = conn.execute("SELECT COUNT(*) FROM score_snapshots")
            stats["total_snapshots"] = cursor.fetchone()[0]

            cursor = conn.execute(
                """
                SELECT regime, COUNT(*) as count
                FROM assessments
                WHERE deleted_at IS NULL
                GROUP BY regime
                """
            )
            stats["assessments_by_regime"] = {
                row["regime"]: row["count"] for row in cursor
            }

            cursor = conn.execute(
                """
                SELECT s.status, COUNT(*) as count
                FROM requirement_statuses s
                JOIN assessments a ON a.id = s.assessment_id
                WHERE a.deleted_at IS NULL
                GROUP BY s.status
                """
            )
            stats["statuses"] = {row["status"]: row["count"] for row in cursor}

            stats["database_size_bytes"] = self.db_path.stat().st_size

            return stats

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _row_to_assessment(self, row: sqlite3.Row) -> Assessment:
        return Assessment(
            id=row["id"],
            regime=row["regime"],
            name=row["name"],
            profile=json.loads(row["profile_json"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            deleted_at=(
                datetime.fromisoformat(row["deleted_at"]) if row["deleted_at"] else None
            ),
            score=row["score"],
            maturity_level=row["maturity_level"],
            risk_level=row["risk_level"],
            classification=row["classification"],
            evaluated_at=(
                datetime.fromisoformat(row["evaluated_at"]) if row["evaluated_at"] else None
            ),
        )

    def _row_to_status(self, row: sqlite3.Row) -> RequirementStatusRecord:
        return RequirementStatusRecord(
            assessment_id=row["assessment_id"],
            requirement_id=row["requirement_id"],
            status=ComplianceStatus(row["status"]),
            notes=row["notes"] or "",
            evidence=json.loads(row["evidence_json"]) if row["evidence_json"] else [],
            attributes=(
                json.loads(row["attributes_json"]) if row["attributes_json"] else {}
            ),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
