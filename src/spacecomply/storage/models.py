"""
Data models for assessment storage.

This module defines the dataclasses used to represent assessments, their
per-requirement statuses and score history in the database.

Schema Design Decisions:
    - IDs are UUIDs stored as strings for portability
    - Timestamps are stored as ISO format strings in UTC
    - Profiles, evidence lists and breakdowns are stored as JSON TEXT
    - Status rows are keyed by (assessment_id, requirement_id)
    - Score snapshots are never updated, only appended
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from spacecomply.catalog.models import ComplianceStatus


def _parse_time(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Assessment:
    """
    One compliance assessment of an organization against a regime.

    The assessment owns its profile and the statuses of the requirements
    applicable to that profile. Computed results are cached on the record
    each time the assessment is evaluated.

    Attributes:
        id: Unique identifier.
        regime: Regime key (e.g., "nis2").
        name: Display name.
        profile: Profile answers document.
        created_at: When the assessment was created (UTC).
        updated_at: When the profile or a status last changed (UTC).
        deleted_at: Soft deletion time, or None.
        score: Cached overall score.
        maturity_level: Cached maturity label.
        risk_level: Cached risk level, for regimes that compute one.
        classification: Cached classification (e.g., NIS2 entity tier).
        evaluated_at: When the cached results were computed.

    Database Table: assessments
        - id TEXT PRIMARY KEY
        - regime TEXT NOT NULL
        - name TEXT NOT NULL
        - profile_json TEXT NOT NULL
        - created_at TEXT NOT NULL
        - updated_at TEXT NOT NULL
        - deleted_at TEXT
        - score INTEGER
        - maturity_level TEXT
        - risk_level TEXT
        - classification TEXT
        - evaluated_at TEXT
    """

    id: str
    regime: str
    name: str
    profile: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    score: int | None = None
    maturity_level: str | None = None
    risk_level: str | None = None
    classification: str | None = None
    evaluated_at: datetime | None = None

    @classmethod
    def create(
        cls, regime: str, name: str, profile: dict[str, Any] | None = None
    ) -> Assessment:
        """Create a new Assessment with auto-generated ID and timestamps."""
        now = datetime.now(UTC)
        return cls(
            id=str(uuid.uuid4()),
            regime=regime,
            name=name,
            profile=dict(profile or {}),
            created_at=now,
            updated_at=now,
        )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "regime": self.regime,
            "name": self.name,
            "profile": self.profile,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "score": self.score,
            "maturity_level": self.maturity_level,
            "risk_level": self.risk_level,
            "classification": self.classification,
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Assessment:
        """Create from dictionary."""
        return cls(
            id=data["id"],
            regime=data["regime"],
            name=data["name"],
            profile=dict(data.get("profile") or {}),
            created_at=_parse_time(data["created_at"]),
            updated_at=_parse_time(data["updated_at"]),
            deleted_at=_parse_time(data.get("deleted_at")),
            score=data.get("score"),
            maturity_level=data.get("maturity_level"),
            risk_level=data.get("risk_level"),
            classification=data.get("classification"),
            evaluated_at=_parse_time(data.get("evaluated_at")),
        )


@dataclass
class RequirementStatusRecord:
    """
    Status of one requirement within an assessment.

    Attributes:
        assessment_id: Owning assessment.
        requirement_id: Catalog requirement ID.
        status: Compliance status.
        notes: Free-text notes.
        evidence: References to supporting evidence.
        attributes: Regime-specific values (e.g., insurance policy status).
        updated_at: When the status last changed (UTC).

    Database Table: requirement_statuses
        - assessment_id TEXT NOT NULL (FK assessments.id)
        - requirement_id TEXT NOT NULL
        - status TEXT NOT NULL
        - notes TEXT
        - evidence_json TEXT
        - attributes_json TEXT
        - updated_at TEXT NOT NULL
        - PRIMARY KEY (assessment_id, requirement_id)
    """

    assessment_id: str
    requirement_id: str
    status: ComplianceStatus = ComplianceStatus.NOT_ASSESSED
    notes: str = ""
    evidence: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "assessment_id": self.assessment_id,
            "requirement_id": self.requirement_id,
            "status": self.status.value,
            "notes": self.notes,
            "evidence": list(self.evidence),
            "attributes": dict(self.attributes),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class ScoreSnapshot:
    """
    Point-in-time record of an assessment's computed score.

    Snapshots form the score history used to compare evaluations over time.

    Attributes:
        id: Unique identifier.
        assessment_id: Assessment the snapshot belongs to.
        timestamp: When the score was computed (UTC).
        regime: Regime key.
        score: Overall score.
        maturity_level: Maturity label.
        breakdown: Full score breakdown as a dictionary.

    Database Table: score_snapshots
        - id TEXT PRIMARY KEY
        - assessment_id TEXT NOT NULL (FK assessments.id)
        - timestamp TEXT NOT NULL
        - regime TEXT NOT NULL
        - score INTEGER NOT NULL
        - maturity_level TEXT NOT NULL
        - breakdown_json TEXT NOT NULL
    """

    id: str
    assessment_id: str
    timestamp: datetime
    regime: str
    score: int
    maturity_level: str
    breakdown: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        assessment_id: str,
        regime: str,
        score: int,
        maturity_level: str,
        breakdown: dict[str, Any] | None = None,
    ) -> ScoreSnapshot:
        """Create a new ScoreSnapshot with auto-generated ID and timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            assessment_id=assessment_id,
            timestamp=datetime.now(UTC),
            regime=regime,
            score=score,
            maturity_level=maturity_level,
            breakdown=dict(breakdown or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "assessment_id": self.assessment_id,
            "timestamp": self.timestamp.isoformat(),
            "regime": self.regime,
            "score": self.score,
            "maturity_level": self.maturity_level,
            "breakdown": self.breakdown,
        }
