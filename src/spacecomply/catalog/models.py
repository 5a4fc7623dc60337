"""
Requirement catalog data models.

This module defines the immutable requirement record shared by every regime
catalog, along with the enumerations used across the scoring and analysis
layers.

Each regime ships its catalog as a YAML file under ``catalog/data``. Records
are built once when a catalog is first loaded and are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Regime(str, Enum):
    """Regulatory regimes covered by the toolkit."""

    NIS2 = "nis2"
    CYBERSECURITY = "cybersecurity"
    EXPORT_CONTROL = "export_control"
    INSURANCE = "insurance"
    US_REGULATORY = "us_regulatory"


class Severity(str, Enum):
    """Requirement severity, which determines the scoring weight."""

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class ComplianceStatus(str, Enum):
    """Per-requirement compliance status recorded by an assessment."""

    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non_compliant"
    NOT_ASSESSED = "not_assessed"
    NOT_APPLICABLE = "not_applicable"


SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 3,
    Severity.MAJOR: 2,
    Severity.MINOR: 1,
}


@dataclass(frozen=True)
class Requirement:
    """
    A single catalog requirement.

    Attributes:
        id: Unique identifier within the regime (e.g., "nis2-001").
        regime: Regime key the requirement belongs to.
        reference: Article or CFR reference (e.g., "NIS2 Art. 21(2)(a)").
        category: Category used for score breakdowns.
        title: Short title.
        description: Full requirement text.
        severity: critical, major or minor.
        question: Yes/no assessment question, if any.
        applicability: Predicate name to allowed values. An absent or empty
            predicate applies to every profile.
        required_flags: Profile flags that must all be set.
        excluded_flags: Profile flags that exclude the requirement.
        guidance: Remediation tips and compliance actions.
        evidence_required: Evidence expected to demonstrate compliance.
        implementation_weeks: Estimated implementation effort.
        can_be_simplified: Whether proportionality allows a reduced form.
        mandatory: Whether the obligation is legally binding.
        simplified_alternative: Reduced form under a simplified regime.
        notes: Sector-specific interpretation.
        references: Cross-references to other regulations.
        extra: Regime-specific data (penalties, agency, license types).
    """

    id: str
    regime: str
    reference: str
    category: str
    title: str
    description: str
    severity: Severity
    question: str = ""
    applicability: dict[str, list[str]] = field(default_factory=dict)
    required_flags: list[str] = field(default_factory=list)
    excluded_flags: list[str] = field(default_factory=list)
    guidance: list[str] = field(default_factory=list)
    evidence_required: list[str] = field(default_factory=list)
    implementation_weeks: int | None = None
    can_be_simplified: bool = False
    mandatory: bool = False
    simplified_alternative: str | None = None
    notes: str = ""
    references: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def weight(self) -> int:
        """Scoring weight derived from severity."""
        return SEVERITY_WEIGHTS[self.severity]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "regime": self.regime,
            "reference": self.reference,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "question": self.question,
            "applicability": {k: list(v) for k, v in self.applicability.items()},
            "required_flags": list(self.required_flags),
            "excluded_flags": list(self.excluded_flags),
            "guidance": list(self.guidance),
            "evidence_required": list(self.evidence_required),
            "implementation_weeks": self.implementation_weeks,
            "can_be_simplified": self.can_be_simplified,
            "mandatory": self.mandatory,
            "simplified_alternative": self.simplified_alternative,
            "notes": self.notes,
            "references": dict(self.references),
            "extra": dict(self.extra),
        }

    def to_redacted_dict(self) -> dict[str, Any]:
        """Convert to the reduced form shared with external clients."""
        return {
            "id": self.id,
            "reference": self.reference,
            "category": self.category,
            "title": self.title,
            "severity": self.severity.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], regime: str | None = None) -> Requirement:
        """
        Create from dictionary.

        Args:
            data: Requirement fields as found in a catalog file.
            regime: Regime key, used when the record does not carry one.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If the severity is unknown.
        """
        applicability = {
            str(key): [str(v) for v in (values or [])]
            for key, values in (data.get("applicability") or {}).items()
        }
        weeks = data.get("implementation_weeks")
        return cls(
            id=str(data["id"]),
            regime=str(data.get("regime") or regime or ""),
            reference=str(data.get("reference", "")),
            category=str(data["category"]),
            title=str(data["title"]),
            description=str(data.get("description", "")),
            severity=Severity(data["severity"]),
            question=str(data.get("question") or ""),
            applicability=applicability,
            required_flags=list(data.get("required_flags") or []),
            excluded_flags=list(data.get("excluded_flags") or []),
            guidance=list(data.get("guidance") or []),
            evidence_required=list(data.get("evidence_required") or []),
            implementation_weeks=int(weeks) if weeks is not None else None,
            can_be_simplified=bool(data.get("can_be_simplified", False)),
            mandatory=bool(data.get("mandatory", False)),
            simplified_alternative=data.get("simplified_alternative"),
            notes=str(data.get("notes") or ""),
            references=dict(data.get("references") or {}),
            extra=dict(data.get("extra") or {}),
        )


@dataclass
class Catalog:
    """
    An ordered, indexed collection of requirements for one regime.

    Attributes:
        regime: Regime key.
        name: Human-readable regime name.
        source: Legal source of the requirements.
        requirements: Requirements in catalog order.
    """

    regime: str
    name: str
    source: str
    requirements: list[Requirement] = field(default_factory=list)
    _index: dict[str, Requirement] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._index = {r.id: r for r in self.requirements}

    def __len__(self) -> int:
        return len(self.requirements)

    def __iter__(self):
        return iter(self.requirements)

    def __contains__(self, requirement_id: object) -> bool:
        return requirement_id in self._index

    def get(self, requirement_id: str) -> Requirement | None:
        """Get a requirement by ID, or None if it is not in the catalog."""
        return self._index.get(requirement_id)

    def get_categories(self) -> list[str]:
        """Categories in order of first appearance."""
        return list(dict.fromkeys(r.category for r in self.requirements))

    def get_statistics(self) -> dict[str, Any]:
        """Counts by severity and category."""
        by_severity = {s.value: 0 for s in Severity}
        by_category: dict[str, int] = {}
        for req in self.requirements:
            by_severity[req.severity.value] += 1
            by_category[req.category] = by_category.get(req.category, 0) + 1
        return {
            "requirements": len(self.requirements),
            "categories": len(by_category),
            "mandatory": sum(1 for r in self.requirements if r.mandatory),
            "by_severity": by_severity,
            "by_category": by_category,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "regime": self.regime,
            "name": self.name,
            "source": self.source,
            "requirements": [r.to_dict() for r in self.requirements],
            "statistics": self.get_statistics(),
        }
