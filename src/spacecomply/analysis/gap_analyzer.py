"""
Gap analysis for regulatory compliance assessments.

This module lists every applicable requirement that is not yet met, ranks
the gaps by priority and attaches remediation recommendations drawn from
the catalog guidance. All analysis is deterministic and fully auditable.

Gap Types:
    - non_compliant: Requirement assessed and not met
    - partial: Requirement partially met
    - not_assessed: Requirement not yet assessed (or no status recorded)

Priority Rules (first match wins):
    - critical: critical severity and non-compliant
    - high: critical severity, or major severity that is mandatory or
      non-compliant
    - medium: major severity, or minor severity that is non-compliant
    - low: simplifiable requirements that are not non-compliant, and
      everything else

Effort:
    Derived from the catalog's implementation estimate: up to 2 weeks is
    low, up to 6 weeks is medium, anything longer is high.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from spacecomply.catalog.models import ComplianceStatus, Requirement, Severity
from spacecomply.scoring.maturity_calculator import coerce_status

logger = logging.getLogger(__name__)


class GapType(str, Enum):
    """Type of compliance gap."""

    NON_COMPLIANT = "non_compliant"
    PARTIAL = "partial"
    NOT_ASSESSED = "not_assessed"


class Priority(str, Enum):
    """Gap priority level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Effort(str, Enum):
    """Effort required to close gap."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Impact(str, Enum):
    """Impact of closing gap."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_ORDER = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

_IMPACT_BY_PRIORITY = {
    Priority.CRITICAL: Impact.HIGH,
    Priority.HIGH: Impact.HIGH,
    Priority.MEDIUM: Impact.MEDIUM,
    Priority.LOW: Impact.LOW,
}

# Optional per-regime hook adding fields to each gap
GapExtras = Callable[[Requirement, GapType], dict[str, Any]]


@dataclass
class Recommendation:
    """
    Actionable recommendation for closing a gap.

    Attributes:
        gap_id: Requirement ID of the gap this addresses.
        action: What action to take.
        reference: Legal reference the action satisfies.
        effort: Effort level required.
        impact: Impact of completing this action.
        details: Detailed instructions.
    """

    gap_id: str
    action: str
    reference: str
    effort: Effort
    impact: Impact
    details: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "gap_id": self.gap_id,
            "action": self.action,
            "reference": self.reference,
            "effort": self.effort.value,
            "impact": self.impact.value,
            "details": self.details,
        }


@dataclass
class Gap:
    """
    A compliance gap on one requirement.

    Attributes:
        requirement_id: Catalog requirement ID.
        title: Requirement title.
        reference: Article or CFR reference.
        category: Requirement category.
        severity: Requirement severity.
        status: Current status.
        gap_type: Type of gap identified.
        priority: Priority level for addressing.
        effort: Effort level, from the implementation estimate.
        implementation_weeks: Catalog implementation estimate.
        remediation_weeks: Weeks still needed given the current status.
        mandatory: Whether the obligation is legally binding.
        explanation: Human-readable explanation of the gap.
        recommendations: List of actionable recommendations.
        evidence_required: Evidence expected to close the gap.
        extra: Regime-specific details (penalties, effort labels).
    """

    requirement_id: str
    title: str
    reference: str
    category: str
    severity: Severity
    status: ComplianceStatus
    gap_type: GapType
    priority: Priority
    effort: Effort
    implementation_weeks: int
    remediation_weeks: int
    mandatory: bool
    explanation: str
    recommendations: list[Recommendation] = field(default_factory=list)
    evidence_required: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "requirement_id": self.requirement_id,
            "title": self.title,
            "reference": self.reference,
            "category": self.category,
            "severity": self.severity.value,
            "status": self.status.value,
            "gap_type": self.gap_type.value,
            "priority": self.priority.value,
            "effort": self.effort.value,
            "implementation_weeks": self.implementation_weeks,
            "remediation_weeks": self.remediation_weeks,
            "mandatory": self.mandatory,
            "explanation": self.explanation,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "evidence_required": list(self.evidence_required),
            "extra": dict(self.extra),
        }


@dataclass
class GapAnalysis:
    """
    Complete gap analysis results.

    Attributes:
        timestamp: When the analysis was performed.
        regime: Regime key.
        total_requirements: Number of applicable requirements.
        requirements_with_gaps: Number of requirements with gaps.
        gap_percentage: Percentage of requirements with gaps.
        gaps_by_priority: Count of gaps by priority level.
        gaps_by_category: Gaps organized by requirement category.
        gaps_by_type: Count of gaps by type.
        all_gaps: Complete list of all gaps, sorted by priority.
        top_recommendations: Prioritized, deduplicated recommendations.
        quick_wins: Low-effort gaps of critical or high priority.
        critical_gaps: Gaps requiring immediate attention.
        remediation_weeks: Total estimated weeks to close every gap.
        compliant_ids: Requirements already compliant.
        not_applicable_ids: Requirements marked not applicable.
    """

    timestamp: datetime
    regime: str
    total_requirements: int
    requirements_with_gaps: int
    gap_percentage: float
    gaps_by_priority: dict[str, int]
    gaps_by_category: dict[str, list[Gap]]
    gaps_by_type: dict[str, int]
    all_gaps: list[Gap]
    top_recommendations: list[Recommendation]
    quick_wins: list[Gap]
    critical_gaps: list[Gap]
    remediation_weeks: int
    compliant_ids: list[str] = field(default_factory=list)
    not_applicable_ids: list[str] = field(default_factory=list)

    @property
    def gap_ids(self) -> list[str]:
        return [g.requirement_id for g in self.all_gaps]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "regime": self.regime,
            "total_requirements": self.total_requirements,
            "requirements_with_gaps": self.requirements_with_gaps,
            "gap_percentage": round(self.gap_percentage, 2),
            "gaps_by_priority": self.gaps_by_priority,
            "gaps_by_category": {
                k: [g.to_dict() for g in v] for k, v in self.gaps_by_category.items()
            },
            "gaps_by_type": self.gaps_by_type,
            "all_gaps": [g.to_dict() for g in self.all_gaps],
            "top_recommendations": [r.to_dict() for r in self.top_recommendations],
            "quick_wins": [g.to_dict() for g in self.quick_wins],
            "critical_gaps": [g.to_dict() for g in self.critical_gaps],
            "remediation_weeks": self.remediation_weeks,
            "compliant_ids": list(self.compliant_ids),
            "not_applicable_ids": list(self.not_applicable_ids),
        }


@dataclass
class GapAnalyzerConfig:
    """
    Configuration for gap analysis.

    Attributes:
        low_effort_max_weeks: Longest estimate still considered low effort.
        medium_effort_max_weeks: Longest estimate still considered medium effort.
        max_top_recommendations: Number of top recommendations to keep.
        max_guidance_actions: Guidance tips turned into recommendations per gap.
    """

    low_effort_max_weeks: int = 2
    medium_effort_max_weeks: int = 6
    max_top_recommendations: int = 10
    max_guidance_actions: int = 3

    def weeks_to_effort(self, weeks: int) -> Effort:
        if weeks <= self.low_effort_max_weeks:
            return Effort.LOW
        if weeks <= self.medium_effort_max_weeks:
            return Effort.MEDIUM
        return Effort.HIGH


class GapAnalyzer:
    """
    Analyzer for identifying and prioritizing compliance gaps.

    Walks the applicable requirements of an assessment, flags every one
    that is not compliant and not marked not applicable, prioritizes the
    gaps and generates recommendations for closing them.

    Example:
        analyzer = GapAnalyzer()

        analysis = analyzer.analyze_gaps(requirements, statuses, regime="nis2")

        # Gaps requiring immediate attention
        critical = analyzer.get_critical_gaps()

        # Low effort, high priority
        quick_wins = analyzer.get_quick_wins()

    Attributes:
        config: GapAnalyzerConfig with analysis settings.
    """

    def __init__(self, config: GapAnalyzerConfig | None = None) -> None:
        """
        Initialize the gap analyzer.

        Args:
            config: GapAnalyzerConfig with analysis settings.
                Defaults to standard settings.
        """
        self.config = config or GapAnalyzerConfig()
        self._last_analysis: GapAnalysis | None = None

    def analyze_gaps(
        self,
        requirements: Iterable[Requirement],
        statuses: Mapping[str, Any],
        regime: str = "",
        simplified: bool = False,
        gap_extras: GapExtras | None = None,
    ) -> GapAnalysis:
        """
        Perform complete gap analysis on an assessment.

        Args:
            requirements: Applicable requirements.
            statuses: Requirement ID to status; missing entries count as
                not assessed.
            regime: Regime key recorded on the analysis.
            simplified: Whether the simplified regime applies, in which case
                simplified alternatives are recommended.
            gap_extras: Optional hook adding regime-specific fields.

        Returns:
            GapAnalysis with all identified gaps and recommendations.
        """
        requirements = list(requirements)
        all_gaps: list[Gap] = []
        gaps_by_category: dict[str, list[Gap]] = {}
        gaps_by_priority: dict[str, int] = {p.value: 0 for p in Priority}
        gaps_by_type: dict[str, int] = {t.value: 0 for t in GapType}
        compliant_ids: list[str] = []
        not_applicable_ids: list[str] = []

        for requirement in requirements:
            status = coerce_status(statuses.get(requirement.id))
            if status == ComplianceStatus.COMPLIANT:
                compliant_ids.append(requirement.id)
                continue
            if status == ComplianceStatus.NOT_APPLICABLE:
                not_applicable_ids.append(requirement.id)
                continue

            gap = self._analyze_requirement(
                requirement, status or ComplianceStatus.NOT_ASSESSED
            )
            if gap_extras is not None:
                gap.extra.update(gap_extras(requirement, gap.gap_type))
            all_gaps.append(gap)
            gaps_by_priority[gap.priority.value] += 1
            gaps_by_type[gap.gap_type.value] += 1

        # Sort gaps by priority, keeping catalog order within a level
        all_gaps.sort(key=lambda g: PRIORITY_ORDER[g.priority])

        for gap in all_gaps:
            gaps_by_category.setdefault(gap.category, []).append(gap)

        requirements_by_id = {r.id: r for r in requirements}
        all_recommendations: list[Recommendation] = []
        for gap in all_gaps:
            gap.recommendations = self.generate_recommendations(
                gap, requirements_by_id[gap.requirement_id], simplified
            )
            all_recommendations.extend(gap.recommendations)

        quick_wins = [
            g for g in all_gaps
            if g.effort == Effort.LOW and g.priority in (Priority.CRITICAL, Priority.HIGH)
        ]

        critical_gaps = [g for g in all_gaps if g.priority == Priority.CRITICAL]

        top_recommendations = self._prioritize_recommendations(all_recommendations)[
            : self.config.max_top_recommendations
        ]

        total = len(requirements)
        with_gaps = len(all_gaps)
        gap_percentage = (with_gaps / total * 100) if total > 0 else 0.0

        analysis = GapAnalysis(
            timestamp=datetime.now(UTC),
            regime=regime,
            total_requirements=total,
            requirements_with_gaps=with_gaps,
            gap_percentage=gap_percentage,
            gaps_by_priority=gaps_by_priority,
            gaps_by_category=gaps_by_category,
            gaps_by_type=gaps_by_type,
            all_gaps=all_gaps,
            top_recommendations=top_recommendations,
            quick_wins=quick_wins,
            critical_gaps=critical_gaps,
            remediation_weeks=sum(g.remediation_weeks for g in all_gaps),
            compliant_ids=compliant_ids,
            not_applicable_ids=not_applicable_ids,
        )

        self._last_analysis = analysis
        logger.info(
            "Gap analysis complete: %d gaps identified (%.1f%% of requirements)",
            with_gaps,
            gap_percentage,
        )

        return analysis

    def _analyze_requirement(
        self, requirement: Requirement, status: ComplianceStatus
    ) -> Gap:
        """Build the gap for one requirement that is not yet met."""
        if status == ComplianceStatus.NON_COMPLIANT:
            gap_type = GapType.NON_COMPLIANT
        elif status == ComplianceStatus.PARTIAL:
            gap_type = GapType.PARTIAL
        else:
            gap_type = GapType.NOT_ASSESSED

        weeks = requirement.implementation_weeks or 0
        if gap_type == GapType.PARTIAL:
            remaining = math.ceil(weeks / 2)
        else:
            remaining = weeks

        return Gap(
            requirement_id=requirement.id,
            title=requirement.title,
            reference=requirement.reference,
            category=requirement.category,
            severity=requirement.severity,
            status=status,
            gap_type=gap_type,
            priority=self._determine_priority(requirement, status),
            effort=self.config.weeks_to_effort(weeks),
            implementation_weeks=weeks,
            remediation_weeks=remaining,
            mandatory=requirement.mandatory,
            explanation=self._build_explanation(requirement, gap_type),
            evidence_required=list(requirement.evidence_required),
        )

    def _determine_priority(
        self, requirement: Requirement, status: ComplianceStatus
    ) -> Priority:
        """Determine gap priority from severity, status and flags."""
        non_compliant = status == ComplianceStatus.NON_COMPLIANT

        # Critical requirement known to be unmet
        if requirement.severity == Severity.CRITICAL and non_compliant:
            return Priority.CRITICAL

        if requirement.severity == Severity.CRITICAL:
            return Priority.HIGH

        if requirement.severity == Severity.MAJOR and (
            requirement.mandatory or non_compliant
        ):
            return Priority.HIGH

        if requirement.severity == Severity.MAJOR:
            return Priority.MEDIUM

        # Proportionality allows a reduced form
        if requirement.can_be_simplified and not non_compliant:
            return Priority.LOW

        if requirement.severity == Severity.MINOR and non_compliant:
            return Priority.MEDIUM

        return Priority.LOW

    def _build_explanation(self, requirement: Requirement, gap_type: GapType) -> str:
        """Build human-readable explanation of the gap."""
        lead = {
            GapType.NON_COMPLIANT: "Not currently compliant with",
            GapType.PARTIAL: "Partially compliant with",
            GapType.NOT_ASSESSED: "Not yet assessed against",
        }[gap_type]
        parts = [f"{lead} {requirement.title} ({requirement.reference})."]
        if requirement.mandatory:
            parts.append("This obligation is mandatory.")
        if requirement.evidence_required:
            parts.append(
                f"Evidence expected: {', '.join(requirement.evidence_required[:3])}."
            )
        return " ".join(parts)

    def generate_recommendations(
        self,
        gap: Gap,
        requirement: Requirement,
        simplified: bool = False,
    ) -> list[Recommendation]:
        """
        Generate recommendations for closing a gap.

        Args:
            gap: The gap to address.
            requirement: Catalog requirement behind the gap.
            simplified: Whether the simplified regime applies.

        Returns:
            Recommendations sorted by impact, then effort.
        """
        recommendations: list[Recommendation] = []
        impact = _IMPACT_BY_PRIORITY[gap.priority]

        if gap.gap_type == GapType.NOT_ASSESSED:
            recommendations.append(
                Recommendation(
                    gap_id=gap.requirement_id,
                    action=f"Assess compliance with {requirement.title}",
                    reference=requirement.reference,
                    effort=Effort.LOW,
                    impact=impact,
                    details=requirement.question or requirement.description,
                )
            )

        if simplified and requirement.simplified_alternative:
            recommendations.append(
                Recommendation(
                    gap_id=gap.requirement_id,
                    action=requirement.simplified_alternative,
                    reference=requirement.reference,
                    effort=Effort.LOW,
                    impact=impact,
                    details=(
                        "Simplified regime applies. The reduced form of "
                        f"{requirement.title} is sufficient."
                    ),
                )
            )

        for tip in requirement.guidance[: self.config.max_guidance_actions]:
            recommendations.append(
                Recommendation(
                    gap_id=gap.requirement_id,
                    action=tip,
                    reference=requirement.reference,
                    effort=gap.effort,
                    impact=impact,
                    details=f"{requirement.title}: {requirement.description}",
                )
            )

        if not requirement.guidance:
            recommendations.append(
                Recommendation(
                    gap_id=gap.requirement_id,
                    action=(
                        f"Review and implement {requirement.title} requirements "
                        f"per {requirement.reference}"
                    ),
                    reference=requirement.reference,
                    effort=gap.effort,
                    impact=impact,
                    details=requirement.description,
                )
            )

        # Sort by impact (high first) then by effort (low first)
        impact_order = {Impact.HIGH: 0, Impact.MEDIUM: 1, Impact.LOW: 2}
        effort_order = {Effort.LOW: 0, Effort.MEDIUM: 1, Effort.HIGH: 2}
        recommendations.sort(
            key=lambda r: (impact_order[r.impact], effort_order[r.effort])
        )

        return recommendations

    def _prioritize_recommendations(
        self,
        recommendations: list[Recommendation],
    ) -> list[Recommendation]:
        """Deduplicate and prioritize recommendations."""
        # Deduplicate by action text
        seen_actions: set[str] = set()
        unique_recs: list[Recommendation] = []

        for rec in recommendations:
            if rec.action not in seen_actions:
                seen_actions.add(rec.action)
                unique_recs.append(rec)

        # Sort by impact then effort
        impact_order = {Impact.HIGH: 0, Impact.MEDIUM: 1, Impact.LOW: 2}
        effort_order = {Effort.LOW: 0, Effort.MEDIUM: 1, Effort.HIGH: 2}
        unique_recs.sort(
            key=lambda r: (impact_order[r.impact], effort_order[r.effort])
        )

        return unique_recs

    def get_critical_gaps(self) -> list[Gap]:
        """
        Get gaps requiring immediate attention.

        Returns:
            List of critical priority gaps.
        """
        if not self._last_analysis:
            return []
        return self._last_analysis.critical_gaps

    def get_quick_wins(self) -> list[Gap]:
        """
        Get gaps that are quick to close and high priority.

        Returns:
            List of quick win gaps.
        """
        if not self._last_analysis:
            return []
        return self._last_analysis.quick_wins

    def get_gaps_by_category(self, category: str) -> list[Gap]:
        """
        Get all gaps for a requirement category.

        Args:
            category: Category name (e.g., "incident_handling").

        Returns:
            List of gaps in that category.
        """
        if not self._last_analysis:
            return []
        return self._last_analysis.gaps_by_category.get(category, [])

    def get_gaps_by_priority(self, priority: Priority) -> list[Gap]:
        """
        Get all gaps with a specific priority.

        Args:
            priority: Priority level to filter by.

        Returns:
            List of gaps with that priority.
        """
        if not self._last_analysis:
            return []
        return [g for g in self._last_analysis.all_gaps if g.priority == priority]
