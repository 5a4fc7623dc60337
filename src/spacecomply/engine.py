"""
Assessment orchestration for SpaceComply.

The ComplianceEngine ties the layers together for one regime at a time:

    profile -> applicability filter -> status store -> scorer + gap analyzer

It builds and validates profiles, keeps stored statuses in sync with the
applicable requirement set, and evaluates assessments into scores, gaps and
regime-specific details. Each evaluation caches its results on the
assessment and appends a score snapshot used for trend comparison. Status
and profile changes recompute the cached results without a snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from spacecomply.analysis.gap_analyzer import GapAnalysis, GapAnalyzer, GapAnalyzerConfig
from spacecomply.catalog.loader import get_catalog
from spacecomply.catalog.models import ComplianceStatus, Regime, Requirement
from spacecomply.config.settings import Settings
from spacecomply.core.rules import RuleOutcome
from spacecomply.regimes import insurance
from spacecomply.regimes.base import Profile, RegimeDefinition
from spacecomply.regimes.registry import get_regime
from spacecomply.scoring.maturity_calculator import (
    MaturityCalculator,
    ScoreBreakdown,
    ScoringConfig,
)
from spacecomply.scoring.summary import ComplianceSummary, summarize
from spacecomply.storage.assessment_store import AssessmentStore
from spacecomply.storage.models import Assessment, RequirementStatusRecord, ScoreSnapshot

logger = logging.getLogger(__name__)


def _value(result: Any) -> str | None:
    if result is None:
        return None
    if isinstance(result, Enum):
        return str(result.value)
    return str(result)


@dataclass
class EvaluationResult:
    """
    Everything computed for one assessment.

    Attributes:
        regime: Regime key.
        profile: The validated profile.
        requirements: Applicable requirements in catalog order.
        statuses: Requirement ID to status.
        breakdown: Overall, category and grouped scores.
        gaps: Gap analysis of unmet requirements.
        classification: Regime classification outcome.
        simplified: Whether the simplified regime applies.
        risk: Risk outcome, for regimes that define one.
        details: Regime-specific information.
        attribute_details: Results derived from per-status attributes.
        comparison: Change against the previous snapshot, if any.
        assessment: The evaluated assessment, when stored.
    """

    regime: str
    profile: Profile
    requirements: list[Requirement]
    statuses: dict[str, ComplianceStatus]
    breakdown: ScoreBreakdown
    gaps: GapAnalysis
    classification: RuleOutcome | None = None
    simplified: bool = False
    risk: RuleOutcome | None = None
    details: dict[str, Any] = field(default_factory=dict)
    attribute_details: dict[str, Any] = field(default_factory=dict)
    comparison: dict[str, Any] | None = None
    assessment: Assessment | None = None

    @property
    def score(self) -> int:
        return self.breakdown.score

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "regime": self.regime,
            "assessment": self.assessment.to_dict() if self.assessment else None,
            "profile": self.profile.to_dict(),
            "score": self.breakdown.score,
            "maturity_level": self.breakdown.level.value,
            "classification": (
                self.classification.to_dict() if self.classification else None
            ),
            "simplified": self.simplified,
            "risk": self.risk.to_dict() if self.risk else None,
            "applicable_requirements": [r.id for r in self.requirements],
            "statuses": {k: v.value for k, v in self.statuses.items()},
            "breakdown": self.breakdown.to_dict(),
            "gaps": self.gaps.to_dict(),
            "details": self.details,
            "attribute_details": self.attribute_details,
            "comparison": self.comparison,
        }


class ComplianceEngine:
    """
    Runs assessments against the regime catalogs.

    Example:
        engine = ComplianceEngine(load_config())

        assessment = engine.create_assessment("nis2", "HQ", profile_data)
        engine.set_status(assessment.id, "nis2-001", "compliant")
        result = engine.evaluate(assessment.id)
        print(result.score, len(result.gaps.all_gaps))

        # Without storage
        result = engine.evaluate_profile("cybersecurity", profile_data, statuses)

    Attributes:
        settings: Configuration settings.
        store: Assessment store, created lazily from settings.data_dir.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: AssessmentStore | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._store = store
        self.analyzer = GapAnalyzer(
            GapAnalyzerConfig(
                max_top_recommendations=self.settings.analysis.max_top_recommendations
            )
        )

    @property
    def store(self) -> AssessmentStore:
        if self._store is None:
            self._store = AssessmentStore(self.settings.data_dir)
        return self._store

    def calculator_for(self, definition: RegimeDefinition) -> MaturityCalculator:
        """Build a calculator configured for a regime."""
        return MaturityCalculator(
            ScoringConfig(
                partial_credit=self.settings.scoring.partial_credit,
                empty_score=self.settings.scoring.empty_score,
                exclude_not_applicable=definition.exclude_not_applicable,
            )
        )

    # -------------------------------------------------------------------------
    # Profiles and applicability
    # -------------------------------------------------------------------------

    def build_profile(
        self, regime: Regime | str, data: Mapping[str, Any] | None
    ) -> Profile:
        """
        Build and validate a regime profile.

        Raises:
            CatalogError: If the regime is unknown.
            ProfileValidationError: If mandatory fields are missing.
        """
        return get_regime(regime).build_profile(data)

    def applicable_requirements(
        self, regime: Regime | str, profile: Profile
    ) -> list[Requirement]:
        definition = get_regime(regime)
        return definition.applicable(profile, get_catalog(definition.regime))

    def classify_profile(
        self,
        regime: Regime | str,
        data: Mapping[str, Any] | None,
        suggest: bool = False,
    ) -> dict[str, Any]:
        """
        Classify a profile without creating an assessment.

        Args:
            regime: Regime key.
            data: Profile answers.
            suggest: Include advisory starting statuses, for regimes that
                offer them.

        Returns:
            Dictionary with the classification, simplified-regime eligibility,
            applicable requirement IDs and regime details.
        """
        definition = get_regime(regime)
        profile = definition.build_profile(data)
        requirements = definition.applicable(profile, get_catalog(definition.regime))

        result: dict[str, Any] = {
            "regime": definition.regime.value,
            "name": definition.name,
            "classification": (
                definition.classify(profile).to_dict() if definition.classify else None
            ),
            "simplified": (
                definition.simplified(profile) if definition.simplified else False
            ),
            "applicable_requirements": [r.id for r in requirements],
            "details": (
                definition.details(profile, requirements) if definition.details else {}
            ),
        }
        if suggest and definition.suggest:
            result["suggested_statuses"] = definition.suggest(profile, requirements)
        return result

    # -------------------------------------------------------------------------
    # Assessment lifecycle
    # -------------------------------------------------------------------------

    def create_assessment(
        self, regime: Regime | str, name: str, data: Mapping[str, Any] | None
    ) -> Assessment:
        """
        Create an assessment with a not_assessed status per applicable requirement.

        Raises:
            CatalogError: If the regime is unknown.
            ProfileValidationError: If the profile is invalid.
            StorageError: If storage fails.
        """
        definition = get_regime(regime)
        profile = definition.build_profile(data)
        requirements = definition.applicable(profile, get_catalog(definition.regime))
        return self.store.create_assessment(
            definition.regime.value,
            name,
            profile.to_dict(),
            [r.id for r in requirements],
        )

    def update_profile(
        self, assessment_id: str, data: Mapping[str, Any] | None
    ) -> dict[str, list[str]]:
        """
        Replace an assessment's profile, pruning and adding statuses.

        Returns:
            Dictionary with the "added" and "removed" requirement IDs.
        """
        assessment = self.store.get_assessment(assessment_id)
        definition = get_regime(assessment.regime)
        profile = definition.build_profile(data)
        requirements = definition.applicable(profile, get_catalog(definition.regime))
        changes = self.store.update_profile(
            assessment_id, profile.to_dict(), [r.id for r in requirements]
        )
        self.refresh(assessment_id)
        return changes

    def set_status(
        self,
        assessment_id: str,
        requirement_id: str,
        status: ComplianceStatus | str,
        notes: str | None = None,
        evidence: list[str] | None = None,
    ) -> RequirementStatusRecord:
        """
        Record a requirement status and refresh the cached results.

        On insurance assessments a plain status replaces any recorded
        policy status.
        """
        record = self._set_status(assessment_id, requirement_id, status, notes, evidence)
        self.refresh(assessment_id)
        return record

    def set_statuses(
        self, assessment_id: str, statuses: Mapping[str, ComplianceStatus | str]
    ) -> list[RequirementStatusRecord]:
        """Set several statuses, stopping at the first rejected one."""
        records: list[RequirementStatusRecord] = []
        try:
            for rid, status in statuses.items():
                records.append(self._set_status(assessment_id, rid, status))
        finally:
            if records:
                self.refresh(assessment_id)
        return records

    def _set_status(
        self,
        assessment_id: str,
        requirement_id: str,
        status: ComplianceStatus | str,
        notes: str | None = None,
        evidence: list[str] | None = None,
    ) -> RequirementStatusRecord:
        assessment = self.store.get_assessment(assessment_id)
        drop = (
            ("policy_status",) if assessment.regime == Regime.INSURANCE.value else ()
        )
        return self.store.set_status(
            assessment_id,
            requirement_id,
            status,
            notes=notes,
            evidence=evidence,
            drop_attributes=drop,
        )

    def set_policy_status(
        self,
        assessment_id: str,
        requirement_id: str,
        policy_status: insurance.PolicyStatus | str,
        notes: str | None = None,
    ) -> RequirementStatusRecord:
        """
        Record an insurance policy status and the compliance status it implies.

        Raises:
            ValueError: If the assessment is not an insurance assessment or
                the policy status is unknown.
        """
        assessment = self.store.get_assessment(assessment_id)
        if assessment.regime != Regime.INSURANCE.value:
            raise ValueError(
                f"Policy statuses only apply to insurance assessments, "
                f"not {assessment.regime}"
            )
        policy = insurance.PolicyStatus(policy_status)
        record = self.store.set_status(
            assessment_id,
            requirement_id,
            insurance.policy_status_to_compliance(policy),
            notes=notes,
            attributes={"policy_status": policy.value},
        )
        self.refresh(assessment_id)
        return record

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_profile(
        self,
        regime: Regime | str,
        data: Mapping[str, Any] | Profile | None,
        statuses: Mapping[str, Any] | None = None,
        attributes: Mapping[str, Mapping[str, Any]] | None = None,
        previous: ScoreBreakdown | None = None,
    ) -> EvaluationResult:
        """
        Score and analyze a profile against a status map.

        Statuses for requirements outside the applicable set are ignored.
        Applicable requirements without a status count as not assessed.
        """
        definition = get_regime(regime)
        profile = (
            data if isinstance(data, Profile) else definition.build_profile(data)
        )
        requirements = definition.applicable(profile, get_catalog(definition.regime))
        applicable_ids = {r.id for r in requirements}

        status_map: dict[str, ComplianceStatus] = {}
        for rid in applicable_ids:
            raw = (statuses or {}).get(rid)
            status_map[rid] = (
                ComplianceStatus(raw) if raw is not None else ComplianceStatus.NOT_ASSESSED
            )

        calculator = self.calculator_for(definition)
        breakdown = calculator.calculate(
            requirements,
            status_map,
            regime=definition.regime.value,
            groupings=definition.groupings,
            previous=previous,
        )

        simplified = definition.simplified(profile) if definition.simplified else False
        gaps = self.analyzer.analyze_gaps(
            requirements,
            status_map,
            regime=definition.regime.value,
            simplified=simplified,
            gap_extras=definition.gap_extras,
        )

        result = EvaluationResult(
            regime=definition.regime.value,
            profile=profile,
            requirements=requirements,
            statuses=status_map,
            breakdown=breakdown,
            gaps=gaps,
            classification=definition.classify(profile) if definition.classify else None,
            simplified=simplified,
            risk=(
                definition.risk(profile, requirements, status_map, breakdown)
                if definition.risk
                else None
            ),
            details=(
                definition.details(profile, requirements, status_map, breakdown)
                if definition.details
                else {}
            ),
            comparison=(
                calculator.compare_breakdowns(breakdown, previous) if previous else None
            ),
        )
        if definition.attribute_details:
            result.attribute_details = definition.attribute_details(
                requirements,
                {
                    rid: attrs
                    for rid, attrs in (attributes or {}).items()
                    if rid in applicable_ids
                },
            )
        return result

    def evaluate(self, assessment_id: str, save: bool = True) -> EvaluationResult:
        """
        Evaluate a stored assessment.

        Args:
            assessment_id: Assessment ID.
            save: Cache the results on the assessment and append a score
                snapshot.

        Returns:
            EvaluationResult, compared against the latest snapshot if any.

        Raises:
            AssessmentNotFoundError: If no such assessment exists.
        """
        assessment = self.store.get_assessment(assessment_id)
        records = self.store.get_statuses(assessment_id)
        latest = self.store.get_latest_snapshot(assessment_id)
        previous = ScoreBreakdown.from_dict(latest.breakdown) if latest else None

        result = self.evaluate_profile(
            assessment.regime,
            assessment.profile,
            {rid: record.status for rid, record in records.items()},
            {rid: record.attributes for rid, record in records.items()},
            previous=previous,
        )

        if save:
            self._cache_results(assessment_id, result)
            self.store.save_snapshot(
                ScoreSnapshot.create(
                    assessment_id=assessment_id,
                    regime=assessment.regime,
                    score=result.breakdown.score,
                    maturity_level=result.breakdown.level.value,
                    breakdown=result.breakdown.to_dict(),
                )
            )
            assessment = self.store.get_assessment(assessment_id)

        result.assessment = assessment
        logger.info(
            f"Evaluated {assessment.regime} assessment {assessment_id}: "
            f"score {result.breakdown.score}, {len(result.gaps.all_gaps)} gaps"
        )
        return result

    def refresh(self, assessment_id: str) -> EvaluationResult:
        """
        Recompute the cached results of an assessment after a change.

        Unlike evaluate(), no score snapshot is appended.
        """
        result = self.evaluate(assessment_id, save=False)
        self._cache_results(assessment_id, result)
        result.assessment = self.store.get_assessment(assessment_id)
        return result

    def _cache_results(self, assessment_id: str, result: EvaluationResult) -> None:
        self.store.update_cached_results(
            assessment_id,
            result.breakdown.score,
            result.breakdown.level.value,
            risk_level=_value(result.risk.result) if result.risk else None,
            classification=(
                _value(result.classification.result) if result.classification else None
            ),
        )

    # -------------------------------------------------------------------------
    # Cross-regime summary
    # -------------------------------------------------------------------------

    def summary(
        self,
        assessment_ids: Iterable[str] | None = None,
        weights: Mapping[str, float] | None = None,
    ) -> ComplianceSummary:
        """
        Weighted overall score across regimes.

        Each regime contributes the score of its most recently evaluated
        assessment among those given (all live assessments by default).
        Regimes without an evaluated assessment are reported as not started.
        """
        if assessment_ids is None:
            assessments = self.store.list_assessments()
        else:
            assessments = [self.store.get_assessment(aid) for aid in assessment_ids]

        latest: dict[str, Assessment] = {}
        for assessment in assessments:
            if assessment.score is None or assessment.evaluated_at is None:
                continue
            current = latest.get(assessment.regime)
            if current is None or assessment.evaluated_at > (
                current.evaluated_at or datetime.min.replace(tzinfo=UTC)
            ):
                latest[assessment.regime] = assessment

        regime_scores: dict[str, int | None] = {
            regime.value: (
                latest[regime.value].score if regime.value in latest else None
            )
            for regime in Regime
        }
        return summarize(
            regime_scores, weights, empty_score=self.settings.scoring.empty_score
        )
