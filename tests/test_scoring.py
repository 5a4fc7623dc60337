"""
Tests for weighted compliance scoring.

Uses Python's unittest module.
Tests weighted scores, partial credit, rounding, not-applicable handling,
category and custom groupings, maturity levels and score comparison.
"""

from __future__ import annotations

import unittest
from typing import Any

from spacecomply.catalog.models import ComplianceStatus, Requirement, Severity
from spacecomply.scoring.maturity_calculator import (
    ComplianceScore,
    MaturityCalculator,
    MaturityLevel,
    ScoreBreakdown,
    ScoringConfig,
    coerce_status,
    round_half_up,
)
from spacecomply.scoring.summary import letter_grade, module_status, summarize


def make_requirement(
    rid: str,
    severity: Severity = Severity.MAJOR,
    category: str = "governance",
    **kwargs: Any,
) -> Requirement:
    return Requirement(
        id=rid,
        regime="test",
        reference=f"Art. {rid}",
        category=category,
        title=f"Requirement {rid}",
        description="",
        severity=severity,
        **kwargs,
    )


class TestScoringConfig(unittest.TestCase):
    """Tests for ScoringConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = ScoringConfig()

        self.assertEqual(config.severity_weights[Severity.CRITICAL], 3)
        self.assertEqual(config.severity_weights[Severity.MAJOR], 2)
        self.assertEqual(config.severity_weights[Severity.MINOR], 1)
        self.assertEqual(config.partial_credit, 0.5)
        self.assertEqual(config.empty_score, 100)
        self.assertFalse(config.exclude_not_applicable)

    def test_score_to_level_bounds(self) -> None:
        """Test maturity levels use inclusive upper bounds."""
        config = ScoringConfig()

        self.assertEqual(config.score_to_level(0), MaturityLevel.INITIAL)
        self.assertEqual(config.score_to_level(20), MaturityLevel.INITIAL)
        self.assertEqual(config.score_to_level(21), MaturityLevel.DEVELOPING)
        self.assertEqual(config.score_to_level(40), MaturityLevel.DEVELOPING)
        self.assertEqual(config.score_to_level(60), MaturityLevel.DEFINED)
        self.assertEqual(config.score_to_level(80), MaturityLevel.MANAGED)
        self.assertEqual(config.score_to_level(81), MaturityLevel.OPTIMIZING)
        self.assertEqual(config.score_to_level(100), MaturityLevel.OPTIMIZING)


class TestHelpers(unittest.TestCase):
    """Tests for rounding and status coercion."""

    def test_round_half_up(self) -> None:
        """Test halves round up rather than to even."""
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(12.5), 13)
        self.assertEqual(round_half_up(12.49), 12)
        self.assertEqual(round_half_up(100.0), 100)

    def test_coerce_status(self) -> None:
        """Test stored status values are interpreted leniently."""
        self.assertEqual(coerce_status("partial"), ComplianceStatus.PARTIAL)
        self.assertEqual(
            coerce_status(ComplianceStatus.COMPLIANT), ComplianceStatus.COMPLIANT
        )
        self.assertIsNone(coerce_status(None))
        self.assertIsNone(coerce_status("done"))


class TestCalculateScore(unittest.TestCase):
    """Tests for scoring a single group."""

    def setUp(self) -> None:
        self.calculator = MaturityCalculator()

    def test_all_compliant(self) -> None:
        """Test all compliant scores 100."""
        requirements = [
            make_requirement("1", Severity.CRITICAL),
            make_requirement("2", Severity.MINOR),
        ]
        statuses = {"1": "compliant", "2": "compliant"}

        score = self.calculator.calculate_score(requirements, statuses)

        self.assertEqual(score.score, 100)
        self.assertEqual(score.level, MaturityLevel.OPTIMIZING)

    def test_nothing_met(self) -> None:
        """Test non-compliant and not-assessed requirements score 0."""
        requirements = [
            make_requirement("1", Severity.CRITICAL),
            make_requirement("2"),
            make_requirement("3", Severity.MINOR),
        ]
        statuses = {"1": "non_compliant", "2": "not_assessed"}

        score = self.calculator.calculate_score(requirements, statuses)

        self.assertEqual(score.score, 0)
        self.assertEqual(score.level, MaturityLevel.INITIAL)
        self.assertEqual(score.status_counts["not_assessed"], 2)
        self.assertEqual(score.status_counts["non_compliant"], 1)

    def test_weighted_by_severity(self) -> None:
        """Test a met critical and an unmet minor requirement score 75."""
        requirements = [
            make_requirement("1", Severity.CRITICAL),
            make_requirement("2", Severity.MINOR),
        ]
        statuses = {"1": "compliant", "2": "non_compliant"}

        score = self.calculator.calculate_score(requirements, statuses)

        self.assertEqual(score.score, 75)
        self.assertEqual(score.achieved_weight, 3)
        self.assertEqual(score.total_weight, 4)

    def test_partial_credit(self) -> None:
        """Test a single partial requirement scores 50."""
        requirements = [make_requirement("1", Severity.CRITICAL)]

        score = self.calculator.calculate_score(requirements, {"1": "partial"})

        self.assertEqual(score.score, 50)

    def test_custom_partial_credit(self) -> None:
        """Test the partial credit fraction is configurable."""
        calculator = MaturityCalculator(ScoringConfig(partial_credit=0.25))
        requirements = [make_requirement("1", Severity.MINOR)]

        self.assertEqual(calculator.calculate_score(requirements, {"1": "partial"}).score, 25)

    def test_half_rounds_up(self) -> None:
        """Test a score of exactly 12.5 rounds to 13."""
        requirements = [
            make_requirement("1", Severity.CRITICAL),
            make_requirement("2", Severity.CRITICAL),
            make_requirement("3", Severity.MAJOR),
        ]

        score = self.calculator.calculate_score(requirements, {"3": "partial"})

        self.assertEqual(score.score, 13)

    def test_empty_group(self) -> None:
        """Test a group with nothing to score reports the empty score."""
        score = self.calculator.calculate_score([], {})

        self.assertEqual(score.score, 100)
        self.assertEqual(score.requirement_count, 0)

    def test_custom_empty_score(self) -> None:
        """Test the empty score is configurable."""
        calculator = MaturityCalculator(ScoringConfig(empty_score=0))

        self.assertEqual(calculator.calculate_score([], {}).score, 0)

    def test_not_applicable_earns_nothing_by_default(self) -> None:
        """Test not_applicable stays in the denominator by default."""
        requirements = [
            make_requirement("1", Severity.CRITICAL),
            make_requirement("2", Severity.CRITICAL),
        ]
        statuses = {"1": "compliant", "2": "not_applicable"}

        self.assertEqual(self.calculator.calculate_score(requirements, statuses).score, 50)

    def test_not_applicable_excluded(self) -> None:
        """Test not_applicable is dropped from the denominator when configured."""
        calculator = MaturityCalculator(ScoringConfig(exclude_not_applicable=True))
        requirements = [
            make_requirement("1", Severity.CRITICAL),
            make_requirement("2", Severity.CRITICAL),
        ]

        score = calculator.calculate_score(
            requirements, {"1": "compliant", "2": "not_applicable"}
        )
        self.assertEqual(score.score, 100)
        self.assertEqual(score.requirement_count, 2)

        only_na = calculator.calculate_score(requirements[:1], {"1": "not_applicable"})
        self.assertEqual(only_na.score, 100)
        self.assertEqual(only_na.total_weight, 0)

    def test_unknown_status_earns_nothing(self) -> None:
        """Test an unrecognised status counts as not assessed."""
        requirements = [make_requirement("1")]

        score = self.calculator.calculate_score(requirements, {"1": "maybe"})

        self.assertEqual(score.score, 0)
        self.assertEqual(score.status_counts["not_assessed"], 1)

    def test_score_bounds(self) -> None:
        """Test every status mix stays within 0-100."""
        statuses = [s.value for s in ComplianceStatus]
        requirements = [
            make_requirement(str(i), severity)
            for i, severity in enumerate(
                [Severity.CRITICAL, Severity.MAJOR, Severity.MINOR] * 2
            )
        ]
        for offset in range(len(statuses)):
            mapping = {
                r.id: statuses[(i + offset) % len(statuses)]
                for i, r in enumerate(requirements)
            }
            score = self.calculator.calculate_score(requirements, mapping)
            self.assertGreaterEqual(score.score, 0)
            self.assertLessEqual(score.score, 100)


class TestCalculateBreakdown(unittest.TestCase):
    """Tests for full breakdowns."""

    def setUp(self) -> None:
        self.calculator = MaturityCalculator()
        self.requirements = [
            make_requirement("1", Severity.CRITICAL, "governance", extra={"agency": "FCC"}),
            make_requirement("2", Severity.MINOR, "governance", extra={"agency": "FAA"}),
            make_requirement("3", Severity.MAJOR, "reporting", extra={"agency": "FCC"}),
        ]
        self.statuses = {"1": "compliant", "2": "non_compliant", "3": "partial"}

    def test_categories_scored_independently(self) -> None:
        """Test each category gets its own score."""
        breakdown = self.calculator.calculate(self.requirements, self.statuses, regime="test")

        self.assertEqual(breakdown.regime, "test")
        self.assertEqual(set(breakdown.by_category), {"governance", "reporting"})
        self.assertEqual(breakdown.by_category["governance"].score, 75)
        self.assertEqual(breakdown.by_category["reporting"].score, 50)
        # (3 + 1) / 6
        self.assertEqual(breakdown.score, 67)
        self.assertEqual(breakdown.statistics["total_requirements"], 3)

    def test_custom_groupings(self) -> None:
        """Test extra groupings, including multi-key ones."""
        groupings = {
            "agency": lambda r: r.extra.get("agency"),
            "tags": lambda r: ["all", r.category],
        }

        breakdown = self.calculator.calculate(
            self.requirements, self.statuses, groupings=groupings
        )

        self.assertEqual(breakdown.group_score("agency", "FCC"), 80)
        self.assertEqual(breakdown.group_score("agency", "FAA"), 0)
        self.assertEqual(breakdown.group_score("tags", "all"), breakdown.score)
        self.assertEqual(breakdown.group_score("agency", "NOAA", 100), 100)

    def test_round_trip_and_comparison(self) -> None:
        """Test breakdowns survive serialisation and compare over time."""
        previous = self.calculator.calculate(self.requirements, self.statuses)
        restored = ScoreBreakdown.from_dict(previous.to_dict())

        self.assertEqual(restored.score, previous.score)
        self.assertEqual(restored.by_category["reporting"].score, 50)

        improved = dict(self.statuses, **{"3": "compliant"})
        current = self.calculator.calculate(self.requirements, improved, previous=restored)

        self.assertEqual(current.overall.delta, current.score - previous.score)
        self.assertEqual(current.by_category["reporting"].delta, 50)

        comparison = self.calculator.compare_breakdowns(current, restored)
        self.assertEqual(comparison["overall_direction"], "improved")
        self.assertEqual(comparison["category_deltas"]["reporting"], 50)
        self.assertEqual(comparison["categories_improved"], 1)
        self.assertEqual(comparison["categories_unchanged"], 1)

    def test_score_to_dict(self) -> None:
        """Test score dictionaries round-trip."""
        score = self.calculator.calculate_score(self.requirements, self.statuses)
        restored = ComplianceScore.from_dict(score.to_dict())

        self.assertEqual(restored.score, score.score)
        self.assertEqual(restored.level, score.level)
        self.assertEqual(restored.status_counts, score.status_counts)


class TestSummary(unittest.TestCase):
    """Tests for the cross-regime summary."""

    def test_letter_grades(self) -> None:
        """Test letter grade bands."""
        self.assertEqual(letter_grade(95), "A")
        self.assertEqual(letter_grade(90), "A")
        self.assertEqual(letter_grade(85), "B")
        self.assertEqual(letter_grade(70), "C")
        self.assertEqual(letter_grade(60), "D")
        self.assertEqual(letter_grade(59), "F")

    def test_module_status(self) -> None:
        """Test per-regime status labels."""
        self.assertEqual(module_status(None), "not_started")
        self.assertEqual(module_status(0), "not_started")
        self.assertEqual(module_status(30), "non_compliant")
        self.assertEqual(module_status(50), "partial")
        self.assertEqual(module_status(80), "compliant")

    def test_weighted_average(self) -> None:
        """Test regimes are combined by weight."""
        summary = summarize({"nis2": 80, "insurance": 50}, {"nis2": 3.0})

        # (80 * 3 + 50) / 4 = 72.5
        self.assertEqual(summary.overall_score, 73)
        self.assertEqual(summary.grade, "C")
        self.assertEqual(summary.weights, {"nis2": 3.0, "insurance": 1.0})

    def test_unstarted_regimes_left_out(self) -> None:
        """Test regimes without a score do not drag the average down."""
        summary = summarize({"nis2": 90, "insurance": None})

        self.assertEqual(summary.overall_score, 90)
        self.assertEqual(summary.regime_status["insurance"], "not_started")
        self.assertNotIn("insurance", summary.regime_scores)

    def test_nothing_scored(self) -> None:
        """Test the empty score applies when no regime has a score."""
        self.assertEqual(summarize({"nis2": None}).overall_score, 100)
        self.assertEqual(summarize({}, empty_score=0).overall_score, 0)


if __name__ == "__main__":
    unittest.main()
