"""
Tests for the compliance engine.

Uses Python's unittest module.
Tests the assessment lifecycle end to end: profile classification,
status sync, evaluation with score history and the cross-regime summary.
"""

from __future__ import annotations

import tempfile
import unittest

from spacecomply.catalog.loader import CatalogError
from spacecomply.catalog.models import ComplianceStatus
from spacecomply.config.settings import Settings
from spacecomply.engine import ComplianceEngine
from spacecomply.regimes.base import ProfileValidationError
from spacecomply.storage.assessment_store import AssessmentNotFoundError

LARGE_OPERATOR = {"entity_size": "large", "operates_ground_infra": True}
INSURED_MISSION = {"operator_type": "spacecraft", "orbit_regime": "LEO"}


class EngineTestCase(unittest.TestCase):
    """Base class creating an engine over a temporary data directory."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.engine = ComplianceEngine(Settings(data_dir=self.temp_dir.name))

    def tearDown(self) -> None:
        self.temp_dir.cleanup()


class TestClassifyProfile(EngineTestCase):
    """Tests for profile classification without storage."""

    def test_classify_nis2(self) -> None:
        """Test a large operator is classified as essential."""
        result = self.engine.classify_profile("nis2", LARGE_OPERATOR)

        self.assertEqual(result["regime"], "nis2")
        self.assertEqual(result["classification"]["result"], "essential")
        self.assertTrue(result["applicable_requirements"])
        self.assertIn("details", result)

    def test_classify_regime_without_classifier(self) -> None:
        """Test regimes without a classification rule table report None."""
        result = self.engine.classify_profile(
            "export_control", {"company_types": ["spacecraft_manufacturer"]}
        )

        self.assertIsNone(result["classification"])
        self.assertFalse(result["simplified"])
        self.assertEqual(result["applicable_requirements"], ["ITAR-SCREEN-001"])

    def test_classify_with_suggestions(self) -> None:
        """Test suggested statuses cover every applicable requirement."""
        result = self.engine.classify_profile(
            "nis2", {**LARGE_OPERATOR, "has_iso27001": True}, suggest=True
        )

        self.assertEqual(
            set(result["suggested_statuses"]), set(result["applicable_requirements"])
        )

    def test_suggestions_off_by_default(self) -> None:
        """Test suggestions are only computed on request."""
        result = self.engine.classify_profile("nis2", LARGE_OPERATOR)

        self.assertNotIn("suggested_statuses", result)

    def test_regime_without_suggestions(self) -> None:
        """Test regimes without suggestions ignore the request."""
        result = self.engine.classify_profile("insurance", INSURED_MISSION, suggest=True)

        self.assertNotIn("suggested_statuses", result)

    def test_unknown_regime(self) -> None:
        """Test an unknown regime raises CatalogError."""
        with self.assertRaises(CatalogError):
            self.engine.classify_profile("maritime", {})

    def test_invalid_profile(self) -> None:
        """Test a profile missing mandatory answers is rejected."""
        with self.assertRaises(ProfileValidationError):
            self.engine.classify_profile("export_control", {"has_itar_items": True})


class TestEvaluateProfile(EngineTestCase):
    """Tests for stateless evaluation."""

    def test_missing_statuses_count_as_not_assessed(self) -> None:
        """Test applicable requirements without a status are not assessed."""
        applicable = self.engine.classify_profile("nis2", LARGE_OPERATOR)[
            "applicable_requirements"
        ]

        result = self.engine.evaluate_profile(
            "nis2", LARGE_OPERATOR, {applicable[0]: "compliant"}
        )

        self.assertEqual(set(result.statuses), set(applicable))
        self.assertEqual(result.statuses[applicable[0]], ComplianceStatus.COMPLIANT)
        self.assertEqual(result.statuses[applicable[1]], ComplianceStatus.NOT_ASSESSED)
        self.assertGreater(result.score, 0)
        self.assertLess(result.score, 100)

    def test_statuses_outside_applicable_set_ignored(self) -> None:
        """Test statuses for non-applicable requirements do not count."""
        baseline = self.engine.evaluate_profile("insurance", INSURED_MISSION, {})

        result = self.engine.evaluate_profile(
            "insurance", INSURED_MISSION, {"in_orbit": "compliant"}
        )

        self.assertNotIn("in_orbit", result.statuses)
        self.assertEqual(result.score, baseline.score)

    def test_all_compliant_scores_100(self) -> None:
        """Test a fully compliant assessment has no gaps."""
        applicable = self.engine.classify_profile("nis2", LARGE_OPERATOR)[
            "applicable_requirements"
        ]

        result = self.engine.evaluate_profile(
            "nis2", LARGE_OPERATOR, {rid: "compliant" for rid in applicable}
        )

        self.assertEqual(result.score, 100)
        self.assertEqual(result.gaps.all_gaps, [])

    def test_result_to_dict(self) -> None:
        """Test the serialized result carries regime output."""
        data = self.engine.evaluate_profile("insurance", INSURED_MISSION, {}).to_dict()

        self.assertEqual(data["regime"], "insurance")
        self.assertIsNone(data["assessment"])
        self.assertIn("mission_risk", data["details"])
        self.assertIsNotNone(data["risk"])


class TestAssessmentLifecycle(EngineTestCase):
    """Tests for stored assessments."""

    def test_create_assessment(self) -> None:
        """Test creating an assessment seeds its applicable requirements."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        applicable = self.engine.classify_profile("nis2", LARGE_OPERATOR)[
            "applicable_requirements"
        ]

        statuses = self.engine.store.get_status_map(assessment.id)

        self.assertEqual(set(statuses), set(applicable))
        self.assertEqual(assessment.profile["entity_size"], "large")

    def test_evaluate_caches_and_snapshots(self) -> None:
        """Test evaluation caches results and appends score history."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)

        result = self.engine.evaluate(assessment.id)

        self.assertEqual(result.score, 0)
        self.assertIsNone(result.comparison)
        self.assertEqual(result.assessment.score, 0)
        self.assertEqual(result.assessment.classification, "essential")
        self.assertEqual(len(self.engine.store.get_snapshots(assessment.id)), 1)

    def test_second_evaluation_compares(self) -> None:
        """Test progress is compared against the previous snapshot."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        self.engine.evaluate(assessment.id)
        first_id = next(iter(self.engine.store.get_status_map(assessment.id)))
        self.engine.set_status(assessment.id, first_id, "compliant")

        result = self.engine.evaluate(assessment.id)

        self.assertIsNotNone(result.comparison)
        self.assertEqual(result.comparison["overall_direction"], "improved")
        self.assertEqual(len(self.engine.store.get_snapshots(assessment.id)), 2)

    def test_evaluate_without_saving(self) -> None:
        """Test a read-only evaluation leaves no history."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)

        result = self.engine.evaluate(assessment.id, save=False)

        self.assertIsNone(result.assessment.score)
        self.assertEqual(self.engine.store.get_snapshots(assessment.id), [])

    def test_evaluate_missing(self) -> None:
        """Test evaluating a missing assessment raises."""
        with self.assertRaises(AssessmentNotFoundError):
            self.engine.evaluate("missing")

    def test_update_profile_syncs_statuses(self) -> None:
        """Test changing the profile keeps statuses equal to the applicable set."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        smaller = {"entity_size": "micro", "operates_sat_comms": True}
        expected = self.engine.classify_profile("nis2", smaller)["applicable_requirements"]

        changes = self.engine.update_profile(assessment.id, smaller)

        statuses = self.engine.store.get_status_map(assessment.id)
        self.assertEqual(set(statuses), set(expected))
        self.assertFalse(set(changes["removed"]) & set(statuses))

    def test_set_statuses(self) -> None:
        """Test setting several statuses at once."""
        assessment = self.engine.create_assessment("insurance", "Sat-1", INSURED_MISSION)

        records = self.engine.set_statuses(
            assessment.id, {"third_party_liability": "compliant", "launch": "partial"}
        )

        self.assertEqual(len(records), 2)
        self.assertEqual(
            self.engine.store.get_status_map(assessment.id)["launch"],
            ComplianceStatus.PARTIAL,
        )

    def test_status_change_refreshes_cached_score(self) -> None:
        """Test cached results and the summary follow status changes."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        self.engine.evaluate(assessment.id)

        self.engine.set_statuses(
            assessment.id,
            {
                rid: "compliant"
                for rid in self.engine.store.get_status_map(assessment.id)
            },
        )

        cached = self.engine.store.get_assessment(assessment.id)
        self.assertEqual(cached.score, 100)
        self.assertEqual(cached.classification, "essential")
        self.assertEqual(self.engine.summary().regime_scores, {"nis2": 100})
        self.assertEqual(len(self.engine.store.get_snapshots(assessment.id)), 1)

    def test_single_status_refreshes_cached_score(self) -> None:
        """Test a single status change recomputes the cached score."""
        assessment = self.engine.create_assessment("insurance", "Sat-1", INSURED_MISSION)
        self.engine.evaluate(assessment.id)

        self.engine.set_status(assessment.id, "third_party_liability", "compliant")

        cached = self.engine.store.get_assessment(assessment.id)
        live = self.engine.evaluate(assessment.id, save=False)
        self.assertEqual(cached.score, live.score)
        self.assertEqual(cached.score, 60)

    def test_profile_change_refreshes_classification(self) -> None:
        """Test a profile change recomputes the cached classification."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        self.engine.evaluate(assessment.id)

        self.engine.update_profile(
            assessment.id, {"entity_size": "medium"}
        )

        cached = self.engine.store.get_assessment(assessment.id)
        self.assertEqual(cached.classification, "important")
        self.assertEqual(cached.score, 0)


class TestPolicyStatus(EngineTestCase):
    """Tests for insurance policy statuses."""

    def setUp(self) -> None:
        super().setUp()
        self.assessment = self.engine.create_assessment(
            "insurance", "Sat-1", INSURED_MISSION
        )

    def test_policy_status_sets_compliance(self) -> None:
        """Test a policy status implies the requirement status."""
        record = self.engine.set_policy_status(
            self.assessment.id, "third_party_liability", "active"
        )

        self.assertEqual(record.status, ComplianceStatus.COMPLIANT)
        self.assertEqual(record.attributes, {"policy_status": "active"})

    def test_policy_score_in_evaluation(self) -> None:
        """Test recorded policies feed the policy points score."""
        self.engine.set_policy_status(self.assessment.id, "third_party_liability", "active")

        result = self.engine.evaluate(self.assessment.id, save=False)

        self.assertEqual(
            result.attribute_details["policy_statuses"],
            {"third_party_liability": "active"},
        )
        self.assertEqual(result.attribute_details["policy_score"], 50)

    def test_plain_status_clears_policy_status(self) -> None:
        """Test a plain status replaces a recorded policy status."""
        self.engine.set_policy_status(self.assessment.id, "third_party_liability", "bound")

        record = self.engine.set_status(
            self.assessment.id, "third_party_liability", "non_compliant"
        )
        result = self.engine.evaluate(self.assessment.id, save=False)

        self.assertEqual(record.attributes, {})
        self.assertEqual(result.attribute_details["policy_statuses"], {})
        self.assertEqual(result.attribute_details["policy_score"], 0)

    def test_plain_status_keeps_notes(self) -> None:
        """Test clearing the policy status leaves the notes in place."""
        self.engine.set_policy_status(
            self.assessment.id, "launch", "active", notes="Bound with Lloyd's"
        )

        record = self.engine.set_status(self.assessment.id, "launch", "partial")

        self.assertEqual(record.notes, "Bound with Lloyd's")
        self.assertNotIn("policy_status", record.attributes)

    def test_unknown_policy_status(self) -> None:
        """Test an unknown policy status is rejected."""
        with self.assertRaises(ValueError):
            self.engine.set_policy_status(self.assessment.id, "launch", "pending")

    def test_other_regimes_rejected(self) -> None:
        """Test policy statuses only apply to insurance assessments."""
        nis2 = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        requirement_id = next(iter(self.engine.store.get_status_map(nis2.id)))

        with self.assertRaises(ValueError):
            self.engine.set_policy_status(nis2.id, requirement_id, "active")


class TestSummary(EngineTestCase):
    """Tests for the cross-regime summary."""

    def test_summary_of_evaluated_regimes(self) -> None:
        """Test only evaluated regimes contribute to the overall score."""
        assessment = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        self.engine.set_statuses(
            assessment.id,
            {
                rid: "compliant"
                for rid in self.engine.store.get_status_map(assessment.id)
            },
        )
        self.engine.evaluate(assessment.id)
        self.engine.create_assessment("insurance", "Sat-1", INSURED_MISSION)

        summary = self.engine.summary()

        self.assertEqual(summary.overall_score, 100)
        self.assertEqual(summary.grade, "A")
        self.assertEqual(summary.regime_scores, {"nis2": 100})
        self.assertEqual(summary.regime_status["insurance"], "not_started")
        self.assertEqual(len(summary.regime_status), 5)

    def test_summary_without_assessments(self) -> None:
        """Test an empty store reports the empty score."""
        summary = self.engine.summary()

        self.assertEqual(summary.overall_score, 100)
        self.assertEqual(summary.regime_scores, {})

    def test_summary_of_selected_assessments(self) -> None:
        """Test the summary can be limited to given assessments."""
        first = self.engine.create_assessment("nis2", "HQ", LARGE_OPERATOR)
        second = self.engine.create_assessment("nis2", "Branch", LARGE_OPERATOR)
        self.engine.evaluate(first.id)
        self.engine.evaluate(second.id)

        summary = self.engine.summary([first.id])

        self.assertEqual(summary.regime_scores, {"nis2": 0})


if __name__ == "__main__":
    unittest.main()
