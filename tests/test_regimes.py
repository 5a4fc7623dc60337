"""
Tests for the regime modules.

Uses Python's unittest module.
Tests profile validation, classification rules, applicability and the
regime-specific results of each regime.
"""

from __future__ import annotations

import itertools
import unittest
from datetime import UTC, date, datetime

from spacecomply.catalog.loader import CatalogError, get_catalog, redact_requirements
from spacecomply.catalog.models import ComplianceStatus
from spacecomply.regimes import cybersecurity, export_control, insurance, nis2, us_regulatory
from spacecomply.regimes.base import ProfileValidationError
from spacecomply.regimes.nis2 import EntityClassification, NIS2Profile
from spacecomply.regimes.registry import get_regime, list_regimes


class TestRegistry(unittest.TestCase):
    """Tests for regime lookup."""

    def test_all_regimes_registered(self) -> None:
        """Test every regime has a definition."""
        keys = [d.regime.value for d in list_regimes()]

        self.assertEqual(
            keys, ["nis2", "cybersecurity", "export_control", "insurance", "us_regulatory"]
        )

    def test_unknown_regime(self) -> None:
        """Test an unknown regime raises CatalogError."""
        with self.assertRaises(CatalogError):
            get_regime("aviation")

    def test_unknown_profile_keys_ignored(self) -> None:
        """Test unknown answers are dropped rather than rejected."""
        profile = get_regime("nis2").build_profile(
            {"entity_size": "large", "favourite_colour": "blue"}
        )

        self.assertEqual(profile.entity_size, "large")

    def test_profile_must_be_mapping(self) -> None:
        """Test a non-mapping profile document is rejected."""
        with self.assertRaises(ProfileValidationError):
            get_regime("nis2").build_profile(["large"])


class TestProfileValues(unittest.TestCase):
    """Tests for converting answer values to profile field types."""

    def test_null_takes_default(self) -> None:
        """Test a null value for a non-optional field takes its default."""
        profile = insurance.InsuranceProfile.from_dict(
            {"operator_type": "spacecraft", "satellite_count": None, "has_adr": None}
        )

        self.assertEqual(profile.satellite_count, 1)
        self.assertFalse(profile.has_adr)
        self.assertTrue(insurance.applicable_requirements(profile))

    def test_null_kept_for_optional_field(self) -> None:
        """Test a null value stays null where the field allows it."""
        profile = NIS2Profile.from_dict({"entity_size": "large", "member_state_count": None})

        self.assertIsNone(profile.member_state_count)

    def test_numeric_strings_converted(self) -> None:
        """Test numeric strings become numbers."""
        profile = NIS2Profile.from_dict({"entity_size": "large", "member_state_count": "3"})

        self.assertEqual(profile.member_state_count, 3)
        details = nis2.details(profile, nis2.applicable_requirements(profile))
        self.assertIn("authority", details["supervisory_authority"])

        mission = insurance.InsuranceProfile.from_dict(
            {"operator_type": "spacecraft", "satellite_value_eur": "2.5e7"}
        )
        self.assertEqual(mission.satellite_value_eur, 25_000_000.0)

    def test_boolean_strings_converted(self) -> None:
        """Test yes/no answers become booleans."""
        profile = NIS2Profile.from_dict(
            {"entity_size": "small", "operates_ground_infra": "yes", "has_iso27001": "false"}
        )

        self.assertIs(profile.operates_ground_infra, True)
        self.assertIs(profile.has_iso27001, False)

    def test_single_value_for_list_field(self) -> None:
        """Test a single answer for a list field becomes a one-item list."""
        profile = export_control.ExportControlProfile.from_dict(
            {"company_types": "component_supplier"}
        )

        self.assertEqual(profile.company_types, ["component_supplier"])

    def test_invalid_values_rejected(self) -> None:
        """Test values that cannot be converted raise ProfileValidationError."""
        with self.assertRaises(ProfileValidationError):
            NIS2Profile.from_dict({"entity_size": "large", "member_state_count": "several"})
        with self.assertRaises(ProfileValidationError):
            NIS2Profile.from_dict({"entity_size": "large", "has_iso27001": "maybe"})
        with self.assertRaises(ProfileValidationError):
            insurance.InsuranceProfile.from_dict({"operator_type": ["spacecraft"]})

    def test_yaml_dates_become_iso_strings(self) -> None:
        """Test a date parsed from YAML is stored as an ISO string."""
        profile = us_regulatory.USOperatorProfile.from_dict(
            {
                "operator_types": ["satellite_operator"],
                "activity_types": ["broadband"],
                "launch_date": date(2024, 6, 1),
            }
        )

        self.assertEqual(profile.launch_date, "2024-06-01")

    def test_invalid_launch_date_rejected(self) -> None:
        """Test an unparseable launch date is rejected."""
        with self.assertRaises(ProfileValidationError):
            us_regulatory.USOperatorProfile.from_dict(
                {
                    "operator_types": ["satellite_operator"],
                    "activity_types": ["broadband"],
                    "launch_date": "next spring",
                }
            )


class TestNIS2(unittest.TestCase):
    """Tests for NIS2 classification and applicability."""

    def classify(self, **answers: object) -> EntityClassification:
        return nis2.classify_entity(NIS2Profile(**answers)).result

    def test_classification_rules(self) -> None:
        """Test each rule of the classification table."""
        self.assertEqual(
            self.classify(entity_size="large", sector="energy"),
            EntityClassification.OUT_OF_SCOPE,
        )
        self.assertEqual(
            self.classify(entity_size="large", is_eu_established=False),
            EntityClassification.OUT_OF_SCOPE,
        )
        self.assertEqual(
            self.classify(entity_size="micro", operates_sat_comms=True),
            EntityClassification.IMPORTANT,
        )
        self.assertEqual(self.classify(entity_size="micro"), EntityClassification.OUT_OF_SCOPE)
        self.assertEqual(self.classify(entity_size="large"), EntityClassification.ESSENTIAL)
        self.assertEqual(
            self.classify(entity_size="medium", operates_ground_infra=True),
            EntityClassification.ESSENTIAL,
        )
        self.assertEqual(self.classify(entity_size="medium"), EntityClassification.IMPORTANT)
        self.assertEqual(
            self.classify(entity_size="small", provides_launch_services=True),
            EntityClassification.IMPORTANT,
        )
        self.assertEqual(self.classify(entity_size="small"), EntityClassification.OUT_OF_SCOPE)

    def test_undetermined_without_size(self) -> None:
        """Test a profile without a size falls back to out of scope."""
        outcome = nis2.classify_entity(NIS2Profile(sector="space"))

        self.assertEqual(outcome.result, EntityClassification.OUT_OF_SCOPE)
        self.assertTrue(outcome.matched_default)
        self.assertIn("Unable to determine", outcome.reason)

    def test_classification_never_raises(self) -> None:
        """Test malformed answers still classify."""
        outcome = nis2.classify_entity(NIS2Profile(entity_size=42, sector=["space"]))

        self.assertIsInstance(outcome.result, EntityClassification)

    def test_tier_monotone_in_size(self) -> None:
        """Test a larger entity never gets a lower tier."""
        for ground, satcom, launch in itertools.product([False, True], repeat=3):
            tiers = [
                nis2.TIER_ORDER[
                    self.classify(
                        entity_size=size,
                        operates_ground_infra=ground,
                        operates_sat_comms=satcom,
                        provides_launch_services=launch,
                    )
                ]
                for size in nis2.ENTITY_SIZES
            ]
            self.assertEqual(tiers, sorted(tiers), (ground, satcom, launch))

    def test_out_of_scope_has_no_requirements(self) -> None:
        """Test out-of-scope entities get no requirements."""
        profile = NIS2Profile(entity_size="small", sector="space")

        self.assertEqual(nis2.applicable_requirements(profile), [])

    def test_essential_requirements(self) -> None:
        """Test an essential entity only gets requirements for its tier."""
        profile = NIS2Profile(entity_size="large", sector="space")

        requirements = nis2.applicable_requirements(profile)

        self.assertGreater(len(requirements), 0)
        for requirement in requirements:
            allowed = requirement.applicability.get("entity_classifications")
            if allowed:
                self.assertIn("essential", allowed)

    def test_applicability_in_catalog_order(self) -> None:
        """Test applicable requirements keep catalog order."""
        profile = NIS2Profile(entity_size="medium", operates_ground_infra=True)
        ids = [r.id for r in nis2.applicable_requirements(profile)]
        catalog_ids = [r.id for r in get_catalog("nis2")]

        self.assertEqual(ids, [rid for rid in catalog_ids if rid in set(ids)])

    def test_proportionality(self) -> None:
        """Test proportionate implementation eligibility."""
        self.assertFalse(nis2.is_simplified(NIS2Profile(entity_size="large")))
        self.assertFalse(
            nis2.is_simplified(NIS2Profile(entity_size="medium", operates_sat_comms=True))
        )
        self.assertTrue(nis2.is_simplified(NIS2Profile(entity_size="medium")))
        self.assertTrue(nis2.is_simplified(NIS2Profile(entity_size="small")))
        self.assertFalse(nis2.is_simplified(NIS2Profile()))

    def test_details(self) -> None:
        """Test regime details for an in-scope entity."""
        profile = NIS2Profile(entity_size="large", member_state_count=3)
        requirements = nis2.applicable_requirements(profile)

        details = nis2.details(profile, requirements)

        self.assertEqual(details["classification"]["result"], "essential")
        self.assertTrue(details["registration_required"])
        self.assertEqual(details["total_requirements"], 51)
        self.assertEqual(details["applicable_requirements"], len(requirements))
        self.assertIn("main establishment", details["supervisory_authority"]["note"])
        self.assertGreater(details["space_act_overlap"]["count"], 0)

    def test_details_out_of_scope(self) -> None:
        """Test out-of-scope entities have no registration duty."""
        profile = NIS2Profile(entity_size="micro")

        details = nis2.details(profile, [])

        self.assertFalse(details["registration_required"])
        self.assertEqual(details["space_act_overlap"]["count"], 0)
        self.assertEqual(details["penalties"]["applicable"], "N/A (out of scope)")

    def test_suggest_statuses(self) -> None:
        """Test existing capabilities suggest partial statuses."""
        profile = NIS2Profile(entity_size="large", has_existing_csirt=True)
        requirements = nis2.applicable_requirements(profile)

        suggestions = nis2.suggest_statuses(profile, requirements)

        self.assertEqual(set(suggestions), {r.id for r in requirements})
        for requirement in requirements:
            suggestion = suggestions[requirement.id]
            if requirement.category in ("incident_handling", "reporting"):
                self.assertEqual(suggestion["status"], ComplianceStatus.PARTIAL.value)
            if requirement.severity.value == "critical":
                self.assertIn("critical_severity", suggestion["priority_flags"])

    def test_suggestions_without_capabilities(self) -> None:
        """Test nothing is suggested as partial without existing capabilities."""
        profile = NIS2Profile(entity_size="large")
        requirements = nis2.applicable_requirements(profile)

        suggestions = nis2.suggest_statuses(profile, requirements)

        self.assertTrue(
            all(s["status"] == "not_assessed" for s in suggestions.values())
        )

    def test_redact_requirements(self) -> None:
        """Test client records keep only the public fields."""
        requirements = nis2.applicable_requirements(NIS2Profile(entity_size="large"))

        redacted = redact_requirements(requirements)

        self.assertEqual(len(redacted), len(requirements))
        self.assertEqual(
            set(redacted[0]), {"id", "reference", "category", "title", "severity"}
        )
        self.assertEqual(redacted[0]["id"], requirements[0].id)


class TestCybersecurity(unittest.TestCase):
    """Tests for the EU Space Act cybersecurity regime."""

    def test_simplified_eligibility(self) -> None:
        """Test the simplified regime conditions."""
        Profile = cybersecurity.CybersecurityProfile

        self.assertTrue(cybersecurity.is_simplified(Profile(organization_size="small")))
        self.assertTrue(cybersecurity.is_simplified(Profile(organization_size="micro")))
        self.assertFalse(cybersecurity.is_simplified(Profile(organization_size="medium")))
        self.assertFalse(cybersecurity.is_simplified(Profile()))
        self.assertFalse(
            cybersecurity.is_simplified(
                Profile(organization_size="small", space_segment_complexity="large_constellation")
            )
        )
        self.assertFalse(
            cybersecurity.is_simplified(Profile(organization_size="small", handles_gov_data=True))
        )
        self.assertFalse(
            cybersecurity.is_simplified(
                Profile(organization_size="small", processes_personal_data=True, satellite_count=3)
            )
        )
        self.assertTrue(
            cybersecurity.is_simplified(
                Profile(organization_size="small", processes_personal_data=True, satellite_count=1)
            )
        )

    def test_classify(self) -> None:
        """Test the classification names the regime that applies."""
        simplified = cybersecurity.classify(
            cybersecurity.CybersecurityProfile(organization_size="micro")
        )
        standard = cybersecurity.classify(
            cybersecurity.CybersecurityProfile(organization_size="large")
        )

        self.assertEqual(simplified.result, "simplified")
        self.assertEqual(standard.result, "standard")
        self.assertIn("Only micro and small", standard.reason)

    def test_simplified_drops_flagged_requirements(self) -> None:
        """Test simplified operators do not get the full-regime requirements."""
        simplified = cybersecurity.CybersecurityProfile(organization_size="small")
        standard = cybersecurity.CybersecurityProfile(
            organization_size="small", handles_gov_data=True
        )

        simplified_ids = {r.id for r in cybersecurity.applicable_requirements(simplified)}
        standard_ids = {r.id for r in cybersecurity.applicable_requirements(standard)}

        self.assertNotIn("risk_mgmt_framework", simplified_ids)
        self.assertIn("risk_mgmt_framework", standard_ids)
        self.assertTrue(simplified_ids < standard_ids)

    def test_size_filter(self) -> None:
        """Test size-restricted requirements."""
        micro = cybersecurity.CybersecurityProfile(organization_size="micro")
        ids = {r.id for r in cybersecurity.applicable_requirements(micro)}

        self.assertIn("sec_policy", ids)
        self.assertNotIn("network_security", ids)
        self.assertNotIn("threat_intelligence", ids)

    def test_implementation_time_estimate(self) -> None:
        """Test remaining effort counts partial requirements at half."""
        requirements = [
            r for r in get_catalog("cybersecurity") if r.implementation_weeks
        ][:3]
        weeks = [r.implementation_weeks for r in requirements]
        statuses = {
            requirements[0].id: "compliant",
            requirements[1].id: "partial",
        }

        total = cybersecurity.implementation_time_estimate(requirements, statuses)

        self.assertEqual(total, -(-weeks[1] // 2) + weeks[2])

    def test_details(self) -> None:
        """Test regime details."""
        profile = cybersecurity.CybersecurityProfile(organization_size="small")
        requirements = cybersecurity.applicable_requirements(profile)

        details = cybersecurity.details(profile, requirements, {})

        self.assertTrue(details["simplified_regime"]["result"])
        self.assertEqual(details["total_requirements"], 24)
        self.assertEqual(details["applicable_requirements"], len(requirements))
        self.assertIn("remaining_weeks", details)


class TestExportControl(unittest.TestCase):
    """Tests for ITAR/EAR export control."""

    def profile(self, **answers: object) -> export_control.ExportControlProfile:
        answers.setdefault("company_types", ["spacecraft_manufacturer"])
        return export_control.ExportControlProfile.from_dict(answers)

    def test_company_types_required(self) -> None:
        """Test a profile without company types is rejected."""
        with self.assertRaises(ProfileValidationError):
            export_control.ExportControlProfile.from_dict({"has_itar_items": True})

    def test_no_controlled_items(self) -> None:
        """Test only screening applies without controlled items."""
        ids = [r.id for r in export_control.applicable_requirements(self.profile())]

        self.assertEqual(ids, ["ITAR-SCREEN-001"])

    def test_itar_items(self) -> None:
        """Test ITAR items bring in ITAR and EAR obligations."""
        ids = {
            r.id
            for r in export_control.applicable_requirements(self.profile(has_itar_items=True))
        }

        self.assertIn("ITAR-REG-001", ids)
        self.assertIn("EAR-SCREEN-001", ids)
        self.assertIn("JURIS-001", ids)

    def test_company_type_filter(self) -> None:
        """Test requirements restricted to other company types are excluded."""
        profile = self.profile(company_types=["satellite_operator"], has_itar_items=True)
        ids = {r.id for r in export_control.applicable_requirements(profile)}

        self.assertNotIn("ITAR-REG-001", ids)
        self.assertIn("ITAR-SCREEN-001", ids)

    def test_ear_only(self) -> None:
        """Test EAR items alone do not bring in ITAR registration."""
        ids = {
            r.id
            for r in export_control.applicable_requirements(self.profile(has_ear_items=True))
        }

        self.assertIn("EAR-SCREEN-001", ids)
        self.assertNotIn("ITAR-REG-001", ids)

    def test_jurisdiction(self) -> None:
        """Test jurisdiction from the profile and per item."""
        Jurisdiction = export_control.Jurisdiction

        self.assertEqual(
            export_control.jurisdiction_from_profile(
                self.profile(has_itar_items=True, has_ear_items=True)
            ),
            Jurisdiction.ITAR_WITH_EAR_PARTS,
        )
        self.assertEqual(
            export_control.jurisdiction_from_profile(self.profile()), Jurisdiction.EAR99
        )
        self.assertEqual(
            export_control.determine_jurisdiction(
                export_control.ItemClassification(on_usml=True)
            ).result,
            Jurisdiction.ITAR_ONLY,
        )
        self.assertEqual(
            export_control.determine_jurisdiction(export_control.ItemClassification()).result,
            Jurisdiction.DUAL_USE,
        )

    def test_overall_risk(self) -> None:
        """Test the overall risk rules."""
        self.assertEqual(
            export_control.overall_risk(
                self.profile(has_itar_items=True, has_foreign_nationals=True, registered_with_ddtc=True)
            ).result,
            "critical",
        )
        self.assertEqual(
            export_control.overall_risk(
                self.profile(
                    has_itar_items=True,
                    has_foreign_nationals=True,
                    has_tcp=True,
                    registered_with_ddtc=True,
                )
            ).result,
            "high",
        )
        self.assertEqual(export_control.overall_risk(self.profile()).result, "low")

    def test_regulation_risk(self) -> None:
        """Test ITAR risk bands are stricter than EAR ones."""
        self.assertEqual(export_control.regulation_risk("ITAR", 45, 0), "critical")
        self.assertEqual(export_control.regulation_risk("EAR", 45, 0), "high")
        self.assertEqual(export_control.regulation_risk("ITAR", 82, 0), "medium")
        self.assertEqual(export_control.regulation_risk("EAR", 82, 0), "low")
        self.assertEqual(export_control.regulation_risk("ITAR", 95, 6), "critical")

    def test_format_penalty(self) -> None:
        """Test penalty formatting."""
        self.assertEqual(export_control.format_penalty(1_227_364), "$1.2M")
        self.assertEqual(export_control.format_penalty(353_534), "$353,534")

    def test_gap_extras(self) -> None:
        """Test export gaps carry regulation and penalty information."""
        requirement = get_catalog("export_control").get("ITAR-REG-001")

        extras = export_control.gap_extras(requirement, None)

        self.assertEqual(extras["regulation"], "ITAR")
        self.assertIn("$1.2M", extras["potential_penalty"])

    def test_deemed_exports(self) -> None:
        """Test deemed export exposure from foreign nationals."""
        profile = self.profile(
            has_itar_items=True,
            has_ear_items=True,
            has_foreign_nationals=True,
            foreign_national_countries=["CN", "FR"],
        )

        result = export_control.deemed_export_assessment(profile)

        self.assertTrue(result["tcp_required"])
        self.assertEqual(len(result["licenses_required"]), 3)
        self.assertIn(
            "Implement Technology Control Plan to protect ITAR technical data",
            result["recommendations"],
        )

    def test_program_recommendations(self) -> None:
        """Test unregistered ITAR handling is the first recommendation."""
        profile = self.profile(has_itar_items=True)
        requirements = export_control.applicable_requirements(profile)

        items = export_control.program_recommendations(profile, requirements, {}, 0)

        self.assertEqual(items[0]["category"], "registration")
        self.assertEqual([i["priority"] for i in items], list(range(1, len(items) + 1)))


class TestInsurance(unittest.TestCase):
    """Tests for space insurance."""

    def profile(self, **answers: object) -> insurance.InsuranceProfile:
        answers.setdefault("operator_type", "spacecraft")
        answers.setdefault("orbit_regime", "LEO")
        return insurance.InsuranceProfile(**answers)

    def test_applicable_coverages(self) -> None:
        """Test coverages follow the mission profile."""
        small = [r.id for r in insurance.applicable_requirements(self.profile())]
        self.assertEqual(small, ["third_party_liability", "launch"])

        large = {
            r.id
            for r in insurance.applicable_requirements(
                self.profile(
                    orbit_regime="GEO",
                    satellite_value_eur=50_000_000,
                    mission_duration_years=15,
                    has_flight_heritage=True,
                    satellite_count=8,
                )
            )
        }
        self.assertEqual(len(large), 7)

    def test_launch_site_operator(self) -> None:
        """Test launch site operators need liability cover only."""
        ids = [
            r.id
            for r in insurance.applicable_requirements(
                self.profile(operator_type="launch_site")
            )
        ]

        self.assertEqual(ids, ["third_party_liability"])

    def test_mission_risk(self) -> None:
        """Test the mission risk points model."""
        profile = self.profile()

        self.assertEqual(insurance.mission_risk_points(profile), 7)
        self.assertEqual(insurance.mission_risk(profile).result, "high")

        proven = self.profile(
            orbit_regime="GEO", has_maneuverability=True, has_flight_heritage=True
        )
        self.assertEqual(insurance.mission_risk(proven).result, "low")

    def test_tpl_requirement(self) -> None:
        """Test national liability minimums."""
        self.assertEqual(
            insurance.calculate_tpl_requirement(self.profile(primary_jurisdiction="FR"))["amount"],
            60_000_000,
        )
        italy = insurance.calculate_tpl_requirement(
            self.profile(primary_jurisdiction="IT", company_size="medium")
        )
        self.assertEqual(italy["amount"], 50_000_000)
        self.assertEqual(italy["basis"], "size_based")
        germany = insurance.calculate_tpl_requirement(
            self.profile(primary_jurisdiction="DE", annual_revenue_eur=100_000_000)
        )
        self.assertEqual(germany["amount"], 10_000_000)
        unknown = insurance.calculate_tpl_requirement(self.profile(primary_jurisdiction="XX"))
        self.assertEqual(unknown["basis"], "default")
        self.assertEqual(unknown["amount"], 60_000_000)

    def test_premium_estimate(self) -> None:
        """Test premium ranges are ordered and summed."""
        profile = self.profile(satellite_value_eur=2_000_000, total_mission_value_eur=3_000_000)
        requirements = insurance.applicable_requirements(profile)

        estimate = insurance.estimate_premium_range(profile, requirements)

        self.assertEqual(set(estimate["breakdown"]), {"third_party_liability", "launch"})
        for item in estimate["breakdown"].values():
            self.assertLessEqual(item["min"], item["max"])
        self.assertEqual(
            estimate["total"]["min"],
            sum(p["min"] for p in estimate["breakdown"].values()),
        )
        self.assertIn("Unproven design (+50%)", estimate["breakdown"]["launch"]["factors"])

    def test_policy_status_mapping(self) -> None:
        """Test policy statuses map onto requirement statuses."""
        self.assertEqual(
            insurance.policy_status_to_compliance("active"), ComplianceStatus.COMPLIANT
        )
        self.assertEqual(
            insurance.policy_status_to_compliance("quote_received"), ComplianceStatus.PARTIAL
        )
        self.assertEqual(
            insurance.policy_status_to_compliance("expired"), ComplianceStatus.NON_COMPLIANT
        )
        self.assertEqual(
            insurance.policy_status_to_compliance("not_required"),
            ComplianceStatus.NOT_APPLICABLE,
        )
        with self.assertRaises(ValueError):
            insurance.policy_status_to_compliance("lapsed")

    def test_policy_score(self) -> None:
        """Test the points score over policies."""
        requirements = insurance.applicable_requirements(self.profile())

        score = insurance.policy_score(
            requirements, {"third_party_liability": "active", "launch": "quote_requested"}
        )
        self.assertEqual(score, 60)
        self.assertEqual(insurance.policy_score(requirements, {}), 0)
        self.assertEqual(
            insurance.policy_score(
                requirements,
                {"third_party_liability": "not_required", "launch": "not_required"},
            ),
            100,
        )

    def test_coverage_recommendations(self) -> None:
        """Test recommendation levels."""
        recommendations = insurance.coverage_recommendations(
            self.profile(total_mission_value_eur=20_000_000, mission_duration_years=5)
        )
        levels = {r["type"]: r["level"] for r in recommendations}

        self.assertEqual(levels["third_party_liability"], "mandatory")
        self.assertEqual(levels["launch"], "strongly_recommended")
        self.assertEqual(levels["in_orbit"], "strongly_recommended")


class TestUSRegulatory(unittest.TestCase):
    """Tests for US federal space regulation."""

    def profile(self, **answers: object) -> us_regulatory.USOperatorProfile:
        answers.setdefault("operator_types", ["satellite_operator"])
        answers.setdefault("activity_types", ["satellite_communications"])
        return us_regulatory.USOperatorProfile.from_dict(answers)

    def test_required_fields(self) -> None:
        """Test operator and activity types are mandatory."""
        with self.assertRaises(ProfileValidationError):
            us_regulatory.USOperatorProfile.from_dict({"activity_types": ["broadband"]})
        with self.assertRaises(ProfileValidationError):
            us_regulatory.USOperatorProfile.from_dict(
                {"operator_types": ["launch_operator"]}
            )

    def test_agencies_derived(self) -> None:
        """Test agencies are derived from operator types when not given."""
        self.assertEqual(self.profile().agencies, ["FCC", "NOAA"])
        self.assertEqual(
            self.profile(operator_types=["launch_operator"], activity_types=["commercial_launch"]).agencies,
            ["FAA"],
        )
        self.assertEqual(self.profile(agencies=["FCC"]).agencies, ["FCC"])

    def test_ngso_default(self) -> None:
        """Test non-geostationary defaults from the orbit."""
        self.assertTrue(self.profile(orbit_regime="LEO").is_ngso)
        self.assertFalse(self.profile(orbit_regime="GEO").is_ngso)

    def test_leo_debris_rule(self) -> None:
        """Test the 5-year rule only applies in LEO."""
        leo = {r.id for r in us_regulatory.applicable_requirements(self.profile(orbit_regime="LEO"))}
        geo = {r.id for r in us_regulatory.applicable_requirements(self.profile(orbit_regime="GEO"))}

        self.assertIn("fcc-debris-5year-rule", leo)
        self.assertNotIn("fcc-debris-5year-rule", geo)
        self.assertNotIn("fcc-part25-ngso-processing", geo)

    def test_launch_operator(self) -> None:
        """Test launch operators get FAA licensing but no FCC Part 25 items."""
        requirements = us_regulatory.applicable_requirements(
            self.profile(operator_types=["launch_operator"], activity_types=["commercial_launch"])
        )
        ids = {r.id for r in requirements}
        agencies = {r.extra.get("agency") for r in requirements}

        self.assertIn("faa-launch-license", ids)
        self.assertIn("FAA", agencies)
        self.assertIn("orbits-uniform-standards", ids)
        self.assertFalse([rid for rid in ids if rid.startswith("fcc-part25-")])

    def test_required_licenses(self) -> None:
        """Test license lists by operator type."""
        self.assertEqual(
            us_regulatory.required_licenses(self.profile()),
            ["fcc_space_station", "fcc_spectrum"],
        )
        self.assertIn(
            "noaa_remote_sensing",
            us_regulatory.required_licenses(self.profile(provides_remote_sensing=True)),
        )

    def test_deorbit_deadline(self) -> None:
        """Test the post-mission disposal deadline."""
        now = datetime(2026, 1, 1, tzinfo=UTC)

        leo = us_regulatory.calculate_deorbit_deadline(date(2020, 1, 1), 5, True, now=now)
        self.assertEqual(leo["end_of_mission_date"], "2025-01-01")
        self.assertEqual(leo["disposal_deadline"], "2030-01-01")
        self.assertTrue(leo["compliant"])

        geo = us_regulatory.calculate_deorbit_deadline(date(2020, 1, 1), 5, False, now=now)
        self.assertEqual(geo["disposal_deadline"], "2050-01-01")

        past = us_regulatory.calculate_deorbit_deadline(date(1990, 1, 1), 1, True, now=now)
        self.assertFalse(past["compliant"])

    def test_deorbit_compliance(self) -> None:
        """Test planned disposal against the limit."""
        late = us_regulatory.check_deorbit_compliance(
            self.profile(orbit_regime="LEO", planned_disposal_years=10)
        )
        self.assertFalse(late["compliant"])
        self.assertEqual(late["required_disposal_years"], 5)

        dated = us_regulatory.check_deorbit_compliance(
            self.profile(
                orbit_regime="GEO",
                planned_disposal_years=10,
                launch_date="2024-06-01",
                mission_duration_years=15,
            )
        )
        self.assertTrue(dated["compliant"])
        self.assertIn("deadline", dated)


if __name__ == "__main__":
    unittest.main()
