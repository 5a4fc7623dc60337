"""
Space insurance against national space-law requirements.

Each coverage type (third-party liability, launch, in-orbit, ...) is a
catalog requirement. Which coverages apply follows from the mission risk
profile: the operator type, values at stake, mission duration, orbit and
flight heritage.

Policies progress through a lifecycle (quote requested, bound, active,
expired, ...). A policy status maps onto a requirement status for the
weighted score, and is also scored directly by points.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from spacecomply.catalog.loader import get_catalog, load_data_file
from spacecomply.catalog.models import Catalog, ComplianceStatus, Regime, Requirement
from spacecomply.core.applicability import filter_applicable
from spacecomply.core.rules import RuleOutcome, evaluate_rules, threshold_rules
from spacecomply.regimes.base import Profile, RegimeDefinition
from spacecomply.scoring.maturity_calculator import ScoreBreakdown, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_TPL_EUR = 60_000_000
TURNOVER_TPL_CAP_EUR = 50_000_000


class PolicyStatus(str, Enum):
    """Lifecycle status of an insurance policy."""

    NOT_STARTED = "not_started"
    QUOTE_REQUESTED = "quote_requested"
    QUOTE_RECEIVED = "quote_received"
    UNDER_REVIEW = "under_review"
    BOUND = "bound"
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    NOT_REQUIRED = "not_required"


# None means the policy is left out of the points score
POLICY_POINTS: dict[PolicyStatus, int | None] = {
    PolicyStatus.NOT_STARTED: 0,
    PolicyStatus.QUOTE_REQUESTED: 20,
    PolicyStatus.QUOTE_RECEIVED: 40,
    PolicyStatus.UNDER_REVIEW: 60,
    PolicyStatus.BOUND: 100,
    PolicyStatus.ACTIVE: 100,
    PolicyStatus.EXPIRING_SOON: 80,
    PolicyStatus.EXPIRED: 0,
    PolicyStatus.NOT_REQUIRED: None,
}

POLICY_TO_COMPLIANCE = {
    PolicyStatus.BOUND: ComplianceStatus.COMPLIANT,
    PolicyStatus.ACTIVE: ComplianceStatus.COMPLIANT,
    PolicyStatus.EXPIRING_SOON: ComplianceStatus.COMPLIANT,
    PolicyStatus.QUOTE_RECEIVED: ComplianceStatus.PARTIAL,
    PolicyStatus.UNDER_REVIEW: ComplianceStatus.PARTIAL,
    PolicyStatus.QUOTE_REQUESTED: ComplianceStatus.PARTIAL,
    PolicyStatus.EXPIRED: ComplianceStatus.NON_COMPLIANT,
    PolicyStatus.NOT_STARTED: ComplianceStatus.NON_COMPLIANT,
    PolicyStatus.NOT_REQUIRED: ComplianceStatus.NOT_APPLICABLE,
}

RISK_BANDS = [(3, "low"), (6, "medium"), (10, "high")]

RISK_MULTIPLIERS = {
    "low": (0.8, "Low risk profile (-20%)"),
    "medium": (1.0, "Standard risk profile"),
    "high": (1.3, "High risk profile (+30%)"),
    "very_high": (1.6, "Very high risk profile (+60%)"),
}


@dataclass
class InsuranceProfile(Profile):
    """
    Mission risk profile used to size insurance needs.

    Attributes:
        primary_jurisdiction: Country code of the licensing state (e.g. "FR").
        operator_type: spacecraft, launch or launch_site.
        company_size: micro, small, medium or large.
        orbit_regime: LEO, MEO, GEO, HEO, cislunar or deep_space.
    """

    primary_jurisdiction: str | None = None
    operator_type: str | None = None
    company_size: str | None = None
    orbit_regime: str | None = None
    satellite_count: int = 1
    satellite_value_eur: float = 0
    total_mission_value_eur: float = 0
    is_constellation_operator: bool = False
    has_maneuverability: bool = False
    mission_duration_years: float = 0
    has_flight_heritage: bool = False
    has_adr: bool = False
    has_propulsion: bool = False
    has_hazardous_materials: bool = False
    cross_border_ops: bool = False
    annual_revenue_eur: float | None = None

    def facets(self) -> dict[str, Any]:
        return {
            "operator_types": self.operator_type,
            "orbit_regimes": self.orbit_regime,
        }

    def flags(self) -> set[str]:
        flags = set()
        if self.operator_type in ("spacecraft", "launch"):
            flags.add("uses_launch_services")
        if self.satellite_value_eur > 5_000_000 or self.operator_type == "launch":
            flags.add("pre_launch_exposure")
        if self.mission_duration_years > 3 or self.total_mission_value_eur > 10_000_000:
            flags.add("in_orbit_exposure")
        if self.is_constellation_operator or self.satellite_count > 5:
            flags.add("complex_supply_chain")
        if self.has_flight_heritage and self.mission_duration_years > 10:
            flags.add("long_heritage_mission")
        return flags


def applicable_requirements(
    profile: InsuranceProfile, requirements: Catalog | None = None
) -> list[Requirement]:
    catalog = requirements if requirements is not None else get_catalog(Regime.INSURANCE)
    return filter_applicable(catalog, profile)


# ============================================================================
# MISSION RISK
# ============================================================================


def mission_risk_points(profile: InsuranceProfile) -> int:
    points = 0
    if profile.orbit_regime == "LEO":
        points += 2
    elif profile.orbit_regime == "GEO":
        points += 1
    elif profile.orbit_regime in ("cislunar", "deep_space"):
        points += 4
    if profile.is_constellation_operator:
        points += 2
    if profile.satellite_count > 100:
        points += 2
    if not profile.has_maneuverability:
        points += 2
    if not profile.has_flight_heritage:
        points += 3
    if profile.has_hazardous_materials:
        points += 3
    if profile.has_adr:
        points += 2
    if profile.cross_border_ops:
        points += 1
    return points


def mission_risk(profile: InsuranceProfile) -> RuleOutcome:
    """Mission risk band from the points model."""
    points = mission_risk_points(profile)
    outcome = evaluate_rules(
        threshold_rules(RISK_BANDS),
        points,
        RuleOutcome("very_high", "Above all thresholds"),
    )
    return RuleOutcome(
        outcome.result,
        f"{points} mission risk points",
        "Insurance underwriting risk model",
        outcome.rule_index,
    )


def risk(
    profile: InsuranceProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any],
    breakdown: ScoreBreakdown,
) -> RuleOutcome:
    return mission_risk(profile)


# ============================================================================
# THIRD-PARTY LIABILITY
# ============================================================================


def national_requirements() -> dict[str, dict[str, Any]]:
    data = load_data_file("insurance_jurisdictions") or {}
    return data.get("jurisdictions", {})


def calculate_tpl_requirement(profile: InsuranceProfile) -> dict[str, Any]:
    """
    Minimum third-party liability coverage in the licensing state.

    Size tables override the fixed minimum. A turnover formula, where the
    law has one, takes 10% of annual revenue capped at €50M.
    """
    national = national_requirements().get(profile.primary_jurisdiction or "")
    if not national:
        return {
            "amount": DEFAULT_TPL_EUR,
            "currency": "EUR",
            "basis": "default",
            "explanation": "Default EU requirement - jurisdiction-specific rules unknown",
            "notes": ["Contact national authority for specific requirements"],
        }

    amount = national.get("minimum_tpl") or DEFAULT_TPL_EUR
    notes = []

    by_size = national.get("tpl_by_size") or {}
    if national.get("variable_by_size") and by_size.get(profile.company_size):
        amount = by_size[profile.company_size]
        notes.append(f"Coverage adjusted for {profile.company_size} enterprises")

    formula = national.get("formula") or ""
    if "turnover" in formula and profile.annual_revenue_eur:
        amount = min(profile.annual_revenue_eur * 0.1, TURNOVER_TPL_CAP_EUR)
        notes.append("Based on 10% of annual turnover")

    if national.get("government_guarantee"):
        notes.append(f"{national['country']} provides state indemnification above liability cap")
    if national.get("must_register_policy") and national.get("registration_authority"):
        notes.append(f"Policy must be registered with {national['registration_authority']}")

    if national.get("variable_by_size"):
        basis = "size_based"
    elif national.get("variable_by_risk"):
        basis = "risk_based"
    else:
        basis = "fixed"

    return {
        "amount": amount,
        "currency": "EUR",
        "basis": basis,
        "explanation": formula or f"Fixed minimum: €{amount:,.0f}",
        "notes": notes,
    }


# ============================================================================
# PREMIUMS
# ============================================================================


def _coverage_amount(requirement: Requirement, profile: InsuranceProfile) -> float:
    fleet_value = profile.satellite_value_eur * profile.satellite_count
    if requirement.id == "third_party_liability":
        return calculate_tpl_requirement(profile)["amount"]
    if requirement.id in ("launch", "in_orbit", "pre_launch"):
        return profile.total_mission_value_eur or fleet_value
    return fleet_value * 0.5


def estimate_premium(
    requirement: Requirement,
    profile: InsuranceProfile,
    coverage_eur: float | None = None,
) -> dict[str, Any]:
    """
    Estimate the annual premium for one coverage type as a ±20% range.

    Args:
        requirement: Coverage type from the insurance catalog.
        profile: Mission risk profile.
        coverage_eur: Insured amount; derived from the profile if omitted.
    """
    if coverage_eur is None:
        coverage_eur = _coverage_amount(requirement, profile)

    multiplier, label = RISK_MULTIPLIERS[mission_risk(profile).result]
    percent = float(requirement.extra.get("typical_premium_percent") or 0) * multiplier
    factors = [label]

    if requirement.id == "launch" and not profile.has_flight_heritage:
        percent *= 1.5
        factors.append("Unproven design (+50%)")
    if requirement.id == "in_orbit" and profile.orbit_regime == "LEO":
        percent *= 1.2
        factors.append("LEO debris environment (+20%)")
    if profile.is_constellation_operator and profile.satellite_count > 10:
        percent *= 0.9
        factors.append("Fleet volume discount (-10%)")

    return {
        "coverage_eur": coverage_eur,
        "min": round_half_up(coverage_eur * percent / 100 * 0.8),
        "max": round_half_up(coverage_eur * percent / 100 * 1.2),
        "factors": factors,
    }


def estimate_premium_range(
    profile: InsuranceProfile, requirements: list[Requirement]
) -> dict[str, Any]:
    breakdown = {r.id: estimate_premium(r, profile) for r in requirements}
    return {
        "total": {
            "min": sum(p["min"] for p in breakdown.values()),
            "max": sum(p["max"] for p in breakdown.values()),
        },
        "breakdown": breakdown,
    }


def coverage_recommendations(profile: InsuranceProfile) -> list[dict[str, str]]:
    """How strongly each coverage type is recommended for a mission."""
    results = [
        {
            "type": "third_party_liability",
            "level": "mandatory",
            "rationale": "Required by national law in most EU jurisdictions",
        }
    ]
    if profile.operator_type in ("spacecraft", "launch"):
        results.append(
            {
                "type": "launch",
                "level": (
                    "strongly_recommended"
                    if profile.total_mission_value_eur > 10_000_000
                    else "recommended"
                ),
                "rationale": (
                    "Protects the satellite investment during the launch phase"
                    if profile.has_flight_heritage
                    else "Strongly recommended for unproven satellite designs"
                ),
            }
        )
    if profile.satellite_value_eur > 5_000_000:
        results.append(
            {
                "type": "pre_launch",
                "level": "recommended",
                "rationale": "High satellite value warrants pre-launch coverage",
            }
        )
    if profile.mission_duration_years > 3:
        leo = profile.orbit_regime == "LEO"
        results.append(
            {
                "type": "in_orbit",
                "level": (
                    "strongly_recommended"
                    if leo and not profile.has_maneuverability
                    else "recommended"
                ),
                "rationale": (
                    "LEO debris environment increasing collision risk"
                    if leo
                    else "Long mission duration warrants in-orbit protection"
                ),
            }
        )
    if profile.orbit_regime == "GEO":
        results.append(
            {
                "type": "loss_of_revenue",
                "level": "recommended",
                "rationale": "GEO operators typically have significant revenue exposure",
            }
        )
    if profile.is_constellation_operator or profile.satellite_count > 5:
        results.append(
            {
                "type": "contingent_liability",
                "level": "optional",
                "rationale": "Consider for complex supply chains and constellation operations",
            }
        )
    if profile.has_flight_heritage and profile.mission_duration_years > 10:
        results.append(
            {
                "type": "launch_plus_life",
                "level": "optional",
                "rationale": "Consider for cost certainty over satellite lifetime",
            }
        )
    return results


# ============================================================================
# POLICY STATUS
# ============================================================================


def policy_status_to_compliance(policy_status: PolicyStatus | str) -> ComplianceStatus:
    """
    Map a policy lifecycle status onto a requirement status.

    Raises:
        ValueError: If the policy status is unknown.
    """
    return POLICY_TO_COMPLIANCE[PolicyStatus(policy_status)]


def policy_score(
    requirements: list[Requirement], policy_statuses: Mapping[str, Any]
) -> int:
    """
    Points score over the required coverage types.

    A coverage without a recorded policy counts as not started. Coverages
    marked not_required are left out; with nothing left the score is 100.
    """
    earned = 0
    possible = 0
    for req in requirements:
        raw = policy_statuses.get(req.id) or PolicyStatus.NOT_STARTED
        try:
            points = POLICY_POINTS[PolicyStatus(raw)]
        except ValueError:
            points = 0
        if points is None:
            continue
        earned += points
        possible += 100
    return round_half_up(100 * earned / possible) if possible else 100


def attribute_details(
    requirements: list[Requirement], attributes: Mapping[str, Mapping[str, Any]]
) -> dict[str, Any]:
    policies = {
        rid: attrs["policy_status"]
        for rid, attrs in attributes.items()
        if attrs.get("policy_status")
    }
    return {"policy_statuses": policies, "policy_score": policy_score(requirements, policies)}


def details(
    profile: InsuranceProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any] | None = None,
    breakdown: ScoreBreakdown | None = None,
) -> dict[str, Any]:
    return {
        "mission_risk": {
            **mission_risk(profile).to_dict(),
            "points": mission_risk_points(profile),
        },
        "tpl_requirement": calculate_tpl_requirement(profile),
        "premium_estimate": estimate_premium_range(profile, requirements),
        "coverage_recommendations": coverage_recommendations(profile),
        "required_coverages": [r.id for r in requirements],
    }


DEFINITION = RegimeDefinition(
    regime=Regime.INSURANCE,
    name="Space Insurance",
    profile_class=InsuranceProfile,
    applicable=applicable_requirements,
    exclude_not_applicable=True,
    classify=mission_risk,
    risk=risk,
    details=details,
    attribute_details=attribute_details,
)
