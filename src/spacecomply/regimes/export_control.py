"""
US export controls for space items: ITAR (22 CFR 120-130) and EAR
(15 CFR 730-774).

This module tracks compliance only. It does not make jurisdiction or
licensing decisions; always confirm with export control counsel, DDTC or
BIS.

Risk levels in the catalog map onto severities as follows:
    critical -> critical, high -> major, medium/low -> minor
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from spacecomply.analysis.gap_analyzer import GapType
from spacecomply.catalog.loader import get_catalog
from spacecomply.catalog.models import Catalog, Regime, Requirement
from spacecomply.core.applicability import predicate_matches
from spacecomply.core.rules import Rule, RuleOutcome, evaluate_rules
from spacecomply.regimes.base import Profile, RegimeDefinition
from spacecomply.scoring.maturity_calculator import ScoreBreakdown

logger = logging.getLogger(__name__)


class Jurisdiction(str, Enum):
    """Jurisdiction determination for a controlled item."""

    ITAR_ONLY = "itar_only"
    EAR_ONLY = "ear_only"
    DUAL_USE = "dual_use"
    ITAR_WITH_EAR_PARTS = "itar_with_ear_parts"
    EAR99 = "ear99"


# Country Groups D and E (simplified)
RESTRICTED_COUNTRIES = frozenset({"CN", "RU", "IR", "KP", "SY", "CU", "BY", "VE"})

ITAR_LICENSES = ("DSP_5", "DSP_73", "DSP_61", "DSP_85", "TAA", "MLA", "WDA")
EAR_LICENSES = ("BIS_LICENSE", "LICENSE_EXCEPTION")


@dataclass
class ExportControlProfile(Profile):
    """Answers describing a company's exposure to ITAR and EAR."""

    required_lists = {"company_types": "At least one company type is required"}

    company_types: list[str] = field(default_factory=list)
    has_itar_items: bool = False
    has_ear_items: bool = False
    has_foreign_nationals: bool = False
    foreign_national_countries: list[str] = field(default_factory=list)
    exports_to_countries: list[str] = field(default_factory=list)
    has_technology_transfer: bool = False
    has_defense_contracts: bool = False
    has_manufacturing_abroad: bool = False
    has_joint_ventures: bool = False
    annual_export_value: float | None = None
    registered_with_ddtc: bool = False
    has_tcp: bool = False
    has_ecl: bool = False

    def facets(self) -> dict[str, Any]:
        return {"company_types": self.company_types}


def _regulation(requirement: Requirement) -> str:
    return str(requirement.extra.get("regulation", ""))


def is_applicable(requirement: Requirement, profile: ExportControlProfile) -> bool:
    """
    Check one requirement against a profile.

    ITAR requirements need ITAR items, or DDTC registration unless they
    are screening requirements. EAR requirements need EAR or ITAR items.
    """
    allowed = requirement.applicability.get("company_types") or []
    if "all" not in allowed and not predicate_matches(allowed, profile.company_types):
        return False

    regulation = _regulation(requirement)
    if regulation == "ITAR" and not profile.has_itar_items:
        if not profile.registered_with_ddtc and requirement.category != "SCREENING":
            return False
    if regulation == "EAR" and not (profile.has_ear_items or profile.has_itar_items):
        return False
    return True


def applicable_requirements(
    profile: ExportControlProfile, requirements: Catalog | None = None
) -> list[Requirement]:
    catalog = (
        requirements if requirements is not None else get_catalog(Regime.EXPORT_CONTROL)
    )
    return [r for r in catalog if is_applicable(r, profile)]


# ============================================================================
# JURISDICTION AND RISK
# ============================================================================


@dataclass
class ItemClassification:
    """Facts used to determine the jurisdiction of one item."""

    description: str = ""
    designed_for_military: bool = False
    has_commercial_equivalent: bool = False
    on_usml: bool = False


JURISDICTION_RULES = [
    Rule(
        lambda i: i.on_usml,
        Jurisdiction.ITAR_ONLY,
        "Item is enumerated on the USML.",
        "22 CFR § 121.1",
    ),
    Rule(
        lambda i: i.designed_for_military and not i.has_commercial_equivalent,
        Jurisdiction.ITAR_ONLY,
        "Specially designed for military use with no commercial equivalent.",
        "22 CFR § 120.41",
    ),
    Rule(
        lambda i: i.designed_for_military and i.has_commercial_equivalent,
        Jurisdiction.DUAL_USE,
        "Military design with a commercial equivalent: request a commodity "
        "jurisdiction determination.",
        "22 CFR § 120.4",
    ),
    Rule(
        lambda i: i.has_commercial_equivalent,
        Jurisdiction.EAR_ONLY,
        "Commercial item: EAR controlled or EAR99.",
        "15 CFR § 734.3",
    ),
]


def determine_jurisdiction(item: ItemClassification) -> RuleOutcome:
    """Jurisdiction of one item; unclear cases default to dual use."""
    return evaluate_rules(
        JURISDICTION_RULES,
        item,
        RuleOutcome(
            Jurisdiction.DUAL_USE,
            "Jurisdiction unclear: request a commodity jurisdiction determination.",
            "22 CFR § 120.4",
        ),
    )


def jurisdiction_from_profile(profile: ExportControlProfile) -> Jurisdiction:
    if profile.has_itar_items and profile.has_ear_items:
        return Jurisdiction.ITAR_WITH_EAR_PARTS
    if profile.has_itar_items:
        return Jurisdiction.ITAR_ONLY
    if profile.has_ear_items:
        return Jurisdiction.EAR_ONLY
    return Jurisdiction.EAR99


RISK_RULES = [
    Rule(
        lambda p: p.has_itar_items and p.has_foreign_nationals and not p.has_tcp,
        "critical",
        "Foreign nationals may access ITAR technical data without a Technology "
        "Control Plan.",
        "22 CFR § 120.50",
    ),
    Rule(
        lambda p: p.has_itar_items and not p.registered_with_ddtc,
        "critical",
        "ITAR items handled without DDTC registration.",
        "22 CFR § 122.1",
    ),
    Rule(
        lambda p: p.has_itar_items and p.has_manufacturing_abroad,
        "high",
        "ITAR items manufactured abroad require Manufacturing License Agreements.",
        "22 CFR § 124.1",
    ),
    Rule(
        lambda p: p.has_itar_items and p.has_foreign_nationals,
        "high",
        "Foreign national access to ITAR technical data is a deemed export.",
        "22 CFR § 120.50",
    ),
    Rule(
        lambda p: p.has_ear_items and p.has_joint_ventures,
        "high",
        "Joint ventures with EAR items risk unlicensed technology releases.",
        "15 CFR § 734.13",
    ),
    Rule(
        lambda p: p.has_itar_items or p.has_ear_items,
        "medium",
        "Controlled items are handled.",
        "15 CFR § 734.3",
    ),
]


def overall_risk(profile: ExportControlProfile) -> RuleOutcome:
    return evaluate_rules(
        RISK_RULES, profile, RuleOutcome("low", "No controlled items reported.")
    )


def regulation_risk(regulation: str, score: int, non_compliant: int) -> str:
    """Risk for one regulation's requirements; ITAR bands are stricter."""
    if regulation == "ITAR":
        bands = [(50, 5, "critical"), (70, 2, "high")]
        medium_below = 85
    else:
        bands = [(40, 8, "critical"), (60, 4, "high")]
        medium_below = 80
    for below, max_non_compliant, level in bands:
        if score < below or non_compliant > max_non_compliant:
            return level
    return "medium" if score < medium_below else "low"


def required_registrations(profile: ExportControlProfile) -> list[str]:
    if profile.has_itar_items:
        return ["DDTC Registration (22 CFR § 122.1)"]
    return []


def required_licenses(profile: ExportControlProfile) -> list[str]:
    licenses = []
    if profile.has_itar_items:
        licenses.append("DSP_5")
        if profile.has_technology_transfer:
            licenses.append("TAA")
        if profile.has_manufacturing_abroad:
            licenses.append("MLA")
    if profile.has_ear_items:
        licenses.append("BIS_LICENSE")
    return licenses


# ============================================================================
# PENALTIES
# ============================================================================


def format_penalty(amount: float) -> str:
    """Format a dollar amount: ``$1.2M`` from a million up, else ``$353,534``."""
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    return f"${amount:,.0f}"


def max_penalty_exposure(requirements: list[Requirement]) -> dict[str, int]:
    civil = criminal = imprisonment = 0
    for req in requirements:
        penalty = req.extra.get("penalty") or {}
        civil = max(civil, int(penalty.get("max_civil") or 0))
        criminal = max(criminal, int(penalty.get("max_criminal") or 0))
        imprisonment = max(imprisonment, int(penalty.get("max_imprisonment_years") or 0))
    return {"civil": civil, "criminal": criminal, "imprisonment_years": imprisonment}


def penalty_description(penalty: Mapping[str, Any]) -> str:
    parts = []
    if penalty.get("max_civil"):
        parts.append(f"Civil: up to {format_penalty(penalty['max_civil'])}")
    if penalty.get("max_criminal"):
        parts.append(f"Criminal: up to {format_penalty(penalty['max_criminal'])}")
    if penalty.get("max_imprisonment_years"):
        parts.append(f"Imprisonment: up to {penalty['max_imprisonment_years']} years")
    return "; ".join(parts)


def effort_label(requirement: Requirement) -> str:
    if requirement.category in ("GENERAL", "SCREENING"):
        return "days"
    if (
        requirement.extra.get("risk_level") == "critical"
        or len(requirement.evidence_required) > 4
    ):
        return "months"
    return "weeks"


def gap_extras(requirement: Requirement, gap_type: GapType) -> dict[str, Any]:
    return {
        "regulation": _regulation(requirement),
        "risk_level": requirement.extra.get("risk_level"),
        "effort_label": effort_label(requirement),
        "potential_penalty": penalty_description(requirement.extra.get("penalty") or {}),
    }


# ============================================================================
# DEEMED EXPORTS
# ============================================================================


def deemed_export_assessment(profile: ExportControlProfile) -> dict[str, Any]:
    """
    Deemed export exposure from foreign national employees.

    Releasing controlled technology to a foreign person in the US is an
    export to that person's country.
    """
    tcp_required = (
        profile.has_foreign_nationals and profile.has_itar_items and not profile.has_tcp
    )

    licenses = []
    if profile.has_foreign_nationals:
        for country in profile.foreign_national_countries:
            if profile.has_itar_items:
                licenses.append(
                    f"TAA/DSP-5 required for {country} nationals accessing ITAR data"
                )
            if profile.has_ear_items and country.upper() in RESTRICTED_COUNTRIES:
                licenses.append(f"EAR license may be required for {country} nationals")

    recommendations = []
    if tcp_required:
        recommendations.append(
            "Implement Technology Control Plan to protect ITAR technical data"
        )
    if profile.has_foreign_nationals:
        recommendations.extend(
            [
                "Screen all foreign national employees for denied party list matches",
                "Maintain documentation of citizenship/residency for all employees",
                "Implement physical and IT access controls for controlled areas",
            ]
        )

    return {
        "has_foreign_nationals": profile.has_foreign_nationals,
        "foreign_national_countries": list(profile.foreign_national_countries),
        "tcp_required": tcp_required,
        "licenses_required": licenses,
        "recommendations": recommendations,
    }


def program_recommendations(
    profile: ExportControlProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any],
    score: int,
) -> list[dict[str, Any]]:
    """Program-level recommendations ordered by urgency."""
    open_ids = {
        r.id for r in requirements if statuses.get(r.id) not in ("compliant", "not_applicable")
    }
    controlled = profile.has_itar_items or profile.has_ear_items
    items = []

    if profile.has_itar_items and not profile.registered_with_ddtc:
        items.append(
            ("Register with DDTC immediately", "registration", "Within 30 days")
        )
    if profile.has_itar_items and profile.has_foreign_nationals and not profile.has_tcp:
        items.append(
            ("Implement a Technology Control Plan (TCP)", "tcp", "Within 60 days")
        )
    if controlled and any("SCREEN" in rid for rid in open_ids):
        items.append(
            ("Implement automated restricted party screening", "screening", "Within 90 days")
        )
    if score < 70:
        items.append(
            ("Establish a comprehensive export compliance program", "documentation", "Within 6 months")
        )
    licensing = [rid for rid in open_ids if any(k in rid for k in ("LIC", "TAA", "MLA"))]
    if licensing:
        items.append(
            (
                f"Obtain required export licenses ({len(licensing)} licensing gaps)",
                "licensing",
                "Before any controlled exports",
            )
        )
    if controlled:
        items.append(("Conduct an internal compliance audit", "audit", "Annually"))

    return [
        {"priority": i, "title": title, "category": category, "timeframe": timeframe}
        for i, (title, category, timeframe) in enumerate(items, start=1)
    ]


def risk(
    profile: ExportControlProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any],
    breakdown: ScoreBreakdown,
) -> RuleOutcome:
    return overall_risk(profile)


def details(
    profile: ExportControlProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any] | None = None,
    breakdown: ScoreBreakdown | None = None,
) -> dict[str, Any]:
    exposure = max_penalty_exposure(requirements)
    result: dict[str, Any] = {
        "jurisdiction": jurisdiction_from_profile(profile).value,
        "overall_risk": overall_risk(profile).to_dict(),
        "required_registrations": required_registrations(profile),
        "required_licenses": required_licenses(profile),
        "penalty_exposure": {
            **exposure,
            "civil_formatted": format_penalty(exposure["civil"]),
            "criminal_formatted": format_penalty(exposure["criminal"]),
        },
        "deemed_exports": deemed_export_assessment(profile),
    }

    if statuses is not None and breakdown is not None:
        regulations = {}
        for regulation, score in breakdown.by_group.get("regulation", {}).items():
            regulations[regulation] = {
                "score": score.score,
                "non_compliant": score.status_counts.get("non_compliant", 0),
                "risk_level": regulation_risk(
                    regulation, score.score, score.status_counts.get("non_compliant", 0)
                ),
                "required_licenses": [
                    lic
                    for lic in required_licenses(profile)
                    if lic in (ITAR_LICENSES if regulation == "ITAR" else EAR_LICENSES)
                ],
            }
        result["regulations"] = regulations
        result["recommendations"] = program_recommendations(
            profile, requirements, statuses, breakdown.score
        )

    return result


DEFINITION = RegimeDefinition(
    regime=Regime.EXPORT_CONTROL,
    name="Export Control (ITAR/EAR)",
    profile_class=ExportControlProfile,
    applicable=applicable_requirements,
    exclude_not_applicable=True,
    groupings={
        "regulation": _regulation,
        "mandatory": lambda r: "mandatory" if r.mandatory else None,
        "critical": lambda r: "critical" if r.severity.value == "critical" else None,
    },
    risk=risk,
    details=details,
    gap_extras=gap_extras,
)
