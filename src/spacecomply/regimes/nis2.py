"""
NIS2 Directive (EU) 2022/2555 for space-sector entities.

Classification follows Art. 2 and Art. 3: the entity size and the critical
space services it operates decide whether it is essential, important or out
of scope. Out-of-scope entities have no applicable requirements.

Example:
    profile = NIS2Profile.from_dict({"entity_size": "medium", "operates_ground_infra": True})
    outcome = classify_entity(profile)        # essential, NIS2 Art. 3(1)(e)
    requirements = applicable_requirements(profile)
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
from spacecomply.core.rules import Rule, RuleOutcome, evaluate_rules
from spacecomply.regimes.base import Profile, RegimeDefinition
from spacecomply.scoring.maturity_calculator import ScoreBreakdown

logger = logging.getLogger(__name__)


class EntityClassification(str, Enum):
    """NIS2 entity tier."""

    ESSENTIAL = "essential"
    IMPORTANT = "important"
    OUT_OF_SCOPE = "out_of_scope"


# Ordering used to compare tiers
TIER_ORDER = {
    EntityClassification.OUT_OF_SCOPE: 0,
    EntityClassification.IMPORTANT: 1,
    EntityClassification.ESSENTIAL: 2,
}

ENTITY_SIZES = ("micro", "small", "medium", "large")


@dataclass
class NIS2Profile(Profile):
    """
    Answers describing a space-sector entity under NIS2.

    Attributes:
        entity_size: micro, small, medium or large.
        sector: Annex I sector; None is treated as the space sector.
        space_sub_sector: e.g. ground_infrastructure, satellite_communications.
        is_eu_established: Whether the entity is established in the EU.
        member_state_count: Number of member states the entity operates in.
    """

    entity_size: str | None = None
    sector: str | None = None
    space_sub_sector: str | None = None
    is_eu_established: bool | None = None
    member_state_count: int | None = None
    operates_ground_infra: bool = False
    operates_sat_comms: bool = False
    manufactures_spacecraft: bool = False
    provides_launch_services: bool = False
    provides_eo_data: bool = False
    has_iso27001: bool = False
    has_existing_csirt: bool = False
    has_risk_management: bool = False

    def facets(self) -> dict[str, Any]:
        return {
            "entity_classifications": classify_entity(self).result.value,
            "sectors": self.sector,
            "sub_sectors": self.space_sub_sector,
            "organization_sizes": self.entity_size,
        }


# ============================================================================
# CLASSIFICATION
# ============================================================================

CLASSIFICATION_RULES = [
    # Only the space sector (Annex I, Sector 11) is assessed. A missing sector
    # counts as space.
    Rule(
        lambda p: p.sector is not None and p.sector != "space",
        EntityClassification.OUT_OF_SCOPE,
        lambda p: (
            f"The {p.sector} sector is not covered by this assessment. Only the "
            "space sector (NIS2 Annex I, Sector 11) is evaluated."
        ),
        "NIS2 Art. 2",
    ),
    Rule(
        lambda p: p.is_eu_established is False,
        EntityClassification.OUT_OF_SCOPE,
        "NIS2 primarily applies to entities established in EU member states. "
        "Non-EU entities providing services in the EU may need to designate an "
        "EU representative under Art. 26.",
        "NIS2 Art. 2, Art. 26",
    ),
    Rule(
        lambda p: p.entity_size == "micro" and p.operates_sat_comms,
        EntityClassification.IMPORTANT,
        "Although micro enterprises are generally excluded, satellite "
        "communications providers may be designated as important entities by "
        "member states under Art. 2(2)(b) due to the critical nature of SATCOM "
        "services.",
        "NIS2 Art. 2(2)(b)",
    ),
    Rule(
        lambda p: p.entity_size == "micro",
        EntityClassification.OUT_OF_SCOPE,
        "Micro enterprises (< 10 employees, < €2M turnover) are generally "
        "excluded from NIS2 scope under Art. 2(1). Member states may still "
        "designate critical space operators regardless of size under Art. 2(2).",
        "NIS2 Art. 2(1)",
    ),
    Rule(
        lambda p: p.entity_size == "large",
        EntityClassification.ESSENTIAL,
        "Large entities (> 250 employees or > €50M turnover) operating in the "
        "space sector (NIS2 Annex I, Sector 11) are classified as essential "
        "entities under Art. 3(1).",
        "NIS2 Art. 3(1)(a)",
    ),
    Rule(
        lambda p: p.entity_size == "medium"
        and (p.operates_ground_infra or p.operates_sat_comms),
        EntityClassification.ESSENTIAL,
        "Medium entities operating critical space infrastructure (ground "
        "stations, SATCOM) may be classified as essential entities by member "
        "states under Art. 3(1)(e).",
        "NIS2 Art. 3(1)(e)",
    ),
    Rule(
        lambda p: p.entity_size == "medium",
        EntityClassification.IMPORTANT,
        "Medium entities (50-250 employees) in the space sector are classified "
        "as important entities under Art. 3(2). Full NIS2 compliance is "
        "required, with lighter supervisory measures than essential entities.",
        "NIS2 Art. 3(2)",
    ),
    Rule(
        lambda p: p.entity_size == "small"
        and (
            p.operates_ground_infra
            or p.operates_sat_comms
            or p.provides_launch_services
        ),
        EntityClassification.IMPORTANT,
        "Small entities providing critical space services (ground "
        "infrastructure, SATCOM, launch services) may be designated as "
        "important entities by member states under Art. 2(2)(b).",
        "NIS2 Art. 2(2)(b)",
    ),
    Rule(
        lambda p: p.entity_size == "small",
        EntityClassification.OUT_OF_SCOPE,
        "Small enterprises (< 50 employees, < €10M turnover) are generally "
        "excluded from NIS2 under Art. 2(1), unless designated by a member "
        "state under Art. 2(2).",
        "NIS2 Art. 2(1), Art. 2(2)",
    ),
]

UNDETERMINED = RuleOutcome(
    EntityClassification.OUT_OF_SCOPE,
    "Unable to determine the NIS2 classification from the profile. Member "
    "states may designate additional space operators under Art. 2(2). Consult "
    "your national competent authority.",
    "NIS2 Art. 2",
)


def classify_entity(profile: NIS2Profile) -> RuleOutcome:
    """
    Classify an entity as essential, important or out of scope.

    Never raises: missing or malformed fields fall through to the
    "unable to determine" outcome.
    """
    return evaluate_rules(CLASSIFICATION_RULES, profile, UNDETERMINED)


# ============================================================================
# PROPORTIONALITY
# ============================================================================

PROPORTIONALITY_RULES = [
    Rule(
        lambda p: p.entity_size == "large",
        False,
        "Large entities are expected to implement the full set of Art. 21 "
        "measures without significant simplifications.",
        "NIS2 Art. 21(1)",
    ),
    Rule(
        lambda p: p.entity_size == "medium"
        and (p.operates_ground_infra or p.operates_sat_comms),
        False,
        "Medium-sized entities operating critical space infrastructure are "
        "expected to implement comprehensive measures. Limited proportionality "
        "may apply to non-critical support systems.",
        "NIS2 Art. 21(1)",
    ),
    Rule(
        lambda p: p.entity_size == "medium",
        True,
        "As a medium-sized entity without critical space infrastructure, you "
        "may apply proportionate implementation of Art. 21 measures. "
        "Requirements marked as simplifiable indicate where this applies.",
        "NIS2 Art. 21(1)",
    ),
    Rule(
        lambda p: p.entity_size == "small",
        True,
        "As a small entity you may use standardised risk assessment templates, "
        "reduced audit frequency and basic monitoring rather than a 24/7 SOC.",
        "NIS2 Art. 21(1)",
    ),
    Rule(
        lambda p: p.entity_size == "micro",
        True,
        "Micro entities are generally excluded from NIS2. If an Art. 2(2) "
        "exception applies, maximum proportionality applies.",
        "NIS2 Art. 21(1), Art. 2(2)",
    ),
]


def proportionality(profile: NIS2Profile) -> RuleOutcome:
    """Eligibility for proportionate implementation under Art. 21(1)."""
    return evaluate_rules(
        PROPORTIONALITY_RULES,
        profile,
        RuleOutcome(
            False,
            "Unable to determine proportionality eligibility. Please provide "
            "organisation size information.",
            "NIS2 Art. 21(1)",
        ),
    )


def is_simplified(profile: NIS2Profile) -> bool:
    return bool(proportionality(profile).result)


# ============================================================================
# PUBLIC API
# ============================================================================


def applicable_requirements(
    profile: NIS2Profile, requirements: Catalog | None = None
) -> list[Requirement]:
    """
    Select the NIS2 requirements applicable to an entity.

    Out-of-scope entities get an empty list.
    """
    outcome = classify_entity(profile)
    if outcome.result == EntityClassification.OUT_OF_SCOPE:
        logger.debug("NIS2 out of scope (%s): no applicable requirements", outcome.reference)
        return []
    catalog = requirements if requirements is not None else get_catalog(Regime.NIS2)
    return filter_applicable(catalog, profile)


INCIDENT_REPORTING_TIMELINE = {
    "early_warning": {
        "deadline": "24 hours",
        "description": (
            "Submit an early warning to the CSIRT or competent authority within "
            "24 hours of becoming aware of a significant incident, indicating "
            "suspected malicious cause and possible cross-border impact."
        ),
    },
    "notification": {
        "deadline": "72 hours",
        "description": (
            "Update the early warning with an initial assessment of the "
            "incident, its severity and impact, and indicators of compromise."
        ),
    },
    "intermediate_report": {
        "deadline": "Upon request",
        "description": (
            "Provide status updates upon request of the CSIRT or competent "
            "authority."
        ),
    },
    "final_report": {
        "deadline": "1 month",
        "description": (
            "Submit a final report no later than one month after the "
            "notification, with root cause, mitigation measures and "
            "cross-border impact."
        ),
    },
}

PENALTIES = {
    EntityClassification.ESSENTIAL: (
        "Up to €10,000,000 or 2% of total annual worldwide turnover "
        "(whichever is higher)"
    ),
    EntityClassification.IMPORTANT: (
        "Up to €7,000,000 or 1.4% of total annual worldwide turnover "
        "(whichever is higher)"
    ),
}

# Weeks saved per cross-referenced article
OVERLAP_SAVINGS_WEEKS = {"supersedes": 3.0, "overlaps": 1.5}


def incident_reporting_timeline() -> dict[str, dict[str, str]]:
    """Art. 23 reporting stages and deadlines."""
    return {stage: dict(info) for stage, info in INCIDENT_REPORTING_TIMELINE.items()}


def supervisory_authority(profile: NIS2Profile) -> dict[str, str]:
    """Competent authority responsible for the entity."""
    if (profile.member_state_count or 1) > 1:
        return {
            "authority": (
                "Primary: member state of main establishment. Additional: "
                "coordination with other member state authorities."
            ),
            "note": (
                "Under NIS2 Art. 26(1), the competent authority of the main "
                "establishment has primary jurisdiction for entities operating "
                "in several member states."
            ),
        }
    return {
        "authority": "National competent authority of your member state of establishment.",
        "note": (
            "For space sector entities this is typically the national "
            "cybersecurity agency. Check ENISA's NIS2 implementation tracker "
            "for your country."
        ),
    }


def penalties(classification: EntityClassification) -> dict[str, str]:
    return {
        "essential": PENALTIES[EntityClassification.ESSENTIAL],
        "important": PENALTIES[EntityClassification.IMPORTANT],
        "applicable": PENALTIES.get(classification, "N/A (out of scope)"),
    }


def key_dates(classification: EntityClassification) -> list[dict[str, str]]:
    dates = [
        {
            "date": "17 October 2024",
            "description": (
                "NIS2 transposition deadline: member states must have national "
                "laws in place"
            ),
        },
        {
            "date": "17 April 2025",
            "description": (
                "Member states must establish the list of essential and "
                "important entities (Art. 3(3))"
            ),
        },
    ]
    if classification != EntityClassification.OUT_OF_SCOPE:
        dates.extend(
            [
                {
                    "date": "17 October 2024 onwards",
                    "description": (
                        "NIS2 obligations apply under national transposition laws"
                    ),
                },
                {
                    "date": "1 January 2030",
                    "description": (
                        "EU Space Act applies as lex specialis for the space "
                        "sector, partially superseding NIS2"
                    ),
                },
            ]
        )
    return dates


def space_act_overlap(classification: EntityClassification) -> dict[str, Any]:
    """
    NIS2 articles overlapping with or superseded by the EU Space Act.

    Returns:
        Count, estimated weeks saved and the cross-references.
    """
    if classification == EntityClassification.OUT_OF_SCOPE:
        return {"count": 0, "potential_savings_weeks": 0, "cross_references": []}

    data = load_data_file("nis2_space_act_overlap") or {}
    references = [
        ref
        for ref in data.get("cross_references", [])
        if ref.get("relationship") in OVERLAP_SAVINGS_WEEKS
    ]
    weeks = sum(OVERLAP_SAVINGS_WEEKS[ref["relationship"]] for ref in references)
    return {
        "count": len(references),
        "potential_savings_weeks": round(weeks),
        "cross_references": [dict(ref) for ref in references],
    }


def suggest_statuses(
    profile: NIS2Profile, requirements: list[Requirement]
) -> dict[str, dict[str, Any]]:
    """
    Suggest starting statuses from existing capabilities.

    ISO 27001 certification, an existing CSIRT and a risk management
    framework each make the requirements they cover partially met. The
    suggestions are advisory and never overwrite recorded statuses.

    Returns:
        Requirement ID to suggested status, reasons and priority flags.
    """
    suggestions: dict[str, dict[str, Any]] = {}
    small = profile.entity_size in ("micro", "small")

    for req in requirements:
        reasons = []
        if profile.has_iso27001 and req.references.get("iso27001"):
            reasons.append(
                f"ISO 27001 {req.references['iso27001']} partially covers this "
                "requirement. Review space-specific additions."
            )
        if profile.has_existing_csirt and req.category in ("incident_handling", "reporting"):
            reasons.append(
                "Existing incident response capability provides a foundation. "
                "Verify NIS2 reporting timelines (24h early warning, 72h notification)."
            )
        if profile.has_risk_management and req.category == "policies_risk_analysis":
            reasons.append(
                "Existing risk management framework detected. Integrate "
                "space-specific threats (jamming, RF interference, orbital debris)."
            )

        flags = []
        if profile.operates_ground_infra:
            text = " ".join([req.notes, *req.guidance]).lower()
            if any(k in text for k in ("ground station", "ground segment", "mission control", "tt&c")):
                flags.append("high_priority_ground_infra")
        if req.references.get("eu_space_act"):
            flags.append("eu_space_act_overlap")
        if req.severity.value == "critical":
            flags.append("critical_severity")

        suggestions[req.id] = {
            "status": (
                ComplianceStatus.PARTIAL.value if reasons else ComplianceStatus.NOT_ASSESSED.value
            ),
            "reason": " ".join(reasons),
            "proportionality_note": (
                "Proportionate implementation allowed under NIS2 Art. 21(1)."
                if small and req.can_be_simplified
                else None
            ),
            "priority_flags": flags,
        }

    return suggestions


def details(
    profile: NIS2Profile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any] | None = None,
    breakdown: ScoreBreakdown | None = None,
) -> dict[str, Any]:
    """Regime-specific results for an entity."""
    outcome = classify_entity(profile)
    classification = outcome.result
    in_scope = classification != EntityClassification.OUT_OF_SCOPE
    return {
        "classification": outcome.to_dict(),
        "proportionality": proportionality(profile).to_dict(),
        "incident_reporting_timeline": incident_reporting_timeline(),
        "supervisory_authority": supervisory_authority(profile),
        "penalties": penalties(classification),
        "key_dates": key_dates(classification),
        "registration_required": in_scope,
        "registration_deadline": (
            "Without undue delay: entities must register with their competent "
            "authority under Art. 3(4)"
            if in_scope
            else "N/A"
        ),
        "space_act_overlap": space_act_overlap(classification),
        "total_requirements": len(get_catalog(Regime.NIS2)),
        "applicable_requirements": len(requirements),
    }


DEFINITION = RegimeDefinition(
    regime=Regime.NIS2,
    name="NIS2 Directive",
    profile_class=NIS2Profile,
    applicable=applicable_requirements,
    classify=classify_entity,
    details=details,
    simplified=is_simplified,
    suggest=suggest_statuses,
)
