"""
EU Space Act cybersecurity chapter (Art. 74-95).

Micro and small operators with a simple space segment may use the
simplified regime of Art. 10, which drops the requirements flagged
``simplified_regime`` in the catalog and recommends the reduced
alternatives where the catalog offers one.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from spacecomply.catalog.loader import get_catalog
from spacecomply.catalog.models import Catalog, ComplianceStatus, Regime, Requirement
from spacecomply.core.applicability import filter_applicable
from spacecomply.core.rules import Rule, RuleOutcome, evaluate_rules
from spacecomply.regimes.base import Profile, RegimeDefinition
from spacecomply.regimes.nis2 import incident_reporting_timeline
from spacecomply.scoring.maturity_calculator import ScoreBreakdown, coerce_status

SIMPLIFIED_FLAG = "simplified_regime"


@dataclass
class CybersecurityProfile(Profile):
    """Answers describing an operator under the EU Space Act."""

    organization_size: str | None = None
    space_segment_complexity: str | None = None
    satellite_count: int | None = None
    has_ground_segment: bool = True
    data_sensitivity_level: str | None = None
    processes_personal_data: bool = False
    handles_gov_data: bool = False
    existing_certifications: list[str] = field(default_factory=list)
    has_security_team: bool = False
    security_team_size: int | None = None
    has_incident_response_plan: bool = False
    has_bcp: bool = False
    supply_chain_complexity: str | None = None

    def facets(self) -> dict[str, Any]:
        return {
            "organization_sizes": self.organization_size,
            "space_segment_complexities": self.space_segment_complexity,
            "data_sensitivities": self.data_sensitivity_level,
        }

    def flags(self) -> set[str]:
        if is_simplified(self):
            return {SIMPLIFIED_FLAG}
        return set()


SIMPLIFIED_RULES = [
    Rule(
        lambda p: p.organization_size not in ("micro", "small"),
        False,
        "Only micro and small enterprises qualify for the simplified regime.",
        "EU Space Act Art. 10",
    ),
    Rule(
        lambda p: p.space_segment_complexity == "large_constellation",
        False,
        "Operators of large constellations must apply the full regime.",
        "EU Space Act Art. 10",
    ),
    Rule(
        lambda p: p.handles_gov_data,
        False,
        "Entities handling government data must apply the full regime.",
        "EU Space Act Art. 10",
    ),
    Rule(
        lambda p: p.processes_personal_data and (p.satellite_count or 0) > 1,
        False,
        "Processing personal data across several satellites requires the "
        "full regime.",
        "EU Space Act Art. 10",
    ),
]

ELIGIBLE = RuleOutcome(
    True,
    "Eligible for the simplified regime: reduced documentation and "
    "proportionate measures apply.",
    "EU Space Act Art. 10",
)


def simplified_eligibility(profile: CybersecurityProfile) -> RuleOutcome:
    """Eligibility for the Art. 10 simplified regime, with the reason."""
    return evaluate_rules(SIMPLIFIED_RULES, profile, ELIGIBLE)


def is_simplified(profile: CybersecurityProfile) -> bool:
    return bool(simplified_eligibility(profile).result)


def classify(profile: CybersecurityProfile) -> RuleOutcome:
    outcome = simplified_eligibility(profile)
    return RuleOutcome(
        "simplified" if outcome.result else "standard",
        outcome.reason,
        outcome.reference,
        outcome.rule_index,
    )


def applicable_requirements(
    profile: CybersecurityProfile, requirements: Catalog | None = None
) -> list[Requirement]:
    catalog = (
        requirements if requirements is not None else get_catalog(Regime.CYBERSECURITY)
    )
    return filter_applicable(catalog, profile)


def implementation_time_estimate(
    requirements: list[Requirement], statuses: Mapping[str, Any]
) -> int:
    """
    Remaining implementation effort in weeks.

    Unmet and unassessed requirements count in full, partial ones count
    half (rounded up). Requirements without an estimate count zero.
    """
    total = 0
    for req in requirements:
        status = coerce_status(statuses.get(req.id)) or ComplianceStatus.NOT_ASSESSED
        weeks = req.implementation_weeks or 0
        if status in (ComplianceStatus.NON_COMPLIANT, ComplianceStatus.NOT_ASSESSED):
            total += weeks
        elif status == ComplianceStatus.PARTIAL:
            total += math.ceil(weeks / 2)
    return total


def incident_reporting_regime() -> dict[str, Any]:
    """Summary of the Art. 89-92 incident reporting obligations."""
    return {
        "reference": "EU Space Act Art. 89-92",
        "authority": "National competent authority and the EU Space Resilience Network (EUSRN)",
        "timeline": incident_reporting_timeline(),
    }


def details(
    profile: CybersecurityProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any] | None = None,
    breakdown: ScoreBreakdown | None = None,
) -> dict[str, Any]:
    result = {
        "simplified_regime": simplified_eligibility(profile).to_dict(),
        "incident_reporting": incident_reporting_regime(),
        "total_requirements": len(get_catalog(Regime.CYBERSECURITY)),
        "applicable_requirements": len(requirements),
        "simplifiable_requirements": sum(
            1 for r in requirements if r.simplified_alternative
        ),
    }
    if statuses is not None:
        result["remaining_weeks"] = implementation_time_estimate(requirements, statuses)
    return result


DEFINITION = RegimeDefinition(
    regime=Regime.CYBERSECURITY,
    name="EU Space Act Cybersecurity",
    profile_class=CybersecurityProfile,
    applicable=applicable_requirements,
    classify=classify,
    details=details,
    simplified=is_simplified,
)
