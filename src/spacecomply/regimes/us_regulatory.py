"""
US federal space regulation.

Covers FCC space station licensing and orbital debris rules (47 CFR 25),
FAA commercial launch and reentry licensing (14 CFR 450), NOAA commercial
remote sensing (15 CFR 960) and the ORBITS Act. Requirements carry the
responsible agency, a binding level and the license types they relate to,
so scores are also broken down by agency, license type and binding level.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any

from spacecomply.catalog.loader import get_catalog
from spacecomply.catalog.models import Catalog, ComplianceStatus, Regime, Requirement, Severity
from spacecomply.core.applicability import filter_applicable
from spacecomply.core.rules import Rule, RuleOutcome, evaluate_rules
from spacecomply.regimes.base import Profile, ProfileValidationError, RegimeDefinition
from spacecomply.scoring.maturity_calculator import ScoreBreakdown, coerce_status

logger = logging.getLogger(__name__)

AGENCY_NAMES = {
    "FCC": "Federal Communications Commission",
    "FAA": "Federal Aviation Administration (Office of Commercial Space Transportation)",
    "NOAA": "National Oceanic and Atmospheric Administration (CRSRA)",
}

OPERATOR_AGENCIES = {
    "satellite_operator": ("FCC", "NOAA"),
    "launch_operator": ("FAA",),
    "reentry_operator": ("FAA",),
    "remote_sensing_operator": ("NOAA",),
    "spectrum_user": ("FCC",),
    "spaceport_operator": ("FAA",),
}

LICENSE_PREFIXES = {"FCC": "fcc_", "FAA": "faa_", "NOAA": "noaa_"}

LEO_DISPOSAL_YEARS = 5
OTHER_DISPOSAL_YEARS = 25
DAYS_PER_YEAR = 365.25


@dataclass
class USOperatorProfile(Profile):
    """
    Answers describing a US-regulated space operator.

    Attributes:
        operator_types: e.g. satellite_operator, launch_operator.
        activity_types: e.g. satellite_communications, earth_observation.
        agencies: Agencies the operator deals with; derived from the
            operator types when empty.
        is_ngso: Non-geostationary system; defaults to orbit != GEO.
        launch_date: ISO date of (planned) launch, for the deorbit deadline.
        planned_disposal_years: Planned post-mission disposal time.
    """

    required_lists = {
        "operator_types": "At least one operator type is required",
        "activity_types": "At least one activity type is required",
    }

    operator_types: list[str] = field(default_factory=list)
    activity_types: list[str] = field(default_factory=list)
    agencies: list[str] = field(default_factory=list)
    is_us_entity: bool = True
    us_nexus: str = "us_licensed"
    orbit_regime: str | None = None
    altitude_km: float | None = None
    frequency_bands: list[str] = field(default_factory=list)
    satellite_count: int | None = None
    has_maneuverability: bool = False
    has_propulsion: bool = False
    mission_duration_years: float | None = None
    is_constellation: bool = False
    is_small_satellite: bool = False
    is_ngso: bool | None = None
    provides_remote_sensing: bool = False
    remote_sensing_resolution_m: float | None = None
    has_national_security_implications: bool = False
    launch_date: str | None = None
    planned_disposal_years: float | None = None

    def validate(self) -> None:
        super().validate()
        if self.launch_date:
            try:
                date.fromisoformat(self.launch_date)
            except ValueError as e:
                raise ProfileValidationError(
                    f"launch_date must be an ISO date (YYYY-MM-DD): {self.launch_date}"
                ) from e
        if self.is_ngso is None:
            self.is_ngso = self.orbit_regime != "GEO"
        if not self.agencies:
            self.agencies = required_agencies(self)

    def facets(self) -> dict[str, Any]:
        return {
            "operator_types": self.operator_types,
            "activity_types": self.activity_types,
            "agencies": self.agencies or required_agencies(self),
            "orbit_regimes": self.orbit_regime,
        }

    def flags(self) -> set[str]:
        flags = set()
        is_ngso = self.is_ngso if self.is_ngso is not None else self.orbit_regime != "GEO"
        if is_ngso:
            flags.add("ngso")
        if self.orbit_regime == "LEO":
            flags.add("leo")
        if self.is_constellation:
            flags.add("constellation")
        if self.provides_remote_sensing:
            flags.add("remote_sensing")
        return flags


def required_agencies(profile: USOperatorProfile) -> list[str]:
    """Agencies with jurisdiction over the operator, in first-seen order."""
    agencies: dict[str, None] = {}
    for operator_type in profile.operator_types:
        for agency in OPERATOR_AGENCIES.get(operator_type, ()):
            agencies[agency] = None
    if profile.provides_remote_sensing:
        agencies["NOAA"] = None
    return list(agencies)


def required_licenses(profile: USOperatorProfile) -> list[str]:
    types = set(profile.operator_types)
    licenses = []
    if types & {"satellite_operator", "spectrum_user"}:
        licenses.extend(["fcc_space_station", "fcc_spectrum"])
    if "launch_operator" in types:
        licenses.append("faa_launch")
    if "reentry_operator" in types:
        licenses.append("faa_reentry")
    if "spaceport_operator" in types:
        licenses.append("faa_spaceport")
    if "remote_sensing_operator" in types or profile.provides_remote_sensing:
        licenses.append("noaa_remote_sensing")
    return licenses


def applicable_requirements(
    profile: USOperatorProfile, requirements: Catalog | None = None
) -> list[Requirement]:
    catalog = (
        requirements if requirements is not None else get_catalog(Regime.US_REGULATORY)
    )
    return filter_applicable(catalog, profile)


# ============================================================================
# RISK
# ============================================================================


@dataclass
class _RiskInputs:
    critical_non_compliant: int
    licensing_score: int
    mandatory_score: int


RISK_RULES = [
    Rule(
        lambda r: r.critical_non_compliant > 0,
        "critical",
        lambda r: f"{r.critical_non_compliant} critical requirement(s) not met.",
    ),
    Rule(
        lambda r: r.licensing_score < 50,
        "critical",
        lambda r: f"Licensing score of {r.licensing_score} is below 50.",
    ),
    Rule(
        lambda r: r.mandatory_score < 50,
        "critical",
        lambda r: f"Mandatory requirement score of {r.mandatory_score} is below 50.",
    ),
    Rule(
        lambda r: r.mandatory_score < 70,
        "high",
        lambda r: f"Mandatory requirement score of {r.mandatory_score} is below 70.",
    ),
    Rule(
        lambda r: r.mandatory_score < 85,
        "medium",
        lambda r: f"Mandatory requirement score of {r.mandatory_score} is below 85.",
    ),
]


def risk(
    profile: USOperatorProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any],
    breakdown: ScoreBreakdown,
) -> RuleOutcome:
    """Regulatory risk from critical failures, licensing and mandatory scores."""
    licensing = breakdown.by_category.get("licensing")
    inputs = _RiskInputs(
        critical_non_compliant=sum(
            1
            for r in requirements
            if r.severity == Severity.CRITICAL
            and coerce_status(statuses.get(r.id)) == ComplianceStatus.NON_COMPLIANT
        ),
        licensing_score=licensing.score if licensing else 100,
        mandatory_score=breakdown.group_score("binding", "mandatory", 100),
    )
    return evaluate_rules(
        RISK_RULES,
        inputs,
        RuleOutcome("low", "Mandatory requirements substantially met."),
    )


def agency_status(
    agency: str,
    profile: USOperatorProfile,
    breakdown: ScoreBreakdown,
) -> dict[str, Any]:
    score = breakdown.by_group.get("agency", {}).get(agency)
    value = score.score if score else 100
    non_compliant = score.status_counts.get("non_compliant", 0) if score else 0

    if value < 50 or non_compliant > 3:
        level = "critical"
    elif value < 70 or non_compliant > 1:
        level = "high"
    elif value < 85:
        level = "medium"
    else:
        level = "low"

    prefix = LICENSE_PREFIXES.get(agency, "")
    return {
        "agency": agency,
        "full_name": AGENCY_NAMES.get(agency, agency),
        "score": value,
        "requirement_count": score.requirement_count if score else 0,
        "non_compliant": non_compliant,
        "risk_level": level,
        "required_licenses": [
            lic for lic in required_licenses(profile) if prefix and lic.startswith(prefix)
        ],
    }


# ============================================================================
# ORBITAL DEBRIS
# ============================================================================


def _add_years(start: date, years: float) -> datetime:
    whole = int(years)
    try:
        shifted = start.replace(year=start.year + whole)
    except ValueError:
        # 29 February in a non-leap target year
        shifted = start.replace(year=start.year + whole, day=28)
    result = datetime(shifted.year, shifted.month, shifted.day, tzinfo=UTC)
    return result + timedelta(days=(years - whole) * DAYS_PER_YEAR)


def calculate_deorbit_deadline(
    launch_date: date,
    mission_duration_years: float,
    is_leo: bool,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Post-mission disposal deadline under the FCC 5-year rule.

    LEO satellites must be disposed of within 5 years after the end of the
    mission, other orbits within 25 years.

    Args:
        launch_date: Launch date.
        mission_duration_years: Planned mission duration.
        is_leo: Whether the satellite operates in LEO.
        now: Reference time; defaults to the current time.
    """
    now = now or datetime.now(UTC)
    end_of_mission = _add_years(launch_date, mission_duration_years)
    disposal_years = LEO_DISPOSAL_YEARS if is_leo else OTHER_DISPOSAL_YEARS
    deadline = _add_years(end_of_mission.date(), disposal_years)
    years_remaining = (deadline - now).total_seconds() / (DAYS_PER_YEAR * 86400)
    return {
        "end_of_mission_date": end_of_mission.date().isoformat(),
        "disposal_deadline": deadline.date().isoformat(),
        "years_remaining": round(years_remaining, 2),
        "compliant": years_remaining > 0,
    }


def check_deorbit_compliance(profile: USOperatorProfile) -> dict[str, Any]:
    is_leo = profile.orbit_regime == "LEO"
    required_years = LEO_DISPOSAL_YEARS if is_leo else OTHER_DISPOSAL_YEARS
    planned = profile.planned_disposal_years
    warnings = []
    compliant = True

    if planned is not None:
        if planned > required_years:
            compliant = False
            warnings.append(
                f"Planned disposal of {planned:g} years exceeds {required_years}-year limit"
            )
    elif is_leo:
        warnings.append("No disposal timeline specified for LEO satellite - 5-year rule applies")

    if is_leo and not profile.has_propulsion and not profile.has_maneuverability:
        warnings.append(
            "LEO satellite without propulsion may not meet 5-year disposal requirement"
        )
    if is_leo and profile.is_constellation:
        warnings.append("Large LEO constellation subject to enhanced debris mitigation scrutiny")

    result = {
        "is_leo": is_leo,
        "required_disposal_years": required_years,
        "planned_disposal_years": planned,
        "compliant": compliant,
        "warnings": warnings,
    }
    if profile.launch_date and profile.mission_duration_years:
        result["deadline"] = calculate_deorbit_deadline(
            date.fromisoformat(profile.launch_date),
            profile.mission_duration_years,
            is_leo,
        )
    return result


def recommendations(
    profile: USOperatorProfile, breakdown: ScoreBreakdown
) -> list[str]:
    """High-level recommendations from agency and category scores."""
    items = []
    agency_actions = {
        "FCC": "Address FCC licensing and debris mitigation requirements before filing applications",
        "FAA": "Complete FAA flight safety analysis and financial responsibility documentation",
        "NOAA": "Prepare NOAA remote sensing license application with tier classification",
    }
    for agency in profile.agencies or required_agencies(profile):
        if breakdown.group_score("agency", agency, 100) < 70 and agency in agency_actions:
            items.append(f"Priority: {agency_actions[agency]}")

    def category(name: str) -> int:
        score = breakdown.by_category.get(name)
        return score.score if score else 100

    if profile.orbit_regime == "LEO" and category("orbital_debris") < 80:
        items.append("Ensure 5-year post-mission disposal capability per FCC 2024 rule")
    if profile.is_ngso and category("spectrum") < 80:
        items.append("Complete spectrum sharing analysis for NGSO operations")
    if "launch_operator" in profile.operator_types and category("launch_safety") < 80:
        items.append("Conduct comprehensive flight safety analysis demonstrating EC < 1:10,000")
    if category("financial_responsibility") < 80:
        items.append("Obtain required third-party liability insurance coverage")
        if "faa_launch" in required_licenses(profile):
            items.append("Request Maximum Probable Loss (MPL) determination from FAA")
    if profile.provides_remote_sensing and category("remote_sensing") < 80:
        items.append("Determine NOAA tier classification based on system capabilities")
    items.append("Review ITAR/EAR classification for all space system components")
    return items


def details(
    profile: USOperatorProfile,
    requirements: list[Requirement],
    statuses: Mapping[str, Any] | None = None,
    breakdown: ScoreBreakdown | None = None,
) -> dict[str, Any]:
    result: dict[str, Any] = {
        "required_agencies": required_agencies(profile),
        "required_licenses": required_licenses(profile),
        "deorbit": check_deorbit_compliance(profile),
    }
    if breakdown is not None:
        result["agencies"] = {
            agency: agency_status(agency, profile, breakdown)
            for agency in (profile.agencies or required_agencies(profile))
        }
        result["recommendations"] = recommendations(profile, breakdown)
    return result


def _binding(requirement: Requirement) -> str:
    level = requirement.extra.get("binding_level", "mandatory")
    return "mandatory" if level == "mandatory" else "recommended"


DEFINITION = RegimeDefinition(
    regime=Regime.US_REGULATORY,
    name="US Regulatory (FCC/FAA/NOAA)",
    profile_class=USOperatorProfile,
    applicable=applicable_requirements,
    exclude_not_applicable=True,
    groupings={
        "agency": lambda r: r.extra.get("agency"),
        "license_type": lambda r: list(r.extra.get("license_types") or []),
        "binding": _binding,
    },
    risk=risk,
    details=details,
)
