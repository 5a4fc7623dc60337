"""
Regulatory regimes.

Each regime module defines a typed profile built from user answers, the
selection of applicable catalog requirements, and regime-specific results
such as entity classification, risk level or required licenses.

Example:
    from spacecomply.regimes import get_regime

    definition = get_regime("nis2")
    profile = definition.build_profile({"entity_size": "large"})
    requirements = definition.applicable(profile, None)
"""

from spacecomply.regimes.base import Profile, ProfileValidationError, RegimeDefinition
from spacecomply.regimes.cybersecurity import CybersecurityProfile
from spacecomply.regimes.export_control import ExportControlProfile
from spacecomply.regimes.insurance import InsuranceProfile, PolicyStatus
from spacecomply.regimes.nis2 import EntityClassification, NIS2Profile
from spacecomply.regimes.registry import REGIMES, get_regime, list_regimes
from spacecomply.regimes.us_regulatory import USOperatorProfile

__all__ = [
    "Profile",
    "ProfileValidationError",
    "RegimeDefinition",
    "REGIMES",
    "get_regime",
    "list_regimes",
    "NIS2Profile",
    "EntityClassification",
    "CybersecurityProfile",
    "ExportControlProfile",
    "InsuranceProfile",
    "PolicyStatus",
    "USOperatorProfile",
]
