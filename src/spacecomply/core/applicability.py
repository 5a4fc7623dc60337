"""
Applicability filtering of catalog requirements against a profile.

A requirement applies to a profile when every predicate in its
``applicability`` mapping is satisfied, every flag in ``required_flags`` is
set on the profile, and no flag in ``excluded_flags`` is set.

Predicate semantics:
    - An absent or empty predicate applies to every profile.
    - A predicate whose profile facet is unknown (None) is not checked.
    - A list-valued facet matches when any of its values is allowed.
    - An empty list-valued facet matches nothing.

Filtering never raises and preserves catalog order, so applying it twice
yields the same result as applying it once.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Protocol

from spacecomply.catalog.models import Requirement


class SupportsApplicability(Protocol):
    """Anything exposing predicate facets and boolean flags."""

    def facets(self) -> Mapping[str, Any]: ...

    def flags(self) -> set[str]: ...


def _normalize(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def predicate_matches(allowed: Iterable[str] | None, value: Any) -> bool:
    """
    Check a single applicability predicate.

    Args:
        allowed: Values allowed by the requirement, or None for "all".
        value: The profile's value for this facet.

    Returns:
        True if the predicate is satisfied or not checkable.
    """
    allowed_values = {str(v) for v in allowed or []}
    if not allowed_values or value is None:
        return True
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(_normalize(v) in allowed_values for v in value)
    return _normalize(value) in allowed_values


def is_applicable(
    requirement: Requirement,
    facets: Mapping[str, Any],
    flags: set[str],
) -> bool:
    """Check one requirement against precomputed facets and flags."""
    for predicate, allowed in requirement.applicability.items():
        if not predicate_matches(allowed, facets.get(predicate)):
            return False
    if any(flag not in flags for flag in requirement.required_flags):
        return False
    if any(flag in flags for flag in requirement.excluded_flags):
        return False
    return True


def filter_applicable(
    requirements: Iterable[Requirement],
    profile: SupportsApplicability,
) -> list[Requirement]:
    """
    Select the requirements applicable to a profile.

    Args:
        requirements: Catalog requirements in catalog order.
        profile: Profile exposing facets() and flags().

    Returns:
        Applicable requirements, in the order given.
    """
    facets = profile.facets()
    flags = profile.flags()
    return [r for r in requirements if is_applicable(r, facets, flags)]
