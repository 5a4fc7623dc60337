"""
Shared building blocks for regime modules.

Every regime provides a Profile dataclass built from user-submitted answers,
an applicability function selecting its catalog entries, and a
RegimeDefinition describing how the engine scores and analyzes it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import MISSING, Field, asdict, dataclass, field, fields
from datetime import date, datetime
from typing import Any, ClassVar, get_args, get_origin, get_type_hints

from spacecomply.analysis.gap_analyzer import GapExtras
from spacecomply.catalog.models import Catalog, Regime, Requirement
from spacecomply.core.rules import RuleOutcome
from spacecomply.scoring.maturity_calculator import Grouping, ScoreBreakdown

logger = logging.getLogger(__name__)


class ProfileValidationError(ValueError):
    """Raised when a profile document lacks mandatory fields."""

    pass


_TRUE_STRINGS = {"true", "yes", "y", "1", "on"}
_FALSE_STRINGS = {"false", "no", "n", "0", "off"}


def _coerce_scalar(name: str, value: Any, kind: type) -> Any:
    """
    Convert a document value to a scalar field type.

    Raises:
        ProfileValidationError: If the value cannot be converted.
    """
    if kind is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
            return True
        if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
            return False
    elif kind is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
    elif kind is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                pass
    elif kind is str:
        if isinstance(value, str):
            return value
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    else:
        return value

    raise ProfileValidationError(
        f"Invalid value for {name}: expected {kind.__name__}, got {value!r}"
    )


def _coerce_field(f: Field, hint: Any, value: Any) -> Any:
    """
    Convert a document value to the type of a profile field.

    A null value for a field that does not accept None takes the field
    default. List fields accept a single scalar as a one-item list.
    """
    args = get_args(hint)
    optional = type(None) in args
    if optional:
        args = tuple(a for a in args if a is not type(None))
        hint = args[0] if len(args) == 1 else Any

    if value is None:
        if optional:
            return None
        if f.default_factory is not MISSING:
            return f.default_factory()
        return f.default

    if get_origin(hint) is list:
        item_type = (get_args(hint) or (Any,))[0]
        items = list(value) if isinstance(value, (list, tuple)) else [value]
        return [
            _coerce_scalar(f.name, item, item_type)
            for item in items
            if item is not None
        ]
    if isinstance(hint, type):
        return _coerce_scalar(f.name, value, hint)
    return value


@dataclass
class Profile:
    """
    Base class for regime profiles.

    Subclasses are dataclasses whose fields mirror the answers collected
    for the regime. ``required_lists`` names list fields that must not be
    empty.
    """

    required_lists: ClassVar[dict[str, str]] = {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Profile:
        """
        Build a profile from an answers document.

        Unknown keys are ignored. Missing keys take the field defaults.
        Values are converted to the field types, so "3" becomes 3 and a null
        boolean takes its default.

        Raises:
            ProfileValidationError: If the document is not a mapping, a value
                has the wrong type or a mandatory field is missing.
        """
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ProfileValidationError("Profile document must be a mapping")

        hints = get_type_hints(cls)
        known = {f.name: f for f in fields(cls)}
        names = set(known)
        unknown = sorted(str(k) for k in data if k not in names)
        if unknown:
            logger.debug("Ignoring unknown %s profile fields: %s", cls.__name__, unknown)

        profile = cls(
            **{
                k: _coerce_field(known[k], hints.get(k, Any), v)
                for k, v in data.items()
                if k in names
            }
        )
        profile.validate()
        return profile

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def validate(self) -> None:
        """
        Check mandatory fields.

        Raises:
            ProfileValidationError: If a mandatory list field is empty.
        """
        for name, message in self.required_lists.items():
            value = getattr(self, name, None)
            if not value or not isinstance(value, (list, tuple)):
                raise ProfileValidationError(message)

    def facets(self) -> dict[str, Any]:
        """Predicate values used by the applicability filter."""
        return {}

    def flags(self) -> set[str]:
        """Boolean flags used by the applicability filter."""
        return set()


@dataclass(frozen=True)
class RegimeDefinition:
    """
    How the engine handles one regime.

    Attributes:
        regime: Regime key.
        name: Human-readable name.
        profile_class: Profile dataclass for the regime.
        applicable: Selects applicable requirements for a profile.
        exclude_not_applicable: Remove not_applicable requirements from the
            score denominator.
        groupings: Extra score groupings by name.
        classify: Profile classification (entity tier, regime, risk band).
        risk: Risk level from the profile and current scores.
        details: Regime-specific information derived from the profile and,
            when an assessment is being evaluated, its statuses and scores.
        gap_extras: Regime-specific fields added to each gap.
        simplified: Whether the simplified regime applies to a profile.
        attribute_details: Results derived from the extra attributes stored
            with each requirement status (e.g. insurance policy statuses).
        suggest: Advisory starting statuses for a profile's requirements.
    """

    regime: Regime
    name: str
    profile_class: type[Profile]
    applicable: Callable[[Any, Catalog | None], list[Requirement]]
    exclude_not_applicable: bool = False
    groupings: Mapping[str, Grouping] = field(default_factory=dict)
    classify: Callable[[Any], RuleOutcome] | None = None
    risk: Callable[[Any, list[Requirement], Mapping[str, Any], ScoreBreakdown], RuleOutcome] | None = None
    details: Callable[..., dict[str, Any]] | None = None
    gap_extras: GapExtras | None = None
    simplified: Callable[[Any], bool] | None = None
    attribute_details: Callable[
        [list[Requirement], Mapping[str, Mapping[str, Any]]], dict[str, Any]
    ] | None = None
    suggest: Callable[[Any, list[Requirement]], dict[str, dict[str, Any]]] | None = None

    def build_profile(self, data: Mapping[str, Any] | None) -> Profile:
        """Build and validate this regime's profile from a document."""
        return self.profile_class.from_dict(data)
