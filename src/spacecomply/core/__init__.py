"""Regime-independent building blocks: ordered rules and applicability."""

from spacecomply.core.applicability import (
    SupportsApplicability,
    filter_applicable,
    is_applicable,
    predicate_matches,
)
from spacecomply.core.rules import (
    Rule,
    RuleOutcome,
    band,
    evaluate_rules,
    threshold_rules,
)

__all__ = [
    "Rule",
    "RuleOutcome",
    "evaluate_rules",
    "threshold_rules",
    "band",
    "SupportsApplicability",
    "filter_applicable",
    "is_applicable",
    "predicate_matches",
]
