"""
Ordered decision rules.

Classification, eligibility and risk banding are expressed as explicit lists
of rules evaluated top to bottom. The first rule whose predicate holds decides
the outcome. A catch-all default closes every list, so evaluation always
produces an outcome.

Predicates receive the subject (usually a profile) and return a bool. A
predicate that fails on malformed input (a missing attribute or a value of
the wrong type) is treated as not matching.

Example:
    rules = [
        Rule(lambda p: p.size == "large", "essential", "Large entity", "Art. 3(1)"),
        Rule(lambda p: p.size == "medium", "important", "Medium entity", "Art. 3(2)"),
    ]
    outcome = evaluate_rules(rules, profile, default=RuleOutcome("out_of_scope", "Unable to determine"))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """
    A single (predicate, result) pair.

    Attributes:
        predicate: Callable deciding whether the rule applies to a subject.
        result: Value produced when the rule applies.
        reason: Human-readable explanation, or a callable building one
            from the subject.
        reference: Legal reference supporting the result.
    """

    predicate: Callable[[Any], bool]
    result: Any
    reason: str | Callable[[Any], str] = ""
    reference: str = ""

    def matches(self, subject: Any) -> bool:
        try:
            return bool(self.predicate(subject))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.debug("Rule for %r skipped on malformed input: %s", self.result, e)
            return False

    def explain(self, subject: Any) -> str:
        if callable(self.reason):
            return self.reason(subject)
        return self.reason


@dataclass(frozen=True)
class RuleOutcome:
    """Result of evaluating a rule list."""

    result: Any
    reason: str
    reference: str = ""
    rule_index: int | None = None

    @property
    def matched_default(self) -> bool:
        return self.rule_index is None

    def to_dict(self) -> dict[str, Any]:
        result = self.result.value if hasattr(self.result, "value") else self.result
        return {
            "result": result,
            "reason": self.reason,
            "reference": self.reference,
        }


def evaluate_rules(
    rules: Sequence[Rule], subject: Any, default: RuleOutcome
) -> RuleOutcome:
    """
    Evaluate rules in order and return the first match.

    Args:
        rules: Ordered rules.
        subject: Value passed to each predicate.
        default: Outcome returned when no rule matches.

    Returns:
        The outcome of the first matching rule, or the default.
    """
    for index, rule in enumerate(rules):
        if rule.matches(subject):
            return RuleOutcome(
                result=rule.result,
                reason=rule.explain(subject),
                reference=rule.reference,
                rule_index=index,
            )
    return default


def threshold_rules(bands: Sequence[tuple[float, Any]]) -> list[Rule]:
    """
    Build rules banding a number by inclusive upper bounds.

    Args:
        bands: (upper_bound, result) pairs in ascending order.

    Returns:
        Rules matching ``value <= upper_bound`` for each band.
    """
    return [
        Rule(
            predicate=lambda value, upper=upper: value <= upper,
            result=result,
            reason=f"Value at or below {upper:g}",
        )
        for upper, result in bands
    ]


def band(value: float, bands: Sequence[tuple[float, Any]], otherwise: Any) -> Any:
    """
    Band a number by an ordered threshold table.

    Example:
        band(45, [(20, "initial"), (40, "developing")], "defined")  # "defined"
    """
    outcome = evaluate_rules(
        threshold_rules(bands),
        value,
        default=RuleOutcome(result=otherwise, reason="Above all thresholds"),
    )
    return outcome.result
