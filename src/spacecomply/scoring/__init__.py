"""
Compliance scoring.

The MaturityCalculator turns applicable requirements and their statuses
into weighted 0-100 scores, maturity labels and grouped breakdowns. The
summary module combines regime scores into a graded overall view.

Example:
    from spacecomply.scoring import MaturityCalculator, ScoringConfig

    calculator = MaturityCalculator(ScoringConfig(empty_score=100))
    breakdown = calculator.calculate(requirements, statuses, regime="nis2")
"""

from spacecomply.scoring.maturity_calculator import (
    MATURITY_DESCRIPTIONS,
    ComplianceScore,
    MaturityCalculator,
    MaturityLevel,
    ScoreBreakdown,
    ScoringConfig,
    coerce_status,
    round_half_up,
)
from spacecomply.scoring.summary import (
    ComplianceSummary,
    letter_grade,
    module_status,
    summarize,
)

__all__ = [
    "MaturityCalculator",
    "ScoringConfig",
    "ComplianceScore",
    "ScoreBreakdown",
    "MaturityLevel",
    "MATURITY_DESCRIPTIONS",
    "coerce_status",
    "round_half_up",
    "ComplianceSummary",
    "summarize",
    "letter_grade",
    "module_status",
]
