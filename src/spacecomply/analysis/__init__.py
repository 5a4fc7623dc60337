"""
Gap analysis for compliance assessments.

The GapAnalyzer lists every applicable requirement that is not met,
prioritizes the gaps and attaches remediation recommendations and effort
estimates drawn from the requirement catalogs.

Example:
    from spacecomply.analysis import GapAnalyzer

    analyzer = GapAnalyzer()
    analysis = analyzer.analyze_gaps(requirements, statuses, regime="nis2")
    critical_gaps = analyzer.get_critical_gaps()
    quick_wins = analyzer.get_quick_wins()
"""

from spacecomply.analysis.gap_analyzer import (
    Effort,
    Gap,
    GapAnalysis,
    GapAnalyzer,
    GapAnalyzerConfig,
    GapType,
    Impact,
    Priority,
    Recommendation,
)

__all__ = [
    "GapAnalyzer",
    "GapAnalyzerConfig",
    "Gap",
    "GapAnalysis",
    "GapType",
    "Priority",
    "Recommendation",
    "Effort",
    "Impact",
]
