"""
HTML and PDF report generation for assessments.

This module renders an evaluated assessment into a printable report:

Report Structure:
    - Cover with regime, assessment name, organization and date
    - Summary: score, maturity, classification and risk
    - Scores by category and by regime-specific grouping
    - Gap analysis with the highest-priority gaps and recommendations
    - Regime details (timelines, licenses, coverage estimates)

Requires the weasyprint optional dependency for PDF output.
Falls back to HTML-only output if weasyprint is not installed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from html import escape
from pathlib import Path
from typing import Any

from spacecomply.analysis.gap_analyzer import GapAnalysis
from spacecomply.engine import EvaluationResult
from spacecomply.scoring.maturity_calculator import MATURITY_DESCRIPTIONS, ScoreBreakdown

logger = logging.getLogger(__name__)

# Check for weasyprint availability
try:
    from weasyprint import CSS, HTML
    WEASYPRINT_AVAILABLE = True
except ImportError:
    WEASYPRINT_AVAILABLE = False
    logger.debug("weasyprint not installed - PDF generation unavailable")


# Monochrome print styles
REPORT_CSS = """
@page {
    size: A4;
    margin: 2cm;
    @top-right {
        content: counter(page);
        font-size: 9pt;
        color: #666666;
    }
}

body {
    font-family: "Helvetica Neue", Arial, sans-serif;
    font-size: 10.5pt;
    line-height: 1.45;
    color: #000000;
}

.cover {
    text-align: center;
    padding: 5cm 0 3cm 0;
}

.cover h1 {
    font-size: 30pt;
    font-weight: 300;
    border: none;
}

.cover .subtitle { font-size: 16pt; color: #333333; }
.cover .organization { font-size: 20pt; font-weight: 600; margin-top: 1.5em; }
.cover .date { font-size: 12pt; color: #666666; }

.page-break { page-break-after: always; }

h1 {
    font-size: 20pt;
    border-bottom: 2px solid #000000;
    padding-bottom: 0.2em;
}

h2 { font-size: 14pt; color: #333333; margin-top: 1.4em; }

.headline {
    text-align: center;
    padding: 1.5em;
    background: #f5f5f5;
    border-left: 4px solid #333333;
}

.headline .score { font-size: 48pt; font-weight: 700; }
.headline .label { font-size: 12pt; color: #666666; }

table { width: 100%; border-collapse: collapse; margin: 0.8em 0; }
th, td { padding: 0.5em; text-align: left; border-bottom: 1px solid #cccccc; }
th { background: #f0f0f0; font-weight: 600; }

.bar { background: #e0e0e0; height: 12px; width: 100%; }
.bar .fill { background: #333333; height: 100%; }

.gap-card { border: 1px solid #cccccc; padding: 0.7em; margin-bottom: 0.7em; }
.gap-card .header { font-weight: 600; }
.badge {
    display: inline-block;
    padding: 0.1em 0.4em;
    font-size: 8pt;
    border: 1px solid #000000;
    margin-left: 0.5em;
}
.badge.critical { background: #000000; color: #ffffff; }

pre { font-size: 8.5pt; background: #f5f5f5; padding: 0.7em; white-space: pre-wrap; }

.footer {
    margin-top: 2em;
    padding-top: 0.5em;
    border-top: 1px solid #cccccc;
    font-size: 8.5pt;
    color: #666666;
    text-align: center;
}
"""


@dataclass
class ReportConfig:
    """
    Configuration for report generation.

    Attributes:
        organization: Organization name for the cover.
        include_all_gaps: Whether to list every gap or only the top ones.
        max_gaps: Number of gaps listed when not listing all.
        include_details: Whether to append the regime details section.
        report_date: Date for the report.
        footer_text: Footer text.
    """

    organization: str = "Organization"
    include_all_gaps: bool = False
    max_gaps: int = 15
    include_details: bool = True
    report_date: datetime | None = None
    footer_text: str = "Generated by SpaceComply - Space Operator Compliance Tool"


@dataclass
class ReportResult:
    """
    Result of a report generation operation.

    Attributes:
        success: Whether generation succeeded.
        pdf_path: Path to PDF file (if generated).
        html_path: Path to HTML file.
        size_bytes: Size of the main generated file.
        error: Error message if failed.
    """

    success: bool
    pdf_path: Path | None
    html_path: Path | None
    size_bytes: int
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "pdf_path": str(self.pdf_path) if self.pdf_path else None,
            "html_path": str(self.html_path) if self.html_path else None,
            "size_bytes": self.size_bytes,
            "error": self.error,
        }


class ReportGenerator:
    """
    Generator for assessment reports.

    Example:
        generator = ReportGenerator(ReportConfig(organization="Orbital Ltd"))

        # HTML and, when weasyprint is installed, PDF
        result = generator.generate_report(evaluation, Path("./reports"))

        # HTML string only
        html = generator.generate_html(evaluation)

    Attributes:
        config: ReportConfig with generation settings.
    """

    def __init__(self, config: ReportConfig | None = None) -> None:
        self.config = config or ReportConfig()

    @property
    def pdf_available(self) -> bool:
        """Check if PDF generation is available."""
        return WEASYPRINT_AVAILABLE

    def generate_report(
        self,
        result: EvaluationResult,
        output_dir: Path | None = None,
        pdf: bool = True,
    ) -> ReportResult:
        """
        Write the report to disk.

        The HTML file is always written. A PDF is rendered next to it when
        requested and weasyprint is available; otherwise a warning is logged
        and only the HTML is produced.

        Args:
            result: EvaluationResult from the engine.
            output_dir: Directory to write report files.
            pdf: Whether to attempt PDF output.

        Returns:
            ReportResult with generation details.
        """
        if output_dir is None:
            output_dir = Path(".")
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        html_content = self.generate_html(result)

        report_date = self.config.report_date or datetime.now(UTC)
        stem = f"{report_date.strftime('%Y%m%d_%H%M%S')}_{result.regime}_report"

        html_path = output_dir / f"{stem}.html"
        with open(html_path, "w", encoding="utf-8") as f:
            f.write(html_content)

        pdf_path = None
        if pdf and WEASYPRINT_AVAILABLE:
            try:
                pdf_path = output_dir / f"{stem}.pdf"
                HTML(string=html_content).write_pdf(
                    pdf_path, stylesheets=[CSS(string=REPORT_CSS)]
                )
                logger.info("Generated PDF report: %s", pdf_path)
            except Exception as e:
                logger.error("Failed to generate PDF: %s", e)
                return ReportResult(
                    success=False,
                    pdf_path=None,
                    html_path=html_path,
                    size_bytes=html_path.stat().st_size,
                    error=f"PDF generation failed: {e}",
                )
        elif pdf:
            logger.warning(
                "weasyprint not installed - PDF generation skipped. "
                "Install with: pip install spacecomply[pdf]"
            )

        main_path = pdf_path if pdf_path and pdf_path.exists() else html_path
        return ReportResult(
            success=True,
            pdf_path=pdf_path,
            html_path=html_path,
            size_bytes=main_path.stat().st_size,
        )

    def generate_html(self, result: EvaluationResult) -> str:
        """
        Generate HTML report content.

        Args:
            result: EvaluationResult from the engine.

        Returns:
            HTML content string.
        """
        report_date = self.config.report_date or datetime.now(UTC)
        title = result.assessment.name if result.assessment else result.regime

        sections = [
            self._html_header(title),
            self._generate_cover(result, title, report_date.strftime("%B %d, %Y")),
            self._generate_summary_section(result),
            self._generate_scores_section(result.breakdown),
            self._generate_gaps_section(result.gaps),
        ]
        if self.config.include_details and result.details:
            sections.append(self._generate_details_section(result.details))
        sections.append(self._generate_footer())
        sections.append("</body></html>")

        return "\n".join(sections)

    def _html_header(self, title: str) -> str:
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Compliance Report - {escape(title)}</title>
    <style>{REPORT_CSS}</style>
</head>
<body>"""

    def _generate_cover(self, result: EvaluationResult, title: str, date_str: str) -> str:
        return f"""
<div class="cover">
    <h1>{escape(result.regime.replace("_", " ").title())}</h1>
    <div class="subtitle">Compliance Assessment Report: {escape(title)}</div>
    <div class="organization">{escape(self.config.organization)}</div>
    <div class="date">{date_str}</div>
</div>
<div class="page-break"></div>"""

    def _generate_summary_section(self, result: EvaluationResult) -> str:
        breakdown = result.breakdown
        findings = [
            f"Applicable requirements: {len(result.requirements)}",
            f"Requirements with gaps: {result.gaps.requirements_with_gaps} "
            f"({result.gaps.gap_percentage:.1f}%)",
            f"Critical gaps: {result.gaps.gaps_by_priority.get('critical', 0)}",
            f"Estimated remediation: {result.gaps.remediation_weeks} weeks",
        ]
        if result.classification:
            findings.append(
                f"Classification: {escape(str(_plain(result.classification.result)))} "
                f"({escape(result.classification.reason)})"
            )
        if result.simplified:
            findings.append("Simplified regime applies")
        if result.risk:
            findings.append(f"Risk level: {escape(str(_plain(result.risk.result)))}")
        if result.comparison:
            delta = result.comparison["overall_delta"]
            findings.append(
                f"Change since last evaluation: {delta:+d} "
                f"({result.comparison['overall_direction']})"
            )

        findings_html = "".join(f"<li>{finding}</li>" for finding in findings)

        return f"""
<h1>Summary</h1>

<div class="headline">
    <div class="score">{breakdown.score}</div>
    <div class="label">{breakdown.level.value.replace("_", " ").title()}</div>
</div>

<p>{escape(MATURITY_DESCRIPTIONS.get(breakdown.level, ""))}</p>

<h2>Key Findings</h2>
<ul>
{findings_html}
</ul>

<div class="page-break"></div>"""

    def _generate_scores_section(self, breakdown: ScoreBreakdown) -> str:
        sections = ["<h1>Scores</h1>", "<h2>By Category</h2>"]
        sections.append(self._score_table("Category", breakdown.by_category))
        for grouping, scores in breakdown.by_group.items():
            sections.append(f"<h2>By {escape(grouping.replace('_', ' ').title())}</h2>")
            sections.append(self._score_table(grouping.replace("_", " ").title(), scores))
        sections.append('<div class="page-break"></div>')
        return "\n".join(sections)

    def _score_table(self, label: str, scores: dict[str, Any]) -> str:
        rows = ""
        for key, score in scores.items():
            rows += f"""
<tr>
    <td>{escape(key)}</td>
    <td>{score.score}</td>
    <td><div class="bar"><div class="fill" style="width: {score.score}%;"></div></div></td>
    <td>{score.level.value.replace("_", " ")}</td>
    <td>{score.requirement_count}</td>
</tr>"""
        return f"""
<table>
    <thead>
        <tr><th>{escape(label)}</th><th>Score</th><th>Progress</th><th>Maturity</th><th>Requirements</th></tr>
    </thead>
    <tbody>{rows}
    </tbody>
</table>"""

    def _generate_gaps_section(self, gaps: GapAnalysis) -> str:
        distribution = "".join(
            f"<tr><td>{priority.title()}</td><td>{count}</td></tr>"
            for priority, count in gaps.gaps_by_priority.items()
        )

        listed = gaps.all_gaps
        if not self.config.include_all_gaps:
            listed = listed[: self.config.max_gaps]

        cards = ""
        for gap in listed:
            badge_class = "badge critical" if gap.priority.value == "critical" else "badge"
            rec_html = ""
            if gap.recommendations:
                rec_html = (
                    "<div><strong>Recommendation:</strong> "
                    f"{escape(gap.recommendations[0].action)}</div>"
                )
            cards += f"""
<div class="gap-card">
    <div class="header">{escape(gap.requirement_id)} - {escape(gap.title)}
        <span class="{badge_class}">{gap.priority.value.upper()}</span></div>
    <div>{escape(gap.reference)} | {gap.status.value.replace("_", " ")} | {gap.effort.value} effort</div>
    <div>{escape(gap.explanation)}</div>
    {rec_html}
</div>"""

        if not cards:
            cards = "<p>No gaps identified.</p>"

        return f"""
<h1>Gap Analysis</h1>

<p>{gaps.requirements_with_gaps} of {gaps.total_requirements} applicable
requirements have gaps ({gaps.gap_percentage:.1f}%).</p>

<table>
    <thead><tr><th>Priority</th><th>Count</th></tr></thead>
    <tbody>{distribution}</tbody>
</table>

<h2>Priority Gaps</h2>
{cards}

<div class="page-break"></div>"""

    def _generate_details_section(self, details: dict[str, Any]) -> str:
        parts = ["<h1>Regime Details</h1>"]
        for key, value in details.items():
            parts.append(f"<h2>{escape(key.replace('_', ' ').title())}</h2>")
            if isinstance(value, (dict, list)):
                parts.append(
                    f"<pre>{escape(json.dumps(value, indent=2, default=str))}</pre>"
                )
            else:
                parts.append(f"<p>{escape(str(value))}</p>")
        return "\n".join(parts)

    def _generate_footer(self) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
        return f"""
<div class="footer">
    {escape(self.config.footer_text)}<br>
    Report generated: {timestamp}
</div>"""


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)
