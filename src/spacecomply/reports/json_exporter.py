"""
JSON export functionality for assessment results.

This module exports scores, gap analysis and complete evaluations in
machine-readable JSON format. All exports include versioned metadata for
traceability and embed the JSON schema they follow.

Export Types:
    - full: Complete evaluation (scores, gaps, classification, details)
    - scores: Score breakdown only
    - gaps: Gap analysis and recommendations only
    - summary: Cross-regime summary
"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from spacecomply.analysis.gap_analyzer import GapAnalysis
from spacecomply.engine import EvaluationResult
from spacecomply.scoring.maturity_calculator import ScoreBreakdown
from spacecomply.scoring.summary import ComplianceSummary

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"


# JSON Schema definitions for export validation
SCORES_EXPORT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SpaceComply Score Export",
    "type": "object",
    "required": ["metadata", "overall", "by_category"],
    "properties": {
        "metadata": {
            "type": "object",
            "required": ["export_type", "timestamp", "version", "format_version"],
        },
        "overall": {"type": "object"},
        "by_category": {"type": "object"},
        "by_group": {"type": "object"},
        "statistics": {"type": "object"},
    },
}

GAPS_EXPORT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SpaceComply Gap Analysis Export",
    "type": "object",
    "required": ["metadata", "summary", "gaps"],
    "properties": {
        "metadata": {"type": "object"},
        "summary": {"type": "object"},
        "gaps": {"type": "array"},
        "recommendations": {"type": "array"},
    },
}

FULL_EXPORT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SpaceComply Full Export",
    "type": "object",
    "required": ["metadata", "assessment", "scores", "gaps"],
    "properties": {
        "metadata": {"type": "object"},
        "assessment": {"type": ["object", "null"]},
        "profile": {"type": "object"},
        "classification": {"type": ["object", "null"]},
        "risk": {"type": ["object", "null"]},
        "scores": {"type": "object"},
        "gaps": {"type": "object"},
        "details": {"type": "object"},
        "comparison": {"type": ["object", "null"]},
    },
}

SUMMARY_EXPORT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SpaceComply Summary Export",
    "type": "object",
    "required": ["metadata", "summary"],
    "properties": {
        "metadata": {"type": "object"},
        "summary": {"type": "object"},
    },
}

SCHEMAS = {
    "scores": SCORES_EXPORT_SCHEMA,
    "gaps": GAPS_EXPORT_SCHEMA,
    "full": FULL_EXPORT_SCHEMA,
    "summary": SUMMARY_EXPORT_SCHEMA,
}


@dataclass
class ExportMetadata:
    """
    Metadata included in all exports.

    Attributes:
        export_type: Type of export (full, scores, gaps, summary).
        timestamp: When the export was created.
        version: SpaceComply version that created the export.
        organization: Organization name (from config).
        regime: Regime of the exported assessment, if any.
        assessment_id: Exported assessment, if any.
    """

    export_type: str
    timestamp: datetime
    version: str
    organization: str | None = None
    regime: str | None = None
    assessment_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "export_type": self.export_type,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "organization": self.organization,
            "regime": self.regime,
            "assessment_id": self.assessment_id,
            "format_version": EXPORT_FORMAT_VERSION,
        }


@dataclass
class ExportResult:
    """
    Result of an export operation.

    Attributes:
        success: Whether the export completed successfully.
        path: Path to the exported file.
        size_bytes: Size of the exported file in bytes.
        record_count: Number of records exported.
        export_type: Type of export performed.
        compressed: Whether the file is compressed.
        error: Error message if export failed.
    """

    success: bool
    path: Path | None
    size_bytes: int
    record_count: int
    export_type: str
    compressed: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "path": str(self.path) if self.path else None,
            "size_bytes": self.size_bytes,
            "record_count": self.record_count,
            "export_type": self.export_type,
            "compressed": self.compressed,
            "error": self.error,
        }


def _gap_summary(gaps: GapAnalysis) -> dict[str, Any]:
    return {
        "total_requirements": gaps.total_requirements,
        "requirements_with_gaps": gaps.requirements_with_gaps,
        "gap_percentage": gaps.gap_percentage,
        "gaps_by_priority": gaps.gaps_by_priority,
        "gaps_by_type": gaps.gaps_by_type,
        "remediation_weeks": gaps.remediation_weeks,
    }


class JsonExporter:
    """
    Exporter for JSON format assessment data.

    Example:
        exporter = JsonExporter(version="0.1.0", organization="Orbital Ltd")

        # Export one evaluation
        result = exporter.export_full(evaluation, Path("./exports"))

        # Export only the gaps, compressed
        result = exporter.export_gaps(evaluation.gaps, Path("./exports"), compress=True)

    Attributes:
        version: SpaceComply version string.
        organization: Organization name for metadata.
    """

    def __init__(
        self,
        version: str = "0.1.0",
        organization: str | None = None,
    ) -> None:
        self.version = version
        self.organization = organization

    def build_scores(
        self, breakdown: ScoreBreakdown, assessment_id: str | None = None
    ) -> dict[str, Any]:
        """Build the scores export document."""
        data = breakdown.to_dict()
        return {
            "metadata": self._metadata("scores", breakdown.regime, assessment_id),
            "overall": data["overall"],
            "by_category": data["by_category"],
            "by_group": data["by_group"],
            "statistics": data["statistics"],
            "schema": SCORES_EXPORT_SCHEMA,
        }

    def build_gaps(
        self, gaps: GapAnalysis, assessment_id: str | None = None
    ) -> dict[str, Any]:
        """Build the gap analysis export document."""
        return {
            "metadata": self._metadata("gaps", gaps.regime, assessment_id),
            "summary": _gap_summary(gaps),
            "gaps": [g.to_dict() for g in gaps.all_gaps],
            "critical_gaps": [g.to_dict() for g in gaps.critical_gaps],
            "quick_wins": [g.to_dict() for g in gaps.quick_wins],
            "recommendations": [r.to_dict() for r in gaps.top_recommendations],
            "gaps_by_category": {
                k: [g.requirement_id for g in v]
                for k, v in gaps.gaps_by_category.items()
            },
            "schema": GAPS_EXPORT_SCHEMA,
        }

    def build_full(self, result: EvaluationResult) -> dict[str, Any]:
        """Build the complete export document for one evaluation."""
        assessment_id = result.assessment.id if result.assessment else None
        return {
            "metadata": self._metadata("full", result.regime, assessment_id),
            "assessment": result.assessment.to_dict() if result.assessment else None,
            "profile": result.profile.to_dict(),
            "classification": (
                result.classification.to_dict() if result.classification else None
            ),
            "simplified": result.simplified,
            "risk": result.risk.to_dict() if result.risk else None,
            "statuses": {k: v.value for k, v in result.statuses.items()},
            "scores": result.breakdown.to_dict(),
            "gaps": {
                "summary": _gap_summary(result.gaps),
                "all_gaps": [g.to_dict() for g in result.gaps.all_gaps],
                "critical_gaps": [g.requirement_id for g in result.gaps.critical_gaps],
                "quick_wins": [g.requirement_id for g in result.gaps.quick_wins],
                "top_recommendations": [
                    r.to_dict() for r in result.gaps.top_recommendations
                ],
            },
            "details": result.details,
            "attribute_details": result.attribute_details,
            "comparison": result.comparison,
            "schema": FULL_EXPORT_SCHEMA,
        }

    def build_summary(self, summary: ComplianceSummary) -> dict[str, Any]:
        return {
            "metadata": self._metadata("summary"),
            "summary": summary.to_dict(),
            "schema": SUMMARY_EXPORT_SCHEMA,
        }

    def export_scores(
        self,
        breakdown: ScoreBreakdown,
        output_dir: Path,
        compress: bool = False,
        assessment_id: str | None = None,
    ) -> ExportResult:
        """
        Export a score breakdown to JSON.

        Args:
            breakdown: ScoreBreakdown from the calculator.
            output_dir: Directory to write export file.
            compress: Whether to gzip compress the output.
            assessment_id: Assessment recorded in the metadata.

        Returns:
            ExportResult with export details.
        """
        return self._export(
            "scores",
            lambda: self.build_scores(breakdown, assessment_id),
            1 + len(breakdown.by_category),
            output_dir,
            compress,
        )

    def export_gaps(
        self,
        gaps: GapAnalysis,
        output_dir: Path,
        compress: bool = False,
        assessment_id: str | None = None,
    ) -> ExportResult:
        """
        Export a gap analysis to JSON.

        Args:
            gaps: GapAnalysis from the analyzer.
            output_dir: Directory to write export file.
            compress: Whether to gzip compress the output.
            assessment_id: Assessment recorded in the metadata.

        Returns:
            ExportResult with export details.
        """
        return self._export(
            "gaps",
            lambda: self.build_gaps(gaps, assessment_id),
            len(gaps.all_gaps),
            output_dir,
            compress,
        )

    def export_full(
        self,
        result: EvaluationResult,
        output_dir: Path,
        compress: bool = False,
    ) -> ExportResult:
        """
        Export a complete evaluation to JSON.

        Args:
            result: EvaluationResult from the engine.
            output_dir: Directory to write export file.
            compress: Whether to gzip compress the output.

        Returns:
            ExportResult with export details.
        """
        return self._export(
            "full",
            lambda: self.build_full(result),
            len(result.requirements),
            output_dir,
            compress,
        )

    def export_summary(
        self,
        summary: ComplianceSummary,
        output_dir: Path,
        compress: bool = False,
    ) -> ExportResult:
        return self._export(
            "summary",
            lambda: self.build_summary(summary),
            len(summary.regime_status),
            output_dir,
            compress,
        )

    def _export(
        self,
        export_type: str,
        build: Any,
        record_count: int,
        output_dir: Path,
        compress: bool,
    ) -> ExportResult:
        try:
            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)

            export_data = build()
            filepath = output_dir / self._generate_filename(export_type, compress)
            size_bytes = self._write_json(export_data, filepath, compress)

            logger.info(
                "Exported %s data to %s (%d bytes)", export_type, filepath, size_bytes
            )

            return ExportResult(
                success=True,
                path=filepath,
                size_bytes=size_bytes,
                record_count=record_count,
                export_type=export_type,
                compressed=compress,
            )

        except Exception as e:
            logger.error("Failed to export %s data: %s", export_type, e)
            return ExportResult(
                success=False,
                path=None,
                size_bytes=0,
                record_count=0,
                export_type=export_type,
                compressed=compress,
                error=str(e),
            )

    def _metadata(
        self,
        export_type: str,
        regime: str | None = None,
        assessment_id: str | None = None,
    ) -> dict[str, Any]:
        return ExportMetadata(
            export_type=export_type,
            timestamp=datetime.now(UTC),
            version=self.version,
            organization=self.organization,
            regime=regime or None,
            assessment_id=assessment_id,
        ).to_dict()

    def _generate_filename(self, export_type: str, compress: bool) -> str:
        """Generate filename with timestamp."""
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        extension = ".json.gz" if compress else ".json"
        return f"{timestamp}_{export_type}_export{extension}"

    def _write_json(
        self,
        data: dict[str, Any],
        filepath: Path,
        compress: bool,
    ) -> int:
        """
        Write JSON data to file.

        Returns:
            Size of written file in bytes.
        """
        json_content = json.dumps(data, indent=2, default=str)

        if compress:
            with gzip.open(filepath, "wt", encoding="utf-8") as f:
                f.write(json_content)
        else:
            with open(filepath, "w", encoding="utf-8") as f:
                f.write(json_content)

        return filepath.stat().st_size

    def get_schema(self, export_type: str) -> dict[str, Any]:
        """
        Get JSON schema for an export type.

        Returns:
            JSON schema dictionary, empty for unknown types.
        """
        return SCHEMAS.get(export_type, {})
