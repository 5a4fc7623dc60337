"""
Tests for the reports module (json_exporter, pdf_generator).

Uses Python's unittest module with tempfile for file output tests.
Tests JSON export, compressed export, schemas and HTML report generation.
"""

from __future__ import annotations

import gzip
import json
import tempfile
import unittest
from datetime import UTC, datetime
from pathlib import Path

from spacecomply.config.settings import Settings
from spacecomply.engine import ComplianceEngine
from spacecomply.reports.json_exporter import (
    FULL_EXPORT_SCHEMA,
    GAPS_EXPORT_SCHEMA,
    ExportMetadata,
    ExportResult,
    JsonExporter,
)
from spacecomply.reports.pdf_generator import ReportConfig, ReportGenerator

INSURED_MISSION = {"operator_type": "spacecraft", "orbit_regime": "LEO"}


class TestExportDataclasses(unittest.TestCase):
    """Tests for export dataclasses."""

    def test_metadata_to_dict(self) -> None:
        """Test metadata serialization."""
        metadata = ExportMetadata(
            export_type="scores",
            timestamp=datetime(2025, 3, 1, tzinfo=UTC),
            version="0.1.0",
            organization="Orbital Ltd",
            regime="nis2",
        )

        data = metadata.to_dict()

        self.assertEqual(data["timestamp"], "2025-03-01T00:00:00+00:00")
        self.assertEqual(data["regime"], "nis2")
        self.assertIn("format_version", data)

    def test_result_to_dict(self) -> None:
        """Test export result serialization."""
        result = ExportResult(
            success=False,
            path=None,
            size_bytes=0,
            record_count=0,
            export_type="gaps",
            compressed=False,
            error="boom",
        )

        self.assertEqual(result.to_dict()["error"], "boom")
        self.assertIsNone(result.to_dict()["path"])


class ReportTestCase(unittest.TestCase):
    """Base class evaluating an insurance assessment in a temporary directory."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.output_dir = Path(self.temp_dir.name) / "out"
        self.engine = ComplianceEngine(
            Settings(data_dir=str(Path(self.temp_dir.name) / "data"))
        )
        assessment = self.engine.create_assessment(
            "insurance", "<b>Sat & Co</b>", INSURED_MISSION
        )
        self.engine.set_policy_status(assessment.id, "third_party_liability", "active")
        self.result = self.engine.evaluate(assessment.id)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()


class TestJsonExporter(ReportTestCase):
    """Tests for JsonExporter."""

    def setUp(self) -> None:
        super().setUp()
        self.exporter = JsonExporter(version="0.1.0", organization="Orbital Ltd")

    def test_export_scores(self) -> None:
        """Test exporting a score breakdown."""
        result = self.exporter.export_scores(
            self.result.breakdown, self.output_dir, assessment_id="a-1"
        )

        self.assertTrue(result.success)
        self.assertTrue(result.path.name.endswith("_scores_export.json"))
        with open(result.path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["metadata"]["assessment_id"], "a-1")
        self.assertEqual(data["metadata"]["organization"], "Orbital Ltd")
        self.assertEqual(data["overall"]["score"], self.result.score)
        self.assertEqual(result.size_bytes, result.path.stat().st_size)

    def test_export_gaps_compressed(self) -> None:
        """Test gzip compressed gap export."""
        result = self.exporter.export_gaps(
            self.result.gaps, self.output_dir, compress=True
        )

        self.assertTrue(result.success)
        self.assertTrue(result.compressed)
        self.assertTrue(result.path.name.endswith(".json.gz"))
        with gzip.open(result.path, "rt", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(result.record_count, len(self.result.gaps.all_gaps))
        self.assertEqual(len(data["gaps"]), result.record_count)
        self.assertEqual(data["schema"], GAPS_EXPORT_SCHEMA)

    def test_export_full(self) -> None:
        """Test the full export carries the regime output."""
        result = self.exporter.export_full(self.result, self.output_dir)

        with open(result.path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(result.record_count, 2)
        self.assertEqual(data["metadata"]["regime"], "insurance")
        self.assertEqual(data["assessment"]["name"], "<b>Sat & Co</b>")
        self.assertEqual(data["attribute_details"]["policy_score"], 50)
        self.assertIn("tpl_requirement", data["details"])

    def test_export_summary(self) -> None:
        """Test exporting the cross-regime summary."""
        result = self.exporter.export_summary(self.engine.summary(), self.output_dir)

        with open(result.path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(result.record_count, 5)
        self.assertIn("insurance", data["summary"]["regime_scores"])

    def test_export_invalid_path(self) -> None:
        """Test an unwritable output directory yields a failed result."""
        blocker = Path(self.temp_dir.name) / "blocker"
        blocker.write_text("not a directory")

        result = self.exporter.export_full(self.result, blocker / "sub")

        self.assertFalse(result.success)
        self.assertIsNone(result.path)
        self.assertIsNotNone(result.error)

    def test_get_schema(self) -> None:
        """Test schema lookup."""
        self.assertEqual(self.exporter.get_schema("full"), FULL_EXPORT_SCHEMA)
        self.assertEqual(self.exporter.get_schema("unknown"), {})


class TestReportGenerator(ReportTestCase):
    """Tests for ReportGenerator."""

    def test_generate_html(self) -> None:
        """Test HTML content covers the assessment."""
        generator = ReportGenerator(ReportConfig(organization="Orbital Ltd"))

        html = generator.generate_html(self.result)

        self.assertTrue(html.startswith("<!DOCTYPE html>"))
        self.assertIn("Orbital Ltd", html)
        self.assertIn("Insurance", html)
        self.assertTrue(html.rstrip().endswith("</html>"))

    def test_html_is_escaped(self) -> None:
        """Test user-provided text is escaped."""
        generator = ReportGenerator(ReportConfig(organization="A & B"))

        html = generator.generate_html(self.result)

        self.assertIn("&lt;b&gt;Sat &amp; Co&lt;/b&gt;", html)
        self.assertNotIn("<b>Sat", html)
        self.assertIn("A &amp; B", html)

    def test_details_section_optional(self) -> None:
        """Test the details section can be left out."""
        with_details = ReportGenerator().generate_html(self.result)
        without = ReportGenerator(ReportConfig(include_details=False)).generate_html(
            self.result
        )

        self.assertGreater(len(with_details), len(without))

    def test_generate_report_html_only(self) -> None:
        """Test the HTML file is written when PDF output is not requested."""
        generator = ReportGenerator(
            ReportConfig(report_date=datetime(2025, 3, 1, 12, 0, tzinfo=UTC))
        )

        result = generator.generate_report(self.result, self.output_dir, pdf=False)

        self.assertTrue(result.success)
        self.assertIsNone(result.pdf_path)
        self.assertEqual(result.html_path.name, "20250301_120000_insurance_report.html")
        self.assertTrue(result.html_path.exists())
        self.assertEqual(result.size_bytes, result.html_path.stat().st_size)


if __name__ == "__main__":
    unittest.main()
