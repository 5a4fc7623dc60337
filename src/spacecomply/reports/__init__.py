"""
Report generation for assessments.

Supported Formats:
    - JSON: Machine-readable exports with versioned metadata and schemas,
            optionally gzip compressed.
    - HTML: Browser-viewable report.
    - PDF: The HTML report rendered to PDF. Requires weasyprint.

Example:
    from spacecomply.reports import JsonExporter, ReportConfig, ReportGenerator

    exporter = JsonExporter(version="0.1.0", organization="Orbital Ltd")
    exporter.export_full(evaluation, Path("./exports"), compress=True)

    generator = ReportGenerator(ReportConfig(organization="Orbital Ltd"))
    generator.generate_report(evaluation, output_dir=Path("./reports"))
"""

from spacecomply.reports.json_exporter import (
    ExportMetadata,
    ExportResult,
    JsonExporter,
)
from spacecomply.reports.pdf_generator import (
    WEASYPRINT_AVAILABLE,
    ReportConfig,
    ReportGenerator,
    ReportResult,
)

__all__ = [
    # JSON Exporter
    "JsonExporter",
    "ExportMetadata",
    "ExportResult",
    # HTML/PDF
    "ReportGenerator",
    "ReportConfig",
    "ReportResult",
    "WEASYPRINT_AVAILABLE",
]
