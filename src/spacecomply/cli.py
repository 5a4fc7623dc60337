"""
Command-line interface for SpaceComply.

Provides commands for browsing the requirement catalogs, classifying
profiles, managing assessments, scoring, gap analysis, and reporting.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

from spacecomply import __version__
from spacecomply.catalog.loader import CatalogError
from spacecomply.config.settings import (
    DEFAULT_CONFIG_DIR,
    ConfigurationError,
    Settings,
    get_config_path,
    load_config,
    save_config,
)
from spacecomply.regimes.base import ProfileValidationError
from spacecomply.storage.assessment_store import StorageError

# Set up logging
logger = logging.getLogger(__name__)

# Global verbosity settings (set during main() based on args)
_quiet_mode = False
_verbose_level = 0

REGIME_CHOICES = ["nis2", "cybersecurity", "export_control", "insurance", "us_regulatory"]
STATUS_CHOICES = ["compliant", "partial", "non_compliant", "not_assessed", "not_applicable"]


def set_output_mode(quiet: bool = False, verbose: int = 0) -> None:
    """
    Set the output mode for the CLI.

    Args:
        quiet: If True, suppress non-essential output.
        verbose: Verbosity level (0=normal, 1+=verbose).
    """
    global _quiet_mode, _verbose_level
    _quiet_mode = quiet
    _verbose_level = verbose


def output(message: str = "", force: bool = False) -> None:
    """
    Print a message to stdout, respecting quiet mode.

    Args:
        message: The message to print.
        force: If True, print even in quiet mode (for essential output like JSON/CSV).
    """
    if force or not _quiet_mode:
        print(message)


def output_verbose(message: str, level: int = 1) -> None:
    """
    Print a verbose message only if verbosity is high enough.

    Args:
        message: The message to print.
        level: Required verbosity level to show this message.
    """
    if _verbose_level >= level and not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """
    Print an error message (always shown, even in quiet mode).

    Args:
        message: The error message to print.
    """
    print(message, file=sys.stderr)


def format_as_csv(headers: list[str], rows: list[list[Any]]) -> str:
    """
    Format data as CSV string.

    Args:
        headers: Column headers.
        rows: List of row data (each row is a list of values).

    Returns:
        CSV formatted string.
    """
    import csv
    import io

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue()


def _add_format_argument(
    parser: argparse.ArgumentParser, choices: list[str] | None = None
) -> None:
    parser.add_argument(
        "--format",
        choices=choices or ["table", "json", "csv"],
        default="table",
        help="Output format (default: table)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for SpaceComply CLI."""
    parser = argparse.ArgumentParser(
        prog="spacecomply",
        description="Regulatory compliance assessment for space operators",
        epilog="Regimes: " + ", ".join(REGIME_CHOICES),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"spacecomply {__version__}",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.spacecomply/config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # info command
    info_parser = subparsers.add_parser(
        "info",
        help="Show system information and diagnostics",
        description="Display version, configuration paths, and storage statistics.",
    )
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    info_parser.set_defaults(func=cmd_info)

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize SpaceComply configuration",
        description="Write the default configuration file and create data directories.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing configuration file",
    )
    init_parser.set_defaults(func=cmd_init)

    # regimes command
    regimes_parser = subparsers.add_parser(
        "regimes",
        help="List regimes with catalog statistics",
        description="List the supported regulatory regimes and their requirement catalogs.",
    )
    _add_format_argument(regimes_parser)
    regimes_parser.set_defaults(func=cmd_regimes)

    # requirements command
    requirements_parser = subparsers.add_parser(
        "requirements",
        help="List or export a requirement catalog",
        description="List a regime's requirements, optionally only those applicable to a profile.",
    )
    requirements_parser.add_argument("regime", choices=REGIME_CHOICES, help="Regime key")
    requirements_parser.add_argument(
        "--profile",
        metavar="PATH",
        help="Only list requirements applicable to this profile (YAML or JSON)",
    )
    requirements_parser.add_argument(
        "--category",
        metavar="NAME",
        help="Filter by category",
    )
    requirements_parser.add_argument(
        "--severity",
        choices=["critical", "major", "minor"],
        help="Filter by severity",
    )
    requirements_parser.add_argument(
        "--output",
        metavar="PATH",
        help="Write the full catalog as JSON to this file",
    )
    requirements_parser.add_argument(
        "--redact",
        action="store_true",
        help="Only show id, reference, category, title and severity",
    )
    _add_format_argument(requirements_parser)
    requirements_parser.set_defaults(func=cmd_requirements)

    # classify command
    classify_parser = subparsers.add_parser(
        "classify",
        help="Classify a profile and check eligibility",
        description="Classify an organization and list applicable requirements without storing anything.",
    )
    classify_parser.add_argument("regime", choices=REGIME_CHOICES, help="Regime key")
    classify_parser.add_argument(
        "--profile",
        metavar="PATH",
        required=True,
        help="Profile file (YAML or JSON)",
    )
    classify_parser.add_argument(
        "--suggest",
        action="store_true",
        help="Suggest starting statuses from existing capabilities (NIS2)",
    )
    _add_format_argument(classify_parser, ["table", "json"])
    classify_parser.set_defaults(func=cmd_classify)

    # assess command group
    assess_parser = subparsers.add_parser(
        "assess",
        help="Manage assessments",
        description="Create, inspect, update and delete assessments.",
    )
    assess_parser.set_defaults(func=lambda args: _print_help(assess_parser))
    assess_subparsers = assess_parser.add_subparsers(
        title="assess commands",
        dest="assess_command",
        metavar="<action>",
    )

    assess_create_parser = assess_subparsers.add_parser(
        "create",
        help="Create an assessment from a profile",
    )
    assess_create_parser.add_argument("regime", choices=REGIME_CHOICES, help="Regime key")
    assess_create_parser.add_argument("--name", required=True, help="Assessment name")
    assess_create_parser.add_argument(
        "--profile",
        metavar="PATH",
        required=True,
        help="Profile file (YAML or JSON)",
    )
    assess_create_parser.set_defaults(func=cmd_assess_create)

    assess_list_parser = assess_subparsers.add_parser("list", help="List assessments")
    assess_list_parser.add_argument("--regime", choices=REGIME_CHOICES, help="Filter by regime")
    assess_list_parser.add_argument(
        "--all",
        action="store_true",
        dest="include_deleted",
        help="Include deleted assessments",
    )
    _add_format_argument(assess_list_parser)
    assess_list_parser.set_defaults(func=cmd_assess_list)

    assess_show_parser = assess_subparsers.add_parser(
        "show", help="Show an assessment and its statuses"
    )
    assess_show_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    _add_format_argument(assess_show_parser)
    assess_show_parser.set_defaults(func=cmd_assess_show)

    assess_profile_parser = assess_subparsers.add_parser(
        "profile",
        help="Replace an assessment's profile",
        description="Replace the profile; statuses of requirements no longer applicable are removed.",
    )
    assess_profile_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    assess_profile_parser.add_argument(
        "--profile",
        metavar="PATH",
        required=True,
        help="Profile file (YAML or JSON)",
    )
    assess_profile_parser.set_defaults(func=cmd_assess_profile)

    assess_status_parser = assess_subparsers.add_parser(
        "status",
        help="Set the status of a requirement",
    )
    assess_status_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    assess_status_parser.add_argument("requirement_id", metavar="REQUIREMENT", help="Requirement ID")
    assess_status_parser.add_argument(
        "status",
        help=f"One of: {', '.join(STATUS_CHOICES)} (policy statuses with --policy)",
    )
    assess_status_parser.add_argument("--notes", help="Notes to store with the status")
    assess_status_parser.add_argument(
        "--evidence",
        action="append",
        metavar="REF",
        help="Evidence reference (can be repeated)",
    )
    assess_status_parser.add_argument(
        "--policy",
        action="store_true",
        help="Treat STATUS as an insurance policy status",
    )
    assess_status_parser.set_defaults(func=cmd_assess_status)

    assess_delete_parser = assess_subparsers.add_parser("delete", help="Delete an assessment")
    assess_delete_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    assess_delete_parser.add_argument(
        "--hard",
        action="store_true",
        help="Remove permanently instead of hiding",
    )
    assess_delete_parser.set_defaults(func=cmd_assess_delete)

    # score command
    score_parser = subparsers.add_parser(
        "score",
        help="Score an assessment",
        description="Calculate scores and record a score snapshot.",
    )
    score_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    score_parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not record a score snapshot",
    )
    _add_format_argument(score_parser)
    score_parser.set_defaults(func=cmd_score)

    # gaps command
    gaps_parser = subparsers.add_parser(
        "gaps",
        help="Show gap analysis",
        description="Display unmet requirements with recommendations.",
    )
    gaps_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    gaps_parser.add_argument(
        "--priority",
        choices=["critical", "high", "medium", "low"],
        help="Filter by priority level",
    )
    gaps_parser.add_argument(
        "--category",
        metavar="NAME",
        help="Filter by category",
    )
    _add_format_argument(gaps_parser)
    gaps_parser.set_defaults(func=cmd_gaps)

    # summary command
    summary_parser = subparsers.add_parser(
        "summary",
        help="Show the cross-regime summary",
        description="Weighted overall score across the latest evaluated assessment of each regime.",
    )
    _add_format_argument(summary_parser)
    summary_parser.set_defaults(func=cmd_summary)

    # export command
    export_parser = subparsers.add_parser(
        "export",
        help="Export assessment results to JSON",
        description="Export scores and gap analysis for external use.",
    )
    export_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    export_parser.add_argument(
        "--type",
        choices=["full", "scores", "gaps"],
        default="full",
        help="Export type (default: full)",
    )
    export_parser.add_argument(
        "--output",
        metavar="PATH",
        help="Output directory path",
    )
    export_parser.add_argument(
        "--compress",
        action="store_true",
        help="Compress output with gzip",
    )
    export_parser.set_defaults(func=cmd_export)

    # report command
    report_parser = subparsers.add_parser(
        "report",
        help="Generate assessment report",
        description="Generate an HTML or PDF report for an assessment.",
    )
    report_parser.add_argument("assessment_id", metavar="ID", help="Assessment ID")
    report_parser.add_argument(
        "--format",
        choices=["pdf", "html"],
        default="pdf",
        help="Report format (default: pdf)",
    )
    report_parser.add_argument(
        "--output",
        metavar="PATH",
        help="Output directory path",
    )
    report_parser.set_defaults(func=cmd_report)

    return parser


def setup_logging(verbose: int, quiet: bool) -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.WARNING
    elif verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _print_help(parser: argparse.ArgumentParser) -> int:
    parser.print_help()
    return 0


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config) if args.config else None
    return load_config(config_path)


def _get_engine(args: argparse.Namespace):
    from spacecomply.engine import ComplianceEngine

    return ComplianceEngine(_load_settings(args))


def _load_profile_file(path: str) -> dict[str, Any]:
    """
    Read a profile document from a YAML or JSON file.

    Raises:
        ProfileValidationError: If the file cannot be read or is not a mapping.
    """
    import yaml

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ProfileValidationError(f"Cannot read profile file: {e}") from e
    except yaml.YAMLError as e:
        raise ProfileValidationError(f"Invalid profile file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProfileValidationError("Profile file must contain a mapping")
    return data


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def _output_details(details: dict[str, Any], indent: str = "  ") -> None:
    for key, value in details.items():
        label = key.replace("_", " ").capitalize()
        if isinstance(value, (dict, list)):
            output(f"{indent}{label}:")
            for line in json.dumps(value, indent=2, default=str).splitlines():
                output(f"{indent}  {line}")
        else:
            output(f"{indent}{label}: {value}")


# =============================================================================
# General commands
# =============================================================================

def cmd_info(args: argparse.Namespace) -> int:
    """Show system information and diagnostics."""
    import platform as platform_module

    from spacecomply.reports import WEASYPRINT_AVAILABLE
    from spacecomply.storage import AssessmentStore

    config_path = Path(args.config) if args.config else get_config_path()
    info: dict[str, Any] = {
        "version": __version__,
        "python_version": platform_module.python_version(),
        "platform": platform_module.platform(),
        "config_dir": str(DEFAULT_CONFIG_DIR),
        "config_file": str(config_path),
        "initialized": config_path.exists(),
        "data_dir": None,
        "storage": None,
        "optional_dependencies": {
            "weasyprint": WEASYPRINT_AVAILABLE,
        },
    }

    try:
        settings = load_config(config_path)
        info["data_dir"] = str(settings.data_dir)

        try:
            stats = AssessmentStore(Path(settings.data_dir)).get_statistics()
            info["storage"] = {
                "total_assessments": stats.get("total_assessments", 0),
                "deleted_assessments": stats.get("deleted_assessments", 0),
                "total_snapshots": stats.get("total_snapshots", 0),
                "assessments_by_regime": stats.get("assessments_by_regime", {}),
                "database_size_mb": round(
                    stats.get("database_size_bytes", 0) / 1024 / 1024, 2
                ),
            }
        except StorageError as e:
            info["storage"] = {"error": str(e)}

    except ConfigurationError as e:
        info["config_error"] = str(e)

    if args.json:
        output(json.dumps(info, indent=2, default=str), force=True)
    else:
        output("SpaceComply System Information")
        output("=" * 60)
        output()
        output(f"Version: {info['version']}")
        output(f"Python: {info['python_version']}")
        output(f"Platform: {info['platform']}")
        output()
        output("Paths:")
        output(f"  Config file: {info['config_file']}")
        if info["data_dir"]:
            output(f"  Data directory: {info['data_dir']}")
        output(f"  Initialized: {'Yes' if info['initialized'] else 'No'}")
        if "config_error" in info:
            output(f"  Configuration error: {info['config_error']}")
        output()
        output("Optional Dependencies:")
        for dep, available in info["optional_dependencies"].items():
            status = "installed" if available else "not installed"
            output(f"  {dep}: {status}")
        output()
        if info["storage"] and "error" not in info["storage"]:
            storage = info["storage"]
            output("Storage Statistics:")
            output(f"  Assessments: {storage['total_assessments']:,}")
            output(f"  Deleted assessments: {storage['deleted_assessments']:,}")
            output(f"  Score snapshots: {storage['total_snapshots']:,}")
            output(f"  Database size: {storage['database_size_mb']:.2f} MB")
            if storage["assessments_by_regime"]:
                output("  Assessments by regime:")
                for regime, count in storage["assessments_by_regime"].items():
                    output(f"    {regime}: {count:,}")

    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize SpaceComply configuration."""
    config_path = Path(args.config) if args.config else get_config_path()

    output("SpaceComply Initialization")
    output("=" * 50)
    output()

    if config_path.exists() and not args.force:
        output(f"Configuration already exists: {config_path}")
        output("Use --force to overwrite it with the defaults.")
        return 0

    settings = Settings()
    save_config(settings, config_path)
    output(f"Configuration file created: {config_path}")

    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.reporting.output_dir).mkdir(parents=True, exist_ok=True)

    output()
    output("Initialization complete.")
    output()
    output("Next steps:")
    output("  1. Run 'spacecomply classify <regime> --profile profile.yaml'")
    output("  2. Run 'spacecomply assess create <regime> --name NAME --profile profile.yaml'")
    output("  3. Record statuses with 'spacecomply assess status ID REQUIREMENT STATUS'")
    output("  4. Run 'spacecomply score ID' and 'spacecomply gaps ID'")
    output()

    return 0


def cmd_regimes(args: argparse.Namespace) -> int:
    """List regimes with catalog statistics."""
    from spacecomply.catalog import get_catalog
    from spacecomply.regimes import list_regimes

    rows = []
    for definition in list_regimes():
        stats = get_catalog(definition.regime).get_statistics()
        rows.append({
            "regime": definition.regime.value,
            "name": definition.name,
            "requirements": stats["requirements"],
            "categories": stats["categories"],
            "mandatory": stats["mandatory"],
            "by_severity": stats["by_severity"],
        })

    if args.format == "json":
        output(json.dumps(rows, indent=2), force=True)
    elif args.format == "csv":
        headers = ["Regime", "Name", "Requirements", "Categories", "Mandatory"]
        output(
            format_as_csv(
                headers,
                [
                    [r["regime"], r["name"], r["requirements"], r["categories"], r["mandatory"]]
                    for r in rows
                ],
            ),
            force=True,
        )
    else:
        output()
        output("Regulatory Regimes")
        output("=" * 60)
        output(f"{'Regime':<16} {'Name':<28} {'Reqs':>6} {'Cats':>6}")
        output("-" * 60)
        for r in rows:
            output(f"{r['regime']:<16} {r['name']:<28} {r['requirements']:>6} {r['categories']:>6}")
        output("-" * 60)

    return 0


def cmd_requirements(args: argparse.Namespace) -> int:
    """List or export a requirement catalog."""
    from spacecomply.catalog import export_catalog_json, get_catalog, redact_requirements

    if args.output:
        export_catalog_json(args.regime, args.output)
        output(f"Catalog written to: {args.output}")
        return 0

    if args.profile:
        engine = _get_engine(args)
        profile = engine.build_profile(args.regime, _load_profile_file(args.profile))
        requirements = engine.applicable_requirements(args.regime, profile)
        output_verbose(f"{len(requirements)} requirements applicable to profile")
    else:
        requirements = list(get_catalog(args.regime))

    if args.category:
        requirements = [r for r in requirements if r.category == args.category]
    if args.severity:
        requirements = [r for r in requirements if r.severity.value == args.severity]

    if args.format == "json":
        records = (
            redact_requirements(requirements)
            if args.redact
            else [r.to_dict() for r in requirements]
        )
        output(json.dumps(records, indent=2), force=True)
    elif args.format == "csv":
        headers = ["ID", "Reference", "Category", "Severity", "Mandatory", "Title"]
        rows = [
            [r.id, r.reference, r.category, r.severity.value, r.mandatory, r.title]
            for r in requirements
        ]
        if args.redact:
            headers.remove("Mandatory")
            rows = [row[:4] + row[5:] for row in rows]
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output(f"{args.regime} requirements ({len(requirements)})")
        output("=" * 70)
        for r in requirements:
            output(f"{r.id:<18} {r.severity.value:<9} {r.reference:<22} {r.title}")

    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    """Classify a profile without storing it."""
    engine = _get_engine(args)
    result = engine.classify_profile(
        args.regime, _load_profile_file(args.profile), suggest=args.suggest
    )

    if args.format == "json":
        output(json.dumps(result, indent=2, default=str), force=True)
        return 0

    output()
    output(f"{result['name']} Classification")
    output("=" * 60)
    output()
    classification = result["classification"]
    if classification:
        output(f"Result: {classification['result']}")
        output(f"Reason: {classification['reason']}")
        if classification.get("reference"):
            output(f"Reference: {classification['reference']}")
    output(f"Simplified regime: {'Yes' if result['simplified'] else 'No'}")
    output(f"Applicable requirements: {len(result['applicable_requirements'])}")
    output()
    if result["details"]:
        output("Details:")
        _output_details(result["details"])
    if "suggested_statuses" in result:
        suggested = {
            rid: s for rid, s in result["suggested_statuses"].items()
            if s["status"] != "not_assessed"
        }
        output()
        output(f"Suggested statuses ({len(suggested)} partially met):")
        for rid, suggestion in suggested.items():
            output(f"  {rid:<18} {suggestion['status']:<10} {suggestion['reason']}")

    return 0


# =============================================================================
# Assessment commands
# =============================================================================

def cmd_assess_create(args: argparse.Namespace) -> int:
    """Create an assessment."""
    engine = _get_engine(args)
    assessment = engine.create_assessment(
        args.regime, args.name, _load_profile_file(args.profile)
    )
    statuses = engine.store.get_statuses(assessment.id)

    output(f"Created assessment: {assessment.id}", force=True)
    output(f"  Regime: {assessment.regime}")
    output(f"  Applicable requirements: {len(statuses)}")
    return 0


def cmd_assess_list(args: argparse.Namespace) -> int:
    """List assessments."""
    engine = _get_engine(args)
    assessments = engine.store.list_assessments(
        regime=args.regime, include_deleted=args.include_deleted
    )

    if args.format == "json":
        output(json.dumps([a.to_dict() for a in assessments], indent=2), force=True)
    elif args.format == "csv":
        headers = ["ID", "Regime", "Name", "Score", "Maturity", "Updated", "Deleted"]
        rows = [
            [
                a.id,
                a.regime,
                a.name,
                a.score if a.score is not None else "",
                a.maturity_level or "",
                a.updated_at.isoformat(),
                a.deleted_at.isoformat() if a.deleted_at else "",
            ]
            for a in assessments
        ]
        output(format_as_csv(headers, rows), force=True)
    else:
        if not assessments:
            output("No assessments yet. Run 'spacecomply assess create' first.")
            return 0
        output()
        output(f"{'ID':<38} {'Regime':<16} {'Score':>6}  Name")
        output("-" * 78)
        for a in assessments:
            score = str(a.score) if a.score is not None else "-"
            marker = " (deleted)" if a.is_deleted else ""
            output(f"{a.id:<38} {a.regime:<16} {score:>6}  {a.name}{marker}")

    return 0


def cmd_assess_show(args: argparse.Namespace) -> int:
    """Show an assessment with its statuses."""
    engine = _get_engine(args)
    assessment = engine.store.get_assessment(args.assessment_id, include_deleted=True)
    records = engine.store.get_statuses(args.assessment_id)

    if args.format == "json":
        data = assessment.to_dict()
        data["statuses"] = [r.to_dict() for r in records.values()]
        output(json.dumps(data, indent=2), force=True)
    elif args.format == "csv":
        headers = ["Requirement", "Status", "Notes", "Evidence", "Updated"]
        rows = [
            [r.requirement_id, r.status.value, r.notes, ";".join(r.evidence), r.updated_at.isoformat()]
            for r in records.values()
        ]
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output(f"Assessment: {assessment.name}")
        output("=" * 60)
        output(f"ID: {assessment.id}")
        output(f"Regime: {assessment.regime}")
        output(f"Created: {assessment.created_at.isoformat()}")
        output(f"Updated: {assessment.updated_at.isoformat()}")
        if assessment.is_deleted:
            output(f"Deleted: {assessment.deleted_at.isoformat()}")
        if assessment.score is not None:
            output(f"Score: {assessment.score} ({assessment.maturity_level})")
        if assessment.classification:
            output(f"Classification: {assessment.classification}")
        if assessment.risk_level:
            output(f"Risk level: {assessment.risk_level}")
        output()
        output("Statuses:")
        output("-" * 60)
        for record in records.values():
            output(f"  {record.requirement_id:<18} {record.status.value}")

    return 0


def cmd_assess_profile(args: argparse.Namespace) -> int:
    """Replace an assessment's profile."""
    engine = _get_engine(args)
    changes = engine.update_profile(
        args.assessment_id, _load_profile_file(args.profile)
    )

    output(f"Profile updated for {args.assessment_id}")
    output(f"  Requirements added: {len(changes['added'])}")
    for rid in changes["added"]:
        output_verbose(f"    + {rid}")
    output(f"  Requirements removed: {len(changes['removed'])}")
    for rid in changes["removed"]:
        output_verbose(f"    - {rid}")
    return 0


def cmd_assess_status(args: argparse.Namespace) -> int:
    """Set the status of one requirement."""
    engine = _get_engine(args)
    try:
        if args.policy:
            record = engine.set_policy_status(
                args.assessment_id, args.requirement_id, args.status, notes=args.notes
            )
        else:
            record = engine.set_status(
                args.assessment_id,
                args.requirement_id,
                args.status,
                notes=args.notes,
                evidence=args.evidence,
            )
    except ValueError as e:
        output_error(f"Invalid status: {e}")
        return 1

    output(f"{record.requirement_id}: {record.status.value}")
    return 0


def cmd_assess_delete(args: argparse.Namespace) -> int:
    """Delete an assessment."""
    engine = _get_engine(args)
    engine.store.delete_assessment(args.assessment_id, hard=args.hard)
    output(f"{'Permanently deleted' if args.hard else 'Deleted'} assessment {args.assessment_id}")
    return 0


# =============================================================================
# Analysis commands
# =============================================================================

def cmd_score(args: argparse.Namespace) -> int:
    """Score an assessment."""
    engine = _get_engine(args)
    output_verbose("Evaluating assessment...")
    result = engine.evaluate(args.assessment_id, save=not args.no_save)
    breakdown = result.breakdown

    if args.format == "json":
        data = {
            "assessment_id": args.assessment_id,
            "regime": result.regime,
            "score": breakdown.score,
            "maturity_level": breakdown.level.value,
            "classification": (
                result.classification.to_dict() if result.classification else None
            ),
            "risk": result.risk.to_dict() if result.risk else None,
            "breakdown": breakdown.to_dict(),
            "details": result.details,
            "attribute_details": result.attribute_details,
            "comparison": result.comparison,
        }
        output(json.dumps(data, indent=2, default=str), force=True)
    elif args.format == "csv":
        headers = ["Group Type", "Group", "Score", "Maturity", "Requirements"]
        rows = [["overall", "overall", breakdown.score, breakdown.level.value,
                 breakdown.overall.requirement_count]]
        for key, score in breakdown.by_category.items():
            rows.append(["category", key, score.score, score.level.value, score.requirement_count])
        for grouping, scores in breakdown.by_group.items():
            for key, score in scores.items():
                rows.append([grouping, key, score.score, score.level.value, score.requirement_count])
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output(f"{result.regime} Compliance Score")
        output("=" * 60)
        output()
        output(f"Overall: {breakdown.score}/100 ({breakdown.level.value})")
        output(breakdown.overall.explanation)
        if result.classification:
            output(f"Classification: {_plain(result.classification.result)}")
        if result.risk:
            output(f"Risk level: {_plain(result.risk.result)} ({result.risk.reason})")
        if result.comparison:
            output(
                f"Change since last evaluation: {result.comparison['overall_delta']:+d} "
                f"({result.comparison['overall_direction']})"
            )
        output()

        output("By Category:")
        output("-" * 60)
        output(f"{'Category':<36} {'Score':>6} {'Reqs':>6}  Maturity")
        output("-" * 60)
        for key, score in breakdown.by_category.items():
            output(f"{key:<36} {score.score:>6} {score.requirement_count:>6}  {score.level.value}")

        for grouping, scores in breakdown.by_group.items():
            output()
            output(f"By {grouping.replace('_', ' ').title()}:")
            for key, score in scores.items():
                output(f"  {key:<34} {score.score:>6} {score.requirement_count:>6}")

        if result.attribute_details:
            output()
            _output_details(result.attribute_details, indent="")

    return 0


def cmd_gaps(args: argparse.Namespace) -> int:
    """Show gap analysis with recommendations."""
    from spacecomply.analysis import Priority

    engine = _get_engine(args)
    output_verbose("Analyzing gaps...")
    result = engine.evaluate(args.assessment_id, save=False)
    gap_analysis = result.gaps

    gaps_to_show = gap_analysis.all_gaps
    if args.priority:
        priority_filter = Priority(args.priority)
        gaps_to_show = [g for g in gaps_to_show if g.priority == priority_filter]
    if args.category:
        gaps_to_show = [g for g in gaps_to_show if g.category == args.category]

    if args.format == "json":
        data = gap_analysis.to_dict()
        data["filtered_gaps"] = [g.to_dict() for g in gaps_to_show]
        output(json.dumps(data, indent=2, default=str), force=True)
    elif args.format == "csv":
        headers = ["Requirement", "Title", "Category", "Priority", "Status", "Effort", "Weeks", "Recommendation"]
        rows = []
        for gap in gaps_to_show:
            recommendation = gap.recommendations[0].action if gap.recommendations else ""
            rows.append([
                gap.requirement_id,
                gap.title,
                gap.category,
                gap.priority.value,
                gap.status.value,
                gap.effort.value,
                gap.remediation_weeks,
                recommendation,
            ])
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output(f"{result.regime} Gap Analysis")
        output("=" * 70)
        output()
        output(f"Applicable requirements: {gap_analysis.total_requirements}")
        output(
            f"Requirements with gaps: {gap_analysis.requirements_with_gaps} "
            f"({gap_analysis.gap_percentage:.1f}%)"
        )
        output(f"Estimated remediation: {gap_analysis.remediation_weeks} weeks")
        output()

        output("By Priority:")
        for priority, count in gap_analysis.gaps_by_priority.items():
            output(f"  {priority.capitalize()}: {count}")
        output()

        if gaps_to_show:
            output("Gaps:")
            output("-" * 70)
            for gap in gaps_to_show[:20]:
                output(f"\n{gap.requirement_id}: {gap.title}")
                output(f"  Priority: {gap.priority.value.upper()}")
                output(f"  Status: {gap.status.value} ({gap.reference})")
                output(f"  Effort: {gap.effort.value} ({gap.remediation_weeks} weeks)")
                if gap.recommendations:
                    output(f"  Recommendation: {gap.recommendations[0].action}")

            if len(gaps_to_show) > 20:
                output(f"\n... and {len(gaps_to_show) - 20} more gaps")
        else:
            output("No gaps found matching filters.")

        if gap_analysis.quick_wins:
            output()
            output("Quick Wins (Low Effort, High Priority):")
            output("-" * 70)
            for gap in gap_analysis.quick_wins[:5]:
                output(f"  {gap.requirement_id}: {gap.title}")

    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    """Show the weighted cross-regime summary."""
    engine = _get_engine(args)
    summary = engine.summary()

    if args.format == "json":
        output(json.dumps(summary.to_dict(), indent=2), force=True)
    elif args.format == "csv":
        headers = ["Regime", "Score", "Status"]
        rows = [
            [regime, summary.regime_scores.get(regime, ""), status]
            for regime, status in summary.regime_status.items()
        ]
        output(format_as_csv(headers, rows), force=True)
    else:
        output()
        output("Compliance Summary")
        output("=" * 60)
        output(f"Overall: {summary.overall_score}/100 (grade {summary.grade})")
        output()
        for regime, status in summary.regime_status.items():
            score = summary.regime_scores.get(regime)
            output(f"  {regime:<16} {score if score is not None else '-':>6}  {status}")

    return 0


# =============================================================================
# Output commands
# =============================================================================

def cmd_export(args: argparse.Namespace) -> int:
    """Export assessment results to JSON."""
    from spacecomply.reports import JsonExporter

    engine = _get_engine(args)
    result = engine.evaluate(args.assessment_id, save=False)

    output_dir = Path(args.output) if args.output else Path(engine.settings.reporting.output_dir)
    exporter = JsonExporter(
        version=__version__,
        organization=engine.settings.reporting.organization or None,
    )

    if args.type == "scores":
        export_result = exporter.export_scores(
            result.breakdown, output_dir, args.compress, assessment_id=args.assessment_id
        )
    elif args.type == "gaps":
        export_result = exporter.export_gaps(
            result.gaps, output_dir, args.compress, assessment_id=args.assessment_id
        )
    else:
        export_result = exporter.export_full(result, output_dir, args.compress)

    if not export_result.success:
        output_error(f"Export failed: {export_result.error}")
        return 1

    output(f"Exported {export_result.export_type} data to: {export_result.path}")
    output_verbose(f"  Size: {export_result.size_bytes:,} bytes")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    """Generate an HTML or PDF report."""
    from spacecomply.reports import ReportConfig, ReportGenerator

    engine = _get_engine(args)
    result = engine.evaluate(args.assessment_id, save=False)

    output_dir = Path(args.output) if args.output else Path(engine.settings.reporting.output_dir)
    generator = ReportGenerator(
        ReportConfig(organization=engine.settings.reporting.organization or "Organization")
    )

    if args.format == "pdf" and not generator.pdf_available:
        output("weasyprint is not installed; writing an HTML report instead.")

    report = generator.generate_report(result, output_dir, pdf=args.format == "pdf")
    if not report.success:
        output_error(f"Report generation failed: {report.error}")
        return 1

    if report.pdf_path:
        output(f"PDF report: {report.pdf_path}")
    output(f"HTML report: {report.html_path}")
    return 0


def main() -> NoReturn:
    """Main entry point for SpaceComply CLI."""
    parser = create_parser()
    args = parser.parse_args()

    # Set up logging and output mode
    setup_logging(args.verbose, args.quiet)
    set_output_mode(args.quiet, args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)
    except (CatalogError, ProfileValidationError, StorageError) as e:
        output_error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
