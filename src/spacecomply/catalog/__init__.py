"""
Static requirement catalogs for each regulatory regime.

Example:
    from spacecomply.catalog import get_catalog, get_requirement

    catalog = get_catalog("nis2")
    for requirement in catalog:
        print(requirement.id, requirement.severity.value)

    policy = get_requirement("nis2", "nis2-001")
"""

from spacecomply.catalog.loader import (
    CatalogError,
    RequirementNotFoundError,
    export_catalog_json,
    get_all_requirements,
    get_catalog,
    get_categories,
    get_requirement,
    get_statistics,
    load_catalog_file,
    load_data_file,
    redact_requirements,
)
from spacecomply.catalog.models import (
    SEVERITY_WEIGHTS,
    Catalog,
    ComplianceStatus,
    Regime,
    Requirement,
    Severity,
)

__all__ = [
    # Models
    "Catalog",
    "ComplianceStatus",
    "Regime",
    "Requirement",
    "Severity",
    "SEVERITY_WEIGHTS",
    # Loader
    "CatalogError",
    "RequirementNotFoundError",
    "get_catalog",
    "get_requirement",
    "get_all_requirements",
    "get_categories",
    "get_statistics",
    "export_catalog_json",
    "load_catalog_file",
    "load_data_file",
    "redact_requirements",
]
