"""
Requirement catalog loading and lookup.

Catalogs are shipped as YAML files in the ``data`` directory next to this
module, one file per regime. Each file is parsed with PyYAML the first time
the regime is requested and cached for the lifetime of the process.

File layout:
    regime: nis2
    name: NIS2 Directive
    source: Directive (EU) 2022/2555
    requirements:
      - id: nis2-001
        ...

Supplementary reference tables (national insurance requirements, NIS2 and
EU Space Act cross-references) live in the same directory and are read with
load_data_file().
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from spacecomply.catalog.models import Catalog, Regime, Requirement

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"


class CatalogError(Exception):
    """Raised when a catalog file is missing or malformed."""

    pass


class RequirementNotFoundError(CatalogError):
    """Raised when a requirement ID does not exist in a catalog."""

    pass


_CATALOG_CACHE: dict[str, Catalog] = {}
_DATA_CACHE: dict[str, Any] = {}


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in catalog file {path.name}: {e}") from e
    except OSError as e:
        raise CatalogError(f"Cannot read catalog file {path}: {e}") from e


def load_catalog_file(path: Path | str) -> Catalog:
    """
    Parse a catalog file into a Catalog.

    Args:
        path: Path to a catalog YAML file.

    Returns:
        Parsed Catalog with requirements in file order.

    Raises:
        CatalogError: If the file cannot be read, a record is malformed,
                      or requirement IDs are duplicated.
    """
    path = Path(path)
    data = _read_yaml(path)
    if not isinstance(data, dict) or "regime" not in data:
        raise CatalogError(f"Catalog file {path.name} must define a regime")

    regime = str(data["regime"])
    requirements: list[Requirement] = []
    seen: set[str] = set()

    for index, entry in enumerate(data.get("requirements") or []):
        try:
            requirement = Requirement.from_dict(entry, regime=regime)
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(
                f"Invalid requirement #{index} in {path.name}: {e}"
            ) from e
        if requirement.id in seen:
            raise CatalogError(f"Duplicate requirement ID in {path.name}: {requirement.id}")
        seen.add(requirement.id)
        requirements.append(requirement)

    logger.debug("Loaded %d requirements from %s", len(requirements), path.name)

    return Catalog(
        regime=regime,
        name=str(data.get("name", regime)),
        source=str(data.get("source", "")),
        requirements=requirements,
    )


def load_data_file(name: str) -> Any:
    """
    Load a supplementary reference table from the data directory.

    Args:
        name: File name without extension (e.g., "insurance_jurisdictions").

    Returns:
        Parsed YAML content.
    """
    if name not in _DATA_CACHE:
        _DATA_CACHE[name] = _read_yaml(DATA_DIR / f"{name}.yaml")
    return _DATA_CACHE[name]


# =============================================================================
# PUBLIC API
# =============================================================================

def get_catalog(regime: Regime | str) -> Catalog:
    """
    Get the requirement catalog for a regime.

    Args:
        regime: Regime key (e.g., "nis2", "export_control").

    Returns:
        The cached Catalog for the regime.

    Raises:
        CatalogError: If the regime is unknown or its file is malformed.
    """
    try:
        key = Regime(regime).value
    except ValueError as e:
        raise CatalogError(f"Unknown regime: {regime}") from e

    if key not in _CATALOG_CACHE:
        catalog = load_catalog_file(DATA_DIR / f"{key}.yaml")
        if catalog.regime != key:
            raise CatalogError(
                f"Catalog file {key}.yaml declares regime {catalog.regime}"
            )
        _CATALOG_CACHE[key] = catalog
        logger.info("Loaded %s catalog (%d requirements)", key, len(catalog))
    return _CATALOG_CACHE[key]


def get_requirement(regime: Regime | str, requirement_id: str) -> Requirement:
    """
    Get a single requirement by ID.

    Raises:
        RequirementNotFoundError: If the ID is not in the regime catalog.
    """
    requirement = get_catalog(regime).get(requirement_id)
    if requirement is None:
        raise RequirementNotFoundError(
            f"Requirement not found in {Regime(regime).value}: {requirement_id}"
        )
    return requirement


def get_all_requirements(regime: Regime | str) -> list[Requirement]:
    """
    Get all requirements of a regime in catalog order.

    Returns:
        A new list; the requirements themselves are shared and immutable.
    """
    return list(get_catalog(regime).requirements)


def get_categories(regime: Regime | str) -> list[str]:
    """Get the categories of a regime in catalog order."""
    return get_catalog(regime).get_categories()


def get_statistics() -> dict[str, dict[str, Any]]:
    """
    Get statistics for every regime catalog.

    Returns:
        Mapping of regime key to its catalog statistics.
    """
    return {r.value: get_catalog(r).get_statistics() for r in Regime}


def export_catalog_json(regime: Regime | str, path: Path | str) -> None:
    """
    Export a regime catalog to a JSON file.

    Args:
        regime: Regime key.
        path: Output file path.
    """
    path = Path(path)
    catalog = get_catalog(regime)

    data = {
        "regime": catalog.regime,
        "name": catalog.name,
        "source": catalog.source,
        "requirements": [r.to_dict() for r in catalog.requirements],
        "statistics": catalog.get_statistics(),
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def redact_requirements(requirements: list[Requirement]) -> list[dict[str, Any]]:
    """Reduced requirement records for external clients."""
    return [r.to_redacted_dict() for r in requirements]
