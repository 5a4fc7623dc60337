"""Lookup of regime definitions by key."""

from __future__ import annotations

from spacecomply.catalog.loader import CatalogError
from spacecomply.catalog.models import Regime
from spacecomply.regimes import (
    cybersecurity,
    export_control,
    insurance,
    nis2,
    us_regulatory,
)
from spacecomply.regimes.base import RegimeDefinition

REGIMES: dict[Regime, RegimeDefinition] = {
    definition.regime: definition
    for definition in (
        nis2.DEFINITION,
        cybersecurity.DEFINITION,
        export_control.DEFINITION,
        insurance.DEFINITION,
        us_regulatory.DEFINITION,
    )
}


def get_regime(regime: Regime | str) -> RegimeDefinition:
    """
    Get the definition of a regime.

    Raises:
        CatalogError: If the regime is unknown.
    """
    try:
        return REGIMES[Regime(regime)]
    except ValueError as e:
        valid = ", ".join(r.value for r in Regime)
        raise CatalogError(f"Unknown regime: {regime}. Valid regimes: {valid}") from e


def list_regimes() -> list[RegimeDefinition]:
    return list(REGIMES.values())
