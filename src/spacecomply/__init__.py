"""
SpaceComply - Regulatory compliance assessment for space operators

SpaceComply scores an operator against the regimes that govern it and tells
it what is missing, from a profile of the organization and the status of
each applicable requirement.

Regimes:
    - NIS2 Directive (space sector)
    - EU Space Act cybersecurity
    - Export control (ITAR/EAR)
    - Space insurance
    - US regulatory (FCC/FAA/NOAA)

Design Principles:
    - Determinism: every classification names the rule that produced it
    - Transparency: scores explain their weighted points
    - Portability: catalogs are plain YAML, results plain JSON
"""

__version__ = "0.1.0"

from spacecomply.config.settings import Settings, load_config

__all__ = [
    "__version__",
    "Settings",
    "load_config",
]
