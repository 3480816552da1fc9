"""
Facet separation oracle.

Implements:
- The oracle context (load, initialize, ask, statistics)
- Certification of facets extracted from the LP duals
- Rational rounding of facet coefficients

Main entry points:
- `FacetOracle(config)`: the oracle
- `certify_facet(duals, lam, d, interior, request)`: low-level certifier
"""

from .certifier import (
    certify_facet,
    check_separation,
    facet_offset,
    normalize_facet,
)

from .engine import (
    FacetOracle,
    OracleState,
    OracleStats,
)

from .rounding import (
    nearest_rational,
    round_to_rational,
)

__all__ = [
    # Certifier
    "certify_facet",
    "check_separation",
    "facet_offset",
    "normalize_facet",
    # Engine
    "FacetOracle",
    "OracleState",
    "OracleStats",
    # Rounding
    "nearest_rational",
    "round_to_rational",
]
