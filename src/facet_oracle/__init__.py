"""
facet_oracle: facet separation oracle for multi-objective linear programs.

Given the vlp description of a polyhedron and a point inside it, the
oracle answers whether a query point (or direction) is inside, or returns
a supporting hyperplane separating it from the polyhedron.
"""

from . import config
from .config import OracleConfig
from .errors import ErrorKind, OracleResult, OracleStatus
from .oracle import FacetOracle, OracleStats

__version__ = "1.1.0"
__all__ = [
    "config",
    "OracleConfig",
    "ErrorKind",
    "OracleResult",
    "OracleStatus",
    "FacetOracle",
    "OracleStats",
]
