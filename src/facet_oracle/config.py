"""
Global configuration and numerical constants for the facet separation oracle.

The oracle is driven by a small set of parameters: the positivity tolerance
used by every degeneracy check, the simplex parameters handed to the LP
backend, and a few switches (scaling, shuffling, rounding).
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Numerical Tolerances
# =============================================================================

POLYTOPE_EPS = 1e-9
"""Positivity tolerance for the interior point, lambda and the facet checks."""

LAMBDA_BOUNDARY_FACTOR = 10.0
"""Lambda below LAMBDA_BOUNDARY_FACTOR * tolerance puts the interior point on the boundary."""

MPMATH_PRECISION = 50
"""Number of decimal digits used when re-checking a facet with mpmath."""


# =============================================================================
# Simplex Limits
# =============================================================================

DEFAULT_ITERATION_LIMIT = 100000
"""Iteration limit used when the configured one is too small."""

MIN_ITERATION_LIMIT = 1000
"""Smallest iteration limit honored from the configuration (0 = no limit)."""

DEFAULT_TIME_LIMIT = 10
"""Time limit in seconds used when the configured one is too small."""

MIN_TIME_LIMIT = 5
"""Smallest time limit in seconds honored from the configuration (0 = no limit)."""


# =============================================================================
# Facet Rounding
# =============================================================================

ROUND_MAX_DENOMINATOR = 1000
"""Largest denominator a facet coefficient may be snapped to."""

ROUND_TOLERANCE = 1e-9
"""Relative distance within which a coefficient is snapped to a rational."""


# =============================================================================
# Oracle Configuration
# =============================================================================

METHODS = ("primal", "dual")
PRICING_RULES = ("standard", "steepest")
RATIO_TESTS = ("standard", "harris")


@dataclass
class OracleConfig:
    """
    Parameters consumed by the oracle.

    Attributes
    ----------
    tolerance : float
        Positivity / degeneracy tolerance.
    message_level : int
        Solver verbosity: 0 none, 1 errors, 2 normal, 3 everything.
    method : str
        Simplex flavour, "primal" or "dual".
    pricing : str
        Pricing rule, "standard" or "steepest" (steepest edge).
    ratio_test : str
        Ratio test, "standard" or "harris".
    iteration_limit : int
        Simplex iteration limit; 0 means no limit.
    time_limit : int
        Wall-clock limit per solve in seconds; 0 means no limit.
    scale : bool
        Scale the constraint matrix before solving.
    shuffle : bool
        Randomly permute rows and columns when loading.
    round_facets : bool
        Snap facet coefficients to nearby rationals.
    probe_interior : bool
        During initialization, check the interior point is not on the boundary.
    seed : int, optional
        Seed for the shuffling generator.
    """
    tolerance: float = POLYTOPE_EPS
    message_level: int = 0
    method: str = "primal"
    pricing: str = "steepest"
    ratio_test: str = "harris"
    iteration_limit: int = DEFAULT_ITERATION_LIMIT
    time_limit: int = DEFAULT_TIME_LIMIT
    scale: bool = True
    shuffle: bool = False
    round_facets: bool = False
    probe_interior: bool = True
    seed: Optional[int] = None

    def validate(self) -> "OracleConfig":
        """Raise ValueError on an inconsistent configuration, else return self."""
        if not self.tolerance > 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.message_level not in (0, 1, 2, 3):
            raise ValueError(f"message_level must be 0..3, got {self.message_level}")
        if self.method not in METHODS:
            raise ValueError(f"method must be one of {METHODS}, got {self.method!r}")
        if self.pricing not in PRICING_RULES:
            raise ValueError(f"pricing must be one of {PRICING_RULES}, got {self.pricing!r}")
        if self.ratio_test not in RATIO_TESTS:
            raise ValueError(f"ratio_test must be one of {RATIO_TESTS}, got {self.ratio_test!r}")
        if self.iteration_limit < 0:
            raise ValueError(f"iteration_limit must be non-negative, got {self.iteration_limit}")
        if self.time_limit < 0:
            raise ValueError(f"time_limit must be non-negative, got {self.time_limit}")
        return self
