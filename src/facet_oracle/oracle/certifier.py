"""
Turn the dual solution of an oracle LP into a certified facet.

At the optimum the lambda LP reaches the boundary point

    b = interior - lambda * d

and the duals g of the objective rows are the normal of a supporting
hyperplane at b. The certifier normalizes g (sum |g_i| = 1), computes the
offset so that b lies on the hyperplane, and checks the two separation
inequalities:

    request . (g, offset)       <= 0          (query on the negative side)
    interior . g + offset       >= tolerance  (interior on the positive side)

Any violation raises NumericalError; such a facet must not be handed to
the enumeration driver.
"""

from typing import Optional

import numpy as np
from mpmath import mp, mpf

from ..config import MPMATH_PRECISION, POLYTOPE_EPS
from ..errors import NumericalError
from .rounding import round_to_rational


def normalize_facet(duals: np.ndarray, tolerance: float = POLYTOPE_EPS) -> np.ndarray:
    """
    Scale `duals` to unit L1 norm.

    Raises
    ------
    NumericalError
        If the L1 norm is below `tolerance`.
    """
    duals = np.asarray(duals, dtype=np.float64)
    total = float(np.sum(np.abs(duals)))
    if total < tolerance:
        raise NumericalError("Numerical problem, facet all zero")
    return duals / total


def facet_offset(
    normal: np.ndarray,
    lam: float,
    direction: np.ndarray,
    interior: np.ndarray,
) -> float:
    """Offset putting the boundary point interior - lam*direction on the facet."""
    boundary = np.asarray(interior) - lam * np.asarray(direction)
    return -float(np.dot(normal, boundary))


def _evaluate(point, facet, dps: int):
    """point . facet computed in float64 and with mpmath at `dps` digits."""
    plain = float(np.dot(point, facet))
    saved_dps = mp.dps
    mp.dps = dps
    try:
        exact = mp.fsum(mpf(float(p)) * mpf(float(f)) for p, f in zip(point, facet))
    finally:
        mp.dps = saved_dps
    return plain, exact


def check_separation(
    facet: np.ndarray,
    request: np.ndarray,
    interior: np.ndarray,
    tolerance: float = POLYTOPE_EPS,
    dps: int = MPMATH_PRECISION,
) -> None:
    """
    Verify the separation inequalities of `facet`.

    Each side is evaluated both in float64 and in extended precision; a
    check fails when either evaluation fails it.

    Raises
    ------
    NumericalError
        If the request is on the positive side or the interior point is
        not at least `tolerance` deep on the positive side.
    """
    query_value, query_exact = _evaluate(request, facet, dps)
    if query_value > 0.0 or query_exact > 0:
        raise NumericalError(
            f"Numerical error: vertex is on the negative side ({query_value:g})"
        )
    homogeneous_interior = np.append(interior, 1.0)
    interior_value, interior_exact = _evaluate(homogeneous_interior, facet, dps)
    if interior_value < tolerance or interior_exact < tolerance:
        raise NumericalError(
            f"Initial point is on the negative side ({interior_value:g}) of the next facet"
        )


def certify_facet(
    duals: np.ndarray,
    lam: float,
    direction: np.ndarray,
    interior: np.ndarray,
    request: np.ndarray,
    tolerance: float = POLYTOPE_EPS,
    round_facets: bool = False,
    dps: Optional[int] = None,
) -> np.ndarray:
    """
    Build and validate the facet from an optimal oracle LP.

    Parameters
    ----------
    duals : np.ndarray
        Row duals of the objective rows, length k.
    lam : float
        Optimal lambda.
    direction : np.ndarray
        The lambda column d used in the solve, length k.
    interior : np.ndarray
        The interior point, length k.
    request : np.ndarray
        The query, length k + 1 (last entry 0 for an ideal point).
    tolerance : float
        Positivity tolerance.
    round_facets : bool
        Snap the coefficients and the offset to nearby rationals.
    dps : int, optional
        Digits for the extended precision check (default MPMATH_PRECISION).

    Returns
    -------
    np.ndarray
        Facet of length k + 1: L1-normalized normal followed by the offset.

    Raises
    ------
    NumericalError
        On a degenerate normal or a failed separation check.
    """
    normal = normalize_facet(duals, tolerance)
    if round_facets:
        normal = np.array([round_to_rational(v) for v in normal])

    offset = facet_offset(normal, lam, direction, interior)
    if round_facets:
        offset = round_to_rational(offset)

    facet = np.append(normal, offset)
    check_separation(
        facet, np.asarray(request, dtype=np.float64), np.asarray(interior, dtype=np.float64),
        tolerance, MPMATH_PRECISION if dps is None else dps,
    )
    return facet
