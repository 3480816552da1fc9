"""
Snap floating point facet coefficients to nearby simple rationals.

Facets are later re-verified in exact arithmetic by the enumeration
driver; 0.33333333333 is much more useful there as 1/3.
"""

from fractions import Fraction

from ..config import ROUND_MAX_DENOMINATOR, ROUND_TOLERANCE


def nearest_rational(value: float, max_denominator: int = ROUND_MAX_DENOMINATOR) -> Fraction:
    """Best rational approximation of `value` with denominator <= max_denominator."""
    return Fraction(value).limit_denominator(max_denominator)


def round_to_rational(
    value: float,
    max_denominator: int = ROUND_MAX_DENOMINATOR,
    tolerance: float = ROUND_TOLERANCE,
) -> float:
    """
    Replace `value` by p/q when it is within `tolerance` (relative, for
    |value| > 1) of a fraction with q <= max_denominator.

    Values with no such fraction nearby are returned unchanged.

    Examples
    --------
    >>> round_to_rational(0.3333333333333)
    0.3333333333333333
    >>> round_to_rational(0.1234567)
    0.1234567
    """
    if value == 0.0:
        return 0.0
    approx = nearest_rational(value, max_denominator)
    snapped = float(approx)
    if abs(snapped - value) <= tolerance * max(1.0, abs(value)):
        return snapped
    return value
