"""
Tests for facet normalization, offsets, separation checks and rounding.

The reference situation is the triangle x, y >= 0, x + y <= 1 with the
interior point (0.3, 0.3), asked about the direction (1, 0): the ray
leaves the triangle at (0.7, 0.3) with lambda = 0.4, and the supporting
facet is -x/2 - y/2 + 1/2 >= 0.
"""

from fractions import Fraction

import pytest
import numpy as np

from facet_oracle.errors import ErrorKind, NumericalError
from facet_oracle.oracle.certifier import (
    certify_facet,
    check_separation,
    facet_offset,
    normalize_facet,
)
from facet_oracle.oracle.rounding import nearest_rational, round_to_rational


INTERIOR = np.array([0.3, 0.3])
DIRECTION = np.array([-1.0, 0.0])
REQUEST = np.array([1.0, 0.0, 0.0])


# ============================================================================
# Normalization and offset
# ============================================================================

class TestNormalizeFacet:
    """L1 normalization of the dual vector."""

    def test_unit_l1_norm(self):
        np.testing.assert_allclose(normalize_facet([2.0, -2.0]), [0.5, -0.5])

    def test_preserves_signs(self):
        normal = normalize_facet([-1.0, 3.0, 0.0])
        assert np.sum(np.abs(normal)) == pytest.approx(1.0)
        assert normal[0] < 0 < normal[1]
        assert normal[2] == 0.0

    def test_zero_duals(self):
        with pytest.raises(NumericalError, match="facet all zero") as info:
            normalize_facet([0.0, 1e-12])
        assert info.value.kind is ErrorKind.NUMERICAL


class TestFacetOffset:
    """The boundary point lies on the facet."""

    def test_triangle(self):
        normal = np.array([-0.5, -0.5])
        offset = facet_offset(normal, 0.4, DIRECTION, INTERIOR)
        assert offset == pytest.approx(0.5)

    def test_boundary_point_on_facet(self):
        normal = np.array([0.2, -0.8])
        d = np.array([0.5, 1.5])
        offset = facet_offset(normal, 0.7, d, INTERIOR)
        boundary = INTERIOR - 0.7 * d
        assert np.dot(normal, boundary) + offset == pytest.approx(0.0, abs=1e-15)


# ============================================================================
# Separation checks
# ============================================================================

class TestCheckSeparation:
    """Both inequalities must hold."""

    def test_valid_facet(self):
        check_separation(np.array([-0.5, -0.5, 0.5]), REQUEST, INTERIOR)

    def test_request_on_positive_side(self):
        with pytest.raises(NumericalError, match="vertex is on the negative side"):
            check_separation(np.array([0.5, 0.5, -0.5]), REQUEST, INTERIOR)

    def test_interior_not_deep_enough(self):
        facet = np.array([-0.5, -0.5, 0.3])
        with pytest.raises(NumericalError, match="Initial point is on the negative side"):
            check_separation(facet, np.array([1.0, 1.0, 1.0]), INTERIOR)

    def test_tolerance_applies_to_interior(self):
        facet = np.array([-0.5, -0.5, 0.3 + 1e-6])
        check_separation(facet, REQUEST, INTERIOR, tolerance=1e-9)
        with pytest.raises(NumericalError):
            check_separation(facet, REQUEST, INTERIOR, tolerance=1e-3)

    def test_request_on_facet_accepted(self):
        facet = np.array([-0.5, -0.5, 0.5])
        check_separation(facet, np.array([0.75, 0.25, 1.0]), INTERIOR)


# ============================================================================
# Certification
# ============================================================================

class TestCertifyFacet:
    """End-to-end certification from duals."""

    def test_triangle_facet(self):
        facet = certify_facet(np.array([-1.0, -1.0]), 0.4, DIRECTION, INTERIOR, REQUEST)
        np.testing.assert_allclose(facet, [-0.5, -0.5, 0.5])

    def test_scale_of_duals_irrelevant(self):
        a = certify_facet(np.array([-1.0, -1.0]), 0.4, DIRECTION, INTERIOR, REQUEST)
        b = certify_facet(np.array([-7.0, -7.0]), 0.4, DIRECTION, INTERIOR, REQUEST)
        np.testing.assert_allclose(a, b)

    def test_wrong_sign_duals(self):
        with pytest.raises(NumericalError, match="vertex is on the negative side"):
            certify_facet(np.array([1.0, 1.0]), 0.4, DIRECTION, INTERIOR, REQUEST)

    def test_zero_lambda(self):
        """With lambda = 0 the facet passes through the interior point."""
        with pytest.raises(NumericalError, match="Initial point"):
            certify_facet(np.array([-1.0, -1.0]), 0.0, DIRECTION, INTERIOR, REQUEST)

    def test_zero_duals(self):
        with pytest.raises(NumericalError, match="facet all zero"):
            certify_facet(np.zeros(2), 0.4, DIRECTION, INTERIOR, REQUEST)

    def test_rounding(self):
        """Duals (-1, -2) give the facet -x/3 - 2y/3 + 13/30."""
        facet = certify_facet(
            np.array([-1.0, -2.0]), 0.4, DIRECTION, INTERIOR, REQUEST, round_facets=True,
        )
        assert facet[0] == float(Fraction(-1, 3))
        assert facet[1] == float(Fraction(-2, 3))
        assert facet[2] == float(Fraction(13, 30))

    def test_finite_request(self):
        """Request (2, 0.3) reached with d = interior - request."""
        request = np.array([2.0, 0.3, 1.0])
        d = INTERIOR - request[:2]
        lam = 0.4 / 1.7
        facet = certify_facet(np.array([-1.0, -1.0]) / 1.7, lam, d, INTERIOR, request)
        np.testing.assert_allclose(facet, [-0.5, -0.5, 0.5])


# ============================================================================
# Rounding
# ============================================================================

class TestRounding:
    """Snapping coefficients to simple rationals."""

    def test_nearest_rational(self):
        assert nearest_rational(0.3333333333333) == Fraction(1, 3)
        assert nearest_rational(0.75) == Fraction(3, 4)

    def test_snaps_close_values(self):
        assert round_to_rational(0.3333333333333) == 1.0 / 3.0
        assert round_to_rational(-0.6666666666667) == -2.0 / 3.0

    def test_leaves_far_values(self):
        assert round_to_rational(0.1234567) == 0.1234567

    def test_zero(self):
        assert round_to_rational(0.0) == 0.0

    def test_relative_tolerance_for_large_values(self):
        assert round_to_rational(1234.5000000001) == 1234.5

    def test_denominator_limit(self):
        value = 1.0 / 1009.0
        assert round_to_rational(value) == value
        assert round_to_rational(value, max_denominator=2000) == value
