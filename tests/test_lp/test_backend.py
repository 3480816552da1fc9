"""
Tests for the HiGHS simplex backend.

Tests:
- Row/column scaling
- Solver parameter translation
- Status, objective, primal values and duals on small LPs
- Scaling does not change solutions
"""

import pytest
import numpy as np
from scipy import sparse

from facet_oracle.config import OracleConfig
from facet_oracle.lp.backend import (
    HighsBackend,
    ReturnCode,
    SolutionStatus,
    SolverParams,
    scale_constraints,
    solver_params_from_config,
)
from facet_oracle.lp.problem import Direction, LinearProgram
from facet_oracle.vlp.loader import Bound, BoundKind


FREE = Bound(BoundKind.FREE)
NONNEG = Bound(BoundKind.LOWER, lower=0.0)


def solve(lp, scale=False, params=None):
    backend = HighsBackend()
    backend.sort_matrix(lp)
    if scale:
        backend.scale(lp)
    backend.advanced_basis(lp)
    code = backend.simplex(lp, params or SolverParams())
    return backend, code


def production_lp():
    """maximize x + y  s.t.  x + 2y <= 4,  3x + y <= 6,  x, y >= 0."""
    A = sparse.csc_matrix(np.array([[1.0, 2.0], [3.0, 1.0]]))
    rows = [Bound(BoundKind.UPPER, upper=4.0), Bound(BoundKind.UPPER, upper=6.0)]
    return LinearProgram(A, rows, [NONNEG, NONNEG], np.array([1.0, 1.0]),
                         direction=Direction.MAXIMIZE)


# ============================================================================
# Scaling
# ============================================================================

class TestScaling:
    """Tests for constraint matrix scaling."""

    def test_scaling_preserves_shape(self):
        A = sparse.random(10, 6, density=0.5, random_state=0, format="csc")
        A_s, rs, cs = scale_constraints(A)
        assert A_s.shape == A.shape
        assert rs.shape == (10,)
        assert cs.shape == (6,)

    def test_scaling_improves_condition(self):
        """Scaled matrix should have row maxima closer to 1."""
        rng = np.random.default_rng(1)
        A = rng.standard_normal((20, 10)) * np.array([1e-10, 1, 1e5, 1, 1, 1e-3, 1, 1e8, 1, 1])
        A_s, _, _ = scale_constraints(sparse.csc_matrix(A), n_iterations=5)

        row_maxes = abs(A_s).max(axis=1).toarray().ravel()
        assert np.all(row_maxes > 0.01)
        assert np.all(row_maxes < 100.0)

    def test_factors_are_powers_of_two(self):
        A = sparse.csc_matrix(np.array([[3.0, 0.0], [0.0, 1e-3]]))
        _, rs, cs = scale_constraints(A)
        for factor in np.concatenate([rs, cs]):
            assert np.log2(factor) == np.round(np.log2(factor))

    def test_reconstructs_matrix(self):
        A = sparse.csc_matrix(np.array([[3.0, 7.0], [0.5, 1e-3]]))
        A_s, rs, cs = scale_constraints(A)
        np.testing.assert_allclose(
            A_s.toarray(), np.diag(rs) @ A.toarray() @ np.diag(cs)
        )

    def test_empty_rows_untouched(self):
        A = sparse.csc_matrix(np.array([[0.0, 0.0], [2.0, 4.0]]))
        _, rs, _ = scale_constraints(A)
        assert rs[0] == 1.0


# ============================================================================
# Parameters
# ============================================================================

class TestSolverParams:
    """Translation of the configuration into simplex parameters."""

    def test_defaults(self):
        params = solver_params_from_config(OracleConfig())
        assert params.iteration_limit == 100000
        assert params.time_limit == 10.0

    def test_small_iteration_limit_ignored(self):
        params = solver_params_from_config(OracleConfig(iteration_limit=500))
        assert params.iteration_limit == 100000

    def test_iteration_limit_honored(self):
        params = solver_params_from_config(OracleConfig(iteration_limit=5000))
        assert params.iteration_limit == 5000

    def test_no_iteration_limit(self):
        params = solver_params_from_config(OracleConfig(iteration_limit=0))
        assert params.iteration_limit is None

    def test_small_time_limit_ignored(self):
        params = solver_params_from_config(OracleConfig(time_limit=3))
        assert params.time_limit == 10.0

    def test_time_limit_honored(self):
        params = solver_params_from_config(OracleConfig(time_limit=20))
        assert params.time_limit == 20.0

    def test_no_time_limit(self):
        params = solver_params_from_config(OracleConfig(time_limit=0))
        assert params.time_limit is None

    def test_method_and_rules_copied(self):
        config = OracleConfig(method="dual", pricing="standard", ratio_test="standard",
                              message_level=2)
        params = solver_params_from_config(config)
        assert params.method == "dual"
        assert params.pricing == "standard"
        assert params.ratio_test == "standard"
        assert params.message_level == 2


# ============================================================================
# Solving
# ============================================================================

class TestHighsBackend:
    """HiGHS backend on small LPs."""

    @pytest.mark.parametrize("scale", [False, True])
    def test_optimal_primal(self, scale):
        backend, code = solve(production_lp(), scale=scale)
        assert code is ReturnCode.OK
        assert backend.status() is SolutionStatus.OPTIMAL
        assert backend.objective_value() == pytest.approx(2.8)
        assert backend.column_primal(0) == pytest.approx(1.6)
        assert backend.column_primal(1) == pytest.approx(1.2)

    @pytest.mark.parametrize("scale", [False, True])
    def test_optimal_duals(self, scale):
        """Row duals are d(objective)/d(rhs)."""
        backend, _ = solve(production_lp(), scale=scale)
        assert backend.row_dual(0) == pytest.approx(0.4)
        assert backend.row_dual(1) == pytest.approx(0.2)

    @pytest.mark.parametrize("method", ["primal", "dual"])
    def test_methods_agree(self, method):
        backend, code = solve(production_lp(), params=SolverParams(method=method))
        assert code is ReturnCode.OK
        assert backend.objective_value() == pytest.approx(2.8)

    def test_lower_bound_row_dual(self):
        """minimize x + y  s.t.  x + y >= 2: the dual of the row is +1."""
        A = sparse.csc_matrix(np.array([[1.0, 1.0], [1.0, -1.0]]))
        rows = [Bound(BoundKind.LOWER, lower=2.0), FREE]
        lp = LinearProgram(A, rows, [NONNEG, NONNEG], np.array([1.0, 1.0]))
        backend, code = solve(lp)
        assert code is ReturnCode.OK
        assert backend.objective_value() == pytest.approx(2.0)
        assert backend.row_dual(0) == pytest.approx(1.0)
        assert backend.row_dual(1) == pytest.approx(0.0)

    def test_fixed_row_dual(self):
        """maximize t  s.t.  x - t = 1,  x <= 3: t = rhs ... dual of row 0 is -1."""
        A = sparse.csc_matrix(np.array([[1.0, -1.0], [1.0, 0.0]]))
        rows = [Bound(BoundKind.FIXED, 1.0, 1.0), Bound(BoundKind.UPPER, upper=3.0)]
        lp = LinearProgram(A, rows, [NONNEG, NONNEG], np.array([0.0, 1.0]),
                           direction=Direction.MAXIMIZE)
        backend, code = solve(lp, scale=True)
        assert code is ReturnCode.OK
        assert backend.objective_value() == pytest.approx(2.0)
        assert backend.row_dual(0) == pytest.approx(-1.0)
        assert backend.row_dual(1) == pytest.approx(1.0)

    def test_infeasible(self):
        A = sparse.csc_matrix(np.array([[1.0, 1.0], [1.0, 0.0]]))
        rows = [Bound(BoundKind.UPPER, upper=-1.0), FREE]
        lp = LinearProgram(A, rows, [NONNEG, NONNEG], np.zeros(2))
        backend, code = solve(lp)
        assert code is ReturnCode.OK
        assert backend.status() is SolutionStatus.NO_FEASIBLE

    def test_unbounded(self):
        A = sparse.csc_matrix(np.array([[1.0, -1.0], [0.0, 1.0]]))
        rows = [FREE, Bound(BoundKind.UPPER, upper=1.0)]
        lp = LinearProgram(A, rows, [NONNEG, NONNEG], np.array([1.0, 0.0]),
                           direction=Direction.MAXIMIZE)
        backend, code = solve(lp)
        assert code is ReturnCode.OK
        assert backend.status() is SolutionStatus.UNBOUNDED

    def test_inverted_bounds(self):
        A = sparse.csc_matrix(np.eye(2))
        rows = [Bound(BoundKind.DOUBLE, 2.0, 1.0), FREE]
        lp = LinearProgram(A, rows, [NONNEG, NONNEG], np.zeros(2))
        _, code = solve(lp)
        assert code is ReturnCode.BAD_BOUNDS

    def test_no_solution_before_solve(self):
        backend = HighsBackend()
        assert backend.status() is SolutionStatus.UNDEFINED
        with pytest.raises(RuntimeError):
            backend.row_dual(0)

    def test_iteration_count_accumulates(self):
        backend = HighsBackend()
        lp = production_lp()
        params = SolverParams()
        for _ in range(2):
            backend.sort_matrix(lp)
            backend.advanced_basis(lp)
            backend.simplex(lp, params)
        assert backend.iteration_count() >= 2

    def test_ratio_test_not_forwarded(self, caplog):
        """Both ratio tests give the same answer; harris is only logged."""
        with caplog.at_level("DEBUG", logger="facet_oracle.lp.backend"):
            harris, _ = solve(production_lp(), params=SolverParams(ratio_test="harris"))
        assert "ratio test 'harris'" in caplog.text
        standard, _ = solve(production_lp(), params=SolverParams(ratio_test="standard"))
        assert harris.objective_value() == pytest.approx(standard.objective_value())

    def test_version(self):
        assert "HiGHS" in HighsBackend().version()

    def test_restarts_rotate_strategy(self):
        """Repeated restarts still solve the same LP."""
        backend = HighsBackend()
        lp = production_lp()
        backend.sort_matrix(lp)
        for _ in range(3):
            backend.advanced_basis(lp)
            assert backend.simplex(lp, SolverParams()) is ReturnCode.OK
            assert backend.objective_value() == pytest.approx(2.8)


class TestReturnCodes:
    """Messages and limit classification."""

    def test_messages(self):
        assert ReturnCode.BAD_BASIS.message == "invalid basis"
        assert ReturnCode.FAILED.message == "solver failed"
        assert SolutionStatus.NO_FEASIBLE.message == "the problem has no feasible solution"

    def test_limits(self):
        assert ReturnCode.ITERATION_LIMIT.is_limit
        assert ReturnCode.TIME_LIMIT.is_limit
        assert not ReturnCode.FAILED.is_limit
