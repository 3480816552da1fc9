"""
Simplex backend used by the oracle.

The oracle treats the LP solver as a black box with a small contract
(SimplexBackend): prepare the matrix, optionally scale it, pick a starting
basis, solve, then report status, objective value, primal values and row
duals. The default implementation wraps scipy.optimize.linprog (HiGHS).

Row and column scaling matters: vlp files mix coefficients of very
different magnitude, and the lambda column is rewritten on every query.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np
import scipy
from scipy import sparse
from scipy.optimize import linprog

from ..config import (
    DEFAULT_ITERATION_LIMIT, DEFAULT_TIME_LIMIT,
    MIN_ITERATION_LIMIT, MIN_TIME_LIMIT,
    OracleConfig,
)
from .problem import LinearProgram


logger = logging.getLogger(__name__)


# =============================================================================
# Return codes and statuses
# =============================================================================

class ReturnCode(Enum):
    """Return value of a simplex call; OK means a status is available."""
    OK = 0
    BAD_BASIS = 1
    SINGULAR = 2
    ILL_CONDITIONED = 3
    BAD_BOUNDS = 4
    FAILED = 5
    OBJ_LOWER_LIMIT = 6
    OBJ_UPPER_LIMIT = 7
    ITERATION_LIMIT = 8
    TIME_LIMIT = 9
    NO_PRIMAL_FEASIBLE = 10
    NO_DUAL_FEASIBLE = 11
    NO_CONVERGENCE = 16
    INSTABILITY = 17
    BAD_DATA = 18

    @property
    def message(self) -> str:
        return _RETURN_MESSAGES.get(self, "unknown error")

    @property
    def is_limit(self) -> bool:
        return self in (ReturnCode.ITERATION_LIMIT, ReturnCode.TIME_LIMIT)


_RETURN_MESSAGES = {
    ReturnCode.OK: "success",
    ReturnCode.BAD_BASIS: "invalid basis",
    ReturnCode.SINGULAR: "singular matrix",
    ReturnCode.ILL_CONDITIONED: "ill-conditioned matrix",
    ReturnCode.BAD_BOUNDS: "invalid bounds",
    ReturnCode.FAILED: "solver failed",
    ReturnCode.OBJ_LOWER_LIMIT: "objective lower limit reached",
    ReturnCode.OBJ_UPPER_LIMIT: "objective upper limit reached",
    ReturnCode.ITERATION_LIMIT: "iteration limit exceeded",
    ReturnCode.TIME_LIMIT: "time limit exceeded",
    ReturnCode.NO_PRIMAL_FEASIBLE: "no primal feasible solution",
    ReturnCode.NO_DUAL_FEASIBLE: "no dual feasible solution",
    ReturnCode.NO_CONVERGENCE: "no convergence",
    ReturnCode.INSTABILITY: "numerical instability",
    ReturnCode.BAD_DATA: "invalid data",
}


class SolutionStatus(Enum):
    """Status of the solution after a successful simplex call."""
    UNDEFINED = 1
    FEASIBLE = 2
    INFEASIBLE = 3
    NO_FEASIBLE = 4
    OPTIMAL = 5
    UNBOUNDED = 6

    @property
    def message(self) -> str:
        return _STATUS_MESSAGES[self]


_STATUS_MESSAGES = {
    SolutionStatus.UNDEFINED: "the problem is undefined",
    SolutionStatus.FEASIBLE: "solution is feasible",
    SolutionStatus.INFEASIBLE: "solution is infeasible",
    SolutionStatus.NO_FEASIBLE: "the problem has no feasible solution",
    SolutionStatus.OPTIMAL: "solution is optimal",
    SolutionStatus.UNBOUNDED: "the problem is unbounded",
}


# =============================================================================
# Parameters
# =============================================================================

@dataclass
class SolverParams:
    """
    Parameters of a single simplex call.

    Attributes
    ----------
    message_level : int
        0 none, 1 errors, 2 normal, 3 everything.
    method : str
        "primal" or "dual".
    pricing : str
        "standard" or "steepest".
    ratio_test : str
        "standard" or "harris". HiGHS has no ratio test option; the value
        is recorded but does not change the solve.
    iteration_limit : int, optional
        None for no limit.
    time_limit : float, optional
        Seconds; None for no limit.
    """
    message_level: int = 0
    method: str = "primal"
    pricing: str = "steepest"
    ratio_test: str = "harris"
    iteration_limit: Optional[int] = DEFAULT_ITERATION_LIMIT
    time_limit: Optional[float] = DEFAULT_TIME_LIMIT


def solver_params_from_config(config: OracleConfig) -> SolverParams:
    """
    Translate the oracle configuration into simplex parameters.

    Iteration limits below MIN_ITERATION_LIMIT and time limits below
    MIN_TIME_LIMIT fall back to the defaults; 0 switches the limit off.
    """
    iteration_limit: Optional[int] = DEFAULT_ITERATION_LIMIT
    if config.iteration_limit >= MIN_ITERATION_LIMIT:
        iteration_limit = config.iteration_limit
    if config.iteration_limit == 0:
        iteration_limit = None

    time_limit: Optional[float] = float(DEFAULT_TIME_LIMIT)
    if config.time_limit >= MIN_TIME_LIMIT:
        time_limit = float(config.time_limit)
    if config.time_limit == 0:
        time_limit = None

    return SolverParams(
        message_level=config.message_level,
        method=config.method,
        pricing=config.pricing,
        ratio_test=config.ratio_test,
        iteration_limit=iteration_limit,
        time_limit=time_limit,
    )


# =============================================================================
# Backend contract
# =============================================================================

class SimplexBackend(ABC):
    """
    What the oracle needs from an LP solver.

    A solve sequence is sort_matrix, optionally scale, advanced_basis and
    simplex; the retry ladder may repeat the last steps. Solution accessors
    are valid after simplex returned ReturnCode.OK.
    """

    @abstractmethod
    def sort_matrix(self, lp: LinearProgram) -> None:
        """Rebuild the matrix ordering and start a new solve sequence."""

    @abstractmethod
    def scale(self, lp: LinearProgram) -> None:
        """Compute row and column scaling for the next solve."""

    @abstractmethod
    def advanced_basis(self, lp: LinearProgram) -> None:
        """Discard the previous basis; the next solve starts afresh."""

    @abstractmethod
    def simplex(self, lp: LinearProgram, params: SolverParams) -> ReturnCode:
        """Solve the LP."""

    @abstractmethod
    def status(self) -> SolutionStatus:
        """Status of the last solution."""

    @abstractmethod
    def objective_value(self) -> float:
        """Objective value of the last solution."""

    @abstractmethod
    def column_primal(self, j: int) -> float:
        """Primal value of column j."""

    @abstractmethod
    def row_dual(self, i: int) -> float:
        """Derivative of the objective with respect to the active limit of row i."""

    @abstractmethod
    def iteration_count(self) -> int:
        """Simplex iterations over the lifetime of the backend."""

    @abstractmethod
    def version(self) -> str:
        """Solver name and version."""


# =============================================================================
# Scaling
# =============================================================================

def scale_constraints(
    A: sparse.spmatrix,
    n_iterations: int = 3,
) -> Tuple[sparse.csc_matrix, np.ndarray, np.ndarray]:
    """
    Iterative row/column max scaling of a sparse matrix.

    Rows and then columns are divided by their largest absolute entry, so
    that these maxima approach 1. Factors are rounded to powers of two to
    avoid introducing rounding errors.

    Parameters
    ----------
    A : scipy.sparse matrix
        Matrix of shape (n_rows, n_cols).
    n_iterations : int
        Number of row/column sweeps.

    Returns
    -------
    A_scaled : scipy.sparse.csc_matrix
        diag(row_scale) @ A @ diag(col_scale).
    row_scale : np.ndarray
        Row factors, shape (n_rows,).
    col_scale : np.ndarray
        Column factors, shape (n_cols,).
    """
    A_s = sparse.csc_matrix(A, dtype=np.float64, copy=True)
    n_rows, n_cols = A_s.shape
    row_scale = np.ones(n_rows)
    col_scale = np.ones(n_cols)

    def _factors(maxima: np.ndarray) -> np.ndarray:
        factors = np.ones_like(maxima)
        nonzero = maxima > 0
        factors[nonzero] = 2.0 ** np.round(-np.log2(maxima[nonzero]))
        return factors

    for _ in range(n_iterations):
        row_max = abs(A_s).max(axis=1).toarray().ravel()
        factors = _factors(row_max)
        A_s = sparse.diags(factors) @ A_s
        row_scale *= factors

        col_max = abs(A_s).max(axis=0).toarray().ravel()
        factors = _factors(col_max)
        A_s = A_s @ sparse.diags(factors)
        col_scale *= factors

    return sparse.csc_matrix(A_s), row_scale, col_scale


# =============================================================================
# HiGHS backend (scipy.optimize.linprog)
# =============================================================================

_PRICING = {"standard": "dantzig", "steepest": "steepest-devex"}


class HighsBackend(SimplexBackend):
    """
    SimplexBackend on top of scipy.optimize.linprog with the HiGHS solvers.

    linprog does not expose a basis, so advanced_basis() means a cold
    restart; repeated restarts within one solve sequence rotate through
    HiGHS strategies (configured simplex, interior point with crossover,
    dual simplex without presolve).
    """

    def __init__(self):
        self._row_scale: Optional[np.ndarray] = None
        self._col_scale: Optional[np.ndarray] = None
        self._restarts = 0
        self._iterations = 0
        self._status = SolutionStatus.UNDEFINED
        self._x: Optional[np.ndarray] = None
        self._duals: Optional[np.ndarray] = None
        self._objective = 0.0

    # -------------------------------------------------------------------------
    # preparation
    # -------------------------------------------------------------------------

    def sort_matrix(self, lp: LinearProgram) -> None:
        lp.matrix.sum_duplicates()
        lp.matrix.sort_indices()
        self._row_scale = None
        self._col_scale = None
        self._restarts = 0

    def scale(self, lp: LinearProgram) -> None:
        _, self._row_scale, self._col_scale = scale_constraints(lp.matrix)

    def advanced_basis(self, lp: LinearProgram) -> None:
        self._restarts += 1

    def _strategy(self, params: SolverParams) -> Tuple[str, bool]:
        """(linprog method, presolve) for the current restart."""
        configured = "highs-ds" if params.method == "dual" else "highs"
        ladder = [(configured, True), ("highs-ipm", True), ("highs-ds", False)]
        return ladder[max(self._restarts - 1, 0) % len(ladder)]

    # -------------------------------------------------------------------------
    # solve
    # -------------------------------------------------------------------------

    def simplex(self, lp: LinearProgram, params: SolverParams) -> ReturnCode:
        self._status = SolutionStatus.UNDEFINED
        self._x = None
        self._duals = None

        if np.any(lp.row_lower > lp.row_upper) or np.any(lp.col_lower > lp.col_upper):
            return ReturnCode.BAD_BOUNDS
        if np.any(np.isnan(lp.objective)) or np.any(np.isnan(lp.matrix.data)):
            return ReturnCode.BAD_DATA

        n_rows, n_cols = lp.matrix.shape
        row_scale = self._row_scale if self._row_scale is not None else np.ones(n_rows)
        col_scale = self._col_scale if self._col_scale is not None else np.ones(n_cols)

        A = sparse.csr_matrix(sparse.diags(row_scale) @ lp.matrix @ sparse.diags(col_scale))
        row_lower = lp.row_lower * row_scale
        row_upper = lp.row_upper * row_scale
        col_lower = lp.col_lower / col_scale
        col_upper = lp.col_upper / col_scale
        sign = float(lp.direction.value)
        cost = sign * lp.objective * col_scale

        eq = np.isfinite(row_lower) & np.isfinite(row_upper) & (row_lower == row_upper)
        ub = np.isfinite(row_upper) & ~eq
        lb = np.isfinite(row_lower) & ~eq
        eq_rows = np.flatnonzero(eq)
        ub_rows = np.flatnonzero(ub)
        lb_rows = np.flatnonzero(lb)

        # lower limits enter as -a.x <= -lower
        ineq_rows = np.concatenate([ub_rows, lb_rows])
        signs = np.concatenate([np.ones(len(ub_rows)), -np.ones(len(lb_rows))])
        A_ub = sparse.csr_matrix(A[ineq_rows].multiply(signs.reshape(-1, 1)))
        b_ub = np.concatenate([row_upper[ub_rows], -row_lower[lb_rows]])
        A_eq = A[eq_rows]
        b_eq = row_lower[eq_rows]

        bounds = [
            (lo if np.isfinite(lo) else None, hi if np.isfinite(hi) else None)
            for lo, hi in zip(col_lower, col_upper)
        ]

        method, presolve = self._strategy(params)
        res = self._linprog(
            cost, A_ub, b_ub, A_eq, b_eq, bounds, method, presolve, params,
        )
        if res.status == 4 and "unbounded or infeasible" in str(res.message).lower():
            # presolve cannot tell the two apart; ask the simplex itself
            res = self._linprog(
                cost, A_ub, b_ub, A_eq, b_eq, bounds, "highs-ds", False, params,
            )

        self._iterations += int(getattr(res, "nit", 0) or 0)
        logger.debug(
            "linprog(%s, presolve=%s): status %d, %s",
            method, presolve, res.status, res.message,
        )

        if res.status == 1:
            if "time limit" in str(res.message).lower():
                return ReturnCode.TIME_LIMIT
            return ReturnCode.ITERATION_LIMIT
        if res.status == 4:
            if "singular" in str(res.message).lower():
                return ReturnCode.SINGULAR
            return ReturnCode.FAILED
        if res.status == 2:
            self._status = SolutionStatus.NO_FEASIBLE
            return ReturnCode.OK
        if res.status == 3:
            self._status = SolutionStatus.UNBOUNDED
            return ReturnCode.OK

        x = np.asarray(res.x, dtype=np.float64) * col_scale
        duals = np.zeros(n_rows)
        n_ub = len(ub_rows)
        ineq = _marginals(res, "ineqlin", n_ub + len(lb_rows))
        equal = _marginals(res, "eqlin", len(eq_rows))
        duals[eq_rows] += equal
        duals[ub_rows] += ineq[:n_ub]
        duals[lb_rows] -= ineq[n_ub:]
        # marginals refer to the minimized, scaled objective
        self._duals = sign * duals * row_scale
        self._x = x
        self._objective = float(lp.objective @ x)
        self._status = SolutionStatus.OPTIMAL
        return ReturnCode.OK

    def _linprog(self, cost, A_ub, b_ub, A_eq, b_eq, bounds, method, presolve, params):
        options = {
            "presolve": presolve,
            "disp": params.message_level >= 2,
        }
        if params.time_limit is not None:
            options["time_limit"] = params.time_limit
        if params.iteration_limit is not None:
            options["maxiter"] = params.iteration_limit
        if method == "highs-ds":
            options["simplex_dual_edge_weight_strategy"] = _PRICING[params.pricing]
        if params.ratio_test == "harris":
            logger.debug("ratio test 'harris' requested; HiGHS chooses its own ratio test")
        return linprog(
            cost,
            A_ub=A_ub if A_ub.shape[0] else None,
            b_ub=b_ub if A_ub.shape[0] else None,
            A_eq=A_eq if A_eq.shape[0] else None,
            b_eq=b_eq if A_eq.shape[0] else None,
            bounds=bounds,
            method=method,
            options=options,
        )

    # -------------------------------------------------------------------------
    # solution
    # -------------------------------------------------------------------------

    def status(self) -> SolutionStatus:
        return self._status

    def objective_value(self) -> float:
        return self._objective

    def column_primal(self, j: int) -> float:
        if self._x is None:
            raise RuntimeError("no primal solution available")
        return float(self._x[j])

    def row_dual(self, i: int) -> float:
        if self._duals is None:
            raise RuntimeError("no dual solution available")
        return float(self._duals[i])

    def iteration_count(self) -> int:
        return self._iterations

    def version(self) -> str:
        return f"HiGHS (scipy {scipy.__version__})"


def _marginals(res, name: str, size: int) -> np.ndarray:
    """Marginals of a linprog constraint block, zeros when absent."""
    block = getattr(res, name, None)
    marginals = getattr(block, "marginals", None) if block is not None else None
    if marginals is None or len(marginals) != size:
        return np.zeros(size)
    return np.asarray(marginals, dtype=np.float64)
