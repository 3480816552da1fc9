"""
The facet separation oracle.

The oracle hides a polyhedron (the objective space of a vlp problem) and
knows one point strictly inside it. A question is a point q, possibly
ideal (a direction). The segment from the interior point towards q leaves
the polyhedron at a boundary point; the dual solution of the LP that finds
this point gives a supporting hyperplane separating q from the polyhedron.

With d the lambda column (d = interior - q, or d = -q for an ideal q) the
LP reads

    maximize lambda  subject to  P x + lambda d = interior,  x feasible,

so the boundary point is interior - lambda d.

Usage:
    oracle = FacetOracle(OracleConfig(seed=1))
    oracle.load("problem.vlp")
    oracle.initialize()
    result = oracle.ask([1.0, 0.0, 0.0])
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..config import LAMBDA_BOUNDARY_FACTOR, OracleConfig
from ..errors import (
    ErrorKind,
    OracleError,
    OracleResult,
    OracleStateError,
    OracleStatus,
)
from ..lp.backend import (
    HighsBackend,
    ReturnCode,
    SimplexBackend,
    SolutionStatus,
    solver_params_from_config,
)
from ..lp.problem import Direction, LinearProgram, assemble_problem
from ..lp.retry import SolveLadder
from ..vlp.loader import VlpProblem, read_vlp
from .certifier import certify_facet


logger = logging.getLogger(__name__)


class OracleState(Enum):
    """Lifecycle of an oracle."""
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class OracleStats:
    """Diagnostics: LP calls, simplex iterations, solver time, solver version."""
    call_count: int
    iteration_count: int
    time_hundredths: int
    solver_version: str


class FacetOracle:
    """
    Facet separation oracle context.

    One instance owns one LP; calls must not overlap. Use one oracle per
    worker thread.

    Parameters
    ----------
    config : OracleConfig, optional
        Tolerance, solver parameters and switches.
    backend : SimplexBackend, optional
        LP solver; HighsBackend by default.
    rng : np.random.Generator, optional
        Source for row/column shuffling; seeded from config.seed if omitted.
    """

    def __init__(
        self,
        config: Optional[OracleConfig] = None,
        backend: Optional[SimplexBackend] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = (config or OracleConfig()).validate()
        self.backend = backend if backend is not None else HighsBackend()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.ladder = SolveLadder(
            self.backend, solver_params_from_config(self.config), scale=self.config.scale,
        )
        self.state = OracleState.UNINITIALIZED
        self.problem: Optional[LinearProgram] = None
        self.vlp: Optional[VlpProblem] = None
        self.interior: Optional[np.ndarray] = None
        self.objective_rows: Optional[np.ndarray] = None
        self.lambda_index: Optional[int] = None

    # =========================================================================
    # helpers
    # =========================================================================

    @property
    def objectives(self) -> int:
        if self.interior is None:
            raise OracleStateError("no problem loaded")
        return len(self.interior)

    def _require(self, state: OracleState, operation: str) -> None:
        if self.state is not state:
            raise OracleStateError(
                f"{operation}() needs state {state.value}, oracle is {self.state.value}"
            )

    def _fail(self, kind: ErrorKind, message: str, lam: Optional[float] = None) -> OracleResult:
        logger.critical("%s", message)
        self.state = OracleState.FAILED
        return OracleResult(OracleStatus.FAIL, message, error=kind, lam=lam)

    def _solver_failure(self, code: ReturnCode, context: str) -> OracleResult:
        message = f"{context}: the oracle says: {code.message} ({code.value})"
        if code.is_limit:
            logger.warning("%s", message)
            return OracleResult(OracleStatus.LIMIT, message, error=ErrorKind.LIMIT)
        return self._fail(ErrorKind.SOLVER_STATUS, message)

    def _set_lambda_column(self, d: np.ndarray, finite: bool) -> None:
        lp = self.problem
        lp.set_column(self.lambda_index, self.objective_rows, d)
        lp.col_lower[self.lambda_index] = 0.0
        lp.col_upper[self.lambda_index] = 1.0 if finite else np.inf

    # =========================================================================
    # load
    # =========================================================================

    def load(self, path: Union[str, Path]) -> OracleResult:
        """
        Read the vlp file and build the LP instance.

        On failure the oracle holds no problem and moves to FAILED.
        """
        self._require(OracleState.UNINITIALIZED, "load")
        try:
            vlp = read_vlp(
                path,
                tolerance=self.config.tolerance,
                shuffle=self.config.shuffle,
                rng=self.rng,
            )
            problem = assemble_problem(vlp)
        except OracleError as exc:
            return self._fail(exc.kind, exc.message)

        self.vlp = vlp
        self.problem = problem
        self.interior = vlp.interior.copy()
        self.interior.setflags(write=False)
        self.objective_rows = vlp.objective_rows.copy()
        self.lambda_index = vlp.lambda_index
        # the sparse build matrix is not needed any more
        vlp.matrix = None
        self.state = OracleState.LOADED
        dims = vlp.dimensions
        return OracleResult(
            OracleStatus.OK,
            f"loaded {dims.rows} rows, {dims.cols} columns, {dims.objectives} objectives",
        )

    # =========================================================================
    # initialize
    # =========================================================================

    def initialize(self) -> OracleResult:
        """
        Check the interior point against the loaded constraints.

        Returns OK (oracle READY), EMPTY when the interior point is not
        feasible at all, LIMIT on a solver limit, FAIL otherwise.
        """
        self._require(OracleState.LOADED, "initialize")
        lp = self.problem
        self._set_lambda_column(np.zeros(self.objectives), finite=False)
        lp.set_objective_direction(Direction.MINIMIZE)

        outcome = self.ladder.solve(lp)
        if outcome.code is not ReturnCode.OK:
            return self._solver_failure(outcome.code, "Internal point")

        status = self.backend.status()
        if status is not SolutionStatus.OPTIMAL:
            message = f"Internal point, the oracle says: {status.message}"
            if status is SolutionStatus.NO_FEASIBLE:
                logger.critical("%s", message)
                return OracleResult(OracleStatus.EMPTY, message, error=ErrorKind.EMPTY)
            return self._fail(ErrorKind.SOLVER_STATUS, message)

        lp.set_objective_direction(Direction.MAXIMIZE)

        if self.config.probe_interior:
            result = self._probe_interior()
            if result is not None:
                return result

        self._set_lambda_column(np.zeros(self.objectives), finite=False)
        self.state = OracleState.READY
        return OracleResult(OracleStatus.OK, "internal point verified")

    def _probe_interior(self) -> Optional[OracleResult]:
        """
        Move from the interior point along the vertices of a simplex around
        it; each move must have positive length. Returns None on success.
        """
        k = self.objectives
        directions = list(np.eye(k)) + [-np.ones(k) / k]
        threshold = LAMBDA_BOUNDARY_FACTOR * self.config.tolerance
        for u in directions:
            self._set_lambda_column(-u, finite=False)
            outcome = self.ladder.solve(self.problem)
            if outcome.code is not ReturnCode.OK:
                return self._solver_failure(outcome.code, "Internal point probe")
            status = self.backend.status()
            if status is SolutionStatus.UNBOUNDED:
                continue
            if status is not SolutionStatus.OPTIMAL:
                return self._fail(
                    ErrorKind.SOLVER_STATUS,
                    f"Internal point probe, the oracle says: {status.message}",
                )
            lam = self.backend.column_primal(self.lambda_index)
            if lam < threshold:
                return self._fail(
                    ErrorKind.NUMERICAL,
                    f"Initial point is on the boundary (direction {u.tolist()})",
                    lam=lam,
                )
        return None

    # =========================================================================
    # ask
    # =========================================================================

    def ask(self, request: Sequence[float]) -> OracleResult:
        """
        Ask for a facet separating `request` from the interior point.

        Parameters
        ----------
        request : sequence of float
            k + 1 homogeneous coordinates; the last is 0 for an ideal point.

        Returns
        -------
        OracleResult
            OK with `facet` (normal followed by offset), INSIDE when the
            point is inside or on the boundary, LIMIT on a solver limit,
            FAIL otherwise.
        """
        self._require(OracleState.READY, "ask")
        k = self.objectives
        query = np.array(request, dtype=np.float64)
        if query.shape != (k + 1,):
            raise ValueError(f"request must have {k + 1} coordinates, got {query.shape}")
        ideal = query[k] == 0.0

        if ideal:
            d = -query[:k]
        else:
            d = self.interior - query[:k]
        self._set_lambda_column(d, finite=not ideal)

        outcome = self.ladder.solve(self.problem)
        if outcome.code is not ReturnCode.OK:
            return self._solver_failure(outcome.code, "Ask")

        status = self.backend.status()
        if status is SolutionStatus.UNBOUNDED:
            if ideal:
                return OracleResult(OracleStatus.INSIDE, "direction is a recession direction")
            return self._fail(ErrorKind.NUMERICAL, "The oracle says: problem unbounded")
        if status is not SolutionStatus.OPTIMAL:
            return self._fail(
                ErrorKind.SOLVER_STATUS,
                f"The oracle says: {status.message} ({status.value})",
            )

        tol = self.config.tolerance
        lam = self.backend.objective_value()
        if lam < LAMBDA_BOUNDARY_FACTOR * tol:
            return self._fail(ErrorKind.NUMERICAL, "Initial point is on the boundary", lam=lam)
        if not ideal and lam > 1.0 - tol:
            if lam > 1.0 + tol:
                return self._fail(
                    ErrorKind.NUMERICAL, f"Numerical problem, lambda={lam:g} > 1.0", lam=lam,
                )
            return OracleResult(OracleStatus.INSIDE, "point is inside or on the boundary", lam=lam)

        duals = np.array([self.backend.row_dual(int(i)) for i in self.objective_rows])
        try:
            facet = certify_facet(
                duals, lam, d, self.interior, query,
                tolerance=tol, round_facets=self.config.round_facets,
            )
        except OracleError as exc:
            return self._fail(exc.kind, exc.message, lam=lam)
        return OracleResult(OracleStatus.OK, "facet found", facet=facet, lam=lam)

    # =========================================================================
    # statistics
    # =========================================================================

    def get_stats(self) -> OracleStats:
        """LP calls, simplex iterations, solver time (0.01 s) and solver version."""
        return OracleStats(
            call_count=self.ladder.call_count,
            iteration_count=self.backend.iteration_count(),
            time_hundredths=self.ladder.time_hundredths,
            solver_version=self.backend.version(),
        )
